"""Configuration management.

Settings are resolved in increasing priority: built-in defaults, the YAML
config file, STACKSWEEP_* environment variables, then CLI options (applied by
the CLI itself).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from ..aws.client import DEFAULT_CALL_TIMEOUT
from ..teardown.coordinator import DEFAULT_MAX_WORKERS, normalize_regions

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "STACKSWEEP_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".stacksweep" / "config.yaml"

# Environment variable -> (attribute, converter)
ENV_OVERRIDES = {
    "STACKSWEEP_PROFILE": ("aws_profile", str),
    "STACKSWEEP_LOG_LEVEL": ("log_level", str),
    "STACKSWEEP_REGIONS": ("regions", normalize_regions),
    "STACKSWEEP_MAX_WORKERS": ("max_workers", int),
    "STACKSWEEP_CALL_TIMEOUT": ("call_timeout", float),
    "STACKSWEEP_AUDIT_DIR": ("audit_dir", str),
    "STACKSWEEP_SLACK_WEBHOOK_URL": ("slack_webhook_url", str),
}


class ConfigError(ValueError):
    """Configuration file or environment value is invalid."""


@dataclass
class Config:
    """stack-sweep settings.

    Attributes:
        aws_profile: AWS profile name (None uses the default credential chain)
        log_level: Logging level name
        regions: Default regions for teardown, home region first
        max_workers: Concurrent deletions per rank
        call_timeout: Per-call timeout in seconds
        audit_dir: Audit log directory (None uses ~/.stacksweep/audit-logs)
        slack_webhook_url: Slack incoming webhook for run notifications
    """

    aws_profile: Optional[str] = None
    log_level: str = "INFO"
    regions: list[str] = field(default_factory=list)
    max_workers: int = DEFAULT_MAX_WORKERS
    call_timeout: float = DEFAULT_CALL_TIMEOUT
    audit_dir: Optional[str] = None
    slack_webhook_url: Optional[str] = None

    @classmethod
    def load(cls, path: Optional[str] = None, environ: Optional[dict[str, str]] = None) -> "Config":
        """Load configuration from file and environment.

        Args:
            path: Config file path (default: $STACKSWEEP_CONFIG or ~/.stacksweep/config.yaml)
            environ: Environment mapping (default: os.environ)

        Returns:
            Resolved Config

        Raises:
            ConfigError: If the file or an environment value cannot be parsed
        """
        environ = os.environ if environ is None else environ
        config = cls()

        config_path = Path(path or environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH).expanduser()
        if config_path.exists():
            config._apply(config._read_file(config_path), source=str(config_path))

        for name, (attr, convert) in ENV_OVERRIDES.items():
            if not environ.get(name):
                continue
            try:
                setattr(config, attr, convert(environ[name]))
            except ValueError as e:
                raise ConfigError(f"Invalid value for {name}: {e}") from e

        config.validate()
        return config

    @staticmethod
    def _read_file(config_path: Path) -> dict[str, Any]:
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a mapping")
        logger.debug(f"Loaded configuration from {config_path}")
        return data

    def _apply(self, data: dict[str, Any], source: str) -> None:
        for key, value in data.items():
            if not hasattr(self, key) or key.startswith("_"):
                logger.warning(f"Ignoring unknown setting '{key}' in {source}")
                continue
            if key == "regions":
                try:
                    value = normalize_regions(value) if value else []
                except ValueError as e:
                    raise ConfigError(f"Invalid regions in {source}: {e}") from e
            setattr(self, key, value)

    def validate(self) -> None:
        """Validate resolved settings.

        Raises:
            ConfigError: If a value is out of range
        """
        if int(self.max_workers) < 1:
            raise ConfigError("max_workers must be at least 1")
        if float(self.call_timeout) <= 0:
            raise ConfigError("call_timeout must be positive")
        self.max_workers = int(self.max_workers)
        self.call_timeout = float(self.call_timeout)
