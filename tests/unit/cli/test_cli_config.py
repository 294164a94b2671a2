"""Tests for Config loading."""

from __future__ import annotations

import pytest

from stacksweep.aws.client import DEFAULT_CALL_TIMEOUT
from stacksweep.cli.config import CONFIG_ENV_VAR, Config, ConfigError
from stacksweep.teardown.coordinator import DEFAULT_MAX_WORKERS


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "aws_profile: sandbox\n"
        "regions: [ap-northeast-1, us-east-1, ap-northeast-1]\n"
        "max_workers: 8\n"
        "call_timeout: 45\n"
        "slack_webhook_url: https://hooks.slack.com/services/T/B/X\n"
    )
    return path


class TestConfig:
    """Test suite for Config."""

    def test_defaults_without_file(self, tmp_path) -> None:
        config = Config.load(path=str(tmp_path / "missing.yaml"), environ={})

        assert config.aws_profile is None
        assert config.regions == []
        assert config.max_workers == DEFAULT_MAX_WORKERS
        assert config.call_timeout == DEFAULT_CALL_TIMEOUT
        assert config.slack_webhook_url is None

    def test_load_file(self, config_file) -> None:
        config = Config.load(path=str(config_file), environ={})

        assert config.aws_profile == "sandbox"
        assert config.regions == ["ap-northeast-1", "us-east-1"]
        assert config.max_workers == 8
        assert config.call_timeout == 45.0
        assert isinstance(config.call_timeout, float)

    def test_file_from_env_var(self, config_file) -> None:
        config = Config.load(environ={CONFIG_ENV_VAR: str(config_file)})

        assert config.aws_profile == "sandbox"

    def test_environment_overrides_file(self, config_file) -> None:
        environ = {
            "STACKSWEEP_PROFILE": "prod",
            "STACKSWEEP_REGIONS": "us-west-2, eu-west-1",
            "STACKSWEEP_MAX_WORKERS": "2",
            "STACKSWEEP_AUDIT_DIR": "/tmp/audit",
        }

        config = Config.load(path=str(config_file), environ=environ)

        assert config.aws_profile == "prod"
        assert config.regions == ["us-west-2", "eu-west-1"]
        assert config.max_workers == 2
        assert config.audit_dir == "/tmp/audit"
        assert config.call_timeout == 45.0

    def test_unknown_key_is_ignored(self, tmp_path, caplog) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("colour: blue\nlog_level: DEBUG\n")

        config = Config.load(path=str(path), environ={})

        assert config.log_level == "DEBUG"
        assert "Ignoring unknown setting 'colour'" in caplog.text

    def test_invalid_yaml(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("regions: [unclosed\n")

        with pytest.raises(ConfigError, match="Could not parse"):
            Config.load(path=str(path), environ={})

    def test_non_mapping_file(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigError, match="must contain a mapping"):
            Config.load(path=str(path), environ={})

    def test_invalid_environment_value(self, tmp_path) -> None:
        with pytest.raises(ConfigError, match="STACKSWEEP_MAX_WORKERS"):
            Config.load(path=str(tmp_path / "missing.yaml"), environ={"STACKSWEEP_MAX_WORKERS": "many"})

    @pytest.mark.parametrize("setting", ["max_workers: 0", "call_timeout: -1"])
    def test_out_of_range_values(self, tmp_path, setting: str) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(setting + "\n")

        with pytest.raises(ConfigError):
            Config.load(path=str(path), environ={})
