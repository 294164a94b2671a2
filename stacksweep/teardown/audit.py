"""Audit storage for teardown runs.

Finished reports are kept as YAML files so past runs can be reviewed with
``stacksweep history``.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Optional

import yaml

from ..models.teardown_report import TeardownReport
from ..utils.timestamps import end_of_day, format_timestamp, parse_timestamp, start_of_day, utc_now

logger = logging.getLogger(__name__)

AUDIT_FORMAT_VERSION = "1.0"


def default_audit_dir() -> Path:
    return Path.home() / ".stacksweep" / "audit-logs"


class AuditStorage:
    """Teardown run log storage and retrieval.

    Storage structure:
        ~/.stacksweep/audit-logs/
            2026/
                10/
                    run-run_123.yaml

    Attributes:
        storage_dir: Base directory for audit logs
    """

    def __init__(self, storage_dir: Optional[str] = None) -> None:
        """Initialize audit storage.

        Args:
            storage_dir: Base directory for audit logs (default: ~/.stacksweep/audit-logs)
        """
        self.storage_dir = Path(storage_dir) if storage_dir else default_audit_dir()
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def log_run(self, report: TeardownReport) -> Path:
        """Write a finished report to audit storage.

        Overwrites an existing log with the same run ID.

        Args:
            report: Teardown report to log

        Returns:
            Path of the written audit file
        """
        year_month_dir = self.storage_dir / str(report.started_at.year) / f"{report.started_at.month:02d}"
        year_month_dir.mkdir(parents=True, exist_ok=True)

        audit_data = {
            "metadata": {
                "version": AUDIT_FORMAT_VERSION,
                "log_type": "resource_teardown",
                "created_at": format_timestamp(utc_now()),
            },
            "run": report.to_dict(),
        }

        audit_file = year_month_dir / f"run-{report.run_id}.yaml"
        with open(audit_file, "w") as f:
            yaml.safe_dump(audit_data, f, default_flow_style=False, sort_keys=False)

        logger.debug(f"Wrote audit log {audit_file}")
        return audit_file

    def get_run(self, run_id: str) -> Optional[dict]:
        """Retrieve a run's audit log by ID.

        Returns:
            Audit log dictionary if found, None otherwise
        """
        for audit_file in self.storage_dir.glob(f"*/*/run-{run_id}.yaml"):
            with open(audit_file, "r") as f:
                return yaml.safe_load(f)
        return None

    def query_runs(
        self,
        since: Optional[date] = None,
        until: Optional[date] = None,
    ) -> list[dict]:
        """Query runs started within a date range, oldest first.

        Args:
            since: Start date or datetime (inclusive), None for all
            until: End date or datetime (inclusive), None for all. A plain
                date includes runs started at any time that day.

        Returns:
            List of run audit logs matching criteria
        """
        lower = start_of_day(since) if since else None
        upper = end_of_day(until) if until else None
        results = []

        for year_dir in sorted(self.storage_dir.glob("*")):
            if not year_dir.is_dir():
                continue

            for month_dir in sorted(year_dir.glob("*")):
                if not month_dir.is_dir():
                    continue

                for audit_file in month_dir.glob("run-*.yaml"):
                    with open(audit_file, "r") as f:
                        audit_data = yaml.safe_load(f)

                    started_at = parse_timestamp(audit_data["run"]["started_at"])
                    if lower and started_at < lower:
                        continue
                    if upper and started_at > upper:
                        continue

                    results.append(audit_data)

        results.sort(key=lambda data: parse_timestamp(data["run"]["started_at"]))
        return results
