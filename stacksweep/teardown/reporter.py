"""Teardown report rendering and export."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from ..models.deletion_task import TaskOutcome
from ..models.teardown_report import ReportStatus, TeardownReport

OUTCOME_STYLES = {
    TaskOutcome.SUCCEEDED: "green",
    TaskOutcome.SKIPPED_NOT_FOUND: "cyan",
    TaskOutcome.FAILED: "red",
    TaskOutcome.SKIPPED_BLOCKED: "yellow",
    TaskOutcome.PENDING: "dim",
    TaskOutcome.RUNNING: "blue",
}

CSV_FIELDS = [
    "task_id",
    "kind",
    "region",
    "resource_id",
    "name",
    "outcome",
    "error_code",
    "error_message",
    "started_at",
    "finished_at",
    "duration_seconds",
]


class TeardownReporter:
    """Report teardown runs in various formats (terminal, JSON, CSV)."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def build_table(self, report: TeardownReport) -> Table:
        """Build a Rich table with one row per task."""
        title = "Teardown Plan" if report.dry_run else "Teardown Results"
        table = Table(title=f"{title}: {report.identity}")
        table.add_column("Rank", justify="right", style="dim")
        table.add_column("Kind", style="cyan")
        table.add_column("Region")
        table.add_column("Resource")
        table.add_column("Outcome", style="bold")
        table.add_column("Detail")

        for task in report.tasks:
            style = OUTCOME_STYLES.get(task.outcome, "white")
            resource = task.resource.name or task.resource.resource_id
            if resource != task.resource.resource_id:
                resource = f"{resource} ({task.resource.resource_id.split('/')[-1]})"

            detail = task.error_message or ""
            if len(detail) > 60:
                detail = detail[:57] + "..."

            table.add_row(
                str(task.rank),
                task.kind.label,
                task.resource.region,
                resource,
                f"[{style}]{task.outcome.value}[/{style}]",
                detail,
            )

        return table

    def print_report(self, report: TeardownReport) -> None:
        """Print the task table, discovery errors and the summary line."""
        if report.tasks:
            self.console.print(self.build_table(report))
        else:
            self.console.print(f"[yellow]No resources found for '{report.identity}'[/yellow]")

        for error in report.discovery_errors:
            self.console.print(
                f"[red]✗ Could not list {error.kind} in {error.region}:[/red] "
                f"{error.error_code}: {error.error_message}"
            )

        summary = self.generate_summary(report)
        color = "green" if report.status == ReportStatus.SUCCESS else "red"
        self.console.print(
            f"\n[bold {color}]{summary['status']}[/bold {color}] "
            f"{summary['total_tasks']} task(s): "
            f"{summary['succeeded']} deleted, {summary['not_found']} already gone, "
            f"{summary['failed']} failed, {summary['blocked']} blocked"
        )

    def generate_summary(self, report: TeardownReport) -> dict:
        """Generate summary statistics for a run.

        Returns:
            Dictionary with status and counts by outcome
        """
        return {
            "run_id": report.run_id,
            "identity": report.identity,
            "status": report.status.value,
            "dry_run": report.dry_run,
            "total_tasks": len(report.tasks),
            "succeeded": report.count(TaskOutcome.SUCCEEDED),
            "not_found": report.count(TaskOutcome.SKIPPED_NOT_FOUND),
            "failed": report.count(TaskOutcome.FAILED),
            "blocked": report.count(TaskOutcome.SKIPPED_BLOCKED),
            "pending": report.count(TaskOutcome.PENDING),
            "discovery_errors": len(report.discovery_errors),
            "duration_seconds": report.duration_seconds,
        }

    def export(self, report: TeardownReport, filepath: str) -> None:
        """Export by file extension (.json or .csv).

        Raises:
            ValueError: If the extension is not supported
        """
        suffix = Path(filepath).suffix.lower()
        if suffix == ".json":
            self.export_json(report, filepath)
        elif suffix == ".csv":
            self.export_csv(report, filepath)
        else:
            raise ValueError(f"Unsupported export format '{suffix}'. Use .json or .csv")

    def export_json(self, report: TeardownReport, filepath: str) -> None:
        output_path = Path(filepath)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        output = {"report": report.to_dict(), "summary": self.generate_summary(report)}
        with open(output_path, "w") as f:
            json.dump(output, f, indent=2)

    def export_csv(self, report: TeardownReport, filepath: str) -> None:
        output_path = Path(filepath)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_FIELDS, extrasaction="ignore")
            writer.writeheader()

            for task in report.tasks:
                row = task.to_dict()
                writer.writerow({key: "" if row.get(key) is None else row.get(key) for key in CSV_FIELDS})
