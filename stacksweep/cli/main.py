"""Main CLI entry point using Typer."""

import logging
import signal
import sys
import threading
from contextlib import contextmanager
from datetime import date
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..adapters.registry import ResourceAdapterSet
from ..models.identity import DeploymentIdentity, InvalidIdentityError
from ..models.teardown_report import ReportStatus
from ..teardown.audit import AuditStorage
from ..teardown.coordinator import TeardownCoordinator, normalize_regions
from ..teardown.notifier import SlackNotifier
from ..teardown.reporter import TeardownReporter
from ..utils.logging import setup_logging
from .config import Config, ConfigError

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_PARTIAL_FAILURE = 1
EXIT_USAGE_ERROR = 2

# Create Typer app
app = typer.Typer(
    name="stacksweep",
    help="stack-sweep - ordered teardown of prefix-named AWS deployments",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None


@app.callback()
def main(
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
    log_format: str = typer.Option("text", "--log-format", help="Log format: text or json"),
):
    """stack-sweep - ordered teardown of prefix-named AWS deployments."""
    global config

    if log_format not in ("text", "json"):
        console.print(f"✗ Unknown log format '{log_format}'. Use text or json", style="bold red")
        raise typer.Exit(code=EXIT_USAGE_ERROR)

    try:
        config = Config.load()
    except ConfigError as e:
        console.print(f"✗ Invalid configuration: {e}", style="bold red")
        raise typer.Exit(code=EXIT_USAGE_ERROR)

    # Override with CLI options
    if profile:
        config.aws_profile = profile

    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose, json_format=log_format == "json")

    if no_color:
        console.no_color = True


@app.command()
def version():
    """Show version information."""
    import boto3

    from .. import __version__

    console.print(f"stack-sweep version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    console.print(f"boto3 {boto3.__version__}")


@app.command("teardown")
def teardown_command(
    prefix: str = typer.Option(..., "--prefix", help="Deployment identity (resource name prefix)"),
    regions: Optional[str] = typer.Option(
        None, "--regions", "-r", help="Comma-separated regions, home region first (default: from config)"
    ),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Concurrent deletions per rank"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Per-call timeout in seconds"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Discover and plan without deleting"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    export: Optional[str] = typer.Option(None, "--export", help="Write the report to a .json or .csv file"),
    notify: bool = typer.Option(True, "--notify/--no-notify", help="Post the result to Slack if a webhook is set"),
    audit: bool = typer.Option(True, "--audit/--no-audit", help="Write the report to the audit log"),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name to use"),
):
    """Delete every resource of a deployment in dependency order.

    Exits 0 when everything is gone, 1 when anything was left behind.
    """
    try:
        identity = DeploymentIdentity.parse(prefix)
        region_list = normalize_regions(regions if regions else config.regions)

        aws_profile = profile if profile else config.aws_profile
        max_workers = workers if workers is not None else config.max_workers
        call_timeout = timeout if timeout is not None else config.call_timeout

        adapters = ResourceAdapterSet.default(profile_name=aws_profile, call_timeout=call_timeout)
        coordinator = TeardownCoordinator(adapters, max_workers=max_workers, call_timeout=call_timeout)
    except (InvalidIdentityError, ValueError) as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=EXIT_USAGE_ERROR)

    reporter = TeardownReporter(console=console)

    try:
        if not dry_run and not yes:
            console.print(
                f"\n⚠️  This deletes every resource named '[bold]{identity}[/bold]*' "
                f"in {', '.join(region_list)}.",
                style="yellow",
            )
            if not typer.confirm("Continue?", default=False):
                console.print("Cancelled.")
                raise typer.Exit(code=EXIT_SUCCESS)

        cancel_event = threading.Event()
        with _cancel_on_interrupt(cancel_event):
            with console.status(f"Tearing down '{identity}'..." if not dry_run else "Planning..."):
                report = coordinator.teardown(identity, region_list, cancel_event=cancel_event, dry_run=dry_run)

        reporter.print_report(report)

        if export:
            reporter.export(report, export)
            console.print(f"✓ Report written to {export}", style="green")

        if audit and not dry_run:
            audit_file = AuditStorage(config.audit_dir).log_run(report)
            logger.debug(f"Audit log: {audit_file}")

        if notify and not dry_run and config.slack_webhook_url:
            SlackNotifier(config.slack_webhook_url).notify(report)

        if report.status != ReportStatus.SUCCESS:
            raise typer.Exit(code=EXIT_PARTIAL_FAILURE)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"✗ Error during teardown: {e}", style="bold red")
        logger.exception("Error in teardown command")
        raise typer.Exit(code=EXIT_USAGE_ERROR)


@contextmanager
def _cancel_on_interrupt(cancel_event: threading.Event):
    """Route Ctrl-C to a cancellation event for the duration of a run.

    In-flight deletions finish; nothing new starts. A second Ctrl-C aborts
    immediately.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handle(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        console.print("\nCancelling: waiting for in-flight deletions to finish...", style="yellow")
        cancel_event.set()

    previous = signal.signal(signal.SIGINT, handle)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


# History commands group
history_app = typer.Typer(help="Teardown run history (audit log)")
app.add_typer(history_app, name="history")


@history_app.command("list")
def history_list(
    since: Optional[str] = typer.Option(None, "--since", help="Only runs started on or after YYYY-MM-DD"),
    until: Optional[str] = typer.Option(None, "--until", help="Only runs started on or before YYYY-MM-DD"),
):
    """List recorded teardown runs."""
    try:
        since_date = date.fromisoformat(since) if since else None
        until_date = date.fromisoformat(until) if until else None
    except ValueError as e:
        console.print(f"✗ Invalid date: {e}. Use YYYY-MM-DD", style="bold red")
        raise typer.Exit(code=EXIT_USAGE_ERROR)

    try:
        runs = AuditStorage(config.audit_dir).query_runs(since=since_date, until=until_date)

        if not runs:
            console.print("No teardown runs recorded.", style="yellow")
            return

        table = Table(title="Teardown Runs")
        table.add_column("Run ID", style="cyan")
        table.add_column("Identity")
        table.add_column("Regions")
        table.add_column("Started")
        table.add_column("Status")
        table.add_column("Tasks", justify="right")

        for data in runs:
            run = data["run"]
            status_style = "green" if run["status"] == ReportStatus.SUCCESS.value else "red"
            table.add_row(
                run["run_id"],
                run["identity"],
                ", ".join(run["regions"]),
                run["started_at"],
                f"[{status_style}]{run['status']}[/{status_style}]",
                str(len(run.get("tasks", []))),
            )

        console.print(table)

    except Exception as e:
        console.print(f"✗ Error reading history: {e}", style="bold red")
        logger.exception("Error in history list command")
        raise typer.Exit(code=EXIT_USAGE_ERROR)


@history_app.command("show")
def history_show(run_id: str = typer.Argument(..., help="Run ID to show")):
    """Show the tasks of one recorded run."""
    data = AuditStorage(config.audit_dir).get_run(run_id)
    if data is None:
        console.print(f"✗ Run '{run_id}' not found", style="bold red")
        raise typer.Exit(code=EXIT_PARTIAL_FAILURE)

    run = data["run"]
    console.print(f"\n🧹 Run: [bold]{run['run_id']}[/bold]")
    console.print(f"   Identity: {run['identity']}")
    console.print(f"   Regions: {', '.join(run['regions'])}")
    console.print(f"   Started: {run['started_at']}  Completed: {run.get('completed_at') or '-'}")
    console.print(f"   Status: {run['status']}" + ("  (cancelled)" if run.get("cancelled") else ""))

    table = Table()
    table.add_column("Task", style="cyan")
    table.add_column("Outcome")
    table.add_column("Error")

    for task in run.get("tasks", []):
        error = f"{task['error_code']}: {task['error_message']}" if task.get("error_code") else ""
        table.add_row(task["task_id"], task["outcome"], error)

    console.print(table)

    for error in run.get("discovery_errors", []):
        console.print(f"✗ Could not list {error['kind']} in {error['region']}: {error['error_code']}", style="red")


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
