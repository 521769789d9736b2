"""Preview and cleanup command implementations."""

from pathlib import Path
from typing import Optional

import pendulum
import typer
from rich.console import Console

from ..config import Config
from ..db import CleanupRunRecorder, get_connection, validate_connection
from ..errors import DedupError, InvalidInputError
from ..logging_utils import setup_logging
from ..models import (
    ConfidenceTier,
    ResolutionStrategy,
    RunLimits,
    RunMode,
    RunReport,
    RunStatus,
    Window,
)
from ..pipeline import DuplicateCleanupService, print_run_report

console = Console()


def build_window(config: Config, days: Optional[int], date: Optional[str], end_date: Optional[str]) -> Window:
    """Window from CLI options: a publication-date range or the last N days."""
    if date:
        try:
            start = pendulum.parse(date).date()
            end = pendulum.parse(end_date).date() if end_date else start
        except ValueError as e:
            raise InvalidInputError(f"Invalid date: {e}") from e
        return Window.publication_dates(start, end)
    return Window.recent(days if days is not None else config.config.cleanup.default_days)


def load_cli_config(config_path: Optional[Path], verbose: bool) -> Config:
    """Load config, set up logging and check the database."""
    config = Config(config_path)
    setup_logging(config.config.logging, verbose=verbose)

    console.print("[dim]Checking database connection...[/dim]")
    if not validate_connection(config.get_db_config()):
        console.print("[red]❌ Database connection failed![/red]")
        console.print("Please check your database configuration and ensure Postgres is running.")
        raise typer.Exit(1)
    return config


def record_report(config: Config, report: RunReport) -> None:
    """Store the report in the audit table; failures are only reported."""
    try:
        with get_connection(config.get_db_config()) as conn:
            CleanupRunRecorder().record_run(conn, report)
    except Exception as e:
        console.print(f"[yellow]Warning: could not record run {report.run_id}: {e}[/yellow]")


def _run(
    config_path: Optional[Path],
    verbose: bool,
    days: Optional[int],
    date: Optional[str],
    end_date: Optional[str],
    mode: RunMode,
    limits: RunLimits,
    confirm: Optional[str],
    resolution: ResolutionStrategy,
) -> None:
    try:
        config = load_cli_config(config_path, verbose)
        window = build_window(config, days, date, end_date)
        service = DuplicateCleanupService.from_config(config)
        report = service.run_duplicate_cleanup_sync(window, mode, limits, confirm, resolution)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cleanup interrupted by user[/yellow]")
        raise typer.Exit(1)
    except (DedupError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Cleanup failed: {e}[/red]")
        raise typer.Exit(1)

    print_run_report(report, console)
    record_report(config, report)

    if report.status in (RunStatus.FAILED, RunStatus.REJECTED):
        raise typer.Exit(1)


def preview_command(
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Look back N days by ingestion time"),
    date: Optional[str] = typer.Option(None, "--date", help="Publication date (YYYY-MM-DD)"),
    end_date: Optional[str] = typer.Option(None, "--end-date", help="Last publication date of a range"),
    max_deletions: Optional[int] = typer.Option(None, "--max-deletions", help="Override deletion cap"),
    min_tier: Optional[ConfidenceTier] = typer.Option(None, "--min-tier", help="Minimum confidence tier"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Show duplicate groups and what a cleanup would delete."""
    limits = RunLimits(max_deletions=max_deletions, min_confidence_tier=min_tier)
    _run(
        config_path, verbose, days, date, end_date,
        RunMode.PREVIEW, limits, None, ResolutionStrategy.DELETE,
    )


def cleanup_command(
    confirm: Optional[str] = typer.Option(
        None,
        "--confirm",
        help="Confirmation token (must match DEALDEDUP_CONFIRM_TOKEN)",
    ),
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Look back N days by ingestion time"),
    date: Optional[str] = typer.Option(None, "--date", help="Publication date (YYYY-MM-DD)"),
    end_date: Optional[str] = typer.Option(None, "--end-date", help="Last publication date of a range"),
    max_deletions: Optional[int] = typer.Option(None, "--max-deletions", help="Override deletion cap"),
    max_groups: Optional[int] = typer.Option(None, "--max-groups", help="Override group cap"),
    min_tier: Optional[ConfidenceTier] = typer.Option(None, "--min-tier", help="Minimum confidence tier"),
    resolution: ResolutionStrategy = typer.Option(
        ResolutionStrategy.DELETE,
        "--resolution",
        help="delete redundant articles, or fill a missing canonical link",
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Resolve duplicates in the store."""
    limits = RunLimits(max_deletions=max_deletions, max_groups=max_groups, min_confidence_tier=min_tier)
    _run(config_path, verbose, days, date, end_date, RunMode.APPLY, limits, confirm, resolution)
