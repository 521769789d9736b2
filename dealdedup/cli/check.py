"""Check command implementation."""

from pathlib import Path
from typing import Optional

import pendulum
import typer
from rich.console import Console

from ..errors import DedupError
from ..models import Article
from ..pipeline import DuplicateCleanupService, print_judgments
from .cleanup import load_cli_config

console = Console()


def check_command(
    title: str = typer.Argument(..., help="Headline of the article to check"),
    summary: str = typer.Option("", "--summary", "-s", help="Article summary"),
    date: Optional[str] = typer.Option(None, "--date", help="Publication date (YYYY-MM-DD). Default: today"),
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Look-back in days"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Check whether an article would duplicate one already stored."""
    try:
        publication_date = pendulum.parse(date).date() if date else pendulum.today().date()
        candidate = Article(title=title, summary=summary, publication_date=publication_date)

        config = load_cli_config(config_path, verbose)
        service = DuplicateCleanupService.from_config(config)
        judgments = service.check_for_duplicates_sync(candidate, days)
    except (DedupError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Check failed: {e}[/red]")
        raise typer.Exit(1)

    print_judgments(judgments, console)
    if judgments:
        raise typer.Exit(2)
