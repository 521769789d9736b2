"""Console rendering of run reports."""

from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models import PairJudgment, RunMode, RunReport, RunStatus

STATUS_STYLES = {
    RunStatus.COMPLETED: "green",
    RunStatus.PARTIAL: "yellow",
    RunStatus.REJECTED: "red",
    RunStatus.CANCELLED: "yellow",
    RunStatus.FAILED: "red",
}


def print_run_report(report: RunReport, console: Optional[Console] = None) -> None:
    """Print a run summary with one row per duplicate group."""
    console = console or Console()

    if report.groups:
        table = Table(title=f"Duplicate groups ({report.window.describe()})")
        table.add_column("Keep", style="cyan", no_wrap=True)
        table.add_column("Title", style="bold")
        table.add_column("Redundant", style="magenta")
        table.add_column("Confidence", style="yellow")
        table.add_column("Action", style="dim")

        for group in report.groups:
            title = group.canonical_title
            if len(title) > 60:
                title = title[:57] + "..."
            action = "resolve" if group.allowed else "preview only"
            table.add_row(
                str(group.canonical_id),
                title,
                ", ".join(str(i) for i in group.redundant_ids),
                group.confidence_tier.value,
                action,
            )

        console.print(table)

    style = STATUS_STYLES.get(report.status, "white")
    status = report.status.value if report.status else report.state.value
    lines = [
        f"Run {report.run_id} ({report.mode.value}, {report.resolution.value}): [{style}]{status}[/{style}]",
        "",
        f"Articles analyzed: {report.articles_analyzed}",
        f"Pairs compared: {report.comparisons} "
        f"({report.pairs_skipped_out_of_window} skipped by date gap)",
        f"Semantic checks: {report.semantic_calls} ({report.semantic_fallbacks} fell back)",
        f"Groups found: {report.groups_found}, redundant articles: {report.redundant_count}",
    ]
    if report.mode == RunMode.APPLY:
        lines.append(
            f"Deleted: {report.deleted_count}, updated: {report.updated_count}, "
            f"failed: {report.failed_count}"
        )
        if report.backups:
            lines.append(f"Backed up: {len(report.backups)} articles (stored with the run record)")
    if report.skipped:
        lines.append(f"Skipped: {len(report.skipped)}")
    if report.partially_applied:
        lines.append("[yellow]Run was partially applied[/yellow]")
    for reason in report.rejected_reasons:
        lines.append(f"[red]• {reason}[/red]")
    if report.error:
        lines.append(f"[red]Error: {report.error}[/red]")

    console.print(Panel("\n".join(lines), style=style))


def print_judgments(judgments: List[PairJudgment], console: Optional[Console] = None) -> None:
    """Print duplicate judgments of a pre-insert check."""
    console = console or Console()

    if not judgments:
        console.print("[green]No duplicates found[/green]")
        return

    table = Table(title="Possible duplicates")
    table.add_column("Article", style="cyan")
    table.add_column("Score", style="yellow")
    table.add_column("Tier", style="magenta")
    table.add_column("Reason", style="dim")

    for judgment in judgments:
        table.add_row(
            str(judgment.article_b_id),
            f"{judgment.similarity_score:.2f}",
            judgment.confidence_tier.value,
            judgment.reason,
        )

    console.print(table)
