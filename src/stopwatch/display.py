"""Rich-based terminal rendering of analysis results."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree as RichTree

from stopwatch.analysis.extraction import ExtractionResult
from stopwatch.analysis.statistics import TimeoutReport
from stopwatch.analysis.tree import Tree
from stopwatch.core.models import TestFeatureTally, TreeNode


def truncate_text(text: str, max_length: int = 50) -> str:
    """Shorten ``text`` to ``max_length`` characters plus an ellipsis."""
    return text if len(text) <= max_length else text[:max_length] + "..."


def format_percent(count: int, total: int) -> str:
    if total == 0:
        return "0.0%"
    return f"{count / total * 100:.1f}%"


def print_extraction_summary(
    result: ExtractionResult,
    errors_logged: int = 0,
    console: Console | None = None,
) -> None:
    """Print job counts and timed-out actions found."""
    if console is None:
        console = Console(highlight=False)

    console.print("[bold]Analysis complete:[/bold]")
    console.print(f"- Total jobs: {result.total_jobs}")
    console.print(f"- Successfully processed: [green]{result.processed_jobs}[/green]")
    console.print(f"- Skipped/Failed: [yellow]{result.skipped_jobs}[/yellow]")
    console.print(f"- Found {len(result.entries)} timed out actions")
    if errors_logged:
        console.print(f"[dim]{errors_logged} issues written to the analysis log[/dim]")


def print_test_features(tally: TestFeatureTally, console: Console | None = None) -> None:
    """Print the per-file status tally of test-features jobs."""
    if console is None:
        console = Console(highlight=False)

    if not tally:
        console.print("[dim]No test_features jobs found[/dim]")
        return

    table = Table(title="test_features jobs")
    table.add_column("File")
    table.add_column("Total", justify="right")
    table.add_column("Statuses")

    for filename, counts in tally.items():
        statuses = ", ".join(f"{status}: {count}" for status, count in counts.statuses.items())
        table.add_row(escape(filename), str(counts.total), escape(statuses))

    console.print(table)


def _add_branches(
    parent: RichTree,
    children: dict[str, TreeNode],
    depth: int,
    max_depth: int,
    min_count: int,
) -> None:
    if depth > max_depth:
        return
    for line, node in children.items():
        if node.count < min_count:
            continue
        style = "cyan" if node.is_test else ""
        label = f"[bold]{node.count}[/bold] {escape(truncate_text(line.strip(), 100))}"
        branch = parent.add(f"[{style}]{label}[/{style}]" if style else label)
        if node.children:
            _add_branches(branch, node.children, depth + 1, max_depth, min_count)


def render_tree(tree: Tree, max_depth: int = 3, min_count: int = 1) -> RichTree:
    """Build a rich Tree of the frequency tree, most frequent heads first.

    Args:
        tree: Frequency tree.
        max_depth: Number of levels to show, heads included.
        min_count: Hide nodes with fewer hits.
    """
    root = RichTree("[bold]Timed-out actions by classification[/bold]")
    ordered = dict(sorted(tree.items(), key=lambda item: item[1].count, reverse=True))
    _add_branches(root, ordered, 1, max_depth, min_count)
    return root


def print_report(report: TimeoutReport, console: Console | None = None) -> None:
    """Print summary statistics and the per-type breakdown."""
    if console is None:
        console = Console(highlight=False)

    stats = report.stats
    if stats is None:
        console.print("[yellow]No timed out actions to report[/yellow]")
        return

    average = f"{stats.average_per_day:.2f}" if stats.average_per_day is not None else "n/a"
    console.print(f"Total timeouts analyzed: [bold]{stats.total_timeouts}[/bold]")
    console.print(
        f"Date range: {stats.start_date.date().isoformat()} to "
        f"{stats.end_date.date().isoformat()} ({stats.days_covered} days)"
    )
    console.print(f"Average timeouts per day: {average}")
    console.print(f"Maximum timeouts in a day: {stats.max_per_day}")

    if not report.type_breakdown:
        console.print(
            f"[dim]No classification reached {report.type_threshold} occurrences[/dim]"
        )
        return

    table = Table(title=f"Timeout types (>= {report.type_threshold} occurrences)")
    table.add_column("Type")
    table.add_column("Count", justify="right")
    table.add_column("Share", justify="right")
    for head, count in report.type_breakdown.items():
        table.add_row(
            escape(truncate_text(head)),
            str(count),
            format_percent(count, stats.total_timeouts),
        )
    console.print(table)
