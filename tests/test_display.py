"""Tests for rich terminal rendering."""

from io import StringIO

from rich.console import Console

from stopwatch.analysis.extraction import ExtractionResult
from stopwatch.analysis.statistics import derive_report
from stopwatch.analysis.tree import build_tree
from stopwatch.core.models import StatusTally
from stopwatch.display import (
    format_percent,
    print_extraction_summary,
    print_report,
    print_test_features,
    render_tree,
    truncate_text,
)
from tests.factories import make_entry


def make_console():
    output = StringIO()
    return Console(file=output, width=120, highlight=False, color_system=None), output


class TestHelpers:
    """Test suite for formatting helpers."""

    def test_truncate_text(self):
        """Long text is cut with an ellipsis."""
        assert truncate_text("a" * 60, 50) == "a" * 50 + "..."
        assert truncate_text("short", 50) == "short"

    def test_format_percent(self):
        """Percentages have one decimal; zero totals give 0.0%."""
        assert format_percent(1, 3) == "33.3%"
        assert format_percent(1, 0) == "0.0%"


class TestRenderTree:
    """Test suite for render_tree()."""

    def test_depth_and_min_count(self):
        """Nodes beyond max_depth or below min_count are hidden."""
        # Given
        tree = build_tree(
            [make_entry(processed=["E", "  x", "    y"])] * 3
            + [make_entry(processed=["Rare"])]
        )
        console, output = make_console()

        # When
        console.print(render_tree(tree, max_depth=2, min_count=2))

        # Then
        text = output.getvalue()
        assert "3 E" in text
        assert "3 x" in text
        assert "3 y" not in text
        assert "Rare" not in text

    def test_heads_sorted_by_count(self):
        """Most frequent heads come first."""
        tree = build_tree([make_entry(processed=["A"])] + [make_entry(processed=["B"])] * 2)
        console, output = make_console()

        console.print(render_tree(tree))

        text = output.getvalue()
        assert text.index("2 B") < text.index("1 A")

    def test_markup_in_lines_is_escaped(self):
        """Log lines containing brackets are shown literally."""
        tree = build_tree([make_entry(processed=["[bold]not markup"])])
        console, output = make_console()

        console.print(render_tree(tree))

        assert "[bold]not markup" in output.getvalue()


class TestPrintFunctions:
    """Test suite for summary printing."""

    def test_extraction_summary(self):
        """Job counts and entry count are printed."""
        console, output = make_console()
        result = ExtractionResult(
            entries=[make_entry()], total_jobs=3, processed_jobs=2, skipped_jobs=1
        )

        print_extraction_summary(result, errors_logged=1, console=console)

        text = output.getvalue()
        assert "Total jobs: 3" in text
        assert "Skipped/Failed: 1" in text
        assert "Found 1 timed out actions" in text

    def test_test_features_table(self):
        """Each file gets a row with its status counts."""
        console, output = make_console()
        tally = StatusTally()
        tally.add("success")
        tally.add("timedout")

        print_test_features({"test_features.json": tally}, console=console)

        text = output.getvalue()
        assert "test_features.json" in text
        assert "success: 1, timedout: 1" in text

    def test_report_without_average(self):
        """A zero-day span shows the average as n/a."""
        console, output = make_console()
        report = derive_report([make_entry(), make_entry()], type_threshold=2)

        print_report(report, console=console)

        text = output.getvalue()
        assert "Average timeouts per day: n/a" in text
        assert "100.0%" in text

    def test_empty_report(self):
        """An empty report says there is nothing to show."""
        console, output = make_console()

        print_report(derive_report([]), console=console)

        assert "No timed out actions" in output.getvalue()
