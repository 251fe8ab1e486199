"""CLI package for Stopwatch."""

from stopwatch.cli.app import app
from stopwatch.cli.commands import run_analyze, run_clear, run_fetch, run_report, run_retry


def main() -> None:
    """Main entry point for the CLI."""
    app()


__all__ = [
    "app",
    "main",
    "run_analyze",
    "run_clear",
    "run_fetch",
    "run_report",
    "run_retry",
]
