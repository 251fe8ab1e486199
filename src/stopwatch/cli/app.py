"""Main Typer CLI application for Stopwatch."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer

from stopwatch.cli import commands
from stopwatch.config import Settings, get_settings
from stopwatch.logging import configure_logging, run_id_ctx
from stopwatch.storage import OutputLayout

app = typer.Typer(
    name="stopwatch",
    help="Classify and count CircleCI actions that timed out",
    no_args_is_help=True,
)


@dataclass
class CLIState:
    """Per-invocation settings shared by all commands."""

    settings: Settings
    layout: OutputLayout


@app.callback()
def main_callback(
    ctx: typer.Context,
    outputs_dir: Annotated[
        Path | None,
        typer.Option(
            "-o",
            "--outputs-dir",
            help="Directory for fetched data and analysis results",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Log level (DEBUG, INFO, WARNING, ERROR)",
        ),
    ] = None,
    json_logs: Annotated[
        bool,
        typer.Option(
            "--json-logs",
            help="Write logs as JSON lines",
        ),
    ] = False,
) -> None:
    """Classify and count CircleCI actions that timed out."""
    settings = get_settings()
    configure_logging(
        log_level=log_level or settings.log_level,
        json_format=json_logs or settings.log_json_format,
    )
    run_id_ctx.set(uuid.uuid4().hex[:8])
    ctx.obj = CLIState(settings=settings, layout=OutputLayout(outputs_dir or settings.outputs_dir))


@app.command()
def fetch(
    ctx: typer.Context,
    days: Annotated[
        int | None,
        typer.Option(
            "-d",
            "--days",
            help="How many days back to fetch pipelines",
        ),
    ] = None,
    max_items: Annotated[
        int | None,
        typer.Option(
            "-n",
            "--max-items",
            help="Maximum number of pipelines to fetch",
        ),
    ] = None,
) -> None:
    """Fetch pipelines, workflows, jobs and job details from CircleCI.

    Credentials come from STOPWATCH_CIRCLE_CI_TOKEN,
    STOPWATCH_CIRCLE_CI_ORG_SLUG and STOPWATCH_CIRCLE_CI_PROJECT_NAME.
    """
    state: CLIState = ctx.obj
    exit_code = asyncio.run(
        commands.run_fetch(
            state.settings,
            state.layout,
            days=days if days is not None else state.settings.fetch_days,
            max_items=max_items if max_items is not None else state.settings.fetch_max_items,
        )
    )
    raise typer.Exit(code=exit_code)


@app.command()
def retry(
    ctx: typer.Context,
    delay: Annotated[
        float,
        typer.Option(
            "--delay",
            help="Seconds to wait between retried jobs",
        ),
    ] = 1.0,
) -> None:
    """Re-fetch job details that failed during fetch."""
    state: CLIState = ctx.obj
    exit_code = asyncio.run(commands.run_retry(state.settings, state.layout, delay=delay))
    raise typer.Exit(code=exit_code)


@app.command()
def analyze(ctx: typer.Context) -> None:
    """Extract and classify timed-out actions from fetched job details.

    Writes analysis/timedout.json and analysis/timedout-tree.yaml; skipped
    jobs are listed in analysis/analysis.log.
    """
    state: CLIState = ctx.obj
    raise typer.Exit(code=commands.run_analyze(state.layout))


@app.command()
def report(
    ctx: typer.Context,
    depth: Annotated[
        int,
        typer.Option(
            "--depth",
            min=1,
            help="Tree levels to display",
        ),
    ] = 3,
    min_count: Annotated[
        int,
        typer.Option(
            "--min-count",
            min=1,
            help="Hide tree nodes with fewer occurrences",
        ),
    ] = 1,
    threshold: Annotated[
        int | None,
        typer.Option(
            "-t",
            "--threshold",
            help="Minimum occurrences for a type to get its own series",
        ),
    ] = None,
) -> None:
    """Derive timeout statistics from the saved analysis."""
    state: CLIState = ctx.obj
    exit_code = commands.run_report(
        state.layout,
        type_threshold=threshold if threshold is not None else state.settings.type_breakdown_threshold,
        depth=depth,
        min_count=min_count,
    )
    raise typer.Exit(code=exit_code)


@app.command()
def clear(
    ctx: typer.Context,
    yes: Annotated[
        bool,
        typer.Option(
            "-y",
            "--yes",
            help="Do not ask for confirmation",
        ),
    ] = False,
) -> None:
    """Delete all fetched data and analysis results."""
    state: CLIState = ctx.obj
    if not yes:
        typer.confirm(f"Delete everything under {state.layout.root}?", abort=True)
    raise typer.Exit(code=commands.run_clear(state.layout))
