"""Command handlers for Stopwatch CLI."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import httpx
from rich.console import Console

from stopwatch.analysis.extraction import TimeoutExtractor
from stopwatch.analysis.statistics import derive_report
from stopwatch.analysis.tree import build_tree, tree_to_dict
from stopwatch.circleci import (
    CircleCIClient,
    RetryQueue,
    fetch_job_details,
    fetch_jobs,
    fetch_pipelines,
    fetch_workflows,
    retry_job_details,
    summarize_pipelines,
)
from stopwatch.config import Settings
from stopwatch.core.exceptions import CircleCIAPIError, ConfigurationError
from stopwatch.display import print_extraction_summary, print_report, print_test_features, render_tree
from stopwatch.logging import get_logger
from stopwatch.output import write_yaml
from stopwatch.storage import (
    AnalysisErrorLog,
    OutputLayout,
    clear_directory,
    load_snapshot,
    read_json,
    save_snapshot,
    write_json,
)

logger = get_logger(__name__)

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def create_client(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> CircleCIClient:
    """Build a CircleCI client from settings.

    Raises:
        ConfigurationError: If token, org slug or project name is missing.
    """
    token, org_slug, project_name = settings.require_credentials()
    return CircleCIClient(
        token=token,
        org_slug=org_slug,
        project_name=project_name,
        base_url=settings.api_base_url,
        v1_base_url=settings.api_v1_base_url,
        timeout=settings.request_timeout,
        max_retries=settings.retry_max_retries,
        base_delay=settings.retry_base_delay,
        max_delay=settings.retry_max_delay,
        transport=transport,
    )


async def run_fetch(
    settings: Settings,
    layout: OutputLayout,
    days: int,
    max_items: int | None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Fetch pipelines, workflows, jobs and job details of the last ``days`` days."""
    try:
        client = create_client(settings, transport)
    except ConfigurationError as e:
        err_console.print(f"Error: {e}")
        return 1

    layout.ensure_dirs()
    end_date = datetime.now(tz=UTC)
    start_date = end_date - timedelta(days=days)
    retry_queue = RetryQueue(layout.retry_path)

    async with client:
        try:
            pipelines = await fetch_pipelines(client, start_date, end_date, max_items)
        except CircleCIAPIError as e:
            err_console.print(f"Error fetching pipelines: {e}")
            return 1
        write_json(layout.pipelines_path, summarize_pipelines(pipelines))
        console.print(f"Fetched {len(pipelines)} pipelines")

        workflows = await fetch_workflows(client, pipelines, settings.batch_size)
        write_json(layout.workflows_path, workflows)
        console.print(f"Fetched {len(workflows)} workflows")

        jobs = await fetch_jobs(client, workflows, settings.batch_size)
        write_json(layout.jobs_path, jobs)
        console.print(f"Fetched {len(jobs)} jobs")

        summary = await fetch_job_details(client, jobs, layout, retry_queue, settings.batch_size)

    console.print(f"Saved {summary.saved} job details to {layout.jobs_dir}")
    if summary.skipped:
        console.print(f"[dim]{summary.skipped} jobs never ran and were skipped[/dim]")
    if summary.queued:
        console.print(
            f"[yellow]{summary.queued} job details failed; run 'stopwatch retry' later[/yellow]"
        )
    return 0


async def run_retry(
    settings: Settings,
    layout: OutputLayout,
    delay: float = 1.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Re-fetch queued job details. Returns 1 while anything stays queued."""
    retry_queue = RetryQueue(layout.retry_path)
    if not len(retry_queue):
        console.print("No job details queued for retry")
        return 0

    try:
        client = create_client(settings, transport)
    except ConfigurationError as e:
        err_console.print(f"Error: {e}")
        return 1

    async with client:
        summary = await retry_job_details(client, layout, retry_queue, delay=delay)

    console.print(f"Recovered {summary.saved} job details, {summary.queued} still queued")
    return 1 if summary.queued else 0


def run_analyze(layout: OutputLayout) -> int:
    """Extract timed-out actions from fetched jobs and save snapshot and tree."""
    layout.ensure_dirs()
    clear_directory(layout.analysis_dir)
    error_log = AnalysisErrorLog(layout.error_log_path)

    try:
        jobs = read_json(layout.jobs_path)
        workflows = read_json(layout.workflows_path)
    except (OSError, ValueError) as e:
        error_log.log(f"Failed to read fetched data: {e}")
        err_console.print(f"Error: {e}")
        err_console.print("Run 'stopwatch fetch' first.")
        return 1

    result = TimeoutExtractor(layout.jobs_dir, error_log).run(jobs, workflows)

    try:
        snapshot = save_snapshot(layout.timedout_path, result.entries)
        write_yaml(layout.tree_yaml_path, {"tree": tree_to_dict(snapshot.tree or {})})
    except (OSError, ValueError) as e:
        error_log.log(f"Failed to save analysis results: {e}")
        err_console.print(f"Error saving results: {e}")
        return 1

    print_extraction_summary(result, len(error_log), console)
    print_test_features(result.test_features, console)
    console.print(f"Results saved to {layout.timedout_path}")
    return 0


def run_report(
    layout: OutputLayout,
    type_threshold: int,
    depth: int = 3,
    min_count: int = 1,
) -> int:
    """Derive statistics from the saved snapshot and print them."""
    try:
        snapshot = load_snapshot(layout.timedout_path)
    except (OSError, ValueError) as e:
        err_console.print(f"Error reading {layout.timedout_path}: {e}")
        err_console.print("Run 'stopwatch analyze' first.")
        return 1

    try:
        tree = snapshot.tree if snapshot.tree is not None else build_tree(snapshot.entries)
        report = derive_report(snapshot.entries, tree, type_threshold=type_threshold)
    except (TypeError, ValueError) as e:
        err_console.print(f"Invalid entries in {layout.timedout_path}: {e}")
        err_console.print("Run 'stopwatch analyze' again.")
        return 1

    write_json(layout.report_path, report.to_dict())

    print_report(report, console)
    if tree:
        console.print(render_tree(tree, max_depth=depth, min_count=min_count))
    console.print(f"Report saved to {layout.report_path}")
    return 0


def run_clear(layout: OutputLayout) -> int:
    """Delete everything under the outputs directory."""
    removed = clear_directory(layout.root)
    console.print(f"Removed {removed} items from {layout.root}")
    return 0
