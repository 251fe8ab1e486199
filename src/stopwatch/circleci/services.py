"""Fetch orchestration: pipelines -> workflows -> jobs -> job details.

Each stage reads the previous stage's records and issues requests in
fixed-width batches. A failed workflow or job listing is logged and
yields nothing; a failed job detail is queued for ``stopwatch retry``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from stopwatch.analysis.statistics import parse_timestamp
from stopwatch.circleci.client import CircleCIClient
from stopwatch.circleci.retry_queue import RetryQueue
from stopwatch.core.exceptions import CircleCIAPIError
from stopwatch.logging import get_logger
from stopwatch.storage.outputs import OutputLayout, write_json

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_BATCH_SIZE = 5


async def run_in_batches(
    items: Sequence[T],
    func: Callable[[T], Awaitable[R]],
    batch_size: int = DEFAULT_BATCH_SIZE,
    label: str = "items",
) -> list[R]:
    """Apply ``func`` to ``items`` concurrently, ``batch_size`` at a time.

    Results keep the order of ``items``.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    results: list[R] = []
    for start in range(0, len(items), batch_size):
        batch = items[start : start + batch_size]
        results.extend(await asyncio.gather(*(func(item) for item in batch)))
        logger.info("batch_completed", label=label, done=len(results), total=len(items))
    return results


async def fetch_pipelines(
    client: CircleCIClient,
    start_date: datetime,
    end_date: datetime,
    max_items: int | None = None,
) -> list[dict[str, Any]]:
    """Pipelines created within ``[start_date, end_date]``, newest first.

    Paging stops at the last page, at ``max_items``, or once a page ends
    before ``start_date``.
    """
    pipelines: list[dict[str, Any]] = []
    page_token: str | None = None

    while True:
        page = await client.get_pipelines_page(page_token)
        items = page.get("items", [])
        pipelines.extend(
            item for item in items if start_date <= parse_timestamp(item["created_at"]) <= end_date
        )

        if max_items and len(pipelines) >= max_items:
            return pipelines[:max_items]

        page_token = page.get("next_page_token")
        if not page_token or not items:
            return pipelines
        if parse_timestamp(items[-1]["created_at"]) < start_date:
            return pipelines


def summarize_pipelines(pipelines: list[dict[str, Any]]) -> list[dict[str, str]]:
    """``{id, branch, created_at}`` per pipeline."""
    return [
        {
            "id": pipeline["id"],
            "branch": (pipeline.get("vcs") or {}).get("branch", ""),
            "created_at": pipeline.get("created_at", ""),
        }
        for pipeline in pipelines
    ]


async def fetch_workflows(
    client: CircleCIClient,
    pipelines: list[dict[str, Any]],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> list[dict[str, Any]]:
    """Workflows of every pipeline, each tagged with the pipeline branch."""

    async def for_pipeline(pipeline: dict[str, Any]) -> list[dict[str, Any]]:
        branch = (pipeline.get("vcs") or {}).get("branch", "")
        try:
            workflows = await client.get_pipeline_workflows(pipeline["id"])
        except CircleCIAPIError as e:
            logger.error("workflows_fetch_failed", pipeline_id=pipeline["id"], error=str(e))
            return []
        return [{**workflow, "branch": branch} for workflow in workflows]

    batches = await run_in_batches(pipelines, for_pipeline, batch_size, label="pipelines")
    return [workflow for batch in batches for workflow in batch]


async def fetch_jobs(
    client: CircleCIClient,
    workflows: list[dict[str, Any]],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> list[dict[str, Any]]:
    """Jobs of every workflow with workflow context attached.

    The job ``id`` becomes ``<workflow_id>/<job_id>`` so a job can be
    traced back to its workflow; the plain id is kept as ``job_uuid``.
    """

    async def for_workflow(workflow: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            jobs = await client.get_workflow_jobs(workflow["id"])
        except CircleCIAPIError as e:
            logger.error("jobs_fetch_failed", workflow_id=workflow["id"], error=str(e))
            return []
        return [
            {
                **job,
                "id": f"{workflow['id']}/{job.get('id', '')}",
                "job_uuid": job.get("id"),
                "workflow_id": workflow["id"],
                "workflow_name": workflow.get("name", ""),
                "pipeline_id": workflow.get("pipeline_id", ""),
                "branch": workflow.get("branch") or "",
            }
            for job in jobs
        ]

    batches = await run_in_batches(workflows, for_workflow, batch_size, label="workflows")
    return [job for batch in batches for job in batch]


async def fetch_job_detail(client: CircleCIClient, job_number: int) -> dict[str, Any]:
    """Job detail with console output attached to timed-out actions as ``_output``.

    Only timed-out actions are expanded; their output is what the
    timeout analysis classifies.
    """
    detail = await client.get_job_detail(job_number)
    for step in detail.get("steps") or []:
        for action in step.get("actions") or []:
            if action.get("timedout") is True and action.get("output_url"):
                action["_output"] = await client.get_action_output(action["output_url"])
    return detail


@dataclass
class DetailFetchSummary:
    """Counts from one job-detail fetch pass."""

    saved: int = 0
    queued: int = 0
    skipped: int = 0


async def fetch_job_details(
    client: CircleCIClient,
    jobs: list[dict[str, Any]],
    layout: OutputLayout,
    retry_queue: RetryQueue,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> DetailFetchSummary:
    """Fetch and save ``jobs/<number>-<name>.json`` for every job that ran.

    Failures go to ``retry_queue``; successes are removed from it.
    """
    summary = DetailFetchSummary()
    runnable = []
    for job in jobs:
        if job.get("job_number") and job.get("name"):
            runnable.append(job)
        else:
            summary.skipped += 1

    async def for_job(job: dict[str, Any]) -> bool:
        return await save_job_detail(client, job["job_number"], job["name"], layout, retry_queue)

    results = await run_in_batches(runnable, for_job, batch_size, label="job details")
    summary.saved = sum(1 for ok in results if ok)
    summary.queued = len(results) - summary.saved
    return summary


async def save_job_detail(
    client: CircleCIClient,
    job_number: int,
    job_name: str,
    layout: OutputLayout,
    retry_queue: RetryQueue,
) -> bool:
    """Fetch one job detail to disk. Returns False if it was queued for retry."""
    try:
        detail = await fetch_job_detail(client, job_number)
    except CircleCIAPIError as e:
        logger.warning("job_detail_fetch_failed", job_number=job_number, error=str(e))
        retry_queue.add(job_number, job_name)
        return False

    write_json(layout.job_detail_path(job_number, job_name), detail)
    retry_queue.remove(job_number)
    return True


async def retry_job_details(
    client: CircleCIClient,
    layout: OutputLayout,
    retry_queue: RetryQueue,
    delay: float = 1.0,
) -> DetailFetchSummary:
    """Re-attempt every queued job detail, one at a time with ``delay`` between."""
    summary = DetailFetchSummary()
    entries = retry_queue.entries
    logger.info("retry_started", queued=len(entries))

    for index, entry in enumerate(entries):
        logger.info("retrying_job", job_number=entry.id, attempt=entry.retry_count + 1)
        if await save_job_detail(client, entry.id, entry.job_name, layout, retry_queue):
            summary.saved += 1
        else:
            summary.queued += 1
        if delay and index < len(entries) - 1:
            await asyncio.sleep(delay)

    return summary
