"""CircleCI fetch layer: API client, batched fetch services and retry queue."""

from .client import CircleCIClient
from .retry_queue import RetryEntry, RetryQueue
from .services import (
    DetailFetchSummary,
    fetch_job_detail,
    fetch_job_details,
    fetch_jobs,
    fetch_pipelines,
    fetch_workflows,
    retry_job_details,
    run_in_batches,
    save_job_detail,
    summarize_pipelines,
)

__all__ = [
    # client
    "CircleCIClient",
    # retry queue
    "RetryEntry",
    "RetryQueue",
    # services
    "DetailFetchSummary",
    "fetch_job_detail",
    "fetch_job_details",
    "fetch_jobs",
    "fetch_pipelines",
    "fetch_workflows",
    "retry_job_details",
    "run_in_batches",
    "save_job_detail",
    "summarize_pipelines",
]
