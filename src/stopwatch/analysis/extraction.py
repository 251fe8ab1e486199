"""Timeout extraction over fetched job detail records.

Walks every job in ``jobs.json``, opens its detail record, and emits one
TimeoutEntry per timed-out action. A bad or missing record is logged to the
error sink and skipped; it never aborts the run.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from stopwatch.analysis.classification import classify, second_to_last_message
from stopwatch.analysis.test_features import update_test_feature_tally
from stopwatch.core.models import Job, TestFeatureTally, TimeoutEntry, Workflow
from stopwatch.logging import get_logger
from stopwatch.storage.error_log import AnalysisErrorLog
from stopwatch.storage.outputs import job_detail_filename

logger = get_logger(__name__)

UNKNOWN = "unknown"
PROGRESS_STEP_PERCENT = 10


@dataclass
class ExtractionResult:
    """Outcome of one extraction run."""

    entries: list[TimeoutEntry] = field(default_factory=list)
    test_features: TestFeatureTally = field(default_factory=dict)
    total_jobs: int = 0
    processed_jobs: int = 0
    skipped_jobs: int = 0


def extract_timeout_entries(
    detail: dict[str, Any],
    job: Job,
    workflow: Workflow | None,
) -> list[TimeoutEntry]:
    """Emit an entry for every timed-out action with at least two output lines."""
    branch = (workflow.branch if workflow else None) or detail.get("branch") or UNKNOWN
    workflow_id = workflow.id if workflow else UNKNOWN

    entries: list[TimeoutEntry] = []
    for step in detail.get("steps") or []:
        for action in step.get("actions") or []:
            if action.get("timedout") is not True:
                continue
            message = second_to_last_message(action.get("_output"))
            if not message:
                continue

            start_time = action["start_time"]
            if not isinstance(start_time, str):
                raise TypeError(f"start_time must be a string, got {type(start_time).__name__}")

            classification = classify(message)
            entries.append(
                TimeoutEntry(
                    start_time=start_time,
                    workflow_id=workflow_id,
                    branch=branch,
                    job_id=job.id,
                    job_name=job.name or "",
                    action_index=action.get("index"),
                    raw_message=message,
                    unprocessed_classification=classification.unprocessed,
                    processed_classification=classification.processed,
                    build_url=detail.get("build_url"),
                )
            )
    return entries


class TimeoutExtractor:
    """Extracts timeout entries and the test-features tally from job details."""

    def __init__(self, jobs_dir: Path, error_log: AnalysisErrorLog | None = None):
        """Initialize extractor.

        Args:
            jobs_dir: Directory holding ``<job_number>-<name>.json`` records.
            error_log: Sink for skipped jobs. Defaults to an in-memory log.
        """
        self.jobs_dir = jobs_dir
        self.error_log = error_log if error_log is not None else AnalysisErrorLog()

    def run(
        self,
        jobs: Iterable[dict[str, Any]],
        workflows: Iterable[dict[str, Any]],
    ) -> ExtractionResult:
        """Process all jobs.

        Args:
            jobs: Raw records from ``jobs.json``.
            workflows: Raw records from ``workflows.json``.

        Returns:
            ExtractionResult with entries in job order.
        """
        job_records = list(jobs)
        workflows_by_id: dict[str, Workflow] = {}
        for record in workflows:
            if not isinstance(record, dict) or not record.get("id"):
                continue
            workflow = Workflow.from_dict(record)
            workflows_by_id.setdefault(workflow.id, workflow)

        result = ExtractionResult(total_jobs=len(job_records))
        last_progress = 0

        logger.info("extraction_started", jobs=len(job_records), workflows=len(workflows_by_id))

        for index, record in enumerate(job_records):
            progress = index * 100 // len(job_records)
            if progress >= last_progress + PROGRESS_STEP_PERCENT:
                logger.info(
                    "extraction_progress",
                    percent=progress,
                    jobs_done=index,
                    jobs_total=len(job_records),
                    entries=len(result.entries),
                )
                last_progress = progress

            if self._process_job(record, workflows_by_id, result):
                result.processed_jobs += 1
            else:
                result.skipped_jobs += 1

        logger.info(
            "extraction_completed",
            processed=result.processed_jobs,
            skipped=result.skipped_jobs,
            entries=len(result.entries),
        )
        return result

    def _process_job(
        self,
        record: dict[str, Any],
        workflows_by_id: dict[str, Workflow],
        result: ExtractionResult,
    ) -> bool:
        """Fold one job into ``result``. Returns False if the job was skipped."""
        try:
            job = Job.from_dict(record)
        except (AttributeError, TypeError) as e:
            self.error_log.log(f"Skipping malformed job record: {e}")
            return False

        if not job.job_number or not job.name:
            self.error_log.log(
                f"Skipping job with missing data - ID: {job.id}, "
                f"Number: {job.job_number}, Name: {job.name}",
                job_id=job.id,
            )
            return False

        filename = job_detail_filename(job.job_number, job.name)
        detail_path = self.jobs_dir / filename
        if not detail_path.exists():
            self.error_log.log(f"Job detail file not found: {filename}", job_id=job.id)
            return False

        try:
            detail = json.loads(detail_path.read_text(encoding="utf-8"))
            if not isinstance(detail, dict):
                raise TypeError(f"expected an object, got {type(detail).__name__}")
            update_test_feature_tally(result.test_features, filename, str(detail.get("status")))

            workflow = workflows_by_id.get(job.workflow_key)
            entries = extract_timeout_entries(detail, job, workflow)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            self.error_log.log(
                f"Failed to process job {job.job_number} ({job.name}): {e}",
                job_id=job.id,
            )
            return False

        result.entries.extend(entries)
        return True
