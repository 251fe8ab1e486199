"""On-disk layout of fetched data and analysis results."""

from __future__ import annotations

import json
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from stopwatch.logging import get_logger

logger = get_logger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_-]")

RETRY_FILENAME = "_retry.json"


def sanitize_job_name(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_-]`` with ``_``."""
    return _UNSAFE_NAME_CHARS.sub("_", name)


def job_detail_filename(job_number: int | str, name: str) -> str:
    """Filename of a job detail record, e.g. ``1234-build_and_test.json``."""
    return f"{job_number}-{sanitize_job_name(name)}.json"


@dataclass(frozen=True)
class OutputLayout:
    """Paths under the outputs directory."""

    root: Path

    @property
    def pipelines_path(self) -> Path:
        return self.root / "pipelines.json"

    @property
    def workflows_path(self) -> Path:
        return self.root / "workflows.json"

    @property
    def jobs_path(self) -> Path:
        return self.root / "jobs.json"

    @property
    def jobs_dir(self) -> Path:
        return self.root / "jobs"

    @property
    def retry_path(self) -> Path:
        return self.jobs_dir / RETRY_FILENAME

    @property
    def analysis_dir(self) -> Path:
        return self.root / "analysis"

    @property
    def timedout_path(self) -> Path:
        return self.analysis_dir / "timedout.json"

    @property
    def tree_yaml_path(self) -> Path:
        return self.analysis_dir / "timedout-tree.yaml"

    @property
    def report_path(self) -> Path:
        return self.analysis_dir / "timeout-report.json"

    @property
    def error_log_path(self) -> Path:
        return self.analysis_dir / "analysis.log"

    def job_detail_path(self, job_number: int | str, name: str) -> Path:
        return self.jobs_dir / job_detail_filename(job_number, name)

    def ensure_dirs(self) -> None:
        """Create the outputs, jobs and analysis directories."""
        for directory in (self.root, self.jobs_dir, self.analysis_dir):
            directory.mkdir(parents=True, exist_ok=True)


def write_json(path: Path, data: Any) -> None:
    """Write ``data`` as indented JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def read_json(path: Path) -> Any:
    """Read a JSON file. Raises OSError or json.JSONDecodeError."""
    return json.loads(path.read_text(encoding="utf-8"))


def clear_directory(directory: Path) -> int:
    """Delete everything inside ``directory``; return the number of items removed.

    A missing directory counts as already empty.
    """
    if not directory.exists():
        return 0

    removed = 0
    for item in directory.iterdir():
        if item.is_dir() and not item.is_symlink():
            shutil.rmtree(item)
        else:
            item.unlink()
        removed += 1

    logger.info("directory_cleared", directory=str(directory), removed=removed)
    return removed
