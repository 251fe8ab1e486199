"""Flat-file storage of fetched records and analysis results."""

from .error_log import AnalysisErrorLog
from .outputs import (
    OutputLayout,
    clear_directory,
    job_detail_filename,
    read_json,
    sanitize_job_name,
    write_json,
)
from .snapshot import TimeoutSnapshot, load_snapshot, save_snapshot

__all__ = [
    "AnalysisErrorLog",
    "OutputLayout",
    "TimeoutSnapshot",
    "clear_directory",
    "job_detail_filename",
    "load_snapshot",
    "read_json",
    "sanitize_job_name",
    "save_snapshot",
    "write_json",
]
