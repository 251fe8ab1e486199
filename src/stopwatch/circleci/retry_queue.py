"""Queue of job details that could not be fetched (``jobs/_retry.json``)."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

from stopwatch.storage.outputs import write_json


def _utcnow_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


@dataclass
class RetryEntry:
    """A job detail waiting to be re-fetched."""

    id: int
    job_name: str
    retry_count: int = 0
    last_attempt: str | None = None


class RetryQueue:
    """File-backed retry queue.

    Every mutation is saved immediately so an interrupted fetch keeps its
    queue.
    """

    def __init__(self, path: Path | None = None):
        """Initialize queue.

        Args:
            path: Path to the queue JSON file. If None, uses in-memory only.
        """
        self._path = path
        self._entries: dict[int, RetryEntry] = {}
        self._load()

    def _load(self) -> None:
        """Load queue from disk; a missing or corrupt file means an empty queue."""
        if not self._path or not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            for raw in data.get("entries", []):
                entry = RetryEntry(
                    id=int(raw["id"]),
                    job_name=raw.get("job_name") or "unknown",
                    retry_count=int(raw.get("retry_count", 0)),
                    last_attempt=raw.get("last_attempt"),
                )
                self._entries[entry.id] = entry
        except (json.JSONDecodeError, OSError, KeyError, TypeError, ValueError, AttributeError):
            self._entries = {}

    def save(self) -> None:
        if not self._path:
            return
        write_json(self._path, {"entries": [asdict(entry) for entry in self._entries.values()]})

    @property
    def entries(self) -> list[RetryEntry]:
        return list(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, job_number: int) -> bool:
        return job_number in self._entries

    def add(self, job_number: int, job_name: str) -> RetryEntry:
        """Queue a job, or record another failed attempt for a queued one."""
        entry = self._entries.get(job_number)
        if entry is None:
            entry = self._entries[job_number] = RetryEntry(id=job_number, job_name=job_name)
        entry.retry_count += 1
        entry.last_attempt = _utcnow_iso()
        self.save()
        return entry

    def remove(self, job_number: int) -> None:
        """Drop a job from the queue. No-op if it is not queued."""
        if self._entries.pop(job_number, None) is not None:
            self.save()
