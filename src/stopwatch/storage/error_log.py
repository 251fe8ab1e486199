"""Append-only error sink for per-record analysis failures."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from stopwatch.logging import get_logger

logger = get_logger(__name__)


class AnalysisErrorLog:
    """Writes ``"<iso timestamp>: <message>"`` lines to ``analysis.log``.

    Every message is also emitted as a structlog warning. ``messages`` keeps
    what was written during this run.
    """

    def __init__(self, path: Path | None = None):
        """Initialize the log.

        Args:
            path: Log file. If None, messages are only kept in memory.
        """
        self._path = path
        self.messages: list[str] = []

    @property
    def path(self) -> Path | None:
        return self._path

    def log(self, message: str, **context: object) -> None:
        """Record one error message."""
        self.messages.append(message)
        logger.warning("analysis_error", message=message, **context)

        if not self._path:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(tz=UTC).isoformat()
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(f"{timestamp}: {message}\n")

    def __len__(self) -> int:
        return len(self.messages)
