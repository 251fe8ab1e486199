"""Pytest configuration and fixtures."""

from __future__ import annotations

import io
import os
from typing import TYPE_CHECKING

import pytest
import structlog

from stopwatch.config import get_settings
from stopwatch.logging import configure_logging
from stopwatch.storage import OutputLayout

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Clear cached settings and any STOPWATCH_* variables from the environment."""
    for key in list(os.environ):
        if key.startswith("STOPWATCH_"):
            monkeypatch.delenv(key)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Drop logging configuration left behind by a test (e.g. a CLI run)."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def log_stream() -> io.StringIO:
    """Route structlog output to an in-memory stream."""
    stream = io.StringIO()
    configure_logging(log_level="DEBUG", stream=stream)
    return stream


@pytest.fixture
def layout(tmp_path: Path) -> OutputLayout:
    """Output layout rooted in a temporary directory."""
    return OutputLayout(tmp_path / "outputs")
