"""Classification of timed-out action log messages.

A raw console message is reduced to a short ordered signature: the error
title followed by the deepest distinguishing detail lines. ANSI color
codes are stripped, non-deterministic seeds are normalized, and summary
lines superseded by a later, equally or less indented line are pruned.
"""

from __future__ import annotations

import re
from typing import Any

from stopwatch.core.models import ClassificationResult

LINE_DELIMITER = "\r\n"

ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[\d+m")
_LEADING_WHITESPACE = re.compile(r"^\s*")
_LETTER_START = re.compile(r"^[a-zA-Z]")
_SEED_PATTERN = re.compile(r"Randomized with seed \d+")

SEED_MARKER = "Randomized with seed"

# Lines indented less than this are top-level and never supersede earlier lines.
MIN_NESTED_INDENT = 2


def strip_ansi_codes(text: str) -> str:
    """Remove ``ESC[<digits>m`` color sequences."""
    return ANSI_ESCAPE_PATTERN.sub("", text)


def has_ansi_codes(text: str) -> bool:
    return ANSI_ESCAPE_PATTERN.search(text) is not None


def count_leading_spaces(text: str) -> int:
    """Count leading whitespace characters."""
    match = _LEADING_WHITESPACE.match(text)
    return len(match.group(0)) if match else 0


def normalize_line(line: str) -> str:
    """Drop the random seed from RSpec-style "Randomized with seed N" lines."""
    if SEED_MARKER in line:
        return _SEED_PATTERN.sub(SEED_MARKER, line)
    return line


def prune_classification(lines: list[str]) -> list[str]:
    """Remove intermediate lines superseded by a later nested line.

    Element 0 is always kept. Element ``i`` is dropped when some later
    element is indented by at least ``MIN_NESTED_INDENT`` and no more than
    element ``i``. Kept lines are seed-normalized.

    Args:
        lines: ANSI-stripped lines, anchor first.

    Returns:
        Pruned, normalized lines.
    """
    if not lines:
        return []

    indents = [count_leading_spaces(line) for line in lines]
    result = [normalize_line(lines[0])]

    for i in range(1, len(lines)):
        current = indents[i]
        superseded = any(MIN_NESTED_INDENT <= later <= current for later in indents[i + 1 :])
        if not superseded:
            result.append(normalize_line(lines[i]))

    return result


def find_anchor_index(lines: list[str]) -> int | None:
    """Index of the last line that starts with a letter once ANSI is stripped."""
    for i in range(len(lines) - 1, -1, -1):
        clean = strip_ansi_codes(lines[i])
        if clean and _LETTER_START.match(clean):
            return i
    return None


def classify(message: str) -> ClassificationResult:
    """Reduce a raw log message to its classification signature.

    Only CRLF separates lines; a bare ``\\n`` stays inside its line.

    Args:
        message: Raw, possibly ANSI-colored message.

    Returns:
        ClassificationResult, empty on both fields when no line is
        letter-anchored.
    """
    lines = message.split(LINE_DELIMITER)
    anchor = find_anchor_index(lines)
    if anchor is None:
        return ClassificationResult()

    unprocessed = [line for line in lines[anchor:] if line != ""]
    stripped = [strip_ansi_codes(line) for line in unprocessed]

    return ClassificationResult(
        unprocessed=unprocessed,
        processed=prune_classification(stripped),
    )


def second_to_last_message(outputs: Any) -> str | None:
    """Message of the second-to-last action output entry.

    The last entry is a trailing status footer, so the second-to-last
    carries the text that was printed when the action timed out.
    """
    if not isinstance(outputs, list) or len(outputs) < 2:
        return None
    entry = outputs[-2]
    if not isinstance(entry, dict):
        return None
    return entry.get("message")
