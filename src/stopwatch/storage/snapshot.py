"""Timeout analysis snapshot (``analysis/timedout.json``).

The snapshot is written in two phases: first the entries alone, then,
after reading them back and building the tree, entries plus tree. A crash
between the phases leaves a valid entries-only document behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from stopwatch.analysis.tree import Tree, build_tree, tree_from_dict, tree_to_dict
from stopwatch.core.models import TimeoutEntry
from stopwatch.storage.outputs import read_json, write_json


@dataclass
class TimeoutSnapshot:
    """Contents of ``timedout.json``."""

    entries: list[TimeoutEntry] = field(default_factory=list)
    tree: Tree | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"entries": [entry.to_dict() for entry in self.entries]}
        if self.tree is not None:
            data["tree"] = tree_to_dict(self.tree)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimeoutSnapshot:
        tree_data = data.get("tree")
        return cls(
            entries=[TimeoutEntry.from_dict(item) for item in data.get("entries", [])],
            tree=tree_from_dict(tree_data) if tree_data is not None else None,
        )


def load_snapshot(path: Path) -> TimeoutSnapshot:
    """Read a snapshot. Raises OSError or ValueError on unreadable files."""
    return TimeoutSnapshot.from_dict(read_json(path))


def save_snapshot(path: Path, entries: list[TimeoutEntry]) -> TimeoutSnapshot:
    """Two-phase save: write entries, read back, build tree, overwrite.

    Returns:
        The snapshot as written in the second phase.
    """
    write_json(path, TimeoutSnapshot(entries=entries).to_dict())

    saved = load_snapshot(path)
    saved.tree = build_tree(saved.entries)

    write_json(path, saved.to_dict())
    return saved
