"""Stopwatch - Timeout classification for CircleCI job logs."""

__version__ = "0.4.0"

from stopwatch.analysis.classification import classify
from stopwatch.analysis.statistics import derive_report
from stopwatch.analysis.tree import build_tree
from stopwatch.core.models import (
    ClassificationResult,
    StatusTally,
    TimeoutEntry,
    TreeNode,
)

__all__ = [
    "ClassificationResult",
    "StatusTally",
    "TimeoutEntry",
    "TreeNode",
    "build_tree",
    "classify",
    "derive_report",
]
