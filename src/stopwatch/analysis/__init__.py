"""Timeout classification, frequency tree, extraction and statistics."""

from .classification import (
    classify,
    count_leading_spaces,
    normalize_line,
    prune_classification,
    second_to_last_message,
    strip_ansi_codes,
)
from .extraction import ExtractionResult, TimeoutExtractor, extract_timeout_entries
from .statistics import (
    TYPE_BREAKDOWN_THRESHOLD,
    ReportStats,
    TimeoutReport,
    average_per_day,
    derive_report,
)
from .test_features import get_base_filename, update_test_feature_tally
from .tree import build_tree, tree_from_dict, tree_to_dict

__all__ = [
    # classification
    "classify",
    "count_leading_spaces",
    "normalize_line",
    "prune_classification",
    "second_to_last_message",
    "strip_ansi_codes",
    # tree
    "build_tree",
    "tree_from_dict",
    "tree_to_dict",
    # test features
    "get_base_filename",
    "update_test_feature_tally",
    # extraction
    "ExtractionResult",
    "TimeoutExtractor",
    "extract_timeout_entries",
    # statistics
    "TYPE_BREAKDOWN_THRESHOLD",
    "ReportStats",
    "TimeoutReport",
    "average_per_day",
    "derive_report",
]
