"""Status tally for "test features" jobs."""

from __future__ import annotations

import re

from stopwatch.core.models import StatusTally, TestFeatureTally

TEST_FEATURES_PATTERN = re.compile(r".*test_features\.json$")
_JOB_NUMBER_PREFIX = re.compile(r"^\d+-")


def get_base_filename(filename: str) -> str:
    """Strip the ``<job_number>-`` prefix from a job detail filename."""
    return _JOB_NUMBER_PREFIX.sub("", filename, count=1)


def is_test_features_file(filename: str) -> bool:
    return TEST_FEATURES_PATTERN.match(filename) is not None


def update_test_feature_tally(tally: TestFeatureTally, filename: str, status: str) -> bool:
    """Count one job detail towards its base filename.

    Returns:
        True if the file is a test-features job and was counted.
    """
    if not is_test_features_file(filename):
        return False
    tally.setdefault(get_base_filename(filename), StatusTally()).add(status)
    return True


def tally_to_dict(tally: TestFeatureTally) -> dict[str, dict[str, int]]:
    return {name: counts.to_dict() for name, counts in tally.items()}
