"""Tests for the test-features status tally."""

from stopwatch.analysis.test_features import (
    get_base_filename,
    is_test_features_file,
    tally_to_dict,
    update_test_feature_tally,
)


class TestGetBaseFilename:
    """Test suite for get_base_filename()."""

    def test_strips_job_number(self):
        """The leading ``<number>-`` prefix should be removed."""
        assert get_base_filename("1234-test_features.json") == "test_features.json"

    def test_strips_only_first_prefix(self):
        """Only one prefix is removed."""
        assert get_base_filename("1-2-test_features.json") == "2-test_features.json"

    def test_without_prefix(self):
        """Names without a number prefix are unchanged."""
        assert get_base_filename("test_features.json") == "test_features.json"


class TestUpdateTestFeatureTally:
    """Test suite for update_test_feature_tally()."""

    def test_matching_files_are_counted(self):
        """Matching files count towards their base name by status."""
        # Given
        tally = {}

        # When
        update_test_feature_tally(tally, "1-rspec_test_features.json", "success")
        update_test_feature_tally(tally, "2-rspec_test_features.json", "timedout")
        update_test_feature_tally(tally, "3-rspec_test_features.json", "success")

        # Then
        assert tally_to_dict(tally) == {
            "rspec_test_features.json": {"total": 3, "success": 2, "timedout": 1}
        }

    def test_other_files_are_ignored(self):
        """Files not ending in test_features.json are not counted."""
        tally = {}

        counted = update_test_feature_tally(tally, "1-build.json", "success")

        assert counted is False
        assert tally == {}

    def test_pattern_is_anchored_at_end(self):
        """test_features must be the end of the filename."""
        assert is_test_features_file("5-test_features.json")
        assert not is_test_features_file("5-test_features.json.bak")
