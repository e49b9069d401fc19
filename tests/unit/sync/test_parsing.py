"""Tests for pull request reference parsing."""

import pytest

from pr_heatmap.exceptions import DataQualityError
from pr_heatmap.models import RepoRef
from pr_heatmap.sync.parsing import parse_pr_id, parse_repo_full_name, parse_repo_ref


class TestParseRepoRef:
    """Tests for parse_repo_ref."""

    def test_pull_request_url(self):
        """Test the canonical PR URL."""
        assert parse_repo_ref("https://github.com/acme/widgets/pull/42") == RepoRef(
            owner="acme", name="widgets"
        )

    def test_url_with_suffix(self):
        """Test trailing path segments and fragments are tolerated."""
        assert parse_repo_ref("https://github.com/acme/widgets/pull/42/files").name == "widgets"
        assert parse_repo_ref("https://github.com/acme/widgets/pull/42#top").owner == "acme"

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "https://gitlab.com/acme/widgets/merge_requests/1",
            "https://github.com/acme/widgets",
            "https://github.com/acme/pull/42",
            "https://github.com/acme/widgets/issues/42",
            "https://github.com/acme/widgets/pull/abc",
        ],
    )
    def test_malformed_urls(self, url):
        """Test malformed URLs raise a data-quality error."""
        with pytest.raises(DataQualityError) as exc_info:
            parse_repo_ref(url)
        assert exc_info.value.value == url


class TestParsePrId:
    """Tests for parse_pr_id."""

    def test_prefixed_id(self):
        """Test the single-character prefix is stripped."""
        assert parse_pr_id("P123") == 123
        assert parse_pr_id("#7") == 7

    @pytest.mark.parametrize("tracker_id", ["", "P", "123x", "Pabc", "P-5", "P0"])
    def test_invalid_ids(self, tracker_id):
        """Test ids without a positive numeric suffix are rejected."""
        with pytest.raises(DataQualityError):
            parse_pr_id(tracker_id)


class TestParseRepoFullName:
    """Tests for parse_repo_full_name."""

    def test_owner_name(self):
        """Test owner/name parsing."""
        assert parse_repo_full_name("acme/widgets") == RepoRef(owner="acme", name="widgets")

    @pytest.mark.parametrize("value", ["acme", "acme/", "/widgets", "a/b/c"])
    def test_invalid(self, value):
        """Test anything but two non-empty parts is rejected."""
        with pytest.raises(DataQualityError):
            parse_repo_full_name(value)
