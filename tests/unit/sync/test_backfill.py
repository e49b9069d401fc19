"""Tests for the backfill stage."""

from unittest.mock import MagicMock

import pytest

from pr_heatmap.exceptions import NotFoundError, UpstreamError
from pr_heatmap.models import Issue, LinkedPR, MappingRecord, RepoRef
from pr_heatmap.sync.backfill import BackfillEngine, BackfillResult

WIDGETS = RepoRef(owner="acme", name="widgets")


def _pr(number, status="MERGED", repo="acme/widgets"):
    return LinkedPR(id=f"P{number}", status=status, url=f"https://github.com/{repo}/pull/{number}")


class FakeMappingStore:
    """In-memory stand-in for MappingStore."""

    def __init__(self, docs=None):
        self.docs = list(docs or [])
        self.insert_calls = 0

    def get_mapped_issue_ids(self):
        return {d.issue_id for d in self.docs}

    def insert(self, records):
        self.insert_calls += 1
        start = len(self.docs)
        self.docs.extend(records)
        return list(range(start, len(self.docs)))


@pytest.fixture
def jira():
    """Mock Jira client."""
    mock = MagicMock()
    mock.search_bugs.return_value = []
    return mock


class TestBackfillResult:
    """Tests for BackfillResult."""

    def test_default_result(self):
        """Test default values."""
        result = BackfillResult()
        assert result.issues_found == 0
        assert result.mappings == []
        assert result.mappings_created == 0
        assert result.errors == []
        assert result.data_quality_errors == []


class TestBackfillEngine:
    """Tests for BackfillEngine."""

    def test_single_merged_pr(self, jira):
        """Test one bug with one merged PR yields one mapping."""
        jira.search_bugs.return_value = [Issue(id=1001, key="BUG-1")]
        jira.get_dev_status.return_value = [
            LinkedPR(id="P55", status="MERGED", url="https://github.com/acme/widgets/pull/55")
        ]
        store = FakeMappingStore()

        result = BackfillEngine(jira, store, project="DEMO").run()

        assert store.docs == [MappingRecord(project="DEMO", issue_id=1001, repo=WIDGETS, pr_id=55)]
        assert result.mappings_created == 1
        assert result.issues_checked == 1
        jira.search_bugs.assert_called_once_with("DEMO")
        jira.get_dev_status.assert_called_once_with(1001)

    def test_only_merged_prs_are_mapped(self, jira):
        """Test non-merged PRs never produce mappings."""
        jira.search_bugs.return_value = [Issue(id=1, key="BUG-1"), Issue(id=2, key="BUG-2")]
        jira.get_dev_status.side_effect = [
            [_pr(10), _pr(11, status="OPEN"), _pr(12, status="DECLINED")],
            [_pr(20, status="OPEN"), _pr(21)],
        ]
        store = FakeMappingStore()

        result = BackfillEngine(jira, store, project="DEMO").run()

        assert [(m.issue_id, m.pr_id) for m in store.docs] == [(1, 10), (2, 21)]
        assert result.prs_not_merged == 3

    def test_already_mapped_issues_are_skipped(self, jira):
        """Test issues with an existing mapping are not looked up."""
        existing = MappingRecord(project="DEMO", issue_id=1, repo=WIDGETS, pr_id=10)
        jira.search_bugs.return_value = [Issue(id=1, key="BUG-1"), Issue(id=2, key="BUG-2")]
        jira.get_dev_status.return_value = [_pr(20)]
        store = FakeMappingStore([existing])

        result = BackfillEngine(jira, store, project="DEMO").run()

        jira.get_dev_status.assert_called_once_with(2)
        assert result.issues_already_mapped == 1
        assert result.mappings_created == 1

    def test_second_run_is_idempotent(self, jira):
        """Test a rerun with no new merged PRs writes nothing."""
        jira.search_bugs.return_value = [Issue(id=1001, key="BUG-1")]
        jira.get_dev_status.return_value = [_pr(55)]
        store = FakeMappingStore()
        engine = BackfillEngine(jira, store, project="DEMO")

        engine.run()
        second = engine.run()

        assert len(store.docs) == 1
        assert store.insert_calls == 1
        assert second.mappings_created == 0
        assert jira.get_dev_status.call_count == 1

    def test_later_pr_for_mapped_issue_is_missed(self, jira):
        """Test de-duplication is per issue: a new PR on a mapped issue is not found."""
        jira.search_bugs.return_value = [Issue(id=1001, key="BUG-1")]
        jira.get_dev_status.return_value = [_pr(55)]
        store = FakeMappingStore()
        engine = BackfillEngine(jira, store, project="DEMO")
        engine.run()

        jira.get_dev_status.return_value = [_pr(55), _pr(56)]
        second = engine.run()

        assert second.mappings_created == 0
        assert [m.pr_id for m in store.docs] == [55]

    def test_duplicate_issue_looked_up_once(self, jira):
        """Test an issue listed twice is only queried once per run."""
        jira.search_bugs.return_value = [Issue(id=1, key="BUG-1"), Issue(id=1, key="BUG-1")]
        jira.get_dev_status.return_value = [_pr(5)]
        store = FakeMappingStore()

        BackfillEngine(jira, store, project="DEMO").run()

        jira.get_dev_status.assert_called_once_with(1)
        assert len(store.docs) == 1

    def test_no_linked_prs_is_skipped(self, jira):
        """Test NotFoundError skips the issue without an error."""
        jira.search_bugs.return_value = [Issue(id=1, key="BUG-1"), Issue(id=2, key="BUG-2")]
        jira.get_dev_status.side_effect = [NotFoundError("none"), [_pr(7)]]
        store = FakeMappingStore()

        result = BackfillEngine(jira, store, project="DEMO").run()

        assert result.issues_without_prs == 1
        assert result.errors == []
        assert [m.issue_id for m in store.docs] == [2]

    def test_dev_status_failure_only_affects_its_issue(self, jira):
        """Test other dev-status errors are recorded and the run continues."""
        jira.search_bugs.return_value = [Issue(id=1, key="BUG-1"), Issue(id=2, key="BUG-2")]
        jira.get_dev_status.side_effect = [UpstreamError("HTTP 500"), [_pr(7)]]
        store = FakeMappingStore()

        result = BackfillEngine(jira, store, project="DEMO").run()

        assert len(result.errors) == 1
        assert "BUG-1" in result.errors[0]
        assert [m.issue_id for m in store.docs] == [2]

    def test_malformed_prs_are_skipped(self, jira):
        """Test bad URLs and ids are data-quality errors, not fatal."""
        jira.search_bugs.return_value = [Issue(id=1, key="BUG-1")]
        jira.get_dev_status.return_value = [
            LinkedPR(id="P1", status="MERGED", url="https://example.com/not-github"),
            LinkedPR(id="Pxyz", status="MERGED", url="https://github.com/acme/widgets/pull/2"),
            _pr(3),
        ]
        store = FakeMappingStore()

        result = BackfillEngine(jira, store, project="DEMO").run()

        assert [m.pr_id for m in store.docs] == [3]
        assert len(result.data_quality_errors) == 2
        assert result.errors == []

    def test_no_mappings_skips_write(self, jira):
        """Test nothing is written when no merged PRs were found."""
        jira.search_bugs.return_value = [Issue(id=1, key="BUG-1")]
        jira.get_dev_status.return_value = [_pr(1, status="OPEN")]
        store = FakeMappingStore()

        result = BackfillEngine(jira, store, project="DEMO").run()

        assert store.insert_calls == 0
        assert result.mappings_created == 0

    def test_search_failure_is_fatal(self, jira):
        """Test an issue search error propagates."""
        jira.search_bugs.side_effect = UpstreamError("boom")
        store = FakeMappingStore()

        with pytest.raises(UpstreamError):
            BackfillEngine(jira, store, project="DEMO").run()
        assert store.insert_calls == 0

    def test_all_mappings_in_one_batch(self, jira):
        """Test mappings from many issues are written in a single call."""
        jira.search_bugs.return_value = [Issue(id=i, key=f"BUG-{i}") for i in range(1, 4)]
        jira.get_dev_status.side_effect = [[_pr(10)], [_pr(20), _pr(21)], [_pr(30, repo="acme/gears")]]
        store = FakeMappingStore()

        result = BackfillEngine(jira, store, project="DEMO").run()

        assert store.insert_calls == 1
        assert result.mappings_created == 4
        assert store.docs[-1].repo == RepoRef(owner="acme", name="gears")
