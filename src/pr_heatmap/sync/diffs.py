"""Diff enrichment stage: collect file statistics for mapped pull requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pr_heatmap.exceptions import HeatmapError
from pr_heatmap.github.client import GitHubClient
from pr_heatmap.models import DiffRecord, PullRequestRef
from pr_heatmap.store.diffs import DiffStore
from pr_heatmap.store.mappings import MappingStore

logger = logging.getLogger(__name__)


@dataclass
class DiffSyncResult:
    """Result of a diff enrichment run."""

    prs_pending: int = 0
    prs_processed: int = 0
    files_collected: int = 0
    records: list[DiffRecord] = field(default_factory=list)
    inserted_ids: list[Any] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0


def find_pending_prs(
    mappings: MappingStore, diffs: DiffStore
) -> list[PullRequestRef]:
    """Anti-join: mapped pull requests that have no diff record yet.

    Records are matched on the (repo, pr_id) pair rather than on pr_id
    alone, since PR numbers repeat across repositories. A PR mapped from
    several issues is returned once.
    """
    collected = diffs.list_pr_refs()
    return [ref for ref in mappings.list_pr_refs() if ref not in collected]


class DiffEnrichmentEngine:
    """Fetches changed files for every mapped PR missing from the diff store."""

    def __init__(
        self,
        github: GitHubClient,
        mappings: MappingStore,
        diffs: DiffStore,
        fail_fast: bool = False,
    ) -> None:
        """Initialize the engine.

        Args:
            github: Client for pull request file listings
            mappings: Store holding issue to PR mappings
            diffs: Store receiving diff records
            fail_fast: Abort the whole stage on the first failed PR instead
                       of skipping it
        """
        self.github = github
        self.mappings = mappings
        self.diffs = diffs
        self.fail_fast = fail_fast

    def run(self) -> DiffSyncResult:
        """Run one enrichment pass.

        Nothing is written when no PR is pending or none could be fetched.
        """
        start_time = datetime.utcnow()
        result = DiffSyncResult()

        pending = find_pending_prs(self.mappings, self.diffs)
        result.prs_pending = len(pending)
        logger.info(f"New PRs found: {len(pending)}")
        if not pending:
            return result

        for ref in pending:
            try:
                files = self.github.list_pull_request_files(ref.repo, ref.pr_id)
            except HeatmapError as e:
                if self.fail_fast:
                    raise
                error_msg = f"Failed to collect diffs for {ref}: {e}"
                logger.error(error_msg)
                result.errors.append(error_msg)
                continue

            result.records.append(DiffRecord(repo=ref.repo, pr_id=ref.pr_id, diffs=files))
            result.prs_processed += 1
            result.files_collected += len(files)

        if result.records:
            result.inserted_ids = self.diffs.insert(result.records)
        else:
            logger.info("No new PR changes")

        result.duration_seconds = (datetime.utcnow() - start_time).total_seconds()
        logger.info(
            f"Diff enrichment complete: {result.prs_processed}/{result.prs_pending} PRs, "
            f"{result.files_collected} files in {result.duration_seconds:.1f}s"
        )
        return result
