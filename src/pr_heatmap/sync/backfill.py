"""Backfill stage: map Jira bugs to the merged pull requests that fixed them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pr_heatmap.exceptions import DataQualityError, HeatmapError, NotFoundError
from pr_heatmap.jira.client import JiraClient
from pr_heatmap.models import Issue, LinkedPR, MappingRecord
from pr_heatmap.store.mappings import MappingStore
from pr_heatmap.sync.parsing import parse_pr_id, parse_repo_ref

logger = logging.getLogger(__name__)


@dataclass
class BackfillResult:
    """Result of a backfill run."""

    issues_found: int = 0
    issues_already_mapped: int = 0
    issues_checked: int = 0
    issues_without_prs: int = 0
    prs_not_merged: int = 0
    mappings: list[MappingRecord] = field(default_factory=list)
    inserted_ids: list[Any] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    data_quality_errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def mappings_created(self) -> int:
        return len(self.inserted_ids)


class BackfillEngine:
    """Finds merged pull requests for bugs that have no mapping yet.

    De-duplication is per issue: once any mapping exists for an issue, the
    issue is never looked up again, so a PR merged for it later is missed.
    """

    def __init__(
        self,
        jira: JiraClient,
        mappings: MappingStore,
        project: str,
    ) -> None:
        """Initialize the engine.

        Args:
            jira: Client for bug search and dev status
            mappings: Store holding existing issue to PR mappings
            project: Jira project key to backfill
        """
        self.jira = jira
        self.mappings = mappings
        self.project = project

    def run(self) -> BackfillResult:
        """Run one backfill pass.

        Errors from the issue search and from the final batch write propagate.
        Dev-status failures and unparseable pull requests only affect the
        issue they belong to.
        """
        start_time = datetime.utcnow()
        result = BackfillResult()

        already_mapped = self.mappings.get_mapped_issue_ids()
        logger.info(f"{len(already_mapped)} issues already mapped")

        issues = self.jira.search_bugs(self.project)
        result.issues_found = len(issues)

        seen: set[int] = set()
        for issue in issues:
            if issue.id in already_mapped:
                result.issues_already_mapped += 1
                continue
            if issue.id in seen:
                continue
            seen.add(issue.id)

            linked = self._fetch_linked_prs(issue, result)
            if linked is None:
                continue
            result.mappings.extend(self._build_mappings(issue, linked, result))

        if not result.mappings:
            logger.info("No new mappings found")
        else:
            result.inserted_ids = self.mappings.insert(result.mappings)

        result.duration_seconds = (datetime.utcnow() - start_time).total_seconds()
        logger.info(
            f"Backfill complete for {self.project}: {result.mappings_created} mappings "
            f"from {result.issues_checked} checked issues "
            f"in {result.duration_seconds:.1f}s"
        )
        return result

    def _fetch_linked_prs(
        self, issue: Issue, result: BackfillResult
    ) -> list[LinkedPR] | None:
        result.issues_checked += 1
        try:
            return self.jira.get_dev_status(issue.id)
        except NotFoundError:
            logger.debug(f"{issue.key}: no linked pull requests")
            result.issues_without_prs += 1
        except HeatmapError as e:
            error_msg = f"Dev status lookup failed for {issue.key} ({issue.id}): {e}"
            logger.error(error_msg)
            result.errors.append(error_msg)
        return None

    def _build_mappings(
        self, issue: Issue, linked: list[LinkedPR], result: BackfillResult
    ) -> list[MappingRecord]:
        records: list[MappingRecord] = []
        for pr in linked:
            if not pr.is_merged:
                result.prs_not_merged += 1
                continue
            try:
                repo = parse_repo_ref(pr.url)
                pr_id = parse_pr_id(pr.id)
            except DataQualityError as e:
                error_msg = f"{issue.key}: skipping pull request {pr.id} ({pr.url}): {e}"
                logger.warning(error_msg)
                result.data_quality_errors.append(error_msg)
                continue
            records.append(
                MappingRecord(
                    project=self.project,
                    issue_id=issue.id,
                    repo=repo,
                    pr_id=pr_id,
                )
            )
        return records
