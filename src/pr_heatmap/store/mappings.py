"""Mapping collection: Jira issue to merged pull request."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError
from pymongo.collection import Collection
from pymongo.database import Database

from pr_heatmap.models import MappingRecord, PullRequestRef
from pr_heatmap.store.mongo import insert_documents

logger = logging.getLogger(__name__)


class MappingStore:
    """Issue to pull request mappings.

    Documents look like
    ``{project, issue_id, repo: {owner, name}, pr_id}``.
    Uniqueness is not enforced here; the backfill stage avoids duplicates by
    skipping issues that already have a mapping.
    """

    def __init__(self, collection: Collection[dict[str, Any]]) -> None:
        self.collection = collection

    @classmethod
    def from_database(cls, db: Database[dict[str, Any]], name: str) -> MappingStore:
        return cls(db[name])

    def get_mapped_issue_ids(self) -> set[int]:
        """Return the ids of every issue that already has a mapping."""
        cursor = self.collection.find({}, {"_id": 0, "issue_id": 1})
        return {doc["issue_id"] for doc in cursor if "issue_id" in doc}

    def list_pr_refs(self) -> list[PullRequestRef]:
        """Return distinct (repo, PR) pairs in first-seen order.

        Documents without a usable repo or PR id are logged and skipped.
        """
        cursor = self.collection.find({}, {"_id": 0, "repo": 1, "pr_id": 1})
        refs: dict[PullRequestRef, None] = {}
        for doc in cursor:
            try:
                ref = PullRequestRef.model_validate(doc)
            except ValidationError:
                logger.warning(f"Skipping malformed mapping document: {doc}")
                continue
            refs.setdefault(ref, None)
        return list(refs)

    def insert(self, records: list[MappingRecord]) -> list[Any]:
        """Insert mapping records in one batch."""
        ids = insert_documents(self.collection, [r.to_document() for r in records])
        logger.info(f"Inserted {len(ids)} mappings into {self.collection.name}")
        return ids

    def count(self) -> int:
        return self.collection.count_documents({})
