"""Diff collection: per-file change statistics for each pull request."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError
from pymongo.collection import Collection
from pymongo.database import Database

from pr_heatmap.models import DiffRecord, FileHotspot, PullRequestRef, RepoRef
from pr_heatmap.store.mongo import insert_documents

logger = logging.getLogger(__name__)


class DiffStore:
    """Diff statistics keyed by (repo, pr_id).

    Documents look like
    ``{repo: {owner, name}, pr_id, diffs: [{file, status, additions, deletions, changes}]}``.
    """

    def __init__(self, collection: Collection[dict[str, Any]]) -> None:
        self.collection = collection

    @classmethod
    def from_database(cls, db: Database[dict[str, Any]], name: str) -> DiffStore:
        return cls(db[name])

    def list_pr_refs(self) -> set[PullRequestRef]:
        """Return the (repo, PR) pairs that already have diffs collected."""
        cursor = self.collection.find({}, {"_id": 0, "repo": 1, "pr_id": 1})
        refs: set[PullRequestRef] = set()
        for doc in cursor:
            try:
                refs.add(PullRequestRef.model_validate(doc))
            except ValidationError:
                logger.warning(f"Skipping malformed diff document: {doc}")
        return refs

    def insert(self, records: list[DiffRecord]) -> list[Any]:
        """Insert diff records in one batch."""
        ids = insert_documents(self.collection, [r.to_document() for r in records])
        logger.info(f"Inserted {len(ids)} diff records into {self.collection.name}")
        return ids

    def count(self) -> int:
        return self.collection.count_documents({})

    def file_hotspots(
        self, limit: int = 20, repo: RepoRef | None = None
    ) -> list[FileHotspot]:
        """Rank files by how many bug-fixing pull requests touched them.

        Args:
            limit: Maximum number of files to return
            repo: Restrict the ranking to one repository

        Returns:
            Hotspots sorted by PR count, then total changes, descending
        """
        pipeline: list[dict[str, Any]] = []
        if repo is not None:
            pipeline.append(
                {"$match": {"repo.owner": repo.owner, "repo.name": repo.name}}
            )
        pipeline += [
            {"$unwind": "$diffs"},
            {
                "$group": {
                    "_id": {"repo": "$repo", "file": "$diffs.file"},
                    "prs": {"$addToSet": "$pr_id"},
                    "additions": {"$sum": "$diffs.additions"},
                    "deletions": {"$sum": "$diffs.deletions"},
                    "changes": {"$sum": "$diffs.changes"},
                }
            },
            {
                "$project": {
                    "_id": 0,
                    "repo": "$_id.repo",
                    "file": "$_id.file",
                    "pr_count": {"$size": "$prs"},
                    "additions": 1,
                    "deletions": 1,
                    "changes": 1,
                }
            },
            {"$sort": {"pr_count": -1, "changes": -1, "file": 1}},
            {"$limit": limit},
        ]
        return [FileHotspot.model_validate(doc) for doc in self.collection.aggregate(pipeline)]
