"""Pydantic models for tracker payloads and stored documents."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

MERGED_STATUS = "MERGED"


class Issue(BaseModel):
    """A Jira bug as returned by the search API."""

    id: int
    key: str


class LinkedPR(BaseModel):
    """A pull request summary from the Jira dev-status endpoint."""

    id: str
    status: str
    url: str

    @property
    def is_merged(self) -> bool:
        return self.status == MERGED_STATUS


class RepoRef(BaseModel):
    """A GitHub repository identified by owner and name."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(min_length=1)
    name: str = Field(min_length=1)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


class PullRequestRef(BaseModel):
    """The (repo, PR number) key shared by mapping and diff documents."""

    model_config = ConfigDict(frozen=True)

    repo: RepoRef
    pr_id: int

    def __str__(self) -> str:
        return f"{self.repo.full_name}#{self.pr_id}"


class MappingRecord(BaseModel):
    """A merged pull request linked to a Jira bug."""

    project: str
    issue_id: int
    repo: RepoRef
    pr_id: int

    def to_document(self) -> dict[str, Any]:
        return self.model_dump()


class FileDiff(BaseModel):
    """Change counts for one file in a pull request."""

    file: str
    status: str
    additions: int = Field(ge=0)
    deletions: int = Field(ge=0)
    changes: int = Field(ge=0)

    @classmethod
    def from_github(cls, entry: dict[str, Any]) -> FileDiff:
        """Build from a GitHub 'list pull request files' entry."""
        return cls(
            file=entry["filename"],
            status=entry["status"],
            additions=entry["additions"],
            deletions=entry["deletions"],
            changes=entry["changes"],
        )


class DiffRecord(BaseModel):
    """Per-file diff statistics collected for one pull request."""

    repo: RepoRef
    pr_id: int
    diffs: list[FileDiff] = Field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump()


class FileHotspot(BaseModel):
    """Aggregated bug-fix activity for a single file."""

    repo: RepoRef
    file: str
    pr_count: int
    additions: int = 0
    deletions: int = 0
    changes: int = 0
