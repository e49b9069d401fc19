"""Parsing of pull request references reported by Jira."""

from __future__ import annotations

import re

from pydantic import ValidationError

from pr_heatmap.exceptions import DataQualityError
from pr_heatmap.models import RepoRef

GITHUB_HOST_SEGMENT = "github.com/"

_PULL_PATH_RE = re.compile(r"^(?P<owner>[^/]+)/(?P<name>[^/]+)/pull/(?P<number>\d+)(?:[/?#].*)?$")


def parse_repo_ref(url: str) -> RepoRef:
    """Extract the repository from a pull request web URL.

    ``https://github.com/acme/widgets/pull/42`` -> ``RepoRef(owner="acme", name="widgets")``

    Raises:
        DataQualityError: If the URL is not a GitHub pull request URL
    """
    if not url or GITHUB_HOST_SEGMENT not in url:
        raise DataQualityError(f"Not a GitHub pull request URL: {url!r}")

    path = url.split(GITHUB_HOST_SEGMENT, 1)[1]
    match = _PULL_PATH_RE.match(path)
    if match is None:
        raise DataQualityError(
            f"Expected .../github.com/owner/repo/pull/number, got {url!r}"
        )
    return RepoRef(owner=match.group("owner"), name=match.group("name"))


def parse_pr_id(tracker_id: str) -> int:
    """Convert a dev-status pull request id to the GitHub PR number.

    Jira prefixes the number with a single character, e.g. ``"P123"`` -> ``123``.

    Raises:
        DataQualityError: If there is no numeric part after the prefix
    """
    suffix = (tracker_id or "")[1:]
    if not suffix.isdigit() or not suffix.isascii():
        raise DataQualityError(
            f"Pull request id has no numeric suffix: {tracker_id!r}"
        )
    number = int(suffix)
    if number <= 0:
        raise DataQualityError(
            f"Pull request id must be positive: {tracker_id!r}"
        )
    return number


def parse_repo_full_name(full_name: str) -> RepoRef:
    """Parse ``owner/name`` into a RepoRef.

    Raises:
        DataQualityError: If the value is not exactly two non-empty parts
    """
    parts = full_name.strip().split("/")
    if len(parts) != 2:
        raise DataQualityError(f"Expected owner/name, got {full_name!r}")
    try:
        return RepoRef(owner=parts[0], name=parts[1])
    except ValidationError as e:
        raise DataQualityError(f"Expected owner/name, got {full_name!r}") from e
