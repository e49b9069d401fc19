"""GitHub REST client for pull request file listings."""

from __future__ import annotations

import logging
from typing import Any

import requests
from pydantic import ValidationError

from pr_heatmap.config import HeatmapConfig
from pr_heatmap.exceptions import UpstreamError
from pr_heatmap.http import ApiClient
from pr_heatmap.models import FileDiff, RepoRef

logger = logging.getLogger(__name__)

FILES_PER_PAGE = 100


class GitHubClient(ApiClient):
    """Token-authenticated client for the GitHub pulls API."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        session: requests.Session | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(base_url, session=session, **kwargs)
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
            }
        )

    @classmethod
    def from_config(cls, config: HeatmapConfig) -> GitHubClient:
        return cls(
            token=config.github_token,
            base_url=config.github_api_url,
            timeout=config.request_timeout,
            max_attempts=config.max_attempts,
            retry_max_wait=config.retry_max_wait,
        )

    def list_pull_request_files(self, repo: RepoRef, pr_id: int) -> list[FileDiff]:
        """Return the changed files of a pull request in GitHub's order.

        Pages through ``/pulls/{pr_id}/files`` 100 entries at a time until a
        short page is returned.

        Raises:
            UpstreamError: On transport failure or an unexpected body
        """
        path = f"/repos/{repo.owner}/{repo.name}/pulls/{pr_id}/files"
        files: list[FileDiff] = []
        page = 1

        while True:
            data = self.get_json(path, params={"per_page": FILES_PER_PAGE, "page": page})
            if not isinstance(data, list):
                raise UpstreamError(f"File listing for {repo}#{pr_id} is not a list")

            try:
                files.extend(FileDiff.from_github(entry) for entry in data)
            except (KeyError, TypeError, ValidationError) as e:
                raise UpstreamError(
                    f"File listing for {repo}#{pr_id} is malformed: {e}"
                ) from e

            if len(data) < FILES_PER_PAGE:
                break
            page += 1

        logger.debug(f"{repo}#{pr_id}: {len(files)} changed files")
        return files
