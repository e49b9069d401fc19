"""Jira REST client for bug search and linked pull requests."""

from __future__ import annotations

import logging
from typing import Any

import requests
from pydantic import ValidationError
from requests.auth import HTTPBasicAuth

from pr_heatmap.config import HeatmapConfig
from pr_heatmap.exceptions import NotFoundError, UpstreamError
from pr_heatmap.http import ApiClient
from pr_heatmap.models import Issue, LinkedPR

logger = logging.getLogger(__name__)

SEARCH_PATH = "/rest/api/latest/search"
DEV_STATUS_PATH = "/rest/dev-status/latest/issue/detail"


class JiraClient(ApiClient):
    """Client for the Jira search and dev-status endpoints."""

    def __init__(
        self,
        host: str,
        email: str,
        token: str,
        page_size: int = 100,
        session: requests.Session | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the Jira client.

        Args:
            host: Jira base URL, e.g. https://example.atlassian.net
            email: Account email used for basic auth
            token: API token used for basic auth
            page_size: maxResults requested per search page
            session: Optional pre-built session
            **kwargs: Passed through to ApiClient (timeout, retry settings)
        """
        super().__init__(host, session=session, **kwargs)
        self.page_size = page_size
        self.session.auth = HTTPBasicAuth(email, token)
        self.session.headers.update(
            {"Accept": "application/json", "Content-Type": "application/json"}
        )

    @classmethod
    def from_config(cls, config: HeatmapConfig) -> JiraClient:
        return cls(
            host=config.jira_host,
            email=config.jira_email,
            token=config.jira_token,
            page_size=config.jira_page_size,
            timeout=config.request_timeout,
            max_attempts=config.max_attempts,
            retry_max_wait=config.retry_max_wait,
        )

    def search_bugs(self, project: str) -> list[Issue]:
        """Return every bug in a project.

        Pages through the search API until ``startAt + len(issues)`` reaches
        the reported total.

        Raises:
            UpstreamError: On transport failure or an unexpected body, or when a
                page comes back empty before the total is reached
        """
        jql = f"project = {project} and type = Bug"
        issues: list[Issue] = []
        start_at = 0

        while True:
            params = {
                "jql": jql,
                "fields": "id,key",
                "maxResults": self.page_size,
                "startAt": start_at,
            }
            data = self.get_json(SEARCH_PATH, params=params)
            if not isinstance(data, dict):
                raise UpstreamError("Jira search returned an unexpected body")

            try:
                page = [Issue.model_validate(raw) for raw in data.get("issues") or []]
                total = int(data.get("total", 0))
            except (ValidationError, TypeError, ValueError) as e:
                raise UpstreamError(f"Jira search returned malformed issues: {e}") from e

            issues.extend(page)
            logger.debug(
                f"Fetched {len(page)} issues for {project} "
                f"(startAt={start_at}, total={total})"
            )

            if not page:
                if start_at < total:
                    raise UpstreamError(
                        f"Jira search returned an empty page at startAt={start_at} "
                        f"of {total} issues"
                    )
                break
            if start_at + len(page) >= total:
                break
            start_at += len(page)

        logger.info(f"Found {len(issues)} bugs in project {project}")
        return issues

    def get_dev_status(self, issue_id: int) -> list[LinkedPR]:
        """Return the GitHub pull requests Jira links to an issue.

        Raises:
            NotFoundError: If the issue has no linked pull requests
            UpstreamError: On transport failure or an unexpected body
        """
        params = {
            "issueId": str(issue_id),
            "applicationType": "GitHub",
            "dataType": "pullrequest",
        }
        data = self.get_json(DEV_STATUS_PATH, params=params)
        if not isinstance(data, dict):
            raise UpstreamError(f"Dev status for issue {issue_id} has an unexpected body")

        prs: list[LinkedPR] = []
        try:
            for detail in data.get("detail") or []:
                for raw in detail.get("pullRequests") or []:
                    prs.append(LinkedPR.model_validate(raw))
        except (ValidationError, AttributeError) as e:
            raise UpstreamError(
                f"Dev status for issue {issue_id} is malformed: {e}"
            ) from e

        if not prs:
            raise NotFoundError(f"No linked pull requests for issue {issue_id}")
        return prs
