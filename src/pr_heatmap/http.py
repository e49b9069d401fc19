"""Shared HTTP plumbing for the Jira and GitHub clients."""

from __future__ import annotations

import logging
from typing import Any

import requests
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pr_heatmap.exceptions import TransientUpstreamError, UpstreamError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class ApiClient:
    """Thin JSON-over-HTTP client with bounded retries.

    Subclasses set up authentication on ``self.session`` and call
    :meth:`get_json` with a path relative to ``base_url``.
    """

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float = 60.0,
        max_attempts: int = 3,
        retry_max_wait: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Scheme and host, without a trailing slash
            session: Session to reuse. A new one is created if omitted.
            timeout: Socket timeout in seconds for each request
            max_attempts: Total attempts for transient failures
            retry_max_wait: Upper bound in seconds for the backoff between attempts
        """
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_max_wait = retry_max_wait

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception_type(TransientUpstreamError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=0, max=self.retry_max_wait),
            before_sleep=lambda retry_state: logger.warning(
                f"Request retry {retry_state.attempt_number}/{self.max_attempts} "
                f"after {retry_state.outcome.exception() if retry_state.outcome else 'unknown error'}"
            ),
            reraise=True,
        )

    def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET ``base_url + path`` and decode the JSON body.

        Raises:
            TransientUpstreamError: On timeouts, connection errors and
                retryable status codes once all attempts are used up
            UpstreamError: On any other non-2xx status or an undecodable body
        """
        url = f"{self.base_url}{path}"
        for attempt in self._retrying():
            with attempt:
                return self._get_once(url, params)
        raise AssertionError("unreachable")  # pragma: no cover

    def _get_once(self, url: str, params: dict[str, Any] | None) -> Any:
        logger.debug(f"GET {url} params={params}")
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientUpstreamError(f"GET {url} failed: {e}") from e
        except requests.RequestException as e:
            raise UpstreamError(f"GET {url} failed: {e}") from e

        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            raise TransientUpstreamError(
                f"GET {url} returned HTTP {status}", status_code=status
            )
        if not 200 <= status < 300:
            raise UpstreamError(
                f"GET {url} returned HTTP {status}: {response.text[:200]}",
                status_code=status,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                f"GET {url} returned a body that is not JSON", status_code=status
            ) from e
