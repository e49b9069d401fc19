"""Error types raised by pr_heatmap."""

from __future__ import annotations


class HeatmapError(Exception):
    """Base class for all pr_heatmap errors."""


class ConfigError(HeatmapError):
    """Configuration is missing, unreadable or malformed."""


class UpstreamError(HeatmapError):
    """A Jira or GitHub request failed or returned an unusable body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientUpstreamError(UpstreamError):
    """An upstream failure worth retrying (timeouts, 429, 5xx)."""


class NotFoundError(HeatmapError):
    """The issue tracker reports no linked pull requests for an issue."""


class DataQualityError(HeatmapError):
    """Upstream data does not have the expected shape."""


class StoreError(HeatmapError):
    """MongoDB connection or write failure."""
