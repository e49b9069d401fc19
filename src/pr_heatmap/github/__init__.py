"""GitHub pull request file listing."""

from pr_heatmap.github.client import GitHubClient

__all__ = ["GitHubClient"]
