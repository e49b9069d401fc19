"""Jira issue search and dev-status access."""

from pr_heatmap.jira.client import JiraClient

__all__ = ["JiraClient"]
