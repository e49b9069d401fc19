"""Correlate Jira bugs with their GitHub pull requests and collect diff stats."""

__version__ = "0.1.0"
