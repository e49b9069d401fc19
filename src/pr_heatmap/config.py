"""Layered configuration: defaults, JSON config file, environment."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any
from urllib.parse import quote_plus

from pr_heatmap.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = ".heatmap.json"
ENV_PREFIX = "HEATMAP_"
POSITIONAL_PLACEHOLDER = "%s"

# Lower bounds for numeric settings
MIN_VALUES: dict[str, int] = {
    "jira_page_size": 1,
    "max_attempts": 1,
}

# Dotted config-file key -> HeatmapConfig field
CONFIG_KEYS: dict[str, str] = {
    "jira.host": "jira_host",
    "jira.project": "jira_project",
    "jira.auth.email": "jira_email",
    "jira.auth.token": "jira_token",
    "jira.page_size": "jira_page_size",
    "mongo.srv": "mongo_srv",
    "mongo.user": "mongo_user",
    "mongo.password": "mongo_password",
    "mongo.dbname": "mongo_dbname",
    "mongo.collections.mappings": "mappings_collection",
    "mongo.collections.diffs": "diffs_collection",
    "github.token": "github_token",
    "http.timeout": "request_timeout",
    "http.max_attempts": "max_attempts",
    "http.retry_max_wait": "retry_max_wait",
}


def env_var_for(key: str) -> str:
    """Environment variable name overriding a dotted config key."""
    return ENV_PREFIX + key.upper().replace(".", "_")


@dataclass
class HeatmapConfig:
    """Settings shared by the clients, stores and sync engines.

    Values come from a JSON config file (nested objects, e.g.
    ``{"jira": {"auth": {"token": "..."}}}``) and can be overridden by
    ``HEATMAP_*`` environment variables such as ``HEATMAP_JIRA_AUTH_TOKEN``.
    """

    # Jira
    jira_host: str = ""
    jira_project: str = ""
    jira_email: str = ""
    jira_token: str = ""
    jira_page_size: int = 100

    # MongoDB
    mongo_srv: str = ""
    mongo_user: str = ""
    mongo_password: str = ""
    mongo_dbname: str = ""
    mappings_collection: str = "jira"
    diffs_collection: str = "github"
    connect_timeout_seconds: int = 30

    # GitHub
    github_token: str = ""
    github_api_url: str = "https://api.github.com"

    # HTTP
    request_timeout: float = 60.0
    max_attempts: int = 3
    retry_max_wait: float = 30.0

    # Where the values were read from, for diagnostics
    source: str | None = None

    @classmethod
    def load(cls, path: str | Path | None = None) -> HeatmapConfig:
        """Load config from a JSON file, then apply environment overrides.

        Args:
            path: Explicit config file. When omitted, ``~/.heatmap.json`` and
                  ``./.heatmap.json`` are tried in that order.

        Raises:
            ConfigError: If an explicit path is missing or a file is malformed
        """
        config = cls()
        config_path = _resolve_config_path(path)
        if config_path is not None:
            config._apply_file(config_path)
            config.source = str(config_path)
            logger.info(f"Using config file: {config_path}")
        else:
            logger.info("No config file found, using environment only")
        config._apply_env()
        return config

    def _apply_file(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text())
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        except ValueError as e:
            raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")

        for key, field_name in CONFIG_KEYS.items():
            value = _lookup(data, key)
            if value is not None:
                self._set(field_name, value, origin=f"{path}:{key}")

    def _apply_env(self) -> None:
        for key, field_name in CONFIG_KEYS.items():
            value = os.getenv(env_var_for(key))
            if value is not None and value != "":
                self._set(field_name, value, origin=env_var_for(key))

    def _set(self, field_name: str, value: Any, origin: str) -> None:
        field_type = {f.name: f.type for f in fields(self)}[field_name]
        try:
            if field_type == "int":
                value = int(value)
            elif field_type == "float":
                value = float(value)
            else:
                value = str(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for {origin}: {value!r}") from e
        minimum = MIN_VALUES.get(field_name)
        if minimum is not None and value < minimum:
            raise ConfigError(
                f"Invalid value for {origin}: {value!r} (must be at least {minimum})"
            )
        setattr(self, field_name, value)

    def mongo_uri(self) -> str:
        """Render the Mongo connection template with quoted credentials.

        The template uses ``{user}``, ``{password}`` and ``{dbname}``. Templates
        with three positional ``%s`` placeholders are filled in that order.
        """
        if POSITIONAL_PLACEHOLDER in self.mongo_srv:
            return self._positional_mongo_uri()
        try:
            return self.mongo_srv.format(
                user=quote_plus(self.mongo_user),
                password=quote_plus(self.mongo_password),
                dbname=self.mongo_dbname,
            )
        except (KeyError, IndexError, ValueError) as e:
            raise ConfigError(
                "mongo.srv must only use {user}, {password} and {dbname} "
                f"placeholders: {e}"
            ) from e

    def _positional_mongo_uri(self) -> str:
        parts = self.mongo_srv.split(POSITIONAL_PLACEHOLDER)
        if len(parts) != 4:
            raise ConfigError(
                "mongo.srv with %s placeholders needs exactly three (user, password, "
                "dbname); prefer the {user}, {password} and {dbname} placeholders"
            )
        values = [quote_plus(self.mongo_user), quote_plus(self.mongo_password), self.mongo_dbname]
        return parts[0] + "".join(value + part for value, part in zip(values, parts[1:]))

    def require_store(self) -> None:
        """Validate the settings needed to open the document store."""
        self._require("mongo.srv", "mongo.dbname")

    def require_backfill(self) -> None:
        """Validate the settings needed by the backfill stage."""
        self._require(
            "jira.host",
            "jira.project",
            "jira.auth.email",
            "jira.auth.token",
            "mongo.srv",
            "mongo.dbname",
        )

    def require_diffs(self) -> None:
        """Validate the settings needed by the diff enrichment stage."""
        self._require("github.token", "mongo.srv", "mongo.dbname")

    def _require(self, *keys: str) -> None:
        missing = [k for k in keys if not getattr(self, CONFIG_KEYS[k])]
        if missing:
            hints = ", ".join(f"{k} ({env_var_for(k)})" for k in missing)
            raise ConfigError(f"Missing required configuration: {hints}")


def _resolve_config_path(path: str | Path | None) -> Path | None:
    if path is not None:
        explicit = Path(path).expanduser()
        if not explicit.is_file():
            raise ConfigError(f"Config file not found: {explicit}")
        return explicit

    for candidate in (Path.home() / DEFAULT_CONFIG_NAME, Path(DEFAULT_CONFIG_NAME)):
        if candidate.is_file():
            return candidate
    return None


def _lookup(data: dict[str, Any], dotted_key: str) -> Any:
    node: Any = data
    for part in dotted_key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node
