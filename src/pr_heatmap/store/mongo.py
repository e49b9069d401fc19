"""MongoDB connection helper."""

from __future__ import annotations

import logging
from typing import Any

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from pr_heatmap.config import HeatmapConfig
from pr_heatmap.exceptions import StoreError

logger = logging.getLogger(__name__)


def connect(config: HeatmapConfig) -> MongoClient[dict[str, Any]]:
    """Open a client and verify the server is reachable.

    Raises:
        StoreError: If the server cannot be reached within the connect timeout
    """
    config.require_store()
    timeout_ms = config.connect_timeout_seconds * 1000
    client: MongoClient[dict[str, Any]] = MongoClient(
        config.mongo_uri(),
        connectTimeoutMS=timeout_ms,
        serverSelectionTimeoutMS=timeout_ms,
    )
    try:
        client.admin.command("ping")
    except PyMongoError as e:
        client.close()
        raise StoreError(f"Cannot connect to MongoDB: {e}") from e

    logger.info(f"Connected to MongoDB database {config.mongo_dbname}")
    return client


def get_database(
    client: MongoClient[dict[str, Any]], config: HeatmapConfig
) -> Database[dict[str, Any]]:
    """Get the configured database from a connected client."""
    return client[config.mongo_dbname]


def insert_documents(
    collection: Collection[dict[str, Any]], docs: list[dict[str, Any]]
) -> list[Any]:
    """Insert documents in a single unordered batch and return their ids.

    Raises:
        StoreError: If the batch write fails
    """
    if not docs:
        return []
    try:
        result = collection.insert_many(docs, ordered=False)
    except PyMongoError as e:
        raise StoreError(f"Batch insert into {collection.name} failed: {e}") from e
    return list(result.inserted_ids)
