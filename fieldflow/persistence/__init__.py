"""Persistence layer for fieldflow documents."""

from __future__ import annotations

import os
from typing import Optional

from ..config import FieldflowConfig, load_config
from .inmemory import InMemoryDocumentStore
from .repository import Document, DocumentStore
from .sqlite import SQLiteDocumentStore

try:  # pragma: no cover - optional dependency
    from .postgres import PostgresDocumentStore
except ImportError:  # pragma: no cover - optional dependency
    PostgresDocumentStore = None  # type: ignore

_store_instance: DocumentStore | None = None


def get_store(
    database_url: Optional[str] = None, config: Optional[FieldflowConfig] = None
) -> DocumentStore:
    """Factory function to obtain the process-wide document store.

    The backend is selected based on ``database_url`` which can be provided
    explicitly, via environment variable ``FIELDFLOW_DATABASE_URL`` or
    ``DATABASE_URL``, or from loaded configuration. When no database is
    configured, an in-memory store is returned.
    """

    global _store_instance
    if _store_instance is not None and database_url is None and config is None:
        return _store_instance

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("FIELDFLOW_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or getattr(config, "database_url", None)
    )

    if not database_url:
        _store_instance = InMemoryDocumentStore()
        return _store_instance

    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        _store_instance = SQLiteDocumentStore(path)
    elif database_url.startswith("postgres://") or database_url.startswith(
        "postgresql://"
    ):
        if PostgresDocumentStore is None:
            raise RuntimeError("Postgres support not available; install asyncpg")
        _store_instance = PostgresDocumentStore(database_url)
    else:
        raise ValueError(f"Unsupported database backend: {database_url}")

    return _store_instance


__all__ = [
    "Document",
    "DocumentStore",
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
    "PostgresDocumentStore",
    "get_store",
]
