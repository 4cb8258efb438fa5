"""PostgreSQL implementation of the document store."""

from __future__ import annotations

import json
import uuid
from typing import Any, Dict, List, Optional

import asyncpg

from ..errors import DuplicateDocument
from .repository import Document, DocumentStore


class PostgresDocumentStore(DocumentStore):
    """Persist documents as JSONB using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                id TEXT NOT NULL,
                data JSONB NOT NULL,
                PRIMARY KEY (collection, id)
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sequences (
                name TEXT PRIMARY KEY,
                value BIGINT NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    async def find(self, collection: str, filters: Dict[str, Any]) -> List[Document]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT data FROM documents WHERE collection = $1 AND data @> $2::jsonb",
                collection,
                json.dumps(filters),
            )
        finally:
            await conn.close()
        return [json.loads(r["data"]) for r in rows]

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT data FROM documents WHERE collection = $1 AND id = $2",
                collection,
                doc_id,
            )
        finally:
            await conn.close()
        return json.loads(row["data"]) if row else None

    async def create(self, collection: str, doc: Document) -> str:
        doc_id = doc.get("id") or uuid.uuid4().hex
        conn = await self._connect()
        try:
            await conn.execute(
                "INSERT INTO documents (collection, id, data) VALUES ($1, $2, $3::jsonb)",
                collection,
                doc_id,
                json.dumps({**doc, "id": doc_id}),
            )
        except asyncpg.UniqueViolationError as exc:
            raise DuplicateDocument(f"{collection}/{doc_id} already exists") from exc
        finally:
            await conn.close()
        return doc_id

    async def update(self, collection: str, doc_id: str, changes: Dict[str, Any]) -> bool:
        conn = await self._connect()
        try:
            result = await conn.execute(
                """
                UPDATE documents SET data = data || $1::jsonb
                WHERE collection = $2 AND id = $3
                """,
                json.dumps({**changes, "id": doc_id}),
                collection,
                doc_id,
            )
        finally:
            await conn.close()
        return result != "UPDATE 0"

    async def delete(self, collection: str, doc_id: str) -> bool:
        conn = await self._connect()
        try:
            result = await conn.execute(
                "DELETE FROM documents WHERE collection = $1 AND id = $2",
                collection,
                doc_id,
            )
        finally:
            await conn.close()
        return result != "DELETE 0"

    async def next_sequence(self, name: str) -> int:
        conn = await self._connect()
        try:
            return await conn.fetchval(
                """
                INSERT INTO sequences (name, value) VALUES ($1, 1)
                ON CONFLICT (name) DO UPDATE SET value = sequences.value + 1
                RETURNING value
                """,
                name,
            )
        finally:
            await conn.close()
