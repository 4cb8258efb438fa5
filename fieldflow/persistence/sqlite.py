"""SQLite implementation of the document store."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import DuplicateDocument
from .repository import Document, DocumentStore


class SQLiteDocumentStore(DocumentStore):
    """Persist documents as JSON text using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (collection, id)
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS sequences (
                    name TEXT PRIMARY KEY,
                    value INTEGER NOT NULL
                )
                """
            )
            self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            self._conn.commit()
            return cur.rowcount

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchall()

    def _insert(self, collection: str, doc_id: str, data: str) -> None:
        with self._lock:
            try:
                self._conn.execute(
                    "INSERT INTO documents (collection, id, data) VALUES (?, ?, ?)",
                    (collection, doc_id, data),
                )
                self._conn.commit()
            except sqlite3.IntegrityError as exc:
                self._conn.rollback()
                raise DuplicateDocument(f"{collection}/{doc_id} already exists") from exc

    def _merge(self, collection: str, doc_id: str, changes: Dict[str, Any]) -> bool:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                "SELECT data FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            )
            row = cur.fetchone()
            if row is None:
                return False
            doc = json.loads(row["data"])
            doc.update(changes)
            doc["id"] = doc_id
            cur.execute(
                "UPDATE documents SET data = ? WHERE collection = ? AND id = ?",
                (json.dumps(doc), collection, doc_id),
            )
            self._conn.commit()
            return True

    def _increment(self, name: str) -> int:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                """
                INSERT INTO sequences (name, value) VALUES (?, 1)
                ON CONFLICT(name) DO UPDATE SET value = value + 1
                RETURNING value
                """,
                (name,),
            )
            value = cur.fetchone()["value"]
            self._conn.commit()
            return value

    # ------------------------------------------------------------------
    # Store API
    async def find(self, collection: str, filters: Dict[str, Any]) -> List[Document]:
        query = "SELECT data FROM documents WHERE collection = ?"
        params: list[Any] = [collection]
        for key, value in filters.items():
            if value is None:
                query += " AND json_type(data, ?) = 'null'"
                params.append(f"$.{key}")
            else:
                query += " AND json_extract(data, ?) = ?"
                params.extend([f"$.{key}", value])
        rows = await asyncio.to_thread(self._fetchall, query, *params)
        return [json.loads(r["data"]) for r in rows]

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT data FROM documents WHERE collection = ? AND id = ?",
            collection,
            doc_id,
        )
        return json.loads(row["data"]) if row else None

    async def create(self, collection: str, doc: Document) -> str:
        doc_id = doc.get("id") or uuid.uuid4().hex
        data = json.dumps({**doc, "id": doc_id})
        await asyncio.to_thread(self._insert, collection, doc_id, data)
        return doc_id

    async def update(self, collection: str, doc_id: str, changes: Dict[str, Any]) -> bool:
        return await asyncio.to_thread(self._merge, collection, doc_id, changes)

    async def delete(self, collection: str, doc_id: str) -> bool:
        deleted = await asyncio.to_thread(
            self._execute,
            "DELETE FROM documents WHERE collection = ? AND id = ?",
            collection,
            doc_id,
        )
        return deleted > 0

    async def next_sequence(self, name: str) -> int:
        return await asyncio.to_thread(self._increment, name)

    def close(self) -> None:
        self._conn.close()
