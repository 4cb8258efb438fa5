"""In-memory implementation of the document store."""

from __future__ import annotations

import asyncio
import copy
import uuid
from collections import defaultdict
from typing import Any, Dict, List, Optional

from ..errors import DuplicateDocument
from .repository import Document, DocumentStore


class InMemoryDocumentStore(DocumentStore):
    """Store documents in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Document]] = defaultdict(dict)
        self._sequences: Dict[str, int] = defaultdict(int)
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    async def find(self, collection: str, filters: Dict[str, Any]) -> List[Document]:
        return [
            copy.deepcopy(doc)
            for doc in self._collections[collection].values()
            if all(key in doc and doc[key] == value for key, value in filters.items())
        ]

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        doc = self._collections[collection].get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def create(self, collection: str, doc: Document) -> str:
        doc_id = doc.get("id") or uuid.uuid4().hex
        async with self._lock:
            if doc_id in self._collections[collection]:
                raise DuplicateDocument(f"{collection}/{doc_id} already exists")
            self._collections[collection][doc_id] = {**copy.deepcopy(doc), "id": doc_id}
        return doc_id

    async def update(self, collection: str, doc_id: str, changes: Dict[str, Any]) -> bool:
        async with self._lock:
            doc = self._collections[collection].get(doc_id)
            if doc is None:
                return False
            doc.update(copy.deepcopy(changes))
            doc["id"] = doc_id
        return True

    async def delete(self, collection: str, doc_id: str) -> bool:
        async with self._lock:
            return self._collections[collection].pop(doc_id, None) is not None

    async def next_sequence(self, name: str) -> int:
        async with self._lock:
            self._sequences[name] += 1
            return self._sequences[name]
