"""Document store abstraction shared by every fieldflow service."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

Document = Dict[str, Any]


class DocumentStore(Protocol):
    """Protocol for tenant-scoped document persistence backends.

    Documents are JSON-compatible dicts. Returned documents always carry
    their ``id``; filters are equality matches on top-level fields.
    """

    async def find(self, collection: str, filters: Dict[str, Any]) -> List[Document]:
        """Return every document matching all ``filters``."""

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Return a document by id, or ``None``."""

    async def create(self, collection: str, doc: Document) -> str:
        """Insert ``doc`` and return its id.

        Uses ``doc["id"]`` when present and raises ``DuplicateDocument``
        if that id is taken.
        """

    async def update(self, collection: str, doc_id: str, changes: Dict[str, Any]) -> bool:
        """Merge ``changes`` into a document. Returns ``False`` if missing."""

    async def delete(self, collection: str, doc_id: str) -> bool:
        """Remove a document. Returns ``False`` if missing."""

    async def next_sequence(self, name: str) -> int:
        """Atomically increment and return the counter ``name`` (starts at 1)."""
