"""Remote document store the sync service writes to.

Paths are slash separated, alternating collection and document ids, e.g.
``groups/g1/expenses/e1``.
"""
from __future__ import annotations

import copy
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from core.errors import RemoteError
from datetime_utils import utc_now


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class ArrayUnion:
    def __init__(self, values) -> None:
        self.values = list(values)

    def __repr__(self) -> str:
        return f"ArrayUnion({self.values!r})"


class ArrayRemove:
    def __init__(self, values) -> None:
        self.values = list(values)

    def __repr__(self) -> str:
        return f"ArrayRemove({self.values!r})"


class DocumentStore(ABC):
    @abstractmethod
    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        """Create a document with a generated id and return the id."""

    @abstractmethod
    async def update(self, path: str, data: Mapping[str, Any]) -> None:
        """Merge ``data`` into an existing document."""

    @abstractmethod
    async def find_one(self, collection: str, field: str, value: Any) -> Optional[str]:
        """Return the id of the first document whose ``field`` equals ``value``."""


def _resolve(current: Any, value: Any) -> Any:
    if value is SERVER_TIMESTAMP:
        return utc_now()
    if isinstance(value, ArrayUnion):
        items = list(current or [])
        for item in value.values:
            if item not in items:
                items.append(item)
        return items
    if isinstance(value, ArrayRemove):
        return [item for item in (current or []) if item not in value.values]
    return copy.deepcopy(value)


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed store for development and tests."""

    def __init__(self) -> None:
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.writes: List[tuple] = []

    def put(self, path: str, data: Mapping[str, Any]) -> None:
        self.documents[path] = {key: _resolve(None, value) for key, value in data.items()}

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        doc = self.documents.get(path)
        return copy.deepcopy(doc) if doc is not None else None

    def collection(self, collection: str) -> Dict[str, Dict[str, Any]]:
        prefix = collection.rstrip("/") + "/"
        return {
            path[len(prefix):]: copy.deepcopy(doc)
            for path, doc in self.documents.items()
            if path.startswith(prefix) and "/" not in path[len(prefix):]
        }

    async def add(self, collection: str, data: Mapping[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self.put(f"{collection.rstrip('/')}/{doc_id}", data)
        self.writes.append(("add", collection, doc_id))
        return doc_id

    async def update(self, path: str, data: Mapping[str, Any]) -> None:
        doc = self.documents.get(path)
        if doc is None:
            raise RemoteError(f"No document to update: {path}")
        for key, value in data.items():
            doc[key] = _resolve(doc.get(key), value)
        self.writes.append(("update", path))

    async def find_one(self, collection: str, field: str, value: Any) -> Optional[str]:
        for doc_id, doc in self.collection(collection).items():
            if doc.get(field) == value:
                return doc_id
        return None


__all__ = [
    "ArrayRemove",
    "ArrayUnion",
    "DocumentStore",
    "InMemoryDocumentStore",
    "SERVER_TIMESTAMP",
]
