# src/taskalloc/store/persistence.py
"""
@brief
Persistence collaborators for entity collections and config documents.

@details
The engine talks to storage only through the `DocumentStore` protocol:
    - get_all(collection)                → items (each a dict carrying "id")
    - replace_all(collection, items)     → all-or-nothing replacement
    - upsert(collection, id, fields)     → merge fields into one item
    - get_document(name) / put_document(name, data) for the "rules" and
      "priorities" config documents.

Two implementations are provided: an in-memory store (tests, embedding) and a
JSON-file store with atomic writes. Both raise PersistenceFailure and leave
previously committed state untouched when a write cannot be completed.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol

from taskalloc.errors import PersistenceFailure
from taskalloc.store.atomic import atomic_write_text

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    def get_all(self, collection: str) -> list[dict[str, Any]]: ...

    def replace_all(self, collection: str, items: Iterable[dict[str, Any]]) -> None: ...

    def upsert(self, collection: str, item_id: str, fields: dict[str, Any]) -> None: ...

    def get_document(self, name: str) -> dict[str, Any] | None: ...

    def put_document(self, name: str, data: dict[str, Any]) -> None: ...


def _prepare_items(collection: str, items: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Copy and check a full replacement batch before anything is committed."""
    prepared: list[dict[str, Any]] = []
    seen: set[str] = set()
    for item in items:
        item_id = item.get("id") if isinstance(item, dict) else None
        if not item_id:
            raise PersistenceFailure(
                message=f"Item without internal id in replace_all({collection!r})",
                source="persistence.replace_all",
                suggested_action="Assign an internal id to every item before saving.",
            )
        if item_id in seen:
            raise PersistenceFailure(
                message=f"Internal id {item_id!r} appears twice in replace_all({collection!r})",
                source="persistence.replace_all",
                suggested_action="Internal ids must be unique within a collection.",
            )
        seen.add(item_id)
        prepared.append(copy.deepcopy(item))
    return prepared


class InMemoryDocumentStore:
    """Dict-backed DocumentStore; preserves insertion order per collection."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._documents: dict[str, dict[str, Any]] = {}

    def get_all(self, collection: str) -> list[dict[str, Any]]:
        return [copy.deepcopy(v) for v in self._collections.get(collection, {}).values()]

    def replace_all(self, collection: str, items: Iterable[dict[str, Any]]) -> None:
        prepared = _prepare_items(collection, items)
        self._collections[collection] = {item["id"]: item for item in prepared}

    def upsert(self, collection: str, item_id: str, fields: dict[str, Any]) -> None:
        if not item_id:
            raise PersistenceFailure(
                message="Item must have an internal id to be saved.",
                source="InMemoryDocumentStore.upsert",
            )
        bucket = self._collections.setdefault(collection, {})
        merged = {**bucket.get(item_id, {}), **copy.deepcopy(fields), "id": item_id}
        bucket[item_id] = merged

    def get_document(self, name: str) -> dict[str, Any] | None:
        doc = self._documents.get(name)
        return copy.deepcopy(doc) if doc is not None else None

    def put_document(self, name: str, data: dict[str, Any]) -> None:
        self._documents[name] = copy.deepcopy(data)


class JsonFileDocumentStore:
    """
    @brief
    DocumentStore persisting each collection / document as one JSON file.

    @details
    Layout under `root`:
        <collection>.json      list of items in store order
        config/<name>.json     config documents ("rules", "priorities")
    Every write replaces the file atomically; a failed write leaves the
    previous file intact and raises PersistenceFailure.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def get_all(self, collection: str) -> list[dict[str, Any]]:
        data = self._read(self.root / f"{collection}.json")
        if data is None:
            return []
        if not isinstance(data, list):
            raise PersistenceFailure(
                message=f"Collection file for {collection!r} is not a JSON list",
                source="JsonFileDocumentStore.get_all",
                suggested_action="Restore the file or replace the collection.",
            )
        return data

    def replace_all(self, collection: str, items: Iterable[dict[str, Any]]) -> None:
        prepared = _prepare_items(collection, items)
        self._write(self.root / f"{collection}.json", prepared)

    def upsert(self, collection: str, item_id: str, fields: dict[str, Any]) -> None:
        if not item_id:
            raise PersistenceFailure(
                message="Item must have an internal id to be saved.",
                source="JsonFileDocumentStore.upsert",
            )
        items = self.get_all(collection)
        for i, item in enumerate(items):
            if item.get("id") == item_id:
                items[i] = {**item, **fields, "id": item_id}
                break
        else:
            items.append({**fields, "id": item_id})
        self._write(self.root / f"{collection}.json", items)

    def get_document(self, name: str) -> dict[str, Any] | None:
        data = self._read(self.root / "config" / f"{name}.json")
        if data is not None and not isinstance(data, dict):
            raise PersistenceFailure(
                message=f"Config document {name!r} is not a JSON object",
                source="JsonFileDocumentStore.get_document",
            )
        return data

    def put_document(self, name: str, data: dict[str, Any]) -> None:
        self._write(self.root / "config" / f"{name}.json", data)

    # ------------------------------
    # Internal helpers
    # ------------------------------
    def _read(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceFailure(
                message=f"Unable to read {path}: {e}",
                source="JsonFileDocumentStore._read",
                suggested_action="Check file permissions and JSON integrity.",
            ) from e

    def _write(self, path: Path, data: Any) -> None:
        try:
            payload = json.dumps(data, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as e:
            raise PersistenceFailure(
                message=f"Data for {path.name} is not JSON-serializable: {e}",
                source="JsonFileDocumentStore._write",
            ) from e
        try:
            atomic_write_text(path, payload + "\n")
        except OSError as e:
            raise PersistenceFailure(
                message=f"Atomic write failed for {path}: {e}",
                source="JsonFileDocumentStore._write",
                suggested_action="Check data directory permissions and disk space.",
            ) from e
        logger.debug("Persisted %s", path)


__all__ = ["DocumentStore", "InMemoryDocumentStore", "JsonFileDocumentStore"]
