# src/taskalloc/store/entity_store.py
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from taskalloc.errors import DataError
from taskalloc.schemas.models import (
    ENTITY_MODELS,
    ENTITY_TYPES,
    Entity,
    EntityType,
    entity_from_document,
)
from taskalloc.store.persistence import DocumentStore, InMemoryDocumentStore

logger = logging.getLogger(__name__)

Listener = Callable[[EntityType], None]
StoreSnapshot = Mapping[EntityType, Sequence[Entity]]


class EntityStore:
    """
    @brief
    In-memory, per-collection mapping from internal id to entity.

    @details
    Single source of truth read by the validator and the fix applier. Mutations
    go through replace_all() or upsert() only; each one is written to the
    persistence collaborator first and applied in memory only after the write
    succeeds, so a PersistenceFailure leaves both sides unchanged. Listeners
    are notified synchronously with the mutated entity type.
    """

    def __init__(self, persistence: DocumentStore | None = None) -> None:
        self.persistence: DocumentStore = persistence or InMemoryDocumentStore()
        self._collections: dict[EntityType, dict[str, Entity]] = {t: {} for t in ENTITY_TYPES}
        self._listeners: list[Listener] = []

    # ---------- Observers ----------
    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, entity_type: EntityType) -> None:
        for listener in list(self._listeners):
            listener(entity_type)

    # ---------- Reads ----------
    def get_all(self, entity_type: EntityType) -> list[Entity]:
        return list(self._collections[self._check_type(entity_type)].values())

    def get(self, entity_type: EntityType, internal_id: str) -> Entity | None:
        return self._collections[self._check_type(entity_type)].get(internal_id)

    def find_by_domain_id(self, entity_type: EntityType, domain_id: str) -> Entity | None:
        """First entity in store order whose domain id equals `domain_id`."""
        for entity in self._collections[self._check_type(entity_type)].values():
            if entity.domain_id == domain_id:
                return entity
        return None

    def snapshot(self) -> dict[EntityType, tuple[Entity, ...]]:
        return {t: tuple(self._collections[t].values()) for t in ENTITY_TYPES}

    # ---------- Mutations ----------
    def replace_all(self, entity_type: EntityType, entities: Iterable[Entity]) -> None:
        """Replace a whole collection; all-or-nothing."""
        model = ENTITY_MODELS[self._check_type(entity_type)]
        batch = list(entities)
        for entity in batch:
            if not isinstance(entity, model):
                raise DataError(
                    message=f"Cannot store {type(entity).__name__} in {entity_type}",
                    source="EntityStore.replace_all",
                    suggested_action=f"Pass {model.__name__} instances only.",
                )

        self.persistence.replace_all(
            entity_type, [{"id": e.id, **e.to_document()} for e in batch]
        )
        self._collections[entity_type] = {e.id: e for e in batch}
        logger.info("Replaced %s: %d record(s)", entity_type, len(batch))
        self._notify(entity_type)

    def upsert(self, entity: Entity) -> None:
        """Insert or replace one entity by internal id, keeping its store position."""
        entity_type = entity.ENTITY_TYPE
        self.persistence.upsert(entity_type, entity.id, entity.to_document())
        self._collections[entity_type][entity.id] = entity
        logger.debug("Upserted %s %s (%s)", entity_type, entity.domain_id, entity.id)
        self._notify(entity_type)

    def load_from_persistence(self) -> None:
        """Hydrate every collection from the persistence collaborator."""
        for entity_type in ENTITY_TYPES:
            loaded: dict[str, Entity] = {}
            for item in self.persistence.get_all(entity_type):
                fields = {k: v for k, v in item.items() if k != "id"}
                try:
                    entity = entity_from_document(entity_type, item["id"], fields)
                except (KeyError, ValidationError) as e:
                    raise DataError(
                        message=f"Stored {entity_type} item is malformed: {e}",
                        source="EntityStore.load_from_persistence",
                        suggested_action="Re-import the collection from its source file.",
                    ) from e
                loaded[entity.id] = entity
            self._collections[entity_type] = loaded
            logger.info("Loaded %s: %d record(s)", entity_type, len(loaded))
            self._notify(entity_type)

    @staticmethod
    def _check_type(entity_type: Any) -> EntityType:
        if entity_type not in ENTITY_TYPES:
            raise DataError(
                message=f"Unknown entity type: {entity_type!r}",
                source="EntityStore",
                suggested_action=f"Use one of: {', '.join(ENTITY_TYPES)}",
            )
        return entity_type


__all__ = ["EntityStore", "Listener", "StoreSnapshot"]
