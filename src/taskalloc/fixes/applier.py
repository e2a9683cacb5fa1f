# src/taskalloc/fixes/applier.py
from __future__ import annotations

import logging
from typing import Any

from taskalloc.dataloader.normalizer import LIST_FIELDS, NUMERIC_FIELDS, coerce_list, parse_int
from taskalloc.errors import DataError, LookupFailure
from taskalloc.schemas.models import ENTITY_MODELS, EngineConfig, Entity, EntityType
from taskalloc.store.entity_store import EntityStore

logger = logging.getLogger(__name__)


def coerce_field_value(entity: Entity, field: str, value: Any, *, strict: bool = False) -> Any:
    """
    @brief
    Coerce an edited value the way a manual cell edit is coerced.

    @details
    - list fields: comma-separated text is split, trimmed and emptied items
      dropped; the result is re-joined with ", " when the entity currently
      stores that field as text, otherwise kept as a list;
    - numeric fields: leading-integer parse, 0 on failure (DataError in strict mode);
    - everything else: stored as text.

    @raises
        DataError
            Unknown field for the entity, or numeric failure in strict mode.
    """
    attr = entity.attr_for(field)
    if attr is None:
        raise DataError(
            message=f"{type(entity).__name__} has no field {field!r}",
            source="fixes.coerce_field_value",
            suggested_action=f"Use one of: {', '.join(entity.field_names())}",
        )
    canonical = type(entity).model_fields[attr].alias or attr

    if canonical in LIST_FIELDS:
        text = ", ".join(str(v) for v in value) if isinstance(value, (list, tuple)) else value
        items = coerce_list(canonical, text)
        if isinstance(getattr(entity, attr), str):
            return ", ".join(str(v) for v in items)
        return items

    if canonical in NUMERIC_FIELDS:
        return parse_int(value, strict=strict, field=canonical)

    return "" if value is None else str(value)


class FixApplier:
    """
    @brief
    Turns an accepted fix into a store mutation.

    @details
    The origin of the new value (a validator suggestion, an externally
    sanity-checked text, a natural-language edit) does not matter: coercion is
    uniform. The write goes through EntityStore.upsert(), whose listeners
    re-run validation.
    """

    def __init__(self, store: EntityStore, cfg: EngineConfig | None = None) -> None:
        self.store = store
        self.cfg = cfg or EngineConfig()

    def apply_fix(self, entity_type: EntityType, domain_id: str, field: str, new_value: Any) -> Entity:
        """
        @brief
        Rewrite one field of the entity identified by its domain id.

        @returns
            The updated entity as stored.

        @raises
            LookupFailure
                No entity with that domain id in the named collection.
            DataError
                Unknown collection / field, or strict numeric failure.
            PersistenceFailure
                Propagated from the store; nothing is mutated.
        """
        if entity_type not in ENTITY_MODELS:
            raise DataError(
                message=f"Unknown entity type: {entity_type!r}",
                source="FixApplier.apply_fix",
                suggested_action="Use one of: clients, workers, tasks",
            )

        entity = self.store.find_by_domain_id(entity_type, domain_id)
        if entity is None:
            raise LookupFailure(
                message=f"{entity_type} with ID {domain_id} not found.",
                source="FixApplier.apply_fix",
                suggested_action="Check the domain id; the record may have been replaced.",
            )

        return self._rewrite(entity, field, new_value)

    def apply_fix_to(
        self, entity_type: EntityType, internal_id: str, field: str, new_value: Any
    ) -> Entity:
        """
        Same as apply_fix(), addressed by internal id. Used when the caller
        already knows the exact record (e.g. the one a diagnostic was raised
        on), which matters once a domain id is duplicated.

        @raises
            LookupFailure
                No entity with that internal id in the named collection.
        """
        entity = self.store.get(entity_type, internal_id)
        if entity is None:
            raise LookupFailure(
                message=f"{entity_type} record {internal_id} not found.",
                source="FixApplier.apply_fix_to",
                suggested_action="Re-run validation; the record may have been replaced.",
            )
        return self._rewrite(entity, field, new_value)

    def _rewrite(self, entity: Entity, field: str, new_value: Any) -> Entity:
        value = coerce_field_value(entity, field, new_value, strict=self.cfg.strict_numeric)
        attr = entity.attr_for(field)
        updated = entity.model_copy(update={attr: value})

        self.store.upsert(updated)
        logger.info(
            "Applied fix: %s %s (%s) %s=%r",
            entity.ENTITY_TYPE,
            entity.domain_id,
            entity.id,
            field,
            value,
        )
        return updated


__all__ = ["FixApplier", "coerce_field_value"]
