from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from taskalloc.schemas.models import EntityType


@dataclass(slots=True)
class LoadResult:
    """
    Structured result of an entity loading step.

    Fields:
        entity_type: Collection the rows were loaded for.
        success: True if no row-level issues were found, False otherwise.
        entities: Normalized entities in file order (empty if success=False).
        errors: List of issue dicts with per-row context (used for reporting).
                Each item contains at least: kind, line_no, message, domain_id (may be None).
        total_rows: Total number of data rows observed in the file (excludes header).
        kept_rows: Number of normalized entities (len(entities)).
    """

    entity_type: EntityType
    success: bool
    entities: list[Any] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)
    total_rows: int = 0
    kept_rows: int = 0
