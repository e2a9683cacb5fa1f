# src/taskalloc/dataloader/normalizer.py
"""
@brief
Schema normalizer: arbitrary column names → canonical entity fields.

@details
Maps header spellings ("client_id", "Client ID", "clientid") onto canonical
field names and coerces raw cell values into the scalar / list / numeric shapes
the entity models expect. The same coercion primitives are reused by the fix
applier so that imported rows and edited cells follow identical rules.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from typing import Any

from taskalloc.errors import DataError
from taskalloc.schemas.models import ENTITY_MODELS, EntityType

logger = logging.getLogger(__name__)

LIST_FIELDS = frozenset(
    {
        "RequestedTaskIDs",
        "Skills",
        "RequiredSkills",
        "CoRunTaskIDs",
        "AvailableSlots",
        "PreferredPhases",
    }
)
# List fields whose text may arrive wrapped in brackets, e.g. "[1, 2, 3]"
BRACKETED_FIELDS = frozenset({"AvailableSlots", "PreferredPhases"})
NUMERIC_FIELDS = frozenset({"PriorityLevel", "Duration", "MaxLoadPerPhase", "MaxConcurrent"})

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_DIGITS = re.compile(r"^\d+$")


def _header_key(header: str) -> str:
    return re.sub(r"[\s_-]", "", str(header).lower())


HEADER_MAP: dict[str, str] = {
    _header_key(name): name for model in ENTITY_MODELS.values() for name in model.field_names()
}


def map_header(header: str) -> str:
    """Return the canonical field for a raw header, or the header itself if unknown."""
    return HEADER_MAP.get(_header_key(header), header)


def split_text(text: str) -> list[str]:
    """Split comma-separated text, trimming items and dropping empty ones."""
    return [part.strip() for part in str(text).split(",") if part.strip()]


def as_list(value: Any) -> list[Any]:
    """View a stored list field as a list, whichever representation it holds."""
    if value is None:
        return []
    if isinstance(value, str):
        return split_text(value)
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def parse_int(value: Any, *, strict: bool = False, field: str = "value") -> int:
    """
    @brief
    Parse a leading integer, falling back to 0.

    @details
    "12", " 7 ", "3.9" and "4 units" parse to their leading integer. Anything
    without one yields 0, or raises DataError in strict mode.

    @raises
        DataError
            Only when strict=True and no leading integer is present.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)

    match = _LEADING_INT.match("" if value is None else str(value))
    if match:
        return int(match.group(1))

    if strict:
        raise DataError(
            message=f"{field}: cannot parse {value!r} as an integer",
            source="normalizer.parse_int",
            suggested_action="Provide a whole number, or disable strict_numeric.",
        )
    return 0


def coerce_list(field: str, value: Any) -> list[Any]:
    """
    @brief
    Coerce a raw list cell into a list.

    @details
    Text is split on commas; bracketed fields also lose their "[" / "]" and
    purely numeric items become ints. Non-numeric items are kept verbatim so
    the validator can report them.
    """
    if isinstance(value, (list, tuple)):
        items = [str(v).strip() if isinstance(v, str) else v for v in value]
        items = [v for v in items if v != "" and v is not None]
    else:
        text = "" if value is None else str(value)
        if field in BRACKETED_FIELDS:
            text = re.sub(r"[\[\]]", "", text)
        items = split_text(text)

    if field in BRACKETED_FIELDS:
        return [int(v) if isinstance(v, str) and _DIGITS.match(v) else v for v in items]
    return [str(v) for v in items]


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def normalize_row(
    entity_type: EntityType, raw: Mapping[str, Any], *, strict: bool = False
) -> Any:
    """
    @brief
    Build a canonical entity from one raw input row.

    @details
    Headers are mapped through map_header(); columns that are not fields of
    the target entity are dropped. Blank optional cells become None, blank
    list cells become [], a blank domain id becomes "".

    @raises
        DataError
            In strict mode, when a numeric cell has no leading integer.
    """
    model = ENTITY_MODELS[entity_type]
    known = set(model.field_names())
    fields: dict[str, Any] = {}

    for header, value in raw.items():
        name = map_header(header)
        if name not in known:
            logger.debug("Dropping unknown column %r for %s", header, entity_type)
            continue

        if name in LIST_FIELDS:
            fields[name] = [] if _is_blank(value) else coerce_list(name, value)
        elif name in NUMERIC_FIELDS:
            fields[name] = None if _is_blank(value) else parse_int(value, strict=strict, field=name)
        elif name == model.ID_FIELD:
            fields[name] = "" if _is_blank(value) else str(value).strip()
        else:
            fields[name] = None if _is_blank(value) else str(value).strip()

    return model.model_validate(fields)


__all__ = [
    "LIST_FIELDS",
    "BRACKETED_FIELDS",
    "NUMERIC_FIELDS",
    "map_header",
    "split_text",
    "as_list",
    "parse_int",
    "coerce_list",
    "normalize_row",
]
