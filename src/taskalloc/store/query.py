from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from taskalloc.dataloader.normalizer import as_list

_COMPARISON = re.compile(r"(duration|prioritylevel)\s*(>|<|=)\s*(\d+)")
_PHASE = re.compile(r"phase\s*(\d+)")
_FIELDS = {"duration": "Duration", "prioritylevel": "PriorityLevel"}


def _as_phase(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def _matches(entity: Any, term: str) -> bool:
    match = _COMPARISON.search(term)
    if match:
        key, op, raw = match.groups()
        value = entity.get_field(_FIELDS[key])
        if not value:
            return False
        target = int(raw)
        if op == ">":
            return value > target
        if op == "<":
            return value < target
        return value == target

    match = _PHASE.search(term)
    if match:
        phase = int(match.group(1))
        slots = as_list(entity.get_field("PreferredPhases")) + as_list(
            entity.get_field("AvailableSlots")
        )
        return any(_as_phase(s) == phase for s in slots)

    for name in entity.field_names():
        value = entity.get_field(name)
        if value is None:
            continue
        text = ",".join(str(v) for v in value) if isinstance(value, list) else str(value)
        if term in text.lower():
            return True
    return False


def filter_entities(entities: Iterable[Any], term: str) -> list[Any]:
    """
    Filter entities by a search term.

    Supported forms: "duration > 5" / "prioritylevel = 1" (ops > < =),
    "phase 2" (PreferredPhases or AvailableSlots contains 2), otherwise a
    case-insensitive substring over every field. An empty term keeps all.
    """
    term = (term or "").strip().lower()
    if not term:
        return list(entities)
    return [e for e in entities if _matches(e, term)]
