from __future__ import annotations

import csv
import io
import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from taskalloc.errors import DataError  # project-level errors
from taskalloc.schemas.models import PriorityWeights, Rule
from taskalloc.store.atomic import atomic_write_text


def _cell(value: Any) -> str:
    """
    @brief
    Render one entity value as a CSV cell.

    @details
    Lists are joined with ", " (the same text a user would type back in);
    None becomes an empty cell.
    """
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def _write(path: Path, text: str, source: str) -> Path:
    try:
        atomic_write_text(path, text)
    except OSError as e:
        raise DataError(
            f"atomic write failed for {path}: {e}",
            source=source,
            suggested_action="Check output directory permissions and disk space.",
        ) from e
    return path


def write_entities_csv(entities: Sequence[Any], out_path: Path) -> Path | None:
    """
    @brief
    Export one collection as a cleaned CSV.

    @details
    Columns follow the canonical field order of the entity model; the internal
    id is not exported. An empty collection writes nothing.

    @returns
        Path to the CSV file, or None when there was nothing to write.

    @raises
        DataError
            Mixed entity kinds in one export, or write failure.
    """
    if not entities:
        return None

    model = type(entities[0])
    if any(type(e) is not model for e in entities):
        raise DataError(
            "Cannot export mixed entity kinds into one CSV.",
            source="export.write_entities_csv",
            suggested_action="Export clients, workers and tasks separately.",
        )

    columns = model.field_names()
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(columns)
    for entity in entities:
        writer.writerow([_cell(entity.get_field(c)) for c in columns])

    return _write(Path(out_path), buf.getvalue(), "export.write_entities_csv")


def write_rules_json(rules: Sequence[Rule], out_path: Path) -> Path:
    payload = json.dumps([r.to_document() for r in rules], ensure_ascii=False, indent=2)
    return _write(Path(out_path), payload + "\n", "export.write_rules_json")


def write_priorities_json(weights: PriorityWeights, out_path: Path) -> Path:
    payload = json.dumps(weights.model_dump(), ensure_ascii=False, indent=2)
    return _write(Path(out_path), payload + "\n", "export.write_priorities_json")


__all__ = ["write_entities_csv", "write_rules_json", "write_priorities_json"]
