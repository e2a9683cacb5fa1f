# src/taskalloc/dataloader/entities_loader.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pandas as pd
from pydantic import ValidationError

from taskalloc.dataloader.normalizer import map_header, normalize_row
from taskalloc.dataloader.types import LoadResult
from taskalloc.errors import DataError
from taskalloc.schemas.models import ENTITY_MODELS, EntityType

logger = logging.getLogger(__name__)


class EntitiesLoader:
    """
    CSV / XLSX → LoadResult[Client | Worker | Task].

    Rules:
      - Formats: UTF-8 CSV (delimiter=',') or the first sheet of an .xlsx workbook
      - Every cell is read as text; the normalizer does all type coercion
      - Headers are mapped to canonical fields (case, spaces, '_' and '-' ignored)
      - Row-level handling:
          * no domain id in the row     → row dropped silently (blank spreadsheet line)
          * numeric cell unparsable     → 0, or an issue when strict_numeric is on
          * duplicate domain id         → kept; the validator reports it
      - On completion:
          * issues present → success=False, entities=[], errors=[...]
          * otherwise      → success=True, entities in file order

    Fatal errors (raise DataError immediately):
      - missing / unreadable file
      - unsupported extension
      - no header row
    """

    SUPPORTED_SUFFIXES = (".csv", ".xlsx")

    def __init__(self, strict_numeric: bool = False) -> None:
        self.strict_numeric = strict_numeric

    def load(self, path: Path, entity_type: EntityType) -> LoadResult:
        rows = self._read_table(path)
        result = self._rows_to_result(entity_type, rows)
        self._report_summary(path, result)
        return result

    # ------------------------------
    # Internal helpers
    # ------------------------------
    def _read_table(self, path: Path) -> list[dict[str, Any]]:
        if not isinstance(path, Path):
            raise DataError(
                message=f"Invalid path type: expected pathlib.Path, got {type(path).__name__}",
                source="EntitiesLoader._read_table",
                suggested_action="Pass a pathlib.Path pointing to the entity file",
            )
        if not path.exists():
            raise DataError(
                message=f"Input file not found: {path}",
                source="EntitiesLoader._read_table",
                suggested_action="Verify file path and ensure the file is present.",
            )
        suffix = path.suffix.lower()
        if suffix not in self.SUPPORTED_SUFFIXES:
            raise DataError(
                message=f"Unsupported file type: {suffix or '<none>'}",
                source="EntitiesLoader._read_table",
                suggested_action="Use a .csv or .xlsx file.",
            )

        try:
            if suffix == ".csv":
                df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8")
            else:
                df = pd.read_excel(path, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError as e:
            raise DataError(
                message="File has no header row.",
                source="EntitiesLoader._read_table",
                suggested_action="Ensure the first line contains column names.",
            ) from e
        except (OSError, ValueError) as e:
            raise DataError(
                message=f"Unable to read {path.name}: {e}",
                source="EntitiesLoader._read_table",
                suggested_action="Check the file is a valid, unlocked CSV/XLSX document.",
            ) from e

        df.columns = [str(c).strip() for c in df.columns]
        return df.to_dict(orient="records")

    def _rows_to_result(self, entity_type: EntityType, rows: list[dict[str, Any]]) -> LoadResult:
        issues: list[dict[str, Any]] = []
        entities: list[Any] = []
        id_fields = {model.ID_FIELD for model in ENTITY_MODELS.values()}

        for idx, row in enumerate(rows, start=2):  # header = line 1
            has_id = any(
                map_header(k) in id_fields and str(v or "").strip() for k, v in row.items()
            )
            if not has_id:
                logger.debug("Skipping line %d: no ClientID/WorkerID/TaskID", idx)
                continue

            try:
                entity = normalize_row(entity_type, row, strict=self.strict_numeric)
            except DataError as e:
                issues.append(
                    {
                        "kind": "invalid_number",
                        "line_no": idx,
                        "domain_id": self._row_domain_id(entity_type, row),
                        "message": str(e.args[0]),
                    }
                )
                continue
            except ValidationError as e:
                issues.append(
                    {
                        "kind": "schema_error",
                        "line_no": idx,
                        "domain_id": self._row_domain_id(entity_type, row),
                        "message": f"Entity construction failed: {e}",
                    }
                )
                continue

            entities.append(entity)

        if issues:
            return LoadResult(
                entity_type=entity_type,
                success=False,
                entities=[],
                errors=issues,
                total_rows=len(rows),
                kept_rows=0,
            )

        return LoadResult(
            entity_type=entity_type,
            success=True,
            entities=entities,
            errors=[],
            total_rows=len(rows),
            kept_rows=len(entities),
        )

    def _row_domain_id(self, entity_type: EntityType, row: dict[str, Any]) -> str | None:
        id_field = ENTITY_MODELS[entity_type].ID_FIELD
        for k, v in row.items():
            if map_header(k) == id_field and str(v or "").strip():
                return str(v).strip()
        return None

    def _report_summary(self, path: Path, result: LoadResult) -> None:
        if result.success:
            logger.info(
                "EntitiesLoader OK: %s kept=%d/%d from %s",
                result.entity_type,
                result.kept_rows,
                result.total_rows,
                path,
            )
        else:
            counts: dict[str, int] = {}
            for it in result.errors:
                counts[it["kind"]] = counts.get(it["kind"], 0) + 1
            summary = ", ".join(f"{k}={v}" for k, v in counts.items())
            logger.error(
                "EntitiesLoader failed: %d issue(s) across %d row(s) in %s [%s]",
                len(result.errors),
                result.total_rows,
                path,
                summary or "no-summary",
            )


__all__ = ["EntitiesLoader"]
