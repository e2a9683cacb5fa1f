# src/taskalloc/validator/validator.py
from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterator, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from taskalloc.dataloader.normalizer import as_list, coerce_list
from taskalloc.errors import ReportError
from taskalloc.schemas.models import (
    ENTITY_MODELS,
    ENTITY_TYPES,
    Client,
    EngineConfig,
    EntityType,
    Task,
    ValidationIssue,
    Worker,
)
from taskalloc.store.atomic import atomic_write_text
from taskalloc.store.entity_store import EntityStore, StoreSnapshot

logger = logging.getLogger(__name__)

GLOBAL_ID = "Global"

_RANGE = re.compile(r"\d+-\d+")
_NUMBER = re.compile(
    r"[+-]?(Infinity|(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?)|0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+"
)
_NON_DIGIT = re.compile(r"\D")


# ----------------------------
# AUXILIARY STRUCTURES / FUNCTIONS
# ----------------------------
@dataclass(frozen=True)
class ValidationOutcome:
    """
    @brief
    Ordered result of one validation pass.

    @details
    Unpacks as the `(errors, suggestions)` pair. Two outcomes computed from the
    same store compare equal, element by element and in the same order.
    """

    errors: tuple[ValidationIssue, ...] = ()
    suggestions: tuple[str, ...] = ()

    def __iter__(self) -> Iterator[list[Any]]:
        yield list(self.errors)
        yield list(self.suggestions)

    @property
    def valid(self) -> bool:
        return not self.errors


def _is_numeric(value: Any) -> bool:
    """
    Number-like check for slot values, with the acceptance rules of a JS
    `Number()` cast: blank text reads as 0, "Infinity" and 0x / 0o / 0b
    literals are numbers, NaN is not.
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == value
    text = str(value).strip()
    return not text or _NUMBER.fullmatch(text) is not None


def _reject_constant(name: str) -> Any:
    """`json.loads` hook: NaN / Infinity are not JSON."""
    raise ValueError(f"{name} is not valid JSON")


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value))
    except ValueError:
        return None


# ---------------------------
# VALIDATOR CLASS (instance core)
# ----------------------------
class Validator:
    """
    @brief
    Structural and cross-collection validator for clients, workers and tasks.

    @details
    Read-only over a store snapshot. Check groups run in a fixed order:
    identity (duplicates / missing ids per collection), clients, workers,
    tasks, global skill coverage; advisory suggestions are collected apart
    from errors. Groups are independent and may run on a thread pool, but
    their results are always concatenated in that fixed order. Malformed
    values become diagnostics; nothing raises out of run_all_checks().
    """

    # ---------- Constructor ----------
    def __init__(self, snapshot: StoreSnapshot, cfg: EngineConfig | None = None) -> None:
        self.cfg = cfg or EngineConfig()
        self.clients: Sequence[Client] = tuple(snapshot.get("clients", ()))
        self.workers: Sequence[Worker] = tuple(snapshot.get("workers", ()))
        self.tasks: Sequence[Task] = tuple(snapshot.get("tasks", ()))

        # (1) Index sets; skill unions keep first-seen order for stable output
        self.task_ids: set[str] = {t.domain_id for t in self.tasks}
        self.worker_skills: dict[str, None] = dict.fromkeys(
            str(s) for w in self.workers for s in as_list(w.skills)
        )
        self.required_skills: dict[str, None] = dict.fromkeys(
            str(s) for t in self.tasks for s in as_list(t.required_skills)
        )

        # (2) Accumulators
        self.errors: list[ValidationIssue] = []
        self.suggestions: list[str] = []
        self.checks: dict[str, bool] = {}

    # ---------- Public lifecycle API ----------
    def run_all_checks(self) -> None:
        """
        @brief
        Execute the full validation sequence.

        @details
        Each group returns its own issue list so that parallel execution
        cannot interleave output. A group that fails unexpectedly is reported
        as a single diagnostic instead of aborting the pass.
        """
        groups: list[tuple[str, EntityType, Callable[[], list[ValidationIssue]]]] = [
            ("Identity", "clients", self._check_identity),
            ("Clients", "clients", self._check_clients),
            ("Workers", "workers", self._check_workers),
            ("Tasks", "tasks", self._check_tasks),
            ("SkillCoverage", "tasks", self._check_skill_coverage),
        ]

        if self.cfg.parallel_checks:
            with ThreadPoolExecutor(max_workers=len(groups)) as pool:
                futures = [pool.submit(self._run_group, *group) for group in groups]
                results = [f.result() for f in futures]
        else:
            results = [self._run_group(*group) for group in groups]

        for (name, _, _), issues in zip(groups, results):
            self.checks[name] = not issues
            self.errors.extend(issues)

        self.suggestions = self._advise_clients()
        logger.info(
            "Validation finished: %d error(s), %d suggestion(s)",
            len(self.errors),
            len(self.suggestions),
        )

    def outcome(self) -> ValidationOutcome:
        return ValidationOutcome(errors=tuple(self.errors), suggestions=tuple(self.suggestions))

    def build_report(self) -> dict[str, Any]:
        """
        @brief
        Assemble validation results into a serializable dictionary.

        @returns
            {timestamp, valid, errors, suggestions, checks, counts}
        """
        counts = {t: 0 for t in ENTITY_TYPES}
        for issue in self.errors:
            counts[issue.entity_type] += 1

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "valid": not self.errors,
            "errors": [issue.to_dict() for issue in self.errors],
            "suggestions": list(self.suggestions),
            "checks": dict(self.checks),
            "counts": counts,
        }

    def save_report(
        self,
        report: dict[str, Any],
        out_dir: Path | None = None,
        filename: str = "validation_report.json",
    ) -> Path:
        """
        Writes the report atomically to disk.

        Args:
            report: Validation report dictionary.
            out_dir: Target directory (defaults to cfg.output_dir).
            filename: Target filename (default 'validation_report.json').

        Returns:
            Path to the written JSON file.
        """
        final_path = Path(out_dir or self.cfg.output_dir) / filename
        try:
            atomic_write_text(final_path, json.dumps(report, indent=2, ensure_ascii=False))
        except OSError as e:
            raise ReportError(
                f"Failed to write validation report: {e}",
                source="Validator.save_report",
                suggested_action="Check disk permissions and free space.",
            ) from e

        logger.info("Validation report saved: %s", final_path)
        return final_path

    # ---------- Checks (SRP: each group in a separate method) ----------
    def _run_group(
        self, name: str, entity_type: EntityType, check: Callable[[], list[ValidationIssue]]
    ) -> list[ValidationIssue]:
        try:
            return check()
        except Exception as e:
            logger.exception("Validation group %s failed", name)
            return [self._issue(entity_type, GLOBAL_ID, name, f"Check could not complete: {e}")]

    def _check_identity(self) -> list[ValidationIssue]:
        """
        @brief
        Flag missing and repeated domain ids, per collection.

        @details
        The first occurrence of an id is never flagged; every later occurrence
        is. A missing id is reported under the entity's internal id.
        """
        issues: list[ValidationIssue] = []
        collections: list[tuple[EntityType, Sequence[Any]]] = [
            ("clients", self.clients),
            ("workers", self.workers),
            ("tasks", self.tasks),
        ]
        for entity_type, entities in collections:
            id_field = ENTITY_MODELS[entity_type].ID_FIELD
            seen: set[str] = set()
            for entity in entities:
                domain_id = str(entity.domain_id or "").strip()
                if not domain_id:
                    issues.append(self._entity_issue(entity, id_field, "Required ID is missing."))
                    continue
                if domain_id in seen:
                    issues.append(
                        self._entity_issue(entity, id_field, f"Duplicate ID found: {domain_id}.")
                    )
                seen.add(domain_id)
        return issues

    def _check_clients(self) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for c in self.clients:
            if c.priority_level is not None:
                level = _number(c.priority_level)
                if level is None or not 1 <= level <= 5:
                    issues.append(self._entity_issue(c, "PriorityLevel", "Must be between 1-5."))

            if c.attributes_json:
                try:
                    json.loads(c.attributes_json, parse_constant=_reject_constant)
                except (TypeError, ValueError):
                    issues.append(self._entity_issue(c, "AttributesJSON", "Invalid JSON format."))

            for tid in as_list(c.requested_task_ids):
                if str(tid) not in self.task_ids:
                    issues.append(
                        self._entity_issue(c, "RequestedTaskIDs", f"Unknown TaskID: {tid}.")
                    )
        return issues

    def _check_workers(self) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for w in self.workers:
            if w.max_load_per_phase is not None:
                load = _number(w.max_load_per_phase)
                if load is None or load < 0:
                    issues.append(self._entity_issue(w, "MaxLoadPerPhase", "Cannot be negative."))

            if w.max_concurrent is not None:
                concurrent = _number(w.max_concurrent)
                if concurrent is None or concurrent < 1:
                    issues.append(self._entity_issue(w, "MaxConcurrent", "Must be at least 1."))

            slots = as_list(w.available_slots)
            if any(not _is_numeric(s) for s in slots):
                issues.append(
                    self._entity_issue(
                        w,
                        "AvailableSlots",
                        "Contains non-numeric values.",
                        suggestion=", ".join(_NON_DIGIT.sub("", str(s)) for s in slots),
                    )
                )
        return issues

    def _check_tasks(self) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for t in self.tasks:
            if t.duration is not None:
                duration = _number(t.duration)
                if duration is None or duration < 1:
                    issues.append(self._entity_issue(t, "Duration", "Must be at least 1."))

            for skill in as_list(t.required_skills):
                if str(skill) not in self.worker_skills:
                    issues.append(
                        self._entity_issue(
                            t, "RequiredSkills", f"No worker has the required skill: {skill}."
                        )
                    )

            # "1-3, 5" and ["1-3", "5"] both read as ["1-3", 5]
            phases = coerce_list("PreferredPhases", t.preferred_phases)
            if any(isinstance(p, str) and not _RANGE.fullmatch(p) for p in phases):
                issues.append(
                    self._entity_issue(
                        t, "PreferredPhases", 'Invalid range format. Use "start-end".'
                    )
                )
        return issues

    def _check_skill_coverage(self) -> list[ValidationIssue]:
        return [
            self._issue(
                "tasks",
                GLOBAL_ID,
                "Skill Coverage",
                f"The skill '{skill}' is required by a task but not provided by any worker.",
            )
            for skill in self.required_skills
            if skill not in self.worker_skills
        ]

    def _advise_clients(self) -> list[str]:
        """Advisory, non-blocking: top-priority clients requesting many tasks."""
        advice: list[str] = []
        for c in self.clients:
            requested = as_list(c.requested_task_ids)
            if (
                c.priority_level == self.cfg.advisory_priority_level
                and len(requested) > self.cfg.advisory_max_requested
            ):
                advice.append(
                    f"Client {self._label(c)} has PriorityLevel {c.priority_level} with "
                    f"{len(requested)} requested tasks; consider splitting the request "
                    "or lowering its priority."
                )
        return advice

    # ---------- Utilities ----------
    @staticmethod
    def _label(entity: Any) -> str:
        return str(entity.domain_id or "").strip() or entity.id

    def _entity_issue(
        self, entity: Any, field: str, message: str, suggestion: str | None = None
    ) -> ValidationIssue:
        """Issue raised on one record; carries that record's internal id."""
        return self._issue(
            entity.ENTITY_TYPE,
            self._label(entity),
            field,
            message,
            suggestion=suggestion,
            internal_id=entity.id,
        )

    @staticmethod
    def _issue(
        entity_type: EntityType,
        entity_id: str,
        field: str,
        message: str,
        suggestion: str | None = None,
        internal_id: str | None = None,
    ) -> ValidationIssue:
        return ValidationIssue(
            entity_type=entity_type,
            id=entity_id,
            field=field,
            message=message,
            suggestion=suggestion,
            internal_id=internal_id,
        )


# ----------------------------
# THIN FACADE
# ----------------------------
def validate(
    source: EntityStore | Mapping[EntityType, Sequence[Any]],
    cfg: EngineConfig | None = None,
) -> ValidationOutcome:
    """
    @brief
    Validate a store (or snapshot) and return the ordered outcome.

    @details
    Pure and deterministic: the same store contents always produce the same
    errors and suggestions in the same order. Empty collections yield nothing.
    """
    snapshot = source.snapshot() if isinstance(source, EntityStore) else source
    validator = Validator(snapshot, cfg)
    validator.run_all_checks()
    return validator.outcome()


__all__ = ["GLOBAL_ID", "Validator", "ValidationOutcome", "validate"]
