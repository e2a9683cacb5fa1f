# src/taskalloc/engine.py
"""
@brief
EngineSession: one owned workspace of entities, rules and priority weights.

@details
Wires the components together the way a caller (UI, API, script) uses them:
    - every EntityStore mutation re-runs validation synchronously, so
      `errors` / `suggestions` always describe the current store;
    - accepted fixes, natural-language edits and sanity-checked suggestions
      all re-enter through FixApplier, i.e. through the ordinary upsert path;
    - translation calls are awaited without any lock. A result that arrives
      after newer state is simply applied on top (last-applied-wins); discarding
      stale results is the caller's decision.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from taskalloc.errors import DataError, TranslationFailure
from taskalloc.fixes.applier import FixApplier
from taskalloc.rules.priorities import PrioritizationConfig
from taskalloc.rules.registry import RuleRegistry
from taskalloc.schemas.models import (
    ENTITY_TYPES,
    EngineConfig,
    Entity,
    EntityType,
    ValidationIssue,
)
from taskalloc.store.entity_store import EntityStore
from taskalloc.store.persistence import DocumentStore, InMemoryDocumentStore, JsonFileDocumentStore
from taskalloc.translation.collaborators import (
    EditTranslator,
    SuggestionValidator,
    TranslationResult,
    parse_edit_command,
    translate,
)
from taskalloc.validator.validator import ValidationOutcome, validate

logger = logging.getLogger(__name__)


class EngineSession:
    def __init__(
        self, cfg: EngineConfig | None = None, persistence: DocumentStore | None = None
    ) -> None:
        self.cfg = cfg or EngineConfig()
        self.persistence: DocumentStore = persistence or InMemoryDocumentStore()

        self.store = EntityStore(self.persistence)
        self.rules = RuleRegistry(self.persistence)
        self.priorities = PrioritizationConfig(self.persistence, self.cfg.default_preset)
        self.fixes = FixApplier(self.store, self.cfg)

        self._outcome = ValidationOutcome()
        self.store.subscribe(self._on_store_change)

    @classmethod
    def from_config(cls, cfg: EngineConfig) -> EngineSession:
        """File-backed session when cfg.data_dir is set, in-memory otherwise."""
        persistence: DocumentStore = (
            JsonFileDocumentStore(Path(cfg.data_dir)) if cfg.data_dir else InMemoryDocumentStore()
        )
        return cls(cfg, persistence)

    def load(self) -> ValidationOutcome:
        """Hydrate entities, rules and weights from persistence, then validate."""
        self.rules.load_from_persistence()
        self.priorities.load_from_persistence()
        self.store.load_from_persistence()
        return self.revalidate()

    # ---------- Validation state ----------
    @property
    def outcome(self) -> ValidationOutcome:
        return self._outcome

    @property
    def errors(self) -> list[ValidationIssue]:
        return list(self._outcome.errors)

    @property
    def suggestions(self) -> list[str]:
        return list(self._outcome.suggestions)

    def revalidate(self) -> ValidationOutcome:
        self._outcome = validate(self.store, self.cfg)
        return self._outcome

    def _on_store_change(self, entity_type: EntityType) -> None:
        logger.debug("Store changed (%s); re-validating", entity_type)
        self.revalidate()

    # ---------- Mutations ----------
    def import_entities(self, entity_type: EntityType, entities: Iterable[Entity]) -> None:
        self.store.replace_all(entity_type, entities)

    def apply_fix(self, entity_type: EntityType, domain_id: str, field: str, value: Any) -> Entity:
        return self.fixes.apply_fix(entity_type, domain_id, field, value)

    def apply_issue_suggestion(self, issue: ValidationIssue) -> Entity:
        """
        Accept the suggestion carried by a diagnostic as-is. The fix goes to the
        record the issue was raised on, not to the first record sharing its
        domain id.
        """
        if issue.suggestion is None:
            raise DataError(
                message=f"No suggestion attached to {issue.entity_type} {issue.id} {issue.field}",
                source="EngineSession.apply_issue_suggestion",
                suggested_action="Edit the field manually.",
            )
        if issue.internal_id is not None:
            return self.fixes.apply_fix_to(
                issue.entity_type, issue.internal_id, issue.field, issue.suggestion
            )
        return self.apply_fix(issue.entity_type, issue.id, issue.field, issue.suggestion)

    async def apply_edit_command(
        self, command_text: str, translator: EditTranslator
    ) -> TranslationResult[Entity]:
        """
        @brief
        Apply a free-text single-field edit through an EditTranslator.

        @details
        A failed or malformed translation is returned as a failed result and
        nothing is written; that includes a command naming a field the entity
        does not have, or a value strict numeric coercion rejects. A well-formed
        command naming an unknown record raises LookupFailure from the fix applier.
        """
        snapshot = {
            t: [{"id": e.id, **e.to_document()} for e in self.store.get_all(t)]
            for t in ENTITY_TYPES
        }
        result = await translate(
            translator.translate_edit(command_text, snapshot),
            source="EngineSession.apply_edit_command",
        )
        if not result.success:
            return TranslationResult.failed(result.error)

        try:
            command = parse_edit_command(result.value)
        except TranslationFailure as e:
            logger.warning("%s", e)
            return TranslationResult.failed(e)

        try:
            entity = self.fixes.apply_fix(
                command.entity_type, command.id, command.field, command.value
            )
        except DataError as e:
            failure = TranslationFailure(
                message=f"Edit command cannot be applied: {e.args[0]}",
                source="EngineSession.apply_edit_command",
                suggested_action=e.suggested_action,
            )
            logger.warning("%s", failure)
            return TranslationResult.failed(failure)
        return TranslationResult.ok(entity)

    async def apply_suggested_fix(
        self,
        entity_type: EntityType,
        domain_id: str,
        field: str,
        raw_suggestion: str,
        validator: SuggestionValidator,
    ) -> TranslationResult[Entity]:
        """Have an external validator normalize a suggestion, then apply it as a fix."""
        result = await translate(
            validator.validate_suggestion(entity_type, domain_id, field, raw_suggestion),
            source="EngineSession.apply_suggested_fix",
        )
        if not result.success:
            return TranslationResult.failed(result.error)
        if not isinstance(result.value, str):
            failure = TranslationFailure(
                message=f"Suggestion validator returned {type(result.value).__name__}, expected text.",
                source="EngineSession.apply_suggested_fix",
                suggested_action="Apply the raw suggestion or edit manually.",
            )
            logger.warning("%s", failure)
            return TranslationResult.failed(failure)

        entity = self.fixes.apply_fix(entity_type, domain_id, field, result.value.strip())
        return TranslationResult.ok(entity)


__all__ = ["EngineSession"]
