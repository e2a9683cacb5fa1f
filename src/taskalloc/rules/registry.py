# src/taskalloc/rules/registry.py
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from taskalloc.errors import DataError, LookupFailure, TranslationFailure
from taskalloc.schemas.models import Rule, RuleParams, RuleType
from taskalloc.store.persistence import DocumentStore, InMemoryDocumentStore
from taskalloc.translation.collaborators import (
    RuleTranslator,
    TranslationResult,
    parse_structured_response,
    translate,
)

logger = logging.getLogger(__name__)

RULES_DOCUMENT = "rules"
RULE_TYPES = tuple(t.value for t in RuleType)


class RuleRegistry:
    """
    @brief
    Ordered collection of allocation rules.

    @details
    Rules keep insertion order. Every mutation writes the whole list to the
    `rules` config document first and swaps it in memory only when the write
    succeeded. The registry does not judge taskIds contents (empty lists and
    repeats are accepted); that is left to the allocation stage.
    """

    def __init__(self, persistence: DocumentStore | None = None) -> None:
        self.persistence: DocumentStore = persistence or InMemoryDocumentStore()
        self._rules: list[Rule] = []
        self._listeners: list[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def load_from_persistence(self) -> None:
        doc = self.persistence.get_document(RULES_DOCUMENT) or {}
        try:
            self._rules = [Rule.model_validate(r) for r in doc.get("rules", [])]
        except ValidationError as e:
            raise DataError(
                message=f"Stored rules document is malformed: {e}",
                source="RuleRegistry.load_from_persistence",
                suggested_action="Fix or delete config/rules.json.",
            ) from e
        logger.info("Loaded %d rule(s)", len(self._rules))

    # ---------- Reads ----------
    def get(self, rule_id: str) -> Rule:
        for rule in self._rules:
            if rule.id == rule_id:
                return rule
        raise LookupFailure(
            message=f"Rule {rule_id} not found.",
            source="RuleRegistry.get",
            suggested_action="Refresh the rule list; it may have been deleted.",
        )

    # ---------- Mutations ----------
    def add(self, rule_type: str | RuleType, params: Mapping[str, Any] | None = None) -> Rule:
        """Append a manually created rule. Params default to an empty taskIds list."""
        try:
            rule = Rule(type=rule_type, params=RuleParams.model_validate(dict(params or {})))
        except ValidationError as e:
            raise DataError(
                message=f"Invalid rule: {e}",
                source="RuleRegistry.add",
                suggested_action=f"Use a type in {', '.join(RULE_TYPES)} and params {{taskIds: [...]}}.",
            ) from e
        self._commit([*self._rules, rule])
        logger.info("Added rule %s (%s)", rule.id, rule.type)
        return rule

    def update_params(self, rule_id: str, params: Mapping[str, Any]) -> Rule:
        """Replace the params of one rule; the type and position are kept."""
        current = self.get(rule_id)
        try:
            new_params = RuleParams.model_validate(dict(params))
        except ValidationError as e:
            raise DataError(
                message=f"Invalid rule params: {e}",
                source="RuleRegistry.update_params",
                suggested_action="Provide params as {taskIds: [...]}.",
            ) from e
        updated = current.model_copy(update={"params": new_params})
        self._commit([updated if r.id == rule_id else r for r in self._rules])
        return updated

    def delete(self, rule_id: str) -> None:
        self.get(rule_id)
        self._commit([r for r in self._rules if r.id != rule_id])
        logger.info("Deleted rule %s", rule_id)

    def accept_candidate(self, candidate: Any) -> Rule:
        """
        @brief
        Append a translator-produced {type, params} candidate after shape checks.

        @details
        Both keys must be present; type must be a canonical rule type and
        params must carry a taskIds list of strings. Anything else raises
        TranslationFailure and leaves the registry untouched.
        """
        data = parse_structured_response(candidate, source="RuleRegistry.accept_candidate")

        def reject(reason: str) -> TranslationFailure:
            return TranslationFailure(
                message=f"Rejected translated rule: {reason}",
                source="RuleRegistry.accept_candidate",
                suggested_action="Rephrase the rule or add it manually.",
            )

        if data.get("type") is None or data.get("params") is None:
            raise reject("both 'type' and 'params' are required")
        if data["type"] not in RULE_TYPES:
            raise reject(f"unsupported type {data['type']!r}")
        params = data["params"]
        if not isinstance(params, Mapping):
            raise reject("'params' must be an object")
        task_ids = params.get("taskIds")
        if not isinstance(task_ids, list) or not all(isinstance(t, str) for t in task_ids):
            raise reject("'params.taskIds' must be a list of strings")

        rule = Rule(type=data["type"], params=RuleParams(taskIds=list(task_ids)))
        self._commit([*self._rules, rule])
        logger.info("Accepted translated rule %s (%s)", rule.id, rule.type)
        return rule

    async def add_from_text(
        self, prompt_text: str, translator: RuleTranslator
    ) -> TranslationResult[Rule]:
        """Translate free text into a rule; only a well-shaped result is appended."""
        result = await translate(
            translator.translate_rule(prompt_text), source="RuleRegistry.add_from_text"
        )
        if not result.success:
            return TranslationResult.failed(result.error)
        try:
            return TranslationResult.ok(self.accept_candidate(result.value))
        except TranslationFailure as e:
            logger.warning("%s", e)
            return TranslationResult.failed(e)

    def _commit(self, rules: list[Rule]) -> None:
        self.persistence.put_document(
            RULES_DOCUMENT, {"rules": [r.to_document() for r in rules]}
        )
        self._rules = rules
        for listener in list(self._listeners):
            listener()

    def list_rules(self) -> list[Rule]:
        return [*self._rules]


__all__ = ["RuleRegistry", "RULE_TYPES", "RULES_DOCUMENT"]
