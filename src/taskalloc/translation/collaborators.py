# src/taskalloc/translation/collaborators.py
"""
@brief
Boundary to the external free-text translation services.

@details
Three asynchronous collaborators are recognised:
    - RuleTranslator.translate_rule(prompt)                     → {type, params}
    - EditTranslator.translate_edit(command, snapshot)          → {entityType, id, field, value}
    - SuggestionValidator.validate_suggestion(type, id, field, raw) → normalized text

They are black boxes: a call may raise, return nothing, or return text that is
not the promised structure. `translate()` folds every one of those outcomes into
a TranslationResult carrying a TranslationFailure, so nothing malformed ever
reaches the rule registry or the entity store.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

from pydantic import Field, ValidationError

from taskalloc.errors import TranslationFailure
from taskalloc.schemas.models import EntityType, _StrictBaseModel

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCED_JSON = re.compile(r"```(?:json)?\s*\n([\s\S]*?)\n?```")

# Singular / plural spellings a translator may use for the collection name
_ENTITY_ALIASES: dict[str, EntityType] = {
    "client": "clients",
    "clients": "clients",
    "worker": "workers",
    "workers": "workers",
    "task": "tasks",
    "tasks": "tasks",
}


class RuleTranslator(Protocol):
    async def translate_rule(self, prompt_text: str) -> Any: ...


class EditTranslator(Protocol):
    async def translate_edit(
        self, command_text: str, snapshot: dict[str, list[dict[str, Any]]]
    ) -> Any: ...


class SuggestionValidator(Protocol):
    async def validate_suggestion(
        self, entity_type: EntityType, domain_id: str, field: str, raw_suggestion: str
    ) -> Any: ...


@dataclass(slots=True)
class TranslationResult(Generic[T]):
    """
    Outcome of one call to a translation collaborator.

    Fields:
        success: True when the collaborator produced a usable payload.
        value: The payload (raw mapping or text), None on failure.
        error: TranslationFailure describing what went wrong, None on success.
    """

    success: bool
    value: T | None = None
    error: TranslationFailure | None = None

    @classmethod
    def ok(cls, value: T) -> TranslationResult[T]:
        return cls(success=True, value=value)

    @classmethod
    def failed(cls, error: TranslationFailure) -> TranslationResult[T]:
        return cls(success=False, error=error)


class EditCommand(_StrictBaseModel):
    """Structured single-field edit produced by an EditTranslator."""

    entity_type: EntityType = Field(..., alias="entityType")
    id: str = Field(..., min_length=1)
    field: str = Field(..., min_length=1)
    value: Any


async def translate(call: Awaitable[Any], source: str) -> TranslationResult[Any]:
    """
    @brief
    Await a collaborator call and fold every failure mode into the result.

    @params
        call : Awaitable[Any]
            The pending collaborator coroutine.
        source : str
            Name used in the failure's `source` field and in logs.
    """
    try:
        raw = await call
    except TranslationFailure as e:
        logger.warning("Translation failed in %s: %s", source, e.args[0])
        return TranslationResult.failed(e)
    except Exception as e:
        logger.warning("Translation collaborator raised in %s: %s", source, e)
        return TranslationResult.failed(
            TranslationFailure(
                message=f"Translator error: {e}",
                source=source,
                suggested_action="Retry, or enter the change manually.",
            )
        )

    if raw is None or (isinstance(raw, str) and not raw.strip()):
        logger.warning("Translation collaborator returned nothing in %s", source)
        return TranslationResult.failed(
            TranslationFailure(
                message="Translator returned no response.",
                source=source,
                suggested_action="Retry, or enter the change manually.",
            )
        )
    return TranslationResult.ok(raw)


def parse_structured_response(raw: Any, source: str = "translation") -> dict[str, Any]:
    """
    @brief
    Accept a mapping, a JSON object string, or text holding a fenced ```json block.

    @raises
        TranslationFailure
            When no JSON object can be recovered.
    """
    if isinstance(raw, Mapping):
        return dict(raw)

    if isinstance(raw, str):
        candidates = [raw]
        match = _FENCED_JSON.search(raw)
        if match:
            candidates.append(match.group(1))
        for text in candidates:
            try:
                data = json.loads(text)
            except ValueError:
                continue
            if isinstance(data, dict):
                return data

    raise TranslationFailure(
        message="Invalid translator response format: expected a JSON object.",
        source=source,
        suggested_action="Rephrase the request or enter it manually.",
    )


def parse_edit_command(raw: Any) -> EditCommand:
    """
    @brief
    Validate an EditTranslator payload into an EditCommand.

    @details
    The collection may be named singular or plural, in any case. All four
    of entityType, id, field and value must be present.

    @raises
        TranslationFailure
            On any missing or malformed key.
    """
    data = parse_structured_response(raw, source="parse_edit_command")

    entity = _ENTITY_ALIASES.get(str(data.get("entityType", "")).strip().lower())
    if entity is None:
        raise TranslationFailure(
            message=f"Invalid entity type: {data.get('entityType')!r}",
            source="parse_edit_command",
            suggested_action='Use format: Set [entity] [ID] [field] to [value], e.g. "Set Client C1 PriorityLevel to 3"',
        )
    if "value" not in data or data["value"] is None:
        raise TranslationFailure(
            message="Edit command has no value.",
            source="parse_edit_command",
            suggested_action='Use format: Set [entity] [ID] [field] to [value], e.g. "Set Client C1 PriorityLevel to 3"',
        )

    try:
        return EditCommand.model_validate(
            {
                "entityType": entity,
                "id": str(data.get("id") or ""),
                "field": str(data.get("field") or ""),
                "value": data["value"],
            }
        )
    except ValidationError as e:
        raise TranslationFailure(
            message=f"Malformed edit command: {e}",
            source="parse_edit_command",
            suggested_action='Use format: Set [entity] [ID] [field] to [value], e.g. "Set Client C1 PriorityLevel to 3"',
        ) from e


__all__ = [
    "RuleTranslator",
    "EditTranslator",
    "SuggestionValidator",
    "TranslationResult",
    "EditCommand",
    "translate",
    "parse_structured_response",
    "parse_edit_command",
]
