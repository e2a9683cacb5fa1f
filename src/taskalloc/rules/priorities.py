from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from taskalloc.errors import DataError, LookupFailure
from taskalloc.schemas.models import PriorityWeights
from taskalloc.store.persistence import DocumentStore, InMemoryDocumentStore

logger = logging.getLogger(__name__)

PRIORITIES_DOCUMENT = "priorities"

# Named presets; each sums to 100 by convention
PRESETS: dict[str, dict[str, int]] = {
    "balanced": {"fulfill": 50, "workload": 30, "priority": 20},
    "fulfill-max": {"fulfill": 80, "workload": 10, "priority": 10},
    "workload-min": {"fulfill": 20, "workload": 70, "priority": 10},
}

_KEYS = ("fulfill", "workload", "priority")


class PrioritizationConfig:
    """
    @brief
    Holds the three-weight prioritization vector.

    @details
    set() replaces the whole vector at once; partial updates are rejected.
    The vector is persisted as the `priorities` config document.
    """

    def __init__(
        self, persistence: DocumentStore | None = None, default_preset: str = "balanced"
    ) -> None:
        self.persistence: DocumentStore = persistence or InMemoryDocumentStore()
        self._weights = PriorityWeights(**self._preset(default_preset))
        self._listeners: list[Callable[[PriorityWeights], None]] = []

    def subscribe(self, listener: Callable[[PriorityWeights], None]) -> None:
        self._listeners.append(listener)

    def load_from_persistence(self) -> None:
        doc = self.persistence.get_document(PRIORITIES_DOCUMENT)
        if doc and doc.get("priorities"):
            self._weights = self._build(doc["priorities"], source="load_from_persistence")

    def get(self) -> PriorityWeights:
        return self._weights.model_copy()

    def set(self, weights: PriorityWeights | Mapping[str, Any]) -> PriorityWeights:
        """
        @raises
            DataError
                Missing key, unknown key, non-integer or value outside 0..100.
            PersistenceFailure
                Propagated; the current vector is kept.
        """
        new = weights.model_copy() if isinstance(weights, PriorityWeights) else self._build(weights)
        self.persistence.put_document(PRIORITIES_DOCUMENT, {"priorities": new.model_dump()})
        self._weights = new
        logger.info(
            "Priorities set: fulfill=%d workload=%d priority=%d",
            new.fulfill,
            new.workload,
            new.priority,
        )
        for listener in list(self._listeners):
            listener(new.model_copy())
        return new.model_copy()

    def apply_preset(self, name: str) -> PriorityWeights:
        return self.set(PriorityWeights(**self._preset(name)))

    @staticmethod
    def _preset(name: str) -> dict[str, int]:
        if name not in PRESETS:
            raise LookupFailure(
                message=f"Unknown preset: {name!r}",
                source="PrioritizationConfig",
                suggested_action=f"Use one of: {', '.join(PRESETS)}",
            )
        return dict(PRESETS[name])

    @staticmethod
    def _build(data: Mapping[str, Any], source: str = "set") -> PriorityWeights:
        missing = [k for k in _KEYS if k not in data]
        if missing:
            raise DataError(
                message=f"Priority weights missing: {', '.join(missing)}",
                source=f"PrioritizationConfig.{source}",
                suggested_action="Provide fulfill, workload and priority together.",
            )
        try:
            return PriorityWeights.model_validate(dict(data))
        except ValidationError as e:
            raise DataError(
                message=f"Invalid priority weights: {e}",
                source=f"PrioritizationConfig.{source}",
                suggested_action="Each weight must be an integer between 0 and 100.",
            ) from e


__all__ = ["PrioritizationConfig", "PRESETS", "PRIORITIES_DOCUMENT"]
