"""
@brief
Pydantic data models for the taskalloc validation engine.

@details
Defines the canonical model types:
    - Client, Worker, Task: the three entity kinds (closed union `Entity`)
    - ValidationIssue: one diagnostic produced by a validation pass
    - Rule / RuleParams / RuleType: allocation rules held by the registry
    - PriorityWeights: prioritization vector consumed by the allocation stage
    - EngineConfig: runtime configuration (from config.yaml)

Entity attributes are snake_case; the canonical PascalCase column names are
aliases and are what diagnostics, stored documents and exports use. Entity
fields are deliberately lenient about content (a list field may still hold the
comma-joined text it was edited as) so that bad data is stored and diagnosed
rather than rejected at construction time.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, ClassVar, Literal, Union

from pydantic import BaseModel, Field

EntityType = Literal["clients", "workers", "tasks"]
ENTITY_TYPES: tuple[EntityType, ...] = ("clients", "workers", "tasks")


def new_internal_id() -> str:
    """Generate a fresh internal identity (assigned once, never reused)."""
    return f"id_{uuid.uuid4().hex[:12]}"


class _StrictBaseModel(BaseModel):
    """
    @brief
    Base model enforcing strict defaults for data contracts.

    @details
    Forbids unknown fields and allows population either by attribute name
    or by canonical (alias) field name.
    """

    model_config = {
        "extra": "forbid",  # Reject unknown fields
        "populate_by_name": True,  # Allow population by field name
        "use_enum_values": True,  # Export raw enum values
    }


# ------------------------------------------------------------
# Entities
# ------------------------------------------------------------
class _EntityBase(_StrictBaseModel):
    """
    @brief
    Shared behaviour of Client, Worker and Task.

    @details
    Every entity carries an internal `id` distinct from its domain identifier.
    Subclasses declare ENTITY_TYPE and ID_FIELD (canonical name of the domain id).
    """

    ENTITY_TYPE: ClassVar[EntityType]
    ID_FIELD: ClassVar[str]

    id: str = Field(default_factory=new_internal_id, description="Internal identity")

    @classmethod
    def field_names(cls) -> list[str]:
        """Canonical field names in declaration order, internal id excluded."""
        return [info.alias or name for name, info in cls.model_fields.items() if name != "id"]

    @classmethod
    def attr_for(cls, field: str) -> str | None:
        """Resolve a canonical field name (or attribute name) to the attribute name."""
        for name, info in cls.model_fields.items():
            if name == "id":
                continue
            if field == name or field == info.alias:
                return name
        return None

    @property
    def domain_id(self) -> str:
        return getattr(self, self.attr_for(self.ID_FIELD) or "")

    def get_field(self, field: str) -> Any:
        attr = self.attr_for(field)
        return getattr(self, attr) if attr else None

    def to_document(self) -> dict[str, Any]:
        """Stored representation: canonical names, internal id excluded."""
        return self.model_dump(by_alias=True, exclude={"id"})


class Client(_EntityBase):
    """
    @brief
    A client requesting tasks.

    @params
        ClientID : str
            Domain identifier, expected unique within the collection.
        PriorityLevel : int | None
            Valid range 1..5 (checked by the validator, not here).
        RequestedTaskIDs : list[str] | str
            Ordered TaskIDs; may hold comma-joined text after a text edit.
        AttributesJSON : str | None
            Raw text expected to parse as JSON.
    """

    ENTITY_TYPE: ClassVar[EntityType] = "clients"
    ID_FIELD: ClassVar[str] = "ClientID"

    client_id: str = Field("", alias="ClientID")
    client_group: str | None = Field(None, alias="ClientGroup")
    priority_level: int | None = Field(None, alias="PriorityLevel")
    requested_task_ids: list[str] | str = Field(default_factory=list, alias="RequestedTaskIDs")
    attributes_json: str | None = Field(None, alias="AttributesJSON")


class Worker(_EntityBase):
    """A worker offering skills over a set of phase slots."""

    ENTITY_TYPE: ClassVar[EntityType] = "workers"
    ID_FIELD: ClassVar[str] = "WorkerID"

    worker_id: str = Field("", alias="WorkerID")
    worker_group: str | None = Field(None, alias="WorkerGroup")
    skills: list[str] | str = Field(default_factory=list, alias="Skills")
    available_slots: list[int | float | str] | str = Field(
        default_factory=list, alias="AvailableSlots"
    )
    max_load_per_phase: int | None = Field(None, alias="MaxLoadPerPhase")
    max_concurrent: int | None = Field(None, alias="MaxConcurrent")


class Task(_EntityBase):
    """A task with required skills and preferred phases (ints or "start-end" ranges)."""

    ENTITY_TYPE: ClassVar[EntityType] = "tasks"
    ID_FIELD: ClassVar[str] = "TaskID"

    task_id: str = Field("", alias="TaskID")
    required_skills: list[str] | str = Field(default_factory=list, alias="RequiredSkills")
    preferred_phases: list[int | str] | str = Field(default_factory=list, alias="PreferredPhases")
    duration: int | None = Field(None, alias="Duration")
    co_run_task_ids: list[str] | str = Field(default_factory=list, alias="CoRunTaskIDs")


Entity = Union[Client, Worker, Task]

ENTITY_MODELS: dict[EntityType, type[_EntityBase]] = {
    "clients": Client,
    "workers": Worker,
    "tasks": Task,
}


def entity_from_document(entity_type: EntityType, entity_id: str, fields: dict[str, Any]) -> Any:
    """Rebuild an entity from its stored document and internal id."""
    return ENTITY_MODELS[entity_type].model_validate({**fields, "id": entity_id})


# ------------------------------------------------------------
# Diagnostics
# ------------------------------------------------------------
class ValidationIssue(_StrictBaseModel):
    """
    @brief
    One diagnostic entry produced by a validation pass.

    @details
    `id` is the entity's domain id, the sentinel "Global" for collection-wide
    findings, or the internal id when the domain id is missing. `internal_id`
    names the exact record the issue was raised on (None for "Global"); it is
    not serialized, since domain ids may repeat. Never persisted.
    """

    model_config = {**_StrictBaseModel.model_config, "frozen": True}

    entity_type: EntityType = Field(..., alias="entityType")
    id: str
    field: str
    message: str
    suggestion: str | None = None
    internal_id: str | None = Field(None, exclude=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ------------------------------------------------------------
# Rules and prioritization
# ------------------------------------------------------------
class RuleType(str, Enum):
    CO_RUN = "CO_RUN"
    EXCLUSION = "EXCLUSION"
    SEQUENTIAL = "SEQUENTIAL"


class RuleParams(_StrictBaseModel):
    """Rule parameters. Contents of taskIds are not validated here."""

    task_ids: list[str] = Field(default_factory=list, alias="taskIds")


class Rule(_StrictBaseModel):
    """An allocation constraint over a set of task domain ids."""

    id: str = Field(default_factory=new_internal_id, description="Internal identity")
    type: RuleType = Field(..., description="CO_RUN | EXCLUSION | SEQUENTIAL")
    params: RuleParams = Field(default_factory=RuleParams)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class PriorityWeights(_StrictBaseModel):
    """
    @brief
    Relative emphasis among fulfillment, workload balance and client priority.

    @details
    Each weight is an integer in 0..100. No sum invariant is enforced; the
    named presets sum to 100 by convention.
    """

    fulfill: int = Field(50, ge=0, le=100, description="Maximize fulfillment")
    workload: int = Field(30, ge=0, le=100, description="Minimize workload")
    priority: int = Field(20, ge=0, le=100, description="Client priority")


# ------------------------------------------------------------
# Runtime configuration
# ------------------------------------------------------------
class ValidationConfig(BaseModel):
    """
    @brief
    Controls behavior of the validation report.
    """

    write_report: bool = True


class EngineConfig(_StrictBaseModel):
    """
    @brief
    Represents the full runtime configuration loaded from config.yaml.

    @details
    Covers coercion strictness, validation execution and advisory thresholds,
    the default prioritization preset and filesystem locations.
    """

    strict_numeric: bool = Field(
        False, description="Raise DataError instead of falling back to 0 on numeric parse failure"
    )
    parallel_checks: bool = Field(
        False, description="Run independent validation check groups on a thread pool"
    )
    advisory_priority_level: int = Field(
        1, ge=1, le=5, description="PriorityLevel that triggers the overload advisory"
    )
    advisory_max_requested: int = Field(
        5, ge=0, description="Advisory fires when RequestedTaskIDs exceeds this count"
    )
    default_preset: str = Field("balanced", description="Preset applied when no weights stored")

    data_dir: str | None = Field(None, description="Directory for the JSON document store")
    output_dir: str = Field("data/output", description="Directory for reports and exports")
    validation: ValidationConfig = Field(default_factory=ValidationConfig.model_construct)


__all__ = [
    "Client",
    "Worker",
    "Task",
    "Entity",
    "EntityType",
    "ENTITY_TYPES",
    "ENTITY_MODELS",
    "ValidationIssue",
    "Rule",
    "RuleParams",
    "RuleType",
    "PriorityWeights",
    "EngineConfig",
    "new_internal_id",
    "entity_from_document",
]
