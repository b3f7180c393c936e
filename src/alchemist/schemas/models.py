# src/alchemist/schemas/models.py
"""
@brief
Pydantic data models for the Data Alchemist project.

@details
Defines the canonical model types:
    - Client, Worker, Task: typed entity records (one row of clients/workers/tasks files)
    - ValidationFinding: one data-quality issue produced by a validation pass
    - AlchemistConfig: runtime configuration (from config.yaml) with nested sections

Entity records keep camelCase aliases (requestedTaskIds, maxLoadPerPhase, ...)
because those names are the external contract of the finding `field` values
and of the exported files. Validation of business meaning is NOT done here:
records may be created through `model_construct()` with raw values so that
coercion failures surface later as findings instead of exceptions.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from alchemist.schemas.rules import PrioritizationWeights

EntityType = Literal["client", "worker", "task"]
Severity = Literal["error", "warning", "info"]

SYSTEM_ENTITY_ID = "system"

ENTITY_FILE_SUFFIXES = (".csv", ".xlsx", ".xls")
RULE_FILE_SUFFIXES = (".json", ".yaml", ".yml")


class _StrictBaseModel(BaseModel):
    """
    @brief
    Base model for configuration contracts.

    @details
    Forbids unknown fields so typos in config.yaml fail loudly.
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        use_enum_values=True,
    )


class _EntityModel(BaseModel):
    """
    @brief
    Base model for uploaded entity records.

    @details
    Accepts both snake_case field names and camelCase aliases.
    Unknown columns are ignored: uploaded sheets routinely carry extra columns.
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Client(_EntityModel):
    """
    @brief
    One client record from the clients file.

    @params
        id : str
            Unique client identifier.
        priority : int | None
            Priority level, 1..5 where 5 is highest. None when the column is absent.
        requested_task_ids : list[str]
            Task identifiers requested by the client (duplicates are kept).
    """

    id: str = Field("", description="Unique identifier")
    name: str = Field("", description="Display name")
    priority: int | None = Field(None, description="Priority level 1..5")
    requested_task_ids: list[str] = Field(default_factory=list)
    group_tag: str | None = None
    attributes_json: str | None = Field(None, description="Free-form JSON payload")
    email: str | None = None
    phone: str | None = None
    address: str | None = None


class Worker(_EntityModel):
    """
    @brief
    One worker record from the workers file.

    @details
    Skills are stored as given and compared case-insensitively.
    `available_slots` lists the phases in which the worker can be scheduled.
    """

    id: str = Field("", description="Unique identifier")
    name: str = Field("", description="Display name")
    skills: list[str] = Field(default_factory=list)
    available_slots: list[int] = Field(default_factory=list)
    max_load_per_phase: int | None = Field(None, description="Capacity per phase")
    worker_group: str | None = None
    qualification_level: int | None = None
    email: str | None = None
    attributes_json: str | None = None
    preferred_phases: list[int] | None = None


class Task(_EntityModel):
    """
    @brief
    One task record from the tasks file.

    @details
    `client_id` and `priority` are legacy columns kept for older uploads.
    `dependencies` must reference other tasks; the dependency graph must be acyclic.
    """

    id: str = Field("", description="Unique identifier")
    name: str = Field("", description="Display name")
    category: str | None = None
    duration: int | None = Field(None, description="Number of phases occupied")
    required_skills: list[str] = Field(default_factory=list)
    preferred_phases: list[int] | None = None
    max_concurrent: int | None = None
    dependencies: list[str] | None = None
    client_id: str | None = None
    priority: int | None = None
    estimated_hours: float | None = None
    attributes_json: str | None = None


class ValidationFinding(BaseModel):
    """
    @brief
    Immutable record describing one validation issue.

    @details
    Findings are produced fresh by every validation pass. The `id` combines
    entity type, entity id and field with a random suffix so that two findings
    on the same cell remain individually dismissable.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    id: str
    entity_type: EntityType
    entity_id: str
    field: str
    message: str
    severity: Severity
    timestamp: datetime

    @classmethod
    def create(
        cls,
        entity_type: EntityType,
        entity_id: str,
        field: str,
        message: str,
        severity: Severity,
    ) -> ValidationFinding:
        return cls(
            id=f"{entity_type}-{entity_id}-{field}-{uuid.uuid4().hex[:12]}",
            entity_type=entity_type,
            entity_id=entity_id,
            field=field,
            message=message,
            severity=severity,
            timestamp=datetime.now(timezone.utc),
        )

    def key(self) -> tuple[str, str, str, str, str]:
        """Identity of the finding without the id suffix and timestamp."""
        return (self.entity_type, self.entity_id, self.field, self.message, self.severity)


# ------------------------------------------------------------
# Runtime configuration
# ------------------------------------------------------------
class ValidationConfig(_StrictBaseModel):
    """
    @brief
    Thresholds and switches of the validation subsystem.

    @details
    Defaults reproduce the behaviour of the upload screens: priorities 1..5,
    a worker load above 10 per phase is suspicious, more than 24 estimated
    hours per phase of duration is unrealistic, and a potential workload above
    twice the mean is reported as an imbalance.
    """

    priority_min: int = Field(1, description="Lowest valid priority level")
    priority_max: int = Field(5, description="Highest valid priority level")
    overload_threshold: int = Field(
        10, ge=1, description="maxLoadPerPhase above this value is reported as suspicious"
    )
    max_hours_per_phase: float = Field(
        24.0, gt=0.0, description="estimatedHours / duration above this value is unrealistic"
    )
    imbalance_factor: float = Field(
        2.0, gt=0.0, description="Workload above factor * mean is reported as an imbalance"
    )
    write_report: bool = True
    fail_on_warnings: bool = False

    @model_validator(mode="after")
    def check_priority_bounds(self) -> ValidationConfig:
        if self.priority_min > self.priority_max:
            raise ValueError(
                f"priority_min ({self.priority_min}) must not exceed priority_max ({self.priority_max})"
            )
        return self


class LoaderConfig(_StrictBaseModel):
    """Input file handling."""

    max_file_size_mb: float = Field(50.0, gt=0.0, description="Upload size ceiling (MB)")
    delimiter: str = Field(",", min_length=1, max_length=1)


class ExportConfig(_StrictBaseModel):
    """Which cleaned-data formats to write."""

    formats: list[Literal["csv", "xlsx"]] = Field(default_factory=lambda: ["csv"])
    export_rules: bool = True
    export_prioritization: bool = True


class IOPolicy(BaseModel):
    """
    @brief
    Controls runtime behavior for artifact writing.

    @details
    Used by the pipeline to decide whether exports, metrics and reports
    are written to the output directory.
    """

    write_artifacts: bool = Field(
        True,
        description="If False, disables writing cleaned data, metrics.json and reports.",
    )


class AlchemistConfig(_StrictBaseModel):
    """
    @brief
    Full runtime configuration loaded from config.yaml.

    @details
    Combines validation thresholds, loader limits, export options and
    prioritization weights. Input paths are optional and can be overridden
    from the command line.
    """

    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    io_policy: IOPolicy = Field(default_factory=IOPolicy)
    prioritization: PrioritizationWeights = Field(default_factory=PrioritizationWeights)

    clients_path: str | None = None
    workers_path: str | None = None
    tasks_path: str | None = None
    rules_path: str | None = None
    output_dir: str | None = "data/output"

    @model_validator(mode="after")
    def check_input_formats(self) -> AlchemistConfig:
        """Input and rule paths must name formats the loaders read."""
        for name in ("clients_path", "workers_path", "tasks_path"):
            _require_suffix(name, getattr(self, name), ENTITY_FILE_SUFFIXES)
        _require_suffix("rules_path", self.rules_path, RULE_FILE_SUFFIXES)
        return self


def _require_suffix(name: str, path: str | None, allowed: tuple[str, ...]) -> None:
    if path is None:
        return
    suffix = PurePath(path).suffix.lower()
    if suffix not in allowed:
        raise ValueError(f"{name} must end with one of {', '.join(allowed)}, got {path!r}")


__all__ = [
    "AlchemistConfig",
    "Client",
    "ENTITY_FILE_SUFFIXES",
    "EntityType",
    "ExportConfig",
    "IOPolicy",
    "LoaderConfig",
    "RULE_FILE_SUFFIXES",
    "SYSTEM_ENTITY_ID",
    "Severity",
    "Task",
    "ValidationConfig",
    "ValidationFinding",
    "Worker",
]
