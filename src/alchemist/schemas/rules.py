# src/alchemist/schemas/rules.py
"""
@brief
Business rules and prioritization weights.

@details
Each rule type is its own model with an explicit field set, discriminated by
the `type` tag:
    - co-location       : tasks that must run together
    - slot-restriction  : a client or worker group that must share common slots
    - load-limit        : cap on slots per phase for selected workers
    - phase-window      : phases in which a task may run
    - custom            : free-form pattern with opaque conditions/actions

`BusinessRule` is the tagged union; consumers resolve it with `match`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class _RuleBase(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    id: str = Field(..., min_length=1)
    name: str = ""
    description: str = ""
    active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CoLocationRule(_RuleBase):
    type: Literal["co-location"] = "co-location"
    task_ids: list[str] = Field(default_factory=list)
    location: str | None = None


class SlotRestrictionRule(_RuleBase):
    type: Literal["slot-restriction"] = "slot-restriction"
    group_type: Literal["clients", "workers"] = "workers"
    members: list[str] = Field(default_factory=list)
    min_common_slots: int = Field(1, ge=1)
    time_window: str | None = None


class LoadLimitRule(_RuleBase):
    type: Literal["load-limit"] = "load-limit"
    worker_ids: list[str] = Field(default_factory=list)
    max_slots_per_phase: int = Field(1, ge=1)
    phases: list[int] = Field(default_factory=list)


class PhaseWindowRule(_RuleBase):
    type: Literal["phase-window"] = "phase-window"
    task_id: str
    allowed_phases: list[int] = Field(default_factory=list)
    start_phase: int | None = None
    end_phase: int | None = None
    strict: bool = False


class CustomRule(_RuleBase):
    type: Literal["custom"] = "custom"
    pattern: str | None = None
    conditions: dict[str, Any] = Field(default_factory=dict)
    actions: dict[str, Any] = Field(default_factory=dict)


BusinessRule = Annotated[
    Union[CoLocationRule, SlotRestrictionRule, LoadLimitRule, PhaseWindowRule, CustomRule],
    Field(discriminator="type"),
]

RULE_LIST_ADAPTER: TypeAdapter[list[BusinessRule]] = TypeAdapter(list[BusinessRule])


class PrioritizationWeights(BaseModel):
    """
    @brief
    Relative importance of allocation criteria.

    @details
    Weights are non-negative percentages. They do not have to sum to 100;
    `normalized()` returns the shares used by downstream allocators.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    priority_level: float = Field(30.0, ge=0.0)
    fulfillment: float = Field(25.0, ge=0.0)
    fairness: float = Field(20.0, ge=0.0)
    efficiency: float = Field(15.0, ge=0.0)
    skill_match: float = Field(10.0, ge=0.0)

    def normalized(self) -> dict[str, float]:
        values = self.model_dump(by_alias=True)
        total = sum(values.values())
        if total <= 0.0:
            return {k: 0.0 for k in values}
        return {k: v / total for k, v in values.items()}


__all__ = [
    "BusinessRule",
    "CoLocationRule",
    "CustomRule",
    "LoadLimitRule",
    "PhaseWindowRule",
    "PrioritizationWeights",
    "RULE_LIST_ADAPTER",
    "SlotRestrictionRule",
]
