# src/alchemist/validator/findings.py
"""
Shared helpers for the validators: a finding accumulator and the shape
predicates used to inspect loosely-typed entity records.

Records can arrive unvalidated (built with `model_construct`), so every
accessor here tolerates missing attributes and unexpected value types.
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterable, Sequence
from typing import Any

from alchemist.errors import DataError
from alchemist.schemas.models import EntityType, Severity, ValidationFinding


class FindingCollector:
    """Ordered accumulator of findings for a single validation pass."""

    def __init__(self) -> None:
        self.findings: list[ValidationFinding] = []

    def add(
        self,
        entity_type: EntityType,
        entity_id: str,
        field: str,
        message: str,
        severity: Severity,
    ) -> None:
        self.findings.append(
            ValidationFinding.create(entity_type, entity_id, field, message, severity)
        )

    def error(self, entity_type: EntityType, entity_id: str, field: str, message: str) -> None:
        self.add(entity_type, entity_id, field, message, "error")

    def warning(self, entity_type: EntityType, entity_id: str, field: str, message: str) -> None:
        self.add(entity_type, entity_id, field, message, "warning")

    def info(self, entity_type: EntityType, entity_id: str, field: str, message: str) -> None:
        self.add(entity_type, entity_id, field, message, "info")


# ----------------------------
# Calling-convention guard
# ----------------------------
def ensure_collection(records: Any, name: str, source: str) -> list[Any]:
    """
    @brief
    Verify that a validator received a list-like collection.

    @details
    Malformed data is reported as findings; a non-list collection is a
    programming error of the caller and is raised as DataError.
    """
    if isinstance(records, (list, tuple)):
        return list(records)
    raise DataError(
        message=f"{name} must be a list of records, got {type(records).__name__}",
        source=source,
        suggested_action="Pass the full collection as a list (use [] when empty).",
    )


# ----------------------------
# Record accessors and predicates
# ----------------------------
def value_of(record: Any, name: str) -> Any:
    return getattr(record, name, None)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    return not str(value).strip()


def record_key(record: Any, index: int) -> str:
    """Identifier used in findings: the record id, or `row-<index>` when it is missing."""
    rid = value_of(record, "id")
    return str(rid) if not is_blank(rid) else f"row-{index}"


def is_list(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and not math.isnan(value)


def number_or_zero(value: Any) -> float:
    return value if is_number(value) else 0


def is_positive_int(value: Any) -> bool:
    if not is_number(value):
        return False
    return float(value).is_integer() and value >= 1


def out_of_range(value: Any, lower: float | None = None, upper: float | None = None) -> bool:
    """
    True when a present value is not a number or falls outside [lower, upper].
    Absent values (None) are the concern of the missing-column checks.
    """
    if value is None:
        return False
    if not is_number(value):
        return True
    if lower is not None and value < lower:
        return True
    return upper is not None and value > upper


def parses_as_json(text: Any) -> bool:
    try:
        json.loads(text)
    except (TypeError, ValueError):
        return False
    return True


def phase_numbers(value: Any) -> list[int]:
    """Valid phase numbers of a list field, in order, duplicates kept."""
    if not is_list(value):
        return []
    return [int(p) for p in value if is_positive_int(p)]


def skill_set(value: Any) -> set[str]:
    if not is_list(value):
        return set()
    return {str(s).lower() for s in value}


def has_all_skills(worker_skills: set[str], required: Iterable[Any]) -> bool:
    return all(str(skill).lower() in worker_skills for skill in required)


def qualified_workers(workers: Sequence[Any], required: Sequence[Any]) -> list[Any]:
    """Workers holding every required skill (case-insensitive)."""
    return [w for w in workers if has_all_skills(skill_set(value_of(w, "skills")), required)]


def format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
