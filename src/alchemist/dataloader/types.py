# src/alchemist/dataloader/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class LoadResult:
    """
    Structured result of a data loading step.

    Fields:
        entity_type: "client", "worker" or "task".
        success: True if every row coerced cleanly into its typed record.
        records: One record per data row, in file order. Rows that failed
                 coercion are kept with their raw values so the validators
                 can report them.
        issues: List of issue dicts with per-row context (used for reporting).
                Each item contains at least: kind, line_no, message, entity_id (may be None).
        total_rows: Total number of data rows observed (excludes header).
        coerced_rows: Number of rows that passed typed coercion.
    """

    entity_type: str
    success: bool
    records: list[Any] = field(default_factory=list)
    issues: list[dict[str, Any]] = field(default_factory=list)
    total_rows: int = 0
    coerced_rows: int = 0
