# src/alchemist/metrics/metrics.py
from __future__ import annotations

import json
import math
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

import pandas as pd

from alchemist.errors import DataError
from alchemist.report.finding_report import FindingReport
from alchemist.validator.findings import (
    ensure_collection,
    number_or_zero,
    phase_numbers,
    skill_set,
    value_of,
)

PHASE_COLUMNS = ["phase", "workers_available", "capacity", "demand", "utilization"]


def phase_capacity_table(workers: Sequence[Any], tasks: Sequence[Any]) -> pd.DataFrame:
    """
    @brief
    Builds the per-phase capacity vs. demand table.

    @details
    One row per phase mentioned by any worker slot or task preference, sorted
    by phase number:
        workers_available : distinct workers listing the phase in availableSlots
        capacity          : sum of their maxLoadPerPhase, once per worker
        demand            : sum of durations of tasks preferring the phase
        utilization       : demand / capacity (0.0 when capacity is 0)

    Only well-formed phase numbers are counted; malformed values are the
    validators' concern.
    """
    # (1) Explode workers and tasks into (phase, value) rows
    slot_rows = [
        {"worker": i, "phase": phase, "load": number_or_zero(value_of(w, "max_load_per_phase"))}
        for i, w in enumerate(workers)
        for phase in phase_numbers(value_of(w, "available_slots"))
    ]
    demand_rows = [
        {"phase": phase, "duration": number_or_zero(value_of(t, "duration"))}
        for t in tasks
        for phase in phase_numbers(value_of(t, "preferred_phases"))
    ]

    # a repeated slot entry does not add a worker
    slots = pd.DataFrame(slot_rows, columns=["worker", "phase", "load"]).drop_duplicates(
        subset=["worker", "phase"]
    )
    demand = pd.DataFrame(demand_rows, columns=["phase", "duration"])

    # (2) Aggregate per phase and align both sides
    cap = slots.groupby("phase").agg(workers_available=("load", "size"), capacity=("load", "sum"))
    dem = demand.groupby("phase").agg(demand=("duration", "sum"))
    table = cap.join(dem, how="outer").fillna(0.0).sort_index().reset_index()

    if table.empty:
        return pd.DataFrame(columns=PHASE_COLUMNS)

    # (3) Derived utilization
    table["workers_available"] = table["workers_available"].astype(int)
    table["utilization"] = [
        (d / c) if c > 0 else 0.0 for d, c in zip(table["demand"], table["capacity"])
    ]
    return table[PHASE_COLUMNS]


def skill_coverage(workers: Sequence[Any], tasks: Sequence[Any]) -> float:
    """Share of distinct required skills held by at least one worker (1.0 if none required)."""
    required: set[str] = set()
    for t in tasks:
        required |= skill_set(value_of(t, "required_skills"))
    if not required:
        return 1.0
    available: set[str] = set()
    for w in workers:
        available |= skill_set(value_of(w, "skills"))
    return len(required & available) / len(required)


def collect_metrics(
    report: FindingReport,
    clients: Sequence[Any],
    workers: Sequence[Any],
    tasks: Sequence[Any],
) -> dict[str, Any]:
    """
    @brief
    Builds a JSON-serializable dictionary of validation run metrics.

    @details
    Combines the finding summary with snapshot statistics and the per-phase
    capacity table. Raises DataError when the inputs violate the calling
    contract (non-list collections, report of the wrong type).
    """
    if not isinstance(report, FindingReport):
        raise DataError(
            f"report must be a FindingReport, got {type(report).__name__}",
            source="metrics.collect_metrics",
            suggested_action="Pass the report returned by validate_snapshot().",
        )
    clients = ensure_collection(clients, "clients", "metrics.collect_metrics")
    workers = ensure_collection(workers, "workers", "metrics.collect_metrics")
    tasks = ensure_collection(tasks, "tasks", "metrics.collect_metrics")

    # (1) Findings summary
    by_entity = {
        et: len(report.filter(entity_type=et)) for et in ("client", "worker", "task")
    }

    # (2) Phase table
    table = phase_capacity_table(workers, tasks)
    phases = [
        {
            "phase": int(row.phase),
            "workers_available": int(row.workers_available),
            "capacity": _f(row.capacity),
            "demand": _f(row.demand),
            "utilization": _f(row.utilization),
        }
        for row in table.itertuples(index=False)
    ]

    # (3) Assemble final metrics structure
    metrics = {
        "timestamp": _utc_now_iso(),
        "valid": not report.has_errors,
        "num_clients": len(clients),
        "num_workers": len(workers),
        "num_tasks": len(tasks),
        "findings": report.counts(),
        "findings_by_entity": by_entity,
        "skill_coverage": _f(skill_coverage(workers, tasks)),
        "overloaded_phases": sum(1 for p in phases if p["demand"] > p["capacity"]),
        "phases": phases,
    }

    # (4) Validate serializability
    json.dumps(metrics, ensure_ascii=False)
    return metrics


# ----------------- internal -----------------


def _f(x: Any) -> float:
    v = float(x)
    return 0.0 if math.isnan(v) or math.isinf(v) else round(v, 4)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


__all__ = ["PHASE_COLUMNS", "collect_metrics", "phase_capacity_table", "skill_coverage"]
