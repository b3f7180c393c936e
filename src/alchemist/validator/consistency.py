# src/alchemist/validator/consistency.py
from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any

from alchemist.schemas.models import (
    SYSTEM_ENTITY_ID,
    Client,
    Task,
    ValidationConfig,
    ValidationFinding,
    Worker,
)
from alchemist.validator.findings import (
    FindingCollector,
    ensure_collection,
    format_number,
    has_all_skills,
    is_blank,
    is_list,
    is_number,
    number_or_zero,
    out_of_range,
    parses_as_json,
    phase_numbers,
    qualified_workers,
    record_key,
    skill_set,
    value_of,
)
from alchemist.validator.graph import DependencyGraph

logger = logging.getLogger(__name__)

# (field name, finding field, label) for the list-shaped columns
_WORKER_LIST_FIELDS = (
    ("skills", "skills", "Skills"),
    ("available_slots", "availableSlots", "AvailableSlots"),
    ("preferred_phases", "preferredPhases", "PreferredPhases"),
)
_TASK_LIST_FIELDS = (
    ("required_skills", "requiredSkills", "RequiredSkills"),
    ("dependencies", "dependencies", "Dependencies"),
    ("preferred_phases", "preferredPhases", "PreferredPhases"),
)


# ----------------------------
# CONSISTENCY VALIDATOR
# ----------------------------
class ConsistencyValidator:
    """
    @brief
    Whole-snapshot consistency validator.

    @details
    Runs independent checks over the three collections together: required
    columns, identifiers, list shapes, ranges, JSON payloads, references,
    dependency cycles, phase capacity against demand, skill coverage,
    concurrency feasibility, conflicting constraints and workload balance.

    Every check appends its own findings; no finding is merged or suppressed,
    so the same cell can be reported by several checks. The basic field
    checks are repeated here so this validator can run on its own.
    """

    def __init__(self, cfg: ValidationConfig | None = None) -> None:
        self.cfg = cfg or ValidationConfig()

    # ---------- Public API ----------
    def validate(
        self,
        clients: Sequence[Client],
        workers: Sequence[Worker],
        tasks: Sequence[Task],
    ) -> list[ValidationFinding]:
        """
        @brief
        Execute every consistency check over one snapshot.

        @details
        Checks run in a fixed order so repeated calls on the same input
        produce findings in the same order.

        @params
            clients, workers, tasks : Sequence
                Full collections of the snapshot. They are only read.

        @returns
            Findings of all checks, concatenated in check order.
        """
        source = "ConsistencyValidator.validate"
        clients = ensure_collection(clients, "clients", source)
        workers = ensure_collection(workers, "workers", source)
        tasks = ensure_collection(tasks, "tasks", source)

        out = FindingCollector()
        self._check_missing_columns(out, clients, workers, tasks)
        self._check_duplicate_ids(out, clients, workers, tasks)
        self._check_malformed_lists(out, workers, tasks)
        self._check_out_of_range(out, clients, tasks)
        self._check_broken_json(out, clients, workers, tasks)
        self._check_unknown_references(out, tasks, clients)
        self._check_circular_dependencies(out, tasks)
        self._check_worker_overload(out, workers, tasks)
        self._check_phase_slot_saturation(out, workers, tasks)
        self._check_skill_coverage(out, workers, tasks)
        self._check_max_concurrency(out, workers, tasks)
        self._check_conflicting_constraints(out, tasks)
        self._check_requested_task_references(out, clients, tasks)
        self._check_phase_consistency(out, workers, tasks)
        self._check_workload_distribution(out, workers, tasks)

        logger.debug(
            "ConsistencyValidator: %d client(s), %d worker(s), %d task(s) -> %d finding(s)",
            len(clients),
            len(workers),
            len(tasks),
            len(out.findings),
        )
        return out.findings

    # ---------- Structural checks ----------
    def _check_missing_columns(
        self, out: FindingCollector, clients: list, workers: list, tasks: list
    ) -> None:
        for index, client in enumerate(clients):
            key = record_key(client, index)
            if is_blank(value_of(client, "id")):
                out.error("client", key, "id", "Missing required column: ClientID")
            if is_blank(value_of(client, "name")):
                out.error("client", key, "name", "Missing required column: ClientName")
            if value_of(client, "priority") is None:
                out.error("client", key, "priority", "Missing required column: PriorityLevel")

        for index, worker in enumerate(workers):
            key = record_key(worker, index)
            if is_blank(value_of(worker, "id")):
                out.error("worker", key, "id", "Missing required column: WorkerID")
            if is_blank(value_of(worker, "name")):
                out.error("worker", key, "name", "Missing required column: WorkerName")
            if not value_of(worker, "skills"):
                out.error("worker", key, "skills", "Missing required column: Skills")
            if not value_of(worker, "available_slots"):
                out.error(
                    "worker", key, "availableSlots", "Missing required column: AvailableSlots"
                )
            if value_of(worker, "max_load_per_phase") is None:
                out.error(
                    "worker", key, "maxLoadPerPhase", "Missing required column: MaxLoadPerPhase"
                )

        for index, task in enumerate(tasks):
            key = record_key(task, index)
            if is_blank(value_of(task, "id")):
                out.error("task", key, "id", "Missing required column: TaskID")
            if is_blank(value_of(task, "name")):
                out.error("task", key, "name", "Missing required column: TaskName")
            if value_of(task, "duration") is None:
                out.error("task", key, "duration", "Missing required column: Duration")
            if value_of(task, "max_concurrent") is None:
                out.error("task", key, "maxConcurrent", "Missing required column: MaxConcurrent")

    def _check_duplicate_ids(
        self, out: FindingCollector, clients: list, workers: list, tasks: list
    ) -> None:
        for entity_type, label, records in (
            ("client", "ClientID", clients),
            ("worker", "WorkerID", workers),
            ("task", "TaskID", tasks),
        ):
            seen: set[str] = set()
            for record in records:
                rid = value_of(record, "id")
                if is_blank(rid):
                    continue
                if rid in seen:
                    out.error(entity_type, str(rid), "id", f"Duplicate {label} found")
                seen.add(rid)

    def _check_malformed_lists(self, out: FindingCollector, workers: list, tasks: list) -> None:
        for entity_type, fields, records in (
            ("worker", _WORKER_LIST_FIELDS, workers),
            ("task", _TASK_LIST_FIELDS, tasks),
        ):
            for index, record in enumerate(records):
                key = record_key(record, index)
                for attr, field, label in fields:
                    value = value_of(record, attr)
                    if value is not None and not is_list(value):
                        out.error(entity_type, key, field, f"{label} must be a valid array/list")

    def _check_out_of_range(self, out: FindingCollector, clients: list, tasks: list) -> None:
        lo, hi = self.cfg.priority_min, self.cfg.priority_max

        for index, client in enumerate(clients):
            if out_of_range(value_of(client, "priority"), lo, hi):
                out.error(
                    "client",
                    record_key(client, index),
                    "priority",
                    f"PriorityLevel must be between {lo}-{hi}",
                )

        for index, task in enumerate(tasks):
            key = record_key(task, index)
            if out_of_range(value_of(task, "priority"), lo, hi):
                out.error("task", key, "priority", f"Priority level must be between {lo}-{hi}")
            if out_of_range(value_of(task, "duration"), lower=1):
                out.error("task", key, "duration", "Duration must be at least 1")
            if out_of_range(value_of(task, "max_concurrent"), lower=1):
                out.error("task", key, "maxConcurrent", "MaxConcurrent must be at least 1")
            if out_of_range(value_of(task, "estimated_hours"), lower=0):
                out.error("task", key, "estimatedHours", "Estimated hours cannot be negative")

    def _check_broken_json(
        self, out: FindingCollector, clients: list, workers: list, tasks: list
    ) -> None:
        for entity_type, records in (("client", clients), ("worker", workers), ("task", tasks)):
            for index, record in enumerate(records):
                payload = value_of(record, "attributes_json")
                if payload and not parses_as_json(payload):
                    out.error(
                        entity_type,
                        record_key(record, index),
                        "attributesJson",
                        "Invalid JSON format in AttributesJSON",
                    )

    # ---------- Reference checks ----------
    def _check_unknown_references(self, out: FindingCollector, tasks: list, clients: list) -> None:
        client_ids = {value_of(c, "id") for c in clients}
        task_ids = {value_of(t, "id") for t in tasks}

        for index, task in enumerate(tasks):
            key = record_key(task, index)
            client_id = value_of(task, "client_id")
            if not is_blank(client_id) and client_id not in client_ids:
                out.error("task", key, "clientId", f"Referenced client '{client_id}' does not exist")

            deps = value_of(task, "dependencies")
            if not is_list(deps):
                continue
            for dep in deps:
                if dep not in task_ids:
                    out.error(
                        "task",
                        key,
                        "dependencies",
                        f"Referenced task dependency '{dep}' does not exist",
                    )

    def _check_requested_task_references(
        self, out: FindingCollector, clients: list, tasks: list
    ) -> None:
        task_ids = {value_of(t, "id") for t in tasks}

        for index, client in enumerate(clients):
            requested = value_of(client, "requested_task_ids")
            if not is_list(requested):
                continue
            for task_id in requested:
                if task_id not in task_ids:
                    out.error(
                        "client",
                        record_key(client, index),
                        "requestedTaskIds",
                        f"RequestedTaskID '{task_id}' does not exist",
                    )

    def _check_circular_dependencies(self, out: FindingCollector, tasks: list) -> None:
        """
        @brief
        Flag tasks whose dependency chain contains a cycle.

        @details
        The dependency graph is built once for the pass. A task is reported
        once when it lies on a cycle or depends (transitively) on one.
        Self-dependency forms a cycle of length one.
        """
        cyclic = DependencyGraph.from_tasks(tasks).tasks_reaching_cycle()
        if not cyclic:
            return

        for index, task in enumerate(tasks):
            deps = value_of(task, "dependencies")
            tid = value_of(task, "id")
            if is_list(deps) and deps and not is_blank(tid) and str(tid) in cyclic:
                out.error(
                    "task",
                    record_key(task, index),
                    "dependencies",
                    "Circular dependency detected in task chain",
                )

    # ---------- Capacity checks ----------
    def _check_worker_overload(self, out: FindingCollector, workers: list, tasks: list) -> None:
        """
        @brief
        Validate worker capacity values and aggregate phase load.

        @details
        Per worker: maxLoadPerPhase above the configured threshold is
        suspicious (warning), below 1 is an error, an empty availability list
        is an error. Then per phase: the summed maxLoadPerPhase of workers
        listing the phase is compared with the summed duration of tasks
        preferring it; a deficit is reported as a system-level warning.
        """
        threshold = self.cfg.overload_threshold

        for index, worker in enumerate(workers):
            key = record_key(worker, index)
            load = value_of(worker, "max_load_per_phase")
            if is_number(load) and load > threshold:
                out.warning(
                    "worker",
                    key,
                    "maxLoadPerPhase",
                    f"MaxLoadPerPhase seems unrealistic (>{threshold})",
                )
            if is_number(load) and load < 1:
                out.error(
                    "worker",
                    key,
                    "maxLoadPerPhase",
                    "Worker must be able to handle at least 1 task per phase",
                )

            slots = value_of(worker, "available_slots")
            if is_list(slots) and len(slots) == 0:
                out.error(
                    "worker",
                    key,
                    "availableSlots",
                    "Worker must be available in at least one phase",
                )

        # (1) Capacity per phase, every listed slot counts
        capacity: dict[int, float] = {}
        for worker in workers:
            load = number_or_zero(value_of(worker, "max_load_per_phase"))
            for phase in phase_numbers(value_of(worker, "available_slots")):
                capacity[phase] = capacity.get(phase, 0) + load

        # (2) Demand per phase in order of first mention
        for phase, demand in self._phase_demand(tasks).items():
            available = capacity.get(phase, 0)
            if demand > available:
                out.warning(
                    "task",
                    SYSTEM_ENTITY_ID,
                    "capacity",
                    f"Phase {phase} has {format_number(demand)} task-days "
                    f"but only {format_number(available)} worker capacity",
                )

    def _check_phase_slot_saturation(
        self, out: FindingCollector, workers: list, tasks: list
    ) -> None:
        """
        @brief
        Compare phase demand with the capacity of workers available in that phase.

        @details
        Eligibility is decided per worker (a worker counts once for a phase
        when its availableSlots include it), independently of the aggregate
        comparison done by the overload check.
        """
        for phase, demand in self._phase_demand(tasks).items():
            eligible = [
                w for w in workers if phase in phase_numbers(value_of(w, "available_slots"))
            ]
            slots = sum(number_or_zero(value_of(w, "max_load_per_phase")) for w in eligible)
            if demand > slots:
                out.warning(
                    "task",
                    SYSTEM_ENTITY_ID,
                    "phaseCapacity",
                    f"Phase {phase} has {format_number(demand)} task-days "
                    f"but only {format_number(slots)} worker slots available",
                )

    def _phase_demand(self, tasks: list) -> dict[int, float]:
        demand: dict[int, float] = {}
        for task in tasks:
            duration = number_or_zero(value_of(task, "duration"))
            for phase in phase_numbers(value_of(task, "preferred_phases")):
                demand[phase] = demand.get(phase, 0) + duration
        return demand

    # ---------- Skill checks ----------
    def _check_skill_coverage(self, out: FindingCollector, workers: list, tasks: list) -> None:
        available: set[str] = set()
        for worker in workers:
            available |= skill_set(value_of(worker, "skills"))

        # (1) Required skills in order of first mention
        required: dict[str, None] = {}
        for task in tasks:
            skills = value_of(task, "required_skills")
            if is_list(skills):
                required.update(dict.fromkeys(str(s).lower() for s in skills))

        for skill in required:
            if skill not in available:
                out.warning(
                    "task",
                    SYSTEM_ENTITY_ID,
                    "skillCoverage",
                    f"No worker available with required skill: {skill}",
                )

        # (2) Some single worker must hold every skill of the task
        for index, task in enumerate(tasks):
            skills = value_of(task, "required_skills")
            if not is_list(skills) or not skills:
                continue
            if not qualified_workers(workers, skills):
                out.error(
                    "task",
                    record_key(task, index),
                    "requiredSkills",
                    f"No worker has all required skills: {', '.join(map(str, skills))}",
                )

    def _check_max_concurrency(self, out: FindingCollector, workers: list, tasks: list) -> None:
        for index, task in enumerate(tasks):
            skills = value_of(task, "required_skills")
            if not is_list(skills) or not skills:
                continue
            qualified = len(qualified_workers(workers, skills))
            max_concurrent = value_of(task, "max_concurrent")
            if is_number(max_concurrent) and max_concurrent > qualified:
                out.warning(
                    "task",
                    record_key(task, index),
                    "maxConcurrent",
                    f"MaxConcurrent ({format_number(max_concurrent)}) exceeds number of "
                    f"qualified workers ({qualified})",
                )

    # ---------- Constraint checks ----------
    def _check_conflicting_constraints(self, out: FindingCollector, tasks: list) -> None:
        """
        @brief
        Detect phase preferences that contradict dependencies, and effort overload.

        @details
        A dependency must finish before the dependent task starts: when the
        earliest preferred phase of the task is not after the latest preferred
        phase of a dependency, a warning is emitted per such dependency.
        Separately, estimatedHours / duration above the configured hours per
        phase is reported as unrealistic.
        """
        max_hours = self.cfg.max_hours_per_phase

        for index, task in enumerate(tasks):
            key = record_key(task, index)
            deps = value_of(task, "dependencies")
            phases = phase_numbers(value_of(task, "preferred_phases"))

            if is_list(deps) and deps and phases:
                earliest = min(phases)
                for dep_task in tasks:
                    if value_of(dep_task, "id") not in deps:
                        continue
                    dep_phases = phase_numbers(value_of(dep_task, "preferred_phases"))
                    if dep_phases and earliest <= max(dep_phases):
                        out.warning(
                            "task",
                            key,
                            "preferredPhases",
                            "Task preferred phases conflict with dependency "
                            f"'{value_of(dep_task, 'id')}' phases",
                        )

            duration = value_of(task, "duration")
            hours = value_of(task, "estimated_hours")
            if is_number(duration) and duration and is_number(hours) and hours:
                if hours / duration > max_hours:
                    out.warning(
                        "task",
                        key,
                        "estimatedHours",
                        f"Estimated hours ({format_number(hours)}) exceed realistic daily "
                        f"capacity for duration ({format_number(duration)} days)",
                    )

    def _check_phase_consistency(self, out: FindingCollector, workers: list, tasks: list) -> None:
        worker_phases: set[int] = set()
        for worker in workers:
            worker_phases.update(phase_numbers(value_of(worker, "available_slots")))

        task_phases: dict[int, None] = {}
        for task in tasks:
            task_phases.update(dict.fromkeys(phase_numbers(value_of(task, "preferred_phases"))))

        for phase in task_phases:
            if phase not in worker_phases:
                out.warning(
                    "task",
                    SYSTEM_ENTITY_ID,
                    "phaseConsistency",
                    f"Phase {phase} is required by tasks but no workers are available "
                    "in this phase",
                )

    def _check_workload_distribution(
        self, out: FindingCollector, workers: list, tasks: list
    ) -> None:
        """
        @brief
        Report workers whose potential workload is far above the mean.

        @details
        Potential workload of a worker is the summed duration of all tasks it
        is qualified for (holds every required skill; tasks without required
        skills count for everyone). This is an upper bound, not a schedule.
        Workers above `imbalance_factor` times the mean get an info finding.
        """
        if not workers:
            return

        workloads: list[tuple[int, Any, float]] = []
        for index, worker in enumerate(workers):
            skills = skill_set(value_of(worker, "skills"))
            total = 0.0
            for task in tasks:
                required = value_of(task, "required_skills")
                if not is_list(required) or has_all_skills(skills, required):
                    total += number_or_zero(value_of(task, "duration"))
            workloads.append((index, worker, total))

        mean = sum(w for _, _, w in workloads) / len(workloads)
        limit = mean * self.cfg.imbalance_factor

        for index, worker, workload in workloads:
            if workload > limit:
                out.info(
                    "worker",
                    record_key(worker, index),
                    "workload",
                    f"Worker has significantly higher potential workload "
                    f"({format_number(workload)}) than average ({math.floor(mean + 0.5)})",
                )


__all__ = ["ConsistencyValidator"]
