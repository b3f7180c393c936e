# src/alchemist/validator/basic.py
from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any

from alchemist.schemas.models import Client, Task, ValidationConfig, ValidationFinding, Worker
from alchemist.validator.findings import (
    FindingCollector,
    ensure_collection,
    is_blank,
    is_list,
    is_positive_int,
    out_of_range,
    parses_as_json,
    record_key,
    skill_set,
    value_of,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class FieldValidator:
    """
    @brief
    Per-entity structural and range validator.

    @details
    Checks one collection at a time: required fields, identifier uniqueness,
    numeric ranges, list shapes, JSON payloads and e-mail format. Task
    validation also cross-checks references against clients and workers.

    The validator holds only its configuration; every call builds a fresh
    finding list and never modifies the records it receives.
    """

    def __init__(self, cfg: ValidationConfig | None = None) -> None:
        self.cfg = cfg or ValidationConfig()

    # ---------- Clients ----------
    def validate_clients(self, clients: Sequence[Client]) -> list[ValidationFinding]:
        """
        @brief
        Validate a client collection.

        @params
            clients : Sequence[Client]
                Client records (may be a singleton after an in-place edit).

        @returns
            Findings in record order.
        """
        clients = ensure_collection(clients, "clients", "FieldValidator.validate_clients")
        out = FindingCollector()
        seen: set[str] = set()

        for index, client in enumerate(clients):
            cid = value_of(client, "id")
            key = record_key(client, index)

            if is_blank(cid):
                out.error("client", f"row-{index}", "id", "ClientID is required")
            elif cid in seen:
                out.error("client", key, "id", "Duplicate ClientID found")
            seen.add(cid)

            if is_blank(value_of(client, "name")):
                out.error("client", key, "name", "ClientName is required")

            if out_of_range(value_of(client, "priority"), self.cfg.priority_min, self.cfg.priority_max):
                out.error(
                    "client",
                    key,
                    "priority",
                    f"PriorityLevel must be between {self.cfg.priority_min} and {self.cfg.priority_max}",
                )

            requested = value_of(client, "requested_task_ids")
            if requested is not None and not is_list(requested):
                out.error("client", key, "requestedTaskIds", "RequestedTaskIDs must be a valid array")

            self._check_json(out, "client", key, client)
            self._check_email(out, "client", key, client)

        self._log_summary("clients", len(clients), out)
        return out.findings

    # ---------- Workers ----------
    def validate_workers(self, workers: Sequence[Worker]) -> list[ValidationFinding]:
        workers = ensure_collection(workers, "workers", "FieldValidator.validate_workers")
        out = FindingCollector()
        seen: set[str] = set()

        for index, worker in enumerate(workers):
            wid = value_of(worker, "id")
            key = record_key(worker, index)

            if is_blank(wid):
                out.error("worker", f"row-{index}", "id", "WorkerID is required")
            elif wid in seen:
                out.error("worker", key, "id", "Duplicate WorkerID found")
            seen.add(wid)

            if is_blank(value_of(worker, "name")):
                out.error("worker", key, "name", "WorkerName is required")

            skills = value_of(worker, "skills")
            if not skills:
                out.warning("worker", key, "skills", "At least one skill is required")

            slots = value_of(worker, "available_slots")
            if not slots:
                out.error(
                    "worker",
                    key,
                    "availableSlots",
                    "AvailableSlots must contain at least one phase number",
                )
            elif not is_list(slots) or not all(is_positive_int(s) for s in slots):
                out.error(
                    "worker",
                    key,
                    "availableSlots",
                    "AvailableSlots must contain valid phase numbers (≥1)",
                )

            if out_of_range(value_of(worker, "max_load_per_phase"), lower=1):
                out.error("worker", key, "maxLoadPerPhase", "MaxLoadPerPhase must be at least 1")

            if out_of_range(value_of(worker, "qualification_level"), lower=0):
                out.warning(
                    "worker", key, "qualificationLevel", "QualificationLevel cannot be negative"
                )

            self._check_email(out, "worker", key, worker)

        self._log_summary("workers", len(workers), out)
        return out.findings

    # ---------- Tasks ----------
    def validate_tasks(
        self,
        tasks: Sequence[Task],
        clients: Sequence[Client],
        workers: Sequence[Worker],
        *,
        known_tasks: Sequence[Task] | None = None,
    ) -> list[ValidationFinding]:
        """
        @brief
        Validate a task collection against clients and workers.

        @details
        Besides per-task checks, verifies that every client's requested task
        exists and that each required skill is held by at least one worker.

        @params
            tasks : Sequence[Task]
                Tasks to validate.
            clients, workers : Sequence
                Sibling collections used for reference checks.
            known_tasks : Sequence[Task] | None
                Full task collection used to resolve dependency and request
                references when `tasks` is only a subset (incremental edits).
                Defaults to `tasks`.

        @returns
            Task findings in record order, followed by client request findings.
        """
        tasks = ensure_collection(tasks, "tasks", "FieldValidator.validate_tasks")
        clients = ensure_collection(clients, "clients", "FieldValidator.validate_tasks")
        workers = ensure_collection(workers, "workers", "FieldValidator.validate_tasks")
        reference = ensure_collection(
            tasks if known_tasks is None else known_tasks, "known_tasks", "FieldValidator.validate_tasks"
        )

        out = FindingCollector()
        seen: set[str] = set()
        client_ids = {value_of(c, "id") for c in clients}
        task_ids = {value_of(t, "id") for t in reference}
        worker_skills: set[str] = set()
        for w in workers:
            worker_skills |= skill_set(value_of(w, "skills"))

        for index, task in enumerate(tasks):
            tid = value_of(task, "id")
            key = record_key(task, index)

            if is_blank(tid):
                out.error("task", f"row-{index}", "id", "TaskID is required")
            elif tid in seen:
                out.error("task", key, "id", "Duplicate TaskID found")
            seen.add(tid)

            if is_blank(value_of(task, "name")):
                out.error("task", key, "name", "TaskName is required")

            if out_of_range(value_of(task, "duration"), lower=1):
                out.error("task", key, "duration", "Duration must be at least 1 phase")

            required = value_of(task, "required_skills")
            if not is_list(required):
                out.error("task", key, "requiredSkills", "RequiredSkills must be a valid array")

            if out_of_range(value_of(task, "max_concurrent"), lower=1):
                out.error("task", key, "maxConcurrent", "MaxConcurrent must be at least 1")

            # (1) Skill availability across the whole worker pool
            if is_list(required) and required:
                missing = [s for s in required if str(s).lower() not in worker_skills]
                if missing:
                    out.warning(
                        "task",
                        key,
                        "requiredSkills",
                        f"No workers available with skills: {', '.join(map(str, missing))}",
                    )

            phases = value_of(task, "preferred_phases")
            if phases is not None and (
                not is_list(phases) or not all(is_positive_int(p) for p in phases)
            ):
                out.error(
                    "task",
                    key,
                    "preferredPhases",
                    "PreferredPhases must contain valid phase numbers (≥1)",
                )

            # (2) Legacy columns
            client_id = value_of(task, "client_id")
            if not is_blank(client_id) and client_id not in client_ids:
                out.error("task", key, "clientId", "Referenced client does not exist")

            if out_of_range(value_of(task, "priority"), self.cfg.priority_min, self.cfg.priority_max):
                out.error(
                    "task",
                    key,
                    "priority",
                    f"Priority must be between {self.cfg.priority_min} and {self.cfg.priority_max}",
                )

            # (3) Dependencies: unknown references, then self-reference
            deps = value_of(task, "dependencies")
            if is_list(deps) and deps:
                unknown = [d for d in deps if d not in task_ids]
                if unknown:
                    out.error(
                        "task",
                        key,
                        "dependencies",
                        f"Invalid task dependencies: {', '.join(map(str, unknown))}",
                    )
                if not is_blank(tid) and tid in deps:
                    out.error("task", key, "dependencies", "Task cannot depend on itself")

            self._check_json(out, "task", key, task)

        # (4) Cross-validate requested task ids of every client
        for index, client in enumerate(clients):
            requested = value_of(client, "requested_task_ids")
            if not is_list(requested) or not requested:
                continue
            missing_ids = [t for t in requested if t not in task_ids]
            if missing_ids:
                out.error(
                    "client",
                    record_key(client, index),
                    "requestedTaskIds",
                    "RequestedTaskIDs reference non-existent tasks: "
                    + ", ".join(map(str, missing_ids)),
                )

        self._log_summary("tasks", len(tasks), out)
        return out.findings

    # ---------- Shared checks ----------
    def _check_json(self, out: FindingCollector, entity_type: Any, key: str, record: Any) -> None:
        payload = value_of(record, "attributes_json")
        if payload and not parses_as_json(payload):
            out.error(entity_type, key, "attributesJson", "Invalid JSON format in AttributesJSON")

    def _check_email(self, out: FindingCollector, entity_type: Any, key: str, record: Any) -> None:
        email = value_of(record, "email")
        if email and not EMAIL_PATTERN.match(str(email)):
            out.warning(entity_type, key, "email", "Invalid email format")

    def _log_summary(self, what: str, count: int, out: FindingCollector) -> None:
        logger.debug("FieldValidator: %d %s checked, %d finding(s)", count, what, len(out.findings))


__all__ = ["EMAIL_PATTERN", "FieldValidator"]
