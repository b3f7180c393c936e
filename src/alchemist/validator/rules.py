# src/alchemist/validator/rules.py
from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from alchemist.schemas.models import SYSTEM_ENTITY_ID, Client, Task, ValidationFinding, Worker
from alchemist.schemas.rules import (
    BusinessRule,
    CoLocationRule,
    CustomRule,
    LoadLimitRule,
    PhaseWindowRule,
    SlotRestrictionRule,
)
from alchemist.validator.findings import (
    FindingCollector,
    ensure_collection,
    is_number,
    phase_numbers,
    value_of,
)

logger = logging.getLogger(__name__)


class RuleValidator:
    """
    @brief
    Checks business rules against the entity snapshot.

    @details
    Each rule variant is resolved by an exhaustive `match` on its class.
    Findings are system-level (entity id "system", field "rules") and carry
    the entity type of the rule's subject: tasks for co-location and
    phase-window, workers for load-limit, the group type for slot-restriction.
    Inactive rules are skipped.
    """

    def validate(
        self,
        rules: Sequence[BusinessRule],
        clients: Sequence[Client],
        workers: Sequence[Worker],
        tasks: Sequence[Task],
    ) -> list[ValidationFinding]:
        source = "RuleValidator.validate"
        rules = ensure_collection(rules, "rules", source)
        clients = ensure_collection(clients, "clients", source)
        workers = ensure_collection(workers, "workers", source)
        tasks = ensure_collection(tasks, "tasks", source)

        out = FindingCollector()
        task_ids = {value_of(t, "id") for t in tasks}
        workers_by_id = {value_of(w, "id"): w for w in workers}
        clients_by_id = {value_of(c, "id"): c for c in clients}
        worker_phases: set[int] = set()
        for w in workers:
            worker_phases.update(phase_numbers(value_of(w, "available_slots")))

        for rule in rules:
            if not rule.active:
                continue

            match rule:
                case CoLocationRule():
                    self._unknown(out, "task", rule.id, rule.task_ids, task_ids)
                    if len(set(rule.task_ids)) < 2:
                        out.warning(
                            "task",
                            SYSTEM_ENTITY_ID,
                            "rules",
                            f"Rule '{rule.id}': co-location needs at least two tasks",
                        )

                case SlotRestrictionRule():
                    if rule.group_type == "workers":
                        self._unknown(out, "worker", rule.id, rule.members, workers_by_id)
                        members = [workers_by_id[m] for m in rule.members if m in workers_by_id]
                        self._check_common_slots(out, rule, members)
                    else:
                        self._unknown(out, "client", rule.id, rule.members, clients_by_id)

                case LoadLimitRule():
                    self._unknown(out, "worker", rule.id, rule.worker_ids, workers_by_id)
                    for wid in rule.worker_ids:
                        load = value_of(workers_by_id.get(wid), "max_load_per_phase")
                        if is_number(load) and rule.max_slots_per_phase > load:
                            out.warning(
                                "worker",
                                SYSTEM_ENTITY_ID,
                                "rules",
                                f"Rule '{rule.id}': limit {rule.max_slots_per_phase} exceeds "
                                f"MaxLoadPerPhase ({load}) of worker '{wid}'",
                            )

                case PhaseWindowRule():
                    self._unknown(out, "task", rule.id, [rule.task_id], task_ids)
                    self._check_phase_window(out, rule, worker_phases)

                case CustomRule():
                    if rule.pattern:
                        try:
                            re.compile(rule.pattern)
                        except re.error as e:
                            out.error(
                                "task",
                                SYSTEM_ENTITY_ID,
                                "rules",
                                f"Rule '{rule.id}': invalid pattern ({e})",
                            )

        logger.debug("RuleValidator: %d rule(s) -> %d finding(s)", len(rules), len(out.findings))
        return out.findings

    def _unknown(self, out: FindingCollector, entity_type, rule_id: str, ids, known) -> None:
        for ref in ids:
            if ref not in known:
                out.error(
                    entity_type,
                    SYSTEM_ENTITY_ID,
                    "rules",
                    f"Rule '{rule_id}' references unknown {entity_type} '{ref}'",
                )

    def _check_common_slots(
        self, out: FindingCollector, rule: SlotRestrictionRule, members: list[Worker]
    ) -> None:
        if len(members) < 2:
            return
        common = set(phase_numbers(value_of(members[0], "available_slots")))
        for worker in members[1:]:
            common &= set(phase_numbers(value_of(worker, "available_slots")))
        if len(common) < rule.min_common_slots:
            out.warning(
                "worker",
                SYSTEM_ENTITY_ID,
                "rules",
                f"Rule '{rule.id}': group shares {len(common)} common slot(s), "
                f"{rule.min_common_slots} required",
            )

    def _check_phase_window(
        self, out: FindingCollector, rule: PhaseWindowRule, worker_phases: set[int]
    ) -> None:
        if (
            rule.start_phase is not None
            and rule.end_phase is not None
            and rule.start_phase > rule.end_phase
        ):
            out.error(
                "task",
                SYSTEM_ENTITY_ID,
                "rules",
                f"Rule '{rule.id}': start phase {rule.start_phase} is after "
                f"end phase {rule.end_phase}",
            )
        for phase in rule.allowed_phases:
            if phase not in worker_phases:
                out.warning(
                    "task",
                    SYSTEM_ENTITY_ID,
                    "rules",
                    f"Rule '{rule.id}': no worker is available in allowed phase {phase}",
                )


__all__ = ["RuleValidator"]
