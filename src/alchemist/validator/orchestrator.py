# src/alchemist/validator/orchestrator.py
from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from alchemist.errors import DataError
from alchemist.report.finding_report import FindingReport
from alchemist.schemas.models import (
    Client,
    EntityType,
    Task,
    ValidationConfig,
    ValidationFinding,
    Worker,
)
from alchemist.schemas.rules import BusinessRule
from alchemist.validator.basic import FieldValidator
from alchemist.validator.consistency import ConsistencyValidator
from alchemist.validator.findings import is_blank, record_key, value_of
from alchemist.validator.rules import RuleValidator

logger = logging.getLogger(__name__)


# ---------------------------
# ORCHESTRATOR (instance core)
# ----------------------------
class ValidationOrchestrator:
    """
    @brief
    Runs the field and consistency validators over a snapshot.

    @details
    Findings are concatenated in a stable order: field findings for clients,
    workers and tasks first, then consistency findings, then rule findings
    when rules are given. Nothing is deduplicated; different checks may
    legitimately report the same cell.

    The orchestrator owns its validators and carries no other state, so one
    instance can be shared by callers or constructed per request.
    """

    def __init__(self, cfg: ValidationConfig | None = None) -> None:
        self.cfg = cfg or ValidationConfig()
        self.fields = FieldValidator(self.cfg)
        self.consistency = ConsistencyValidator(self.cfg)
        self.rules = RuleValidator()

    def validate_entities(
        self,
        entity_type: EntityType,
        records: Sequence[Client] | Sequence[Worker] | Sequence[Task],
        *,
        clients: Sequence[Client] = (),
        workers: Sequence[Worker] = (),
        tasks: Sequence[Task] | None = None,
    ) -> list[ValidationFinding]:
        """
        @brief
        Field-level validation of one collection, as done right after an upload.

        @details
        Task validation needs the client and worker collections for reference
        checks. `tasks`, when given together with entity_type="task", is the
        full task collection used to resolve dependencies of `records`.
        """
        if entity_type == "client":
            return self.fields.validate_clients(records)
        if entity_type == "worker":
            return self.fields.validate_workers(records)
        if entity_type == "task":
            return self.fields.validate_tasks(
                records, list(clients), list(workers), known_tasks=tasks
            )
        raise DataError(
            message=f"Unknown entity type: {entity_type!r}",
            source="ValidationOrchestrator.validate_entities",
            suggested_action="Use one of: client, worker, task.",
        )

    def validate_all(
        self,
        clients: Sequence[Client],
        workers: Sequence[Worker],
        tasks: Sequence[Task],
        rules: Sequence[BusinessRule] | None = None,
    ) -> list[ValidationFinding]:
        """
        @brief
        Full validation of a snapshot.

        @returns
            Field findings (clients, workers, tasks), then consistency findings,
            then rule findings.
        """
        clients, workers, tasks = list(clients), list(workers), list(tasks)

        findings: list[ValidationFinding] = []
        findings += self.fields.validate_clients(clients)
        findings += self.fields.validate_workers(workers)
        findings += self.fields.validate_tasks(tasks, clients, workers)
        findings += self.consistency.validate(clients, workers, tasks)
        if rules:
            findings += self.rules.validate(list(rules), clients, workers, tasks)

        logger.info(
            "Validation: %d client(s), %d worker(s), %d task(s) -> %d finding(s)",
            len(clients),
            len(workers),
            len(tasks),
            len(findings),
        )
        return findings

    def revalidate_record(
        self,
        entity_type: EntityType,
        record: Client | Worker | Task,
        *,
        clients: Sequence[Client] = (),
        workers: Sequence[Worker] = (),
        tasks: Sequence[Task] = (),
        position: int | None = None,
    ) -> list[ValidationFinding]:
        """
        @brief
        Re-validation of one edited record.

        @details
        Field checks run on the record as a singleton collection; sibling
        collections only resolve references. Consistency checks run on the
        snapshot with the edited record substituted for its previous version,
        so cycle, reference and skill findings that still hold are reported
        again. Only findings about the record itself are returned, which makes
        the result a complete replacement for FindingReport.replace_for_record().

        @params
            position : int | None
                Index of the previous version in its collection. When None the
                record is matched by id, and appended if no record matches.
        """
        snapshot = {"client": list(clients), "worker": list(workers), "task": list(tasks)}
        if entity_type not in snapshot:
            raise DataError(
                message=f"Unknown entity type: {entity_type!r}",
                source="ValidationOrchestrator.revalidate_record",
                suggested_action="Use one of: client, worker, task.",
            )
        index = _substitute(snapshot[entity_type], record, position)

        field_findings = self.validate_entities(
            entity_type,
            [record],
            clients=snapshot["client"],
            workers=snapshot["worker"],
            tasks=snapshot["task"] or None,
        )
        if entity_type == "client":
            # requested task ids are checked on the task side
            field_findings += self.fields.validate_tasks(
                snapshot["task"], [record], snapshot["worker"]
            )
        snapshot_findings = self.consistency.validate(
            snapshot["client"], snapshot["worker"], snapshot["task"]
        )

        # singleton keys are row-0 for a blank id; snapshot keys use the real index
        return _about(field_findings, entity_type, record_key(record, 0)) + _about(
            snapshot_findings, entity_type, record_key(record, index)
        )


def _about(
    findings: list[ValidationFinding], entity_type: EntityType, key: str
) -> list[ValidationFinding]:
    return [f for f in findings if f.entity_type == entity_type and f.entity_id == key]


def _substitute(records: list, record: object, position: int | None) -> int:
    """Put `record` in place of its previous version and return its index."""
    if position is not None and 0 <= position < len(records):
        records[position] = record
        return position

    rid = value_of(record, "id")
    if not is_blank(rid):
        for index, existing in enumerate(records):
            if value_of(existing, "id") == rid:
                records[index] = record
                return index

    records.append(record)
    return len(records) - 1


# ----------------------------
# THIN FACADE (static script call)
# ----------------------------
def validate_snapshot(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    cfg: ValidationConfig | None = None,
    *,
    rules: Sequence[BusinessRule] | None = None,
    write_report: bool = False,
    out_dir: Path | None = None,
    filename: str = "validation_report.json",
) -> FindingReport:
    """
    @brief
    High-level convenience wrapper for full snapshot validation.

    @details
    Creates a ValidationOrchestrator, runs the full validation and wraps the
    findings in a FindingReport. Optionally writes the report as JSON.

    @params
        clients, workers, tasks : Sequence
            Snapshot to validate.
        cfg : ValidationConfig | None
            Thresholds; defaults apply when None.
        rules : Sequence[BusinessRule] | None
            Business rules checked against the snapshot.
        write_report : bool
            If True, persist the report to out_dir/filename.

    @returns
        FindingReport with all findings in stable order.
    """
    # (1) Run validators
    orchestrator = ValidationOrchestrator(cfg)
    report = FindingReport(orchestrator.validate_all(clients, workers, tasks, rules))

    # (2) Optionally persist the report to disk
    if write_report:
        report.save(out_dir=out_dir, filename=filename)

    return report


__all__ = ["ValidationOrchestrator", "validate_snapshot"]
