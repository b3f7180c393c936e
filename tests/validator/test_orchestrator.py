# tests/validator/test_orchestrator.py
from __future__ import annotations

import json
from pathlib import Path

import pytest

from alchemist.errors import DataError
from alchemist.report.finding_report import FindingReport
from alchemist.schemas.models import Client, Task, Worker
from alchemist.schemas.rules import CoLocationRule
from alchemist.validator.orchestrator import ValidationOrchestrator, validate_snapshot


@pytest.fixture()
def snapshot() -> tuple[list[Client], list[Worker], list[Task]]:
    """A snapshot on which no check fires."""
    clients = [Client(id="C1", name="Acme", priority=3, requested_task_ids=["T1", "T2"])]
    workers = [
        Worker(id="W1", name="Ann", skills=["python", "sql"], available_slots=[1, 2],
               max_load_per_phase=2),
        Worker(id="W2", name="Bob", skills=["python", "sql"], available_slots=[1, 2, 3],
               max_load_per_phase=2),
    ]
    tasks = [
        Task(id="T1", name="Extract", duration=1, required_skills=["python"],
             preferred_phases=[1], max_concurrent=1, dependencies=[]),
        Task(id="T2", name="Load", duration=1, required_skills=["sql"],
             preferred_phases=[2], max_concurrent=1, dependencies=["T1"]),
    ]
    return clients, workers, tasks


def test_clean_snapshot_validates_clean(snapshot):
    clients, workers, tasks = snapshot

    findings = ValidationOrchestrator().validate_all(clients, workers, tasks)

    assert findings == []


def test_field_findings_precede_consistency_findings(snapshot):
    """
    @brief
    A duplicated check is reported by both validators, basic first.
    """
    # --- Arrange ---
    clients, workers, tasks = snapshot
    clients.append(Client(id="C1", name="Copy", priority=1))

    # --- Act ---
    findings = ValidationOrchestrator().validate_all(clients, workers, tasks)

    # --- Assert ---
    assert [f.message for f in findings] == ["Duplicate ClientID found", "Duplicate ClientID found"]


def test_rule_findings_come_last(snapshot):
    clients, workers, tasks = snapshot
    tasks[1] = tasks[1].model_copy(update={"dependencies": ["T1", "T9"]})

    findings = ValidationOrchestrator().validate_all(
        clients, workers, tasks, rules=[CoLocationRule(id="R1", task_ids=["T1"])]
    )

    assert findings[-1].field == "rules"
    assert findings[0].message == "Invalid task dependencies: T9"


def test_validate_entities_dispatch_and_unknown_type(snapshot):
    # --- Arrange ---
    clients, workers, tasks = snapshot
    orchestrator = ValidationOrchestrator()

    # --- Act ---
    findings = orchestrator.validate_entities("task", tasks, clients=clients, workers=workers)

    # --- Assert ---
    assert findings == []
    with pytest.raises(DataError):
        orchestrator.validate_entities("supplier", [], clients=clients, workers=workers)  # type: ignore[arg-type]


def test_revalidate_record_merges_into_report(snapshot):
    """
    @brief
    Editing one record replaces only that record's findings.
    """
    # --- Arrange ---
    clients, workers, tasks = snapshot
    clients.append(Client(id="C2", name="", priority=2))
    report = validate_snapshot(clients, workers, tasks)
    assert [f.entity_id for f in report.filter(field="name")] == ["C2", "C2"]

    edited = clients[0].model_copy(update={"priority": 9})
    orchestrator = ValidationOrchestrator()

    # --- Act ---
    fresh = orchestrator.revalidate_record(
        "client", edited, clients=clients, workers=workers, tasks=tasks
    )
    report.replace_for_record("client", "C1", fresh)

    # --- Assert ---
    assert [f.message for f in fresh] == [
        "PriorityLevel must be between 1 and 5",
        "PriorityLevel must be between 1-5",
    ]
    assert [f.entity_id for f in report.filter(field="name")] == ["C2", "C2"]
    assert [f.entity_id for f in report.filter(field="priority")] == ["C1", "C1"]


def test_revalidate_task_resolves_siblings(snapshot):
    clients, workers, tasks = snapshot

    fresh = ValidationOrchestrator().revalidate_record(
        "task", tasks[1], clients=clients, workers=workers, tasks=tasks
    )

    assert fresh == []


def test_validate_snapshot_writes_report(snapshot, tmp_path: Path):
    # --- Arrange ---
    clients, workers, tasks = snapshot
    clients[0] = clients[0].model_copy(update={"priority": 0})

    # --- Act ---
    report = validate_snapshot(clients, workers, tasks, write_report=True, out_dir=tmp_path)

    # --- Assert ---
    assert isinstance(report, FindingReport)
    data = json.loads((tmp_path / "validation_report.json").read_text(encoding="utf-8"))
    assert data["valid"] is False
    assert data["counts"] == {"error": 2, "warning": 0, "info": 0}
    assert {f["entityType"] for f in data["findings"]} == {"client"}


def test_unrelated_edit_keeps_reference_and_cycle_errors(snapshot):
    """
    @brief
    Renaming a record does not clear findings that still hold.

    @details
    C1 requests a task that does not exist and T1/T2 depend on each other.
    After a name-only edit and merge, both records carry the same findings
    as after the full validation, so the report stays invalid.
    """
    # --- Arrange ---
    clients, workers, tasks = snapshot
    clients[0] = clients[0].model_copy(update={"requested_task_ids": ["T1", "T9"]})
    tasks[0] = tasks[0].model_copy(update={"dependencies": ["T2"]})
    report = validate_snapshot(clients, workers, tasks)
    client_before = sorted(f.key() for f in report.filter(entity_type="client", entity_id="C1"))
    task_before = sorted(f.key() for f in report.filter(entity_type="task", entity_id="T1"))
    orchestrator = ValidationOrchestrator()

    # --- Act ---
    renamed_client = clients[0].model_copy(update={"name": "Acme Corp"})
    report.replace_for_record(
        "client",
        "C1",
        orchestrator.revalidate_record(
            "client", renamed_client, clients=clients, workers=workers, tasks=tasks
        ),
    )
    renamed_task = tasks[0].model_copy(update={"name": "Extract all"})
    report.replace_for_record(
        "task",
        "T1",
        orchestrator.revalidate_record(
            "task", renamed_task, clients=clients, workers=workers, tasks=tasks
        ),
    )

    # --- Assert ---
    client_after = report.filter(entity_type="client", entity_id="C1")
    task_after = report.filter(entity_type="task", entity_id="T1")
    assert sorted(f.key() for f in client_after) == client_before
    assert sorted(f.key() for f in task_after) == task_before
    assert "RequestedTaskID 'T9' does not exist" in [f.message for f in client_after]
    assert "Circular dependency detected in task chain" in [f.message for f in task_after]
    assert report.has_errors


def test_revalidate_sees_the_edited_version(snapshot):
    # --- Arrange ---
    clients, workers, tasks = snapshot
    clients[0] = clients[0].model_copy(update={"requested_task_ids": ["T9"]})
    orchestrator = ValidationOrchestrator()

    # --- Act ---
    fixed = clients[0].model_copy(update={"requested_task_ids": ["T1"]})
    fresh = orchestrator.revalidate_record(
        "client", fixed, clients=clients, workers=workers, tasks=tasks
    )
    renamed = clients[0].model_copy(update={"id": "C5"})
    moved = orchestrator.revalidate_record(
        "client", renamed, clients=clients, workers=workers, tasks=tasks, position=0
    )

    # --- Assert ---
    assert fresh == []
    assert [(f.entity_id, f.message) for f in moved] == [
        ("C5", "RequestedTaskIDs reference non-existent tasks: T9"),
        ("C5", "RequestedTaskID 'T9' does not exist"),
    ]


def test_validate_all_is_idempotent(snapshot):
    """
    @brief
    Two passes over the same snapshot give the same findings.

    @details
    The snapshot triggers field, consistency and rule findings. Keys match
    in order; generated ids never repeat.
    """
    # --- Arrange ---
    clients, workers, tasks = snapshot
    clients.append(Client(id="C1", name="Copy", priority=8, requested_task_ids=["T404"]))
    tasks[1] = tasks[1].model_copy(update={"dependencies": ["T1", "T9"]})
    rules = [CoLocationRule(id="R1", task_ids=["T1"])]
    orchestrator = ValidationOrchestrator()

    # --- Act ---
    first = orchestrator.validate_all(clients, workers, tasks, rules=rules)
    second = orchestrator.validate_all(clients, workers, tasks, rules=rules)

    # --- Assert ---
    messages = [f.message for f in first]
    assert "Duplicate ClientID found" in messages
    assert "RequestedTaskID 'T404' does not exist" in messages
    assert first[-1].field == "rules"
    assert [f.key() for f in first] == [f.key() for f in second]
    assert {f.id for f in first}.isdisjoint({f.id for f in second})
