# tests/validator/test_consistency.py
from __future__ import annotations

import pytest

from alchemist.errors import DataError
from alchemist.schemas.models import Client, Task, Worker
from alchemist.validator.consistency import ConsistencyValidator


# -----------------------------
# HELPER FACTORIES
# -----------------------------
def mk_client(cid: str, **kw) -> Client:
    data = {"id": cid, "name": f"Client {cid}", "priority": 3, "requested_task_ids": []}
    data.update(kw)
    return Client(**data)


def mk_worker(wid: str, skills=("python", "sql"), slots=(1, 2), load: int = 2, **kw) -> Worker:
    return Worker(
        id=wid,
        name=f"Worker {wid}",
        skills=list(skills),
        available_slots=list(slots),
        max_load_per_phase=load,
        **kw,
    )


def mk_task(tid: str, skills=("python",), phases=(1,), deps=(), duration: int = 1, **kw) -> Task:
    data = {
        "id": tid,
        "name": f"Task {tid}",
        "duration": duration,
        "required_skills": list(skills),
        "preferred_phases": list(phases),
        "max_concurrent": 1,
        "dependencies": list(deps),
    }
    data.update(kw)
    return Task(**data)


def clean_snapshot() -> tuple[list[Client], list[Worker], list[Task]]:
    clients = [mk_client("C1", requested_task_ids=["T1", "T2"])]
    workers = [mk_worker("W1"), mk_worker("W2", slots=(1, 2, 3))]
    tasks = [
        mk_task("T1", skills=("python",), phases=(1,)),
        mk_task("T2", skills=("sql",), phases=(2,), deps=("T1",)),
    ]
    return clients, workers, tasks


def by_field(findings, field: str) -> list:
    return [f for f in findings if f.field == field]


# -----------------------------
# BASELINE
# -----------------------------
def test_clean_snapshot_has_no_findings():
    # --- Arrange ---
    clients, workers, tasks = clean_snapshot()

    # --- Act ---
    findings = ConsistencyValidator().validate(clients, workers, tasks)

    # --- Assert ---
    assert findings == []


def test_repeated_runs_produce_identical_keys():
    """
    @brief
    Same input gives the same findings apart from id suffix and timestamp.
    """
    # --- Arrange ---
    clients, workers, tasks = clean_snapshot()
    clients.append(mk_client("C1", priority=8, requested_task_ids=["T404"]))
    tasks.append(mk_task("T3", deps=("T3",), phases=(7,)))
    validator = ConsistencyValidator()

    # --- Act ---
    first = validator.validate(clients, workers, tasks)
    second = validator.validate(clients, workers, tasks)

    # --- Assert ---
    assert first
    assert [f.key() for f in first] == [f.key() for f in second]
    assert {f.id for f in first}.isdisjoint({f.id for f in second})


def test_non_list_input_raises_dataerror():
    clients, workers, tasks = clean_snapshot()

    with pytest.raises(DataError):
        ConsistencyValidator().validate(clients, {"W1": workers[0]}, tasks)


# -----------------------------
# STRUCTURE
# -----------------------------
def test_missing_columns_reported_per_record():
    # --- Arrange ---
    client = Client.model_construct(id="C1", name="", priority=None, requested_task_ids=[])
    worker = Worker.model_construct(id="W1", name="Ann", skills=[], available_slots=[1])
    task = Task.model_construct(id="T1", name="Load", required_skills=[], dependencies=[])

    # --- Act ---
    findings = ConsistencyValidator().validate([client], [worker], [task])

    # --- Assert ---
    missing = {(f.entity_type, f.message) for f in findings if f.message.startswith("Missing")}
    assert missing == {
        ("client", "Missing required column: ClientName"),
        ("client", "Missing required column: PriorityLevel"),
        ("worker", "Missing required column: Skills"),
        ("worker", "Missing required column: MaxLoadPerPhase"),
        ("task", "Missing required column: Duration"),
        ("task", "Missing required column: MaxConcurrent"),
    }


def test_duplicate_ids_in_each_collection():
    # --- Arrange ---
    clients, workers, tasks = clean_snapshot()
    clients.append(mk_client("C1"))
    workers.append(mk_worker("W2"))
    tasks.append(mk_task("T1"))

    # --- Act ---
    findings = ConsistencyValidator().validate(clients, workers, tasks)

    # --- Assert ---
    dups = {(f.entity_type, f.entity_id, f.message) for f in findings if "Duplicate" in f.message}
    assert dups == {
        ("client", "C1", "Duplicate ClientID found"),
        ("worker", "W2", "Duplicate WorkerID found"),
        ("task", "T1", "Duplicate TaskID found"),
    }


def test_malformed_list_values():
    worker = Worker.model_construct(
        id="W1", name="Ann", skills="python", available_slots=[1], max_load_per_phase=1
    )

    findings = ConsistencyValidator().validate([], [worker], [])

    assert [f.message for f in by_field(findings, "skills")] == ["Skills must be a valid array/list"]


def test_out_of_range_and_negative_hours():
    # --- Arrange ---
    clients, workers, tasks = clean_snapshot()
    clients[0] = mk_client("C1", priority=0, requested_task_ids=["T1"])
    tasks[0] = mk_task("T1", estimated_hours=-2.0)

    # --- Act ---
    findings = ConsistencyValidator().validate(clients, workers, tasks)

    # --- Assert ---
    assert [f.message for f in by_field(findings, "priority")] == [
        "PriorityLevel must be between 1-5"
    ]
    assert [f.message for f in by_field(findings, "estimatedHours")] == [
        "Estimated hours cannot be negative"
    ]


# -----------------------------
# REFERENCES AND CYCLES
# -----------------------------
def test_requested_task_reference_one_finding_per_unknown_id():
    # --- Arrange ---
    clients, workers, tasks = clean_snapshot()
    clients[0] = mk_client("C1", requested_task_ids=["T1", "T7", "T8"])

    # --- Act ---
    findings = ConsistencyValidator().validate(clients, workers, tasks)

    # --- Assert ---
    assert [f.message for f in by_field(findings, "requestedTaskIds")] == [
        "RequestedTaskID 'T7' does not exist",
        "RequestedTaskID 'T8' does not exist",
    ]


def test_unknown_dependency_reported_per_reference():
    clients, workers, tasks = clean_snapshot()
    tasks[1] = mk_task("T2", skills=("sql",), phases=(2,), deps=("T1", "T5"))

    findings = ConsistencyValidator().validate(clients, workers, tasks)

    assert [f.message for f in by_field(findings, "dependencies")] == [
        "Referenced task dependency 'T5' does not exist"
    ]


def test_three_task_cycle_flags_every_member():
    """
    @brief
    A -> B -> C -> A is reported once for each task on the cycle.
    """
    # --- Arrange ---
    workers = [mk_worker("W1", slots=(1, 2, 3, 4))]
    tasks = [
        mk_task("A", deps=("B",), phases=()),
        mk_task("B", deps=("C",), phases=()),
        mk_task("C", deps=("A",), phases=()),
    ]

    # --- Act ---
    findings = ConsistencyValidator().validate([], workers, tasks)

    # --- Assert ---
    cycle = [f for f in findings if f.message == "Circular dependency detected in task chain"]
    assert sorted(f.entity_id for f in cycle) == ["A", "B", "C"]


def test_acyclic_chain_has_no_cycle_findings():
    workers = [mk_worker("W1")]
    tasks = [
        mk_task("A", deps=("B",), phases=()),
        mk_task("B", deps=("C",), phases=()),
        mk_task("C", phases=()),
    ]

    findings = ConsistencyValidator().validate([], workers, tasks)

    assert not [f for f in findings if "Circular" in f.message]


def test_self_dependency_is_a_cycle():
    findings = ConsistencyValidator().validate([], [mk_worker("W1")], [mk_task("T1", deps=("T1",))])

    assert [f.entity_id for f in findings if "Circular" in f.message] == ["T1"]


# -----------------------------
# CAPACITY
# -----------------------------
def _capacity_case(n_tasks: int):
    workers = [mk_worker("W1", skills=("python",), slots=(1,), load=1),
               mk_worker("W2", skills=("python",), slots=(1,), load=1)]
    tasks = [mk_task(f"T{i}", phases=(1,)) for i in range(1, n_tasks + 1)]
    return ConsistencyValidator().validate([], workers, tasks)


def test_capacity_equal_to_demand_is_accepted():
    # --- Act ---
    findings = _capacity_case(2)

    # --- Assert ---
    assert by_field(findings, "capacity") == []
    assert by_field(findings, "phaseCapacity") == []


def test_capacity_below_demand_warns_in_both_checks():
    # --- Act ---
    findings = _capacity_case(3)

    # --- Assert ---
    capacity = by_field(findings, "capacity")
    saturation = by_field(findings, "phaseCapacity")
    assert [f.message for f in capacity] == ["Phase 1 has 3 task-days but only 2 worker capacity"]
    assert [f.message for f in saturation] == [
        "Phase 1 has 3 task-days but only 2 worker slots available"
    ]
    assert all(f.entity_id == "system" and f.severity == "warning" for f in capacity + saturation)


def test_unrealistic_worker_load():
    clients, workers, tasks = clean_snapshot()
    workers[0] = mk_worker("W1", load=11)

    findings = ConsistencyValidator().validate(clients, workers, tasks)

    assert [f.message for f in by_field(findings, "maxLoadPerPhase")] == [
        "MaxLoadPerPhase seems unrealistic (>10)"
    ]


# -----------------------------
# SKILLS AND CONSTRAINTS
# -----------------------------
def test_no_single_worker_with_all_skills():
    """
    @brief
    Pool coverage is not enough: one worker must hold every skill of a task.
    """
    # --- Arrange ---
    workers = [
        mk_worker("W1", skills=("python",)),
        mk_worker("W2", skills=("sql",)),
    ]
    tasks = [mk_task("T1", skills=("python", "sql"))]

    # --- Act ---
    findings = ConsistencyValidator().validate([], workers, tasks)

    # --- Assert ---
    errors = [f for f in by_field(findings, "requiredSkills") if f.severity == "error"]
    assert [f.message for f in errors] == ["No worker has all required skills: python, sql"]
    assert by_field(findings, "skillCoverage") == []


def test_worker_with_all_skills_clears_the_error():
    workers = [
        mk_worker("W1", skills=("python",)),
        mk_worker("W2", skills=("sql",)),
        mk_worker("W3", skills=("SQL", "Python")),
    ]
    tasks = [mk_task("T1", skills=("python", "sql"))]

    findings = ConsistencyValidator().validate([], workers, tasks)

    assert by_field(findings, "requiredSkills") == []


def test_skill_not_held_by_anyone():
    findings = ConsistencyValidator().validate(
        [], [mk_worker("W1")], [mk_task("T1", skills=("rust",))]
    )

    assert [f.message for f in by_field(findings, "skillCoverage")] == [
        "No worker available with required skill: rust"
    ]


def test_max_concurrent_above_qualified_workers():
    # --- Arrange ---
    clients, workers, tasks = clean_snapshot()
    tasks[0] = mk_task("T1", max_concurrent=3)

    # --- Act ---
    findings = ConsistencyValidator().validate(clients, workers, tasks)

    # --- Assert ---
    assert [f.message for f in by_field(findings, "maxConcurrent")] == [
        "MaxConcurrent (3) exceeds number of qualified workers (2)"
    ]


def test_dependency_phase_conflict_and_unrealistic_hours():
    # --- Arrange ---
    clients, workers, tasks = clean_snapshot()
    tasks[1] = mk_task("T2", skills=("sql",), phases=(1,), deps=("T1",), estimated_hours=30.0)

    # --- Act ---
    findings = ConsistencyValidator().validate(clients, workers, tasks)

    # --- Assert ---
    assert [f.message for f in by_field(findings, "preferredPhases")] == [
        "Task preferred phases conflict with dependency 'T1' phases"
    ]
    assert [f.message for f in by_field(findings, "estimatedHours")] == [
        "Estimated hours (30) exceed realistic daily capacity for duration (1 days)"
    ]


def test_phase_without_workers():
    clients, workers, tasks = clean_snapshot()
    tasks.append(mk_task("T3", phases=(5,)))

    findings = ConsistencyValidator().validate(clients, workers, tasks)

    assert [f.message for f in by_field(findings, "phaseConsistency")] == [
        "Phase 5 is required by tasks but no workers are available in this phase"
    ]


def test_workload_imbalance_is_info():
    """
    @brief
    A worker qualified for far more work than the average gets an info finding.
    """
    # --- Arrange ---
    workers = [
        mk_worker("W1", skills=("python",), slots=(1, 2, 3)),
        mk_worker("W2", skills=("ui",), slots=(1, 2, 3)),
        mk_worker("W3", skills=("ui",), slots=(1, 2, 3)),
        mk_worker("W4", skills=("ui",), slots=(1, 2, 3)),
    ]
    tasks = [mk_task("T1", skills=("python",), duration=3, phases=(1,))]

    # --- Act ---
    findings = ConsistencyValidator().validate([], workers, tasks)

    # --- Assert ---
    workload = by_field(findings, "workload")
    assert len(workload) == 1
    assert workload[0].entity_id == "W1"
    assert workload[0].severity == "info"
    assert workload[0].message == (
        "Worker has significantly higher potential workload (3) than average (1)"
    )
