# tests/validator/test_graph.py
from __future__ import annotations

import pytest

from alchemist.errors import DataError
from alchemist.schemas.models import Task
from alchemist.validator.graph import DependencyGraph


def mk_task(tid: str, *deps: str) -> Task:
    return Task(id=tid, name=tid, dependencies=list(deps))


def test_unknown_dependencies_are_dropped_from_adjacency():
    graph = DependencyGraph.from_tasks([mk_task("A", "B", "Z"), mk_task("B")])

    assert graph.nodes() == ["A", "B"]
    assert graph.dependencies_of("A") == ["B"]
    assert graph.dependencies_of("missing") == []


def test_cycle_members_and_dependents_are_reached():
    """
    @brief
    Tasks on a cycle and tasks depending on it are both reported.

    @details
    D depends on the A -> B -> C -> A cycle; E is independent.
    """
    # --- Arrange ---
    tasks = [
        mk_task("A", "B"),
        mk_task("B", "C"),
        mk_task("C", "A"),
        mk_task("D", "A"),
        mk_task("E"),
    ]

    # --- Act ---
    reached = DependencyGraph.from_tasks(tasks).tasks_reaching_cycle()

    # --- Assert ---
    assert reached == {"A", "B", "C", "D"}


def test_dag_has_no_cycle_and_topological_order():
    # --- Arrange ---
    graph = DependencyGraph.from_tasks([mk_task("A", "B", "C"), mk_task("B", "C"), mk_task("C")])

    # --- Act ---
    order = graph.topological_order()

    # --- Assert ---
    assert not graph.has_cycle()
    assert order == ["C", "B", "A"]


def test_topological_order_rejects_cycles():
    graph = DependencyGraph.from_tasks([mk_task("A", "B"), mk_task("B", "A")])

    with pytest.raises(DataError):
        graph.topological_order()


def test_long_chain_does_not_recurse():
    # --- Arrange ---
    n = 5000
    tasks = [mk_task(f"T{i}", f"T{i + 1}") for i in range(n)] + [mk_task(f"T{n}", "T0")]

    # --- Act ---
    reached = DependencyGraph.from_tasks(tasks).tasks_reaching_cycle()

    # --- Assert ---
    assert len(reached) == n + 1
