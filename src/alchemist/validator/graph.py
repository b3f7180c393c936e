# src/alchemist/validator/graph.py
"""
@brief
Explicit task dependency graph.

@details
Built once per validation pass from the task collection: a map from task id
to the ids it depends on. Cycle detection is a standard three-color DFS
(white = unvisited, gray = on the current path, black = finished), written
iteratively so long dependency chains do not hit the recursion limit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from typing import Any

from alchemist.errors import DataError
from alchemist.validator.findings import is_blank, is_list, value_of

logger = logging.getLogger(__name__)

_WHITE, _GRAY, _BLACK = 0, 1, 2


class DependencyGraph:
    """
    @brief
    Adjacency representation of task dependencies.

    @details
    Edges point from a task to each task it depends on. Dependency ids that
    do not name a known task are dropped from the adjacency (they are reported
    by the reference checks). For duplicated task ids the last record wins.
    """

    def __init__(self, adjacency: dict[str, list[str]]) -> None:
        self.adjacency = adjacency

    @classmethod
    def from_tasks(cls, tasks: Sequence[Any]) -> DependencyGraph:
        """
        @brief
        Build the graph from task records.

        @params
            tasks : Sequence[Any]
                Task records; malformed `dependencies` values contribute no edges.

        @returns
            DependencyGraph over every task with a non-blank id.
        """
        raw: dict[str, list[str]] = {}
        for task in tasks:
            tid = value_of(task, "id")
            if is_blank(tid):
                continue
            deps = value_of(task, "dependencies")
            raw[str(tid)] = [str(d) for d in deps] if is_list(deps) else []

        # (1) Keep only edges to known tasks
        adjacency = {tid: [d for d in deps if d in raw] for tid, deps in raw.items()}
        return cls(adjacency)

    def nodes(self) -> list[str]:
        return list(self.adjacency)

    def dependencies_of(self, task_id: str) -> list[str]:
        return list(self.adjacency.get(task_id, []))

    def tasks_reaching_cycle(self) -> set[str]:
        """
        @brief
        Identify every task whose dependency chain runs into a cycle.

        @details
        A back edge (edge into a gray node) closes a cycle: every node on the
        current path from the target of that edge to the top is a cycle member.
        When a node finishes, it is marked as well if any dependency is marked,
        so tasks depending on a cycle are included. Each node is visited once.

        @returns
            Set of task ids that are on a cycle or depend on one.
        """
        color = dict.fromkeys(self.adjacency, _WHITE)
        tainted: set[str] = set()

        for root in self.adjacency:
            if color[root] != _WHITE:
                continue

            # (1) Iterative DFS: path holds the gray nodes, frames their edge iterators
            color[root] = _GRAY
            path: list[str] = [root]
            frames: list[Iterator[str]] = [iter(self.adjacency[root])]

            while frames:
                node = path[-1]
                dep = next(frames[-1], None)

                if dep is None:
                    # (2) Node finished: inherit the mark from its dependencies
                    if any(d in tainted for d in self.adjacency[node]):
                        tainted.add(node)
                    color[node] = _BLACK
                    path.pop()
                    frames.pop()
                    continue

                if color[dep] == _GRAY:
                    # (3) Back edge: mark the cycle segment of the current path
                    start = path.index(dep)
                    tainted.update(path[start:])
                elif color[dep] == _WHITE:
                    color[dep] = _GRAY
                    path.append(dep)
                    frames.append(iter(self.adjacency[dep]))

        if tainted:
            logger.debug("DependencyGraph: %d task(s) reach a dependency cycle", len(tainted))
        return tainted

    def has_cycle(self) -> bool:
        return bool(self.tasks_reaching_cycle())

    def topological_order(self) -> list[str]:
        """
        @brief
        Order tasks so that every task comes after its dependencies.

        @details
        Ties are broken by first appearance in the task collection.

        @raises
            DataError
                If the graph contains a cycle.
        """
        cyclic = self.tasks_reaching_cycle()
        if cyclic:
            raise DataError(
                message=f"Dependency graph is cyclic; affected tasks: {sorted(cyclic)}",
                source="DependencyGraph.topological_order",
                suggested_action="Remove circular task dependencies before scheduling.",
            )

        order: list[str] = []
        done: set[str] = set()
        for root in self.adjacency:
            if root in done:
                continue
            stack: list[tuple[str, Iterator[str]]] = [(root, iter(self.adjacency[root]))]
            while stack:
                node, edges = stack[-1]
                dep = next(edges, None)
                if dep is None:
                    stack.pop()
                    if node not in done:
                        done.add(node)
                        order.append(node)
                elif dep not in done:
                    stack.append((dep, iter(self.adjacency[dep])))
        return order


__all__ = ["DependencyGraph"]
