"""
Dependency graph for one batch of tool invocations.

An invocation depends on another invocation of the same batch when one of its
``{{ path }}`` references starts with that invocation's id. References to ids
outside the batch are not edges.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from ..core.Exceptions import CycleError
from .templates import extract_variables

if TYPE_CHECKING:  # pragma: no cover
    from ..agents.invocations import ToolInvocation

logger = logging.getLogger(__name__)

__all__ = ["DependencyGraph", "build_dependency_graph", "topological_order"]

DependencyGraph = dict[str, list[str]]

_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


def build_dependency_graph(invocations: Sequence["ToolInvocation"]) -> DependencyGraph:
    """Map each invocation id to the batch ids its arguments reference."""
    ids = {inv.id for inv in invocations}
    graph: DependencyGraph = {}

    for inv in invocations:
        if inv.id in graph:
            # Duplicate id: first occurrence wins.
            continue
        deps: dict[str, None] = {}
        for path in extract_variables(inv.arguments):
            head = path.split(".", 1)[0]
            if head in ids:
                deps.setdefault(head, None)
        graph[inv.id] = list(deps)

    return graph


def topological_order(invocations: Sequence["ToolInvocation"]) -> list[str]:
    """
    Depth-first, three-color topological sort.

    Invocations are visited in batch order and dependencies are recursed into
    first, so the result is stable for a given batch. Raises CycleError naming
    the id that was reached while still in progress.
    """
    graph = build_dependency_graph(invocations)
    marks: dict[str, int] = {node: _UNVISITED for node in graph}
    order: list[str] = []

    def visit(node: str) -> None:
        mark = marks[node]
        if mark == _IN_PROGRESS:
            raise CycleError(node)
        if mark == _DONE:
            return
        marks[node] = _IN_PROGRESS
        for dep in graph[node]:
            visit(dep)
        marks[node] = _DONE
        order.append(node)

    for node in graph:
        visit(node)

    logger.debug("Dependency order: %s (graph=%s)", order, graph)
    return order
