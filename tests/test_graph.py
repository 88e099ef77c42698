"""Tests for dependency graph construction and topological ordering."""

from __future__ import annotations

import pytest

from atomic_chain.agents import ToolInvocation
from atomic_chain.chaining import build_dependency_graph, topological_order
from atomic_chain.core.Exceptions import CycleError


def call(call_id: str, **arguments) -> ToolInvocation:
    return ToolInvocation(id=call_id, name="noop", arguments=arguments)


def assert_topological(batch: list[ToolInvocation], order: list[str]) -> None:
    graph = build_dependency_graph(batch)
    position = {cid: i for i, cid in enumerate(order)}
    for node, deps in graph.items():
        for dep in deps:
            assert position[dep] < position[node], f"{dep} must run before {node}"


class TestBuildDependencyGraph:
    def test_edges_from_references(self):
        batch = [call("t1", path="."), call("t2", content="{{t1.count}} files")]
        assert build_dependency_graph(batch) == {"t1": [], "t2": ["t1"]}

    def test_references_outside_batch_are_ignored(self):
        batch = [call("t1", x="{{t0.value}}"), call("t2", y="{{external}}")]
        assert build_dependency_graph(batch) == {"t1": [], "t2": []}

    def test_multiple_references_to_same_id_collapse(self):
        batch = [call("t1"), call("t2", a="{{t1.a}}", b=["{{t1.b}}"])]
        assert build_dependency_graph(batch)["t2"] == ["t1"]

    def test_duplicate_ids_first_wins(self):
        batch = [call("t1", x="{{t2.v}}"), call("t2"), call("t1", y="plain")]
        assert build_dependency_graph(batch) == {"t1": ["t2"], "t2": []}


class TestTopologicalOrder:
    def test_independent_calls_keep_batch_order(self):
        batch = [call("a"), call("b"), call("c")]
        assert topological_order(batch) == ["a", "b", "c"]

    def test_reverse_chain(self):
        batch = [call("t3", v="{{t2.x}}"), call("t2", v="{{t1.x}}"), call("t1")]
        order = topological_order(batch)
        assert order == ["t1", "t2", "t3"]
        assert_topological(batch, order)

    def test_diamond(self):
        batch = [
            call("d", a="{{b.x}}", b="{{c.x}}"),
            call("b", v="{{a.x}}"),
            call("c", v="{{a.x}}"),
            call("a"),
        ]
        order = topological_order(batch)
        assert_topological(batch, order)
        assert order[0] == "a"
        assert order[-1] == "d"

    @pytest.mark.parametrize(
        "batch",
        [
            [call("x", v="{{y.v}}"), call("y", v="{{z.v}}"), call("z")],
            [call("p"), call("q", v="{{p.v}} {{r.v}}"), call("r", v="{{p.v}}")],
            [call("m", v=["{{n.v}}", {"k": "{{o.v}}"}]), call("n", v="{{o.v}}"), call("o")],
        ],
    )
    def test_every_call_after_its_dependencies(self, batch):
        assert_topological(batch, topological_order(batch))

    def test_two_cycle_raises(self):
        batch = [call("A", v="{{B.x}}"), call("B", v="{{A.y}}")]
        with pytest.raises(CycleError) as excinfo:
            topological_order(batch)
        assert excinfo.value.tool_id in {"A", "B"}
        assert "Circular dependency detected involving tool" in str(excinfo.value)

    def test_self_reference_is_a_cycle(self):
        with pytest.raises(CycleError):
            topological_order([call("t1", v="{{t1.x}}")])

    def test_empty_batch(self):
        assert topological_order([]) == []
