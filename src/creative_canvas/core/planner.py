"""
Execution Planner - Topological ordering and parallel grouping.

Turns an acyclic NodeGraph into an ExecutionPlan: a topological order and
a partition of the nodes into waves that can run concurrently. A cyclic
graph yields an empty plan flagged `has_cycles`; the planner never guesses
a partial order.
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from creative_canvas.core.graph import NodeGraph, NodeId

logger = logging.getLogger(__name__)


class CycleDetectedError(ValueError):
    """The graph contains a cycle, so it cannot be planned or run."""

    def __init__(self, message: str = "Graph contains a cycle", node_ids: Iterable[str] = ()):
        super().__init__(message)
        self.node_ids: list[str] = list(node_ids)


@dataclass
class ExecutionPlan:
    """
    A topological order plus a partition into parallel groups (waves).

    For every edge s -> t in the planned graph, s comes before t in
    `order` and sits in an earlier group than t.

    Attributes:
        order: Node IDs in a valid execution order
        parallel_groups: Waves of mutually independent node IDs
        has_cycles: True if the graph was cyclic (order/groups are then empty)
        graph_version: NodeGraph.version the plan was computed from
    """
    order: list[NodeId] = field(default_factory=list)
    parallel_groups: list[list[NodeId]] = field(default_factory=list)
    has_cycles: bool = False
    graph_version: int | None = None

    @property
    def is_empty(self) -> bool:
        return not self.order

    def group_of(self, node_id: str) -> int | None:
        """Get the wave index of a node, or None if it is not in the plan."""
        for index, group in enumerate(self.parallel_groups):
            if node_id in group:
                return index
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "order": list(self.order),
            "parallelGroups": [list(group) for group in self.parallel_groups],
            "hasCycles": self.has_cycles,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExecutionPlan:
        return cls(
            order=[NodeId(n) for n in data.get("order", [])],
            parallel_groups=[
                [NodeId(n) for n in group] for group in data.get("parallelGroups", [])
            ],
            has_cycles=bool(data.get("hasCycles", False)),
        )


class ExecutionPlanner:
    """
    Plans graph execution with Kahn's algorithm.

    An edge source -> target means target depends on source. Ties between
    ready nodes are broken by node insertion order, so plans are
    deterministic for a given graph.
    """

    def plan(
        self,
        graph: NodeGraph,
        targets: Iterable[str] | None = None,
    ) -> ExecutionPlan:
        """
        Compute an execution plan.

        Args:
            graph: The graph to plan
            targets: Only plan these nodes and everything upstream of them;
                None plans the whole graph

        Returns:
            ExecutionPlan; `has_cycles` is set and the plan is empty if the
            (selected part of the) graph contains a cycle.

        Raises:
            KeyError: If a target node does not exist.
        """
        node_ids = self._select(graph, targets)
        index = {node_id: i for i, node_id in enumerate(node_ids)}

        in_degree: dict[NodeId, int] = {node_id: 0 for node_id in node_ids}
        dependents: dict[NodeId, list[NodeId]] = {node_id: [] for node_id in node_ids}
        for edge in graph.edges:
            if edge.source_node_id in index and edge.target_node_id in index:
                in_degree[edge.target_node_id] += 1
                dependents[edge.source_node_id].append(edge.target_node_id)

        # Kahn's algorithm; the heap keeps ready nodes in insertion order
        ready = [(index[nid], nid) for nid in node_ids if in_degree[nid] == 0]
        heapq.heapify(ready)
        depth: dict[NodeId, int] = {nid: 0 for _, nid in ready}
        order: list[NodeId] = []

        while ready:
            _, node_id = heapq.heappop(ready)
            order.append(node_id)

            for dependent in dependents[node_id]:
                depth[dependent] = max(depth.get(dependent, 0), depth[node_id] + 1)
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, (index[dependent], dependent))

        if len(order) != len(node_ids):
            stuck = [nid for nid in node_ids if in_degree[nid] > 0]
            logger.warning("Cannot plan graph %s: cycle through %s", graph.id, stuck)
            return ExecutionPlan(has_cycles=True, graph_version=graph.version)

        # A node's wave is the length of the longest dependency chain above it
        groups: list[list[NodeId]] = []
        for node_id in node_ids:
            level = depth[node_id]
            while len(groups) <= level:
                groups.append([])
            groups[level].append(node_id)

        return ExecutionPlan(
            order=order,
            parallel_groups=groups,
            has_cycles=False,
            graph_version=graph.version,
        )

    def plan_or_raise(
        self,
        graph: NodeGraph,
        targets: Iterable[str] | None = None,
    ) -> ExecutionPlan:
        """
        Like plan(), but raise instead of returning a cyclic plan.

        Raises:
            CycleDetectedError: If the graph contains a cycle.
        """
        plan = self.plan(graph, targets)
        if plan.has_cycles:
            raise CycleDetectedError(
                "Graph contains a cycle; remove one of its connections before running"
            )
        return plan

    def _select(self, graph: NodeGraph, targets: Iterable[str] | None) -> list[NodeId]:
        if targets is None:
            return graph.node_ids

        selected: set[NodeId] = set()
        for target in targets:
            if target not in graph:
                raise KeyError(f"Node not found: {target}")
            selected.add(NodeId(target))
            selected.update(graph.get_upstream_nodes(target))
        return [node_id for node_id in graph.node_ids if node_id in selected]
