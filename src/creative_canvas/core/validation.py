"""
Graph Validation - Whole-graph static analysis before a run.

GraphValidator inspects a complete NodeGraph and reports structural
problems as a list of ValidationIssues. It never raises; callers decide
what to do with the result. Error-severity issues block execution.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from creative_canvas.core.data_types import PortTypeRegistry, get_port_registry
from creative_canvas.core.graph import Edge, NodeGraph, NodeId
from creative_canvas.core.node_types import NodeRegistry
from creative_canvas.core.planner import ExecutionPlanner

logger = logging.getLogger(__name__)


class IssueType(Enum):
    """Kinds of problems GraphValidator reports."""
    CYCLE_DETECTED = "CYCLE_DETECTED"
    MISSING_REQUIRED_INPUT = "MISSING_REQUIRED_INPUT"
    PORT_INCOMPATIBLE = "PORT_INCOMPATIBLE"
    UNUSED_OUTPUT = "UNUSED_OUTPUT"
    ISOLATED_NODE = "ISOLATED_NODE"
    MISSING_PARAMETER = "MISSING_PARAMETER"


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationIssue:
    """A single problem found in a graph."""
    type: IssueType
    severity: Severity
    message: str
    node_id: NodeId | None = None
    port_id: str | None = None
    suggestion: str | None = None
    # Nodes on the cycle, for CYCLE_DETECTED issues
    node_ids: list[NodeId] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.node_id is not None:
            data["nodeId"] = self.node_id
        if self.port_id is not None:
            data["portId"] = self.port_id
        if self.suggestion:
            data["suggestion"] = self.suggestion
        if self.node_ids:
            data["nodeIds"] = list(self.node_ids)
        return data


@dataclass
class GraphStats:
    total_nodes: int = 0
    connected_nodes: int = 0
    isolated_nodes: int = 0
    execution_order: list[NodeId] | None = None
    parallel_groups: list[list[NodeId]] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "totalNodes": self.total_nodes,
            "connectedNodes": self.connected_nodes,
            "isolatedNodes": self.isolated_nodes,
        }
        if self.execution_order is not None:
            data["executionOrder"] = list(self.execution_order)
        if self.parallel_groups is not None:
            data["parallelGroups"] = [list(group) for group in self.parallel_groups]
        return data


@dataclass
class GraphValidationResult:
    """
    Outcome of validating a whole graph.

    `valid` is True iff no issue has error severity.
    """
    valid: bool
    issues: list[ValidationIssue] = field(default_factory=list)
    stats: GraphStats = field(default_factory=GraphStats)

    @property
    def errors(self) -> list[ValidationIssue]:
        return self.filter_by_severity(Severity.ERROR)

    @property
    def warnings(self) -> list[ValidationIssue]:
        return self.filter_by_severity(Severity.WARNING)

    @property
    def has_blocking_issues(self) -> bool:
        return bool(self.errors)

    def filter_by_severity(self, severity: Severity) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity is severity]

    def issues_for_node(self, node_id: str) -> list[ValidationIssue]:
        """Get issues attached to a node, including cycles it takes part in."""
        return [
            issue for issue in self.issues
            if issue.node_id == node_id or node_id in issue.node_ids
        ]

    def of_type(self, issue_type: IssueType) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.type is issue_type]

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "issues": [issue.to_dict() for issue in self.issues],
            "stats": self.stats.to_dict(),
        }


_WHITE, _GREY, _BLACK = 0, 1, 2


def find_cycles(graph: NodeGraph) -> list[list[NodeId]]:
    """
    Find the cycles in a graph with an iterative three-colour DFS.

    Every back edge closes one cycle; the cycle is read off the current
    DFS path. Cycles through the same set of nodes are reported once.
    Each cycle is listed starting from the node where the DFS entered it.
    """
    colour: dict[NodeId, int] = {node_id: _WHITE for node_id in graph.node_ids}
    cycles: list[list[NodeId]] = []
    seen: set[frozenset[NodeId]] = set()

    for root in graph.node_ids:
        if colour[root] != _WHITE:
            continue

        path: list[NodeId] = [root]
        stack = [iter(graph.successors(root))]
        colour[root] = _GREY

        while stack:
            current = path[-1]
            successor = next(stack[-1], None)

            if successor is None:
                colour[current] = _BLACK
                path.pop()
                stack.pop()
                continue

            state = colour.get(successor, _BLACK)
            if state == _WHITE:
                colour[successor] = _GREY
                path.append(successor)
                stack.append(iter(graph.successors(successor)))
            elif state == _GREY:
                # Back edge: the cycle is the path from successor to current
                cycle = path[path.index(successor):]
                key = frozenset(cycle)
                if key not in seen:
                    seen.add(key)
                    cycles.append(list(cycle))

    return cycles


class GraphValidator:
    """
    Whole-graph validator.

    Checks run independently of ConnectionValidator, so graphs loaded from
    files (whose edges never passed through connection gating) and graphs
    built against an older compatibility table are caught before a run.

    Args:
        registry: Port compatibility lattice (defaults to the shared one)
        node_registry: Node definitions for parameter checks
        planner: Planner used to fill execution stats for valid graphs
    """

    def __init__(
        self,
        registry: PortTypeRegistry | None = None,
        node_registry: NodeRegistry | None = None,
        planner: ExecutionPlanner | None = None,
    ):
        self.registry = registry or get_port_registry()
        self.node_registry = node_registry or NodeRegistry.instance()
        self.planner = planner or ExecutionPlanner()

    def validate(self, graph: NodeGraph) -> GraphValidationResult:
        """Validate a graph and collect every issue found."""
        issues: list[ValidationIssue] = []
        issues.extend(self._check_cycles(graph))
        issues.extend(self._check_required_inputs(graph))
        issues.extend(self._check_edge_types(graph))
        issues.extend(self._check_connectivity(graph))
        issues.extend(self._check_parameters(graph))

        valid = not any(issue.severity is Severity.ERROR for issue in issues)
        stats = self._stats(graph)

        if valid:
            plan = self.planner.plan(graph)
            stats.execution_order = plan.order
            stats.parallel_groups = plan.parallel_groups

        logger.debug(
            "Validated graph %s: %d issue(s), valid=%s", graph.id, len(issues), valid
        )
        return GraphValidationResult(valid=valid, issues=issues, stats=stats)

    def _check_cycles(self, graph: NodeGraph) -> list[ValidationIssue]:
        issues = []
        for cycle in find_cycles(graph):
            names = [self._name(graph, node_id) for node_id in cycle]
            issues.append(ValidationIssue(
                type=IssueType.CYCLE_DETECTED,
                severity=Severity.ERROR,
                message="Cycle detected: " + " -> ".join(names + names[:1]),
                node_id=cycle[0],
                node_ids=cycle,
                suggestion="Remove one of the connections in the loop",
            ))
        return issues

    def _check_required_inputs(self, graph: NodeGraph) -> list[ValidationIssue]:
        issues = []
        for node in graph.nodes:
            for port in node.inputs:
                if port.required and not graph.incoming_edges(node.id, port.id):
                    issues.append(ValidationIssue(
                        type=IssueType.MISSING_REQUIRED_INPUT,
                        severity=Severity.ERROR,
                        message=f"{node.display_name} requires input '{port.name}'",
                        node_id=node.id,
                        port_id=port.id,
                        suggestion=f"Connect a {port.type.value} output to '{port.name}'",
                    ))
        return issues

    def _check_edge_types(self, graph: NodeGraph) -> list[ValidationIssue]:
        issues = []
        for edge in graph.edges:
            issue = self._check_edge(graph, edge)
            if issue is not None:
                issues.append(issue)
        return issues

    def _check_edge(self, graph: NodeGraph, edge: Edge) -> ValidationIssue | None:
        source = graph.get_node(edge.source_node_id)
        target = graph.get_node(edge.target_node_id)
        source_port = source.get_output(edge.source_port_id) if source else None
        target_port = target.get_input(edge.target_port_id) if target else None

        if source_port is None or target_port is None:
            return ValidationIssue(
                type=IssueType.PORT_INCOMPATIBLE,
                severity=Severity.WARNING,
                message=f"Connection {edge.id} refers to a port that no longer exists",
                node_id=edge.target_node_id,
                port_id=edge.target_port_id,
                suggestion="Remove the connection and reconnect the nodes",
            )

        if not self.registry.compatible(source_port.type, target_port.type):
            return ValidationIssue(
                type=IssueType.PORT_INCOMPATIBLE,
                severity=Severity.WARNING,
                message=(
                    f"Cannot connect {source_port.type.value} to {target_port.type.value} "
                    f"({source.display_name} -> {target.display_name})"
                ),
                node_id=edge.target_node_id,
                port_id=edge.target_port_id,
                suggestion="Insert a conversion node or connect a compatible output",
            )
        return None

    def _check_connectivity(self, graph: NodeGraph) -> list[ValidationIssue]:
        issues = []
        for node in graph.nodes:
            if not graph.incoming_edges(node.id) and not graph.outgoing_edges(node.id):
                issues.append(ValidationIssue(
                    type=IssueType.ISOLATED_NODE,
                    severity=Severity.WARNING,
                    message=f"{node.display_name} is not connected to anything",
                    node_id=node.id,
                    suggestion="Connect the node or remove it from the canvas",
                ))
                continue

            if node.category.is_terminal:
                continue
            for port in node.outputs:
                if not graph.outgoing_edges(node.id, port.id):
                    issues.append(ValidationIssue(
                        type=IssueType.UNUSED_OUTPUT,
                        severity=Severity.INFO,
                        message=f"Output '{port.name}' of {node.display_name} is not used",
                        node_id=node.id,
                        port_id=port.id,
                    ))
        return issues

    def _check_parameters(self, graph: NodeGraph) -> list[ValidationIssue]:
        issues = []
        for node in graph.nodes:
            definition = self.node_registry.get(node.node_type)
            if definition is None:
                continue
            for param in definition.required_parameters:
                if param.is_missing(node.parameters.get(param.id)):
                    issues.append(ValidationIssue(
                        type=IssueType.MISSING_PARAMETER,
                        severity=Severity.ERROR,
                        message=f"{node.display_name} requires parameter '{param.name}'",
                        node_id=node.id,
                        suggestion=f"Set '{param.name}' in the node's properties",
                    ))
        return issues

    def _stats(self, graph: NodeGraph) -> GraphStats:
        connected = sum(
            1 for node_id in graph.node_ids
            if graph.incoming_edges(node_id) or graph.outgoing_edges(node_id)
        )
        return GraphStats(
            total_nodes=len(graph),
            connected_nodes=connected,
            isolated_nodes=len(graph) - connected,
        )

    @staticmethod
    def _name(graph: NodeGraph, node_id: NodeId) -> str:
        node = graph.get_node(node_id)
        return node.display_name if node else node_id
