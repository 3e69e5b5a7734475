"""
Connection Validation - Gate for proposed edges.

Every edge the editing layer wants to add passes through
ConnectionValidator before NodeGraph.add_edge() is called. Validation
never raises and never mutates the graph; a rejection carries a reason
string for the UI.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from creative_canvas.core.data_types import PortTypeRegistry, get_port_registry
from creative_canvas.core.graph import Edge, EdgeId, NodeGraph, Port

logger = logging.getLogger(__name__)


@dataclass
class ConnectionResult:
    """
    Outcome of validating one proposed edge.

    Attributes:
        is_valid: True if the edge may be added
        reason: Why the edge was rejected
        source_port: Resolved source port, when found
        target_port: Resolved target port, when found
        replaces_edge_id: Existing edge the new one replaces (replace mode)
    """
    is_valid: bool
    reason: str | None = None
    source_port: Port | None = None
    target_port: Port | None = None
    replaces_edge_id: EdgeId | None = None

    def __bool__(self) -> bool:
        return self.is_valid

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"isValid": self.is_valid}
        if self.reason:
            data["reason"] = self.reason
        return data


def _rejected(
    reason: str,
    source_port: Port | None = None,
    target_port: Port | None = None,
) -> ConnectionResult:
    return ConnectionResult(
        is_valid=False,
        reason=reason,
        source_port=source_port,
        target_port=target_port,
    )


class ConnectionValidator:
    """
    Validates a single proposed edge against the current graph.

    Checks run in order and stop at the first failure:
    1. No self-loops
    2. Both ports exist with the right direction (output -> input)
    3. A single-connection target port is not already taken
    4. The port types are compatible
    5. The edge does not close a cycle

    Args:
        registry: Port compatibility lattice (defaults to the shared one)
        allow_multiple_connections: Let any input port take extra edges,
            not only ports flagged `multi`
    """

    def __init__(
        self,
        registry: PortTypeRegistry | None = None,
        allow_multiple_connections: bool = False,
    ):
        self.registry = registry or get_port_registry()
        self.allow_multiple_connections = allow_multiple_connections

    def validate(
        self,
        edge: Edge,
        graph: NodeGraph,
        *,
        replace_existing: bool = False,
    ) -> ConnectionResult:
        """
        Validate a proposed edge.

        Args:
            edge: The edge the caller wants to add
            graph: The graph it would be added to
            replace_existing: Accept an edge into an occupied single-connection
                port; the result names the edge to remove

        Returns:
            ConnectionResult describing acceptance or the rejection reason
        """
        if edge.source_node_id == edge.target_node_id:
            return _rejected("Cannot connect a node to itself")

        source = graph.get_node(edge.source_node_id)
        target = graph.get_node(edge.target_node_id)
        if source is None or target is None:
            return _rejected("Source or target node not found")

        source_port = source.get_output(edge.source_port_id)
        if source_port is None:
            if source.get_input(edge.source_port_id) is not None:
                return _rejected(
                    f"'{edge.source_port_id}' is an input of {source.display_name}, not an output"
                )
            return _rejected(
                f"{source.display_name} has no output port '{edge.source_port_id}'"
            )

        target_port = target.get_input(edge.target_port_id)
        if target_port is None:
            if target.get_output(edge.target_port_id) is not None:
                return _rejected(
                    f"'{edge.target_port_id}' is an output of {target.display_name}, not an input",
                    source_port,
                )
            return _rejected(
                f"{target.display_name} has no input port '{edge.target_port_id}'",
                source_port,
            )

        if graph.find_edge(*edge.endpoints) is not None:
            return _rejected("Connection already exists", source_port, target_port)

        replaces: EdgeId | None = None
        if not target_port.multi and not self.allow_multiple_connections:
            existing = graph.incoming_edges(target.id, target_port.id)
            if existing:
                if not replace_existing:
                    return _rejected(
                        f"Target port '{target_port.name}' is already connected",
                        source_port,
                        target_port,
                    )
                replaces = existing[0].id

        if not self.registry.compatible(source_port.type, target_port.type):
            return _rejected(
                f"Incompatible types: {source_port.type.value} cannot connect to "
                f"{target_port.type.value}",
                source_port,
                target_port,
            )

        # If the source is already reachable from the target, source -> target
        # would complete a cycle.
        if graph.is_reachable(target.id, source.id):
            return _rejected(
                f"Connection would create a cycle: {target.display_name} already "
                f"leads back to {source.display_name}",
                source_port,
                target_port,
            )

        return ConnectionResult(
            is_valid=True,
            source_port=source_port,
            target_port=target_port,
            replaces_edge_id=replaces,
        )

    def connect(
        self,
        graph: NodeGraph,
        edge: Edge,
        *,
        replace_existing: bool = False,
    ) -> ConnectionResult:
        """
        Validate an edge and, if accepted, commit it to the graph.

        In replace mode the edge previously occupying the target port is
        removed first.
        """
        result = self.validate(edge, graph, replace_existing=replace_existing)
        if not result.is_valid:
            logger.debug("Connection %s rejected: %s", edge.id, result.reason)
            return result

        if result.replaces_edge_id is not None:
            graph.remove_edge(result.replaces_edge_id)
        graph.add_edge(edge)
        return result

    def can_accept_connection(
        self,
        graph: NodeGraph,
        node_id: str,
        port_id: str,
    ) -> bool:
        """Check if an input port can take one more edge."""
        node = graph.get_node(node_id)
        if node is None:
            return False
        target_port = node.get_input(port_id)
        if target_port is None:
            return False
        if target_port.multi or self.allow_multiple_connections:
            return True
        return not graph.incoming_edges(node_id, port_id)
