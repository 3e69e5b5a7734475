"""
Node Graph Model - Core data structures for the node-based workflow.

This module defines the fundamental building blocks:
- Port: A typed slot through which a value flows into or out of a node
- Node: A single generation step with ports, parameters and runtime state
- Edge: A directed link from an output port to an input port
- NodeGraph: The complete graph, with adjacency indexes and change events

Nodes reference each other only by id, resolved through the NodeGraph, so a
graph can be serialized and diffed without pointer cycles.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, Mapping, NewType
from uuid import uuid4

from creative_canvas.core.data_types import NodeCategory, PortType

logger = logging.getLogger(__name__)


# Type aliases for clarity
NodeId = NewType("NodeId", str)
EdgeId = NewType("EdgeId", str)


def new_node_id() -> NodeId:
    """Generate a new unique node ID."""
    return NodeId(f"node-{uuid4().hex[:12]}")


def new_edge_id() -> EdgeId:
    """Generate a new unique edge ID."""
    return EdgeId(f"edge-{uuid4().hex[:12]}")


class NodeStatus(Enum):
    """Execution status of a node."""
    IDLE = "idle"
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"
    BLOCKED = "blocked"     # Skipped because an upstream node did not complete

    @property
    def is_active(self) -> bool:
        return self in (NodeStatus.QUEUED, NodeStatus.RUNNING)

    @property
    def is_terminal(self) -> bool:
        return self in (
            NodeStatus.COMPLETED,
            NodeStatus.ERROR,
            NodeStatus.CANCELLED,
            NodeStatus.BLOCKED,
        )


@dataclass
class OutputMetadata:
    """Media metadata attached to a node output."""
    width: int | None = None
    height: int | None = None
    duration: float | None = None
    format: str | None = None
    file_size: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "width": self.width,
            "height": self.height,
            "duration": self.duration,
            "format": self.format,
            "fileSize": self.file_size,
        }
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OutputMetadata:
        return cls(
            width=data.get("width"),
            height=data.get("height"),
            duration=data.get("duration"),
            format=data.get("format"),
            file_size=data.get("fileSize"),
        )


@dataclass
class NodeOutput:
    """
    Result of a node execution.

    Attributes:
        type: Output kind ("image", "video", "audio", "text", "mesh3d", "data")
        url: Media URL for single outputs
        urls: Media URLs for multi-image outputs
        text: Text for text outputs
        data: Structured data outputs
        metadata: Media metadata (dimensions, duration, format, size)
    """
    type: str
    url: str | None = None
    urls: list[str] = field(default_factory=list)
    text: str | None = None
    data: dict[str, Any] | None = None
    metadata: OutputMetadata | None = None

    @property
    def all_urls(self) -> list[str]:
        """Every media URL of this output, single url first, without duplicates."""
        result: list[str] = []
        for url in ([self.url] if self.url else []) + self.urls:
            if url not in result:
                result.append(url)
        return result

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape."""
        data: dict[str, Any] = {"type": self.type}
        if self.url is not None:
            data["url"] = self.url
        if self.urls:
            data["urls"] = list(self.urls)
        if self.text is not None:
            data["text"] = self.text
        if self.data is not None:
            data["data"] = self.data
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NodeOutput:
        """Create an output from the wire shape."""
        metadata = data.get("metadata")
        return cls(
            type=data.get("type", "data"),
            url=data.get("url"),
            urls=list(data.get("urls") or []),
            text=data.get("text"),
            data=data.get("data"),
            metadata=OutputMetadata.from_dict(metadata) if metadata else None,
        )


@dataclass
class Port:
    """
    A typed, named slot on a node.

    A port is an input or an output depending on which list of its node
    holds it. `required` only matters for inputs; `multi` lets the port
    take more than one edge.
    """
    id: str
    name: str
    type: PortType
    required: bool = False
    multi: bool = False
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "required": self.required,
            "multi": self.multi,
        }
        if self.description:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Port:
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            type=PortType(data["type"]),
            required=bool(data.get("required", False)),
            multi=bool(data.get("multi", data.get("multiple", False))),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class Edge:
    """
    A directed connection between two nodes.

    The source node produces a value on one of its output ports; the
    target node consumes it on one of its input ports.
    """
    id: EdgeId
    source_node_id: NodeId
    source_port_id: str
    target_node_id: NodeId
    target_port_id: str

    @classmethod
    def create(
        cls,
        source_node: str,
        source_port: str,
        target_node: str,
        target_port: str,
        edge_id: str | None = None,
    ) -> Edge:
        """Factory method to create a new edge."""
        return cls(
            id=EdgeId(edge_id) if edge_id else new_edge_id(),
            source_node_id=NodeId(source_node),
            source_port_id=source_port,
            target_node_id=NodeId(target_node),
            target_port_id=target_port,
        )

    @property
    def endpoints(self) -> tuple[str, str, str, str]:
        """The (source node, source port, target node, target port) tuple."""
        return (
            self.source_node_id,
            self.source_port_id,
            self.target_node_id,
            self.target_port_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sourceNodeId": self.source_node_id,
            "sourcePortId": self.source_port_id,
            "targetNodeId": self.target_node_id,
            "targetPortId": self.target_port_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Edge:
        """
        Create an edge from a dict.

        Accepts both the engine's own keys and the canvas-style
        source/sourceHandle/target/targetHandle keys.
        """
        return cls(
            id=EdgeId(data["id"]),
            source_node_id=NodeId(data.get("sourceNodeId", data.get("source"))),
            source_port_id=data.get("sourcePortId", data.get("sourceHandle")),
            target_node_id=NodeId(data.get("targetNodeId", data.get("target"))),
            target_port_id=data.get("targetPortId", data.get("targetHandle")),
        )


@dataclass
class Node:
    """
    A single node in the generation graph.

    Nodes have:
    - A stable string ID
    - A node type (references a NodeDefinition in the registry) and category
    - Typed input and output ports
    - Parameter values set by the editing layer
    - Runtime state written only by the execution engine
    """
    id: NodeId
    node_type: str
    category: NodeCategory
    label: str = ""
    inputs: list[Port] = field(default_factory=list)
    outputs: list[Port] = field(default_factory=list)

    # User-configured parameters
    parameters: dict[str, Any] = field(default_factory=dict)

    # Runtime state (not serialized)
    status: NodeStatus = field(default=NodeStatus.IDLE)
    progress: float = field(default=0.0)
    cached_output: NodeOutput | None = field(default=None, repr=False)
    error: str | None = field(default=None)

    @classmethod
    def create(
        cls,
        node_type: str,
        category: NodeCategory,
        inputs: list[Port] | None = None,
        outputs: list[Port] | None = None,
        parameters: dict[str, Any] | None = None,
        label: str = "",
        node_id: str | None = None,
    ) -> Node:
        """Factory method to create a new node."""
        return cls(
            id=NodeId(node_id) if node_id else new_node_id(),
            node_type=node_type,
            category=category,
            label=label,
            inputs=list(inputs or []),
            outputs=list(outputs or []),
            parameters=dict(parameters or {}),
        )

    @property
    def display_name(self) -> str:
        return self.label or self.node_type

    def get_input(self, port_id: str) -> Port | None:
        """Get an input port by ID."""
        for port in self.inputs:
            if port.id == port_id:
                return port
        return None

    def get_output(self, port_id: str) -> Port | None:
        """Get an output port by ID."""
        for port in self.outputs:
            if port.id == port_id:
                return port
        return None

    def get_parameter(self, name: str, default: Any = None) -> Any:
        """Get a parameter value."""
        return self.parameters.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the persistent part of the node (runtime state excluded)."""
        return {
            "id": self.id,
            "nodeType": self.node_type,
            "category": self.category.value,
            "label": self.label,
            "inputs": [port.to_dict() for port in self.inputs],
            "outputs": [port.to_dict() for port in self.outputs],
            "parameters": dict(self.parameters),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Node:
        return cls(
            id=NodeId(data["id"]),
            node_type=data["nodeType"],
            category=NodeCategory(data["category"]),
            label=data.get("label", ""),
            inputs=[Port.from_dict(p) for p in data.get("inputs", [])],
            outputs=[Port.from_dict(p) for p in data.get("outputs", [])],
            parameters=dict(data.get("parameters") or {}),
        )


class GraphEventKind(Enum):
    """Kinds of change notifications emitted by a NodeGraph."""
    NODE_ADDED = "node_added"
    NODE_REMOVED = "node_removed"
    EDGE_ADDED = "edge_added"
    EDGE_REMOVED = "edge_removed"
    PARAMETERS_CHANGED = "parameters_changed"
    STATUS_CHANGED = "status_changed"

    @property
    def is_topology_change(self) -> bool:
        return self in (
            GraphEventKind.NODE_ADDED,
            GraphEventKind.NODE_REMOVED,
            GraphEventKind.EDGE_ADDED,
            GraphEventKind.EDGE_REMOVED,
        )


@dataclass(frozen=True)
class GraphEvent:
    """A change notification delivered to graph listeners."""
    kind: GraphEventKind
    version: int
    node_id: NodeId | None = None
    edge_id: EdgeId | None = None
    status: NodeStatus | None = None


GraphListener = Callable[[GraphEvent], None]


class NodeGraph:
    """
    The node graph for one canvas.

    Owns the node and edge collections and exposes mutation primitives.
    add_edge() only checks structure (nodes and ports exist); type,
    multiplicity and cycle checks belong to ConnectionValidator, which
    callers run first.

    `version` increases on every topology or parameter change so that
    execution plans computed from an older graph can be detected as stale.
    Status writes from the execution engine do not change it.
    """

    def __init__(self, name: str = "Untitled", graph_id: str | None = None):
        self.id: str = graph_id or uuid4().hex
        self.name: str = name
        self._nodes: dict[NodeId, Node] = {}
        self._edges: dict[EdgeId, Edge] = {}
        # Adjacency index: node id -> edge ids, in insertion order
        self._incoming: dict[NodeId, list[EdgeId]] = {}
        self._outgoing: dict[NodeId, list[EdgeId]] = {}
        self._version: int = 0
        self._listeners: list[GraphListener] = []

    @property
    def version(self) -> int:
        """Monotonic counter bumped on every topology or parameter change."""
        return self._version

    # --- Node operations ---

    @property
    def nodes(self) -> list[Node]:
        """Get all nodes in insertion order (copy)."""
        return list(self._nodes.values())

    @property
    def node_ids(self) -> list[NodeId]:
        """Get all node IDs in insertion order."""
        return list(self._nodes)

    def add_node(self, node: Node) -> None:
        """Add a node to the graph."""
        if node.id in self._nodes:
            raise ValueError(f"Node already exists: {node.id}")
        self._nodes[node.id] = node
        self._incoming[node.id] = []
        self._outgoing[node.id] = []
        self._bump()
        self._emit(GraphEventKind.NODE_ADDED, node_id=node.id)

    def remove_node(self, node_id: str) -> Node | None:
        """
        Remove a node and all its edges.

        Returns the removed node, or None if not found.
        """
        node = self._nodes.get(NodeId(node_id))
        if node is None:
            return None

        incident = self._incoming[node.id] + self._outgoing[node.id]
        removed_edges = [self._detach_edge(edge_id) for edge_id in dict.fromkeys(incident)]

        del self._nodes[node.id]
        del self._incoming[node.id]
        del self._outgoing[node.id]

        self._bump()
        for edge in removed_edges:
            self._emit(GraphEventKind.EDGE_REMOVED, node_id=node.id, edge_id=edge.id)
        self._emit(GraphEventKind.NODE_REMOVED, node_id=node.id)
        return node

    def get_node(self, node_id: str) -> Node | None:
        """Get a node by ID."""
        return self._nodes.get(NodeId(node_id))

    def update_node_parameters(self, node_id: str, updates: Mapping[str, Any]) -> Node:
        """
        Merge parameter values into a node.

        Bumps the version only if a value actually changed.

        Raises:
            KeyError: If the node does not exist.
        """
        node = self._require_node(node_id)
        changed = {
            key: value for key, value in updates.items()
            if key not in node.parameters or node.parameters[key] != value
        }
        if changed:
            node.parameters.update(changed)
            self._bump()
            self._emit(GraphEventKind.PARAMETERS_CHANGED, node_id=node.id)
        return node

    def set_node_status(
        self,
        node_id: str,
        status: NodeStatus,
        *,
        progress: float | None = None,
        output: NodeOutput | None = None,
        error: str | None = None,
    ) -> Node:
        """
        Record runtime state on a node.

        Only the execution engine calls this. The graph version is left
        untouched.

        Raises:
            KeyError: If the node does not exist.
        """
        node = self._require_node(node_id)
        node.status = status
        if progress is not None:
            node.progress = progress
        if output is not None:
            node.cached_output = output

        if status is NodeStatus.COMPLETED:
            node.error = None
            node.progress = 100.0
        elif error is not None:
            node.error = error
        elif status is NodeStatus.QUEUED:
            # A fresh submission clears the previous run's failure
            node.error = None
            node.progress = 0.0

        self._emit(GraphEventKind.STATUS_CHANGED, node_id=node.id, status=status)
        return node

    # --- Edge operations ---

    @property
    def edges(self) -> list[Edge]:
        """Get all edges in insertion order (copy)."""
        return list(self._edges.values())

    def get_edge(self, edge_id: str) -> Edge | None:
        """Get an edge by ID."""
        return self._edges.get(EdgeId(edge_id))

    def add_edge(self, edge: Edge) -> None:
        """
        Add an edge to the graph.

        Accepts any structurally well-formed edge: both nodes exist, the
        source port is an output and the target port an input.

        Raises:
            ValueError: If the edge is malformed or its ID is taken.
        """
        if edge.id in self._edges:
            raise ValueError(f"Edge already exists: {edge.id}")

        source = self._nodes.get(edge.source_node_id)
        target = self._nodes.get(edge.target_node_id)
        if source is None:
            raise ValueError(f"Source node not found: {edge.source_node_id}")
        if target is None:
            raise ValueError(f"Target node not found: {edge.target_node_id}")
        if source.get_output(edge.source_port_id) is None:
            raise ValueError(
                f"Node {source.id} has no output port '{edge.source_port_id}'"
            )
        if target.get_input(edge.target_port_id) is None:
            raise ValueError(
                f"Node {target.id} has no input port '{edge.target_port_id}'"
            )

        self._edges[edge.id] = edge
        self._outgoing[edge.source_node_id].append(edge.id)
        self._incoming[edge.target_node_id].append(edge.id)
        self._bump()
        self._emit(GraphEventKind.EDGE_ADDED, node_id=edge.target_node_id, edge_id=edge.id)

    def remove_edge(self, edge_id: str) -> Edge | None:
        """Remove an edge by ID."""
        if EdgeId(edge_id) not in self._edges:
            return None
        edge = self._detach_edge(EdgeId(edge_id))
        self._bump()
        self._emit(GraphEventKind.EDGE_REMOVED, node_id=edge.target_node_id, edge_id=edge.id)
        return edge

    def find_edge(
        self,
        source_node: str,
        source_port: str,
        target_node: str,
        target_port: str,
    ) -> Edge | None:
        """Find an edge by its four endpoints."""
        for edge_id in self._outgoing.get(NodeId(source_node), []):
            edge = self._edges[edge_id]
            if edge.endpoints == (source_node, source_port, target_node, target_port):
                return edge
        return None

    def incoming_edges(self, node_id: str, port_id: str | None = None) -> list[Edge]:
        """Get edges feeding a node, optionally only those into one input port."""
        edges = [self._edges[eid] for eid in self._incoming.get(NodeId(node_id), [])]
        if port_id is not None:
            edges = [e for e in edges if e.target_port_id == port_id]
        return edges

    def outgoing_edges(self, node_id: str, port_id: str | None = None) -> list[Edge]:
        """Get edges leaving a node, optionally only those from one output port."""
        edges = [self._edges[eid] for eid in self._outgoing.get(NodeId(node_id), [])]
        if port_id is not None:
            edges = [e for e in edges if e.source_port_id == port_id]
        return edges

    # --- Graph analysis ---

    def predecessors(self, node_id: str) -> list[NodeId]:
        """Get the direct dependencies of a node."""
        return list(dict.fromkeys(e.source_node_id for e in self.incoming_edges(node_id)))

    def successors(self, node_id: str) -> list[NodeId]:
        """Get the direct dependents of a node."""
        return list(dict.fromkeys(e.target_node_id for e in self.outgoing_edges(node_id)))

    def get_upstream_nodes(self, node_id: str) -> set[NodeId]:
        """Get all nodes that this node depends on (directly or indirectly)."""
        return self._walk(NodeId(node_id), self.predecessors)

    def get_downstream_nodes(self, node_id: str) -> set[NodeId]:
        """Get all nodes that depend on this node (directly or indirectly)."""
        return self._walk(NodeId(node_id), self.successors)

    def is_reachable(self, start: str, goal: str) -> bool:
        """Depth-first check whether `goal` can be reached from `start` along edges."""
        if start == goal:
            return True
        visited: set[NodeId] = set()
        to_visit = [NodeId(start)]

        while to_visit:
            current = to_visit.pop()
            if current in visited:
                continue
            visited.add(current)
            for successor in self.successors(current):
                if successor == goal:
                    return True
                to_visit.append(successor)

        return False

    def _walk(
        self,
        start: NodeId,
        neighbours: Callable[[str], list[NodeId]],
    ) -> set[NodeId]:
        found: set[NodeId] = set()
        to_visit = [start]

        while to_visit:
            current = to_visit.pop()
            for neighbour in neighbours(current):
                if neighbour not in found:
                    found.add(neighbour)
                    to_visit.append(neighbour)

        return found

    # --- Change notifications ---

    def subscribe(self, listener: GraphListener) -> Callable[[], None]:
        """
        Register a change listener.

        Listeners are called synchronously, in the order operations were
        applied. Returns a function that unregisters the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(
        self,
        kind: GraphEventKind,
        node_id: NodeId | None = None,
        edge_id: EdgeId | None = None,
        status: NodeStatus | None = None,
    ) -> None:
        event = GraphEvent(kind, self._version, node_id, edge_id, status)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Graph listener failed on %s", kind.value)

    # --- Serialization ---

    def to_dict(self) -> dict[str, Any]:
        """Convert the graph to a plain dict (runtime state excluded)."""
        return {
            "id": self.id,
            "name": self.name,
            "nodes": [node.to_dict() for node in self._nodes.values()],
            "edges": [edge.to_dict() for edge in self._edges.values()],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NodeGraph:
        """
        Rebuild a graph from to_dict() output.

        Edges go through add_edge(), so structurally broken files raise
        ValueError. Type and cycle problems are left for GraphValidator.
        """
        graph = cls(name=data.get("name", "Untitled"), graph_id=data.get("id"))
        for node_data in data.get("nodes", []):
            graph.add_node(Node.from_dict(node_data))
        for edge_data in data.get("edges", []):
            graph.add_edge(Edge.from_dict(edge_data))
        return graph

    # --- Utility ---

    def clear(self) -> None:
        """Remove all nodes and edges."""
        for node_id in list(self._nodes):
            self.remove_node(node_id)

    def _require_node(self, node_id: str) -> Node:
        node = self._nodes.get(NodeId(node_id))
        if node is None:
            raise KeyError(f"Node not found: {node_id}")
        return node

    def _detach_edge(self, edge_id: EdgeId) -> Edge:
        edge = self._edges.pop(edge_id)
        self._outgoing[edge.source_node_id].remove(edge_id)
        self._incoming[edge.target_node_id].remove(edge_id)
        return edge

    def _bump(self) -> None:
        self._version += 1

    def __len__(self) -> int:
        """Return the number of nodes."""
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        """Check if a node exists in the graph."""
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))
