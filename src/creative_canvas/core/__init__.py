"""
Core module - Graph model, validation, planning and execution.

This module provides the fundamental building blocks for Creative Canvas:
- Data Types: Port types, categories and the compatibility lattice
- Graph: Nodes, ports, edges and the NodeGraph container
- Node Types: Node definitions and registry
- Validation: Per-edge and whole-graph checks
- Planner: Wave planning (run coordination lives in core.execution)
- Settings / Workspace: Execution settings and graph persistence
"""

from creative_canvas.core.data_types import (
    NodeCategory,
    ParameterValue,
    PortType,
    PortTypeRegistry,
    get_port_registry,
)

from creative_canvas.core.graph import (
    Edge,
    EdgeId,
    GraphEvent,
    GraphEventKind,
    Node,
    NodeGraph,
    NodeId,
    NodeOutput,
    NodeStatus,
    OutputMetadata,
    Port,
    new_edge_id,
    new_node_id,
)

from creative_canvas.core.node_types import (
    NodeDefinition,
    NodeRegistry,
    ParameterDefinition,
    ParameterType,
    SelectOption,
    port,
)

from creative_canvas.core.connection import (
    ConnectionResult,
    ConnectionValidator,
)

from creative_canvas.core.validation import (
    GraphStats,
    GraphValidationResult,
    GraphValidator,
    IssueType,
    Severity,
    ValidationIssue,
    find_cycles,
)

from creative_canvas.core.planner import (
    CycleDetectedError,
    ExecutionPlan,
    ExecutionPlanner,
)

from creative_canvas.core.settings import (
    ExecutionSettings,
    load_settings,
    save_settings,
)

from creative_canvas.core.workspace import (
    list_graphs,
    load_graph,
    save_graph,
)


__all__ = [
    # data_types.py
    "NodeCategory",
    "ParameterValue",
    "PortType",
    "PortTypeRegistry",
    "get_port_registry",
    # graph.py
    "Edge",
    "EdgeId",
    "GraphEvent",
    "GraphEventKind",
    "Node",
    "NodeGraph",
    "NodeId",
    "NodeOutput",
    "NodeStatus",
    "OutputMetadata",
    "Port",
    "new_edge_id",
    "new_node_id",
    # node_types.py
    "NodeDefinition",
    "NodeRegistry",
    "ParameterDefinition",
    "ParameterType",
    "SelectOption",
    "port",
    # connection.py
    "ConnectionResult",
    "ConnectionValidator",
    # validation.py
    "GraphStats",
    "GraphValidationResult",
    "GraphValidator",
    "IssueType",
    "Severity",
    "ValidationIssue",
    "find_cycles",
    # planner.py
    "CycleDetectedError",
    "ExecutionPlan",
    "ExecutionPlanner",
    # settings.py
    "ExecutionSettings",
    "load_settings",
    "save_settings",
    # workspace.py
    "list_graphs",
    "load_graph",
    "save_graph",
]
