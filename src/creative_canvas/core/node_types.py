"""
Node Type System - Definitions and registry for node types.

This module defines how node types are specified:
- ParameterDefinition: Describes a configurable parameter
- NodeDefinition: Complete definition of a node type (ports + parameters)
- NodeRegistry: Global registry of available node types

Graph nodes carry their own copy of the ports, so a graph stays valid
even if a definition changes later. The registry is consulted for
parameter requirements and defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from creative_canvas.core.data_types import NodeCategory, ParameterValue, PortType
from creative_canvas.core.graph import Node, NodeId, Port, new_node_id


class ParameterType(Enum):
    """Types of node parameters (determines the editor widget)."""
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    SLIDER = "slider"
    BOOLEAN = "boolean"
    COLOR = "color"
    FILE = "file"


@dataclass
class SelectOption:
    """A single option in a select parameter."""
    value: Any
    label: str


@dataclass
class ParameterDefinition:
    """
    Definition of a configurable parameter on a node.

    Parameters are user-editable values that affect node behavior.
    Unlike inputs, they don't come from connections.

    Attributes:
        id: Parameter identifier (key in Node.parameters)
        name: Display label
        param_type: Type of parameter (determines widget)
        default: Default value
        required: If True, the node cannot run without a non-empty value
        options: Options for select parameters
        min_value: Minimum value (for numeric types)
        max_value: Maximum value (for numeric types)
        step: Step size (for numeric types)
        description: Tooltip/description text
    """
    id: str
    name: str
    param_type: ParameterType
    default: ParameterValue = None
    required: bool = False
    options: list[SelectOption] = field(default_factory=list)
    min_value: float | None = None
    max_value: float | None = None
    step: float | None = None
    description: str = ""

    @classmethod
    def text(
        cls,
        id: str,
        name: str,
        default: str = "",
        required: bool = False,
        description: str = "",
    ) -> ParameterDefinition:
        """Factory for text parameter."""
        return cls(
            id=id,
            name=name,
            param_type=ParameterType.TEXT,
            default=default,
            required=required,
            description=description,
        )

    @classmethod
    def number(
        cls,
        id: str,
        name: str,
        default: float = 0,
        min_value: float | None = None,
        max_value: float | None = None,
        step: float | None = 1,
        description: str = "",
    ) -> ParameterDefinition:
        """Factory for number parameter."""
        return cls(
            id=id,
            name=name,
            param_type=ParameterType.NUMBER,
            default=default,
            min_value=min_value,
            max_value=max_value,
            step=step,
            description=description,
        )

    @classmethod
    def slider(
        cls,
        id: str,
        name: str,
        default: float = 0.5,
        min_value: float = 0.0,
        max_value: float = 1.0,
        step: float = 0.01,
        description: str = "",
    ) -> ParameterDefinition:
        """Factory for slider parameter."""
        return cls(
            id=id,
            name=name,
            param_type=ParameterType.SLIDER,
            default=default,
            min_value=min_value,
            max_value=max_value,
            step=step,
            description=description,
        )

    @classmethod
    def boolean(
        cls,
        id: str,
        name: str,
        default: bool = False,
        description: str = "",
    ) -> ParameterDefinition:
        """Factory for boolean parameter."""
        return cls(
            id=id,
            name=name,
            param_type=ParameterType.BOOLEAN,
            default=default,
            description=description,
        )

    @classmethod
    def select(
        cls,
        id: str,
        name: str,
        options: list[tuple[Any, str]],  # [(value, label), ...]
        default: Any = None,
        description: str = "",
    ) -> ParameterDefinition:
        """Factory for select parameter."""
        return cls(
            id=id,
            name=name,
            param_type=ParameterType.SELECT,
            default=default if default is not None else (options[0][0] if options else None),
            options=[SelectOption(value, label) for value, label in options],
            description=description,
        )

    @classmethod
    def file(
        cls,
        id: str,
        name: str,
        required: bool = False,
        description: str = "",
    ) -> ParameterDefinition:
        """Factory for file/URL parameter."""
        return cls(
            id=id,
            name=name,
            param_type=ParameterType.FILE,
            default=None,
            required=required,
            description=description,
        )

    def is_missing(self, value: Any) -> bool:
        """Check whether a value fails to satisfy a required parameter."""
        if not self.required:
            return False
        if value is None:
            return True
        if isinstance(value, str) and not value.strip():
            return True
        if isinstance(value, (list, dict)) and not value:
            return True
        return False


def port(
    id: str,
    name: str,
    type: PortType,
    required: bool = False,
    multi: bool = False,
    description: str = "",
) -> Port:
    """Shorthand for declaring a port in a node definition."""
    return Port(
        id=id,
        name=name,
        type=type,
        required=required,
        multi=multi,
        description=description,
    )


@dataclass
class NodeDefinition:
    """
    Complete definition of a node type.

    NodeDefinitions are templates describing what a node does, its ports
    and its parameters. Graph nodes reference a definition by `type`.
    """
    type: str  # Unique identifier, e.g., "flux2Pro"
    category: NodeCategory
    label: str
    description: str = ""

    inputs: list[Port] = field(default_factory=list)
    outputs: list[Port] = field(default_factory=list)
    parameters: list[ParameterDefinition] = field(default_factory=list)

    # Remote model the generation service should use, if fixed
    ai_model: str | None = None

    def get_input(self, port_id: str) -> Port | None:
        """Get an input port definition by ID."""
        for inp in self.inputs:
            if inp.id == port_id:
                return inp
        return None

    def get_output(self, port_id: str) -> Port | None:
        """Get an output port definition by ID."""
        for out in self.outputs:
            if out.id == port_id:
                return out
        return None

    def get_parameter(self, param_id: str) -> ParameterDefinition | None:
        """Get a parameter definition by ID."""
        for param in self.parameters:
            if param.id == param_id:
                return param
        return None

    def get_default_parameters(self) -> dict[str, ParameterValue]:
        """Get default values for all parameters that have one."""
        defaults = {p.id: p.default for p in self.parameters if p.default is not None}
        if self.ai_model:
            defaults.setdefault("model", self.ai_model)
        return defaults

    @property
    def required_parameters(self) -> list[ParameterDefinition]:
        return [p for p in self.parameters if p.required]

    def create_node(
        self,
        node_id: str | None = None,
        label: str | None = None,
        **parameters: Any,
    ) -> Node:
        """Instantiate a graph node of this type with defaults applied."""
        values = self.get_default_parameters()
        values.update(parameters)
        return Node(
            id=NodeId(node_id) if node_id else new_node_id(),
            node_type=self.type,
            category=self.category,
            label=self.label if label is None else label,
            inputs=[replace(p) for p in self.inputs],
            outputs=[replace(p) for p in self.outputs],
            parameters=values,
        )


class NodeRegistry:
    """
    Global registry of available node types.

    Node packages register their definitions here; validation and the
    execution engine look definitions up by node type.
    """

    _instance: NodeRegistry | None = None

    def __new__(cls) -> NodeRegistry:
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._types = {}
        return cls._instance

    @classmethod
    def instance(cls) -> NodeRegistry:
        """Get the singleton instance."""
        return cls()

    def __init__(self):
        if not hasattr(self, '_types'):
            self._types: dict[str, NodeDefinition] = {}

    def register(self, definition: NodeDefinition) -> None:
        """Register a node type."""
        self._types[definition.type] = definition

    def unregister(self, type_id: str) -> NodeDefinition | None:
        """Unregister a node type."""
        return self._types.pop(type_id, None)

    def get(self, type_id: str) -> NodeDefinition | None:
        """Get a node type by ID."""
        return self._types.get(type_id)

    def get_all(self) -> list[NodeDefinition]:
        """Get all registered node types."""
        return list(self._types.values())

    def list_by_category(self, category: NodeCategory) -> list[NodeDefinition]:
        """Get all node types in a category."""
        return [t for t in self._types.values() if t.category == category]

    def search(self, query: str) -> list[NodeDefinition]:
        """Search node types by label or description."""
        query = query.lower()
        return [
            t for t in self._types.values()
            if query in t.label.lower() or query in t.description.lower()
        ]

    def clear(self) -> None:
        """Remove all registered types (for testing)."""
        self._types.clear()

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, type_id: str) -> bool:
        return type_id in self._types
