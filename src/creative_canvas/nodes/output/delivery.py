"""
Output Nodes - Terminal nodes that display or export generated content.

Output nodes accept any port type and have no outputs of their own.
"""

from __future__ import annotations

from creative_canvas.core.data_types import NodeCategory, PortType
from creative_canvas.core.node_types import (
    NodeDefinition,
    NodeRegistry,
    ParameterDefinition,
    port,
)


PREVIEW_NODE = NodeDefinition(
    type="preview",
    category=NodeCategory.OUTPUT,
    label="Preview",
    description="Preview generated content",
    inputs=[port("content", "Content", PortType.ANY, required=True)],
)


EXPORT_NODE = NodeDefinition(
    type="export",
    category=NodeCategory.OUTPUT,
    label="Export",
    description="Export to file",
    inputs=[port("content", "Content", PortType.ANY, required=True)],
    parameters=[
        ParameterDefinition.select(
            "format",
            "Format",
            options=[
                ("png", "PNG"),
                ("jpeg", "JPEG"),
                ("mp4", "MP4"),
                ("webm", "WebM"),
                ("glb", "GLB"),
            ],
        ),
        ParameterDefinition.slider(
            "quality", "Quality", default=90, min_value=1, max_value=100, step=1,
        ),
        ParameterDefinition.boolean("addTimestamp", "Add Timestamp"),
    ],
)


OUTPUT_NODES = [PREVIEW_NODE, EXPORT_NODE]


def register_output_nodes() -> None:
    """Register all output node types."""
    registry = NodeRegistry.instance()
    for definition in OUTPUT_NODES:
        registry.register(definition)
