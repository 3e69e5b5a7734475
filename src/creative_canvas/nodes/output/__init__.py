"""
Output Nodes package.
"""

from creative_canvas.nodes.output.delivery import (
    EXPORT_NODE,
    OUTPUT_NODES,
    PREVIEW_NODE,
    register_output_nodes,
)

__all__ = [
    "PREVIEW_NODE",
    "EXPORT_NODE",
    "OUTPUT_NODES",
    "register_output_nodes",
]
