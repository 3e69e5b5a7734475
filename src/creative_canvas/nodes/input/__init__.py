"""
Input Nodes package.

Nodes that provide prompts and uploaded media to the workflow.
"""

from creative_canvas.nodes.input.sources import (
    CHARACTER_REFERENCE_NODE,
    IMAGE_UPLOAD_NODE,
    INPUT_NODES,
    REFERENCE_IMAGE_NODE,
    TEXT_INPUT_NODE,
    register_input_nodes,
)

__all__ = [
    "TEXT_INPUT_NODE",
    "IMAGE_UPLOAD_NODE",
    "REFERENCE_IMAGE_NODE",
    "CHARACTER_REFERENCE_NODE",
    "INPUT_NODES",
    "register_input_nodes",
]
