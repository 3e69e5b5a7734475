"""
Nodes package - All built-in node definitions.

This package contains node definitions organized by category:
- input: Text, image, reference and character inputs
- generation: Prompt enhancement, image and video generation
- fashion: Garment design and virtual try-on
- narrative: Story and scene development
- output: Preview and export
"""

from creative_canvas.core.node_types import NodeDefinition
from creative_canvas.nodes.fashion import FASHION_NODES, register_fashion_nodes
from creative_canvas.nodes.generation import GENERATION_NODES, register_generation_nodes
from creative_canvas.nodes.input import INPUT_NODES, register_input_nodes
from creative_canvas.nodes.narrative import NARRATIVE_NODES, register_narrative_nodes
from creative_canvas.nodes.output import OUTPUT_NODES, register_output_nodes


BUILTIN_NODES: list[NodeDefinition] = [
    *INPUT_NODES,
    *GENERATION_NODES,
    *FASHION_NODES,
    *NARRATIVE_NODES,
    *OUTPUT_NODES,
]


def register_all_nodes() -> None:
    """Register all built-in nodes."""
    register_input_nodes()
    register_generation_nodes()
    register_fashion_nodes()
    register_narrative_nodes()
    register_output_nodes()


__all__ = [
    "BUILTIN_NODES",
    "register_all_nodes",
]
