"""
Generation Nodes package.

Nodes for AI text, image and video generation.
"""

from creative_canvas.nodes.generation.models import (
    FLUX2_PRO_NODE,
    GENERATION_NODES,
    KLING_VIDEO_NODE,
    NANO_BANANA_PRO_NODE,
    PROMPT_ENHANCER_NODE,
    register_generation_nodes,
)

__all__ = [
    "PROMPT_ENHANCER_NODE",
    "FLUX2_PRO_NODE",
    "NANO_BANANA_PRO_NODE",
    "KLING_VIDEO_NODE",
    "GENERATION_NODES",
    "register_generation_nodes",
]
