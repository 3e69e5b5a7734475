"""
Narrative Nodes package.
"""

from creative_canvas.nodes.narrative.story import (
    NARRATIVE_NODES,
    SCENE_GENERATOR_NODE,
    STORY_GENESIS_NODE,
    register_narrative_nodes,
)

__all__ = [
    "STORY_GENESIS_NODE",
    "SCENE_GENERATOR_NODE",
    "NARRATIVE_NODES",
    "register_narrative_nodes",
]
