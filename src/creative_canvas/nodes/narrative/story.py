"""
Narrative Nodes - Story development from premise to scenes.

Story types are text-compatible, so any text output can seed a story and
scene text can feed prompt inputs downstream.
"""

from __future__ import annotations

from creative_canvas.core.data_types import NodeCategory, PortType
from creative_canvas.core.node_types import (
    NodeDefinition,
    NodeRegistry,
    ParameterDefinition,
    port,
)


STORY_GENESIS_NODE = NodeDefinition(
    type="storyGenesis",
    category=NodeCategory.NARRATIVE,
    label="Story Genesis",
    description="Develop a premise into a story with characters",
    ai_model="claude-sonnet-4",
    inputs=[port("concept", "Concept", PortType.TEXT)],
    outputs=[
        port("story", "Story", PortType.STORY),
        port("characters", "Characters", PortType.CHARACTER, multi=True),
        port("outline", "Outline", PortType.OUTLINE),
    ],
    parameters=[
        ParameterDefinition.text(
            "premise",
            "Premise",
            required=True,
            description="One or two sentences describing the story",
        ),
        ParameterDefinition.select(
            "genre",
            "Genre",
            options=[
                ("drama", "Drama"),
                ("fantasy", "Fantasy"),
                ("scifi", "Science Fiction"),
                ("thriller", "Thriller"),
                ("comedy", "Comedy"),
            ],
        ),
        ParameterDefinition.select(
            "length",
            "Length",
            options=[("short", "Short Story"), ("episode", "Episode"), ("feature", "Feature")],
        ),
    ],
)


SCENE_GENERATOR_NODE = NodeDefinition(
    type="sceneGenerator",
    category=NodeCategory.NARRATIVE,
    label="Scene Generator",
    description="Write a scene from a story and its characters",
    ai_model="claude-sonnet-4",
    inputs=[
        port("story", "Story", PortType.STORY, required=True),
        port("characters", "Characters", PortType.CHARACTER, multi=True),
        port("location", "Location", PortType.LOCATION),
    ],
    outputs=[
        port("scene", "Scene", PortType.SCENE),
        port("text", "Scene Prompt", PortType.TEXT),
    ],
    parameters=[
        ParameterDefinition.number("sceneNumber", "Scene Number", default=1, min_value=1),
        ParameterDefinition.select(
            "mood",
            "Mood",
            options=[("tense", "Tense"), ("calm", "Calm"), ("joyful", "Joyful"), ("dark", "Dark")],
        ),
    ],
)


NARRATIVE_NODES = [STORY_GENESIS_NODE, SCENE_GENERATOR_NODE]


def register_narrative_nodes() -> None:
    """Register all narrative node types."""
    registry = NodeRegistry.instance()
    for definition in NARRATIVE_NODES:
        registry.register(definition)
