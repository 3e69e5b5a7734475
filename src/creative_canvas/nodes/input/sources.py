"""
Input Nodes - Nodes that bring user content into the workflow.

These include text prompts, uploaded images and character references.
Input nodes have no input ports; their value comes from parameters.
"""

from __future__ import annotations

from creative_canvas.core.data_types import NodeCategory, PortType
from creative_canvas.core.node_types import (
    NodeDefinition,
    NodeRegistry,
    ParameterDefinition,
    port,
)


TEXT_INPUT_NODE = NodeDefinition(
    type="textInput",
    category=NodeCategory.INPUT,
    label="Text Input",
    description="Enter text prompts or descriptions",
    outputs=[port("text", "Text", PortType.TEXT)],
    parameters=[
        ParameterDefinition.text(
            "text",
            "Text",
            required=True,
            description="Enter your prompt here",
        ),
    ],
)


IMAGE_UPLOAD_NODE = NodeDefinition(
    type="imageUpload",
    category=NodeCategory.INPUT,
    label="Image Upload",
    description="Upload an image file",
    outputs=[port("image", "Image", PortType.IMAGE)],
    parameters=[
        ParameterDefinition.file("file", "File", required=True),
    ],
)


REFERENCE_IMAGE_NODE = NodeDefinition(
    type="referenceImage",
    category=NodeCategory.INPUT,
    label="Reference Image",
    description="Upload reference images for style/composition",
    outputs=[port("images", "Images", PortType.IMAGE, multi=True)],
    parameters=[
        ParameterDefinition.file("files", "Files", required=True),
    ],
)


CHARACTER_REFERENCE_NODE = NodeDefinition(
    type="characterReference",
    category=NodeCategory.INPUT,
    label="Character Reference",
    description="Upload character reference images (up to 7)",
    outputs=[port("character", "Character", PortType.CHARACTER)],
    parameters=[
        ParameterDefinition.file("files", "Files", required=True),
        ParameterDefinition.text("characterName", "Character Name"),
    ],
)


INPUT_NODES = [
    TEXT_INPUT_NODE,
    IMAGE_UPLOAD_NODE,
    REFERENCE_IMAGE_NODE,
    CHARACTER_REFERENCE_NODE,
]


def register_input_nodes() -> None:
    """Register all input node types."""
    registry = NodeRegistry.instance()
    for definition in INPUT_NODES:
        registry.register(definition)
