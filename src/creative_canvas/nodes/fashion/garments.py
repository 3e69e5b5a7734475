"""
Fashion Nodes - Garment design and virtual try-on.
"""

from __future__ import annotations

from creative_canvas.core.data_types import NodeCategory, PortType
from creative_canvas.core.node_types import (
    NodeDefinition,
    NodeRegistry,
    ParameterDefinition,
    port,
)


GARMENT_SKETCH_NODE = NodeDefinition(
    type="garmentSketch",
    category=NodeCategory.FASHION,
    label="Garment Sketch",
    description="Turn a garment description or sketch into a rendered design",
    ai_model="fal-ai/flux-pro/v1.1",
    inputs=[
        port("prompt", "Description", PortType.TEXT, required=True),
        port("sketch", "Sketch", PortType.IMAGE),
        port("fabric", "Fabric", PortType.FABRIC),
    ],
    outputs=[port("garment", "Garment", PortType.GARMENT)],
    parameters=[
        ParameterDefinition.select(
            "garmentType",
            "Garment Type",
            options=[
                ("dress", "Dress"),
                ("jacket", "Jacket"),
                ("shirt", "Shirt"),
                ("trousers", "Trousers"),
            ],
        ),
        ParameterDefinition.select(
            "renderStyle",
            "Render Style",
            options=[("flat", "Technical Flat"), ("illustration", "Fashion Illustration")],
        ),
    ],
)


VIRTUAL_TRY_ON_NODE = NodeDefinition(
    type="virtualTryOn",
    category=NodeCategory.COMPOSITE,
    label="Virtual Try-On",
    description="AI-powered garment try-on with multiple providers",
    ai_model="multi-provider",
    inputs=[
        port("model", "Model Photo", PortType.IMAGE, required=True),
        port("garment", "Garment", PortType.GARMENT, required=True),
    ],
    outputs=[port("image", "Result", PortType.IMAGE)],
    parameters=[
        ParameterDefinition.select(
            "provider",
            "Provider",
            options=[
                ("fashn", "FASHN (Recommended)"),
                ("idm-vton", "IDM-VTON (Complex Garments)"),
                ("cat-vton", "CAT-VTON (Fast)"),
                ("leffa", "Leffa (Balanced)"),
                ("kling-kolors", "Kling-Kolors (High Quality)"),
            ],
        ),
        ParameterDefinition.select(
            "category",
            "Garment Type",
            options=[("tops", "Tops"), ("bottoms", "Bottoms"), ("one-pieces", "One-Pieces/Dresses")],
        ),
        ParameterDefinition.select(
            "mode",
            "Quality Mode",
            options=[("quality", "Quality"), ("speed", "Speed"), ("balanced", "Balanced")],
        ),
    ],
)


FASHION_NODES = [GARMENT_SKETCH_NODE, VIRTUAL_TRY_ON_NODE]


def register_fashion_nodes() -> None:
    """Register all fashion node types."""
    registry = NodeRegistry.instance()
    for definition in FASHION_NODES:
        registry.register(definition)
