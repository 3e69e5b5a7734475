"""
Generation Nodes - Nodes backed by remote generation models.

Each definition pins the service model it runs through `ai_model`; the
execution engine sends it as the "model" parameter unless the node
overrides it.
"""

from __future__ import annotations

from creative_canvas.core.data_types import NodeCategory, PortType
from creative_canvas.core.node_types import (
    NodeDefinition,
    NodeRegistry,
    ParameterDefinition,
    port,
)


PROMPT_ENHANCER_NODE = NodeDefinition(
    type="promptEnhancer",
    category=NodeCategory.LOGIC,
    label="Prompt Enhancer",
    description="Rewrite a rough prompt into a detailed generation prompt",
    ai_model="gemini-2.5-flash",
    inputs=[port("prompt", "Prompt", PortType.TEXT, required=True)],
    outputs=[port("text", "Enhanced Prompt", PortType.TEXT)],
    parameters=[
        ParameterDefinition.select(
            "style",
            "Style",
            options=[
                ("cinematic", "Cinematic"),
                ("photographic", "Photographic"),
                ("illustration", "Illustration"),
                ("minimal", "Minimal"),
            ],
        ),
        ParameterDefinition.slider(
            "creativity", "Creativity", default=0.7, step=0.1,
        ),
    ],
)


FLUX2_PRO_NODE = NodeDefinition(
    type="flux2Pro",
    category=NodeCategory.IMAGE_GEN,
    label="FLUX.2 Pro",
    description="High-fidelity image generation (4MP, commercial)",
    ai_model="fal-ai/flux-pro/v1.1",
    inputs=[
        port("prompt", "Prompt", PortType.TEXT, required=True),
        port("reference", "Reference", PortType.IMAGE),
    ],
    outputs=[port("image", "Image", PortType.IMAGE)],
    parameters=[
        ParameterDefinition.number("width", "Width", default=1024, min_value=256, max_value=2048),
        ParameterDefinition.number("height", "Height", default=1024, min_value=256, max_value=2048),
        ParameterDefinition.slider(
            "guidance", "Guidance Scale", default=3.5, min_value=1, max_value=20, step=0.1,
        ),
        ParameterDefinition.number("numImages", "Num Images", default=1, min_value=1, max_value=4),
    ],
)


NANO_BANANA_PRO_NODE = NodeDefinition(
    type="nanoBananaPro",
    category=NodeCategory.IMAGE_GEN,
    label="Nano Banana Pro",
    description="Multi-reference generation (14 refs, 5-face memory)",
    ai_model="fal-ai/nano-banana-pro",
    inputs=[
        port("prompt", "Prompt", PortType.TEXT, required=True),
        port("references", "References", PortType.IMAGE, multi=True),
        port("characters", "Characters", PortType.CHARACTER, multi=True),
    ],
    outputs=[port("image", "Image", PortType.IMAGE)],
    parameters=[
        ParameterDefinition.number("width", "Width", default=1024, min_value=256, max_value=2048),
        ParameterDefinition.number("height", "Height", default=1024, min_value=256, max_value=2048),
        ParameterDefinition.slider("faceWeight", "Face Weight", default=0.8, step=0.1),
        ParameterDefinition.slider("styleWeight", "Style Weight", default=0.6, step=0.1),
    ],
)


KLING_VIDEO_NODE = NodeDefinition(
    type="klingVideo",
    category=NodeCategory.VIDEO_GEN,
    label="Kling Video",
    description="Text- or image-to-video with native audio",
    ai_model="fal-ai/kling-video/v2.6/pro/image-to-video",
    inputs=[
        port("prompt", "Prompt", PortType.TEXT, required=True),
        port("image", "Source Image", PortType.IMAGE),
    ],
    outputs=[
        port("video", "Video", PortType.VIDEO),
        port("audio", "Audio", PortType.AUDIO),
    ],
    parameters=[
        ParameterDefinition.select(
            "duration", "Duration (s)", options=[(5, "5 seconds"), (10, "10 seconds")],
        ),
        ParameterDefinition.select(
            "aspectRatio",
            "Aspect Ratio",
            options=[("16:9", "16:9"), ("9:16", "9:16"), ("1:1", "1:1")],
        ),
        ParameterDefinition.boolean("enableAudio", "Generate Audio", default=True),
    ],
)


GENERATION_NODES = [
    PROMPT_ENHANCER_NODE,
    FLUX2_PRO_NODE,
    NANO_BANANA_PRO_NODE,
    KLING_VIDEO_NODE,
]


def register_generation_nodes() -> None:
    """Register all generation node types."""
    registry = NodeRegistry.instance()
    for definition in GENERATION_NODES:
        registry.register(definition)
