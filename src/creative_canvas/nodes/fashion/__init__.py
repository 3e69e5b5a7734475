"""
Fashion Nodes package.
"""

from creative_canvas.nodes.fashion.garments import (
    FASHION_NODES,
    GARMENT_SKETCH_NODE,
    VIRTUAL_TRY_ON_NODE,
    register_fashion_nodes,
)

__all__ = [
    "GARMENT_SKETCH_NODE",
    "VIRTUAL_TRY_ON_NODE",
    "FASHION_NODES",
    "register_fashion_nodes",
]
