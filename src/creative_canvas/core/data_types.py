"""
Data Types - Port types and the compatibility lattice.

This module defines the types that flow through node connections:
- PortType: Enum of every port type, core and domain-specific
- NodeCategory: Enum of node categories (output is the terminal category)
- PORT_COMPATIBILITY: Static table of which source types feed which target
- PortTypeRegistry: Predicate object answering "can A feed a port of type B"
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Mapping, TypeAlias


class PortType(Enum):
    """
    Enumeration of data types that can flow through node connections.

    Values are the wire names used in saved graphs and service payloads.
    """
    # Core media types
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    TEXT = "text"
    MESH3D = "mesh3d"
    ANY = "any"

    # Style
    STYLE = "style"
    CHARACTER = "character"

    # Fashion
    GARMENT = "garment"
    FABRIC = "fabric"
    PATTERN = "pattern"
    MODEL = "model"
    OUTFIT = "outfit"
    COLLECTION = "collection"
    TECH_PACK = "techPack"
    LOOKBOOK = "lookbook"

    # Story
    STORY = "story"
    SCENE = "scene"
    PLOT_POINT = "plotPoint"
    LOCATION = "location"
    DIALOGUE = "dialogue"
    TREATMENT = "treatment"
    OUTLINE = "outline"
    LORE = "lore"
    TIMELINE = "timeline"

    # Interior design
    ROOM = "room"
    FLOOR_PLAN = "floorPlan"
    MATERIAL = "material"
    FURNITURE = "furniture"
    DESIGN_STYLE = "designStyle"
    ROOM_LAYOUT = "roomLayout"

    # Moodboard
    MOODBOARD = "moodboard"
    COLOR_PALETTE = "colorPalette"
    BRAND_KIT = "brandKit"
    TYPOGRAPHY = "typography"
    TEXTURE = "texture"
    AESTHETIC = "aesthetic"

    # Social media
    POST = "post"
    CAROUSEL = "carousel"
    CAPTION = "caption"
    TEMPLATE = "template"
    PLATFORM = "platform"

    @classmethod
    def parse(cls, value: PortType | str) -> PortType | None:
        """Resolve a PortType from an enum member or wire name, None if unknown."""
        if isinstance(value, PortType):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class NodeCategory(Enum):
    """Categories for organizing nodes in the library."""
    INPUT = "input"
    IMAGE_GEN = "imageGen"
    VIDEO_GEN = "videoGen"
    THREE_D = "threeD"
    CHARACTER = "character"
    STYLE = "style"
    LOGIC = "logic"
    AUDIO = "audio"
    OUTPUT = "output"
    COMPOSITE = "composite"
    ENHANCEMENT = "enhancement"
    FASHION = "fashion"
    NARRATIVE = "narrative"
    INTERIOR = "interior"
    MOODBOARD = "moodboard"
    SOCIAL = "social"

    @property
    def is_terminal(self) -> bool:
        """Terminal nodes are graph sinks; their outputs are not expected to feed anything."""
        return self is NodeCategory.OUTPUT


# Type alias for parameter values
ParameterValue: TypeAlias = str | int | float | bool | list | dict | None


def _accepts(*types: PortType) -> frozenset[PortType]:
    return frozenset(types)


_P = PortType

# Key = target type, value = source types allowed to feed it.
# Adding a domain type means adding one entry here.
PORT_COMPATIBILITY: Mapping[PortType, frozenset[PortType]] = {
    # Core types accept themselves + any
    _P.IMAGE: _accepts(_P.IMAGE, _P.ANY),
    _P.VIDEO: _accepts(_P.VIDEO, _P.ANY),
    _P.AUDIO: _accepts(_P.AUDIO, _P.ANY),
    _P.TEXT: _accepts(_P.TEXT, _P.ANY),
    _P.MESH3D: _accepts(_P.MESH3D, _P.ANY),
    _P.ANY: frozenset(PortType),

    _P.STYLE: _accepts(_P.STYLE, _P.IMAGE, _P.ANY),
    _P.CHARACTER: _accepts(_P.CHARACTER, _P.TEXT, _P.MODEL, _P.ANY),

    # Fashion types are image-compatible
    _P.GARMENT: _accepts(_P.GARMENT, _P.IMAGE, _P.ANY),
    _P.FABRIC: _accepts(_P.FABRIC, _P.IMAGE, _P.ANY),
    _P.PATTERN: _accepts(_P.PATTERN, _P.IMAGE, _P.ANY),
    _P.MODEL: _accepts(_P.MODEL, _P.IMAGE, _P.CHARACTER, _P.ANY),
    _P.OUTFIT: _accepts(_P.OUTFIT, _P.IMAGE, _P.ANY),
    _P.COLLECTION: _accepts(_P.COLLECTION, _P.ANY),
    _P.TECH_PACK: _accepts(_P.TECH_PACK, _P.TEXT, _P.ANY),
    _P.LOOKBOOK: _accepts(_P.LOOKBOOK, _P.IMAGE, _P.ANY),

    # Story types are text-compatible
    _P.STORY: _accepts(_P.STORY, _P.TEXT, _P.ANY),
    _P.SCENE: _accepts(_P.SCENE, _P.TEXT, _P.ANY),
    _P.PLOT_POINT: _accepts(_P.PLOT_POINT, _P.SCENE, _P.TEXT, _P.ANY),
    _P.LOCATION: _accepts(_P.LOCATION, _P.TEXT, _P.ANY),
    _P.DIALOGUE: _accepts(_P.DIALOGUE, _P.TEXT, _P.ANY),
    _P.TREATMENT: _accepts(_P.TREATMENT, _P.TEXT, _P.ANY),
    _P.OUTLINE: _accepts(_P.OUTLINE, _P.TEXT, _P.ANY),
    _P.LORE: _accepts(_P.LORE, _P.TEXT, _P.ANY),
    _P.TIMELINE: _accepts(_P.TIMELINE, _P.TEXT, _P.ANY),

    # Interior design
    _P.ROOM: _accepts(_P.ROOM, _P.IMAGE, _P.ANY),
    _P.FLOOR_PLAN: _accepts(_P.FLOOR_PLAN, _P.IMAGE, _P.ANY),
    _P.MATERIAL: _accepts(_P.MATERIAL, _P.IMAGE, _P.ANY),
    _P.FURNITURE: _accepts(_P.FURNITURE, _P.IMAGE, _P.ANY),
    _P.DESIGN_STYLE: _accepts(_P.DESIGN_STYLE, _P.TEXT, _P.ANY),
    _P.ROOM_LAYOUT: _accepts(_P.ROOM_LAYOUT, _P.FLOOR_PLAN, _P.ANY),

    # Moodboard
    _P.MOODBOARD: _accepts(_P.MOODBOARD, _P.IMAGE, _P.ANY),
    _P.COLOR_PALETTE: _accepts(_P.COLOR_PALETTE, _P.ANY),
    _P.BRAND_KIT: _accepts(_P.BRAND_KIT, _P.ANY),
    _P.TYPOGRAPHY: _accepts(_P.TYPOGRAPHY, _P.TEXT, _P.ANY),
    _P.TEXTURE: _accepts(_P.TEXTURE, _P.IMAGE, _P.ANY),
    _P.AESTHETIC: _accepts(_P.AESTHETIC, _P.TEXT, _P.ANY),

    # Social media
    _P.POST: _accepts(_P.POST, _P.IMAGE, _P.ANY),
    _P.CAROUSEL: _accepts(_P.CAROUSEL, _P.IMAGE, _P.ANY),
    _P.CAPTION: _accepts(_P.CAPTION, _P.TEXT, _P.ANY),
    _P.TEMPLATE: _accepts(_P.TEMPLATE, _P.IMAGE, _P.ANY),
    _P.PLATFORM: _accepts(_P.PLATFORM, _P.ANY),
}


class PortTypeRegistry:
    """
    Compatibility lattice over port types.

    Compatibility is defined per target type as the set of source types
    allowed to feed it, so it is not symmetric: a garment output can feed
    an image input only if the image entry lists garment.

    The registry is a pure predicate and never raises. Unknown types
    (strings that are not a PortType wire name) are incompatible with
    everything.
    """

    def __init__(
        self,
        table: Mapping[PortType, Iterable[PortType]] | None = None,
    ):
        source = PORT_COMPATIBILITY if table is None else table
        self._table: dict[PortType, frozenset[PortType]] = {
            target: frozenset(sources) for target, sources in source.items()
        }

    def compatible(
        self,
        source_type: PortType | str,
        target_type: PortType | str,
    ) -> bool:
        """Check if a source port type can feed a target port type."""
        source = PortType.parse(source_type)
        target = PortType.parse(target_type)
        if source is None or target is None:
            return False
        return source in self._table.get(target, frozenset())

    def accepted_sources(self, target_type: PortType | str) -> frozenset[PortType]:
        """Get the source types a target type accepts."""
        target = PortType.parse(target_type)
        if target is None:
            return frozenset()
        return self._table.get(target, frozenset())

    def compatible_targets(self, source_type: PortType | str) -> list[PortType]:
        """Get every target type the given source type may feed."""
        source = PortType.parse(source_type)
        if source is None:
            return []
        return [
            target for target, sources in self._table.items()
            if source in sources
        ]

    def known_types(self) -> list[PortType]:
        """Get all port types with a registry entry."""
        return list(self._table)

    def __contains__(self, port_type: object) -> bool:
        if not isinstance(port_type, (PortType, str)):
            return False
        parsed = PortType.parse(port_type)
        return parsed is not None and parsed in self._table


_default_registry: PortTypeRegistry | None = None


def get_port_registry() -> PortTypeRegistry:
    """Get the shared registry built from PORT_COMPATIBILITY."""
    global _default_registry
    if _default_registry is None:
        _default_registry = PortTypeRegistry()
    return _default_registry
