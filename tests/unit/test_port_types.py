"""
Tests for port types and the compatibility lattice.
"""

from creative_canvas.core.data_types import (
    PORT_COMPATIBILITY,
    NodeCategory,
    PortType,
    PortTypeRegistry,
    get_port_registry,
)


class TestPortType:
    """Tests for PortType parsing."""

    def test_parse_wire_name(self):
        assert PortType.parse("techPack") is PortType.TECH_PACK
        assert PortType.parse(PortType.IMAGE) is PortType.IMAGE

    def test_parse_unknown(self):
        assert PortType.parse("hologram") is None

    def test_output_category_is_terminal(self):
        assert NodeCategory.OUTPUT.is_terminal
        assert not NodeCategory.IMAGE_GEN.is_terminal


class TestPortTypeRegistry:
    """Tests for PortTypeRegistry."""

    def test_every_type_has_an_entry(self):
        registry = PortTypeRegistry()
        for port_type in PortType:
            assert port_type in registry

    def test_same_type_is_compatible(self):
        registry = PortTypeRegistry()
        for port_type in PortType:
            assert registry.compatible(port_type, port_type)

    def test_any_feeds_everything(self):
        registry = PortTypeRegistry()
        for port_type in PortType:
            assert registry.compatible(PortType.ANY, port_type)

    def test_any_target_accepts_everything(self):
        registry = PortTypeRegistry()
        for port_type in PortType:
            assert registry.compatible(port_type, PortType.ANY)

    def test_domain_types_accept_base_media(self):
        registry = PortTypeRegistry()
        assert registry.compatible(PortType.IMAGE, PortType.GARMENT)
        assert registry.compatible(PortType.TEXT, PortType.STORY)
        assert registry.compatible(PortType.SCENE, PortType.PLOT_POINT)
        assert registry.compatible(PortType.FLOOR_PLAN, PortType.ROOM_LAYOUT)

    def test_not_symmetric(self):
        registry = PortTypeRegistry()
        assert registry.compatible(PortType.IMAGE, PortType.GARMENT)
        assert not registry.compatible(PortType.GARMENT, PortType.IMAGE)

    def test_incompatible_media(self):
        registry = PortTypeRegistry()
        assert not registry.compatible(PortType.VIDEO, PortType.IMAGE)
        assert not registry.compatible(PortType.TEXT, PortType.IMAGE)

    def test_string_types(self):
        registry = PortTypeRegistry()
        assert registry.compatible("text", "caption")
        assert not registry.compatible("text", "unknown")
        assert not registry.compatible("unknown", "any")

    def test_compatible_targets(self):
        registry = PortTypeRegistry()
        targets = registry.compatible_targets(PortType.SCENE)
        assert PortType.PLOT_POINT in targets
        assert PortType.SCENE in targets
        assert PortType.IMAGE not in targets

    def test_custom_table(self):
        registry = PortTypeRegistry({PortType.IMAGE: [PortType.IMAGE]})
        assert registry.compatible(PortType.IMAGE, PortType.IMAGE)
        assert not registry.compatible(PortType.ANY, PortType.IMAGE)
        assert registry.accepted_sources(PortType.VIDEO) == frozenset()

    def test_shared_registry(self):
        assert get_port_registry() is get_port_registry()
        assert set(get_port_registry().known_types()) == set(PORT_COMPATIBILITY)
