from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    """
    Ensure `src/` is on sys.path so tests can import `creative_canvas`
    without requiring an editable install.
    """
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"
    sys.path.insert(0, str(src_root))


@pytest.fixture
def node_registry():
    """The global node registry holding exactly the built-in definitions."""
    from creative_canvas.core.node_types import NodeRegistry
    from creative_canvas.nodes import register_all_nodes

    registry = NodeRegistry.instance()
    registry.clear()
    register_all_nodes()
    yield registry
    registry.clear()


@pytest.fixture
def fast_settings():
    """Settings with millisecond polling so async tests finish quickly."""
    from creative_canvas.core.settings import ExecutionSettings

    return ExecutionSettings(
        poll_interval=0.01,
        max_poll_retries=3,
        backoff_base=0.01,
        backoff_max=0.02,
        job_timeout=5.0,
    )


@pytest.fixture
def service():
    from creative_canvas.providers.simulated import SimulatedGenerationService

    return SimulatedGenerationService()


@pytest.fixture
def make_node():
    """
    Factory for plain nodes with typed ports.

    Ports are given as (id, type) or (id, type, {"required": ..., "multi": ...}).
    """
    from creative_canvas.core.data_types import NodeCategory, PortType
    from creative_canvas.core.graph import Node, Port

    def _port(declaration) -> Port:
        port_id, port_type, *rest = declaration
        options = rest[0] if rest else {}
        return Port(id=port_id, name=port_id.title(), type=PortType(port_type), **options)

    def factory(
        node_id: str,
        inputs=(),
        outputs=(),
        category: NodeCategory = NodeCategory.IMAGE_GEN,
        node_type: str = "custom",
        **parameters,
    ) -> Node:
        return Node.create(
            node_type,
            category,
            inputs=[_port(p) for p in inputs],
            outputs=[_port(p) for p in outputs],
            parameters=parameters,
            label=node_id,
            node_id=node_id,
        )

    return factory


@pytest.fixture
def linear_graph(node_registry):
    """textInput -> promptEnhancer -> flux2Pro, all built from definitions."""
    from creative_canvas.core.graph import Edge, NodeGraph

    graph = NodeGraph(name="Linear")
    graph.add_node(node_registry.get("textInput").create_node("input", text="A red fox"))
    graph.add_node(node_registry.get("promptEnhancer").create_node("enhancer"))
    graph.add_node(node_registry.get("flux2Pro").create_node("image"))
    graph.add_edge(Edge.create("input", "text", "enhancer", "prompt", "e1"))
    graph.add_edge(Edge.create("enhancer", "text", "image", "prompt", "e2"))
    return graph


@pytest.fixture
def branching_graph(make_node):
    """Two chains A1 -> A2 and B1 -> B2 feeding one composite node."""
    from creative_canvas.core.data_types import NodeCategory
    from creative_canvas.core.graph import Edge, NodeGraph

    graph = NodeGraph(name="Branching")
    for chain in ("A", "B"):
        graph.add_node(make_node(
            f"{chain}1", outputs=[("text", "text")],
            category=NodeCategory.INPUT, node_type="source",
        ))
    for chain in ("A", "B"):
        graph.add_node(make_node(
            f"{chain}2", inputs=[("prompt", "text")], outputs=[("image", "image")],
            node_type="render",
        ))
    graph.add_node(make_node(
        "Composite", inputs=[("layers", "image", {"multi": True})],
        outputs=[("image", "image")], category=NodeCategory.COMPOSITE, node_type="composite",
    ))

    graph.add_edge(Edge.create("A1", "text", "A2", "prompt", "a"))
    graph.add_edge(Edge.create("B1", "text", "B2", "prompt", "b"))
    graph.add_edge(Edge.create("A2", "image", "Composite", "layers", "ac"))
    graph.add_edge(Edge.create("B2", "image", "Composite", "layers", "bc"))
    return graph
