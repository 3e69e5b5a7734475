"""
Tests for the graph module.
"""

import pytest

from creative_canvas.core.data_types import NodeCategory, PortType
from creative_canvas.core.graph import (
    Edge,
    GraphEventKind,
    Node,
    NodeGraph,
    NodeOutput,
    NodeStatus,
    OutputMetadata,
    Port,
)


def _chain(make_node, *names):
    """Build a graph where each named node feeds the next."""
    graph = NodeGraph()
    for name in names:
        graph.add_node(make_node(name, inputs=[("in", "any")], outputs=[("out", "any")]))
    for source, target in zip(names, names[1:]):
        graph.add_edge(Edge.create(source, "out", target, "in", f"{source}-{target}"))
    return graph


class TestNode:
    """Tests for Node dataclass."""

    def test_create_node(self):
        node = Node.create("textInput", NodeCategory.INPUT)
        assert node.node_type == "textInput"
        assert isinstance(node.id, str)
        assert node.status is NodeStatus.IDLE
        assert node.cached_output is None

    def test_get_parameter_default(self):
        node = Node.create("textInput", NodeCategory.INPUT, parameters={"text": "Hi"})
        assert node.get_parameter("text") == "Hi"
        assert node.get_parameter("missing", "default") == "default"

    def test_ports_by_direction(self):
        node = Node.create(
            "flux2Pro",
            NodeCategory.IMAGE_GEN,
            inputs=[Port("prompt", "Prompt", PortType.TEXT)],
            outputs=[Port("image", "Image", PortType.IMAGE)],
        )
        assert node.get_input("prompt") is not None
        assert node.get_input("image") is None
        assert node.get_output("image").type is PortType.IMAGE

    def test_display_name_falls_back_to_type(self):
        node = Node.create("preview", NodeCategory.OUTPUT)
        assert node.display_name == "preview"


class TestNodeOutput:
    """Tests for NodeOutput wire shape."""

    def test_all_urls_deduplicates(self):
        output = NodeOutput(type="image", url="a.png", urls=["a.png", "b.png"])
        assert output.all_urls == ["a.png", "b.png"]

    def test_to_dict_omits_empty_fields(self):
        output = NodeOutput(
            type="image",
            url="https://cdn.example/x.png",
            metadata=OutputMetadata(width=512, height=512, file_size=2048),
        )
        assert output.to_dict() == {
            "type": "image",
            "url": "https://cdn.example/x.png",
            "metadata": {"width": 512, "height": 512, "fileSize": 2048},
        }

    def test_from_dict(self):
        output = NodeOutput.from_dict({"type": "text", "text": "hello"})
        assert output.text == "hello"
        assert output.metadata is None


class TestNodeGraph:
    """Tests for NodeGraph class."""

    def test_create_empty_graph(self):
        graph = NodeGraph("Test Graph")
        assert graph.name == "Test Graph"
        assert len(graph) == 0
        assert graph.version == 0

    def test_add_node(self, make_node):
        graph = NodeGraph()
        node = make_node("a")

        graph.add_node(node)

        assert len(graph) == 1
        assert "a" in graph
        assert graph.version == 1

    def test_add_duplicate_node_rejected(self, make_node):
        graph = NodeGraph()
        graph.add_node(make_node("a"))

        with pytest.raises(ValueError):
            graph.add_node(make_node("a"))

    def test_remove_node(self, make_node):
        graph = NodeGraph()
        node = make_node("a")
        graph.add_node(node)

        removed = graph.remove_node("a")

        assert removed is node
        assert len(graph) == 0
        assert graph.remove_node("a") is None

    def test_add_edge(self, make_node):
        graph = _chain(make_node, "a", "b")

        assert len(graph.edges) == 1
        assert graph.get_edge("a-b").target_node_id == "b"
        assert graph.predecessors("b") == ["a"]
        assert graph.successors("a") == ["b"]

    def test_add_edge_unknown_node(self, make_node):
        graph = NodeGraph()
        graph.add_node(make_node("a", inputs=[("in", "any")]))

        with pytest.raises(ValueError):
            graph.add_edge(Edge.create("ghost", "out", "a", "in"))

    def test_add_edge_wrong_direction(self, make_node):
        graph = NodeGraph()
        graph.add_node(make_node("a", inputs=[("in", "any")], outputs=[("out", "any")]))
        graph.add_node(make_node("b", inputs=[("in", "any")], outputs=[("out", "any")]))

        with pytest.raises(ValueError):
            graph.add_edge(Edge.create("a", "in", "b", "in"))

    def test_remove_node_removes_edges(self, make_node):
        graph = _chain(make_node, "a", "b", "c")

        graph.remove_node("b")

        assert graph.edges == []
        assert graph.successors("a") == []
        assert graph.predecessors("c") == []

    def test_incoming_edges_by_port(self, make_node):
        graph = NodeGraph()
        graph.add_node(make_node("src", outputs=[("out", "text")]))
        graph.add_node(make_node("dst", inputs=[("prompt", "text"), ("style", "text")]))
        graph.add_edge(Edge.create("src", "out", "dst", "prompt", "e1"))

        assert [e.id for e in graph.incoming_edges("dst", "prompt")] == ["e1"]
        assert graph.incoming_edges("dst", "style") == []

    def test_find_edge(self, make_node):
        graph = _chain(make_node, "a", "b")

        assert graph.find_edge("a", "out", "b", "in").id == "a-b"
        assert graph.find_edge("b", "out", "a", "in") is None

    def test_get_upstream_nodes(self, make_node):
        graph = _chain(make_node, "a", "b", "c")

        upstream = graph.get_upstream_nodes("c")

        assert upstream == {"a", "b"}

    def test_get_downstream_nodes(self, make_node):
        graph = _chain(make_node, "a", "b", "c")

        downstream = graph.get_downstream_nodes("a")

        assert downstream == {"b", "c"}

    def test_is_reachable(self, make_node):
        graph = _chain(make_node, "a", "b", "c")

        assert graph.is_reachable("a", "c") is True
        assert graph.is_reachable("c", "a") is False


class TestGraphVersion:
    """Tests for the change counter used to detect stale plans."""

    def test_topology_changes_bump_version(self, make_node):
        graph = _chain(make_node, "a", "b")
        version = graph.version

        graph.remove_edge("a-b")
        assert graph.version == version + 1

        graph.remove_node("b")
        assert graph.version == version + 2

    def test_parameter_update_bumps_version(self, make_node):
        graph = NodeGraph()
        graph.add_node(make_node("a", text="old"))
        version = graph.version

        graph.update_node_parameters("a", {"text": "new"})

        assert graph.version == version + 1
        assert graph.get_node("a").parameters["text"] == "new"

    def test_unchanged_parameter_keeps_version(self, make_node):
        graph = NodeGraph()
        graph.add_node(make_node("a", text="same"))
        version = graph.version

        graph.update_node_parameters("a", {"text": "same"})

        assert graph.version == version

    def test_status_writes_keep_version(self, make_node):
        graph = NodeGraph()
        graph.add_node(make_node("a"))
        version = graph.version

        graph.set_node_status("a", NodeStatus.RUNNING, progress=40.0)

        assert graph.version == version
        assert graph.get_node("a").progress == 40.0

    def test_completed_status_clears_error(self, make_node):
        graph = NodeGraph()
        graph.add_node(make_node("a"))
        graph.set_node_status("a", NodeStatus.ERROR, error="boom")

        node = graph.set_node_status(
            "a", NodeStatus.COMPLETED, output=NodeOutput(type="text", text="ok")
        )

        assert node.error is None
        assert node.progress == 100.0
        assert node.cached_output.text == "ok"

    def test_update_unknown_node(self):
        graph = NodeGraph()

        with pytest.raises(KeyError):
            graph.update_node_parameters("ghost", {"x": 1})


class TestGraphEvents:
    """Tests for change notifications."""

    def test_events_in_order(self, make_node):
        graph = NodeGraph()
        events = []
        graph.subscribe(events.append)

        graph.add_node(make_node("a", outputs=[("out", "any")]))
        graph.add_node(make_node("b", inputs=[("in", "any")]))
        graph.add_edge(Edge.create("a", "out", "b", "in", "e"))
        graph.remove_node("a")

        assert [e.kind for e in events] == [
            GraphEventKind.NODE_ADDED,
            GraphEventKind.NODE_ADDED,
            GraphEventKind.EDGE_ADDED,
            GraphEventKind.EDGE_REMOVED,
            GraphEventKind.NODE_REMOVED,
        ]

    def test_unsubscribe(self, make_node):
        graph = NodeGraph()
        events = []
        unsubscribe = graph.subscribe(events.append)

        unsubscribe()
        graph.add_node(make_node("a"))

        assert events == []

    def test_failing_listener_does_not_break_graph(self, make_node):
        graph = NodeGraph()

        def broken(event):
            raise RuntimeError("listener bug")

        graph.subscribe(broken)
        graph.add_node(make_node("a"))

        assert "a" in graph


class TestSerialization:
    """Tests for to_dict / from_dict."""

    def test_round_trip(self, linear_graph):
        data = linear_graph.to_dict()

        restored = NodeGraph.from_dict(data)

        assert restored.id == linear_graph.id
        assert restored.node_ids == linear_graph.node_ids
        assert [e.endpoints for e in restored.edges] == [e.endpoints for e in linear_graph.edges]
        for node in linear_graph.nodes:
            copy = restored.get_node(node.id)
            assert copy.node_type == node.node_type
            assert copy.category is node.category
            assert copy.parameters == node.parameters
            assert copy.inputs == node.inputs
            assert copy.outputs == node.outputs

    def test_runtime_state_not_serialized(self, linear_graph):
        linear_graph.set_node_status("input", NodeStatus.COMPLETED)

        restored = NodeGraph.from_dict(linear_graph.to_dict())

        assert restored.get_node("input").status is NodeStatus.IDLE

    def test_canvas_style_edge_keys(self):
        edge = Edge.from_dict({
            "id": "e1",
            "source": "a",
            "sourceHandle": "out",
            "target": "b",
            "targetHandle": "in",
        })
        assert edge.endpoints == ("a", "out", "b", "in")
