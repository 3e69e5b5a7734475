"""
Tests for whole-graph validation.
"""

from creative_canvas.core.data_types import NodeCategory
from creative_canvas.core.graph import Edge, NodeGraph
from creative_canvas.core.validation import (
    GraphValidator,
    IssueType,
    Severity,
    find_cycles,
)


def _loop(make_node, *names):
    graph = NodeGraph()
    for name in names:
        graph.add_node(make_node(name, inputs=[("in", "image")], outputs=[("out", "image")]))
    for source, target in zip(names, names[1:] + names[:1]):
        graph.add_edge(Edge.create(source, "out", target, "in"))
    return graph


class TestFindCycles:
    """Tests for the DFS cycle finder."""

    def test_acyclic(self, branching_graph):
        assert find_cycles(branching_graph) == []

    def test_simple_cycle(self, make_node):
        graph = _loop(make_node, "a", "b", "c")

        cycles = find_cycles(graph)

        assert cycles == [["a", "b", "c"]]

    def test_two_separate_cycles(self, make_node):
        graph = _loop(make_node, "a", "b")
        for name in ("x", "y"):
            graph.add_node(make_node(name, inputs=[("in", "image")], outputs=[("out", "image")]))
        graph.add_edge(Edge.create("x", "out", "y", "in"))
        graph.add_edge(Edge.create("y", "out", "x", "in"))

        cycles = find_cycles(graph)

        assert sorted(sorted(c) for c in cycles) == [["a", "b"], ["x", "y"]]


class TestGraphValidator:
    """Tests for GraphValidator."""

    def test_linear_graph_is_valid(self, linear_graph):
        result = GraphValidator().validate(linear_graph)

        assert result.valid is True
        assert result.errors == []
        assert result.stats.execution_order == ["input", "enhancer", "image"]
        assert result.stats.parallel_groups == [["input"], ["enhancer"], ["image"]]

    def test_unused_output_is_info(self, linear_graph):
        result = GraphValidator().validate(linear_graph)

        unused = result.of_type(IssueType.UNUSED_OUTPUT)
        assert [(i.node_id, i.port_id) for i in unused] == [("image", "image")]
        assert unused[0].severity is Severity.INFO

    def test_cycle_is_error(self, make_node, node_registry):
        graph = _loop(make_node, "a", "b")

        result = GraphValidator().validate(graph)

        assert result.valid is False
        cycles = result.of_type(IssueType.CYCLE_DETECTED)
        assert len(cycles) == 1
        assert cycles[0].severity is Severity.ERROR
        assert cycles[0].message == "Cycle detected: a -> b -> a"
        assert set(cycles[0].node_ids) == {"a", "b"}
        assert result.stats.execution_order is None

    def test_issues_for_node_includes_cycles(self, make_node, node_registry):
        graph = _loop(make_node, "a", "b", "c")

        result = GraphValidator().validate(graph)

        assert result.issues_for_node("b")[0].type is IssueType.CYCLE_DETECTED

    def test_missing_required_input(self, node_registry):
        graph = NodeGraph()
        graph.add_node(node_registry.get("flux2Pro").create_node("gen"))

        result = GraphValidator().validate(graph)

        missing = result.of_type(IssueType.MISSING_REQUIRED_INPUT)
        assert [(i.node_id, i.port_id) for i in missing] == [("gen", "prompt")]
        assert result.has_blocking_issues

    def test_isolated_node_is_warning_only(self, make_node, node_registry):
        graph = NodeGraph()
        graph.add_node(make_node("lonely", outputs=[("image", "image")]))

        result = GraphValidator().validate(graph)

        assert result.valid is True
        assert [i.type for i in result.issues] == [IssueType.ISOLATED_NODE]
        assert result.warnings[0].node_id == "lonely"
        assert result.stats.isolated_nodes == 1

    def test_incompatible_edge_is_warning(self, make_node, node_registry):
        graph = NodeGraph()
        graph.add_node(make_node("clip", outputs=[("video", "video")]))
        graph.add_node(make_node(
            "out", inputs=[("image", "image")], category=NodeCategory.OUTPUT,
        ))
        graph.add_edge(Edge.create("clip", "video", "out", "image"))

        result = GraphValidator().validate(graph)

        incompatible = result.of_type(IssueType.PORT_INCOMPATIBLE)
        assert len(incompatible) == 1
        assert incompatible[0].severity is Severity.WARNING
        assert incompatible[0].node_id == "out"
        assert result.valid is True

    def test_terminal_nodes_have_no_unused_outputs(self, node_registry, make_node):
        graph = NodeGraph()
        graph.add_node(make_node("img", outputs=[("image", "image")]))
        graph.add_node(node_registry.get("preview").create_node("preview"))
        graph.add_edge(Edge.create("img", "image", "preview", "content"))

        result = GraphValidator().validate(graph)

        assert result.of_type(IssueType.UNUSED_OUTPUT) == []

    def test_missing_parameter(self, node_registry):
        graph = NodeGraph()
        graph.add_node(node_registry.get("textInput").create_node("prompt", text="   "))
        graph.add_node(node_registry.get("preview").create_node("preview"))
        graph.add_edge(Edge.create("prompt", "text", "preview", "content"))

        result = GraphValidator().validate(graph)

        missing = result.of_type(IssueType.MISSING_PARAMETER)
        assert len(missing) == 1
        assert missing[0].node_id == "prompt"
        assert missing[0].port_id is None
        assert result.valid is False

    def test_unregistered_types_skip_parameter_check(self, make_node, node_registry):
        graph = NodeGraph()
        graph.add_node(make_node("a", outputs=[("out", "image")], node_type="unknownType"))

        result = GraphValidator().validate(graph)

        assert result.of_type(IssueType.MISSING_PARAMETER) == []

    def test_result_dict_shape(self, linear_graph):
        data = GraphValidator().validate(linear_graph).to_dict()

        assert data["valid"] is True
        assert data["stats"]["totalNodes"] == 3
        assert data["stats"]["executionOrder"] == ["input", "enhancer", "image"]
        assert data["issues"][0]["type"] == "UNUSED_OUTPUT"
        assert data["issues"][0]["severity"] == "info"
