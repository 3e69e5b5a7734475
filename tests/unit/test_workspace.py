"""
Tests for graph persistence.
"""

import json

import pytest

from creative_canvas.core.graph import NodeStatus
from creative_canvas.core.workspace import FORMAT_VERSION, list_graphs, load_graph, save_graph


def _write(path, saved_at, name, nodes=()):
    document = {
        "format": FORMAT_VERSION,
        "saved_at": saved_at,
        "graph": {"name": name, "nodes": list(nodes), "edges": []},
    }
    path.write_text(json.dumps(document))


class TestSaveLoad:
    """Tests for save_graph and load_graph."""

    def test_round_trip(self, linear_graph, tmp_path):
        path = save_graph(linear_graph, tmp_path / "fox.json")

        graph = load_graph(path)

        assert graph.name == "Linear"
        assert graph.node_ids == ["input", "enhancer", "image"]
        assert [e.id for e in graph.edges] == ["e1", "e2"]
        assert graph.get_node("input").parameters["text"] == "A red fox"

    def test_runtime_state_is_not_saved(self, linear_graph, tmp_path):
        linear_graph.set_node_status("input", NodeStatus.ERROR, error="boom")

        graph = load_graph(save_graph(linear_graph, tmp_path / "g.json"))

        node = graph.get_node("input")
        assert node.status is NodeStatus.IDLE
        assert node.error is None

    def test_document_shape(self, linear_graph, tmp_path):
        path = save_graph(linear_graph, tmp_path / "nested" / "g.json")

        data = json.loads(path.read_text())

        assert data["format"] == FORMAT_VERSION
        assert "saved_at" in data
        assert data["graph"]["name"] == "Linear"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_graph(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ValueError):
            load_graph(path)

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "future.json"
        path.write_text(json.dumps({"format": 99, "graph": {}}))

        with pytest.raises(ValueError, match="Unsupported"):
            load_graph(path)

    def test_dangling_edge(self, tmp_path):
        path = tmp_path / "dangling.json"
        path.write_text(json.dumps({
            "format": FORMAT_VERSION,
            "graph": {
                "nodes": [],
                "edges": [{
                    "id": "e", "sourceNodeId": "a", "sourcePortId": "out",
                    "targetNodeId": "b", "targetPortId": "in",
                }],
            },
        }))

        with pytest.raises(ValueError):
            load_graph(path)


class TestListGraphs:
    """Tests for list_graphs."""

    def test_newest_first(self, tmp_path):
        _write(tmp_path / "old.json", "2026-01-01T10:00:00", "Old")
        _write(tmp_path / "new.json", "2026-03-01T10:00:00", "New", nodes=[{"id": "n"}])

        graphs = list_graphs(tmp_path)

        assert [g["name"] for g in graphs] == ["New", "Old"]
        assert graphs[0]["node_count"] == 1
        assert graphs[0]["path"] == tmp_path / "new.json"

    def test_unreadable_files_are_skipped(self, tmp_path):
        _write(tmp_path / "good.json", "2026-01-01T10:00:00", "Good")
        (tmp_path / "bad.json").write_text("garbage")

        graphs = list_graphs(tmp_path)

        assert [g["name"] for g in graphs] == ["Good"]
