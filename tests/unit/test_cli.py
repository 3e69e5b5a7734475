"""
Tests for the command line entry point.
"""

import json

import pytest

from creative_canvas.core.graph import Edge, NodeGraph
from creative_canvas.core.settings import ExecutionSettings, save_settings
from creative_canvas.core.workspace import save_graph
from creative_canvas.main import EXIT_FAILED, EXIT_OK, EXIT_USAGE, build_parser, main
from creative_canvas.providers.download import DEFAULT_OUTPUT_DIR


@pytest.fixture
def settings_file(tmp_path):
    return save_settings(
        ExecutionSettings(poll_interval=0.01, backoff_base=0.01, backoff_max=0.02),
        tmp_path / "settings.json",
    )


@pytest.fixture
def cli(settings_file):
    def run(*argv):
        return main(["--settings", str(settings_file), *argv])
    return run


@pytest.fixture
def graph_file(linear_graph, tmp_path):
    return str(save_graph(linear_graph, tmp_path / "linear.json"))


@pytest.fixture
def export_graph_file(node_registry, tmp_path):
    graph = NodeGraph(name="Export")
    graph.add_node(node_registry.get("textInput").create_node("prompt", label="Prompt", text="A red fox"))
    graph.add_node(node_registry.get("export").create_node("final", label="Final"))
    graph.add_edge(Edge.create("prompt", "text", "final", "content"))
    return str(save_graph(graph, tmp_path / "export.json"))


class TestValidateCommand:
    """Tests for `validate`."""

    def test_valid_graph(self, cli, graph_file, capsys):
        assert cli("validate", graph_file) == EXIT_OK
        assert "is valid" in capsys.readouterr().out

    def test_invalid_graph(self, cli, node_registry, tmp_path, capsys):
        graph = NodeGraph(name="Broken")
        graph.add_node(node_registry.get("flux2Pro").create_node("gen"))
        path = save_graph(graph, tmp_path / "broken.json")

        assert cli("validate", str(path)) == EXIT_FAILED
        assert "MISSING_REQUIRED_INPUT" in capsys.readouterr().out

    def test_json_output(self, cli, graph_file, capsys):
        cli("validate", graph_file, "--json")

        data = json.loads(capsys.readouterr().out)
        assert data["valid"] is True

    def test_missing_file(self, cli, tmp_path, capsys):
        assert cli("validate", str(tmp_path / "nope.json")) == EXIT_USAGE
        assert "Error" in capsys.readouterr().err


class TestPlanCommand:
    """Tests for `plan`."""

    def test_waves(self, cli, graph_file, capsys):
        assert cli("plan", graph_file) == EXIT_OK

        out = capsys.readouterr().out
        assert "Wave 1: Text Input" in out
        assert "Wave 3: FLUX.2 Pro" in out

    def test_target(self, cli, graph_file, capsys):
        cli("plan", graph_file, "--target", "enhancer", "--json")

        assert json.loads(capsys.readouterr().out)["order"] == ["input", "enhancer"]

    def test_unknown_target(self, cli, graph_file, capsys):
        assert cli("plan", graph_file, "--target", "ghost") == EXIT_USAGE
        assert "ghost" in capsys.readouterr().err


class TestRunCommand:
    """Tests for `run` against the simulated service."""

    def test_simulated_run(self, cli, graph_file, capsys):
        assert cli("run", graph_file, "--simulate", "--json") == EXIT_OK

        data = json.loads(capsys.readouterr().out)
        assert data["status"] == "completed"
        assert set(data["nodeStatuses"]) == {"input", "enhancer", "image"}

    def test_progress_is_printed(self, cli, graph_file, capsys):
        cli("run", graph_file, "--simulate")

        out = capsys.readouterr().out
        assert "FLUX.2 Pro: running -> completed" in out
        assert "completed in" in out

    def test_invalid_graph_is_not_run(self, cli, node_registry, tmp_path, capsys):
        graph = NodeGraph()
        graph.add_node(node_registry.get("flux2Pro").create_node("gen"))
        path = save_graph(graph, tmp_path / "broken.json")

        assert cli("run", str(path), "--simulate") == EXIT_FAILED
        assert "not running" in capsys.readouterr().out

    def test_bad_timeout(self, cli, graph_file):
        assert cli("run", graph_file, "--simulate", "--timeout", "0") == EXIT_USAGE

    def test_save_outputs(self, cli, export_graph_file, tmp_path):
        out_dir = tmp_path / "renders"

        assert cli("run", export_graph_file, "--simulate", "--save-outputs", str(out_dir)) == EXIT_OK

        assert (out_dir / "Final_Prompt.txt").read_text() == "A red fox"

    def test_save_outputs_default_directory(self):
        args = build_parser().parse_args(["run", "graph.json", "--save-outputs"])

        assert args.save_outputs == DEFAULT_OUTPUT_DIR


class TestListingCommands:
    """Tests for `models`, `node-types` and argument errors."""

    def test_builtin_models(self, cli, capsys):
        assert cli("models") == EXIT_OK
        assert "gemini-2.5-flash" in capsys.readouterr().out

    def test_refresh_falls_back(self, cli, capsys):
        assert cli("models", "--refresh", "--simulate") == EXIT_OK

        out = capsys.readouterr().out
        assert "built-in models" in out
        assert "fal-ai/flux-pro/v1.1" in out

    def test_node_types_by_category(self, cli, capsys):
        assert cli("node-types", "--category", "output") == EXIT_OK

        out = capsys.readouterr().out
        assert "preview" in out and "export" in out
        assert "textInput" not in out

    def test_unknown_command(self, cli):
        assert cli("paint") == EXIT_USAGE

    def test_help(self, cli):
        assert cli("--help") == EXIT_OK
