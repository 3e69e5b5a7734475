"""
Graph Persistence - Save and load node graphs to/from disk.

Graphs are stored as JSON documents wrapping NodeGraph.to_dict():

    {"format": 1, "saved_at": "<iso timestamp>", "graph": {...}}

Runtime state (status, progress, cached outputs) is not persisted.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from creative_canvas.core.graph import NodeGraph

logger = logging.getLogger(__name__)


FORMAT_VERSION = 1

# Graph storage directory
GRAPHS_DIR = Path.home() / ".local" / "share" / "creative_canvas" / "graphs"


def get_graphs_dir() -> Path:
    """Get the graph storage directory, creating if needed."""
    GRAPHS_DIR.mkdir(parents=True, exist_ok=True)
    return GRAPHS_DIR


def save_graph(graph: NodeGraph, path: Path | None = None) -> Path:
    """
    Save a graph to disk.

    Args:
        graph: The graph to save
        path: Optional specific path, otherwise `<graphs dir>/<name>.json`

    Returns:
        Path where the graph was saved
    """
    if path is None:
        path = get_graphs_dir() / f"{_file_stem(graph.name)}.json"
    else:
        path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "format": FORMAT_VERSION,
        "saved_at": datetime.now().isoformat(),
        "graph": graph.to_dict(),
    }

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)

    logger.info("Saved graph '%s' (%d nodes) to %s", graph.name, len(graph), path)
    return path


def load_graph(path: Path) -> NodeGraph:
    """
    Load a graph from disk.

    Args:
        path: Path to a graph JSON file

    Returns:
        The rebuilt graph

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not a valid graph document
    """
    if not path.exists():
        raise FileNotFoundError(f"Graph file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid graph file {path}: {e}") from e

    if not isinstance(data, dict) or "graph" not in data:
        raise ValueError(f"Invalid graph format: {path}")

    version = data.get("format")
    if version != FORMAT_VERSION:
        raise ValueError(f"Unsupported graph format {version!r}: {path}")

    try:
        graph = NodeGraph.from_dict(data["graph"])
    except (KeyError, TypeError) as e:
        raise ValueError(f"Invalid graph data in {path}: {e}") from e

    logger.debug("Loaded graph '%s' (%d nodes) from %s", graph.name, len(graph), path)
    return graph


def list_graphs(directory: Path | None = None) -> list[dict[str, Any]]:
    """
    List saved graphs.

    Returns:
        Metadata dicts with 'name', 'path', 'saved_at' and 'node_count',
        most recent first. Unreadable files are skipped.
    """
    directory = directory or get_graphs_dir()
    graphs = []

    for path in directory.glob("*.json"):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            graph_data = data["graph"]
            graphs.append({
                "name": graph_data.get("name", path.stem),
                "path": path,
                "saved_at": data.get("saved_at", ""),
                "node_count": len(graph_data.get("nodes", [])),
            })
        except (OSError, json.JSONDecodeError, KeyError, TypeError, AttributeError):
            logger.debug("Skipping unreadable graph file %s", path)
            continue

    graphs.sort(key=lambda g: g["saved_at"] or "", reverse=True)
    return graphs


def _file_stem(name: str) -> str:
    stem = "".join(c if c.isalnum() or c in "-_" else "_" for c in name.strip())
    return stem or "graph"
