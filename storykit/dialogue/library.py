"""
Dialogue library - loads every dialogue asset in a directory.

A failing asset is logged and recorded, never fatal to the others.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from storyvm.core.errors import LoadError
from storykit.dialogue.model import DialogueGraph
from storykit.dialogue.parser import DialogueParser


class DialogueLibrary:
    """
    Loaded dialogue graphs, indexed by node name.

    Node names are unique across the library so that scripts can start a
    dialogue by node name alone.
    """

    def __init__(self, commands: Optional[Iterable[str]] = None):
        self.parser = DialogueParser(commands)
        self.graphs: dict[str, DialogueGraph] = {}
        self.errors: list[LoadError] = []

        self._graph_by_node: dict[str, DialogueGraph] = {}
        self.logger = logging.getLogger(__name__)

    def load_directory(self, path: str | Path) -> int:
        """
        Load all dialogue assets (*.json) in a directory.

        Returns:
            Number of graphs loaded
        """
        directory = Path(path)
        if not directory.exists():
            self.logger.warning(f"Dialogue directory not found: {directory}")
            return 0

        count = 0
        for file_path in sorted(directory.glob("*.json")):
            if self.load_file(file_path):
                count += 1

        self.logger.info(f"Loaded {count} dialogue assets, {len(self.errors)} failed.")
        return count

    def load_file(self, path: str | Path) -> Optional[DialogueGraph]:
        """Load a single asset. Returns None (and records the error) on failure."""
        try:
            graph = self.parser.parse_file(path)
            self.add(graph)
        except LoadError as e:
            self.logger.error(f"Failed to load dialogue {path}: {e}")
            self.errors.append(e)
            return None
        return graph

    def add(self, graph: DialogueGraph) -> None:
        """Register a parsed graph."""
        if graph.name in self.graphs:
            raise LoadError(graph.name, "an asset with this name is already loaded")

        for node in graph.nodes:
            owner = self._graph_by_node.get(node)
            if owner is not None:
                raise LoadError(graph.name, f"node also defined in '{owner.name}'", node=node)

        self.graphs[graph.name] = graph
        for node in graph.nodes:
            self._graph_by_node[node] = graph

    def has_node(self, node: str) -> bool:
        return node in self._graph_by_node

    def graph_for(self, node: str) -> Optional[DialogueGraph]:
        """The graph that defines a node."""
        return self._graph_by_node.get(node)

    def nodes_with_tag(self, tag: str) -> list[str]:
        """Tagged node names across all graphs, in load order."""
        found: list[str] = []
        for graph in self.graphs.values():
            found.extend(graph.nodes_with_tag(tag))
        return found
