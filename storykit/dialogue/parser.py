"""
Dialogue parser - converts dialogue assets to graphs and back.

Asset format (JSON):

```
{
  "name": "intro",
  "meta": {"Start": ["on_load", "once"]},
  "nodes": {
    "Start": [
      {"Text": "Welcome back."},
      {"If": {"condition": "notAlone()", "body": [{"Text": "And you brought a friend!"}]}},
      {"Prompt": {"message": "Ready?", "choices": {"Yes": "go", "No": "Start"}}}
    ],
    "go": [
      {"Set": {"key": "$ready", "value": true}},
      {"Command": "ExitLevel"}
    ]
  }
}
```

Loading rejects dangling GoTo/Prompt targets, empty choice sets,
unparseable conditions and (when the host declares its command set)
unknown command names.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Optional

import jsonschema
from jsonschema.exceptions import best_match

from storyvm.core.errors import ExpressionSyntaxError, LoadError, UnknownCommand
from storyvm.core.expressions import compile_expression
from storykit.dialogue.model import (
    Branch,
    Command,
    DialogueGraph,
    GoTo,
    If,
    Instruction,
    Prompt,
    Set,
    Text,
)
from storykit.dialogue.schema import DIALOGUE_SCHEMA


class DialogueParser:
    """
    Parses dialogue assets into DialogueGraphs.

    Args:
        commands: Closed set of command names the host accepts. None
            disables the command check.
    """

    def __init__(self, commands: Optional[Iterable[str]] = None):
        self.commands = frozenset(commands) if commands is not None else None
        self._validator = jsonschema.Draft7Validator(DIALOGUE_SCHEMA)

    def parse_file(self, path: str | Path) -> DialogueGraph:
        """Parse a dialogue asset file."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise LoadError(path.stem, f"cannot read asset: {e}") from e
        return self.parse_data(data, source=path.stem)

    def parse_string(self, content: str, source: str = "<string>") -> DialogueGraph:
        """Parse a dialogue asset from a JSON string."""
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise LoadError(source, f"invalid JSON: {e}") from e
        return self.parse_data(data, source=source)

    def parse_data(self, data: Any, source: str = "<data>") -> DialogueGraph:
        """Build and validate a graph from decoded asset data."""
        asset = data.get("name", source) if isinstance(data, dict) else source

        error = best_match(self._validator.iter_errors(data))
        if error is not None:
            path = list(error.absolute_path)
            node = str(path[1]) if len(path) > 1 and path[0] in ("nodes", "meta") else None
            raise LoadError(asset, f"schema violation: {error.message}", node=node)

        nodes: dict[str, tuple[Instruction, ...]] = {}
        for node_name, instructions in data["nodes"].items():
            nodes[node_name] = tuple(
                self._build(asset, node_name, item) for item in instructions
            )

        metadata = {name: tuple(tags) for name, tags in data.get("meta", {}).items()}
        for name in metadata:
            if name not in nodes:
                raise LoadError(asset, "meta refers to a missing node", reference=name)

        graph = DialogueGraph(name=data["name"], nodes=nodes, metadata=metadata)
        self.validate(graph)
        return graph

    def _build(self, asset: str, node: str, item: dict[str, Any]) -> Instruction:
        (kind, value), = item.items()

        if kind == "Text":
            return Text(value)

        if kind == "GoTo":
            return GoTo(value)

        if kind == "Branch":
            return Branch(tuple(
                (label, tuple(self._build(asset, node, sub) for sub in body))
                for label, body in value.items()
            ))

        if kind == "Prompt":
            choices = []
            for label, target in value["choices"].items():
                if isinstance(target, dict):
                    target = target["GoTo"]
                choices.append((label, GoTo(target)))
            return Prompt(value["message"], tuple(choices))

        if kind == "If":
            try:
                compile_expression(value["condition"])
            except ExpressionSyntaxError as e:
                raise LoadError(asset, str(e), node=node, reference=value["condition"]) from e
            return If(
                value["condition"],
                tuple(self._build(asset, node, sub) for sub in value["body"]),
            )

        if kind == "Set":
            return Set(value["key"], value["value"])

        if kind == "Command":
            if isinstance(value, str):
                return Command(value)
            return Command(value["name"], tuple(value.get("args", ())))

        raise LoadError(asset, f"unknown instruction '{kind}'", node=node)

    def validate(self, graph: DialogueGraph) -> None:
        """
        Check graph invariants.

        Raises:
            LoadError: dangling target or empty choice set
            UnknownCommand: command outside the declared set
        """
        for node_name, instructions in graph.nodes.items():
            self._validate_block(graph, node_name, instructions)

    def _validate_block(self, graph: DialogueGraph, node: str, instructions: Iterable[Instruction]) -> None:
        for instruction in instructions:
            if isinstance(instruction, GoTo):
                if not graph.has_node(instruction.target):
                    raise LoadError(graph.name, "GoTo target does not exist", node=node, reference=instruction.target)

            elif isinstance(instruction, Prompt):
                if not instruction.choices:
                    raise LoadError(graph.name, "Prompt has no choices", node=node)
                self._validate_block(graph, node, (goto for _, goto in instruction.choices))

            elif isinstance(instruction, Branch):
                if not instruction.choices:
                    raise LoadError(graph.name, "Branch has no choices", node=node)
                for _, body in instruction.choices:
                    self._validate_block(graph, node, body)

            elif isinstance(instruction, If):
                self._validate_block(graph, node, instruction.body)

            elif isinstance(instruction, Command):
                if self.commands is not None and instruction.name not in self.commands:
                    raise UnknownCommand(graph.name, instruction.name, node=node)

    def to_json(self, graph: DialogueGraph) -> dict:
        """Convert a graph back to asset data. Order is preserved."""
        data: dict[str, Any] = {"name": graph.name}
        if graph.metadata:
            data["meta"] = {name: list(tags) for name, tags in graph.metadata.items()}
        data["nodes"] = {
            name: [self._dump(instruction) for instruction in instructions]
            for name, instructions in graph.nodes.items()
        }
        return data

    def _dump(self, instruction: Instruction) -> dict[str, Any]:
        if isinstance(instruction, Text):
            return {"Text": instruction.content}
        if isinstance(instruction, GoTo):
            return {"GoTo": instruction.target}
        if isinstance(instruction, Branch):
            return {"Branch": {
                label: [self._dump(sub) for sub in body]
                for label, body in instruction.choices
            }}
        if isinstance(instruction, Prompt):
            return {"Prompt": {
                "message": instruction.message,
                "choices": {label: goto.target for label, goto in instruction.choices},
            }}
        if isinstance(instruction, If):
            return {"If": {
                "condition": instruction.condition,
                "body": [self._dump(sub) for sub in instruction.body],
            }}
        if isinstance(instruction, Set):
            return {"Set": {"key": instruction.key, "value": instruction.value}}
        if instruction.args:
            return {"Command": {"name": instruction.name, "args": list(instruction.args)}}
        return {"Command": instruction.name}

    def save_json(self, graph: DialogueGraph, path: str | Path) -> None:
        """Save a graph as a dialogue asset."""
        path = Path(path)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_json(graph), f, indent=2)
