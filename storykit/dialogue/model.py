"""
Dialogue graph model.

A graph is a named collection of nodes; each node is an ordered list of
instructions. Graphs are immutable once loaded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Union

from storyvm.core.expressions import Expression, compile_expression
from storyvm.core.variables import Scalar

# Trailing marker that suppresses the implicit line break after a Text.
NO_BREAK_MARKER = "|"


@dataclass(frozen=True)
class Text:
    """Display content."""
    content: str

    @property
    def line_break(self) -> bool:
        return not self.content.endswith(NO_BREAK_MARKER)

    @property
    def display(self) -> str:
        """Content without the no-break marker."""
        if self.line_break:
            return self.content
        return self.content[:-len(NO_BREAK_MARKER)]


@dataclass(frozen=True)
class GoTo:
    """Unconditional one-way jump to the start of a node."""
    target: str


@dataclass(frozen=True)
class Branch:
    """Labeled options; the chosen body runs inline, then control falls through."""
    choices: tuple[tuple[str, tuple[Instruction, ...]], ...]

    @property
    def labels(self) -> list[str]:
        return [label for label, _ in self.choices]

    def body(self, index: int) -> tuple[Instruction, ...]:
        return self.choices[index][1]


@dataclass(frozen=True)
class Prompt:
    """A message followed by choices that each jump to a node."""
    message: str
    choices: tuple[tuple[str, GoTo], ...]

    @property
    def labels(self) -> list[str]:
        return [label for label, _ in self.choices]

    def expand(self) -> tuple[Text, Branch]:
        """The equivalent Text + Branch pair."""
        return Text(self.message), Branch(tuple(
            (label, (goto,)) for label, goto in self.choices
        ))


@dataclass(frozen=True)
class If:
    """Run body inline when the condition holds. No else branch."""
    condition: str
    body: tuple[Instruction, ...]

    @property
    def compiled(self) -> Expression:
        return compile_expression(self.condition)


@dataclass(frozen=True)
class Set:
    """Write a scalar into the variable store."""
    key: str
    value: Scalar


@dataclass(frozen=True)
class Command:
    """Opaque side effect forwarded to the host."""
    name: str
    args: tuple[Scalar, ...] = ()


Instruction = Union[Text, Branch, Prompt, GoTo, If, Set, Command]


@dataclass(frozen=True)
class DialogueGraph:
    """
    A parsed dialogue asset.

    Attributes:
        name: Asset name
        nodes: Node name -> instructions, in file order
        metadata: Node name -> advisory tags ("on_load", "once", ...)
    """
    name: str
    nodes: Mapping[str, tuple[Instruction, ...]]
    metadata: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "nodes", MappingProxyType(dict(self.nodes)))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def has_node(self, name: str) -> bool:
        return name in self.nodes

    def get_node(self, name: str) -> Optional[tuple[Instruction, ...]]:
        return self.nodes.get(name)

    def tags(self, node: str) -> tuple[str, ...]:
        return tuple(self.metadata.get(node, ()))

    def nodes_with_tag(self, tag: str) -> list[str]:
        """Node names carrying a tag, in file order."""
        return [name for name in self.nodes if tag in self.metadata.get(name, ())]
