"""
Dialogue interpreter - a resumable state machine over a dialogue graph.

The host drives a Session by calling advance() once per UI tick. Each call
runs instructions until something host-visible happens and returns one
step result:

- Displayed: show a line of text, then call advance() again
- AwaitingChoice: call advance(index) with the player's pick
- CommandCall: perform the command, then call advance() to acknowledge
- Finished: the session is over

Nothing blocks; suspension is simply returning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional, Union

from storyvm.core.errors import (
    InvalidChoice,
    NarrativeError,
    SessionStateError,
    UnknownNode,
)
from storyvm.core.expressions import Evaluator
from storyvm.core.variables import Scalar, VariableStore
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

if TYPE_CHECKING:
    from storyvm.core.config import RuntimeConfig

logger = logging.getLogger(__name__)


# --- Step results ---

@dataclass(frozen=True)
class Displayed:
    """Text to show. line_break is False when the text ended with '|'."""
    text: str
    line_break: bool = True


@dataclass(frozen=True)
class AwaitingChoice:
    """The session is suspended on a choice point."""
    labels: list[str]


@dataclass(frozen=True)
class CommandCall:
    """A host command to perform before the session resumes."""
    name: str
    args: tuple[Scalar, ...] = ()


@dataclass(frozen=True)
class Finished:
    """
    The session ended.

    reason is one of "end", "exit", "aborted", "stalled", "error".
    """
    reason: str = "end"


StepResult = Union[Displayed, AwaitingChoice, CommandCall, Finished]


# --- Cursor ---

@dataclass
class Frame:
    """A block of instructions being executed and the position within it."""
    instructions: tuple[Instruction, ...]
    index: int = 0

    @property
    def exhausted(self) -> bool:
        return self.index >= len(self.instructions)

    @property
    def current(self) -> Instruction:
        return self.instructions[self.index]


@dataclass
class ExecutionCursor:
    """
    Resumable position within a graph.

    The bottom frame is the node body; frames above it are inline
    expansions (a chosen branch or a true If body) that run ahead of the
    rest of the node.
    """
    node: str
    frames: list[Frame] = field(default_factory=list)
    pending_choice: Optional[Branch] = None
    pending_command: Optional[Command] = None

    @property
    def index(self) -> int:
        """Instruction index within the node."""
        return self.frames[0].index if self.frames else 0

    @property
    def depth(self) -> int:
        return len(self.frames)

    def jump(self, node: str, instructions: tuple[Instruction, ...]) -> None:
        self.node = node
        self.frames = [Frame(instructions)]

    def snapshot(self) -> dict:
        """Position summary for diagnostics and save games."""
        return {
            "node": self.node,
            "index": self.index,
            "path": [frame.index for frame in self.frames],
            "awaiting_choice": self.pending_choice is not None,
        }


# --- Session ---

class Session:
    """
    One running dialogue.

    At most one session is live per player-facing dialogue; discarding it
    (or calling abort()) cancels it. Set instructions already executed
    are not rolled back.
    """

    def __init__(
        self,
        graph: DialogueGraph,
        node: str,
        evaluator: Evaluator,
        auto_continue_text: bool = False,
        max_silent_steps: int = 1000,
        exit_commands: Iterable[str] = (),
    ):
        instructions = graph.get_node(node)
        if instructions is None:
            raise UnknownNode(node)

        self.graph = graph
        self.evaluator = evaluator
        self.auto_continue_text = auto_continue_text
        self.max_silent_steps = max_silent_steps
        self.exit_commands = frozenset(exit_commands)

        self.cursor = ExecutionCursor(node)
        self.cursor.jump(node, instructions)
        self.last: Optional[StepResult] = None
        self._finished: Optional[Finished] = None

    @property
    def store(self) -> VariableStore:
        return self.evaluator.store

    @property
    def is_finished(self) -> bool:
        return self._finished is not None

    def advance(self, choice: Optional[int] = None) -> StepResult:
        """
        Resume the session.

        Args:
            choice: Index of the selected option when awaiting a choice.

        Raises:
            InvalidChoice: index out of range (cursor unchanged, retry allowed)
            SessionStateError: a choice given when none is awaited
        """
        if self._finished is not None:
            return self._finished

        cursor = self.cursor

        if cursor.pending_command is not None:
            if choice is not None:
                raise SessionStateError(
                    f"command '{cursor.pending_command.name}' must be acknowledged before choosing"
                )
            command = cursor.pending_command
            cursor.pending_command = None
            if command.name in self.exit_commands:
                return self._finish("exit")

        elif cursor.pending_choice is not None:
            branch = cursor.pending_choice
            if choice is None:
                return self._yield(AwaitingChoice(branch.labels))
            if isinstance(choice, bool) or not isinstance(choice, int) or not 0 <= choice < len(branch.choices):
                raise InvalidChoice(choice, len(branch.choices))
            cursor.pending_choice = None
            cursor.frames[-1].index += 1
            cursor.frames.append(Frame(branch.body(choice)))

        elif choice is not None:
            raise SessionStateError("no choice is being awaited")

        return self._run()

    def abort(self) -> Finished:
        """Cancel the session."""
        if self._finished is None:
            return self._finish("aborted")
        return self._finished

    def _run(self) -> StepResult:
        cursor = self.cursor
        texts: list[Text] = []
        visited = {cursor.node}
        steps = 0

        while True:
            while cursor.frames and cursor.frames[-1].exhausted:
                cursor.frames.pop()

            if not cursor.frames:
                if texts:
                    return self._yield(self._combine(texts))
                return self._finish("end")

            steps += 1
            if steps > self.max_silent_steps:
                if texts:
                    return self._yield(self._combine(texts))
                logger.error(
                    f"Dialogue '{self.graph.name}' ran {self.max_silent_steps} steps "
                    f"without yielding at node '{cursor.node}'; ending session"
                )
                return self._finish("stalled")

            frame = cursor.frames[-1]
            instruction = frame.current

            if isinstance(instruction, Text):
                frame.index += 1
                if not self.auto_continue_text:
                    return self._yield(Displayed(instruction.display, instruction.line_break))
                texts.append(instruction)
                continue

            # Anything that yields flushes coalesced text first and is
            # revisited on the next advance().
            if texts and isinstance(instruction, (Branch, Prompt, Command)):
                return self._yield(self._combine(texts))

            try:
                result = self._execute(frame, instruction)
            except NarrativeError:
                logger.exception(f"Dialogue '{self.graph.name}' failed at node '{cursor.node}'")
                return self._finish("error")

            if result is not None:
                return self._yield(result)

            # Coalesced text never spans a cycle.
            if isinstance(instruction, GoTo):
                if texts and cursor.node in visited:
                    return self._yield(self._combine(texts))
                visited.add(cursor.node)

    def _execute(self, frame: Frame, instruction: Instruction) -> Optional[StepResult]:
        cursor = self.cursor

        if isinstance(instruction, GoTo):
            instructions = self.graph.get_node(instruction.target)
            if instructions is None:
                raise UnknownNode(instruction.target)
            cursor.jump(instruction.target, instructions)
            return None

        if isinstance(instruction, Prompt):
            frame.index += 1
            cursor.frames.append(Frame(instruction.expand()))
            return None

        if isinstance(instruction, Branch):
            cursor.pending_choice = instruction
            return AwaitingChoice(instruction.labels)

        if isinstance(instruction, If):
            frame.index += 1
            if self.evaluator.check(instruction.compiled):
                cursor.frames.append(Frame(instruction.body))
            return None

        if isinstance(instruction, Set):
            frame.index += 1
            self.store[instruction.key] = instruction.value
            return None

        if isinstance(instruction, Command):
            frame.index += 1
            cursor.pending_command = instruction
            return CommandCall(instruction.name, instruction.args)

        raise SessionStateError(f"unsupported instruction {instruction!r}")

    @staticmethod
    def _combine(texts: list[Text]) -> Displayed:
        content = ""
        for i, text in enumerate(texts):
            if i and texts[i - 1].line_break:
                content += "\n"
            content += text.display
        return Displayed(content, texts[-1].line_break)

    def _yield(self, result: StepResult) -> StepResult:
        self.last = result
        return result

    def _finish(self, reason: str) -> Finished:
        self.cursor.frames.clear()
        self.cursor.pending_choice = None
        self.cursor.pending_command = None
        self._finished = Finished(reason)
        self.last = self._finished
        logger.debug(f"Dialogue '{self.graph.name}' finished ({reason})")
        return self._finished


class DialogueInterpreter:
    """
    Creates sessions over loaded graphs.

    Args:
        graphs: A DialogueGraph, or anything with graph_for(node)
            (e.g. DialogueLibrary)
        evaluator: Evaluator bound to the shared variable store
        config: Host policy (text continuation, step budget, exit commands)
    """

    def __init__(
        self,
        graphs,
        evaluator: Evaluator,
        config: Optional[RuntimeConfig] = None,
    ):
        self.graphs = graphs
        self.evaluator = evaluator
        self.auto_continue_text = config.auto_continue_text if config else False
        self.max_silent_steps = config.max_silent_steps if config else 1000
        self.exit_commands = tuple(config.exit_commands) if config else ()

    def _graph_for(self, node: str) -> Optional[DialogueGraph]:
        if isinstance(self.graphs, DialogueGraph):
            return self.graphs if self.graphs.has_node(node) else None
        return self.graphs.graph_for(node)

    def has_node(self, node: str) -> bool:
        return self._graph_for(node) is not None

    def start(self, node: str) -> Session:
        """
        Start a session at a node and run it to its first step.

        The first result is available as session.last.
        """
        graph = self._graph_for(node)
        if graph is None:
            raise UnknownNode(node)

        session = Session(
            graph,
            node,
            self.evaluator,
            auto_continue_text=self.auto_continue_text,
            max_silent_steps=self.max_silent_steps,
            exit_commands=self.exit_commands,
        )
        session.advance()
        return session
