"""
Dialogue manager - owns the live session and reports it to the host.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Callable, Optional

from storyvm.core.config import RuntimeConfig
from storyvm.core.events import DialogueEvent, EventBus
from storyvm.core.expressions import Evaluator
from storykit.dialogue.interpreter import (
    AwaitingChoice,
    CommandCall,
    DialogueInterpreter,
    Displayed,
    Finished,
    Session,
    StepResult,
)
from storykit.dialogue.library import DialogueLibrary

logger = logging.getLogger(__name__)

ONCE_TAG = "once"


class DialogueUi(Enum):
    """How the host presents a session."""
    MOVEMENT_DISABLED = auto()  # Modal: player input goes to the dialogue
    NOTICE = auto()             # Non-blocking banner


class DialogueManager:
    """
    Runs dialogue sessions for the host.

    Handles:
    - Starting sessions by node name (at most one live session)
    - Forwarding player input to the session
    - Publishing each step on the event bus
    - "once" tagged nodes that should only ever run one time
    """

    def __init__(
        self,
        events: EventBus,
        library: DialogueLibrary,
        evaluator: Evaluator,
        config: Optional[RuntimeConfig] = None,
    ):
        self.events = events
        self.library = library
        self.interpreter = DialogueInterpreter(library, evaluator, config)

        # Current state
        self._session: Optional[Session] = None
        self._ui: Optional[DialogueUi] = None
        self._nodes_run: set[str] = set()

        # Callbacks
        self._on_dialogue_end: Optional[Callable[[Finished], None]] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def ui(self) -> Optional[DialogueUi]:
        return self._ui if self.is_active() else None

    def is_active(self) -> bool:
        """Check if a session is currently running."""
        return self._session is not None and not self._session.is_finished

    @property
    def is_in_dialogue(self) -> bool:
        """True while a modal session holds player input."""
        return self.is_active() and self._ui == DialogueUi.MOVEMENT_DISABLED

    def start(self, node: str, ui: DialogueUi = DialogueUi.MOVEMENT_DISABLED) -> StepResult:
        """
        Start a session at a node, replacing any live session.

        Returns:
            The first step of the new session.

        Raises:
            UnknownNode: no loaded graph defines the node
        """
        if self.is_active():
            logger.info(f"Replacing dialogue at '{self._session.cursor.node}' with '{node}'")
            self.abort()

        self._session = self.interpreter.start(node)
        self._ui = ui
        self._nodes_run.add(node)

        self.events.publish(
            DialogueEvent.SESSION_STARTED,
            node=node,
            graph=self._session.graph.name,
            ui=ui,
        )
        return self._report(self._session.last)

    def start_optional(self, node: str, ui: DialogueUi = DialogueUi.MOVEMENT_DISABLED) -> bool:
        """Start a session only if the node exists."""
        if not self.interpreter.has_node(node):
            return False
        self.start(node, ui)
        return True

    def run_tagged(self, tag: str, ui: DialogueUi = DialogueUi.MOVEMENT_DISABLED) -> Optional[StepResult]:
        """
        Start the first node carrying a meta tag (e.g. "on_load").

        Nodes also tagged "once" are skipped after they have run.
        """
        for node in self.library.nodes_with_tag(tag):
            graph = self.library.graph_for(node)
            if ONCE_TAG in graph.tags(node) and node in self._nodes_run:
                continue
            return self.start(node, ui)
        return None

    def advance(self, choice: Optional[int] = None) -> StepResult:
        """
        Forward player input (or a command acknowledgement) to the session.

        Raises:
            InvalidChoice: out-of-range selection, session unaffected
        """
        if self._session is None:
            return Finished()
        if self._session.is_finished:
            return self._session.last

        return self._report(self._session.advance(choice))

    def abort(self) -> None:
        """Discard the live session."""
        if self.is_active():
            self._report(self._session.abort())

    def on_dialogue_end(self, callback: Callable[[Finished], None]) -> None:
        """Set callback for when a session ends."""
        self._on_dialogue_end = callback

    def _report(self, step: StepResult) -> StepResult:
        if isinstance(step, Displayed):
            self.events.publish(DialogueEvent.TEXT_DISPLAYED, text=step.text, line_break=step.line_break)
        elif isinstance(step, AwaitingChoice):
            self.events.publish(DialogueEvent.CHOICES_PRESENTED, labels=list(step.labels))
        elif isinstance(step, CommandCall):
            self.events.publish(DialogueEvent.COMMAND_ISSUED, name=step.name, args=list(step.args))
        elif isinstance(step, Finished):
            self.events.publish(DialogueEvent.SESSION_FINISHED, reason=step.reason)
            if self._on_dialogue_end:
                self._on_dialogue_end(step)
        return step
