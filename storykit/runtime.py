"""
Story runtime - wires the dialogue and script layers together.

The StoryRuntime is the host's entry point. It owns:
- The event bus the host listens on
- The shared variable store and expression evaluator
- The dialogue library and manager
- The script environment and its bridge
- Sound playback
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Hashable, Iterable, Mapping, Optional

from storyvm.audio.manager import SoundPlayer
from storyvm.core.config import RuntimeConfig, load_config
from storyvm.core.errors import LoadError
from storyvm.core.events import EventBus
from storyvm.core.expressions import Evaluator, Predicate
from storyvm.core.variables import Scalar, VariableStore
from storykit.dialogue.library import DialogueLibrary
from storykit.dialogue.manager import DialogueManager
from storykit.scripting.bridge import ScriptBridge
from storykit.scripting.environment import ScriptEnvironment
from storykit.scripting.instances import GameInstance

logger = logging.getLogger(__name__)

START_TAG = "on_load"


class StoryRuntime:
    """
    Main runtime class.

    Usage:
        runtime = StoryRuntime.from_file("game/config.json")
        runtime.load()
        runtime.new_game(player_ids=[1])
        step = runtime.dialogue.advance()

    Predicates passed in are callable from dialogue conditions; notAlone()
    is always available and is true while more than one player is in the game.
    """

    def __init__(
        self,
        config: Optional[RuntimeConfig] = None,
        predicates: Optional[Mapping[str, Predicate]] = None,
    ):
        self.config = config or RuntimeConfig()

        # Shared state
        self.events = EventBus()
        self.variables = VariableStore()
        self.evaluator = Evaluator(self.variables, {"notAlone": self._not_alone, **(predicates or {})})

        # Dialogue
        self.library = DialogueLibrary(self.config.commands)
        self.dialogue = DialogueManager(self.events, self.library, self.evaluator, self.config)

        # Scripts
        self.sound = SoundPlayer(self.events)
        self.bridge = ScriptBridge(self.events, self.dialogue, self.sound)
        self.scripts = ScriptEnvironment(self.events, self.variables, self.bridge, self.config)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        predicates: Optional[Mapping[str, Predicate]] = None,
    ) -> StoryRuntime:
        """Build a runtime from a JSON config; relative paths resolve against its directory."""
        path = Path(path)
        return cls(load_config(path).resolve(path.parent), predicates)

    @property
    def game(self) -> Optional[GameInstance]:
        return self.scripts.game

    @property
    def errors(self) -> list[LoadError]:
        """Every asset and script failure recorded so far."""
        return [*self.library.errors, *self.scripts.errors]

    def load(self) -> int:
        """
        Load dialogue assets, then script sources.

        Returns:
            Number of failures (each already logged)
        """
        self.library.load_directory(self.config.dialogue_dir)
        self.scripts.load_scripts(self.config.script_paths)

        failures = len(self.errors)
        if failures:
            logger.error(f"Runtime loaded with {failures} failure(s)")
        else:
            logger.info("Runtime loaded")
        return failures

    def new_game(self, player_ids: Iterable[Hashable]) -> GameInstance:
        """
        Start the game and, unless a handler already opened a dialogue,
        run the first "on_load" tagged node. Without tagged nodes the
        configured start dialogue is shown instead.
        """
        game = self.scripts.start_game(player_ids)
        if self.dialogue.is_active():
            return game

        if self.library.nodes_with_tag(START_TAG):
            self.dialogue.run_tagged(START_TAG)
        elif not self.dialogue.start_optional(self.config.start_dialogue):
            logger.debug(f"No start dialogue '{self.config.start_dialogue}'")
        return game

    def restore(self, snapshot: dict[str, Scalar]) -> None:
        """
        Restore saved variables, then fire "load" on the running game.
        """
        self.variables.restore(snapshot)
        logger.info(f"Restored {len(snapshot)} variable(s)")
        if self.game is not None:
            self.game.trigger("load")

    def _not_alone(self) -> bool:
        return self.game is not None and len(self.game.players) > 1
