"""
Script environment - loads script sources and starts the game.

Scripts are plain Python files executed in a fixed order (a shared
prelude, then the game's startup script). Each runs with these globals:

- game, player, map: ArchetypeBuilders (game.player / game.map also work)
- bridge: the ScriptBridge
- variables: the shared VariableStore
- ANY: wildcard object name for on_collect

Later scripts extend what earlier ones declared.
"""

from __future__ import annotations

import logging
import runpy
from pathlib import Path
from typing import Any, Hashable, Iterable, Optional

from storyvm.core.config import RuntimeConfig
from storyvm.core.errors import ScriptLoadError
from storyvm.core.events import EventBus, ScriptEvent
from storyvm.core.variables import VariableStore
from storykit.scripting.archetypes import ANY, Archetype, ArchetypeBuilder
from storykit.scripting.bridge import ScriptBridge
from storykit.scripting.dispatcher import EventDispatcher
from storykit.scripting.instances import GameInstance
from storykit.scripting.registry import EventRegistry

logger = logging.getLogger(__name__)


class ScriptEnvironment:
    """
    Owns the registry, dispatcher and live game for the script layer.

    Usage:
        env = ScriptEnvironment(bus, variables, bridge, config)
        env.load_scripts(config.script_paths)
        game = env.start_game(player_ids=[1, 2])
        game.players[0].collect(gem)
    """

    def __init__(
        self,
        events: EventBus,
        variables: VariableStore,
        bridge: ScriptBridge,
        config: Optional[RuntimeConfig] = None,
    ):
        self.events = events
        self.variables = variables
        self.bridge = bridge

        self.registry = EventRegistry(config.extra_events if config else None)
        self.dispatcher = EventDispatcher(
            self.registry,
            events,
            raise_errors=config.raise_handler_errors if config else True,
        )

        self.builders: dict[Archetype, ArchetypeBuilder] = {
            archetype: ArchetypeBuilder(self.registry.descriptor(archetype), self.registry)
            for archetype in Archetype
        }
        self.builders[Archetype.GAME].nest(self.builders[Archetype.PLAYER])
        self.builders[Archetype.GAME].nest(self.builders[Archetype.MAP])

        self.game: Optional[GameInstance] = None
        self.loaded: list[Path] = []
        self.errors: list[ScriptLoadError] = []

    def builder(self, archetype: Archetype) -> ArchetypeBuilder:
        return self.builders[archetype]

    def script_globals(self) -> dict[str, Any]:
        return {
            "game": self.builders[Archetype.GAME],
            "player": self.builders[Archetype.PLAYER],
            "map": self.builders[Archetype.MAP],
            "bridge": self.bridge,
            "variables": self.variables,
            "ANY": ANY,
        }

    def load_script(self, path: str | Path) -> bool:
        """
        Execute one script source.

        A failing script is logged and recorded; it does not stop later
        scripts from loading.
        """
        path = Path(path)
        try:
            if not path.exists():
                raise ScriptLoadError(path.name, "script not found")
            if self.registry.frozen:
                raise ScriptLoadError(path.name, "scripts cannot be loaded after the game has started")
            runpy.run_path(
                str(path),
                init_globals=self.script_globals(),
                run_name=f"storykit.scripts.{path.stem}",
            )
        except ScriptLoadError as e:
            logger.error(f"Failed to load script {path}: {e}")
            self.errors.append(e)
            return False
        except Exception as e:
            error = ScriptLoadError(path.name, f"{type(e).__name__}: {e}")
            logger.exception(f"Failed to load script {path}")
            self.errors.append(error)
            return False

        self.loaded.append(path)
        logger.info(f"Loaded script {path}")
        return True

    def load_scripts(self, paths: Iterable[str | Path]) -> int:
        """Load scripts in order. Returns the number that loaded."""
        count = sum(1 for path in paths if self.load_script(path))
        self.events.publish(
            ScriptEvent.SCRIPTS_LOADED,
            loaded=[str(p) for p in self.loaded],
            failed=len(self.errors),
        )
        return count

    def start_game(self, player_ids: Iterable[Hashable]) -> GameInstance:
        """
        Freeze the registry, create the game and its players, fire "new_game".
        """
        self.registry.freeze()
        self.game = GameInstance(self)
        self.bridge.attach(self.game)
        self.events.publish(ScriptEvent.GAME_STARTED, game=self.game)
        self.game.new_game(player_ids)
        return self.game
