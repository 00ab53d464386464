"""
Script instances - live game, player and map objects.

Fields declared with define() live in a pydantic model per archetype and
are exposed as plain attributes (player.num_gems += 1).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar, Hashable, Iterable, Optional

from storyvm.core.errors import BridgeError, HandlerChainError
from storykit.scripting.archetypes import Archetype, StateModel
from storykit.scripting.context import HandlerContext, SetupContext
from storykit.world.objects import MapObject, MapObjectTable

if TYPE_CHECKING:
    from storykit.scripting.environment import ScriptEnvironment

logger = logging.getLogger(__name__)


class ScriptInstance:
    """
    Base for live archetype instances.

    Construction runs the archetype's setup blocks, in registration order,
    before any event can fire for the instance.
    """

    archetype: ClassVar[Archetype]

    def __init__(self, env: ScriptEnvironment, instance_id: Hashable):
        descriptor = env.registry.descriptor(self.archetype)
        object.__setattr__(self, "env", env)
        object.__setattr__(self, "id", instance_id)
        object.__setattr__(self, "state", descriptor.state_model()())
        self._run_setup()

    @property
    def key(self) -> tuple[str, Hashable]:
        return (self.archetype.value, self.id)

    @property
    def label(self) -> str:
        return f"{self.archetype.title}#{self.id}"

    def __repr__(self) -> str:
        return f"<{self.label}>"

    def __getattr__(self, name: str) -> Any:
        state = self.__dict__.get("state")
        if state is not None and name in type(state).model_fields:
            return getattr(state, name)
        raise AttributeError(f"{type(self).__name__} has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        state = self.__dict__.get("state")
        if state is not None and name in type(state).model_fields:
            setattr(state, name, value)
        else:
            object.__setattr__(self, name, value)

    def _run_setup(self) -> None:
        registry = self.env.registry
        registry.drop_instance(self.key)
        registry.begin_setup(self.key)
        try:
            for block in registry.descriptor(self.archetype).setup_blocks:
                block(SetupContext(self))
        finally:
            registry.end_setup(self.key)

    def context(self, event: str, args: tuple[Any, ...] = ()) -> HandlerContext:
        return HandlerContext(self, event, args)

    def trigger(self, event: str, *args: Any) -> None:
        """Fire an event for this instance."""
        self.env.dispatcher.trigger(self, event, *args)

    def fields(self) -> dict[str, Any]:
        """Current field values."""
        return self.state.model_dump()


class PlayerInstance(ScriptInstance):
    """A player taking part in the game."""

    archetype = Archetype.PLAYER

    def __init__(self, env: ScriptEnvironment, instance_id: Hashable, game: GameInstance):
        object.__setattr__(self, "game", game)
        super().__init__(env, instance_id)

    @property
    def map(self) -> Optional[MapInstance]:
        return self.game.map

    def collect(self, obj: Any) -> None:
        """Fire "collect" with the collected map object."""
        self.trigger("collect", obj)


class MapInstance(ScriptInstance):
    """A loaded map and the scriptable objects on it."""

    archetype = Archetype.MAP

    def __init__(self, env: ScriptEnvironment, instance_id: Hashable, filename: str, game: GameInstance):
        object.__setattr__(self, "filename", filename)
        object.__setattr__(self, "game", game)
        object.__setattr__(self, "objects", MapObjectTable())
        super().__init__(env, instance_id)

    def show(self, object_name: str) -> None:
        self.update_object(object_name, visible=True)

    def hide(self, object_name: str) -> None:
        self.update_object(object_name, visible=False)

    def make_collectable(self, object_name: str) -> None:
        self.update_object(object_name, collectable=True)

    def update_object(self, object_name: str, **flags: Any) -> None:
        self.env.bridge.update_map_object(self.id, object_name, flags)


class GameInstance(ScriptInstance):
    """The running game: players, maps and the current map."""

    archetype = Archetype.GAME

    def __init__(self, env: ScriptEnvironment, instance_id: Hashable = "game"):
        object.__setattr__(self, "players", [])
        object.__setattr__(self, "maps", {})
        object.__setattr__(self, "map", None)
        super().__init__(env, instance_id)

    def new_game(self, player_ids: Iterable[Hashable]) -> None:
        """Create the players (running their setup), then fire "new_game"."""
        self.players = [PlayerInstance(self.env, pid, self) for pid in player_ids]
        logger.info(f"New game with {len(self.players)} player(s)")
        self.trigger("new_game")

    def enter_map(self, game_map: Optional[MapInstance]) -> None:
        """
        Fire "exit" on the current map, switch, then fire "enter" on the new one.

        The switch happens even when an exit handler fails; that failure is
        raised once "enter" has run.
        """
        exit_error: Optional[HandlerChainError] = None
        if self.map is not None:
            try:
                self.map.trigger("exit")
            except HandlerChainError as e:
                exit_error = e

        self.map = game_map
        if game_map is not None:
            self.env.bridge.announce_map(game_map)
            game_map.trigger("enter")

        if exit_error is not None:
            raise exit_error

    def find_or_create_map(
        self,
        map_id: Hashable,
        filename: str,
        objects: Iterable[MapObject] = (),
    ) -> MapInstance:
        """
        Return the cached map, creating it on first use.

        A new map gets its objects before "load" fires.
        """
        game_map = self.maps.get(map_id)
        if game_map is None:
            game_map = MapInstance(self.env, map_id, filename, self)
            for obj in objects:
                game_map.objects.add(obj)
            self.maps[map_id] = game_map
            game_map.trigger("load")
        return game_map

    def player_by_id(self, player_id: Hashable) -> Optional[PlayerInstance]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def require_player(self, player_id: Hashable) -> PlayerInstance:
        player = self.player_by_id(player_id)
        if player is None:
            raise BridgeError(f"player not found: id={player_id!r}")
        return player

    def dialogue(self, node: str) -> None:
        self.env.bridge.start_dialogue(node)
