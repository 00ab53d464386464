"""
Script bridge - the fixed call surface between handlers and host state.

Every call is synchronous and side-effecting; nothing returns an
awaitable. Handlers reach the bridge through their context
(ctx.bridge, ctx.say, ctx.map.show, ...).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Hashable, Optional

from storyvm.core.errors import BridgeError
from storyvm.core.events import EventBus, WorldEvent

if TYPE_CHECKING:
    from storyvm.audio.manager import SoundPlayer
    from storykit.dialogue.manager import DialogueManager
    from storykit.scripting.instances import GameInstance, MapInstance, PlayerInstance
    from storykit.world.objects import MapObject

logger = logging.getLogger(__name__)


class ScriptBridge:
    """
    Host services available to scripts.

    Args:
        events: Bus for host notifications
        dialogue: Manager that runs dialogue sessions
        sound: Sound effect player (optional; sounds are dropped without one)
    """

    def __init__(
        self,
        events: EventBus,
        dialogue: Optional[DialogueManager] = None,
        sound: Optional[SoundPlayer] = None,
    ):
        self.events = events
        self.dialogue = dialogue
        self.sound = sound
        self.game: Optional[GameInstance] = None

    def attach(self, game: GameInstance) -> None:
        """Bind the running game."""
        self.game = game

    def start_dialogue(self, node_name: str) -> None:
        """Start a dialogue session at a node."""
        if self.dialogue is None:
            raise BridgeError("no dialogue manager attached")
        self.dialogue.start(str(node_name))

    def update_map_object(self, map_id: Hashable, object_name: str, flags: dict[str, Any]) -> list[MapObject]:
        """
        Update every object with a name on a map.

        Raises:
            BridgeError: unknown map or flag
        """
        game_map = self._map(map_id)
        updated = game_map.objects.update(str(object_name), dict(flags))
        if not updated:
            logger.debug(f"No objects named '{object_name}' on map {map_id!r}")
        self.events.publish(
            WorldEvent.MAP_OBJECT_UPDATED,
            map_id=map_id,
            name=str(object_name),
            flags=dict(flags),
            count=len(updated),
        )
        return updated

    def current_map(self) -> Optional[MapInstance]:
        return self.game.map if self.game else None

    def players_of(self, game: GameInstance) -> list[PlayerInstance]:
        return list(game.players)

    def play_sound(self, path: str) -> None:
        if self.sound is None:
            logger.debug(f"No sound player; dropping {path}")
            return
        self.sound.play(path)

    def announce_map(self, game_map: MapInstance) -> None:
        """Tell the host the current map changed."""
        self.events.publish(WorldEvent.MAP_ENTERED, map_id=game_map.id, filename=game_map.filename)

    def _map(self, map_id: Hashable) -> MapInstance:
        if self.game is None:
            raise BridgeError("no game is running")
        game_map = self.game.maps.get(map_id)
        if game_map is None:
            raise BridgeError(f"unknown map: {map_id!r}")
        return game_map
