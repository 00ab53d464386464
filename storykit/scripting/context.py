"""
Handler contexts.

Handlers and setup blocks never run with an implicit receiver; they get
an explicit context bound to the firing instance.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from storykit.scripting.archetypes import ANY, Handler

if TYPE_CHECKING:
    from storyvm.core.variables import VariableStore
    from storykit.scripting.bridge import ScriptBridge
    from storykit.scripting.instances import GameInstance, MapInstance, PlayerInstance, ScriptInstance


class HandlerContext:
    """
    What a handler sees.

    Attributes:
        instance: The instance the event fired for
        event: Event name
        args: Event arguments
    """

    def __init__(self, instance: ScriptInstance, event: str, args: tuple[Any, ...] = ()):
        self.instance = instance
        self.event = event
        self.args = args

    def __repr__(self) -> str:
        return f"<HandlerContext {self.instance.label}.{self.event}>"

    @property
    def bridge(self) -> ScriptBridge:
        return self.instance.env.bridge

    @property
    def game(self) -> Optional[GameInstance]:
        return self.instance.env.game

    @property
    def map(self) -> Optional[MapInstance]:
        return self.bridge.current_map()

    @property
    def players(self) -> list[PlayerInstance]:
        game = self.game
        return self.bridge.players_of(game) if game else []

    @property
    def variables(self) -> VariableStore:
        return self.instance.env.variables

    def say(self, node: str) -> None:
        """Start a dialogue at a node."""
        self.bridge.start_dialogue(node)

    def play_sound(self, path: str) -> None:
        self.bridge.play_sound(path)

    def trigger(self, event: str, *args: Any) -> None:
        """Fire another event on the same instance."""
        self.instance.trigger(event, *args)


class SetupContext(HandlerContext):
    """Context for setup blocks; can register instance-level handlers."""

    def __init__(self, instance: ScriptInstance):
        super().__init__(instance, "setup")

    def on(self, event: str, handler: Optional[Handler] = None, match: Optional[str] = None):
        """Register a handler for this instance only. Usable as a decorator."""
        def register(func: Handler) -> Handler:
            self.instance.env.registry.register(
                self.instance.archetype, event, func,
                instance=self.instance.key, match=match,
            )
            return func

        if handler is not None:
            return register(handler)
        return register

    def on_collect(self, object_name: str, handler: Optional[Handler] = None):
        match = None if object_name == ANY else object_name
        return self.on("collect", handler, match=match)
