"""
Archetypes - the fixed entity kinds scripts customize (game, player, map).

Scripts never create classes. Each archetype has one descriptor (field
defaults, declared events, setup blocks) that successive scripts extend
through an ArchetypeBuilder:

    player.define(num_gems=0)

    @player.on_collect("gems")
    def count_gem(ctx, obj):
        ctx.instance.num_gems += 1

    @player.setup
    def greet(ctx):
        ctx.on("spawn", lambda ctx: ctx.say("Hello"))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, create_model

if TYPE_CHECKING:
    from storykit.scripting.registry import EventRegistry

Handler = Callable[..., None]
SetupBlock = Callable[..., None]

ANY = "any"


class Archetype(Enum):
    """Entity kinds that own handlers and setup blocks."""
    GAME = "game"
    PLAYER = "player"
    MAP = "map"

    @property
    def title(self) -> str:
        return self.value.capitalize()


DEFAULT_EVENTS: dict[Archetype, frozenset[str]] = {
    Archetype.GAME: frozenset({"new_game", "load", "quit"}),
    Archetype.PLAYER: frozenset({"create", "spawn", "collect"}),
    Archetype.MAP: frozenset({"load", "enter", "exit"}),
}


def _field_type(default: Any) -> Any:
    if isinstance(default, bool):
        return bool
    if isinstance(default, (int, float)):
        return Union[int, float]
    if default is None:
        return Any
    return type(default)


class StateModel(BaseModel):
    """Base for generated per-archetype field models."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")


@dataclass
class ArchetypeDescriptor:
    """
    Everything scripts declared about one archetype.

    Attributes:
        archetype: Which entity kind this describes
        fields: Field name -> default value
        events: Event names handlers may be registered for
        setup_blocks: Run once per instance at construction, in order
    """
    archetype: Archetype
    fields: dict[str, Any] = field(default_factory=dict)
    events: set[str] = field(default_factory=set)
    setup_blocks: list[SetupBlock] = field(default_factory=list)

    _model: Optional[type[StateModel]] = field(default=None, repr=False, compare=False)

    def define(self, **defaults: Any) -> None:
        self.fields.update(defaults)
        self._model = None

    def state_model(self) -> type[StateModel]:
        """Pydantic model holding this archetype's fields."""
        if self._model is None:
            definitions = {
                name: (_field_type(default), default)
                for name, default in self.fields.items()
            }
            self._model = create_model(
                f"{self.archetype.title}State",
                __base__=StateModel,
                **definitions,
            )
        return self._model


class ArchetypeBuilder:
    """
    Script-facing DSL for one archetype.

    Calling the builder with a function runs it with the builder as its
    argument, so related declarations can be grouped:

        @game
        def customize(g):
            g.define(shared_score=0)
            g.on_load(lambda ctx: ctx.say("Start"))
    """

    def __init__(self, descriptor: ArchetypeDescriptor, registry: EventRegistry):
        self.descriptor = descriptor
        self.registry = registry
        self._nested: dict[Archetype, ArchetypeBuilder] = {}

    @property
    def archetype(self) -> Archetype:
        return self.descriptor.archetype

    def __call__(self, block: Callable[[ArchetypeBuilder], Any]) -> Callable:
        block(self)
        return block

    def __repr__(self) -> str:
        return f"<{self.archetype.title} builder>"

    def nest(self, builder: ArchetypeBuilder) -> None:
        """Expose another builder as an attribute (game.player, game.map)."""
        self._nested[builder.archetype] = builder

    def __getattr__(self, name: str) -> ArchetypeBuilder:
        nested = self.__dict__.get("_nested", {})
        for archetype, builder in nested.items():
            if archetype.value == name:
                return builder
        raise AttributeError(name)

    # --- Declarations ---

    def define(self, **defaults: Any) -> ArchetypeBuilder:
        """Add fields with default values to every instance."""
        self.descriptor.define(**defaults)
        return self

    def events(self, *names: str) -> ArchetypeBuilder:
        """Declare additional event names."""
        self.registry.declare_events(self.archetype, *names)
        return self

    def setup(self, block: SetupBlock) -> SetupBlock:
        """Register a block run once per instance at construction."""
        self.registry.add_setup(self.archetype, block)
        return block

    def on(self, event: str, handler: Optional[Handler] = None, match: Optional[str] = None):
        """
        Register a class-level handler. Usable directly or as a decorator.

        Args:
            event: Event name
            handler: Callable(ctx, *args)
            match: Only fire when the first event argument has this name
        """
        def register(func: Handler) -> Handler:
            self.registry.register(self.archetype, event, func, match=match)
            return func

        if handler is not None:
            return register(handler)
        return register

    # --- Shorthands ---

    def on_collect(self, object_name: str, handler: Optional[Handler] = None):
        """Handle "collect" for objects with this name, or "any"."""
        match = None if object_name == ANY else object_name
        return self.on("collect", handler, match=match)

    def on_load(self, handler: Optional[Handler] = None):
        return self.on("load", handler)

    def on_enter(self, handler: Optional[Handler] = None):
        return self.on("enter", handler)

    def on_exit(self, handler: Optional[Handler] = None):
        return self.on("exit", handler)

    def on_new_game(self, handler: Optional[Handler] = None):
        return self.on("new_game", handler)

    def on_spawn(self, handler: Optional[Handler] = None):
        return self.on("spawn", handler)
