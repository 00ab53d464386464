"""
Event registry - handler chains per archetype and per instance.

Class-level handlers are registered while scripts load and the registry
is frozen when the game starts. Instance-level handlers are only accepted
from the setup blocks of an instance under construction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Hashable, Iterable, Optional

from storyvm.core.errors import RegistrationError, UnknownEvent
from storykit.scripting.archetypes import (
    DEFAULT_EVENTS,
    Archetype,
    ArchetypeDescriptor,
    Handler,
    SetupBlock,
)

logger = logging.getLogger(__name__)

InstanceKey = tuple[str, Hashable]


@dataclass(frozen=True)
class HandlerEntry:
    """
    A registered handler.

    Attributes:
        event: Event name
        handler: Callable(ctx, *args)
        match: When set, only fire if the first event argument's name equals it
        instance: Owning instance key, or None for class scope
    """
    event: str
    handler: Handler
    match: Optional[str] = None
    instance: Optional[InstanceKey] = None

    @property
    def name(self) -> str:
        return getattr(self.handler, "__qualname__", repr(self.handler))

    @property
    def scope(self) -> str:
        return "class" if self.instance is None else "instance"

    def matches(self, args: tuple[Any, ...]) -> bool:
        if self.match is None:
            return True
        if not args:
            return False
        subject = args[0]
        return str(getattr(subject, "name", subject)) == self.match


class EventRegistry:
    """
    Process-wide handler tables for all archetypes.

    Usage:
        registry = EventRegistry()
        registry.register(Archetype.PLAYER, "collect", on_gem, match="gem")
        registry.freeze()
        registry.handlers_for(Archetype.PLAYER, ("player", 1), "collect")
    """

    def __init__(self, extra_events: Optional[dict[str, Iterable[str]]] = None):
        self.descriptors: dict[Archetype, ArchetypeDescriptor] = {
            archetype: ArchetypeDescriptor(archetype, events=set(events))
            for archetype, events in DEFAULT_EVENTS.items()
        }
        for name, events in (extra_events or {}).items():
            self.declare_events(Archetype(name), *events)

        self._class_handlers: dict[Archetype, dict[str, list[HandlerEntry]]] = {
            archetype: {} for archetype in Archetype
        }
        self._instance_handlers: dict[InstanceKey, dict[str, list[HandlerEntry]]] = {}

        self._frozen = False
        self._dispatch_depth = 0
        self._in_setup: set[InstanceKey] = set()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def descriptor(self, archetype: Archetype) -> ArchetypeDescriptor:
        return self.descriptors[archetype]

    def declare_events(self, archetype: Archetype, *names: str) -> None:
        self._check_class_mutation(archetype, "declare events")
        self.descriptors[archetype].events.update(names)

    def is_declared(self, archetype: Archetype, event: str) -> bool:
        return event in self.descriptors[archetype].events

    def add_setup(self, archetype: Archetype, block: SetupBlock) -> None:
        self._check_class_mutation(archetype, "add setup blocks")
        self.descriptors[archetype].setup_blocks.append(block)

    def register(
        self,
        archetype: Archetype,
        event: str,
        handler: Handler,
        instance: Optional[InstanceKey] = None,
        match: Optional[str] = None,
    ) -> HandlerEntry:
        """
        Register a handler.

        Args:
            archetype: Entity kind the event belongs to
            event: Declared event name
            handler: Callable(ctx, *args)
            instance: Instance key for instance scope, None for class scope
            match: Object-name filter for the first event argument

        Raises:
            UnknownEvent: the archetype does not declare the event
            RegistrationError: registration is not allowed right now
        """
        if not callable(handler):
            raise RegistrationError(archetype.value, f"handler for '{event}' is not callable")
        if not self.is_declared(archetype, event):
            raise UnknownEvent(archetype.value, event)

        entry = HandlerEntry(event, handler, match, instance)

        if instance is None:
            self._check_class_mutation(archetype, f"register '{event}'")
            self._class_handlers[archetype].setdefault(event, []).append(entry)
        else:
            if instance not in self._in_setup:
                raise RegistrationError(
                    archetype.value,
                    f"instance handlers for {instance} can only be registered during setup",
                )
            self._instance_handlers.setdefault(instance, {}).setdefault(event, []).append(entry)

        logger.debug(f"Registered {entry.scope} handler {entry.name} for {archetype.value}.{event}")
        return entry

    def class_handlers(self, archetype: Archetype, event: str) -> list[HandlerEntry]:
        return list(self._class_handlers[archetype].get(event, ()))

    def instance_handlers(self, instance: InstanceKey, event: str) -> list[HandlerEntry]:
        return list(self._instance_handlers.get(instance, {}).get(event, ()))

    def handlers_for(self, archetype: Archetype, instance: InstanceKey, event: str) -> list[HandlerEntry]:
        """Instance handlers first, then class handlers, each in registration order."""
        return self.instance_handlers(instance, event) + self.class_handlers(archetype, event)

    def drop_instance(self, instance: InstanceKey) -> None:
        """Forget an instance's handlers (the key is about to be rebuilt)."""
        if self._instance_handlers.pop(instance, None) is not None:
            logger.debug(f"Dropped instance handlers for {instance}")

    def freeze(self) -> None:
        """Stop accepting class-level changes (called at game start)."""
        self._frozen = True

    # --- Guards used by instances and the dispatcher ---

    def begin_setup(self, instance: InstanceKey) -> None:
        self._in_setup.add(instance)

    def end_setup(self, instance: InstanceKey) -> None:
        self._in_setup.discard(instance)

    def begin_dispatch(self) -> None:
        self._dispatch_depth += 1

    def end_dispatch(self) -> None:
        self._dispatch_depth -= 1

    def _check_class_mutation(self, archetype: Archetype, action: str) -> None:
        if self._frozen:
            raise RegistrationError(archetype.value, f"cannot {action} after the game has started")
        if self._dispatch_depth:
            raise RegistrationError(archetype.value, f"cannot {action} while an event is dispatching")
