"""
Typed event bus for host-visible notifications.

The dialogue runtime and the script bridge publish here so the host
(renderer, UI, audio) can react without the core knowing about it.
Event types are Enums to keep names out of string soup.

Usage:
    bus = EventBus()
    bus.subscribe(DialogueEvent.TEXT_DISPLAYED, on_text)
    bus.publish(DialogueEvent.TEXT_DISPLAYED, text="Hello")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Union
from weakref import WeakMethod, ref

logger = logging.getLogger(__name__)


class DialogueEvent(Enum):
    """Dialogue session events."""
    SESSION_STARTED = auto()
    TEXT_DISPLAYED = auto()
    CHOICES_PRESENTED = auto()
    COMMAND_ISSUED = auto()
    SESSION_FINISHED = auto()


class ScriptEvent(Enum):
    """Script loading and dispatch events."""
    SCRIPTS_LOADED = auto()
    GAME_STARTED = auto()
    HANDLER_FAILED = auto()


class WorldEvent(Enum):
    """Host state changes requested through the script bridge."""
    MAP_OBJECT_UPDATED = auto()
    MAP_ENTERED = auto()
    SOUND_PLAYED = auto()


@dataclass
class Event:
    """
    Event data container.

    Attributes:
        type: The event type (Enum member)
        data: Event-specific payload
        consumed: Whether a subscriber stopped propagation
    """
    type: Enum
    data: dict[str, Any] = field(default_factory=dict)
    consumed: bool = False

    def consume(self) -> None:
        """Stop delivery to lower-priority subscribers."""
        self.consumed = True

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]


EventHandler = Callable[[Event], None]


@dataclass
class _Subscription:
    priority: int
    target: Union[EventHandler, ref, WeakMethod]
    one_shot: bool = False
    weak: bool = False

    def resolve(self) -> EventHandler | None:
        if self.weak:
            return self.target()
        return self.target


class EventBus:
    """
    Publish/subscribe hub.

    Features:
    - Priority ordering (higher first, ties keep subscription order)
    - Weak references so dropped listeners clean themselves up
    - One-shot subscriptions
    - Consumption stops propagation
    - Events published while dispatching are queued, not nested
    """

    def __init__(self):
        self._subscriptions: dict[Enum, list[_Subscription]] = {}
        self._queue: list[Event] = []
        self._dispatching = False

    def subscribe(
        self,
        event_type: Enum,
        handler: EventHandler,
        priority: int = 0,
        one_shot: bool = False,
        weak: bool = True,
    ) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: The event type to listen for
            handler: Callback receiving the Event
            priority: Higher priority handlers are called first
            one_shot: Remove the handler after its first call
            weak: Hold the handler by weak reference
        """
        if weak:
            target = WeakMethod(handler) if hasattr(handler, "__self__") else ref(handler)
        else:
            target = handler

        subscription = _Subscription(priority, target, one_shot, weak)
        subscriptions = self._subscriptions.setdefault(event_type, [])

        index = len(subscriptions)
        for i, existing in enumerate(subscriptions):
            if priority > existing.priority:
                index = i
                break
        subscriptions.insert(index, subscription)

    def unsubscribe(self, event_type: Enum, handler: EventHandler) -> None:
        subscriptions = self._subscriptions.get(event_type)
        if not subscriptions:
            return
        self._subscriptions[event_type] = [
            s for s in subscriptions if s.resolve() != handler
        ]

    def publish(self, event_type: Enum, **data: Any) -> Event:
        """
        Publish an event.

        Returns:
            The Event object (check .consumed to see if it was handled)
        """
        event = Event(type=event_type, data=data)
        if self._dispatching:
            self._queue.append(event)
        else:
            self._dispatch(event)
        return event

    def clear(self, event_type: Enum | None = None) -> None:
        if event_type is None:
            self._subscriptions.clear()
        else:
            self._subscriptions.pop(event_type, None)

    def _dispatch(self, event: Event) -> None:
        subscriptions = self._subscriptions.get(event.type)
        if not subscriptions:
            return

        self._dispatching = True
        dead: list[_Subscription] = []
        try:
            for subscription in list(subscriptions):
                handler = subscription.resolve()
                if handler is None:
                    dead.append(subscription)
                    continue

                try:
                    handler(event)
                except Exception:
                    logger.exception("Error in subscriber for %s", event.type)

                if subscription.one_shot:
                    dead.append(subscription)
                if event.consumed:
                    break
        finally:
            for subscription in dead:
                if subscription in subscriptions:
                    subscriptions.remove(subscription)
            self._dispatching = False

        while self._queue:
            self._dispatch(self._queue.pop(0))
