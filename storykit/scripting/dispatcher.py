"""
Event dispatcher - fires handler chains against live instances.

Firing order: the instance's own handlers first, then the archetype's
class-level handlers, each in registration order.

Error policy: continue on error. Every handler is attempted; failures are
logged, published as ScriptEvent.HANDLER_FAILED and, when
raise_errors is set, raised together as one HandlerChainError once the
chain has finished. The registry is never changed by a failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from storyvm.core.errors import HandlerChainError, ReentrantTrigger, UnknownEvent
from storyvm.core.events import EventBus, ScriptEvent
from storykit.scripting.registry import EventRegistry, InstanceKey

if TYPE_CHECKING:
    from storykit.scripting.instances import ScriptInstance

logger = logging.getLogger(__name__)


@dataclass
class HandlerFailure:
    """One handler that raised during a dispatch."""
    event: str
    instance: str
    handler_name: str
    error: BaseException


class EventDispatcher:
    """
    Synchronous, fire-and-forget event dispatch.

    A handler may trigger other events, but triggering the event that is
    already dispatching for the same instance raises ReentrantTrigger
    (which, like any handler error, does not stop the outer chain).
    """

    def __init__(
        self,
        registry: EventRegistry,
        events: Optional[EventBus] = None,
        raise_errors: bool = True,
    ):
        self.registry = registry
        self.events = events
        self.raise_errors = raise_errors
        self._active: set[tuple[InstanceKey, str]] = set()

    def is_dispatching(self, instance: ScriptInstance, event: str) -> bool:
        return (instance.key, event) in self._active

    def trigger(self, instance: ScriptInstance, event: str, *args: Any) -> None:
        """
        Fire an event for an instance.

        Raises:
            UnknownEvent: the instance's archetype does not declare the event
            ReentrantTrigger: the same event is already firing for the instance
            HandlerChainError: one or more handlers failed (raise_errors only)
        """
        archetype = instance.archetype
        if not self.registry.is_declared(archetype, event):
            raise UnknownEvent(archetype.value, event)

        guard = (instance.key, event)
        if guard in self._active:
            raise ReentrantTrigger(instance.label, event)

        entries = self.registry.handlers_for(archetype, instance.key, event)
        failures: list[HandlerFailure] = []

        self._active.add(guard)
        self.registry.begin_dispatch()
        try:
            for entry in entries:
                if not entry.matches(args):
                    continue
                context = instance.context(event, args)
                try:
                    entry.handler(context, *args)
                except Exception as e:
                    logger.exception(
                        f"Handler {entry.name} failed for {instance.label}.{event}"
                    )
                    failure = HandlerFailure(event, instance.label, entry.name, e)
                    failures.append(failure)
                    if self.events:
                        self.events.publish(
                            ScriptEvent.HANDLER_FAILED,
                            event=event,
                            instance=instance.label,
                            handler=entry.name,
                            error=e,
                        )
        finally:
            self.registry.end_dispatch()
            self._active.discard(guard)

        if failures and self.raise_errors:
            raise HandlerChainError(event, failures)
