"""
Error taxonomy for the narrative runtime.

Load-time errors abort only the affected asset or script. Runtime errors
are either recoverable (InvalidChoice) or degrade gracefully
(EvaluationError is fail-closed for conditionals).
"""

from __future__ import annotations

from typing import Any, Optional


class NarrativeError(Exception):
    """Base class for all runtime errors."""


# --- Load time ---

class LoadError(NarrativeError):
    """A dialogue asset could not be loaded."""

    def __init__(
        self,
        asset: str,
        message: str,
        node: Optional[str] = None,
        reference: Optional[str] = None,
    ):
        self.asset = asset
        self.node = node
        self.reference = reference
        self.detail = message

        location = f"asset '{asset}'"
        if node:
            location += f", node '{node}'"
        if reference:
            location += f", reference '{reference}'"
        super().__init__(f"{location}: {message}")


class UnknownCommand(LoadError):
    """An instruction names a command the host does not accept."""

    def __init__(self, asset: str, command: str, node: Optional[str] = None):
        self.command = command
        super().__init__(asset, f"unknown command '{command}'", node=node, reference=command)


class ScriptLoadError(LoadError):
    """A script source failed while being loaded."""

    def __init__(self, script: str, message: str):
        super().__init__(script, message)


class UnknownEvent(ScriptLoadError):
    """A handler was registered for an event the archetype does not declare."""

    def __init__(self, archetype: str, event: str):
        self.archetype = archetype
        self.event = event
        super().__init__(archetype, f"unknown event '{event}'")


class RegistrationError(ScriptLoadError):
    """Class-level registration attempted after game start or mid-dispatch."""


# --- Runtime ---

class EvaluationError(NarrativeError):
    """An expression could not be evaluated."""

    def __init__(self, expression: str, message: str):
        self.expression = expression
        super().__init__(f"{message} in expression {expression!r}")


class ExpressionSyntaxError(EvaluationError):
    """An expression could not be parsed."""


class UnknownPredicate(EvaluationError):
    """An expression called a predicate the host did not supply."""

    def __init__(self, expression: str, name: str):
        self.name = name
        super().__init__(expression, f"unknown predicate '{name}'")


class VariableTypeError(NarrativeError, TypeError):
    """A non-scalar value was written to the variable store."""


class InvalidChoice(NarrativeError):
    """Selected choice index is outside the presented range."""

    def __init__(self, index: Any, count: int):
        self.index = index
        self.count = count
        super().__init__(f"choice {index!r} is out of range [0, {count - 1}]")


class SessionStateError(NarrativeError):
    """The session was driven in a way its current state does not allow."""


class ReentrantTrigger(NarrativeError):
    """An event was triggered for an instance already dispatching that event."""

    def __init__(self, instance: str, event: str):
        self.instance = instance
        self.event = event
        super().__init__(f"reentrant trigger of '{event}' on {instance}")


class HandlerChainError(NarrativeError):
    """One or more handlers failed while dispatching an event."""

    def __init__(self, event: str, failures: list):
        self.event = event
        self.failures = failures
        names = ", ".join(f.handler_name for f in failures)
        super().__init__(f"{len(failures)} handler(s) failed for '{event}': {names}")


class BridgeError(NarrativeError):
    """A script bridge call referenced unknown host state."""


class UnknownNode(NarrativeError, KeyError):
    """A dialogue was started at a node no loaded graph defines."""

    def __init__(self, node: str):
        self.node = node
        super().__init__(f"no dialogue node named '{node}'")

    def __str__(self) -> str:
        return self.args[0]
