"""
Core runtime module.

Exports:
- RuntimeConfig, load_config: Host policy configuration
- EventBus, Event, DialogueEvent, ScriptEvent, WorldEvent: Event system
- VariableStore, MISSING: Shared variables
- Evaluator, compile_expression, evaluate: Condition expressions
- Error taxonomy
"""

from storyvm.core.config import RuntimeConfig, load_config
from storyvm.core.events import EventBus, Event, DialogueEvent, ScriptEvent, WorldEvent
from storyvm.core.variables import VariableStore, MISSING, Scalar
from storyvm.core.expressions import Evaluator, Expression, compile_expression, evaluate
from storyvm.core.errors import (
    NarrativeError,
    LoadError,
    UnknownCommand,
    ScriptLoadError,
    UnknownEvent,
    RegistrationError,
    EvaluationError,
    ExpressionSyntaxError,
    UnknownPredicate,
    VariableTypeError,
    InvalidChoice,
    SessionStateError,
    ReentrantTrigger,
    HandlerChainError,
    BridgeError,
    UnknownNode,
)

__all__ = [
    # Config
    "RuntimeConfig",
    "load_config",
    # Events
    "EventBus",
    "Event",
    "DialogueEvent",
    "ScriptEvent",
    "WorldEvent",
    # Variables
    "VariableStore",
    "MISSING",
    "Scalar",
    # Expressions
    "Evaluator",
    "Expression",
    "compile_expression",
    "evaluate",
    # Errors
    "NarrativeError",
    "LoadError",
    "UnknownCommand",
    "ScriptLoadError",
    "UnknownEvent",
    "RegistrationError",
    "EvaluationError",
    "ExpressionSyntaxError",
    "UnknownPredicate",
    "VariableTypeError",
    "InvalidChoice",
    "SessionStateError",
    "ReentrantTrigger",
    "HandlerChainError",
    "BridgeError",
    "UnknownNode",
]
