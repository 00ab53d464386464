"""
storyvm - engine layer of the narrative runtime.

Host-facing infrastructure shared by the dialogue interpreter and the
script layer: configuration, the event bus, the variable store, the
expression evaluator and sound playback.

Quick Start:
    from storyvm import VariableStore, Evaluator

    store = VariableStore()
    store["$gems"] = 3
    Evaluator(store).check("$gems > 2")  # True
"""

__version__ = "0.1.0"

from storyvm.core import (
    RuntimeConfig,
    load_config,
    EventBus,
    Event,
    DialogueEvent,
    ScriptEvent,
    WorldEvent,
    VariableStore,
    MISSING,
    Evaluator,
    compile_expression,
    NarrativeError,
)

__all__ = [
    "RuntimeConfig",
    "load_config",
    "EventBus",
    "Event",
    "DialogueEvent",
    "ScriptEvent",
    "WorldEvent",
    "VariableStore",
    "MISSING",
    "Evaluator",
    "compile_expression",
    "NarrativeError",
]
