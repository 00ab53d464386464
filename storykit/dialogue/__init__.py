"""
Dialogue module - branching conversations driven by node graphs.

Provides:
- Dialogue asset parsing and validation
- A resumable interpreter (text, choices, jumps, conditions, variables, commands)
- A library of loaded graphs
- A manager that owns the live session and publishes its steps
"""

from storykit.dialogue.model import (
    DialogueGraph,
    Text,
    Branch,
    Prompt,
    GoTo,
    If,
    Set,
    Command,
    Instruction,
)
from storykit.dialogue.parser import DialogueParser
from storykit.dialogue.library import DialogueLibrary
from storykit.dialogue.interpreter import (
    DialogueInterpreter,
    Session,
    ExecutionCursor,
    Displayed,
    AwaitingChoice,
    CommandCall,
    Finished,
    StepResult,
)
from storykit.dialogue.manager import DialogueManager, DialogueUi

__all__ = [
    # Model
    "DialogueGraph",
    "Text",
    "Branch",
    "Prompt",
    "GoTo",
    "If",
    "Set",
    "Command",
    "Instruction",
    # Loading
    "DialogueParser",
    "DialogueLibrary",
    # Interpreter
    "DialogueInterpreter",
    "Session",
    "ExecutionCursor",
    "Displayed",
    "AwaitingChoice",
    "CommandCall",
    "Finished",
    "StepResult",
    # Manager
    "DialogueManager",
    "DialogueUi",
]
