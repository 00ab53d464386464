import os
import sys
import pytest
from unittest.mock import patch

# Ensure storyvm/storykit modules can be imported
sys.path.append(os.getcwd())

@pytest.fixture(autouse=True)
def mock_pygame():
    """
    Global mock for pygame.mixer to allow headless testing.
    Autoused for all tests so no audio device is ever opened.
    """
    with patch('pygame.mixer'):
        yield

@pytest.fixture
def event_bus():
    """Fresh EventBus for each test."""
    from storyvm.core.events import EventBus
    return EventBus()

@pytest.fixture
def store():
    """Empty VariableStore for each test."""
    from storyvm.core.variables import VariableStore
    return VariableStore()

@pytest.fixture
def evaluator(store):
    """Evaluator bound to the test's store."""
    from storyvm.core.expressions import Evaluator
    return Evaluator(store)

@pytest.fixture
def registry():
    """Fresh EventRegistry with the default archetype events."""
    from storykit.scripting.registry import EventRegistry
    return EventRegistry()

@pytest.fixture
def parser():
    """DialogueParser accepting the default host commands."""
    from storykit.dialogue.parser import DialogueParser
    return DialogueParser(["ExitLevel", "PlaySound"])

@pytest.fixture
def script_env(event_bus, store):
    """ScriptEnvironment with a bridge and no dialogue manager."""
    from storykit.scripting.bridge import ScriptBridge
    from storykit.scripting.environment import ScriptEnvironment
    bridge = ScriptBridge(event_bus)
    return ScriptEnvironment(event_bus, store, bridge)
