import pytest
from storyvm.core.config import RuntimeConfig
from storyvm.core.errors import InvalidChoice, UnknownNode
from storyvm.core.events import DialogueEvent
from storykit.dialogue.interpreter import AwaitingChoice, CommandCall, Displayed, Finished
from storykit.dialogue.library import DialogueLibrary
from storykit.dialogue.manager import DialogueManager, DialogueUi

@pytest.fixture
def library():
    library = DialogueLibrary(["ExitLevel", "PlaySound"])
    library.add(library.parser.parse_data({
        "name": "intro",
        "meta": {"Start": ["on_load", "once"], "Later": ["on_load"]},
        "nodes": {
            "Start": [
                {"Text": "A"},
                {"Branch": {"x": [{"Text": "B"}], "y": [{"Text": "C"}]}},
                {"GoTo": "end"},
            ],
            "end": [{"Text": "D"}],
            "Later": [{"Text": "Welcome back"}],
            "Leave": [{"Command": "ExitLevel"}],
        },
    }))
    return library

@pytest.fixture
def manager(event_bus, library, evaluator):
    return DialogueManager(event_bus, library, evaluator, RuntimeConfig())

@pytest.fixture
def recorded(event_bus):
    events = []
    def record(event):
        events.append(event)
    for event_type in DialogueEvent:
        event_bus.subscribe(event_type, record, weak=False)
    return events

def test_start_and_advance(manager):
    assert manager.start("Start") == Displayed("A")
    assert manager.is_active()
    assert manager.is_in_dialogue

    assert manager.advance() == AwaitingChoice(["x", "y"])
    assert manager.advance(0) == Displayed("B")
    assert manager.advance() == Displayed("D")
    assert manager.advance() == Finished()
    assert not manager.is_active()
    assert not manager.is_in_dialogue

def test_events_published(manager, recorded):
    manager.start("Start")
    manager.advance()
    manager.advance(1)

    types = [e.type for e in recorded]
    assert types == [
        DialogueEvent.SESSION_STARTED,
        DialogueEvent.TEXT_DISPLAYED,
        DialogueEvent.CHOICES_PRESENTED,
        DialogueEvent.TEXT_DISPLAYED,
    ]
    assert recorded[0]["node"] == "Start"
    assert recorded[1]["text"] == "A"
    assert recorded[2]["labels"] == ["x", "y"]

def test_command_event_and_exit(manager, recorded):
    assert manager.start("Leave") == CommandCall("ExitLevel")
    assert manager.advance() == Finished("exit")

    assert recorded[-2].type == DialogueEvent.COMMAND_ISSUED
    assert recorded[-1].type == DialogueEvent.SESSION_FINISHED
    assert recorded[-1]["reason"] == "exit"

def test_unknown_node(manager):
    with pytest.raises(UnknownNode):
        manager.start("Nowhere")
    assert not manager.is_active()

def test_start_optional(manager):
    assert manager.start_optional("Nowhere") is False
    assert manager.start_optional("Later") is True
    assert manager.session.last == Displayed("Welcome back")

def test_invalid_choice_is_recoverable(manager):
    manager.start("Start")
    manager.advance()

    with pytest.raises(InvalidChoice):
        manager.advance(7)

    assert manager.advance(0) == Displayed("B")

def test_start_replaces_live_session(manager, recorded):
    manager.start("Start")
    old = manager.session

    manager.start("Later")

    assert old.is_finished
    assert old.last == Finished("aborted")
    assert manager.session is not old

def test_abort(manager):
    finished = []
    manager.on_dialogue_end(finished.append)
    manager.start("Start")

    manager.abort()

    assert not manager.is_active()
    assert finished == [Finished("aborted")]

def test_notice_ui_does_not_block_movement(manager):
    manager.start("Later", ui=DialogueUi.NOTICE)

    assert manager.is_active()
    assert manager.ui == DialogueUi.NOTICE
    assert not manager.is_in_dialogue

def test_run_tagged_honors_once(manager):
    assert manager.run_tagged("on_load") == Displayed("A")
    manager.abort()

    assert manager.run_tagged("on_load") == Displayed("Welcome back")
    assert manager.run_tagged("nothing") is None

def test_advance_without_session(manager):
    assert manager.advance() == Finished()
