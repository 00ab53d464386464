import json
import pytest
from storyvm.core.errors import LoadError, UnknownCommand
from storykit.dialogue.model import Branch, Command, GoTo, If, Prompt, Set, Text
from storykit.dialogue.parser import DialogueParser

INTRO = {
    "name": "intro",
    "meta": {"Start": ["on_load", "once"]},
    "nodes": {
        "Start": [
            {"Text": "Welcome back."},
            {"If": {"condition": "notAlone()", "body": [{"Text": "And you brought a friend!"}]}},
            {"Prompt": {"message": "Ready?", "choices": {"Yes": "go", "No": {"GoTo": "Start"}}}},
        ],
        "go": [
            {"Set": {"key": "$ready", "value": True}},
            {"Branch": {"Loud": [{"Command": {"name": "PlaySound", "args": ["horn.ogg", 2]}}], "Quiet": []}},
            {"Command": "ExitLevel"},
        ],
    },
}

def test_parse_data(parser):
    graph = parser.parse_data(INTRO)

    assert graph.name == "intro"
    assert list(graph.nodes) == ["Start", "go"]
    assert graph.tags("Start") == ("on_load", "once")
    assert graph.nodes_with_tag("once") == ["Start"]

    start = graph.get_node("Start")
    assert start[0] == Text("Welcome back.")
    assert isinstance(start[1], If)
    assert start[1].body == (Text("And you brought a friend!"),)
    assert start[2] == Prompt("Ready?", (("Yes", GoTo("go")), ("No", GoTo("Start"))))

    go = graph.get_node("go")
    assert go[0] == Set("$ready", True)
    assert isinstance(go[1], Branch)
    assert go[1].labels == ["Loud", "Quiet"]
    assert go[1].body(0) == (Command("PlaySound", ("horn.ogg", 2)),)
    assert go[1].body(1) == ()
    assert go[2] == Command("ExitLevel")

def test_parse_file(parser, tmp_path):
    path = tmp_path / "intro.json"
    with open(path, "w") as f:
        json.dump(INTRO, f)

    graph = parser.parse_file(path)

    assert graph.has_node("go")

def test_graph_is_immutable(parser):
    graph = parser.parse_data(INTRO)
    with pytest.raises(TypeError):
        graph.nodes["extra"] = ()

def test_dangling_goto():
    data = {"name": "broken", "nodes": {"Start": [{"GoTo": "nowhere"}]}}

    with pytest.raises(LoadError) as exc:
        DialogueParser().parse_data(data)

    assert exc.value.asset == "broken"
    assert exc.value.node == "Start"
    assert exc.value.reference == "nowhere"
    assert "nowhere" in str(exc.value)

def test_dangling_goto_inside_branch():
    data = {"name": "broken", "nodes": {"Start": [{"Branch": {"a": [{"GoTo": "nowhere"}]}}]}}
    with pytest.raises(LoadError):
        DialogueParser().parse_data(data)

def test_dangling_prompt_target():
    data = {"name": "broken", "nodes": {"Start": [{"Prompt": {"message": "?", "choices": {"a": "nowhere"}}}]}}
    with pytest.raises(LoadError):
        DialogueParser().parse_data(data)

def test_empty_branch():
    data = {"name": "broken", "nodes": {"Start": [{"Branch": {}}]}}
    with pytest.raises(LoadError, match="no choices"):
        DialogueParser().parse_data(data)

def test_empty_prompt():
    data = {"name": "broken", "nodes": {"Start": [{"Prompt": {"message": "?", "choices": {}}}]}}
    with pytest.raises(LoadError, match="no choices"):
        DialogueParser().parse_data(data)

def test_unknown_command(parser):
    data = {"name": "broken", "nodes": {"Start": [{"Command": "Explode"}]}}

    with pytest.raises(UnknownCommand) as exc:
        parser.parse_data(data)

    assert exc.value.command == "Explode"
    assert exc.value.node == "Start"

def test_commands_unchecked_without_declared_set():
    data = {"name": "free", "nodes": {"Start": [{"Command": "Explode"}]}}
    graph = DialogueParser().parse_data(data)
    assert graph.get_node("Start") == (Command("Explode"),)

def test_bad_condition_fails_at_load():
    data = {"name": "broken", "nodes": {"Start": [{"If": {"condition": "1 +", "body": []}}]}}

    with pytest.raises(LoadError) as exc:
        DialogueParser().parse_data(data)

    assert exc.value.node == "Start"

def test_schema_violation():
    data = {"name": "broken", "nodes": {"Start": [{"Txt": "typo"}]}}

    with pytest.raises(LoadError, match="schema violation") as exc:
        DialogueParser().parse_data(data)

    assert exc.value.node == "Start"

def test_instruction_with_two_keys():
    data = {"name": "broken", "nodes": {"Start": [{"Text": "a", "GoTo": "Start"}]}}
    with pytest.raises(LoadError):
        DialogueParser().parse_data(data)

def test_non_scalar_set_value():
    data = {"name": "broken", "nodes": {"Start": [{"Set": {"key": "$x", "value": [1]}}]}}
    with pytest.raises(LoadError):
        DialogueParser().parse_data(data)

def test_meta_for_missing_node():
    data = {"name": "broken", "meta": {"Gone": ["once"]}, "nodes": {"Start": []}}
    with pytest.raises(LoadError):
        DialogueParser().parse_data(data)

def test_invalid_json():
    with pytest.raises(LoadError, match="invalid JSON"):
        DialogueParser().parse_string("{not json", source="bad")

def test_unreadable_file(tmp_path):
    with pytest.raises(LoadError):
        DialogueParser().parse_file(tmp_path / "missing.json")

def test_serialize_then_parse_preserves_order(parser):
    graph = parser.parse_data(INTRO)

    data = parser.to_json(graph)
    again = parser.parse_string(json.dumps(data), source="intro")

    assert list(again.nodes) == list(graph.nodes)
    assert dict(again.nodes) == dict(graph.nodes)
    assert dict(again.metadata) == dict(graph.metadata)
    assert again.get_node("go")[1].labels == ["Loud", "Quiet"]

def test_save_json(parser, tmp_path):
    graph = parser.parse_data(INTRO)
    path = tmp_path / "out.json"

    parser.save_json(graph, path)

    assert dict(parser.parse_file(path).nodes) == dict(graph.nodes)
