import json
import pytest
from storyvm.core.errors import LoadError
from storykit.dialogue.library import DialogueLibrary
from storykit.dialogue.parser import DialogueParser

def write_asset(directory, name, nodes, meta=None):
    data = {"name": name, "nodes": nodes}
    if meta:
        data["meta"] = meta
    with open(directory / f"{name}.json", "w") as f:
        json.dump(data, f)

@pytest.fixture
def dialogue_dir(tmp_path):
    write_asset(tmp_path, "a_intro", {"Start": [{"Text": "Hi"}]}, meta={"Start": ["on_load"]})
    write_asset(tmp_path, "b_caves", {"Caves": [{"Text": "Cold"}]}, meta={"Caves": ["on_load", "once"]})
    return tmp_path

def test_load_directory(dialogue_dir):
    library = DialogueLibrary(["ExitLevel"])

    assert library.load_directory(dialogue_dir) == 2
    assert library.has_node("Start")
    assert library.graph_for("Caves").name == "b_caves"
    assert library.errors == []

def test_bad_asset_does_not_stop_others(dialogue_dir):
    write_asset(dialogue_dir, "c_broken", {"Broken": [{"GoTo": "nowhere"}]})
    (dialogue_dir / "d_garbage.json").write_text("{nope")

    library = DialogueLibrary()
    count = library.load_directory(dialogue_dir)

    assert count == 2
    assert len(library.errors) == 2
    assert all(isinstance(e, LoadError) for e in library.errors)
    assert not library.has_node("Broken")

def test_unknown_command_is_recorded(dialogue_dir):
    write_asset(dialogue_dir, "c_cmd", {"Boom": [{"Command": "Explode"}]})

    library = DialogueLibrary(["ExitLevel"])
    library.load_directory(dialogue_dir)

    assert not library.has_node("Boom")
    assert library.errors[0].command == "Explode"

def test_duplicate_node_across_assets(dialogue_dir):
    write_asset(dialogue_dir, "c_dupe", {"Start": [{"Text": "Again"}]})

    library = DialogueLibrary()
    library.load_directory(dialogue_dir)

    assert library.graph_for("Start").name == "a_intro"
    assert library.errors[0].node == "Start"

def test_duplicate_asset_name():
    parser = DialogueParser()
    library = DialogueLibrary()
    library.add(parser.parse_data({"name": "x", "nodes": {"A": []}}))

    with pytest.raises(LoadError):
        library.add(parser.parse_data({"name": "x", "nodes": {"B": []}}))

def test_missing_directory(tmp_path, caplog):
    library = DialogueLibrary()
    assert library.load_directory(tmp_path / "nope") == 0
    assert "not found" in caplog.text

def test_nodes_with_tag(dialogue_dir):
    library = DialogueLibrary()
    library.load_directory(dialogue_dir)

    assert library.nodes_with_tag("on_load") == ["Start", "Caves"]
    assert library.nodes_with_tag("once") == ["Caves"]
