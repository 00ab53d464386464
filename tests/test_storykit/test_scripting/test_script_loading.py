import pytest
from storyvm.core.errors import ScriptLoadError, UnknownEvent
from storyvm.core.events import ScriptEvent
from storykit.world.objects import MapObject

PRELUDE = '''
player.define(num_gems=0)
player.events("collide")
'''

STARTUP = '''
@game
def customize(g):
    g.define(shared_score=0)

    @g.player
    def customize_player(p):
        p.define(num_tickets=1)

        @p.on_collect("gems")
        def count_gem(ctx, obj):
            ctx.instance.num_gems += 1

        @p.on_collect(ANY)
        def score(ctx, obj):
            ctx.game.shared_score = sum(pl.num_gems for pl in ctx.players)
            variables["$score"] = ctx.game.shared_score
'''

@pytest.fixture
def scripts(tmp_path):
    prelude = tmp_path / "prelude.py"
    prelude.write_text(PRELUDE)
    startup = tmp_path / "startup.py"
    startup.write_text(STARTUP)
    return tmp_path

def test_scripts_extend_in_order(script_env, scripts, store):
    count = script_env.load_scripts([scripts / "prelude.py", scripts / "startup.py"])

    assert count == 2
    assert script_env.errors == []

    game = script_env.start_game([1, 2])
    player = game.players[0]
    player.collect(MapObject(name="gems"))
    player.collect(MapObject(name="rock"))

    assert player.num_gems == 1
    assert player.num_tickets == 1
    assert game.shared_score == 1
    assert store["$score"] == 1

def test_failed_script_does_not_stop_others(script_env, scripts, caplog):
    broken = scripts / "broken.py"
    broken.write_text("raise RuntimeError('bad script')\n")

    count = script_env.load_scripts([scripts / "prelude.py", broken, scripts / "startup.py"])

    assert count == 2
    assert len(script_env.errors) == 1
    assert isinstance(script_env.errors[0], ScriptLoadError)
    assert "bad script" in str(script_env.errors[0])

def test_syntax_error_is_load_error(script_env, tmp_path):
    bad = tmp_path / "bad.py"
    bad.write_text("def oops(:\n")

    assert script_env.load_script(bad) is False
    assert isinstance(script_env.errors[0], ScriptLoadError)

def test_unknown_event_in_script(script_env, tmp_path):
    bad = tmp_path / "bad.py"
    bad.write_text("map.on('collect', lambda ctx, obj: None)\n")

    assert script_env.load_script(bad) is False
    assert isinstance(script_env.errors[0], UnknownEvent)

def test_missing_script(script_env, tmp_path):
    assert script_env.load_script(tmp_path / "nope.py") is False
    assert "not found" in str(script_env.errors[0])

def test_no_loading_after_start(script_env, scripts):
    script_env.start_game([1])

    assert script_env.load_script(scripts / "prelude.py") is False

def test_scripts_loaded_event(script_env, scripts, event_bus):
    received = []
    def on_loaded(event):
        received.append(event)
    event_bus.subscribe(ScriptEvent.SCRIPTS_LOADED, on_loaded)

    script_env.load_scripts([scripts / "prelude.py"])

    assert received[0]["failed"] == 0
    assert received[0]["loaded"] == [str(scripts / "prelude.py")]
