import pytest
from storyvm.core.errors import HandlerChainError, ReentrantTrigger, UnknownEvent
from storyvm.core.events import ScriptEvent
from storykit.scripting.archetypes import Archetype
from storykit.scripting.dispatcher import EventDispatcher
from storykit.world.objects import MapObject

@pytest.fixture
def player(script_env):
    return script_env.builder(Archetype.PLAYER)

def test_instance_handler_fires_before_class_handler(script_env, player):
    order = []
    player.on_collect("any", lambda ctx, obj: order.append("class:any"))

    @player.setup
    def own_gem(ctx):
        ctx.on_collect("gem", lambda ctx, obj: order.append("instance:gem"))

    game = script_env.start_game([1])
    game.players[0].collect(MapObject(name="gem"))

    assert order == ["instance:gem", "class:any"]

def test_match_filters_by_object_name(script_env, player):
    collected = []
    player.on_collect("gem", lambda ctx, obj: collected.append(obj.name))

    game = script_env.start_game([1])
    game.players[0].collect(MapObject(name="rock"))
    game.players[0].collect(MapObject(name="gem"))

    assert collected == ["gem"]

def test_class_handlers_in_registration_order(script_env, player):
    order = []
    player.on("collect", lambda ctx, obj: order.append(1))
    player.on("collect", lambda ctx, obj: order.append(2))
    player.on("collect", lambda ctx, obj: order.append(3))

    game = script_env.start_game([1])
    game.players[0].collect(MapObject(name="gem"))

    assert order == [1, 2, 3]

def test_handler_receives_context_and_args(script_env, player):
    seen = {}

    @player.on("collect")
    def remember(ctx, obj):
        seen["instance"] = ctx.instance
        seen["event"] = ctx.event
        seen["obj"] = obj

    game = script_env.start_game([7])
    gem = MapObject(name="gem")
    game.players[0].collect(gem)

    assert seen == {"instance": game.players[0], "event": "collect", "obj": gem}

def test_failing_handler_does_not_stop_chain(script_env, player, event_bus):
    order = []
    failures = []
    def on_failed(event):
        failures.append(event)
    event_bus.subscribe(ScriptEvent.HANDLER_FAILED, on_failed)

    def broken(ctx, obj):
        raise ValueError("boom")

    player.on("collect", lambda ctx, obj: order.append("first"))
    player.on("collect", broken)
    player.on("collect", lambda ctx, obj: order.append("third"))

    game = script_env.start_game([1])

    with pytest.raises(HandlerChainError) as exc:
        game.players[0].collect(MapObject(name="gem"))

    assert order == ["first", "third"]
    assert [f.handler_name for f in exc.value.failures] == [broken.__qualname__]
    assert isinstance(exc.value.failures[0].error, ValueError)
    assert failures[0]["handler"] == broken.__qualname__

    # Registry is untouched; the next dispatch runs the same chain
    order.clear()
    with pytest.raises(HandlerChainError):
        game.players[0].collect(MapObject(name="gem"))
    assert order == ["first", "third"]

def test_errors_not_raised_when_disabled(script_env, player):
    script_env.dispatcher.raise_errors = False
    player.on("collect", lambda ctx, obj: 1 / 0)

    game = script_env.start_game([1])
    game.players[0].collect(MapObject(name="gem"))

def test_unknown_event(script_env):
    game = script_env.start_game([1])
    with pytest.raises(UnknownEvent):
        game.players[0].trigger("fly")

def test_nested_trigger_of_other_event(script_env):
    order = []
    game_builder = script_env.builder(Archetype.GAME)
    game_builder.events("score")
    game_builder.on("score", lambda ctx: order.append("score"))

    @game_builder.on_new_game
    def start(ctx):
        order.append("new_game")
        ctx.trigger("score")

    script_env.start_game([1])

    assert order == ["new_game", "score"]

def test_reentrant_trigger_is_rejected(script_env, player):
    attempts = []

    @player.on("collect")
    def recollect(ctx, obj):
        attempts.append(obj.name)
        ctx.instance.collect(obj)

    game = script_env.start_game([1])

    with pytest.raises(HandlerChainError) as exc:
        game.players[0].collect(MapObject(name="gem"))

    assert attempts == ["gem"]
    assert isinstance(exc.value.failures[0].error, ReentrantTrigger)
    assert not script_env.dispatcher.is_dispatching(game.players[0], "collect")

def test_same_event_on_other_instance_is_allowed(script_env, player):
    collected = []

    @player.on("collect")
    def share(ctx, obj):
        collected.append(ctx.instance.id)
        if ctx.instance.id == 1:
            ctx.game.players[1].collect(obj)

    game = script_env.start_game([1, 2])
    game.players[0].collect(MapObject(name="gem"))

    assert collected == [1, 2]

def test_dispatcher_without_bus(registry):
    dispatcher = EventDispatcher(registry)
    assert dispatcher.events is None
