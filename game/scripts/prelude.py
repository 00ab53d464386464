"""
Shared declarations every game builds on.

Runs before the game's own scripts. Globals: game, player, map, bridge,
variables, ANY.
"""

# Objects the host reports when a player bumps into something.
player.events("collide")


@player.on("collide")
def talk_to_object(ctx, obj):
    if getattr(obj, "dialogue", None):
        ctx.say(obj.dialogue)


@map.on_enter
def announce_map(ctx):
    node = f"{ctx.instance.filename}_entrance"
    if bridge.dialogue is not None:
        bridge.dialogue.start_optional(node)
