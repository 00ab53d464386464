"""
Gems demo.

Players collect gems; enough gems reveal the big gems, and enough gems
across all players open the secret door.
"""


@game
def customize(g):
    g.define(shared_score=0)

    @g.on_load
    def welcome_back(ctx):
        ctx.say("WelcomeBack")

    @g.player
    def customize_player(p):
        p.define(num_gems=0, num_tickets=1)

        @p.on_collect("gems")
        def count_gem(ctx, obj):
            ctx.instance.num_gems += 1
            if ctx.instance.num_gems > 3:
                ctx.map.show("big_gems")

        @p.on_collect("big_gems")
        def count_big_gem(ctx, obj):
            ctx.instance.num_gems += 5

        @p.on_collect(ANY)
        def check_secret_door(ctx, obj):
            total = sum(pl.num_gems for pl in ctx.players)
            ctx.map.gems_found += 1
            ctx.game.shared_score = total
            if total > 8:
                ctx.map.show("secret_door")
                ctx.map.make_collectable("secret_door")


@map
def customize_map(m):
    m.define(gems_found=0, total_gems=0)

    @m.on_load
    def reset_gems(ctx):
        ctx.instance.total_gems = ctx.instance.objects.count("gems")
        for pl in ctx.players:
            pl.num_gems = 0
