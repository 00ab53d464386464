"""
storykit - dialogue interpreter and script event bridge.

Provides game-facing systems built on top of storyvm:
- Dialogue (node graphs, choices, conditions, commands)
- Scripting (archetype handlers fired by world events)
- World (map objects scripts can change)
- StoryRuntime, which wires them together
"""

from storykit.runtime import StoryRuntime

__all__ = [
    "StoryRuntime",
]
