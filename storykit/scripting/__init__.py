"""
Scripting module - game scripts that react to world events.

Provides:
- Archetypes (game, player, map) that scripts extend with fields,
  setup blocks and handlers
- The event registry and dispatcher
- Live game/player/map instances
- The script bridge to host state
- Script loading
"""

from storykit.scripting.archetypes import ANY, Archetype, ArchetypeBuilder, ArchetypeDescriptor
from storykit.scripting.registry import EventRegistry, HandlerEntry
from storykit.scripting.dispatcher import EventDispatcher, HandlerFailure
from storykit.scripting.context import HandlerContext, SetupContext
from storykit.scripting.instances import GameInstance, MapInstance, PlayerInstance, ScriptInstance
from storykit.scripting.bridge import ScriptBridge
from storykit.scripting.environment import ScriptEnvironment

__all__ = [
    # Archetypes
    "ANY",
    "Archetype",
    "ArchetypeBuilder",
    "ArchetypeDescriptor",
    # Dispatch
    "EventRegistry",
    "HandlerEntry",
    "EventDispatcher",
    "HandlerFailure",
    "HandlerContext",
    "SetupContext",
    # Instances
    "ScriptInstance",
    "GameInstance",
    "PlayerInstance",
    "MapInstance",
    # Host
    "ScriptBridge",
    "ScriptEnvironment",
]
