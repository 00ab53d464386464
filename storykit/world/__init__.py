"""
World module - map state that scripts can change.
"""

from storykit.world.objects import MapObject, MapObjectTable

__all__ = [
    "MapObject",
    "MapObjectTable",
]
