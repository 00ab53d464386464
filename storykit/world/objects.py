"""
Map objects - named things on a map that scripts can show, hide or make
collectable.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from storyvm.core.errors import BridgeError


class MapObject(BaseModel):
    """
    A scriptable object placed on a map.

    Attributes:
        name: Object name from the map file (not unique; e.g. every "gem")
        visible: Whether the host draws it
        collectable: Whether touching it fires "collect"
        dialogue: Optional dialogue node to run on interaction
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    name: str
    visible: bool = True
    collectable: bool = False
    dialogue: Optional[str] = None


# Flags scripts may change; name is identity and stays fixed.
MUTABLE_FLAGS = frozenset({"visible", "collectable", "dialogue"})


class MapObjectTable:
    """
    Objects owned by one map, grouped by name.

    Host code populates the table when the map loads; after that, changes
    arrive through the script bridge.
    """

    def __init__(self):
        self._objects: dict[str, list[MapObject]] = {}

    def add(self, obj: MapObject) -> MapObject:
        self._objects.setdefault(obj.name, []).append(obj)
        return obj

    def named(self, name: str) -> list[MapObject]:
        return list(self._objects.get(name, ()))

    def count(self, name: str) -> int:
        return len(self._objects.get(name, ()))

    def __iter__(self) -> Iterator[MapObject]:
        for objects in self._objects.values():
            yield from objects

    def __len__(self) -> int:
        return sum(len(objects) for objects in self._objects.values())

    def update(self, name: str, flags: dict[str, Any]) -> list[MapObject]:
        """
        Apply flags to every object with the given name.

        Flags are validated against all objects before any is changed.

        Returns:
            The updated objects (empty if none has that name)

        Raises:
            BridgeError: unknown flag or invalid value
        """
        unknown = set(flags) - MUTABLE_FLAGS
        if unknown:
            raise BridgeError(f"unknown map object flag(s): {sorted(unknown)}")

        objects = self._objects.get(name, [])
        try:
            for obj in objects:
                MapObject.model_validate({**obj.model_dump(), **flags})
        except ValidationError as e:
            raise BridgeError(f"invalid flags for '{name}': {e}") from e

        for obj in objects:
            for key, value in flags.items():
                setattr(obj, key, value)
        return list(objects)
