"""
Variable store shared by dialogue and script handlers.

Keys are `$`-prefixed by convention. Values are scalars only so that the
store can be written to a save file as-is.
"""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from typing import Any, Union

from storyvm.core.errors import VariableTypeError

Scalar = Union[bool, int, float, str]

SCALAR_TYPES = (bool, int, float, str)


def is_scalar(value: Any) -> bool:
    return isinstance(value, SCALAR_TYPES)


class _Missing:
    """Sentinel for variables that were never set. Falsy."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


class VariableStore(MutableMapping):
    """
    Process-lifetime mapping of variable names to scalars.

    Shared by reference; single-writer by construction, so no locking.
    """

    def __init__(self, initial: dict[str, Scalar] | None = None):
        self._values: dict[str, Scalar] = {}
        if initial:
            self.update(initial)

    def __getitem__(self, key: str) -> Scalar:
        return self._values[key]

    def __setitem__(self, key: str, value: Scalar) -> None:
        if not isinstance(key, str) or not key:
            raise VariableTypeError(f"variable name must be a non-empty string, got {key!r}")
        if not is_scalar(value):
            raise VariableTypeError(
                f"variable {key} must be bool, int, float or str, got {type(value).__name__}"
            )
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"VariableStore({self._values!r})"

    def lookup(self, key: str) -> Any:
        """Get a value, or MISSING if it was never set."""
        return self._values.get(key, MISSING)

    def snapshot(self) -> dict[str, Scalar]:
        """Plain copy for save games."""
        return dict(self._values)

    def restore(self, data: dict[str, Scalar]) -> None:
        """Replace contents from a snapshot."""
        values = dict(data)
        for key, value in values.items():
            if not is_scalar(value):
                raise VariableTypeError(f"snapshot value for {key} is not a scalar")
        self._values = values
