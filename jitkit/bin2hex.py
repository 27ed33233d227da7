"""Named binary literals B00000000 .. B11111111."""

from __future__ import annotations

_CONSTANTS: dict[str, int] = {f"B{value:08b}": value for value in range(256)}


def binary_constant(name: str) -> int:
    """Return the value of a name such as ``B00000101``; raise KeyError if unknown."""
    try:
        return _CONSTANTS[name]
    except KeyError:
        raise KeyError(f"unknown binary constant: {name!r}") from None


def binary_constants() -> dict[str, int]:
    """Return a copy of all 256 name-to-value pairs in ascending order."""
    return dict(_CONSTANTS)