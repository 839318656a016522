"""Shared utility functions for orbitjax."""

from orbitjax.utils._angle import from_radians, to_radians, wrap_angle

__all__ = [
    "from_radians",
    "to_radians",
    "wrap_angle",
]
