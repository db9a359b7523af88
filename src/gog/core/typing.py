"""
Lightweight typing aliases used across the pipeline stages.

Provides the Unit float marker plus minimal aliases to improve readability and
static checks. Apart from Unit this module contains no runtime logic.

Notes:
    - Unit marks a value that already went through a frozen scale. Scales return
      Unit and pass Unit inputs through unchanged, which makes resolution
      idempotent.
    - Keep the surface small and stable to avoid churn in dependents.

Examples:
    >>> from gog.core.typing import Unit, is_unit
    >>> is_unit(Unit(0.25)), is_unit(0.25)
    (True, False)
    >>> Unit(0.25) + 0.5
    0.75
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "Unit",
    "is_unit",
    "Point2",
    "GroupKey",
    "Row",
]


class Unit(float):
    """A float that lives in normalized unit-panel space (already scaled)."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Unit({float(self)!r})"


def is_unit(value: Any) -> bool:
    return isinstance(value, Unit)


# (x, y) position in unit-panel space or in the final plane.
Point2 = tuple[float, float]

# Grouping key produced by the algebra engine: one entry per combined variable.
GroupKey = tuple[Any, ...]

# One record of channel -> value. Raw before scaling, Unit/style after.
Row = dict[str, Any]
