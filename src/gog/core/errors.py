"""
Core exception types raised while building a plot.

Provides typed exceptions for the failures a plot-build request can hit:
- SchemaError for malformed tables (ragged columns, unknown column names).
- UnknownChannel when a mapping references an undeclared aesthetic.
- TypeMismatch when a statistic, scale or modifier meets an incompatible
  column semantic type.
- DomainError when a transform or coordinate system is undefined at a value.
- EmptyPanel when a geometry or statistic receives too few rows.
- IncompatibleAlgebra when a Nest term has no rows under an outer category.

Notes:
    - Every plot error is terminal for the request that raised it; no partial
      plot is produced and nothing is retried.
    - All plot errors share the PlotError base so callers (e.g. the CLI) can
      catch them in one place.

Examples:
    Catch a transform failure and inspect the offending value.

    >>> from gog.core.errors import DomainError
    >>> try:
    ...     raise DomainError("log10 undefined", channel="y", value=0)
    ... except DomainError as e:
    ...     (e.channel, e.value)
    ('y', 0)
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "PlotError",
    "SchemaError",
    "UnknownChannel",
    "TypeMismatch",
    "DomainError",
    "EmptyPanel",
    "IncompatibleAlgebra",
]


class PlotError(Exception):
    """Base class for failures of a single plot-build request."""


class SchemaError(PlotError, ValueError):
    """Table-level validation failure (row counts, unknown or duplicate columns)."""


class UnknownChannel(PlotError, ValueError):
    """Aesthetic mapping references a channel name that is not declared."""


class TypeMismatch(PlotError, TypeError):
    """Stage applied to a column of an incompatible semantic type."""


class DomainError(PlotError, ValueError):
    """
    Transform or coordinate mapping undefined at an observed value.

    Attributes:
        channel (str | None): Aesthetic channel (or coordinate axis) being resolved.
        value (Any): The offending raw value.
    """

    def __init__(self, message: str, *, channel: str | None = None, value: Any = None) -> None:
        super().__init__(message)
        self.channel = channel
        self.value = value


class EmptyPanel(PlotError, ValueError):
    """Geometry or statistic received fewer rows than it needs (e.g. a line with one row)."""


class IncompatibleAlgebra(PlotError, ValueError):
    """Nest applied where the nested variable has no rows under some outer category."""
