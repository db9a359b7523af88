"""
Coordinate systems: map unit-panel positions into the final plane.

Variants
- Cartesian(flip=False): identity, or swap the axes.
- Polar(theta="x", ...): the theta channel becomes an angle ``2*pi*u`` (offset
  by ``start``, optionally clockwise) and the other channel a radius scaled to
  ``[r_min, r_max]``. Output is ``(r*cos(angle), r*sin(angle))``.
- Custom(forward, inverse): a caller-supplied bijection.

Polar is not linear, so straight primitive edges are interpolated into short
steps before mapping (``munch``). A line between two categories stays a curve
along the circle instead of a chord.

Examples:
    >>> map_position(Polar(), (0.0, 1.0))
    (1.0, 0.0)
    >>> x, y = map_position(Polar(), (0.25, 1.0))
    >>> round(x, 12), y
    (0.0, 1.0)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from .core.constants import POLAR_SEGMENTS, UNIT_TOLERANCE
from .core.errors import DomainError, SchemaError
from .core.grammar import CoordKind
from .core.primitive import Primitive
from .core.typing import Point2

__all__ = [
    "Cartesian",
    "Polar",
    "Custom",
    "Coordinate",
    "map_position",
    "inverse",
    "is_linear",
    "bounds",
    "munch",
    "transform",
    "coord_from_name",
]

logger = logging.getLogger(__name__)

TAU = 2 * math.pi


@dataclass(frozen=True)
class Cartesian:
    """Rectangular coordinates; ``flip`` swaps x and y."""

    flip: bool = False


@dataclass(frozen=True)
class Polar:
    """
    Polar coordinates.

    Attributes:
        theta (Literal["x", "y"]): Channel mapped to the angle.
        r_min (float): Radius of unit position 0 on the radial channel.
        r_max (float): Radius of unit position 1 on the radial channel.
        start (float): Angle (radians) of unit position 0 on the theta channel.
        clockwise (bool): Direction of increasing theta.
    """

    theta: Literal["x", "y"] = "x"
    r_min: float = 0.0
    r_max: float = 1.0
    start: float = 0.0
    clockwise: bool = False

    def __post_init__(self) -> None:
        if self.theta not in ("x", "y"):
            raise ValueError(f"theta must be 'x' or 'y', got {self.theta!r}")
        if self.r_min < 0 or self.r_max < self.r_min:
            raise ValueError(f"require 0 <= r_min <= r_max, got {self.r_min}, {self.r_max}")


@dataclass(frozen=True, eq=False)
class Custom:
    """
    Caller-supplied coordinate mapping.

    Attributes:
        forward: Unit position -> plane position.
        backward: Plane position -> unit position (None when not invertible).
        linear: Whether straight edges stay straight (skips interpolation).
    """

    forward: Callable[[float, float], Point2]
    backward: Callable[[float, float], Point2] | None = None
    linear: bool = False


Coordinate: TypeAlias = Cartesian | Polar | Custom


def coord_from_name(kind: CoordKind | str, **params: Any) -> Coordinate:
    """Build a named coordinate system (Custom has no name: it needs callables)."""
    match CoordKind(kind):
        case CoordKind.CARTESIAN:
            return Cartesian(**params)
        case CoordKind.POLAR:
            return Polar(**params)


def _unit(value: float, axis: str) -> float:
    if not (-UNIT_TOLERANCE <= value <= 1 + UNIT_TOLERANCE):
        raise DomainError(
            f"polar {axis} input {value!r} outside [0, 1]", channel=axis, value=value
        )
    return min(1.0, max(0.0, float(value)))


def _polar(coord: Polar, pos: Point2) -> Point2:
    x, y = pos
    u_theta, u_r = (x, y) if coord.theta == "x" else (y, x)
    u_theta = _unit(u_theta, "theta")
    u_r = _unit(u_r, "r")
    sign = -1.0 if coord.clockwise else 1.0
    angle = coord.start + sign * TAU * u_theta
    r = coord.r_min + u_r * (coord.r_max - coord.r_min)
    return (r * math.cos(angle), r * math.sin(angle))


def _polar_inverse(coord: Polar, pos: Point2) -> Point2:
    px, py = pos
    r = math.hypot(px, py)
    sign = -1.0 if coord.clockwise else 1.0
    u_theta = ((math.atan2(py, px) - coord.start) * sign / TAU) % 1.0
    span = coord.r_max - coord.r_min
    u_r = 0.0 if span == 0 else (r - coord.r_min) / span
    return (u_theta, u_r) if coord.theta == "x" else (u_r, u_theta)


def map_position(coord: Coordinate, pos: Point2) -> Point2:
    """Map one unit-panel position into the final plane."""
    match coord:
        case Cartesian(flip=flip):
            x, y = float(pos[0]), float(pos[1])
            return (y, x) if flip else (x, y)
        case Polar():
            return _polar(coord, pos)
        case Custom():
            fx, fy = coord.forward(float(pos[0]), float(pos[1]))
            return (float(fx), float(fy))
        case _:
            raise TypeError(f"unknown coordinate system: {coord!r}")


def inverse(coord: Coordinate, pos: Point2) -> Point2:
    """
    Map a final-plane position back to unit-panel space.

    Polar angles wrap, so theta = 1 comes back as 0.

    Raises:
        SchemaError: For a Custom coordinate without a backward mapping.
    """
    match coord:
        case Cartesian(flip=flip):
            x, y = float(pos[0]), float(pos[1])
            return (y, x) if flip else (x, y)
        case Polar():
            return _polar_inverse(coord, pos)
        case Custom():
            if coord.backward is None:
                raise SchemaError("custom coordinate has no backward mapping")
            bx, by = coord.backward(float(pos[0]), float(pos[1]))
            return (float(bx), float(by))
        case _:
            raise TypeError(f"unknown coordinate system: {coord!r}")


def is_linear(coord: Coordinate) -> bool:
    match coord:
        case Cartesian():
            return True
        case Polar():
            return False
        case Custom():
            return coord.linear
        case _:
            raise TypeError(f"unknown coordinate system: {coord!r}")


def bounds(coord: Coordinate) -> tuple[tuple[float, float], tuple[float, float]] | None:
    """Final-plane extent of the unit panel, or None when it depends on the mapping."""
    match coord:
        case Cartesian():
            return ((0.0, 1.0), (0.0, 1.0))
        case Polar():
            return ((-coord.r_max, coord.r_max), (-coord.r_max, coord.r_max))
        case _:
            return None


def munch(positions: tuple[Point2, ...], closed: bool, segments: int) -> tuple[Point2, ...]:
    """
    Split each straight edge into ``segments`` equal steps.

    The closing edge of a closed primitive is included; its end point (the
    first vertex) is not repeated.
    """
    pts = list(positions)
    if len(pts) < 2 or segments <= 1:
        return tuple(pts)
    edges = list(zip(pts, pts[1:]))
    if closed:
        edges.append((pts[-1], pts[0]))
    out: list[Point2] = []
    for (x0, y0), (x1, y1) in edges:
        for k in range(segments):
            t = k / segments
            out.append((x0 + (x1 - x0) * t, y0 + (y1 - y0) * t))
    if not closed:
        out.append(pts[-1])
    return tuple(out)


def transform(coord: Coordinate, primitive: Primitive, *, segments: int = POLAR_SEGMENTS) -> Primitive:
    """
    Map every vertex of ``primitive`` into the final plane.

    Non-linear systems interpolate edges first; points are never interpolated.

    Raises:
        DomainError: If a polar input lies outside [0, 1].
    """
    positions = primitive.positions
    if primitive.kind != "point" and not is_linear(coord):
        positions = munch(positions, primitive.closed, segments)
    return primitive.with_positions(tuple(map_position(coord, p) for p in positions))
