"""
Geometry stage: turn unit-space rows into drawable primitives.

Responsibilities
- Declare which channels each geometry needs (``check_channels``).
- Report raw extents the geometry adds to scale domains, e.g. the zero
  baseline of bars (``extents``).
- Fill in derived unit-space positions before collision modifiers run, e.g.
  bar edges from the slot width (``setup``).
- Emit primitives (``render``).

Variants and their primitives
- Point: one point per row.
- Bar: one rect per row from (xmin, ymin) to (xmax, ymax), baseline at y = 0.
- Interval: one segment per row, vertical (x, ymin..ymax) or horizontal
  (y, xmin..xmax).
- Line: one polyline per group, sorted by x. Needs at least two rows.
- Path: one polyline per group in row order. Needs at least two rows.
- Polygon: one closed ring per group. Needs at least three rows.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

from .core.constants import BAR_WIDTH
from .core.errors import EmptyPanel, SchemaError, TypeMismatch
from .core.grammar import STYLE_CHANNELS, Channel, GeomKind, SemanticType
from .core.primitive import Primitive
from .core.table import Table
from .core.typing import Row, Unit
from .position import resolution, slot_extent
from .scales import ContinuousScale, Scales, Transform
from .stats import GROUP_COLUMN

__all__ = [
    "Point",
    "Bar",
    "Interval",
    "Line",
    "Path",
    "Polygon",
    "Geometry",
    "check_channels",
    "extents",
    "setup",
    "render",
    "geom_from_name",
]

logger = logging.getLogger(__name__)

X, Y = Channel.X.value, Channel.Y.value
XMIN, XMAX = Channel.XMIN.value, Channel.XMAX.value
YMIN, YMAX = Channel.YMIN.value, Channel.YMAX.value

_STYLE_KEYS: tuple[str, ...] = tuple(sorted(c.value for c in STYLE_CHANNELS)) + (
    Channel.LABEL.value,
)


@dataclass(frozen=True)
class Point:
    """Scatter marks."""


@dataclass(frozen=True)
class Bar:
    """
    Rectangles rising from the zero baseline.

    Attributes:
        width (float): Fraction of the x slot a bar occupies when the rows carry
            no explicit xmin/xmax.
    """

    width: float = BAR_WIDTH


@dataclass(frozen=True)
class Interval:
    """Range marks between ymin and ymax (or xmin and xmax)."""


@dataclass(frozen=True)
class Line:
    """Polyline per group connecting rows in x order."""


@dataclass(frozen=True)
class Path:
    """Polyline per group connecting rows in their original order."""


@dataclass(frozen=True)
class Polygon:
    """Closed ring per group."""


Geometry: TypeAlias = Point | Bar | Interval | Line | Path | Polygon

_GEOMS: dict[GeomKind, type] = {
    GeomKind.POINT: Point,
    GeomKind.BAR: Bar,
    GeomKind.INTERVAL: Interval,
    GeomKind.LINE: Line,
    GeomKind.PATH: Path,
    GeomKind.POLYGON: Polygon,
}

# Minimum rows per group for connected geometries.
_MIN_ROWS: dict[type, int] = {Line: 2, Path: 2, Polygon: 3}


def geom_from_name(kind: GeomKind | str, **params: Any) -> Geometry:
    """Build a geometry from its lower_snake name."""
    cls = _GEOMS[GeomKind(kind)]
    try:
        return cls(**params)
    except TypeError as exc:
        raise SchemaError(f"invalid parameters for geometry {kind!r}: {exc}") from None


def check_channels(geom: Geometry, names: Iterable[str]) -> None:
    """
    Validate that a layer table carries the channels ``geom`` needs.

    Raises:
        SchemaError: If a required channel is missing.
    """
    present = set(names)
    name = type(geom).__name__.lower()
    if isinstance(geom, Interval):
        if {X, YMIN, YMAX} <= present or {Y, XMIN, XMAX} <= present:
            return
        raise SchemaError("interval requires x, ymin, ymax or y, xmin, xmax")
    if isinstance(geom, Bar) and Y in present and (X in present or {XMIN, XMAX} <= present):
        return
    missing = [c for c in (X, Y) if c not in present]
    if missing:
        raise SchemaError(f"{name} requires channel(s) {missing!r}")


def extents(
    geom: Geometry, table: Table, *, transform: Transform | None = None
) -> dict[Channel, list[float]]:
    """
    Extra raw values the geometry contributes to scale domains.

    Bars add the zero baseline on y and, on a continuous x without explicit
    xmin/xmax, half a bar width beyond the outermost x values.

    Args:
        geom: Geometry variant.
        table: Statistic output for one panel.
        transform: Transform of the x scale.

    Raises:
        TypeMismatch: If a bar is drawn against a categorical y.
    """
    match geom:
        case Bar():
            if Y in table and table.semantic_of(Y) is not SemanticType.CONTINUOUS:
                raise TypeMismatch(f"bar requires a continuous 'y', got {table.semantic_of(Y).value}")
            out = {Channel.Y: [0.0]}
            if XMIN not in table or XMAX not in table:
                span = slot_extent(table, geom.width, transform)
                if span:
                    out[Channel.X] = span
            return out
        case Point() | Interval() | Line() | Path() | Polygon():
            return {}
        case _:
            raise TypeError(f"unknown geometry: {geom!r}")


def _bar_setup(geom: Bar, rows: list[Row], scales: Scales) -> list[Row]:
    y_scale = scales.get(Y)
    if not isinstance(y_scale, ContinuousScale):
        raise TypeMismatch("bar requires a continuous y scale")
    base = y_scale.resolve(0.0)
    half = geom.width * resolution(rows, scales) / 2
    for r in rows:
        if r.get(XMIN) is None or r.get(XMAX) is None:
            r[XMIN], r[XMAX] = Unit(float(r[X]) - half), Unit(float(r[X]) + half)
        r[YMIN] = base
        r[YMAX] = r[Y]
    return rows


def setup(geom: Geometry, rows: Sequence[Row], scales: Scales) -> list[Row]:
    """Copies of ``rows`` with the positions ``geom`` derives filled in."""
    out = [dict(r) for r in rows]
    if isinstance(geom, Bar) and out:
        return _bar_setup(geom, out, scales)
    return out


def _style(row: Row, params: Mapping[str, Any]) -> dict[str, Any]:
    style = {k: row[k] for k in _STYLE_KEYS if k in row}
    style.update(params)
    return style


def _by_group(rows: Sequence[Row]) -> dict[int, list[Row]]:
    groups: dict[int, list[Row]] = {}
    for r in rows:
        groups.setdefault(r.get(GROUP_COLUMN, 0), []).append(r)
    return groups


def _interval(row: Row) -> tuple[tuple[float, float], ...]:
    if row.get(YMIN) is not None and row.get(YMAX) is not None and row.get(X) is not None:
        return ((row[X], row[YMIN]), (row[X], row[YMAX]))
    return ((row[XMIN], row[Y]), (row[XMAX], row[Y]))


def render(
    geom: Geometry,
    rows: Sequence[Row],
    *,
    params: Mapping[str, Any] | None = None,
    layer: int = 0,
) -> list[Primitive]:
    """
    Emit primitives for one panel's unit-space rows.

    Args:
        geom: Geometry variant.
        rows: Rows after setup and collision adjustment.
        params: Constant style values set on the layer (override mapped ones).
        layer: Layer index recorded on each primitive.

    Raises:
        EmptyPanel: If a connected geometry has too few rows in a group.
    """
    params = dict(params or {})

    def prim(kind: str, positions, row: Row, closed: bool = False) -> Primitive:
        return Primitive(
            kind=kind,  # type: ignore[arg-type]
            positions=tuple(positions),
            style=_style(row, params),
            group=row.get(GROUP_COLUMN, 0),
            closed=closed,
            layer=layer,
        )

    match geom:
        case Point():
            return [prim("point", [(r[X], r[Y])], r) for r in rows]
        case Bar():
            return [
                prim(
                    "rect",
                    [(r[XMIN], r[YMIN]), (r[XMAX], r[YMIN]), (r[XMAX], r[YMAX]), (r[XMIN], r[YMAX])],
                    r,
                    closed=True,
                )
                for r in rows
            ]
        case Interval():
            return [prim("segment", _interval(r), r) for r in rows]
        case Line() | Path() | Polygon():
            minimum = _MIN_ROWS[type(geom)]
            kind = type(geom).__name__.lower()
            if not rows:
                raise EmptyPanel(f"{kind} requires at least {minimum} rows, got 0")
            out: list[Primitive] = []
            for group, members in _by_group(rows).items():
                if len(members) < minimum:
                    raise EmptyPanel(
                        f"{kind} requires at least {minimum} rows per group, "
                        f"group {group} has {len(members)}"
                    )
                if isinstance(geom, Line):
                    members = sorted(members, key=lambda r: float(r[X]))
                out.append(
                    prim(kind, [(r[X], r[Y]) for r in members], members[0], closed=isinstance(geom, Polygon))
                )
            return out
        case _:
            raise TypeError(f"unknown geometry: {geom!r}")
