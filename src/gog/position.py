"""
Collision modifiers: adjust overlapping geometry inside one panel.

Modifiers run after the statistic and the geometry setup, on rows whose
positions are already in unit-panel space. Rows occupy the same slot when they
share an x position.

Variants
- Identity: no adjustment.
- Stack: cumulative y offsets per slot, in group order. Positive and negative
  heights stack separately from the zero baseline. Total height per slot is
  preserved.
- Dodge: split the slot width evenly between the groups present in the slot.
- Jitter: seeded random offsets, clamped to the panel.

Stacking changes how tall a slot gets, so ``extents`` reports the stacked raw
totals during scale training. The y scale must be continuous with the identity
transform for those totals to stay linear.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

from .core.constants import BAR_WIDTH, JITTER_SEED, JITTER_WIDTH, UNIT_TOLERANCE
from .core.errors import SchemaError, TypeMismatch
from .core.grammar import Channel, PositionKind, SemanticType
from .core.table import Table
from .core.typing import Row, Unit
from .scales import ContinuousScale, DiscreteScale, Scales, Transform
from .stats import GROUP_COLUMN

__all__ = [
    "Identity",
    "Stack",
    "Dodge",
    "Jitter",
    "Modifier",
    "adjust",
    "extents",
    "resolution",
    "modifier_from_name",
    "slot_extent",
]

logger = logging.getLogger(__name__)

X, Y = Channel.X.value, Channel.Y.value
XMIN, XMAX = Channel.XMIN.value, Channel.XMAX.value
YMIN, YMAX = Channel.YMIN.value, Channel.YMAX.value


@dataclass(frozen=True)
class Identity:
    """Leave positions as they are."""


@dataclass(frozen=True)
class Stack:
    """Stack y within each x slot."""


@dataclass(frozen=True)
class Dodge:
    """
    Place groups side by side within each x slot.

    Attributes:
        width (float | None): Total dodge width as a fraction of the x slot.
            Defaults to the row's own xmin/xmax, else the bar width.
    """

    width: float | None = None


@dataclass(frozen=True)
class Jitter:
    """
    Random offsets to reduce overplotting.

    Attributes:
        width (float): Maximum absolute x offset (unit-panel space).
        height (float): Maximum absolute y offset (unit-panel space).
        seed (int | None): RNG seed; the configured default seed when None.
    """

    width: float = JITTER_WIDTH
    height: float = 0.0
    seed: int | None = None


Modifier: TypeAlias = Identity | Stack | Dodge | Jitter

_MODIFIERS: dict[PositionKind, type] = {
    PositionKind.IDENTITY: Identity,
    PositionKind.STACK: Stack,
    PositionKind.DODGE: Dodge,
    PositionKind.JITTER: Jitter,
}


def modifier_from_name(kind: PositionKind | str, **params: Any) -> Modifier:
    """
    Build a modifier from its lower_snake name.

    Examples:
        >>> modifier_from_name("dodge", width=0.5)
        Dodge(width=0.5)
    """
    cls = _MODIFIERS[PositionKind(kind)]
    try:
        return cls(**params)
    except TypeError as exc:
        raise SchemaError(f"invalid parameters for position {kind!r}: {exc}") from None


# ----------------------------
# Helpers
# ----------------------------


def resolution(rows: Sequence[Row], scales: Scales) -> float:
    """
    Width of one x slot in unit-panel space.

    Discrete x: the distance between neighbouring categories. Continuous x: the
    smallest gap between distinct x positions in ``rows``. With fewer than two
    distinct positions, one transformed unit of the x scale (1.0 when the
    domain is degenerate), the same fallback ``slot_extent`` uses.
    """
    x_scale = scales.get(X)
    if isinstance(x_scale, DiscreteScale):
        return x_scale.slot_width
    xs = sorted({float(r[X]) for r in rows if r.get(X) is not None})
    gaps = [b - a for a, b in zip(xs, xs[1:]) if b - a > UNIT_TOLERANCE]
    if gaps:
        return min(gaps)
    if isinstance(x_scale, ContinuousScale) and not x_scale.is_degenerate:
        lo, hi = x_scale.domain
        return abs(x_scale.range[1] - x_scale.range[0]) / (hi - lo)
    return 1.0


def _slots(rows: Sequence[Row]) -> dict[Any, list[int]]:
    """Row indices sharing an x position, in first-seen slot order."""
    slots: dict[Any, list[int]] = {}
    for i, r in enumerate(rows):
        xv = r.get(X)
        key = None if xv is None else round(float(xv), 9)
        slots.setdefault(key, []).append(i)
    return slots


def _clamp(v: float) -> Unit:
    return Unit(min(1.0, max(0.0, v)))


# ----------------------------
# Pass 1: raw extents
# ----------------------------


def _preimage(tf: Transform, t: float, fallback: float) -> float:
    v = tf.inverse(t)
    if abs(tf.forward(v, channel=X) - t) > UNIT_TOLERANCE:
        return tf.inverse(fallback)
    return v


def slot_extent(table: Table, width: float, transform: Transform | None = None) -> list[float]:
    """
    Raw x values ``width`` slots wide around the outermost continuous x.

    Training these into the x domain keeps marks drawn at
    ``x ± width * resolution / 2`` inside the panel. The resolution is the
    smallest gap between distinct x values in transformed space (1.0 with
    fewer than two), matching ``resolution`` after the scale maps it. An end
    whose padded value has no preimage under the transform stays unpadded.

    Returns:
        list[float]: ``[low, high]``, or ``[]`` when x is missing or categorical.

    Examples:
        >>> t = Table.from_dict({"x": [1, 2, 3]})
        >>> [round(v, 6) for v in slot_extent(t, 0.9)]
        [0.55, 3.45]
    """
    if X not in table or table.semantic_of(X) is not SemanticType.CONTINUOUS:
        return []
    tf = transform or Transform()
    ts = sorted(
        {tf.forward(v, channel=X) for v in table.frame.get_column(X).to_list() if v is not None}
    )
    if not ts:
        return []
    gaps = [b - a for a, b in zip(ts, ts[1:]) if b - a > UNIT_TOLERANCE]
    half = width * (min(gaps) if gaps else 1.0) / 2
    return [_preimage(tf, ts[0] - half, ts[0]), _preimage(tf, ts[-1] + half, ts[-1])]


def _stack_extent(table: Table) -> dict[Channel, list[float]]:
    if Y not in table:
        raise SchemaError("stack requires the 'y' channel to be mapped")
    if table.semantic_of(Y) is not SemanticType.CONTINUOUS:
        raise TypeMismatch(f"stack requires a continuous 'y', got {table.semantic_of(Y).value}")
    ys = table.frame.get_column(Y).to_list()
    xs = table.frame.get_column(X).to_list() if X in table else [None] * len(ys)
    up: dict[Any, float] = {}
    down: dict[Any, float] = {}
    for xv, yv in zip(xs, ys):
        if yv is None:
            continue
        side = up if yv >= 0 else down
        side[xv] = side.get(xv, 0.0) + float(yv)
    return {Channel.Y: [0.0, *up.values(), *down.values()]}


def extents(
    modifier: Modifier, table: Table, *, transform: Transform | None = None
) -> dict[Channel, list[float]]:
    """
    Extra raw values the modifier contributes to scale domains.

    Args:
        modifier: Collision modifier.
        table: Statistic output for one panel.
        transform: Transform of the x scale, for dodge slot extents.
    """
    match modifier:
        case Stack():
            return _stack_extent(table)
        case Dodge():
            width = modifier.width if modifier.width is not None else BAR_WIDTH
            span = slot_extent(table, width, transform)
            return {Channel.X: span} if span else {}
        case Identity() | Jitter():
            return {}
        case _:
            raise TypeError(f"unknown position modifier: {modifier!r}")


# ----------------------------
# Pass 2: unit-space adjustment
# ----------------------------


def _stack(rows: list[Row], scales: Scales) -> list[Row]:
    y_scale = scales.get(Y)
    if not isinstance(y_scale, ContinuousScale) or not y_scale.transform.is_identity:
        raise TypeMismatch("stack requires a continuous y scale with the identity transform")
    base = float(y_scale.resolve(0.0))
    for members in _slots(rows).values():
        up = down = base
        for i in sorted(members, key=lambda j: rows[j].get(GROUP_COLUMN, 0)):
            r = rows[i]
            if r.get(Y) is None:
                raise SchemaError("stack requires a y value on every row")
            h = float(r[Y]) - float(r.get(YMIN, base))
            if h >= 0:
                lo, hi = up, up + h
                up = hi
                r[Y] = Unit(hi)
            else:
                lo, hi = down + h, down
                down = lo
                r[Y] = Unit(lo)
            r[YMIN], r[YMAX] = Unit(lo), Unit(hi)
    return rows


def _dodge(modifier: Dodge, rows: list[Row], scales: Scales) -> list[Row]:
    width = (modifier.width if modifier.width is not None else BAR_WIDTH) * resolution(rows, scales)
    for members in _slots(rows).values():
        groups = sorted({rows[i].get(GROUP_COLUMN, 0) for i in members})
        n = len(groups)
        for i in members:
            r = rows[i]
            lo, hi = r.get(XMIN), r.get(XMAX)
            if lo is None or hi is None or modifier.width is not None:
                lo, hi = float(r[X]) - width / 2, float(r[X]) + width / 2
            w = (float(hi) - float(lo)) / n
            start = float(lo) + groups.index(r.get(GROUP_COLUMN, 0)) * w
            r[XMIN], r[XMAX], r[X] = Unit(start), Unit(start + w), Unit(start + w / 2)
    return rows


def _jitter(modifier: Jitter, rows: list[Row], seed: int) -> list[Row]:
    rng = random.Random(modifier.seed if modifier.seed is not None else seed)
    for r in rows:
        dx = rng.uniform(-modifier.width, modifier.width) if modifier.width else 0.0
        dy = rng.uniform(-modifier.height, modifier.height) if modifier.height else 0.0
        for key, delta in ((X, dx), (XMIN, dx), (XMAX, dx), (Y, dy), (YMIN, dy), (YMAX, dy)):
            if r.get(key) is not None and delta:
                r[key] = _clamp(float(r[key]) + delta)
    return rows


def adjust(
    modifier: Modifier,
    rows: Sequence[Row],
    scales: Scales,
    *,
    seed: int = JITTER_SEED,
) -> list[Row]:
    """
    Apply ``modifier`` to unit-space rows.

    Args:
        modifier: Collision modifier.
        rows: Rows after geometry setup (not mutated).
        scales: Frozen scales of the panel.
        seed: Jitter seed used when the modifier carries none.

    Returns:
        list[Row]: Adjusted copies of ``rows``, same order.
    """
    out = [dict(r) for r in rows]
    if not out:
        return out
    match modifier:
        case Identity():
            return out
        case Stack():
            return _stack(out, scales)
        case Dodge():
            return _dodge(modifier, out, scales)
        case Jitter():
            return _jitter(modifier, out, seed)
        case _:
            raise TypeError(f"unknown position modifier: {modifier!r}")
