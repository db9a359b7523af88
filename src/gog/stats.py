"""
Statistic engine: per-group summaries computed on raw, pre-scale values.

Statistics are a closed set of frozen variants dispatched by ``apply``. Each
receives a layer table whose columns are channel names plus the internal
``GROUP_COLUMN``, and returns a new layer table. Group-defining channels
(categorical colour/fill/shape/... and group) are carried onto every output row.

Variants
- Identity: pass-through.
- Count: one row per distinct x with y = count (or summed weight).
- Bin: fixed-count or fixed-width buckets over continuous x. Buckets are
  half-open [lo, hi) except the last, which is closed. One row per non-empty
  bucket with x (midpoint), xmin, xmax and y = count.
- Aggregate: group by every non-target channel and reduce the target.
- Density: Gaussian kernel density estimate of continuous x.
- Smooth: ordinary least squares fit of y on x.

Raises
- TypeMismatch when a channel has the wrong semantic type (e.g. binning a
  discrete x).
- EmptyPanel when Density/Smooth see fewer than two observations in a group.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, TypeAlias

import polars as pl

from .config import GogSettings
from .core.errors import EmptyPanel, SchemaError, TypeMismatch
from .core.grammar import (
    GROUPING_CHANNELS,
    AggregateFunc,
    Channel,
    SemanticType,
    aggregate_from_value,
)
from .core.table import Table

__all__ = [
    "GROUP_COLUMN",
    "Identity",
    "Count",
    "Bin",
    "Aggregate",
    "Density",
    "Smooth",
    "Statistic",
    "apply",
    "bin_edges",
    "shared_bin_edges",
]

logger = logging.getLogger(__name__)

# Internal column holding the within-panel group id.
GROUP_COLUMN = "__group__"

X, Y = Channel.X.value, Channel.Y.value
XMIN, XMAX = Channel.XMIN.value, Channel.XMAX.value
WEIGHT = Channel.WEIGHT.value


@dataclass(frozen=True)
class Identity:
    """Pass rows through unchanged."""


@dataclass(frozen=True)
class Count:
    """Count rows per distinct x value (exact values, any semantic type)."""


@dataclass(frozen=True)
class Bin:
    """
    Bucket a continuous x.

    Attributes:
        bins (int | None): Number of equal-width buckets over the panel's x range.
        binwidth (float | None): Fixed bucket width; takes precedence over bins.
        boundary (float | None): An edge the fixed-width grid is aligned to.
    """

    bins: int | None = None
    binwidth: float | None = None
    boundary: float | None = None


@dataclass(frozen=True)
class Aggregate:
    """Reduce ``target`` over rows sharing every other channel value."""

    func: AggregateFunc | str = AggregateFunc.SUM
    target: str = Y


@dataclass(frozen=True)
class Density:
    """Kernel density of x; ``adjust`` multiplies the Silverman bandwidth."""

    points: int | None = None
    bandwidth: float | None = None
    adjust: float = 1.0


@dataclass(frozen=True)
class Smooth:
    """Least squares line of y on x, evaluated at ``points`` evenly spaced x values."""

    points: int | None = None


Statistic: TypeAlias = Identity | Count | Bin | Aggregate | Density | Smooth


# ----------------------------
# Helpers
# ----------------------------


def _require_continuous(table: Table, channel: str, stat: str) -> None:
    if channel not in table:
        raise SchemaError(f"{stat} requires the {channel!r} channel to be mapped")
    sem = table.semantic_of(channel)
    if sem is not SemanticType.CONTINUOUS:
        raise TypeMismatch(f"{stat} requires a continuous {channel!r}, got {sem.value}")


def _carried(table: Table) -> list[str]:
    """Columns constant within a group: the group id plus categorical grouping channels."""
    cols = [GROUP_COLUMN] if GROUP_COLUMN in table else []
    for ch in GROUPING_CHANNELS:
        name = ch.value
        if name in table and table.semantic_of(name).is_categorical:
            cols.append(name)
    return cols


def _groups(table: Table) -> list[pl.DataFrame]:
    if GROUP_COLUMN not in table or table.height == 0:
        return [table.frame]
    return table.frame.partition_by(GROUP_COLUMN, maintain_order=True)


def _weights(frame: pl.DataFrame) -> list[float]:
    if WEIGHT not in frame.columns:
        return [1.0] * frame.height
    return [0.0 if w is None else float(w) for w in frame.get_column(WEIGHT).to_list()]


def _drop_missing(frame: pl.DataFrame, columns: list[str], stat: str) -> pl.DataFrame:
    kept = frame.drop_nulls(subset=columns)
    if kept.height != frame.height:
        logger.warning("%s: removed %d row(s) with missing %s", stat, frame.height - kept.height, columns)
    return kept


def _build(
    source: Table,
    carried: list[str],
    records: list[dict[str, Any]],
    outputs: dict[str, SemanticType],
) -> Table:
    """Assemble an output layer table with carried columns keeping their source dtypes."""
    schema: dict[str, Any] = {c: source.frame.schema[c] for c in carried}
    for name, sem in outputs.items():
        if name in carried:
            continue
        schema[name] = pl.Float64 if sem is SemanticType.CONTINUOUS else source.frame.schema[name]
    frame = pl.DataFrame(
        {name: [r.get(name) for r in records] for name in schema}, schema=schema, strict=False
    )
    semantics = {c: source.semantics[c] for c in carried}
    semantics.update({k: v for k, v in outputs.items() if k not in carried})
    levels = {k: v for k, v in source.levels.items() if k in schema and k not in outputs}
    if X in outputs and X in source.levels:
        levels[X] = source.levels[X]
    return Table.from_frame(frame, semantics=semantics, levels=levels)


def bin_edges(values: list[float], stat: Bin, default_bins: int) -> list[float]:
    """
    Bucket edges covering ``values``.

    Returns:
        list[float]: Ascending edges; bucket i is [edges[i], edges[i+1]).
    """
    lo, hi = min(values), max(values)
    if stat.binwidth is not None:
        if stat.binwidth <= 0:
            raise SchemaError(f"binwidth must be positive, got {stat.binwidth}")
        width = float(stat.binwidth)
        start = lo
        if stat.boundary is not None:
            start = lo - ((lo - stat.boundary) % width)
        n = max(1, math.ceil((hi - start) / width))
        if start + n * width < hi:
            n += 1
        return [start + i * width for i in range(n + 1)]
    bins = stat.bins if stat.bins is not None else default_bins
    if bins < 1:
        raise SchemaError(f"bins must be >= 1, got {bins}")
    if lo == hi:
        lo, hi = lo - 0.5, hi + 0.5
    width = (hi - lo) / bins
    return [lo + i * width for i in range(bins)] + [hi]


def shared_bin_edges(
    tables: Iterable[Table], stat: Bin, settings: GogSettings | None = None
) -> list[float] | None:
    """
    Bucket edges covering the x values of every table, so panels bin alike.

    Returns:
        list[float] | None: Edges, or None when no table has an x value.
    """
    settings = settings or GogSettings()
    values: list[float] = []
    for table in tables:
        _require_continuous(table, X, "bin")
        values.extend(float(v) for v in table.frame.get_column(X).to_list() if v is not None)
    if not values:
        return None
    return bin_edges(values, stat, settings.bins)

def _bucket(value: float, edges: list[float]) -> int:
    n = len(edges) - 1
    width = edges[1] - edges[0]
    idx = int((value - edges[0]) // width)
    # Last bucket is closed on the right.
    return min(max(idx, 0), n - 1)


def _silverman(xs: list[float]) -> float:
    s = pl.Series(xs, dtype=pl.Float64)
    sd = float(s.std() or 0.0)
    q1 = float(s.quantile(0.25, interpolation="linear") or 0.0)
    q3 = float(s.quantile(0.75, interpolation="linear") or 0.0)
    spread = min(sd, (q3 - q1) / 1.34)
    if spread <= 0:
        spread = sd or abs(xs[0]) or 1.0
    return 0.9 * spread * len(xs) ** -0.2


def _grid(lo: float, hi: float, points: int) -> list[float]:
    if points < 2:
        raise SchemaError(f"points must be >= 2, got {points}")
    step = (hi - lo) / (points - 1)
    return [lo + i * step for i in range(points)]


# ----------------------------
# Variants
# ----------------------------


def _count(table: Table) -> Table:
    if X not in table:
        raise SchemaError("count requires the 'x' channel to be mapped")
    carried = _carried(table)
    frame = _drop_missing(table.frame, [X], "count")
    records: list[dict[str, Any]] = []
    for group in _groups(Table(frame, dict(table.semantics), dict(table.levels))):
        totals: dict[Any, float] = {}
        for xv, w in zip(group.get_column(X).to_list(), _weights(group)):
            totals[xv] = totals.get(xv, 0.0) + w
        base = {c: group.get_column(c)[0] for c in carried} if group.height else {}
        records.extend({**base, X: xv, Y: total} for xv, total in totals.items())
    return _build(
        table,
        carried,
        records,
        {X: table.semantic_of(X), Y: SemanticType.CONTINUOUS},
    )


def _bin(
    table: Table, stat: Bin, settings: GogSettings, edges: Sequence[float] | None = None
) -> Table:
    _require_continuous(table, X, "bin")
    if WEIGHT in table and table.semantic_of(WEIGHT) is not SemanticType.CONTINUOUS:
        raise TypeMismatch("bin requires a continuous 'weight'")
    carried = _carried(table)
    frame = _drop_missing(table.frame, [X], "bin")
    outputs = {
        X: SemanticType.CONTINUOUS,
        XMIN: SemanticType.CONTINUOUS,
        XMAX: SemanticType.CONTINUOUS,
        Y: SemanticType.CONTINUOUS,
    }
    if frame.height == 0:
        return _build(table, carried, [], outputs)
    if edges is None:
        edges = bin_edges([float(v) for v in frame.get_column(X).to_list()], stat, settings.bins)
    edges = list(edges)
    records: list[dict[str, Any]] = []
    for group in _groups(Table(frame, dict(table.semantics), dict(table.levels))):
        counts: dict[int, float] = {}
        for xv, w in zip(group.get_column(X).to_list(), _weights(group)):
            idx = _bucket(float(xv), edges)
            counts[idx] = counts.get(idx, 0.0) + w
        base = {c: group.get_column(c)[0] for c in carried}
        for idx in sorted(counts):
            lo, hi = edges[idx], edges[idx + 1]
            records.append({**base, X: (lo + hi) / 2, XMIN: lo, XMAX: hi, Y: counts[idx]})
    logger.debug("bin: %d bucket(s), %d non-empty row(s)", len(edges) - 1, len(records))
    return _build(table, carried, records, outputs)


_REDUCERS = {
    AggregateFunc.SUM: lambda c: pl.col(c).sum(),
    AggregateFunc.MEAN: lambda c: pl.col(c).mean(),
    AggregateFunc.MEDIAN: lambda c: pl.col(c).median(),
    AggregateFunc.MIN: lambda c: pl.col(c).min(),
    AggregateFunc.MAX: lambda c: pl.col(c).max(),
    AggregateFunc.COUNT: lambda c: pl.col(c).count(),
}


def _aggregate(table: Table, stat: Aggregate) -> Table:
    func = aggregate_from_value(stat.func)
    target = stat.target
    if target not in table:
        raise SchemaError(f"aggregate target {target!r} is not mapped")
    if func is not AggregateFunc.COUNT:
        _require_continuous(table, target, f"aggregate({func.value})")
    keys = [c for c in table.names if c != target]
    if keys:
        out = table.frame.group_by(keys, maintain_order=True).agg(
            _REDUCERS[func](target).cast(pl.Float64)
        )
    else:
        out = table.frame.select(_REDUCERS[func](target).cast(pl.Float64))
    semantics = {k: table.semantics[k] for k in keys}
    semantics[target] = SemanticType.CONTINUOUS
    levels = {k: v for k, v in table.levels.items() if k in keys}
    return Table.from_frame(out.select(table.names), semantics=semantics, levels=levels)


def _density(table: Table, stat: Density, settings: GogSettings) -> Table:
    _require_continuous(table, X, "density")
    if stat.bandwidth is not None and stat.bandwidth <= 0:
        raise SchemaError(f"density bandwidth must be positive, got {stat.bandwidth}")
    if stat.adjust <= 0:
        raise SchemaError(f"density adjust must be positive, got {stat.adjust}")
    carried = _carried(table)
    frame = _drop_missing(table.frame, [X], "density")
    outputs = {X: SemanticType.CONTINUOUS, Y: SemanticType.CONTINUOUS}
    if frame.height == 0:
        raise EmptyPanel("density requires at least two observations")
    all_x = [float(v) for v in frame.get_column(X).to_list()]
    lo, hi = min(all_x), max(all_x)
    points = stat.points or settings.density_points
    records: list[dict[str, Any]] = []
    for group in _groups(Table(frame, dict(table.semantics), dict(table.levels))):
        xs = [float(v) for v in group.get_column(X).to_list()]
        if len(xs) < 2:
            raise EmptyPanel(f"density requires at least two observations per group, got {len(xs)}")
        weights = _weights(group)
        total = sum(weights) or 1.0
        bw = (stat.bandwidth if stat.bandwidth is not None else _silverman(xs)) * stat.adjust
        glo, ghi = (lo, hi) if hi > lo else (lo - 3 * bw, hi + 3 * bw)
        norm = 1.0 / (bw * math.sqrt(2 * math.pi))
        base = {c: group.get_column(c)[0] for c in carried}
        for g in _grid(glo, ghi, points):
            dens = sum(w * math.exp(-0.5 * ((g - xi) / bw) ** 2) for xi, w in zip(xs, weights))
            records.append({**base, X: g, Y: dens * norm / total})
    return _build(table, carried, records, outputs)


def _smooth(table: Table, stat: Smooth, settings: GogSettings) -> Table:
    _require_continuous(table, X, "smooth")
    _require_continuous(table, Y, "smooth")
    carried = _carried(table)
    frame = _drop_missing(table.frame, [X, Y], "smooth")
    points = stat.points or settings.smooth_points
    records: list[dict[str, Any]] = []
    for group in _groups(Table(frame, dict(table.semantics), dict(table.levels))):
        xs = [float(v) for v in group.get_column(X).to_list()]
        ys = [float(v) for v in group.get_column(Y).to_list()]
        if len(set(xs)) < 2:
            raise EmptyPanel("smooth requires at least two distinct x values per group")
        mx, my = sum(xs) / len(xs), sum(ys) / len(ys)
        sxx = sum((x - mx) ** 2 for x in xs)
        sxy = sum((x - mx) * (y - my) for x, y in zip(xs, ys))
        slope = sxy / sxx
        intercept = my - slope * mx
        base = {c: group.get_column(c)[0] for c in carried}
        for g in _grid(min(xs), max(xs), points):
            records.append({**base, X: g, Y: intercept + slope * g})
    return _build(table, carried, records, {X: SemanticType.CONTINUOUS, Y: SemanticType.CONTINUOUS})


def apply(
    stat: Statistic,
    table: Table,
    settings: GogSettings | None = None,
    *,
    edges: Sequence[float] | None = None,
) -> Table:
    """
    Apply ``stat`` to a layer table.

    Args:
        stat: Statistic variant.
        table: Layer table (channel-named columns, raw values).
        settings: Defaults for bins and evaluation grids (GogSettings() when None).
        edges: Bucket edges for ``Bin``, computed from ``table`` when None.

    Returns:
        Table: Output rows with raw (pre-scale) values.
    """
    settings = settings or GogSettings()
    match stat:
        case Identity():
            return table
        case Count():
            return _count(table)
        case Bin():
            return _bin(table, stat, settings, edges)
        case Aggregate():
            return _aggregate(table, stat)
        case Density():
            return _density(table, stat, settings)
        case Smooth():
            return _smooth(table, stat, settings)
        case _:
            raise TypeError(f"unknown statistic: {stat!r}")
