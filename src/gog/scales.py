"""
Scale registry: map raw channel values onto the normalized unit range.

Two phases, kept apart by types:

1) Domain building. A mutable ScaleBuilder per scale accumulates the domain
   while every row destined for that scale is scanned (all panels sharing
   it, plus geometry and collision extents such as a bar baseline or stacked
   totals).
2) Resolution. ``ScaleBuilder.freeze()`` returns a frozen ContinuousScale,
   DiscreteScale or IdentityScale. Only frozen scales resolve values, so the
   domain cannot change mid-render.

Continuous scales apply a monotonic transform to the raw value, then map the
transformed [min, max] linearly onto the range (default [0, 1]). A degenerate
domain maps every value to the midpoint. Discrete scales place categories at
evenly spaced positions. ``closed=True`` puts the first and last category at
the range ends, otherwise categories sit at band centres.

Resolved values are ``Unit`` floats, and a Unit passed back in is returned
unchanged, so resolution is idempotent.

Examples:
    >>> from gog.core.table import Column
    >>> from gog.core.grammar import SemanticType
    >>> b = ScaleBuilder("x")
    >>> b.observe(Column("x", SemanticType.CONTINUOUS, (0, 10)))
    >>> s = b.freeze()
    >>> float(s.resolve(5)), float(s.resolve(s.resolve(5)))
    (0.5, 0.5)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from .core.errors import DomainError, TypeMismatch
from .core.grammar import (
    Channel,
    ScaleSharing,
    SemanticType,
    TransformKind,
    channel_from_value,
    scale_key,
    transform_from_value,
)
from .core.table import Column
from .core.typing import Unit, is_unit

__all__ = [
    "Transform",
    "ScaleSpec",
    "ScaleBuilder",
    "ContinuousScale",
    "DiscreteScale",
    "IdentityScale",
    "Scale",
    "Scales",
    "ScaleRegistry",
    "nice_ticks",
]

logger = logging.getLogger(__name__)


# ============================================================================
# Transforms
# ============================================================================


def _in(lo: float, hi: float, *, lo_open: bool = False, hi_open: bool = False):
    def check(v: float) -> bool:
        above = v > lo if lo_open else v >= lo
        below = v < hi if hi_open else v <= hi
        return above and below

    return check


_INF = math.inf

# kind -> (defined-at predicate, forward, inverse, description of the valid domain)
_TRANSFORMS: dict[TransformKind, tuple[Any, Any, Any, str]] = {
    TransformKind.IDENTITY: (_in(-_INF, _INF), lambda v: v, lambda t: t, "finite values"),
    TransformKind.LOG10: (_in(0, _INF, lo_open=True), math.log10, lambda t: 10**t, "x > 0"),
    TransformKind.LOG2: (_in(0, _INF, lo_open=True), math.log2, lambda t: 2**t, "x > 0"),
    TransformKind.LN: (_in(0, _INF, lo_open=True), math.log, math.exp, "x > 0"),
    TransformKind.SQRT: (_in(0, _INF), math.sqrt, lambda t: t * t, "x >= 0"),
    TransformKind.ARCSINE: (
        _in(0, 1),
        lambda v: math.asin(math.sqrt(v)),
        lambda t: math.sin(t) ** 2,
        "0 <= x <= 1",
    ),
    TransformKind.LOGIT: (
        _in(0, 1, lo_open=True, hi_open=True),
        lambda v: math.log(v / (1 - v)),
        lambda t: 1 / (1 + math.exp(-t)),
        "0 < x < 1",
    ),
    TransformKind.REVERSE: (_in(-_INF, _INF), lambda v: -v, lambda t: -t, "finite values"),
}


@dataclass(frozen=True)
class Transform:
    """
    Monotonic transform applied to raw values before linear mapping.

    Examples:
        >>> Transform(TransformKind.LOG10).forward(100, channel="y")
        2.0
    """

    kind: TransformKind = TransformKind.IDENTITY

    @property
    def is_identity(self) -> bool:
        return self.kind is TransformKind.IDENTITY

    def forward(self, value: Any, *, channel: str | None = None) -> float:
        """
        Transform a raw value.

        Raises:
            TypeMismatch: If the value is not numeric.
            DomainError: If the transform is undefined at the value (names the channel).
        """
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeMismatch(f"{channel or 'scale'}: continuous scale got non-numeric {value!r}")
        defined, fwd, _, valid = _TRANSFORMS[self.kind]
        v = float(value)
        if math.isnan(v) or math.isinf(v) or not defined(v):
            raise DomainError(
                f"{self.kind.value} transform undefined for {channel or 'scale'}={value!r} "
                f"(requires {valid})",
                channel=channel,
                value=value,
            )
        return float(fwd(v))

    def inverse(self, t: float) -> float:
        return float(_TRANSFORMS[self.kind][2](t))


# ============================================================================
# Frozen scales
# ============================================================================


def nice_ticks(lo: float, hi: float, n: int = 5) -> list[float]:
    """Roughly ``n`` round tick values inside [lo, hi]."""
    if hi < lo:
        lo, hi = hi, lo
    if hi == lo:
        return [lo]
    raw = (hi - lo) / max(n, 1)
    base = 10 ** math.floor(math.log10(raw))
    step = base * 10
    for m in (1, 2, 2.5, 5, 10):
        if raw <= base * m:
            step = base * m
            break
    ticks: list[float] = []
    v = math.ceil(lo / step - 1e-9) * step
    while v <= hi + step * 1e-9:
        ticks.append(round(v, 12))
        v += step
    return ticks


def _map_range(p: float, rng: tuple[float, float]) -> Unit:
    return Unit(rng[0] + p * (rng[1] - rng[0]))


@dataclass(frozen=True)
class ContinuousScale:
    """
    Frozen continuous scale.

    Attributes:
        name (str): Scale name ("x", "y", "colour", ...).
        domain (tuple[float, float]): Transformed-space (min, max).
        transform (Transform): Transform applied before the linear map.
        range (tuple[float, float]): Output range.
        limits (tuple[float, float] | None): Explicit raw domain; values outside raise.
    """

    name: str
    domain: tuple[float, float]
    transform: Transform = field(default_factory=Transform)
    range: tuple[float, float] = (0.0, 1.0)
    limits: tuple[float, float] | None = None

    @property
    def semantic(self) -> SemanticType:
        return SemanticType.CONTINUOUS

    @property
    def is_degenerate(self) -> bool:
        return self.domain[0] == self.domain[1]

    def resolve(self, value: Any) -> Unit:
        """
        Map a raw value to the range.

        Raises:
            DomainError: If the value is missing, outside explicit limits, or the
                transform is undefined there.
        """
        if is_unit(value):
            return value
        if value is None:
            raise DomainError(f"missing value for {self.name!r}", channel=self.name, value=None)
        t = self.transform.forward(value, channel=self.name)
        if self.limits is not None and not (self.limits[0] <= value <= self.limits[1]):
            raise DomainError(
                f"{self.name}={value!r} outside explicit domain {self.limits!r}",
                channel=self.name,
                value=value,
            )
        lo, hi = self.domain
        if lo == hi:
            return _map_range(0.5, self.range)
        return _map_range((t - lo) / (hi - lo), self.range)

    def invert(self, u: float) -> float:
        """Raw value that resolves to ``u``."""
        lo, hi = self.domain
        r0, r1 = self.range
        p = 0.5 if r1 == r0 else (u - r0) / (r1 - r0)
        return self.transform.inverse(lo + p * (hi - lo))

    def breaks(self, n: int = 5) -> list[tuple[float, Unit]]:
        """Round tick positions as (raw value, resolved position) pairs."""
        lo, hi = self.domain
        out: list[tuple[float, Unit]] = []
        for t in nice_ticks(lo, hi, n):
            raw = self.transform.inverse(t)
            p = 0.5 if hi == lo else (t - lo) / (hi - lo)
            out.append((raw, _map_range(p, self.range)))
        return out


@dataclass(frozen=True)
class DiscreteScale:
    """
    Frozen discrete scale.

    Attributes:
        name (str): Scale name.
        categories (tuple): Ordered category set.
        closed (bool): First/last category at the range ends (``i / (n - 1)``)
            instead of band centres (``(i + 0.5) / n``).
        range (tuple[float, float]): Output range.
    """

    name: str
    categories: tuple[Any, ...]
    closed: bool = False
    range: tuple[float, float] = (0.0, 1.0)

    @property
    def semantic(self) -> SemanticType:
        return SemanticType.DISCRETE

    def index(self, value: Any) -> int:
        """
        Category index of ``value``.

        Raises:
            DomainError: If the value is not a known category.
        """
        try:
            return self.categories.index(value)
        except ValueError:
            raise DomainError(
                f"{self.name}={value!r} not in categories {list(self.categories)!r}",
                channel=self.name,
                value=value,
            ) from None

    def position(self, i: int) -> Unit:
        n = len(self.categories)
        if n <= 1:
            return _map_range(0.5, self.range)
        p = i / (n - 1) if self.closed else (i + 0.5) / n
        return _map_range(p, self.range)

    def resolve(self, value: Any) -> Unit:
        if is_unit(value):
            return value
        return self.position(self.index(value))

    @property
    def slot_width(self) -> float:
        """Distance between neighbouring category positions."""
        n = len(self.categories)
        span = abs(self.range[1] - self.range[0])
        if n <= 1:
            return span
        return span / (n - 1) if self.closed else span / n

    def breaks(self, n: int | None = None) -> list[tuple[Any, Unit]]:
        return [(c, self.position(i)) for i, c in enumerate(self.categories)]

    def labels(self) -> list[str]:
        return [str(c) for c in self.categories]


@dataclass(frozen=True)
class IdentityScale:
    """Pass-through scale for text-like channels (label)."""

    name: str

    @property
    def semantic(self) -> None:
        return None

    def resolve(self, value: Any) -> Any:
        return value


Scale: TypeAlias = ContinuousScale | DiscreteScale | IdentityScale


# ============================================================================
# Overrides and builders
# ============================================================================


@dataclass(frozen=True)
class ScaleSpec:
    """
    Caller overrides for one scale.

    Attributes:
        transform (TransformKind | str): Continuous transform.
        domain (tuple[float, float] | None): Explicit raw domain (continuous).
        range (tuple[float, float]): Output range.
        levels (tuple | None): Explicit category order (discrete).
        closed (bool): Discrete placement (see DiscreteScale).
        expand (float): Fraction of the continuous domain span added on each side.
    """

    transform: TransformKind | str = TransformKind.IDENTITY
    domain: tuple[float, float] | None = None
    range: tuple[float, float] = (0.0, 1.0)
    levels: tuple[Any, ...] | None = None
    closed: bool = False
    expand: float = 0.0


class ScaleBuilder:
    """
    Mutable domain accumulator for one scale.

    ``observe`` may be called any number of times; ``freeze`` consumes the
    builder and returns the frozen scale. Observing after freezing raises.
    """

    def __init__(self, name: str, spec: ScaleSpec | None = None) -> None:
        self.name = name
        self.spec = spec or ScaleSpec()
        self.transform = Transform(transform_from_value(self.spec.transform))
        self.semantic: SemanticType | None = None
        self._lo: float | None = None
        self._hi: float | None = None
        self._categories: list[Any] = list(self.spec.levels or ())
        self._frozen = False

    def _check_open(self) -> None:
        if self._frozen:
            raise RuntimeError(f"scale {self.name!r} is frozen; domain can no longer change")

    def _set_semantic(self, semantic: SemanticType) -> None:
        if self.semantic is None:
            self.semantic = semantic
            return
        if self.semantic.is_categorical != semantic.is_categorical:
            raise TypeMismatch(
                f"scale {self.name!r} mixes {self.semantic.value} and {semantic.value} values"
            )

    def _extend(self, values: Iterable[Any]) -> None:
        for v in values:
            if v is None:
                continue
            if self.spec.domain is not None and not (self.spec.domain[0] <= v <= self.spec.domain[1]):
                raise DomainError(
                    f"{self.name}={v!r} outside explicit domain {tuple(self.spec.domain)!r}",
                    channel=self.name,
                    value=v,
                )
            t = self.transform.forward(v, channel=self.name)
            self._lo = t if self._lo is None else min(self._lo, t)
            self._hi = t if self._hi is None else max(self._hi, t)

    def observe(self, column: Column) -> None:
        """Grow the domain with every value of ``column``."""
        self._check_open()
        self._set_semantic(column.semantic)
        if column.semantic is SemanticType.CONTINUOUS:
            self._extend(column.values)
            return
        fixed = self.spec.levels is not None
        for c in column.categories():
            if c in self._categories:
                continue
            if fixed:
                raise DomainError(
                    f"{self.name}={c!r} not among explicit levels {list(self.spec.levels)!r}",
                    channel=self.name,
                    value=c,
                )
            self._categories.append(c)

    def observe_extent(self, values: Sequence[float]) -> None:
        """Grow a continuous domain with extra values (baselines, stacked totals)."""
        self._check_open()
        if self.semantic is not None and self.semantic.is_categorical:
            raise TypeMismatch(f"scale {self.name!r} is categorical; cannot extend with {values!r}")
        self._extend(values)

    def freeze(self) -> Scale:
        self._check_open()
        self._frozen = True
        rng = (float(self.spec.range[0]), float(self.spec.range[1]))
        categorical = (
            self.semantic.is_categorical
            if self.semantic is not None
            else self.spec.levels is not None
        )
        if categorical:
            return DiscreteScale(self.name, tuple(self._categories), self.spec.closed, rng)
        if self.spec.domain is not None:
            ends = [self.transform.forward(v, channel=self.name) for v in self.spec.domain]
            lo, hi = min(ends), max(ends)
        else:
            lo = 0.0 if self._lo is None else self._lo
            hi = 0.0 if self._hi is None else self._hi
        pad = (hi - lo) * self.spec.expand
        limits = tuple(self.spec.domain) if self.spec.domain is not None else None
        scale = ContinuousScale(self.name, (lo - pad, hi + pad), self.transform, rng, limits)
        logger.debug("scale %s: frozen domain %r", self.name, scale.domain)
        return scale


# ============================================================================
# Registry
# ============================================================================


@dataclass(frozen=True)
class Scales:
    """
    Frozen scales active for one panel.

    ``resolve(channel, value)`` routes through the channel's scale (xmin/xmax
    resolve on "x", ymin/ymax on "y").
    """

    scales: Mapping[str, Scale]

    def __getitem__(self, name: str) -> Scale:
        return self.scales[name]

    def __contains__(self, name: object) -> bool:
        return name in self.scales

    def get(self, name: str) -> Scale | None:
        return self.scales.get(name)

    def for_channel(self, channel: Channel) -> Scale:
        return self.scales[scale_key(channel)]

    def resolve(self, channel: Channel | str, value: Any) -> Any:
        return self.for_channel(channel_from_value(channel)).resolve(value)

    def style(self, channel: Channel, value: Any) -> Any:
        """Style value for a primitive: category index for discrete scales, else resolved."""
        scale = self.for_channel(channel)
        if isinstance(scale, DiscreteScale):
            return scale.index(value)
        return scale.resolve(value)


class ScaleRegistry:
    """
    Owner of every scale builder for one plot build.

    Position scales ("x"/"y") are per panel under ScaleSharing.FREE; every other
    scale is shared across panels.
    """

    def __init__(
        self,
        specs: Mapping[str, ScaleSpec] | None = None,
        sharing: ScaleSharing = ScaleSharing.FIXED,
    ) -> None:
        self.specs = dict(specs or {})
        self.sharing = sharing
        self._builders: dict[tuple[str, int | None], ScaleBuilder] = {}
        self._frozen: dict[tuple[str, int | None], Scale] | None = None

    def _slot(self, name: str, panel: int) -> tuple[str, int | None]:
        free = self.sharing is ScaleSharing.FREE and name in (Channel.X.value, Channel.Y.value)
        return (name, panel if free else None)

    def builder(self, channel: Channel, panel: int) -> ScaleBuilder:
        if self._frozen is not None:
            raise RuntimeError("scale registry is frozen")
        name = scale_key(channel)
        slot = self._slot(name, panel)
        if slot not in self._builders:
            self._builders[slot] = ScaleBuilder(name, self.specs.get(name))
        return self._builders[slot]

    def train(self, channel: Channel, column: Column, panel: int) -> None:
        if channel is Channel.LABEL:
            return
        self.builder(channel, panel).observe(column)

    def train_extent(self, channel: Channel, values: Sequence[float], panel: int) -> None:
        self.builder(channel, panel).observe_extent(values)

    def freeze(self) -> None:
        """Close pass 1: freeze every builder. No domain changes after this point."""
        if self._frozen is None:
            self._frozen = {slot: b.freeze() for slot, b in self._builders.items()}

    def for_panel(self, panel: int) -> Scales:
        if self._frozen is None:
            raise RuntimeError("scales must be frozen before resolution")
        out: dict[str, Scale] = {Channel.LABEL.value: IdentityScale(Channel.LABEL.value)}
        for (name, owner), scale in self._frozen.items():
            if owner is None or owner == panel:
                out[name] = scale
        return Scales(out)
