"""
Pipeline orchestrator: run the stages in order and emit rendered panels.

Flow for one build:

1) Bind every layer's aesthetic mapping against the table (derived variables
   are evaluated here, before any stage runs) and number the within-panel
   groups.
2) Split the table into panels with the facet algebra.
3) Per (layer, panel): drop rows with missing positions, apply the statistic
   and check that its output carries the channels the geometry needs. Binned
   layers under fixed sharing use one set of bucket edges for every panel.
4) Pass 1: train the scale registry on every statistic output, plus geometry
   and collision extents. Then freeze it. This is the shared-scale barrier.
5) Pass 2, per panel: resolve rows through the frozen scales, run geometry
   setup, the collision modifier and rendering, then map every primitive
   through the coordinate system.

Panels are independent after the barrier. With ``GogSettings.workers > 1``
they are rendered on a thread pool. Output order is always panel order.

Any PlotError aborts the build; no partial result is returned.

Examples:
    >>> from gog.core.table import Table
    >>> from gog.pipeline import Aes, plot
    >>> from gog import geoms, stats
    >>> t = Table.from_dict({"cls": ["A", "B", "A", "B", "A"], "value": [1, 2, 3, 3, 0]})
    >>> result = plot(t, Aes.of(x="cls", y="value"), geoms.Bar(), stat=stats.Aggregate("sum"))
    >>> len(result.panels[0].primitives)
    2
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

import polars as pl

from . import algebra, coords, facet, geoms, stats
from . import position as collision
from .config import GogSettings
from .core.errors import SchemaError
from .core.grammar import (
    GROUPING_CHANNELS,
    POSITION_CHANNELS,
    STYLE_CHANNELS,
    UNSCALED_CHANNELS,
    Channel,
    ScaleSharing,
    SemanticType,
    channel_from_value,
)
from .core.primitive import Primitive
from .core.schema import FacetTermModel, LayerModel, PlotSpec, VarModel
from .core.table import Column, Table, Var, as_var
from .core.typing import GroupKey, Row
from .scales import ScaleRegistry, Scales, ScaleSpec

__all__ = [
    "Aes",
    "Layer",
    "PlotRequest",
    "RenderedPanel",
    "PlotResult",
    "bind",
    "build",
    "plot",
    "request_from_spec",
]

logger = logging.getLogger(__name__)

# Rows missing any of these are dropped before the statistic.
_POSITION_NAMES: tuple[str, ...] = tuple(
    c.value
    for c in (Channel.X, Channel.Y, Channel.XMIN, Channel.XMAX, Channel.YMIN, Channel.YMAX)
)


# ============================================================================
# Request / result types
# ============================================================================


@dataclass(frozen=True, eq=False)
class Aes:
    """
    Aesthetic mapping: channel -> variable.

    Build with ``Aes.of(x="col", colour=Var(...))`` or ``Aes.from_pairs``.
    Unknown channel names raise UnknownChannel; a channel given twice
    (including ``color`` next to ``colour``) raises SchemaError.
    """

    channels: Mapping[Channel, Var] = field(default_factory=dict)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str | Channel, Var | str]]) -> Aes:
        out: dict[Channel, Var] = {}
        for name, var in pairs:
            ch = channel_from_value(name)
            if ch in out:
                raise SchemaError(f"channel {ch.value!r} mapped more than once")
            out[ch] = as_var(var)
        return cls(out)

    @classmethod
    def of(cls, **channels: Var | str) -> Aes:
        return cls.from_pairs(channels.items())

    def merge(self, other: Aes | None) -> Aes:
        """Channels of ``self`` overridden by those of ``other``."""
        if other is None:
            return self
        return Aes({**self.channels, **other.channels})

    def __contains__(self, channel: object) -> bool:
        return channel in self.channels

    def __len__(self) -> int:
        return len(self.channels)


@dataclass(frozen=True, eq=False)
class Layer:
    """
    One statistic -> geometry -> collision chain.

    Attributes:
        geom (geoms.Geometry): Geometry variant.
        stat (stats.Statistic): Statistic variant.
        position (collision.Modifier): Collision modifier.
        mapping (Aes | None): Layer mapping, merged over the request mapping.
        params (Mapping[str, Any]): Constant style values for every primitive.
        inherit (bool): Whether the request mapping applies to this layer.
    """

    geom: geoms.Geometry
    stat: stats.Statistic = field(default_factory=stats.Identity)
    position: collision.Modifier = field(default_factory=collision.Identity)
    mapping: Aes | None = None
    params: Mapping[str, Any] = field(default_factory=dict)
    inherit: bool = True


@dataclass(frozen=True, eq=False)
class PlotRequest:
    """
    Everything a build needs.

    Attributes:
        table (Table): Source data.
        mapping (Aes): Plot-level mapping.
        layers (Sequence[Layer]): Layers, drawn in order.
        facets (Sequence): Algebra terms (or variable names) splitting panels.
        coord (coords.Coordinate): Coordinate system.
        scales (Mapping[str, ScaleSpec]): Overrides by scale name.
        sharing (ScaleSharing | None): Position scale sharing; settings default when None.
    """

    table: Table
    mapping: Aes
    layers: Sequence[Layer]
    facets: Sequence[algebra.Term | Var | str] = ()
    coord: coords.Coordinate = field(default_factory=coords.Cartesian)
    scales: Mapping[str, ScaleSpec] = field(default_factory=dict)
    sharing: ScaleSharing | None = None


@dataclass(frozen=True, eq=False)
class RenderedPanel:
    """
    One panel of output.

    Attributes:
        index (int): Panel position.
        key (GroupKey): Facet key (``()`` when not faceted).
        primitives (tuple[Primitive, ...]): Final-plane primitives, layer by layer.
        scales (Scales): Frozen scales used for the panel.
    """

    index: int
    key: GroupKey
    primitives: tuple[Primitive, ...]
    scales: Scales


@dataclass(frozen=True, eq=False)
class PlotResult:
    """Rendered panels in facet order, plus the facet variable names."""

    panels: tuple[RenderedPanel, ...]
    facet_names: tuple[str, ...] = ()
    coord: coords.Coordinate = field(default_factory=coords.Cartesian)

    def __len__(self) -> int:
        return len(self.panels)


# ============================================================================
# Binding
# ============================================================================


def bind(table: Table, mapping: Aes) -> Table:
    """
    Evaluate ``mapping`` against ``table`` into a layer table.

    Columns are named by channel. The internal group column numbers the
    combinations of grouping variables (explicit group plus categorical
    colour/fill/shape/alpha/size) in first-seen order.
    """
    columns = [
        Column(ch.value, c.semantic, c.values, c.levels)
        for ch, c in ((ch, var.evaluate(table)) for ch, var in mapping.channels.items())
    ]
    bound = Table.from_columns(columns) if columns else table.select([])
    grouping_vars = [
        ch.value
        for ch in GROUPING_CHANNELS
        if ch in mapping and (ch is Channel.GROUP or bound.semantic_of(ch.value).is_categorical)
    ]
    grouping = algebra.combine(grouping_vars, bound)
    ids: dict[GroupKey, int] = {}
    values = tuple(ids.setdefault(key, len(ids)) for key in grouping.keys)
    return bound.with_column(Column(stats.GROUP_COLUMN, SemanticType.DISCRETE, values))


def _drop_missing_positions(table: Table, layer: int) -> Table:
    present = [n for n in _POSITION_NAMES if n in table]
    if not present:
        return table
    kept = table.frame.drop_nulls(subset=present)
    if kept.height == table.height:
        return table
    logger.warning(
        "layer %d: removed %d row(s) with missing %s", layer, table.height - kept.height, present
    )
    return Table(kept, dict(table.semantics), dict(table.levels))


# ============================================================================
# Passes
# ============================================================================


def _train(registry: ScaleRegistry, layer: Layer, table: Table, panel: int) -> None:
    for name in table.names:
        if name == stats.GROUP_COLUMN:
            continue
        ch = channel_from_value(name)
        if ch in UNSCALED_CHANNELS:
            continue
        registry.train(ch, table.column(name), panel)
    transform = registry.builder(Channel.X, panel).transform if Channel.X.value in table else None
    for source in (
        geoms.extents(layer.geom, table, transform=transform),
        collision.extents(layer.position, table, transform=transform),
    ):
        for ch, values in source.items():
            registry.train_extent(ch, values, panel)


def _resolve_rows(table: Table, scales: Scales) -> list[Row]:
    rows: list[Row] = []
    for raw in table.rows():
        row: Row = {}
        for name, value in raw.items():
            if name == stats.GROUP_COLUMN:
                row[name] = value
                continue
            ch = channel_from_value(name)
            if ch in POSITION_CHANNELS:
                row[name] = scales.resolve(ch, value)
            elif ch in STYLE_CHANNELS:
                row[name] = None if value is None else scales.style(ch, value)
            elif ch is Channel.LABEL:
                row[name] = scales.resolve(ch, value)
        rows.append(row)
    return rows


def build(request: PlotRequest, settings: GogSettings | None = None) -> PlotResult:
    """
    Run the full pipeline.

    Args:
        request: Plot request.
        settings: Runtime settings (GogSettings() when None).

    Returns:
        PlotResult: One RenderedPanel per facet key, in first-seen order.

    Raises:
        PlotError: Any stage failure (UnknownChannel, TypeMismatch, DomainError,
            EmptyPanel, IncompatibleAlgebra, SchemaError).
    """
    settings = settings or GogSettings()
    if not request.layers:
        raise SchemaError("a plot needs at least one layer")
    table = request.table
    grouping = algebra.combine(list(request.facets), table)
    panels = facet.split(table, grouping)
    sharing = request.sharing or settings.scale_sharing
    logger.debug(
        "build: %d layer(s), %d panel(s), sharing=%s", len(request.layers), len(panels), sharing.value
    )

    # Statistic outputs per layer, per panel.
    computed: list[list[Table]] = []
    for li, layer in enumerate(request.layers):
        mapping = request.mapping.merge(layer.mapping) if layer.inherit else (layer.mapping or Aes())
        if not mapping.channels:
            raise SchemaError(f"layer {li} maps no channels")
        bound = bind(table, mapping)
        parts = [_drop_missing_positions(bound.take(p.rows), li) for p in panels]
        edges = None
        if isinstance(layer.stat, stats.Bin) and sharing is ScaleSharing.FIXED:
            edges = stats.shared_bin_edges(parts, layer.stat, settings)
        per_panel: list[Table] = []
        for part in parts:
            out = stats.apply(layer.stat, part, settings, edges=edges)
            geoms.check_channels(layer.geom, out.names)
            per_panel.append(out)
        computed.append(per_panel)

    registry = ScaleRegistry(request.scales, sharing)
    for layer, per_panel in zip(request.layers, computed):
        for p, out in zip(panels, per_panel):
            _train(registry, layer, out, p.index)
    registry.freeze()

    def render_panel(p: facet.Panel) -> RenderedPanel:
        scales = registry.for_panel(p.index)
        primitives: list[Primitive] = []
        for li, (layer, per_panel) in enumerate(zip(request.layers, computed)):
            rows = _resolve_rows(per_panel[p.index], scales)
            rows = geoms.setup(layer.geom, rows, scales)
            rows = collision.adjust(layer.position, rows, scales, seed=settings.jitter_seed)
            for prim in geoms.render(layer.geom, rows, params=layer.params, layer=li):
                primitives.append(
                    coords.transform(request.coord, prim, segments=settings.polar_segments)
                )
        logger.debug("panel %d %r: %d primitive(s)", p.index, p.key, len(primitives))
        return RenderedPanel(index=p.index, key=p.key, primitives=tuple(primitives), scales=scales)

    if settings.workers > 1 and len(panels) > 1:
        with ThreadPoolExecutor(max_workers=settings.workers) as pool:
            rendered = list(pool.map(render_panel, panels))
    else:
        rendered = [render_panel(p) for p in panels]
    return PlotResult(panels=tuple(rendered), facet_names=grouping.names, coord=request.coord)


def plot(
    table: Table,
    mapping: Aes,
    geom: geoms.Geometry,
    *,
    stat: stats.Statistic | None = None,
    position: collision.Modifier | None = None,
    facets: Sequence[algebra.Term | Var | str] = (),
    coord: coords.Coordinate | None = None,
    scales: Mapping[str, ScaleSpec] | None = None,
    sharing: ScaleSharing | None = None,
    settings: GogSettings | None = None,
) -> PlotResult:
    """Single-layer convenience around ``build``."""
    layer = Layer(
        geom=geom,
        stat=stat if stat is not None else stats.Identity(),
        position=position if position is not None else collision.Identity(),
    )
    request = PlotRequest(
        table=table,
        mapping=mapping,
        layers=[layer],
        facets=facets,
        coord=coord if coord is not None else coords.Cartesian(),
        scales=scales or {},
        sharing=sharing,
    )
    return build(request, settings)


# ============================================================================
# Declarative plot files
# ============================================================================


def _sql_expr(name: str, sql: str) -> pl.Expr:
    try:
        return pl.sql_expr(sql)
    except pl.exceptions.PolarsError as exc:
        raise SchemaError(f"invalid sql for variable {name!r}: {exc}") from exc


def _var_from_model(value: str | VarModel) -> Var:
    if isinstance(value, str):
        return Var(value)
    return Var(
        value.name,
        expr=_sql_expr(value.name, value.sql) if value.sql is not None else None,
        semantic=value.semantic,
        levels=tuple(value.levels) if value.levels is not None else None,
    )


def _aes_from_model(aesthetics: Mapping[str, str | VarModel]) -> Aes:
    return Aes.from_pairs((name, _var_from_model(v)) for name, v in aesthetics.items())


def _term_from_model(term: str | FacetTermModel) -> algebra.Term | Var:
    if isinstance(term, str):
        return Var(term)
    ops = {"cross": algebra.Cross, "nest": algebra.Nest, "blend": algebra.Blend}
    return ops[term.op](_term_from_model(term.a), _term_from_model(term.b))


_STATS: dict[str, type] = {
    "identity": stats.Identity,
    "count": stats.Count,
    "bin": stats.Bin,
    "aggregate": stats.Aggregate,
    "density": stats.Density,
    "smooth": stats.Smooth,
}


def _layer_from_model(model: LayerModel) -> Layer:
    try:
        stat = _STATS[model.stat](**model.stat_params)
    except TypeError as exc:
        raise SchemaError(f"invalid parameters for statistic {model.stat!r}: {exc}") from None
    return Layer(
        geom=geoms.geom_from_name(model.geom, **model.geom_params),
        stat=stat,
        position=collision.modifier_from_name(model.position, **model.position_params),
        mapping=_aes_from_model(model.aesthetics) if model.aesthetics else None,
        params=dict(model.params),
        inherit=model.inherit,
    )


def request_from_spec(spec: PlotSpec, table: Table) -> PlotRequest:
    """
    Build a PlotRequest from a validated PlotSpec.

    Raises:
        UnknownChannel: If an aesthetic or scale names an unknown channel.
        SchemaError: If variant parameters are invalid.
    """
    scales: dict[str, ScaleSpec] = {}
    for name, model in spec.scales.items():
        ch = channel_from_value(name)
        scales[ch.value] = ScaleSpec(
            transform=model.transform,
            domain=model.domain,
            range=model.range,
            levels=tuple(model.levels) if model.levels is not None else None,
            closed=model.closed,
            expand=model.expand,
        )
    c = spec.coord
    if c.kind == "polar":
        coord = coords.coord_from_name(
            c.kind, theta=c.theta, r_min=c.r_min, r_max=c.r_max, start=c.start, clockwise=c.clockwise
        )
    else:
        coord = coords.coord_from_name(c.kind, flip=c.flip)
    return PlotRequest(
        table=table,
        mapping=_aes_from_model(spec.aesthetics),
        layers=[_layer_from_model(layer) for layer in spec.layers],
        facets=[_term_from_model(t) for t in spec.facets],
        coord=coord,
        scales=scales,
        sharing=ScaleSharing(spec.sharing) if spec.sharing is not None else None,
    )
