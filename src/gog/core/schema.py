"""
Pydantic v2 models for declarative plot files.

A PlotSpec describes a whole plot as plain data (JSON or TOML friendly):
aesthetic mapping, layers with statistic/geometry/position names and their
parameters, facets, coordinate system, scale overrides and sharing. Validators
normalize enum-like strings to canonical lower_snake using grammar helpers.
``gog.pipeline.request_from_spec`` turns a PlotSpec into a PlotRequest.

Responsibilities
- Define PlotSpec and its parts (VarModel, LayerModel, FacetTermModel,
  ScaleModel, CoordModel).
- Normalize names (stat/geom/position/coord/transform/sharing) to lower_snake.
- Enforce cross-field rules (e.g. polar radius bounds).

Style
- Zero-IO (stdlib + pydantic only).
- Channel names stay plain strings here; they are parsed when the request is
  built so an unknown channel surfaces as UnknownChannel.

Examples:
    >>> from gog.core.schema import PlotSpec
    >>> spec = PlotSpec.model_validate(
    ...     {"aesthetics": {"x": "cls", "y": "value"},
    ...      "layers": [{"geom": "bar", "stat": "aggregate", "stat_params": {"func": "sum"}}]}
    ... )
    >>> spec.layers[0].geom, spec.layers[0].position
    ('bar', 'identity')
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .grammar import (
    CoordKind,
    GeomKind,
    PositionKind,
    ScaleSharing,
    SemanticType,
    StatKind,
    TransformKind,
    is_lower_snake,
)

__all__ = [
    "VarModel",
    "LayerModel",
    "FacetTermModel",
    "ScaleModel",
    "CoordModel",
    "PlotSpec",
]


def _enum_value(v: Any, enum: type[Enum], what: str) -> str:
    """Canonical lower_snake value of ``enum`` named by ``v``."""
    if isinstance(v, enum):
        return v.value
    s = str(v or "").strip()
    if not is_lower_snake(s):
        raise ValueError(f"{what} must be lower_snake, got {v!r}")
    allowed = [m.value for m in enum]
    if s not in allowed:
        raise ValueError(f"unknown {what} {v!r} (allowed={allowed})")
    return s


class VarModel(BaseModel):
    """
    A variable: a column name, optionally derived by a SQL expression.

    Attributes:
        name (str): Column name or output name of the derived column.
        sql (str | None): Row-wise expression in Polars SQL syntax
            (e.g. ``"log10(value)"``).
        semantic (str | None): Semantic type override.
        levels (list | None): Explicit category order.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    sql: str | None = None
    semantic: str | None = None
    levels: list[Any] | None = None

    @field_validator("semantic", mode="before")
    @classmethod
    def _normalize_semantic(cls, v: Any) -> Any:
        return None if v is None else _enum_value(v, SemanticType, "semantic type")


AesValue = str | VarModel


class LayerModel(BaseModel):
    """
    One layer: statistic, geometry and collision modifier with parameters.

    Attributes:
        geom (str): Geometry name.
        stat (str): Statistic name.
        position (str): Collision modifier name.
        aesthetics (dict[str, str | VarModel]): Layer-specific mapping.
        inherit (bool): Start from the plot-level mapping.
        stat_params / geom_params / position_params (dict): Constructor
            parameters of the named variants.
        params (dict): Constant style values (e.g. ``{"colour": "red"}``).
    """

    model_config = ConfigDict(extra="forbid")

    geom: str
    stat: str = StatKind.IDENTITY.value
    position: str = PositionKind.IDENTITY.value
    aesthetics: dict[str, AesValue] = Field(default_factory=dict)
    inherit: bool = True
    stat_params: dict[str, Any] = Field(default_factory=dict)
    geom_params: dict[str, Any] = Field(default_factory=dict)
    position_params: dict[str, Any] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)

    @field_validator("geom", mode="before")
    @classmethod
    def _normalize_geom(cls, v: Any) -> str:
        return _enum_value(v, GeomKind, "geometry")

    @field_validator("stat", mode="before")
    @classmethod
    def _normalize_stat(cls, v: Any) -> str:
        return _enum_value(v, StatKind, "statistic")

    @field_validator("position", mode="before")
    @classmethod
    def _normalize_position(cls, v: Any) -> str:
        return _enum_value(v, PositionKind, "position")


class FacetTermModel(BaseModel):
    """Algebra term over facet variables: ``{"op": "cross", "a": "row", "b": "col"}``."""

    model_config = ConfigDict(extra="forbid")

    op: Literal["cross", "nest", "blend"]
    a: str | FacetTermModel
    b: str | FacetTermModel


class ScaleModel(BaseModel):
    """
    Overrides for one scale.

    Attributes:
        transform (str): Continuous transform name.
        domain (tuple[float, float] | None): Explicit raw domain.
        range (tuple[float, float]): Output range.
        levels (list | None): Explicit category order.
        closed (bool): Discrete categories at the range ends.
        expand (float): Fraction of the span added on each side.
    """

    model_config = ConfigDict(extra="forbid")

    transform: str = TransformKind.IDENTITY.value
    domain: tuple[float, float] | None = None
    range: tuple[float, float] = (0.0, 1.0)
    levels: list[Any] | None = None
    closed: bool = False
    expand: float = Field(default=0.0, ge=0.0)

    @field_validator("transform", mode="before")
    @classmethod
    def _normalize_transform(cls, v: Any) -> str:
        return _enum_value(v, TransformKind, "transform")

    @field_validator("domain")
    @classmethod
    def _check_domain(cls, v: tuple[float, float] | None) -> tuple[float, float] | None:
        if v is not None and v[0] > v[1]:
            raise ValueError(f"domain must be (min, max), got {v!r}")
        return v


class CoordModel(BaseModel):
    """Named coordinate system with its parameters."""

    model_config = ConfigDict(extra="forbid")

    kind: str = CoordKind.CARTESIAN.value
    flip: bool = False
    theta: Literal["x", "y"] = "x"
    r_min: float = Field(default=0.0, ge=0.0)
    r_max: float = Field(default=1.0, gt=0.0)
    start: float = 0.0
    clockwise: bool = False

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, v: Any) -> str:
        return _enum_value(v, CoordKind, "coordinate system")

    @model_validator(mode="after")
    def _check_radius(self) -> CoordModel:
        if self.r_max < self.r_min:
            raise ValueError(f"r_max ({self.r_max}) must be >= r_min ({self.r_min})")
        return self


class PlotSpec(BaseModel):
    """
    Declarative description of a plot.

    Attributes:
        aesthetics (dict[str, str | VarModel]): Plot-level mapping inherited by layers.
        layers (list[LayerModel]): At least one layer, drawn in order.
        facets (list[str | FacetTermModel]): Facet variables or algebra terms.
        coord (CoordModel): Coordinate system.
        scales (dict[str, ScaleModel]): Overrides keyed by scale name
            ("x", "y", "colour", ...).
        sharing (str | None): "fixed" or "free"; the configured default when None.
    """

    model_config = ConfigDict(extra="forbid")

    aesthetics: dict[str, AesValue] = Field(default_factory=dict)
    layers: list[LayerModel] = Field(min_length=1)
    facets: list[str | FacetTermModel] = Field(default_factory=list)
    coord: CoordModel = Field(default_factory=CoordModel)
    scales: dict[str, ScaleModel] = Field(default_factory=dict)
    sharing: str | None = None

    @field_validator("sharing", mode="before")
    @classmethod
    def _normalize_sharing(cls, v: Any) -> Any:
        return None if v is None else _enum_value(v, ScaleSharing, "scale sharing")
