"""
Layered grammar of graphics: turn a typed table plus a declarative mapping into
positioned, renderable primitives.

## Stages
- algebra: Cross/Nest/Blend terms combine variables into grouping keys.
- facet: split a table into panels by key.
- stats: per-group summaries on raw values (identity, count, bin, aggregate,
  density, smooth).
- scales: two-phase scale registry mapping raw values into [0, 1].
- geoms / position: primitives per row or group, plus collision modifiers.
- coords: cartesian, polar and custom coordinate systems.
- pipeline: orchestrates one build and emits rendered panels.

## Examples
```python
from gog import Aes, plot, geoms, stats
from gog.core.table import Table

t = Table.from_dict({"cls": ["A", "B", "A"], "value": [1, 2, 3]})
result = plot(t, Aes.of(x="cls", y="value"), geoms.Bar(), stat=stats.Aggregate("sum"))
[p.positions for p in result.panels[0].primitives]
```
"""

from __future__ import annotations

from . import algebra, coords, facet, geoms, position, scales, stats
from .config import GogSettings
from .core.errors import (
    DomainError,
    EmptyPanel,
    IncompatibleAlgebra,
    PlotError,
    SchemaError,
    TypeMismatch,
    UnknownChannel,
)
from .core.table import Table, Var
from .pipeline import Aes, Layer, PlotRequest, PlotResult, RenderedPanel, build, plot

__all__ = [
    "algebra",
    "coords",
    "facet",
    "geoms",
    "position",
    "scales",
    "stats",
    "GogSettings",
    "Table",
    "Var",
    "Aes",
    "Layer",
    "PlotRequest",
    "PlotResult",
    "RenderedPanel",
    "build",
    "plot",
    "PlotError",
    "SchemaError",
    "UnknownChannel",
    "TypeMismatch",
    "DomainError",
    "EmptyPanel",
    "IncompatibleAlgebra",
]
