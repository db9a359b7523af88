"""
Core package aggregator for gog contracts (grammar, tables, errors, schemas, primitives).

## Contracts (single source of truth)
- Grammar: channels, semantic types, transforms and layer component names.
- Tables: immutable Polars-backed Table, Column and Var.
- Errors: PlotError hierarchy shared by every stage.
- Schemas: pydantic models for declarative plot files.
- Primitives: the drawable output of the geometry stage.

## Notes
- Zero-IO policy: stdlib, polars and pydantic only; no file/network IO.
- Naming policy: enum `.value`, channel and column names are lower_snake.
- Stages (algebra, stats, scales, geoms, coords, facet, pipeline) depend on
  core; core never imports a stage.

## Examples
```python
from gog.core.grammar import Channel, channel_from_value
channel_from_value("color") == Channel.COLOUR  # True

from gog.core.table import Table
t = Table.from_dict({"cls": ["A", "B"], "value": [1.0, 2.0]})
t.semantic_of("cls").value  # 'discrete'
```
"""
