"""
Facet splitter: partition a table into independent panels.

One panel per distinct grouping key, in first-seen key order. Panels with no
rows are never emitted. Rows inside a panel keep their original order because
path and line geometries depend on it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .algebra import Grouping
from .core.errors import SchemaError
from .core.table import Table
from .core.typing import GroupKey

__all__ = ["Panel", "split"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Panel:
    """
    One facet's worth of rows.

    Attributes:
        index (int): Position of the panel in output order.
        key (GroupKey): Facet key shared by every row of the panel.
        table (Table): The panel's rows (same columns and semantics as the source).
        rows (tuple[int, ...]): Source row indices, in order.
    """

    index: int
    key: GroupKey
    table: Table
    rows: tuple[int, ...]

    @property
    def height(self) -> int:
        return len(self.rows)


def split(table: Table, grouping: Grouping) -> list[Panel]:
    """
    Split ``table`` by ``grouping`` keys.

    Raises:
        SchemaError: If the grouping was computed for a table of another height.
    """
    if len(grouping) != table.height:
        raise SchemaError(
            f"grouping has {len(grouping)} keys but table has {table.height} rows"
        )
    members: dict[GroupKey, list[int]] = {}
    for i, key in enumerate(grouping.keys):
        members.setdefault(key, []).append(i)
    panels = [
        Panel(index=n, key=key, table=table.take(idx), rows=tuple(idx))
        for n, (key, idx) in enumerate(members.items())
    ]
    logger.debug("facet: %d row(s) -> %d panel(s)", table.height, len(panels))
    return panels
