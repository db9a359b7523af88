"""
Drawable primitive handed from the geometry stage to coordinates and renderers.

A primitive carries positions (unit-panel space before the coordinate stage,
final-plane space after it), resolved style values and the within-panel group
it was drawn for. Primitives are immutable. Stages derive new ones with
``with_positions``.

Kinds
- point: one position.
- line, path: an open polyline (line is sorted by x, path keeps row order).
- polygon: a closed ring; the first position is not repeated at the end.
- rect: four corners, closed.
- segment: two positions.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Literal

from .typing import Point2

__all__ = ["Primitive", "PrimitiveKind"]

PrimitiveKind = Literal["point", "line", "path", "polygon", "rect", "segment"]


@dataclass(frozen=True)
class Primitive:
    """
    Attributes:
        kind (PrimitiveKind): Shape of the primitive.
        positions (tuple[Point2, ...]): Vertices in drawing order.
        style (Mapping[str, Any]): Style channel -> resolved value (plus label text
            and constant layer parameters).
        group (int): Within-panel group id.
        closed (bool): Whether the last vertex connects back to the first.
        layer (int): Index of the layer that produced the primitive.
    """

    kind: PrimitiveKind
    positions: tuple[Point2, ...]
    style: Mapping[str, Any] = field(default_factory=dict)
    group: int = 0
    closed: bool = False
    layer: int = 0

    def with_positions(self, positions: tuple[Point2, ...]) -> Primitive:
        return replace(self, positions=positions)

    def __len__(self) -> int:
        return len(self.positions)
