"""
Minimal abstract canvas: draw final-plane primitives on a character grid.

This is an inspection aid, not a rendering backend. It knows nothing about
themes, legends or axes. Points become glyphs, connected primitives become
dotted outlines.

Glyphs
- point: first character of its label when labelled, otherwise a glyph chosen
  by the shape (or colour) category index.
- line, path: "."
- polygon, rect: "#"
- segment: "|"

Examples:
    >>> from gog.core.primitive import Primitive
    >>> c = CharCanvas(5, 3, bounds=((0.0, 1.0), (0.0, 1.0)))
    >>> c.draw(Primitive("point", ((0.5, 0.5),)))
    >>> print(c.render())
    +-----+
    |     |
    |  o  |
    |     |
    +-----+
"""

from __future__ import annotations

from collections.abc import Iterable

from .coords import Coordinate, bounds
from .core.constants import CANVAS_HEIGHT, CANVAS_WIDTH
from .core.primitive import Primitive
from .core.typing import Point2

__all__ = ["CharCanvas", "fit", "render_panel"]

Bounds = tuple[tuple[float, float], tuple[float, float]]

GLYPHS = "o*+x@%&$"
_STROKES = {"line": ".", "path": ".", "polygon": "#", "rect": "#", "segment": "|"}


def fit(primitives: Iterable[Primitive]) -> Bounds:
    """Bounding box of every vertex (unit box when there are none)."""
    xs: list[float] = []
    ys: list[float] = []
    for prim in primitives:
        for x, y in prim.positions:
            xs.append(float(x))
            ys.append(float(y))
    if not xs:
        return ((0.0, 1.0), (0.0, 1.0))
    return ((min(xs), max(xs)), (min(ys), max(ys)))


def _glyph(prim: Primitive) -> str:
    label = prim.style.get("label")
    if isinstance(label, str) and label:
        return label[0]
    for key in ("shape", "colour"):
        value = prim.style.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return GLYPHS[value % len(GLYPHS)]
    return GLYPHS[0]


class CharCanvas:
    """
    Character grid addressed in final-plane coordinates.

    Args:
        width: Columns.
        height: Rows.
        bounds: ((xmin, xmax), (ymin, ymax)) mapped onto the grid; when None it
            is fitted on the first ``draw_all``.
    """

    def __init__(
        self,
        width: int = CANVAS_WIDTH,
        height: int = CANVAS_HEIGHT,
        bounds: Bounds | None = None,
    ) -> None:
        if width < 1 or height < 1:
            raise ValueError(f"canvas must be at least 1x1, got {width}x{height}")
        self.width = width
        self.height = height
        self.bounds = bounds
        self._grid = [[" "] * width for _ in range(height)]

    def _cell(self, pos: Point2) -> tuple[int, int] | None:
        (x0, x1), (y0, y1) = self.bounds or ((0.0, 1.0), (0.0, 1.0))
        fx = 0.5 if x1 == x0 else (float(pos[0]) - x0) / (x1 - x0)
        fy = 0.5 if y1 == y0 else (float(pos[1]) - y0) / (y1 - y0)
        col = round(fx * (self.width - 1))
        row = self.height - 1 - round(fy * (self.height - 1))
        if 0 <= col < self.width and 0 <= row < self.height:
            return col, row
        return None

    def put(self, pos: Point2, ch: str) -> None:
        cell = self._cell(pos)
        if cell is not None:
            self._grid[cell[1]][cell[0]] = ch

    def stroke(self, a: Point2, b: Point2, ch: str) -> None:
        """Draw a straight run of ``ch`` between two plane positions."""
        ca, cb = self._cell(a), self._cell(b)
        if ca is None or cb is None:
            # Clip by sampling in plane space instead of cell space.
            for k in range(65):
                t = k / 64
                self.put((a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t), ch)
            return
        steps = max(abs(cb[0] - ca[0]), abs(cb[1] - ca[1]), 1)
        for k in range(steps + 1):
            t = k / steps
            col = round(ca[0] + (cb[0] - ca[0]) * t)
            row = round(ca[1] + (cb[1] - ca[1]) * t)
            self._grid[row][col] = ch

    def draw(self, prim: Primitive) -> None:
        if prim.kind == "point":
            for pos in prim.positions:
                self.put(pos, _glyph(prim))
            return
        ch = _STROKES[prim.kind]
        pts = list(prim.positions)
        pairs = list(zip(pts, pts[1:]))
        if prim.closed and len(pts) > 2:
            pairs.append((pts[-1], pts[0]))
        for a, b in pairs:
            self.stroke(a, b, ch)

    def draw_all(self, primitives: Iterable[Primitive]) -> None:
        """Draw outlines first and points last so marks stay visible."""
        prims = list(primitives)
        if self.bounds is None:
            self.bounds = fit(prims)
        for prim in sorted(prims, key=lambda p: p.kind == "point"):
            self.draw(prim)

    def render(self) -> str:
        edge = "+" + "-" * self.width + "+"
        body = ["|" + "".join(row) + "|" for row in self._grid]
        return "\n".join([edge, *body, edge])


def render_panel(
    primitives: Iterable[Primitive],
    coord: Coordinate,
    width: int = CANVAS_WIDTH,
    height: int = CANVAS_HEIGHT,
) -> str:
    """Draw one panel's primitives using the coordinate system's plane extent."""
    canvas = CharCanvas(width, height, bounds=bounds(coord))
    canvas.draw_all(primitives)
    return canvas.render()
