import pytest

from gog import coords
from gog.canvas import CharCanvas, fit, render_panel
from gog.core.primitive import Primitive

UNIT = ((0.0, 1.0), (0.0, 1.0))


def _body(text: str) -> list[str]:
    return [line[1:-1] for line in text.splitlines()[1:-1]]


def test_point_at_centre() -> None:
    c = CharCanvas(5, 3, bounds=UNIT)
    c.draw(Primitive("point", ((0.5, 0.5),)))
    assert c.render().splitlines() == ["+-----+", "|     |", "|  o  |", "|     |", "+-----+"]


def test_points_drawn_over_lines() -> None:
    c = CharCanvas(5, 3, bounds=UNIT)
    c.draw_all(
        [
            Primitive("point", ((0.5, 0.5),)),
            Primitive("line", ((0.0, 0.5), (1.0, 0.5))),
        ]
    )
    assert _body(c.render())[1] == "..o.."


def test_closed_rect_outline() -> None:
    c = CharCanvas(4, 3, bounds=UNIT)
    c.draw(Primitive("rect", ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)), closed=True))
    assert _body(c.render()) == ["####", "#  #", "####"]


def test_glyph_choice() -> None:
    c = CharCanvas(3, 1, bounds=UNIT)
    c.draw(Primitive("point", ((0.0, 0.5),), style={"label": "Zed"}))
    c.draw(Primitive("point", ((0.5, 0.5),), style={"shape": 2}))
    c.draw(Primitive("point", ((1.0, 0.5),), style={"colour": 1}))
    assert _body(c.render()) == ["Z+*"]


def test_positions_outside_bounds_are_clipped() -> None:
    c = CharCanvas(3, 3, bounds=UNIT)
    c.draw(Primitive("point", ((2.0, 2.0),)))
    assert _body(c.render()) == ["   "] * 3


def test_fit() -> None:
    prims = [Primitive("point", ((1.0, -2.0),)), Primitive("line", ((3.0, 0.0), (-1.0, 4.0)))]
    assert fit(prims) == ((-1.0, 3.0), (-2.0, 4.0))
    assert fit([]) == UNIT


def test_render_panel_uses_coordinate_extent() -> None:
    text = render_panel([Primitive("point", ((0.0, 0.0),))], coords.Polar(), width=5, height=3)
    assert _body(text)[1] == "  o  "


def test_canvas_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        CharCanvas(0, 3)
