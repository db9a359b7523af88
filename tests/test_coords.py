import math

import pytest

from gog import coords
from gog.core.errors import DomainError, SchemaError
from gog.core.primitive import Primitive
from gog.scales import DiscreteScale


def test_polar_cardinal_points() -> None:
    polar = coords.Polar()
    assert coords.map_position(polar, (0.0, 1.0)) == pytest.approx((1.0, 0.0))
    assert coords.map_position(polar, (0.25, 1.0)) == pytest.approx((0.0, 1.0), abs=1e-12)
    assert coords.map_position(polar, (0.5, 0.5)) == pytest.approx((-0.5, 0.0), abs=1e-12)


def test_polar_wraps_closed_discrete_domain() -> None:
    theta = DiscreteScale("x", ("mon", "tue", "wed", "thu"), closed=True)
    polar = coords.Polar()
    first = coords.map_position(polar, (theta.resolve("mon"), 1.0))
    last = coords.map_position(polar, (theta.resolve("thu"), 1.0))
    assert first == pytest.approx(last, abs=1e-12)


def test_polar_options() -> None:
    cw = coords.Polar(clockwise=True)
    assert coords.map_position(cw, (0.25, 1.0)) == pytest.approx((0.0, -1.0), abs=1e-12)
    ring = coords.Polar(r_min=0.5, r_max=2.0)
    assert coords.map_position(ring, (0.0, 0.0)) == pytest.approx((0.5, 0.0))
    assert coords.map_position(ring, (0.0, 1.0)) == pytest.approx((2.0, 0.0))
    on_y = coords.Polar(theta="y")
    assert coords.map_position(on_y, (1.0, 0.25)) == pytest.approx((0.0, 1.0), abs=1e-12)
    rotated = coords.Polar(start=math.pi / 2)
    assert coords.map_position(rotated, (0.0, 1.0)) == pytest.approx((0.0, 1.0), abs=1e-12)


@pytest.mark.parametrize("pos", [(-0.1, 0.5), (0.5, 1.2)])
def test_polar_rejects_positions_outside_unit_square(pos) -> None:
    with pytest.raises(DomainError):
        coords.map_position(coords.Polar(), pos)


def test_polar_rejects_bad_parameters() -> None:
    with pytest.raises(ValueError):
        coords.Polar(theta="z")  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        coords.Polar(r_min=2.0, r_max=1.0)


@pytest.mark.parametrize(
    "coord",
    [
        coords.Cartesian(),
        coords.Cartesian(flip=True),
        coords.Polar(),
        coords.Polar(theta="y", clockwise=True, start=1.0, r_min=0.2),
    ],
)
def test_inverse_round_trips(coord) -> None:
    for pos in [(0.1, 0.3), (0.6, 0.9), (0.75, 0.5)]:
        assert coords.inverse(coord, coords.map_position(coord, pos)) == pytest.approx(pos)


def test_cartesian_flip_swaps_axes() -> None:
    assert coords.map_position(coords.Cartesian(flip=True), (0.2, 0.7)) == (0.7, 0.2)


def test_custom_coordinate() -> None:
    scale2 = coords.Custom(
        forward=lambda x, y: (2 * x, 2 * y), backward=lambda x, y: (x / 2, y / 2), linear=True
    )
    assert coords.map_position(scale2, (0.25, 0.5)) == (0.5, 1.0)
    assert coords.inverse(scale2, (0.5, 1.0)) == (0.25, 0.5)
    with pytest.raises(SchemaError, match="backward"):
        coords.inverse(coords.Custom(forward=lambda x, y: (x, y)), (0.0, 0.0))


def test_munch_open_and_closed() -> None:
    open_line = coords.munch(((0.0, 0.0), (1.0, 0.0)), closed=False, segments=4)
    assert [x for x, _ in open_line] == [0.0, 0.25, 0.5, 0.75, 1.0]
    ring = coords.munch(((0.0, 0.0), (1.0, 0.0), (1.0, 1.0)), closed=True, segments=4)
    assert len(ring) == 12
    assert ring[0] == (0.0, 0.0)


def test_transform_munches_only_nonlinear_edges() -> None:
    line = Primitive("line", ((0.0, 1.0), (0.5, 1.0)))
    point = Primitive("point", ((0.0, 1.0),))
    curved = coords.transform(coords.Polar(), line, segments=8)
    assert len(curved.positions) == 9
    # every interpolated vertex stays on the unit circle
    assert all(math.hypot(x, y) == pytest.approx(1.0) for x, y in curved.positions)
    assert len(coords.transform(coords.Polar(), point, segments=8).positions) == 1
    straight = coords.transform(coords.Cartesian(), line, segments=8)
    assert straight.positions == line.positions


def test_bounds() -> None:
    assert coords.bounds(coords.Cartesian()) == ((0.0, 1.0), (0.0, 1.0))
    assert coords.bounds(coords.Polar(r_max=2.0)) == ((-2.0, 2.0), (-2.0, 2.0))
    assert coords.bounds(coords.Custom(forward=lambda x, y: (x, y))) is None
