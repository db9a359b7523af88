import logging
import math

import pytest

from gog import stats
from gog.config import GogSettings
from gog.core.errors import EmptyPanel, SchemaError, TypeMismatch
from gog.core.grammar import SemanticType
from gog.core.table import Table
from gog.stats import GROUP_COLUMN


def _layer(data: dict, **semantics: str) -> Table:
    return Table.from_dict(data, semantics=semantics or None)


def test_aggregate_sum_by_class() -> None:
    t = _layer({"x": ["A", "A", "B"], "y": [1, 3, 5]})
    out = stats.apply(stats.Aggregate("sum"), t)
    assert list(out.rows()) == [{"x": "A", "y": 4.0}, {"x": "B", "y": 5.0}]
    assert out.semantic_of("y") is SemanticType.CONTINUOUS
    assert out.semantic_of("x") is SemanticType.DISCRETE


@pytest.mark.parametrize(
    ("func", "expected"),
    [("mean", [2.0, 5.0]), ("median", [2.0, 5.0]), ("min", [1.0, 5.0]), ("max", [3.0, 5.0])],
)
def test_aggregate_reducers(func: str, expected: list[float]) -> None:
    t = _layer({"x": ["A", "A", "B"], "y": [1, 3, 5]})
    out = stats.apply(stats.Aggregate(func), t)
    assert out.column("y").values == tuple(expected)


def test_aggregate_count_accepts_discrete_target() -> None:
    t = _layer({"x": ["A", "A", "B"], "label": ["p", "q", "r"]})
    out = stats.apply(stats.Aggregate("count", target="label"), t)
    assert out.column("label").values == (2.0, 1.0)


def test_aggregate_sum_requires_continuous_target() -> None:
    t = _layer({"x": [1, 2], "y": ["a", "b"]})
    with pytest.raises(TypeMismatch):
        stats.apply(stats.Aggregate("sum"), t)


def test_aggregate_keeps_groups_apart() -> None:
    t = _layer(
        {"x": ["A", "A", "A"], "y": [1, 2, 4], "colour": ["r", "g", "r"], GROUP_COLUMN: [0, 1, 0]},
        **{GROUP_COLUMN: "discrete"},
    )
    out = stats.apply(stats.Aggregate("sum"), t)
    assert list(out.rows()) == [
        {"x": "A", "y": 5.0, "colour": "r", GROUP_COLUMN: 0},
        {"x": "A", "y": 2.0, "colour": "g", GROUP_COLUMN: 1},
    ]


def test_count_per_group_carries_grouping_channels() -> None:
    t = _layer(
        {"x": ["a", "b", "a", "a"], "colour": ["r", "r", "g", "r"], GROUP_COLUMN: [0, 0, 1, 0]},
        **{GROUP_COLUMN: "discrete"},
    )
    out = stats.apply(stats.Count(), t)
    rows = list(out.rows())
    assert {"x": "a", "y": 2.0, "colour": "r", GROUP_COLUMN: 0} in rows
    assert {"x": "b", "y": 1.0, "colour": "r", GROUP_COLUMN: 0} in rows
    assert {"x": "a", "y": 1.0, "colour": "g", GROUP_COLUMN: 1} in rows
    assert len(rows) == 3


def test_count_weighted_and_missing_x_dropped(caplog) -> None:
    t = _layer({"x": ["a", None, "a", "b"], "weight": [2.0, 1.0, 0.5, 1.0]})
    with caplog.at_level(logging.WARNING, logger="gog.stats"):
        out = stats.apply(stats.Count(), t)
    assert dict(zip(out.column("x").values, out.column("y").values)) == {"a": 2.5, "b": 1.0}
    assert "removed 1 row" in caplog.text


def test_count_requires_x() -> None:
    with pytest.raises(SchemaError):
        stats.apply(stats.Count(), _layer({"y": [1, 2]}))


def test_bin_fixed_count_last_bucket_closed() -> None:
    t = _layer({"x": list(range(11))})
    out = stats.apply(stats.Bin(bins=5), t)
    assert out.column("x").values == (1.0, 3.0, 5.0, 7.0, 9.0)
    assert out.column("y").values == (2.0, 2.0, 2.0, 2.0, 3.0)
    assert out.column("xmin").values[0] == 0.0
    assert out.column("xmax").values[-1] == 10.0
    assert sum(out.column("y").values) == 11


def test_bin_skips_empty_buckets() -> None:
    t = _layer({"x": [0.0, 0.5, 9.5, 10.0]})
    out = stats.apply(stats.Bin(bins=10), t)
    assert len(out) == 2


def test_bin_uses_settings_default() -> None:
    t = _layer({"x": [0.0, 1.0, 2.0, 3.0]})
    out = stats.apply(stats.Bin(), t, GogSettings(bins=2))
    assert out.column("y").values == (2.0, 2.0)


def test_bin_edges_fixed_width_aligned_to_boundary() -> None:
    edges = stats.bin_edges([1.0, 9.0], stats.Bin(binwidth=2.5, boundary=0.0), 30)
    assert edges == [0.0, 2.5, 5.0, 7.5, 10.0]


def test_shared_bin_edges_span_every_table() -> None:
    low, high = _layer({"x": [0.0, 1.0]}), _layer({"x": [9.0, 10.0]})
    edges = stats.shared_bin_edges([low, high], stats.Bin(bins=5))
    assert edges == pytest.approx([0.0, 2.0, 4.0, 6.0, 8.0, 10.0])
    out = stats.apply(stats.Bin(bins=5), high, edges=edges)
    assert out.column("xmin").values == (8.0,)
    assert out.column("y").values == (2.0,)
    assert stats.shared_bin_edges([_layer({"x": [None]}, x="continuous")], stats.Bin()) is None


def test_bin_rejects_bad_bucket_parameters() -> None:
    t = _layer({"x": [0.0, 1.0]})
    with pytest.raises(SchemaError, match="binwidth"):
        stats.apply(stats.Bin(binwidth=0.0), t)
    with pytest.raises(SchemaError, match="bins"):
        stats.apply(stats.Bin(bins=0), t)


def test_bin_requires_continuous_x() -> None:
    with pytest.raises(TypeMismatch):
        stats.apply(stats.Bin(bins=3), _layer({"x": ["a", "b"]}))


def test_density_grid_and_positive_values() -> None:
    t = _layer({"x": [0.0, 1.0, 1.5, 2.0, 4.0]})
    out = stats.apply(stats.Density(points=25), t)
    xs = out.column("x").values
    assert len(out) == 25
    assert xs[0] == pytest.approx(0.0) and xs[-1] == pytest.approx(4.0)
    assert all(y > 0 for y in out.column("y").values)


@pytest.mark.parametrize("params", [{"bandwidth": 0.0}, {"bandwidth": -1.0}, {"adjust": 0.0}])
def test_density_rejects_non_positive_bandwidth(params: dict) -> None:
    t = _layer({"x": [0.0, 1.0, 2.0]})
    with pytest.raises(SchemaError):
        stats.apply(stats.Density(**params), t)


def test_density_uses_explicit_bandwidth() -> None:
    t = _layer({"x": [0.0, 2.0]})
    out = stats.apply(stats.Density(points=3, bandwidth=1.0), t)
    # midpoint sits one bandwidth from both observations
    assert out.column("y").values[1] == pytest.approx(math.exp(-0.5) / math.sqrt(2 * math.pi))


def test_density_needs_two_observations_per_group() -> None:
    t = _layer(
        {"x": [0.0, 1.0, 2.0], "colour": ["a", "a", "b"], GROUP_COLUMN: [0, 0, 1]},
        **{GROUP_COLUMN: "discrete"},
    )
    with pytest.raises(EmptyPanel):
        stats.apply(stats.Density(), t)


def test_smooth_recovers_exact_line() -> None:
    t = _layer({"x": [0.0, 1.0, 2.0, 3.0], "y": [1.0, 3.0, 5.0, 7.0]})
    out = stats.apply(stats.Smooth(points=4), t)
    for x, y in zip(out.column("x").values, out.column("y").values):
        assert y == pytest.approx(1.0 + 2.0 * x)


def test_smooth_needs_two_distinct_x() -> None:
    t = _layer({"x": [1.0, 1.0], "y": [1.0, 2.0]})
    with pytest.raises(EmptyPanel):
        stats.apply(stats.Smooth(), t)


def test_identity_passes_through() -> None:
    t = _layer({"x": [1, 2], "y": [3, 4]})
    assert stats.apply(stats.Identity(), t) is t


def test_unknown_statistic_raises() -> None:
    with pytest.raises(TypeError):
        stats.apply(object(), _layer({"x": [1]}))  # type: ignore[arg-type]
