import pytest

from gog.algebra import Cross, combine
from gog.core.errors import SchemaError
from gog.core.table import Table
from gog.facet import split


def test_one_panel_per_observed_key_in_first_seen_order() -> None:
    t = Table.from_dict({"g": ["b", "a", "b", "a", "c"], "v": [1, 2, 3, 4, 5]})
    panels = split(t, combine(["g"], t))
    assert [p.key for p in panels] == [("b",), ("a",), ("c",)]
    assert [p.index for p in panels] == [0, 1, 2]
    assert panels[0].table.column("v").values == (1, 3)
    assert panels[1].rows == (1, 3)


def test_empty_candidates_are_not_emitted() -> None:
    t = Table.from_dict({"r": ["x", "x", "y"], "c": ["u", "v", "u"]})
    g = combine([Cross("r", "c")], t)
    panels = split(t, g)
    assert len(g.candidates) == 4
    assert len(panels) == 3
    assert all(p.height > 0 for p in panels)


def test_unfaceted_table_is_one_panel() -> None:
    t = Table.from_dict({"v": [1, 2, 3]})
    (panel,) = split(t, combine([], t))
    assert panel.key == ()
    assert panel.height == 3


def test_grouping_for_other_table_raises() -> None:
    t = Table.from_dict({"g": ["a", "b"]})
    other = Table.from_dict({"g": ["a"]})
    with pytest.raises(SchemaError):
        split(t, combine(["g"], other))
