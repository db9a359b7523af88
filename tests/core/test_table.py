import polars as pl
import pytest

from gog.core.errors import SchemaError, TypeMismatch
from gog.core.grammar import SemanticType
from gog.core.table import Column, Table, Var


def test_semantics_inferred_from_dtypes() -> None:
    frame = pl.DataFrame(
        {
            "value": [1.0, 2.0],
            "cls": ["a", "b"],
            "size": pl.Series(["s", "m"], dtype=pl.Enum(["s", "m", "l"])),
        }
    )
    t = Table.from_frame(frame)
    assert t.semantic_of("value") is SemanticType.CONTINUOUS
    assert t.semantic_of("cls") is SemanticType.DISCRETE
    assert t.semantic_of("size") is SemanticType.ORDINAL
    assert t.levels_of("size") == ("s", "m", "l")


def test_ragged_columns_raise_schema_error() -> None:
    with pytest.raises(SchemaError):
        Table.from_dict({"a": [1, 2, 3], "b": [1, 2]})


def test_unknown_column_raises_schema_error() -> None:
    t = Table.from_dict({"a": [1, 2]})
    with pytest.raises(SchemaError):
        t.column("missing")
    with pytest.raises(SchemaError):
        Table.from_dict({"a": [1]}, semantics={"b": "discrete"})


def test_non_numeric_cannot_be_continuous() -> None:
    with pytest.raises(TypeMismatch):
        Table.from_dict({"a": ["x", "y"]}, semantics={"a": "continuous"})


def test_take_preserves_order_and_metadata() -> None:
    t = Table.from_dict({"cls": ["a", "b", "c"], "v": [1, 2, 3]}, semantics={"v": "discrete"})
    sub = t.take([2, 0])
    assert sub.column("cls").values == ("c", "a")
    assert sub.semantic_of("v") is SemanticType.DISCRETE
    assert t.take([]).height == 0


def test_with_column_returns_new_table() -> None:
    t = Table.from_dict({"a": [1, 2]})
    t2 = t.with_column(Column("b", SemanticType.DISCRETE, ("x", "y")))
    assert t.names == ["a"]
    assert t2.names == ["a", "b"]
    with pytest.raises(SchemaError):
        t.with_column(Column("c", SemanticType.DISCRETE, ("x",)))


def test_column_categories_order() -> None:
    first_seen = Column("c", SemanticType.DISCRETE, ("b", "a", "b", None))
    assert first_seen.categories() == ("b", "a")
    ordinal = Column("o", SemanticType.ORDINAL, ("hi", "lo"), levels=("lo", "hi"))
    assert ordinal.categories() == ("lo", "hi")


def test_var_derived_expression() -> None:
    t = Table.from_dict({"v": [1, 10, 100]})
    col = Var("lv", expr=pl.col("v").log10()).evaluate(t)
    assert col.name == "lv"
    assert col.semantic is SemanticType.CONTINUOUS
    assert [round(x, 9) for x in col.values] == [0.0, 1.0, 2.0]


def test_var_semantic_override() -> None:
    t = Table.from_dict({"cyl": [4, 6, 4]})
    col = Var("cyl", semantic="discrete").evaluate(t)
    assert col.semantic is SemanticType.DISCRETE
    assert col.categories() == (4, 6)


def test_var_aggregate_expression_is_rejected() -> None:
    t = Table.from_dict({"v": [1, 2, 3]})
    with pytest.raises(SchemaError):
        Var("total", expr=pl.col("v").sum()).evaluate(t)
