"""
Immutable, typed data table backed by a Polars DataFrame.

Notes:
    - A Table pairs a polars.DataFrame with a semantic type per column
      (continuous / discrete / ordinal). Semantic types are inferred from
      dtypes unless given explicitly: numeric -> continuous, pl.Enum -> ordinal
      (levels from the enum categories), anything else -> discrete.
    - Tables are never mutated. ``take`` and ``with_column`` return new tables.
    - Var is the variable reference handed to mappings and algebra terms. It
      names a column or derives one with a Polars expression, evaluated before
      any stage runs.

Examples:
    >>> import polars as pl
    >>> from gog.core.table import Table, Var
    >>> t = Table.from_dict({"cls": ["A", "A", "B"], "value": [1, 3, 5]})
    >>> t.semantic_of("value").value, t.semantic_of("cls").value
    ('continuous', 'discrete')
    >>> Var("lv", expr=pl.col("value") * 10).evaluate(t).values
    (10, 30, 50)
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import polars as pl

from .errors import SchemaError, TypeMismatch
from .grammar import SemanticType, semantic_from_value

__all__ = [
    "Column",
    "Table",
    "Var",
    "as_var",
    "infer_semantic",
    "distinct_in_order",
]


def distinct_in_order(values: Sequence[Any]) -> tuple[Any, ...]:
    """Distinct non-null values in first-seen order."""
    seen: set[Any] = set()
    out: list[Any] = []
    for v in values:
        if v is None or v in seen:
            continue
        seen.add(v)
        out.append(v)
    return tuple(out)


def infer_semantic(dtype: pl.DataType) -> SemanticType:
    """Map a Polars dtype to a semantic type."""
    if isinstance(dtype, pl.Enum):
        return SemanticType.ORDINAL
    if dtype.is_numeric():
        return SemanticType.CONTINUOUS
    return SemanticType.DISCRETE


@dataclass(frozen=True)
class Column:
    """
    One named column with its semantic type.

    Attributes:
        name (str): Column name.
        semantic (SemanticType): How downstream stages interpret the values.
        values (tuple[Any, ...]): One value per row.
        levels (tuple[Any, ...] | None): Explicit category order (ordinal columns).
    """

    name: str
    semantic: SemanticType
    values: tuple[Any, ...]
    levels: tuple[Any, ...] | None = None

    def __len__(self) -> int:
        return len(self.values)

    def categories(self) -> tuple[Any, ...]:
        """
        Ordered category set of the column.

        Returns:
            tuple: ``levels`` when given, sorted distinct values for ordinal
            columns without levels, otherwise first-seen distinct values.
        """
        if self.levels is not None:
            return self.levels
        distinct = distinct_in_order(self.values)
        if self.semantic is SemanticType.ORDINAL:
            return tuple(sorted(distinct))
        return distinct


@dataclass(frozen=True, eq=False)
class Table:
    """
    Immutable table of named, typed columns.

    Attributes:
        frame (pl.DataFrame): Backing frame; rows are addressed 0..N-1.
        semantics (dict[str, SemanticType]): Semantic type per column.
        levels (dict[str, tuple]): Explicit category order for ordinal columns.

    Raises:
        SchemaError: If semantics or levels name columns missing from the frame.
        TypeMismatch: If a non-numeric column is declared continuous.
    """

    frame: pl.DataFrame
    semantics: dict[str, SemanticType] = field(default_factory=dict)
    levels: dict[str, tuple[Any, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = [n for n in (*self.semantics, *self.levels) if n not in self.frame.columns]
        if unknown:
            raise SchemaError(f"unknown columns in table metadata: {unknown!r}")
        semantics: dict[str, SemanticType] = {}
        levels: dict[str, tuple[Any, ...]] = dict(self.levels)
        for name, dtype in self.frame.schema.items():
            given = self.semantics.get(name)
            sem = semantic_from_value(given) if given is not None else infer_semantic(dtype)
            if sem is SemanticType.CONTINUOUS and not dtype.is_numeric():
                raise TypeMismatch(f"column {name!r} has dtype {dtype} and cannot be continuous")
            if isinstance(dtype, pl.Enum) and name not in levels:
                levels[name] = tuple(dtype.categories.to_list())
            semantics[name] = sem
        object.__setattr__(self, "semantics", semantics)
        object.__setattr__(self, "levels", levels)

    # Constructors

    @classmethod
    def from_frame(
        cls,
        frame: pl.DataFrame,
        semantics: Mapping[str, SemanticType | str] | None = None,
        levels: Mapping[str, Sequence[Any]] | None = None,
    ) -> Table:
        return cls(
            frame=frame,
            semantics={k: semantic_from_value(v) for k, v in (semantics or {}).items()},
            levels={k: tuple(v) for k, v in (levels or {}).items()},
        )

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Sequence[Any]],
        semantics: Mapping[str, SemanticType | str] | None = None,
        levels: Mapping[str, Sequence[Any]] | None = None,
    ) -> Table:
        """
        Build a table from a mapping of column name -> values.

        Raises:
            SchemaError: If the columns do not share one row count.
        """
        lengths = {name: len(values) for name, values in data.items()}
        if len(set(lengths.values())) > 1:
            raise SchemaError(f"columns must share a row count, got {lengths!r}")
        frame = pl.DataFrame({name: list(values) for name, values in data.items()}, strict=False)
        return cls.from_frame(frame, semantics, levels)

    @classmethod
    def from_columns(cls, columns: Sequence[Column]) -> Table:
        """
        Build a table from Column objects, keeping their semantic types.

        Raises:
            SchemaError: On duplicate names or differing row counts.
        """
        names = [c.name for c in columns]
        if len(set(names)) != len(names):
            raise SchemaError(f"duplicate column names: {names!r}")
        return cls.from_dict(
            {c.name: c.values for c in columns},
            semantics={c.name: c.semantic for c in columns},
            levels={c.name: c.levels for c in columns if c.levels is not None},
        )

    # Accessors

    @property
    def names(self) -> list[str]:
        return list(self.frame.columns)

    @property
    def height(self) -> int:
        return self.frame.height

    def __len__(self) -> int:
        return self.frame.height

    def __contains__(self, name: object) -> bool:
        return name in self.frame.columns

    def _require(self, name: str) -> None:
        if name not in self.frame.columns:
            raise SchemaError(f"unknown column {name!r} (available={self.names!r})")

    def semantic_of(self, name: str) -> SemanticType:
        self._require(name)
        return self.semantics[name]

    def levels_of(self, name: str) -> tuple[Any, ...] | None:
        self._require(name)
        return self.levels.get(name)

    def column(self, name: str) -> Column:
        self._require(name)
        return Column(
            name=name,
            semantic=self.semantics[name],
            values=tuple(self.frame.get_column(name).to_list()),
            levels=self.levels.get(name),
        )

    @property
    def columns(self) -> tuple[Column, ...]:
        return tuple(self.column(n) for n in self.names)

    def rows(self) -> Iterator[dict[str, Any]]:
        return self.frame.iter_rows(named=True)

    # Derivation (always returns a new Table)

    def take(self, indices: Sequence[int]) -> Table:
        """Rows at ``indices``, in the given order."""
        frame = self.frame[list(indices)] if indices else self.frame.clear()
        return Table(frame=frame, semantics=dict(self.semantics), levels=dict(self.levels))

    def select(self, names: Sequence[str]) -> Table:
        for n in names:
            self._require(n)
        return Table(
            frame=self.frame.select(list(names)),
            semantics={n: self.semantics[n] for n in names},
            levels={n: v for n, v in self.levels.items() if n in names},
        )

    def with_column(self, column: Column) -> Table:
        """
        Return a new table with ``column`` added (or replaced).

        Raises:
            SchemaError: If the column length differs from the table height.
        """
        if self.frame.width and len(column) != self.height:
            raise SchemaError(
                f"column {column.name!r} has {len(column)} rows, table has {self.height}"
            )
        series = pl.Series(column.name, list(column.values), strict=False)
        frame = self.frame.with_columns(series) if self.frame.width else series.to_frame()
        semantics = {**self.semantics, column.name: column.semantic}
        levels = {k: v for k, v in self.levels.items() if k != column.name}
        if column.levels is not None:
            levels[column.name] = column.levels
        return Table(frame=frame, semantics=semantics, levels=levels)


@dataclass(frozen=True, eq=False)
class Var:
    """
    Named reference to a column, or a column derived by a Polars expression.

    Attributes:
        name (str): Column name, or the output name of the derived column.
        expr (pl.Expr | None): Row-wise expression evaluated against the table.
        semantic (SemanticType | str | None): Override of the inferred semantic type.
        levels (tuple | None): Explicit category order.

    Examples:
        >>> import polars as pl
        >>> Var("x")
        Var('x')
        >>> Var("lx", expr=pl.col("x").log10())
        Var('lx', expr=...)
    """

    name: str
    expr: pl.Expr | None = None
    semantic: SemanticType | str | None = None
    levels: tuple[Any, ...] | None = None

    def __repr__(self) -> str:
        extra = ", expr=..." if self.expr is not None else ""
        return f"Var({self.name!r}{extra})"

    def evaluate(self, table: Table) -> Column:
        """
        Evaluate against ``table``.

        Raises:
            SchemaError: If the column is missing or the expression is not row-wise.
        """
        if self.expr is None:
            col = table.column(self.name)
            values, dtype_sem, levels = col.values, col.semantic, col.levels
        else:
            try:
                series = table.frame.select(self.expr.alias(self.name)).to_series()
            except pl.exceptions.PolarsError as exc:
                raise SchemaError(f"cannot evaluate variable {self.name!r}: {exc}") from exc
            if series.len() != table.height:
                raise SchemaError(
                    f"variable {self.name!r} produced {series.len()} rows, expected {table.height}"
                )
            values = tuple(series.to_list())
            dtype_sem = infer_semantic(series.dtype)
            levels = (
                tuple(series.dtype.categories.to_list())
                if isinstance(series.dtype, pl.Enum)
                else None
            )
        semantic = semantic_from_value(self.semantic) if self.semantic is not None else dtype_sem
        if semantic is SemanticType.CONTINUOUS and any(
            v is not None and not isinstance(v, (int, float)) for v in values
        ):
            raise TypeMismatch(f"variable {self.name!r} is not numeric and cannot be continuous")
        return Column(
            name=self.name,
            semantic=semantic,
            values=values,
            levels=self.levels if self.levels is not None else levels,
        )


def as_var(v: str | Var) -> Var:
    return v if isinstance(v, Var) else Var(v)
