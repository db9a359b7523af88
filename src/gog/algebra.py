"""
Variable algebra: combine variables into a grouping structure.

Terms
- Cross(A, B): key (a, b); candidates are the full outer product of categories.
- Nest(A, B): key (a, b); B's categories are enumerated only within each A.
- Blend(A, B): key is A's value where present, else B's; candidates are the
  union of both category sets.

Operands are Vars (or column names) or other terms, so ``Cross(Nest("a", "b"), "c")``
works. Continuous variables group by exact value. Binning is the statistic
engine's job, never the algebra's.

Examples:
    >>> from gog.core.table import Table
    >>> from gog.algebra import Cross, combine
    >>> t = Table.from_dict({"a": ["p", "q", "p"], "b": ["u", "u", "v"]})
    >>> g = combine([Cross("a", "b")], t)
    >>> g.keys
    (('p', 'u'), ('q', 'u'), ('p', 'v'))
    >>> len(g.candidates)
    4
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeAlias

from .core.errors import IncompatibleAlgebra
from .core.table import Table, Var, as_var, distinct_in_order
from .core.typing import GroupKey

__all__ = [
    "Cross",
    "Nest",
    "Blend",
    "Term",
    "Operand",
    "Grouping",
    "combine",
    "evaluate_term",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Cross:
    """Outer product of two operands."""

    a: Operand
    b: Operand


@dataclass(frozen=True, eq=False)
class Nest:
    """B meaningful only within A: candidates are the observed (a, b) pairs."""

    a: Operand
    b: Operand


@dataclass(frozen=True, eq=False)
class Blend:
    """Overlay of two variables' categories on one shared key."""

    a: Operand
    b: Operand


Term: TypeAlias = Cross | Nest | Blend
Operand: TypeAlias = "Term | Var | str"


@dataclass(frozen=True)
class Grouping:
    """
    Result of combining algebra terms over a table.

    Attributes:
        keys (tuple[GroupKey, ...]): One key tuple per table row.
        candidates (tuple[GroupKey, ...]): Candidate key set, in order, before
            empty-group pruning.
        names (tuple[str, ...]): Variable name for each key position.
    """

    keys: tuple[GroupKey, ...]
    candidates: tuple[GroupKey, ...]
    names: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.keys)

    def observed(self) -> tuple[GroupKey, ...]:
        """Distinct keys actually present, in first-seen order."""
        return distinct_in_order(self.keys)


def _operand_grouping(operand: Operand, table: Table) -> Grouping:
    if isinstance(operand, (Cross, Nest, Blend)):
        return evaluate_term(operand, table)
    var = as_var(operand)
    col = var.evaluate(table)
    return Grouping(
        keys=tuple((v,) for v in col.values),
        candidates=tuple((c,) for c in col.categories()),
        names=(var.name,),
    )


def _cross(a: Grouping, b: Grouping) -> Grouping:
    return Grouping(
        keys=tuple(ka + kb for ka, kb in zip(a.keys, b.keys)),
        candidates=tuple(ca + cb for ca, cb in itertools.product(a.candidates, b.candidates)),
        names=a.names + b.names,
    )


def _nest(a: Grouping, b: Grouping) -> Grouping:
    within: dict[GroupKey, list[GroupKey]] = {ca: [] for ca in a.candidates}
    for ka, kb in zip(a.keys, b.keys):
        if any(v is None for v in ka):
            continue
        bucket = within.setdefault(ka, [])
        if all(v is not None for v in kb) and kb not in bucket:
            bucket.append(kb)
    empty = [ka for ka, inner in within.items() if not inner]
    if empty:
        raise IncompatibleAlgebra(
            f"nested variable {'/'.join(b.names)!r} has no rows under "
            f"{'/'.join(a.names)!r} categories {empty!r}"
        )
    return Grouping(
        keys=tuple(ka + kb for ka, kb in zip(a.keys, b.keys)),
        candidates=tuple(ka + kb for ka, inner in within.items() for kb in inner),
        names=a.names + b.names,
    )


def _blend(a: Grouping, b: Grouping) -> Grouping:
    if len(a.names) != len(b.names):
        raise IncompatibleAlgebra(
            f"cannot blend {a.names!r} with {b.names!r}: operands differ in arity"
        )

    def present(key: GroupKey) -> bool:
        return all(v is not None for v in key)

    keys = tuple(ka if present(ka) else kb for ka, kb in zip(a.keys, b.keys))
    return Grouping(
        keys=keys,
        candidates=distinct_in_order(a.candidates + b.candidates),
        names=tuple(f"{na}+{nb}" for na, nb in zip(a.names, b.names)),
    )


def evaluate_term(term: Term, table: Table) -> Grouping:
    """Evaluate a single algebra term against ``table``."""
    a = _operand_grouping(term.a, table)
    b = _operand_grouping(term.b, table)
    match term:
        case Cross():
            return _cross(a, b)
        case Nest():
            return _nest(a, b)
        case Blend():
            return _blend(a, b)
        case _:  # pragma: no cover - closed union
            raise TypeError(f"unknown algebra term: {term!r}")


def combine(terms: Sequence[Term | Var | str], table: Table) -> Grouping:
    """
    Combine terms into one grouping key per row.

    Args:
        terms: Algebra terms (bare Vars/names are accepted as single-variable terms).
        table: Source table.

    Returns:
        Grouping: Keys concatenated across terms; candidates are the product of
        each term's candidates. With no terms every row gets the empty key.
    """
    result = Grouping(keys=tuple(() for _ in range(table.height)), candidates=((),))
    for term in terms:
        result = _cross(result, _operand_grouping(term, table))
    logger.debug(
        "algebra: %d term(s) -> %d candidate key(s), %d observed",
        len(terms),
        len(result.candidates),
        len(result.observed()),
    )
    return result
