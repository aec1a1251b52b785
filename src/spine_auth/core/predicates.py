"""
Where-clause compilation: framework filters → native predicates → SQL.

The auth framework filters with an ordered list of clauses::

    [{"field": "email", "operator": "ends_with", "value": "@x.com"},
     {"field": "name", "value": "A", "connector": "OR"}]

``PredicateCompiler`` translates such a list into a *native predicate*:
a ``Conjunction`` (column → typed clause, implicitly AND-ed) or, as soon
as an ``OR`` connector appears, a ``Disjunction`` of conjunctions.
``to_sql`` then renders the native predicate against a SQLAlchemy
``Table``.

Manifesto:
    The two steps are kept apart on purpose: the native predicate is a
    plain value that tests can compare, and the rendering step is the only
    place that knows about SQLAlchemy columns.

Architecture:
    ::

        WhereClause[] ──compile──▶ Conjunction | Disjunction ──to_sql──▶ ColumnElement[bool]

        operator      clause variant     SQL
        ─────────     ──────────────     ──────────────────────
        eq (default)  Eq(v)              col = v   / col IS NULL
        ne            Ne(v)              col != v  / col IS NOT NULL
        lt / lte      Lt / Lte           col < v   / col <= v
        gt / gte      Gt / Gte           col > v   / col >= v
        in / not_in   In / NotIn         col IN (…) / col NOT IN (…)
        contains      Like("%v%")        col LIKE '%v%'
        starts_with   Like("v%")         col LIKE 'v%'
        ends_with     Like("%v")         col LIKE '%v'

Grouping:
    Each clause whose connector is ``OR`` opens a new group.  Inside a
    group clauses are keyed by column, so a second clause on the same
    column replaces the first one.  A single group compiles to a
    ``Conjunction``; several groups compile to a ``Disjunction``.

Tags:
    spine-auth, predicates, where-clause, compiler, sqlalchemy

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from sqlalchemy import Table, and_, false, or_, true
from sqlalchemy.sql.elements import ColumnElement

from spine_auth.core.errors import SchemaError
from spine_auth.core.naming import NameResolver

Operator = Literal[
    "eq", "ne", "lt", "lte", "gt", "gte", "in", "not_in", "contains", "starts_with", "ends_with"
]
Connector = Literal["AND", "OR"]

OPERATORS: tuple[str, ...] = (
    "eq", "ne", "lt", "lte", "gt", "gte", "in", "not_in", "contains", "starts_with", "ends_with",
)

LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class WhereClause:
    """One filter clause in logical terms."""

    field: str
    value: Any = None
    operator: Operator = "eq"
    connector: Connector = "AND"

    def __post_init__(self) -> None:
        if self.operator not in OPERATORS:
            raise ValueError(f"Unsupported where operator: {self.operator!r}")
        if self.connector not in ("AND", "OR"):
            raise ValueError(f"Unsupported where connector: {self.connector!r}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WhereClause:
        return cls(
            field=data["field"],
            value=data.get("value"),
            operator=data.get("operator") or "eq",
            connector=(data.get("connector") or "AND").upper(),
        )


def coerce_where(where: Iterable[WhereClause | Mapping[str, Any]] | None) -> list[WhereClause]:
    """Accept framework dicts or ``WhereClause`` objects."""
    if not where:
        return []
    return [w if isinstance(w, WhereClause) else WhereClause.from_dict(w) for w in where]


# =============================================================================
# Native clause variants
# =============================================================================


@dataclass(frozen=True)
class Eq:
    value: Any


@dataclass(frozen=True)
class Ne:
    value: Any


@dataclass(frozen=True)
class Lt:
    value: Any


@dataclass(frozen=True)
class Lte:
    value: Any


@dataclass(frozen=True)
class Gt:
    value: Any


@dataclass(frozen=True)
class Gte:
    value: Any


@dataclass(frozen=True)
class In:
    values: tuple[Any, ...]


@dataclass(frozen=True)
class NotIn:
    values: tuple[Any, ...]


@dataclass(frozen=True)
class Like:
    """Pattern match; ``pattern`` already carries escaped value and wildcards."""

    pattern: str

    @staticmethod
    def escape(value: Any) -> str:
        text = str(value)
        for ch in (LIKE_ESCAPE, "%", "_"):
            text = text.replace(ch, LIKE_ESCAPE + ch)
        return text

    @classmethod
    def contains(cls, value: Any) -> Like:
        return cls(f"%{cls.escape(value)}%")

    @classmethod
    def starts_with(cls, value: Any) -> Like:
        return cls(f"{cls.escape(value)}%")

    @classmethod
    def ends_with(cls, value: Any) -> Like:
        return cls(f"%{cls.escape(value)}")


Clause = Union[Eq, Ne, Lt, Lte, Gt, Gte, In, NotIn, Like]


@dataclass(frozen=True)
class Conjunction:
    """Column → clause, all of which must hold.  Empty means match all."""

    clauses: dict[str, Clause] = field(default_factory=dict)

    @property
    def is_match_all(self) -> bool:
        return not self.clauses


@dataclass(frozen=True)
class Disjunction:
    """Any of the conjunction groups must hold."""

    groups: tuple[Conjunction, ...]


NativePredicate = Union[Conjunction, Disjunction]

MATCH_ALL = Conjunction()


def _as_tuple(value: Any) -> tuple[Any, ...]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(value)
    return (value,)


def to_clause(operator: str | None, value: Any) -> Clause:
    """Translate one operator/value pair to its clause variant."""
    if not operator or operator == "eq":
        return Eq(value)
    if operator == "ne":
        return Ne(value)
    if operator == "lt":
        return Lt(value)
    if operator == "lte":
        return Lte(value)
    if operator == "gt":
        return Gt(value)
    if operator == "gte":
        return Gte(value)
    if operator == "in":
        return In(_as_tuple(value))
    if operator == "not_in":
        return NotIn(_as_tuple(value))
    if operator == "contains":
        return Like.contains(value)
    if operator == "starts_with":
        return Like.starts_with(value)
    if operator == "ends_with":
        return Like.ends_with(value)
    raise ValueError(f"Unsupported where operator: {operator!r}")


class PredicateCompiler:
    """Compile logical where clauses into native predicates."""

    def __init__(self, resolver: NameResolver) -> None:
        self.resolver = resolver

    def compile(
        self,
        model: str,
        where: Iterable[WhereClause | Mapping[str, Any]] | None,
    ) -> NativePredicate:
        clauses = coerce_where(where)
        if not clauses:
            return MATCH_ALL

        groups: list[dict[str, Clause]] = [{}]
        for clause in clauses:
            if clause.connector == "OR":
                groups.append({})
            column = self.resolver.resolve_column(model, clause.field)
            # Same column twice in one group: last clause wins.
            groups[-1][column] = to_clause(clause.operator, clause.value)

        conjunctions = tuple(Conjunction(group) for group in groups)
        if len(conjunctions) == 1:
            return conjunctions[0]
        return Disjunction(conjunctions)


# =============================================================================
# SQL rendering
# =============================================================================


def _render_clause(column: ColumnElement[Any], clause: Clause) -> ColumnElement[bool]:
    if isinstance(clause, Eq):
        return column.is_(None) if clause.value is None else column == clause.value
    if isinstance(clause, Ne):
        return column.is_not(None) if clause.value is None else column != clause.value
    if isinstance(clause, Lt):
        return column < clause.value
    if isinstance(clause, Lte):
        return column <= clause.value
    if isinstance(clause, Gt):
        return column > clause.value
    if isinstance(clause, Gte):
        return column >= clause.value
    if isinstance(clause, In):
        return column.in_(clause.values)
    if isinstance(clause, NotIn):
        return column.not_in(clause.values)
    if isinstance(clause, Like):
        return column.like(clause.pattern, escape=LIKE_ESCAPE)
    raise TypeError(f"Unknown clause variant: {clause!r}")


def _render_conjunction(conj: Conjunction, table: Table, model: str) -> ColumnElement[bool]:
    if conj.is_match_all:
        return true()
    parts = []
    for column_name, clause in conj.clauses.items():
        if column_name not in table.c:
            raise SchemaError.unknown_field(model, column_name).with_context(table=table.name)
        parts.append(_render_clause(table.c[column_name], clause))
    return and_(*parts)


def to_sql(predicate: NativePredicate, table: Table, *, model: str | None = None) -> ColumnElement[bool]:
    """Render *predicate* as a boolean SQL expression over *table*."""
    model = model or table.name
    if isinstance(predicate, Disjunction):
        if not predicate.groups:
            return false()
        return or_(*(_render_conjunction(g, table, model) for g in predicate.groups))
    return _render_conjunction(predicate, table, model)


__all__ = [
    "Clause",
    "Conjunction",
    "Disjunction",
    "Eq",
    "Gt",
    "Gte",
    "In",
    "Like",
    "Lt",
    "Lte",
    "MATCH_ALL",
    "NativePredicate",
    "Ne",
    "NotIn",
    "OPERATORS",
    "PredicateCompiler",
    "WhereClause",
    "coerce_where",
    "to_clause",
    "to_sql",
]
