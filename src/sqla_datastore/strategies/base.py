from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any, Final

import sqlalchemy as sa
from sqlalchemy import orm


LIKE_ESCAPE: Final[str] = "/"

_COERCIBLE_TYPES: Final[tuple[type, ...]] = (int, float, Decimal)


def subject_entity(query: sa.Select[Any]) -> type[Any]:
    """Return the mapped class a ``select(Model)`` query selects from."""
    descriptions = query.column_descriptions
    entity = descriptions[0].get("entity") if descriptions else None
    if entity is None:
        raise TypeError("query must select a mapped entity, e.g. sa.select(Model)")

    return entity


def resolve_column(query: sa.Select[Any], key: str) -> orm.InstrumentedAttribute[Any]:
    """Resolve an internal attribute key against the query's subject entity."""
    model = subject_entity(query)
    attribute = getattr(model, key, None)
    if not isinstance(attribute, orm.InstrumentedAttribute):
        raise AttributeError(f"{model.__name__} has no mapped attribute {key!r}")

    return attribute


def nullable_column(attribute: orm.InstrumentedAttribute[Any]) -> sa.ColumnElement[Any] | None:
    """The table column behind *attribute* if it maps exactly one nullable column."""
    prop = attribute.property
    if not isinstance(prop, orm.ColumnProperty) or len(prop.columns) != 1:
        return None
    column = prop.columns[0]

    return column if getattr(column, "nullable", False) else None


def where_once(query: sa.Select[Any], clause: sa.ColumnElement[bool]) -> sa.Select[Any]:
    """Add *clause* to WHERE unless an equal criterion is already present."""
    for existing in query._where_criteria:  # noqa: SLF001
        if existing.compare(clause):
            return query

    return query.where(clause)


def order_by_once(query: sa.Select[Any], clause: sa.ColumnElement[Any]) -> sa.Select[Any]:
    """Append *clause* to ORDER BY unless an equal clause is already present."""
    for existing in query._order_by_clauses:  # noqa: SLF001
        if existing.compare(clause):
            return query

    return query.order_by(clause)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards using ``LIKE_ESCAPE``."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


def as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)

    return [value]


def split_comma_separated(value: Any) -> list[Any]:
    """Split string values on ``,`` and drop blank segments.

    Non-string items of a sequence are kept as they are.
    """
    result: list[Any] = []
    for item in as_list(value):
        if isinstance(item, str):
            result.extend(part.strip() for part in item.split(",") if part.strip())
        elif item is not None:
            result.append(item)

    return result


def coerce_value(column: sa.ColumnElement[Any] | orm.InstrumentedAttribute[Any], value: Any) -> Any:
    """Convert a string to the column's numeric python type when possible.

    Request values arrive as strings; drivers such as asyncpg refuse to bind a
    string to an integer parameter.
    """
    column_type = getattr(column, "type", None)
    if not isinstance(value, str) or column_type is None:
        return value
    try:
        python_type = column_type.python_type
    except NotImplementedError:
        return value

    if python_type in _COERCIBLE_TYPES:
        try:
            return python_type(value)
        except (ValueError, ArithmeticError):
            return value

    return value


def in_or_equals(column: sa.ColumnElement[Any], values: Sequence[Any]) -> sa.ColumnElement[bool]:
    return column == values[0] if len(values) == 1 else column.in_(values)
