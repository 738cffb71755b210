from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, ClassVar

import sqlalchemy as sa
from sqlalchemy import orm

from .base import (
    LIKE_ESCAPE,
    as_list,
    coerce_value,
    escape_like,
    in_or_equals,
    nullable_column,
    resolve_column,
    split_comma_separated,
    where_once,
)


class BaseFilterStrategy(ABC):
    """Stateless transformer adding one filter criterion to a select.

    Subclasses build the criterion; ``apply`` handles reversal and makes
    repeated application a no-op. A strategy that can be applied in exclusive
    form sets ``supports_reversal``.
    """

    __slots__ = ()

    supports_reversal: ClassVar[bool] = False

    def apply(
        self,
        query: sa.Select[Any],
        key: str,
        value: Any,
        *,
        reverse: bool = False,
    ) -> sa.Select[Any]:
        if reverse and not self.supports_reversal:
            raise ValueError(f"{type(self).__name__} does not support reversed filtering")

        clause = self.criterion(query, key, value)
        if clause is None:
            return query
        if reverse:
            clause = self.negate(query, key, value, clause)

        return where_once(query, clause)

    @abstractmethod
    def criterion(
        self, query: sa.Select[Any], key: str, value: Any
    ) -> sa.ColumnElement[bool] | None:
        """Build the inclusive criterion, or ``None`` when *value* constrains nothing."""

    def negate(
        self,
        query: sa.Select[Any],
        key: str,
        value: Any,
        clause: sa.ColumnElement[bool],
    ) -> sa.ColumnElement[bool]:
        """Exclusive form of *clause*; rows with a NULL value are part of it."""
        column = nullable_column(resolve_column(query, key))
        if column is None:
            return sa.not_(clause)

        return sa.or_(column.is_(None), sa.not_(clause))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class LikeStrategy(BaseFilterStrategy):
    """Substring match; case sensitivity follows the column collation."""

    __slots__ = ()

    supports_reversal = True

    def criterion(
        self, query: sa.Select[Any], key: str, value: Any
    ) -> sa.ColumnElement[bool] | None:
        column = resolve_column(query, key)
        values = [str(item) for item in as_list(value) if item is not None]
        if not values:
            return None

        return sa.or_(*(self.match(column, item) for item in values))

    def match(self, column: Any, value: str) -> sa.ColumnElement[bool]:
        return column.like(f"%{escape_like(value)}%", escape=LIKE_ESCAPE)


class LikeCaseInsensitiveStrategy(LikeStrategy):
    """Substring match with both sides folded to lower case."""

    __slots__ = ()

    def match(self, column: Any, value: str) -> sa.ColumnElement[bool]:
        return sa.func.lower(column).like(f"%{escape_like(value.lower())}%", escape=LIKE_ESCAPE)


class PostgresLikeCaseInsensitiveStrategy(LikeStrategy):
    __slots__ = ()

    def match(self, column: Any, value: str) -> sa.ColumnElement[bool]:
        return column.ilike(f"%{escape_like(value)}%", escape=LIKE_ESCAPE)


class ExactStrategy(BaseFilterStrategy):
    """Equality; a list of values becomes ``IN``."""

    __slots__ = ()

    supports_reversal = True

    def criterion(
        self, query: sa.Select[Any], key: str, value: Any
    ) -> sa.ColumnElement[bool] | None:
        column = resolve_column(query, key)
        values = [coerce_value(column, item) for item in as_list(value)]
        if not values:
            return None
        if len(values) == 1:
            return self.equals(column, values[0])

        return self.one_of(column, values)

    def equals(self, column: Any, value: Any) -> sa.ColumnElement[bool]:
        return column == value

    def one_of(self, column: Any, values: Sequence[Any]) -> sa.ColumnElement[bool]:
        return column.in_(values)


class ExactCaseInsensitiveStrategy(ExactStrategy):
    __slots__ = ()

    def equals(self, column: Any, value: Any) -> sa.ColumnElement[bool]:
        return sa.func.lower(column) == str(value).lower()

    def one_of(self, column: Any, values: Sequence[Any]) -> sa.ColumnElement[bool]:
        return sa.func.lower(column).in_([str(value).lower() for value in values])


class PostgresExactCaseInsensitiveStrategy(ExactStrategy):
    """Case-insensitive equality through ``ILIKE`` without wildcards."""

    __slots__ = ()

    def equals(self, column: Any, value: Any) -> sa.ColumnElement[bool]:
        return column.ilike(escape_like(str(value)), escape=LIKE_ESCAPE)

    def one_of(self, column: Any, values: Sequence[Any]) -> sa.ColumnElement[bool]:
        return sa.or_(*(self.equals(column, value) for value in values))


class ExactCommaSeparatedStrategy(ExactStrategy):
    """Set membership over a comma separated value.

    Blank segments are dropped: ``"a,,b"`` means ``{a, b}`` and a value with
    no segments left adds no constraint.
    """

    __slots__ = ()

    def criterion(
        self, query: sa.Select[Any], key: str, value: Any
    ) -> sa.ColumnElement[bool] | None:
        return super().criterion(query, key, split_comma_separated(value))


def _relationship(attribute: orm.InstrumentedAttribute[Any]) -> orm.RelationshipProperty[Any]:
    relationship = attribute.property
    if not isinstance(relationship, orm.RelationshipProperty):
        raise TypeError(f"{attribute} is not a relationship attribute")

    return relationship


def _related_ids(relationship: orm.RelationshipProperty[Any], value: Any) -> list[Any]:
    primary_key = relationship.mapper.primary_key[0]

    return [coerce_value(primary_key, item) for item in split_comma_separated(value)]


def _foreign_key(relationship: orm.RelationshipProperty[Any]) -> sa.ColumnElement[Any] | None:
    """The single local foreign-key column of a many-to-one relationship, if any."""
    if relationship.direction is not orm.RelationshipDirection.MANYTOONE:
        return None
    pairs = relationship.local_remote_pairs or []
    if len(pairs) != 1:
        return None

    return pairs[0][0]


class RelationSingularStrategy(BaseFilterStrategy):
    """Constrain a to-one relation to one of the given related identifiers.

    A many-to-one relation is matched on its foreign-key column; other to-one
    relations go through ``EXISTS``.
    """

    __slots__ = ()

    supports_reversal = True

    def criterion(
        self, query: sa.Select[Any], key: str, value: Any
    ) -> sa.ColumnElement[bool] | None:
        attribute = resolve_column(query, key)
        relationship = _relationship(attribute)
        ids = _related_ids(relationship, value)
        if not ids:
            return None

        if (foreign_key := _foreign_key(relationship)) is not None:
            return in_or_equals(foreign_key, ids)

        criterion = in_or_equals(relationship.mapper.primary_key[0], ids)

        return attribute.any(criterion) if relationship.uselist else attribute.has(criterion)

    def negate(
        self,
        query: sa.Select[Any],
        key: str,
        value: Any,
        clause: sa.ColumnElement[bool],
    ) -> sa.ColumnElement[bool]:
        foreign_key = _foreign_key(_relationship(resolve_column(query, key)))
        if foreign_key is None:
            return sa.not_(clause)

        # unrelated rows (NULL key) are part of the complement
        return sa.or_(foreign_key.is_(None), sa.not_(clause))


class RelationPluralStrategy(BaseFilterStrategy):
    """Constrain to records related to at least one of the given identifiers."""

    __slots__ = ()

    supports_reversal = True

    def criterion(
        self, query: sa.Select[Any], key: str, value: Any
    ) -> sa.ColumnElement[bool] | None:
        attribute = resolve_column(query, key)
        relationship = _relationship(attribute)
        ids = _related_ids(relationship, value)
        if not ids:
            return None

        criterion = in_or_equals(relationship.mapper.primary_key[0], ids)

        return attribute.any(criterion) if relationship.uselist else attribute.has(criterion)
