from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import sqlalchemy as sa

from .base import order_by_once, resolve_column


class BaseSortStrategy(ABC):
    """Stateless transformer appending one ORDER BY clause to a select."""

    __slots__ = ()

    def apply(self, query: sa.Select[Any], key: str, reverse: bool = False) -> sa.Select[Any]:
        expression = self.expression(resolve_column(query, key))

        return order_by_once(query, expression.desc() if reverse else expression.asc())

    @abstractmethod
    def expression(self, column: Any) -> sa.ColumnElement[Any]: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class AlphabeticStrategy(BaseSortStrategy):
    __slots__ = ()

    def expression(self, column: Any) -> sa.ColumnElement[Any]:
        return column


class NumericStrategy(BaseSortStrategy):
    """Numeric ordering; string columns are cast so ``"10"`` sorts after ``"9"``."""

    __slots__ = ()

    def expression(self, column: Any) -> sa.ColumnElement[Any]:
        if isinstance(column.type, sa.String):
            return sa.cast(column, sa.Numeric)

        return column
