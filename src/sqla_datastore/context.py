from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final

from .datastructures import frozendict
from .exceptions import InvalidPaginationParametersError


SORT_REVERSE_PREFIX: Final[str] = "-"


@dataclass(frozen=True, slots=True)
class SortKey:
    """A single sort attribute and its direction."""

    key: str
    reversed: bool = False

    @classmethod
    def parse(cls, token: str) -> SortKey:
        """Parse ``"name"`` / ``"-name"`` into a sort key."""
        token = token.strip()
        if token.startswith(SORT_REVERSE_PREFIX):
            return cls(token[len(SORT_REVERSE_PREFIX) :], reversed=True)

        return cls(token)


def parse_sorting(value: str | Iterable[str | SortKey] | None) -> tuple[SortKey, ...]:
    """Parse a comma separated sort string (or sequence of tokens) into sort keys.

    Blank tokens are ignored, so ``"name,,-id"`` equals ``"name,-id"``.
    """
    if not value:
        return ()

    tokens: Iterable[str | SortKey] = value.split(",") if isinstance(value, str) else value

    return tuple(
        token if isinstance(token, SortKey) else SortKey.parse(token)
        for token in tokens
        if isinstance(token, SortKey) or token.strip()
    )


def _check_positive(name: str, value: int | None) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidPaginationParametersError(f"{name} must be a positive integer, got {value!r}")


@dataclass(frozen=True, slots=True)
class QueryContext:
    """Read-only description of a single retrieval request.

    ``filters`` are keyed by external (resource) keys and may carry the reverse
    prefix. ``sorting`` is applied in order, first key primary.
    """

    filters: Mapping[str, Any] = field(default_factory=frozendict)
    sorting: tuple[SortKey, ...] = ()
    page_number: int | None = None
    page_size: int | None = None
    paginate: bool = False

    def __post_init__(self) -> None:
        _check_positive("page_number", self.page_number)
        _check_positive("page_size", self.page_size)
        if not isinstance(self.filters, frozendict):
            object.__setattr__(self, "filters", frozendict(self.filters))
        if not isinstance(self.sorting, tuple):
            object.__setattr__(self, "sorting", parse_sorting(self.sorting))

    @classmethod
    def from_params(
        cls,
        *,
        filters: Mapping[str, Any] | None = None,
        sort: str | Sequence[str | SortKey] | None = None,
        page: int | str | None = None,
        size: int | str | None = None,
        paginate: bool = False,
    ) -> QueryContext:
        """Build a context from raw request values.

        Numeric strings are accepted for ``page`` and ``size``.
        """
        return cls(
            filters=frozendict(filters or {}),
            sorting=parse_sorting(sort),
            page_number=_to_int("page", page),
            page_size=_to_int("size", size),
            paginate=paginate,
        )

    def should_be_paginated(self) -> bool:
        return self.paginate or self.page_number is not None or self.page_size is not None


def _to_int(name: str, value: int | str | None) -> int | None:
    if value is None or isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidPaginationParametersError(
            f"{name} must be a positive integer, got {value!r}"
        ) from None


__all__ = (
    "QueryContext",
    "SortKey",
    "parse_sorting",
)
