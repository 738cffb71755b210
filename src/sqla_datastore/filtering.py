from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

import sqlalchemy as sa

from .adapters import ResourceAdapter
from .factories import FilterStrategyFactory
from .resolver import StrategyResolver
from .strategies.base import subject_entity


logger = logging.getLogger(__name__)


@runtime_checkable
class FilterHandler(Protocol):
    """Top-level filter step of the read path; replaceable per store."""

    def apply(
        self,
        query: sa.Select[Any],
        filters: Mapping[str, Any],
        *,
        adapter: ResourceAdapter,
        driver: str,
    ) -> sa.Select[Any]: ...


class DefaultFilterHandler:
    """Applies request filters through configured strategies.

    Filters are keyed by external keys. An empty filter mapping is replaced by
    the adapter's defaults, keys outside the adapter's available filter keys
    are dropped, and a reverse prefix on a key is stripped before any lookup.
    """

    __slots__ = ("factory", "resolver")

    def __init__(self, resolver: StrategyResolver, factory: FilterStrategyFactory) -> None:
        self.resolver = resolver
        self.factory = factory

    def apply(
        self,
        query: sa.Select[Any],
        filters: Mapping[str, Any],
        *,
        adapter: ResourceAdapter,
        driver: str,
    ) -> sa.Select[Any]:
        if not filters:
            filters = adapter.default_filters() or {}

        available = set(adapter.available_filter_keys())
        model = subject_entity(query)

        for raw_key, value in filters.items():
            key, reverse = self.resolver.split_reverse_prefix(raw_key)
            if key not in available:
                logger.debug("ignoring unavailable filter key %r", raw_key)
                continue

            attribute = adapter.external_to_internal_key(key)
            strategy = self.factory.make(driver, self.resolver.resolve_filter(model, attribute))
            if reverse and not strategy.supports_reversal:
                warnings.warn(
                    f"Filter {raw_key!r}: {type(strategy).__name__} cannot be reversed, skipping.",
                    stacklevel=2,
                )
                continue

            logger.debug("filter %s.%s with %r (reverse=%s)", model.__name__, attribute, strategy, reverse)
            query = strategy.apply(query, attribute, value, reverse=reverse)

        return query
