from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import sqlalchemy as sa
from sqlalchemy import orm
from sqlalchemy.ext.asyncio import AsyncSession

from .adapters import IncludeDecorator, IncludeResolver, ResourceAdapter
from .catalog import RelationCatalog, catalog_for
from .config import DEFAULT_CONFIG, DataStoreConfig
from .context import QueryContext, SortKey, parse_sorting
from .exceptions import FeatureNotSupportedError, InvalidPaginationParametersError
from .factories import filter_strategy_factory, sort_strategy_factory
from .filtering import DefaultFilterHandler, FilterHandler
from .loading import eager_loads
from .manipulation import DataManipulator
from .resolver import StrategyResolver
from .strategies.base import coerce_value, where_once


logger = logging.getLogger(__name__)

T = TypeVar("T", bound=orm.DeclarativeBase)


def page_offset(page: int, size: int) -> int:
    """Number of rows to skip for 1-based *page* of *size* rows."""
    return (page - 1) * size


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    """One page of a length-aware paginated result."""

    items: Sequence[T]
    total: int
    page: int
    size: int

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.size))

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


class DataStore(Generic[T]):
    """Retrieves and manipulates records of one mapped class.

    Reads take a ``QueryContext`` keyed by external (resource) keys; the
    resource adapter translates them to internal keys, the resolver and
    strategy factories turn them into criteria on a ``sa.Select``.

    A store is bound to one ``AsyncSession`` and should be created per
    request. Collaborators are set with the fluent ``set_*`` methods. Writes
    need a manipulator and fail with ``FeatureNotSupportedError`` without one.

    Example::

        store = (
            DataStore(Post, session, config=config)
            .set_resource_adapter(adapter)
            .set_include_resolver(MappingIncludeResolver(adapter))
            .set_manipulator(ModelManipulator(session, Post))
            .set_strategy_driver("postgres")
        )
        page = await store.get_by_context(
            QueryContext.from_params(filters={"title": "sql"}, sort="-id", page=1),
            includes=("comments",),
        )
    """

    def __init__(
        self,
        model: type[T],
        session: AsyncSession,
        *,
        config: DataStoreConfig = DEFAULT_CONFIG,
        catalog: RelationCatalog | None = None,
    ) -> None:
        if orm.DeclarativeBase in getattr(model, "__bases__", ()) or model is orm.DeclarativeBase:
            raise TypeError("model must not be orm.DeclarativeBase")

        self.model = model
        self.session = session
        self.config = config
        self.catalog = catalog if catalog is not None else catalog_for(model)
        self.resolver = StrategyResolver(config, self.catalog)
        self.filter_factory = filter_strategy_factory(config.filter)
        self.sort_factory = sort_strategy_factory(config.sort)

        self._resource_adapter: ResourceAdapter | None = None
        self._include_resolver: IncludeResolver | None = None
        self._manipulator: DataManipulator | None = None

        handler_cls = config.filter.handler_for(model) or DefaultFilterHandler
        self._filter_handler: FilterHandler = handler_cls(self.resolver, self.filter_factory)
        decorator_cls = config.include.decorator_for(model)
        self._include_decorator: IncludeDecorator | None = (
            decorator_cls(model) if decorator_cls is not None else None
        )
        self._strategy_driver = config.default_driver
        self._default_page_size = config.pagination.size

    # configuration

    def set_resource_adapter(self, adapter: ResourceAdapter) -> DataStore[T]:
        self._resource_adapter = adapter
        return self

    def set_include_resolver(self, resolver: IncludeResolver) -> DataStore[T]:
        self._include_resolver = resolver
        return self

    def set_include_decorator(self, decorator: IncludeDecorator | None) -> DataStore[T]:
        self._include_decorator = decorator
        return self

    def set_filter_handler(self, handler: FilterHandler) -> DataStore[T]:
        self._filter_handler = handler
        return self

    def set_strategy_driver(self, driver: str) -> DataStore[T]:
        self._strategy_driver = driver
        return self

    def set_manipulator(self, manipulator: DataManipulator | None) -> DataStore[T]:
        """Set the manipulator; ``None`` disables writes."""
        self._manipulator = manipulator
        return self

    def set_default_page_size(self, size: int) -> DataStore[T]:
        if isinstance(size, bool) or not isinstance(size, int) or size < 1:
            raise InvalidPaginationParametersError(
                f"default page size must be a positive integer, got {size!r}"
            )
        self._default_page_size = size
        return self

    @property
    def resource_adapter(self) -> ResourceAdapter:
        if self._resource_adapter is None:
            raise RuntimeError("Resource adapter is not set")

        return self._resource_adapter

    @property
    def filter_handler(self) -> FilterHandler:
        return self._filter_handler

    @property
    def include_decorator(self) -> IncludeDecorator | None:
        return self._include_decorator

    @property
    def strategy_driver(self) -> str:
        return self._strategy_driver

    @property
    def default_page_size(self) -> int:
        return self._default_page_size

    # retrieval

    def base_query(self) -> sa.Select[tuple[T]]:
        """Fresh query for the subject model; override to add scoping."""
        return sa.select(self.model)

    async def get_by_id(self, id: Any, includes: Sequence[str] = ()) -> T | None:  # noqa: A002
        loads = self.loader_options(includes)
        primary_key = self._primary_key
        query = where_once(self.base_query(), primary_key == coerce_value(primary_key, id))
        result = await self.session.execute(query.options(*loads))

        return result.unique().scalars().one_or_none()

    async def get_many_by_id(self, ids: Sequence[Any], includes: Sequence[str] = ()) -> Sequence[T]:
        loads = self.loader_options(includes, many=True)
        if not ids:
            return []
        primary_key = self._primary_key
        values = [coerce_value(primary_key, value) for value in ids]
        query = where_once(self.base_query(), primary_key.in_(values))
        result = await self.session.execute(query.options(*loads))

        return result.unique().scalars().all()

    async def get_by_context(
        self,
        context: QueryContext,
        includes: Sequence[str] = (),
    ) -> Page[T] | Sequence[T]:
        """Retrieve records for *context*.

        Returns a ``Page`` when the context asks for pagination, otherwise
        every matching record. ``total`` is counted on the filtered query before
        LIMIT/OFFSET are applied, in a separate statement on the same session.
        """
        loads = self.loader_options(includes, many=True)
        query = self.build_query(context)

        if not context.should_be_paginated():
            result = await self.session.execute(query.options(*loads))
            return result.unique().scalars().all()

        page = context.page_number or 1
        size = context.page_size or self._default_page_size
        total = await self.count(query)
        logger.debug(
            "%s page %d (size %d, offset %d) of %d rows",
            self.model.__name__, page, size, page_offset(page, size), total,
        )
        window = query.limit(size).offset(page_offset(page, size)).options(*loads)
        result = await self.session.execute(window)

        return Page(items=result.unique().scalars().all(), total=total, page=page, size=size)

    async def count(self, query: sa.Select[Any]) -> int:
        counted = sa.select(sa.func.count()).select_from(query.order_by(None).subquery())

        return (await self.session.execute(counted)).scalar_one()

    def build_query(self, context: QueryContext) -> sa.Select[tuple[T]]:
        """Filtered and sorted, but not paginated, query for *context*."""
        query = self.apply_filters(self.base_query(), context.filters)

        return self.apply_sorting(query, context.sorting)

    def apply_filters(self, query: sa.Select[tuple[T]], filters: Mapping[str, Any]) -> sa.Select[tuple[T]]:
        return self._filter_handler.apply(
            query,
            filters,
            adapter=self.resource_adapter,
            driver=self._strategy_driver,
        )

    def apply_sorting(
        self,
        query: sa.Select[tuple[T]],
        sorting: Sequence[SortKey | str],
    ) -> sa.Select[tuple[T]]:
        """Apply sort keys in order; adapter defaults are used when none are given.

        Requested keys outside the available sort keys are dropped; defaults
        are trusted as declared.
        """
        adapter = self.resource_adapter
        if not sorting:
            sort_keys = parse_sorting(adapter.default_sorting())
        else:
            available = set(adapter.available_sort_keys())
            sort_keys = tuple(key for key in parse_sorting(sorting) if key.key in available)

        for sort_key in sort_keys:
            attribute = adapter.external_to_internal_key(sort_key.key)
            strategy = self.sort_factory.make(
                self._strategy_driver,
                self.resolver.resolve_sort(self.model, attribute),
            )
            query = strategy.apply(query, attribute, sort_key.reversed)

        return query

    # includes

    def resolve_includes(self, includes: Sequence[str], many: bool = False) -> Sequence[str]:
        """Translate external include paths into internal eager-load paths.

        The include decorator, when set, gets the last word and may add paths
        even when none were requested.
        """
        resolved: Sequence[str] = ()
        if includes:
            if self._include_resolver is None:
                raise FeatureNotSupportedError("No include resolver set")
            resolved = self._include_resolver.resolve(list(includes))

        if self._include_decorator is not None:
            resolved = tuple(self._include_decorator.decorate(resolved, many))

        return resolved

    def loader_options(self, includes: Sequence[str], many: bool = False) -> Sequence[Any]:
        return eager_loads(self.model, self.resolve_includes(includes, many), self.catalog)

    # manipulation

    async def create(self, data: Mapping[str, Any]) -> Any:
        manipulator = self._require_manipulator()
        return await manipulator.create(self.convert_to_internal_keys(data))

    async def make(self, data: Mapping[str, Any]) -> Any:
        manipulator = self._require_manipulator()
        return await manipulator.make(self.convert_to_internal_keys(data))

    async def update_by_id(self, id: Any, data: Mapping[str, Any]) -> bool:  # noqa: A002
        manipulator = self._require_manipulator()
        return await manipulator.update_by_id(id, self.convert_to_internal_keys(data))

    async def delete_by_id(self, id: Any) -> bool:  # noqa: A002
        manipulator = self._require_manipulator()
        return await manipulator.delete_by_id(id)

    async def attach_as_related(
        self,
        id: Any,  # noqa: A002
        include: str,
        ids: Sequence[Any],
        detaching: bool = False,
    ) -> bool:
        manipulator = self._require_manipulator()
        relation = self.resource_adapter.internal_key_for_include(include)

        return await manipulator.attach_as_related(id, relation, ids, detaching)

    async def detach_as_related(self, id: Any, include: str, ids: Sequence[Any]) -> bool:  # noqa: A002
        manipulator = self._require_manipulator()
        relation = self.resource_adapter.internal_key_for_include(include)

        return await manipulator.detach_as_related(id, relation, ids)

    def convert_to_internal_keys(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Copy *data* with every external key translated to its internal key."""
        adapter = self.resource_adapter

        return {adapter.external_to_internal_key(key): value for key, value in data.items()}

    def _require_manipulator(self) -> DataManipulator:
        if self._manipulator is None:
            raise FeatureNotSupportedError("No manipulator set")

        return self._manipulator

    @property
    def _primary_key(self) -> sa.ColumnElement[Any]:
        return sa.inspect(self.model).primary_key[0]
