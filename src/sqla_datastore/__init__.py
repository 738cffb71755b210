"""Declarative query resolution and record manipulation for SQLAlchemy.

sqla_datastore turns a ``QueryContext`` (filters, sort keys, pagination)
keyed by external resource names into a filtered, sorted and paginated
``sa.Select``. Filter and sort behaviour is chosen per attribute through
configurable strategy aliases, with per-model overrides, relation-kind
defaults and per-driver strategy classes. Writes are delegated to a
manipulator after translating keys to their storage names.
"""

import logging

from ._version import __version__, __version_tuple__
from .adapters import (
    IncludeDecorator,
    IncludeResolver,
    MappingIncludeResolver,
    MappingResourceAdapter,
    ResourceAdapter,
)
from .catalog import RelationCatalog, RelationDescriptor, catalog_for, get_catalog
from .config import (
    DEFAULT_CONFIG,
    DataStoreConfig,
    FilterConfig,
    IncludeConfig,
    ManipulationConfig,
    PaginationConfig,
    SortConfig,
)
from .context import QueryContext, SortKey, parse_sorting
from .datastructures import frozendict
from .enums import FilterStrategy, RelationKind, SortStrategy
from .exceptions import (
    DataStoreError,
    FeatureNotSupportedError,
    InvalidPaginationParametersError,
    UnknownDriverError,
    UnknownStrategyAliasError,
    UnsupportedRelationKindError,
)
from .factories import FilterStrategyFactory, SortStrategyFactory
from .filtering import DefaultFilterHandler, FilterHandler
from .manipulation import DataManipulator, ModelManipulator, manipulator_for
from .resolver import StrategyResolver
from .store import DataStore, Page, page_offset
from .tools import datastore_cache_clear, datastore_cache_info


logging.getLogger(__name__).addHandler(logging.NullHandler())


__all__ = (
    "DEFAULT_CONFIG",
    "DataManipulator",
    "DataStore",
    "DataStoreConfig",
    "DataStoreError",
    "DefaultFilterHandler",
    "FeatureNotSupportedError",
    "FilterConfig",
    "FilterHandler",
    "FilterStrategy",
    "FilterStrategyFactory",
    "IncludeConfig",
    "IncludeDecorator",
    "IncludeResolver",
    "InvalidPaginationParametersError",
    "ManipulationConfig",
    "MappingIncludeResolver",
    "MappingResourceAdapter",
    "ModelManipulator",
    "Page",
    "PaginationConfig",
    "QueryContext",
    "RelationCatalog",
    "RelationDescriptor",
    "RelationKind",
    "ResourceAdapter",
    "SortConfig",
    "SortKey",
    "SortStrategy",
    "SortStrategyFactory",
    "StrategyResolver",
    "UnknownDriverError",
    "UnknownStrategyAliasError",
    "UnsupportedRelationKindError",
    "__version__",
    "__version_tuple__",
    "catalog_for",
    "datastore_cache_clear",
    "datastore_cache_info",
    "frozendict",
    "get_catalog",
    "manipulator_for",
    "page_offset",
    "parse_sorting",
)
