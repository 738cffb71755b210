from __future__ import annotations

from typing import Any


def _caches() -> tuple[Any, ...]:
    from .catalog import _registry_catalog
    from .factories import _driver_class_map, filter_strategy_factory, sort_strategy_factory
    from .loading import resolve_path
    from .resolver import _resolve_filter_alias, _resolve_sort_alias

    return (
        _resolve_filter_alias,
        _resolve_sort_alias,
        _driver_class_map,
        filter_strategy_factory,
        sort_strategy_factory,
        resolve_path,
        _registry_catalog,
    )


def datastore_cache_info() -> dict[str, Any]:
    """Return LRU cache statistics for all internal caches."""
    return {fn.__name__: fn.cache_info() for fn in _caches()}


def datastore_cache_clear() -> None:
    """Clear all internal LRU caches.

    Needed after mappers are reconfigured, since relation catalogs and
    resolved aliases are cached per registry and configuration.
    """
    for fn in _caches():
        fn.cache_clear()
