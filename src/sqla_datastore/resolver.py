from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from .catalog import RelationCatalog
from .config import DEFAULT_CONFIG, DataStoreConfig, FilterConfig, SortConfig, model_keys
from .exceptions import UnknownStrategyAliasError, UnsupportedRelationKindError


logger = logging.getLogger(__name__)


def _known_aliases(class_map_default: Any, class_map: Any) -> frozenset[str]:
    known = set(class_map_default)
    for overrides in class_map.values():
        known.update(overrides)

    return frozenset(known)


def _model_override(strategies: Any, model: type[Any], key: str) -> str | None:
    for model_key in model_keys(model):
        overrides = strategies.get(model_key)
        if overrides is not None and key in overrides:
            return overrides[key]

    return None


@lru_cache(maxsize=2048)
def _resolve_filter_alias(
    config: FilterConfig,
    catalog: RelationCatalog,
    model: type[Any],
    key: str,
) -> str:
    """Resolve the filter alias for ``model.key``.

    Order: per-model override, relation-kind default (relation attributes
    only), per-key default, global default.
    """
    alias = _model_override(config.strategies, model, key)

    if alias is None and (relation := catalog.get(model, key)) is not None:
        alias = config.default_relation_strategies.get(relation.kind)
        if alias is None:
            raise UnsupportedRelationKindError(model, key, relation.kind.value)

    if alias is None:
        alias = config.default_strategies.get(key, config.default)

    if alias not in _known_aliases(config.class_map_default, config.class_map):
        raise UnknownStrategyAliasError(alias)

    return alias


@lru_cache(maxsize=2048)
def _resolve_sort_alias(config: SortConfig, model: type[Any], key: str) -> str:
    alias = _model_override(config.strategies, model, key)
    if alias is None:
        alias = config.default_strategies.get(key, config.default)

    if alias not in _known_aliases(config.class_map_default, config.class_map):
        raise UnknownStrategyAliasError(alias)

    return alias


class StrategyResolver:
    """Resolves strategy aliases for (model, internal attribute key) pairs.

    Resolution depends only on the configuration and the relation catalog, and
    is cached for the lifetime of the process; see ``datastore_cache_clear``.
    """

    __slots__ = ("catalog", "config")

    def __init__(
        self,
        config: DataStoreConfig = DEFAULT_CONFIG,
        catalog: RelationCatalog | None = None,
    ) -> None:
        self.config = config
        self.catalog = catalog if catalog is not None else RelationCatalog()

    @property
    def reverse_key_prefix(self) -> str:
        return self.config.filter.reverse_key_prefix

    def split_reverse_prefix(self, key: str) -> tuple[str, bool]:
        """Strip the reverse-filter prefix from *key*.

        Returns the bare key and whether the prefix was present. A key that
        consists of the prefix alone is returned unchanged.
        """
        prefix = self.reverse_key_prefix
        if prefix and key.startswith(prefix) and len(key) > len(prefix):
            return key[len(prefix) :], True

        return key, False

    def resolve_filter(self, model: type[Any], key: str) -> str:
        alias = _resolve_filter_alias(self.config.filter, self.catalog, model, key)
        logger.debug("filter strategy for %s.%s: %s", model.__name__, key, alias)

        return alias

    def resolve_sort(self, model: type[Any], key: str) -> str:
        alias = _resolve_sort_alias(self.config.sort, model, key)
        logger.debug("sort strategy for %s.%s: %s", model.__name__, key, alias)

        return alias
