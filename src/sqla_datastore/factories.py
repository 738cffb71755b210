from __future__ import annotations

import logging
from collections.abc import Mapping
from functools import lru_cache
from typing import Any, Generic, TypeVar

from .config import FilterConfig, SortConfig
from .datastructures import frozendict
from .exceptions import UnknownDriverError, UnknownStrategyAliasError
from .strategies import BaseFilterStrategy, BaseSortStrategy


logger = logging.getLogger(__name__)

S = TypeVar("S")


@lru_cache(maxsize=128)
def _driver_class_map(
    class_map_default: frozendict[str, type],
    class_map: frozendict[str, frozendict[str, type]],
    driver: str,
) -> frozendict[str, type]:
    """Merge *driver*'s class map over the default one.

    A driver only declares the aliases it overrides.
    """
    overrides = class_map.get(driver)
    if overrides is None:
        raise UnknownDriverError(driver)

    return class_map_default.merged(overrides)


class StrategyFactory(Generic[S]):
    """Builds strategy instances for (driver, alias).

    Strategies hold no state, so one instance per (driver, alias) is built and
    reused.
    """

    __slots__ = ("_class_map", "_class_map_default", "_instances")

    base_class: type[Any] = object

    def __init__(
        self,
        class_map_default: Mapping[str, type],
        class_map: Mapping[str, Mapping[str, type]],
    ) -> None:
        self._class_map_default = frozendict(class_map_default)
        self._class_map = frozendict(class_map)
        self._instances: dict[tuple[str, str], S] = {}

    @property
    def drivers(self) -> tuple[str, ...]:
        return tuple(self._class_map)

    def class_map(self, driver: str) -> Mapping[str, type]:
        return _driver_class_map(self._class_map_default, self._class_map, driver)

    def strategy_class(self, driver: str, alias: str) -> type[S]:
        class_map = self.class_map(driver)
        if alias not in class_map:
            raise UnknownStrategyAliasError(alias, driver)

        strategy_class = class_map[alias]
        if not issubclass(strategy_class, self.base_class):
            raise TypeError(
                f"{strategy_class.__name__} for alias {alias!r} must subclass "
                f"{self.base_class.__name__}"
            )

        return strategy_class

    def make(self, driver: str, alias: str) -> S:
        alias = str(alias)
        if (instance := self._instances.get((driver, alias))) is not None:
            return instance

        instance = self.strategy_class(driver, alias)()
        logger.debug("built %r for driver %r, alias %r", instance, driver, alias)

        return self._instances.setdefault((driver, alias), instance)


class FilterStrategyFactory(StrategyFactory[BaseFilterStrategy]):
    __slots__ = ()

    base_class = BaseFilterStrategy

    @classmethod
    def from_config(cls, config: FilterConfig) -> FilterStrategyFactory:
        return cls(config.class_map_default, config.class_map)


class SortStrategyFactory(StrategyFactory[BaseSortStrategy]):
    __slots__ = ()

    base_class = BaseSortStrategy

    @classmethod
    def from_config(cls, config: SortConfig) -> SortStrategyFactory:
        return cls(config.class_map_default, config.class_map)


@lru_cache(maxsize=32)
def filter_strategy_factory(config: FilterConfig) -> FilterStrategyFactory:
    """Shared filter factory for *config*, so instances are reused across stores."""
    return FilterStrategyFactory.from_config(config)


@lru_cache(maxsize=32)
def sort_strategy_factory(config: SortConfig) -> SortStrategyFactory:
    return SortStrategyFactory.from_config(config)
