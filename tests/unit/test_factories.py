from __future__ import annotations

import pytest

from sqla_datastore import (
    FilterConfig,
    FilterStrategy,
    FilterStrategyFactory,
    SortConfig,
    SortStrategyFactory,
    UnknownDriverError,
    UnknownStrategyAliasError,
)
from sqla_datastore.strategies import (
    AlphabeticStrategy,
    ExactStrategy,
    LikeCaseInsensitiveStrategy,
    LikeStrategy,
    NumericStrategy,
    PostgresExactCaseInsensitiveStrategy,
    PostgresLikeCaseInsensitiveStrategy,
)


@pytest.fixture
def filters() -> FilterStrategyFactory:
    return FilterStrategyFactory.from_config(FilterConfig())


class TestFilterFactory:
    def test_default_class(self, filters: FilterStrategyFactory) -> None:
        assert isinstance(filters.make("mysql", "like-case-insensitive"), LikeCaseInsensitiveStrategy)
        assert type(filters.make("sqlite", "exact")) is ExactStrategy

    def test_driver_override(self, filters: FilterStrategyFactory) -> None:
        assert isinstance(filters.make("postgres", "like-case-insensitive"), PostgresLikeCaseInsensitiveStrategy)
        assert isinstance(
            filters.make("postgres", "exact-case-insensitive"), PostgresExactCaseInsensitiveStrategy
        )

    def test_non_overridden_alias_falls_back(self, filters: FilterStrategyFactory) -> None:
        assert type(filters.make("postgres", "like")) is LikeStrategy

    def test_instances_reused(self, filters: FilterStrategyFactory) -> None:
        assert filters.make("mysql", "exact") is filters.make("mysql", "exact")
        assert filters.make("mysql", "exact") is not filters.make("sqlite", "exact")

    def test_enum_alias(self, filters: FilterStrategyFactory) -> None:
        assert filters.make("mysql", FilterStrategy.EXACT) is filters.make("mysql", "exact")

    def test_unknown_alias(self, filters: FilterStrategyFactory) -> None:
        with pytest.raises(UnknownStrategyAliasError) as exc_info:
            filters.make("mysql", "fuzzy")

        assert exc_info.value.driver == "mysql"

    def test_unknown_driver(self, filters: FilterStrategyFactory) -> None:
        with pytest.raises(UnknownDriverError):
            filters.make("oracle", "exact")

    def test_drivers(self, filters: FilterStrategyFactory) -> None:
        assert set(filters.drivers) == {"mysql", "sqlite", "postgres"}

    def test_alias_only_in_driver_map(self) -> None:
        factory = FilterStrategyFactory.from_config(
            FilterConfig(class_map={"mysql": {}, "sqlite": {"contains": LikeStrategy}})
        )

        assert isinstance(factory.make("sqlite", "contains"), LikeStrategy)
        with pytest.raises(UnknownStrategyAliasError):
            factory.make("mysql", "contains")

    def test_wrong_base_class(self) -> None:
        factory = FilterStrategyFactory.from_config(
            FilterConfig(class_map={"mysql": {"alphabetic": AlphabeticStrategy}})
        )

        with pytest.raises(TypeError):
            factory.make("mysql", "alphabetic")


class TestSortFactory:
    def test_defaults(self) -> None:
        factory = SortStrategyFactory.from_config(SortConfig())

        assert isinstance(factory.make("mysql", "alphabetic"), AlphabeticStrategy)
        assert isinstance(factory.make("postgres", "numeric"), NumericStrategy)
