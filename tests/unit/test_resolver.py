from __future__ import annotations

import pytest

from sqla_datastore import (
    DataStoreConfig,
    FilterConfig,
    RelationCatalog,
    SortConfig,
    StrategyResolver,
    UnknownStrategyAliasError,
    UnsupportedRelationKindError,
)

from ..models import Comment, Post, User


@pytest.fixture
def resolver(catalog: RelationCatalog) -> StrategyResolver:
    return StrategyResolver(DataStoreConfig(), catalog)


class TestFilterResolution:
    def test_global_default(self, resolver: StrategyResolver) -> None:
        assert resolver.resolve_filter(Post, "title") == "like-case-insensitive"

    def test_per_key_default(self, resolver: StrategyResolver) -> None:
        assert resolver.resolve_filter(Post, "id") == "exact"
        assert resolver.resolve_filter(Post, "slug") == "exact-case-insensitive"

    @pytest.mark.parametrize(
        ("model", "key", "alias"),
        [
            (Post, "author", "relation-singular"),
            (User, "profile", "relation-singular"),
            (User, "posts", "relation-plural"),
            (Post, "tags", "relation-plural"),
            (Post, "attachments", "relation-plural"),
        ],
    )
    def test_relation_kind_default(
        self, resolver: StrategyResolver, model: type, key: str, alias: str
    ) -> None:
        assert resolver.resolve_filter(model, key) == alias

    @pytest.mark.parametrize("key", ["cover", "commenters"])
    def test_relation_kind_without_strategy(self, resolver: StrategyResolver, key: str) -> None:
        with pytest.raises(UnsupportedRelationKindError) as exc_info:
            resolver.resolve_filter(Post, key)

        assert exc_info.value.key == key

    @pytest.mark.parametrize("model_key", [Post, "tests.models.Post", "Post"])
    def test_model_override(self, catalog: RelationCatalog, model_key: object) -> None:
        config = DataStoreConfig(filter=FilterConfig(strategies={model_key: {"title": "exact", "cover": "like"}}))
        resolver = StrategyResolver(config, catalog)

        assert resolver.resolve_filter(Post, "title") == "exact"
        assert resolver.resolve_filter(Post, "cover") == "like"
        assert resolver.resolve_filter(Comment, "text") == "like-case-insensitive"

    def test_unknown_alias(self, catalog: RelationCatalog) -> None:
        config = DataStoreConfig(filter=FilterConfig(default_strategies={"title": "fuzzy"}))

        with pytest.raises(UnknownStrategyAliasError):
            StrategyResolver(config, catalog).resolve_filter(Post, "title")

    def test_alias_known_to_one_driver_only(self, catalog: RelationCatalog) -> None:
        from sqla_datastore.strategies import LikeStrategy

        config = DataStoreConfig(
            filter=FilterConfig(
                default_strategies={"title": "contains"},
                class_map={"mysql": {}, "sqlite": {"contains": LikeStrategy}},
            )
        )

        assert StrategyResolver(config, catalog).resolve_filter(Post, "title") == "contains"


class TestSortResolution:
    def test_defaults(self, resolver: StrategyResolver) -> None:
        assert resolver.resolve_sort(Post, "id") == "numeric"
        assert resolver.resolve_sort(Post, "title") == "alphabetic"

    def test_model_override(self, catalog: RelationCatalog) -> None:
        config = DataStoreConfig(sort=SortConfig(strategies={Post: {"rating": "numeric"}}))
        resolver = StrategyResolver(config, catalog)

        assert resolver.resolve_sort(Post, "rating") == "numeric"
        assert resolver.resolve_sort(User, "rating") == "alphabetic"

    def test_unknown_alias(self, catalog: RelationCatalog) -> None:
        config = DataStoreConfig(sort=SortConfig(default="random"))

        with pytest.raises(UnknownStrategyAliasError):
            StrategyResolver(config, catalog).resolve_sort(Post, "title")


class TestReversePrefix:
    def test_split(self, resolver: StrategyResolver) -> None:
        assert resolver.split_reverse_prefix("-title") == ("title", True)
        assert resolver.split_reverse_prefix("title") == ("title", False)

    def test_prefix_alone_is_a_key(self, resolver: StrategyResolver) -> None:
        assert resolver.split_reverse_prefix("-") == ("-", False)

    def test_custom_prefix(self, catalog: RelationCatalog) -> None:
        resolver = StrategyResolver(DataStoreConfig(filter=FilterConfig(reverse_key_prefix="not:")), catalog)

        assert resolver.reverse_key_prefix == "not:"
        assert resolver.split_reverse_prefix("not:title") == ("title", True)
        assert resolver.split_reverse_prefix("-title") == ("-title", False)


def test_default_resolver_has_empty_catalog() -> None:
    resolver = StrategyResolver()

    assert resolver.resolve_filter(Post, "author") == "like-case-insensitive"
