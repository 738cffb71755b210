from __future__ import annotations

import pytest

from sqla_datastore import DataStore, DataStoreConfig, QueryContext, SortConfig

from ..models import Post


pytestmark = pytest.mark.anyio


async def _ids(store: DataStore[Post], sort: str) -> list[int]:
    posts = await store.get_by_context(QueryContext.from_params(sort=sort))

    return [post.id for post in posts]


class TestSorting:
    async def test_default_sorting(self, post_store: DataStore[Post], seed_data: dict) -> None:
        assert await _ids(post_store, "") == list(range(1, 26))

    async def test_reversed(self, post_store: DataStore[Post], seed_data: dict) -> None:
        assert await _ids(post_store, "-id") == list(range(25, 0, -1))

    async def test_tie_break_by_second_key(self, post_store: DataStore[Post], seed_data: dict) -> None:
        ids = await _ids(post_store, "writer,-id")

        assert ids == [*range(15, 0, -1), *range(25, 15, -1)]

    async def test_alphabetic_headline(self, post_store: DataStore[Post], seed_data: dict) -> None:
        ids = await _ids(post_store, "headline")

        # "Python tips NN" sorts before "SQL tips NN"
        assert ids == [*range(1, 26, 2), *range(2, 26, 2)]

    async def test_unavailable_keys_dropped(self, post_store: DataStore[Post], seed_data: dict) -> None:
        assert await _ids(post_store, "body,-id") == list(range(25, 0, -1))

    async def test_rating_is_alphabetic_by_default(
        self, post_store: DataStore[Post], seed_data: dict
    ) -> None:
        ids = await _ids(post_store, "-stars")

        # text ordering: "9" > "8" > ... > "25" > "24" > ... > "10" > "1"
        assert ids[:2] == [9, 8]
        assert ids[-1] == 1

    async def test_rating_numeric_override(self, post_store: DataStore[Post], seed_data: dict) -> None:
        config = DataStoreConfig(sort=SortConfig(strategies={"Post": {"rating": "numeric"}}))
        store = (
            DataStore(Post, post_store.session, config=config, catalog=post_store.catalog)
            .set_resource_adapter(post_store.resource_adapter)
            .set_strategy_driver(post_store.strategy_driver)
        )

        assert await _ids(store, "-stars") == list(range(25, 0, -1))
