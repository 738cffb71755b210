from __future__ import annotations

import os
from collections.abc import AsyncIterator, Iterator
from typing import Final

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    create_async_engine,
)

from sqla_datastore import (
    DataStore,
    MappingIncludeResolver,
    MappingResourceAdapter,
    RelationCatalog,
    datastore_cache_clear,
    get_catalog,
)

from .models import (
    Attachment,
    Base,
    Comment,
    Post,
    Profile,
    Role,
    Tag,
    User,
    post_tags,
    user_roles,
)


# --db value -> strategy driver name
STRATEGY_DRIVERS: Final[dict[str, str]] = {
    "postgres": "postgres",
    "mysql": "mysql",
    "sqlite": "sqlite",
}

POST_COUNT: Final[int] = 25

pytestmark = pytest.mark.anyio


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--db",
        default="sqlite",
        choices=list(STRATEGY_DRIVERS),
        help="Database backend to test against",
    )


@pytest.fixture(scope="session")
def db_backend(request: pytest.FixtureRequest) -> str:
    value: str = request.config.getoption("--db")

    return value


@pytest.fixture(scope="session")
def strategy_driver(db_backend: str) -> str:
    return STRATEGY_DRIVERS[db_backend]


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def catalog() -> RelationCatalog:
    return get_catalog(Base)


@pytest.fixture(scope="session")
def db_config(db_backend: str, tmp_path_factory: pytest.TempPathFactory) -> Iterator[str]:
    match db_backend:
        case "postgres":
            from testcontainers.postgres import PostgresContainer

            pg = PostgresContainer(image="postgres:latest")
            if os.name == "nt":
                pg.get_container_host_ip = lambda: "127.0.0.1"
            with pg:
                host = pg.get_container_host_ip()
                dsn = (
                    f"postgresql+asyncpg://{pg.username}:{pg.password}"
                    f"@{host}:{pg.get_exposed_port(pg.port)}/{pg.dbname}"
                )
                yield dsn

        case "mysql":
            from testcontainers.mysql import MySqlContainer

            my = MySqlContainer(image="mysql:8.0")
            if os.name == "nt":
                my.get_container_host_ip = lambda: "127.0.0.1"
            with my:
                host = my.get_container_host_ip()
                port = my.get_exposed_port(my.port)
                dsn = (
                    f"mysql+asyncmy://{my.username}:{my.password}"
                    f"@{host}:{port}/{my.dbname}"
                )
                yield dsn

        case "sqlite":
            tmp = tmp_path_factory.mktemp("db")
            yield f"sqlite+aiosqlite:///{tmp}/test.db"


@pytest.fixture(scope="session")
def engine(db_config: str) -> AsyncEngine:
    return create_async_engine(db_config, echo=False)


@pytest.fixture(scope="session")
async def _create_tables(engine: AsyncEngine) -> AsyncIterator[None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def connection(
    engine: AsyncEngine, _create_tables: None
) -> AsyncIterator[AsyncConnection]:
    async with engine.connect() as conn:
        trans = await conn.begin()
        yield conn
        await trans.rollback()


@pytest.fixture
async def session(connection: AsyncConnection) -> AsyncIterator[AsyncSession]:
    sess = AsyncSession(bind=connection, expire_on_commit=False)
    yield sess
    await sess.close()


@pytest.fixture
async def seed_data(session: AsyncSession) -> dict[str, list[Base]]:
    alice = User(id=1, name="alice", active=True)
    bob = User(id=2, name="bob", active=True)
    charlie = User(id=3, name="charlie", active=False)
    session.add_all([alice, bob, charlie])
    await session.flush()

    # odd ids are python posts, even ids sql posts; alice wrote the first 15
    posts = [
        Post(
            id=i,
            title=f"{'Python' if i % 2 else 'SQL'} tips {i:02d}",
            slug=f"post-{i:02d}",
            body=f"body {i}",
            rating=str(i),
            author_id=1 if i <= 15 else 2,
        )
        for i in range(1, POST_COUNT + 1)
    ]
    session.add_all(posts)
    await session.flush()

    tag_python = Tag(id=1, name="python")
    tag_sqlalchemy = Tag(id=2, name="sqlalchemy")
    tag_testing = Tag(id=3, name="testing")
    session.add_all([tag_python, tag_sqlalchemy, tag_testing])
    await session.flush()

    await session.execute(
        post_tags.insert().values([
            {"post_id": 1, "tag_id": 1},
            {"post_id": 1, "tag_id": 2},
            {"post_id": 2, "tag_id": 1},
            {"post_id": 4, "tag_id": 3},
        ])
    )
    await session.flush()

    comment1 = Comment(id=1, text="Great post!", post_id=1, author_id=2)
    comment2 = Comment(id=2, text="Nice work", post_id=1, author_id=3)
    comment3 = Comment(id=3, text="Thanks", post_id=2, author_id=2)
    session.add_all([comment1, comment2, comment3])
    await session.flush()

    admin = Role(id=1, name="admin", level=10)
    editor = Role(id=2, name="editor", level=5)
    viewer = Role(id=3, name="viewer", level=1)
    session.add_all([admin, editor, viewer])
    await session.flush()

    await session.execute(
        user_roles.insert().values([
            {"user_id": 1, "role_id": 1},
            {"user_id": 1, "role_id": 2},
            {"user_id": 2, "role_id": 2},
            {"user_id": 2, "role_id": 3},
        ])
    )
    await session.flush()

    profile_alice = Profile(id=1, bio="Alice bio", user_id=1)
    profile_bob = Profile(id=2, bio="Bob bio", user_id=2)
    session.add_all([profile_alice, profile_bob])
    await session.flush()

    att1 = Attachment(id=1, url="https://example.com/post1_img1.jpg", attachable_type="post", attachable_id=1)
    att2 = Attachment(id=2, url="https://example.com/post1_img2.jpg", attachable_type="post", attachable_id=1)
    att3 = Attachment(id=3, url="https://example.com/post2_cover.jpg", attachable_type="cover", attachable_id=2)
    session.add_all([att1, att2, att3])
    await session.flush()

    session.expunge_all()

    return {
        "users": [alice, bob, charlie],
        "posts": posts,
        "comments": [comment1, comment2, comment3],
        "roles": [admin, editor, viewer],
        "tags": [tag_python, tag_sqlalchemy, tag_testing],
        "profiles": [profile_alice, profile_bob],
        "attachments": [att1, att2, att3],
    }


@pytest.fixture(autouse=True)
def clear_lru_caches() -> Iterator[None]:
    yield
    datastore_cache_clear()


POST_ADAPTER: Final[MappingResourceAdapter] = MappingResourceAdapter(
    attributes={"headline": "title", "writer": "author_id", "tag": "tags", "stars": "rating"},
    includes={"writer": "author", "notes": "comments", "files": "attachments", "tag": "tags"},
    filter_keys={"id", "headline", "slug", "body", "author", "tag", "comments", "attachments"},
    sort_keys={"id", "headline", "writer", "stars"},
    sorting="id",
)


@pytest.fixture
def post_store(
    session: AsyncSession, strategy_driver: str, catalog: RelationCatalog
) -> DataStore[Post]:
    return (
        DataStore(Post, session, catalog=catalog)
        .set_resource_adapter(POST_ADAPTER)
        .set_include_resolver(MappingIncludeResolver(POST_ADAPTER))
        .set_strategy_driver(strategy_driver)
    )
