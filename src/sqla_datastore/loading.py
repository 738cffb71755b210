from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from sqlalchemy import orm

from .catalog import RelationCatalog


if TYPE_CHECKING:
    from sqlalchemy.orm.strategy_options import _AbstractLoad


@lru_cache(maxsize=1028)
def resolve_path(
    model: type[orm.DeclarativeBase],
    dotted: str,
    catalog: RelationCatalog,
) -> tuple[orm.InstrumentedAttribute[Any], ...]:
    """Resolve an internal eager-load path like ``'posts.comments'`` into
    the chain of relationship attributes it walks.

    Each segment must be a relation of the class reached by the previous one.

    Raises:
        ValueError: If a segment is not a relation in the catalog.
    """
    result: list[orm.InstrumentedAttribute[Any]] = []
    current = model
    for segment in dotted.split("."):
        relation = catalog.get(current, segment)
        if relation is None:
            raise ValueError(
                f"No relationship '{segment}' on {current.__name__} "
                f"(resolving '{dotted}' from {model.__name__})"
            )
        result.append(getattr(current, segment))
        current = relation.target

    return tuple(result)


def _construct_strategy(
    strategy: Callable[..., _AbstractLoad],
    attribute: orm.InstrumentedAttribute[Any],
    current: _AbstractLoad | None = None,
) -> _AbstractLoad:
    """Create or chain a loader option.

    If ``current`` is ``None``, creates a top-level option (``orm.selectinload(attr)``),
    otherwise chains onto it (``current.selectinload(attr)``).
    """
    if current is None:
        return strategy(attribute)

    return getattr(current, strategy.__name__)(attribute)


def eager_loads(
    model: type[orm.DeclarativeBase],
    paths: Iterable[str],
    catalog: RelationCatalog,
) -> Sequence[_AbstractLoad]:
    """Translate internal eager-load paths into ``selectinload`` options.

    ``selectinload`` keeps one row per subject record, so the options combine
    safely with LIMIT/OFFSET pagination. Duplicate paths are loaded once.
    """
    options: list[_AbstractLoad] = []
    for path in dict.fromkeys(paths):
        if not path:
            continue
        load: _AbstractLoad | None = None
        for attribute in resolve_path(model, path, catalog):
            load = _construct_strategy(orm.selectinload, attribute, load)
        if load is not None:
            options.append(load)

    return options
