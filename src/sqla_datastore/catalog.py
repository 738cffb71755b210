from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Final, final

import sqlalchemy as sa
from sqlalchemy import orm

from .datastructures import frozendict
from .enums import RelationKind


RELATION_KIND_INFO_KEY: Final[str] = "relation_kind"


@dataclass(frozen=True, slots=True)
class RelationDescriptor:
    """Static description of one relation attribute of a mapped class.

    ``join_keys`` holds ``(local column, remote column)`` name pairs as
    reported by the relationship's join condition.
    """

    kind: RelationKind
    target: type[orm.DeclarativeBase]
    join_keys: tuple[tuple[str, str], ...] = ()
    uselist: bool = True


@final
class RelationCatalog:
    """Per-model table of relation descriptors, computed once at startup.

    Strategy resolution consults this table instead of inspecting ORM
    relationship objects at request time. Instances are immutable and hash by
    identity, so they can key ``lru_cache``-d resolution functions.
    """

    __slots__ = ("_catalog",)

    def __init__(
        self,
        catalog: Mapping[type[orm.DeclarativeBase], Mapping[str, RelationDescriptor]] | None = None,
    ) -> None:
        self._catalog: frozendict[type[orm.DeclarativeBase], frozendict[str, RelationDescriptor]] = (
            frozendict({model: frozendict(relations) for model, relations in (catalog or {}).items()})
        )

    def relations(self, model: type[orm.DeclarativeBase]) -> Mapping[str, RelationDescriptor]:
        """Relation descriptors of *model*, empty if the model is unknown."""
        return self._catalog.get(model, frozendict())

    def get(self, model: type[orm.DeclarativeBase], key: str) -> RelationDescriptor | None:
        return self.relations(model).get(key)

    def __repr__(self) -> str:
        return f"<RelationCatalog models={[m.__name__ for m in self._catalog]}>"


def classify_relationship(
    relationship: orm.RelationshipProperty[orm.DeclarativeBase],
) -> RelationKind:
    """Classify a configured relationship into a ``RelationKind``.

    Polymorphic kinds cannot be told apart from plain ones by the join alone;
    declare them with ``relationship(..., info={"relation_kind": "morph_many"})``.
    An explicit ``relation_kind`` always wins.
    """
    if (declared := relationship.info.get(RELATION_KIND_INFO_KEY)) is not None:
        return RelationKind(declared)

    direction = relationship.direction
    if direction is orm.RelationshipDirection.MANYTOONE:
        return RelationKind.BELONGS_TO

    if direction is orm.RelationshipDirection.MANYTOMANY:
        # composite secondary (a join of several tables) reaches the target
        # through an intermediate entity
        if relationship.secondary is not None and not isinstance(relationship.secondary, sa.Table):
            return RelationKind.HAS_MANY_THROUGH

        return RelationKind.BELONGS_TO_MANY

    return RelationKind.HAS_MANY if relationship.uselist else RelationKind.HAS_ONE


def describe_relationship(
    relationship: orm.RelationshipProperty[orm.DeclarativeBase],
) -> RelationDescriptor:
    return RelationDescriptor(
        kind=classify_relationship(relationship),
        target=relationship.mapper.class_,
        join_keys=tuple(
            (local.name, remote.name) for local, remote in relationship.local_remote_pairs or ()
        ),
        uselist=bool(relationship.uselist),
    )


def _build_catalog(registry: orm.registry) -> RelationCatalog:
    registry.configure()

    return RelationCatalog({
        mapper.class_: {
            key: describe_relationship(relationship)
            for key, relationship in mapper.relationships.items()
        }
        for mapper in registry.mappers
    })


def get_catalog(base: type[orm.DeclarativeBase]) -> RelationCatalog:
    """Build a relation catalog for every class mapped in *base*'s registry.

    Args:
        base: SQLAlchemy declarative base class.

    Returns:
        Catalog mapping each mapped class to its relation descriptors.

    Raises:
        AssertionError: If base is not a subclass of orm.DeclarativeBase.

    Example:
        >>> from myapp.models import Base
        >>> catalog = get_catalog(Base)
        >>> catalog.get(Post, "author").kind
        <RelationKind.BELONGS_TO: 'belongs_to'>
    """
    assert orm.DeclarativeBase in getattr(base, "__bases__", ()), (
        "base must be a subclass of orm.DeclarativeBase"
    )

    return _build_catalog(base.registry)


@lru_cache(maxsize=32)
def _registry_catalog(registry: orm.registry) -> RelationCatalog:
    return _build_catalog(registry)


def catalog_for(model: type[orm.DeclarativeBase]) -> RelationCatalog:
    """Catalog of the registry *model* is mapped in, built once per registry."""
    return _registry_catalog(sa.inspect(model).registry)
