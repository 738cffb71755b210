from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

import sqlalchemy as sa
from sqlalchemy import orm
from sqlalchemy.ext.asyncio import AsyncSession

from .config import ManipulationConfig
from .exceptions import FeatureNotSupportedError
from .strategies.base import coerce_value


logger = logging.getLogger(__name__)

T = TypeVar("T", bound=orm.DeclarativeBase)


@runtime_checkable
class DataManipulator(Protocol):
    """Performs persistence for a data store. All keys it receives are internal."""

    async def create(self, data: Mapping[str, Any]) -> Any: ...

    async def make(self, data: Mapping[str, Any]) -> Any: ...

    async def update_by_id(self, id: Any, data: Mapping[str, Any]) -> bool: ...  # noqa: A002

    async def delete_by_id(self, id: Any) -> bool: ...  # noqa: A002

    async def attach_as_related(
        self,
        id: Any,  # noqa: A002
        relation: str,
        ids: Sequence[Any],
        detaching: bool = False,
    ) -> bool: ...

    async def detach_as_related(self, id: Any, relation: str, ids: Sequence[Any]) -> bool: ...  # noqa: A002


class ModelManipulator(Generic[T]):
    """Direct-record-backed manipulator working on one mapped class.

    Changes are flushed, not committed: the caller owns the transaction.
    Missing records make ``update_by_id`` and friends return ``False``;
    database errors propagate unchanged. Overrides for *model* in
    ``config.model_config`` are applied on construction.
    """

    __slots__ = ("config", "model", "session")

    def __init__(
        self,
        session: AsyncSession,
        model: type[T],
        config: ManipulationConfig | None = None,
    ) -> None:
        self.session = session
        self.model = model
        self.config = (config if config is not None else ManipulationConfig()).for_model(model)

    async def create(self, data: Mapping[str, Any]) -> T:
        record = await self.make(data)
        self.session.add(record)
        await self.session.flush()
        logger.debug("created %s %r", self.model.__name__, sa.inspect(record).identity)

        return record

    async def make(self, data: Mapping[str, Any]) -> T:
        self._check_keys(data)

        return self.model(**data)

    async def update_by_id(self, id: Any, data: Mapping[str, Any]) -> bool:  # noqa: A002
        self._check_keys(data)
        record = await self.session.get(self.model, self._coerce_id(id))
        if record is None:
            return False

        for key, value in data.items():
            setattr(record, key, value)
        await self.session.flush()

        return True

    async def delete_by_id(self, id: Any) -> bool:  # noqa: A002
        record = await self.session.get(self.model, self._coerce_id(id))
        if record is None:
            return False

        await self.session.delete(record)
        await self.session.flush()

        return True

    async def attach_as_related(
        self,
        id: Any,  # noqa: A002
        relation: str,
        ids: Sequence[Any],
        detaching: bool = False,
    ) -> bool:
        """Relate the records identified by *ids* to record *id*.

        With ``detaching`` the relation ends up holding exactly *ids*; this
        requires ``allow_relationship_replace``. A to-one relation takes at
        most one id.
        """
        if detaching and not self.config.allow_relationship_replace:
            raise FeatureNotSupportedError("Replacing related records is not allowed")

        relationship = self._relationship(relation)
        if not relationship.uselist and len(ids) > 1:
            raise ValueError(f"{self.model.__name__}.{relation} relates to one record, got {len(ids)} ids")

        record = await self._get_with_relation(id, relation)
        if record is None:
            return False

        related = await self._related_records(relationship, ids)
        if relationship.uselist:
            if detaching:
                setattr(record, relation, list(related))
            else:
                collection = getattr(record, relation)
                for item in related:
                    if item not in collection:
                        collection.append(item)
        elif related or detaching:
            setattr(record, relation, related[0] if related else None)

        await self.session.flush()

        return True

    async def detach_as_related(self, id: Any, relation: str, ids: Sequence[Any]) -> bool:  # noqa: A002
        relationship = self._relationship(relation)
        record = await self._get_with_relation(id, relation)
        if record is None:
            return False

        primary_key = relationship.mapper.primary_key[0]
        wanted = {coerce_value(primary_key, value) for value in ids}

        def is_detached(item: Any) -> bool:
            return relationship.mapper.primary_key_from_instance(item)[0] in wanted

        if relationship.uselist:
            collection = getattr(record, relation)
            for item in [item for item in collection if is_detached(item)]:
                collection.remove(item)
        elif (current := getattr(record, relation)) is not None and is_detached(current):
            setattr(record, relation, None)

        await self.session.flush()

        return True

    def _coerce_id(self, id: Any) -> Any:  # noqa: A002
        return coerce_value(sa.inspect(self.model).primary_key[0], id)

    def _check_keys(self, data: Mapping[str, Any]) -> None:
        attrs = sa.inspect(self.model).attrs
        if unknown := [key for key in data if key not in attrs]:
            raise TypeError(f"{unknown!r} are not mapped attributes of {self.model.__name__}")

    def _relationship(self, relation: str) -> orm.RelationshipProperty[Any]:
        relationship = sa.inspect(self.model).relationships.get(relation)
        if relationship is None:
            raise ValueError(f"No relationship '{relation}' on {self.model.__name__}")

        return relationship

    async def _get_with_relation(self, id: Any, relation: str) -> T | None:  # noqa: A002
        return await self.session.get(
            self.model,
            self._coerce_id(id),
            options=[orm.selectinload(getattr(self.model, relation))],
            populate_existing=True,
        )

    async def _related_records(
        self, relationship: orm.RelationshipProperty[Any], ids: Sequence[Any]
    ) -> Sequence[Any]:
        if not ids:
            return ()
        primary_key = relationship.mapper.primary_key[0]
        target = relationship.mapper.class_
        values = [coerce_value(primary_key, value) for value in ids]
        result = await self.session.scalars(sa.select(target).where(primary_key.in_(values)))

        return result.all()


def manipulator_for(
    session: AsyncSession,
    model: type[T],
    config: ManipulationConfig | None = None,
) -> DataManipulator:
    """Build the manipulator configured for *model*.

    The class comes from ``config.class_map`` and defaults to
    ``ModelManipulator``; it is called as ``cls(session, model, config)``.
    """
    config = config if config is not None else ManipulationConfig()
    manipulator_cls = config.manipulator_class(model) or ModelManipulator
    logger.debug("manipulator for %s: %s", model.__name__, manipulator_cls.__name__)

    return manipulator_cls(session, model, config)
