from __future__ import annotations

from typing import Any


class DataStoreError(Exception):
    """Base class for errors raised by sqla_datastore."""


class FeatureNotSupportedError(DataStoreError):
    """The store is not configured for the requested operation.

    Raised before any storage access, so a failed write never mutates data.
    """


class UnknownStrategyAliasError(DataStoreError, LookupError):
    def __init__(self, alias: str, driver: str | None = None) -> None:
        self.alias = alias
        self.driver = driver
        where = f" for driver {driver!r}" if driver is not None else ""
        super().__init__(f"Unknown strategy alias {alias!r}{where}")


class UnknownDriverError(DataStoreError, LookupError):
    def __init__(self, driver: str) -> None:
        self.driver = driver
        super().__init__(f"No strategy class map configured for driver {driver!r}")


class UnsupportedRelationKindError(DataStoreError):
    def __init__(self, model: type[Any], key: str, kind: str) -> None:
        self.model = model
        self.key = key
        self.kind = kind
        super().__init__(
            f"Relation {model.__name__}.{key} of kind {kind!r} has no filter strategy"
        )


class InvalidPaginationParametersError(DataStoreError, ValueError):
    """Page number or page size is not a positive integer."""
