from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from .context import SortKey, parse_sorting
from .datastructures import frozendict


@runtime_checkable
class ResourceAdapter(Protocol):
    """Maps between external (resource) keys and internal (storage) keys."""

    def external_to_internal_key(self, key: str) -> str: ...

    def internal_key_for_include(self, include: str) -> str: ...

    def available_filter_keys(self) -> Collection[str]: ...

    def available_sort_keys(self) -> Collection[str]: ...

    def default_filters(self) -> Mapping[str, Any]: ...

    def default_sorting(self) -> Sequence[SortKey]: ...


@runtime_checkable
class IncludeResolver(Protocol):
    """Translates external include paths into internal eager-load paths."""

    def resolve(self, includes: Sequence[str]) -> Sequence[str]: ...


@runtime_checkable
class IncludeDecorator(Protocol):
    """Adjusts the resolved include paths of one model before eager loading.

    *many* tells whether the includes are for a list of records or a single
    one, so a decorator can e.g. add paths only for detail views.
    """

    def decorate(self, includes: Sequence[str], many: bool = False) -> Sequence[str]: ...


@dataclass(frozen=True)
class MappingResourceAdapter:
    """Resource adapter backed by static tables.

    Keys missing from ``attributes`` / ``includes`` translate to themselves.

    Example:
        >>> adapter = MappingResourceAdapter(
        ...     attributes={"headline": "title"},
        ...     filter_keys={"headline", "author"},
        ...     sort_keys={"headline", "id"},
        ...     sorting="-id",
        ... )
    """

    attributes: Mapping[str, str] = field(default_factory=frozendict)
    includes: Mapping[str, str] = field(default_factory=frozendict)
    filter_keys: Collection[str] = frozenset()
    sort_keys: Collection[str] = frozenset()
    filters: Mapping[str, Any] = field(default_factory=frozendict)
    sorting: Sequence[SortKey] | str = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", frozendict(self.attributes))
        object.__setattr__(self, "includes", frozendict(self.includes))
        object.__setattr__(self, "filter_keys", frozenset(self.filter_keys))
        object.__setattr__(self, "sort_keys", frozenset(self.sort_keys))
        object.__setattr__(self, "filters", frozendict(self.filters))
        object.__setattr__(self, "sorting", parse_sorting(self.sorting))

    def external_to_internal_key(self, key: str) -> str:
        return self.attributes.get(key, key)

    def internal_key_for_include(self, include: str) -> str:
        return self.includes.get(include, include)

    def available_filter_keys(self) -> Collection[str]:
        return self.filter_keys

    def available_sort_keys(self) -> Collection[str]:
        return self.sort_keys

    def default_filters(self) -> Mapping[str, Any]:
        return self.filters

    def default_sorting(self) -> Sequence[SortKey]:
        return self.sorting  # type: ignore[return-value]


@dataclass(frozen=True)
class MappingIncludeResolver:
    """Include resolver that translates every path segment through an adapter.

    ``"comments.author"`` becomes ``"<comments key>.<author key>"``. The same
    adapter is used for every level, so nested resources must share its
    include table.
    """

    adapter: ResourceAdapter

    def resolve(self, includes: Sequence[str]) -> Sequence[str]:
        resolved = (
            ".".join(self.adapter.internal_key_for_include(segment) for segment in path.split("."))
            for path in includes
            if path
        )

        return tuple(dict.fromkeys(resolved))
