from __future__ import annotations

import sys
from collections.abc import Iterator, Mapping
from typing import Any, TypeVar


if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self


K = TypeVar("K")
V = TypeVar("V")


class frozendict(Mapping[K, V]):  # noqa: N801
    """Immutable, hashable mapping used for every configuration table.

    Configuration objects are passed to ``lru_cache``-d resolution functions,
    so every table they hold must hash. Nested plain dicts are frozen on
    construction to keep that true for nested sections such as per-model
    strategy overrides.

    Example:
        >>> defaults = frozendict({"id": "exact"})
        >>> defaults.merged({"slug": "exact-case-insensitive"})
        <frozendict {'id': 'exact', 'slug': 'exact-case-insensitive'}>
    """

    __slots__ = ("_dict", "_hash")

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self._dict: dict[K, V] = {
            key: freeze(value) for key, value in dict(*args, **kwargs).items()
        }
        self._hash = hash(frozenset(self._dict.items()))

    def __getitem__(self, key: K) -> V:
        return self._dict[key]

    def __contains__(self, key: Any) -> bool:
        return key in self._dict

    def merged(self, *others: Mapping[K, V]) -> Self:
        """Return a new frozendict with *others* layered over this one.

        Later mappings win; keys they do not declare keep this mapping's value.
        """
        result = dict(self._dict)
        for other in others:
            result.update(other)

        return type(self)(result)

    def __iter__(self) -> Iterator[K]:
        return iter(self._dict)

    def __len__(self) -> int:
        return len(self._dict)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._dict!r}>"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, frozendict):
            return self._dict == other._dict

        if isinstance(other, dict):
            return self._dict == other

        return NotImplemented

    def __hash__(self) -> int:
        return self._hash


def freeze(value: Any) -> Any:
    """Convert dicts, lists and sets to their hashable counterparts, recursively."""
    if isinstance(value, frozendict):
        return value
    if isinstance(value, Mapping):
        return frozendict(value)
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze(item) for item in value)

    return value
