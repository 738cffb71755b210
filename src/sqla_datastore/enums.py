from __future__ import annotations

from enum import Enum


class FilterStrategy(str, Enum):
    """Built-in filter strategy aliases."""

    LIKE = "like"
    LIKE_CASE_INSENSITIVE = "like-case-insensitive"
    EXACT = "exact"
    EXACT_CASE_INSENSITIVE = "exact-case-insensitive"
    EXACT_COMMA_SEPARATED = "exact-comma-separated"
    RELATION_SINGULAR = "relation-singular"
    RELATION_PLURAL = "relation-plural"

    def __str__(self) -> str:
        return self.value


class SortStrategy(str, Enum):
    """Built-in sort strategy aliases."""

    ALPHABETIC = "alphabetic"
    NUMERIC = "numeric"

    def __str__(self) -> str:
        return self.value


class RelationKind(str, Enum):
    """Relation kinds a relation attribute can be classified as.

    Only some kinds have a default filter strategy; see
    ``FilterConfig.default_relation_strategies``.
    """

    BELONGS_TO = "belongs_to"
    BELONGS_TO_MANY = "belongs_to_many"
    HAS_MANY = "has_many"
    HAS_ONE = "has_one"
    MORPH_MANY = "morph_many"
    MORPH_ONE = "morph_one"
    MORPH_TO_MANY = "morph_to_many"
    HAS_MANY_THROUGH = "has_many_through"

    def __str__(self) -> str:
        return self.value
