from __future__ import annotations

import pkgutil
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Final

from .datastructures import frozendict
from .enums import FilterStrategy, RelationKind, SortStrategy
from .exceptions import InvalidPaginationParametersError
from .strategies import (
    AlphabeticStrategy,
    ExactCaseInsensitiveStrategy,
    ExactCommaSeparatedStrategy,
    ExactStrategy,
    LikeCaseInsensitiveStrategy,
    LikeStrategy,
    NumericStrategy,
    PostgresExactCaseInsensitiveStrategy,
    PostgresLikeCaseInsensitiveStrategy,
    RelationPluralStrategy,
    RelationSingularStrategy,
)


DEFAULT_PAGE_SIZE: Final[int] = 10
DEFAULT_DRIVER: Final[str] = "mysql"
DEFAULT_REVERSE_KEY_PREFIX: Final[str] = "-"

DEFAULT_FILTER_CLASS_MAP: Final[frozendict[str, type]] = frozendict({
    FilterStrategy.LIKE.value: LikeStrategy,
    FilterStrategy.LIKE_CASE_INSENSITIVE.value: LikeCaseInsensitiveStrategy,
    FilterStrategy.EXACT.value: ExactStrategy,
    FilterStrategy.EXACT_CASE_INSENSITIVE.value: ExactCaseInsensitiveStrategy,
    FilterStrategy.EXACT_COMMA_SEPARATED.value: ExactCommaSeparatedStrategy,
    FilterStrategy.RELATION_SINGULAR.value: RelationSingularStrategy,
    FilterStrategy.RELATION_PLURAL.value: RelationPluralStrategy,
})

DEFAULT_SORT_CLASS_MAP: Final[frozendict[str, type]] = frozendict({
    SortStrategy.ALPHABETIC.value: AlphabeticStrategy,
    SortStrategy.NUMERIC.value: NumericStrategy,
})


def _alias(value: str | Enum) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _class_reference(value: type | str) -> type:
    """Accept a class or a ``"package.module:ClassName"`` reference."""
    if isinstance(value, str):
        resolved = pkgutil.resolve_name(value)
        if not isinstance(resolved, type):
            raise TypeError(f"{value!r} does not name a class")
        return resolved

    return value


def _aliases(mapping: Mapping[Any, str | Enum]) -> frozendict[Any, str]:
    return frozendict({key: _alias(alias) for key, alias in mapping.items()})


def _class_map(mapping: Mapping[str | Enum, type | str]) -> frozendict[str, type]:
    return frozendict({_alias(alias): _class_reference(cls) for alias, cls in mapping.items()})


def _model_strategies(mapping: Mapping[Any, Mapping[str, str | Enum]]) -> frozendict[Any, Any]:
    return frozendict({model: _aliases(keys) for model, keys in mapping.items()})


def _optional_class(value: type | str | None) -> type | None:
    return None if value is None else _class_reference(value)


def _model_classes(mapping: Mapping[Any, type | str]) -> frozendict[Any, type]:
    return frozendict({model: _class_reference(cls) for model, cls in mapping.items()})


def model_keys(model: type[Any]) -> tuple[Any, ...]:
    """Keys a model may be registered under in per-model tables, most specific first."""
    return (model, f"{model.__module__}.{model.__qualname__}", model.__name__)


def model_lookup(mapping: Mapping[Any, Any], model: type[Any], default: Any = None) -> Any:
    """Value registered for *model* in a per-model table, or *default*."""
    for key in model_keys(model):
        if key in mapping:
            return mapping[key]

    return default


@dataclass(frozen=True, slots=True)
class FilterConfig:
    """Filter strategy configuration.

    ``strategies`` maps a model (class, dotted path or class name) to
    ``{internal attribute key: alias}``. Keys in all tables are internal
    (storage) keys, not resource keys.
    """

    default: str = FilterStrategy.LIKE_CASE_INSENSITIVE.value
    default_strategies: Mapping[str, str] = field(
        default_factory=lambda: frozendict({
            "id": FilterStrategy.EXACT.value,
            "slug": FilterStrategy.EXACT_CASE_INSENSITIVE.value,
        })
    )
    default_relation_strategies: Mapping[RelationKind, str] = field(
        default_factory=lambda: frozendict({
            RelationKind.BELONGS_TO: FilterStrategy.RELATION_SINGULAR.value,
            RelationKind.BELONGS_TO_MANY: FilterStrategy.RELATION_PLURAL.value,
            RelationKind.HAS_MANY: FilterStrategy.RELATION_PLURAL.value,
            RelationKind.HAS_ONE: FilterStrategy.RELATION_SINGULAR.value,
            RelationKind.MORPH_MANY: FilterStrategy.RELATION_PLURAL.value,
            RelationKind.MORPH_TO_MANY: FilterStrategy.RELATION_PLURAL.value,
        })
    )
    strategies: Mapping[Any, Mapping[str, str]] = field(default_factory=frozendict)
    class_map_default: Mapping[str, type] = DEFAULT_FILTER_CLASS_MAP
    class_map: Mapping[str, Mapping[str, type]] = field(
        default_factory=lambda: frozendict({
            "mysql": {},
            "sqlite": {},
            "postgres": {
                FilterStrategy.LIKE_CASE_INSENSITIVE.value: PostgresLikeCaseInsensitiveStrategy,
                FilterStrategy.EXACT_CASE_INSENSITIVE.value: PostgresExactCaseInsensitiveStrategy,
            },
        })
    )
    reverse_key_prefix: str = DEFAULT_REVERSE_KEY_PREFIX
    # top-level filter handler class, ``None`` meaning ``DefaultFilterHandler``
    handler: type | str | None = None
    handler_model_map: Mapping[Any, type | str] = field(default_factory=frozendict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "default", _alias(self.default))
        object.__setattr__(self, "default_strategies", _aliases(self.default_strategies))
        object.__setattr__(
            self,
            "default_relation_strategies",
            frozendict({
                RelationKind(kind): _alias(alias)
                for kind, alias in self.default_relation_strategies.items()
            }),
        )
        object.__setattr__(self, "strategies", _model_strategies(self.strategies))
        object.__setattr__(self, "class_map_default", _class_map(self.class_map_default))
        object.__setattr__(
            self,
            "class_map",
            frozendict({driver: _class_map(m) for driver, m in self.class_map.items()}),
        )
        object.__setattr__(self, "handler", _optional_class(self.handler))
        object.__setattr__(self, "handler_model_map", _model_classes(self.handler_model_map))

    def handler_for(self, model: type[Any]) -> type | None:
        """Filter handler class configured for *model*, falling back to ``handler``."""
        return model_lookup(self.handler_model_map, model, self.handler)


@dataclass(frozen=True, slots=True)
class SortConfig:
    default: str = SortStrategy.ALPHABETIC.value
    default_strategies: Mapping[str, str] = field(
        default_factory=lambda: frozendict({
            key: SortStrategy.NUMERIC.value
            for key in ("id", "active", "position", "created_at", "updated_at")
        })
    )
    strategies: Mapping[Any, Mapping[str, str]] = field(default_factory=frozendict)
    class_map_default: Mapping[str, type] = DEFAULT_SORT_CLASS_MAP
    class_map: Mapping[str, Mapping[str, type]] = field(
        default_factory=lambda: frozendict({"mysql": {}, "sqlite": {}, "postgres": {}})
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "default", _alias(self.default))
        object.__setattr__(self, "default_strategies", _aliases(self.default_strategies))
        object.__setattr__(self, "strategies", _model_strategies(self.strategies))
        object.__setattr__(self, "class_map_default", _class_map(self.class_map_default))
        object.__setattr__(
            self,
            "class_map",
            frozendict({driver: _class_map(m) for driver, m in self.class_map.items()}),
        )


@dataclass(frozen=True, slots=True)
class PaginationConfig:
    size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if isinstance(self.size, bool) or not isinstance(self.size, int) or self.size < 1:
            raise InvalidPaginationParametersError(
                f"default page size must be a positive integer, got {self.size!r}"
            )


@dataclass(frozen=True, slots=True)
class IncludeConfig:
    """Include decorator classes, instantiated per store with the subject model.

    A decorator receives the resolved (internal) include paths and returns
    the paths to eager load.
    """

    decorator: type | str | None = None
    decorator_model_map: Mapping[Any, type | str] = field(default_factory=frozendict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "decorator", _optional_class(self.decorator))
        object.__setattr__(self, "decorator_model_map", _model_classes(self.decorator_model_map))

    def decorator_for(self, model: type[Any]) -> type | None:
        return model_lookup(self.decorator_model_map, model, self.decorator)


@dataclass(frozen=True, slots=True)
class ManipulationConfig:
    """Record manipulation settings.

    ``class_map`` picks a manipulator class per model for ``manipulator_for``.
    ``model_config`` holds per-model overrides of the other settings, e.g.
    ``{Post: {"allow_relationship_replace": True}}``.
    """

    # whether attaching with ``detaching=True`` may replace a to-many relation
    allow_relationship_replace: bool = False
    class_map: Mapping[Any, type | str] = field(default_factory=frozendict)
    model_config: Mapping[Any, Mapping[str, Any]] = field(default_factory=frozendict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "class_map", _model_classes(self.class_map))
        object.__setattr__(
            self,
            "model_config",
            frozendict({model: frozendict(_normalize_keys(o)) for model, o in self.model_config.items()}),
        )

    def manipulator_class(self, model: type[Any]) -> type | None:
        return model_lookup(self.class_map, model)

    def for_model(self, model: type[Any]) -> ManipulationConfig:
        """Settings for *model* with its ``model_config`` overrides applied."""
        overrides = model_lookup(self.model_config, model)
        if not overrides:
            return self

        return replace(self, **overrides)


@dataclass(frozen=True, slots=True)
class DataStoreConfig:
    """Immutable configuration shared by resolvers, factories and stores.

    Build it once at startup and pass it by reference. It hashes, so
    resolution results are cached per configuration.

    Example:
        >>> config = DataStoreConfig.from_mapping({
        ...     "filter": {"strategies": {"Post": {"title": "like"}}},
        ...     "pagination": {"size": 25},
        ... })
    """

    filter: FilterConfig = field(default_factory=FilterConfig)
    sort: SortConfig = field(default_factory=SortConfig)
    include: IncludeConfig = field(default_factory=IncludeConfig)
    pagination: PaginationConfig = field(default_factory=PaginationConfig)
    manipulation: ManipulationConfig = field(default_factory=ManipulationConfig)
    default_driver: str = DEFAULT_DRIVER

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> DataStoreConfig:
        """Build a configuration from plain (e.g. parsed YAML/TOML) data.

        Section keys may use dashes or underscores (``class-map-default`` or
        ``class_map_default``). Sections that are left out keep their defaults.
        """
        data = _normalize_keys(mapping)
        sections: dict[str, Any] = {}
        for name, section_cls in (
            ("filter", FilterConfig),
            ("sort", SortConfig),
            ("include", IncludeConfig),
            ("pagination", PaginationConfig),
            ("manipulation", ManipulationConfig),
        ):
            if name in data:
                sections[name] = section_cls(**_normalize_keys(data.pop(name)))

        return cls(**sections, **data)


def _normalize_keys(mapping: Mapping[str, Any]) -> dict[str, Any]:
    return {key.replace("-", "_"): value for key, value in mapping.items()}


DEFAULT_CONFIG: Final[DataStoreConfig] = DataStoreConfig()
