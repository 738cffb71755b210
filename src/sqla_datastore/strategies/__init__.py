"""Filter and sort strategies.

Every strategy is a stateless object whose ``apply`` returns a new
``sa.Select``. Instances are shared across requests by the strategy factories.
"""

from .filtering import (
    BaseFilterStrategy,
    ExactCaseInsensitiveStrategy,
    ExactCommaSeparatedStrategy,
    ExactStrategy,
    LikeCaseInsensitiveStrategy,
    LikeStrategy,
    PostgresExactCaseInsensitiveStrategy,
    PostgresLikeCaseInsensitiveStrategy,
    RelationPluralStrategy,
    RelationSingularStrategy,
)
from .sorting import AlphabeticStrategy, BaseSortStrategy, NumericStrategy


__all__ = (
    "AlphabeticStrategy",
    "BaseFilterStrategy",
    "BaseSortStrategy",
    "ExactCaseInsensitiveStrategy",
    "ExactCommaSeparatedStrategy",
    "ExactStrategy",
    "LikeCaseInsensitiveStrategy",
    "LikeStrategy",
    "NumericStrategy",
    "PostgresExactCaseInsensitiveStrategy",
    "PostgresLikeCaseInsensitiveStrategy",
    "RelationPluralStrategy",
    "RelationSingularStrategy",
)
