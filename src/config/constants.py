"""
Algorithm configuration.

These values don't change with the environment but are tuned by hand
and referenced across the codebase. Every config is a frozen dataclass
built once and passed into components at construction; nothing here is
mutated at runtime. Per-request variations (A/B weight overrides) derive
a new instance via ``with_overrides``.
"""

import math
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from core.errors import ConfigurationError


WEIGHT_TOLERANCE = 1e-6


# =============================================================================
# Composite Scoring Weights
# =============================================================================

# Admin tooling stores variant overrides with camelCase keys.
_WEIGHT_ALIASES: Dict[str, str] = {
    "contentBased": "content_based",
    "content": "content_based",
    "collaborative": "collaborative",
    "popularity": "popularity",
    "recency": "recency",
    "seasonal": "seasonal",
}


def _canonical_weight_key(key: str) -> str:
    return _WEIGHT_ALIASES.get(key, key)


@dataclass(frozen=True)
class ScoringWeights:
    """
    Weights of the composite score. Must be non-negative and sum to 1.0.

    compositeScore = sum(weight_k * component_k)
    """

    content_based: float = 0.40
    collaborative: float = 0.25
    popularity: float = 0.10
    recency: float = 0.10
    seasonal: float = 0.15

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, (int, float)) or math.isnan(value) or value < 0:
                raise ConfigurationError(
                    f"Scoring weight '{f.name}' must be a non-negative number, got {value!r}"
                )
        total = sum(self.as_dict().values())
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ConfigurationError(
                f"Scoring weights must sum to 1.0, got {total:.6f}"
            )

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def as_dict(self) -> Dict[str, float]:
        return {name: float(getattr(self, name)) for name in self.names()}

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "ScoringWeights":
        """Build weights from a (possibly camelCase) mapping; missing keys keep defaults."""
        return cls().with_overrides(mapping)

    def with_overrides(self, overrides: Optional[Mapping[str, Any]]) -> "ScoringWeights":
        """
        Return a new validated instance with ``overrides`` applied.

        Raises:
            ConfigurationError: unknown weight name, or the merged weights
                no longer sum to 1.0.
        """
        if not overrides:
            return self
        merged = self.as_dict()
        for raw_key, value in overrides.items():
            key = _canonical_weight_key(raw_key)
            if key not in merged:
                raise ConfigurationError(f"Unknown scoring weight '{raw_key}'")
            try:
                merged[key] = float(value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Scoring weight '{raw_key}' is not numeric: {value!r}"
                ) from e
        return ScoringWeights(**merged)


DEFAULT_SCORING_WEIGHTS = ScoringWeights()


# =============================================================================
# Similarity
# =============================================================================

@dataclass(frozen=True)
class SimilarityWeights:
    """Component weights for combined item-to-item similarity."""

    tags: float = 0.4
    categories: float = 0.3
    vector: float = 0.3


DEFAULT_SIMILARITY_WEIGHTS = SimilarityWeights()


@dataclass(frozen=True)
class VectorizerConfig:
    """Term-frequency content vectors."""

    vector_size: int = 50
    text_fields: Tuple[str, ...] = (
        "title", "description", "body", "ingredients", "benefits",
    )
    min_token_length: int = 3


# =============================================================================
# Interest Tracking & Recency
# =============================================================================

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class InterestConfig:
    """Half-life decayed interest weights per tag / category."""

    half_life_days: float = 30.0
    min_value: float = 0.1
    max_interests: int = 50

    # Added to the decayed stored weight on each event
    interaction_weights: Mapping[str, float] = field(
        hash=False,
        default_factory=lambda: MappingProxyType({
            "view": 1.0,
            "like": 3.0,
            "share": 5.0,
            "save": 4.0,
            "comment": 2.0,
            "click": 0.5,
        }),
    )

    # How many top tags seed the pseudo-item for content-based scoring
    top_interest_tags: int = 10

    @property
    def half_life_seconds(self) -> float:
        return self.half_life_days * SECONDS_PER_DAY


@dataclass(frozen=True)
class RecencyConfig:
    half_life_days: float = 30.0
    min_value: float = 0.1

    @property
    def half_life_seconds(self) -> float:
        return self.half_life_days * SECONDS_PER_DAY


@dataclass(frozen=True)
class PopularityConfig:
    """
    raw = views + like_weight * likes, normalised per candidate set with
    log1p(raw) / log1p(max_raw).
    """

    like_weight: float = 3.0


# =============================================================================
# Seasons & Constrained Mode
# =============================================================================

@dataclass(frozen=True)
class SeasonCalendar:
    """Calendar month -> TCM season."""

    month_to_season: Mapping[int, str] = field(
        hash=False,
        default_factory=lambda: MappingProxyType({
            3: "spring", 4: "spring", 5: "spring",
            6: "summer", 7: "summer", 8: "summer",
            9: "autumn", 10: "autumn", 11: "autumn",
            12: "winter", 1: "winter", 2: "winter",
        }),
    )

    # Seasonal component for an item not in season
    off_season_credit: float = 0.2

    def season_for_month(self, month: int) -> str:
        return self.month_to_season[month]


@dataclass(frozen=True)
class HealthMatchConfig:
    """Points for the constrained (0-100) health-match scoring mode."""

    constitution: float = 40.0
    balanced_fallback: float = 20.0
    season: float = 20.0
    symptoms: float = 40.0
    no_symptom_credit: float = 20.0


# =============================================================================
# Diversity
# =============================================================================

@dataclass(frozen=True)
class DiversityConfig:
    max_per_category: int = 3
    enforce_minimum_diversity: bool = True
    min_diversity_score: float = 0.6


# =============================================================================
# Aggregate
# =============================================================================

@dataclass(frozen=True)
class RecommenderConfig:
    """Everything the recommendation core needs, built once at load time."""

    weights: ScoringWeights = field(default_factory=ScoringWeights)
    similarity: SimilarityWeights = field(default_factory=SimilarityWeights)
    vectorizer: VectorizerConfig = field(default_factory=VectorizerConfig)
    interests: InterestConfig = field(default_factory=InterestConfig)
    recency: RecencyConfig = field(default_factory=RecencyConfig)
    popularity: PopularityConfig = field(default_factory=PopularityConfig)
    seasons: SeasonCalendar = field(default_factory=SeasonCalendar)
    health_match: HealthMatchConfig = field(default_factory=HealthMatchConfig)
    diversity: DiversityConfig = field(default_factory=DiversityConfig)

    default_limit: int = 20
    max_limit: int = 100
    scoring_workers: int = 1


DEFAULT_RECOMMENDER_CONFIG = RecommenderConfig()
