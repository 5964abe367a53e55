"""
Configuration module for the recommendation core.

Environment settings (pydantic-settings) live in ``config.settings``;
immutable algorithm configuration lives in ``config.constants``.

Usage:
    from config import build_config, get_settings

    settings = get_settings()
    config = build_config(settings)   # validated RecommenderConfig
"""

from config.constants import (
    DEFAULT_RECOMMENDER_CONFIG,
    DiversityConfig,
    HealthMatchConfig,
    InterestConfig,
    PopularityConfig,
    RecencyConfig,
    RecommenderConfig,
    ScoringWeights,
    SeasonCalendar,
    SimilarityWeights,
    VectorizerConfig,
)
from config.settings import Settings, build_config, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "build_config",
    "RecommenderConfig",
    "DEFAULT_RECOMMENDER_CONFIG",
    "ScoringWeights",
    "SimilarityWeights",
    "VectorizerConfig",
    "InterestConfig",
    "RecencyConfig",
    "PopularityConfig",
    "SeasonCalendar",
    "HealthMatchConfig",
    "DiversityConfig",
]
