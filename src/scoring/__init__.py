"""
Scoring Module.

Two selectable strategies over the same candidate set:

- ``WeightedScorer``: composite of content-based, collaborative,
  popularity, recency and seasonal signals, in [0, 1]
- ``HealthMatchScorer``: constitution / season / symptom match, 0-100

Quick start::

    from scoring import WeightedScorer, build_scoring_context

    ctx = build_scoring_context(user_id, now, snapshot, candidates, config)
    outcome = WeightedScorer(config).rank(candidates, ctx)
"""

from scoring.context import ALL_SEASONS, ScoringContext, Season, current_season
from scoring.health_match import HealthMatchScorer
from scoring.scorer import (
    CandidateScorer,
    RankingOutcome,
    ScoredItem,
    build_interest_item,
    build_scoring_context,
)
from scoring.weighted import WeightedScorer

__all__ = [
    "ALL_SEASONS",
    "CandidateScorer",
    "HealthMatchScorer",
    "RankingOutcome",
    "ScoredItem",
    "ScoringContext",
    "Season",
    "WeightedScorer",
    "build_interest_item",
    "build_scoring_context",
    "current_season",
]
