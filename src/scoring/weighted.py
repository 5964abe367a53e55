"""
Weighted composite scoring.

    composite = sum(weight_k * component_k)
    k in {content_based, collaborative, popularity, recency, seasonal}

Every component is in [0, 1] so the composite is too. A component whose
input is missing on the candidate contributes 0.
"""

import math
from typing import Dict, Optional, Tuple

from config.constants import RecommenderConfig, ScoringWeights
from content.similarity import combined_similarity, exponential_decay
from recs.models import ContentItemBase
from scoring.context import ALL_SEASONS, ScoringContext
from scoring.scorer import CandidateScorer, raw_popularity


class WeightedScorer(CandidateScorer):
    """
    Generic multi-signal scorer.

    ``weights`` are the per-request weights (default or A/B-merged); the
    loaded configuration is never modified.
    """

    name = "weighted"

    def __init__(self, config: RecommenderConfig, weights: Optional[ScoringWeights] = None):
        super().__init__(config)
        self.weights = weights or config.weights

    def content_based(self, item: ContentItemBase, ctx: ScoringContext) -> float:
        if ctx.interests.is_empty:
            return 0.0
        return combined_similarity(item, ctx.interest_item, self.config.similarity)

    def collaborative(self, item: ContentItemBase, ctx: ScoringContext) -> float:
        """
        Mean profile weight of the candidate's tags and categories, each
        weight scaled by the profile's strongest interest.
        """
        keys = len(item.tags) + len(item.categories)
        top = ctx.interests.max_weight
        if keys == 0 or top <= 0:
            return 0.0
        total = sum(ctx.interests.tags.get(t, 0.0) for t in item.tags)
        total += sum(ctx.interests.categories.get(c, 0.0) for c in item.categories)
        return min(1.0, total / (top * keys))

    def popularity(self, item: ContentItemBase, ctx: ScoringContext) -> float:
        """log1p(raw) / log1p(max raw in the candidate set)."""
        if ctx.max_popularity <= 0:
            return 0.0
        raw = raw_popularity(item, self.config.popularity.like_weight)
        return min(1.0, math.log1p(raw) / math.log1p(ctx.max_popularity))

    def recency(self, item: ContentItemBase, ctx: ScoringContext) -> float:
        if item.published_at is None:
            return 0.0
        return exponential_decay(
            item.published_at,
            self.config.recency.half_life_seconds,
            ctx.now,
            self.config.recency.min_value,
        )

    def seasonal(self, item: ContentItemBase, ctx: ScoringContext) -> float:
        if ALL_SEASONS in item.seasons or ctx.season.value in item.seasons:
            return 1.0
        return self.config.seasons.off_season_credit

    def score_item(self, item: ContentItemBase, ctx: ScoringContext) -> Tuple[float, Dict[str, float]]:
        components = {
            "content_based": self.content_based(item, ctx),
            "collaborative": self.collaborative(item, ctx),
            "popularity": self.popularity(item, ctx),
            "recency": self.recency(item, ctx),
            "seasonal": self.seasonal(item, ctx),
        }
        weights = self.weights.as_dict()
        score = sum(weights[k] * v for k, v in components.items())
        return score, components
