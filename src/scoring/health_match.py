"""
Health-match scoring (constrained mode, 0-100).

    constitution  +40 if the item suits the user's constitution,
                  +20 if it only suits "balanced"
    season        +20 if the item is year-round or in season
    symptoms      +40 * fraction of reported symptoms the item helps with,
                  or +20 flat when no symptoms were reported

Selected instead of the weighted mode, not layered on top of it.
"""

from typing import Dict, Tuple

from core.errors import ValidationError
from recs.models import Constitution, ContentItemBase
from scoring.context import ALL_SEASONS, ScoringContext
from scoring.scorer import CandidateScorer


class HealthMatchScorer(CandidateScorer):

    name = "health_match"

    def validate(self, ctx: ScoringContext) -> None:
        if ctx.health is None:
            raise ValidationError(
                f"Health-match scoring requires a health profile for user {ctx.user_id}"
            )

    def constitution_points(self, item: ContentItemBase, ctx: ScoringContext) -> float:
        points = self.config.health_match
        constitution = ctx.health.constitution
        if constitution and constitution in item.suitable_for:
            return points.constitution
        if Constitution.BALANCED.value in item.suitable_for:
            return points.balanced_fallback
        return 0.0

    def season_points(self, item: ContentItemBase, ctx: ScoringContext) -> float:
        if ALL_SEASONS in item.seasons or ctx.season.value in item.seasons:
            return self.config.health_match.season
        return 0.0

    def symptom_points(self, item: ContentItemBase, ctx: ScoringContext) -> float:
        points = self.config.health_match
        symptoms = ctx.health.symptoms
        if not symptoms:
            return points.no_symptom_credit
        addressed = len(symptoms & item.helps_with)
        return points.symptoms * addressed / len(symptoms)

    def score_item(self, item: ContentItemBase, ctx: ScoringContext) -> Tuple[float, Dict[str, float]]:
        components = {
            "constitution": self.constitution_points(item, ctx),
            "season": self.season_points(item, ctx),
            "symptoms": self.symptom_points(item, ctx),
        }
        return sum(components.values()), components
