"""
Safety Filter.

Hard exclusion of candidates that conflict with the user's health
constraints. Runs before scoring; an excluded item is never scored, so
no score can bring it back.

An item is excluded when:
- any of its ingredient / content strings contains (case-insensitive
  substring) one of the user's allergies, e.g. "Peanut Butter" vs
  allergy "peanut"
- its declared cautions intersect the user's contraindications or
  current medical conditions

Exclusions are silent removals, not errors.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from core.logging import LoggerMixin
from recs.models import ContentItemBase, HealthConstraint


@dataclass
class SafetyFilterResult:
    allowed: List[ContentItemBase] = field(default_factory=list)
    excluded_ids: List[str] = field(default_factory=list)


def violates_allergy(item: ContentItemBase, allergies) -> bool:
    if not allergies:
        return False
    terms = [t.lower() for t in item.safety_terms() if t]
    return any(allergy in term for term in terms for allergy in allergies)


def violates_contraindication(item: ContentItemBase, health: HealthConstraint) -> bool:
    if not item.cautions:
        return False
    blocked = health.contraindications | health.medical_conditions
    return bool(item.cautions & blocked)


def is_excluded(item: ContentItemBase, health: Optional[HealthConstraint]) -> bool:
    if health is None:
        return False
    return violates_allergy(item, health.allergies) or violates_contraindication(item, health)


class SafetyFilter(LoggerMixin):

    def apply(
        self,
        candidates: Sequence[ContentItemBase],
        health: Optional[HealthConstraint],
    ) -> SafetyFilterResult:
        result = SafetyFilterResult()
        for item in candidates:
            if is_excluded(item, health):
                result.excluded_ids.append(item.id)
            else:
                result.allowed.append(item)

        if result.excluded_ids:
            # Counts only; allergy and condition lists stay out of the logs
            self.logger.info(
                "safety_filter_excluded",
                excluded=len(result.excluded_ids),
                remaining=len(result.allowed),
            )
        return result
