"""
Category-Capped Greedy Re-ranker.

Builds the final list from score-sorted candidates, one item at a time:

1. Walk candidates in score order
2. Skip (defer) a candidate if taking it would push any of its
   categories past ``max_per_category``
3. Stop when ``limit`` items are chosen

If candidates run out first, the cap is raised one step at a time and
the deferred items are revisited in score order. The list is filled
from real candidates with a looser cap; nothing is padded.

The diversity score is the normalised Shannon entropy of the final
list's tag distribution. Below ``min_diversity_score`` the result is
flagged, never altered.
"""

import math
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from config.constants import DiversityConfig
from core.logging import LoggerMixin


def _categories(candidate: Any) -> Sequence[str]:
    item = getattr(candidate, "item", candidate)
    return sorted(getattr(item, "categories", None) or ())


def _tags(candidate: Any) -> Sequence[str]:
    item = getattr(candidate, "item", candidate)
    return sorted(getattr(item, "tags", None) or ())


def diversity_score(candidates: Sequence[Any]) -> float:
    """
    entropy(tag distribution) / log2(unique tag count), in [0, 1].

    0.0 for an empty list or a single unique tag.
    """
    counts: Counter = Counter()
    for candidate in candidates:
        counts.update(_tags(candidate))

    unique = len(counts)
    if unique <= 1:
        return 0.0

    total = sum(counts.values())
    entropy = -sum((c / total) * math.log2(c / total) for c in counts.values())
    return max(0.0, min(1.0, entropy / math.log2(unique)))


@dataclass
class DiversityResult:
    items: List[Any] = field(default_factory=list)
    diversity_score: float = 0.0
    flagged: bool = False
    deferred: int = 0
    final_cap: int = 0


class DiversityReranker(LoggerMixin):
    """
    Greedy category cap over pre-ranked candidates.

    Candidates are anything with ``categories`` and ``tags``, directly or
    on an ``item`` attribute (e.g. ``ScoredItem``). Input order is taken
    as the ranking.
    """

    def __init__(self, config: Optional[DiversityConfig] = None):
        self.config = config or DiversityConfig()

    @staticmethod
    def _fits(candidate: Any, counts: Dict[str, int], cap: int) -> bool:
        return all(counts[c] < cap for c in _categories(candidate))

    def rerank(self, candidates: Sequence[Any], limit: int) -> DiversityResult:
        cap = max(1, self.config.max_per_category)
        counts: Dict[str, int] = defaultdict(int)
        selected: List[Any] = []
        pending = list(candidates)
        deferred_total = 0

        while pending and len(selected) < limit:
            deferred: List[Any] = []
            for candidate in pending:
                if len(selected) >= limit:
                    break
                if self._fits(candidate, counts, cap):
                    selected.append(candidate)
                    for category in _categories(candidate):
                        counts[category] += 1
                else:
                    deferred.append(candidate)

            if len(selected) >= limit or not deferred:
                break
            deferred_total += len(deferred)
            pending = deferred
            cap += 1

        score = diversity_score(selected)
        flagged = (
            self.config.enforce_minimum_diversity
            and len(selected) > 0
            and score < self.config.min_diversity_score
        )
        if flagged:
            self.logger.info(
                "diversity_below_minimum",
                diversity_score=round(score, 4),
                minimum=self.config.min_diversity_score,
                items=len(selected),
            )
        if cap > self.config.max_per_category:
            self.logger.debug(
                "category_cap_relaxed",
                configured=self.config.max_per_category,
                final=cap,
            )

        return DiversityResult(
            items=selected,
            diversity_score=score,
            flagged=flagged,
            deferred=deferred_total,
            final_cap=cap,
        )
