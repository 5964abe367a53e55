"""
CandidateScorer -- shared scoring loop.

Both scoring modes (weighted composite and health match) score each
candidate independently from a ``ScoringContext``, then rank with a
stable sort so ties keep their original candidate order.

Usage::

    ctx = build_scoring_context(user_id, now, snapshot, candidates, config)
    scorer = WeightedScorer(config, weights)
    ranked = scorer.rank(candidates, ctx, deadline=Deadline(0.5))
"""

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from config.constants import RecommenderConfig
from content.similarity import ItemFeatures
from content.vectorizer import ContentVectorizer
from core.logging import LoggerMixin
from core.utils import Deadline, Timestamp, to_datetime
from interests.tracker import InterestSnapshot
from recs.models import ContentItemBase, HealthConstraint
from scoring.context import ScoringContext, current_season


@dataclass
class ScoredItem:
    """One candidate with its score and per-component breakdown."""
    item: ContentItemBase
    score: float
    components: Dict[str, float] = field(default_factory=dict)
    position: int = 0


@dataclass
class RankingOutcome:
    """Ranked candidates plus whether the deadline cut scoring short."""
    ranked: List[ScoredItem]
    total: int
    timed_out: bool = False

    @property
    def complete(self) -> bool:
        return not self.timed_out and len(self.ranked) == self.total


def raw_popularity(item: ContentItemBase, like_weight: float) -> float:
    pop = item.popularity
    return max(0.0, float(pop.views) + like_weight * float(pop.likes))


def build_interest_item(
    snapshot: InterestSnapshot,
    top_n: int,
    vectorizer: Optional[ContentVectorizer] = None,
) -> ItemFeatures:
    """
    Pseudo-item carrying the user's top interest tags and categories.

    With a vectorizer, the top tags are also vectorized as the pseudo-item's
    text so the vector component can take part in the comparison.
    """
    tags = snapshot.top_tags(top_n)
    vector = None
    if vectorizer is not None and tags:
        encoded = vectorizer.vectorize_text(" ".join(tags))
        if encoded.any():
            vector = encoded.tolist()
    return ItemFeatures(
        tags=set(tags),
        categories=set(snapshot.top_categories(top_n)),
        content_vector=vector,
    )


def build_scoring_context(
    user_id: str,
    now: Timestamp,
    snapshot: Optional[InterestSnapshot],
    candidates: Sequence[ContentItemBase],
    config: RecommenderConfig,
    health: Optional[HealthConstraint] = None,
    vectorizer: Optional[ContentVectorizer] = None,
) -> ScoringContext:
    snapshot = snapshot or InterestSnapshot()
    moment = to_datetime(now)
    like_weight = config.popularity.like_weight
    return ScoringContext(
        user_id=user_id,
        now=moment,
        season=current_season(moment, config.seasons),
        interests=snapshot,
        interest_item=build_interest_item(
            snapshot, config.interests.top_interest_tags, vectorizer,
        ),
        health=health,
        max_popularity=max(
            (raw_popularity(c, like_weight) for c in candidates), default=0.0,
        ),
    )


class CandidateScorer(LoggerMixin):
    """
    Base class for a scoring mode.

    Subclasses implement ``score_item``; it must not mutate shared state
    so candidates can be scored on a thread pool.
    """

    name = "base"

    def __init__(self, config: RecommenderConfig):
        self.config = config

    def validate(self, ctx: ScoringContext) -> None:
        """Raise if the context lacks what this mode needs."""

    def score_item(self, item: ContentItemBase, ctx: ScoringContext) -> Tuple[float, Dict[str, float]]:
        raise NotImplementedError

    def _score_at(self, position: int, item: ContentItemBase, ctx: ScoringContext) -> ScoredItem:
        score, components = self.score_item(item, ctx)
        if not math.isfinite(score):
            score = 0.0
        return ScoredItem(item=item, score=score, components=components, position=position)

    def score_candidates(
        self,
        candidates: Sequence[ContentItemBase],
        ctx: ScoringContext,
        deadline: Optional[Deadline] = None,
    ) -> Tuple[List[ScoredItem], bool]:
        """
        Score candidates in order. Returns (scored, timed_out).

        Sequential scoring checks the deadline between items and stops
        early; the thread pool checks it once before starting.
        """
        self.validate(ctx)
        workers = self.config.scoring_workers

        if workers > 1 and len(candidates) > 1:
            if deadline is not None and deadline.expired():
                return [], True
            with ThreadPoolExecutor(max_workers=workers) as executor:
                scored = list(executor.map(
                    lambda pair: self._score_at(pair[0], pair[1], ctx),
                    enumerate(candidates),
                ))
            return scored, False

        scored: List[ScoredItem] = []
        for position, item in enumerate(candidates):
            if deadline is not None and deadline.expired():
                return scored, True
            scored.append(self._score_at(position, item, ctx))
        return scored, False

    def rank(
        self,
        candidates: Sequence[ContentItemBase],
        ctx: ScoringContext,
        deadline: Optional[Deadline] = None,
    ) -> RankingOutcome:
        scored, timed_out = self.score_candidates(candidates, ctx, deadline)
        # sorted() is stable: equal scores keep candidate order
        ranked = sorted(scored, key=lambda s: -s.score)
        return RankingOutcome(ranked=ranked, total=len(candidates), timed_out=timed_out)
