"""
Recommendation Service.

Orchestrates one recommendation request:

1. Fetch candidates (catalog, with last-known cache on outage)
2. Safety filter (hard veto on allergies / contraindications)
3. Resolve A/B variant weights (falls back to defaults on any problem)
4. Decay the user's interest profile to "now"
5. Score and rank (weighted composite or health match)
6. Category-capped diversity re-rank

A caller deadline is checked between stages. Empty outcomes come back as
a reason code rather than an exception.

Also ingests interactions and explicit feedback into interest profiles.
"""

import time
import uuid
from typing import Any, Dict, Mapping, Optional, Tuple

from config.constants import RecommenderConfig, ScoringWeights
from config.settings import Settings, build_config, get_settings
from content.vectorizer import ContentVectorizer
from core.errors import (
    ConfigurationError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from core.logging import LoggerMixin, bind_context, request_context
from core.utils import Deadline, Timestamp, to_datetime, utc_now
from experiments.allocator import ABVariantAllocator, merge_weights
from interests.store import AssignmentStore, InterestProfileStore, create_backend
from interests.tracker import InterestSnapshot, InterestTracker
from recs.catalog import CatalogSource
from recs.diversity import DiversityReranker, diversity_score
from recs.models import (
    ABTest,
    ContentItemBase,
    EventType,
    Feedback,
    InteractionEvent,
    ReasonCode,
    RecommendationRequest,
    RecommendationResponse,
    RecommendationResult,
    ScoringMode,
    Variant,
)
from recs.safety_filter import SafetyFilter
from scoring.context import current_season
from scoring.health_match import HealthMatchScorer
from scoring.scorer import CandidateScorer, ScoredItem, build_scoring_context
from scoring.weighted import WeightedScorer


FEEDBACK_LIKE_THRESHOLD = 4
MIN_RATING, MAX_RATING = 1, 5


def _elapsed_ms(t0: float) -> int:
    return int((time.time() - t0) * 1000)


class RecommendationService(LoggerMixin):
    """
    Main recommendation service.

    All collaborators are injected; the service holds no per-request
    state and may serve concurrent requests.
    """

    def __init__(
        self,
        catalog: CatalogSource,
        config: Optional[RecommenderConfig] = None,
        profile_store: Optional[InterestProfileStore] = None,
        allocator: Optional[ABVariantAllocator] = None,
        ab_tests: Optional[Mapping[str, ABTest]] = None,
        vectorizer: Optional[ContentVectorizer] = None,
        default_timeout_seconds: Optional[float] = None,
    ):
        self.catalog = catalog
        self.config = config or RecommenderConfig()
        self.profile_store = profile_store or InterestProfileStore()
        self.allocator = allocator or ABVariantAllocator()
        self.ab_tests: Mapping[str, ABTest] = ab_tests if ab_tests is not None else {}
        self.vectorizer = vectorizer
        self.default_timeout_seconds = default_timeout_seconds

        self.tracker = InterestTracker(self.config.interests)
        self.safety_filter = SafetyFilter()
        self.reranker = DiversityReranker(self.config.diversity)

    # =========================================================
    # Recommendations
    # =========================================================

    def recommend(self, request: RecommendationRequest) -> RecommendationResponse:
        """
        Produce a ranked, diverse, safety-filtered list for one user.

        Raises:
            ValidationError: health-match mode without a health profile.
        """
        with request_context(user_id=request.user_id, variant=None) as request_id:
            t_start = time.time()
            timing: Dict[str, Any] = {}

            now = to_datetime(request.now) if request.now is not None else utc_now()
            limit = self._resolve_limit(request.limit)
            timeout = (
                request.timeout_seconds
                if request.timeout_seconds is not None
                else self.default_timeout_seconds
            )
            deadline = Deadline(timeout)

            response = RecommendationResponse(
                user_id=request.user_id,
                season=current_season(now, self.config.seasons).value,
                mode=request.mode,
                request_id=request_id,
            )

            if request.mode == ScoringMode.HEALTH_MATCH and request.health is None:
                raise ValidationError(
                    f"Health-match recommendations require a health profile for user {request.user_id}"
                )

            # Step 1: Candidates
            t0 = time.time()
            try:
                candidates = self.catalog.get_candidates(
                    request.content_type, request.exclude_item_ids,
                )
            except DependencyError as e:
                self.logger.warning("candidate_source_unavailable", error=str(e))
                return self._finish(response, ReasonCode.DEPENDENCY_UNAVAILABLE, t_start, timing)
            timing["candidates_ms"] = _elapsed_ms(t0)

            if not candidates:
                return self._finish(response, ReasonCode.NO_CANDIDATES, t_start, timing)
            if deadline.expired():
                return self._finish(response, ReasonCode.DEPENDENCY_UNAVAILABLE, t_start, timing)

            # Step 2: Safety filter
            t0 = time.time()
            filtered = self.safety_filter.apply(candidates, request.health)
            timing["safety_ms"] = _elapsed_ms(t0)
            timing["excluded"] = len(filtered.excluded_ids)

            if not filtered.allowed:
                return self._finish(response, ReasonCode.NO_ELIGIBLE_ITEMS, t_start, timing)
            if deadline.expired():
                return self._finish(response, ReasonCode.DEPENDENCY_UNAVAILABLE, t_start, timing)

            # Step 3: Scoring strategy (A/B weights apply to the weighted mode only)
            scorer: CandidateScorer
            if request.mode == ScoringMode.HEALTH_MATCH:
                scorer = HealthMatchScorer(self.config)
            else:
                weights, variant = self._resolve_weights(request, now)
                scorer = WeightedScorer(self.config, weights)
                if variant is not None:
                    response.applied_variant = variant.name
                    bind_context(variant=variant.name)

            # Step 4: Interests
            snapshot = self._load_interests(request.user_id, now)
            vectorizer = (
                self.vectorizer
                if self.vectorizer is not None and self.vectorizer.vocabulary
                else None
            )
            ctx = build_scoring_context(
                request.user_id, now, snapshot, filtered.allowed, self.config,
                health=request.health, vectorizer=vectorizer,
            )

            # Step 5: Score + rank
            t0 = time.time()
            outcome = scorer.rank(filtered.allowed, ctx, deadline)
            timing["scoring_ms"] = _elapsed_ms(t0)
            timing["scored"] = len(outcome.ranked)

            if not outcome.ranked:
                self.logger.warning("deadline_before_scoring", timeout_seconds=timeout)
                return self._finish(response, ReasonCode.DEPENDENCY_UNAVAILABLE, t_start, timing)

            if outcome.timed_out or deadline.expired():
                partial = outcome.ranked[:limit]
                self.logger.warning(
                    "deadline_partial_ranking",
                    scored=len(outcome.ranked),
                    total=outcome.total,
                )
                response.results = [self._to_result(s, response.applied_variant) for s in partial]
                response.diversity_score = diversity_score(partial)
                return self._finish(response, ReasonCode.TIMEOUT_PARTIAL, t_start, timing)

            # Step 6: Diversity
            t0 = time.time()
            diverse = self.reranker.rerank(outcome.ranked, limit)
            timing["diversity_ms"] = _elapsed_ms(t0)

            response.results = [
                self._to_result(s, response.applied_variant) for s in diverse.items
            ]
            response.diversity_score = diverse.diversity_score
            response.diversity_flagged = diverse.flagged
            return self._finish(response, ReasonCode.OK, t_start, timing)

    def _finish(
        self,
        response: RecommendationResponse,
        reason: ReasonCode,
        t_start: float,
        timing: Dict[str, Any],
    ) -> RecommendationResponse:
        response.reason = reason
        timing["total_ms"] = _elapsed_ms(t_start)
        self.logger.info(
            "recommendations_served",
            reason=reason.value,
            mode=response.mode.value,
            results=len(response.results),
            **timing,
        )
        return response

    def _resolve_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.config.default_limit
        return max(1, min(limit, self.config.max_limit))

    def _resolve_weights(
        self,
        request: RecommendationRequest,
        now: Timestamp,
    ) -> Tuple[ScoringWeights, Optional[Variant]]:
        """Per-request weights; any A/B problem falls back to the defaults."""
        base = self.config.weights
        if not request.ab_test_id:
            return base, None

        test = self.ab_tests.get(request.ab_test_id)
        if test is None:
            self.logger.warning("ab_test_not_found", test_id=request.ab_test_id)
            return base, None

        variant = self.allocator.assign(request.user_id, test, now)
        if variant is None:
            return base, None

        try:
            return merge_weights(base, variant), variant
        except ConfigurationError as e:
            self.logger.warning(
                "ab_variant_weights_invalid",
                test_id=test.id,
                variant=variant.name,
                error=str(e),
            )
            return base, None

    def _load_interests(self, user_id: str, now: Timestamp) -> InterestSnapshot:
        try:
            profile = self.profile_store.get(user_id)
        except DependencyError as e:
            self.logger.warning("interest_profile_unavailable", error=str(e))
            return InterestSnapshot()
        if profile is None:
            self.logger.debug("no_interest_profile")
        return self.tracker.get_profile_vector(profile, now)

    @staticmethod
    def _to_result(scored: ScoredItem, variant: Optional[str]) -> RecommendationResult:
        return RecommendationResult(
            item=scored.item,
            composite_score=scored.score,
            component_scores=dict(scored.components),
            variant=variant,
        )

    # =========================================================
    # Interactions & Feedback
    # =========================================================

    def _require_item(self, item_id: str) -> ContentItemBase:
        item = self.catalog.get_item(item_id)
        if item is None:
            raise NotFoundError(f"Unknown item: {item_id}")
        return item

    def track_interaction(
        self,
        user_id: str,
        item_id: str,
        event_type: EventType,
        timestamp: Optional[Timestamp] = None,
    ) -> InteractionEvent:
        """
        Apply one interaction to the user's interest profile.

        Every tag and category of the item is updated; view and like
        events also bump the item's popularity counters.

        Raises:
            NotFoundError: unknown item.
            DependencyError: the profile store is unavailable.
        """
        item = self._require_item(item_id)
        event = InteractionEvent(
            user_id=user_id,
            item_id=item_id,
            event_type=EventType(event_type),
            timestamp=to_datetime(timestamp) if timestamp is not None else utc_now(),
        )

        profile = self.profile_store.get_or_create(user_id)
        self.tracker.record_event(profile, event, item.tags, item.categories)
        self.profile_store.save(profile)

        record = getattr(self.catalog, "record_engagement", None)
        if record is not None:
            record(item_id, event.event_type)

        self.logger.info(
            "interaction_tracked",
            user_id=user_id,
            item_id=item_id,
            event_type=event.event_type.value,
        )
        return event

    @staticmethod
    def feedback_event_type(feedback: Feedback) -> EventType:
        """rating >= 4 is a like, a comment is a comment, anything else a view."""
        if feedback.rating >= FEEDBACK_LIKE_THRESHOLD:
            return EventType.LIKE
        if feedback.comments and feedback.comments.strip():
            return EventType.COMMENT
        return EventType.VIEW

    def submit_feedback(self, feedback: Feedback) -> str:
        """
        Ingest explicit feedback as an interaction event.

        Returns:
            A feedback id.

        Raises:
            ValidationError: rating outside 1-5.
            NotFoundError: unknown item.
        """
        if not MIN_RATING <= feedback.rating <= MAX_RATING:
            raise ValidationError(
                f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {feedback.rating}"
            )
        event_type = self.feedback_event_type(feedback)
        self.track_interaction(
            feedback.user_id, feedback.item_id, event_type, feedback.timestamp,
        )
        return f"fb_{uuid.uuid4().hex[:12]}"


def create_recommendation_service(
    catalog: CatalogSource,
    settings: Optional[Settings] = None,
    ab_tests: Optional[Mapping[str, ABTest]] = None,
    vectorizer: Optional[ContentVectorizer] = None,
) -> RecommendationService:
    """
    Wire a RecommendationService from environment settings.

    One storage backend (Redis when enabled and reachable) is shared by
    the interest profile store and the A/B assignment cache, each with
    its own TTL.
    """
    settings = settings or get_settings()
    config = build_config(settings)
    backend = create_backend(settings)

    return RecommendationService(
        catalog,
        config=config,
        profile_store=InterestProfileStore(backend, ttl_seconds=settings.profile_ttl_seconds),
        allocator=ABVariantAllocator(
            AssignmentStore(backend, ttl_seconds=settings.assignment_ttl_seconds)
        ),
        ab_tests=ab_tests,
        vectorizer=vectorizer,
        default_timeout_seconds=settings.request_timeout_seconds,
    )
