"""
A/B Variant Allocator.

Deterministic user -> variant assignment:

    h = fnv1a_64("{user_id}:{test_id}")
    included  = h % 100 < target_user_percentage
    variant   = variants[(h // 100) % len(variants)]

FNV-1a (64-bit) is fixed so that assignments are reproducible by any
other implementation. An assignment cache only saves the hash; a cache
miss or cache outage recomputes the same answer.

Variant weight overrides are applied to a per-request copy of the
scoring weights, never to the loaded configuration.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

from config.constants import ScoringWeights
from core.errors import ConfigurationError, DependencyError
from core.logging import LoggerMixin
from core.utils import Timestamp, to_datetime, utc_now
from interests.store import AssignmentStore
from recs.models import ABTest, EventType, InteractionEvent, Variant


FNV64_OFFSET_BASIS = 0xCBF29CE484222325
FNV64_PRIME = 0x100000001B3
_MASK_64 = 0xFFFFFFFFFFFFFFFF


def fnv1a_64(data: str) -> int:
    """64-bit FNV-1a over the UTF-8 bytes of ``data``."""
    h = FNV64_OFFSET_BASIS
    for byte in data.encode("utf-8"):
        h ^= byte
        h = (h * FNV64_PRIME) & _MASK_64
    return h


def stable_hash(user_id: str, test_id: str) -> int:
    return fnv1a_64(f"{user_id}:{test_id}")


def is_included(user_id: str, test: ABTest) -> bool:
    return stable_hash(user_id, test.id) % 100 < test.target_user_percentage


def select_variant(user_id: str, test: ABTest) -> Variant:
    h = stable_hash(user_id, test.id)
    return test.variants[(h // 100) % len(test.variants)]


class ABVariantAllocator(LoggerMixin):
    """
    Assigns users to variants of running tests.

    Never raises for a missing or inactive test: those return ``None`` so
    the caller falls back to default weights.
    """

    def __init__(self, store: Optional[AssignmentStore] = None):
        self._store = store

    def assign(
        self,
        user_id: str,
        test: Optional[ABTest],
        now: Optional[Timestamp] = None,
    ) -> Optional[Variant]:
        if test is None:
            return None

        ref = to_datetime(now) if now is not None else utc_now()
        if not test.is_running(ref):
            self.logger.debug("ab_test_not_running", test_id=test.id)
            return None
        if not is_included(user_id, test):
            return None

        cached = self._cached_variant(user_id, test)
        if cached is not None:
            return cached

        variant = select_variant(user_id, test)
        self._cache_variant(user_id, test, variant)
        return variant

    def _cached_variant(self, user_id: str, test: ABTest) -> Optional[Variant]:
        if self._store is None:
            return None
        try:
            name = self._store.get(user_id, test.id)
        except DependencyError as e:
            self.logger.warning("assignment_cache_unavailable", test_id=test.id, error=str(e))
            return None
        if name is None:
            return None
        # A variant removed from the test since caching is recomputed
        return test.variant_named(name)

    def _cache_variant(self, user_id: str, test: ABTest, variant: Variant) -> None:
        if self._store is None:
            return
        try:
            self._store.put(user_id, test.id, variant.name)
        except DependencyError as e:
            self.logger.warning("assignment_cache_unavailable", test_id=test.id, error=str(e))


def merge_weights(base: ScoringWeights, variant: Optional[Variant]) -> ScoringWeights:
    """
    Per-request weights with the variant's overrides applied.

    Raises:
        ConfigurationError: the overrides name an unknown weight or break
            the sum-to-one rule.
    """
    if variant is None or not variant.weight_overrides:
        return base
    try:
        return base.with_overrides(variant.weight_overrides)
    except ConfigurationError as e:
        raise ConfigurationError(f"Variant '{variant.name}' has invalid weights: {e}") from e


# =============================================================================
# Result Summary
# =============================================================================

@dataclass
class VariantSummary:
    variant: str
    users: int = 0
    views: int = 0
    likes: int = 0
    saves: int = 0
    shares: int = 0

    @property
    def engagement_rate(self) -> float:
        """(likes + saves + shares) / views; 0.0 without views."""
        if self.views == 0:
            return 0.0
        return (self.likes + self.saves + self.shares) / self.views

    def to_dict(self) -> Dict[str, object]:
        return {
            "variant": self.variant,
            "users": self.users,
            "views": self.views,
            "likes": self.likes,
            "saves": self.saves,
            "shares": self.shares,
            "engagement_rate": self.engagement_rate,
        }


_COUNTED_EVENTS = {
    EventType.VIEW: "views",
    EventType.LIKE: "likes",
    EventType.SAVE: "saves",
    EventType.SHARE: "shares",
}


def summarize_variant_results(
    test: ABTest,
    assignments: Mapping[str, str],
    events: Iterable[InteractionEvent],
) -> Dict[str, VariantSummary]:
    """
    Per-variant engagement for a test.

    Args:
        test: The test definition.
        assignments: user_id -> assigned variant name.
        events: Interaction events; those from unassigned users are ignored.
    """
    summaries = {v.name: VariantSummary(variant=v.name) for v in test.variants}

    for variant_name in assignments.values():
        if variant_name in summaries:
            summaries[variant_name].users += 1

    for event in events:
        summary = summaries.get(assignments.get(event.user_id, ""))
        counter = _COUNTED_EVENTS.get(event.event_type)
        if summary is None or counter is None:
            continue
        setattr(summary, counter, getattr(summary, counter) + 1)

    return summaries
