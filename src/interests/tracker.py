"""
Interest Profile Tracker.

Per-user tag and category weights that grow with interactions and decay
with elapsed time:

    on event:  weight = stored * 2^(-dt / half_life) + interaction_weight
    on read:   weight = stored * 2^(-dt / half_life)

There is no background decay job; ``get_profile_vector`` evaluates decay
against the caller's "now". Because a key's weight is a pure function of
``(stored_weight, last_updated)``, concurrent writers may race with
last-write-wins and still leave a consistent profile.

After every update the profile is pruned to ``max_interests`` entries by
evicting the lowest current decayed weight.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from config.constants import InterestConfig
from content.similarity import exponential_decay
from core.logging import LoggerMixin
from core.utils import Timestamp, to_epoch_seconds, utc_now
from recs.models import EventType, InteractionEvent


TAG = "tags"
CATEGORY = "categories"
INTEREST_KINDS = (TAG, CATEGORY)


@dataclass
class InterestEntry:
    """One stored weight and when it was last touched (epoch seconds)."""
    weight: float
    last_updated: float

    def to_dict(self) -> Dict[str, Any]:
        return {"weight": self.weight, "last_updated": self.last_updated}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InterestEntry":
        return cls(
            weight=float(data.get("weight", 0.0)),
            last_updated=float(data.get("last_updated", 0.0)),
        )


@dataclass
class UserInterestProfile:
    """Stored interest weights for one user, keyed by kind then key."""
    user_id: str
    tags: Dict[str, InterestEntry] = field(default_factory=dict)
    categories: Dict[str, InterestEntry] = field(default_factory=dict)

    def entries(self, kind: str) -> Dict[str, InterestEntry]:
        if kind == TAG:
            return self.tags
        if kind == CATEGORY:
            return self.categories
        raise ValueError(f"Unknown interest kind: {kind}")

    def __len__(self) -> int:
        return len(self.tags) + len(self.categories)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "tags": {k: e.to_dict() for k, e in self.tags.items()},
            "categories": {k: e.to_dict() for k, e in self.categories.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserInterestProfile":
        return cls(
            user_id=data["user_id"],
            tags={k: InterestEntry.from_dict(v) for k, v in data.get("tags", {}).items()},
            categories={
                k: InterestEntry.from_dict(v) for k, v in data.get("categories", {}).items()
            },
        )


@dataclass
class InterestSnapshot:
    """Decayed weights of a profile evaluated at one instant."""
    tags: Dict[str, float] = field(default_factory=dict)
    categories: Dict[str, float] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.tags and not self.categories

    @property
    def max_weight(self) -> float:
        weights = list(self.tags.values()) + list(self.categories.values())
        return max(weights) if weights else 0.0

    @staticmethod
    def _top(weights: Dict[str, float], n: int) -> List[str]:
        ranked = sorted(weights.items(), key=lambda kv: (-kv[1], kv[0]))
        return [key for key, _ in ranked[:n]]

    def top_tags(self, n: int) -> List[str]:
        return self._top(self.tags, n)

    def top_categories(self, n: int) -> List[str]:
        return self._top(self.categories, n)


class InterestTracker(LoggerMixin):
    """
    Applies interaction events to interest profiles.

    Profiles are plain dataclasses; loading and saving them is the job of
    a profile store.
    """

    def __init__(self, config: Optional[InterestConfig] = None):
        self.config = config or InterestConfig()

    # =========================================================
    # Decay
    # =========================================================

    def decayed_weight(self, entry: InterestEntry, now: Timestamp) -> float:
        factor = exponential_decay(
            entry.last_updated,
            self.config.half_life_seconds,
            now,
            self.config.min_value,
        )
        return entry.weight * factor

    def interaction_weight(self, event_type: Any) -> float:
        key = event_type.value if isinstance(event_type, EventType) else str(event_type)
        return self.config.interaction_weights.get(key, 0.0)

    # =========================================================
    # Updates
    # =========================================================

    def apply_event(
        self,
        profile: UserInterestProfile,
        kind: str,
        key: str,
        event_type: Any,
        timestamp: Optional[Timestamp] = None,
    ) -> float:
        """
        Decay the stored weight for ``key`` to the event time, add the
        interaction weight and stamp the entry. Returns the new weight.

        Does not prune; callers updating several keys prune once after.
        """
        ts = to_epoch_seconds(timestamp if timestamp is not None else utc_now())
        entries = profile.entries(kind)
        key = key.strip().lower()

        existing = entries.get(key)
        base = self.decayed_weight(existing, ts) if existing else 0.0
        # An out-of-order event never moves last_updated backwards
        last_updated = max(ts, existing.last_updated) if existing else ts

        entry = InterestEntry(
            weight=base + self.interaction_weight(event_type),
            last_updated=last_updated,
        )
        entries[key] = entry
        return entry.weight

    def record_event(
        self,
        profile: UserInterestProfile,
        event: InteractionEvent,
        tags: Iterable[str] = (),
        categories: Iterable[str] = (),
    ) -> UserInterestProfile:
        """Apply one event to every tag and category of the item it targets."""
        for tag in tags:
            self.apply_event(profile, TAG, tag, event.event_type, event.timestamp)
        for category in categories:
            self.apply_event(profile, CATEGORY, category, event.event_type, event.timestamp)

        evicted = self.prune(profile, event.timestamp)
        self.logger.debug(
            "interest_event_applied",
            user_id=profile.user_id,
            event_type=event.event_type.value,
            size=len(profile),
            evicted=evicted,
        )
        return profile

    def prune(self, profile: UserInterestProfile, now: Optional[Timestamp] = None) -> int:
        """
        Evict lowest-decayed-weight entries until the profile holds at most
        ``max_interests``. Ties evict the older entry first. Returns the
        number evicted.
        """
        overflow = len(profile) - self.config.max_interests
        if overflow <= 0:
            return 0

        ref = now if now is not None else utc_now()
        ranked: List[Tuple[float, float, str, str]] = []
        for kind in INTEREST_KINDS:
            for key, entry in profile.entries(kind).items():
                ranked.append((self.decayed_weight(entry, ref), entry.last_updated, kind, key))
        ranked.sort()

        for _, _, kind, key in ranked[:overflow]:
            del profile.entries(kind)[key]
        return overflow

    # =========================================================
    # Reads
    # =========================================================

    def get_profile_vector(
        self,
        profile: Optional[UserInterestProfile],
        now: Optional[Timestamp] = None,
    ) -> InterestSnapshot:
        """Every key's weight decayed to ``now``."""
        if profile is None:
            return InterestSnapshot()
        ref = now if now is not None else utc_now()
        return InterestSnapshot(
            tags={k: self.decayed_weight(e, ref) for k, e in profile.tags.items()},
            categories={k: self.decayed_weight(e, ref) for k, e in profile.categories.items()},
        )

    def top_tags(
        self,
        profile: Optional[UserInterestProfile],
        n: Optional[int] = None,
        now: Optional[Timestamp] = None,
    ) -> List[str]:
        n = self.config.top_interest_tags if n is None else n
        return self.get_profile_vector(profile, now).top_tags(n)
