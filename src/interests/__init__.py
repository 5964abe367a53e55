"""Time-decayed interest profiles and their persistence."""

from interests.store import (
    AssignmentStore,
    InMemoryBackend,
    InterestProfileStore,
    RedisBackend,
    create_backend,
)
from interests.tracker import (
    InterestEntry,
    InterestSnapshot,
    InterestTracker,
    UserInterestProfile,
)

__all__ = [
    "AssignmentStore",
    "InMemoryBackend",
    "InterestEntry",
    "InterestProfileStore",
    "InterestSnapshot",
    "InterestTracker",
    "RedisBackend",
    "UserInterestProfile",
    "create_backend",
]
