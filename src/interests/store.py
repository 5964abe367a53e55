"""
Persistence adapters for interest profiles and A/B assignments.

Two key-value backends:
1. InMemory: development/testing (default)
2. Redis: production, selected with REDIS_ENABLED=true

Values are JSON documents written with a TTL. The stores only read and
write whole documents; concurrent writers are last-write-wins.
"""

import json
import time
from threading import RLock
from typing import Any, Dict, Optional, Tuple

import redis

from config.settings import Settings
from core.errors import DependencyError
from core.logging import LoggerMixin, get_logger
from interests.tracker import UserInterestProfile

logger = get_logger(__name__)


# =============================================================================
# Backends
# =============================================================================

class InMemoryBackend:
    """
    Thread-safe dict with per-key expiry.

    Note: contents are lost on restart.
    """

    def __init__(self):
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = RLock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            record = self._data.get(key)
            if record is None:
                return None
            value, expires_at = record
            if expires_at is not None and expires_at <= time.monotonic():
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._data[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {"backend": "in_memory", "keys": len(self._data)}


class RedisBackend:
    """
    Redis-backed storage.

    Connection and command failures surface as ``DependencyError``.
    """

    def __init__(self, client: Optional["redis.Redis"] = None, redis_url: Optional[str] = None):
        if client is None:
            client = redis.from_url(redis_url or "redis://localhost:6379/0", decode_responses=True)
        self._redis = client

    def get(self, key: str) -> Optional[str]:
        try:
            return self._redis.get(key)
        except redis.RedisError as e:
            raise DependencyError(f"Redis read failed for {key}: {e}") from e

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        try:
            if ttl_seconds:
                self._redis.setex(key, ttl_seconds, value)
            else:
                self._redis.set(key, value)
        except redis.RedisError as e:
            raise DependencyError(f"Redis write failed for {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._redis.delete(key)
        except redis.RedisError as e:
            raise DependencyError(f"Redis delete failed for {key}: {e}") from e

    def get_stats(self) -> Dict[str, Any]:
        return {"backend": "redis"}


def create_backend(settings: Settings):
    """
    Pick a backend from settings.

    Redis when enabled and reachable, in-memory otherwise.
    """
    if not settings.redis_enabled:
        return InMemoryBackend()
    try:
        client = redis.from_url(settings.redis_url, decode_responses=True)
        client.ping()
    except redis.RedisError as e:
        logger.warning("redis_unavailable_using_memory", error=str(e))
        return InMemoryBackend()
    logger.info("redis_connected", url=settings.redis_url.split("@")[-1])
    return RedisBackend(client=client)


# =============================================================================
# Stores
# =============================================================================

class InterestProfileStore(LoggerMixin):
    """Load and save ``UserInterestProfile`` documents."""

    KEY_PREFIX = "interest_profile"

    def __init__(self, backend=None, ttl_seconds: Optional[int] = None):
        self._backend = backend if backend is not None else InMemoryBackend()
        self._ttl = ttl_seconds

    def _key(self, user_id: str) -> str:
        return f"{self.KEY_PREFIX}:{user_id}"

    def get(self, user_id: str) -> Optional[UserInterestProfile]:
        raw = self._backend.get(self._key(user_id))
        if raw is None:
            return None
        return UserInterestProfile.from_dict(json.loads(raw))

    def get_or_create(self, user_id: str) -> UserInterestProfile:
        profile = self.get(user_id)
        if profile is None:
            profile = UserInterestProfile(user_id=user_id)
        return profile

    def save(self, profile: UserInterestProfile) -> None:
        self._backend.set(self._key(profile.user_id), json.dumps(profile.to_dict()), self._ttl)


class AssignmentStore(LoggerMixin):
    """Cached A/B variant assignment per (test, user)."""

    KEY_PREFIX = "ab_assignment"

    def __init__(self, backend=None, ttl_seconds: Optional[int] = None):
        self._backend = backend if backend is not None else InMemoryBackend()
        self._ttl = ttl_seconds

    def _key(self, user_id: str, test_id: str) -> str:
        return f"{self.KEY_PREFIX}:{test_id}:{user_id}"

    def get(self, user_id: str, test_id: str) -> Optional[str]:
        raw = self._backend.get(self._key(user_id, test_id))
        if raw is None:
            return None
        return json.loads(raw).get("variant")

    def put(self, user_id: str, test_id: str, variant_name: str) -> None:
        doc = {"variant": variant_name, "assigned_at": time.time()}
        self._backend.set(self._key(user_id, test_id), json.dumps(doc), self._ttl)
