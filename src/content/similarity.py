"""
Similarity Engine.

Math primitives for comparing items and for time decay. None of these
raise: malformed or partial input yields 0 (or the decay floor) so one
bad item scores low instead of aborting the batch.
"""

import math
from dataclasses import dataclass, field
from typing import AbstractSet, Any, List, Optional, Sequence

import numpy as np

from config.constants import DEFAULT_SIMILARITY_WEIGHTS, SimilarityWeights
from core.utils import Timestamp, to_epoch_seconds


@dataclass
class ItemFeatures:
    """
    The comparable surface of an item.

    Anything with ``tags``, ``categories`` and ``content_vector``
    attributes can be compared; this is used for synthetic items such as
    the pseudo-item built from a user's top interests.
    """
    tags: AbstractSet[str] = field(default_factory=set)
    categories: AbstractSet[str] = field(default_factory=set)
    content_vector: Optional[Sequence[float]] = None


def cosine(v1: Optional[Sequence[float]], v2: Optional[Sequence[float]]) -> float:
    """
    Cosine similarity in [-1, 1].

    Returns 0.0 when either vector is missing or zero, or the lengths
    differ.
    """
    if v1 is None or v2 is None:
        return 0.0
    try:
        a = np.asarray(v1, dtype=float)
        b = np.asarray(v2, dtype=float)
    except (TypeError, ValueError):
        return 0.0
    if a.ndim != 1 or a.shape != b.shape or a.size == 0:
        return 0.0

    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0.0 or norm_b == 0.0 or not math.isfinite(norm_a * norm_b):
        return 0.0

    sim = float(np.dot(a, b)) / (norm_a * norm_b)
    return max(-1.0, min(1.0, sim))


def jaccard(set_a: Optional[AbstractSet[Any]], set_b: Optional[AbstractSet[Any]]) -> float:
    """|A & B| / |A | B|; 0.0 when either set is empty."""
    if not set_a or not set_b:
        return 0.0
    a, b = set(set_a), set(set_b)
    return len(a & b) / len(a | b)


def _has_vector(item: Any) -> bool:
    vector = getattr(item, "content_vector", None)
    return vector is not None and len(vector) > 0


def combined_similarity(
    item1: Any,
    item2: Any,
    weights: SimilarityWeights = DEFAULT_SIMILARITY_WEIGHTS,
) -> float:
    """
    Weighted similarity in [0, 1] over the components both items carry.

    A component (tags, categories, vector) missing on either side is left
    out of both the numerator and the denominator rather than counted as
    zero. Vector cosine is mapped from [-1, 1] to [0, 1] first.
    """
    parts: List[tuple] = []

    tags1 = getattr(item1, "tags", None)
    tags2 = getattr(item2, "tags", None)
    if tags1 and tags2:
        parts.append((weights.tags, jaccard(tags1, tags2)))

    cats1 = getattr(item1, "categories", None)
    cats2 = getattr(item2, "categories", None)
    if cats1 and cats2:
        parts.append((weights.categories, jaccard(cats1, cats2)))

    if _has_vector(item1) and _has_vector(item2):
        sim = cosine(item1.content_vector, item2.content_vector)
        parts.append((weights.vector, (sim + 1.0) / 2.0))

    total_weight = sum(w for w, _ in parts)
    if total_weight <= 0:
        return 0.0
    return sum(w * s for w, s in parts) / total_weight


def exponential_decay(
    timestamp: Optional[Timestamp],
    half_life_seconds: float,
    now: Timestamp,
    min_value: float = 0.0,
) -> float:
    """
    Half-life decay factor ``2 ** (-dt / half_life)`` in [min_value, 1].

    Future timestamps count as ``dt = 0``. A missing timestamp or a
    non-positive half-life yields ``min_value``.
    """
    ts = to_epoch_seconds(timestamp)
    ref = to_epoch_seconds(now)
    if ts is None or ref is None or not half_life_seconds or half_life_seconds <= 0:
        return min_value

    elapsed = max(0.0, ref - ts)
    value = math.pow(2.0, -elapsed / half_life_seconds)
    return max(min_value, min(1.0, value))


def decay_weight(
    stored_weight: float,
    last_updated: Optional[Timestamp],
    half_life_seconds: float,
    now: Timestamp,
) -> float:
    """Stored weight decayed to ``now`` with no floor."""
    if not stored_weight:
        return 0.0
    return stored_weight * exponential_decay(last_updated, half_life_seconds, now, 0.0)
