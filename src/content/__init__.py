"""Content vectors and similarity primitives."""

from content.similarity import (
    ItemFeatures,
    combined_similarity,
    cosine,
    decay_weight,
    exponential_decay,
    jaccard,
)
from content.vectorizer import (
    ContentVectorizer,
    build_vocabulary,
    text_fingerprint,
    tokenize,
)

__all__ = [
    "ContentVectorizer",
    "ItemFeatures",
    "build_vocabulary",
    "combined_similarity",
    "cosine",
    "decay_weight",
    "exponential_decay",
    "jaccard",
    "text_fingerprint",
    "tokenize",
]
