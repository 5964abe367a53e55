"""
Content Vectorizer.

Turns an item's text fields into a fixed-length, L2-normalised
term-frequency vector:

    text -> lowercase -> strip punctuation -> drop tokens < 3 chars
         -> term counts -> first N terms of a sorted vocabulary
         -> count vector (zero padded to N) -> L2 normalise

The vocabulary is either shared across the catalog (``fit``) so every
vector lives in the same basis, or derived from the item's own tokens
when no vocabulary is known. Items with no usable text get an all-zero
vector, never an error.

Usage::

    vectorizer = ContentVectorizer(VectorizerConfig(vector_size=50))
    vectorizer.fit(catalog)
    catalog = vectorizer.vectorize_catalog(catalog)
"""

import hashlib
import re
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from config.constants import VectorizerConfig
from core.logging import LoggerMixin
from recs.models import ContentItemBase


_PUNCTUATION_RE = re.compile(r"[^\w\s]", re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")


def tokenize(text: Optional[str], min_length: int = 3) -> List[str]:
    """Lowercase, strip punctuation, split on whitespace, drop short tokens."""
    if not text:
        return []
    cleaned = _PUNCTUATION_RE.sub("", text.lower())
    return [t for t in _WHITESPACE_RE.split(cleaned) if len(t) >= min_length]


def term_frequencies(tokens: Iterable[str]) -> Dict[str, int]:
    return dict(Counter(tokens))


def item_text(item: ContentItemBase, text_fields: Sequence[str]) -> str:
    """Concatenate the item's text fields; list fields are space-joined."""
    parts: List[str] = []
    for name in text_fields:
        value = getattr(item, name, None)
        if not value:
            continue
        if isinstance(value, (list, tuple, set)):
            parts.extend(str(v) for v in value if v)
        else:
            parts.append(str(value))
    return " ".join(parts)


def text_fingerprint(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(vector))
    if norm == 0.0:
        return vector
    return vector / norm


def build_vocabulary(
    texts: Iterable[str],
    size: int,
    min_length: int = 3,
) -> List[str]:
    """
    Pick ``size`` terms by document frequency (ties alphabetical) and
    return them sorted, so the vector basis is deterministic.
    """
    doc_freq: Counter = Counter()
    for text in texts:
        doc_freq.update(set(tokenize(text, min_length)))
    ranked = sorted(doc_freq.items(), key=lambda kv: (-kv[1], kv[0]))
    return sorted(term for term, _ in ranked[:size])


class ContentVectorizer(LoggerMixin):
    """
    Term-frequency vectorizer with an optional shared vocabulary.

    Stateless apart from the vocabulary set by ``fit``; vectorizing
    independent items is safe to do in parallel.
    """

    def __init__(
        self,
        config: Optional[VectorizerConfig] = None,
        vocabulary: Optional[Sequence[str]] = None,
    ):
        self.config = config or VectorizerConfig()
        self.vocabulary: Optional[List[str]] = (
            sorted(vocabulary)[: self.config.vector_size] if vocabulary else None
        )

    @property
    def vector_size(self) -> int:
        return self.config.vector_size

    def fit(self, items: Iterable[ContentItemBase]) -> List[str]:
        """Derive a shared vocabulary from the catalog's text."""
        texts = [item_text(item, self.config.text_fields) for item in items]
        self.vocabulary = build_vocabulary(
            texts, self.config.vector_size, self.config.min_token_length,
        )
        self.logger.info(
            "vocabulary_built",
            documents=len(texts),
            terms=len(self.vocabulary),
        )
        return self.vocabulary

    def vectorize_text(
        self,
        text: Optional[str],
        vocabulary: Optional[Sequence[str]] = None,
    ) -> np.ndarray:
        """
        Vectorize raw text into a length-N array.

        Vocabulary precedence: argument, then the fitted vocabulary, then
        the text's own tokens.
        """
        n = self.config.vector_size
        vector = np.zeros(n, dtype=float)

        freqs = term_frequencies(tokenize(text, self.config.min_token_length))
        if not freqs:
            return vector

        vocab = vocabulary if vocabulary is not None else self.vocabulary
        if vocab is None:
            vocab = freqs.keys()
        terms = sorted(vocab)[:n]

        for i, term in enumerate(terms):
            vector[i] = freqs.get(term, 0)
        return l2_normalize(vector)

    def needs_vectorizing(self, item: ContentItemBase, fingerprint: str) -> bool:
        vector = item.content_vector
        if vector is None or len(vector) != self.config.vector_size:
            return True
        # A correctly sized vector without a fingerprint was precomputed upstream
        if item.text_fingerprint is None:
            return False
        return item.text_fingerprint != fingerprint

    def vectorize(self, item: ContentItemBase) -> ContentItemBase:
        """
        Return the item with ``content_vector`` set.

        Items whose text is unchanged since the last run are returned
        as-is. A precomputed vector of the right length is kept and only
        gets a fingerprint, so later text edits are detected. Otherwise a
        copy is made and the original is untouched.
        """
        text = item_text(item, self.config.text_fields)
        fingerprint = text_fingerprint(text)
        if not self.needs_vectorizing(item, fingerprint):
            if item.text_fingerprint is None:
                return item.model_copy(update={"text_fingerprint": fingerprint})
            return item
        vector = self.vectorize_text(text)
        return item.model_copy(update={
            "content_vector": vector.tolist(),
            "text_fingerprint": fingerprint,
        })

    def vectorize_catalog(self, items: Sequence[ContentItemBase]) -> List[ContentItemBase]:
        out = [self.vectorize(item) for item in items]
        refreshed = sum(1 for before, after in zip(items, out) if before is not after)
        self.logger.debug("catalog_vectorized", items=len(out), refreshed=refreshed)
        return out
