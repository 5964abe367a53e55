"""
Tests for the content vectorizer.
"""

import numpy as np
import pytest

from config.constants import VectorizerConfig
from content.vectorizer import (
    ContentVectorizer,
    build_vocabulary,
    item_text,
    text_fingerprint,
    tokenize,
)


class TestTokenize:

    def test_lowercases_and_strips_punctuation(self):
        assert tokenize("Ginger, Jujube & TEA!") == ["ginger", "jujube", "tea"]

    def test_drops_short_tokens(self):
        assert tokenize("an ox is big") == ["big"]

    def test_empty_text(self):
        assert tokenize("") == []
        assert tokenize(None) == []


class TestBuildVocabulary:

    def test_most_frequent_terms_sorted(self):
        texts = ["ginger tea", "ginger soup", "ginger tea warming"]
        vocab = build_vocabulary(texts, size=2)
        assert vocab == ["ginger", "tea"]

    def test_ties_broken_alphabetically(self):
        vocab = build_vocabulary(["zebra apple mango"], size=2)
        assert vocab == ["apple", "mango"]


class TestContentVectorizer:

    def test_fixed_length_and_normalised(self):
        vectorizer = ContentVectorizer(VectorizerConfig(vector_size=8))
        vector = vectorizer.vectorize_text("ginger ginger tea warming")

        assert vector.shape == (8,)
        assert np.linalg.norm(vector) == pytest.approx(1.0)

    def test_own_tokens_when_no_vocabulary(self):
        """First N of the item's own sorted terms, zero padded."""
        vectorizer = ContentVectorizer(VectorizerConfig(vector_size=4))
        vector = vectorizer.vectorize_text("tea ginger ginger")

        # sorted terms: ginger, tea
        expected = np.array([2.0, 1.0, 0.0, 0.0]) / np.sqrt(5.0)
        assert vector == pytest.approx(expected)

    def test_shared_vocabulary(self):
        vectorizer = ContentVectorizer(VectorizerConfig(vector_size=3), vocabulary=["tea", "ginger", "soup"])
        vector = vectorizer.vectorize_text("ginger tea")

        # sorted vocabulary: ginger, soup, tea
        assert vector == pytest.approx(np.array([1.0, 0.0, 1.0]) / np.sqrt(2.0))

    def test_no_text_is_zero_vector(self):
        vectorizer = ContentVectorizer(VectorizerConfig(vector_size=5))
        vector = vectorizer.vectorize_text("a b !!")
        assert vector.tolist() == [0.0] * 5

    def test_vectorize_sets_vector_and_fingerprint(self, make_recipe):
        vectorizer = ContentVectorizer(VectorizerConfig(vector_size=6))
        item = make_recipe()
        vectorized = vectorizer.vectorize(item)

        assert len(vectorized.content_vector) == 6
        expected_text = item_text(item, vectorizer.config.text_fields)
        assert vectorized.text_fingerprint == text_fingerprint(expected_text)
        # Original untouched
        assert item.content_vector is None

    def test_unchanged_text_not_revectorized(self, make_recipe):
        vectorizer = ContentVectorizer(VectorizerConfig(vector_size=6))
        vectorized = vectorizer.vectorize(make_recipe())
        assert vectorizer.vectorize(vectorized) is vectorized

    def test_changed_text_revectorized(self, make_recipe):
        vectorizer = ContentVectorizer(VectorizerConfig(vector_size=6))
        vectorized = vectorizer.vectorize(make_recipe())
        edited = vectorized.model_copy(update={"title": "Chrysanthemum cooling tea"})

        refreshed = vectorizer.vectorize(edited)
        assert refreshed is not edited
        assert refreshed.text_fingerprint != vectorized.text_fingerprint

    def test_fit_and_vectorize_catalog_share_basis(self, make_recipe, make_article):
        vectorizer = ContentVectorizer(VectorizerConfig(vector_size=10))
        catalog = [make_recipe(), make_article()]

        vocab = vectorizer.fit(catalog)
        out = vectorizer.vectorize_catalog(catalog)

        assert vocab == sorted(vocab)
        assert all(len(item.content_vector) == 10 for item in out)

    def test_precomputed_vector_kept(self, make_recipe):
        vectorizer = ContentVectorizer(VectorizerConfig(vector_size=4))
        item = make_recipe(content_vector=[0.6, 0.8, 0.0, 0.0])

        vectorized = vectorizer.vectorize(item)

        assert vectorized.content_vector == [0.6, 0.8, 0.0, 0.0]
        expected_text = item_text(item, vectorizer.config.text_fields)
        assert vectorized.text_fingerprint == text_fingerprint(expected_text)

    def test_precomputed_vector_replaced_after_text_edit(self, make_recipe):
        vectorizer = ContentVectorizer(VectorizerConfig(vector_size=4))
        stamped = vectorizer.vectorize(make_recipe(content_vector=[0.6, 0.8, 0.0, 0.0]))
        edited = stamped.model_copy(update={"title": "Chrysanthemum cooling tea"})

        refreshed = vectorizer.vectorize(edited)

        assert refreshed.content_vector != [0.6, 0.8, 0.0, 0.0]
        assert refreshed.text_fingerprint != stamped.text_fingerprint

    def test_wrong_length_precomputed_vector_replaced(self, make_recipe):
        vectorizer = ContentVectorizer(VectorizerConfig(vector_size=6))
        vectorized = vectorizer.vectorize(make_recipe(content_vector=[0.6, 0.8]))
        assert len(vectorized.content_vector) == 6
