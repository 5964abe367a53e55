"""
Tests for candidate sources.
"""

from unittest.mock import MagicMock

import pytest

from config.constants import VectorizerConfig
from content.vectorizer import ContentVectorizer
from core.errors import DependencyError
from recs.catalog import CachedCatalogSource, InMemoryCatalog
from recs.models import ContentType, EventType


class TestInMemoryCatalog:

    def test_filters_by_type_and_exclusions(self, make_recipe, make_article):
        catalog = InMemoryCatalog([make_recipe("r1"), make_recipe("r2"), make_article("a1")])

        recipes = catalog.get_candidates(ContentType.RECIPE, exclude_ids={"r2"})

        assert [i.id for i in recipes] == ["r1"]

    def test_engagement_counters(self, make_recipe):
        catalog = InMemoryCatalog([make_recipe("r1", popularity={"views": 0, "likes": 0})])

        catalog.record_engagement("r1", EventType.VIEW)
        catalog.record_engagement("r1", EventType.LIKE)
        catalog.record_engagement("r1", EventType.SHARE)

        pop = catalog.get_item("r1").popularity
        assert (pop.views, pop.likes) == (1, 1)

    def test_upsert_revectorizes_changed_text(self, make_recipe):
        vectorizer = ContentVectorizer(VectorizerConfig(vector_size=8))
        catalog = InMemoryCatalog([make_recipe("r1")], vectorizer=vectorizer)
        original = catalog.get_item("r1")

        assert catalog.upsert(original) is original

        edited = original.model_copy(update={"description": "Cooling summer drink"})
        stored = catalog.upsert(edited)
        assert stored.text_fingerprint != original.text_fingerprint

    def test_precomputed_vectors_survive_load(self, make_recipe):
        vectorizer = ContentVectorizer(VectorizerConfig(vector_size=16))
        precomputed = [0.6, 0.8] + [0.0] * 14

        catalog = InMemoryCatalog([make_recipe("r1", content_vector=precomputed)], vectorizer=vectorizer)

        stored = catalog.get_item("r1")
        assert stored.content_vector == precomputed
        assert stored.text_fingerprint is not None


class TestCachedCatalogSource:

    def test_serves_last_known_on_outage(self, make_recipe):
        source = MagicMock()
        source.get_candidates.return_value = [make_recipe("r1")]
        cached = CachedCatalogSource(source)
        cached.get_candidates()

        source.get_candidates.side_effect = DependencyError("down")

        assert [i.id for i in cached.get_candidates()] == ["r1"]

    def test_different_query_not_served_from_cache(self, make_recipe):
        source = MagicMock()
        source.get_candidates.return_value = [make_recipe("r1")]
        cached = CachedCatalogSource(source)
        cached.get_candidates()

        source.get_candidates.side_effect = DependencyError("down")

        with pytest.raises(DependencyError):
            cached.get_candidates(ContentType.TIP)

    def test_item_lookup_falls_back_to_cache(self, make_recipe):
        source = MagicMock()
        source.get_candidates.return_value = [make_recipe("r1")]
        source.get_item.side_effect = DependencyError("down")
        cached = CachedCatalogSource(source)
        cached.get_candidates()

        assert cached.get_item("r1").id == "r1"
        with pytest.raises(DependencyError):
            cached.get_item("r2")
