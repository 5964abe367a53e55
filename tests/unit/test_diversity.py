"""
Tests for the category-capped diversity re-ranker.
"""

import pytest

from config.constants import DiversityConfig
from recs.diversity import DiversityReranker, diversity_score
from scoring.scorer import ScoredItem


def _scored(make_article, item_id, categories, tags=("sleep",), score=1.0) -> ScoredItem:
    item = make_article(item_id, categories=list(categories), tags=list(tags))
    return ScoredItem(item=item, score=score)


class TestDiversityScore:

    def test_single_shared_tag_is_zero(self, make_article):
        items = [_scored(make_article, f"a{i}", ["c"], tags=["sleep"]) for i in range(4)]
        assert diversity_score(items) == 0.0

    def test_unique_tags_is_one(self, make_article):
        items = [_scored(make_article, f"a{i}", ["c"], tags=[f"tag{i}"]) for i in range(4)]
        assert diversity_score(items) == pytest.approx(1.0)

    def test_empty_list(self):
        assert diversity_score([]) == 0.0

    def test_skewed_distribution_between_bounds(self, make_article):
        items = [
            _scored(make_article, "a0", ["c"], tags=["x"]),
            _scored(make_article, "a1", ["c"], tags=["x"]),
            _scored(make_article, "a2", ["c"], tags=["x"]),
            _scored(make_article, "a3", ["c"], tags=["y"]),
        ]
        assert 0.0 < diversity_score(items) < 1.0


class TestDiversityReranker:

    def test_category_cap_defers_items(self, make_article):
        ranked = [
            _scored(make_article, "d1", ["diet"]),
            _scored(make_article, "d2", ["diet"]),
            _scored(make_article, "d3", ["diet"]),
            _scored(make_article, "s1", ["sleep"]),
        ]
        reranker = DiversityReranker(DiversityConfig(max_per_category=2))

        result = reranker.rerank(ranked, limit=3)

        assert [s.item.id for s in result.items] == ["d1", "d2", "s1"]

    def test_cap_relaxed_instead_of_padding(self, make_article):
        ranked = [_scored(make_article, f"d{i}", ["diet"]) for i in range(5)]
        reranker = DiversityReranker(DiversityConfig(max_per_category=2))

        result = reranker.rerank(ranked, limit=4)

        assert [s.item.id for s in result.items] == ["d0", "d1", "d2", "d3"]
        assert result.final_cap > 2

    def test_fewer_candidates_than_limit(self, make_article):
        ranked = [_scored(make_article, "d0", ["diet"])]
        result = DiversityReranker().rerank(ranked, limit=10)
        assert len(result.items) == 1

    def test_uncategorised_items_never_capped(self, make_article):
        ranked = [_scored(make_article, f"u{i}", []) for i in range(5)]
        result = DiversityReranker(DiversityConfig(max_per_category=1)).rerank(ranked, limit=5)
        assert len(result.items) == 5
        assert result.final_cap == 1

    def test_low_diversity_flagged_not_altered(self, make_article):
        ranked = [_scored(make_article, f"a{i}", [f"c{i}"], tags=["sleep"]) for i in range(3)]
        reranker = DiversityReranker(DiversityConfig(min_diversity_score=0.6))

        result = reranker.rerank(ranked, limit=3)

        assert result.flagged
        assert [s.item.id for s in result.items] == ["a0", "a1", "a2"]

    def test_flag_disabled(self, make_article):
        ranked = [_scored(make_article, f"a{i}", [f"c{i}"], tags=["sleep"]) for i in range(3)]
        config = DiversityConfig(enforce_minimum_diversity=False)
        assert not DiversityReranker(config).rerank(ranked, limit=3).flagged
