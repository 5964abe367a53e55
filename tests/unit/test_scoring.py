"""
Tests for the weighted and health-match scoring modes.
"""

import math
from datetime import timedelta

import pytest

from config.constants import RecommenderConfig, ScoringWeights
from core.errors import ValidationError
from core.utils import Deadline
from interests.tracker import InterestSnapshot
from recs.models import HealthConstraint
from scoring.context import Season, current_season
from scoring.health_match import HealthMatchScorer
from scoring.scorer import build_interest_item, build_scoring_context
from scoring.weighted import WeightedScorer


class TestCurrentSeason:

    def test_month_mapping(self, winter_now, summer_now):
        assert current_season(winter_now) == Season.WINTER
        assert current_season(summer_now) == Season.SUMMER
        assert current_season(winter_now.replace(month=10)) == Season.AUTUMN
        assert current_season(winter_now.replace(month=4)) == Season.SPRING


class TestWeightedComponents:

    def _ctx(self, candidates, now, snapshot=None, config=None):
        return build_scoring_context(
            "u1", now, snapshot, candidates, config or RecommenderConfig(),
        )

    def test_seasonal_full_and_partial_credit(self, make_recipe, winter_now):
        scorer = WeightedScorer(RecommenderConfig())
        in_season = make_recipe(seasons=["winter"])
        all_year = make_recipe(seasons=["all"])
        off_season = make_recipe(seasons=["summer"])
        ctx = self._ctx([in_season], winter_now)

        assert scorer.seasonal(in_season, ctx) == 1.0
        assert scorer.seasonal(all_year, ctx) == 1.0
        assert scorer.seasonal(off_season, ctx) == pytest.approx(0.2)

    def test_popularity_log_scaled(self, make_recipe, winter_now):
        scorer = WeightedScorer(RecommenderConfig())
        top = make_recipe("a", popularity={"views": 90, "likes": 3})     # raw 99
        low = make_recipe("b", popularity={"views": 9, "likes": 0})      # raw 9
        none = make_recipe("c", popularity={"views": 0, "likes": 0})
        ctx = self._ctx([top, low, none], winter_now)

        assert scorer.popularity(top, ctx) == pytest.approx(1.0)
        assert scorer.popularity(low, ctx) == pytest.approx(math.log1p(9) / math.log1p(99))
        assert scorer.popularity(none, ctx) == 0.0

    def test_recency_decay_and_missing_date(self, make_recipe, winter_now):
        scorer = WeightedScorer(RecommenderConfig())
        fresh = make_recipe(published_at=winter_now)
        month_old = make_recipe(published_at=winter_now - timedelta(days=30))
        undated = make_recipe(published_at=None)
        ctx = self._ctx([fresh], winter_now)

        assert scorer.recency(fresh, ctx) == pytest.approx(1.0)
        assert scorer.recency(month_old, ctx) == pytest.approx(0.5)
        assert scorer.recency(undated, ctx) == 0.0

    def test_no_profile_zeroes_personal_terms(self, make_recipe, winter_now):
        scorer = WeightedScorer(RecommenderConfig())
        item = make_recipe()
        ctx = self._ctx([item], winter_now)

        assert scorer.content_based(item, ctx) == 0.0
        assert scorer.collaborative(item, ctx) == 0.0

    def test_collaborative_overlap(self, make_recipe, winter_now):
        scorer = WeightedScorer(RecommenderConfig())
        item = make_recipe(tags=["tea", "warming"], categories=["drinks"])
        snapshot = InterestSnapshot(tags={"tea": 4.0, "sleep": 2.0}, categories={"drinks": 2.0})
        ctx = self._ctx([item], winter_now, snapshot)

        # (4 + 0 + 2) / (4 * 3)
        assert scorer.collaborative(item, ctx) == pytest.approx(0.5)

    def test_content_based_uses_top_interests(self, make_recipe, winter_now):
        scorer = WeightedScorer(RecommenderConfig())
        item = make_recipe(tags=["tea"], categories=["drinks"])
        snapshot = InterestSnapshot(tags={"tea": 1.0}, categories={"drinks": 1.0})
        ctx = self._ctx([item], winter_now, snapshot)

        assert scorer.content_based(item, ctx) == pytest.approx(1.0)

    def test_composite_is_weighted_sum(self, make_recipe, winter_now):
        weights = ScoringWeights(
            content_based=0.0, collaborative=0.0, popularity=0.0, recency=0.5, seasonal=0.5,
        )
        scorer = WeightedScorer(RecommenderConfig(), weights)
        item = make_recipe(published_at=winter_now, seasons=["summer"])
        ctx = self._ctx([item], winter_now)

        score, components = scorer.score_item(item, ctx)

        assert set(components) == {"content_based", "collaborative", "popularity", "recency", "seasonal"}
        assert score == pytest.approx(0.5 * 1.0 + 0.5 * 0.2)


class TestRanking:

    def test_ties_keep_candidate_order(self, make_recipe, winter_now):
        candidates = [make_recipe(f"r{i}") for i in range(5)]
        ctx = build_scoring_context("u1", winter_now, None, candidates, RecommenderConfig())

        outcome = WeightedScorer(RecommenderConfig()).rank(candidates, ctx)

        assert [s.item.id for s in outcome.ranked] == ["r0", "r1", "r2", "r3", "r4"]
        assert outcome.complete

    def test_parallel_matches_sequential(self, make_recipe, winter_now):
        candidates = [
            make_recipe(f"r{i}", popularity={"views": i * 10, "likes": i}) for i in range(12)
        ]
        sequential = RecommenderConfig()
        parallel = RecommenderConfig(scoring_workers=4)
        ctx = build_scoring_context("u1", winter_now, None, candidates, sequential)

        a = WeightedScorer(sequential).rank(candidates, ctx)
        b = WeightedScorer(parallel).rank(candidates, ctx)

        assert [s.item.id for s in a.ranked] == [s.item.id for s in b.ranked]

    def test_expired_deadline_stops_scoring(self, make_recipe, winter_now):
        candidates = [make_recipe(f"r{i}") for i in range(3)]
        ctx = build_scoring_context("u1", winter_now, None, candidates, RecommenderConfig())

        outcome = WeightedScorer(RecommenderConfig()).rank(candidates, ctx, Deadline(0))

        assert outcome.timed_out
        assert outcome.ranked == []


class TestInterestItem:

    def test_pseudo_item_from_top_tags(self):
        snapshot = InterestSnapshot(tags={"a": 3.0, "b": 2.0, "c": 1.0}, categories={"x": 1.0})
        item = build_interest_item(snapshot, top_n=2)

        assert item.tags == {"a", "b"}
        assert item.categories == {"x"}
        assert item.content_vector is None


class TestHealthMatch:

    def _score(self, item, health, now):
        config = RecommenderConfig()
        ctx = build_scoring_context("u1", now, None, [item], config, health=health)
        return HealthMatchScorer(config).score_item(item, ctx)

    def test_constitution_season_and_no_symptoms(self, make_recipe, yang_deficient_health, winter_now):
        item = make_recipe(suitable_for=["yang_deficient"], best_season="winter", seasons=None)
        score, parts = self._score(item, yang_deficient_health, winter_now)

        assert parts == {"constitution": 40.0, "season": 20.0, "symptoms": 20.0}
        assert score == 80.0

    def test_balanced_fallback(self, make_recipe, yang_deficient_health, winter_now):
        item = make_recipe(suitable_for=["balanced"], seasons=["all"])
        score, parts = self._score(item, yang_deficient_health, winter_now)

        assert parts["constitution"] == 20.0
        assert score == 60.0

    def test_symptom_fraction(self, make_recipe, winter_now):
        health = HealthConstraint(user_id="u1", constitution="qi_deficient", symptoms=["fatigue", "insomnia"])
        item = make_recipe(suitable_for=[], seasons=["summer"], helps_with=["Fatigue"])
        score, parts = self._score(item, health, winter_now)

        assert parts == {"constitution": 0.0, "season": 0.0, "symptoms": 20.0}
        assert score == 20.0

    def test_missing_health_profile(self, make_recipe, winter_now):
        config = RecommenderConfig()
        items = [make_recipe()]
        ctx = build_scoring_context("u1", winter_now, None, items, config)

        with pytest.raises(ValidationError):
            HealthMatchScorer(config).rank(items, ctx)
