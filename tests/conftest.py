"""
Pytest configuration and shared fixtures for the recommendation core tests.
"""
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

# Load environment variables
from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"))


# ============================================================================
# Fixtures: Time
# ============================================================================

@pytest.fixture
def winter_now() -> datetime:
    """A fixed instant in TCM winter."""
    return datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def summer_now() -> datetime:
    return datetime(2024, 7, 15, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Fixtures: Test Data Factories
# ============================================================================

@pytest.fixture
def make_recipe(winter_now):
    """Factory for Recipe items with sensible defaults."""
    from recs.models import Recipe

    def _make(item_id: str = "recipe-001", **overrides) -> Recipe:
        data = {
            "id": item_id,
            "title": "Ginger Jujube Tea",
            "description": "A warming tea for cold winter days",
            "tags": ["warming", "tea"],
            "categories": ["drinks"],
            "ingredients": ["ginger", "jujube", "brown sugar"],
            "benefits": ["warms the stomach"],
            "seasons": ["winter"],
            "published_at": winter_now - timedelta(days=3),
            "popularity": {"views": 10, "likes": 2},
        }
        data.update(overrides)
        return Recipe(**data)

    return _make


@pytest.fixture
def make_article(winter_now):
    """Factory for Article items."""
    from recs.models import Article

    def _make(item_id: str = "article-001", **overrides) -> Article:
        data = {
            "id": item_id,
            "title": "Sleeping well in winter",
            "description": "Rest habits for the cold season",
            "body": "Go to bed early and rise late when the days are short.",
            "tags": ["sleep"],
            "categories": ["lifestyle"],
            "seasons": ["winter"],
            "published_at": winter_now - timedelta(days=10),
        }
        data.update(overrides)
        return Article(**data)

    return _make


@pytest.fixture
def yang_deficient_health():
    """Health profile using the profile service's spelling."""
    from recs.models import HealthConstraint

    return HealthConstraint(
        user_id="user-001",
        constitution="yang_deficiency",
        allergies=["peanut"],
        contraindications=["pregnancy"],
        symptoms=[],
    )


@pytest.fixture
def config():
    from config.constants import RecommenderConfig
    return RecommenderConfig()
