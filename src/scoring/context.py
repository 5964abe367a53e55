"""
Request context for scoring.

Built once per request by the recommendation service and passed to every
scorer, so candidate scoring itself needs no lookups and shares no
mutable state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from config.constants import SeasonCalendar
from content.similarity import ItemFeatures
from core.utils import Timestamp, to_datetime, utc_now
from interests.tracker import InterestSnapshot
from recs.models import HealthConstraint


class Season(Enum):
    """TCM seasons. ``ALL`` marks year-round items, never a current season."""
    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"


ALL_SEASONS = "all"


def current_season(
    now: Optional[Timestamp] = None,
    calendar: Optional[SeasonCalendar] = None,
) -> Season:
    calendar = calendar or SeasonCalendar()
    moment = to_datetime(now) if now is not None else utc_now()
    return Season(calendar.season_for_month(moment.month))


@dataclass
class ScoringContext:
    """
    Everything candidate scoring needs for one request.

    ``interests`` holds the user's decayed weights at ``now`` and
    ``interest_item`` the pseudo-item built from the top interests.
    ``max_popularity`` is the largest raw popularity in the candidate set.
    """
    user_id: str
    now: datetime
    season: Season
    interests: InterestSnapshot = field(default_factory=InterestSnapshot)
    interest_item: ItemFeatures = field(default_factory=ItemFeatures)
    health: Optional[HealthConstraint] = None
    max_popularity: float = 0.0
