"""
Pydantic models for the recommendation core.

Models cover:
- Catalog content as a closed set of tagged variants (article, recipe, tip)
- The user's health constraints (read-only, owned by the profile service)
- Interaction events and explicit feedback
- A/B test definitions
- Request / response schemas
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Set, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

from core.utils import normalize_string_set, to_datetime, utc_now


# =============================================================================
# Enums
# =============================================================================

class ContentType(str, Enum):
    ARTICLE = "article"
    RECIPE = "recipe"
    TIP = "tip"


class EventType(str, Enum):
    """Interaction kinds that feed the interest profile."""
    VIEW = "view"
    LIKE = "like"
    SHARE = "share"
    SAVE = "save"
    COMMENT = "comment"
    CLICK = "click"


class ScoringMode(str, Enum):
    """Two selectable strategies over the same candidate set."""
    WEIGHTED = "weighted"            # composite score in [0, 1]
    HEALTH_MATCH = "health_match"    # constrained match score in [0, 100]


class ReasonCode(str, Enum):
    OK = "ok"
    NO_CANDIDATES = "no_candidates"
    NO_ELIGIBLE_ITEMS = "no_eligible_items"
    DEPENDENCY_UNAVAILABLE = "dependency_unavailable"
    TIMEOUT_PARTIAL = "timeout_partial"


class Constitution(str, Enum):
    """The nine TCM body-type classifications."""
    BALANCED = "balanced"
    QI_DEFICIENT = "qi_deficient"
    YANG_DEFICIENT = "yang_deficient"
    YIN_DEFICIENT = "yin_deficient"
    PHLEGM_DAMPNESS = "phlegm_dampness"
    DAMP_HEAT = "damp_heat"
    BLOOD_STASIS = "blood_stasis"
    QI_STAGNATION = "qi_stagnation"
    SPECIAL = "special"


# Profile service and recipe authors spell these differently.
CONSTITUTION_ALIASES: Dict[str, str] = {
    "qi_deficiency": "qi_deficient",
    "yang_deficiency": "yang_deficient",
    "yin_deficiency": "yin_deficient",
    "phlegm_damp": "phlegm_dampness",
    "phlegm_wetness": "phlegm_dampness",
    "damp_heat_type": "damp_heat",
    "blood_stagnation": "blood_stasis",
    "blood_stasis_type": "blood_stasis",
    "qi_depression": "qi_stagnation",
    "allergic": "special",
    "inherited_special": "special",
    "neutral": "balanced",
    "peaceful": "balanced",
}


def canonical_constitution(value: Optional[str]) -> Optional[str]:
    """
    Map a constitution spelling onto its canonical name.

    Unknown values are kept (lowercased, spaces/hyphens to underscores)
    so that exact matches still work.
    """
    if not value:
        return None
    key = value.strip().lower().replace("-", "_").replace(" ", "_")
    return CONSTITUTION_ALIASES.get(key, key)


# =============================================================================
# Catalog Content
# =============================================================================

class Popularity(BaseModel):
    views: int = 0
    likes: int = 0


class ContentItemBase(BaseModel):
    """
    Fields shared by every content variant.

    tags, categories, seasons and the health metadata sets are normalised
    to lowercase on the way in.
    """

    id: str
    title: str = ""
    description: str = ""
    tags: Set[str] = Field(default_factory=set)
    categories: Set[str] = Field(default_factory=set)
    content_vector: Optional[List[float]] = None
    text_fingerprint: Optional[str] = None
    seasons: Set[str] = Field(default_factory=set)
    published_at: Optional[datetime] = None
    popularity: Popularity = Field(default_factory=Popularity)

    # Health metadata; any variant may carry it
    suitable_for: Set[str] = Field(default_factory=set)
    helps_with: Set[str] = Field(default_factory=set)
    cautions: Set[str] = Field(default_factory=set)

    @field_validator("tags", "categories", "seasons", "helps_with", "cautions", mode="before")
    @classmethod
    def _normalize_sets(cls, v):
        if v is None:
            return set()
        if isinstance(v, str):
            v = [v]
        return normalize_string_set(v)

    @field_validator("suitable_for", mode="before")
    @classmethod
    def _normalize_constitutions(cls, v):
        if v is None:
            return set()
        if isinstance(v, str):
            v = [v]
        return {canonical_constitution(c) for c in v if c}

    def safety_terms(self) -> List[str]:
        """Strings checked against the user's allergies."""
        return []


class Article(ContentItemBase):
    type: Literal["article"] = "article"
    body: str = ""
    author: Optional[str] = None


class Recipe(ContentItemBase):
    type: Literal["recipe"] = "recipe"
    ingredients: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    preparation: str = ""

    @model_validator(mode="before")
    @classmethod
    def _fold_best_season(cls, data: Any) -> Any:
        # Older recipe documents carry a single ``best_season``
        if isinstance(data, dict) and data.get("best_season") and not data.get("seasons"):
            data = dict(data)
            data["seasons"] = [data.pop("best_season")]
        return data

    def safety_terms(self) -> List[str]:
        return list(self.ingredients)


class Tip(ContentItemBase):
    type: Literal["tip"] = "tip"
    body: str = ""


ContentItem = Annotated[Union[Article, Recipe, Tip], Field(discriminator="type")]

_CONTENT_ADAPTER: TypeAdapter = TypeAdapter(ContentItem)


def parse_content_item(data: Dict[str, Any]) -> ContentItemBase:
    """Validate a raw catalog document into its concrete variant."""
    return _CONTENT_ADAPTER.validate_python(data)


# =============================================================================
# User Data
# =============================================================================

class HealthConstraint(BaseModel):
    """Health profile supplied by the profile service. Read-only here."""

    user_id: str
    constitution: Optional[str] = None
    allergies: Set[str] = Field(default_factory=set)
    contraindications: Set[str] = Field(default_factory=set)
    medical_conditions: Set[str] = Field(default_factory=set)
    symptoms: Set[str] = Field(default_factory=set)

    @field_validator("constitution", mode="before")
    @classmethod
    def _canonical_constitution(cls, v):
        return canonical_constitution(v)

    @field_validator("allergies", "contraindications", "medical_conditions", "symptoms", mode="before")
    @classmethod
    def _normalize_sets(cls, v):
        if v is None:
            return set()
        if isinstance(v, str):
            v = [v]
        return normalize_string_set(v)


class InteractionEvent(BaseModel):
    user_id: str
    item_id: str
    event_type: EventType
    timestamp: datetime = Field(default_factory=utc_now)


class Feedback(BaseModel):
    """Explicit feedback on a recommended item (rating 1-5)."""
    user_id: str
    item_id: str
    rating: int
    comments: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)


# =============================================================================
# A/B Tests
# =============================================================================

class Variant(BaseModel):
    name: str
    description: str = ""
    weight_overrides: Dict[str, float] = Field(default_factory=dict)


class ABTest(BaseModel):
    """Externally administered test definition."""

    id: str
    name: str = ""
    variants: List[Variant]
    target_user_percentage: int = 100
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool = True

    @model_validator(mode="after")
    def _check_definition(self) -> "ABTest":
        if len(self.variants) < 2:
            raise ValueError("A/B test must have at least 2 variants")
        names = [v.name for v in self.variants]
        if len(set(names)) != len(names):
            raise ValueError("Variant names must be unique within a test")
        if not 1 <= self.target_user_percentage <= 100:
            raise ValueError("target_user_percentage must be between 1 and 100")
        if self.start_date and self.end_date:
            # Naive dates are UTC; compare both as aware datetimes
            if to_datetime(self.end_date) <= to_datetime(self.start_date):
                raise ValueError("End date must be after start date")
        return self

    def is_running(self, now: datetime) -> bool:
        if not self.is_active:
            return False
        if self.start_date and now < to_datetime(self.start_date):
            return False
        if self.end_date and now > to_datetime(self.end_date):
            return False
        return True

    def variant_named(self, name: str) -> Optional[Variant]:
        for variant in self.variants:
            if variant.name == name:
                return variant
        return None


# =============================================================================
# Request / Response
# =============================================================================

class RecommendationRequest(BaseModel):
    user_id: str
    limit: Optional[int] = None
    mode: ScoringMode = ScoringMode.WEIGHTED
    health: Optional[HealthConstraint] = None
    ab_test_id: Optional[str] = None
    content_type: Optional[ContentType] = None
    exclude_item_ids: Set[str] = Field(default_factory=set)
    timeout_seconds: Optional[float] = None
    now: Optional[datetime] = None


class RecommendationResult(BaseModel):
    item: ContentItem
    composite_score: float
    component_scores: Dict[str, float] = Field(default_factory=dict)
    variant: Optional[str] = None


class RecommendationResponse(BaseModel):
    user_id: str
    season: str
    mode: ScoringMode
    results: List[RecommendationResult] = Field(default_factory=list)
    applied_variant: Optional[str] = None
    reason: ReasonCode = ReasonCode.OK
    diversity_score: float = 0.0
    diversity_flagged: bool = False
    request_id: Optional[str] = None
