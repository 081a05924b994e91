"""Core data models for the deal scoring engine."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Listing attributes and hard constraints are open-ended; values keep their
# runtime type so comparisons can check kind before value.
AttributeValue = str | int | float | bool
HardConstraints = dict[str, AttributeValue]
ListingAttributes = dict[str, AttributeValue]

Aggressiveness = Literal["conservative", "balanced", "aggressive"]
Tone = Literal["polite_formal", "casual_friendly", "direct_concise"]
Marketplace = Literal["facebook", "craigslist", "offerup", "other"]
Condition = Literal["new", "like_new", "good", "fair", "poor"]


class ImportanceWeights(BaseModel):
    """Relative importance the buyer gives each factor.

    Carried with the preferences but not consumed by the combinator.
    """

    model_config = ConfigDict(frozen=True)

    price: float = Field(default=0.5, ge=0.0, le=1.0)
    condition: float = Field(default=0.3, ge=0.0, le=1.0)
    distance: float = Field(default=0.2, ge=0.0, le=1.0)
    urgency: float = Field(default=0.0, ge=0.0, le=1.0)


class SoftPreferences(BaseModel):
    """Buyer tastes; matched case-insensitively against listing attributes."""

    model_config = ConfigDict(frozen=True)

    preferred_brands: list[str] = Field(default_factory=list)
    preferred_models: list[str] = Field(default_factory=list)
    preferred_colors: list[str] = Field(default_factory=list)
    importance: ImportanceWeights = Field(default_factory=ImportanceWeights)


class GlobalPreferences(BaseModel):
    """Buyer-level settings shared by every search."""

    model_config = ConfigDict(frozen=True)

    aggressiveness: Aggressiveness = "balanced"
    max_distance_km: float = Field(default=50.0, ge=0.0)
    tone: Tone = "casual_friendly"
    avoid_cash_only: bool = False
    avoid_unrated_sellers: bool = False
    avoid_off_platform: bool = False


class MarketplaceListing(BaseModel):
    """A listing returned by a marketplace datastore.

    Frozen; scores are attached via the ScoredListing wrapper, not mutated.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    price: float = Field(ge=0.0, allow_inf_nan=False)
    description: str = ""
    image_url: str = ""
    marketplace: Marketplace = "other"
    location: str = ""
    distance_km: float | None = Field(default=None, allow_inf_nan=False)
    posted_days_ago: int | None = None
    seller_name: str = ""
    seller_rating: float | None = None
    seller_joined_months_ago: int = 0
    condition: Condition = "good"
    attributes: ListingAttributes = Field(default_factory=dict)


class SearchCriteria(BaseModel):
    """Query and filters handed to a marketplace datastore."""

    query: str
    budget_min: float | None = None
    budget_max: float | None = None
    max_distance_km: float | None = None
    must_haves: list[str] = Field(default_factory=list)
    deal_breakers: list[str] = Field(default_factory=list)


class ScoreInputs(BaseModel):
    """Everything the engine needs to score one listing.

    Non-finite numbers are rejected here so the scoring math never sees them.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    hard_constraints: HardConstraints = Field(default_factory=dict)
    soft_preferences: SoftPreferences = Field(default_factory=SoftPreferences)
    listing_attributes: ListingAttributes = Field(default_factory=dict)
    listing_description: str | None = None
    asking_price: float
    budget_min: float | None = None
    budget_max: float | None = None
    target_price: float | None = None
    distance_km: float | None = None
    max_distance_km: float = 50.0
    avoid_cash_only: bool = False
    avoid_off_platform: bool = False
    posted_days_ago: float | None = None
    alternative_deals_count: int = Field(default=0, ge=0)


class DealScores(BaseModel):
    """The four sub-scores and their weighted composite."""

    model_config = ConfigDict(frozen=True)

    fit_score: int = Field(ge=0, le=100)
    price_score: int = Field(ge=0, le=100)
    risk_score: int = Field(ge=0, le=100)
    leverage_score: int = Field(ge=1, le=5)
    deal_score: int = Field(ge=0, le=100)


class ScoredListing(BaseModel):
    """Wrapper that pairs a frozen MarketplaceListing with its scores."""

    model_config = ConfigDict(frozen=True)

    listing: MarketplaceListing
    scores: DealScores
    opening_offer: int = Field(ge=0)

    @property
    def deal_score(self) -> int:
        return self.scores.deal_score
