"""Rule-based deal scoring for marketplace listings.

Four sub-scores feed one weighted composite:
  Fit      0-100  hard constraints, soft preferences, described condition
  Price    0-100  asking price against budget and target
  Risk     0-100  red flags and trust signals in the text, distance (higher = safer)
  Leverage 1-5    buyer negotiating power

DealScore = 0.4 * Fit + 0.3 * Price + 0.2 * Risk + 0.1 * (Leverage * 20)

All functions are pure. Phrase tables are plain data so they can be tested
and extended without touching the scoring logic.
"""

import logging
import math

from src.core.config import DealSearchConfig, NegotiationConfig
from src.core.schemas import (
    AttributeValue,
    DealScores,
    GlobalPreferences,
    HardConstraints,
    ListingAttributes,
    MarketplaceListing,
    ScoredListing,
    ScoreInputs,
    SoftPreferences,
)

logger = logging.getLogger(__name__)

# --- Fit -------------------------------------------------------------------

FIT_BASELINE = 50
FIT_VIOLATION_CAP = 40
FIT_CONSTRAINTS_MET_BONUS = 20
CONDITION_ADJUSTMENT = 10

POSITIVE_CONDITION_WORDS = ("excellent", "mint", "perfect", "new", "pristine", "like new")
NEGATIVE_CONDITION_WORDS = ("broken", "damaged", "cracked", "scratched", "worn", "issue")

# (listing attribute, SoftPreferences field, bonus)
SOFT_PREFERENCE_BONUSES: tuple[tuple[str, str, int], ...] = (
    ("brand", "preferred_brands", 7),
    ("color", "preferred_colors", 5),
    ("model", "preferred_models", 8),
)

# --- Price -----------------------------------------------------------------

NEUTRAL_PRICE_SCORE = 50
SEVERE_OVERPRICE_RATIO = 1.5
SEVERE_OVERPRICE_SCORE = 20
DEFAULT_TARGET_RATIO = 0.85
DEFAULT_MIN_RATIO = 0.5

# --- Risk ------------------------------------------------------------------

RISK_BASELINE = 70

# (phrase, penalty, penalty when the matching avoidance flag is set)
# The flag column is None for phrases whose penalty does not depend on a flag.
RED_FLAGS: tuple[tuple[str, int, tuple[str, int] | None], ...] = (
    ("no returns", 10, None),
    ("cash only", 5, ("avoid_cash_only", 20)),
    ("meet at home", 10, None),
    ("venmo", 5, ("avoid_off_platform", 15)),
    ("zelle", 5, ("avoid_off_platform", 15)),
    ("wire transfer", 25, None),
    ("urgent", 5, None),
    ("need gone", 0, None),  # seller urgency; counted as leverage instead
    ("firm", 5, None),
)

TRUST_SIGNALS: tuple[tuple[str, int], ...] = (
    ("receipt", 10),
    ("warranty", 10),
    ("original box", 5),
    ("never used", 5),
)

OUT_OF_RANGE_PENALTY = 15
NEAR_RANGE_LIMIT_PENALTY = 5
NEAR_RANGE_LIMIT_RATIO = 0.8

# --- Leverage --------------------------------------------------------------

LEVERAGE_BASELINE = 3.0
MIN_LEVERAGE = 1
MAX_LEVERAGE = 5

# (phrases, adjustment); each row applies at most once
LEVERAGE_PHRASES: tuple[tuple[tuple[str, ...], float], ...] = (
    (("need gone", "must sell"), 1.0),
    (("obo", "or best offer"), 0.5),
    (("firm", "no lowball"), -1.0),
)

ALTERNATIVES_FOR_LEVERAGE = 3

# --- Composite -------------------------------------------------------------

FIT_WEIGHT = 0.4
PRICE_WEIGHT = 0.3
RISK_WEIGHT = 0.2
LEVERAGE_WEIGHT = 0.1
LEVERAGE_SCALE = 20


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity."""
    return int(math.floor(value + 0.5))


def opening_offer(price: float, ratio: float = 0.8) -> int:
    """Suggested first offer: the asking price scaled by ratio, rounded half-up."""
    return round_half_up(price * ratio)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _is_number(value: object) -> bool:
    # bool is an int subclass but never counts as a number here
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _same_value(a: AttributeValue, b: AttributeValue) -> bool:
    """Equality that refuses to compare across kinds (True is not 1, "1" is not 1)."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) and _is_number(b):
        return a == b
    return type(a) is type(b) and a == b


def _constraint_violated(
    key: str, required: AttributeValue, attributes: ListingAttributes
) -> bool:
    if key.endswith("_min"):
        actual = attributes.get(key[: -len("_min")])
        return _is_number(actual) and _is_number(required) and actual < required  # type: ignore[operator]
    if key.endswith("_max"):
        actual = attributes.get(key[: -len("_max")])
        return _is_number(actual) and _is_number(required) and actual > required  # type: ignore[operator]
    # Attributes the listing does not define never count as a violation.
    if key not in attributes:
        return False
    return not _same_value(attributes[key], required)


def first_violated_constraint(
    hard_constraints: HardConstraints, attributes: ListingAttributes
) -> str | None:
    """Return the first hard-constraint key the listing violates, or None."""
    for key, required in hard_constraints.items():
        if _constraint_violated(key, required, attributes):
            return key
    return None


def compute_fit_score(
    hard_constraints: HardConstraints,
    soft_preferences: SoftPreferences,
    listing_attributes: ListingAttributes,
    listing_description: str | None,
) -> int:
    """Score how well a listing matches the buyer's requirements and tastes.

    Any violated hard constraint caps the score at 40, bonuses included.
    Soft preference hits add a fixed bonus per category, and condition words
    in the description move the score by 10 either way when they are one-sided.
    """
    score = FIT_BASELINE
    ceiling = 100

    violated = first_violated_constraint(hard_constraints, listing_attributes)
    if violated is not None:
        logger.debug("Hard constraint '%s' violated", violated)
        score = min(score, FIT_VIOLATION_CAP)
        ceiling = FIT_VIOLATION_CAP
    else:
        score += FIT_CONSTRAINTS_MET_BONUS

    for attribute, field, bonus in SOFT_PREFERENCE_BONUSES:
        preferred: list[str] = getattr(soft_preferences, field)
        actual = listing_attributes.get(attribute)
        if preferred and isinstance(actual, str) and actual:
            actual_lower = actual.lower()
            if any(p.lower() == actual_lower for p in preferred):
                score += bonus

    if listing_description:
        desc_lower = listing_description.lower()
        has_positive = any(w in desc_lower for w in POSITIVE_CONDITION_WORDS)
        has_negative = any(w in desc_lower for w in NEGATIVE_CONDITION_WORDS)
        if has_positive and not has_negative:
            score += CONDITION_ADJUSTMENT
        elif has_negative and not has_positive:
            score -= CONDITION_ADJUSTMENT

    return round_half_up(_clamp(score, 0, ceiling))


def compute_price_score(
    asking_price: float,
    budget_min: float | None,
    budget_max: float | None,
    target_price: float | None,
) -> int:
    """Score the asking price against the buyer's budget (higher = better deal)."""
    if not budget_max:
        return NEUTRAL_PRICE_SCORE

    if asking_price > budget_max * SEVERE_OVERPRICE_RATIO:
        return SEVERE_OVERPRICE_SCORE

    if asking_price > budget_max:
        over_by = (asking_price - budget_max) / budget_max
        return round_half_up(_clamp(50 - over_by * 50, 25, 50))

    target = target_price if target_price is not None else budget_max * DEFAULT_TARGET_RATIO
    budget_floor = budget_min if budget_min is not None else budget_max * DEFAULT_MIN_RATIO

    if asking_price <= target:
        savings = (target - asking_price) / ((target - budget_floor) or 1)
        return round_half_up(_clamp(80 + savings * 20, 80, 100))

    above_target = (asking_price - target) / ((budget_max - target) or 1)
    return round_half_up(_clamp(80 - above_target * 30, 50, 80))


def compute_risk_score(
    listing_description: str | None,
    distance_km: float | None,
    max_distance_km: float,
    avoid_cash_only: bool,
    avoid_off_platform: bool,
) -> int:
    """Score transactional risk from listing text and distance (higher = safer)."""
    score = RISK_BASELINE
    flags = {"avoid_cash_only": avoid_cash_only, "avoid_off_platform": avoid_off_platform}

    if listing_description:
        desc_lower = listing_description.lower()
        for phrase, penalty, flagged in RED_FLAGS:
            if phrase in desc_lower:
                if flagged is not None and flags[flagged[0]]:
                    penalty = flagged[1]
                score -= penalty
        for phrase, bonus in TRUST_SIGNALS:
            if phrase in desc_lower:
                score += bonus

    if distance_km is not None and max_distance_km > 0:
        if distance_km > max_distance_km:
            score -= OUT_OF_RANGE_PENALTY
        elif distance_km > max_distance_km * NEAR_RANGE_LIMIT_RATIO:
            score -= NEAR_RANGE_LIMIT_PENALTY

    return round_half_up(_clamp(score, 0, 100))


def compute_leverage_score(
    posted_days_ago: float | None,
    asking_price: float,
    budget_max: float | None,
    listing_description: str | None,
    alternative_deals_count: int,
) -> int:
    """Estimate buyer negotiating power on a 1-5 scale."""
    score = LEVERAGE_BASELINE

    if posted_days_ago is not None:
        if posted_days_ago > 14:
            score += 1.5
        elif posted_days_ago > 7:
            score += 0.5
        elif posted_days_ago < 2:
            score -= 0.5

    if budget_max and asking_price > budget_max:
        score += 0.5

    if listing_description:
        desc_lower = listing_description.lower()
        for phrases, adjustment in LEVERAGE_PHRASES:
            if any(p in desc_lower for p in phrases):
                score += adjustment

    if alternative_deals_count >= ALTERNATIVES_FOR_LEVERAGE:
        score += 0.5

    return int(_clamp(round_half_up(score), MIN_LEVERAGE, MAX_LEVERAGE))


def compute_deal_score(
    fit_score: float,
    price_score: float,
    risk_score: float,
    leverage_score: float,
) -> int:
    """Combine the sub-scores into the 0-100 composite used for ranking."""
    weighted = (
        FIT_WEIGHT * fit_score
        + PRICE_WEIGHT * price_score
        + RISK_WEIGHT * risk_score
        + LEVERAGE_WEIGHT * (leverage_score * LEVERAGE_SCALE)
    )
    return int(_clamp(round_half_up(weighted), 0, 100))


def compute_all_scores(
    hard_constraints: HardConstraints,
    soft_preferences: SoftPreferences,
    listing_attributes: ListingAttributes,
    listing_description: str | None,
    asking_price: float,
    budget_min: float | None,
    budget_max: float | None,
    target_price: float | None,
    distance_km: float | None,
    max_distance_km: float,
    avoid_cash_only: bool,
    avoid_off_platform: bool,
    posted_days_ago: float | None,
    alternative_deals_count: int,
) -> DealScores:
    """Compute the four sub-scores and the composite for one listing."""
    fit = compute_fit_score(
        hard_constraints, soft_preferences, listing_attributes, listing_description,
    )
    price = compute_price_score(asking_price, budget_min, budget_max, target_price)
    risk = compute_risk_score(
        listing_description, distance_km, max_distance_km, avoid_cash_only, avoid_off_platform,
    )
    leverage = compute_leverage_score(
        posted_days_ago, asking_price, budget_max, listing_description, alternative_deals_count,
    )
    return DealScores(
        fit_score=fit,
        price_score=price,
        risk_score=risk,
        leverage_score=leverage,
        deal_score=compute_deal_score(fit, price, risk, leverage),
    )


def score_inputs(inputs: ScoreInputs) -> DealScores:
    """Score a validated ScoreInputs record."""
    return compute_all_scores(
        inputs.hard_constraints,
        inputs.soft_preferences,
        inputs.listing_attributes,
        inputs.listing_description,
        inputs.asking_price,
        inputs.budget_min,
        inputs.budget_max,
        inputs.target_price,
        inputs.distance_km,
        inputs.max_distance_km,
        inputs.avoid_cash_only,
        inputs.avoid_off_platform,
        inputs.posted_days_ago,
        inputs.alternative_deals_count,
    )


def _target_price(search: DealSearchConfig, negotiation: NegotiationConfig) -> float | None:
    if search.target_price is not None:
        return search.target_price
    if search.budget_max:
        return search.budget_max * negotiation.target_price_ratio
    return None


def score_listing(
    listing: MarketplaceListing,
    search: DealSearchConfig,
    preferences: GlobalPreferences,
    *,
    alternative_deals_count: int = 0,
    negotiation: NegotiationConfig | None = None,
) -> ScoredListing:
    """Score one marketplace listing for a buyer's search.

    Args:
        listing: The listing to score.
        search: The buyer's budget, constraints and preferences for this item.
        preferences: Buyer-level distance limit and avoidance flags.
        alternative_deals_count: Other deals the buyer is weighing.
        negotiation: Pricing policy; defaults to NegotiationConfig().

    Returns:
        ScoredListing wrapping the original listing with its scores.
    """
    policy = negotiation or NegotiationConfig()
    scores = compute_all_scores(
        search.hard_constraints,
        search.soft_preferences,
        listing.attributes,
        listing.description or None,
        listing.price,
        search.budget_min,
        search.budget_max,
        _target_price(search, policy),
        listing.distance_km,
        preferences.max_distance_km,
        preferences.avoid_cash_only,
        preferences.avoid_off_platform,
        listing.posted_days_ago,
        alternative_deals_count,
    )
    logger.debug(
        "Scored '%s' (%s): deal=%d fit=%d price=%d risk=%d leverage=%d",
        listing.title, listing.id, scores.deal_score, scores.fit_score,
        scores.price_score, scores.risk_score, scores.leverage_score,
    )
    return ScoredListing(
        listing=listing,
        scores=scores,
        opening_offer=opening_offer(listing.price, policy.opening_offer_ratio),
    )


def score_listings(
    listings: list[MarketplaceListing],
    search: DealSearchConfig,
    preferences: GlobalPreferences,
    negotiation: NegotiationConfig | None = None,
) -> list[ScoredListing]:
    """Score a batch of listings, returning ScoredListing list sorted by deal score desc.

    Every other listing in the batch counts as an alternative deal.
    """
    alternatives = max(0, len(listings) - 1)
    scored = [
        score_listing(
            listing,
            search,
            preferences,
            alternative_deals_count=alternatives,
            negotiation=negotiation,
        )
        for listing in listings
    ]
    scored.sort(key=lambda s: s.deal_score, reverse=True)
    return scored
