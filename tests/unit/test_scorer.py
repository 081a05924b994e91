"""Tests for the rule-based deal scoring engine."""

import pytest
from pydantic import ValidationError

from src.core.config import DealSearchConfig, NegotiationConfig
from src.core.schemas import (
    GlobalPreferences,
    MarketplaceListing,
    ScoreInputs,
    SoftPreferences,
)
from src.pipeline.scorer import (
    RED_FLAGS,
    TRUST_SIGNALS,
    compute_all_scores,
    compute_deal_score,
    compute_fit_score,
    compute_leverage_score,
    compute_price_score,
    compute_risk_score,
    first_violated_constraint,
    opening_offer,
    round_half_up,
    score_inputs,
    score_listing,
    score_listings,
)


def _prefs(**kwargs: list[str]) -> SoftPreferences:
    return SoftPreferences(**kwargs)


def _fit(
    hard: dict | None = None,
    attributes: dict | None = None,
    description: str | None = None,
    prefs: SoftPreferences | None = None,
) -> int:
    return compute_fit_score(hard or {}, prefs or _prefs(), attributes or {}, description)


def _risk(
    description: str | None = None,
    *,
    distance_km: float | None = None,
    max_distance_km: float = 50.0,
    avoid_cash_only: bool = False,
    avoid_off_platform: bool = False,
) -> int:
    return compute_risk_score(
        description, distance_km, max_distance_km, avoid_cash_only, avoid_off_platform,
    )


def _leverage(
    *,
    posted_days_ago: float | None = None,
    asking_price: float = 100.0,
    budget_max: float | None = None,
    description: str | None = None,
    alternatives: int = 0,
) -> int:
    return compute_leverage_score(
        posted_days_ago, asking_price, budget_max, description, alternatives,
    )


def _listing(
    *,
    listing_id: str = "1",
    title: str = "iPhone 13 Pro 256GB",
    price: float = 450.0,
    description: str = "Excellent condition, battery health 89%",
    distance_km: float | None = 3.2,
    posted_days_ago: int | None = 3,
    attributes: dict | None = None,
) -> MarketplaceListing:
    return MarketplaceListing(
        id=listing_id,
        title=title,
        price=price,
        description=description,
        distance_km=distance_km,
        posted_days_ago=posted_days_ago,
        attributes=attributes if attributes is not None else {"storage": "256GB"},
    )


# ---------------------------------------------------------------------------
# Rounding
# ---------------------------------------------------------------------------


class TestRoundHalfUp:
    def test_halves_round_up(self) -> None:
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(0.5) == 1

    def test_below_half_rounds_down(self) -> None:
        assert round_half_up(2.49) == 2

    def test_integers_unchanged(self) -> None:
        assert round_half_up(73.0) == 73


class TestOpeningOffer:
    def test_eighty_percent(self) -> None:
        assert opening_offer(450) == 360

    def test_rounds_to_int(self) -> None:
        assert opening_offer(343) == 274

    def test_rounds_half_up(self) -> None:
        assert opening_offer(5, ratio=0.5) == 3

    def test_custom_ratio(self) -> None:
        assert opening_offer(200, ratio=0.75) == 150

    def test_shared_with_negotiation(self) -> None:
        from src.pipeline import negotiation

        assert negotiation.opening_offer is opening_offer


# ---------------------------------------------------------------------------
# Fit score
# ---------------------------------------------------------------------------


class TestFitScore:
    def test_no_constraints_no_description(self) -> None:
        # baseline 50 + 20 for satisfied constraints
        assert _fit() == 70

    def test_exact_match_violation_caps_at_40(self) -> None:
        assert _fit({"storage": "128GB"}, {"storage": "256GB"}) == 40

    def test_exact_match_satisfied(self) -> None:
        assert _fit({"storage": "256GB"}, {"storage": "256GB"}) == 70

    def test_min_violated(self) -> None:
        assert _fit({"batteryHealth_min": 90}, {"batteryHealth": 89}) == 40

    def test_min_satisfied_on_equal(self) -> None:
        assert _fit({"batteryHealth_min": 89}, {"batteryHealth": 89}) == 70

    def test_max_violated(self) -> None:
        assert _fit({"batteryCycles_max": 40}, {"batteryCycles": 42}) == 40

    def test_max_satisfied(self) -> None:
        assert _fit({"batteryCycles_max": 50}, {"batteryCycles": 42}) == 70

    def test_min_against_string_attribute_ignored(self) -> None:
        assert _fit({"storage_min": 128}, {"storage": "256GB"}) == 70

    def test_bool_is_not_a_number(self) -> None:
        assert _fit({"hasAppleCare": 1}, {"hasAppleCare": True}) == 40

    def test_bool_exact_match(self) -> None:
        assert _fit({"hasAppleCare": True}, {"hasAppleCare": True}) == 70

    def test_string_is_not_a_number(self) -> None:
        assert _fit({"ram": "16"}, {"ram": 16}) == 40

    def test_int_equals_float(self) -> None:
        assert _fit({"batteryHealth": 89.0}, {"batteryHealth": 89}) == 70

    def test_violation_caps_bonuses(self) -> None:
        prefs = _prefs(preferred_brands=["Apple"], preferred_colors=["Graphite"])
        score = _fit(
            {"storage": "128GB"},
            {"storage": "256GB", "brand": "Apple", "color": "Graphite"},
            "Excellent condition",
            prefs,
        )
        assert score == 40

    def test_violation_with_negative_description(self) -> None:
        assert _fit({"storage": "128GB"}, {"storage": "256GB"}, "broken screen") == 30

    def test_brand_bonus_case_insensitive(self) -> None:
        assert _fit(attributes={"brand": "APPLE"}, prefs=_prefs(preferred_brands=["apple"])) == 77

    def test_color_bonus(self) -> None:
        assert _fit(attributes={"color": "Blue"}, prefs=_prefs(preferred_colors=["blue"])) == 75

    def test_model_bonus(self) -> None:
        assert _fit(attributes={"model": "13 Pro"}, prefs=_prefs(preferred_models=["13 pro"])) == 78

    def test_one_bonus_per_category(self) -> None:
        prefs = _prefs(preferred_colors=["graphite", "GRAPHITE"])
        assert _fit(attributes={"color": "Graphite"}, prefs=prefs) == 75

    def test_preference_without_attribute_no_bonus(self) -> None:
        assert _fit(prefs=_prefs(preferred_brands=["Apple"])) == 70

    def test_empty_attribute_never_matches(self) -> None:
        prefs = _prefs(preferred_brands=[""], preferred_colors=[""], preferred_models=[""])
        assert _fit(attributes={"brand": "", "color": "", "model": ""}, prefs=prefs) == 70

    def test_all_bonuses_and_positive_description_hits_100(self) -> None:
        prefs = _prefs(
            preferred_brands=["Apple"], preferred_colors=["Blue"], preferred_models=["13"],
        )
        attributes = {"brand": "Apple", "color": "Blue", "model": "13"}
        assert _fit(attributes=attributes, description="Mint", prefs=prefs) == 100

    def test_positive_description(self) -> None:
        assert _fit(description="Pristine, like new") == 80

    def test_negative_description(self) -> None:
        assert _fit(description="Screen is cracked") == 60

    def test_mixed_description_no_adjustment(self) -> None:
        assert _fit(description="Excellent battery but scratched back") == 70

    def test_neutral_description_no_adjustment(self) -> None:
        assert _fit(description="Works fine") == 70

    def test_missing_attribute_never_violates(self) -> None:
        # Permissive absence: the listing has no "color" attribute at all.
        assert _fit({"color_min": 5}, {"storage": "256GB"}) == 70
        assert _fit({"color": "Blue"}, {"storage": "256GB"}) == 70


class TestFirstViolatedConstraint:
    def test_returns_first_in_order(self) -> None:
        hard = {"storage": "128GB", "batteryHealth_min": 95}
        attributes = {"storage": "256GB", "batteryHealth": 89}
        assert first_violated_constraint(hard, attributes) == "storage"

    def test_none_when_satisfied(self) -> None:
        assert first_violated_constraint({"storage": "256GB"}, {"storage": "256GB"}) is None


# ---------------------------------------------------------------------------
# Price score
# ---------------------------------------------------------------------------


class TestPriceScore:
    def test_no_budget_is_neutral(self) -> None:
        assert compute_price_score(450, None, None, None) == 50

    def test_zero_budget_is_neutral(self) -> None:
        assert compute_price_score(450, None, 0, None) == 50

    def test_severe_overprice_is_20(self) -> None:
        assert compute_price_score(751, None, 500, None) == 20
        assert compute_price_score(10_000, None, 500, 425) == 20

    def test_at_one_and_a_half_budget_not_severe(self) -> None:
        assert compute_price_score(750, None, 500, None) == 25

    def test_over_budget_interpolates(self) -> None:
        assert compute_price_score(600, None, 500, None) == 40

    def test_between_target_and_max(self) -> None:
        assert compute_price_score(450, None, 500, 425) == 70

    def test_at_budget_max(self) -> None:
        assert compute_price_score(500, None, 500, 425) == 50

    def test_at_target(self) -> None:
        assert compute_price_score(425, None, 500, 425) == 80

    def test_below_target_rewards_savings(self) -> None:
        # default min = 250, savings = 125 / 175
        assert compute_price_score(300, None, 500, 425) == 94

    def test_at_budget_floor_scores_100(self) -> None:
        assert compute_price_score(250, None, 500, 425) == 100
        assert compute_price_score(50, None, 500, 425) == 100

    def test_default_target_is_85_percent(self) -> None:
        # target 425 derived from budget_max
        assert compute_price_score(425, None, 500, None) == 80
        assert compute_price_score(450, None, 500, None) == 70

    def test_budget_min_used_as_floor(self) -> None:
        # savings = 25 / (425 - 400)
        assert compute_price_score(400, 400, 500, 425) == 100

    def test_zero_width_range_does_not_divide_by_zero(self) -> None:
        assert compute_price_score(420, 425, 500, 425) == 100
        assert compute_price_score(500, None, 500, 500) == 80

    def test_monotonic_in_price(self) -> None:
        scores = [compute_price_score(p, None, 500, 425) for p in range(0, 1000, 5)]
        assert all(a >= b for a, b in zip(scores, scores[1:]))


# ---------------------------------------------------------------------------
# Risk score
# ---------------------------------------------------------------------------


class TestRiskScore:
    def test_baseline(self) -> None:
        assert _risk() == 70
        assert _risk("Nice phone") == 70

    def test_cash_only_penalty_depends_on_flag(self) -> None:
        assert _risk("Cash only") == 65
        assert _risk("Cash only", avoid_cash_only=True) == 50

    def test_off_platform_payments(self) -> None:
        assert _risk("Venmo or Zelle") == 60
        assert _risk("Venmo or Zelle", avoid_off_platform=True) == 40

    def test_wire_transfer(self) -> None:
        assert _risk("wire transfer please") == 45

    def test_need_gone_is_neutral(self) -> None:
        assert _risk("NEED GONE today") == 70

    def test_penalties_are_cumulative(self) -> None:
        both = _risk("Cash only. Wire transfer accepted.", avoid_cash_only=True)
        neither = _risk("Great condition", avoid_cash_only=True)
        assert both == 25
        assert both < neither

    def test_trust_signals(self) -> None:
        assert _risk("Have the receipt and warranty") == 90
        assert _risk("Never used, original box") == 80

    def test_clamped_to_100(self) -> None:
        assert _risk("receipt, warranty, original box, never used") == 100

    def test_clamped_to_0(self) -> None:
        text = (
            "no returns, cash only, meet at home, venmo, zelle, "
            "wire transfer, urgent, firm"
        )
        assert _risk(text, avoid_cash_only=True, avoid_off_platform=True) == 0

    def test_beyond_max_distance(self) -> None:
        assert _risk(distance_km=51) == 55

    def test_near_max_distance(self) -> None:
        assert _risk(distance_km=45) == 65

    def test_at_80_percent_no_penalty(self) -> None:
        assert _risk(distance_km=40) == 70

    def test_unknown_distance_no_penalty(self) -> None:
        assert _risk(distance_km=None) == 70

    def test_zero_max_distance_disables_penalty(self) -> None:
        assert _risk(distance_km=500, max_distance_km=0) == 70

    def test_tables_are_data(self) -> None:
        phrases = [row[0] for row in RED_FLAGS]
        assert "need gone" in phrases
        assert dict(TRUST_SIGNALS)["receipt"] == 10


# ---------------------------------------------------------------------------
# Leverage score
# ---------------------------------------------------------------------------


class TestLeverageScore:
    def test_baseline(self) -> None:
        assert _leverage() == 3

    def test_old_listing(self) -> None:
        assert _leverage(posted_days_ago=15) == 5

    def test_two_week_listing(self) -> None:
        assert _leverage(posted_days_ago=14) == 4
        assert _leverage(posted_days_ago=8) == 4

    def test_one_week_listing_no_change(self) -> None:
        assert _leverage(posted_days_ago=7) == 3
        assert _leverage(posted_days_ago=2) == 3

    def test_fresh_listing_rounds_half_up(self) -> None:
        # 3 - 0.5 = 2.5 rounds up to 3
        assert _leverage(posted_days_ago=1) == 3

    def test_fresh_and_firm(self) -> None:
        assert _leverage(posted_days_ago=0, description="Price is firm") == 2

    def test_over_budget(self) -> None:
        assert _leverage(asking_price=600, budget_max=500) == 4

    def test_within_budget_no_change(self) -> None:
        assert _leverage(asking_price=500, budget_max=500) == 3

    def test_seller_urgency(self) -> None:
        assert _leverage(description="Need gone this week") == 4
        assert _leverage(description="Must sell, OBO") == 5

    def test_or_best_offer(self) -> None:
        assert _leverage(description="$300 or best offer") == 4

    def test_firm_language(self) -> None:
        assert _leverage(description="Firm. No lowball offers") == 2

    def test_alternatives(self) -> None:
        assert _leverage(alternatives=3) == 4
        assert _leverage(alternatives=2) == 3

    def test_extreme_inputs_stay_in_range(self) -> None:
        high = _leverage(
            posted_days_ago=10_000,
            asking_price=10_000,
            budget_max=1,
            description="need gone, must sell, obo",
            alternatives=1_000_000,
        )
        low = _leverage(posted_days_ago=0, description="firm, no lowball")
        assert high == 5
        assert 1 <= low <= 5


# ---------------------------------------------------------------------------
# Composite
# ---------------------------------------------------------------------------


class TestDealScore:
    def test_all_max(self) -> None:
        assert compute_deal_score(100, 100, 100, 5) == 100

    def test_all_min(self) -> None:
        assert compute_deal_score(0, 0, 0, 1) == 2

    def test_weighting(self) -> None:
        assert compute_deal_score(80, 70, 70, 3) == 73

    def test_fit_dominates(self) -> None:
        assert compute_deal_score(100, 0, 0, 1) > compute_deal_score(0, 100, 0, 1)


# ---------------------------------------------------------------------------
# compute_all_scores / score_inputs
# ---------------------------------------------------------------------------


def _scenario_kwargs() -> dict:
    return {
        "hard_constraints": {},
        "soft_preferences": SoftPreferences(),
        "listing_attributes": {"storage": "256GB"},
        "listing_description": "Excellent condition, battery health 89%",
        "asking_price": 450,
        "budget_min": None,
        "budget_max": 500,
        "target_price": 425,
        "distance_km": 3.2,
        "max_distance_km": 50,
        "avoid_cash_only": False,
        "avoid_off_platform": False,
        "posted_days_ago": 2,
        "alternative_deals_count": 0,
    }


class TestComputeAllScores:
    def test_iphone_scenario(self) -> None:
        scores = compute_all_scores(**_scenario_kwargs())
        assert scores.fit_score == 80
        assert scores.price_score == 70
        assert scores.risk_score == 70
        assert scores.leverage_score == 3
        assert scores.deal_score == 73

    def test_deterministic(self) -> None:
        assert compute_all_scores(**_scenario_kwargs()) == compute_all_scores(**_scenario_kwargs())

    def test_hard_constraint_violation(self) -> None:
        kwargs = _scenario_kwargs()
        kwargs["hard_constraints"] = {"storage": "512GB"}
        scores = compute_all_scores(**kwargs)
        assert scores.fit_score == 40
        # 0.4*40 + 0.3*70 + 0.2*70 + 0.1*60
        assert scores.deal_score == 57

    def test_score_inputs_matches_positional_call(self) -> None:
        inputs = ScoreInputs(**_scenario_kwargs())
        assert score_inputs(inputs) == compute_all_scores(**_scenario_kwargs())

    def test_score_inputs_rejects_non_finite(self) -> None:
        kwargs = _scenario_kwargs()
        kwargs["asking_price"] = float("nan")
        with pytest.raises(ValidationError):
            ScoreInputs(**kwargs)


# ---------------------------------------------------------------------------
# Listing helpers
# ---------------------------------------------------------------------------


class TestScoreListing:
    def test_target_defaults_to_85_percent_of_budget(self) -> None:
        search = DealSearchConfig(query="iphone", budget_max=500)
        result = score_listing(_listing(), search, GlobalPreferences())
        assert result.scores.price_score == 70

    def test_explicit_target_price(self) -> None:
        search = DealSearchConfig(query="iphone", budget_max=500, target_price=450)
        result = score_listing(_listing(), search, GlobalPreferences())
        assert result.scores.price_score == 80

    def test_custom_target_ratio(self) -> None:
        search = DealSearchConfig(query="iphone", budget_max=500)
        policy = NegotiationConfig(target_price_ratio=0.9)
        result = score_listing(_listing(), search, GlobalPreferences(), negotiation=policy)
        assert result.scores.price_score == 80

    def test_opening_offer(self) -> None:
        search = DealSearchConfig(query="iphone", budget_max=500)
        result = score_listing(_listing(price=343), search, GlobalPreferences())
        assert result.opening_offer == 274

    def test_preferences_flow_through(self) -> None:
        search = DealSearchConfig(query="iphone")
        listing = _listing(description="Cash only")
        lenient = score_listing(listing, search, GlobalPreferences())
        strict = score_listing(listing, search, GlobalPreferences(avoid_cash_only=True))
        assert lenient.scores.risk_score == 65
        assert strict.scores.risk_score == 50

    def test_empty_description_treated_as_missing(self) -> None:
        search = DealSearchConfig(query="iphone")
        result = score_listing(_listing(description=""), search, GlobalPreferences())
        assert result.scores.fit_score == 70


class TestScoreListings:
    def test_sorted_by_deal_score_desc(self) -> None:
        search = DealSearchConfig(query="iphone", budget_max=500)
        listings = [
            _listing(listing_id="a", price=700, description="broken, cash only"),
            _listing(listing_id="b", price=300, description="Mint, with receipt"),
            _listing(listing_id="c", price=450),
        ]
        result = score_listings(listings, search, GlobalPreferences())
        assert [s.listing.id for s in result] == ["b", "c", "a"]
        scores = [s.deal_score for s in result]
        assert scores == sorted(scores, reverse=True)

    def test_batch_counts_alternatives(self) -> None:
        search = DealSearchConfig(query="iphone", budget_max=500)
        alone = score_listings([_listing()], search, GlobalPreferences())
        batch = score_listings(
            [_listing(listing_id=str(i)) for i in range(4)], search, GlobalPreferences(),
        )
        assert alone[0].scores.leverage_score == 3
        assert all(s.scores.leverage_score == 4 for s in batch)

    def test_empty_batch(self) -> None:
        search = DealSearchConfig(query="iphone")
        assert score_listings([], search, GlobalPreferences()) == []
