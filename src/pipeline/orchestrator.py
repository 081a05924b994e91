"""Orchestrator: wires datastore, filter chain and scorer into ranked deals.

Data flow:
  1. Datastore search: raw listings for the query
  2. Filter chain: budget ceiling, distance, deal breakers, unrated sellers, dedup
  3. Scorer: DealScores + opening offer per listing, sorted by deal score
"""

import json
import logging

from src.core.config import DealSearchConfig, NegotiationConfig, Settings
from src.core.schemas import GlobalPreferences, ScoredListing, SearchCriteria
from src.pipeline.matcher import (
    BudgetCeilingFilter,
    DealBreakersFilter,
    DeduplicationFilter,
    DistanceFilter,
    Filter,
    UnratedSellerFilter,
    run_filter_chain,
)
from src.pipeline.scorer import score_listings
from src.platforms.base import MarketplaceDatastore

logger = logging.getLogger(__name__)


class DealSearchResult:
    """Summary of a single item search."""

    def __init__(
        self,
        query: str,
        raw_count: int,
        filtered_count: int,
        deals: list[ScoredListing],
        urgency: str | None = None,
    ) -> None:
        self.query = query
        self.urgency = urgency
        self.raw_count = raw_count
        self.filtered_count = filtered_count
        self.deals = deals

    @property
    def best(self) -> ScoredListing | None:
        return self.deals[0] if self.deals else None


def build_criteria(search: DealSearchConfig, preferences: GlobalPreferences) -> SearchCriteria:
    """Translate a configured search into datastore criteria."""
    return SearchCriteria(
        query=search.query,
        budget_min=search.budget_min,
        budget_max=search.budget_max,
        max_distance_km=preferences.max_distance_km,
        must_haves=search.must_haves,
        deal_breakers=search.deal_breakers,
    )


async def run_deal_search(
    search: DealSearchConfig,
    preferences: GlobalPreferences,
    datastore: MarketplaceDatastore,
    negotiation: NegotiationConfig | None = None,
) -> DealSearchResult:
    """Execute a single item search through the full pipeline."""
    criteria = build_criteria(search, preferences)

    logger.info("Searching '%s' on %s", search.query, datastore.marketplace_id)
    raw_listings = await datastore.search(criteria)
    logger.info("Raw listings: %d", len(raw_listings))

    filtered = run_filter_chain(raw_listings, _build_filters(criteria, preferences))
    logger.info("After filtering: %d", len(filtered))

    deals = score_listings(filtered, search, preferences, negotiation)

    if deals:
        logger.info(
            "Search '%s': best deal '%s' scored %d",
            search.query, deals[0].listing.title, deals[0].deal_score,
        )
    return DealSearchResult(
        query=search.query,
        raw_count=len(raw_listings),
        filtered_count=len(filtered),
        deals=deals,
        urgency=search.urgency,
    )


async def run_all_searches(
    settings: Settings,
    datastore: MarketplaceDatastore,
) -> list[DealSearchResult]:
    """Run all configured searches through the pipeline."""
    results: list[DealSearchResult] = []
    for search in settings.searches:
        result = await run_deal_search(
            search, settings.preferences, datastore, settings.negotiation,
        )
        results.append(result)
    return results


def export_results_json(results: list[DealSearchResult]) -> str:
    """Export ranked deals as a JSON string."""
    data = []
    for r in results:
        for rank, deal in enumerate(r.deals, start=1):
            listing = deal.listing
            data.append({
                "query": r.query,
                "urgency": r.urgency,
                "rank": rank,
                "id": listing.id,
                "title": listing.title,
                "price": listing.price,
                "marketplace": listing.marketplace,
                "location": listing.location,
                "distance_km": listing.distance_km,
                "posted_days_ago": listing.posted_days_ago,
                "seller_name": listing.seller_name,
                "seller_rating": listing.seller_rating,
                "condition": listing.condition,
                "opening_offer": deal.opening_offer,
                **deal.scores.model_dump(),
            })
    return json.dumps(data, indent=2)


def _build_filters(criteria: SearchCriteria, preferences: GlobalPreferences) -> list[Filter]:
    """Build the filter chain for one search (order matters)."""
    filters: list[Filter] = [
        BudgetCeilingFilter(criteria.budget_max),
        DistanceFilter(criteria.max_distance_km),
        DealBreakersFilter(criteria.deal_breakers),
        UnratedSellerFilter(preferences.avoid_unrated_sellers),
        DeduplicationFilter(),
    ]
    return filters
