"""Catalog datastore: serves marketplace listings from a local YAML catalog."""

import logging
from pathlib import Path

from src.core.schemas import MarketplaceListing, SearchCriteria
from src.platforms.base import MarketplaceDatastore
from src.platforms.catalog.parser import Catalog, load_catalog

logger = logging.getLogger(__name__)

# Listings priced nearest this share of budget_max come first.
PREFERRED_BUDGET_SHARE = 0.8


class CatalogDatastore(MarketplaceDatastore):
    """Deterministic datastore over a pre-loaded Catalog.

    A query selects one category by keyword; listings are returned unfiltered
    so the filter chain stays the single place where criteria apply.
    """

    def __init__(self, catalog: Catalog) -> None:
        self._catalog = catalog
        self._by_id = {listing.id: listing for listing in catalog.all_listings()}

    @classmethod
    def from_yaml(cls, path: str | Path) -> "CatalogDatastore":
        return cls(load_catalog(path))

    @property
    def marketplace_id(self) -> str:
        return "catalog"

    async def search(self, criteria: SearchCriteria) -> list[MarketplaceListing]:
        """Return the listings of the category matching the query."""
        category = self._catalog.detect_category(criteria.query)
        if category is None:
            logger.info("No catalog category matches '%s'", criteria.query)
            return []

        logger.info(
            "Query '%s' matched category '%s' (%d listings)",
            criteria.query, category.name, len(category.listings),
        )
        budget_max = criteria.budget_max
        return sorted(category.listings, key=lambda listing: _relevance(listing, budget_max))

    async def get_by_id(self, listing_id: str) -> MarketplaceListing | None:
        return self._by_id.get(listing_id)

    async def get_all(self) -> list[MarketplaceListing]:
        return self._catalog.all_listings()


def _relevance(listing: MarketplaceListing, budget_max: float | None) -> float:
    """Sort key: distance from the preferred share of budget, or raw price."""
    if budget_max:
        return abs(listing.price - budget_max * PREFERRED_BUDGET_SHARE)
    return listing.price
