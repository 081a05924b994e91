"""Filter chain for marketplace listings.

Filter order:
  1. BudgetCeilingFilter: drops prices above 1.3x budget_max
  2. DistanceFilter: drops listings beyond the buyer's max distance
  3. DealBreakersFilter: title or description, case-insensitive
  4. UnratedSellerFilter: only when the buyer avoids unrated sellers
  5. DeduplicationFilter: in-memory within run, by listing id
"""

import logging
from collections.abc import Callable

from src.core.schemas import MarketplaceListing

logger = logging.getLogger(__name__)

# A filter is a callable that takes listings and returns a subset.
Filter = Callable[[list[MarketplaceListing]], list[MarketplaceListing]]

BUDGET_CEILING_RATIO = 1.3


class BudgetCeilingFilter:
    """Remove listings priced above BUDGET_CEILING_RATIO x budget_max.

    Without a budget_max the filter is a no-op.
    """

    def __init__(self, budget_max: float | None, ratio: float = BUDGET_CEILING_RATIO) -> None:
        self._ceiling = budget_max * ratio if budget_max else None

    def __call__(self, listings: list[MarketplaceListing]) -> list[MarketplaceListing]:
        if self._ceiling is None:
            return listings
        result = [x for x in listings if x.price <= self._ceiling]
        removed = len(listings) - len(result)
        if removed:
            logger.debug("BudgetCeilingFilter: removed %d listings", removed)
        return result


class DistanceFilter:
    """Remove listings farther away than max_distance_km.

    Listings with unknown distance pass; a falsy limit disables the filter.
    """

    def __init__(self, max_distance_km: float | None) -> None:
        self._max = max_distance_km or None

    def __call__(self, listings: list[MarketplaceListing]) -> list[MarketplaceListing]:
        if self._max is None:
            return listings
        result = [
            x for x in listings
            if x.distance_km is None or x.distance_km <= self._max
        ]
        removed = len(listings) - len(result)
        if removed:
            logger.debug("DistanceFilter: removed %d listings", removed)
        return result


class DealBreakersFilter:
    """Remove listings whose title or description contains a deal-breaker phrase."""

    def __init__(self, deal_breakers: list[str]) -> None:
        self._phrases = [p.lower().strip() for p in deal_breakers if p.strip()]

    def __call__(self, listings: list[MarketplaceListing]) -> list[MarketplaceListing]:
        if not self._phrases:
            return listings
        result = [x for x in listings if not self._matches(x)]
        removed = len(listings) - len(result)
        if removed:
            logger.debug("DealBreakersFilter: removed %d listings", removed)
        return result

    def _matches(self, listing: MarketplaceListing) -> bool:
        text = f"{listing.title} {listing.description}".lower()
        return any(p in text for p in self._phrases)


class UnratedSellerFilter:
    """Remove listings from sellers with no rating when enabled."""

    def __init__(self, enabled: bool) -> None:
        self._enabled = enabled

    def __call__(self, listings: list[MarketplaceListing]) -> list[MarketplaceListing]:
        if not self._enabled:
            return listings
        result = [x for x in listings if x.seller_rating is not None]
        removed = len(listings) - len(result)
        if removed:
            logger.debug("UnratedSellerFilter: removed %d listings", removed)
        return result


class DeduplicationFilter:
    """Remove duplicates by listing id within a single run.

    Stateful: tracks seen IDs across calls within the same filter instance.
    """

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def __call__(self, listings: list[MarketplaceListing]) -> list[MarketplaceListing]:
        result: list[MarketplaceListing] = []
        for x in listings:
            if x.id not in self._seen:
                self._seen.add(x.id)
                result.append(x)
        deduped = len(listings) - len(result)
        if deduped:
            logger.debug("DeduplicationFilter: removed %d duplicates", deduped)
        return result


def run_filter_chain(
    listings: list[MarketplaceListing],
    filters: list[Filter],
) -> list[MarketplaceListing]:
    """Apply filters in order, returning the surviving listings."""
    result = listings
    for f in filters:
        result = f(result)
    return result
