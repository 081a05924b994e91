"""Abstract base class for marketplace datastores."""

from abc import ABC, abstractmethod

from src.core.schemas import MarketplaceListing, SearchCriteria


class MarketplaceDatastore(ABC):
    """Base class that every marketplace datastore must implement."""

    @property
    @abstractmethod
    def marketplace_id(self) -> str:
        """Unique identifier for this datastore (e.g. 'catalog')."""

    @abstractmethod
    async def search(self, criteria: SearchCriteria) -> list[MarketplaceListing]:
        """Run a search and return raw (unscored) listings."""

    @abstractmethod
    async def get_by_id(self, listing_id: str) -> MarketplaceListing | None:
        """Return a single listing, or None if it is unknown."""

    @abstractmethod
    async def get_all(self) -> list[MarketplaceListing]:
        """Return every listing the datastore knows about."""
