"""Catalog YAML parser: converts raw category entries into MarketplaceListing objects.

Expected layout::

    categories:
      iphone:
        keywords: [iphone, apple phone]
        listings:
          - title: iPhone 13 Pro 256GB
            price: 450
            ...
      default:
        listings: [...]

Listings without an ``id`` get ``<category>-<index>``. Listing entries that fail
validation are skipped, never fatal; a malformed category is an error.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from src.core.schemas import MarketplaceListing

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "default"


class CatalogCategory(BaseModel):
    """Listings for one product category plus the query words that select it."""

    name: str
    keywords: list[str] = Field(default_factory=list)
    listings: list[MarketplaceListing] = Field(default_factory=list)

    def matches(self, query: str) -> bool:
        query_lower = query.lower()
        return any(kw.lower() in query_lower for kw in self.keywords if kw.strip())


class Catalog(BaseModel):
    """All categories loaded from a catalog file, in file order."""

    categories: list[CatalogCategory] = Field(default_factory=list)

    def detect_category(self, query: str) -> CatalogCategory | None:
        """Return the first category whose keywords occur in the query, else the default."""
        for category in self.categories:
            if category.name != DEFAULT_CATEGORY and category.matches(query):
                return category
        return self.get(DEFAULT_CATEGORY)

    def get(self, name: str) -> CatalogCategory | None:
        for category in self.categories:
            if category.name == name:
                return category
        return None

    def all_listings(self) -> list[MarketplaceListing]:
        return [listing for c in self.categories for listing in c.listings]


def parse_listing(raw: dict[str, Any], category: str, index: int) -> MarketplaceListing:
    """Validate one raw listing entry, filling in an id when it has none."""
    data = dict(raw)
    data.setdefault("id", f"{category}-{index}")
    data["id"] = str(data["id"])
    return MarketplaceListing.model_validate(data)


def parse_catalog(raw: dict[str, Any]) -> Catalog:
    """Build a Catalog from the loaded YAML mapping."""
    categories_raw = raw.get("categories") or {}
    if not isinstance(categories_raw, dict):
        msg = "catalog 'categories' must be a mapping of category name to entries"
        raise ValueError(msg)

    categories: list[CatalogCategory] = []
    for name, entry in categories_raw.items():
        entry = entry or {}
        if not isinstance(entry, dict):
            msg = f"catalog category '{name}' must be a mapping with keywords and listings"
            raise ValueError(msg)
        listings: list[MarketplaceListing] = []
        for index, raw_listing in enumerate(entry.get("listings") or [], start=1):
            if not isinstance(raw_listing, dict):
                logger.debug("Listing #%d in '%s' is not a mapping, skipping", index, name)
                continue
            try:
                listings.append(parse_listing(raw_listing, str(name), index))
            except (ValidationError, TypeError):
                logger.debug("Invalid listing #%d in '%s', skipping", index, name, exc_info=True)
        categories.append(CatalogCategory(
            name=str(name),
            keywords=list(entry.get("keywords") or []),
            listings=listings,
        ))
        logger.debug("Loaded %d listings for category '%s'", len(listings), name)

    return Catalog(categories=categories)


def load_catalog(path: str | Path) -> Catalog:
    """Load a catalog from a YAML file."""
    path = Path(path)
    if not path.exists():
        msg = f"Catalog file not found: {path}"
        raise FileNotFoundError(msg)
    raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
    return parse_catalog(raw)
