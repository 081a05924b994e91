"""Configuration models and YAML loader for the deal search engine."""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.schemas import GlobalPreferences, HardConstraints, SoftPreferences


class CatalogConfig(BaseModel):
    """Location of the listing catalog used by the catalog datastore."""

    path: str = "config/listings.yaml"


class DealSearchConfig(BaseModel):
    """A single item the buyer is shopping for."""

    query: str
    budget_min: float | None = Field(default=None, ge=0.0)
    budget_max: float | None = Field(default=None, ge=0.0)
    target_price: float | None = Field(default=None, ge=0.0)
    urgency: Literal["low", "medium", "high"] | None = None
    must_haves: list[str] = Field(default_factory=list)
    deal_breakers: list[str] = Field(default_factory=list)
    hard_constraints: HardConstraints = Field(default_factory=dict)
    soft_preferences: SoftPreferences = Field(default_factory=SoftPreferences)

    @field_validator("query")
    @classmethod
    def query_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "query must not be empty"
            raise ValueError(msg)
        return v.strip()

    @model_validator(mode="after")
    def budget_bounds_ordered(self) -> "DealSearchConfig":
        if (
            self.budget_min is not None
            and self.budget_max is not None
            and self.budget_min > self.budget_max
        ):
            msg = f"budget_min ({self.budget_min}) exceeds budget_max ({self.budget_max})"
            raise ValueError(msg)
        return self


class NegotiationConfig(BaseModel):
    """Pricing policy for negotiation suggestions."""

    opening_offer_ratio: float = Field(default=0.8, gt=0.0, le=1.0)
    counter_offer_ratio: float = Field(default=0.9, gt=0.0, le=1.0)
    target_price_ratio: float = Field(default=0.85, gt=0.0, le=1.0)
    stale_listing_days: int = Field(default=7, ge=0)


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    preferences: GlobalPreferences = Field(default_factory=GlobalPreferences)
    negotiation: NegotiationConfig = Field(default_factory=NegotiationConfig)
    searches: list[DealSearchConfig] = Field(default_factory=list, validate_default=True)

    @field_validator("searches")
    @classmethod
    def at_least_one_search(cls, v: list[DealSearchConfig]) -> list[DealSearchConfig]:
        if not v:
            msg = "at least one search must be configured"
            raise ValueError(msg)
        return v

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
