"""Negotiation message suggestions for a chosen deal."""

import logging
from typing import Literal

from pydantic import BaseModel, ConfigDict

from src.core.config import NegotiationConfig
from src.core.schemas import GlobalPreferences, MarketplaceListing
from src.pipeline.scorer import opening_offer, round_half_up

logger = logging.getLogger(__name__)

# Seller replies containing any of these are treated as a refusal or counter.
PUSHBACK_PHRASES = ("firm", "no", "lowest")


class NegotiationMessage(BaseModel):
    """One message in a buyer/seller thread."""

    model_config = ConfigDict(frozen=True)

    role: Literal["buyer", "seller"]
    content: str


class MessageSuggestion(BaseModel):
    """A ready-to-send message the buyer can pick."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    message: str
    style: Literal["friendly", "direct", "firm"]


def generate_suggestions(
    listing: MarketplaceListing,
    preferences: GlobalPreferences,
    history: list[NegotiationMessage] | None = None,
    config: NegotiationConfig | None = None,
) -> list[MessageSuggestion]:
    """Suggest the buyer's next message given the thread so far.

    An empty history yields opening messages shaped by tone and aggressiveness.
    Otherwise the last seller message decides between a counter and a close.
    A history with no seller message yields nothing.
    """
    policy = config or NegotiationConfig()
    messages = history or []

    if not messages:
        return _opening_suggestions(listing, preferences, policy)

    seller_messages = [m for m in messages if m.role == "seller"]
    if not seller_messages:
        return []

    seller_text = seller_messages[-1].content.lower()
    if any(p in seller_text for p in PUSHBACK_PHRASES):
        counter = round_half_up(listing.price * policy.counter_offer_ratio)
        logger.debug("Seller pushed back on '%s'; countering at %d", listing.title, counter)
        return [
            MessageSuggestion(
                id="friendly-counter",
                label="Stay friendly",
                message=(
                    "I understand, thanks for letting me know. "
                    f"Would you consider ${counter} if I can pick up today?"
                ),
                style="friendly",
            ),
            MessageSuggestion(
                id="walk-signal",
                label="Signal walking away",
                message=(
                    "Ah that's a bit above my budget. "
                    "I'll keep looking but let me know if anything changes!"
                ),
                style="direct",
            ),
        ]

    return [
        MessageSuggestion(
            id="close-deal",
            label="Close the deal",
            message="Great! When works for you to meet up? I'm flexible this week.",
            style="friendly",
        ),
        MessageSuggestion(
            id="verify-condition",
            label="Verify before meeting",
            message=(
                "Sounds good. Can you send a few more photos? Just want to make sure "
                "everything looks right before I head over."
            ),
            style="direct",
        ),
    ]


def _opening_suggestions(
    listing: MarketplaceListing,
    preferences: GlobalPreferences,
    policy: NegotiationConfig,
) -> list[MessageSuggestion]:
    offer = opening_offer(listing.price, policy.opening_offer_ratio)
    suggestions: list[MessageSuggestion] = []

    if preferences.aggressiveness == "conservative" or preferences.tone == "polite_formal":
        suggestions.append(MessageSuggestion(
            id="friendly-open",
            label="Warm opener",
            message=(
                f"Hi! I'm interested in your {listing.title.lower()}. Is it still available? "
                "I'd love to learn more about its condition."
            ),
            style="friendly",
        ))

    suggestions.append(MessageSuggestion(
        id="direct-open",
        label="Get to the point",
        message=f"Hey, is this still available? Would you take ${offer}?",
        style="direct",
    ))

    stale = (
        listing.posted_days_ago is not None
        and listing.posted_days_ago > policy.stale_listing_days
    )
    if stale or preferences.aggressiveness == "aggressive":
        suggestions.append(MessageSuggestion(
            id="firm-open",
            label="Leverage listing age",
            message=(
                "Hi, I noticed this has been listed for a while. "
                f"I can pick up today for ${offer} cash. Let me know."
            ),
            style="firm",
        ))

    return suggestions
