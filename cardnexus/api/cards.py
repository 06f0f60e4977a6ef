"""
Card catalog endpoints.

Filtered card search with latest prices and listing counts, and the card
detail view with price statistics.
"""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from cardnexus.api.deps import SessionDep
from cardnexus.api.schemas import ListingView, Paginated, listing_view
from cardnexus.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PRICE_HISTORY_WINDOW
from cardnexus.db.operations import (
    CardFilters,
    get_active_listing_counts,
    get_active_listings_for_card,
    get_card,
    get_latest_prices,
    get_recent_prices,
    search_cards,
)
from cardnexus.models.db import CardDB
from cardnexus.models.failure import ApiResponse, NotFoundError
from cardnexus.services.pricing import compute_price_stats
from cardnexus.services.text import decode_entities

router = APIRouter(prefix="/cards", tags=["cards"])

# Text and JSON fields that may carry HTML entities from the source data
_DECODED_FIELDS = (
    "effect_text",
    "effect_text_ja",
    "flavor_text",
    "abilities",
    "attacks",
    "rules",
)


class CardView(BaseModel):
    """Card as returned by the catalog."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    api_id: str | None = None
    name: str
    name_ja: str | None = None
    game_title: str
    image_url: str | None = None
    rarity: str | None = None
    effect_text: str | None = None
    effect_text_ja: str | None = None
    flavor_text: str | None = None
    card_number: str | None = None
    expansion: str | None = None
    expansion_ja: str | None = None
    regulation_mark: str | None = None
    card_type: str | None = None
    card_type_ja: str | None = None
    hp: int | None = None
    types: str | None = None
    types_ja: str | None = None
    evolve_from: str | None = None
    evolve_from_ja: str | None = None
    artist: str | None = None
    subtypes: str | None = None
    subtypes_ja: str | None = None
    release_date: str | None = None
    set_id: str | None = None
    abilities: Any = Field(default_factory=list)
    attacks: Any = Field(default_factory=list)
    weaknesses: Any = Field(default_factory=list)
    resistances: Any = Field(default_factory=list)
    retreat_cost: Any = Field(default_factory=list)
    legalities: Any = Field(default_factory=dict)
    rules: Any = Field(default_factory=list)
    created_at: datetime


class CardListItem(CardView):
    latest_price: int | None = None
    active_listings: int = 0


class CardList(Paginated):
    cards: list[CardListItem]


class PriceStatsView(BaseModel):
    latest: int | None = None
    average: int | None = None
    min: int | None = None
    max: int | None = None


class PricePoint(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    price: int
    source: str | None = None
    condition: str | None = None
    recorded_at: datetime


class CardDetail(CardView):
    price_stats: PriceStatsView
    price_history: list[PricePoint]
    active_listings: list[ListingView]


def card_values(card: CardDB) -> dict[str, Any]:
    """CardView fields of a row, with HTML entities decoded."""
    values = CardView.model_validate(card).model_dump()
    for field_name in _DECODED_FIELDS:
        values[field_name] = decode_entities(values[field_name])
    return values


@router.get("", response_model=ApiResponse[CardList])
async def list_cards(
    session: SessionDep,
    game_title: str | None = None,
    name: str | None = None,
    expansion: str | None = None,
    rarity: str | None = None,
    regulation_mark: str | None = None,
    card_type: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
) -> ApiResponse[CardList]:
    """Search cards, newest first."""
    filters = CardFilters(
        game_title=game_title,
        name=name,
        expansion=expansion,
        rarity=rarity,
        regulation_mark=regulation_mark,
        card_type=card_type,
    )
    result = await search_cards(session, filters, page=page, limit=limit)

    card_ids = [card.id for card in result.items]
    latest_prices = await get_latest_prices(session, card_ids)
    listing_counts = await get_active_listing_counts(session, card_ids)

    items = [
        CardListItem(
            **card_values(card),
            latest_price=latest_prices.get(card.id),
            active_listings=listing_counts.get(card.id, 0),
        )
        for card in result.items
    ]
    return ApiResponse.ok(CardList(cards=items, pagination=result.meta()))


@router.get("/{card_id}", response_model=ApiResponse[CardDetail])
async def get_card_detail(card_id: int, session: SessionDep) -> ApiResponse[CardDetail]:
    """Card detail with price statistics, price history and active listings."""
    card = await get_card(session, card_id)
    if card is None:
        raise NotFoundError("Card", card_id)

    prices = await get_recent_prices(session, card_id, PRICE_HISTORY_WINDOW)
    stats = compute_price_stats(prices)
    listings = await get_active_listings_for_card(session, card_id)

    detail = CardDetail(
        **card_values(card),
        price_stats=PriceStatsView(
            latest=stats.latest, average=stats.average, min=stats.min, max=stats.max
        ),
        price_history=[PricePoint.model_validate(p) for p in prices],
        active_listings=[listing_view(listing, include_card=False) for listing in listings],
    )
    return ApiResponse.ok(detail)
