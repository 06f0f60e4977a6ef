"""
Response models shared by several routers.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from cardnexus.models.db import ListingDB
from cardnexus.models.pagination import PaginationMeta


class UserSummary(BaseModel):
    """Public view of a user embedded in other resources."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    profile_image_url: str | None = None
    rating: float = 0.0
    rating_count: int = 0


class CardSummary(BaseModel):
    """Compact card view embedded in listings, decks and posts."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    name_ja: str | None = None
    game_title: str
    image_url: str | None = None
    rarity: str | None = None
    card_number: str | None = None
    expansion: str | None = None


class ListingView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    listing_type: str
    price: int | None = None
    condition: str | None = None
    description: str
    status: str
    created_at: datetime
    user: UserSummary
    card: CardSummary | None = None


class Paginated(BaseModel):
    """Base for list payloads: items plus a pagination block."""

    pagination: PaginationMeta


def listing_view(listing: ListingDB, include_card: bool = True) -> ListingView:
    """Build a ListingView; the card relationship is only read when requested."""
    return ListingView(
        id=listing.id,
        listing_type=listing.listing_type,
        price=listing.price,
        condition=listing.condition,
        description=listing.description,
        status=listing.status,
        created_at=listing.created_at,
        user=UserSummary.model_validate(listing.user),
        card=CardSummary.model_validate(listing.card) if include_card else None,
    )
