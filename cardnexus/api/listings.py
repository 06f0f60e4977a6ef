"""
Marketplace listing endpoints.

Listings are SELL, BUY or TRADE offers on a card. Only ACTIVE listings are
browsable.
"""

import math
from typing import Annotated

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from cardnexus.api.deps import CurrentUser, SessionDep
from cardnexus.api.schemas import ListingView, Paginated, listing_view
from cardnexus.config import DEFAULT_PAGE_SIZE, MAX_LISTING_PAGE_SIZE
from cardnexus.db.marketplace import create_listing, search_listings
from cardnexus.db.operations import get_card
from cardnexus.models.enums import CONDITIONED_LISTING_TYPES, PRICED_LISTING_TYPES, ListingType
from cardnexus.models.failure import ApiResponse, NotFoundError, ValidationFailedError

router = APIRouter(prefix="/listings", tags=["listings"])


class CreateListingRequest(BaseModel):
    """Request model for a new listing."""

    card_id: int
    listing_type: ListingType = Field(..., description="SELL, BUY or TRADE")
    price: float | None = Field(default=None, description="Required for SELL and BUY")
    condition: str | None = Field(default=None, description="Required for SELL and TRADE")
    description: str = ""


class ListingList(Paginated):
    listings: list[ListingView]


def validate_listing(request: CreateListingRequest) -> int | None:
    """
    Check type-specific requirements.

    Returns:
        The price floored to an integer, or None for listings without one.
    """
    price: int | None = None
    if request.listing_type in PRICED_LISTING_TYPES:
        if request.price is None or request.price <= 0:
            raise ValidationFailedError("A valid price is required for sell and buy listings")
        price = math.floor(request.price)

    if request.listing_type in CONDITIONED_LISTING_TYPES and not (request.condition or "").strip():
        raise ValidationFailedError("Condition is required for sell and trade listings")

    if not request.description.strip():
        raise ValidationFailedError("Description is required")
    return price


@router.post(
    "",
    response_model=ApiResponse[ListingView],
    status_code=status.HTTP_201_CREATED,
)
async def post_listing(
    request: CreateListingRequest,
    user: CurrentUser,
    session: SessionDep,
) -> ApiResponse[ListingView]:
    """Create a listing for the current user."""
    price = validate_listing(request)

    if await get_card(session, request.card_id) is None:
        raise NotFoundError("Card", request.card_id)

    listing = await create_listing(
        session,
        user_id=user.id,
        card_id=request.card_id,
        listing_type=request.listing_type,
        description=request.description.strip(),
        price=price,
        condition=(request.condition or "").strip() or None,
    )
    return ApiResponse.ok(listing_view(listing))


@router.get("", response_model=ApiResponse[ListingList])
async def list_listings(
    session: SessionDep,
    listing_type: Annotated[ListingType | None, Query(alias="type")] = None,
    card_id: int | None = None,
    user_id: int | None = None,
    search: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1)] = DEFAULT_PAGE_SIZE,
) -> ApiResponse[ListingList]:
    """Active listings, newest first."""
    result = await search_listings(
        session,
        listing_type=listing_type,
        card_id=card_id,
        user_id=user_id,
        search=search,
        page=page,
        limit=min(limit, MAX_LISTING_PAGE_SIZE),
    )
    return ApiResponse.ok(
        ListingList(
            listings=[listing_view(listing) for listing in result.items],
            pagination=result.meta(),
        )
    )
