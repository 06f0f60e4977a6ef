"""
User profile endpoints.

Profiles with rating and activity figures, profile editing, and a user's
listings, transactions and received reviews.
"""

import re
from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from cardnexus.api.deps import CurrentUser, OptionalUser, SessionDep
from cardnexus.api.schemas import CardSummary, UserSummary
from cardnexus.db.marketplace import (
    get_user,
    get_user_listings,
    get_user_reviews,
    get_user_stats,
    get_user_transactions,
    update_user_profile,
    username_taken,
)
from cardnexus.models.db import UserDB
from cardnexus.models.failure import (
    ApiResponse,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)

router = APIRouter(prefix="/users", tags=["users"])

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
BIO_MAX_LENGTH = 500


class UserStats(BaseModel):
    total_listings: int
    active_listings: int
    completed_transactions: int


class UserProfile(BaseModel):
    id: int
    username: str
    profile_image_url: str | None = None
    bio: str | None = None
    rating: float
    review_count: int
    member_since: datetime
    is_current_user: bool
    stats: UserStats


class UpdateProfileRequest(BaseModel):
    username: str
    bio: str | None = None
    profile_image_url: str | None = None


class OwnListing(BaseModel):
    id: int
    listing_type: str
    price: int | None = None
    condition: str | None = None
    description: str
    status: str
    created_at: datetime
    card: CardSummary
    transaction_count: int


class TransactionView(BaseModel):
    id: int
    transaction_type: str = Field(..., description="PURCHASE or SALE, from this user's side")
    status: str
    price: int | None = None
    created_at: datetime
    completed_at: datetime | None = None
    card: CardSummary
    partner: UserSummary


class ReviewView(BaseModel):
    id: int
    rating: int
    comment: str | None = None
    reviewer: UserSummary
    transaction_type: str
    card_name: str
    created_at: datetime


async def _require_user(session: AsyncSession, user_id: int) -> UserDB:
    user = await get_user(session, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def _profile(session: AsyncSession, user: UserDB, viewer: UserDB | None) -> UserProfile:
    stats = await get_user_stats(session, user.id)
    return UserProfile(
        id=user.id,
        username=user.username,
        profile_image_url=user.profile_image_url,
        bio=user.bio,
        rating=stats["rating"],
        review_count=stats["review_count"],
        member_since=user.created_at,
        is_current_user=viewer is not None and viewer.id == user.id,
        stats=UserStats(
            total_listings=stats["total_listings"],
            active_listings=stats["active_listings"],
            completed_transactions=stats["completed_transactions"],
        ),
    )


def validate_profile(request: UpdateProfileRequest) -> tuple[str, str | None, str | None]:
    """
    Check and clean a profile update.

    Returns:
        Tuple of (username, bio, profile_image_url), stripped, blanks as None.
    """
    username = request.username.strip()
    if len(username) < USERNAME_MIN_LENGTH:
        raise ValidationFailedError(
            f"Username must be at least {USERNAME_MIN_LENGTH} characters"
        )
    if len(username) > USERNAME_MAX_LENGTH:
        raise ValidationFailedError(f"Username must be at most {USERNAME_MAX_LENGTH} characters")
    if not USERNAME_PATTERN.match(username):
        raise ValidationFailedError(
            "Username may only contain letters, digits, hyphens and underscores"
        )
    if request.bio and len(request.bio) > BIO_MAX_LENGTH:
        raise ValidationFailedError(f"Bio must be at most {BIO_MAX_LENGTH} characters")

    bio = (request.bio or "").strip() or None
    image = (request.profile_image_url or "").strip() or None
    return username, bio, image


@router.get("/{user_id}", response_model=ApiResponse[UserProfile])
async def get_profile(
    user_id: int, session: SessionDep, viewer: OptionalUser
) -> ApiResponse[UserProfile]:
    """Public profile of a user."""
    user = await _require_user(session, user_id)
    return ApiResponse.ok(await _profile(session, user, viewer))


@router.put("/{user_id}", response_model=ApiResponse[UserProfile])
async def put_profile(
    user_id: int,
    request: UpdateProfileRequest,
    current: CurrentUser,
    session: SessionDep,
) -> ApiResponse[UserProfile]:
    """Update the current user's own profile."""
    if current.id != user_id:
        raise ForbiddenError("You can only edit your own profile")

    username, bio, image = validate_profile(request)
    if await username_taken(session, username, exclude_user_id=current.id):
        raise ConflictError("Username is already taken")

    user = await update_user_profile(session, current, username, bio, image)
    return ApiResponse.ok(await _profile(session, user, current))


@router.get("/{user_id}/listings", response_model=ApiResponse[list[OwnListing]])
async def list_user_listings(user_id: int, session: SessionDep) -> ApiResponse[list[OwnListing]]:
    """Every listing of a user, any status, newest first."""
    await _require_user(session, user_id)
    rows = await get_user_listings(session, user_id)
    return ApiResponse.ok(
        [
            OwnListing(
                id=listing.id,
                listing_type=listing.listing_type,
                price=listing.price,
                condition=listing.condition,
                description=listing.description,
                status=listing.status,
                created_at=listing.created_at,
                card=CardSummary.model_validate(listing.card),
                transaction_count=count,
            )
            for listing, count in rows
        ]
    )


@router.get("/{user_id}/transactions", response_model=ApiResponse[list[TransactionView]])
async def list_user_transactions(
    user_id: int, session: SessionDep
) -> ApiResponse[list[TransactionView]]:
    """Purchases and sales of a user, most recently completed first."""
    await _require_user(session, user_id)
    rows = await get_user_transactions(session, user_id)
    return ApiResponse.ok(
        [
            TransactionView(
                id=tx.id,
                transaction_type=kind,
                status=tx.status,
                price=tx.price,
                created_at=tx.created_at,
                completed_at=tx.completed_at,
                card=CardSummary.model_validate(tx.listing.card),
                partner=UserSummary.model_validate(tx.seller if kind == "PURCHASE" else tx.buyer),
            )
            for tx, kind in rows
        ]
    )


@router.get("/{user_id}/reviews", response_model=ApiResponse[list[ReviewView]])
async def list_user_reviews(user_id: int, session: SessionDep) -> ApiResponse[list[ReviewView]]:
    """Reviews received by a user, newest first."""
    await _require_user(session, user_id)
    reviews = await get_user_reviews(session, user_id)
    return ApiResponse.ok(
        [
            ReviewView(
                id=review.id,
                rating=review.rating,
                comment=review.comment,
                reviewer=UserSummary.model_validate(review.reviewer),
                transaction_type=(
                    "PURCHASE" if review.transaction.buyer_id == user_id else "SALE"
                ),
                card_name=review.transaction.listing.card.name,
                created_at=review.created_at,
            )
            for review in reviews
        ]
    )
