"""
User, listing, transaction and review CRUD operations.
"""

from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cardnexus.models.db import CardDB, ListingDB, ReviewDB, TransactionDB, UserDB
from cardnexus.models.enums import ListingStatus, ListingType
from cardnexus.models.pagination import Page

# --- User Operations ---


async def get_user(session: AsyncSession, user_id: int) -> UserDB | None:
    return await session.get(UserDB, user_id)


async def get_user_by_username(session: AsyncSession, username: str) -> UserDB | None:
    result = await session.execute(select(UserDB).where(UserDB.username == username))
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> UserDB | None:
    result = await session.execute(select(UserDB).where(UserDB.email == email))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    username: str,
    email: str,
    password_hash: str | None = None,
    bio: str | None = None,
) -> UserDB:
    """
    Create a new user.

    Raises IntegrityError if username or email is taken.
    """
    user = UserDB(username=username, email=email, password_hash=password_hash, bio=bio)
    session.add(user)
    await session.flush()
    return user


async def get_or_create_user(
    session: AsyncSession, username: str, email: str, bio: str | None = None
) -> tuple[UserDB, bool]:
    """
    Get existing user by username or create a new one.

    Returns:
        Tuple of (user, created) where created is True if new.
    """
    user = await get_user_by_username(session, username)
    if user:
        return user, False

    user = await create_user(session, username, email, bio=bio)
    return user, True


async def username_taken(session: AsyncSession, username: str, exclude_user_id: int) -> bool:
    """True if another user already uses this username."""
    result = await session.execute(
        select(UserDB.id).where(UserDB.username == username, UserDB.id != exclude_user_id)
    )
    return result.first() is not None


async def update_user_profile(
    session: AsyncSession,
    user: UserDB,
    username: str,
    bio: str | None,
    profile_image_url: str | None,
) -> UserDB:
    user.username = username
    user.bio = bio
    user.profile_image_url = profile_image_url
    await session.flush()
    await session.refresh(user)
    return user


async def get_user_stats(session: AsyncSession, user_id: int) -> dict[str, Any]:
    """
    Aggregate profile figures for a user.

    Rating is the average of reviews received, rounded to one decimal.
    """
    ratings = (
        await session.execute(select(ReviewDB.rating).where(ReviewDB.reviewee_id == user_id))
    ).scalars().all()
    average = sum(ratings) / len(ratings) if ratings else 0.0

    total_listings = (
        await session.execute(
            select(func.count()).select_from(ListingDB).where(ListingDB.user_id == user_id)
        )
    ).scalar_one()
    active_listings = (
        await session.execute(
            select(func.count())
            .select_from(ListingDB)
            .where(
                ListingDB.user_id == user_id,
                ListingDB.status == ListingStatus.ACTIVE.value,
            )
        )
    ).scalar_one()
    transactions = (
        await session.execute(
            select(func.count())
            .select_from(TransactionDB)
            .where(or_(TransactionDB.buyer_id == user_id, TransactionDB.seller_id == user_id))
        )
    ).scalar_one()

    return {
        "rating": round(average, 1),
        "review_count": len(ratings),
        "total_listings": int(total_listings),
        "active_listings": int(active_listings),
        "completed_transactions": int(transactions),
    }


# --- Listing Operations ---


async def create_listing(
    session: AsyncSession,
    user_id: int,
    card_id: int,
    listing_type: ListingType,
    description: str,
    price: int | None = None,
    condition: str | None = None,
) -> ListingDB:
    listing = ListingDB(
        user_id=user_id,
        card_id=card_id,
        listing_type=listing_type.value,
        price=price,
        condition=condition,
        description=description,
        status=ListingStatus.ACTIVE.value,
    )
    session.add(listing)
    await session.flush()

    result = await session.execute(
        select(ListingDB)
        .where(ListingDB.id == listing.id)
        .options(selectinload(ListingDB.card), selectinload(ListingDB.user))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def search_listings(
    session: AsyncSession,
    listing_type: ListingType | None = None,
    card_id: int | None = None,
    user_id: int | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> Page[ListingDB]:
    """Active listings, newest first. search matches card name or description."""
    conditions: list[Any] = [ListingDB.status == ListingStatus.ACTIVE.value]
    if listing_type is not None:
        conditions.append(ListingDB.listing_type == listing_type.value)
    if card_id is not None:
        conditions.append(ListingDB.card_id == card_id)
    if user_id is not None:
        conditions.append(ListingDB.user_id == user_id)
    if search:
        conditions.append(
            or_(
                ListingDB.card.has(CardDB.name.ilike(f"%{search}%")),
                ListingDB.description.ilike(f"%{search}%"),
            )
        )

    result_page: Page[ListingDB] = Page(page=page, limit=limit)
    count_stmt = select(func.count()).select_from(ListingDB).where(*conditions)
    result_page.total_count = int((await session.execute(count_stmt)).scalar_one())

    result = await session.execute(
        select(ListingDB)
        .where(*conditions)
        .options(selectinload(ListingDB.card), selectinload(ListingDB.user))
        .order_by(ListingDB.created_at.desc(), ListingDB.id.desc())
        .offset(result_page.offset)
        .limit(limit)
    )
    result_page.items = list(result.scalars().all())
    return result_page


async def get_user_listings(session: AsyncSession, user_id: int) -> list[tuple[ListingDB, int]]:
    """All listings of a user (any status) with their transaction counts, newest first."""
    tx_count = (
        select(func.count(TransactionDB.id))
        .where(TransactionDB.listing_id == ListingDB.id)
        .correlate(ListingDB)
        .scalar_subquery()
    )
    result = await session.execute(
        select(ListingDB, tx_count)
        .where(ListingDB.user_id == user_id)
        .options(selectinload(ListingDB.card))
        .order_by(ListingDB.created_at.desc(), ListingDB.id.desc())
    )
    return [(listing, int(count)) for listing, count in result.all()]


# --- Transaction & Review Operations ---


async def create_transaction(
    session: AsyncSession, listing: ListingDB, buyer_id: int, price: int | None = None
) -> TransactionDB:
    """Open a transaction on a listing; the listing owner is the seller."""
    transaction = TransactionDB(
        listing_id=listing.id,
        buyer_id=buyer_id,
        seller_id=listing.user_id,
        price=listing.price if price is None else price,
    )
    session.add(transaction)
    await session.flush()
    return transaction


async def get_user_transactions(
    session: AsyncSession, user_id: int
) -> list[tuple[TransactionDB, str]]:
    """
    Purchases and sales of a user, merged.

    Returns (transaction, "PURCHASE" | "SALE") pairs, most recently completed
    first; transactions without a completion time sort by creation time.
    """
    result = await session.execute(
        select(TransactionDB)
        .where(or_(TransactionDB.buyer_id == user_id, TransactionDB.seller_id == user_id))
        .options(
            selectinload(TransactionDB.listing).selectinload(ListingDB.card),
            selectinload(TransactionDB.buyer),
            selectinload(TransactionDB.seller),
        )
    )
    rows = [
        (tx, "PURCHASE" if tx.buyer_id == user_id else "SALE") for tx in result.scalars().all()
    ]
    rows.sort(key=lambda row: row[0].completed_at or row[0].created_at, reverse=True)
    return rows


async def create_review(
    session: AsyncSession,
    transaction: TransactionDB,
    reviewer_id: int,
    rating: int,
    comment: str | None = None,
) -> ReviewDB:
    """Review the other party of a transaction and refresh their rating figures."""
    reviewee_id = (
        transaction.seller_id if reviewer_id == transaction.buyer_id else transaction.buyer_id
    )
    review = ReviewDB(
        transaction_id=transaction.id,
        reviewer_id=reviewer_id,
        reviewee_id=reviewee_id,
        rating=rating,
        comment=comment,
    )
    session.add(review)
    await session.flush()

    reviewee = await get_user(session, reviewee_id)
    if reviewee is not None:
        stats = await get_user_stats(session, reviewee_id)
        reviewee.rating = stats["rating"]
        reviewee.rating_count = stats["review_count"]
        await session.flush()
    return review


async def get_user_reviews(session: AsyncSession, user_id: int) -> list[ReviewDB]:
    """Reviews received by a user, newest first."""
    result = await session.execute(
        select(ReviewDB)
        .where(ReviewDB.reviewee_id == user_id)
        .options(
            selectinload(ReviewDB.reviewer),
            selectinload(ReviewDB.transaction)
            .selectinload(TransactionDB.listing)
            .selectinload(ListingDB.card),
        )
        .order_by(ReviewDB.created_at.desc(), ReviewDB.id.desc())
    )
    return list(result.scalars().all())
