"""
Catalog CRUD operations.

Provides async functions for reading and writing cards, sets and price
observations. Marketplace and community operations live in
cardnexus.db.marketplace and cardnexus.db.community.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cardnexus.models.card import CanonicalCard
from cardnexus.models.db import CardDB, CardSetDB, ListingDB, PriceHistoryDB
from cardnexus.models.enums import ListingStatus
from cardnexus.models.pagination import Page

# Identity columns never rewritten by an update from an import record
_IDENTITY_FIELDS = frozenset({"api_id"})


# --- Card Operations ---


async def get_card(session: AsyncSession, card_id: int) -> CardDB | None:
    """Get a card by surrogate id."""
    return await session.get(CardDB, card_id)


async def get_card_by_api_id(session: AsyncSession, api_id: str) -> CardDB | None:
    """Get a card by its external api id."""
    result = await session.execute(select(CardDB).where(CardDB.api_id == api_id))
    return result.scalar_one_or_none()


async def find_card_by_natural_key(
    session: AsyncSession,
    card_number: str,
    expansion: str,
    game_title: str | None = None,
) -> CardDB | None:
    """
    Find a card by (card_number, expansion[, game_title]).

    The key is not a hard constraint. When several rows match, the oldest
    (lowest id) is returned.
    """
    stmt = select(CardDB).where(
        CardDB.card_number == card_number,
        CardDB.expansion == expansion,
    )
    if game_title is not None:
        stmt = stmt.where(CardDB.game_title == game_title)

    result = await session.execute(stmt.order_by(CardDB.id).limit(1))
    return result.scalars().first()


async def create_card(session: AsyncSession, card: CanonicalCard) -> CardDB:
    """
    Insert a new card from a canonical record.

    Raises IntegrityError if the api_id is already taken.
    """
    db_card = CardDB(**card.column_values())
    session.add(db_card)
    await session.flush()
    return db_card


async def update_card(session: AsyncSession, db_card: CardDB, card: CanonicalCard) -> CardDB:
    """
    Rewrite every mutable field of an existing card from a canonical record.

    Surrogate id and created_at are left alone. api_id is only filled in
    when the row has none and no other row already holds it.
    """
    for column, value in card.column_values(exclude=_IDENTITY_FIELDS).items():
        setattr(db_card, column, value)

    if db_card.api_id is None and card.api_id:
        holder = await get_card_by_api_id(session, card.api_id)
        if holder is None:
            db_card.api_id = card.api_id

    await session.flush()
    return db_card


async def count_cards(
    session: AsyncSession,
    game_title: str | None = None,
    regulation_mark: str | None = None,
) -> int:
    """Count cards, optionally by game title and regulation mark."""
    stmt = select(func.count()).select_from(CardDB)
    if game_title is not None:
        stmt = stmt.where(CardDB.game_title == game_title)
    if regulation_mark is not None:
        stmt = stmt.where(CardDB.regulation_mark == regulation_mark)
    return int((await session.execute(stmt)).scalar_one())


@dataclass
class CardFilters:
    """
    Catalog search predicates.

    Substring filters match case-insensitively; the rest are exact.
    """

    game_title: str | None = None
    name: str | None = None
    expansion: str | None = None
    rarity: str | None = None
    regulation_mark: str | None = None
    card_type: str | None = None

    def conditions(self) -> list[Any]:
        conditions: list[Any] = []
        if self.game_title:
            conditions.append(CardDB.game_title.ilike(f"%{self.game_title}%"))
        if self.name:
            conditions.append(CardDB.name.ilike(f"%{self.name}%"))
        if self.expansion:
            conditions.append(CardDB.expansion.ilike(f"%{self.expansion}%"))
        if self.rarity:
            conditions.append(CardDB.rarity == self.rarity)
        if self.regulation_mark:
            conditions.append(CardDB.regulation_mark == self.regulation_mark)
        if self.card_type:
            conditions.append(CardDB.card_type == self.card_type)
        return conditions


async def search_cards(
    session: AsyncSession, filters: CardFilters, page: int = 1, limit: int = 20
) -> Page[CardDB]:
    """Filtered, paginated card listing, newest first."""
    conditions = filters.conditions()
    result_page: Page[CardDB] = Page(page=page, limit=limit)

    count_stmt = select(func.count()).select_from(CardDB).where(*conditions)
    result_page.total_count = int((await session.execute(count_stmt)).scalar_one())

    result = await session.execute(
        select(CardDB)
        .where(*conditions)
        .order_by(CardDB.created_at.desc(), CardDB.id.desc())
        .offset(result_page.offset)
        .limit(limit)
    )
    result_page.items = list(result.scalars().all())
    return result_page


# --- Price Operations ---


async def record_price(
    session: AsyncSession,
    card_id: int,
    price: int,
    source: str | None = None,
    condition: str | None = None,
    recorded_at: datetime | None = None,
) -> PriceHistoryDB:
    """Store one observed price for a card."""
    observation = PriceHistoryDB(
        card_id=card_id, price=price, source=source, condition=condition
    )
    if recorded_at is not None:
        observation.recorded_at = recorded_at
    session.add(observation)
    await session.flush()
    return observation


async def get_recent_prices(
    session: AsyncSession, card_id: int, limit: int
) -> list[PriceHistoryDB]:
    """Most recent price observations for a card, newest recorded first."""
    result = await session.execute(
        select(PriceHistoryDB)
        .where(PriceHistoryDB.card_id == card_id)
        .order_by(PriceHistoryDB.recorded_at.desc(), PriceHistoryDB.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_latest_prices(session: AsyncSession, card_ids: list[int]) -> dict[int, int]:
    """Map card id -> most recently recorded price, for cards that have one."""
    if not card_ids:
        return {}

    result = await session.execute(
        select(PriceHistoryDB.card_id, PriceHistoryDB.price)
        .where(PriceHistoryDB.card_id.in_(card_ids))
        .order_by(
            PriceHistoryDB.card_id,
            PriceHistoryDB.recorded_at.desc(),
            PriceHistoryDB.id.desc(),
        )
    )
    latest: dict[int, int] = {}
    for card_id, price in result.all():
        latest.setdefault(card_id, price)
    return latest


async def get_active_listing_counts(session: AsyncSession, card_ids: list[int]) -> dict[int, int]:
    """Map card id -> number of ACTIVE listings."""
    if not card_ids:
        return {}

    result = await session.execute(
        select(ListingDB.card_id, func.count())
        .where(
            ListingDB.card_id.in_(card_ids),
            ListingDB.status == ListingStatus.ACTIVE.value,
        )
        .group_by(ListingDB.card_id)
    )
    return {card_id: int(count) for card_id, count in result.all()}


async def get_active_listings_for_card(session: AsyncSession, card_id: int) -> list[ListingDB]:
    """Active listings for a card: by listing type (BUY, SELL, TRADE), then newest."""
    result = await session.execute(
        select(ListingDB)
        .where(
            ListingDB.card_id == card_id,
            ListingDB.status == ListingStatus.ACTIVE.value,
        )
        .options(selectinload(ListingDB.user))
        .order_by(ListingDB.listing_type, ListingDB.created_at.desc(), ListingDB.id.desc())
    )
    return list(result.scalars().all())


# --- Set Operations ---


_SET_FIELDS = (
    "name",
    "series",
    "release_date",
    "total_cards",
    "printed_total",
    "legalities",
    "images",
    "ptcgo_code",
)


async def get_card_set(session: AsyncSession, set_id: str) -> CardSetDB | None:
    return await session.get(CardSetDB, set_id)


async def upsert_card_set(
    session: AsyncSession, set_id: str, values: dict[str, Any]
) -> tuple[CardSetDB, bool]:
    """
    Insert or update a set by id.

    Returns:
        Tuple of (set, created) where created is True if new.
    """
    data = {k: values.get(k) for k in _SET_FIELDS}
    existing = await get_card_set(session, set_id)

    if existing:
        for column, value in data.items():
            setattr(existing, column, value)
        await session.flush()
        return existing, False

    card_set = CardSetDB(id=set_id, **data)
    session.add(card_set)
    await session.flush()
    return card_set, True


async def search_sets(
    session: AsyncSession,
    series: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> Page[tuple[CardSetDB, int]]:
    """Paginated sets with their card counts, newest release first."""
    conditions: list[Any] = []
    if series:
        conditions.append(CardSetDB.series == series)
    if search:
        conditions.append(
            or_(CardSetDB.name.ilike(f"%{search}%"), CardSetDB.id.ilike(f"%{search}%"))
        )

    result_page: Page[tuple[CardSetDB, int]] = Page(page=page, limit=limit)
    count_stmt = select(func.count()).select_from(CardSetDB).where(*conditions)
    result_page.total_count = int((await session.execute(count_stmt)).scalar_one())

    card_count = (
        select(func.count(CardDB.id))
        .where(CardDB.set_id == CardSetDB.id)
        .correlate(CardSetDB)
        .scalar_subquery()
    )
    result = await session.execute(
        select(CardSetDB, card_count)
        .where(*conditions)
        .order_by(CardSetDB.release_date.desc(), CardSetDB.id)
        .offset(result_page.offset)
        .limit(limit)
    )
    result_page.items = [(card_set, int(count)) for card_set, count in result.all()]
    return result_page


async def get_set_with_cards(session: AsyncSession, set_id: str) -> CardSetDB | None:
    """Get a set with its cards loaded."""
    result = await session.execute(
        select(CardSetDB).where(CardSetDB.id == set_id).options(selectinload(CardSetDB.cards))
    )
    return result.scalar_one_or_none()
