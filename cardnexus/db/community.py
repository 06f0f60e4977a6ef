"""
Deck and board (forum) CRUD operations.
"""

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cardnexus.models.db import (
    CommentDB,
    DeckCardDB,
    DeckDB,
    DeckLikeDB,
    DeckTagDB,
    PostDB,
    PostTagDB,
)
from cardnexus.models.enums import PostCategory
from cardnexus.models.pagination import Page

# --- Deck Operations ---


@dataclass
class DeckDraft:
    """Values for a new deck, as submitted by a user or read from a dump."""

    name: str
    game_title: str
    description: str | None = None
    format: str | None = None
    types: str | None = None
    is_public: bool = False
    cards: dict[int, int] = field(default_factory=dict)  # card_id -> quantity
    tags: list[str] = field(default_factory=list)


def _deck_load_options() -> list[Any]:
    return [
        selectinload(DeckDB.user),
        selectinload(DeckDB.deck_cards).selectinload(DeckCardDB.card),
        selectinload(DeckDB.tags),
        selectinload(DeckDB.likes).selectinload(DeckLikeDB.user),
    ]


async def get_deck(session: AsyncSession, deck_id: int) -> DeckDB | None:
    """Get a deck with owner, cards, tags and likes loaded."""
    result = await session.execute(
        select(DeckDB)
        .where(DeckDB.id == deck_id)
        .options(*_deck_load_options())
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_deck_by_external_id(session: AsyncSession, external_id: str) -> DeckDB | None:
    result = await session.execute(
        select(DeckDB)
        .where(DeckDB.external_id == external_id)
        .options(*_deck_load_options())
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_deck(
    session: AsyncSession,
    user_id: int,
    draft: DeckDraft,
    external_id: str | None = None,
) -> DeckDB:
    """
    Create a deck together with its card rows and tags.

    Everything is flushed in the caller's transaction, so the deck and its
    rows are committed or rolled back together.
    """
    deck = DeckDB(
        user_id=user_id,
        external_id=external_id,
        name=draft.name,
        description=draft.description,
        game_title=draft.game_title,
        format=draft.format,
        types=draft.types,
        is_public=draft.is_public,
    )
    deck.deck_cards = [
        DeckCardDB(card_id=card_id, quantity=quantity) for card_id, quantity in draft.cards.items()
    ]
    deck.tags = [DeckTagDB(tag_name=tag) for tag in draft.tags]
    session.add(deck)
    await session.flush()
    return deck


async def replace_deck_contents(session: AsyncSession, deck: DeckDB, draft: DeckDraft) -> DeckDB:
    """Overwrite descriptive fields and card rows of an existing deck."""
    deck.name = draft.name
    deck.description = draft.description
    deck.format = draft.format
    deck.types = draft.types

    # Old rows must be gone before re-inserting the same (deck, card) pairs
    deck.deck_cards.clear()
    await session.flush()
    for card_id, quantity in draft.cards.items():
        deck.deck_cards.append(DeckCardDB(card_id=card_id, quantity=quantity))

    await session.flush()
    return deck


_DECK_SORT_COLUMNS = {
    "created_at": DeckDB.created_at,
    "updated_at": DeckDB.updated_at,
    "name": DeckDB.name,
    "popularity": DeckDB.like_count,
    "views": DeckDB.view_count,
}


async def search_decks(
    session: AsyncSession,
    game_title: str | None = None,
    format_name: str | None = None,
    search: str | None = None,
    user_id: int | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 12,
) -> Page[DeckDB]:
    """
    Paginated decks.

    Only public decks are listed, except when filtering by user_id, which
    lists every deck of that user.
    """
    conditions: list[Any] = []
    if user_id is not None:
        conditions.append(DeckDB.user_id == user_id)
    else:
        conditions.append(DeckDB.is_public.is_(True))
    if game_title:
        conditions.append(DeckDB.game_title == game_title)
    if format_name:
        conditions.append(DeckDB.format == format_name)
    if search:
        conditions.append(
            or_(DeckDB.name.ilike(f"%{search}%"), DeckDB.description.ilike(f"%{search}%"))
        )

    column = _DECK_SORT_COLUMNS.get(sort_by, DeckDB.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()

    result_page: Page[DeckDB] = Page(page=page, limit=limit)
    count_stmt = select(func.count()).select_from(DeckDB).where(*conditions)
    result_page.total_count = int((await session.execute(count_stmt)).scalar_one())

    result = await session.execute(
        select(DeckDB)
        .where(*conditions)
        .options(*_deck_load_options())
        .order_by(ordering, DeckDB.id.desc())
        .offset(result_page.offset)
        .limit(limit)
    )
    result_page.items = list(result.scalars().all())
    return result_page


async def increment_deck_views(session: AsyncSession, deck_id: int) -> None:
    await session.execute(
        update(DeckDB).where(DeckDB.id == deck_id).values(view_count=DeckDB.view_count + 1)
    )


async def toggle_deck_like(session: AsyncSession, deck: DeckDB, user_id: int) -> tuple[bool, int]:
    """
    Like or unlike a deck.

    The like row and the like_count counter change in the caller's
    transaction, so they are committed or rolled back together.

    Returns:
        Tuple of (is_liked, like_count) after the toggle.
    """
    result = await session.execute(
        select(DeckLikeDB).where(DeckLikeDB.deck_id == deck.id, DeckLikeDB.user_id == user_id)
    )
    existing = result.scalar_one_or_none()

    if existing:
        await session.delete(existing)
        delta = -1
    else:
        session.add(DeckLikeDB(deck_id=deck.id, user_id=user_id))
        delta = 1
    await session.flush()
    await session.execute(
        update(DeckDB).where(DeckDB.id == deck.id).values(like_count=DeckDB.like_count + delta)
    )

    like_count = (
        await session.execute(select(DeckDB.like_count).where(DeckDB.id == deck.id))
    ).scalar_one()
    return existing is None, int(like_count)


# --- Board Operations ---


@dataclass
class PostDraft:
    title: str
    content: str
    category: PostCategory
    tags: list[str] = field(default_factory=list)
    card_id: int | None = None


_POST_SORT_COLUMNS = {
    "created_at": PostDB.created_at,
    "like_count": PostDB.like_count,
    "view_count": PostDB.view_count,
}


async def create_post(session: AsyncSession, author_id: int, draft: PostDraft) -> PostDB:
    post = PostDB(
        author_id=author_id,
        card_id=draft.card_id,
        title=draft.title,
        content=draft.content,
        category=draft.category.value,
    )
    post.tags = [PostTagDB(tag_name=tag) for tag in draft.tags]
    session.add(post)
    await session.flush()

    loaded = await get_post(session, post.id)
    if loaded is None:
        msg = f"Post {post.id} not found after creation"
        raise RuntimeError(msg)
    return loaded


async def get_post(session: AsyncSession, post_id: int) -> PostDB | None:
    """Get a post with author, card, tags and comments (with authors) loaded."""
    result = await session.execute(
        select(PostDB)
        .where(PostDB.id == post_id)
        .options(
            selectinload(PostDB.author),
            selectinload(PostDB.card),
            selectinload(PostDB.tags),
            selectinload(PostDB.comments).selectinload(CommentDB.author),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def search_posts(
    session: AsyncSession,
    search: str | None = None,
    category: PostCategory | None = None,
    tag: str | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 20,
) -> Page[tuple[PostDB, int]]:
    """Paginated posts with their comment counts; pinned posts first."""
    conditions: list[Any] = []
    if search:
        conditions.append(
            or_(PostDB.title.ilike(f"%{search}%"), PostDB.content.ilike(f"%{search}%"))
        )
    if category is not None:
        conditions.append(PostDB.category == category.value)
    if tag:
        conditions.append(PostDB.tags.any(PostTagDB.tag_name == tag))

    column = _POST_SORT_COLUMNS.get(sort_by, PostDB.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()

    result_page: Page[tuple[PostDB, int]] = Page(page=page, limit=limit)
    count_stmt = select(func.count()).select_from(PostDB).where(*conditions)
    result_page.total_count = int((await session.execute(count_stmt)).scalar_one())

    comment_count = (
        select(func.count(CommentDB.id))
        .where(CommentDB.post_id == PostDB.id)
        .correlate(PostDB)
        .scalar_subquery()
    )
    result = await session.execute(
        select(PostDB, comment_count)
        .where(*conditions)
        .options(selectinload(PostDB.author), selectinload(PostDB.card), selectinload(PostDB.tags))
        .order_by(PostDB.is_pinned.desc(), ordering, PostDB.id.desc())
        .offset(result_page.offset)
        .limit(limit)
    )
    result_page.items = [(post, int(count)) for post, count in result.all()]
    return result_page


async def increment_post_views(session: AsyncSession, post_id: int) -> None:
    await session.execute(
        update(PostDB).where(PostDB.id == post_id).values(view_count=PostDB.view_count + 1)
    )


async def get_comment(session: AsyncSession, comment_id: int) -> CommentDB | None:
    return await session.get(CommentDB, comment_id)


async def create_comment(
    session: AsyncSession,
    post_id: int,
    author_id: int,
    content: str,
    parent_id: int | None = None,
) -> CommentDB:
    comment = CommentDB(post_id=post_id, author_id=author_id, content=content, parent_id=parent_id)
    session.add(comment)
    await session.flush()

    result = await session.execute(
        select(CommentDB).where(CommentDB.id == comment.id).options(selectinload(CommentDB.author))
    )
    return result.scalar_one()
