"""
Deck API endpoints.

Browse public decks, build decks, view a deck and toggle likes.
"""

from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import select

from cardnexus.api.deps import CurrentUser, OptionalUser, SessionDep
from cardnexus.api.schemas import CardSummary, Paginated, UserSummary
from cardnexus.config import MAX_PAGE_SIZE
from cardnexus.db.community import (
    DeckDraft,
    create_deck,
    get_deck,
    increment_deck_views,
    search_decks,
    toggle_deck_like,
)
from cardnexus.models.db import CardDB, DeckDB
from cardnexus.models.failure import (
    ApiResponse,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)

router = APIRouter(prefix="/decks", tags=["decks"])

DEFAULT_DECK_PAGE_SIZE = 12
SAMPLE_CARD_COUNT = 4

DeckSort = Literal["created_at", "updated_at", "name", "popularity", "views"]


class DeckCardView(CardSummary):
    quantity: int


class DeckSummary(BaseModel):
    """Deck as shown in lists."""

    id: int
    name: str
    description: str | None = None
    game_title: str
    format: str | None = None
    types: str | None = None
    is_public: bool
    like_count: int
    view_count: int
    cover_image_url: str | None = None
    created_at: datetime
    updated_at: datetime
    user: UserSummary
    card_count: int
    tags: list[str]
    sample_cards: list[DeckCardView]


class DeckList(Paginated):
    decks: list[DeckSummary]


class DeckDetail(DeckSummary):
    cards: list[DeckCardView]
    is_liked: bool
    is_owner: bool


class DeckCardRequest(BaseModel):
    card_id: int
    quantity: int = Field(default=1, ge=1)


class CreateDeckRequest(BaseModel):
    """Request model for a new deck."""

    name: str = ""
    game_title: str = ""
    description: str | None = None
    format: str | None = None
    is_public: bool = False
    cards: list[DeckCardRequest] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class CreateDeckResponse(BaseModel):
    deck_id: int


class LikeResponse(BaseModel):
    is_liked: bool
    like_count: int


def _card_views(deck: DeckDB) -> list[DeckCardView]:
    return [
        DeckCardView(**CardSummary.model_validate(dc.card).model_dump(), quantity=dc.quantity)
        for dc in deck.deck_cards
    ]


def deck_summary(deck: DeckDB) -> DeckSummary:
    cards = _card_views(deck)
    return DeckSummary(
        id=deck.id,
        name=deck.name,
        description=deck.description,
        game_title=deck.game_title,
        format=deck.format,
        types=deck.types,
        is_public=deck.is_public,
        like_count=deck.like_count,
        view_count=deck.view_count,
        cover_image_url=deck.cover_image_url,
        created_at=deck.created_at,
        updated_at=deck.updated_at,
        user=UserSummary.model_validate(deck.user),
        card_count=len(deck.deck_cards),
        tags=[tag.tag_name for tag in deck.tags],
        sample_cards=cards[:SAMPLE_CARD_COUNT],
    )


@router.get("", response_model=ApiResponse[DeckList])
async def list_decks(
    session: SessionDep,
    game_title: str | None = None,
    format_name: Annotated[str | None, Query(alias="format")] = None,
    search: str | None = None,
    user_id: int | None = None,
    sort_by: DeckSort = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_DECK_PAGE_SIZE,
) -> ApiResponse[DeckList]:
    """Public decks, or every deck of one user when user_id is given."""
    result = await search_decks(
        session,
        game_title=game_title,
        format_name=format_name,
        search=search,
        user_id=user_id,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return ApiResponse.ok(
        DeckList(decks=[deck_summary(deck) for deck in result.items], pagination=result.meta())
    )


@router.post(
    "",
    response_model=ApiResponse[CreateDeckResponse],
    status_code=status.HTTP_201_CREATED,
)
async def post_deck(
    request: CreateDeckRequest,
    user: CurrentUser,
    session: SessionDep,
) -> ApiResponse[CreateDeckResponse]:
    """
    Create a deck with its cards and tags.

    Everything is written in the request transaction; a failure leaves no
    partial deck behind.
    """
    name = request.name.strip()
    game_title = request.game_title.strip()
    if not name:
        raise ValidationFailedError("Deck name is required")
    if not game_title:
        raise ValidationFailedError("Game title is required")

    cards: dict[int, int] = {}
    for entry in request.cards:
        cards[entry.card_id] = cards.get(entry.card_id, 0) + entry.quantity

    if cards:
        found = set(
            (await session.execute(select(CardDB.id).where(CardDB.id.in_(cards)))).scalars()
        )
        missing = sorted(set(cards) - found)
        if missing:
            raise NotFoundError("Card", ", ".join(str(card_id) for card_id in missing))

    draft = DeckDraft(
        name=name,
        game_title=game_title,
        description=(request.description or "").strip() or None,
        format=(request.format or "").strip() or None,
        is_public=request.is_public,
        cards=cards,
        tags=[tag.strip() for tag in request.tags if tag.strip()],
    )
    deck = await create_deck(session, user.id, draft)
    return ApiResponse.ok(CreateDeckResponse(deck_id=deck.id))


@router.get("/{deck_id}", response_model=ApiResponse[DeckDetail])
async def get_deck_detail(
    deck_id: int, session: SessionDep, viewer: OptionalUser
) -> ApiResponse[DeckDetail]:
    """
    A deck with all its cards.

    Private decks are visible to their owner only. Views by anyone other
    than the owner are counted.
    """
    deck = await get_deck(session, deck_id)
    if deck is None:
        raise NotFoundError("Deck", deck_id)

    is_owner = viewer is not None and viewer.id == deck.user_id
    if not deck.is_public and not is_owner:
        raise ForbiddenError("This deck is private")

    if not is_owner:
        await increment_deck_views(session, deck.id)
        await session.refresh(deck, ["view_count"])

    summary = deck_summary(deck)
    return ApiResponse.ok(
        DeckDetail(
            **summary.model_dump(),
            cards=_card_views(deck),
            is_liked=viewer is not None and any(like.user_id == viewer.id for like in deck.likes),
            is_owner=is_owner,
        )
    )


@router.post("/{deck_id}/like", response_model=ApiResponse[LikeResponse])
async def like_deck(
    deck_id: int, user: CurrentUser, session: SessionDep
) -> ApiResponse[LikeResponse]:
    """Like the deck, or remove the like if already given."""
    deck = await get_deck(session, deck_id)
    if deck is None:
        raise NotFoundError("Deck", deck_id)

    is_liked, like_count = await toggle_deck_like(session, deck, user.id)
    return ApiResponse.ok(LikeResponse(is_liked=is_liked, like_count=like_count))
