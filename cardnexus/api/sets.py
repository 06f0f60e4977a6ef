"""
Card set endpoints.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from cardnexus.api.deps import SessionDep
from cardnexus.api.schemas import CardSummary, Paginated
from cardnexus.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from cardnexus.db.operations import get_set_with_cards, search_sets
from cardnexus.models.failure import ApiResponse, NotFoundError

router = APIRouter(prefix="/sets", tags=["sets"])


class SetView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    series: str | None = None
    release_date: str | None = None
    total_cards: int | None = None
    printed_total: int | None = None
    legalities: Any = Field(default_factory=dict)
    images: Any = Field(default_factory=dict)
    ptcgo_code: str | None = None


class SetListItem(SetView):
    card_count: int = 0


class SetList(Paginated):
    sets: list[SetListItem]


class SetDetail(SetView):
    cards: list[CardSummary]


def _card_number_key(number: str | None) -> tuple[int, int, str]:
    # "2" sorts before "10"; non-numeric numbers ("TG01") after numeric ones
    if number and number.isdigit():
        return (0, int(number), number)
    return (1, 0, number or "")


@router.get("", response_model=ApiResponse[SetList])
async def list_sets(
    session: SessionDep,
    series: str | None = None,
    search: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
) -> ApiResponse[SetList]:
    """Sets with card counts, newest release first."""
    result = await search_sets(session, series=series, search=search, page=page, limit=limit)
    items = [
        SetListItem(**SetView.model_validate(card_set).model_dump(), card_count=count)
        for card_set, count in result.items
    ]
    return ApiResponse.ok(SetList(sets=items, pagination=result.meta()))


@router.get("/{set_id}", response_model=ApiResponse[SetDetail])
async def get_set(set_id: str, session: SessionDep) -> ApiResponse[SetDetail]:
    """A set with its cards, ordered by card number."""
    card_set = await get_set_with_cards(session, set_id)
    if card_set is None:
        raise NotFoundError("Set", set_id)

    cards = sorted(card_set.cards, key=lambda c: _card_number_key(c.card_number))
    return ApiResponse.ok(
        SetDetail(
            **SetView.model_validate(card_set).model_dump(),
            cards=[CardSummary.model_validate(card) for card in cards],
        )
    )
