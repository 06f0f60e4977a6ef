"""Tests for the set and deck importers."""

import json
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cardnexus.config import settings
from cardnexus.db.community import get_deck, get_deck_by_external_id
from cardnexus.db.operations import get_card_set
from cardnexus.importer.decks import (
    IMPORTED_DECK_FORMAT,
    SYSTEM_USERNAME,
    get_system_user,
    import_decks,
)
from cardnexus.importer.runner import SourceFileError
from cardnexus.importer.sets import import_sets, set_values
from cardnexus.models.db import CardDB, DeckDB, UserDB
from cardnexus.models.import_result import OutcomeStatus

CardFactory = Callable[..., Awaitable[CardDB]]

SET_RECORD: dict[str, Any] = {
    "id": "sv1",
    "name": "Scarlet & Violet",
    "series": "Scarlet & Violet",
    "printedTotal": 198,
    "total": 258,
    "legalities": {"standard": "Legal"},
    "ptcgoCode": "SVI",
    "releaseDate": "2023/03/31",
    "images": {"symbol": "https://img/symbol.png", "logo": "https://img/logo.png"},
}


def write_json(path: Path, payload: Any) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestSetImport:
    def test_set_values(self) -> None:
        values = set_values(SET_RECORD)

        assert values["total_cards"] == 258
        assert values["printed_total"] == 198
        assert values["release_date"] == "2023/03/31"
        assert values["ptcgo_code"] == "SVI"

    async def test_creates_then_updates(self, session: AsyncSession, tmp_path: Path) -> None:
        path = write_json(tmp_path / "en.json", [SET_RECORD])

        first = await import_sets(session, path)
        write_json(path, [dict(SET_RECORD, total=260)])
        second = await import_sets(session, path)

        assert (first.created, first.updated) == (1, 0)
        assert (second.created, second.updated) == (0, 1)
        card_set = await get_card_set(session, "sv1")
        assert card_set is not None
        assert card_set.total_cards == 260
        assert card_set.images["logo"] == "https://img/logo.png"

    async def test_set_without_id_rejected(self, session: AsyncSession, tmp_path: Path) -> None:
        path = write_json(tmp_path / "en.json", [{"name": "No id"}, SET_RECORD])

        summary = await import_sets(session, path)

        assert summary.rejected == 1
        assert summary.created == 1

    async def test_missing_file_raises(self, session: AsyncSession, tmp_path: Path) -> None:
        with pytest.raises(SourceFileError):
            await import_sets(session, tmp_path / "missing.json")


class TestDeckImport:
    @pytest.fixture
    async def catalog(self, session: AsyncSession, make_card: CardFactory) -> dict[str, int]:
        pikachu = await make_card("Pikachu", api_id="sv1-58")
        raichu = await make_card("Raichu", api_id="sv1-59")
        await session.commit()
        return {"sv1-58": pikachu.id, "sv1-59": raichu.id}

    @staticmethod
    def deck_record(**overrides: Any) -> dict[str, Any]:
        record: dict[str, Any] = {
            "id": "d-sv1-1",
            "name": "Pikachu Rush",
            "types": ["Lightning", "Colorless"],
            "cards": [
                {"id": "sv1-58", "name": "Pikachu", "count": 4},
                {"id": "sv1-59", "name": "Raichu", "count": 2},
                {"id": "sv9-1", "name": "Unknown", "count": 3},
            ],
        }
        record.update(overrides)
        return record

    async def test_system_user_created_once(self, session: AsyncSession) -> None:
        first = await get_system_user(session)
        second = await get_system_user(session)

        assert first.id == second.id
        count = (
            await session.execute(
                select(func.count()).select_from(UserDB).where(UserDB.username == SYSTEM_USERNAME)
            )
        ).scalar_one()
        assert count == 1

    async def test_imports_public_deck_without_unknown_cards(
        self, session: AsyncSession, tmp_path: Path, catalog: dict[str, int]
    ) -> None:
        path = write_json(tmp_path / "sv1.json", [self.deck_record()])

        summary = await import_decks(session, [path])

        assert summary.created == 1
        deck = await get_deck_by_external_id(session, "d-sv1-1")
        assert deck is not None
        assert deck.is_public is True
        assert deck.format == IMPORTED_DECK_FORMAT
        assert deck.game_title == settings.default_game_title
        assert deck.types == "Lightning, Colorless"
        assert deck.description == "Imported deck: Pikachu Rush"
        assert deck.user.username == SYSTEM_USERNAME
        quantities = {dc.card_id: dc.quantity for dc in deck.deck_cards}
        assert quantities == {catalog["sv1-58"]: 4, catalog["sv1-59"]: 2}

    async def test_reimport_replaces_contents(
        self, session: AsyncSession, tmp_path: Path, catalog: dict[str, int]
    ) -> None:
        path = write_json(tmp_path / "sv1.json", [self.deck_record()])
        await import_decks(session, [path])

        changed = self.deck_record(
            name="Pikachu Rush v2", cards=[{"id": "sv1-58", "name": "Pikachu", "count": 3}]
        )
        write_json(path, [changed])
        summary = await import_decks(session, [path])

        assert summary.updated == 1
        decks = (await session.execute(select(func.count()).select_from(DeckDB))).scalar_one()
        assert decks == 1
        deck = await get_deck_by_external_id(session, "d-sv1-1")
        assert deck is not None
        refreshed = await get_deck(session, deck.id)
        assert refreshed is not None
        assert refreshed.name == "Pikachu Rush v2"
        assert [(dc.card_id, dc.quantity) for dc in refreshed.deck_cards] == [
            (catalog["sv1-58"], 3)
        ]

    async def test_deck_without_name_rejected(
        self, session: AsyncSession, tmp_path: Path, catalog: dict[str, int]
    ) -> None:
        path = write_json(tmp_path / "sv1.json", [{"id": "d-1", "cards": []}])

        summary = await import_decks(session, [path])

        assert summary.rejected == 1
        assert summary.failures[0].status == OutcomeStatus.REJECTED

    async def test_unreadable_file_skipped(
        self, session: AsyncSession, tmp_path: Path, catalog: dict[str, int]
    ) -> None:
        good = write_json(tmp_path / "sv1.json", [self.deck_record()])

        summary = await import_decks(session, [tmp_path / "missing.json", good])

        assert summary.created == 1
