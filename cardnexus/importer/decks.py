"""
Pre-built deck import.

Reads deck dumps (arrays of ``{id, name, types, cards: [{id, name, count}]}``)
and stores them as public decks owned by a system user. Deck cards are
resolved by api id; cards not yet in the catalog are logged and left out.
"""

import logging
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cardnexus.config import settings
from cardnexus.db.community import (
    DeckDraft,
    create_deck,
    get_deck_by_external_id,
    replace_deck_contents,
)
from cardnexus.db.marketplace import get_or_create_user
from cardnexus.importer.normalize import join_list_field
from cardnexus.importer.runner import SourceFileError, read_records
from cardnexus.models.db import CardDB, UserDB
from cardnexus.models.import_result import ImportSummary, OutcomeStatus, RecordOutcome

logger = logging.getLogger(__name__)

SYSTEM_USERNAME = "system"
SYSTEM_EMAIL = "system@cardnexus.local"
SYSTEM_BIO = "System user for imported decks"
IMPORTED_DECK_FORMAT = "Standard"


async def get_system_user(session: AsyncSession) -> UserDB:
    """Owner of every imported deck, created on first use."""
    user, created = await get_or_create_user(
        session, SYSTEM_USERNAME, SYSTEM_EMAIL, bio=SYSTEM_BIO
    )
    if created:
        await session.commit()
        logger.info("Created system user (id=%d)", user.id)
    return user


async def resolve_card_ids(session: AsyncSession, api_ids: Sequence[str]) -> dict[str, int]:
    """Map api id -> card id for the api ids present in the catalog."""
    if not api_ids:
        return {}
    result = await session.execute(
        select(CardDB.api_id, CardDB.id).where(CardDB.api_id.in_(set(api_ids)))
    )
    return {api_id: card_id for api_id, card_id in result.all()}


async def build_draft(session: AsyncSession, record: dict[str, Any]) -> DeckDraft:
    """Turn one dump entry into a deck draft, dropping unknown cards."""
    entries = [c for c in record.get("cards") or [] if isinstance(c, dict) and c.get("id")]
    card_ids = await resolve_card_ids(session, [c["id"] for c in entries])

    cards: dict[int, int] = {}
    for entry in entries:
        card_id = card_ids.get(entry["id"])
        if card_id is None:
            logger.warning("Card %s (%s) not found", entry["id"], entry.get("name"))
            continue
        cards[card_id] = int(entry.get("count") or 1)

    return DeckDraft(
        name=record["name"],
        game_title=settings.default_game_title,
        description=f"Imported deck: {record['name']}",
        format=IMPORTED_DECK_FORMAT,
        types=join_list_field(record.get("types")),
        is_public=True,
        cards=cards,
    )


async def import_deck(
    session: AsyncSession, owner_id: int, record: dict[str, Any]
) -> RecordOutcome:
    """Create or refresh one deck (matched on its dump id) and commit it."""
    external_id = record.get("id") if isinstance(record, dict) else None
    if not external_id or not record.get("name"):
        return RecordOutcome(
            OutcomeStatus.REJECTED,
            str(external_id or "<unnamed>"),
            reason="Deck has no id or name",
        )

    label = f"{record['name']} ({external_id})"
    try:
        draft = await build_draft(session, record)
        existing = await get_deck_by_external_id(session, external_id)
        if existing is not None:
            await replace_deck_contents(session, existing, draft)
            status = OutcomeStatus.UPDATED
        else:
            await create_deck(session, owner_id, draft, external_id=external_id)
            status = OutcomeStatus.CREATED
        await session.commit()
    except (SQLAlchemyError, ValueError, TypeError) as e:
        await session.rollback()
        logger.error("Failed to import deck %s: %s", label, e)
        return RecordOutcome(OutcomeStatus.FAILED, label, reason=str(e))

    return RecordOutcome(status, label)


async def import_decks(session: AsyncSession, paths: Sequence[Path]) -> ImportSummary:
    """Import every deck of every file; unreadable files are skipped."""
    started = time.monotonic()
    # Read once; a rollback expires the instance
    owner_id = (await get_system_user(session)).id
    outcomes: list[RecordOutcome] = []

    for path in paths:
        try:
            records = read_records(path)
        except SourceFileError as e:
            logger.error("Skipping %s: %s", path.name, e)
            continue

        logger.info("%s: importing %d decks", path.name, len(records))
        for record in records:
            outcomes.append(await import_deck(session, owner_id, record))

    summary = ImportSummary.from_outcomes(outcomes, time.monotonic() - started)
    logger.info("Deck import complete: %s", summary.describe())
    return summary
