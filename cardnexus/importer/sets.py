"""
Set catalog import.

Upserts card sets by id from a static JSON dump (an array of set objects as
published by the card API).
"""

import logging
import time
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cardnexus.db.operations import upsert_card_set
from cardnexus.importer.runner import read_records
from cardnexus.models.import_result import ImportSummary, OutcomeStatus, RecordOutcome

logger = logging.getLogger(__name__)


def set_values(record: dict[str, Any]) -> dict[str, Any]:
    """Map one source set object onto CardSetDB columns."""
    return {
        "name": record["name"],
        "series": record.get("series"),
        "release_date": record.get("releaseDate"),
        "total_cards": record.get("total"),
        "printed_total": record.get("printedTotal") or None,
        "legalities": record.get("legalities") or {},
        "images": record.get("images") or {},
        "ptcgo_code": record.get("ptcgoCode") or None,
    }


async def import_set(session: AsyncSession, record: dict[str, Any]) -> RecordOutcome:
    """Upsert one set and commit it."""
    set_id = record.get("id") if isinstance(record, dict) else None
    if not set_id or not record.get("name"):
        return RecordOutcome(
            OutcomeStatus.REJECTED, str(set_id or "<unnamed>"), reason="Set has no id or name"
        )

    try:
        _, created = await upsert_card_set(session, set_id, set_values(record))
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("Failed to import set %s: %s", set_id, e)
        return RecordOutcome(OutcomeStatus.FAILED, set_id, reason=str(e))

    status = OutcomeStatus.CREATED if created else OutcomeStatus.UPDATED
    return RecordOutcome(status, set_id)


async def import_sets(session: AsyncSession, path: Path) -> ImportSummary:
    """
    Import every set in a file.

    Raises:
        SourceFileError: If the file cannot be read
    """
    started = time.monotonic()
    records = read_records(path)
    logger.info("Fetched %d sets from %s", len(records), path)

    outcomes = [await import_set(session, record) for record in records]
    summary = ImportSummary.from_outcomes(outcomes, time.monotonic() - started)
    logger.info("Sets imported: %s", summary.describe())
    return summary
