"""
Upsert loader.

Writes one canonical card record at a time, deciding between insert and
update by the configured reconciliation policy. A failure on one record is
rolled back and reported as a FAILED outcome; it never stops the batch.
"""

import logging
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cardnexus.db.operations import (
    create_card,
    find_card_by_natural_key,
    get_card_by_api_id,
    get_card_set,
    update_card,
)
from cardnexus.models.card import CanonicalCard
from cardnexus.models.db import CardDB
from cardnexus.models.import_result import RecordOutcome

logger = logging.getLogger(__name__)


class ReconciliationPolicy(str, Enum):
    """How an incoming record is matched against stored cards."""

    # Match on api_id only; records without one are always inserted
    API_ID = "api_id"
    # Match on (card_number, expansion, game_title) only
    NATURAL_KEY = "natural_key"
    # api_id first, then the natural key when no row holds that api_id
    API_ID_THEN_NATURAL_KEY = "api_id_then_natural_key"


class CardLoader:
    """
    Persists canonical records into one session.

    Each record is committed before the call returns, so records are applied
    strictly one after another.
    """

    def __init__(
        self,
        session: AsyncSession,
        policy: ReconciliationPolicy = ReconciliationPolicy.API_ID_THEN_NATURAL_KEY,
    ) -> None:
        self.session = session
        self.policy = policy
        self._known_sets: dict[str, bool] = {}

    async def find_existing(self, card: CanonicalCard) -> CardDB | None:
        """Look up the stored row an incoming record reconciles to."""
        if self.policy != ReconciliationPolicy.NATURAL_KEY and card.api_id:
            existing = await get_card_by_api_id(self.session, card.api_id)
            if existing is not None or self.policy == ReconciliationPolicy.API_ID:
                return existing

        if self.policy == ReconciliationPolicy.API_ID:
            return None
        if not (card.card_number and card.expansion):
            return None
        return await find_card_by_natural_key(
            self.session, card.card_number, card.expansion, card.game_title
        )

    async def _set_exists(self, set_id: str) -> bool:
        if set_id not in self._known_sets:
            self._known_sets[set_id] = await get_card_set(self.session, set_id) is not None
        return self._known_sets[set_id]

    async def _prepare(self, card: CanonicalCard) -> CanonicalCard:
        # Cards can be imported before their set; the set id stays in extra
        if card.set_id and not await self._set_exists(card.set_id):
            values = card.column_values()
            values["set_id"] = None
            return CanonicalCard(**values)
        return card

    async def load(self, card: CanonicalCard) -> RecordOutcome:
        """
        Insert or update one record and commit it.

        Returns:
            CREATED / UPDATED outcome, or FAILED with the error message.
        """
        try:
            card = await self._prepare(card)
            existing = await self.find_existing(card)
            if existing is not None:
                db_card = await update_card(self.session, existing, card)
                card_id = db_card.id
                await self.session.commit()
                return RecordOutcome.updated(card.label, card_id)

            db_card = await create_card(self.session, card)
            card_id = db_card.id
            await self.session.commit()
            return RecordOutcome.created(card.label, card_id)

        except (SQLAlchemyError, ValueError, TypeError) as e:
            await self.session.rollback()
            # Rolled-back lookups may have been cached
            self._known_sets.clear()
            logger.error("Failed to import card %s: %s", card.label, e)
            return RecordOutcome.failed(card.label, str(e))
