from cardnexus.db.database import get_session, init_db, session_scope
from cardnexus.db.operations import (
    CardFilters,
    create_card,
    find_card_by_natural_key,
    get_card,
    get_card_by_api_id,
    search_cards,
    update_card,
    upsert_card_set,
)

__all__ = [
    "CardFilters",
    "create_card",
    "find_card_by_natural_key",
    "get_card",
    "get_card_by_api_id",
    "get_session",
    "init_db",
    "search_cards",
    "session_scope",
    "update_card",
    "upsert_card_set",
]
