from cardnexus.api.auth import router as auth_router
from cardnexus.api.board import router as board_router
from cardnexus.api.cards import router as cards_router
from cardnexus.api.decks import router as decks_router
from cardnexus.api.health import router as health_router
from cardnexus.api.listings import router as listings_router
from cardnexus.api.sets import router as sets_router
from cardnexus.api.users import router as users_router

__all__ = [
    "auth_router",
    "board_router",
    "cards_router",
    "decks_router",
    "health_router",
    "listings_router",
    "sets_router",
    "users_router",
]
