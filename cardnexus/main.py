from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cardnexus.api import (
    auth_router,
    board_router,
    cards_router,
    decks_router,
    health_router,
    listings_router,
    sets_router,
    users_router,
)
from cardnexus.api.errors import register_exception_handlers
from cardnexus.config import settings
from cardnexus.db.database import init_db


def _app_version() -> str:
    try:
        return pkg_version("cardnexus")
    except PackageNotFoundError:
        # Running from a source checkout
        return "0.0.0"


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Create tables on startup."""
    await init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    version=_app_version(),
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(cards_router)
app.include_router(sets_router)
app.include_router(listings_router)
app.include_router(users_router)
app.include_router(auth_router)
app.include_router(decks_router)
app.include_router(board_router)
app.include_router(health_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
