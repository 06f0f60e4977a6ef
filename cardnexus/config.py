from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "Card Nexus"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/cardnexus"

    # Third-party card API (pokemontcg.io compatible)
    card_api_url: str = "https://api.pokemontcg.io/v2"
    card_api_key: str = ""
    card_api_page_size: int = 100
    # Seconds to wait between page requests; the API rate-limits externally
    request_delay: float = 5.0

    data_dir: Path = Path("data")
    progress_every: int = 100

    # Game title stored on imported cards when the source record has none
    default_game_title: str = "ポケモンカード"

    cors_origins: list[str] = ["*"]


settings = Settings()


# =============================================================================
# PAGINATION LIMITS
# =============================================================================

DEFAULT_PAGE_SIZE = 20

# Hard ceiling for any list endpoint
MAX_PAGE_SIZE = 100

# Listings are browsed in smaller pages
MAX_LISTING_PAGE_SIZE = 50


# =============================================================================
# PRICE AGGREGATION WINDOWS
# =============================================================================

# Number of observations returned as price history on the card detail view
PRICE_HISTORY_WINDOW = 30

# Number of most recent observations used for average/min/max
PRICE_STATS_WINDOW = 10
