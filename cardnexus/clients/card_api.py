"""Fetch card data from the third-party card API.

Pages through ``/cards?q=regulationMark:<X>`` and writes one JSON file per
regulation mark for the import job to pick up.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import httpx

from cardnexus.config import settings

logger = logging.getLogger(__name__)

_USER_AGENT = "CardNexus Fetcher/1.0"


class CardApiError(Exception):
    """Raised when fetching card data fails."""


class CardApiClient:
    """Async client for the card API.

    Usage:
        async with CardApiClient() as api:
            cards = await api.fetch_regulation("G")
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        page_size: int | None = None,
        request_delay: float | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.base_url = (base_url or settings.card_api_url).rstrip("/")
        self.page_size = page_size or settings.card_api_page_size
        self.request_delay = settings.request_delay if request_delay is None else request_delay

        headers = {"User-Agent": _USER_AGENT, "Accept": "application/json"}
        key = api_key if api_key is not None else settings.card_api_key
        if key:
            headers["X-Api-Key"] = key
        self._client = httpx.AsyncClient(headers=headers, timeout=timeout)

    async def __aenter__(self) -> "CardApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_page(self, query: str, page: int) -> dict[str, Any]:
        """Fetch one page of the card search.

        Raises:
            CardApiError: On HTTP errors or a malformed response
        """
        params: dict[str, str | int] = {"q": query, "page": page, "pageSize": self.page_size}
        try:
            response = await self._client.get(f"{self.base_url}/cards", params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise CardApiError(
                f"Failed to fetch {query} page {page}: HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise CardApiError(f"Failed to fetch {query} page {page}: {e}") from e
        except ValueError as e:
            raise CardApiError(f"Invalid JSON for {query} page {page}") from e

        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            raise CardApiError(f"Unexpected response shape for {query} page {page}")
        return payload

    async def fetch_regulation(self, regulation_mark: str) -> list[dict[str, Any]]:
        """Fetch every card with the given regulation mark.

        Stops once totalCount cards have been collected or a page comes back
        empty, waiting request_delay seconds between pages.
        """
        query = f"regulationMark:{regulation_mark}"
        cards: list[dict[str, Any]] = []
        page = 1

        while True:
            payload = await self.fetch_page(query, page)
            data = payload["data"]
            cards.extend(data)

            total = int(payload.get("totalCount") or 0)
            logger.info(
                "%s page %d: %d cards (%d/%d)", query, page, len(data), len(cards), total
            )
            if not data or len(cards) >= total:
                break

            page += 1
            await asyncio.sleep(self.request_delay)

        return cards


def regulation_file(data_dir: Path, regulation_mark: str) -> Path:
    return data_dir / f"regulation-{regulation_mark}.json"


def save_cards(path: Path, cards: list[dict[str, Any]]) -> Path:
    """Write fetched cards as a JSON array."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(cards, f, ensure_ascii=False, indent=2)
    return path
