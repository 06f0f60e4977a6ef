"""
Download cards from the card API.

Writes one regulation-<X>.json file per regulation mark into the data
directory, ready for the import_cards job.
"""

import argparse
import asyncio
import logging
from pathlib import Path

from cardnexus.clients.card_api import CardApiClient, CardApiError, regulation_file, save_cards
from cardnexus.config import settings

logger = logging.getLogger(__name__)

DEFAULT_REGULATIONS = ("G", "H", "I")


async def fetch_regulation(api: CardApiClient, regulation_mark: str, data_dir: Path) -> int:
    """
    Fetch and save the cards of one regulation mark.

    Returns:
        Number of cards saved
    """
    logger.info("Fetching regulation %s...", regulation_mark)
    cards = await api.fetch_regulation(regulation_mark)
    path = save_cards(regulation_file(data_dir, regulation_mark), cards)
    logger.info("Saved %d cards to %s", len(cards), path)
    return len(cards)


async def run_fetch(
    regulations: list[str] | None = None,
    data_dir: Path | None = None,
) -> dict[str, int]:
    """
    Fetch every requested regulation mark.

    A failed regulation is logged and reported as 0; the others still run.

    Returns:
        Dict mapping regulation mark to number of cards saved
    """
    regulations = regulations or list(DEFAULT_REGULATIONS)
    data_dir = data_dir or settings.data_dir
    results: dict[str, int] = {}

    async with CardApiClient() as api:
        for index, mark in enumerate(regulations):
            if index:
                await asyncio.sleep(api.request_delay)
            try:
                results[mark] = await fetch_regulation(api, mark, data_dir)
            except CardApiError as e:
                logger.error("Failed to fetch regulation %s: %s", mark, e)
                results[mark] = 0

    logger.info("Fetch complete. Total cards: %d", sum(results.values()))
    return results


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Download cards by regulation mark")
    parser.add_argument(
        "regulations",
        nargs="*",
        default=list(DEFAULT_REGULATIONS),
        help="Regulation marks to fetch (default: %(default)s)",
    )
    parser.add_argument("--data-dir", type=Path, default=settings.data_dir)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = parse_args(argv)
    results = asyncio.run(run_fetch([r.upper() for r in args.regulations], args.data_dir))
    if not any(results.values()):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
