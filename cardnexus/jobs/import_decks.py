"""
Import pre-built decks from data/decks/en/*.json.

Cards must already be imported; deck cards are matched on api id.
"""

import argparse
import asyncio
import logging
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from cardnexus.config import settings
from cardnexus.db.database import session_scope
from cardnexus.importer.decks import import_decks
from cardnexus.models.import_result import ImportSummary

logger = logging.getLogger(__name__)


def default_paths(data_dir: Path) -> list[Path]:
    return sorted((data_dir / "decks" / "en").glob("*.json"))


async def run_import_decks(paths: list[Path]) -> ImportSummary:
    async with session_scope() as session:
        return await import_decks(session, paths)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    parser = argparse.ArgumentParser(description="Import pre-built decks")
    parser.add_argument("paths", nargs="*", type=Path)
    parser.add_argument("--data-dir", type=Path, default=settings.data_dir)
    parser.add_argument("--limit", type=int, help="Only import the first N files")
    args = parser.parse_args(argv)

    paths = args.paths or default_paths(args.data_dir)
    if args.limit:
        paths = paths[: args.limit]
    if not paths:
        logger.error("No deck files found")
        raise SystemExit(1)

    try:
        asyncio.run(run_import_decks(paths))
    except (SQLAlchemyError, OSError) as e:
        logger.error("Deck import aborted: %s", e)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
