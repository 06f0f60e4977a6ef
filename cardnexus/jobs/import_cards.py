"""
Import card JSON files into the database.

Usage:
    python -m cardnexus.jobs.import_cards                      # data/regulation-*.json
    python -m cardnexus.jobs.import_cards data/all-cards.json --source github
"""

import argparse
import asyncio
import logging
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from cardnexus.config import settings
from cardnexus.db.database import session_scope
from cardnexus.importer.loader import ReconciliationPolicy
from cardnexus.importer.runner import BatchRunner
from cardnexus.models.import_result import ImportSummary

logger = logging.getLogger(__name__)


def default_paths(data_dir: Path) -> list[Path]:
    """Every regulation partition in the data directory, in name order."""
    return sorted(data_dir.glob("regulation-*.json"))


async def run_import(
    paths: list[Path],
    policy: ReconciliationPolicy = ReconciliationPolicy.API_ID_THEN_NATURAL_KEY,
    source: str | None = None,
    progress_every: int | None = None,
) -> ImportSummary:
    """
    Import the given files in one session.

    Raises:
        SQLAlchemyError: If the database cannot be reached
    """
    logger.info("Importing %d file(s)", len(paths))
    async with session_scope() as session:
        runner = BatchRunner(session, policy=policy, progress_every=progress_every, source=source)
        return await runner.run(paths)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import card JSON files")
    parser.add_argument("paths", nargs="*", type=Path, help="Files to import, in order")
    parser.add_argument("--data-dir", type=Path, default=settings.data_dir)
    parser.add_argument(
        "--policy",
        choices=[p.value for p in ReconciliationPolicy],
        default=ReconciliationPolicy.API_ID_THEN_NATURAL_KEY.value,
    )
    parser.add_argument("--source", help="Stored on each card as its import source")
    parser.add_argument("--progress-every", type=int, default=settings.progress_every)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = parse_args(argv)
    paths = args.paths or default_paths(args.data_dir)
    if not paths:
        logger.error("No files to import in %s", args.data_dir)
        raise SystemExit(1)

    try:
        asyncio.run(
            run_import(
                paths,
                policy=ReconciliationPolicy(args.policy),
                source=args.source,
                progress_every=args.progress_every,
            )
        )
    except (SQLAlchemyError, OSError) as e:
        logger.error("Import aborted: %s", e)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
