"""
Import the set catalog from data/pokemon-sets/en.json.
"""

import argparse
import asyncio
import logging
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from cardnexus.config import settings
from cardnexus.db.database import session_scope
from cardnexus.importer.runner import SourceFileError
from cardnexus.importer.sets import import_sets
from cardnexus.models.import_result import ImportSummary

logger = logging.getLogger(__name__)


def default_path(data_dir: Path) -> Path:
    return data_dir / "pokemon-sets" / "en.json"


async def run_import_sets(path: Path) -> ImportSummary:
    async with session_scope() as session:
        return await import_sets(session, path)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    parser = argparse.ArgumentParser(description="Import card sets")
    parser.add_argument("path", nargs="?", type=Path, default=default_path(settings.data_dir))
    args = parser.parse_args(argv)

    try:
        asyncio.run(run_import_sets(args.path))
    except SourceFileError as e:
        logger.error("%s", e)
        raise SystemExit(1) from e
    except (SQLAlchemyError, OSError) as e:
        logger.error("Set import aborted: %s", e)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
