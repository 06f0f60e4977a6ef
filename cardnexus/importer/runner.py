"""
Batch runner.

Drives source files through normalization and the loader, one record at a
time in file order, and reports created / updated / skipped totals per file
and for the whole run.
"""

import json
import logging
import re
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from cardnexus.config import settings
from cardnexus.importer.loader import CardLoader, ReconciliationPolicy
from cardnexus.importer.normalize import RecordValidationError, normalize_card, record_label
from cardnexus.models.import_result import ImportSummary, RecordOutcome

logger = logging.getLogger(__name__)

# regulation-G.json, regulation-G-ja.json, regulation-H-github.json
_REGULATION_FILE = re.compile(r"^regulation-([A-Za-z])(?:-[\w-]+)?\.json$")


class SourceFileError(Exception):
    """Raised when a source file cannot be read as a list of records."""


def read_records(path: Path) -> list[dict[str, Any]]:
    """
    Load every record of a source file.

    Accepts a JSON array, or an object with the array under "data" (the
    envelope of the card API).

    Raises:
        SourceFileError: If the file is missing, unreadable or not a list
    """
    try:
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)
    except FileNotFoundError as e:
        raise SourceFileError(f"File not found: {path}") from e
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SourceFileError(f"Cannot read {path}: {e}") from e

    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        payload = payload["data"]
    if not isinstance(payload, list):
        raise SourceFileError(f"Invalid structure in {path}: expected array or {{data: array}}")
    return payload


def partition_defaults(path: Path) -> dict[str, Any]:
    """Normalization defaults implied by a file name (regulation partitions)."""
    match = _REGULATION_FILE.match(path.name)
    if match:
        return {"regulation_mark": match.group(1).upper()}
    return {}


class BatchRunner:
    """
    Imports card files into storage.

    Usage:
        async with session_scope() as session:
            summary = await BatchRunner(session).run(paths)
    """

    def __init__(
        self,
        session: AsyncSession,
        policy: ReconciliationPolicy = ReconciliationPolicy.API_ID_THEN_NATURAL_KEY,
        progress_every: int | None = None,
        source: str | None = None,
    ) -> None:
        self.loader = CardLoader(session, policy)
        self.progress_every = progress_every or settings.progress_every
        self.source = source

    async def import_record(
        self, record: dict[str, Any], defaults: dict[str, Any]
    ) -> RecordOutcome:
        """Normalize and load one record."""
        try:
            card = normalize_card(record, defaults)
        except RecordValidationError as e:
            logger.warning("Rejected record %s: %s", e.label, e)
            return RecordOutcome.rejected(e.label, str(e))
        except (ValueError, TypeError) as e:
            label = record_label(record)
            logger.error("Failed to normalize record %s: %s", label, e)
            return RecordOutcome.failed(label, str(e))
        return await self.loader.load(card)

    async def import_records(
        self,
        records: Sequence[dict[str, Any]],
        defaults: dict[str, Any] | None = None,
        name: str = "records",
    ) -> ImportSummary:
        """Import an in-memory list of records in order."""
        defaults = dict(defaults or {})
        if self.source and "source" not in defaults:
            defaults["source"] = self.source

        started = time.monotonic()
        outcomes: list[RecordOutcome] = []
        total = len(records)

        for index, record in enumerate(records, start=1):
            outcomes.append(await self.import_record(record, defaults))
            if index % self.progress_every == 0:
                logger.info("%s: %d/%d", name, index, total)

        return ImportSummary.from_outcomes(outcomes, time.monotonic() - started)

    async def import_file(self, path: Path) -> ImportSummary | None:
        """
        Import one file.

        Returns None (after logging) when the file cannot be read.
        """
        try:
            records = read_records(path)
        except SourceFileError as e:
            logger.error("Skipping %s: %s", path.name, e)
            return None

        logger.info("%s: importing %d records", path.name, len(records))
        summary = await self.import_records(records, partition_defaults(path), name=path.name)
        logger.info("%s done: %s", path.name, summary.describe())
        return summary

    async def run(self, paths: Sequence[Path]) -> ImportSummary:
        """Import every file in order and return the run total."""
        started = time.monotonic()
        total = ImportSummary()

        for path in paths:
            summary = await self.import_file(path)
            if summary is not None:
                total = total.merge(summary)

        total.elapsed_seconds = time.monotonic() - started
        logger.info("Import complete: %s", total.describe())
        return total
