"""
Per-record import outcomes and run summaries.

The loader returns one RecordOutcome per record; the runner keeps the
sequence and derives counters from it, so a summary can be rebuilt and
checked without replaying the loop that produced it.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class OutcomeStatus(str, Enum):
    """What happened to one source record."""

    CREATED = "created"
    UPDATED = "updated"
    # Failed required-field validation before any write
    REJECTED = "rejected"
    # Write attempted and rolled back
    FAILED = "failed"


@dataclass(frozen=True)
class RecordOutcome:
    status: OutcomeStatus
    label: str
    card_id: int | None = None
    reason: str | None = None

    @classmethod
    def created(cls, label: str, card_id: int) -> "RecordOutcome":
        return cls(OutcomeStatus.CREATED, label, card_id=card_id)

    @classmethod
    def updated(cls, label: str, card_id: int) -> "RecordOutcome":
        return cls(OutcomeStatus.UPDATED, label, card_id=card_id)

    @classmethod
    def rejected(cls, label: str, reason: str) -> "RecordOutcome":
        return cls(OutcomeStatus.REJECTED, label, reason=reason)

    @classmethod
    def failed(cls, label: str, reason: str) -> "RecordOutcome":
        return cls(OutcomeStatus.FAILED, label, reason=reason)

    @property
    def ok(self) -> bool:
        return self.status in (OutcomeStatus.CREATED, OutcomeStatus.UPDATED)


@dataclass
class ImportSummary:
    """Aggregated counters for one file or one whole run."""

    created: int = 0
    updated: int = 0
    rejected: int = 0
    failed: int = 0
    elapsed_seconds: float = 0.0
    failures: list[RecordOutcome] = field(default_factory=list)

    @classmethod
    def from_outcomes(
        cls, outcomes: Iterable[RecordOutcome], elapsed_seconds: float = 0.0
    ) -> "ImportSummary":
        outcomes = list(outcomes)
        counts = Counter(o.status for o in outcomes)
        return cls(
            created=counts[OutcomeStatus.CREATED],
            updated=counts[OutcomeStatus.UPDATED],
            rejected=counts[OutcomeStatus.REJECTED],
            failed=counts[OutcomeStatus.FAILED],
            elapsed_seconds=elapsed_seconds,
            failures=[o for o in outcomes if not o.ok],
        )

    @property
    def skipped(self) -> int:
        """Records that did not reach storage, for any reason."""
        return self.rejected + self.failed

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.skipped

    @property
    def saved(self) -> int:
        return self.created + self.updated

    def merge(self, other: "ImportSummary") -> "ImportSummary":
        """Combine two summaries (e.g. per-file into per-run)."""
        return ImportSummary(
            created=self.created + other.created,
            updated=self.updated + other.updated,
            rejected=self.rejected + other.rejected,
            failed=self.failed + other.failed,
            elapsed_seconds=self.elapsed_seconds + other.elapsed_seconds,
            failures=[*self.failures, *other.failures],
        )

    def describe(self) -> str:
        return (
            f"created={self.created} updated={self.updated} skipped={self.skipped} "
            f"(rejected={self.rejected}, failed={self.failed}) "
            f"elapsed={self.elapsed_seconds:.1f}s"
        )
