"""Tests for value models: canonical cards, import summaries, pagination, envelope."""

from cardnexus.models.card import CanonicalCard
from cardnexus.models.failure import (
    ApiResponse,
    FailureKind,
    ForbiddenError,
    NotFoundError,
)
from cardnexus.models.import_result import ImportSummary, OutcomeStatus, RecordOutcome
from cardnexus.models.pagination import Page


class TestCanonicalCard:
    def test_label(self) -> None:
        assert CanonicalCard(name="Pikachu", game_title="g", card_number="58").label == (
            "Pikachu (58)"
        )
        assert CanonicalCard(name="Pikachu", game_title="g").label == "Pikachu (-)"

    def test_column_values_exclude(self) -> None:
        card = CanonicalCard(name="Pikachu", game_title="g", api_id="base1-58")

        values = card.column_values(exclude=frozenset({"api_id"}))

        assert "api_id" not in values
        assert values["name"] == "Pikachu"
        assert values["attacks"] == []


class TestImportSummary:
    def test_from_outcomes(self) -> None:
        outcomes = [
            RecordOutcome.created("a", 1),
            RecordOutcome.updated("b", 2),
            RecordOutcome.updated("c", 3),
            RecordOutcome.rejected("d", "no name"),
            RecordOutcome.failed("e", "db error"),
        ]

        summary = ImportSummary.from_outcomes(outcomes, 1.5)

        assert (summary.created, summary.updated) == (1, 2)
        assert summary.skipped == 2
        assert summary.processed == 5
        assert summary.saved == 3
        assert [o.label for o in summary.failures] == ["d", "e"]

    def test_merge(self) -> None:
        first = ImportSummary(created=1, updated=2, elapsed_seconds=1.0)
        second = ImportSummary(created=3, rejected=1, elapsed_seconds=2.0)

        merged = first.merge(second)

        assert (merged.created, merged.updated, merged.rejected) == (4, 2, 1)
        assert merged.elapsed_seconds == 3.0

    def test_describe(self) -> None:
        summary = ImportSummary(created=1, updated=2, failed=1, elapsed_seconds=0.25)

        assert summary.describe() == (
            "created=1 updated=2 skipped=1 (rejected=0, failed=1) elapsed=0.2s"
        )

    def test_outcome_ok(self) -> None:
        assert RecordOutcome.created("a", 1).ok
        assert not RecordOutcome.failed("a", "x").ok
        assert RecordOutcome.rejected("a", "x").status == OutcomeStatus.REJECTED


class TestPage:
    def test_meta(self) -> None:
        page = Page(items=[1], total_count=3, page=2, limit=2)

        meta = page.meta()

        assert page.offset == 2
        assert meta.total_pages == 2
        assert meta.has_next is False
        assert meta.has_prev is True

    def test_empty(self) -> None:
        meta = Page(total_count=0, page=1, limit=20).meta()

        assert meta.total_pages == 0
        assert meta.has_next is False
        assert meta.has_prev is False


class TestFailureEnvelope:
    def test_ok(self) -> None:
        response = ApiResponse.ok({"id": 1})

        assert response.model_dump() == {"success": True, "data": {"id": 1}, "error": None}

    def test_not_found(self) -> None:
        error = NotFoundError("Card", 42)

        assert error.status_code == 404
        body = error.to_response().model_dump(mode="json")
        assert body["success"] is False
        assert body["error"] == {"code": "NOT_FOUND", "message": "Card not found", "detail": "42"}

    def test_kind_override(self) -> None:
        error = ForbiddenError("Post is locked", kind=FailureKind.POST_LOCKED)

        assert error.status_code == 403
        assert error.kind == FailureKind.POST_LOCKED
