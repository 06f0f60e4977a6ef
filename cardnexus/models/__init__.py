from cardnexus.models.card import CanonicalCard
from cardnexus.models.enums import ListingStatus, ListingType, PostCategory, TransactionStatus
from cardnexus.models.failure import (
    ApiResponse,
    AuthenticationRequiredError,
    ConflictError,
    ErrorDetail,
    FailureKind,
    ForbiddenError,
    KnownError,
    NotFoundError,
    ValidationFailedError,
)
from cardnexus.models.import_result import ImportSummary, OutcomeStatus, RecordOutcome
from cardnexus.models.pagination import Page, PaginationMeta

__all__ = [
    "ApiResponse",
    "AuthenticationRequiredError",
    "CanonicalCard",
    "ConflictError",
    "ErrorDetail",
    "FailureKind",
    "ForbiddenError",
    "ImportSummary",
    "KnownError",
    "ListingStatus",
    "ListingType",
    "NotFoundError",
    "OutcomeStatus",
    "Page",
    "PaginationMeta",
    "PostCategory",
    "RecordOutcome",
    "TransactionStatus",
    "ValidationFailedError",
]
