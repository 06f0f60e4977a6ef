"""
Enumerations shared by ORM models, API schemas and validation.

Stored as plain strings in the database so values stay readable in SQL.
"""

from enum import Enum


class ListingType(str, Enum):
    """What the listing user wants to do with the card."""

    SELL = "SELL"
    BUY = "BUY"
    TRADE = "TRADE"


class ListingStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RESERVED = "RESERVED"
    SOLD = "SOLD"
    CANCELLED = "CANCELLED"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PostCategory(str, Enum):
    """Board categories."""

    GENERAL = "GENERAL"
    QUESTION = "QUESTION"
    DECK = "DECK"
    TRADE = "TRADE"
    NEWS = "NEWS"
    STRATEGY = "STRATEGY"
    COLLECTION = "COLLECTION"


# Listing types that carry a price / a card condition
PRICED_LISTING_TYPES = frozenset({ListingType.SELL, ListingType.BUY})
CONDITIONED_LISTING_TYPES = frozenset({ListingType.SELL, ListingType.TRADE})
