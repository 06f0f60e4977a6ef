"""
Card Nexus services.

Request-independent helpers used by the API layer.
"""

from cardnexus.services.passwords import hash_password, verify_password
from cardnexus.services.pricing import PriceStats, compute_price_stats
from cardnexus.services.text import decode_entities, excerpt

__all__ = [
    "PriceStats",
    "compute_price_stats",
    "decode_entities",
    "excerpt",
    "hash_password",
    "verify_password",
]
