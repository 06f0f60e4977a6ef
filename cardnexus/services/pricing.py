"""
Price aggregation.

Card detail views show the latest price and summary statistics computed in
process from a window of recent observations.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from cardnexus.config import PRICE_STATS_WINDOW


class PriceObservation(Protocol):
    price: int
    recorded_at: datetime


@dataclass(frozen=True)
class PriceStats:
    latest: int | None = None
    average: int | None = None
    min: int | None = None
    max: int | None = None


def compute_price_stats(
    observations: Sequence[PriceObservation], window: int = PRICE_STATS_WINDOW
) -> PriceStats:
    """
    Summarize price observations.

    ``latest`` is the most recently recorded price, regardless of the order
    the observations are given in. Average (halves round up), min and max cover the
    ``window`` most recent observations.
    """
    if not observations:
        return PriceStats()

    newest_first = sorted(observations, key=lambda o: o.recorded_at, reverse=True)
    prices = [o.price for o in newest_first[:window]]
    return PriceStats(
        latest=newest_first[0].price,
        average=math.floor(sum(prices) / len(prices) + 0.5),
        min=min(prices),
        max=max(prices),
    )
