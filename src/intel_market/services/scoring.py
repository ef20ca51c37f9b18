"""
Reputation and discovery scoring.

Pure functions: no locks, no state, no I/O.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from intel_market.core.timestamps import parse_iso

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from intel_market.core.state import IntelligenceListing


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_reputation(
    ratings: Sequence[int],
    max_rating: int,
    max_reputation: int,
) -> int | None:
    """
    Reputation from the complete rating history of one seller.

    Returns round((mean / max_rating) * max_reputation), or None when the
    seller has no ratings yet (reputation stays unchanged).
    """
    if len(ratings) == 0:
        return None
    mean = sum(ratings) / len(ratings)
    return _round_half_up((mean / max_rating) * max_reputation)


def mean_rating(ratings: Sequence[int]) -> float:
    """Mean of the ratings, 0.0 when there are none."""
    if len(ratings) == 0:
        return 0.0
    return sum(ratings) / len(ratings)


def quality_from_reputation(reputation_score: int) -> float:
    """Listing quality snapshot: min(100, reputation / 10)."""
    return min(100.0, reputation_score / 10)


def age_in_days(created_at: str, now: datetime | None = None) -> int:
    """Whole days elapsed since created_at."""
    reference = now if now is not None else datetime.now(UTC)
    elapsed = reference - parse_iso(created_at)
    return max(0, elapsed.days)


def discovery_score(
    listing: IntelligenceListing,
    quality_weight: float,
    recency_weight: float,
    now: datetime | None = None,
) -> float:
    """quality_score * quality_weight + whole days since listing * recency_weight."""
    return listing.quality_score * quality_weight + age_in_days(listing.created_at, now) * recency_weight


def rank_listings(
    listings: Iterable[IntelligenceListing],
    quality_weight: float,
    recency_weight: float,
) -> list[IntelligenceListing]:
    """
    Order listings by descending discovery score.

    One reference time is used for the whole batch; the sort is stable so
    equal scores keep catalog insertion order.
    """
    now = datetime.now(UTC)
    return sorted(
        listings,
        key=lambda listing: discovery_score(listing, quality_weight, recency_weight, now),
        reverse=True,
    )
