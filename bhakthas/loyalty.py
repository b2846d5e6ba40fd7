"""Bhakthi points ledger.

Points accrue from verified temple visits. Every full 1000 points unlocks a
25% storefront discount, capped at 25%. Nothing here is persisted; the
summary is recomputed from the visits on every read.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable

from .models import TempleVisit

POINTS_PER_TIER = 1000
DISCOUNT_PER_TIER = 25
MAX_DISCOUNT_PERCENT = 25


@dataclass(frozen=True)
class LedgerSummary:
    score: int
    discount_percent: int
    progress_to_next: int
    points_to_next: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def discount_for_score(score: int) -> int:
    if score < 0:
        raise ValueError("score cannot be negative")
    return min((score // POINTS_PER_TIER) * DISCOUNT_PER_TIER, MAX_DISCOUNT_PERCENT)


def summarize(visits: Iterable[TempleVisit]) -> LedgerSummary:
    # Unverified visits never count, whatever the caller already filtered
    score = sum(visit.points_earned or 0 for visit in visits if visit.verified)
    progress = score % POINTS_PER_TIER
    return LedgerSummary(
        score=score,
        discount_percent=discount_for_score(score),
        progress_to_next=progress,
        points_to_next=POINTS_PER_TIER - progress,
    )


def ledger_for_user(user_id: int | None) -> LedgerSummary:
    """Summarize the verified visits of a user; anonymous users score zero."""
    if user_id is None:
        return summarize([])
    visits = (
        TempleVisit.query.filter_by(user_id=user_id, verified=True)
        .order_by(TempleVisit.visit_date.asc())
        .all()
    )
    return summarize(visits)
