"""
Pipeline Stage 1: WINDOWS — rebuild ranking windows from the append-only log.

Every distinct enforced_at is a window boundary. A window runs from its own
boundary up to the next one (the last one runs up to "now"), so the windows
partition the snapshot timeline with no gaps or overlaps. Each window carries
the snapshot's entries for active drivers, joined with the reviews whose
last_updated_at falls in (start_time, end_time].
"""
import logging
from bisect import bisect_left
from collections import defaultdict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Tuple

from driver_ranking.models.driver import Driver
from driver_ranking.models.driver_ranking import DriverRanking
from driver_ranking.models.review import Review
from driver_ranking.pipeline.base import (
    RankingEffect, RankingWindow, ReviewAggregate, as_utc, utcnow,
)

logger = logging.getLogger('pipeline.windows')


def build_window_bounds(boundaries: List[datetime], now: datetime) -> List[Tuple[datetime, datetime]]:
    """Pair each boundary with the next one (LEAD semantics), defaulting to now."""
    ordered = sorted(as_utc(b) for b in set(boundaries))
    ends = ordered[1:] + [as_utc(now)]
    return list(zip(ordered, ends))


def aggregate_reviews(reviews, start_time: datetime, end_time: datetime) -> Dict[int, ReviewAggregate]:
    """Roll up (driver_id, stars, comment, last_updated_at) rows inside one window."""
    buckets = defaultdict(list)
    for driver_id, stars, comment, updated_at in reviews:
        if start_time < as_utc(updated_at) <= end_time:
            buckets[driver_id].append((stars, comment))
    return {driver_id: _rollup(rows) for driver_id, rows in buckets.items()}


def fetch_rank_effects(session, now: datetime = None) -> List[RankingWindow]:
    """
    Reconstruct every ranking window with review statistics attached.

    Returns windows ordered by start_time, entries ordered by rank. Query
    errors propagate; nothing is returned until every window is complete.
    """
    now = as_utc(now or utcnow())

    boundaries = [row[0] for row in session.query(DriverRanking.enforced_at).distinct().all()]
    if not boundaries:
        logger.info("Ranking history is empty — no windows")
        return []
    bounds = build_window_bounds(boundaries, now)

    entries_by_start = defaultdict(list)
    ranking_rows = (
        session.query(DriverRanking.enforced_at, DriverRanking.driver_id, DriverRanking.rank, DriverRanking.tag)
        .join(Driver, Driver.id == DriverRanking.driver_id)
        .filter(Driver.removed.is_(False))
        .order_by(DriverRanking.enforced_at, DriverRanking.rank)
        .all()
    )
    for enforced_at, driver_id, rank, tag in ranking_rows:
        entries_by_start[as_utc(enforced_at)].append((driver_id, rank, tag or ''))

    first_start = bounds[0][0]
    review_rows = (
        session.query(Review.driver_id, Review.stars, Review.comment, Review.last_updated_at)
        .filter(Review.last_updated_at > first_start)
        .order_by(Review.last_updated_at, Review.id)
        .all()
    )
    reviews_by_window = _bucket_reviews(review_rows, bounds)

    windows = []
    for index, (start_time, end_time) in enumerate(bounds):
        aggregates = aggregate_reviews(reviews_by_window[index], start_time, end_time)
        effects = []
        for driver_id, rank, tag in sorted(entries_by_start.get(start_time, []), key=lambda e: e[1]):
            agg = aggregates.get(driver_id, ReviewAggregate())
            effects.append(RankingEffect(
                driver_id=driver_id,
                rank=rank,
                tag=tag,
                avg_stars=agg.avg_stars,
                rating_count=agg.rating_count,
                comments=agg.comments,
            ))
        windows.append(RankingWindow(start_time=start_time, end_time=end_time, entries=effects))

    logger.info("Rebuilt %d ranking windows from %d ranking rows and %d reviews",
                len(windows), len(ranking_rows), len(review_rows))
    return windows


# ── Private helpers ──────────────────────────────────────────────────────────

def _bucket_reviews(review_rows, bounds) -> Dict[int, list]:
    """Assign each review to the single window whose (start, end] contains it."""
    starts = [start for start, _ in bounds]
    buckets = defaultdict(list)
    for row in review_rows:
        updated_at = as_utc(row[3])
        index = bisect_left(starts, updated_at) - 1
        if index < 0 or updated_at > bounds[index][1]:
            continue
        buckets[index].append(row)
    return buckets


def _rollup(rows) -> ReviewAggregate:
    total = sum(Decimal(stars) for stars, _ in rows)
    avg = (total / len(rows)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    return ReviewAggregate(
        avg_stars=float(avg),
        rating_count=len(rows),
        comments=[comment for _, comment in rows],
    )
