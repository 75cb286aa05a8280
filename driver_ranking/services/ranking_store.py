"""
Relational persistence for the ranking job — active roster + snapshot commit.

Unlike audit events, a failed commit is fatal: the session is rolled back so no
partial snapshot exists, and the error propagates to the orchestrator.
"""
import logging
from datetime import datetime
from typing import List

from driver_ranking.models.driver import Driver
from driver_ranking.models.driver_ranking import DriverRanking
from driver_ranking.pipeline.base import ActiveDriver, RankingEntry, as_utc

logger = logging.getLogger('services.ranking_store')


def fetch_active_drivers(session) -> List[ActiveDriver]:
    """Every driver not marked removed, ordered by id."""
    rows = (
        session.query(Driver.id, Driver.last_updated_at)
        .filter(Driver.removed.is_(False))
        .order_by(Driver.id)
        .all()
    )
    return [ActiveDriver(id=driver_id, last_updated_at=updated_at) for driver_id, updated_at in rows]


def commit_ranking(session, rankings: List[RankingEntry], enforced_at: datetime) -> int:
    """
    Insert one driver_ranking row per entry, all sharing enforced_at.

    One transaction: either every row lands or none do. Existing snapshots are
    never touched. Returns the number of rows written.
    """
    enforced_at = as_utc(enforced_at)
    rows = [
        DriverRanking(
            driver_id=int(entry.driver_id),
            rank=int(entry.rank),
            tag=entry.tag,
            enforced_at=enforced_at,
        )
        for entry in rankings
    ]
    try:
        session.add_all(rows)
        session.commit()
    except Exception:
        session.rollback()
        logger.error("Failed to commit ranking snapshot at %s", enforced_at.isoformat(), exc_info=True)
        raise

    logger.info("Committed ranking snapshot at %s with %d entries", enforced_at.isoformat(), len(rows))
    return len(rows)
