"""Tests for driver_ranking.services.ranking_store — active roster + snapshot commit."""
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from driver_ranking.models.driver_ranking import DriverRanking
from driver_ranking.pipeline.base import ActiveDriver, RankingEntry, as_utc
from driver_ranking.services.ranking_store import commit_ranking, fetch_active_drivers

UTC = timezone.utc
T1 = datetime(2026, 1, 1, 9, 0, tzinfo=UTC)
T2 = datetime(2026, 1, 8, 9, 0, tzinfo=UTC)
T3 = datetime(2026, 1, 15, 9, 0, tzinfo=UTC)


def _rows_at(session, enforced_at):
    return [
        row for row in session.query(DriverRanking).all()
        if as_utc(row.enforced_at) == enforced_at
    ]


# ── fetch_active_drivers ─────────────────────────────────────────────────────

class TestFetchActiveDrivers:

    def test_excludes_removed_and_orders_by_id(self, db_session, seed):
        seed.driver(5)
        seed.driver(2)
        seed.driver(9, removed=True)

        drivers = fetch_active_drivers(db_session)

        assert [d.id for d in drivers] == [2, 5]
        assert all(isinstance(d, ActiveDriver) for d in drivers)

    def test_carries_last_updated_at(self, db_session, seed):
        seed.driver(1, last_updated_at=T2)
        driver = fetch_active_drivers(db_session)[0]
        assert as_utc(driver.last_updated_at) == T2
        assert driver.to_dict() == {'id': 1, 'last_updated_at': T2.isoformat()}

    def test_no_drivers(self, db_session):
        assert fetch_active_drivers(db_session) == []


# ── commit_ranking ───────────────────────────────────────────────────────────

class TestCommitRanking:

    def _seed_history(self, seed):
        for driver_id in (1, 2, 3):
            seed.driver(driver_id)
        seed.snapshot(T1, [(1, 1, ''), (2, 2, ''), (3, 3, '')])

    def test_writes_one_row_per_entry_sharing_timestamp(self, db_session, seed):
        self._seed_history(seed)
        proposal = [
            RankingEntry(driver_id=3, rank=1, tag='Rising'),
            RankingEntry(driver_id=1, rank=2, tag=''),
            RankingEntry(driver_id=2, rank=3, tag='New'),
        ]

        written = commit_ranking(db_session, proposal, T3)

        assert written == 3
        rows = _rows_at(db_session, T3)
        assert sorted((r.driver_id, r.rank, r.tag) for r in rows) == [
            (1, 2, ''), (2, 3, 'New'), (3, 1, 'Rising'),
        ]

    def test_prior_snapshots_untouched(self, db_session, seed):
        self._seed_history(seed)
        commit_ranking(db_session, [RankingEntry(1, 3), RankingEntry(2, 1), RankingEntry(3, 2)], T3)

        prior = _rows_at(db_session, T1)
        assert sorted((r.driver_id, r.rank) for r in prior) == [(1, 1), (2, 2), (3, 3)]

    def test_failed_batch_leaves_no_partial_snapshot(self, db_session, seed):
        self._seed_history(seed)
        # duplicate rank violates uq_driver_ranking_enforced_at_rank
        proposal = [RankingEntry(1, 1), RankingEntry(2, 2), RankingEntry(3, 2)]

        with pytest.raises(IntegrityError):
            commit_ranking(db_session, proposal, T3)

        assert _rows_at(db_session, T3) == []
        assert len(_rows_at(db_session, T1)) == 3

    def test_non_positive_rank_rejected_by_store(self, db_session, seed):
        self._seed_history(seed)
        proposal = [RankingEntry(1, 0), RankingEntry(2, 1), RankingEntry(3, 2)]

        with pytest.raises(IntegrityError):
            commit_ranking(db_session, proposal, T3)

        assert _rows_at(db_session, T3) == []

    def test_commit_failure_rolls_back_and_reraises(self):
        session = MagicMock()
        session.commit.side_effect = RuntimeError("connection lost")

        with pytest.raises(RuntimeError, match="connection lost"):
            commit_ranking(session, [RankingEntry(1, 1)], T3)

        session.rollback.assert_called_once()

    def test_naive_timestamp_treated_as_utc(self, db_session, seed):
        self._seed_history(seed)
        commit_ranking(db_session, [RankingEntry(1, 1), RankingEntry(2, 2), RankingEntry(3, 3)],
                       T3.replace(tzinfo=None))
        assert len(_rows_at(db_session, T3)) == 3
