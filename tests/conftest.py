"""Shared test fixtures."""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from driver_ranking.database import Base


T1 = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
T2 = datetime(2026, 1, 8, 9, 0, tzinfo=timezone.utc)
T3 = datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine('sqlite:///:memory:')
    import driver_ranking.models.driver
    import driver_ranking.models.driver_ranking
    import driver_ranking.models.review
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """SQLAlchemy session bound to in-memory SQLite.

    close() is disabled so production code that closes its session in a
    finally block does not invalidate the shared test session.
    """
    Session = sessionmaker(bind=db_engine)
    session = Session()
    _real_close = session.close
    session.close = lambda: None
    yield session
    session.rollback()
    _real_close()


@pytest.fixture
def seed(db_session):
    """Factory helpers that write committed rows into the test DB."""
    from driver_ranking.models.driver import Driver
    from driver_ranking.models.driver_ranking import DriverRanking
    from driver_ranking.models.review import Review

    class _Seed:
        def driver(self, driver_id, removed=False, last_updated_at=T1):
            db_session.add(Driver(id=driver_id, removed=removed, last_updated_at=last_updated_at))
            db_session.commit()

        def snapshot(self, enforced_at, entries):
            """entries: [(driver_id, rank, tag), ...]"""
            for driver_id, rank, tag in entries:
                db_session.add(DriverRanking(driver_id=driver_id, rank=rank, tag=tag, enforced_at=enforced_at))
            db_session.commit()

        def review(self, driver_id, stars, at, comment=None):
            db_session.add(Review(driver_id=driver_id, stars=stars, comment=comment, last_updated_at=at))
            db_session.commit()

    return _Seed()


@pytest.fixture
def events_collection():
    """Mock Mongo `logs` collection — no profile views unless a test says so."""
    collection = MagicMock()
    collection.aggregate.return_value = []
    collection.insert_one.return_value = MagicMock()
    return collection


@pytest.fixture
def stores(db_session, events_collection):
    """StoreHandles stand-in wired to the test session and mock collection."""
    class _Stores:
        def session(self):
            return db_session

        def events_collection(self):
            return events_collection

    return _Stores()
