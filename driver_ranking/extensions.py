"""
Shared store handles — relational engine and event-log (MongoDB) client.

Each handle is created lazily on first access so importing this module is
always safe, and released exactly once by StoreHandles.close(). The pipeline
acquires them through open_stores(), which closes them on every exit path.
"""
import logging
from contextlib import contextmanager

from pymongo import MongoClient
from sqlalchemy.orm import sessionmaker

from driver_ranking.config import (
    DATABASE_URL,
    MONGODB_URI, MONGODB_DB, EVENTS_COLLECTION,
)
from driver_ranking.database import make_engine

logger = logging.getLogger('driver_ranking.extensions')


class StoreHandles:
    """At most one live engine and one live Mongo client per run."""

    def __init__(self, database_url: str = None, mongodb_uri: str = None, mongodb_db: str = None):
        self.database_url = database_url or DATABASE_URL
        self.mongodb_uri = mongodb_uri or MONGODB_URI
        self.mongodb_db = mongodb_db or MONGODB_DB
        self._engine = None
        self._session_factory = None
        self._mongo_client = None
        self._closed = False

    # ── Relational store ──────────────────────────────────────────────────

    @property
    def engine(self):
        if self._closed:
            raise RuntimeError("Store handles already closed")
        if self._engine is None:
            self._engine = make_engine(self.database_url)
            logger.info("Relational engine initialized")
        return self._engine

    def session(self):
        """Return a new DB session on the shared engine."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine)
        return self._session_factory()

    # ── Event-log store ───────────────────────────────────────────────────

    @property
    def event_db(self):
        if self._closed:
            raise RuntimeError("Store handles already closed")
        if self._mongo_client is None:
            self._mongo_client = MongoClient(self.mongodb_uri)
            logger.info("Connected to MongoDB [%s]", self.mongodb_db)
        return self._mongo_client[self.mongodb_db]

    def events_collection(self):
        return self.event_db[EVENTS_COLLECTION]

    # ── Shutdown ──────────────────────────────────────────────────────────

    def close(self):
        """Release every handle that was opened. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Relational engine disposed")
        if self._mongo_client is not None:
            self._mongo_client.close()
            self._mongo_client = None
            logger.info("MongoDB client closed")


@contextmanager
def open_stores(**kwargs):
    """Scoped acquisition of StoreHandles; handles are closed on exit."""
    stores = StoreHandles(**kwargs)
    try:
        yield stores
    finally:
        stores.close()
