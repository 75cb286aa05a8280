"""
Declarative base + engine factory.

Defaults to SQLite for local dev, Postgres in production. Postgres sessions are
pinned to DATABASE_TIMEZONE so window boundaries come back in UTC.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase

from driver_ranking.config import DATABASE_URL, DATABASE_TIMEZONE


class Base(DeclarativeBase):
    pass


def make_engine(database_url: str = None):
    """Build an engine for the relational store."""
    # Hosted Postgres often injects postgres:// but SQLAlchemy 2.x requires postgresql://
    url = (database_url or DATABASE_URL).replace('postgres://', 'postgresql://', 1)

    # SQLite needs different engine kwargs than Postgres
    if url.startswith('sqlite'):
        return create_engine(url, connect_args={'check_same_thread': False})
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        connect_args={'options': f'-c timezone={DATABASE_TIMEZONE}'},
    )
