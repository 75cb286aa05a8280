"""
Driver model — one row per driver. Only drivers with removed = false are ranked.
"""
from sqlalchemy import Column, Integer, Boolean, DateTime
from sqlalchemy.sql import func

from driver_ranking.database import Base


class Driver(Base):
    __tablename__ = 'driver'

    id = Column(Integer, primary_key=True, autoincrement=True)
    removed = Column(Boolean, nullable=False, default=False)
    last_updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
