"""
Review model — star rating + optional comment left for a driver.
"""
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.sql import func

from driver_ranking.database import Base


class Review(Base):
    __tablename__ = 'review'

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey('driver.id'), nullable=False)
    stars = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    last_updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
