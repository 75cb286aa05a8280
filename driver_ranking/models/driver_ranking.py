"""
DriverRanking model — append-only ranking log.

All rows sharing one enforced_at form a snapshot. Rows are only ever inserted.
"""
from sqlalchemy import CheckConstraint, Column, Integer, Text, DateTime, ForeignKey, UniqueConstraint

from driver_ranking.database import Base


class DriverRanking(Base):
    __tablename__ = 'driver_ranking'
    __table_args__ = (
        UniqueConstraint('enforced_at', 'rank', name='uq_driver_ranking_enforced_at_rank'),
        CheckConstraint('rank > 0', name='ck_driver_ranking_rank_positive'),
    )

    enforced_at = Column(DateTime(timezone=True), primary_key=True)
    driver_id = Column(Integer, ForeignKey('driver.id'), primary_key=True)
    rank = Column(Integer, nullable=False)
    tag = Column(Text, nullable=True)
