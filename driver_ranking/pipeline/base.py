"""
Ranking pipeline data contracts.

Every stage passes these dataclasses along; only the evidence serializer turns
them into the JSON shape the ranking oracle reads. All timestamps are
timezone-aware UTC.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Dict, List, Any, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class RankingEntry:
    """One driver's position in a snapshot (or in a proposal)."""
    driver_id: int
    rank: int
    tag: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ActiveDriver:
    id: int
    last_updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'last_updated_at': as_utc(self.last_updated_at).isoformat() if self.last_updated_at else None,
        }


@dataclass(frozen=True)
class ReviewAggregate:
    avg_stars: float = 0
    rating_count: int = 0
    comments: Optional[List[Optional[str]]] = None


@dataclass(frozen=True)
class ProfileViewStats:
    profile_views: int = 0
    distinct_profile_views: int = 0


@dataclass(frozen=True)
class RankingEffect:
    """
    A ranking entry joined with what happened while it was in effect.

    Telemetry fields stay None until the enrichment stage fills them in.
    """
    driver_id: int
    rank: int
    tag: str = ''
    avg_stars: float = 0
    rating_count: int = 0
    comments: Optional[List[Optional[str]]] = None
    profile_views: Optional[int] = None
    distinct_profile_views: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'rank': self.rank,
            'tag': self.tag,
            'driver_id': self.driver_id,
            'avg_stars': self.avg_stars,
            'rating_count': self.rating_count,
            'comments': self.comments,
        }
        if self.profile_views is not None:
            data['profile_views'] = self.profile_views
            data['distinct_profile_views'] = self.distinct_profile_views
        return data


@dataclass(frozen=True)
class RankingWindow:
    """Half-open interval during which one snapshot was in effect."""
    start_time: datetime
    end_time: datetime
    entries: List[RankingEffect] = field(default_factory=list)

    @property
    def driver_ids(self) -> List[int]:
        return [entry.driver_id for entry in self.entries]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'rank_and_effect': [entry.to_dict() for entry in self.entries],
        }
