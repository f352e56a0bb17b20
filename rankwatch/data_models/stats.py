"""
Channel statistics data models.

Provides immutable data transfer objects passed between the exclusion filter,
the aggregation engine and the batch scheduler.
"""

import json
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

from rankwatch.constants import StatsConstants
from rankwatch.data_models.rank import DisplayRank, RankObservation


@dataclass(frozen=True)
class StatWindow:
    """Either the unbounded all-time window or one canonical day."""
    stat_date: Optional[date] = None
    
    @classmethod
    def all_time(cls) -> 'StatWindow':
        return cls(None)
    
    @classmethod
    def day(cls, stat_date: date) -> 'StatWindow':
        return cls(stat_date)
    
    @property
    def is_all_time(self) -> bool:
        return self.stat_date is None
    
    @property
    def key(self) -> str:
        """Storage key: 'all_time' or a 'YYYY-MM-DD' date string."""
        if self.stat_date is None:
            return StatsConstants.ALL_TIME_WINDOW_KEY
        return self.stat_date.strftime(StatsConstants.STAT_DATE_FORMAT)


@dataclass(frozen=True)
class ViewerRankRow:
    """Rank row for one viewer as read from storage."""
    viewer_id: str
    display_name: str
    show_peak: bool
    current: RankObservation
    peak: Optional[RankObservation]


@dataclass(frozen=True)
class ViewerScoreEntry:
    """Scored viewer for one (channel, window) computation."""
    viewer_id: str
    display_name: str
    tier: str
    division: Optional[str]
    points: int
    score: float


@dataclass(frozen=True)
class TopViewer:
    """One row of a channel's top-N list."""
    display_name: str
    tier: str
    division: Optional[str]
    points: int
    score: float
    
    def to_dict(self) -> Dict:
        return {
            'display_name': self.display_name,
            'tier': self.tier,
            'division': self.division,
            'points': self.points,
            'score': self.score,
        }


@dataclass(frozen=True)
class ChannelWindowStats:
    """Aggregate result for one (channel, window) pair."""
    channel_id: str
    window: StatWindow
    viewer_count: int
    mean_score: Optional[float]
    median_score: Optional[float]
    mean_rank: Optional[DisplayRank]
    median_rank: Optional[DisplayRank]
    top_viewers: Tuple[TopViewer, ...]
    eligible: bool
    # Day rows carry the all-time aggregate of the same pass for trend display
    alltime_mean_score: Optional[float] = None
    alltime_median_score: Optional[float] = None
    alltime_viewer_count: Optional[int] = None
    
    @property
    def is_empty(self) -> bool:
        return self.viewer_count == 0
    
    def top_viewers_json(self) -> str:
        """Deterministic JSON encoding of the top-N list."""
        return json.dumps([tv.to_dict() for tv in self.top_viewers], sort_keys=True)


@dataclass(frozen=True)
class PeakUpdateResult:
    """Outcome of a rank write with respect to the stored peak."""
    viewer_id: str
    peak_updated: Optional[str]  # 'explicit_override', 'rank_comparison' or None
    peak: Optional[RankObservation]


@dataclass
class CycleReport:
    """Tally for one aggregation cycle."""
    stat_date: date
    channels_total: int = 0
    processed: int = 0
    failed: int = 0
    failed_channels: List[str] = field(default_factory=list)
    skipped_locked: bool = False
