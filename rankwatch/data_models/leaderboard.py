"""
Leaderboard data models for the public read side.

Provides immutable data transfer objects for leaderboard and trend queries.
"""

from dataclasses import dataclass
from typing import List, Optional

from rankwatch.data_models.stats import TopViewer


@dataclass(frozen=True)
class LeaderboardEntry:
    """Single leaderboard row."""
    position: int
    channel_id: str
    display_name: str
    mean_score: float
    mean_tier: Optional[str]
    mean_division: Optional[str]
    mean_lp: Optional[int]
    median_score: Optional[float]
    median_tier: Optional[str]
    median_division: Optional[str]
    median_lp: Optional[int]
    viewer_count: int


@dataclass(frozen=True)
class LeaderboardPage:
    """Paginated leaderboard data."""
    entries: List[LeaderboardEntry]
    limit: int
    offset: int
    has_more: bool
    total_eligible_channels: int


@dataclass(frozen=True)
class ChannelStatsView:
    """Detailed all-time statistics for one channel."""
    channel_id: str
    display_name: str
    viewer_count: int
    mean_score: Optional[float]
    mean_tier: Optional[str]
    mean_division: Optional[str]
    mean_lp: Optional[int]
    median_score: Optional[float]
    median_tier: Optional[str]
    median_division: Optional[str]
    median_lp: Optional[int]
    top_viewers: List[TopViewer]
    is_eligible: bool
    computed_stat_date: Optional[str]
    leaderboard_position: Optional[int] = None


@dataclass(frozen=True)
class TrendPoint:
    """One day of a channel's trend series."""
    stat_date: str
    daily_viewer_count: int
    daily_mean_score: Optional[float]
    daily_median_score: Optional[float]
    alltime_mean_score: Optional[float]
    alltime_median_score: Optional[float]
    alltime_viewer_count: Optional[int]
