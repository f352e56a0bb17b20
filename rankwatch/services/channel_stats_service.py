"""
Read side for channel statistics.

Serves the public leaderboard, per-channel detail and daily trend series from
the rows written by the aggregation cycle.
"""

import json
import logging
import re
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import func, select

from rankwatch.constants import StatsConstants
from rankwatch.data_models.leaderboard import (
    ChannelStatsView, LeaderboardEntry, LeaderboardPage, TrendPoint
)
from rankwatch.data_models.stats import TopViewer
from rankwatch.database.models import Channel, ChannelWindowStats
from rankwatch.services.base import BaseService
from rankwatch.utils.stats_exceptions import ChannelNotFoundError, InvalidChannelNameError
from rankwatch.utils.window_clock import WindowClock

logger = logging.getLogger(__name__)

CHANNEL_NAME_PATTERN = re.compile(r'^[a-z0-9_]{3,25}$')


class ChannelStatsService(BaseService):
    """Service for leaderboard and channel statistics queries."""

    def __init__(self, session_factory, window_clock: Optional[WindowClock] = None):
        super().__init__(session_factory)
        self.window_clock = window_clock or WindowClock()

    @staticmethod
    def sanitize_channel_name(name: str) -> str:
        """Lowercase and validate a channel login."""
        cleaned = (name or '').strip().lower()
        if not CHANNEL_NAME_PATTERN.match(cleaned):
            raise InvalidChannelNameError(name)
        return cleaned

    async def get_leaderboard(
        self,
        limit: int = StatsConstants.DEFAULT_LEADERBOARD_LIMIT,
        offset: int = 0
    ) -> LeaderboardPage:
        """Eligible channels ordered by all-time mean score, highest first."""
        limit = min(max(1, limit), StatsConstants.MAX_LEADERBOARD_LIMIT)
        offset = max(0, offset)

        async with self.get_session() as session:
            stmt = (
                select(ChannelWindowStats, Channel.display_name)
                .outerjoin(Channel, Channel.channel_twitch_id == ChannelWindowStats.channel_twitch_id)
                .where(
                    ChannelWindowStats.window_key == StatsConstants.ALL_TIME_WINDOW_KEY,
                    ChannelWindowStats.is_eligible.is_(True)
                )
                .order_by(ChannelWindowStats.mean_score.desc(), ChannelWindowStats.channel_twitch_id)
                .limit(limit + 1)
                .offset(offset)
            )
            rows = (await session.execute(stmt)).all()

            total = await session.scalar(
                select(func.count()).select_from(ChannelWindowStats).where(
                    ChannelWindowStats.window_key == StatsConstants.ALL_TIME_WINDOW_KEY,
                    ChannelWindowStats.is_eligible.is_(True)
                )
            )

        has_more = len(rows) > limit
        entries = [
            LeaderboardEntry(
                position=offset + index + 1,
                channel_id=stats.channel_twitch_id,
                display_name=display_name or stats.channel_twitch_id,
                mean_score=stats.mean_score,
                mean_tier=stats.mean_tier,
                mean_division=stats.mean_division,
                mean_lp=stats.mean_lp,
                median_score=stats.median_score,
                median_tier=stats.median_tier,
                median_division=stats.median_division,
                median_lp=stats.median_lp,
                viewer_count=stats.viewer_count
            )
            for index, (stats, display_name) in enumerate(rows[:limit])
        ]

        return LeaderboardPage(
            entries=entries,
            limit=limit,
            offset=offset,
            has_more=has_more,
            total_eligible_channels=total or 0
        )

    async def get_channel_stats(self, channel_name: str) -> ChannelStatsView:
        """
        All-time statistics for one channel with its leaderboard position.

        Raises:
            InvalidChannelNameError: If the name fails validation
            ChannelNotFoundError: If the channel has never been aggregated
        """
        channel_id = self.sanitize_channel_name(channel_name)

        async with self.get_session() as session:
            stats = await session.get(ChannelWindowStats, (channel_id, StatsConstants.ALL_TIME_WINDOW_KEY))
            if stats is None:
                raise ChannelNotFoundError(channel_id)

            channel = await session.get(Channel, channel_id)

            position = None
            if stats.is_eligible:
                higher = await session.scalar(
                    select(func.count()).select_from(ChannelWindowStats).where(
                        ChannelWindowStats.window_key == StatsConstants.ALL_TIME_WINDOW_KEY,
                        ChannelWindowStats.is_eligible.is_(True),
                        ChannelWindowStats.mean_score > stats.mean_score
                    )
                )
                position = (higher or 0) + 1

        return ChannelStatsView(
            channel_id=channel_id,
            display_name=(channel.display_name if channel and channel.display_name else channel_id),
            viewer_count=stats.viewer_count,
            mean_score=stats.mean_score,
            mean_tier=stats.mean_tier,
            mean_division=stats.mean_division,
            mean_lp=stats.mean_lp,
            median_score=stats.median_score,
            median_tier=stats.median_tier,
            median_division=stats.median_division,
            median_lp=stats.median_lp,
            top_viewers=self._parse_top_viewers(stats.top_viewers_json),
            is_eligible=bool(stats.is_eligible),
            computed_stat_date=stats.computed_stat_date,
            leaderboard_position=position
        )

    async def get_channel_trend(self, channel_name: str, days: int = StatsConstants.DEFAULT_TREND_DAYS) -> List[TrendPoint]:
        """Day rows of the last N stat days, newest first."""
        channel_id = self.sanitize_channel_name(channel_name)
        days = min(max(1, days), StatsConstants.MAX_TREND_DAYS)
        start_key = WindowClock.format_date(self.window_clock.stat_date() - timedelta(days=days))

        async with self.get_session() as session:
            result = await session.execute(
                select(ChannelWindowStats)
                .where(
                    ChannelWindowStats.channel_twitch_id == channel_id,
                    ChannelWindowStats.window_key != StatsConstants.ALL_TIME_WINDOW_KEY,
                    ChannelWindowStats.window_key >= start_key
                )
                .order_by(ChannelWindowStats.window_key.desc())
            )
            rows = result.scalars().all()

        return [
            TrendPoint(
                stat_date=row.window_key,
                daily_viewer_count=row.viewer_count,
                daily_mean_score=row.mean_score,
                daily_median_score=row.median_score,
                alltime_mean_score=row.alltime_mean_score,
                alltime_median_score=row.alltime_median_score,
                alltime_viewer_count=row.alltime_viewer_count
            )
            for row in rows
        ]

    @staticmethod
    def _parse_top_viewers(raw: Optional[str]) -> List[TopViewer]:
        try:
            items = json.loads(raw or '[]')
        except json.JSONDecodeError:
            logger.warning(f"Malformed top_viewers_json: {raw!r}")
            return []
        return [
            TopViewer(
                display_name=item.get('display_name', ''),
                tier=item.get('tier'),
                division=item.get('division'),
                points=item.get('points', 0),
                score=item.get('score', 0.0)
            )
            for item in items
        ]
