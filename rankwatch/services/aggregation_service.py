"""
Channel Statistics Aggregation Service

Computes per-channel statistics over the filtered viewer set of a window and
writes them as a full replacement of the (channel, window) row. The all-time
window and the current stat day are computed in one pass; the day row also
records the all-time aggregate for trend display.

Key Features:
- Mean and median of viewer scores with display ranks recovered from the score
- Top-N viewers by descending score with a stable tie-break on scan order
- Zero-state rows for known channels without qualifying viewers
- Idempotent recomputation: the same inputs always produce the same row
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import FrozenSet, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from rankwatch.config import Config
from rankwatch.data_models.stats import (
    ChannelWindowStats, StatWindow, TopViewer, ViewerRankRow, ViewerScoreEntry
)
from rankwatch.database.models import ChannelWindowStats as ChannelWindowStatsRow
from rankwatch.services.base import BaseService
from rankwatch.services.exclusion_filter import ExclusionFilter
from rankwatch.utils.peak_tracker import select_effective_rank
from rankwatch.utils.rank_score import RankScore
from rankwatch.utils.stats_exceptions import PersistenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelAggregationResult:
    """Rows written for one channel in one pass."""
    all_time: ChannelWindowStats
    day: Optional[ChannelWindowStats]


def median(scores: Sequence[float]) -> float:
    """Median of a non-empty list; even lengths average the two middle values."""
    ordered = sorted(scores)
    middle = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[middle]
    return (ordered[middle - 1] + ordered[middle]) / 2


def score_viewers(rows: Sequence[ViewerRankRow]) -> List[ViewerScoreEntry]:
    """
    Score each viewer's effective rank.

    Viewers whose effective rank is unrecognized are left out rather than
    counted as the lowest rank.
    """
    entries = []
    for row in rows:
        effective = select_effective_rank(row.show_peak, row.current, row.peak)
        if effective is None:
            continue
        score = RankScore.calculate_score(effective)
        if score is None:
            logger.debug(f"Skipping viewer {row.viewer_id} with invalid rank {effective}")
            continue
        entries.append(ViewerScoreEntry(
            viewer_id=row.viewer_id,
            display_name=row.display_name,
            tier=effective.tier,
            division=effective.division,
            points=effective.points,
            score=score
        ))
    return entries


def compute_window_stats(
    channel_id: str,
    window: StatWindow,
    entries: Sequence[ViewerScoreEntry],
    all_time: Optional[ChannelWindowStats] = None
) -> ChannelWindowStats:
    """
    Aggregate scored viewers into one statistics row.

    Args:
        channel_id: Channel login
        window: Window being computed
        entries: Scored viewers in scan order
        all_time: All-time result of the same pass, recorded on day rows

    Returns:
        ChannelWindowStats; a zero-state row when entries is empty
    """
    context = {}
    if all_time is not None:
        context = {
            'alltime_mean_score': all_time.mean_score,
            'alltime_median_score': all_time.median_score,
            'alltime_viewer_count': all_time.viewer_count,
        }

    if not entries:
        return ChannelWindowStats(
            channel_id=channel_id,
            window=window,
            viewer_count=0,
            mean_score=None,
            median_score=None,
            mean_rank=None,
            median_rank=None,
            top_viewers=(),
            eligible=False,
            **context
        )

    scores = [entry.score for entry in entries]
    mean_score = sum(scores) / len(scores)
    median_score = median(scores)

    # sorted() is stable, so equal scores keep scan order
    ranked = sorted(entries, key=lambda entry: entry.score, reverse=True)
    top_viewers = tuple(
        TopViewer(
            display_name=entry.display_name,
            tier=entry.tier,
            division=entry.division,
            points=entry.points,
            score=entry.score
        )
        for entry in ranked[:Config.TOP_VIEWERS_LIMIT]
    )

    return ChannelWindowStats(
        channel_id=channel_id,
        window=window,
        viewer_count=len(entries),
        mean_score=mean_score,
        median_score=median_score,
        mean_rank=RankScore.score_to_rank(mean_score),
        median_rank=RankScore.score_to_rank(median_score),
        top_viewers=top_viewers,
        eligible=len(entries) >= Config.ELIGIBILITY_MIN_VIEWERS,
        **context
    )


class AggregationEngine(BaseService):
    """Computes and stores channel statistics for the all-time and daily windows."""

    def __init__(self, session_factory, exclusion_filter: ExclusionFilter):
        super().__init__(session_factory)
        self.exclusion_filter = exclusion_filter

    async def compute_window(
        self,
        channel_id: str,
        window: StatWindow,
        eligible_channels: FrozenSet[str],
        all_time: Optional[ChannelWindowStats] = None
    ) -> ChannelWindowStats:
        """Resolve, score and aggregate one window without writing it."""
        rows = await self.exclusion_filter.resolve_viewers(channel_id, window, eligible_channels)
        return compute_window_stats(channel_id, window, score_viewers(rows), all_time)

    async def aggregate_channel(
        self,
        channel_id: str,
        stat_date: date,
        eligible_channels: FrozenSet[str]
    ) -> ChannelAggregationResult:
        """
        Recompute and store a channel's all-time row and its stat-day row.

        The day row is not written when nobody qualified on that day.

        Raises:
            PersistenceError: If a write fails
        """
        channel_id = channel_id.lower()

        all_time = await self.compute_window(channel_id, StatWindow.all_time(), eligible_channels)
        await self.write_stats(all_time, stat_date)

        day = await self.compute_window(
            channel_id, StatWindow.day(stat_date), eligible_channels, all_time=all_time
        )
        if day.is_empty:
            day = None
        else:
            await self.write_stats(day, stat_date)

        if all_time.mean_rank:
            logger.debug(
                f"{channel_id}: {all_time.viewer_count} viewers, "
                f"avg={RankScore.format_rank(all_time.mean_rank.tier, all_time.mean_rank.division)}"
            )
        return ChannelAggregationResult(all_time=all_time, day=day)

    async def write_stats(self, stats: ChannelWindowStats, computed_stat_date: date):
        """Replace the (channel, window) row with stats."""
        mean_rank = stats.mean_rank
        median_rank = stats.median_rank
        values = {
            'channel_twitch_id': stats.channel_id,
            'window_key': stats.window.key,
            'viewer_count': stats.viewer_count,
            'mean_score': stats.mean_score,
            'mean_tier': mean_rank.tier if mean_rank else None,
            'mean_division': mean_rank.division if mean_rank else None,
            'mean_lp': mean_rank.points if mean_rank else None,
            'median_score': stats.median_score,
            'median_tier': median_rank.tier if median_rank else None,
            'median_division': median_rank.division if median_rank else None,
            'median_lp': median_rank.points if median_rank else None,
            'top_viewers_json': stats.top_viewers_json(),
            'is_eligible': stats.eligible,
            'alltime_mean_score': stats.alltime_mean_score,
            'alltime_median_score': stats.alltime_median_score,
            'alltime_viewer_count': stats.alltime_viewer_count,
            'computed_stat_date': computed_stat_date.isoformat(),
        }
        try:
            async with self.get_session() as session:
                await self.upsert(
                    session, ChannelWindowStatsRow, values, ['channel_twitch_id', 'window_key']
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"write_stats({stats.channel_id}, {stats.window.key})", str(e)) from e
