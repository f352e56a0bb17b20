"""
Viewer set resolution for one (channel, window).

Builds the de-duplicated viewer list a channel's statistics are computed over,
minus the channel owner's own linked account and minus viewers who are
themselves eligible streamers.
"""

import logging
from typing import FrozenSet, List

from sqlalchemy import select

from rankwatch.config import Config
from rankwatch.constants import StatsConstants
from rankwatch.data_models.stats import StatWindow, ViewerRankRow
from rankwatch.database.models import ChannelViewerDaily, ChannelWindowStats, LolRank
from rankwatch.services.base import BaseService

logger = logging.getLogger(__name__)


class ExclusionFilter(BaseService):
    """Resolves filtered viewer sets from the qualified-viewer table."""

    async def snapshot_eligible_channels(self) -> FrozenSet[str]:
        """
        Capture the channels currently eligible for the public leaderboard.

        Taken once per cycle and passed to every channel of that cycle so the
        exclusion basis does not move while stats are being written.
        """
        async with self.get_session() as session:
            result = await session.execute(
                select(ChannelWindowStats.channel_twitch_id).where(
                    ChannelWindowStats.window_key == StatsConstants.ALL_TIME_WINDOW_KEY,
                    ChannelWindowStats.is_eligible.is_(True)
                )
            )
            return frozenset(row[0].lower() for row in result.all())

    async def resolve_viewers(
        self,
        channel_twitch_id: str,
        window: StatWindow,
        eligible_channels: FrozenSet[str]
    ) -> List[ViewerRankRow]:
        """
        Get the rank rows of every qualifying viewer of a channel in a window.

        Viewers are keyed by riot_puuid and returned in puuid order. Viewers
        without a rank row are dropped.
        """
        channel_twitch_id = channel_twitch_id.lower()

        async with self.get_session() as session:
            stmt = select(ChannelViewerDaily.riot_puuid).where(
                ChannelViewerDaily.channel_twitch_id == channel_twitch_id
            )
            if not window.is_all_time:
                stmt = stmt.where(ChannelViewerDaily.stat_date == window.key)
            stmt = stmt.distinct().order_by(ChannelViewerDaily.riot_puuid)

            viewer_ids = [row[0] for row in (await session.execute(stmt)).all()]
            if not viewer_ids:
                return []

            # Accounts linked by the channel owner
            owner_result = await session.execute(
                select(LolRank.riot_puuid).where(LolRank.twitch_username == channel_twitch_id)
            )
            owner_ids = {row[0] for row in owner_result.all()}

            ranks = {}
            chunk_size = Config.RANK_LOOKUP_CHUNK_SIZE
            for start in range(0, len(viewer_ids), chunk_size):
                chunk = viewer_ids[start:start + chunk_size]
                result = await session.execute(select(LolRank).where(LolRank.riot_puuid.in_(chunk)))
                for rank in result.scalars():
                    ranks[rank.riot_puuid] = rank

        rows = []
        for viewer_id in viewer_ids:
            if viewer_id in owner_ids:
                continue
            rank = ranks.get(viewer_id)
            if rank is None:
                continue
            if rank.twitch_username.lower() in eligible_channels:
                continue
            rows.append(ViewerRankRow(
                viewer_id=rank.riot_puuid,
                display_name=rank.twitch_username,
                show_peak=bool(rank.show_peak),
                current=rank.current_rank,
                peak=rank.peak_rank
            ))

        logger.debug(
            f"{channel_twitch_id} [{window.key}]: {len(viewer_ids)} viewers, {len(rows)} after exclusions"
        )
        return rows
