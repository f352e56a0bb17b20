"""
Rank Service - current rank and lifetime peak persistence

Stores each viewer's current rank keyed by their stable identity and keeps the
lifetime peak in step through PeakTracker. Also records qualified channel
viewers and runs the fire-and-forget peak reconciliation against an external
history feed.

Key Features:
- Atomic upsert of the current rank row (no read-modify-write without ON CONFLICT)
- Explicit peak override path for authoritative seeding
- Background reconciliation with a timeout that never blocks the write path
"""

import asyncio
import logging
import time
from datetime import date
from typing import Awaitable, Callable, List, Optional, Set

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from rankwatch.config import Config
from rankwatch.constants import RankConstants
from rankwatch.data_models.rank import RankObservation
from rankwatch.data_models.stats import PeakUpdateResult, ViewerRankRow
from rankwatch.database.models import ChannelViewerDaily, LolRank
from rankwatch.services.base import BaseService
from rankwatch.utils.peak_tracker import (
    EXPLICIT_OVERRIDE, PeakTracker, RankCandidateSelector, select_effective_rank
)
from rankwatch.utils.rank_score import RankScore
from rankwatch.utils.stats_exceptions import (
    InvalidRankDataError, PersistenceError, SourceUnavailableError
)

logger = logging.getLogger(__name__)

# Async callables supplied by the scraping / API layer
CurrentRankSource = Callable[[str], Awaitable[Optional[RankObservation]]]
HistoryFeed = Callable[[str], Awaitable[List[RankObservation]]]


class RankService(BaseService):
    """Service for storing viewer ranks and maintaining lifetime peaks."""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self._background_tasks: Set[asyncio.Task] = set()

    async def store_rank(
        self,
        riot_puuid: str,
        twitch_username: str,
        tier: str,
        division: Optional[str] = None,
        lp: Optional[int] = 0,
        riot_id: Optional[str] = None,
        region: Optional[str] = None,
        plus_active: Optional[bool] = None,
        explicit_peak: Optional[RankObservation] = None
    ) -> PeakUpdateResult:
        """
        Write a viewer's current rank and update the stored peak.

        The peak is replaced by explicit_peak when given, by the new rank when
        it strictly outranks the stored peak, and left untouched otherwise.
        riot_id, region and plus_active keep their stored values when passed
        as None.

        Raises:
            InvalidRankDataError: If tier/division/LP or explicit_peak cannot be parsed
            PersistenceError: If the write fails
        """
        observation = RankScore.parse_strict(tier, division, lp)
        if explicit_peak is not None and not explicit_peak.is_valid:
            raise InvalidRankDataError(f"explicit peak {explicit_peak}")
        twitch_username = twitch_username.strip().lower()

        try:
            async with self.get_session() as session:
                existing = await session.get(LolRank, riot_puuid)
                stored_peak = existing.peak_rank if existing else None

                path, peak = PeakTracker.resolve_peak(observation, stored_peak, explicit_peak)

                values = {
                    'riot_puuid': riot_puuid,
                    'twitch_username': twitch_username,
                    'rank_tier': observation.tier,
                    'rank_division': observation.division,
                    'lp': observation.points,
                    'last_updated': int(time.time()),
                }
                optional = {'riot_id': riot_id, 'region': region, 'plus_active': plus_active}
                values.update({k: v for k, v in optional.items() if v is not None})
                if path is not None:
                    values.update({
                        'peak_rank_tier': peak.tier,
                        'peak_rank_division': peak.division,
                        'peak_lp': peak.points,
                    })

                await self.upsert(session, LolRank, values, ['riot_puuid'])
        except SQLAlchemyError as e:
            raise PersistenceError("store_rank", str(e)) from e

        if path is not None:
            logger.info(f"Peak for {riot_puuid} updated via {path}: {peak}")

        return PeakUpdateResult(viewer_id=riot_puuid, peak_updated=path, peak=peak)

    async def override_peak(self, riot_puuid: str, peak: RankObservation) -> PeakUpdateResult:
        """
        Write an authoritative peak unconditionally.

        Only the peak columns change; a viewer without a rank row is ignored.
        """
        if not peak.is_valid:
            logger.warning(f"Ignoring invalid peak override for {riot_puuid}: {peak}")
            return PeakUpdateResult(viewer_id=riot_puuid, peak_updated=None, peak=None)

        try:
            async with self.get_session() as session:
                result = await session.execute(
                    update(LolRank)
                    .where(LolRank.riot_puuid == riot_puuid)
                    .values(
                        peak_rank_tier=peak.tier,
                        peak_rank_division=peak.division,
                        peak_lp=peak.points
                    )
                )
        except SQLAlchemyError as e:
            raise PersistenceError("override_peak", str(e)) from e

        if result.rowcount == 0:
            return PeakUpdateResult(viewer_id=riot_puuid, peak_updated=None, peak=None)

        logger.info(f"Peak for {riot_puuid} set via {EXPLICIT_OVERRIDE}: {peak}")
        return PeakUpdateResult(viewer_id=riot_puuid, peak_updated=EXPLICIT_OVERRIDE, peak=peak)

    async def get_rank_row(self, riot_puuid: str) -> Optional[ViewerRankRow]:
        async with self.get_session() as session:
            rank = await session.get(LolRank, riot_puuid)
            return self._to_row(rank) if rank else None

    async def get_rank_row_by_username(self, twitch_username: str) -> Optional[ViewerRankRow]:
        async with self.get_session() as session:
            result = await session.execute(
                select(LolRank)
                .where(LolRank.twitch_username == twitch_username.strip().lower())
                .order_by(LolRank.last_updated.desc())
                .limit(1)
            )
            rank = result.scalar_one_or_none()
            return self._to_row(rank) if rank else None

    async def get_effective_rank(self, twitch_username: str) -> Optional[RankObservation]:
        """Rank shown for a viewer: the peak if they opted in and one exists, else the current rank."""
        row = await self.get_rank_row_by_username(twitch_username)
        if row is None:
            return None
        return select_effective_rank(row.show_peak, row.current, row.peak)

    async def set_show_peak(self, riot_puuid: str, show_peak: bool) -> bool:
        """Toggle the display preference. Returns False if the viewer has no rank row."""
        async with self.get_session() as session:
            result = await session.execute(
                update(LolRank).where(LolRank.riot_puuid == riot_puuid).values(show_peak=show_peak)
            )
            return result.rowcount > 0

    async def delete_rank(self, riot_puuid: str) -> bool:
        async with self.get_session() as session:
            result = await session.execute(delete(LolRank).where(LolRank.riot_puuid == riot_puuid))
            return result.rowcount > 0

    async def mark_unranked(self, riot_puuid: str) -> bool:
        """
        Store the unranked state as the current rank.

        The peak columns and show_peak are left as they are. Returns False if
        the viewer has no rank row.
        """
        try:
            async with self.get_session() as session:
                result = await session.execute(
                    update(LolRank)
                    .where(LolRank.riot_puuid == riot_puuid)
                    .values(
                        rank_tier=RankConstants.UNRANKED_TIER,
                        rank_division=None,
                        lp=0,
                        last_updated=int(time.time())
                    )
                )
        except SQLAlchemyError as e:
            raise PersistenceError("mark_unranked", str(e)) from e
        return result.rowcount > 0

    async def record_viewer(self, channel_twitch_id: str, riot_puuid: str, stat_date: date):
        """
        Record a qualified viewer for (channel, day).

        Watch-time qualification happens upstream; repeated calls are no-ops.
        """
        values = {
            'stat_date': stat_date.isoformat(),
            'channel_twitch_id': channel_twitch_id.strip().lower(),
            'riot_puuid': riot_puuid,
            'created_at': int(time.time()),
        }
        try:
            async with self.get_session() as session:
                await self.upsert(
                    session, ChannelViewerDaily, values,
                    ['stat_date', 'channel_twitch_id', 'riot_puuid'], update_columns=[]
                )
        except SQLAlchemyError as e:
            raise PersistenceError("record_viewer", str(e)) from e

    async def refresh_rank(
        self,
        riot_puuid: str,
        source: CurrentRankSource,
        history_feed: Optional[HistoryFeed] = None
    ) -> Optional[PeakUpdateResult]:
        """
        Pull a fresh observation for a known viewer and store it.

        The source raises SourceUnavailableError when it cannot answer, which
        leaves the stored row untouched. A None answer is an explicit unranked
        report and stores the unranked state while keeping the peak. Account
        fields the source does not report (riot_id, region, plus_active) keep
        their stored values.

        Returns:
            PeakUpdateResult of the write, or None if nothing was written
        """
        existing = await self.get_rank_row(riot_puuid)
        if existing is None:
            logger.debug(f"refresh_rank skipped, no rank row for {riot_puuid}")
            return None

        try:
            observation = await source(riot_puuid)
        except SourceUnavailableError as e:
            logger.warning(f"Rank refresh for {riot_puuid} skipped: {e}")
            return None

        if observation is None:
            await self.mark_unranked(riot_puuid)
            logger.info(f"Viewer {riot_puuid} reported unranked, peak kept")
            return None

        result = await self.store_rank(
            riot_puuid,
            existing.display_name,
            observation.tier,
            observation.division,
            observation.points
        )

        if history_feed is not None:
            self.schedule_peak_reconciliation(riot_puuid, history_feed)

        return result

    async def reconcile_peak(self, riot_puuid: str, history_feed: HistoryFeed) -> Optional[PeakUpdateResult]:
        """
        Pick the best historical observation and write it as the peak.

        An empty feed leaves the stored peak untouched.

        Raises:
            SourceUnavailableError: If the feed fails
        """
        candidates = await history_feed(riot_puuid)
        best = RankCandidateSelector.select_highest(candidates or [])
        if best is None:
            logger.debug(f"No historical peak candidates for {riot_puuid}")
            return None
        return await self.override_peak(riot_puuid, best)

    def schedule_peak_reconciliation(self, riot_puuid: str, history_feed: HistoryFeed) -> asyncio.Task:
        """Start reconciliation in the background; the caller never awaits it."""
        task = asyncio.create_task(self._reconcile_in_background(riot_puuid, history_feed))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _reconcile_in_background(self, riot_puuid: str, history_feed: HistoryFeed) -> Optional[PeakUpdateResult]:
        try:
            return await asyncio.wait_for(
                self.reconcile_peak(riot_puuid, history_feed),
                timeout=Config.PEAK_RECONCILE_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError:
            logger.warning(f"Peak reconciliation for {riot_puuid} timed out, peak unchanged")
        except SourceUnavailableError as e:
            logger.warning(f"Peak reconciliation for {riot_puuid} failed, peak unchanged: {e}")
        except Exception as e:
            # Background tasks must not take the event loop down
            logger.error(f"Peak reconciliation for {riot_puuid} crashed: {e}", exc_info=True)
        return None

    @staticmethod
    def _to_row(rank: LolRank) -> ViewerRankRow:
        return ViewerRankRow(
            viewer_id=rank.riot_puuid,
            display_name=rank.twitch_username,
            show_peak=bool(rank.show_peak),
            current=rank.current_rank,
            peak=rank.peak_rank
        )
