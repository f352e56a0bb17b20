"""
Statistics batch scheduler.

Runs one aggregation cycle over every channel that has ever had a recorded
viewer. Channels are processed in fixed-size groups: all channels of a group
concurrently, groups one after another. A failing channel is counted and
logged without affecting the rest of the cycle.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from rankwatch.config import Config
from rankwatch.constants import StatsConstants
from rankwatch.data_models.stats import CycleReport
from rankwatch.database.models import ChannelViewerDaily
from rankwatch.services.aggregation_service import AggregationEngine
from rankwatch.services.base import BaseService
from rankwatch.services.exclusion_filter import ExclusionFilter
from rankwatch.utils.redis_utils import RedisUtils
from rankwatch.utils.stats_exceptions import ChannelEnumerationError
from rankwatch.utils.window_clock import WindowClock

logger = logging.getLogger(__name__)


class BatchScheduler(BaseService):
    """Drives AggregationEngine across all known channels."""

    def __init__(
        self,
        session_factory,
        exclusion_filter: ExclusionFilter,
        aggregation_engine: AggregationEngine,
        batch_size: Optional[int] = None,
        window_clock: Optional[WindowClock] = None,
        use_redis_lock: bool = True
    ):
        super().__init__(session_factory)
        self.exclusion_filter = exclusion_filter
        self.aggregation_engine = aggregation_engine
        self.batch_size = batch_size or Config.STATS_BATCH_SIZE
        self.window_clock = window_clock or WindowClock()
        self.redis_client = None
        self.redis_enabled = use_redis_lock

    async def _get_redis_client(self):
        """Get Redis client for the cycle lock. Returns None if Redis is unavailable."""
        if not self.redis_enabled:
            return None

        if self.redis_client is None:
            self.redis_client = await RedisUtils.create_redis_client()
            if self.redis_client is None:
                logger.info("No Redis configured. Statistics cycles will run without locking.")
                self.redis_enabled = False
        return self.redis_client

    async def list_channels(self) -> List[str]:
        """
        Every channel with at least one recorded viewer, ever.

        Raises:
            ChannelEnumerationError: If the channel list cannot be read
        """
        try:
            async with self.get_session() as session:
                result = await session.execute(
                    select(ChannelViewerDaily.channel_twitch_id)
                    .distinct()
                    .order_by(ChannelViewerDaily.channel_twitch_id)
                )
                return [row[0] for row in result.all()]
        except SQLAlchemyError as e:
            raise ChannelEnumerationError(str(e)) from e

    async def run_cycle(self, as_of: Optional[date] = None, now: Optional[datetime] = None) -> CycleReport:
        """
        Run one aggregation cycle.

        Args:
            as_of: Explicit stat date for manual re-runs
            now: Moment used to derive the stat date when as_of is not given

        Returns:
            CycleReport with processed/failed tallies

        Raises:
            ChannelEnumerationError: If the cycle cannot start; the next
                scheduled invocation retries it in full
        """
        stat_date = as_of or self.window_clock.stat_date(now)
        report = CycleReport(stat_date=stat_date)

        redis_client = await self._get_redis_client()
        if redis_client:
            is_locked = await redis_client.set(
                StatsConstants.CYCLE_LOCK_KEY, "1", ex=StatsConstants.CYCLE_LOCK_TTL_SECONDS, nx=True
            )
            if not is_locked:
                logger.info("Statistics cycle skipped - another cycle holds the lock")
                report.skipped_locked = True
                return report

        try:
            await self._run_batches(report)
        finally:
            if redis_client:
                await redis_client.delete(StatsConstants.CYCLE_LOCK_KEY)

        return report

    async def _run_batches(self, report: CycleReport):
        logger.info(f"Statistics cycle started for stat_date={report.stat_date}")

        channels = await self.list_channels()
        report.channels_total = len(channels)
        if not channels:
            logger.info("No channels to process")
            return

        try:
            eligible_channels = await self.exclusion_filter.snapshot_eligible_channels()
        except SQLAlchemyError as e:
            raise ChannelEnumerationError(f"eligible channel snapshot failed: {e}") from e

        total_batches = (len(channels) + self.batch_size - 1) // self.batch_size
        for batch_number, start in enumerate(range(0, len(channels), self.batch_size), start=1):
            batch = channels[start:start + self.batch_size]

            results = await asyncio.gather(
                *(
                    self.aggregation_engine.aggregate_channel(channel_id, report.stat_date, eligible_channels)
                    for channel_id in batch
                ),
                return_exceptions=True
            )

            for channel_id, result in zip(batch, results):
                if isinstance(result, BaseException):
                    report.failed += 1
                    report.failed_channels.append(channel_id)
                    logger.error(
                        f"Error processing {channel_id}: {result}",
                        exc_info=(type(result), result, result.__traceback__)
                    )
                else:
                    report.processed += 1

            logger.info(
                f"Batch {batch_number}/{total_batches} complete "
                f"({report.processed} processed, {report.failed} errors)"
            )

        logger.info(
            f"Statistics cycle complete: {report.processed} channels processed, {report.failed} errors"
        )
