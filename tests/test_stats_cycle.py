"""
Database-backed tests for the exclusion filter, the aggregation engine and the batch cycle.
"""

import json
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select

from rankwatch.data_models.stats import StatWindow
from rankwatch.database.models import ChannelWindowStats
from rankwatch.services.stats_scheduler import BatchScheduler
from rankwatch.utils.stats_exceptions import ChannelEnumerationError

STAT_DATE = date(2026, 3, 14)


async def fetch_rows(database):
    async with database.get_session() as session:
        result = await session.execute(
            select(ChannelWindowStats).order_by(
                ChannelWindowStats.channel_twitch_id, ChannelWindowStats.window_key
            )
        )
        return [
            tuple(getattr(r, c.name) for c in ChannelWindowStats.__table__.columns)
            for r in result.scalars().all()
        ]


async def fetch_row(database, channel, window_key):
    async with database.get_session() as session:
        return await session.get(ChannelWindowStats, (channel, window_key))


async def seed_four_viewers(add_viewer, channel='streamer'):
    await add_viewer(channel, 'p-iron', 'iron_fan', 'IRON', 'IV', 0)
    await add_viewer(channel, 'p-bronze', 'bronze_fan', 'BRONZE', 'IV', 0)
    await add_viewer(channel, 'p-silver', 'silver_fan', 'SILVER', 'IV', 0)
    await add_viewer(channel, 'p-gold', 'gold_fan', 'GOLD', 'IV', 0)


class TestExclusionFilter:
    async def test_deduplicates_across_days(self, exclusion_filter, add_viewer, rank_service):
        await add_viewer('streamer', 'p1', 'alice', 'GOLD', 'I', 10)
        await rank_service.record_viewer('streamer', 'p1', date(2026, 3, 15))

        rows = await exclusion_filter.resolve_viewers('streamer', StatWindow.all_time(), frozenset())
        assert [r.viewer_id for r in rows] == ['p1']

    async def test_day_window_only_sees_that_day(self, exclusion_filter, add_viewer):
        await add_viewer('streamer', 'p1', 'alice', 'GOLD', 'I', 10, stat_date=date(2026, 3, 13))
        await add_viewer('streamer', 'p2', 'bob', 'GOLD', 'I', 10, stat_date=STAT_DATE)

        rows = await exclusion_filter.resolve_viewers('streamer', StatWindow.day(STAT_DATE), frozenset())
        assert [r.viewer_id for r in rows] == ['p2']

    async def test_removes_channel_owner(self, exclusion_filter, add_viewer):
        await add_viewer('streamer', 'p-owner', 'streamer', 'DIAMOND', 'I', 50)
        await add_viewer('streamer', 'p1', 'alice', 'GOLD', 'I', 10)

        rows = await exclusion_filter.resolve_viewers('Streamer', StatWindow.all_time(), frozenset())
        assert [r.viewer_id for r in rows] == ['p1']

    async def test_removes_eligible_streamers(self, exclusion_filter, add_viewer):
        await add_viewer('streamer', 'p1', 'alice', 'GOLD', 'I', 10)
        await add_viewer('streamer', 'p2', 'bigstreamer', 'MASTER', None, 300)

        rows = await exclusion_filter.resolve_viewers(
            'streamer', StatWindow.all_time(), frozenset({'bigstreamer'})
        )
        assert [r.viewer_id for r in rows] == ['p1']

    async def test_viewers_without_rank_are_dropped(self, exclusion_filter, add_viewer, rank_service):
        await add_viewer('streamer', 'p1', 'alice', 'GOLD', 'I', 10)
        await rank_service.record_viewer('streamer', 'p-unlinked', STAT_DATE)

        rows = await exclusion_filter.resolve_viewers('streamer', StatWindow.all_time(), frozenset())
        assert [r.viewer_id for r in rows] == ['p1']

    async def test_snapshot_lists_eligible_channels(self, exclusion_filter, scheduler, add_viewer):
        for i in range(10):
            await add_viewer('bigstreamer', f'p{i}', f'viewer{i}', 'GOLD', 'II', i)
        await add_viewer('small', 'q1', 'someone', 'GOLD', 'II', 0)

        await scheduler.run_cycle(as_of=STAT_DATE)

        assert await exclusion_filter.snapshot_eligible_channels() == frozenset({'bigstreamer'})


class TestAggregationCycle:
    async def test_four_viewer_example(self, database, scheduler, add_viewer):
        await seed_four_viewers(add_viewer)

        report = await scheduler.run_cycle(as_of=STAT_DATE)
        assert (report.channels_total, report.processed, report.failed) == (1, 1, 0)

        row = await fetch_row(database, 'streamer', 'all_time')
        assert row.viewer_count == 4
        assert row.mean_score == 600.0
        assert row.median_score == 600.0
        assert (row.mean_tier, row.mean_division, row.mean_lp) == ('BRONZE', 'II', 0)
        assert row.is_eligible is False
        assert row.computed_stat_date == '2026-03-14'

        top = json.loads(row.top_viewers_json)
        assert top[0]['display_name'] == 'gold_fan'
        assert top[0]['score'] == 1200.0

        day = await fetch_row(database, 'streamer', '2026-03-14')
        assert day.viewer_count == 4
        assert day.alltime_mean_score == 600.0
        assert day.alltime_viewer_count == 4

    async def test_eligibility_boundary(self, database, scheduler, add_viewer):
        for i in range(9):
            await add_viewer('nine', f'n{i}', f'nine_viewer{i}', 'SILVER', 'II', 0)
        for i in range(10):
            await add_viewer('ten', f't{i}', f'ten_viewer{i}', 'SILVER', 'II', 0)

        await scheduler.run_cycle(as_of=STAT_DATE)

        assert (await fetch_row(database, 'nine', 'all_time')).is_eligible is False
        assert (await fetch_row(database, 'ten', 'all_time')).is_eligible is True

    async def test_owner_view_does_not_change_stats(self, database, scheduler, add_viewer):
        await seed_four_viewers(add_viewer)
        await scheduler.run_cycle(as_of=STAT_DATE)
        without_owner = await fetch_rows(database)

        await add_viewer('streamer', 'p-owner', 'streamer', 'CHALLENGER', None, 1500)
        await scheduler.run_cycle(as_of=STAT_DATE)

        assert await fetch_rows(database) == without_owner

    async def test_day_row_skipped_without_viewers_that_day(self, database, scheduler, add_viewer):
        await add_viewer('streamer', 'p1', 'alice', 'GOLD', 'I', 10, stat_date=date(2026, 3, 10))

        await scheduler.run_cycle(as_of=STAT_DATE)

        assert (await fetch_row(database, 'streamer', 'all_time')).viewer_count == 1
        assert await fetch_row(database, 'streamer', '2026-03-14') is None

    async def test_zero_state_for_known_channel(self, database, scheduler, rank_service):
        # Viewer recorded but never linked a rank
        await rank_service.record_viewer('quiet', 'p-unlinked', STAT_DATE)

        await scheduler.run_cycle(as_of=STAT_DATE)

        row = await fetch_row(database, 'quiet', 'all_time')
        assert row.viewer_count == 0
        assert row.mean_score is None
        assert row.median_tier is None
        assert row.is_eligible is False
        assert row.top_viewers_json == '[]'
        assert await fetch_row(database, 'quiet', '2026-03-14') is None
        assert await fetch_row(database, 'never_seen', 'all_time') is None

    async def test_unranked_viewers_score_only_through_peak(self, database, scheduler, add_viewer, rank_service):
        await add_viewer('streamer', 'p-hidden', 'hidden_fan', 'GOLD', 'IV', 0)
        await add_viewer('streamer', 'p-shown', 'shown_fan', 'DIAMOND', 'IV', 0, show_peak=True)
        await rank_service.mark_unranked('p-hidden')
        await rank_service.mark_unranked('p-shown')

        await scheduler.run_cycle(as_of=STAT_DATE)

        row = await fetch_row(database, 'streamer', 'all_time')
        assert row.viewer_count == 1
        assert row.mean_score == 2400.0

    async def test_rerun_is_identical(self, database, scheduler, add_viewer):
        await seed_four_viewers(add_viewer)
        await seed_four_viewers(add_viewer, channel='other')
        await add_viewer('other', 'p-extra', 'extra', 'MASTER', None, 120, show_peak=True)

        await scheduler.run_cycle(as_of=STAT_DATE)
        first = await fetch_rows(database)
        await scheduler.run_cycle(as_of=STAT_DATE)

        assert await fetch_rows(database) == first
        assert len(first) == 4

    async def test_failing_channel_does_not_stop_batch(self, database, scheduler, exclusion_filter, add_viewer, monkeypatch):
        await seed_four_viewers(add_viewer, channel='alpha')
        await seed_four_viewers(add_viewer, channel='broken')
        await seed_four_viewers(add_viewer, channel='gamma')

        original = exclusion_filter.resolve_viewers

        async def flaky_resolve(channel_id, window, eligible_channels):
            if channel_id == 'broken':
                raise RuntimeError("viewer lookup failed")
            return await original(channel_id, window, eligible_channels)

        monkeypatch.setattr(exclusion_filter, 'resolve_viewers', flaky_resolve)

        report = await scheduler.run_cycle(as_of=STAT_DATE)

        assert report.processed == 2
        assert report.failed == 1
        assert report.failed_channels == ['broken']
        assert await fetch_row(database, 'alpha', 'all_time') is not None
        assert await fetch_row(database, 'gamma', 'all_time') is not None
        assert await fetch_row(database, 'broken', 'all_time') is None

    async def test_channels_processed_in_groups(self, database, exclusion_filter, aggregation_engine, add_viewer):
        for i in range(5):
            await add_viewer(f'channel{i}', f'p{i}', f'viewer{i}', 'GOLD', 'IV', i)

        scheduler = BatchScheduler(
            database.session_factory, exclusion_filter, aggregation_engine,
            batch_size=2, use_redis_lock=False
        )
        report = await scheduler.run_cycle(as_of=STAT_DATE)

        assert (report.channels_total, report.processed, report.failed) == (5, 5, 0)

    async def test_lifetime_channels_are_enumerated(self, scheduler, add_viewer):
        await add_viewer('old_channel', 'p1', 'alice', 'GOLD', 'I', 10, stat_date=date(2025, 1, 1))
        await add_viewer('new_channel', 'p2', 'bob', 'GOLD', 'I', 10)

        assert await scheduler.list_channels() == ['new_channel', 'old_channel']

    async def test_enumeration_failure_aborts_cycle(self, scheduler, monkeypatch):
        async def broken_list():
            raise ChannelEnumerationError("database locked")

        monkeypatch.setattr(scheduler, 'list_channels', broken_list)

        with pytest.raises(ChannelEnumerationError):
            await scheduler.run_cycle(as_of=STAT_DATE)

    async def test_exclusion_snapshot_taken_once_per_cycle(self, database, scheduler, exclusion_filter, add_viewer):
        # bigstreamer only becomes eligible during this cycle, so the
        # snapshot used for 'small' must not contain it yet
        for i in range(10):
            await add_viewer('bigstreamer', f'p{i}', f'viewer{i}', 'GOLD', 'II', i)
        await add_viewer('small', 'q1', 'bigstreamer', 'DIAMOND', 'I', 0)

        await scheduler.run_cycle(as_of=STAT_DATE)
        assert (await fetch_row(database, 'small', 'all_time')).viewer_count == 1

        await scheduler.run_cycle(as_of=STAT_DATE)
        assert (await fetch_row(database, 'small', 'all_time')).viewer_count == 0

    async def test_run_cycle_uses_window_clock(self, scheduler):
        report = await scheduler.run_cycle(now=datetime(2026, 3, 15, 3, 0, tzinfo=timezone.utc))
        assert report.stat_date == STAT_DATE
        assert report.channels_total == 0
