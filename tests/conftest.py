"""
Shared fixtures for the rank stats engine tests.

Database tests run against a throwaway SQLite file per test.
"""

from datetime import date

import pytest
import pytest_asyncio

from rankwatch.database.database import Database
from rankwatch.services.aggregation_service import AggregationEngine
from rankwatch.services.exclusion_filter import ExclusionFilter
from rankwatch.services.rank_service import RankService
from rankwatch.services.stats_scheduler import BatchScheduler

STAT_DATE = date(2026, 3, 14)


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'rankwatch_test.db'}")
    await db.initialize()
    try:
        yield db
    finally:
        await db.close()


@pytest.fixture
def rank_service(database):
    return RankService(database.session_factory)


@pytest.fixture
def exclusion_filter(database):
    return ExclusionFilter(database.session_factory)


@pytest.fixture
def aggregation_engine(database, exclusion_filter):
    return AggregationEngine(database.session_factory, exclusion_filter)


@pytest.fixture
def scheduler(database, exclusion_filter, aggregation_engine):
    return BatchScheduler(
        database.session_factory,
        exclusion_filter,
        aggregation_engine,
        use_redis_lock=False
    )


@pytest.fixture
def add_viewer(rank_service):
    """Store a viewer's rank and record them as a qualified viewer of a channel."""
    async def _add_viewer(channel, puuid, username, tier, division=None, lp=0,
                          stat_date=STAT_DATE, show_peak=False):
        await rank_service.store_rank(puuid, username, tier, division, lp)
        if show_peak:
            await rank_service.set_show_peak(puuid, True)
        await rank_service.record_viewer(channel, puuid, stat_date)
    return _add_viewer
