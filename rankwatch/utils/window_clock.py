"""
Daily stat window computation.

A stat day is the 24-hour span starting at the fixed reset hour (UTC) and is
keyed by the calendar date on which it starts.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple

import pytz

from rankwatch.config import Config
from rankwatch.constants import StatsConstants


class WindowClock:
    """Computes canonical stat dates from a fixed UTC reset hour."""
    
    def __init__(self, reset_hour_utc: Optional[int] = None):
        self.reset_hour_utc = Config.STATS_RESET_HOUR_UTC if reset_hour_utc is None else reset_hour_utc
    
    @staticmethod
    def _as_utc(moment: Optional[datetime]) -> datetime:
        if moment is None:
            return datetime.now(pytz.utc)
        if moment.tzinfo is None:
            return pytz.utc.localize(moment)
        return moment.astimezone(pytz.utc)
    
    def stat_date(self, now: Optional[datetime] = None) -> date:
        """Current UTC date, or yesterday before the reset hour."""
        current = self._as_utc(now)
        if current.hour < self.reset_hour_utc:
            return current.date() - timedelta(days=1)
        return current.date()
    
    def window_bounds(self, stat_date: date) -> Tuple[datetime, datetime]:
        """[start, end) of the 24-hour window keyed by stat_date."""
        start = pytz.utc.localize(
            datetime(stat_date.year, stat_date.month, stat_date.day, self.reset_hour_utc)
        )
        return start, start + timedelta(days=1)
    
    @staticmethod
    def format_date(stat_date: date) -> str:
        return stat_date.strftime(StatsConstants.STAT_DATE_FORMAT)
    
    @staticmethod
    def parse_date(value: str) -> date:
        """Parse a 'YYYY-MM-DD' stat date; raises ValueError on bad input."""
        return datetime.strptime(value, StatsConstants.STAT_DATE_FORMAT).date()
