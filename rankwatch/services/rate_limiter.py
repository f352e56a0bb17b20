"""
Per-user throttling for /leaderboard, /channel-stats and /channel-trend.

Each read command runs database queries over the stats tables, so a user may
only issue READ_COMMAND_RATE_LIMIT of them per READ_COMMAND_RATE_WINDOW_SECONDS.
The cycle task and /admin-run-stats are not throttled.
"""

import time
import asyncio
from functools import wraps
from collections import defaultdict, deque
from typing import Optional
import logging

from rankwatch.config import Config

logger = logging.getLogger(__name__)

class SimpleRateLimiter:
    """Sliding window of request times per (user, command)."""

    def __init__(self):
        self._requests = defaultdict(deque)
        self._lock = asyncio.Lock()

    async def is_allowed(self, user_id: int, command: str, limit: int, window: int) -> bool:
        if limit <= 0 or window <= 0:
            return False

        key = (user_id, command)
        now = time.monotonic()

        async with self._lock:
            history = self._requests[key]
            while history and history[0] <= now - window:
                history.popleft()

            if len(history) >= limit:
                return False
            history.append(now)
            return True

def rate_limit(command: str, limit: Optional[int] = None, window: Optional[int] = None):
    """Throttle a StatsCog command; limits default to the configured read-command limits."""
    def decorator(func):
        @wraps(func)
        async def wrapper(self, interaction, *args, **kwargs):
            if interaction.user.id != Config.OWNER_DISCORD_ID:
                allowed = await self.bot.rate_limiter.is_allowed(
                    interaction.user.id,
                    command,
                    limit if limit is not None else Config.READ_COMMAND_RATE_LIMIT,
                    window if window is not None else Config.READ_COMMAND_RATE_WINDOW_SECONDS
                )
                if not allowed:
                    logger.debug(f"/{command} throttled for {interaction.user.id}")
                    await interaction.response.send_message(
                        f"⏰ Too many stats lookups. Please wait before using `/{command}` again.",
                        ephemeral=True
                    )
                    return

            return await func(self, interaction, *args, **kwargs)
        return wrapper
    return decorator
