"""
Tests for read-command throttling.
"""

from types import SimpleNamespace

from rankwatch.config import Config
from rankwatch.services.rate_limiter import SimpleRateLimiter, rate_limit


class FakeResponse:
    def __init__(self):
        self.messages = []

    async def send_message(self, content, ephemeral=False):
        self.messages.append(content)


class FakeCog:
    def __init__(self):
        self.bot = SimpleNamespace(rate_limiter=SimpleRateLimiter())
        self.calls = 0

    @rate_limit("leaderboard", limit=2, window=60)
    async def leaderboard(self, interaction):
        self.calls += 1


def interaction_for(user_id):
    return SimpleNamespace(user=SimpleNamespace(id=user_id), response=FakeResponse())


async def test_limit_is_per_user_and_command():
    limiter = SimpleRateLimiter()

    assert await limiter.is_allowed(1, 'leaderboard', 2, 60)
    assert await limiter.is_allowed(1, 'leaderboard', 2, 60)
    assert not await limiter.is_allowed(1, 'leaderboard', 2, 60)
    assert await limiter.is_allowed(1, 'channel-stats', 2, 60)
    assert await limiter.is_allowed(2, 'leaderboard', 2, 60)


async def test_non_positive_limits_deny():
    limiter = SimpleRateLimiter()
    assert not await limiter.is_allowed(1, 'leaderboard', 0, 60)
    assert not await limiter.is_allowed(1, 'leaderboard', 5, 0)


async def test_decorator_blocks_after_limit(monkeypatch):
    monkeypatch.setattr(Config, 'OWNER_DISCORD_ID', 999)
    cog = FakeCog()
    interaction = interaction_for(1)

    for _ in range(3):
        await cog.leaderboard(interaction)

    assert cog.calls == 2
    assert len(interaction.response.messages) == 1
    assert '/leaderboard' in interaction.response.messages[0]


async def test_owner_is_never_throttled(monkeypatch):
    monkeypatch.setattr(Config, 'OWNER_DISCORD_ID', 999)
    cog = FakeCog()
    interaction = interaction_for(999)

    for _ in range(5):
        await cog.leaderboard(interaction)

    assert cog.calls == 5
    assert interaction.response.messages == []
