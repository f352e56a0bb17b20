"""
Stats Cog - Scheduled aggregation cycle & channel statistics commands

Runs the recurring statistics cycle in the background and exposes the
leaderboard, channel detail and trend queries as slash commands. The bot
owner can trigger a manual re-run for an explicit stat date.
"""

import discord
from discord import app_commands
from discord.ext import commands, tasks
from typing import Optional

from rankwatch.config import Config
from rankwatch.constants import StatsConstants, UIConstants
from rankwatch.services.aggregation_service import AggregationEngine
from rankwatch.services.channel_stats_service import ChannelStatsService
from rankwatch.services.exclusion_filter import ExclusionFilter
from rankwatch.services.rate_limiter import rate_limit
from rankwatch.services.stats_scheduler import BatchScheduler
from rankwatch.utils.embeds import (
    build_channel_stats_embed, build_cycle_report_embed, build_error_embed,
    build_leaderboard_embed, build_trend_embed
)
from rankwatch.utils.logger import setup_logger
from rankwatch.utils.stats_exceptions import ChannelEnumerationError, RankStatsException
from rankwatch.utils.window_clock import WindowClock

logger = setup_logger(__name__)


class StatsCog(commands.Cog):
    """Channel statistics cycle and read commands"""

    def __init__(self, bot):
        self.bot = bot
        session_factory = bot.db.session_factory
        self.exclusion_filter = ExclusionFilter(session_factory)
        self.aggregation_engine = AggregationEngine(session_factory, self.exclusion_filter)
        self.scheduler = BatchScheduler(session_factory, self.exclusion_filter, self.aggregation_engine)
        self.stats_service = ChannelStatsService(session_factory)
        self.logger = logger

    async def cog_load(self):
        self.stats_cycle.start()
        self.logger.info("StatsCog: statistics cycle started")

    def cog_unload(self):
        """Stop background tasks when cog is unloaded"""
        self.stats_cycle.cancel()
        self.logger.info("StatsCog: statistics cycle stopped")

    @tasks.loop(hours=Config.STATS_CYCLE_INTERVAL_HOURS)
    async def stats_cycle(self):
        """Recompute every channel's statistics"""
        try:
            report = await self.scheduler.run_cycle()
            if report.failed:
                self.logger.warning(f"Statistics cycle finished with {report.failed} failed channels")
        except ChannelEnumerationError as e:
            self.logger.error(f"Statistics cycle aborted, retrying next interval: {e}")
        except Exception as e:
            self.logger.error(f"Error in statistics cycle task: {e}", exc_info=True)

    @stats_cycle.before_loop
    async def before_stats_cycle(self):
        """Wait for bot to be ready before starting the cycle"""
        await self.bot.wait_until_ready()

    @app_commands.command(name="leaderboard", description="Channels ranked by the average rank of their viewers")
    @app_commands.describe(page="Page number (10 channels per page)")
    @rate_limit("leaderboard")
    async def leaderboard(self, interaction: discord.Interaction, page: Optional[int] = 1):
        """Display the public channel leaderboard."""
        await interaction.response.defer()

        try:
            page_size = UIConstants.LEADERBOARD_PAGE_SIZE
            data = await self.stats_service.get_leaderboard(
                limit=page_size,
                offset=(max(1, page or 1) - 1) * page_size
            )
            await interaction.followup.send(embed=build_leaderboard_embed(data))
        except Exception as e:
            self.logger.error(f"Error in leaderboard command: {e}", exc_info=True)
            await interaction.followup.send(
                embed=build_error_embed(RankStatsException(str(e), "❌ Could not load the leaderboard."))
            )

    @app_commands.command(name="channel-stats", description="Viewer rank statistics for a channel")
    @app_commands.describe(channel="Twitch channel login")
    @rate_limit("channel-stats")
    async def channel_stats(self, interaction: discord.Interaction, channel: str):
        """Display all-time viewer statistics for one channel."""
        await interaction.response.defer()

        try:
            view = await self.stats_service.get_channel_stats(channel)
            await interaction.followup.send(embed=build_channel_stats_embed(view))
        except RankStatsException as e:
            await interaction.followup.send(embed=build_error_embed(e))
        except Exception as e:
            self.logger.error(f"Error in channel-stats command: {e}", exc_info=True)
            await interaction.followup.send(
                embed=build_error_embed(RankStatsException(str(e), "❌ Could not load channel statistics."))
            )

    @app_commands.command(name="channel-trend", description="Daily viewer rank trend for a channel")
    @app_commands.describe(channel="Twitch channel login", days="Number of days (1-365)")
    @rate_limit("channel-trend")
    async def channel_trend(
        self,
        interaction: discord.Interaction,
        channel: str,
        days: Optional[int] = StatsConstants.DEFAULT_TREND_DAYS
    ):
        """Display the daily trend series for one channel."""
        await interaction.response.defer()

        try:
            channel_id = self.stats_service.sanitize_channel_name(channel)
            points = await self.stats_service.get_channel_trend(channel_id, days or StatsConstants.DEFAULT_TREND_DAYS)
            await interaction.followup.send(embed=build_trend_embed(channel_id, points))
        except RankStatsException as e:
            await interaction.followup.send(embed=build_error_embed(e))
        except Exception as e:
            self.logger.error(f"Error in channel-trend command: {e}", exc_info=True)
            await interaction.followup.send(
                embed=build_error_embed(RankStatsException(str(e), "❌ Could not load the channel trend."))
            )

    @app_commands.command(
        name="admin-run-stats",
        description="Run the statistics cycle now (Owner only)"
    )
    @app_commands.describe(stat_date="Stat day to compute, YYYY-MM-DD (default: current stat day)")
    async def admin_run_stats(self, interaction: discord.Interaction, stat_date: Optional[str] = None):
        """Manually trigger an aggregation cycle"""
        if interaction.user.id != Config.OWNER_DISCORD_ID:
            await interaction.response.send_message(
                "❌ **Access Denied**\nThis command is restricted to the bot owner.",
                ephemeral=True
            )
            return

        as_of = None
        if stat_date:
            try:
                as_of = WindowClock.parse_date(stat_date)
            except ValueError:
                await interaction.response.send_message(
                    "❌ Invalid date. Use the format YYYY-MM-DD.",
                    ephemeral=True
                )
                return

        await interaction.response.defer(ephemeral=True)

        try:
            report = await self.scheduler.run_cycle(as_of=as_of)
            await interaction.followup.send(embed=build_cycle_report_embed(report))

            self.logger.info(
                f"Manual statistics run by {interaction.user.id} ({interaction.user.name}): "
                f"{report.processed} processed, {report.failed} errors for {report.stat_date}"
            )
        except RankStatsException as e:
            await interaction.followup.send(embed=build_error_embed(e))
        except Exception as e:
            self.logger.error(f"Manual statistics run error: {e}", exc_info=True)
            await interaction.followup.send(
                embed=build_error_embed(RankStatsException(str(e), f"❌ Statistics run failed: {e}"))
            )


async def setup(bot):
    await bot.add_cog(StatsCog(bot))
