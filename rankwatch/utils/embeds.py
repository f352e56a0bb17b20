"""
Shared embed utilities for the rank stats commands.

Provides reusable embed building functions for the leaderboard, channel
detail, trend and cycle report displays.
"""

import discord
from typing import List

from rankwatch.constants import UIConstants
from rankwatch.data_models.leaderboard import ChannelStatsView, LeaderboardPage, TrendPoint
from rankwatch.data_models.stats import CycleReport
from rankwatch.utils.rank_score import RankScore
from rankwatch.utils.stats_exceptions import RankStatsException


def build_leaderboard_embed(page: LeaderboardPage) -> discord.Embed:
    """
    Build the public leaderboard embed.

    Args:
        page: Leaderboard page from ChannelStatsService

    Returns:
        Formatted Discord embed ready for display
    """
    embed = discord.Embed(
        title=f"{UIConstants.TROPHY_EMOJI} Channel Leaderboard",
        color=UIConstants.DEFAULT_EMBED_COLOR
    )

    if not page.entries:
        embed.description = "No channels are eligible yet."
        return embed

    lines = []
    for entry in page.entries:
        rank_text = RankScore.format_rank(entry.mean_tier, entry.mean_division, entry.mean_lp)
        lines.append(
            f"**#{entry.position}** {entry.display_name} - {rank_text} "
            f"({entry.viewer_count:,} viewers)"
        )
    embed.description = "\n".join(lines)

    shown_to = page.offset + len(page.entries)
    embed.set_footer(text=f"Showing {page.offset + 1}-{shown_to} of {page.total_eligible_channels} eligible channels")
    return embed


def build_channel_stats_embed(view: ChannelStatsView) -> discord.Embed:
    """Build the all-time statistics embed for one channel."""
    embed_color = UIConstants.GOLD_RANK_COLOR if view.leaderboard_position == 1 else UIConstants.DEFAULT_EMBED_COLOR
    embed = discord.Embed(
        title=f"{UIConstants.CHART_EMOJI} Viewer Ranks: {view.display_name}",
        color=embed_color
    )

    if view.viewer_count == 0:
        embed.description = "No qualifying ranked viewers yet."
        return embed

    embed.add_field(
        name="📊 Averages",
        value=(
            f"**Mean:** {RankScore.format_rank(view.mean_tier, view.mean_division, view.mean_lp)}\n"
            f"**Median:** {RankScore.format_rank(view.median_tier, view.median_division, view.median_lp)}\n"
            f"**Viewers:** {view.viewer_count:,}"
        ),
        inline=True
    )

    position = f"#{view.leaderboard_position}" if view.leaderboard_position else "Not eligible"
    embed.add_field(name=f"{UIConstants.TROPHY_EMOJI} Leaderboard", value=position, inline=True)

    if view.top_viewers:
        top_lines = [
            f"{i}. {tv.display_name} - {RankScore.format_rank(tv.tier, tv.division, tv.points)}"
            for i, tv in enumerate(view.top_viewers, start=1)
        ]
        embed.add_field(name="⭐ Top Viewers", value="\n".join(top_lines), inline=False)

    if view.computed_stat_date:
        embed.set_footer(text=f"Computed for stat day {view.computed_stat_date}")
    return embed


def build_trend_embed(channel_id: str, points: List[TrendPoint]) -> discord.Embed:
    """Build the daily trend embed, newest day first."""
    embed = discord.Embed(
        title=f"{UIConstants.CHART_EMOJI} Daily Trend: {channel_id}",
        color=UIConstants.DEFAULT_EMBED_COLOR
    )
    if not points:
        embed.description = "No daily snapshots in this range."
        return embed

    lines = []
    for point in points[:UIConstants.LEADERBOARD_PAGE_SIZE]:
        daily = RankScore.score_to_rank(point.daily_mean_score) if point.daily_mean_score is not None else None
        daily_text = RankScore.format_rank(daily.tier, daily.division) if daily else "-"
        lines.append(f"`{point.stat_date}` {daily_text} ({point.daily_viewer_count} viewers)")
    embed.description = "\n".join(lines)
    return embed


def build_cycle_report_embed(report: CycleReport) -> discord.Embed:
    """Build the summary embed for a manual statistics run."""
    if report.skipped_locked:
        return discord.Embed(
            title="⏳ Statistics Run Skipped",
            description="Another statistics cycle is already running.",
            color=discord.Color.orange()
        )

    embed = discord.Embed(
        title="✅ Statistics Run Complete",
        color=UIConstants.SUCCESS_COLOR if report.failed == 0 else discord.Color.orange()
    )
    embed.add_field(name="Stat Day", value=str(report.stat_date), inline=True)
    embed.add_field(name="Processed", value=f"{report.processed}/{report.channels_total}", inline=True)
    embed.add_field(name="Errors", value=str(report.failed), inline=True)
    if report.failed_channels:
        embed.add_field(name="Failed Channels", value=", ".join(report.failed_channels[:20]), inline=False)
    return embed


def build_error_embed(error: RankStatsException) -> discord.Embed:
    """Create an embed from a rank stats exception's user message."""
    return discord.Embed(
        title="Error",
        description=error.user_message,
        color=UIConstants.ERROR_COLOR
    )
