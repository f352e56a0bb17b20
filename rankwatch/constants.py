"""
Rank ladder and statistics constants for the rank stats engine.

This module contains the fixed ladder layout and display values used throughout
the codebase. Tunable values (batch size, reset hour, apex cutoffs) live in Config.
"""

class RankConstants:
    """Constants describing the ranked ladder and its score mapping."""
    
    # Lowest to highest
    TIER_ORDER = (
        'IRON', 'BRONZE', 'SILVER', 'GOLD', 'PLATINUM', 'EMERALD', 'DIAMOND',
        'MASTER', 'GRANDMASTER', 'CHALLENGER',
    )
    
    # Top three tiers share one divisionless LP pool
    APEX_TIERS = ('MASTER', 'GRANDMASTER', 'CHALLENGER')
    
    # Lowest to highest
    DIVISION_ORDER = ('IV', 'III', 'II', 'I')
    
    # Stored current tier when the source reports no ranked placement; never scored
    UNRANKED_TIER = 'UNRANKED'

    # Numeric divisions as reported by profile pages
    DIVISION_ALIASES = {'1': 'I', '2': 'II', '3': 'III', '4': 'IV'}
    
    TIER_BLOCK_SIZE = 400      # Score width of one divisioned tier
    DIVISION_STEP = 100        # Score width of one division
    
    # Score where the shared apex pool starts (directly above Diamond I 99 LP)
    APEX_BASE_SCORE = TIER_BLOCK_SIZE * (len(TIER_ORDER) - len(APEX_TIERS))

class StatsConstants:
    """Constants for channel statistics storage."""
    
    ALL_TIME_WINDOW_KEY = 'all_time'
    STAT_DATE_FORMAT = '%Y-%m-%d'
    
    # Read-side clamps
    MAX_LEADERBOARD_LIMIT = 500
    DEFAULT_LEADERBOARD_LIMIT = 100
    DEFAULT_TREND_DAYS = 30
    MAX_TREND_DAYS = 365
    
    # Redis cycle lock
    CYCLE_LOCK_KEY = 'rank_stats_cycle_lock'
    CYCLE_LOCK_TTL_SECONDS = 900

class UIConstants:
    """Constants for Discord UI elements."""
    
    DEFAULT_EMBED_COLOR = 0x3498db  # Blue
    GOLD_RANK_COLOR = 0xffd700     # Gold for the #1 channel
    ERROR_COLOR = 0xe74c3c
    SUCCESS_COLOR = 0x2ecc71
    
    TROPHY_EMOJI = "🏆"
    CHART_EMOJI = "📈"
    
    LEADERBOARD_PAGE_SIZE = 10
