import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Rank stats configuration settings"""
    
    # Discord settings
    DISCORD_TOKEN = os.getenv('DISCORD_TOKEN')
    DISCORD_GUILD_IDS = os.getenv('DISCORD_GUILD_IDS', '')  # Comma-separated
    OWNER_DISCORD_ID = int(os.getenv('OWNER_DISCORD_ID', 0))
    COMMAND_PREFIX = os.getenv('COMMAND_PREFIX', '!')
    
    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///rankwatch.db')
    REDIS_URL = os.getenv('REDIS_URL', '')
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    
    # Stat window settings
    STATS_RESET_HOUR_UTC = int(os.getenv('STATS_RESET_HOUR_UTC', 7))
    STATS_CYCLE_INTERVAL_HOURS = int(os.getenv('STATS_CYCLE_INTERVAL_HOURS', 3))
    
    # Aggregation settings
    STATS_BATCH_SIZE = int(os.getenv('STATS_BATCH_SIZE', 50))
    ELIGIBILITY_MIN_VIEWERS = int(os.getenv('ELIGIBILITY_MIN_VIEWERS', 10))
    TOP_VIEWERS_LIMIT = int(os.getenv('TOP_VIEWERS_LIMIT', 10))
    RANK_LOOKUP_CHUNK_SIZE = 500  # SQLite variable limit is 999
    
    # Display cutoffs inside the shared Master+ LP pool (heuristic, not ladder-accurate)
    APEX_GRANDMASTER_MIN_LP = int(os.getenv('APEX_GRANDMASTER_MIN_LP', 500))
    APEX_CHALLENGER_MIN_LP = int(os.getenv('APEX_CHALLENGER_MIN_LP', 1000))
    
    # Read command throttling (per user and command)
    READ_COMMAND_RATE_LIMIT = int(os.getenv('READ_COMMAND_RATE_LIMIT', 5))
    READ_COMMAND_RATE_WINDOW_SECONDS = int(os.getenv('READ_COMMAND_RATE_WINDOW_SECONDS', 60))

    # Peak reconciliation
    PEAK_RECONCILE_TIMEOUT_SECONDS = float(os.getenv('PEAK_RECONCILE_TIMEOUT_SECONDS', 25))
    
    @classmethod
    def get_guild_ids(cls):
        """Get list of guild IDs for command syncing"""
        if cls.DISCORD_GUILD_IDS:
            try:
                return [int(guild_id.strip()) for guild_id in cls.DISCORD_GUILD_IDS.split(',') if guild_id.strip()]
            except ValueError:
                raise ValueError("DISCORD_GUILD_IDS must be comma-separated integers")
        # Global sync
        return []
    
    @classmethod
    def validate_stats(cls):
        """Validate the aggregation settings"""
        if cls.STATS_BATCH_SIZE < 1:
            raise ValueError("STATS_BATCH_SIZE must be at least 1")
        if not 0 <= cls.STATS_RESET_HOUR_UTC <= 23:
            raise ValueError("STATS_RESET_HOUR_UTC must be between 0 and 23")
        if not 0 < cls.APEX_GRANDMASTER_MIN_LP < cls.APEX_CHALLENGER_MIN_LP:
            raise ValueError("APEX cutoffs must satisfy 0 < GRANDMASTER < CHALLENGER")
    
    @classmethod
    def validate(cls):
        """Validate that required configuration is present"""
        if not cls.DISCORD_TOKEN:
            raise ValueError("DISCORD_TOKEN is required")
        if not cls.OWNER_DISCORD_ID:
            raise ValueError("OWNER_DISCORD_ID is required")
        cls.validate_stats()
