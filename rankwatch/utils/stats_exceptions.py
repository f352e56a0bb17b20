"""
Custom exceptions for the rank stats engine with user-friendly error messages.
"""

class RankStatsException(Exception):
    """Base exception for rank stats errors."""
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

class InvalidRankDataError(RankStatsException):
    """Raised when a tier/division/LP triple cannot be parsed."""
    def __init__(self, raw: str):
        super().__init__(
            f"Invalid rank data: {raw}",
            "❌ That rank could not be recognized."
        )

class SourceUnavailableError(RankStatsException):
    """Raised when a rank source or history feed cannot be reached."""
    def __init__(self, source: str, details: str = None):
        super().__init__(
            f"Rank source '{source}' unavailable: {details}",
            "❌ Rank data is temporarily unavailable. Please try again later."
        )

class PersistenceError(RankStatsException):
    """Raised when a database write fails."""
    def __init__(self, operation: str, details: str = None):
        super().__init__(
            f"Database error during {operation}: {details}",
            "❌ Database error occurred. Please try again later."
        )

class ChannelEnumerationError(RankStatsException):
    """Raised when the channel list for a cycle cannot be read."""
    def __init__(self, details: str = None):
        super().__init__(
            f"Could not enumerate channels: {details}",
            "❌ Statistics run aborted. It will be retried on the next cycle."
        )

class ChannelNotFoundError(RankStatsException):
    """Raised when a channel has no statistics row."""
    def __init__(self, channel_name: str):
        super().__init__(
            f"Channel '{channel_name}' has no statistics",
            f"❌ `{channel_name}` has no viewer data yet."
        )

class InvalidChannelNameError(RankStatsException):
    """Raised when a channel name fails validation."""
    def __init__(self, channel_name: str):
        super().__init__(
            f"Invalid channel name '{channel_name}'",
            "❌ Channel name must be 3-25 letters, digits or underscores."
        )
