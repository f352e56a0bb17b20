from sqlalchemy import (
    Column, Integer, String, Boolean, Float, Text, Index, PrimaryKeyConstraint
)
from sqlalchemy.orm import declarative_base

from rankwatch.data_models.rank import RankObservation

Base = declarative_base()

class LolRank(Base):
    """Current rank and lifetime peak for one viewer identity."""
    __tablename__ = 'lol_ranks'
    
    riot_puuid = Column(String(100), primary_key=True)  # Stable viewer identity
    twitch_username = Column(String(100), nullable=False, index=True)  # Mutable, lowercase
    riot_id = Column(String(100), nullable=True, index=True)  # gameName#tagLine
    
    # Current rank
    rank_tier = Column(String(20), nullable=False)
    rank_division = Column(String(4), nullable=True)  # None for Master+
    lp = Column(Integer, default=0)
    region = Column(String(10), nullable=True)
    
    # Lifetime peak
    peak_rank_tier = Column(String(20), nullable=True)
    peak_rank_division = Column(String(4), nullable=True)
    peak_lp = Column(Integer, nullable=True)
    
    # Display preferences
    show_peak = Column(Boolean, default=False, nullable=False)
    plus_active = Column(Boolean, default=False, nullable=False)
    
    last_updated = Column(Integer, nullable=False)  # Unix timestamp
    
    @property
    def current_rank(self) -> RankObservation:
        return RankObservation.from_raw(self.rank_tier, self.rank_division, self.lp)
    
    @property
    def peak_rank(self):
        if not self.peak_rank_tier:
            return None
        return RankObservation.from_raw(self.peak_rank_tier, self.peak_rank_division, self.peak_lp)
    
    def __repr__(self):
        return f"<LolRank(puuid='{self.riot_puuid}', user='{self.twitch_username}', rank='{self.current_rank}')>"

class ChannelViewerDaily(Base):
    """Qualified distinct viewer of a channel within one stat day."""
    __tablename__ = 'channel_viewers_daily'
    
    stat_date = Column(String(10), nullable=False)  # Window start, YYYY-MM-DD
    channel_twitch_id = Column(String(50), nullable=False)  # Channel login, lowercase
    riot_puuid = Column(String(100), nullable=False)
    created_at = Column(Integer, nullable=True)
    
    __table_args__ = (
        PrimaryKeyConstraint('stat_date', 'channel_twitch_id', 'riot_puuid'),
        Index('idx_cvd_channel_date', 'channel_twitch_id', 'stat_date'),
        Index('idx_cvd_puuid_date', 'riot_puuid', 'stat_date'),
    )
    
    def __repr__(self):
        return f"<ChannelViewerDaily(channel='{self.channel_twitch_id}', date='{self.stat_date}', puuid='{self.riot_puuid}')>"

class Channel(Base):
    """Display metadata for a tracked channel."""
    __tablename__ = 'channels'
    
    channel_twitch_id = Column(String(50), primary_key=True)
    display_name = Column(String(100), nullable=True)
    
    def __repr__(self):
        return f"<Channel(id='{self.channel_twitch_id}', display='{self.display_name}')>"

class ChannelWindowStats(Base):
    """Aggregate statistics for one (channel, window); fully replaced each cycle."""
    __tablename__ = 'channel_window_stats'
    
    channel_twitch_id = Column(String(50), nullable=False)
    window_key = Column(String(10), nullable=False)  # 'all_time' or YYYY-MM-DD
    
    viewer_count = Column(Integer, nullable=False, default=0)
    mean_score = Column(Float, nullable=True)
    mean_tier = Column(String(20), nullable=True)
    mean_division = Column(String(4), nullable=True)
    mean_lp = Column(Integer, nullable=True)
    median_score = Column(Float, nullable=True)
    median_tier = Column(String(20), nullable=True)
    median_division = Column(String(4), nullable=True)
    median_lp = Column(Integer, nullable=True)
    top_viewers_json = Column(Text, nullable=False, default='[]')
    is_eligible = Column(Boolean, nullable=False, default=False)
    
    # All-time context recorded on day rows
    alltime_mean_score = Column(Float, nullable=True)
    alltime_median_score = Column(Float, nullable=True)
    alltime_viewer_count = Column(Integer, nullable=True)
    
    computed_stat_date = Column(String(10), nullable=False)
    
    __table_args__ = (
        PrimaryKeyConstraint('channel_twitch_id', 'window_key'),
        Index('idx_cws_window_score', 'window_key', 'mean_score'),
    )
    
    def __repr__(self):
        return f"<ChannelWindowStats(channel='{self.channel_twitch_id}', window='{self.window_key}', viewers={self.viewer_count})>"
