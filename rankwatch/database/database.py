from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from rankwatch.config import Config
from rankwatch.database.models import Base, Channel
from rankwatch.utils.logger import setup_logger

def to_async_url(database_url: str) -> str:
    """Convert a sync sqlite/postgres URL to its async driver form"""
    if database_url.startswith('sqlite:///'):
        return database_url.replace('sqlite:///', 'sqlite+aiosqlite:///', 1)
    if database_url.startswith('postgresql://'):
        return database_url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    return database_url

class Database:
    def __init__(self, database_url: Optional[str] = None):
        self.logger = setup_logger(__name__)
        self.database_url = to_async_url(database_url or Config.DATABASE_URL)
        self.engine = None
        self.async_session = None
    
    async def initialize(self):
        """Initialize the database connection and create tables"""
        self.logger.info("Initializing database...")
        
        self.engine = create_async_engine(
            self.database_url,
            echo=Config.DEBUG,
            future=True
        )
        
        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )
        
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        
        self.logger.info("Database initialized successfully")
    
    @property
    def session_factory(self):
        """Async session factory handed to services"""
        return self.async_session
    
    @asynccontextmanager
    async def get_session(self):
        """Get a database session"""
        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()
    
    @asynccontextmanager
    async def transaction(self):
        """
        Create a transaction boundary for atomic operations.
        
        All operations within the context are committed together on success,
        or rolled back together on failure.
        """
        async with self.async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()
    
    async def close(self):
        """Close the database connection"""
        if self.engine:
            await self.engine.dispose()
            self.logger.info("Database connection closed")
    
    # Channel operations
    async def upsert_channel(self, channel_twitch_id: str, display_name: Optional[str] = None) -> Channel:
        """Create or rename a channel's display metadata"""
        channel_twitch_id = channel_twitch_id.lower()
        async with self.transaction() as session:
            channel = await session.get(Channel, channel_twitch_id)
            if channel is None:
                channel = Channel(channel_twitch_id=channel_twitch_id, display_name=display_name)
                session.add(channel)
            elif display_name:
                channel.display_name = display_name
            return channel
    