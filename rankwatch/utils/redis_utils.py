"""
Redis utility module for the optional statistics cycle lock.

Provides Redis connection management with production URL validation.
"""

import logging
from typing import Optional

import redis.asyncio as redis

from rankwatch.config import Config

logger = logging.getLogger(__name__)


class RedisUtils:
    """Centralized Redis configuration and connection utilities."""
    
    @staticmethod
    def get_redis_url() -> Optional[str]:
        """Get the configured Redis URL, or None when locking is disabled."""
        redis_url = Config.REDIS_URL
        if not redis_url:
            return None
        if not RedisUtils._validate_redis_security(redis_url):
            logger.error("REDIS_URL contains insecure configuration, cycle lock disabled")
            return None
        return redis_url
    
    @staticmethod
    def _validate_redis_security(redis_url: str) -> bool:
        """Production deployments require TLS and credentials."""
        if Config.DEBUG:
            if not redis_url.startswith(('redis://localhost', 'redis://127.0.0.1', 'rediss://')):
                logger.warning(f"Potentially insecure Redis URL in development: {redis_url}")
            return True
        
        if not redis_url.startswith('rediss://'):
            logger.error("Production Redis must use rediss:// (TLS) protocol")
            return False
        if '@' not in redis_url:
            logger.error("Production Redis must include authentication credentials")
            return False
        return True
    
    @staticmethod
    async def create_redis_client() -> Optional[redis.Redis]:
        """Create and ping a Redis client; None if unavailable."""
        redis_url = RedisUtils.get_redis_url()
        if not redis_url:
            return None
        
        try:
            client = redis.from_url(redis_url)
            await client.ping()
            logger.info("Successfully connected to Redis")
            return client
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            return None
