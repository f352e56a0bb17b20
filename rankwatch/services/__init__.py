"""
Services package for the rank stats engine.

Rank persistence, viewer exclusion, channel aggregation and the batch cycle.
"""

from .base import BaseService
from .rate_limiter import SimpleRateLimiter

__all__ = ['BaseService', 'SimpleRateLimiter']
