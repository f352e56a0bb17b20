"""
Rank data models for the rank stats engine.

Provides immutable value objects for observed ranks and display ranks.
"""

from dataclasses import dataclass
from typing import Any, Optional

from rankwatch.constants import RankConstants


@dataclass(frozen=True)
class RankObservation:
    """A single (tier, division, points) reading for one viewer.
    
    Instances are never rejected at construction time; callers check
    ``is_valid`` before comparing or scoring.
    """
    tier: Optional[str]
    division: Optional[str] = None
    points: int = 0
    
    @classmethod
    def from_raw(cls, tier: Any, division: Any = None, points: Any = None) -> 'RankObservation':
        """Normalize raw tier/division/LP values as stored or scraped."""
        norm_tier = tier.strip().upper() if isinstance(tier, str) and tier.strip() else None
        
        norm_division = None
        if norm_tier in RankConstants.APEX_TIERS:
            norm_division = None  # Meaningless for the apex pool
        elif division is not None and str(division).strip():
            raw_division = str(division).strip().upper()
            norm_division = RankConstants.DIVISION_ALIASES.get(raw_division, raw_division)
        
        if points is None or points == '':
            norm_points = 0
        else:
            try:
                norm_points = int(points)
            except (TypeError, ValueError):
                norm_points = -1  # Marks the observation invalid
        
        return cls(tier=norm_tier, division=norm_division, points=norm_points)
    
    @property
    def is_apex(self) -> bool:
        return self.tier in RankConstants.APEX_TIERS
    
    @property
    def is_valid(self) -> bool:
        if self.tier not in RankConstants.TIER_ORDER:
            return False
        if self.points < 0:
            return False
        if self.is_apex:
            return True
        return self.division in RankConstants.DIVISION_ORDER
    
    @property
    def tier_index(self) -> int:
        """Position in the ladder, -1 when the tier is unrecognized."""
        if self.tier not in RankConstants.TIER_ORDER:
            return -1
        return RankConstants.TIER_ORDER.index(self.tier)
    
    @property
    def division_index(self) -> int:
        """0 for IV up to 3 for I, -1 for apex or missing divisions."""
        if self.is_apex or self.division not in RankConstants.DIVISION_ORDER:
            return -1
        return RankConstants.DIVISION_ORDER.index(self.division)
    
    def __str__(self):
        if not self.tier:
            return 'UNKNOWN'
        if self.division:
            return f"{self.tier} {self.division} {self.points}LP"
        return f"{self.tier} {self.points}LP"


@dataclass(frozen=True)
class DisplayRank:
    """Rank recovered from a score; synthetic for averaged scores."""
    tier: str
    division: Optional[str]
    points: int
