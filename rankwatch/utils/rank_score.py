from typing import Optional

from rankwatch.config import Config
from rankwatch.constants import RankConstants
from rankwatch.data_models.rank import DisplayRank, RankObservation
from rankwatch.utils.stats_exceptions import InvalidRankDataError

class RankScore:
    """Maps ranked ladder positions to a single comparable score and back"""
    
    @staticmethod
    def tier_base(tier: str) -> int:
        """
        Get the score at which a tier starts
        
        Args:
            tier: Normalized tier name
            
        Returns:
            Base score; the three apex tiers share one base
        """
        if tier in RankConstants.APEX_TIERS:
            return RankConstants.APEX_BASE_SCORE
        return RankConstants.TIER_ORDER.index(tier) * RankConstants.TIER_BLOCK_SIZE
    
    @staticmethod
    def division_offset(division: Optional[str]) -> int:
        """
        Get the offset of a division inside its tier block
        
        Args:
            division: 'IV' .. 'I', or None for apex tiers
            
        Returns:
            0 for IV up to 300 for I
        """
        if division not in RankConstants.DIVISION_ORDER:
            return 0
        return RankConstants.DIVISION_ORDER.index(division) * RankConstants.DIVISION_STEP
    
    @staticmethod
    def parse_strict(tier, division=None, points=None) -> RankObservation:
        """
        Parse raw rank values for a write, rejecting anything unrecognized
        
        Raises:
            InvalidRankDataError: If the tier, division or LP is not usable
        """
        observation = RankObservation.from_raw(tier, division, points)
        if not observation.is_valid:
            raise InvalidRankDataError(f"{tier} {division} {points}")
        return observation
    
    @staticmethod
    def calculate_score(observation: RankObservation) -> Optional[float]:
        """
        Calculate the score of an observation
        
        Points are expected in [0, 100) below the apex tiers for an exact
        round trip; larger values are not clamped.
        
        Args:
            observation: Rank reading
            
        Returns:
            Score, or None when the observation is invalid
        """
        if not observation.is_valid:
            return None
        
        score = RankScore.tier_base(observation.tier)
        if not observation.is_apex:
            score += RankScore.division_offset(observation.division)
        return float(score + observation.points)
    
    @staticmethod
    def score_to_rank(score: float) -> DisplayRank:
        """
        Convert a score back to a display rank
        
        Exact for scores produced by calculate_score; approximate for
        synthetic scores such as means and medians.
        
        Args:
            score: Score value (negative values are treated as 0)
            
        Returns:
            Recovered tier, division and points
        """
        score = max(score, 0.0)
        
        if score >= RankConstants.APEX_BASE_SCORE:
            pool_points = int(score - RankConstants.APEX_BASE_SCORE)
            if pool_points >= Config.APEX_CHALLENGER_MIN_LP:
                tier = 'CHALLENGER'
            elif pool_points >= Config.APEX_GRANDMASTER_MIN_LP:
                tier = 'GRANDMASTER'
            else:
                tier = 'MASTER'
            return DisplayRank(tier=tier, division=None, points=pool_points)
        
        tier_index = int(score // RankConstants.TIER_BLOCK_SIZE)
        score_in_tier = score - tier_index * RankConstants.TIER_BLOCK_SIZE
        division_index = int(score_in_tier // RankConstants.DIVISION_STEP)
        points = int(score_in_tier - division_index * RankConstants.DIVISION_STEP)
        
        return DisplayRank(
            tier=RankConstants.TIER_ORDER[tier_index],
            division=RankConstants.DIVISION_ORDER[division_index],
            points=points
        )
    
    @staticmethod
    def format_rank(tier: Optional[str], division: Optional[str] = None, points: Optional[int] = None) -> str:
        """
        Format a rank for display
        
        Returns:
            e.g. "Gold II 45 LP", "Master 320 LP" or "Unranked"
        """
        if not tier:
            return "Unranked"
        text = tier.title()
        if division:
            text += f" {division}"
        if points is not None:
            text += f" {points} LP"
        return text
