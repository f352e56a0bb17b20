"""
Peak rank tracking utilities.

Decides whether a fresh observation supersedes a stored lifetime peak, picks
the best of a list of historical candidates, and resolves which of a viewer's
ranks (peak or current) is shown.
"""

from typing import Iterable, Optional, Tuple

from rankwatch.data_models.rank import RankObservation
from rankwatch.utils.rank_score import RankScore

EXPLICIT_OVERRIDE = 'explicit_override'
RANK_COMPARISON = 'rank_comparison'


class PeakTracker:
    """Ladder-order comparison for lifetime peaks."""
    
    @staticmethod
    def is_higher(candidate: Optional[RankObservation], stored_peak: Optional[RankObservation]) -> bool:
        """
        Check whether candidate strictly outranks stored_peak.
        
        Tier order decides first. Within an apex tier only LP counts; below
        the apex tiers the division decides, then LP. Equal ranks are never
        higher.
        """
        if stored_peak is None or not stored_peak.is_valid:
            return True
        if candidate is None or not candidate.is_valid:
            return False
        
        if candidate.tier_index != stored_peak.tier_index:
            return candidate.tier_index > stored_peak.tier_index
        
        if candidate.is_apex:
            return candidate.points > stored_peak.points
        
        if candidate.division_index != stored_peak.division_index:
            return candidate.division_index > stored_peak.division_index
        
        return candidate.points > stored_peak.points
    
    @staticmethod
    def resolve_peak(
        new_rank: RankObservation,
        stored_peak: Optional[RankObservation],
        explicit_peak: Optional[RankObservation] = None
    ) -> Tuple[Optional[str], Optional[RankObservation]]:
        """
        Decide the peak to persist alongside a rank write.
        
        Returns:
            (path, peak) where path is EXPLICIT_OVERRIDE, RANK_COMPARISON or
            None when the stored peak is kept unchanged.
        """
        if explicit_peak is not None:
            return EXPLICIT_OVERRIDE, explicit_peak
        
        if PeakTracker.is_higher(new_rank, stored_peak):
            return RANK_COMPARISON, new_rank
        
        return None, stored_peak


class RankCandidateSelector:
    """Picks the best of several externally supplied observations."""
    
    @staticmethod
    def select_highest(candidates: Iterable[RankObservation]) -> Optional[RankObservation]:
        """
        Return the candidate with the highest score.
        
        Invalid candidates are skipped. Ties keep the first candidate seen.
        None means "no candidate" and must never be used to reset a peak.
        """
        best = None
        best_score = None
        for candidate in candidates:
            score = RankScore.calculate_score(candidate)
            if score is None:
                continue
            if best_score is None or score > best_score:
                best, best_score = candidate, score
        return best


def select_effective_rank(
    show_peak: bool,
    current: Optional[RankObservation],
    peak: Optional[RankObservation]
) -> Optional[RankObservation]:
    """Return the peak when the viewer opted to show it and one is recorded, else the current rank."""
    if show_peak and peak is not None and peak.tier:
        return peak
    return current
