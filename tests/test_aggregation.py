"""
Tests for the pure aggregation functions: scoring, median, top-N and eligibility.
"""

from datetime import date

import pytest

from rankwatch.data_models.rank import RankObservation
from rankwatch.data_models.stats import StatWindow, ViewerRankRow, ViewerScoreEntry
from rankwatch.services.aggregation_service import compute_window_stats, median, score_viewers

ALL_TIME = StatWindow.all_time()


def row(viewer_id, tier, division=None, points=0, show_peak=False, peak=None):
    return ViewerRankRow(
        viewer_id=viewer_id,
        display_name=f"user_{viewer_id}",
        show_peak=show_peak,
        current=RankObservation(tier, division, points),
        peak=peak
    )


def entry(viewer_id, score):
    return ViewerScoreEntry(
        viewer_id=viewer_id,
        display_name=f"user_{viewer_id}",
        tier='GOLD',
        division='IV',
        points=0,
        score=score
    )


class TestMedian:
    def test_odd_length_is_middle_element(self):
        assert median([5.0, 1.0, 3.0]) == 3.0

    def test_even_length_averages_middle_pair(self):
        assert median([1200.0, 0.0, 800.0, 400.0]) == 600.0

    def test_single_value(self):
        assert median([42.0]) == 42.0


class TestScoreViewers:
    def test_uses_peak_when_opted_in(self):
        peak = RankObservation('DIAMOND', 'IV', 0)
        entries = score_viewers([row('a', 'GOLD', 'IV', 0, show_peak=True, peak=peak)])
        assert entries[0].tier == 'DIAMOND'
        assert entries[0].score == 2400.0

    def test_uses_current_when_not_opted_in(self):
        peak = RankObservation('DIAMOND', 'IV', 0)
        entries = score_viewers([row('a', 'GOLD', 'IV', 0, peak=peak)])
        assert entries[0].tier == 'GOLD'
        assert entries[0].score == 1200.0

    def test_invalid_ranks_are_left_out(self):
        entries = score_viewers([row('a', 'WOOD', 'I'), row('b', 'SILVER', 'II', 10)])
        assert [e.viewer_id for e in entries] == ['b']


class TestComputeWindowStats:
    def test_four_viewer_example(self):
        rows = [
            row('a', 'IRON', 'IV', 0),
            row('b', 'BRONZE', 'IV', 0),
            row('c', 'SILVER', 'IV', 0),
            row('d', 'GOLD', 'IV', 0),
        ]
        stats = compute_window_stats('streamer', ALL_TIME, score_viewers(rows))

        assert stats.viewer_count == 4
        assert stats.mean_score == 600.0
        assert stats.median_score == 600.0
        assert (stats.mean_rank.tier, stats.mean_rank.division, stats.mean_rank.points) == ('BRONZE', 'II', 0)
        assert stats.top_viewers[0].display_name == 'user_d'
        assert stats.top_viewers[0].score == 1200.0
        assert [tv.score for tv in stats.top_viewers] == [1200.0, 800.0, 400.0, 0.0]
        assert stats.eligible is False

    @pytest.mark.parametrize("count,eligible", [(9, False), (10, True), (11, True)])
    def test_eligibility_boundary(self, count, eligible):
        entries = [entry(str(i), 100.0 * i) for i in range(count)]
        stats = compute_window_stats('streamer', ALL_TIME, entries)
        assert stats.viewer_count == count
        assert stats.eligible is eligible

    def test_top_ten_only(self):
        entries = [entry(str(i), float(i)) for i in range(25)]
        stats = compute_window_stats('streamer', ALL_TIME, entries)
        assert len(stats.top_viewers) == 10
        assert stats.top_viewers[0].score == 24.0
        assert stats.top_viewers[-1].score == 15.0

    def test_ties_keep_scan_order(self):
        entries = [entry('x', 500.0), entry('y', 900.0), entry('z', 500.0)]
        stats = compute_window_stats('streamer', ALL_TIME, entries)
        assert [tv.display_name for tv in stats.top_viewers] == ['user_y', 'user_x', 'user_z']

    def test_zero_viewers_is_terminal_state(self):
        stats = compute_window_stats('streamer', ALL_TIME, [])
        assert stats.viewer_count == 0
        assert stats.is_empty
        assert stats.mean_score is None
        assert stats.median_score is None
        assert stats.mean_rank is None
        assert stats.top_viewers == ()
        assert stats.eligible is False
        assert stats.top_viewers_json() == '[]'

    def test_day_row_records_all_time_context(self):
        all_time = compute_window_stats('streamer', ALL_TIME, [entry('a', 100.0), entry('b', 300.0)])
        day = compute_window_stats(
            'streamer', StatWindow.day(date(2026, 3, 14)), [entry('a', 100.0)], all_time=all_time
        )
        assert day.alltime_mean_score == 200.0
        assert day.alltime_median_score == 200.0
        assert day.alltime_viewer_count == 2
        assert day.mean_score == 100.0

    def test_same_input_same_result(self):
        entries = [entry(str(i), float(i * 37 % 11)) for i in range(15)]
        first = compute_window_stats('streamer', ALL_TIME, entries)
        second = compute_window_stats('streamer', ALL_TIME, list(entries))
        assert first == second
        assert first.top_viewers_json() == second.top_viewers_json()
