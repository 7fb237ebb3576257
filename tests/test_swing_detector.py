"""
Tests for swing point detection and classification.
"""

import pytest

from src.swing_analysis import SwingClassification, SwingConfig, detect_swings, swing_line
from src.swing_analysis.swing_detector import detect_swings_with_config

from conftest import make_candle, make_series


class TestShortSeries:
    """Series too short to contain a full window."""

    def test_empty(self):
        assert detect_swings([], 2, 8, 2) == []

    @pytest.mark.parametrize("length", [0, 1, 4])
    def test_shorter_than_min_candles(self, length):
        candles = make_series([10 + i for i in range(length)], [5 + i for i in range(length)])
        assert detect_swings(candles, 2, 200, 2) == []


class TestSinglePeak:
    """Eight candles with one clear peak at index 4."""

    @pytest.fixture
    def candles(self):
        return make_series(
            highs=[10, 11, 12, 13, 20, 13, 12, 11],
            lows=[5, 6, 7, 8, 15, 8, 7, 6],
        )

    def test_one_hh_at_peak(self, candles):
        points = detect_swings(candles, comparison_window=2, analysis_window=8, forward_window=2)

        assert len(points) == 1
        point = points[0]
        assert point.source_index == 4
        assert point.is_high is True
        assert point.classification == SwingClassification.HH
        assert point.price == 20
        assert point.time == candles[4].time

    def test_swing_line_payload(self, candles):
        points = detect_swings(candles, 2, 8, 2)
        assert swing_line(points) == [{"time": candles[4].time, "value": 20}]


class TestStrictness:

    def test_equal_neighbour_high_disqualifies(self):
        candles = make_series(
            highs=[10, 11, 20, 20, 11, 10],
            lows=[5, 6, 7, 7, 6, 5],
        )
        highs = [p for p in detect_swings(candles, 2, 6, 2) if p.is_high]
        assert highs == []

    def test_equal_neighbour_low_disqualifies(self):
        candles = make_series(
            highs=[20, 19, 18, 18, 19, 20],
            lows=[10, 9, 3, 3, 9, 10],
        )
        lows = [p for p in detect_swings(candles, 2, 6, 2) if not p.is_high]
        assert lows == []


class TestClassification:
    """HH/LH and HL/LL chains are independent."""

    def _zigzag(self, peaks, troughs):
        highs, lows = [], []
        for peak, trough in zip(peaks, troughs):
            highs += [peak - 5, peak, peak - 5, trough + 2]
            lows += [peak - 8, peak - 3, peak - 8, trough]
        return make_series(highs, lows)

    def test_lower_second_high_is_lh(self):
        candles = self._zigzag(peaks=[120, 110, 130], troughs=[90, 95, 85])
        highs = [p for p in detect_swings(candles, 1, 200, 1) if p.is_high]

        assert [p.price for p in highs] == [120, 110, 130]
        assert [p.classification for p in highs] == [
            SwingClassification.HH, SwingClassification.LH, SwingClassification.HH,
        ]

    def test_higher_second_low_is_hl(self):
        candles = self._zigzag(peaks=[120, 110, 130], troughs=[90, 95, 85])
        lows = [p for p in detect_swings(candles, 1, 200, 1) if not p.is_high]

        # The final trough lacks a forward candle
        assert [p.price for p in lows] == [90, 95]
        assert [p.classification for p in lows] == [SwingClassification.HL, SwingClassification.HL]

    def test_lower_low_is_ll(self):
        candles = self._zigzag(peaks=[120, 110, 130, 125], troughs=[90, 80, 85, 70])
        lows = [p for p in detect_swings(candles, 1, 200, 1) if not p.is_high]

        assert [p.classification for p in lows][:2] == [SwingClassification.HL, SwingClassification.LL]

    def test_source_indices_inside_scan_range(self):
        candles = self._zigzag(peaks=[120, 110, 130, 125], troughs=[90, 80, 85, 70])
        cw, fw = 2, 2
        for point in detect_swings(candles, cw, 200, fw):
            assert cw <= point.source_index < len(candles) - fw

    def test_output_in_index_order(self):
        candles = self._zigzag(peaks=[120, 110, 130, 125], troughs=[90, 80, 85, 70])
        indices = [p.source_index for p in detect_swings(candles, 1, 200, 1)]
        assert indices == sorted(indices)


class TestAnalysisWindow:

    def test_only_recent_candles_scanned(self):
        candles = make_series(
            highs=[10, 30, 10, 11, 12, 13, 14, 15, 16, 17],
            lows=[5, 6, 5, 6, 7, 8, 9, 10, 11, 12],
        )
        assert any(p.source_index == 1 for p in detect_swings(candles, 1, 10, 1))
        assert not any(p.source_index == 1 for p in detect_swings(candles, 1, 5, 1))


class TestDuplicateTimes:

    def test_duplicate_timestamp_keeps_first(self):
        candles = [
            make_candle(0, 10, 10, 5, 10),
            make_candle(1, 12, 20, 12, 12, time=1700000060),
            make_candle(2, 10, 10, 5, 10, time=1700000060),
            make_candle(3, 10, 10, 6, 10),
        ]
        points = detect_swings(candles, 1, 200, 1)
        times = [p.time for p in points]
        assert len(times) == len(set(times))
        assert points[0].source_index == 1


class TestValidation:

    def test_negative_window_raises(self):
        with pytest.raises(ValueError):
            detect_swings([], -1, 200, 2)

    def test_zero_analysis_window_raises(self):
        with pytest.raises(ValueError):
            detect_swings([], 2, 0, 2)

    def test_config_variant_matches(self):
        candles = make_series([10, 11, 12, 13, 20, 13, 12, 11], [5, 6, 7, 8, 15, 8, 7, 6])
        config = SwingConfig.default().with_windows(comparison_window=2, forward_window=2, analysis_window=8)
        assert detect_swings_with_config(candles, config) == detect_swings(candles, 2, 8, 2)
