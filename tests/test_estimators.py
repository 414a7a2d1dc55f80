"""
Unit tests for the vital-sign estimators: heart rate / HRV, respiration,
SpO2, blood pressure, glucose and the calibration gate.
Run with:  pytest tests/test_estimators.py
"""

from __future__ import annotations

from collections import deque

import numpy as np
import pytest

from vitals_monitor.calibration import CalibrationState
from vitals_monitor.estimators import (
    DIASTOLIC_RANGE,
    GLUCOSE_RANGES,
    SYSTOLIC_RANGE,
    EstimationContext,
    GlucoseContext,
    PulseTransitTimeEstimator,
    RandomGlucoseEstimator,
)
from vitals_monitor.heart_rate import (
    detect_peaks,
    peak_intervals_ms,
    rmssd,
    sdnn,
    update_heart_rate,
)
from vitals_monitor.normalizer import ChannelSignals
from vitals_monitor.respiration import estimate_respiration_rate
from vitals_monitor.spo2 import ac_dc_ratio, estimate_spo2

FS = 30.0


def _impulses(indices, length: int = 120) -> np.ndarray:
    x = np.zeros(length)
    x[list(indices)] = 1.0
    return x


def _context(mode: GlucoseContext = GlucoseContext.FASTING) -> EstimationContext:
    return EstimationContext(
        filtered=ChannelSignals.empty(), sample_rate_hz=FS, heart_rate=70.0, glucose_context=mode
    )


# ---------------------------------------------------------------------------
# Peak detection
# ---------------------------------------------------------------------------

class TestDetectPeaks:

    def test_finds_isolated_peaks(self):
        np.testing.assert_array_equal(detect_peaks(_impulses([30, 60, 90])), [30, 60, 90])

    def test_refractory_period_enforced(self):
        # 75 is only 15 samples after 60 and must be dropped
        peaks = detect_peaks(_impulses([30, 60, 75, 100]), min_distance=20)
        np.testing.assert_array_equal(peaks, [30, 60, 100])

    @pytest.mark.parametrize("seed", range(5))
    def test_no_two_peaks_closer_than_min_distance(self, seed):
        x = np.random.default_rng(seed).normal(size=600)
        peaks = detect_peaks(x, min_distance=20)
        assert np.all(np.diff(peaks) >= 20)

    def test_below_threshold_maxima_ignored(self):
        x = _impulses([30, 60])
        x[45] = 0.4
        np.testing.assert_array_equal(detect_peaks(x), [30, 60])

    def test_plateau_never_registers(self):
        x = np.zeros(50)
        x[20:23] = 1.0
        assert detect_peaks(x).size == 0

    def test_end_points_are_not_peaks(self):
        x = np.zeros(50)
        x[0] = x[-1] = 1.0
        assert detect_peaks(x).size == 0

    @pytest.mark.parametrize("signal", [np.array([]), np.array([1.0, 2.0]), np.zeros(100)])
    def test_degenerate_inputs(self, signal):
        assert detect_peaks(signal).size == 0


# ---------------------------------------------------------------------------
# Heart rate / HRV
# ---------------------------------------------------------------------------

class TestHeartRate:

    def test_peaks_one_second_apart_give_60_bpm(self):
        history: deque = deque(maxlen=300)
        result = update_heart_rate(_impulses([30, 60, 90]), history, FS)
        assert result is not None
        np.testing.assert_allclose(result.intervals_ms, [1000.0, 1000.0])
        assert result.heart_rate == pytest.approx(60.0)
        assert list(history) == [1000.0, 1000.0]
        assert result.sdnn == pytest.approx(0.0)
        assert result.hrv == pytest.approx(0.0)

    def test_fewer_than_two_peaks_leaves_history_untouched(self):
        history: deque = deque([800.0, 900.0], maxlen=300)
        assert update_heart_rate(_impulses([30]), history, FS) is None
        assert update_heart_rate(np.zeros(120), history, FS) is None
        assert list(history) == [800.0, 900.0]

    def test_hrv_uses_whole_history(self):
        history: deque = deque([800.0], maxlen=300)
        result = update_heart_rate(_impulses([30, 60, 90]), history, FS)
        expected = np.array([800.0, 1000.0, 1000.0])
        assert result.sdnn == pytest.approx(float(np.std(expected)))
        assert result.hrv == pytest.approx(np.sqrt((200.0 ** 2 + 0.0) / 2))

    def test_history_is_bounded(self):
        history: deque = deque(maxlen=3)
        for _ in range(4):
            update_heart_rate(_impulses([10, 40, 70, 100]), history, FS)
        assert len(history) == 3

    def test_interval_statistics(self):
        assert sdnn([800, 850, 900]) == pytest.approx(np.sqrt(5000 / 3))
        assert rmssd([800, 850, 900]) == pytest.approx(50.0)
        assert rmssd([800]) == 0.0

    def test_intervals_scale_with_sample_rate(self):
        np.testing.assert_allclose(peak_intervals_ms([0, 15, 45], 15.0), [1000.0, 2000.0])
        with pytest.raises(ValueError):
            peak_intervals_ms([0, 15], 0.0)


# ---------------------------------------------------------------------------
# Respiration
# ---------------------------------------------------------------------------

class TestRespiration:

    def test_dominant_breathing_frequency(self):
        # Envelope length 1200 puts 0.25 Hz exactly on a bin
        t = np.arange(1230) / FS
        pulse = np.sin(2 * np.pi * 0.25 * t) + 0.2 * np.sin(2 * np.pi * 1.2 * t)
        rate = estimate_respiration_rate(pulse, FS, window=30)
        assert rate == pytest.approx(15.0)

    def test_too_short_for_band_returns_none(self):
        # 60 samples → 30-sample envelope → 1 Hz resolution, no bin in 0.1–0.4 Hz
        t = np.arange(60) / FS
        assert estimate_respiration_rate(np.sin(2 * np.pi * 0.25 * t), FS) is None

    def test_flat_signal_returns_none(self):
        assert estimate_respiration_rate(np.zeros(300), FS) is None

    def test_result_stays_inside_band(self):
        x = np.random.default_rng(3).normal(size=300)
        rate = estimate_respiration_rate(x, FS)
        assert rate is not None
        assert 6.0 <= rate <= 24.0


# ---------------------------------------------------------------------------
# SpO2
# ---------------------------------------------------------------------------

class TestSpO2:

    def test_ratio_of_ratios(self):
        red = np.array([3.0, 5.0])       # AC/DC = 2 / 4
        blue = np.array([1.0, 3.0])      # AC/DC = 2 / 2
        assert estimate_spo2(red, blue) == pytest.approx(110 - 25 * 0.5)

    def test_clamped_to_range(self):
        assert estimate_spo2(np.array([1.0, 3.0]), np.array([1.0, 3.0])) == 90.0
        assert estimate_spo2(np.array([99.0, 101.0]), np.array([1.0, 3.0])) == 100.0

    @pytest.mark.parametrize(
        "red,blue",
        [
            (np.full(50, 2.0), np.array([1.0, 3.0])),   # zero variance
            (np.array([-1.0, 1.0]), np.array([1.0, 3.0])),  # zero mean
            (np.zeros(50), np.zeros(50)),
            (np.array([]), np.array([])),
        ],
    )
    def test_degenerate_channels_give_no_update(self, red, blue):
        assert estimate_spo2(red, blue) is None

    def test_ac_dc_ratio(self):
        assert ac_dc_ratio(np.array([1.0, 2.0, 3.0])) == pytest.approx(1.0)
        assert ac_dc_ratio(np.array([np.nan, 1.0])) is None

    @pytest.mark.parametrize("seed", range(5))
    def test_any_finite_input_within_range(self, seed):
        rng = np.random.default_rng(seed)
        value = estimate_spo2(rng.normal(size=100), rng.normal(size=100))
        assert value is None or 90.0 <= value <= 100.0


# ---------------------------------------------------------------------------
# Blood pressure / glucose placeholders
# ---------------------------------------------------------------------------

class TestPlaceholderEstimators:

    def test_blood_pressure_within_ranges(self):
        est = PulseTransitTimeEstimator(np.random.default_rng(0))
        for _ in range(200):
            bp = est.estimate(_context())
            assert SYSTOLIC_RANGE[0] <= bp.systolic <= SYSTOLIC_RANGE[1]
            assert DIASTOLIC_RANGE[0] <= bp.diastolic <= DIASTOLIC_RANGE[1]
            # PTT of 250 ± 10 ms keeps readings near 120/80
            assert abs(bp.systolic - 120.0) <= 5.0
            assert abs(bp.diastolic - 80.0) <= 4.0

    def test_pulse_transit_time_bounds(self):
        est = PulseTransitTimeEstimator(np.random.default_rng(1))
        ptts = [est.pulse_transit_time() for _ in range(200)]
        assert min(ptts) >= 240.0 and max(ptts) <= 260.0

    def test_extreme_ptt_is_clamped(self):
        est = PulseTransitTimeEstimator(np.random.default_rng(0), ptt_center_ms=0.0, ptt_spread_ms=0.0)
        bp = est.estimate(_context())
        assert bp.systolic == SYSTOLIC_RANGE[1]
        assert bp.diastolic == DIASTOLIC_RANGE[1]

    @pytest.mark.parametrize("mode", list(GlucoseContext))
    def test_glucose_within_context_range(self, mode):
        est = RandomGlucoseEstimator(np.random.default_rng(0))
        low, high = GLUCOSE_RANGES[mode]
        values = [est.estimate(_context(mode)) for _ in range(200)]
        assert all(low <= v <= high for v in values)

    def test_glucose_context_shifts_level(self):
        fasting = RandomGlucoseEstimator(np.random.default_rng(0)).estimate(_context())
        fed = RandomGlucoseEstimator(np.random.default_rng(0)).estimate(
            _context(GlucoseContext.POSTPRANDIAL)
        )
        assert fed - fasting == pytest.approx(40.0)

    def test_seeded_generators_are_reproducible(self):
        a = PulseTransitTimeEstimator(np.random.default_rng(7)).estimate(_context())
        b = PulseTransitTimeEstimator(np.random.default_rng(7)).estimate(_context())
        assert a == b


# ---------------------------------------------------------------------------
# Calibration
# ---------------------------------------------------------------------------

class TestCalibration:

    def test_completes_after_required_frames(self):
        cal = CalibrationState(frames_required=90)
        transitions = [cal.advance() for _ in range(100)]
        assert transitions.count(True) == 1
        assert transitions.index(True) == 89
        assert not cal.in_calibration
        assert cal.frames_observed == 90

    def test_zero_required_frames_starts_stable(self):
        cal = CalibrationState(frames_required=0)
        assert not cal.in_calibration
        assert cal.advance() is False

    def test_reset(self):
        cal = CalibrationState(frames_required=2)
        cal.advance()
        cal.advance()
        cal.reset()
        assert cal.in_calibration
