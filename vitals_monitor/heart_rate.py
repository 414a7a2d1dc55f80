"""
Heart rate and heart-rate variability from the filtered pulse signal.

Algorithm
---------
1. Find local maxima of the band-passed green channel that rise above
   half of the window maximum.
2. Accept a maximum only if it comes at least ``min_distance`` samples
   after the previously accepted one (refractory period; suppresses
   double counts from filter ripple).
3. Inter-peak distances become RR intervals in milliseconds; the mean of
   the current window's intervals gives the heart rate.
4. The bounded RR history accumulated across cycles gives SDNN and RMSSD.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Deque, Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeartRateResult:
    heart_rate: float                 # bpm
    intervals_ms: np.ndarray          # RR intervals found in this window
    sdnn: Optional[float] = None      # ms, None with < 2 intervals of history
    hrv: Optional[float] = None       # RMSSD in ms


def detect_peaks(
    signal: np.ndarray,
    min_distance: int = 20,
    threshold_ratio: float = 0.5,
) -> np.ndarray:
    """
    Return the indices of accepted pulse peaks in *signal*.

    A sample ``i`` (``1 <= i < len - 1``) is a candidate when it is greater
    than ``threshold_ratio * max(signal)`` and strictly greater than both
    neighbours.  Candidates are accepted left to right, skipping any closer
    than ``min_distance`` samples to the last accepted peak.  Plateaus never
    qualify.
    """
    if min_distance < 0:
        raise ValueError(f"min_distance must be non-negative, got {min_distance}")
    x = np.asarray(signal, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError(f"Expected a 1-D signal, got shape {x.shape}")
    if x.size < 3:
        return np.array([], dtype=np.intp)

    threshold = threshold_ratio * float(np.max(x))
    mid = x[1:-1]
    candidates = np.flatnonzero((mid > threshold) & (mid > x[:-2]) & (mid > x[2:])) + 1

    accepted: list[int] = []
    for idx in candidates:
        if not accepted or idx - accepted[-1] >= min_distance:
            accepted.append(int(idx))
    return np.array(accepted, dtype=np.intp)


def peak_intervals_ms(peaks: np.ndarray, sample_rate_hz: float) -> np.ndarray:
    """Convert consecutive peak indices into intervals in milliseconds."""
    if sample_rate_hz <= 0:
        raise ValueError(f"sample_rate_hz must be positive, got {sample_rate_hz}")
    return np.diff(np.asarray(peaks, dtype=np.float64)) * (1000.0 / sample_rate_hz)


def sdnn(intervals_ms) -> float:
    """Population standard deviation of the RR intervals."""
    return float(np.std(np.asarray(intervals_ms, dtype=np.float64)))


def rmssd(intervals_ms) -> float:
    """Root mean square of successive RR-interval differences."""
    diffs = np.diff(np.asarray(intervals_ms, dtype=np.float64))
    if diffs.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(diffs ** 2)))


def update_heart_rate(
    pulse: np.ndarray,
    rr_history: Deque[float],
    sample_rate_hz: float,
    min_peak_distance: int = 20,
    threshold_ratio: float = 0.5,
) -> Optional[HeartRateResult]:
    """
    Detect peaks in *pulse*, extend *rr_history* and compute HR / HRV.

    *rr_history* is mutated in place (its ``maxlen`` bounds it).  Returns
    *None*, leaving the history untouched, when fewer than two peaks are
    found.
    """
    peaks = detect_peaks(pulse, min_peak_distance, threshold_ratio)
    if peaks.size < 2:
        logger.debug("Only %d pulse peaks in window; heart rate not updated.", peaks.size)
        return None

    intervals = peak_intervals_ms(peaks, sample_rate_hz)
    rr_history.extend(float(v) for v in intervals)
    heart_rate = 60000.0 / float(np.mean(intervals))

    if len(rr_history) < 2:
        return HeartRateResult(heart_rate=heart_rate, intervals_ms=intervals)

    history = np.fromiter(rr_history, dtype=np.float64, count=len(rr_history))
    return HeartRateResult(
        heart_rate=heart_rate,
        intervals_ms=intervals,
        sdnn=sdnn(history),
        hrv=rmssd(history),
    )
