"""
Blood-oxygen saturation (SpO2) from the ratio of ratios.

True pulse oximetry compares the AC/DC modulation of red (~660 nm) and
infrared (~940 nm) light.  A camera has neither a pure red source nor
infrared, so the red and blue channels stand in for the pair:

    R    = (AC_red / DC_red) / (AC_blue / DC_blue)
    SpO2 = 110 - 25 × R              clamped to 90 – 100 %

AC is the peak-to-peak range and DC the mean over the current window.
The result is indicative only, not clinical-grade.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

SPO2_MIN = 90.0
SPO2_MAX = 100.0

# Below this the DC level is treated as zero
_DC_EPSILON = 1e-12


def ac_dc_ratio(signal: np.ndarray) -> Optional[float]:
    """
    Return ``(max - min) / mean`` of *signal*.

    *None* for an empty window, a zero mean or a zero range.
    """
    x = np.asarray(signal, dtype=np.float64)
    if x.size == 0 or not np.isfinite(x).all():
        return None
    dc = float(np.mean(x))
    ac = float(np.max(x) - np.min(x))
    if abs(dc) < _DC_EPSILON or ac == 0.0:
        return None
    return ac / dc


def estimate_spo2(red: np.ndarray, blue: np.ndarray) -> Optional[float]:
    """Estimate SpO2 (%) from two channel windows; *None* when degenerate."""
    ratio_red = ac_dc_ratio(red)
    ratio_blue = ac_dc_ratio(blue)
    if ratio_red is None or ratio_blue is None:
        logger.debug("Degenerate channel window; SpO2 not updated.")
        return None

    ratio = ratio_red / ratio_blue
    if not np.isfinite(ratio):
        return None

    spo2 = 110.0 - 25.0 * ratio
    return max(SPO2_MIN, min(SPO2_MAX, spo2))
