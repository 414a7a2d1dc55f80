"""
Respiration rate from the slow modulation of the pulse signal.

Breathing modulates the PPG amplitude and baseline at 0.1 – 0.4 Hz
(6 – 24 breaths/min).  A trailing sliding mean over the filtered pulse
signal keeps that slow component; the dominant bin of its magnitude
spectrum inside the respiration band gives the rate.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np

from vitals_monitor.normalizer import trailing_mean
from vitals_monitor.spectral_filter import magnitude_spectrum

logger = logging.getLogger(__name__)


def respiration_envelope(pulse: np.ndarray, window: int = 30) -> np.ndarray:
    """Trailing sliding mean of *pulse* (``len(pulse) - window`` values)."""
    return trailing_mean(pulse, window)


def estimate_respiration_rate(
    pulse: np.ndarray,
    sample_rate_hz: float,
    window: int = 30,
    band_hz: Tuple[float, float] = (0.1, 0.4),
) -> Optional[float]:
    """
    Return breaths per minute, or *None* when no estimate is possible.

    *None* covers an envelope too short for any bin to fall inside
    ``band_hz`` and an envelope with no energy in the band (flat signal).
    """
    envelope = respiration_envelope(pulse, window)
    if envelope.size < 2:
        logger.debug("Respiration envelope too short (%d samples).", envelope.size)
        return None

    freqs, mags = magnitude_spectrum(envelope, sample_rate_hz)
    low, high = band_hz
    band = (freqs >= low) & (freqs <= high)
    if not band.any():
        logger.debug(
            "No spectral bin inside %.2f-%.2f Hz at resolution %.3f Hz.",
            low, high, sample_rate_hz / envelope.size,
        )
        return None

    band_mags = mags[band]
    if not np.isfinite(band_mags).all() or float(band_mags.max()) <= 0.0:
        return None

    peak_freq = float(freqs[band][int(np.argmax(band_mags))])
    return peak_freq * 60.0
