"""
Frequency-domain band filter.

The signal is transformed with a DFT, every bin outside the inclusive
band ``[low_hz, high_hz]`` is zeroed and the result is transformed back.
Bin ``k`` of an ``N``-point transform sits at ``k * fs / N`` Hz.

Two modes are available:

``"complex"`` (default)
    Keeps the full complex spectrum (magnitude *and* phase), i.e. an ideal
    zero-phase band-pass.  Filtering twice gives the same result as once.
``"magnitude"``
    Keeps only the magnitude of each bin over the full ``N``-point spectrum
    and rebuilds the signal as ``(1/N) Σ |X[k]| cos(2πkn/N)``.  Phase is
    lost, so the output is not a faithful time-domain reconstruction; it is
    kept for compatibility with the browser implementation of this
    pipeline.
"""

from __future__ import annotations

import numpy as np
import scipy.fft

from vitals_monitor.config import FILTER_MODES


def bin_frequencies(n: int, sample_rate_hz: float) -> np.ndarray:
    """Frequencies (Hz) of the non-negative bins of an ``n``-point real DFT."""
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    if sample_rate_hz <= 0:
        raise ValueError(f"sample_rate_hz must be positive, got {sample_rate_hz}")
    return scipy.fft.rfftfreq(n, d=1.0 / sample_rate_hz)


def magnitude_spectrum(signal: np.ndarray, sample_rate_hz: float) -> tuple[np.ndarray, np.ndarray]:
    """Return ``(freqs_hz, |X|)`` for the non-negative bins of *signal*."""
    x = _as_signal(signal)
    freqs = bin_frequencies(x.size, sample_rate_hz)
    if x.size == 0:
        return freqs, np.array([], dtype=np.float64)
    return freqs, np.abs(scipy.fft.rfft(x))


def band_filter(
    signal: np.ndarray,
    sample_rate_hz: float,
    low_hz: float,
    high_hz: float,
    mode: str = "complex",
) -> np.ndarray:
    """
    Zero every DFT bin outside ``[low_hz, high_hz]`` and transform back.

    Parameters
    ----------
    signal:
        Real-valued 1-D sequence.
    sample_rate_hz:
        Sampling rate of *signal*.
    low_hz, high_hz:
        Inclusive pass-band edges.
    mode:
        ``"complex"`` or ``"magnitude"`` (see module docstring).

    Returns
    -------
    numpy.ndarray
        Real sequence of the same length.  Inputs shorter than two samples
        are returned unchanged.
    """
    x = _as_signal(signal)
    if sample_rate_hz <= 0:
        raise ValueError(f"sample_rate_hz must be positive, got {sample_rate_hz}")
    if low_hz > high_hz:
        raise ValueError(f"low_hz ({low_hz}) must not exceed high_hz ({high_hz})")
    if mode not in FILTER_MODES:
        raise ValueError(f"mode must be one of {FILTER_MODES}, got {mode!r}")

    n = x.size
    if n < 2:
        return x.copy()

    if mode == "complex":
        spectrum = scipy.fft.rfft(x)
        freqs = scipy.fft.rfftfreq(n, d=1.0 / sample_rate_hz)
        spectrum[(freqs < low_hz) | (freqs > high_hz)] = 0.0
        return scipy.fft.irfft(spectrum, n=n)

    # Full-length magnitude spectrum; bins past N/2 map to k*fs/N > high_hz
    # and are dropped together with everything else outside the band.
    magnitudes = np.abs(scipy.fft.fft(x))
    freqs = np.arange(n) * (sample_rate_hz / n)
    magnitudes[(freqs < low_hz) | (freqs > high_hz)] = 0.0
    return np.real(scipy.fft.ifft(magnitudes))


def _as_signal(signal: np.ndarray) -> np.ndarray:
    x = np.asarray(signal, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError(f"Expected a 1-D signal, got shape {x.shape}")
    return x
