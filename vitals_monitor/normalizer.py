"""
Local-mean normalisation.

Every sample is expressed relative to the mean of the ``window`` samples
that precede it: ``(value - mean) / mean``.  This removes slow
illumination drift and the subject's skin-tone DC level and leaves the
small pulsatile / respiratory variation, in dimensionless units.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from vitals_monitor.sample_extractor import Sample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelSignals:
    """Three parallel per-channel sequences (normalized or filtered)."""

    r: np.ndarray
    g: np.ndarray
    b: np.ndarray

    def __post_init__(self) -> None:
        if not (len(self.r) == len(self.g) == len(self.b)):
            raise ValueError(
                f"Channel lengths differ: r={len(self.r)} g={len(self.g)} b={len(self.b)}"
            )

    def __len__(self) -> int:
        return len(self.r)

    @classmethod
    def empty(cls) -> "ChannelSignals":
        return cls(np.array([]), np.array([]), np.array([]))


def trailing_mean(signal: np.ndarray, window: int) -> np.ndarray:
    """
    Mean of the ``window`` values preceding each index ``i >= window``.

    Output has ``max(0, len(signal) - window)`` entries; entry ``j`` is the
    mean of ``signal[j:j + window]``.
    """
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")
    signal = np.asarray(signal, dtype=np.float64)
    if signal.ndim != 1:
        raise ValueError(f"Expected a 1-D signal, got shape {signal.shape}")
    if signal.size <= window:
        return np.array([], dtype=np.float64)
    return sliding_window_view(signal[:-1], window).mean(axis=-1)


def normalize_channels(
    r: np.ndarray,
    g: np.ndarray,
    b: np.ndarray,
    window: int = 30,
) -> ChannelSignals:
    """
    Normalize three parallel channels against their trailing local mean.

    An index whose local mean is zero in any channel (a black window) is
    dropped from all three outputs, so the result may be shorter than
    ``len(r) - window``.
    """
    r = np.asarray(r, dtype=np.float64)
    g = np.asarray(g, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if not (r.shape == g.shape == b.shape):
        raise ValueError(f"Channel shapes differ: {r.shape}, {g.shape}, {b.shape}")

    means = [trailing_mean(ch, window) for ch in (r, g, b)]
    if means[0].size == 0:
        return ChannelSignals.empty()

    current = [ch[window:] for ch in (r, g, b)]
    valid = (means[0] != 0) & (means[1] != 0) & (means[2] != 0)
    skipped = int(valid.size - np.count_nonzero(valid))
    if skipped:
        logger.debug("Skipping %d zero-mean windows during normalisation.", skipped)

    out = [(cur[valid] - mean[valid]) / mean[valid] for cur, mean in zip(current, means)]
    return ChannelSignals(*out)


def normalize_samples(samples: Sequence[Sample], window: int = 30) -> ChannelSignals:
    """Convenience wrapper over :func:`normalize_channels` for a sample snapshot."""
    if not samples:
        return ChannelSignals.empty()
    r = np.fromiter((s.r for s in samples), dtype=np.float64, count=len(samples))
    g = np.fromiter((s.g for s in samples), dtype=np.float64, count=len(samples))
    b = np.fromiter((s.b for s in samples), dtype=np.float64, count=len(samples))
    return normalize_channels(r, g, b, window)
