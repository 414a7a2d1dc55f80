"""
Rolling signal buffer.

Holds the last ``capacity`` colour samples in capture order.  This is the
only owner of raw history.  Samples are also written into a mirrored numpy
ring as they arrive, so :meth:`SignalBuffer.channels` hands the pipeline
contiguous per-channel views without copying or looping over samples.
Everything downstream is derived from those views and discarded at the end
of the cycle.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Optional, Tuple

import numpy as np

from vitals_monitor.sample_extractor import Sample

logger = logging.getLogger(__name__)


class SignalBuffer:
    """
    Fixed-capacity FIFO of :class:`Sample` objects.

    Parameters
    ----------
    capacity:
        Maximum number of samples retained; the oldest is evicted first.
    min_samples:
        Fill level at which :meth:`is_ready` turns true.
    """

    def __init__(self, capacity: int = 300, min_samples: int = 90) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if not 0 <= min_samples <= capacity:
            raise ValueError(f"min_samples must be within [0, {capacity}], got {min_samples}")
        self.capacity = capacity
        self.min_samples = min_samples
        self._samples: Deque[Sample] = deque(maxlen=capacity)
        # Shared read-only view, rebuilt lazily after each push
        self._snapshot: Optional[Tuple[Sample, ...]] = ()
        # Mirrored ring of (r, g, b, t) rows: row i is also stored at i + capacity,
        # so the newest `capacity` rows are always one contiguous slice.
        self._data = np.zeros((2 * capacity, 4), dtype=np.float64)
        self._head = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def push(self, sample: Sample) -> None:
        """Append *sample*; evicts the oldest one when full."""
        if self._samples and sample.t < self._samples[-1].t:
            logger.warning(
                "Sample timestamp %.4f is older than the previous one (%.4f).",
                sample.t, self._samples[-1].t,
            )
        self._samples.append(sample)
        self._snapshot = None
        row = (sample.r, sample.g, sample.b, sample.t)
        self._data[self._head] = row
        self._data[self._head + self.capacity] = row
        self._head = (self._head + 1) % self.capacity

    def snapshot(self) -> Tuple[Sample, ...]:
        """
        Return the current contents, oldest first.

        The tuple is shared between all callers until the next push, so
        readers never copy and never observe a half-applied update.
        """
        if self._snapshot is None:
            self._snapshot = tuple(self._samples)
        return self._snapshot

    def channels(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Return ``(r, g, b, t)`` as parallel float64 arrays, oldest first.

        The arrays are read-only views into the ring; nothing is copied.
        They stay valid until the next :meth:`push`, so copy them to keep
        a buffer state across cycles.
        """
        end = self._head + self.capacity
        view = self._data[end - len(self._samples):end]
        view.flags.writeable = False
        return view[:, 0], view[:, 1], view[:, 2], view[:, 3]

    def is_ready(self) -> bool:
        """True once at least ``min_samples`` samples are buffered."""
        return len(self._samples) >= self.min_samples

    def effective_rate(self) -> float:
        """
        Sampling rate measured from the buffered timestamps (samples / s).
        Returns 0.0 when fewer than two samples or no elapsed time.
        """
        if len(self._samples) < 2:
            return 0.0
        span = self._samples[-1].t - self._samples[0].t
        if span <= 0:
            return 0.0
        return (len(self._samples) - 1) / span

    @property
    def fill_ratio(self) -> float:
        """How full the rolling buffer is (0 – 1)."""
        return len(self._samples) / self.capacity

    def __len__(self) -> int:
        return len(self._samples)
