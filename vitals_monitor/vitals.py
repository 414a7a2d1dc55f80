"""
Vitals snapshot, shared record and polling consumer.

The pipeline publishes a new frozen :class:`VitalsSnapshot` at the end of
each cycle; readers on other threads (UI refresh, logging) only ever see
a complete snapshot, never live pipeline state.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, replace
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

# Physiological clamp ranges applied whenever a field is updated
VITAL_RANGES: Dict[str, Tuple[float, float]] = {
    "heart_rate": (30.0, 240.0),         # bpm
    "respiration_rate": (4.0, 60.0),     # breaths/min
    "spo2": (90.0, 100.0),               # %
    "systolic": (90.0, 180.0),           # mmHg
    "diastolic": (60.0, 120.0),          # mmHg
    "hrv": (0.0, 1000.0),                # RMSSD, ms
    "sdnn": (0.0, 1000.0),               # ms
    "glucose": (70.0, 180.0),            # mg/dL
}


@dataclass(frozen=True)
class VitalsSnapshot:
    """
    Immutable set of current vital-sign estimates.

    Fields hold their defaults until the first valid update; zero heart
    and respiration rate mean "no reading yet".
    """

    heart_rate: float = 0.0
    respiration_rate: float = 0.0
    spo2: float = 98.0
    systolic: float = 120.0
    diastolic: float = 80.0
    hrv: float = 0.0
    sdnn: float = 0.0
    glucose: float = 100.0

    def updated(self, **changes: float) -> "VitalsSnapshot":
        """Return a copy with *changes* applied, each clamped to its range."""
        clamped = {}
        for name, value in changes.items():
            low, high = VITAL_RANGES[name]
            clamped[name] = max(low, min(high, float(value)))
        return replace(self, **clamped)

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


class VitalsRecord:
    """Single shared slot holding the latest published snapshot."""

    def __init__(self, initial: Optional[VitalsSnapshot] = None) -> None:
        self._lock = threading.Lock()
        self._snapshot = initial if initial is not None else VitalsSnapshot()

    def publish(self, snapshot: VitalsSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot

    def read(self) -> VitalsSnapshot:
        with self._lock:
            return self._snapshot


class VitalsPoller:
    """
    Background reader that hands the latest snapshot to *callback* every
    ``interval_s`` seconds.

    Usage::

        poller = VitalsPoller(pipeline.record, print, interval_s=1.0)
        poller.start()
        ...
        poller.stop()
    """

    def __init__(
        self,
        record: VitalsRecord,
        callback: Callable[[VitalsSnapshot], None],
        interval_s: float = 1.0,
    ) -> None:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        self.record = record
        self.callback = callback
        self.interval_s = interval_s
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="vitals-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def poll_once(self) -> VitalsSnapshot:
        snapshot = self.record.read()
        self.callback(snapshot)
        return snapshot

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            try:
                self.poll_once()
            except Exception:                          # noqa: BLE001
                logger.exception("Vitals consumer callback failed.")

    # Context-manager support
    def __enter__(self) -> "VitalsPoller":
        self.start()
        return self

    def __exit__(self, *_) -> None:
        self.stop()
