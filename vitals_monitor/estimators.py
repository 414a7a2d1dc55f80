"""
Blood-pressure and blood-glucose estimators.

WARNING: the default estimators below are statistical placeholders.  They
carry no predictive signal; they only produce values of the right shape
and range so that the rest of the pipeline can be exercised.  Each one
sits behind a one-method strategy interface (``estimate(context)``) so it
can be replaced with a real model without touching the pipeline.

Blood pressure
--------------
Pulse transit time (PTT) needs two measurement sites; with a single face
ROI it is approximated by ``250 ms ± 10 ms`` (uniform).  Pressure then
follows the usual inverse-linear PTT relation:

    systolic  = 120 - 0.5 × (PTT - 250)      clamped to  90 – 180 mmHg
    diastolic =  80 - 0.4 × (PTT - 250)      clamped to  60 – 120 mmHg

Glucose
-------
A base level chosen by the caller's context (fasting 100, postprandial
140 mg/dL) plus ±10 mg/dL uniform variation, clamped to the context range
(fasting 70 – 130, postprandial 110 – 180 mg/dL).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

import numpy as np

from vitals_monitor.normalizer import ChannelSignals

SYSTOLIC_RANGE = (90.0, 180.0)
DIASTOLIC_RANGE = (60.0, 120.0)


class GlucoseContext(enum.Enum):
    FASTING = "fasting"
    POSTPRANDIAL = "postprandial"


GLUCOSE_RANGES = {
    GlucoseContext.FASTING: (70.0, 130.0),
    GlucoseContext.POSTPRANDIAL: (110.0, 180.0),
}


@dataclass(frozen=True)
class BloodPressure:
    systolic: float
    diastolic: float


@dataclass(frozen=True)
class EstimationContext:
    """Everything a secondary-vital estimator may look at in one cycle."""

    filtered: ChannelSignals
    sample_rate_hz: float
    heart_rate: float
    glucose_context: GlucoseContext = GlucoseContext.FASTING


class BloodPressureEstimator(Protocol):
    def estimate(self, context: EstimationContext) -> Optional[BloodPressure]:
        ...


class GlucoseEstimator(Protocol):
    def estimate(self, context: EstimationContext) -> Optional[float]:
        ...


def clamp(value: float, bounds: Tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, float(value)))


class PulseTransitTimeEstimator:
    """
    Placeholder BP estimator driven by a simulated pulse transit time.

    Parameters
    ----------
    rng:
        Random generator; pass a seeded one for reproducible output.
    ptt_center_ms / ptt_spread_ms:
        The simulated PTT is uniform in ``center ± spread``.
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        ptt_center_ms: float = 250.0,
        ptt_spread_ms: float = 10.0,
    ) -> None:
        self._rng = rng if rng is not None else np.random.default_rng()
        self.ptt_center_ms = ptt_center_ms
        self.ptt_spread_ms = ptt_spread_ms

    def pulse_transit_time(self) -> float:
        return self.ptt_center_ms + self._rng.uniform(-self.ptt_spread_ms, self.ptt_spread_ms)

    def estimate(self, context: EstimationContext) -> Optional[BloodPressure]:
        offset = self.pulse_transit_time() - 250.0
        return BloodPressure(
            systolic=clamp(120.0 - 0.5 * offset, SYSTOLIC_RANGE),
            diastolic=clamp(80.0 - 0.4 * offset, DIASTOLIC_RANGE),
        )


class RandomGlucoseEstimator:
    """Placeholder glucose estimator: context base level plus bounded noise."""

    BASE_LEVELS = {
        GlucoseContext.FASTING: 100.0,
        GlucoseContext.POSTPRANDIAL: 140.0,
    }

    def __init__(self, rng: Optional[np.random.Generator] = None, spread: float = 10.0) -> None:
        self._rng = rng if rng is not None else np.random.default_rng()
        self.spread = spread

    def estimate(self, context: EstimationContext) -> Optional[float]:
        mode = context.glucose_context
        value = self.BASE_LEVELS[mode] + self._rng.uniform(-self.spread, self.spread)
        return clamp(value, GLUCOSE_RANGES[mode])
