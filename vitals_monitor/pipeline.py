"""
End-to-end rPPG vitals pipeline.

One call per camera frame runs the whole chain::

    frame + ROI  →  colour sample  →  rolling buffer
                 →  local-mean normalisation  →  band filter
                 →  heart rate / HRV, respiration, SpO2, BP, glucose
                 →  published VitalsSnapshot

All cross-cycle state (buffer, RR history, calibration counter, working
vitals) lives in one :class:`PipelineState` owned by the pipeline and
mutated only by :func:`run_cycle`.  Nothing in here raises for a bad or
missing frame; every stage falls back to "keep the last value".
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

import numpy as np

from vitals_monitor.calibration import CalibrationState
from vitals_monitor.config import PipelineConfig
from vitals_monitor.estimators import (
    GLUCOSE_RANGES,
    BloodPressureEstimator,
    EstimationContext,
    GlucoseContext,
    GlucoseEstimator,
    PulseTransitTimeEstimator,
    RandomGlucoseEstimator,
    clamp,
)
from vitals_monitor.heart_rate import update_heart_rate
from vitals_monitor.normalizer import ChannelSignals, normalize_channels
from vitals_monitor.region_locator import RegionLocator
from vitals_monitor.respiration import estimate_respiration_rate
from vitals_monitor.sample_extractor import RegionOfInterest, Sample, extract_sample
from vitals_monitor.signal_buffer import SignalBuffer
from vitals_monitor.spectral_filter import band_filter
from vitals_monitor.spo2 import estimate_spo2
from vitals_monitor.vitals import VitalsRecord, VitalsSnapshot

logger = logging.getLogger(__name__)


@dataclass
class PipelineState:
    """Everything that survives from one cycle to the next."""

    buffer: SignalBuffer
    rr_intervals: Deque[float]
    calibration: CalibrationState
    vitals: VitalsSnapshot = field(default_factory=VitalsSnapshot)

    @classmethod
    def initial(cls, config: PipelineConfig) -> "PipelineState":
        return cls(
            buffer=SignalBuffer(config.buffer_capacity, config.min_samples),
            rr_intervals=deque(maxlen=config.max_intervals),
            calibration=CalibrationState(frames_required=config.calibration_frames),
        )


@dataclass(frozen=True)
class ProcessedSignals:
    """Derived views of one buffer snapshot; discarded after the cycle."""

    normalized: ChannelSignals
    filtered: ChannelSignals


def prepare_signals(buffer: SignalBuffer, config: PipelineConfig) -> Optional[ProcessedSignals]:
    """
    Normalise and band-filter the current buffer contents.

    Returns *None* ("no signal yet") when the buffer is below its minimum
    fill or normalisation leaves nothing to filter.
    """
    if not buffer.is_ready():
        return None

    r, g, b, _ = buffer.channels()
    normalized = normalize_channels(r, g, b, config.normalize_window)
    if len(normalized) == 0:
        return None

    low, high = config.pulse_band_hz
    filtered = ChannelSignals(*(
        band_filter(ch, config.sample_rate_hz, low, high, mode=config.filter_mode)
        for ch in (normalized.r, normalized.g, normalized.b)
    ))
    return ProcessedSignals(normalized=normalized, filtered=filtered)


def run_cycle(
    state: PipelineState,
    config: PipelineConfig,
    bp_estimator: BloodPressureEstimator,
    glucose_estimator: GlucoseEstimator,
    glucose_context: GlucoseContext = GlucoseContext.FASTING,
) -> Optional[VitalsSnapshot]:
    """
    Run every estimator over the buffered signal and update *state*.

    Returns the new snapshot, or *None* when the buffer is not ready yet
    (in which case *state* is untouched).
    """
    signals = prepare_signals(state.buffer, config)
    if signals is None:
        return None

    vitals = state.vitals
    pulse = signals.filtered.g

    hr = update_heart_rate(
        pulse,
        state.rr_intervals,
        config.sample_rate_hz,
        config.min_peak_distance,
        config.peak_threshold_ratio,
    )
    if hr is not None:
        vitals = vitals.updated(heart_rate=hr.heart_rate)
        if hr.sdnn is not None and hr.hrv is not None:
            vitals = vitals.updated(sdnn=hr.sdnn, hrv=hr.hrv)

    respiration = estimate_respiration_rate(
        pulse, config.sample_rate_hz, config.respiration_window, config.respiration_band_hz
    )
    if respiration is not None:
        vitals = vitals.updated(respiration_rate=respiration)

    if not state.calibration.in_calibration:
        vitals = _update_gated(
            vitals, signals, config, bp_estimator, glucose_estimator, glucose_context
        )

    if state.calibration.advance():
        logger.info(
            "Calibration complete after %d cycles (measured %.1f fps, configured %.1f).",
            state.calibration.frames_observed,
            state.buffer.effective_rate(),
            config.sample_rate_hz,
        )

    state.vitals = vitals
    return vitals


def _update_gated(
    vitals: VitalsSnapshot,
    signals: ProcessedSignals,
    config: PipelineConfig,
    bp_estimator: BloodPressureEstimator,
    glucose_estimator: GlucoseEstimator,
    glucose_context: GlucoseContext,
) -> VitalsSnapshot:
    spo2 = estimate_spo2(signals.normalized.r, signals.normalized.b)
    if spo2 is not None:
        vitals = vitals.updated(spo2=spo2)

    context = EstimationContext(
        filtered=signals.filtered,
        sample_rate_hz=config.sample_rate_hz,
        heart_rate=vitals.heart_rate,
        glucose_context=glucose_context,
    )

    bp = bp_estimator.estimate(context)
    if bp is not None and np.isfinite([bp.systolic, bp.diastolic]).all():
        vitals = vitals.updated(systolic=bp.systolic, diastolic=bp.diastolic)
    else:
        logger.debug("Blood-pressure estimator returned no value.")

    glucose = glucose_estimator.estimate(context)
    if glucose is not None and np.isfinite(glucose):
        vitals = vitals.updated(glucose=clamp(glucose, GLUCOSE_RANGES[glucose_context]))
    else:
        logger.debug("Glucose estimator returned no value.")

    return vitals


class VitalsPipeline:
    """
    Stateful per-frame driver around :func:`run_cycle`.

    Parameters
    ----------
    config:
        Pipeline parameters; defaults to :class:`PipelineConfig`.
    bp_estimator / glucose_estimator:
        Strategies for the secondary vitals.  Default to the placeholder
        estimators in :mod:`vitals_monitor.estimators`.
    rng:
        Random generator shared by the default placeholder estimators.

    The latest result is always available from :attr:`record` (safe to
    read from another thread) or :meth:`snapshot`.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        bp_estimator: Optional[BloodPressureEstimator] = None,
        glucose_estimator: Optional[GlucoseEstimator] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.config = config if config is not None else PipelineConfig()
        rng = rng if rng is not None else np.random.default_rng()
        self.bp_estimator = bp_estimator if bp_estimator is not None else PulseTransitTimeEstimator(rng)
        self.glucose_estimator = (
            glucose_estimator if glucose_estimator is not None else RandomGlucoseEstimator(rng)
        )
        self.state = PipelineState.initial(self.config)
        self.record = VitalsRecord()
        logger.info(
            "VitalsPipeline created: fps=%.1f, buffer=%d, min_samples=%d, filter=%s",
            self.config.sample_rate_hz,
            self.config.buffer_capacity,
            self.config.min_samples,
            self.config.filter_mode,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process_frame(
        self,
        frame: Optional[np.ndarray],
        region: Optional[RegionOfInterest],
        glucose_context: GlucoseContext = GlucoseContext.FASTING,
        timestamp: Optional[float] = None,
    ) -> Optional[VitalsSnapshot]:
        """
        Feed one frame.  A missing frame, a missing region or a zero-area
        region is a no-op for this cycle and returns *None*.
        """
        if frame is None or region is None:
            return None
        sample = extract_sample(frame, region, timestamp=timestamp)
        if sample is None:
            logger.debug("Zero-area region; frame skipped.")
            return None
        return self.process_sample(sample, glucose_context)

    def process_located_frame(
        self,
        frame: Optional[np.ndarray],
        locator: RegionLocator,
        glucose_context: GlucoseContext = GlucoseContext.FASTING,
    ) -> Optional[VitalsSnapshot]:
        """Locate the ROI on *frame* with *locator*, then :meth:`process_frame`."""
        if frame is None:
            return None
        return self.process_frame(frame, locator.locate_region(frame), glucose_context)

    def process_sample(
        self,
        sample: Sample,
        glucose_context: GlucoseContext = GlucoseContext.FASTING,
    ) -> Optional[VitalsSnapshot]:
        """Append *sample* and run one cycle; *None* while the buffer fills."""
        self.state.buffer.push(sample)
        vitals = run_cycle(
            self.state, self.config, self.bp_estimator, self.glucose_estimator, glucose_context
        )
        if vitals is not None:
            self.record.publish(vitals)
        return vitals

    def snapshot(self) -> VitalsSnapshot:
        return self.record.read()

    @property
    def in_calibration(self) -> bool:
        return self.state.calibration.in_calibration

    @property
    def buffer_fill_ratio(self) -> float:
        """How full the rolling sample buffer is (0 – 1)."""
        return self.state.buffer.fill_ratio

    def reset(self) -> None:
        """Drop all history and return to the default vitals."""
        self.state = PipelineState.initial(self.config)
        self.record.publish(self.state.vitals)
        logger.info("Pipeline state reset.")
