"""
Pipeline configuration.

Every tunable of the rPPG pipeline lives on :class:`PipelineConfig`.  The
defaults assume a ~30 fps camera: a 10 s rolling buffer, 3 s of history
before the first estimate and a 1 s local-mean window.
"""

from __future__ import annotations

from dataclasses import dataclass

FILTER_MODES = ("complex", "magnitude")


@dataclass(frozen=True)
class PipelineConfig:
    """
    Parameters
    ----------
    sample_rate_hz:
        Nominal frame rate of the incoming stream.  Used to convert sample
        counts into time and to map DFT bins onto frequencies.
    buffer_capacity:
        Maximum number of samples kept in the rolling buffer.
    min_samples:
        Minimum buffer fill before any downstream stage runs.
    normalize_window:
        Length of the trailing local-mean window used by the normalizer.
    respiration_window:
        Length of the trailing sliding-mean used to build the respiration
        envelope from the filtered pulse signal.
    pulse_band_hz / respiration_band_hz:
        Inclusive ``(low, high)`` pass-bands.
    min_peak_distance:
        Refractory period between accepted pulse peaks, in samples.
    peak_threshold_ratio:
        A peak must exceed ``ratio × max(signal)``.
    max_intervals:
        Capacity of the RR-interval history.
    calibration_frames:
        Processed cycles before SpO2 / BP / glucose start updating.
    filter_mode:
        ``"complex"`` for a phase-preserving band-pass, ``"magnitude"`` for
        the phase-discarding variant kept for compatibility.
    """

    sample_rate_hz: float = 30.0
    buffer_capacity: int = 300
    min_samples: int = 90
    normalize_window: int = 30
    respiration_window: int = 30
    pulse_band_hz: tuple[float, float] = (0.75, 4.0)
    respiration_band_hz: tuple[float, float] = (0.1, 0.4)
    min_peak_distance: int = 20
    peak_threshold_ratio: float = 0.5
    max_intervals: int = 300
    calibration_frames: int = 90
    filter_mode: str = "complex"

    def __post_init__(self) -> None:
        self.validate()

    @classmethod
    def for_frame_rate(cls, fps: float, buffer_seconds: float = 10.0, **overrides) -> "PipelineConfig":
        """
        Build a config for a ``fps`` stream.

        Every window that stands for a duration is rescaled from its 30 fps
        default: 3 s of history before the first estimate, 1 s local-mean
        and respiration windows, a 2/3 s refractory period between peaks and
        3 s of calibration.  The buffer holds ``buffer_seconds``.  Explicit
        ``overrides`` win.
        """
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        capacity = max(1, int(round(fps * buffer_seconds)))
        one_second = max(1, int(round(fps)))
        overrides.setdefault("min_samples", min(capacity, int(round(3 * fps))))
        overrides.setdefault("normalize_window", one_second)
        overrides.setdefault("respiration_window", one_second)
        overrides.setdefault("min_peak_distance", int(round(fps * 2 / 3)))
        overrides.setdefault("calibration_frames", int(round(3 * fps)))
        return cls(sample_rate_hz=float(fps), buffer_capacity=capacity, **overrides)

    def validate(self) -> None:
        if self.sample_rate_hz <= 0:
            raise ValueError(f"sample_rate_hz must be positive, got {self.sample_rate_hz}")
        if self.buffer_capacity < 1:
            raise ValueError(f"buffer_capacity must be >= 1, got {self.buffer_capacity}")
        if not 0 <= self.min_samples <= self.buffer_capacity:
            raise ValueError(
                f"min_samples must be within [0, {self.buffer_capacity}], got {self.min_samples}"
            )
        for name in ("normalize_window", "respiration_window", "max_intervals"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.min_peak_distance < 0 or self.calibration_frames < 0:
            raise ValueError("min_peak_distance and calibration_frames must be non-negative")
        for name in ("pulse_band_hz", "respiration_band_hz"):
            low, high = getattr(self, name)
            if low < 0 or low > high:
                raise ValueError(f"{name} must satisfy 0 <= low <= high, got {(low, high)}")
        if self.filter_mode not in FILTER_MODES:
            raise ValueError(f"filter_mode must be one of {FILTER_MODES}, got {self.filter_mode!r}")
