"""
Frame sources.

A frame source hands the pipeline one BGR frame per cycle through
``next_frame()``, or *None* when no frame is available this cycle.

* :class:`CameraFrameSource` wraps ``cv2.VideoCapture`` (any webcam).
* :class:`SyntheticFrameSource` renders a uniform skin-coloured patch whose
  channels are modulated by a pulse and a breathing wave.  It needs no
  hardware and is deterministic, which makes it the source of choice for
  tests and offline demos.
"""

from __future__ import annotations

import logging
from typing import Generator, Optional, Protocol, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    def next_frame(self) -> Optional[np.ndarray]:
        ...


def iter_frames(source: FrameSource, max_misses: int = 10) -> Generator[np.ndarray, None, None]:
    """
    Yield frames from *source* until it fails ``max_misses`` times in a row.

    Usage::

        with CameraFrameSource() as cam:
            for frame in iter_frames(cam):
                process(frame)
    """
    misses = 0
    while True:
        frame = source.next_frame()
        if frame is None:
            misses += 1
            if misses >= max_misses:
                logger.error("Frame source returned %d consecutive None frames – stopping.", misses)
                return
            continue
        misses = 0
        yield frame


class CameraFrameSource:
    """
    Thin wrapper around ``cv2.VideoCapture``.

    Parameters
    ----------
    camera_index:
        OpenCV device index.
    resolution:
        (width, height) requested from the driver.
    fps:
        Target frame rate.  Actual rate may differ slightly.
    flip_horizontal:
        Mirror the image left-to-right (selfie view).
    """

    def __init__(
        self,
        camera_index: int = 0,
        resolution: Tuple[int, int] = (640, 480),
        fps: int = 30,
        flip_horizontal: bool = False,
    ) -> None:
        self.camera_index = camera_index
        self.resolution = resolution
        self.fps = fps
        self.flip_horizontal = flip_horizontal
        self._cap: Optional[cv2.VideoCapture] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Initialise and start the camera."""
        cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            raise RuntimeError(
                f"Cannot open video capture device index={self.camera_index}"
            )
        w, h = self.resolution
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        cap.set(cv2.CAP_PROP_FPS, self.fps)
        self._cap = cap
        logger.info(
            "Camera opened – index=%d resolution=%s fps=%d",
            self.camera_index, self.resolution, self.fps,
        )

    def close(self) -> None:
        """Stop and release the camera."""
        if self._cap is None:
            return
        self._cap.release()
        self._cap = None
        logger.info("Camera closed.")

    def __enter__(self) -> "CameraFrameSource":
        self.open()
        return self

    def __exit__(self, *_) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Frame acquisition
    # ------------------------------------------------------------------

    def next_frame(self) -> Optional[np.ndarray]:
        """
        Capture a single frame.

        Returns
        -------
        numpy.ndarray
            BGR image array (H × W × 3, dtype uint8), or *None* on failure.
        """
        if self._cap is None:
            raise RuntimeError("Camera is not open.  Call open() first.")
        ok, frame = self._cap.read()
        if not ok:
            logger.warning("VideoCapture.read() returned False.")
            return None
        if self.flip_horizontal:
            frame = cv2.flip(frame, 1)
        return frame


class SyntheticFrameSource:
    """
    Generates float32 BGR frames with a known pulse and breathing rate.

    Each channel is ``base × (1 + a_pulse·sin(2π f_hr t) + a_resp·sin(2π f_rr t))``
    with channel-specific pulse amplitudes (green strongest, as on real
    skin).  Frame *i* is taken at ``t = i / fps``.

    Parameters
    ----------
    heart_rate_bpm / respiration_rate_bpm:
        Frequencies of the simulated pulse and breathing.
    fps:
        Sampling rate used to advance time between frames.
    base_bgr:
        Mean skin colour, BGR.
    pulse_amplitudes_bgr:
        Relative pulse modulation per channel.
    respiration_amplitude:
        Relative breathing modulation, shared by all channels.
    noise:
        Standard deviation of additive Gaussian noise (intensity units).
    size:
        (width, height) of the generated frames.
    drop_every:
        If > 0, every ``drop_every``-th call returns *None* (missing frame).
    seed:
        Seed for the noise generator.
    """

    def __init__(
        self,
        heart_rate_bpm: float = 72.0,
        respiration_rate_bpm: float = 15.0,
        fps: float = 30.0,
        base_bgr: Tuple[float, float, float] = (110.0, 130.0, 170.0),
        pulse_amplitudes_bgr: Tuple[float, float, float] = (0.004, 0.01, 0.006),
        respiration_amplitude: float = 0.003,
        noise: float = 0.0,
        size: Tuple[int, int] = (32, 24),
        drop_every: int = 0,
        seed: Optional[int] = 0,
    ) -> None:
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.heart_rate_bpm = heart_rate_bpm
        self.respiration_rate_bpm = respiration_rate_bpm
        self.fps = fps
        self.base_bgr = np.asarray(base_bgr, dtype=np.float64)
        self.pulse_amplitudes_bgr = np.asarray(pulse_amplitudes_bgr, dtype=np.float64)
        self.respiration_amplitude = respiration_amplitude
        self.noise = noise
        self.size = size
        self.drop_every = drop_every
        self._rng = np.random.default_rng(seed)
        self._calls = 0
        self._index = 0

    @property
    def timestamp(self) -> float:
        """Capture time (s) of the most recently generated frame."""
        return max(0, self._index - 1) / self.fps

    def next_frame(self) -> Optional[np.ndarray]:
        self._calls += 1
        if self.drop_every > 0 and self._calls % self.drop_every == 0:
            return None

        t = self._index / self.fps
        self._index += 1
        pulse = np.sin(2 * np.pi * (self.heart_rate_bpm / 60.0) * t)
        breath = np.sin(2 * np.pi * (self.respiration_rate_bpm / 60.0) * t)
        colour = self.base_bgr * (
            1.0 + self.pulse_amplitudes_bgr * pulse + self.respiration_amplitude * breath
        )

        w, h = self.size
        frame = np.empty((h, w, 3), dtype=np.float32)
        frame[:, :] = colour
        if self.noise > 0:
            frame += self._rng.normal(0.0, self.noise, frame.shape).astype(np.float32)
        return frame
