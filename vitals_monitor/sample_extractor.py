"""
Skin-colour sample extraction.

Each camera frame is reduced to one averaged colour sample taken over a
rectangular region of interest (usually the forehead).  The blood-volume
pulse shows up as a tiny periodic change in these channel means; green
carries most of it, red and blue feed the SpO2 ratio.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np


@dataclass(frozen=True)
class Sample:
    """Mean skin colour of one frame plus its monotonic capture time."""

    r: float
    g: float
    b: float
    t: float


@dataclass(frozen=True)
class RegionOfInterest:
    """
    Rectangle expressed as fractions of the frame size.

    ``x``/``y`` locate the top-left corner and ``width``/``height`` the
    extent, all relative to the frame width and height respectively.
    Values outside ``[0, 1]`` are allowed and get clamped at extraction.
    """

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_pixels(
        cls, x: float, y: float, w: float, h: float, frame_shape: Tuple[int, ...]
    ) -> "RegionOfInterest":
        """Convert a pixel rectangle on a frame of ``frame_shape`` to fractions."""
        frame_h, frame_w = frame_shape[:2]
        if frame_w <= 0 or frame_h <= 0:
            raise ValueError(f"Invalid frame shape {frame_shape}")
        return cls(x / frame_w, y / frame_h, w / frame_w, h / frame_h)

    def to_pixels(self, frame_shape: Tuple[int, ...]) -> Tuple[int, int, int, int]:
        """Return ``(x0, y0, x1, y1)`` clamped to the frame bounds."""
        frame_h, frame_w = frame_shape[:2]
        x0 = min(max(self.x, 0.0), 1.0)
        y0 = min(max(self.y, 0.0), 1.0)
        x1 = min(max(self.x + self.width, 0.0), 1.0)
        y1 = min(max(self.y + self.height, 0.0), 1.0)
        return (
            int(round(x0 * frame_w)),
            int(round(y0 * frame_h)),
            int(round(x1 * frame_w)),
            int(round(y1 * frame_h)),
        )


def extract_sample(
    frame: np.ndarray,
    region: RegionOfInterest,
    timestamp: Optional[float] = None,
    channel_order: str = "bgr",
) -> Optional[Sample]:
    """
    Average each colour channel of *frame* inside *region*.

    Parameters
    ----------
    frame:
        Image array (H × W × C, C ≥ 3).  OpenCV delivers BGR.
    region:
        Fractional region of interest; clamped to the frame bounds.
    timestamp:
        Monotonic capture time in seconds.  Defaults to ``time.monotonic()``.
    channel_order:
        ``"bgr"`` (OpenCV) or ``"rgb"``.

    Returns
    -------
    Sample or None
        *None* when the clamped region has zero area.
    """
    frame = np.asarray(frame)
    if frame.ndim != 3 or frame.shape[2] < 3:
        raise ValueError(f"Expected an H x W x 3 frame, got shape {frame.shape}")
    if channel_order not in ("bgr", "rgb"):
        raise ValueError(f"Unknown channel order {channel_order!r}")

    x0, y0, x1, y1 = region.to_pixels(frame.shape)
    if x1 <= x0 or y1 <= y0:
        return None

    patch = np.ascontiguousarray(frame[y0:y1, x0:x1, :3])
    c0, c1, c2, _ = cv2.mean(patch)
    if channel_order == "bgr":
        r, g, b = c2, c1, c0
    else:
        r, g, b = c0, c1, c2

    t = time.monotonic() if timestamp is None else float(timestamp)
    return Sample(r=float(r), g=float(g), b=float(b), t=t)
