"""
Skin region-of-interest locators.

A locator maps a frame to the rectangle whose mean colour feeds the
pipeline, or *None* when no subject is visible.  Two implementations:

* :class:`FixedRegionLocator`: always the same rectangle (the centre of
  the frame by default).  Useful when the subject is positioned by a
  guide overlay, and for tests.
* :class:`HaarFaceLocator`: OpenCV's frontal-face Haar cascade; the ROI
  is the forehead band of the largest face (x + 0.3w, y + 0.2h, 0.4w × 0.3h).
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import cv2
import numpy as np

from vitals_monitor.sample_extractor import RegionOfInterest

logger = logging.getLogger(__name__)

CENTER_REGION = RegionOfInterest(0.35, 0.35, 0.3, 0.3)


class RegionLocator(Protocol):
    def locate_region(self, frame: np.ndarray) -> Optional[RegionOfInterest]:
        ...


class FixedRegionLocator:
    """Return the same fractional region for every frame."""

    def __init__(self, region: RegionOfInterest = CENTER_REGION) -> None:
        self.region = region

    def locate_region(self, frame: np.ndarray) -> Optional[RegionOfInterest]:
        if frame is None:
            return None
        return self.region


class HaarFaceLocator:
    """
    Forehead ROI from the largest face found by a Haar cascade.

    Parameters
    ----------
    cascade_path:
        Path to the cascade XML.  Defaults to the frontal-face cascade
        bundled with opencv-python.
    scale_factor / min_neighbors / min_size:
        Passed to ``CascadeClassifier.detectMultiScale``.
    roi_fractions:
        ``(x, y, w, h)`` of the sub-region relative to the face box.
    """

    def __init__(
        self,
        cascade_path: Optional[str] = None,
        scale_factor: float = 1.1,
        min_neighbors: int = 5,
        min_size: tuple[int, int] = (60, 60),
        roi_fractions: tuple[float, float, float, float] = (0.3, 0.2, 0.4, 0.3),
    ) -> None:
        if cascade_path is None:
            cascade_path = cv2.data.haarcascades + "haarcascade_frontalface_default.xml"
        self._classifier = cv2.CascadeClassifier(cascade_path)
        if self._classifier.empty():
            raise RuntimeError(f"Cannot load Haar cascade from {cascade_path}")
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = min_size
        self.roi_fractions = roi_fractions

    def locate_region(self, frame: np.ndarray) -> Optional[RegionOfInterest]:
        """
        Parameters
        ----------
        frame:
            BGR image array (H × W × 3, uint8).
        """
        if frame is None:
            return None
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        faces = self._classifier.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=self.min_size,
        )
        if len(faces) == 0:
            return None

        x, y, w, h = max(faces, key=lambda f: int(f[2]) * int(f[3]))
        fx, fy, fw, fh = self.roi_fractions
        return RegionOfInterest.from_pixels(
            x + w * fx, y + h * fy, w * fw, h * fh, frame.shape
        )
