"""Calibration gate for the noise-sensitive estimators (SpO2, BP, glucose)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CalibrationState:
    """
    Counts processed cycles until the signal has settled.

    While :attr:`in_calibration` is true the gated estimators must leave
    their vitals at the initial defaults.
    """

    frames_required: int = 90
    frames_observed: int = 0

    @property
    def in_calibration(self) -> bool:
        return self.frames_observed < self.frames_required

    def advance(self) -> bool:
        """
        Count one processed cycle.

        Returns True exactly on the cycle that completes calibration.
        """
        if not self.in_calibration:
            return False
        self.frames_observed += 1
        return not self.in_calibration

    def reset(self) -> None:
        self.frames_observed = 0
