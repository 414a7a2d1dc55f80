"""
Unit tests for frame sources, region locators and the CLI.
Run with:  pytest tests/test_sources.py
"""

from __future__ import annotations

import logging

import numpy as np
import pytest

import main
from vitals_monitor.region_locator import CENTER_REGION, FixedRegionLocator, HaarFaceLocator
from vitals_monitor.sample_extractor import RegionOfInterest, extract_sample
from vitals_monitor.sources import CameraFrameSource, SyntheticFrameSource, iter_frames
from vitals_monitor.vitals import VitalsSnapshot


class _NeverSource:
    def __init__(self):
        self.calls = 0

    def next_frame(self):
        self.calls += 1
        return None


# ---------------------------------------------------------------------------
# Frame sources
# ---------------------------------------------------------------------------

class TestSyntheticFrameSource:

    def test_frame_shape_and_dtype(self):
        frame = SyntheticFrameSource(size=(32, 24)).next_frame()
        assert frame.shape == (24, 32, 3)
        assert frame.dtype == np.float32

    def test_deterministic_for_same_seed(self):
        a = SyntheticFrameSource(noise=1.0, seed=5)
        b = SyntheticFrameSource(noise=1.0, seed=5)
        for _ in range(3):
            np.testing.assert_array_equal(a.next_frame(), b.next_frame())

    def test_green_channel_carries_the_pulse(self):
        fps = 30.0
        source = SyntheticFrameSource(heart_rate_bpm=60.0, respiration_amplitude=0.0, fps=fps)
        green = [source.next_frame()[0, 0, 1] for _ in range(int(fps * 4))]
        spectrum = np.abs(np.fft.rfft(np.asarray(green) - np.mean(green)))
        freqs = np.fft.rfftfreq(len(green), d=1.0 / fps)
        assert freqs[int(np.argmax(spectrum))] == pytest.approx(1.0)

    def test_dropped_frames(self):
        source = SyntheticFrameSource(drop_every=3)
        frames = [source.next_frame() for _ in range(6)]
        assert frames[2] is None and frames[5] is None
        assert sum(f is not None for f in frames) == 4

    def test_invalid_fps_rejected(self):
        with pytest.raises(ValueError):
            SyntheticFrameSource(fps=0.0)


class TestIterFrames:

    def test_stops_after_consecutive_misses(self):
        source = _NeverSource()
        assert list(iter_frames(source, max_misses=3)) == []
        assert source.calls == 3

    def test_skips_isolated_misses(self):
        source = SyntheticFrameSource(drop_every=2)
        frames = iter_frames(source, max_misses=3)
        got = [next(frames) for _ in range(5)]
        assert all(f is not None for f in got)


class TestCameraFrameSource:

    def test_read_before_open_raises(self):
        with pytest.raises(RuntimeError):
            CameraFrameSource().next_frame()

    def test_close_without_open_is_safe(self):
        CameraFrameSource().close()


# ---------------------------------------------------------------------------
# Region locators
# ---------------------------------------------------------------------------

class TestRegionLocators:

    def test_fixed_region(self):
        frame = np.zeros((10, 10, 3), dtype=np.uint8)
        assert FixedRegionLocator().locate_region(frame) == CENTER_REGION
        custom = RegionOfInterest(0.1, 0.1, 0.2, 0.2)
        assert FixedRegionLocator(custom).locate_region(frame) == custom
        assert FixedRegionLocator().locate_region(None) is None

    def test_center_region_samples_frame_centre(self):
        frame = np.zeros((100, 100, 3), dtype=np.uint8)
        frame[35:65, 35:65] = 200
        sample = extract_sample(frame, FixedRegionLocator().locate_region(frame))
        assert sample.g == pytest.approx(200.0)

    def test_face_locator_returns_none_without_face(self):
        frame = np.full((240, 320, 3), 127, dtype=np.uint8)
        assert HaarFaceLocator().locate_region(frame) is None

    def test_face_locator_rejects_missing_cascade(self, tmp_path):
        with pytest.raises(RuntimeError):
            HaarFaceLocator(cascade_path=str(tmp_path / "missing.xml"))


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

class TestCli:

    def test_default_arguments(self):
        args = main.parse_args([])
        assert args.fps == 30
        assert args.glucose_context == "fasting"
        assert args.filter_mode == "complex"
        assert args.synthetic_bpm is None

    def test_invalid_resolution_exits_with_error(self):
        assert main.main(["--resolution", "bogus", "--synthetic-bpm", "72"]) == 1

    def test_synthetic_run(self):
        argv = ["--synthetic-bpm", "72", "--duration", "0.2", "--poll-interval", "0.05",
                "--resolution", "32x24"]
        assert main.main(argv) == 0

    def test_waiting_line_reports_buffer_fill(self, caplog):
        with caplog.at_level(logging.INFO, logger="vitals_monitor"):
            main.log_vitals(VitalsSnapshot(), buffer_fill=0.5)
        assert "50% full" in caplog.text

    def test_vitals_line_reports_heart_rate(self, caplog):
        with caplog.at_level(logging.INFO, logger="vitals_monitor"):
            main.log_vitals(VitalsSnapshot(heart_rate=72.0), buffer_fill=1.0)
        assert "HR=72.0 bpm" in caplog.text
