#!/usr/bin/env python3
"""
Vitals Monitor – main entry point.

Usage
-----
    python main.py [OPTIONS]

Options
-------
    --resolution WxH         Camera resolution (default: 640x480)
    --fps INT                Target frame rate (default: 30)
    --buffer-seconds FLOAT   Rolling signal history in seconds (default: 10)
    --camera-index INT       OpenCV camera index (default: 0)
    --no-flip                Disable horizontal mirror
    --locator face|center    How the skin ROI is found (default: face)
    --glucose-context MODE   fasting | postprandial (default: fasting)
    --filter-mode MODE       complex | magnitude (default: complex)
    --poll-interval FLOAT    Seconds between vitals log lines (default: 1)
    --duration FLOAT         Stop after this many seconds (default: run forever)
    --synthetic-bpm FLOAT    Use a synthetic source at this heart rate instead of a camera

Press Ctrl-C to stop.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

from vitals_monitor.config import FILTER_MODES, PipelineConfig
from vitals_monitor.estimators import GlucoseContext
from vitals_monitor.pipeline import VitalsPipeline
from vitals_monitor.region_locator import FixedRegionLocator, HaarFaceLocator
from vitals_monitor.sources import CameraFrameSource, SyntheticFrameSource, iter_frames
from vitals_monitor.vitals import VitalsPoller, VitalsSnapshot

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("vitals_monitor")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Contactless vital-sign monitor (rPPG)",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--resolution", default="640x480",
                        help="Camera resolution, e.g. 640x480")
    parser.add_argument("--fps", type=int, default=30,
                        help="Target capture frame rate")
    parser.add_argument("--buffer-seconds", type=float, default=10.0,
                        help="Rolling signal history in seconds")
    parser.add_argument("--camera-index", type=int, default=0,
                        help="OpenCV VideoCapture index")
    parser.add_argument("--no-flip", action="store_true",
                        help="Disable horizontal image flip")
    parser.add_argument("--locator", choices=("face", "center"), default="face",
                        help="Skin ROI locator")
    parser.add_argument("--glucose-context", default=GlucoseContext.FASTING.value,
                        choices=[c.value for c in GlucoseContext],
                        help="Meal context passed to the glucose estimator")
    parser.add_argument("--filter-mode", choices=FILTER_MODES, default="complex",
                        help="Band filter variant")
    parser.add_argument("--poll-interval", type=float, default=1.0,
                        help="Seconds between vitals log lines")
    parser.add_argument("--duration", type=float, default=None,
                        help="Stop after this many seconds")
    parser.add_argument("--synthetic-bpm", type=float, default=None,
                        help="Replace the camera with a synthetic pulse at this BPM")
    return parser.parse_args(argv)


def log_vitals(snapshot: VitalsSnapshot, buffer_fill: float = 0.0) -> None:
    if snapshot.heart_rate > 0:
        logger.info(
            "HR=%.1f bpm  RR=%.1f /min  SpO2=%.1f%%  BP=%.0f/%.0f mmHg  "
            "HRV=%.1f ms  SDNN=%.1f ms  glucose=%.0f mg/dL",
            snapshot.heart_rate, snapshot.respiration_rate, snapshot.spo2,
            snapshot.systolic, snapshot.diastolic, snapshot.hrv, snapshot.sdnn,
            snapshot.glucose,
        )
    else:
        logger.info("Waiting for signal… buffer %3.0f%% full", buffer_fill * 100)


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    try:
        res_w, res_h = (int(v) for v in args.resolution.lower().split("x"))
    except ValueError:
        logger.error("Invalid --resolution format.  Use WxH, e.g. 640x480.")
        return 1

    try:
        config = PipelineConfig.for_frame_rate(
            args.fps, args.buffer_seconds, filter_mode=args.filter_mode
        )
    except ValueError as exc:
        logger.error("Invalid pipeline configuration: %s", exc)
        return 1

    context = GlucoseContext(args.glucose_context)
    pipeline = VitalsPipeline(config)

    if args.synthetic_bpm is not None:
        source = SyntheticFrameSource(heart_rate_bpm=args.synthetic_bpm, fps=args.fps,
                                      size=(res_w, res_h), noise=0.5)
        locator = FixedRegionLocator()
    else:
        source = CameraFrameSource(
            camera_index=args.camera_index,
            resolution=(res_w, res_h),
            fps=args.fps,
            flip_horizontal=not args.no_flip,
        )
        locator = HaarFaceLocator() if args.locator == "face" else FixedRegionLocator()

    def report(snapshot: VitalsSnapshot) -> None:
        log_vitals(snapshot, pipeline.buffer_fill_ratio)

    logger.info("Starting vitals monitor.  Press Ctrl-C to quit.")
    start = time.monotonic()

    try:
        if isinstance(source, CameraFrameSource):
            source.open()
        with VitalsPoller(pipeline.record, report, interval_s=args.poll_interval):
            for frame in iter_frames(source):
                pipeline.process_located_frame(frame, locator, context)
                if args.duration is not None and time.monotonic() - start >= args.duration:
                    break
                if isinstance(source, SyntheticFrameSource):
                    time.sleep(1.0 / args.fps)
    except RuntimeError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        if isinstance(source, CameraFrameSource):
            source.close()

    log_vitals(pipeline.snapshot(), pipeline.buffer_fill_ratio)
    return 0


def main(argv: list[str] | None = None) -> int:
    return run(parse_args(argv))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
