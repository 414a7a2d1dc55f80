"""
Vitals Monitor: rPPG-based vital-sign estimation from facial video.
Feed the pipeline one camera frame (plus a skin region of interest) at a
time; it extracts the photoplethysmography (PPG) signal from the averaged
skin colour and keeps a live snapshot of heart rate, HRV, respiration,
SpO2, blood pressure and glucose estimates.
"""

from vitals_monitor.config import PipelineConfig
from vitals_monitor.estimators import GlucoseContext
from vitals_monitor.pipeline import VitalsPipeline
from vitals_monitor.vitals import VitalsSnapshot

__all__ = ["GlucoseContext", "PipelineConfig", "VitalsPipeline", "VitalsSnapshot"]

__version__ = "0.1.0"
__author__ = "vitals_monitor"
