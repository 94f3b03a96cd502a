"""
Breath/blow detection from a live audio input

A low-latency detector that decides, frame by frame, whether someone is
blowing or breathing into the microphone.

Components:
- Audio capture with thread-safe queue and sliding buffer
- Byte-buffer analyser (time domain and smoothed magnitude spectrum)
- Feature extraction (RMS energy, hiss-band spectral tilt)
- Median noise-floor calibration over a fixed wall-clock window
- Threshold classifier with a one-way trigger latch

Target: no false triggers from room tone, detection within a frame tick
"""

from .config import *
from .types import AudioConstraints, Baseline, DetectorState, FeaturePair, Frame
from .exceptions import BlowDetectError, DeviceUnavailable
from .analyser import Analyser
from .feature_extraction import FeatureExtractor
from .calibration import Calibrator
from .classifier import BlowClassifier
from .engine import AcquisitionLoop, FrameClock
from .audio_capture import AudioCapture, DeviceGate
from .detector import DetectorSession

__version__ = "1.0.0"
