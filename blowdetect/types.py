"""
Data model shared by the detection pipeline
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol

import numpy as np


class DetectorState(Enum):
    """Lifecycle of one detection session. TRIGGERED is terminal."""

    UNCALIBRATED = "uncalibrated"
    CALIBRATING = "calibrating"
    ARMED = "armed"
    TRIGGERED = "triggered"


@dataclass(frozen=True)
class FeaturePair:
    """Energy (RMS, ~[0, 100]) and tilt (hiss-band mean, ~[0, 255]) of one frame."""

    energy: float
    tilt: float


@dataclass(frozen=True)
class Baseline:
    """Median noise floor measured during calibration."""

    energy: float
    tilt: float


@dataclass(frozen=True, eq=False)
class Frame:
    """
    Time-domain and frequency-domain byte buffers captured at the same tick.

    time_domain holds unsigned 8-bit samples centered on SAMPLE_MIDPOINT,
    frequency_domain holds unsigned 8-bit magnitudes in ascending frequency.
    """

    time_domain: np.ndarray
    frequency_domain: np.ndarray

    @classmethod
    def capture(cls, source):
        """Read both buffers from a frame source, time domain first."""
        time_domain = np.asarray(source.capture_time_domain(), dtype=np.uint8)
        frequency_domain = np.asarray(source.capture_frequency_domain(), dtype=np.uint8)
        return cls(time_domain=time_domain, frequency_domain=frequency_domain)


@dataclass(frozen=True)
class AudioConstraints:
    """
    Capture constraints requested from the device gate.

    Echo cancellation, noise suppression and automatic gain all flatten the
    broadband hiss the classifier looks for, so they default to off.
    """

    channels: int = 1
    echo_cancellation: bool = False
    noise_suppression: bool = False
    auto_gain_control: bool = False
    sample_rate: Optional[int] = None
    device: Any = None

    @property
    def processing_requested(self):
        return self.echo_cancellation or self.noise_suppression or self.auto_gain_control


class FrameSource(Protocol):
    """Anything that can hand out the most recent byte buffers synchronously."""

    def capture_time_domain(self) -> np.ndarray: ...

    def capture_frequency_domain(self) -> np.ndarray: ...

    def close(self) -> None: ...
