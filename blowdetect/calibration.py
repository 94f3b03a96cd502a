"""
Noise-floor calibration
Collects features for a fixed wall-clock window at startup and reduces them
to a median baseline, so a cough or a bump during calibration cannot drag
the noise floor upwards
"""

import logging

import numpy as np

from .config import CALIBRATION_DURATION_S
from .engine.clock import FrameClock
from .types import Baseline, Frame

logger = logging.getLogger(__name__)


def sorted_midpoint(values):
    """
    Element at index n // 2 of the ascending sort; 0.0 for no values

    For an even count this is the upper of the two middle values, not
    their mean.
    """
    if len(values) == 0:
        return 0.0
    ordered = np.sort(np.asarray(values, dtype=np.float64))
    return float(ordered[len(ordered) // 2])


class Calibrator:
    """
    One-shot noise-floor estimator

    The window is measured on the clock, not in samples: throttled frame
    delivery just means fewer samples, a fast host means more.
    """

    def __init__(self, duration_s=CALIBRATION_DURATION_S, clock=None):
        if duration_s <= 0:
            raise ValueError("duration_s must be positive")

        self.duration_s = float(duration_s)
        self.clock = clock or FrameClock()

        self.energy_samples = []
        self.tilt_samples = []
        self.baseline = None
        self._running = False

    @property
    def calibrated(self):
        return self.baseline is not None

    @property
    def sample_count(self):
        return len(self.energy_samples)

    @staticmethod
    def baseline_from_samples(energy_samples, tilt_samples):
        return Baseline(
            energy=sorted_midpoint(energy_samples),
            tilt=sorted_midpoint(tilt_samples),
        )

    async def calibrate(self, extractor, source):
        """
        Sample the source until the calibration window has elapsed

        Args:
            extractor: FeatureExtractor
            source: FrameSource read once per frame tick

        Returns:
            Baseline: fixed for the rest of the session
        """
        if self.baseline is not None:
            return self.baseline
        if self._running:
            raise RuntimeError("Calibration already in progress")

        self._running = True
        try:
            start = self.clock.now()
            logger.info(f"Calibrating noise floor for {self.duration_s * 1000:.0f} ms...")

            while True:
                features = extractor.extract(Frame.capture(source))
                self.energy_samples.append(features.energy)
                self.tilt_samples.append(features.tilt)

                if self.clock.now() - start >= self.duration_s:
                    break
                await self.clock.next_frame()

            self.baseline = self.baseline_from_samples(self.energy_samples, self.tilt_samples)
        finally:
            self._running = False

        logger.info(
            f"Calibration complete: energy={self.baseline.energy:.2f}, "
            f"tilt={self.baseline.tilt:.2f} ({self.sample_count} samples)"
        )
        return self.baseline
