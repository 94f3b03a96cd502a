"""
Feature extraction module for breath/blow detection
Reduces one byte frame to an energy level and a hiss-band spectral tilt
"""

import math
import logging

import numpy as np

from .config import SAMPLE_MIDPOINT, TILT_BAND_START, TILT_BAND_END, ENERGY_SCALE
from .types import FeaturePair

logger = logging.getLogger(__name__)


class FeatureExtractor:
    """
    Extracts the two scalar features the classifier works on
    Stateless: the same frame always yields the same FeaturePair
    """

    def __init__(self, band_start=TILT_BAND_START, band_end=TILT_BAND_END,
                 midpoint=SAMPLE_MIDPOINT, energy_scale=ENERGY_SCALE):
        if not 0.0 <= band_start < band_end <= 1.0:
            raise ValueError(
                f"Tilt band must satisfy 0 <= start < end <= 1, got [{band_start}, {band_end})"
            )
        if midpoint <= 0:
            raise ValueError("midpoint must be positive")

        self.band_start = band_start
        self.band_end = band_end
        self.midpoint = float(midpoint)
        self.energy_scale = float(energy_scale)

        logger.debug(f"Feature extractor initialized (tilt band [{band_start:.2f}, {band_end:.2f}))")

    def extract(self, frame):
        """
        Extract energy and tilt from a frame

        Args:
            frame: Frame with uint8 time-domain and frequency-domain buffers

        Returns:
            FeaturePair
        """
        return FeaturePair(
            energy=self.extract_energy(frame.time_domain),
            tilt=self.extract_tilt(frame.frequency_domain),
        )

    def extract_energy(self, time_domain):
        """
        RMS of the DC-free waveform, scaled to roughly [0, 100]
        """
        samples = np.asarray(time_domain, dtype=np.float64)
        if samples.size == 0:
            return 0.0

        centered = (samples - self.midpoint) / self.midpoint
        rms = math.sqrt(float(np.mean(centered * centered)))
        return rms * self.energy_scale

    def band_bounds(self, length):
        """
        Bin index range [start, end) of the hiss band for a buffer length
        """
        return math.floor(self.band_start * length), math.floor(self.band_end * length)

    def extract_tilt(self, frequency_domain):
        """
        Mean magnitude over the high-frequency hiss band

        Voice and music concentrate energy in the low bins; airflow spreads
        it across the upper band. Returns 0 when the band is empty.
        """
        bins = np.asarray(frequency_domain, dtype=np.float64)
        start, end = self.band_bounds(bins.size)
        if end <= start:
            return 0.0

        return float(np.mean(bins[start:end]))
