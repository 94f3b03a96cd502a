"""
Byte-buffer analyser
Turns the latest float samples into the fixed-length unsigned 8-bit
time-domain and frequency-domain buffers the feature extractor reads
"""

import logging

import numpy as np
import librosa
from scipy.signal import get_window

from .config import (
    FFT_SIZE, SMOOTHING_TIME_CONSTANT, MIN_DECIBELS, MAX_DECIBELS, SAMPLE_MIDPOINT
)

logger = logging.getLogger(__name__)


class Analyser:
    """
    FFT analyser with temporal smoothing and a fixed dB display range

    Buffer lengths are set once here and never change: fft_size time-domain
    bytes and fft_size // 2 frequency bins.
    """

    def __init__(self, fft_size=FFT_SIZE, smoothing=SMOOTHING_TIME_CONSTANT,
                 min_decibels=MIN_DECIBELS, max_decibels=MAX_DECIBELS):
        if fft_size < 2 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 2, got {fft_size}")
        if not 0.0 <= smoothing < 1.0:
            raise ValueError("smoothing must be in [0, 1)")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be below max_decibels")

        self.fft_size = fft_size
        self.frequency_bin_count = fft_size // 2
        self.smoothing = smoothing
        self.min_decibels = float(min_decibels)
        self.max_decibels = float(max_decibels)

        # Periodic Blackman window, matching FFT-based analysers
        self.window = get_window("blackman", fft_size)
        self._previous = np.zeros(self.frequency_bin_count, dtype=np.float64)

    def reset(self):
        """
        Forget the smoothing history
        """
        self._previous = np.zeros(self.frequency_bin_count, dtype=np.float64)

    def _fit(self, samples):
        samples = np.asarray(samples, dtype=np.float64).ravel()
        if samples.size >= self.fft_size:
            return samples[-self.fft_size:]
        # Left-pad with silence so the newest samples stay at the end
        return np.concatenate([np.zeros(self.fft_size - samples.size), samples])

    def time_domain_bytes(self, samples):
        """
        Float samples in [-1, 1] -> uint8 centered on the midpoint
        """
        fitted = self._fit(samples)
        scaled = np.floor(SAMPLE_MIDPOINT * (1.0 + fitted))
        return np.clip(scaled, 0, 255).astype(np.uint8)

    def frequency_bytes(self, samples):
        """
        Float samples -> smoothed magnitude spectrum mapped to uint8
        """
        fitted = self._fit(samples)
        spectrum = np.fft.rfft(fitted * self.window)[:self.frequency_bin_count]
        magnitude = np.abs(spectrum) / self.fft_size

        smoothed = self.smoothing * self._previous + (1.0 - self.smoothing) * magnitude
        self._previous = smoothed

        decibels = librosa.amplitude_to_db(smoothed, ref=1.0, amin=1e-10, top_db=None)
        span = self.max_decibels - self.min_decibels
        scaled = np.floor(255.0 / span * (decibels - self.min_decibels))
        return np.clip(scaled, 0, 255).astype(np.uint8)
