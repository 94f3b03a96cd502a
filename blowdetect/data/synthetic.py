"""
Synthetic frame source
Generates room tone and a breath-like burst through the real analyser, for
simulation runs and tests without an audio device
"""

import logging

import numpy as np
from scipy.signal import butter, sosfilt

from ..analyser import Analyser
from ..config import (
    SAMPLE_RATE, SYNTHETIC_AMBIENT_LEVEL, SYNTHETIC_HUM_HZ,
    SYNTHETIC_BLOW_LEVEL, SYNTHETIC_BLOW_CUTOFF_HZ, SYNTHETIC_BLOW_DURATION_S
)
from ..engine.clock import FrameClock
from ..exceptions import DeviceUnavailable

logger = logging.getLogger(__name__)


class SyntheticFrameSource:
    """
    Frame source producing ambient noise, then a blow at blow_after_s

    Elapsed time is read from the clock, starting at the first capture.
    Each time-domain capture synthesizes a fresh window; the matching
    frequency-domain capture analyses that same window.
    """

    def __init__(self, clock=None, analyser=None, sample_rate=SAMPLE_RATE,
                 blow_after_s=None, blow_duration_s=SYNTHETIC_BLOW_DURATION_S,
                 blow_level=SYNTHETIC_BLOW_LEVEL, ambient_level=SYNTHETIC_AMBIENT_LEVEL,
                 hum_hz=SYNTHETIC_HUM_HZ, seed=None):
        self.clock = clock or FrameClock()
        self.analyser = analyser or Analyser()
        self.sample_rate = sample_rate
        self.blow_after_s = blow_after_s
        self.blow_duration_s = blow_duration_s
        self.blow_level = blow_level
        self.ambient_level = ambient_level
        self.hum_hz = hum_hz

        self.rng = np.random.default_rng(seed)
        self.hiss_filter = butter(
            4, SYNTHETIC_BLOW_CUTOFF_HZ, btype="highpass", fs=sample_rate, output="sos"
        )

        self.started_at = None
        self.closed = False
        self.windows_generated = 0
        self._window = None

    @property
    def elapsed(self):
        if self.started_at is None:
            return 0.0
        return self.clock.now() - self.started_at

    def is_blowing(self):
        if self.blow_after_s is None:
            return False
        return self.blow_after_s <= self.elapsed < self.blow_after_s + self.blow_duration_s

    def _ambient(self, n):
        t = np.arange(n) / self.sample_rate
        noise = self.rng.normal(0.0, self.ambient_level, n)
        hum = 0.5 * self.ambient_level * np.sin(2 * np.pi * self.hum_hz * t)
        return noise + hum

    def _hiss(self, n):
        white = self.rng.normal(0.0, 1.0, n)
        return self.blow_level * sosfilt(self.hiss_filter, white)

    def generate_window(self):
        """
        Synthesize one analyser window of float samples
        """
        if self.closed:
            raise RuntimeError("Synthetic source is closed")
        if self.started_at is None:
            self.started_at = self.clock.now()

        n = self.analyser.fft_size
        window = self._ambient(n)
        if self.is_blowing():
            window = window + self._hiss(n)

        self.windows_generated += 1
        self._window = np.clip(window, -1.0, 1.0)
        return self._window

    def capture_time_domain(self):
        return self.analyser.time_domain_bytes(self.generate_window())

    def capture_frequency_domain(self):
        window = self._window if self._window is not None else self.generate_window()
        return self.analyser.frequency_bytes(window)

    def resume(self):
        return not self.closed

    def close(self):
        self.closed = True


class SyntheticGate:
    """
    Device gate handing out synthetic sources

    With require_user_action set, attempts not made from a user action fail
    the way a platform that gates device access behind a gesture would.
    """

    def __init__(self, source_factory=SyntheticFrameSource, require_user_action=False):
        self.source_factory = source_factory
        self.require_user_action = require_user_action
        self.attempts = 0

    async def acquire(self, constraints=None, from_user_action=False):
        self.attempts += 1
        if self.require_user_action and not from_user_action:
            raise DeviceUnavailable("user action required", from_user_action)

        logger.debug(f"Synthetic source acquired (attempt {self.attempts})")
        return self.source_factory()
