"""Pytest configuration and fixtures for blowdetect tests."""

import asyncio

import numpy as np
import pytest

from blowdetect.engine import FrameClock
from blowdetect.types import Frame


class FakeClock(FrameClock):
    """Frame clock on a simulated timeline; each frame advances time by one interval."""

    def __init__(self, interval=1 / 64):
        self.t = 0.0
        super().__init__(interval=interval, time_fn=lambda: self.t)
        self.frames = 0

    async def next_frame(self):
        self.t += self.interval
        self.frames += 1
        await asyncio.sleep(0)


class ScriptedSource:
    """Frame source replaying a list of frames, repeating the last one."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.index = 0
        self.current = None
        self.closed = False
        self.resume_calls = 0

    def capture_time_domain(self):
        self.current = self.frames[min(self.index, len(self.frames) - 1)]
        self.index += 1
        return self.current.time_domain

    def capture_frequency_domain(self):
        return self.current.frequency_domain

    def resume(self):
        self.resume_calls += 1
        return True

    def close(self):
        self.closed = True


def build_frame(amplitude=0, tilt=0, length=256):
    """
    Frame whose time-domain bytes alternate midpoint +/- amplitude, giving
    energy = 100 * amplitude / 128, and whose bins are all equal to tilt.
    """
    signs = np.where(np.arange(length) % 2 == 0, 1, -1)
    time_domain = (128 + amplitude * signs).astype(np.uint8)
    frequency_domain = np.full(length // 2, tilt, dtype=np.uint8)
    return Frame(time_domain=time_domain, frequency_domain=frequency_domain)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_frame():
    return build_frame


@pytest.fixture
def scripted_source():
    return ScriptedSource


@pytest.fixture
def quiet_frames():
    """Near-silent room: energy around 2, tilt around 3 with a little jitter."""
    rng = np.random.default_rng(7)
    return [
        build_frame(amplitude=int(rng.integers(2, 4)), tilt=int(rng.integers(2, 5)))
        for _ in range(200)
    ]


@pytest.fixture
def blow_frame():
    """Blow-like frame: energy ~15 (amplitude 19), tilt 25."""
    return build_frame(amplitude=19, tilt=25)
