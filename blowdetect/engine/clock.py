"""
Frame-delivery cadence for the cooperative acquisition loop
"""

import asyncio
import time

from ..config import TICK_INTERVAL_S


class FrameClock:
    """
    Paces frame ticks on the running event loop

    next_frame() is the single suspension point between ticks; now() is the
    wall clock used for the calibration window. Both are overridable so the
    cadence can follow another host primitive or a simulated timeline.
    """

    def __init__(self, interval=TICK_INTERVAL_S, time_fn=time.monotonic):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = float(interval)
        self._time_fn = time_fn

    def now(self):
        return self._time_fn()

    async def next_frame(self):
        await asyncio.sleep(self.interval)
