"""
Acquisition loop for breath/blow detection
Drives calibration and then one classification per frame tick, latching on
the first detection
"""

import asyncio
import logging

from ..config import STOP_ON_TRIGGER
from ..exceptions import AcquisitionFailed
from ..types import DetectorState, Frame

logger = logging.getLogger(__name__)


class AcquisitionLoop:
    """
    Owns the detector state machine for one frame source

    UNCALIBRATED -> CALIBRATING -> ARMED -> TRIGGERED (terminal)

    Every step runs on the event loop that called start(); the only
    suspension points are the calibrator's and the clock's frame waits.
    """

    def __init__(self, source, extractor, calibrator, classifier,
                 on_triggered=None, stop_on_trigger=STOP_ON_TRIGGER):
        self.source = source
        self.extractor = extractor
        self.calibrator = calibrator
        self.classifier = classifier
        self.clock = calibrator.clock
        self.on_triggered = on_triggered
        self.stop_on_trigger = stop_on_trigger

        self.state = DetectorState.UNCALIBRATED
        self.baseline = None
        self.last_features = None
        self.ticks = 0
        self.triggered_at = None
        self.error = None

        self._task = None
        self._armed = asyncio.Event()
        self._triggered = asyncio.Event()

    @property
    def running(self):
        return self._task is not None and not self._task.done()

    def start(self):
        """
        Schedule calibration followed by ticking; returns the task
        """
        if self._task is not None:
            return self._task

        self.state = DetectorState.CALIBRATING
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def _run(self):
        try:
            await self._calibrate_and_tick()
        except Exception as e:
            # Waiters are released and re-raise the stored error
            logger.exception(f"Acquisition loop failed in state {self.state.value}: {e}")
            self.error = e
            self._armed.set()
            self._triggered.set()

    async def _calibrate_and_tick(self):
        self.baseline = await self.calibrator.calibrate(self.extractor, self.source)
        self.state = DetectorState.ARMED
        self._armed.set()
        logger.info("Detector armed")

        while True:
            await self.clock.next_frame()
            self.tick()
            if self.stop_on_trigger and self.state is DetectorState.TRIGGERED:
                logger.debug("Tick loop stopped after trigger")
                return

    def tick(self):
        """
        Process one frame; returns True only on the ARMED -> TRIGGERED transition

        Outside ARMED this is a no-op, so late ticks never re-classify or
        re-notify.
        """
        if self.state is not DetectorState.ARMED:
            return False

        self.ticks += 1
        features = self.extractor.extract(Frame.capture(self.source))
        self.last_features = features

        if not self.classifier.classify(features, self.baseline):
            logger.debug(f"Tick {self.ticks}: energy={features.energy:.2f} tilt={features.tilt:.2f}")
            return False

        self.state = DetectorState.TRIGGERED
        self.triggered_at = self.clock.now()
        logger.info(
            f"Blow detected on tick {self.ticks}: "
            f"energy={features.energy:.2f}, tilt={features.tilt:.2f}"
        )
        self._triggered.set()
        if self.on_triggered is not None:
            self.on_triggered()
        return True

    @staticmethod
    async def _wait(event, timeout):
        try:
            await asyncio.wait_for(event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def _raise_if_failed(self):
        if self.error is not None:
            raise AcquisitionFailed(f"Acquisition loop failed: {self.error}") from self.error

    async def wait_armed(self, timeout=None):
        """
        Wait for calibration to finish; False if the timeout expires first

        Raises:
            AcquisitionFailed: the loop died before arming
        """
        done = await self._wait(self._armed, timeout)
        if self.state in (DetectorState.ARMED, DetectorState.TRIGGERED):
            return True
        self._raise_if_failed()
        return done

    async def wait_triggered(self, timeout=None):
        """
        Wait for the trigger; False if the timeout expires first

        Raises:
            AcquisitionFailed: the loop died before triggering
        """
        done = await self._wait(self._triggered, timeout)
        if self.state is DetectorState.TRIGGERED:
            return True
        self._raise_if_failed()
        return done

    async def cancel(self):
        """
        Stop requesting ticks; safe to call at any state
        """
        if self._task is None:
            return
        if self._task.done():
            if not self._task.cancelled():
                self._task.exception()
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
