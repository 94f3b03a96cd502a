"""
Detection session
Owns one device acquisition, calibration, classifier and state machine;
nothing here is process-wide, so independent sessions can coexist
"""

import asyncio
import logging

from .audio_capture import DeviceGate
from .calibration import Calibrator
from .classifier import BlowClassifier
from .config import STOP_ON_TRIGGER
from .engine import AcquisitionLoop, FrameClock
from .exceptions import DeviceUnavailable
from .feature_extraction import FeatureExtractor
from .types import AudioConstraints, DetectorState

logger = logging.getLogger(__name__)


class DetectorSession:
    """
    Main orchestrator for breath/blow detection
    Acquires the input, calibrates, then classifies every frame tick until
    the first blow is detected or the session is closed
    """

    def __init__(self, gate=None, on_triggered=None, constraints=None, clock=None,
                 extractor=None, calibrator=None, classifier=None,
                 stop_on_trigger=STOP_ON_TRIGGER):
        self.gate = gate or DeviceGate()
        self.constraints = constraints or AudioConstraints()
        self.clock = clock or FrameClock()
        self.extractor = extractor or FeatureExtractor()
        self.calibrator = calibrator or Calibrator(clock=self.clock)
        self.classifier = classifier or BlowClassifier()
        self.on_triggered = on_triggered
        self.stop_on_trigger = stop_on_trigger

        self.source = None
        self.loop = None
        self.closed = False
        self._acquire_task = None

    @property
    def state(self):
        if self.loop is None:
            return DetectorState.UNCALIBRATED
        return self.loop.state

    @property
    def baseline(self):
        return self.calibrator.baseline

    async def initialize(self, from_user_action=False):
        """
        Acquire the input device and start calibrating

        Safe to call repeatedly: once a device is held, later calls return
        the current state without acquiring again. A call arriving while an
        acquisition is pending waits for it; if that attempt was refused and
        this call comes from a user action, it acquires again.

        Args:
            from_user_action: True when called from a genuine user action

        Returns:
            DetectorState after the call

        Raises:
            DeviceUnavailable: the device could not be acquired; retry from
                a user action if this was not one
        """
        while True:
            if self.closed:
                raise RuntimeError("Session is closed")
            if self.loop is not None:
                return self.state

            pending = self._acquire_task
            if pending is None:
                break
            try:
                return await asyncio.shield(pending)
            except DeviceUnavailable as e:
                if e.from_user_action or not from_user_action:
                    raise

        task = asyncio.get_running_loop().create_task(self._acquire(from_user_action))
        self._acquire_task = task
        return await task

    async def _acquire(self, from_user_action):
        try:
            source = await self.gate.acquire(self.constraints, from_user_action=from_user_action)
        except DeviceUnavailable as e:
            if from_user_action:
                logger.warning(f"Audio input unavailable after user action: {e.reason}")
            else:
                logger.info(f"Audio input unavailable ({e.reason}); waiting for a user action")
            raise
        finally:
            self._acquire_task = None

        if self.closed:
            source.close()
            return self.state

        logger.info("Audio input acquired")
        self.source = source
        self.loop = AcquisitionLoop(
            source,
            self.extractor,
            self.calibrator,
            self.classifier,
            on_triggered=self._notify_triggered,
            stop_on_trigger=self.stop_on_trigger,
        )
        self.loop.start()

        if from_user_action:
            self.resume_if_suspended()
        return self.state

    def _notify_triggered(self):
        if self.on_triggered is not None:
            self.on_triggered()

    def resume_if_suspended(self):
        """
        Opportunistically restart suspended audio processing

        Idempotent and safe at any state; returns True if audio is running.
        """
        resume = getattr(self.source, "resume", None)
        if self.closed or resume is None:
            return False
        return bool(resume())

    async def wait_armed(self, timeout=None):
        if self.loop is None:
            raise RuntimeError("Session not initialized")
        return await self.loop.wait_armed(timeout)

    async def wait_triggered(self, timeout=None):
        if self.loop is None:
            raise RuntimeError("Session not initialized")
        return await self.loop.wait_triggered(timeout)

    async def close(self):
        """
        Cancel pending ticks and release the device; idempotent
        """
        if self.closed:
            return
        self.closed = True

        if self.loop is not None:
            await self.loop.cancel()
        if self.source is not None:
            self.source.close()
        logger.info("Detection session closed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def get_status(self):
        """
        Get current session status for monitoring
        """
        baseline = self.baseline
        loop = self.loop
        return {
            "state": self.state.value,
            "calibrated": self.calibrator.calibrated,
            "baseline": None if baseline is None else {"energy": baseline.energy, "tilt": baseline.tilt},
            "thresholds": None if baseline is None else self.classifier.thresholds(baseline),
            "calibration_samples": self.calibrator.sample_count,
            "ticks": 0 if loop is None else loop.ticks,
            "triggered_at": None if loop is None else loop.triggered_at,
            "error": None if loop is None or loop.error is None else str(loop.error),
            "closed": self.closed,
        }
