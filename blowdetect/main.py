"""
Main application for breath/blow detection
Provides interface for running the live detector, calibrating, listing
input devices and simulating a session without hardware
"""

import argparse
import asyncio
import logging
import sys

from .analyser import Analyser
from .audio_capture import DeviceGate
from .config import (
    SAMPLE_RATE, FFT_SIZE, CALIBRATION_DURATION_S, LOG_FORMAT, LOG_LEVEL
)
from .calibration import Calibrator
from .data.synthetic import SyntheticFrameSource, SyntheticGate
from .detector import DetectorSession
from .engine import FrameClock
from .exceptions import AcquisitionFailed, DeviceUnavailable
from .types import AudioConstraints

logger = logging.getLogger(__name__)


class BlowDetectApp:
    """
    Main application class for the breath/blow detector
    """

    def __init__(self, sample_rate=SAMPLE_RATE, fft_size=FFT_SIZE, device=None,
                 calibration_s=CALIBRATION_DURATION_S, prompt=input):
        self.sample_rate = sample_rate
        self.fft_size = fft_size
        self.device = device
        self.calibration_s = calibration_s
        self.prompt = prompt

    def _live_session(self):
        gate = DeviceGate(
            analyser_factory=lambda: Analyser(fft_size=self.fft_size),
            sample_rate=self.sample_rate,
        )
        clock = FrameClock()
        return DetectorSession(
            gate=gate,
            clock=clock,
            calibrator=Calibrator(duration_s=self.calibration_s, clock=clock),
            constraints=AudioConstraints(sample_rate=self.sample_rate, device=self.device),
        )

    async def _initialize(self, session):
        """
        Try silently first, then once more after an explicit user confirmation
        """
        try:
            await session.initialize(from_user_action=False)
        except DeviceUnavailable:
            await asyncio.to_thread(self.prompt, "Microphone unavailable. Press Enter to retry... ")
            await session.initialize(from_user_action=True)

    # -------------------------------------------------------------------
    # Run live detector
    # -------------------------------------------------------------------
    async def run_detector(self, timeout=None):
        async with self._live_session() as session:
            await self._initialize(session)
            await session.wait_armed()
            print("[*] Calibrated. Blow into the microphone...")

            if not await session.wait_triggered(timeout):
                print("[*] No blow detected")
                return 1

            print("*** Blow detected ***")
            return 0

    # -------------------------------------------------------------------
    # Calibrate only
    # -------------------------------------------------------------------
    async def calibrate(self):
        async with self._live_session() as session:
            await self._initialize(session)
            await session.wait_armed()
            baseline = session.baseline

            print(f"Baseline energy: {baseline.energy:.2f}")
            print(f"Baseline tilt:   {baseline.tilt:.2f}")
            print(f"Samples:         {session.calibrator.sample_count}")
            return 0

    # -------------------------------------------------------------------
    # List input devices
    # -------------------------------------------------------------------
    def list_devices(self):
        for index, name, default_rate in DeviceGate.list_input_devices():
            print(f"{index:3d}  {name} ({default_rate:.0f} Hz)")
        return 0

    # -------------------------------------------------------------------
    # Simulated session
    # -------------------------------------------------------------------
    async def simulate(self, blow_after=3.0, timeout=10.0, seed=None):
        clock = FrameClock()
        gate = SyntheticGate(
            source_factory=lambda: SyntheticFrameSource(
                clock=clock,
                analyser=Analyser(fft_size=self.fft_size),
                sample_rate=self.sample_rate,
                blow_after_s=blow_after,
                seed=seed,
            )
        )
        session = DetectorSession(
            gate=gate,
            clock=clock,
            calibrator=Calibrator(duration_s=self.calibration_s, clock=clock),
        )
        async with session:
            await session.initialize()
            await session.wait_armed()
            print(f"Baseline: energy={session.baseline.energy:.2f} tilt={session.baseline.tilt:.2f}")

            if not await session.wait_triggered(timeout):
                print("No blow detected")
                return 1

            elapsed = session.loop.triggered_at - session.source.started_at
            print(f"Blow detected at {elapsed:.2f} s (ticks: {session.loop.ticks})")
            return 0


# -------------------------------------------------------------------
# Entry point
# -------------------------------------------------------------------
def build_parser():
    parser = argparse.ArgumentParser(
        description="Breath/blow detection from a live audio input"
    )
    parser.add_argument(
        "command",
        choices=["run", "calibrate", "devices", "simulate"],
        help="Command to execute",
    )
    parser.add_argument(
        "--device",
        default=None,
        help="Input device index or name (default: system default)",
    )
    parser.add_argument(
        "--sample-rate",
        type=int,
        default=SAMPLE_RATE,
        help=f"Capture sample rate (default: {SAMPLE_RATE})",
    )
    parser.add_argument(
        "--fft-size",
        type=int,
        default=FFT_SIZE,
        help=f"Analyser FFT size (default: {FFT_SIZE})",
    )
    parser.add_argument(
        "--calibration",
        type=float,
        default=CALIBRATION_DURATION_S,
        help=f"Calibration window in seconds (default: {CALIBRATION_DURATION_S})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up after this many seconds (run/simulate)",
    )
    parser.add_argument(
        "--blow-after",
        type=float,
        default=3.0,
        help="Seconds into a simulation before the synthetic blow (default: 3.0)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for simulation",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def _device_arg(value):
    if value is None:
        return None
    return int(value) if value.isdigit() else value


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else LOG_LEVEL,
        format=LOG_FORMAT,
    )

    app = BlowDetectApp(
        sample_rate=args.sample_rate,
        fft_size=args.fft_size,
        device=_device_arg(args.device),
        calibration_s=args.calibration,
    )

    try:
        if args.command == "run":
            return asyncio.run(app.run_detector(args.timeout))
        elif args.command == "calibrate":
            return asyncio.run(app.calibrate())
        elif args.command == "devices":
            return app.list_devices()
        elif args.command == "simulate":
            timeout = args.timeout if args.timeout is not None else args.blow_after + 5.0
            return asyncio.run(app.simulate(args.blow_after, timeout, args.seed))
    except DeviceUnavailable as e:
        logger.error(f"Error: {e}")
        return 2
    except AcquisitionFailed as e:
        logger.error(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\n[*] Stopping...")
        return 130

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
