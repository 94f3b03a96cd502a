"""
Audio capture module for breath/blow detection
Wraps a PortAudio input stream behind the frame-source interface and
provides the device gate that opens it
"""

import asyncio
import logging
import queue
from collections import deque
from queue import Queue

import numpy as np

from .analyser import Analyser
from .config import SAMPLE_RATE, CHANNELS, BLOCK_SIZE, AUDIO_QUEUE_SIZE
from .exceptions import DeviceUnavailable
from .types import AudioConstraints

logger = logging.getLogger(__name__)

try:  # PortAudio is a system library and may be missing
    import sounddevice as sd

    HAVE_SOUNDDEVICE = True
except OSError:
    sd = None
    HAVE_SOUNDDEVICE = False


class AudioCapture:
    """
    Continuous mono capture with a thread-safe queue and sliding buffer

    The PortAudio callback only enqueues blocks; the sliding buffer is
    updated on the caller's thread whenever a buffer is requested, so every
    capture reads the live device state at call time.
    """

    def __init__(self, analyser=None, sample_rate=SAMPLE_RATE, device=None,
                 block_size=BLOCK_SIZE):
        self.analyser = analyser or Analyser()
        self.sample_rate = sample_rate
        self.channels = CHANNELS
        self.device = device
        self.block_size = block_size

        # Thread-safe queue for decoupling capture and processing
        self.audio_queue = Queue(maxsize=AUDIO_QUEUE_SIZE)

        # Sliding buffer holding exactly one analyser window
        self.sliding_buffer = deque(maxlen=self.analyser.fft_size)

        self.stream = None
        self.dropped_blocks = 0
        self._window = None

    def audio_callback(self, indata, frames, time_info, status):
        """
        Callback function for audio stream - runs on the PortAudio thread
        """
        if status:
            logger.warning(f"Audio stream status: {status}")

        try:
            self.audio_queue.put_nowait(indata[:, 0].copy())
        except queue.Full:
            self.dropped_blocks += 1

    def start(self):
        """
        Open and start the input stream
        """
        if self.stream is not None:
            logger.warning("Audio capture already running")
            return

        stream = sd.InputStream(
            samplerate=self.sample_rate,
            channels=self.channels,
            dtype="float32",
            device=self.device,
            blocksize=self.block_size,
            callback=self.audio_callback,
        )
        try:
            stream.start()
        except sd.PortAudioError:
            stream.close()
            raise
        self.stream = stream
        logger.info(f"Audio capture started ({self.sample_rate} Hz, block {self.block_size})")

    @property
    def suspended(self):
        return self.stream is not None and not self.stream.active

    def resume(self):
        """
        Restart a stopped stream; returns True if the stream is running afterwards
        """
        if self.stream is None:
            return False
        if self.stream.active:
            return True

        try:
            self.stream.start()
        except sd.PortAudioError as e:
            logger.debug(f"Audio stream resume failed: {e}")
            return False

        logger.info("Audio capture resumed")
        return True

    def close(self):
        """
        Stop the stream and release the device handle
        """
        if self.stream is None:
            return

        stream, self.stream = self.stream, None
        try:
            stream.stop()
        finally:
            stream.close()

        logger.info("Audio capture stopped")

    def _drain(self):
        while True:
            try:
                block = self.audio_queue.get_nowait()
            except queue.Empty:
                break
            self.sliding_buffer.extend(block)

    def get_audio_window(self):
        """
        Current sliding window as a float array (may be shorter than fft_size)
        """
        self._drain()
        return np.fromiter(self.sliding_buffer, dtype=np.float32, count=len(self.sliding_buffer))

    def capture_time_domain(self):
        self._window = self.get_audio_window()
        return self.analyser.time_domain_bytes(self._window)

    def capture_frequency_domain(self):
        # Analyse the window the time-domain read took, so both buffers of a frame match
        window = self._window if self._window is not None else self.get_audio_window()
        return self.analyser.frequency_bytes(window)

    def get_buffer_fill_percentage(self):
        return (len(self.sliding_buffer) / self.analyser.fft_size) * 100


class DeviceGate:
    """
    Acquires an AudioCapture for a set of constraints

    PortAudio hands out raw device samples, so the "processing disabled"
    constraints are satisfied by construction; asking for any processing
    stage is reported as unsupported.
    """

    def __init__(self, analyser_factory=Analyser, sample_rate=SAMPLE_RATE,
                 block_size=BLOCK_SIZE):
        self.analyser_factory = analyser_factory
        self.sample_rate = sample_rate
        self.block_size = block_size

    @staticmethod
    def list_input_devices():
        """
        Input-capable devices as (index, name, default_samplerate)
        """
        if not HAVE_SOUNDDEVICE:
            raise DeviceUnavailable("PortAudio library not found")

        return [
            (index, info["name"], info["default_samplerate"])
            for index, info in enumerate(sd.query_devices())
            if info["max_input_channels"] > 0
        ]

    def _open(self, constraints):
        sample_rate = constraints.sample_rate or self.sample_rate
        sd.check_input_settings(
            device=constraints.device,
            channels=constraints.channels,
            samplerate=sample_rate,
            dtype="float32",
        )
        capture = AudioCapture(
            analyser=self.analyser_factory(),
            sample_rate=sample_rate,
            device=constraints.device,
            block_size=self.block_size,
        )
        capture.start()
        return capture

    async def acquire(self, constraints=None, from_user_action=False):
        """
        Open the input device

        Raises:
            DeviceUnavailable: no backend, no device, access denied or
                unsupported constraints
        """
        constraints = constraints or AudioConstraints()

        if not HAVE_SOUNDDEVICE:
            raise DeviceUnavailable("PortAudio library not found", from_user_action)
        if constraints.channels != CHANNELS:
            raise DeviceUnavailable(
                f"only mono capture is supported, got {constraints.channels} channels",
                from_user_action,
            )
        if constraints.processing_requested:
            raise DeviceUnavailable("input processing stages are not supported", from_user_action)

        try:
            return await asyncio.to_thread(self._open, constraints)
        except (sd.PortAudioError, ValueError) as e:
            raise DeviceUnavailable(str(e), from_user_action) from e
