"""Tests for AudioCapture and DeviceGate with the PortAudio boundary mocked."""

import asyncio
import logging
from queue import Queue
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from blowdetect.analyser import Analyser
from blowdetect.audio_capture import AudioCapture, DeviceGate
from blowdetect.exceptions import DeviceUnavailable
from blowdetect.types import AudioConstraints


class PortAudioError(Exception):
    pass


@pytest.fixture
def mock_sd():
    with patch("blowdetect.audio_capture.sd") as sd, \
            patch("blowdetect.audio_capture.HAVE_SOUNDDEVICE", True):
        sd.PortAudioError = PortAudioError
        yield sd


class TestDeviceGate:
    """Test cases for device acquisition."""

    def test_acquire_opens_mono_stream(self, mock_sd):
        """Test that acquire checks settings and starts a mono float stream."""
        capture = asyncio.run(DeviceGate(sample_rate=44100).acquire())

        assert isinstance(capture, AudioCapture)
        mock_sd.check_input_settings.assert_called_once_with(
            device=None, channels=1, samplerate=44100, dtype="float32"
        )
        _, kwargs = mock_sd.InputStream.call_args
        assert kwargs["channels"] == 1
        assert kwargs["callback"] == capture.audio_callback
        mock_sd.InputStream.return_value.start.assert_called_once_with()
        assert capture.stream is mock_sd.InputStream.return_value

    def test_constraint_sample_rate_wins(self, mock_sd):
        """Test that a requested sample rate overrides the gate default."""
        constraints = AudioConstraints(sample_rate=16000, device=3)
        capture = asyncio.run(DeviceGate().acquire(constraints))
        assert capture.sample_rate == 16000
        assert capture.device == 3

    def test_settings_rejected(self, mock_sd):
        """Test that PortAudio errors surface as DeviceUnavailable."""
        mock_sd.check_input_settings.side_effect = PortAudioError("Invalid device")

        with pytest.raises(DeviceUnavailable, match="Invalid device") as excinfo:
            asyncio.run(DeviceGate().acquire(from_user_action=True))

        assert excinfo.value.from_user_action is True
        mock_sd.InputStream.assert_not_called()

    def test_start_failure_closes_stream(self, mock_sd):
        """Test that a stream that fails to start is released."""
        stream = mock_sd.InputStream.return_value
        stream.start.side_effect = PortAudioError("Device busy")

        with pytest.raises(DeviceUnavailable):
            asyncio.run(DeviceGate().acquire())

        stream.close.assert_called_once_with()

    @pytest.mark.parametrize("constraints", [
        AudioConstraints(channels=2),
        AudioConstraints(echo_cancellation=True),
        AudioConstraints(noise_suppression=True),
        AudioConstraints(auto_gain_control=True),
    ])
    def test_unsupported_constraints(self, mock_sd, constraints):
        """Test that multi-channel capture and processing stages are refused."""
        with pytest.raises(DeviceUnavailable):
            asyncio.run(DeviceGate().acquire(constraints))
        mock_sd.InputStream.assert_not_called()

    def test_missing_backend(self):
        """Test that a missing PortAudio library is reported as unavailable."""
        with patch("blowdetect.audio_capture.HAVE_SOUNDDEVICE", False):
            with pytest.raises(DeviceUnavailable, match="PortAudio"):
                asyncio.run(DeviceGate().acquire())

    def test_list_input_devices(self, mock_sd):
        """Test that output-only devices are filtered out."""
        mock_sd.query_devices.return_value = [
            {"name": "Built-in Mic", "max_input_channels": 1, "default_samplerate": 48000.0},
            {"name": "Speakers", "max_input_channels": 0, "default_samplerate": 48000.0},
            {"name": "USB Mic", "max_input_channels": 2, "default_samplerate": 44100.0},
        ]
        assert DeviceGate.list_input_devices() == [
            (0, "Built-in Mic", 48000.0),
            (2, "USB Mic", 44100.0),
        ]


class TestAudioCapture:
    """Test cases for the capture buffer and stream lifecycle."""

    def test_callback_feeds_frames(self):
        """Test that queued blocks reach the next captured frame."""
        capture = AudioCapture(analyser=Analyser(fft_size=8))
        capture.audio_callback(np.full((4, 1), 0.5, dtype=np.float32), 4, None, None)

        assert capture.capture_time_domain().tolist() == [128] * 4 + [192] * 4
        assert capture.capture_frequency_domain().shape == (4,)
        assert capture.get_buffer_fill_percentage() == 50.0

    def test_frame_buffers_share_one_window(self):
        """Test that a block arriving between the two reads stays out of this frame."""
        capture = AudioCapture(analyser=Analyser(fft_size=8))
        capture.audio_callback(np.zeros((8, 1), dtype=np.float32), 8, None, None)
        time_domain = capture.capture_time_domain()

        capture.audio_callback(np.full((8, 1), 0.5, dtype=np.float32), 8, None, None)
        frequency = capture.capture_frequency_domain()

        assert time_domain.tolist() == [128] * 8
        assert frequency.tolist() == [0] * 4

        # The late block belongs to the next frame
        assert capture.capture_time_domain().tolist() == [192] * 8
        assert capture.capture_frequency_domain()[0] > 0

    def test_sliding_buffer_keeps_latest_window(self):
        """Test that older samples fall out of the window."""
        capture = AudioCapture(analyser=Analyser(fft_size=4))
        capture.audio_callback(np.full((4, 1), -1.0, dtype=np.float32), 4, None, None)
        capture.audio_callback(np.zeros((4, 1), dtype=np.float32), 4, None, None)

        assert capture.capture_time_domain().tolist() == [128] * 4

    def test_full_queue_drops_blocks(self):
        """Test that a stalled consumer never blocks the audio thread."""
        capture = AudioCapture(analyser=Analyser(fft_size=8))
        capture.audio_queue = Queue(maxsize=1)
        block = np.zeros((4, 1), dtype=np.float32)
        capture.audio_callback(block, 4, None, None)
        capture.audio_callback(block, 4, None, None)
        assert capture.dropped_blocks == 1

    def test_status_is_logged(self, caplog):
        """Test that stream status flags are logged, not raised."""
        capture = AudioCapture(analyser=Analyser(fft_size=8))
        with caplog.at_level(logging.WARNING, logger="blowdetect.audio_capture"):
            capture.audio_callback(np.zeros((4, 1), dtype=np.float32), 4, None, "input overflow")
        assert "input overflow" in caplog.text

    def test_resume(self, mock_sd):
        """Test restarting a suspended stream."""
        capture = AudioCapture(analyser=Analyser(fft_size=8))
        assert capture.resume() is False

        capture.stream = MagicMock(active=False)
        assert capture.suspended
        assert capture.resume() is True
        capture.stream.start.assert_called_once_with()

        capture.stream = MagicMock(active=True)
        assert capture.resume() is True
        capture.stream.start.assert_not_called()

    def test_resume_failure_is_silent(self, mock_sd):
        """Test that a failed restart returns False instead of raising."""
        capture = AudioCapture(analyser=Analyser(fft_size=8))
        capture.stream = MagicMock(active=False)
        capture.stream.start.side_effect = PortAudioError("Host error")
        assert capture.resume() is False

    def test_close_releases_stream(self):
        """Test that close stops and closes the stream once."""
        capture = AudioCapture(analyser=Analyser(fft_size=8))
        stream = MagicMock()
        capture.stream = stream

        capture.close()
        capture.close()

        stream.stop.assert_called_once_with()
        stream.close.assert_called_once_with()
        assert capture.stream is None
