"""
Configuration constants for the breath/blow detection pipeline
"""

# Audio Configuration
SAMPLE_RATE = 48000  # Native rate of most desktop input devices
CHANNELS = 1  # Mono, no channel fusion
BLOCK_SIZE = 512  # Samples delivered per PortAudio callback
AUDIO_QUEUE_SIZE = 100  # Prevent memory overflow if ticks stall

# Analyser (byte frame production)
FFT_SIZE = 2048  # Time-domain buffer length; frequency buffer is half of this
SMOOTHING_TIME_CONSTANT = 0.8
MIN_DECIBELS = -100.0
MAX_DECIBELS = -30.0
SAMPLE_MIDPOINT = 128  # Unsigned 8-bit silence level

# Feature Extraction
TILT_BAND_START = 0.35  # Fraction of frequency buffer length (inclusive)
TILT_BAND_END = 0.9  # Fraction of frequency buffer length (exclusive)
ENERGY_SCALE = 100.0  # RMS in [0, 1] -> roughly [0, 100]

# Calibration
CALIBRATION_DURATION_S = 1.2  # Wall-clock, not sample count

# Classifier thresholds (offsets from baseline, with absolute floors)
STRONG_HISS_MARGIN = 18.0
TILT_MARGIN = 6.0
TILT_FLOOR = 14.0
ENERGY_MARGIN = 5.0
ENERGY_FLOOR = 10.0
LOUD_ENERGY_MARGIN = 12.0

# Frame cadence
TICK_INTERVAL_S = 1.0 / 60.0  # Roughly one display refresh
STOP_ON_TRIGGER = True  # Cancel ticking once triggered

# Synthetic source
SYNTHETIC_AMBIENT_LEVEL = 0.004
SYNTHETIC_HUM_HZ = 50.0
SYNTHETIC_BLOW_LEVEL = 0.3
SYNTHETIC_BLOW_CUTOFF_HZ = 4000.0
SYNTHETIC_BLOW_DURATION_S = 0.5

# Logging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL = "INFO"
