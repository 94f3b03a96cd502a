from .clock import FrameClock
from .acquisition import AcquisitionLoop
