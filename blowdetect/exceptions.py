"""
Exceptions raised by the blow detection pipeline
"""


class BlowDetectError(Exception):
    """Base class for all blowdetect errors."""


class DeviceUnavailable(BlowDetectError):
    """
    The audio input device could not be acquired.

    Raised for denied access, missing devices, a missing audio backend or
    unsupported constraints. When raised from a non user-action attempt the
    caller is expected to retry from a genuine user action.
    """

    def __init__(self, reason, from_user_action=False):
        self.reason = reason
        self.from_user_action = from_user_action
        super().__init__(f"Audio input unavailable: {reason}")


class AcquisitionFailed(BlowDetectError):
    """The acquisition loop stopped on an unexpected error; the cause is chained."""
