from __future__ import annotations


class CalibrationError(RuntimeError):
    pass


class InputValidationError(CalibrationError, ValueError):
    """Inputs rejected before any matrix work is attempted."""


class NumericalError(CalibrationError):
    """A decomposition or solve did not produce a usable answer."""


class DetectionError(CalibrationError):
    """The calibration target could not be related to one of the views."""


class CalibrationCancelled(CalibrationError):
    """The status listener asked for processing to stop."""
