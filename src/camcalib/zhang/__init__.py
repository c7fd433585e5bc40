"""
Planar-target calibration (Zhang 1999): linear estimate + reprojection refinement.
"""

from camcalib.zhang.calibration import (
    CalibrationObservation,
    CalibrationOutcome,
    CalibrationPlanarGridZhang99,
    CalibrationStatus,
    total_points,
)
from camcalib.zhang.params import View, Zhang99AllParam, Zhang99IntrinsicParam

__all__ = [
    "CalibrationObservation",
    "CalibrationOutcome",
    "CalibrationPlanarGridZhang99",
    "CalibrationStatus",
    "View",
    "Zhang99AllParam",
    "Zhang99IntrinsicParam",
    "total_points",
]
