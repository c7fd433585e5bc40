from camcalib import config, errors
from camcalib.api import load_calibration, load_observations, load_projectives, save_calibration, save_self_calibration
from camcalib.selfcalib import ProjectiveCamera, SelfCalibrationResult, SelfCalibrationTwoProjectives, SolverStrategy
from camcalib.zhang import CalibrationOutcome, CalibrationPlanarGridZhang99, CalibrationStatus, Zhang99AllParam

__all__ = [
    "config",
    "errors",
    "CalibrationOutcome",
    "CalibrationPlanarGridZhang99",
    "CalibrationStatus",
    "ProjectiveCamera",
    "SelfCalibrationResult",
    "SelfCalibrationTwoProjectives",
    "SolverStrategy",
    "Zhang99AllParam",
    "load_calibration",
    "load_observations",
    "load_projectives",
    "save_calibration",
    "save_self_calibration",
]
