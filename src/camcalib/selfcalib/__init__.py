"""
Self-calibration from projective reconstructions via the dual absolute quadric.
"""

from camcalib.selfcalib.projective import ProjectiveCamera, quadric_to_vector, vector_to_quadric
from camcalib.selfcalib.solver import SelfCalibrationResult, SelfCalibrationTwoProjectives, SolverStrategy

__all__ = [
    "ProjectiveCamera",
    "SelfCalibrationResult",
    "SelfCalibrationTwoProjectives",
    "SolverStrategy",
    "quadric_to_vector",
    "vector_to_quadric",
]
