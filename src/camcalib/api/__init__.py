from camcalib.api.model_io import (
    load_calibration,
    load_observations,
    load_projectives,
    load_quadric,
    load_self_calibration,
    save_calibration,
    save_observations,
    save_projectives,
    save_self_calibration,
)

__all__ = [
    "load_calibration",
    "load_observations",
    "load_projectives",
    "load_quadric",
    "load_self_calibration",
    "save_calibration",
    "save_observations",
    "save_projectives",
    "save_self_calibration",
]
