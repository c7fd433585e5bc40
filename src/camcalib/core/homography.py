from __future__ import annotations

import cv2
import numpy as np

from camcalib.core.geometry import nearest_rotation
from camcalib.errors import DetectionError, NumericalError


def compute_target_homography(layout_xy: np.ndarray, observed_uv: np.ndarray) -> np.ndarray:
    """
    Homography mapping target-plane coordinates to pixels, scaled so H[2,2] == 1.

    Plain least squares (no RANSAC): every observation is assumed to be an inlier.
    """
    layout_xy = np.asarray(layout_xy, dtype=np.float64).reshape(-1, 2)
    observed_uv = np.asarray(observed_uv, dtype=np.float64).reshape(-1, 2)
    if layout_xy.shape[0] != observed_uv.shape[0]:
        raise DetectionError("layout and observations must have the same length")
    if layout_xy.shape[0] < 4:
        raise DetectionError("need >= 4 points to estimate a homography")
    if not (np.all(np.isfinite(layout_xy)) and np.all(np.isfinite(observed_uv))):
        raise DetectionError("non-finite point coordinates")

    H, _mask = cv2.findHomography(layout_xy, observed_uv, method=0)
    if H is None or not np.all(np.isfinite(H)) or abs(float(H[2, 2])) < 1e-15:
        raise DetectionError("homography estimation failed (degenerate point configuration?)")
    return np.asarray(H, dtype=np.float64) / float(H[2, 2])


def decompose_homography(K: np.ndarray, H: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Pose (R, T) of the target plane from H ~ K [r1 r2 T].

    The scale comes from the first column; the result is projected onto the
    nearest rotation and its sign chosen so the target sits in front of the
    camera (T[2] > 0).
    """
    K_inv = np.linalg.inv(np.asarray(K, dtype=np.float64).reshape(3, 3))
    H = np.asarray(H, dtype=np.float64).reshape(3, 3)
    h1 = K_inv @ H[:, 0]
    h2 = K_inv @ H[:, 1]
    h3 = K_inv @ H[:, 2]

    norm1 = float(np.linalg.norm(h1))
    if norm1 == 0.0 or not np.isfinite(norm1):
        raise NumericalError("degenerate homography: zero column after applying K^-1")
    lam = 1.0 / norm1
    if h3[2] * lam < 0:
        lam = -lam

    r1 = lam * h1
    r2 = lam * h2
    r3 = np.cross(r1, r2)
    T = lam * h3
    R = nearest_rotation(np.column_stack([r1, r2, r3]))
    return R, T
