from __future__ import annotations

import numpy as np
from scipy.spatial.transform import Rotation as Rot  # type: ignore


def skew(v: np.ndarray) -> np.ndarray:
    """Cross-product matrix [v]_x such that [v]_x @ w == cross(v, w)."""
    x, y, z = (float(c) for c in np.asarray(v, dtype=np.float64).reshape(3))
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]], dtype=np.float64)


def rodrigues_to_matrix(rvec: np.ndarray) -> np.ndarray:
    return Rot.from_rotvec(np.asarray(rvec, dtype=np.float64).reshape(3)).as_matrix()


def matrix_to_rodrigues(R: np.ndarray) -> np.ndarray:
    return Rot.from_matrix(np.asarray(R, dtype=np.float64).reshape(3, 3)).as_rotvec()


def nearest_rotation(M: np.ndarray) -> np.ndarray:
    """Closest rotation matrix (Frobenius norm) to a 3x3 matrix."""
    U, _s, Vt = np.linalg.svd(np.asarray(M, dtype=np.float64).reshape(3, 3))
    R = U @ Vt
    if np.linalg.det(R) < 0:
        R = U @ np.diag([1.0, 1.0, -1.0]) @ Vt
    return R


def rodrigues_derivatives(rvec: np.ndarray) -> np.ndarray:
    """
    Derivatives of R(v) w.r.t. the three components of the rotation vector.

    Returns an array (3,3,3) where [i] is dR/dv_i, using

      dR/dv_i = (v_i [v]_x + [v x (I - R) e_i]_x) R / |v|^2

    and the limit [e_i]_x at v = 0.
    """
    v = np.asarray(rvec, dtype=np.float64).reshape(3)
    theta2 = float(v @ v)
    eye = np.eye(3)
    if theta2 < 1e-16:
        return np.stack([skew(eye[i]) for i in range(3)], axis=0)
    R = rodrigues_to_matrix(v)
    vx = skew(v)
    out = np.empty((3, 3, 3), dtype=np.float64)
    for i in range(3):
        w = np.cross(v, (eye - R)[:, i])
        out[i] = (v[i] * vx + skew(w)) @ R / theta2
    return out
