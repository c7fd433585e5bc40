from __future__ import annotations

import numpy as np

from camcalib.core.geometry import matrix_to_rodrigues, rodrigues_to_matrix
from camcalib.zhang.optimization import project_points
from camcalib.zhang.params import View, Zhang99IntrinsicParam


def _rot_x(a: float) -> np.ndarray:
    ca, sa = np.cos(a), np.sin(a)
    return np.array([[1, 0, 0], [0, ca, -sa], [0, sa, ca]], dtype=np.float64)


def _rot_y(a: float) -> np.ndarray:
    ca, sa = np.cos(a), np.sin(a)
    return np.array([[ca, 0, sa], [0, 1, 0], [-sa, 0, ca]], dtype=np.float64)


def _rot_z(a: float) -> np.ndarray:
    ca, sa = np.cos(a), np.sin(a)
    return np.array([[ca, -sa, 0], [sa, ca, 0], [0, 0, 1]], dtype=np.float64)


def grid_layout(rows: int, cols: int, spacing: float) -> np.ndarray:
    """
    Row-major (rows*cols, 2) grid on the target plane, centered at (0,0).
    """
    if rows < 2 or cols < 2:
        raise ValueError("grid needs at least 2 rows and 2 columns")
    xs = spacing * (np.arange(cols, dtype=np.float64) - 0.5 * (cols - 1))
    ys = spacing * (np.arange(rows, dtype=np.float64) - 0.5 * (rows - 1))
    xx, yy = np.meshgrid(xs, ys)
    return np.stack([xx.reshape(-1), yy.reshape(-1)], axis=-1)


def look_at_poses(
    n: int,
    distance: float,
    seed: int = 0,
    max_tilt_rad: float = 0.6,
    max_offset: float = 0.0,
) -> list[tuple[np.ndarray, np.ndarray]]:
    """
    Target-to-camera poses (R, T) with the target roughly centered in view.

    Each pose tilts the target about x and y by up to `max_tilt_rad` and spins it
    about the optical axis. The first two tilts alternate sign so that small `n`
    still yields non-parallel planes.
    """
    rng = np.random.default_rng(seed)
    poses = []
    for i in range(int(n)):
        ax = float(rng.uniform(0.3, 1.0) * max_tilt_rad) * (1.0 if i % 2 == 0 else -1.0)
        ay = float(rng.uniform(-1.0, 1.0) * max_tilt_rad)
        az = float(rng.uniform(-np.pi, np.pi))
        R = _rot_z(az) @ _rot_y(ay) @ _rot_x(ax)
        T = np.array(
            [
                float(rng.uniform(-max_offset, max_offset)),
                float(rng.uniform(-max_offset, max_offset)),
                float(distance) * float(rng.uniform(0.9, 1.1)),
            ],
            dtype=np.float64,
        )
        poses.append((R, T))
    return poses


def render_observations(
    intrinsic: Zhang99IntrinsicParam,
    poses: list[tuple[np.ndarray, np.ndarray]],
    layout_xy: np.ndarray,
    noise_std: float = 0.0,
    seed: int = 0,
) -> list[np.ndarray]:
    """Projects the layout through each pose; optional Gaussian pixel noise."""
    rng = np.random.default_rng(seed)
    out = []
    for R, T in poses:
        uv = project_points(intrinsic, View(rotation=matrix_to_rodrigues(R), T=T), layout_xy)
        if noise_std > 0.0:
            uv = uv + rng.normal(0.0, float(noise_std), size=uv.shape)
        out.append(uv)
    return out


def synthetic_projective_rig(
    K: np.ndarray, n_views: int, seed: int = 0
) -> tuple[list[np.ndarray], np.ndarray]:
    """
    Projective cameras P_i = s_i K [R_i | t_i] H sharing the calibration K.

    H is a random well-conditioned 4x4 projective transform and s_i a random
    per-camera scale. The returned Q_true = H^-1 diag(1,1,1,0) H^-T satisfies
    P_i Q_true P_i' ~ K K' for every camera.
    """
    rng = np.random.default_rng(seed)
    K = np.asarray(K, dtype=np.float64).reshape(3, 3)
    H = np.eye(4) + 0.3 * rng.normal(size=(4, 4))
    while np.linalg.cond(H) > 50.0:
        H = np.eye(4) + 0.3 * rng.normal(size=(4, 4))

    cameras = []
    for _ in range(int(n_views)):
        R = rodrigues_to_matrix(rng.normal(scale=0.5, size=(3,)))
        t = rng.normal(scale=1.0, size=(3,))
        scale = float(rng.uniform(0.5, 2.0))
        P = scale * (K @ np.concatenate([R, t.reshape(3, 1)], axis=1)) @ H
        cameras.append(P)

    H_inv = np.linalg.inv(H)
    Q_true = H_inv @ np.diag([1.0, 1.0, 1.0, 0.0]) @ H_inv.T
    Q_true = 0.5 * (Q_true + Q_true.T)
    return cameras, Q_true
