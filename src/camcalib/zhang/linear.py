from __future__ import annotations

from typing import Sequence

import numpy as np

from camcalib.errors import InputValidationError, NumericalError


def pixel_normalization(points: Sequence[np.ndarray]) -> np.ndarray:
    """
    Similarity N moving pixels to zero mean and mean distance sqrt(2).

    Applied as H' = N H before solving for the calibration matrix; N K stays
    upper triangular so K = N^-1 K'.
    """
    uv = np.concatenate([np.asarray(p, dtype=np.float64).reshape(-1, 2) for p in points], axis=0)
    mean = uv.mean(axis=0)
    dist = float(np.mean(np.linalg.norm(uv - mean, axis=1)))
    s = np.sqrt(2.0) / dist if dist > 0 else 1.0
    return np.array([[s, 0.0, -s * mean[0]], [0.0, s, -s * mean[1]], [0.0, 0.0, 1.0]], dtype=np.float64)


def _v(H: np.ndarray, i: int, j: int) -> np.ndarray:
    """Row v_ij of Zhang's system, b = [B11, B12, B22, B13, B23, B33]."""
    hi = H[:, i]
    hj = H[:, j]
    return np.array(
        [
            hi[0] * hj[0],
            hi[0] * hj[1] + hi[1] * hj[0],
            hi[1] * hj[1],
            hi[2] * hj[0] + hi[0] * hj[2],
            hi[2] * hj[1] + hi[1] * hj[2],
            hi[2] * hj[2],
        ],
        dtype=np.float64,
    )


def calibration_matrix_from_homographies(
    homographies: Sequence[np.ndarray],
    assume_zero_skew: bool = False,
    normalization: np.ndarray | None = None,
) -> np.ndarray:
    """
    Closed-form calibration matrix from plane homographies.

    Each homography gives two linear constraints on B = K^-T K^-1 (orthogonal
    and equal-norm rotation columns). The null vector of the stacked system is
    found by SVD and K recovered with a Cholesky factorisation of B.
    """
    n = len(homographies)
    min_views = 2 if assume_zero_skew else 3
    if n < min_views:
        raise InputValidationError(f"need at least {min_views} homographies, got {n}")

    N = np.eye(3) if normalization is None else np.asarray(normalization, dtype=np.float64).reshape(3, 3)

    rows = []
    for H in homographies:
        Hn = N @ np.asarray(H, dtype=np.float64).reshape(3, 3)
        Hn = Hn / np.linalg.norm(Hn)
        rows.append(_v(Hn, 0, 1))
        rows.append(_v(Hn, 0, 0) - _v(Hn, 1, 1))
    if assume_zero_skew:
        rows.append(np.array([0.0, 1.0, 0.0, 0.0, 0.0, 0.0]))
    V = np.stack(rows, axis=0)

    _u, _s, Vt = np.linalg.svd(V)
    b = Vt[-1]
    B = np.array([[b[0], b[1], b[3]], [b[1], b[2], b[4]], [b[3], b[4], b[5]]], dtype=np.float64)
    # b is only known up to sign.
    if B[0, 0] < 0:
        B = -B

    try:
        L = np.linalg.cholesky(B)
    except np.linalg.LinAlgError as e:
        raise NumericalError("B = K^-T K^-1 is not positive definite; views are degenerate") from e

    K = np.linalg.inv(N) @ np.linalg.inv(L.T)
    K = K / K[2, 2]
    if assume_zero_skew:
        K[0, 1] = 0.0
    return K


def estimate_radial_linear(
    K: np.ndarray,
    homographies: Sequence[np.ndarray],
    observations: Sequence[np.ndarray],
    layout_xy: np.ndarray,
    num_radial: int,
) -> np.ndarray:
    """
    Linear least-squares estimate of the radial coefficients.

    Ideal points come from projecting the layout through each homography,
    observed points are the detections; both are taken to normalized
    coordinates with K^-1 and related by x_d - x = x * sum_i k_i r^(2i+2).
    """
    if num_radial <= 0:
        return np.zeros((0,), dtype=np.float64)

    K_inv = np.linalg.inv(np.asarray(K, dtype=np.float64).reshape(3, 3))
    layout_xy = np.asarray(layout_xy, dtype=np.float64).reshape(-1, 2)
    layout_h = np.concatenate([layout_xy, np.ones((layout_xy.shape[0], 1))], axis=1)

    A_parts: list[np.ndarray] = []
    b_parts: list[np.ndarray] = []
    for H, obs in zip(homographies, observations):
        ideal = (K_inv @ np.asarray(H, dtype=np.float64) @ layout_h.T).T
        ideal = ideal[:, :2] / ideal[:, 2:3]

        uv = np.asarray(obs, dtype=np.float64).reshape(-1, 2)
        uv_h = np.concatenate([uv, np.ones((uv.shape[0], 1))], axis=1)
        dist = (K_inv @ uv_h.T).T
        dist = dist[:, :2] / dist[:, 2:3]

        x = ideal[:, 0]
        y = ideal[:, 1]
        r2 = x * x + y * y
        powers = np.stack([r2 ** (i + 1) for i in range(int(num_radial))], axis=1)
        A_parts.append(np.concatenate([x[:, None] * powers, y[:, None] * powers], axis=0))
        b_parts.append(np.concatenate([dist[:, 0] - x, dist[:, 1] - y], axis=0))

    A = np.concatenate(A_parts, axis=0)
    b = np.concatenate(b_parts, axis=0)
    sol, *_ = np.linalg.lstsq(A, b, rcond=None)
    return sol.astype(np.float64)
