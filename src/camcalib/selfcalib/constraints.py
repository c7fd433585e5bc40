"""
Quartic constraints on the dual absolute quadric between two projective cameras.

For a symmetric 4x4 quadric Q with independent entries packed into the 10-vector q
(row-major upper triangle), every entry of the image of the quadric,
w = P Q P', is linear in q. The product of two such entries taken from two
cameras is therefore a quadratic form in q. Each function below returns the
10x10 upper-triangular coefficient matrix A of one such product, so that

    q' A q == (P Q P')[i,j] * (R Q R')[k,l]

Cameras that share intrinsics see the same w up to scale, which makes
``fn(P, R) - fn(R, P)`` vanish at the true quadric.

The entries are machine-expanded polynomials and are kept verbatim. Only the
first three rows of the homogeneous 4x4 camera enter the formulas.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

ConstraintFunction = Callable[[np.ndarray, np.ndarray], np.ndarray]


def _rows(M: np.ndarray) -> list[list[float]]:
    M = np.asarray(M, dtype=np.float64)
    if M.shape not in ((3, 4), (4, 4)):
        raise ValueError(f"expected a 3x4 or 4x4 camera matrix, got shape {M.shape}")
    return M[:3].tolist()


def i00_j01(P: np.ndarray, R: np.ndarray) -> np.ndarray:
    """Coefficients of ``(P Q P')[0,0] * (R Q R')[0,1]``."""
    (p11, p12, p13, p14), (p21, p22, p23, p24), (p31, p32, p33, p34) = _rows(P)
    (r11, r12, r13, r14), (r21, r22, r23, r24), (r31, r32, r33, r34) = _rows(R)
    A = np.zeros((10, 10), dtype=np.float64)
    A[0, 0] = p11*p11*r11*r21
    A[0, 1] = 2*p11*r11*p12*r21 + p11*p11*r12*r21 + p11*p11*r11*r22
    A[0, 2] = 2*p11*r11*p13*r21 + p11*p11*r13*r21 + p11*p11*r11*r23
    A[0, 3] = 2*p11*r11*p14*r21 + p11*p11*r14*r21 + p11*p11*r11*r24
    A[0, 4] = r11*p12*p12*r21 + p11*p11*r12*r22
    A[0, 5] = 2*r11*p12*p13*r21 + p11*p11*r13*r22 + p11*p11*r12*r23
    A[0, 6] = 2*r11*p12*p14*r21 + p11*p11*r14*r22 + p11*p11*r12*r24
    A[0, 7] = r11*p13*p13*r21 + p11*p11*r13*r23
    A[0, 8] = 2*r11*p13*p14*r21 + p11*p11*r14*r23 + p11*p11*r13*r24
    A[0, 9] = r11*p14*p14*r21 + p11*p11*r14*r24
    A[1, 1] = 2*p11*p12*r12*r21 + 2*p11*r11*p12*r22
    A[1, 2] = 2*p11*r12*p13*r21 + 2*p11*p12*r13*r21 + 2*p11*r11*p13*r22 + 2*p11*r11*p12*r23
    A[1, 3] = 2*p11*r12*p14*r21 + 2*p11*p12*r14*r21 + 2*p11*r11*p14*r22 + 2*p11*r11*p12*r24
    A[1, 4] = p12*p12*r12*r21 + r11*p12*p12*r22 + 2*p11*p12*r12*r22
    A[1, 5] = 2*p12*r12*p13*r21 + 2*r11*p12*p13*r22 + 2*p11*p12*r13*r22 + 2*p11*p12*r12*r23
    A[1, 6] = 2*p12*r12*p14*r21 + 2*r11*p12*p14*r22 + 2*p11*p12*r14*r22 + 2*p11*p12*r12*r24
    A[1, 7] = r12*p13*p13*r21 + r11*p13*p13*r22 + 2*p11*p12*r13*r23
    A[1, 8] = 2*r12*p13*p14*r21 + 2*r11*p13*p14*r22 + 2*p11*p12*r14*r23 + 2*p11*p12*r13*r24
    A[1, 9] = r12*p14*p14*r21 + r11*p14*p14*r22 + 2*p11*p12*r14*r24
    A[2, 2] = 2*p11*p13*r13*r21 + 2*p11*r11*p13*r23
    A[2, 3] = 2*p11*r13*p14*r21 + 2*p11*p13*r14*r21 + 2*p11*r11*p14*r23 + 2*p11*r11*p13*r24
    A[2, 4] = p12*p12*r13*r21 + 2*p11*r12*p13*r22 + r11*p12*p12*r23
    A[2, 5] = 2*p12*p13*r13*r21 + 2*p11*p13*r13*r22 + 2*r11*p12*p13*r23 + 2*p11*r12*p13*r23
    A[2, 6] = 2*p12*r13*p14*r21 + 2*p11*p13*r14*r22 + 2*r11*p12*p14*r23 + 2*p11*r12*p13*r24
    A[2, 7] = p13*p13*r13*r21 + r11*p13*p13*r23 + 2*p11*p13*r13*r23
    A[2, 8] = 2*p13*r13*p14*r21 + 2*r11*p13*p14*r23 + 2*p11*p13*r14*r23 + 2*p11*p13*r13*r24
    A[2, 9] = r13*p14*p14*r21 + r11*p14*p14*r23 + 2*p11*p13*r14*r24
    A[3, 3] = 2*p11*p14*r14*r21 + 2*p11*r11*p14*r24
    A[3, 4] = p12*p12*r14*r21 + 2*p11*r12*p14*r22 + r11*p12*p12*r24
    A[3, 5] = 2*p12*p13*r14*r21 + 2*p11*r13*p14*r22 + 2*p11*r12*p14*r23 + 2*r11*p12*p13*r24
    A[3, 6] = 2*p12*p14*r14*r21 + 2*p11*p14*r14*r22 + 2*r11*p12*p14*r24 + 2*p11*r12*p14*r24
    A[3, 7] = p13*p13*r14*r21 + 2*p11*r13*p14*r23 + r11*p13*p13*r24
    A[3, 8] = 2*p13*p14*r14*r21 + 2*p11*p14*r14*r23 + 2*r11*p13*p14*r24 + 2*p11*r13*p14*r24
    A[3, 9] = p14*p14*r14*r21 + r11*p14*p14*r24 + 2*p11*p14*r14*r24
    A[4, 4] = p12*p12*r12*r22
    A[4, 5] = 2*p12*r12*p13*r22 + p12*p12*r13*r22 + p12*p12*r12*r23
    A[4, 6] = 2*p12*r12*p14*r22 + p12*p12*r14*r22 + p12*p12*r12*r24
    A[4, 7] = r12*p13*p13*r22 + p12*p12*r13*r23
    A[4, 8] = 2*r12*p13*p14*r22 + p12*p12*r14*r23 + p12*p12*r13*r24
    A[4, 9] = r12*p14*p14*r22 + p12*p12*r14*r24
    A[5, 5] = 2*p12*p13*r13*r22 + 2*p12*r12*p13*r23
    A[5, 6] = 2*p12*r13*p14*r22 + 2*p12*p13*r14*r22 + 2*p12*r12*p14*r23 + 2*p12*r12*p13*r24
    A[5, 7] = p13*p13*r13*r22 + r12*p13*p13*r23 + 2*p12*p13*r13*r23
    A[5, 8] = 2*p13*r13*p14*r22 + 2*r12*p13*p14*r23 + 2*p12*p13*r14*r23 + 2*p12*p13*r13*r24
    A[5, 9] = r13*p14*p14*r22 + r12*p14*p14*r23 + 2*p12*p13*r14*r24
    A[6, 6] = 2*p12*p14*r14*r22 + 2*p12*r12*p14*r24
    A[6, 7] = p13*p13*r14*r22 + 2*p12*r13*p14*r23 + r12*p13*p13*r24
    A[6, 8] = 2*p13*p14*r14*r22 + 2*p12*p14*r14*r23 + 2*r12*p13*p14*r24 + 2*p12*r13*p14*r24
    A[6, 9] = p14*p14*r14*r22 + r12*p14*p14*r24 + 2*p12*p14*r14*r24
    A[7, 7] = p13*p13*r13*r23
    A[7, 8] = 2*p13*r13*p14*r23 + p13*p13*r14*r23 + p13*p13*r13*r24
    A[7, 9] = r13*p14*p14*r23 + p13*p13*r14*r24
    A[8, 8] = 2*p13*p14*r14*r23 + 2*p13*r13*p14*r24
    A[8, 9] = p14*p14*r14*r23 + r13*p14*p14*r24 + 2*p13*p14*r14*r24
    A[9, 9] = p14*p14*r14*r24
    return A


def i01_j02(P: np.ndarray, R: np.ndarray) -> np.ndarray:
    """Coefficients of ``(P Q P')[0,1] * (R Q R')[0,2]``."""
    (p11, p12, p13, p14), (p21, p22, p23, p24), (p31, p32, p33, p34) = _rows(P)
    (r11, r12, r13, r14), (r21, r22, r23, r24), (r31, r32, r33, r34) = _rows(R)
    A = np.zeros((10, 10), dtype=np.float64)
    A[0, 0] = p11*r11*p21*r31
    A[0, 1] = r11*p12*p21*r31 + p11*r12*p21*r31 + p11*r11*p22*r31 + p11*r11*p21*r32
    A[0, 2] = r11*p13*p21*r31 + p11*r13*p21*r31 + p11*r11*p23*r31 + p11*r11*p21*r33
    A[0, 3] = r11*p14*p21*r31 + p11*r14*p21*r31 + p11*r11*p24*r31 + p11*r11*p21*r34
    A[0, 4] = r11*p12*p22*r31 + p11*r12*p21*r32
    A[0, 5] = r11*p13*p22*r31 + r11*p12*p23*r31 + p11*r13*p21*r32 + p11*r12*p21*r33
    A[0, 6] = r11*p14*p22*r31 + r11*p12*p24*r31 + p11*r14*p21*r32 + p11*r12*p21*r34
    A[0, 7] = r11*p13*p23*r31 + p11*r13*p21*r33
    A[0, 8] = r11*p14*p23*r31 + r11*p13*p24*r31 + p11*r14*p21*r33 + p11*r13*p21*r34
    A[0, 9] = r11*p14*p24*r31 + p11*r14*p21*r34
    A[1, 1] = p12*r12*p21*r31 + p11*r12*p22*r31 + r11*p12*p21*r32 + p11*r11*p22*r32
    A[1, 2] = r12*p13*p21*r31 + p12*r13*p21*r31 + p11*r13*p22*r31 + p11*r12*p23*r31 + r11*p13*p21*r32 + p11*r11*p23*r32 + r11*p12*p21*r33 + p11*r11*p22*r33
    A[1, 3] = r12*p14*p21*r31 + p12*r14*p21*r31 + p11*r14*p22*r31 + p11*r12*p24*r31 + r11*p14*p21*r32 + p11*r11*p24*r32 + r11*p12*p21*r34 + p11*r11*p22*r34
    A[1, 4] = p12*r12*p22*r31 + p12*r12*p21*r32 + r11*p12*p22*r32 + p11*r12*p22*r32
    A[1, 5] = r12*p13*p22*r31 + p12*r12*p23*r31 + p12*r13*p21*r32 + r11*p13*p22*r32 + p11*r13*p22*r32 + r11*p12*p23*r32 + p12*r12*p21*r33 + p11*r12*p22*r33
    A[1, 6] = r12*p14*p22*r31 + p12*r12*p24*r31 + p12*r14*p21*r32 + r11*p14*p22*r32 + p11*r14*p22*r32 + r11*p12*p24*r32 + p12*r12*p21*r34 + p11*r12*p22*r34
    A[1, 7] = r12*p13*p23*r31 + r11*p13*p23*r32 + p12*r13*p21*r33 + p11*r13*p22*r33
    A[1, 8] = r12*p14*p23*r31 + r12*p13*p24*r31 + r11*p14*p23*r32 + r11*p13*p24*r32 + p12*r14*p21*r33 + p11*r14*p22*r33 + p12*r13*p21*r34 + p11*r13*p22*r34
    A[1, 9] = r12*p14*p24*r31 + r11*p14*p24*r32 + p12*r14*p21*r34 + p11*r14*p22*r34
    A[2, 2] = p13*r13*p21*r31 + p11*r13*p23*r31 + r11*p13*p21*r33 + p11*r11*p23*r33
    A[2, 3] = r13*p14*p21*r31 + p13*r14*p21*r31 + p11*r14*p23*r31 + p11*r13*p24*r31 + r11*p14*p21*r33 + p11*r11*p24*r33 + r11*p13*p21*r34 + p11*r11*p23*r34
    A[2, 4] = p12*r13*p22*r31 + r12*p13*p21*r32 + p11*r12*p23*r32 + r11*p12*p22*r33
    A[2, 5] = p13*r13*p22*r31 + p12*r13*p23*r31 + p13*r13*p21*r32 + p11*r13*p23*r32 + r12*p13*p21*r33 + r11*p13*p22*r33 + r11*p12*p23*r33 + p11*r12*p23*r33
    A[2, 6] = r13*p14*p22*r31 + p12*r13*p24*r31 + p13*r14*p21*r32 + p11*r14*p23*r32 + r11*p14*p22*r33 + r11*p12*p24*r33 + r12*p13*p21*r34 + p11*r12*p23*r34
    A[2, 7] = p13*r13*p23*r31 + p13*r13*p21*r33 + r11*p13*p23*r33 + p11*r13*p23*r33
    A[2, 8] = r13*p14*p23*r31 + p13*r13*p24*r31 + p13*r14*p21*r33 + r11*p14*p23*r33 + p11*r14*p23*r33 + r11*p13*p24*r33 + p13*r13*p21*r34 + p11*r13*p23*r34
    A[2, 9] = r13*p14*p24*r31 + r11*p14*p24*r33 + p13*r14*p21*r34 + p11*r14*p23*r34
    A[3, 3] = p14*r14*p21*r31 + p11*r14*p24*r31 + r11*p14*p21*r34 + p11*r11*p24*r34
    A[3, 4] = p12*r14*p22*r31 + r12*p14*p21*r32 + p11*r12*p24*r32 + r11*p12*p22*r34
    A[3, 5] = p13*r14*p22*r31 + p12*r14*p23*r31 + r13*p14*p21*r32 + p11*r13*p24*r32 + r12*p14*p21*r33 + p11*r12*p24*r33 + r11*p13*p22*r34 + r11*p12*p23*r34
    A[3, 6] = p14*r14*p22*r31 + p12*r14*p24*r31 + p14*r14*p21*r32 + p11*r14*p24*r32 + r12*p14*p21*r34 + r11*p14*p22*r34 + r11*p12*p24*r34 + p11*r12*p24*r34
    A[3, 7] = p13*r14*p23*r31 + r13*p14*p21*r33 + p11*r13*p24*r33 + r11*p13*p23*r34
    A[3, 8] = p14*r14*p23*r31 + p13*r14*p24*r31 + p14*r14*p21*r33 + p11*r14*p24*r33 + r13*p14*p21*r34 + r11*p14*p23*r34 + r11*p13*p24*r34 + p11*r13*p24*r34
    A[3, 9] = p14*r14*p24*r31 + p14*r14*p21*r34 + r11*p14*p24*r34 + p11*r14*p24*r34
    A[4, 4] = p12*r12*p22*r32
    A[4, 5] = r12*p13*p22*r32 + p12*r13*p22*r32 + p12*r12*p23*r32 + p12*r12*p22*r33
    A[4, 6] = r12*p14*p22*r32 + p12*r14*p22*r32 + p12*r12*p24*r32 + p12*r12*p22*r34
    A[4, 7] = r12*p13*p23*r32 + p12*r13*p22*r33
    A[4, 8] = r12*p14*p23*r32 + r12*p13*p24*r32 + p12*r14*p22*r33 + p12*r13*p22*r34
    A[4, 9] = r12*p14*p24*r32 + p12*r14*p22*r34
    A[5, 5] = p13*r13*p22*r32 + p12*r13*p23*r32 + r12*p13*p22*r33 + p12*r12*p23*r33
    A[5, 6] = r13*p14*p22*r32 + p13*r14*p22*r32 + p12*r14*p23*r32 + p12*r13*p24*r32 + r12*p14*p22*r33 + p12*r12*p24*r33 + r12*p13*p22*r34 + p12*r12*p23*r34
    A[5, 7] = p13*r13*p23*r32 + p13*r13*p22*r33 + r12*p13*p23*r33 + p12*r13*p23*r33
    A[5, 8] = r13*p14*p23*r32 + p13*r13*p24*r32 + p13*r14*p22*r33 + r12*p14*p23*r33 + p12*r14*p23*r33 + r12*p13*p24*r33 + p13*r13*p22*r34 + p12*r13*p23*r34
    A[5, 9] = r13*p14*p24*r32 + r12*p14*p24*r33 + p13*r14*p22*r34 + p12*r14*p23*r34
    A[6, 6] = p14*r14*p22*r32 + p12*r14*p24*r32 + r12*p14*p22*r34 + p12*r12*p24*r34
    A[6, 7] = p13*r14*p23*r32 + r13*p14*p22*r33 + p12*r13*p24*r33 + r12*p13*p23*r34
    A[6, 8] = p14*r14*p23*r32 + p13*r14*p24*r32 + p14*r14*p22*r33 + p12*r14*p24*r33 + r13*p14*p22*r34 + r12*p14*p23*r34 + r12*p13*p24*r34 + p12*r13*p24*r34
    A[6, 9] = p14*r14*p24*r32 + p14*r14*p22*r34 + r12*p14*p24*r34 + p12*r14*p24*r34
    A[7, 7] = p13*r13*p23*r33
    A[7, 8] = r13*p14*p23*r33 + p13*r14*p23*r33 + p13*r13*p24*r33 + p13*r13*p23*r34
    A[7, 9] = r13*p14*p24*r33 + p13*r14*p23*r34
    A[8, 8] = p14*r14*p23*r33 + p13*r14*p24*r33 + r13*p14*p23*r34 + p13*r13*p24*r34
    A[8, 9] = p14*r14*p24*r33 + p14*r14*p23*r34 + r13*p14*p24*r34 + p13*r14*p24*r34
    A[9, 9] = p14*r14*p24*r34
    return A


def i02_j11(P: np.ndarray, R: np.ndarray) -> np.ndarray:
    """Coefficients of ``(P Q P')[0,2] * (R Q R')[1,1]``."""
    (p11, p12, p13, p14), (p21, p22, p23, p24), (p31, p32, p33, p34) = _rows(P)
    (r11, r12, r13, r14), (r21, r22, r23, r24), (r31, r32, r33, r34) = _rows(R)
    A = np.zeros((10, 10), dtype=np.float64)
    A[0, 0] = p11*r21*r21*p31
    A[0, 1] = p12*r21*r21*p31 + 2*p11*r21*r22*p31 + p11*r21*r21*p32
    A[0, 2] = p13*r21*r21*p31 + 2*p11*r21*r23*p31 + p11*r21*r21*p33
    A[0, 3] = p14*r21*r21*p31 + 2*p11*r21*r24*p31 + p11*r21*r21*p34
    A[0, 4] = p11*r22*r22*p31 + p12*r21*r21*p32
    A[0, 5] = 2*p11*r22*r23*p31 + p13*r21*r21*p32 + p12*r21*r21*p33
    A[0, 6] = 2*p11*r22*r24*p31 + p14*r21*r21*p32 + p12*r21*r21*p34
    A[0, 7] = p11*r23*r23*p31 + p13*r21*r21*p33
    A[0, 8] = 2*p11*r23*r24*p31 + p14*r21*r21*p33 + p13*r21*r21*p34
    A[0, 9] = p11*r24*r24*p31 + p14*r21*r21*p34
    A[1, 1] = 2*p12*r21*r22*p31 + 2*p11*r21*r22*p32
    A[1, 2] = 2*p13*r21*r22*p31 + 2*p12*r21*r23*p31 + 2*p11*r21*r23*p32 + 2*p11*r21*r22*p33
    A[1, 3] = 2*p14*r21*r22*p31 + 2*p12*r21*r24*p31 + 2*p11*r21*r24*p32 + 2*p11*r21*r22*p34
    A[1, 4] = p12*r22*r22*p31 + 2*p12*r21*r22*p32 + p11*r22*r22*p32
    A[1, 5] = 2*p12*r22*r23*p31 + 2*p13*r21*r22*p32 + 2*p11*r22*r23*p32 + 2*p12*r21*r22*p33
    A[1, 6] = 2*p12*r22*r24*p31 + 2*p14*r21*r22*p32 + 2*p11*r22*r24*p32 + 2*p12*r21*r22*p34
    A[1, 7] = p12*r23*r23*p31 + p11*r23*r23*p32 + 2*p13*r21*r22*p33
    A[1, 8] = 2*p12*r23*r24*p31 + 2*p11*r23*r24*p32 + 2*p14*r21*r22*p33 + 2*p13*r21*r22*p34
    A[1, 9] = p12*r24*r24*p31 + p11*r24*r24*p32 + 2*p14*r21*r22*p34
    A[2, 2] = 2*p13*r21*r23*p31 + 2*p11*r21*r23*p33
    A[2, 3] = 2*p14*r21*r23*p31 + 2*p13*r21*r24*p31 + 2*p11*r21*r24*p33 + 2*p11*r21*r23*p34
    A[2, 4] = p13*r22*r22*p31 + 2*p12*r21*r23*p32 + p11*r22*r22*p33
    A[2, 5] = 2*p13*r22*r23*p31 + 2*p13*r21*r23*p32 + 2*p12*r21*r23*p33 + 2*p11*r22*r23*p33
    A[2, 6] = 2*p13*r22*r24*p31 + 2*p14*r21*r23*p32 + 2*p11*r22*r24*p33 + 2*p12*r21*r23*p34
    A[2, 7] = p13*r23*r23*p31 + 2*p13*r21*r23*p33 + p11*r23*r23*p33
    A[2, 8] = 2*p13*r23*r24*p31 + 2*p14*r21*r23*p33 + 2*p11*r23*r24*p33 + 2*p13*r21*r23*p34
    A[2, 9] = p13*r24*r24*p31 + p11*r24*r24*p33 + 2*p14*r21*r23*p34
    A[3, 3] = 2*p14*r21*r24*p31 + 2*p11*r21*r24*p34
    A[3, 4] = p14*r22*r22*p31 + 2*p12*r21*r24*p32 + p11*r22*r22*p34
    A[3, 5] = 2*p14*r22*r23*p31 + 2*p13*r21*r24*p32 + 2*p12*r21*r24*p33 + 2*p11*r22*r23*p34
    A[3, 6] = 2*p14*r22*r24*p31 + 2*p14*r21*r24*p32 + 2*p12*r21*r24*p34 + 2*p11*r22*r24*p34
    A[3, 7] = p14*r23*r23*p31 + 2*p13*r21*r24*p33 + p11*r23*r23*p34
    A[3, 8] = 2*p14*r23*r24*p31 + 2*p14*r21*r24*p33 + 2*p13*r21*r24*p34 + 2*p11*r23*r24*p34
    A[3, 9] = p14*r24*r24*p31 + 2*p14*r21*r24*p34 + p11*r24*r24*p34
    A[4, 4] = p12*r22*r22*p32
    A[4, 5] = p13*r22*r22*p32 + 2*p12*r22*r23*p32 + p12*r22*r22*p33
    A[4, 6] = p14*r22*r22*p32 + 2*p12*r22*r24*p32 + p12*r22*r22*p34
    A[4, 7] = p12*r23*r23*p32 + p13*r22*r22*p33
    A[4, 8] = 2*p12*r23*r24*p32 + p14*r22*r22*p33 + p13*r22*r22*p34
    A[4, 9] = p12*r24*r24*p32 + p14*r22*r22*p34
    A[5, 5] = 2*p13*r22*r23*p32 + 2*p12*r22*r23*p33
    A[5, 6] = 2*p14*r22*r23*p32 + 2*p13*r22*r24*p32 + 2*p12*r22*r24*p33 + 2*p12*r22*r23*p34
    A[5, 7] = p13*r23*r23*p32 + 2*p13*r22*r23*p33 + p12*r23*r23*p33
    A[5, 8] = 2*p13*r23*r24*p32 + 2*p14*r22*r23*p33 + 2*p12*r23*r24*p33 + 2*p13*r22*r23*p34
    A[5, 9] = p13*r24*r24*p32 + p12*r24*r24*p33 + 2*p14*r22*r23*p34
    A[6, 6] = 2*p14*r22*r24*p32 + 2*p12*r22*r24*p34
    A[6, 7] = p14*r23*r23*p32 + 2*p13*r22*r24*p33 + p12*r23*r23*p34
    A[6, 8] = 2*p14*r23*r24*p32 + 2*p14*r22*r24*p33 + 2*p13*r22*r24*p34 + 2*p12*r23*r24*p34
    A[6, 9] = p14*r24*r24*p32 + 2*p14*r22*r24*p34 + p12*r24*r24*p34
    A[7, 7] = p13*r23*r23*p33
    A[7, 8] = p14*r23*r23*p33 + 2*p13*r23*r24*p33 + p13*r23*r23*p34
    A[7, 9] = p13*r24*r24*p33 + p14*r23*r23*p34
    A[8, 8] = 2*p14*r23*r24*p33 + 2*p13*r23*r24*p34
    A[8, 9] = p14*r24*r24*p33 + 2*p14*r23*r24*p34 + p13*r24*r24*p34
    A[9, 9] = p14*r24*r24*p34
    return A


def i11_j12(P: np.ndarray, R: np.ndarray) -> np.ndarray:
    """Coefficients of ``(P Q P')[1,1] * (R Q R')[1,2]``."""
    (p11, p12, p13, p14), (p21, p22, p23, p24), (p31, p32, p33, p34) = _rows(P)
    (r11, r12, r13, r14), (r21, r22, r23, r24), (r31, r32, r33, r34) = _rows(R)
    A = np.zeros((10, 10), dtype=np.float64)
    A[0, 0] = p21*p21*r21*r31
    A[0, 1] = 2*p21*r21*p22*r31 + p21*p21*r22*r31 + p21*p21*r21*r32
    A[0, 2] = 2*p21*r21*p23*r31 + p21*p21*r23*r31 + p21*p21*r21*r33
    A[0, 3] = 2*p21*r21*p24*r31 + p21*p21*r24*r31 + p21*p21*r21*r34
    A[0, 4] = r21*p22*p22*r31 + p21*p21*r22*r32
    A[0, 5] = 2*r21*p22*p23*r31 + p21*p21*r23*r32 + p21*p21*r22*r33
    A[0, 6] = 2*r21*p22*p24*r31 + p21*p21*r24*r32 + p21*p21*r22*r34
    A[0, 7] = r21*p23*p23*r31 + p21*p21*r23*r33
    A[0, 8] = 2*r21*p23*p24*r31 + p21*p21*r24*r33 + p21*p21*r23*r34
    A[0, 9] = r21*p24*p24*r31 + p21*p21*r24*r34
    A[1, 1] = 2*p21*p22*r22*r31 + 2*p21*r21*p22*r32
    A[1, 2] = 2*p21*r22*p23*r31 + 2*p21*p22*r23*r31 + 2*p21*r21*p23*r32 + 2*p21*r21*p22*r33
    A[1, 3] = 2*p21*r22*p24*r31 + 2*p21*p22*r24*r31 + 2*p21*r21*p24*r32 + 2*p21*r21*p22*r34
    A[1, 4] = p22*p22*r22*r31 + r21*p22*p22*r32 + 2*p21*p22*r22*r32
    A[1, 5] = 2*p22*r22*p23*r31 + 2*r21*p22*p23*r32 + 2*p21*p22*r23*r32 + 2*p21*p22*r22*r33
    A[1, 6] = 2*p22*r22*p24*r31 + 2*r21*p22*p24*r32 + 2*p21*p22*r24*r32 + 2*p21*p22*r22*r34
    A[1, 7] = r22*p23*p23*r31 + r21*p23*p23*r32 + 2*p21*p22*r23*r33
    A[1, 8] = 2*r22*p23*p24*r31 + 2*r21*p23*p24*r32 + 2*p21*p22*r24*r33 + 2*p21*p22*r23*r34
    A[1, 9] = r22*p24*p24*r31 + r21*p24*p24*r32 + 2*p21*p22*r24*r34
    A[2, 2] = 2*p21*p23*r23*r31 + 2*p21*r21*p23*r33
    A[2, 3] = 2*p21*r23*p24*r31 + 2*p21*p23*r24*r31 + 2*p21*r21*p24*r33 + 2*p21*r21*p23*r34
    A[2, 4] = p22*p22*r23*r31 + 2*p21*r22*p23*r32 + r21*p22*p22*r33
    A[2, 5] = 2*p22*p23*r23*r31 + 2*p21*p23*r23*r32 + 2*r21*p22*p23*r33 + 2*p21*r22*p23*r33
    A[2, 6] = 2*p22*r23*p24*r31 + 2*p21*p23*r24*r32 + 2*r21*p22*p24*r33 + 2*p21*r22*p23*r34
    A[2, 7] = p23*p23*r23*r31 + r21*p23*p23*r33 + 2*p21*p23*r23*r33
    A[2, 8] = 2*p23*r23*p24*r31 + 2*r21*p23*p24*r33 + 2*p21*p23*r24*r33 + 2*p21*p23*r23*r34
    A[2, 9] = r23*p24*p24*r31 + r21*p24*p24*r33 + 2*p21*p23*r24*r34
    A[3, 3] = 2*p21*p24*r24*r31 + 2*p21*r21*p24*r34
    A[3, 4] = p22*p22*r24*r31 + 2*p21*r22*p24*r32 + r21*p22*p22*r34
    A[3, 5] = 2*p22*p23*r24*r31 + 2*p21*r23*p24*r32 + 2*p21*r22*p24*r33 + 2*r21*p22*p23*r34
    A[3, 6] = 2*p22*p24*r24*r31 + 2*p21*p24*r24*r32 + 2*r21*p22*p24*r34 + 2*p21*r22*p24*r34
    A[3, 7] = p23*p23*r24*r31 + 2*p21*r23*p24*r33 + r21*p23*p23*r34
    A[3, 8] = 2*p23*p24*r24*r31 + 2*p21*p24*r24*r33 + 2*r21*p23*p24*r34 + 2*p21*r23*p24*r34
    A[3, 9] = p24*p24*r24*r31 + r21*p24*p24*r34 + 2*p21*p24*r24*r34
    A[4, 4] = p22*p22*r22*r32
    A[4, 5] = 2*p22*r22*p23*r32 + p22*p22*r23*r32 + p22*p22*r22*r33
    A[4, 6] = 2*p22*r22*p24*r32 + p22*p22*r24*r32 + p22*p22*r22*r34
    A[4, 7] = r22*p23*p23*r32 + p22*p22*r23*r33
    A[4, 8] = 2*r22*p23*p24*r32 + p22*p22*r24*r33 + p22*p22*r23*r34
    A[4, 9] = r22*p24*p24*r32 + p22*p22*r24*r34
    A[5, 5] = 2*p22*p23*r23*r32 + 2*p22*r22*p23*r33
    A[5, 6] = 2*p22*r23*p24*r32 + 2*p22*p23*r24*r32 + 2*p22*r22*p24*r33 + 2*p22*r22*p23*r34
    A[5, 7] = p23*p23*r23*r32 + r22*p23*p23*r33 + 2*p22*p23*r23*r33
    A[5, 8] = 2*p23*r23*p24*r32 + 2*r22*p23*p24*r33 + 2*p22*p23*r24*r33 + 2*p22*p23*r23*r34
    A[5, 9] = r23*p24*p24*r32 + r22*p24*p24*r33 + 2*p22*p23*r24*r34
    A[6, 6] = 2*p22*p24*r24*r32 + 2*p22*r22*p24*r34
    A[6, 7] = p23*p23*r24*r32 + 2*p22*r23*p24*r33 + r22*p23*p23*r34
    A[6, 8] = 2*p23*p24*r24*r32 + 2*p22*p24*r24*r33 + 2*r22*p23*p24*r34 + 2*p22*r23*p24*r34
    A[6, 9] = p24*p24*r24*r32 + r22*p24*p24*r34 + 2*p22*p24*r24*r34
    A[7, 7] = p23*p23*r23*r33
    A[7, 8] = 2*p23*r23*p24*r33 + p23*p23*r24*r33 + p23*p23*r23*r34
    A[7, 9] = r23*p24*p24*r33 + p23*p23*r24*r34
    A[8, 8] = 2*p23*p24*r24*r33 + 2*p23*r23*p24*r34
    A[8, 9] = p24*p24*r24*r33 + r23*p24*p24*r34 + 2*p23*p24*r24*r34
    A[9, 9] = p24*p24*r24*r34
    return A


def i12_j22(P: np.ndarray, R: np.ndarray) -> np.ndarray:
    """Coefficients of ``(P Q P')[1,2] * (R Q R')[2,2]``."""
    (p11, p12, p13, p14), (p21, p22, p23, p24), (p31, p32, p33, p34) = _rows(P)
    (r11, r12, r13, r14), (r21, r22, r23, r24), (r31, r32, r33, r34) = _rows(R)
    A = np.zeros((10, 10), dtype=np.float64)
    A[0, 0] = p21*p31*r31*r31
    A[0, 1] = p22*p31*r31*r31 + p21*r31*r31*p32 + 2*p21*p31*r31*r32
    A[0, 2] = p23*p31*r31*r31 + p21*r31*r31*p33 + 2*p21*p31*r31*r33
    A[0, 3] = p24*p31*r31*r31 + p21*r31*r31*p34 + 2*p21*p31*r31*r34
    A[0, 4] = p22*r31*r31*p32 + p21*p31*r32*r32
    A[0, 5] = p23*r31*r31*p32 + p22*r31*r31*p33 + 2*p21*p31*r32*r33
    A[0, 6] = p24*r31*r31*p32 + p22*r31*r31*p34 + 2*p21*p31*r32*r34
    A[0, 7] = p23*r31*r31*p33 + p21*p31*r33*r33
    A[0, 8] = p24*r31*r31*p33 + p23*r31*r31*p34 + 2*p21*p31*r33*r34
    A[0, 9] = p24*r31*r31*p34 + p21*p31*r34*r34
    A[1, 1] = 2*p22*p31*r31*r32 + 2*p21*r31*p32*r32
    A[1, 2] = 2*p23*p31*r31*r32 + 2*p21*r31*r32*p33 + 2*p22*p31*r31*r33 + 2*p21*r31*p32*r33
    A[1, 3] = 2*p24*p31*r31*r32 + 2*p21*r31*r32*p34 + 2*p22*p31*r31*r34 + 2*p21*r31*p32*r34
    A[1, 4] = 2*p22*r31*p32*r32 + p22*p31*r32*r32 + p21*p32*r32*r32
    A[1, 5] = 2*p23*r31*p32*r32 + 2*p22*r31*r32*p33 + 2*p22*p31*r32*r33 + 2*p21*p32*r32*r33
    A[1, 6] = 2*p24*r31*p32*r32 + 2*p22*r31*r32*p34 + 2*p22*p31*r32*r34 + 2*p21*p32*r32*r34
    A[1, 7] = 2*p23*r31*r32*p33 + p22*p31*r33*r33 + p21*p32*r33*r33
    A[1, 8] = 2*p24*r31*r32*p33 + 2*p23*r31*r32*p34 + 2*p22*p31*r33*r34 + 2*p21*p32*r33*r34
    A[1, 9] = 2*p24*r31*r32*p34 + p22*p31*r34*r34 + p21*p32*r34*r34
    A[2, 2] = 2*p23*p31*r31*r33 + 2*p21*r31*p33*r33
    A[2, 3] = 2*p24*p31*r31*r33 + 2*p21*r31*r33*p34 + 2*p23*p31*r31*r34 + 2*p21*r31*p33*r34
    A[2, 4] = p23*p31*r32*r32 + p21*r32*r32*p33 + 2*p22*r31*p32*r33
    A[2, 5] = 2*p23*r31*p32*r33 + 2*p23*p31*r32*r33 + 2*p22*r31*p33*r33 + 2*p21*r32*p33*r33
    A[2, 6] = 2*p24*r31*p32*r33 + 2*p22*r31*r33*p34 + 2*p23*p31*r32*r34 + 2*p21*r32*p33*r34
    A[2, 7] = 2*p23*r31*p33*r33 + p23*p31*r33*r33 + p21*p33*r33*r33
    A[2, 8] = 2*p24*r31*p33*r33 + 2*p23*r31*r33*p34 + 2*p23*p31*r33*r34 + 2*p21*p33*r33*r34
    A[2, 9] = 2*p24*r31*r33*p34 + p23*p31*r34*r34 + p21*p33*r34*r34
    A[3, 3] = 2*p24*p31*r31*r34 + 2*p21*r31*p34*r34
    A[3, 4] = p24*p31*r32*r32 + p21*r32*r32*p34 + 2*p22*r31*p32*r34
    A[3, 5] = 2*p24*p31*r32*r33 + 2*p21*r32*r33*p34 + 2*p23*r31*p32*r34 + 2*p22*r31*p33*r34
    A[3, 6] = 2*p24*r31*p32*r34 + 2*p24*p31*r32*r34 + 2*p22*r31*p34*r34 + 2*p21*r32*p34*r34
    A[3, 7] = p24*p31*r33*r33 + p21*r33*r33*p34 + 2*p23*r31*p33*r34
    A[3, 8] = 2*p24*r31*p33*r34 + 2*p24*p31*r33*r34 + 2*p23*r31*p34*r34 + 2*p21*r33*p34*r34
    A[3, 9] = 2*p24*r31*p34*r34 + p24*p31*r34*r34 + p21*p34*r34*r34
    A[4, 4] = p22*p32*r32*r32
    A[4, 5] = p23*p32*r32*r32 + p22*r32*r32*p33 + 2*p22*p32*r32*r33
    A[4, 6] = p24*p32*r32*r32 + p22*r32*r32*p34 + 2*p22*p32*r32*r34
    A[4, 7] = p23*r32*r32*p33 + p22*p32*r33*r33
    A[4, 8] = p24*r32*r32*p33 + p23*r32*r32*p34 + 2*p22*p32*r33*r34
    A[4, 9] = p24*r32*r32*p34 + p22*p32*r34*r34
    A[5, 5] = 2*p23*p32*r32*r33 + 2*p22*r32*p33*r33
    A[5, 6] = 2*p24*p32*r32*r33 + 2*p22*r32*r33*p34 + 2*p23*p32*r32*r34 + 2*p22*r32*p33*r34
    A[5, 7] = 2*p23*r32*p33*r33 + p23*p32*r33*r33 + p22*p33*r33*r33
    A[5, 8] = 2*p24*r32*p33*r33 + 2*p23*r32*r33*p34 + 2*p23*p32*r33*r34 + 2*p22*p33*r33*r34
    A[5, 9] = 2*p24*r32*r33*p34 + p23*p32*r34*r34 + p22*p33*r34*r34
    A[6, 6] = 2*p24*p32*r32*r34 + 2*p22*r32*p34*r34
    A[6, 7] = p24*p32*r33*r33 + p22*r33*r33*p34 + 2*p23*r32*p33*r34
    A[6, 8] = 2*p24*r32*p33*r34 + 2*p24*p32*r33*r34 + 2*p23*r32*p34*r34 + 2*p22*r33*p34*r34
    A[6, 9] = 2*p24*r32*p34*r34 + p24*p32*r34*r34 + p22*p34*r34*r34
    A[7, 7] = p23*p33*r33*r33
    A[7, 8] = p24*p33*r33*r33 + p23*r33*r33*p34 + 2*p23*p33*r33*r34
    A[7, 9] = p24*r33*r33*p34 + p23*p33*r34*r34
    A[8, 8] = 2*p24*p33*r33*r34 + 2*p23*r33*p34*r34
    A[8, 9] = 2*p24*r33*p34*r34 + p24*p33*r34*r34 + p23*p34*r34*r34
    A[9, 9] = p24*p34*r34*r34
    return A


# Accumulation order used by the solver.
CONSTRAINTS: tuple[ConstraintFunction, ...] = (i00_j01, i01_j02, i02_j11, i11_j12, i12_j22)


def pair_constraint(fn: ConstraintFunction, P: np.ndarray, R: np.ndarray) -> np.ndarray:
    """Antisymmetrised constraint ``fn(P, R) - fn(R, P)`` for one camera pair."""
    return fn(P, R) - fn(R, P)


def symmetrize_upper(A: np.ndarray) -> np.ndarray:
    """
    Symmetric matrix with the same quadratic form as the upper-triangular ``A``.
    """
    A = np.asarray(A, dtype=np.float64)
    upper = np.triu(A)
    return 0.5 * (upper + upper.T)
