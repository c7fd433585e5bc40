from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from camcalib.errors import InputValidationError

# (row, col) of the quadric entry stored at each position of the 10-vector.
QUADRIC_INDEX: tuple[tuple[int, int], ...] = tuple((i, j) for i in range(4) for j in range(i, 4))

DEFAULT_HOMOGENEOUS_SCALE = 999.0


@dataclass(frozen=True)
class ProjectiveCamera:
    """
    Camera of a projective reconstruction, P = [A | a].

    Known only up to a global projective transform shared by all views.
    """

    A: np.ndarray  # (3,3)
    a: np.ndarray  # (3,)

    def __post_init__(self) -> None:
        A = np.asarray(self.A, dtype=np.float64).reshape(3, 3).copy()
        a = np.asarray(self.a, dtype=np.float64).reshape(3).copy()
        if not (np.all(np.isfinite(A)) and np.all(np.isfinite(a))):
            raise InputValidationError("projective camera has non-finite entries")
        A.setflags(write=False)
        a.setflags(write=False)
        object.__setattr__(self, "A", A)
        object.__setattr__(self, "a", a)

    @classmethod
    def from_matrix(cls, P: np.ndarray) -> "ProjectiveCamera":
        P = np.asarray(P, dtype=np.float64)
        if P.shape != (3, 4):
            raise InputValidationError(f"projective camera must be 3x4, got shape {P.shape}")
        return cls(A=P[:, :3], a=P[:, 3])

    def matrix(self) -> np.ndarray:
        return np.concatenate([self.A, self.a.reshape(3, 1)], axis=1)

    def homogeneous(self, scale: float = DEFAULT_HOMOGENEOUS_SCALE) -> np.ndarray:
        """
        4x4 matrix [[A, a], [0, 0, 0, scale]].

        The constraint polynomials only read the first three rows, so `scale`
        leaves them unchanged. It does control the condition number of the
        returned matrix: a value far from the magnitude of the other entries
        makes the matrix badly conditioned.
        """
        if scale == 0.0:
            raise InputValidationError("homogeneous scale must be non-zero")
        M = np.zeros((4, 4), dtype=np.float64)
        M[:3, :3] = self.A
        M[:3, 3] = self.a
        M[3, 3] = float(scale)
        return M


def quadric_to_vector(Q: np.ndarray) -> np.ndarray:
    Q = np.asarray(Q, dtype=np.float64)
    if Q.shape != (4, 4):
        raise InputValidationError(f"quadric must be 4x4, got shape {Q.shape}")
    return np.array([Q[i, j] for i, j in QUADRIC_INDEX], dtype=np.float64)


def vector_to_quadric(q: np.ndarray) -> np.ndarray:
    q = np.asarray(q, dtype=np.float64).reshape(-1)
    if q.size != 10:
        raise InputValidationError(f"quadric vector must have 10 entries, got {q.size}")
    Q = np.zeros((4, 4), dtype=np.float64)
    for k, (i, j) in enumerate(QUADRIC_INDEX):
        Q[i, j] = q[k]
        Q[j, i] = q[k]
    return Q
