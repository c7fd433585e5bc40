from __future__ import annotations

import numpy as np
import pytest

from camcalib.selfcalib.constraints import (
    CONSTRAINTS,
    i00_j01,
    i01_j02,
    i02_j11,
    i11_j12,
    i12_j22,
    pair_constraint,
    symmetrize_upper,
)
from camcalib.selfcalib.projective import QUADRIC_INDEX, ProjectiveCamera, quadric_to_vector, vector_to_quadric

# (P entry, R entry) multiplied by each constraint.
ENTRIES = {
    i00_j01: ((0, 0), (0, 1)),
    i01_j02: ((0, 1), (0, 2)),
    i02_j11: ((0, 2), (1, 1)),
    i11_j12: ((1, 1), (1, 2)),
    i12_j22: ((1, 2), (2, 2)),
}


def _linear_coefficients(M: np.ndarray, i: int, j: int) -> np.ndarray:
    """u such that (M Q M')[i,j] == u . q."""
    u = np.zeros((10,), dtype=np.float64)
    for m, (a, b) in enumerate(QUADRIC_INDEX):
        if a == b:
            u[m] = M[i, a] * M[j, a]
        else:
            u[m] = M[i, a] * M[j, b] + M[i, b] * M[j, a]
    return u


def _random_camera(rng: np.random.Generator) -> np.ndarray:
    return ProjectiveCamera.from_matrix(rng.normal(size=(3, 4))).homogeneous()


@pytest.mark.parametrize("fn", CONSTRAINTS)
def test_constraint_matches_coefficient_expansion(fn) -> None:
    rng = np.random.default_rng(0)
    P = _random_camera(rng)
    R = _random_camera(rng)
    (i, j), (k, l) = ENTRIES[fn]
    u = _linear_coefficients(P, i, j)
    v = _linear_coefficients(R, k, l)
    expected = 0.5 * (np.outer(u, v) + np.outer(v, u))

    A = fn(P, R)
    assert A.shape == (10, 10)
    assert np.allclose(np.tril(A, -1), 0.0)
    assert np.allclose(symmetrize_upper(A), expected, rtol=1e-12, atol=1e-12)


@pytest.mark.parametrize("fn", CONSTRAINTS)
def test_quadratic_form_is_product_of_image_entries(fn) -> None:
    rng = np.random.default_rng(1)
    P = _random_camera(rng)
    R = _random_camera(rng)
    (i, j), (k, l) = ENTRIES[fn]
    for _ in range(5):
        Q = rng.normal(size=(4, 4))
        Q = Q + Q.T
        q = quadric_to_vector(Q)
        wP = P[:3] @ Q @ P[:3].T
        wR = R[:3] @ Q @ R[:3].T
        assert q @ fn(P, R) @ q == pytest.approx(wP[i, j] * wR[k, l], rel=1e-10, abs=1e-10)


def test_pair_constraint_is_antisymmetric() -> None:
    rng = np.random.default_rng(2)
    P = _random_camera(rng)
    R = _random_camera(rng)
    for fn in CONSTRAINTS:
        assert np.allclose(pair_constraint(fn, P, R), -pair_constraint(fn, R, P))


def test_constraints_ignore_homogeneous_row() -> None:
    rng = np.random.default_rng(3)
    cam_p = ProjectiveCamera.from_matrix(rng.normal(size=(3, 4)))
    cam_r = ProjectiveCamera.from_matrix(rng.normal(size=(3, 4)))
    for fn in CONSTRAINTS:
        A = fn(cam_p.homogeneous(999.0), cam_r.homogeneous(999.0))
        B = fn(cam_p.homogeneous(1.0), cam_r.homogeneous(1.0))
        C = fn(cam_p.matrix(), cam_r.matrix())
        assert np.array_equal(A, B)
        assert np.array_equal(A, C)


def test_constraint_rejects_bad_shape() -> None:
    with pytest.raises(ValueError):
        i00_j01(np.zeros((3, 3)), np.zeros((3, 4)))


def test_quadric_vector_roundtrip_order() -> None:
    Q = np.arange(16, dtype=np.float64).reshape(4, 4)
    Q = Q + Q.T
    q = quadric_to_vector(Q)
    assert q.tolist() == [Q[0, 0], Q[0, 1], Q[0, 2], Q[0, 3], Q[1, 1], Q[1, 2], Q[1, 3], Q[2, 2], Q[2, 3], Q[3, 3]]
    assert np.array_equal(vector_to_quadric(q), Q)
