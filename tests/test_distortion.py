from __future__ import annotations

import numpy as np
import pytest

from camcalib.core.distortion import (
    RadialTangentialDistortion,
    apply_distortion,
    distortion_from_dict,
    distortion_to_dict,
)
from camcalib.core.geometry import nearest_rotation, skew


def test_apply_distortion_matches_closed_form() -> None:
    x, y = 0.3, -0.2
    k1, k2, t1, t2 = -0.2, 0.05, 1e-3, -2e-3
    r2 = x * x + y * y
    a = k1 * r2 + k2 * r2 * r2
    xd = x + x * a + 2 * t1 * x * y + t2 * (r2 + 2 * x * x)
    yd = y + y * a + t1 * (r2 + 2 * y * y) + 2 * t2 * x * y
    assert apply_distortion((x, y), (k1, k2), t1, t2) == pytest.approx((xd, yd), abs=1e-15)


def test_no_coefficients_is_identity() -> None:
    assert apply_distortion((0.4, 0.1), ()) == (0.4, 0.1)


def test_undistort_inverts_distort() -> None:
    rng = np.random.default_rng(0)
    d = RadialTangentialDistortion(radial=(-0.15, 0.03, 0.001), t1=5e-4, t2=-1e-3)
    x = rng.uniform(-0.5, 0.5, size=(200,))
    y = rng.uniform(-0.4, 0.4, size=(200,))
    xd, yd = d.distort(x, y)
    x2, y2 = d.undistort(xd, yd, iterations=50)
    assert np.max(np.abs(x2 - x)) < 1e-9
    assert np.max(np.abs(y2 - y)) < 1e-9


def test_distortion_jacobian_matches_finite_differences() -> None:
    d = RadialTangentialDistortion(radial=(-0.2, 0.05), t1=1e-3, t2=-2e-3)
    x = np.array([0.1, -0.3, 0.25])
    y = np.array([0.2, 0.05, -0.35])
    h = 1e-7
    analytic = d.jacobian(x, y)
    xdp, ydp = d.distort(x + h, y)
    xdm, ydm = d.distort(x - h, y)
    assert np.allclose(analytic[0], (xdp - xdm) / (2 * h), atol=1e-7)
    assert np.allclose(analytic[2], (ydp - ydm) / (2 * h), atol=1e-7)
    xdp, ydp = d.distort(x, y + h)
    xdm, ydm = d.distort(x, y - h)
    assert np.allclose(analytic[1], (xdp - xdm) / (2 * h), atol=1e-7)
    assert np.allclose(analytic[3], (ydp - ydm) / (2 * h), atol=1e-7)


def test_distortion_dict_roundtrip() -> None:
    d = RadialTangentialDistortion(radial=(-0.1, 0.02), t1=0.001, t2=0.002)
    assert distortion_from_dict(distortion_to_dict(d)) == d


def test_nearest_rotation_is_proper() -> None:
    rng = np.random.default_rng(0)
    R = nearest_rotation(rng.normal(size=(3, 3)))
    assert np.allclose(R @ R.T, np.eye(3), atol=1e-12)
    assert np.linalg.det(R) == pytest.approx(1.0)


def test_skew_is_cross_product() -> None:
    v = np.array([1.0, -2.0, 0.5])
    w = np.array([0.3, 0.7, -1.1])
    assert np.allclose(skew(v) @ w, np.cross(v, w))
