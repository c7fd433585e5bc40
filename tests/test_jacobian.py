from __future__ import annotations

import numpy as np
import pytest

from camcalib.core.geometry import matrix_to_rodrigues, rodrigues_derivatives, rodrigues_to_matrix
from camcalib.sim.synthetic import grid_layout, look_at_poses, render_observations
from camcalib.zhang.optimization import Zhang99OptimizationFunction, Zhang99OptimizationJacobian
from camcalib.zhang.params import View, Zhang99AllParam, Zhang99IntrinsicParam


def _central_difference(fun, p: np.ndarray) -> np.ndarray:
    f0 = fun(p)
    J = np.zeros((f0.size, p.size), dtype=np.float64)
    for k in range(p.size):
        h = 1e-6 * max(1.0, abs(float(p[k])))
        dp = np.zeros_like(p)
        dp[k] = h
        J[:, k] = (fun(p + dp) - fun(p - dp)) / (2.0 * h)
    return J


def _param(zero_skew: bool, tangential: bool) -> tuple[Zhang99AllParam, np.ndarray, list[np.ndarray]]:
    layout = grid_layout(4, 5, 40.0)
    intr = Zhang99IntrinsicParam(num_radial=2, include_tangential=tangential, assume_zero_skew=zero_skew)
    intr.initialize(np.array([[400.0, -3.0, 500.0], [0.0, 410.0, 505.0], [0.0, 0.0, 1.0]]), np.array([-0.15, 0.03]))
    if tangential:
        intr.t1 = 1e-3
        intr.t2 = -2e-3
    poses = look_at_poses(3, 500.0, seed=2, max_offset=20.0)
    param = Zhang99AllParam(
        intrinsic=intr,
        views=[View(rotation=matrix_to_rodrigues(R), T=T) for R, T in poses],
    )
    observations = render_observations(intr, poses, layout, noise_std=0.5, seed=1)
    return param, layout, observations


@pytest.mark.parametrize("zero_skew,tangential", [(False, False), (True, False), (False, True)])
def test_analytic_jacobian_matches_finite_differences(zero_skew: bool, tangential: bool) -> None:
    param, layout, observations = _param(zero_skew, tangential)
    fun = Zhang99OptimizationFunction(param.create_like(), layout, observations)
    jac = Zhang99OptimizationJacobian(param.create_like(), layout, observations)
    p = param.convert_to_param()

    J = jac(p)
    J_fd = _central_difference(fun, p)
    assert J.shape == (fun.num_functions(), p.size)
    scale = max(1.0, float(np.max(np.abs(J))))
    assert np.max(np.abs(J - J_fd)) < 1e-5 * scale


def test_residual_layout_is_view_major_interleaved() -> None:
    param, layout, observations = _param(False, False)
    fun = Zhang99OptimizationFunction(param.create_like(), layout, observations)
    r = fun(param.convert_to_param())
    assert r.size == fun.num_functions() == 2 * layout.shape[0] * len(observations)
    clean = render_observations(
        param.intrinsic,
        [(rodrigues_to_matrix(v.rotation), v.T) for v in param.views],
        layout,
    )
    expected = np.concatenate([(c - o).reshape(-1) for c, o in zip(clean, observations)])
    assert np.allclose(r, expected)


@pytest.mark.parametrize("rvec", [np.zeros(3), np.array([0.3, -0.2, 0.9]), np.array([1e-9, 0.0, -2e-9])])
def test_rodrigues_derivatives_match_finite_differences(rvec: np.ndarray) -> None:
    dR = rodrigues_derivatives(rvec)
    h = 1e-7
    for i in range(3):
        dv = np.zeros(3)
        dv[i] = h
        fd = (rodrigues_to_matrix(rvec + dv) - rodrigues_to_matrix(rvec - dv)) / (2.0 * h)
        assert np.allclose(dR[i], fd, atol=1e-6)


def test_jacobian_rejects_inconsistent_intrinsic_block(monkeypatch: pytest.MonkeyPatch) -> None:
    param, layout, observations = _param(False, False)
    jac = Zhang99OptimizationJacobian(param.create_like(), layout, observations)
    p = np.append(param.convert_to_param(), 0.0)
    count = Zhang99IntrinsicParam.num_parameters
    monkeypatch.setattr(Zhang99IntrinsicParam, "num_parameters", lambda self: count(self) + 1)
    with pytest.raises(RuntimeError):
        jac(p)
