from __future__ import annotations

import numpy as np
import pytest

from camcalib.config import IntrinsicConfig, RefinementConfig
from camcalib.core.geometry import rodrigues_to_matrix
from camcalib.errors import CalibrationCancelled, DetectionError, InputValidationError
from camcalib.sim.synthetic import grid_layout, look_at_poses, render_observations
from camcalib.zhang import CalibrationPlanarGridZhang99, CalibrationStatus, Zhang99AllParam, Zhang99IntrinsicParam
from camcalib.zhang.linear import calibration_matrix_from_homographies
from camcalib.core.homography import compute_target_homography, decompose_homography

K_TRUE = np.array([[400.0, -3.0, 500.0], [0.0, 410.0, 505.0], [0.0, 0.0, 1.0]])


def _scene(n_views: int = 10, seed: int = 0, radial: tuple[float, ...] = (), K: np.ndarray = K_TRUE):
    layout = grid_layout(6, 8, 30.0)
    intr = Zhang99IntrinsicParam(num_radial=len(radial))
    intr.initialize(K, np.asarray(radial))
    poses = look_at_poses(n_views, 600.0, seed=seed)
    return layout, poses, render_observations(intr, poses, layout)


def test_homography_decomposition_recovers_pose() -> None:
    layout, poses, observations = _scene(3)
    for (R, T), obs in zip(poses, observations):
        H = compute_target_homography(layout, obs)
        assert H[2, 2] == pytest.approx(1.0)
        R_est, T_est = decompose_homography(K_TRUE, H)
        assert np.allclose(R_est, R, atol=1e-6)
        assert np.allclose(T_est, T, atol=1e-3)


def test_homography_rejects_too_few_points() -> None:
    with pytest.raises(DetectionError):
        compute_target_homography(np.zeros((3, 2)), np.zeros((3, 2)))
    with pytest.raises(DetectionError):
        compute_target_homography(np.zeros((5, 2)), np.zeros((4, 2)))


def test_calibration_matrix_needs_enough_views() -> None:
    K_no_skew = K_TRUE.copy()
    K_no_skew[0, 1] = 0.0
    layout, _poses, observations = _scene(2, K=K_no_skew)
    Hs = [compute_target_homography(layout, o) for o in observations]
    with pytest.raises(InputValidationError):
        calibration_matrix_from_homographies(Hs)
    # two views pin K down only loosely
    K = calibration_matrix_from_homographies(Hs, assume_zero_skew=True)
    assert K[0, 1] == 0.0
    assert np.allclose(K, K_no_skew, atol=0.1)


def test_zero_skew_calibration_matrix_from_many_views() -> None:
    K_no_skew = K_TRUE.copy()
    K_no_skew[0, 1] = 0.0
    layout, _poses, observations = _scene(10, K=K_no_skew)
    Hs = [compute_target_homography(layout, o) for o in observations]
    K = calibration_matrix_from_homographies(Hs, assume_zero_skew=True)
    assert K[0, 1] == 0.0
    assert np.allclose(K, K_no_skew, atol=1e-2)


def test_linear_estimate_is_exact_without_noise() -> None:
    layout, _poses, observations = _scene(10)
    calib = CalibrationPlanarGridZhang99(layout, IntrinsicConfig(num_radial=0))
    param = Zhang99AllParam(intrinsic=Zhang99IntrinsicParam(num_radial=0))
    status = calib.linear_estimate(observations, param)
    assert status is CalibrationStatus.SUCCESS
    assert len(param.views) == 10
    assert np.allclose(param.intrinsic.K(), K_TRUE, atol=1e-3)


@pytest.mark.integration
def test_zhang_end_to_end_recovers_intrinsics_and_poses() -> None:
    layout, poses, observations = _scene(10)
    calib = CalibrationPlanarGridZhang99(layout, IntrinsicConfig(num_radial=2), RefinementConfig(max_iterations=200))
    messages: list[str] = []
    calib.set_listener(lambda msg: messages.append(msg) or True)

    outcome = calib.process(observations)
    assert outcome.ok
    found = outcome.unwrap()
    intr = found.intrinsic
    assert intr.fx == pytest.approx(400.0, abs=1e-3)
    assert intr.fy == pytest.approx(410.0, abs=1e-3)
    assert intr.skew == pytest.approx(-3.0, abs=1e-3)
    assert intr.cx == pytest.approx(500.0, abs=1e-3)
    assert intr.cy == pytest.approx(505.0, abs=1e-3)
    assert np.allclose(intr.radial, 0.0, atol=1e-6)

    assert len(found.views) == len(poses)
    for view, (R, T) in zip(found.views, poses):
        assert np.allclose(rodrigues_to_matrix(view.rotation), R, atol=1e-3)
        assert np.allclose(view.T, T, atol=1e-3)

    assert messages[:4] == [
        "Estimating Homographies",
        "Estimating Calibration Matrix",
        "Estimating Radial Distortion",
        "Non-linear refinement",
    ]
    assert outcome.diagnostics["rms_px"] < 1e-4
    assert calib.optimized is found


@pytest.mark.integration
def test_zhang_refines_radial_distortion() -> None:
    layout, _poses, observations = _scene(10, seed=4, radial=(-0.2, 0.05))
    calib = CalibrationPlanarGridZhang99(layout, IntrinsicConfig(num_radial=2))
    outcome = calib.process(observations)
    intr = outcome.unwrap().intrinsic
    assert intr.radial[0] == pytest.approx(-0.2, abs=1e-4)
    assert intr.fx == pytest.approx(400.0, abs=1e-2)
    assert outcome.diagnostics["rms_px"] < 1e-4


def test_cancel_on_first_callback_leaves_containers_untouched() -> None:
    layout, _poses, observations = _scene(5)
    calib = CalibrationPlanarGridZhang99(layout)
    before_initial = calib.initial
    before_optimized = calib.optimized
    calls: list[str] = []

    def stop(msg: str) -> bool:
        calls.append(msg)
        return False

    calib.set_listener(stop)
    outcome = calib.process(observations)
    assert outcome.status is CalibrationStatus.CANCELLED
    assert not outcome.ok
    assert calls == ["Estimating Homographies"]
    assert calib.initial is before_initial
    assert calib.optimized is before_optimized
    assert len(calib.initial.views) == 0
    with pytest.raises(CalibrationCancelled):
        outcome.unwrap()


def test_cancelled_linear_estimate_does_not_write_param() -> None:
    layout, _poses, observations = _scene(5)
    calib = CalibrationPlanarGridZhang99(layout)
    calib.set_listener(lambda msg: msg != "Estimating Radial Distortion")
    param = Zhang99AllParam(intrinsic=Zhang99IntrinsicParam())
    status = calib.linear_estimate(observations, param)
    assert status is CalibrationStatus.CANCELLED
    assert param.views == []
    assert param.intrinsic.fx == 0.0


def test_cancel_before_refinement_keeps_previous_result() -> None:
    layout, _poses, observations = _scene(5)
    calib = CalibrationPlanarGridZhang99(layout)
    calib.set_listener(lambda msg: msg != "Non-linear refinement")
    outcome = calib.process(observations)
    assert outcome.status is CalibrationStatus.CANCELLED
    assert outcome.initial is not None
    assert outcome.optimized is None
    assert len(calib.optimized.views) == 0


def test_detection_failure_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    import camcalib.zhang.calibration as calibration

    def fail(layout, observed):
        raise DetectionError("no target")

    monkeypatch.setattr(calibration, "compute_target_homography", fail)
    layout, _poses, observations = _scene(3)
    outcome = CalibrationPlanarGridZhang99(layout).process(observations)
    assert outcome.status is CalibrationStatus.DETECTION_FAILED
    with pytest.raises(DetectionError):
        outcome.unwrap()


def test_invalid_observations_raise() -> None:
    layout, _poses, observations = _scene(3)
    calib = CalibrationPlanarGridZhang99(layout)
    with pytest.raises(InputValidationError):
        calib.process([])
    with pytest.raises(InputValidationError):
        calib.process([observations[0][:-1]])
    bad = observations[0].copy()
    bad[0, 0] = np.inf
    with pytest.raises(InputValidationError):
        calib.process([bad, observations[1], observations[2]])


def test_optimized_param_validates_point_counts() -> None:
    layout, _poses, observations = _scene(3)
    calib = CalibrationPlanarGridZhang99(layout, IntrinsicConfig(num_radial=0))
    initial = Zhang99AllParam(intrinsic=Zhang99IntrinsicParam(num_radial=0))
    assert calib.linear_estimate(observations, initial) is CalibrationStatus.SUCCESS
    found = initial.create_like()
    short = [observations[0][:-1], observations[1], observations[2]]
    with pytest.raises(InputValidationError):
        calib.optimized_param(short, layout, initial, found)
    with pytest.raises(InputValidationError):
        calib.optimized_param(observations, layout[:-1], initial, found)


def test_progress_messages_report_every_steps() -> None:
    layout, _poses, observations = _scene(5)
    calib = CalibrationPlanarGridZhang99(layout, refinement_config=RefinementConfig(max_iterations=4, report_every=2))

    class NeverConverges:
        def __init__(self) -> None:
            self.calls = 0

        def initialize(self, x0, fun, jac) -> None:
            self.x = x0.copy()

        def iterate(self) -> bool:
            self.calls += 1
            return False

        @property
        def parameters(self):
            return self.x

        @property
        def cost(self) -> float:
            return 0.0

    optimizer = NeverConverges()
    calib.set_optimizer(optimizer)
    messages: list[str] = []
    calib.set_listener(lambda msg: messages.append(msg) or True)
    outcome = calib.process(observations)
    assert outcome.ok
    assert optimizer.calls == 4
    assert [m for m in messages if m.startswith("Progress")] == ["Progress 0.0%", "Progress 50.0%"]
    assert outcome.diagnostics["converged"] is False
    assert outcome.diagnostics["steps"] == 4
