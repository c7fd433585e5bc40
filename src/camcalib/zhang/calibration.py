"""
Planar-target camera calibration after Zhang (ICCV'99).

A linear estimate (homographies -> calibration matrix -> poses -> radial
distortion) seeds a non-linear refinement of the reprojection error. Tangential
distortion has no linear estimate; when enabled it starts at zero and is only
refined.

A status listener sees the name of each stage and can stop processing by
returning False. Stopping is reported as `CalibrationStatus.CANCELLED`, distinct
from a failed detection, and leaves the caller's parameter containers as they
were before the call.

[1] Z. Zhang, "Flexible Camera Calibration By Viewing a Plane From Unknown
    Orientations", ICCV 1999, pp. 666-673.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

import numpy as np

from camcalib.config import IntrinsicConfig, RefinementConfig
from camcalib.core.geometry import matrix_to_rodrigues
from camcalib.core.homography import compute_target_homography, decompose_homography
from camcalib.errors import CalibrationCancelled, DetectionError, InputValidationError
from camcalib.zhang.linear import calibration_matrix_from_homographies, estimate_radial_linear, pixel_normalization
from camcalib.zhang.optimization import (
    LeastSquaresOptimizer,
    ScipyLeastSquaresOptimizer,
    Zhang99OptimizationFunction,
    Zhang99OptimizationJacobian,
    reprojection_errors,
)
from camcalib.zhang.params import View, Zhang99AllParam, Zhang99IntrinsicParam

logger = logging.getLogger(__name__)

Listener = Callable[[str], bool]


class CalibrationStatus(str, Enum):
    SUCCESS = "success"
    DETECTION_FAILED = "detection_failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class CalibrationObservation:
    """Observed pixels of one view, index-aligned with the target layout."""

    points: np.ndarray  # (N,2)

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", np.asarray(self.points, dtype=np.float64).reshape(-1, 2))

    def __len__(self) -> int:
        return int(self.points.shape[0])


@dataclass
class CalibrationOutcome:
    status: CalibrationStatus
    initial: Zhang99AllParam | None = None
    optimized: Zhang99AllParam | None = None
    diagnostics: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is CalibrationStatus.SUCCESS

    def unwrap(self) -> Zhang99AllParam:
        if self.status is CalibrationStatus.CANCELLED:
            raise CalibrationCancelled("user requested termination of calibration")
        if self.status is CalibrationStatus.DETECTION_FAILED or self.optimized is None:
            raise DetectionError("calibration target not detected consistently in every view")
        return self.optimized


def _points(obs: CalibrationObservation | np.ndarray) -> np.ndarray:
    if isinstance(obs, CalibrationObservation):
        return obs.points
    return np.asarray(obs, dtype=np.float64).reshape(-1, 2)


def total_points(observations: Sequence[CalibrationObservation | np.ndarray]) -> int:
    return int(sum(_points(o).shape[0] for o in observations))


class CalibrationPlanarGridZhang99:
    total_points = staticmethod(total_points)

    def __init__(
        self,
        layout: np.ndarray,
        intrinsic_config: IntrinsicConfig | None = None,
        refinement_config: RefinementConfig | None = None,
    ) -> None:
        self.layout = np.asarray(layout, dtype=np.float64).reshape(-1, 2)
        if self.layout.shape[0] < 4:
            raise InputValidationError("target layout needs at least 4 points")
        self.intrinsic_config = intrinsic_config if intrinsic_config is not None else IntrinsicConfig()
        self.refinement_config = refinement_config if refinement_config is not None else RefinementConfig()
        self._listener: Listener | None = None
        self._optimizer: LeastSquaresOptimizer | None = None
        self._initial = Zhang99AllParam(intrinsic=Zhang99IntrinsicParam.from_config(self.intrinsic_config))
        self._optimized = self._initial.create_like()
        self.diagnostics: dict[str, Any] = {}

    def set_listener(self, listener: Listener | None) -> None:
        self._listener = listener

    def set_optimizer(self, optimizer: LeastSquaresOptimizer | None) -> None:
        self._optimizer = optimizer

    @property
    def initial(self) -> Zhang99AllParam:
        return self._initial

    @property
    def optimized(self) -> Zhang99AllParam:
        return self._optimized

    def _status(self, message: str) -> bool:
        logger.info("%s", message)
        if self._listener is None:
            return True
        return bool(self._listener(message))

    def _validate(
        self, observations: Sequence[CalibrationObservation | np.ndarray], layout: np.ndarray | None = None
    ) -> list[np.ndarray]:
        n_layout = self.layout.shape[0] if layout is None else int(np.asarray(layout).reshape(-1, 2).shape[0])
        if len(observations) == 0:
            raise InputValidationError("no observations")
        pts = [_points(o) for o in observations]
        for i, p in enumerate(pts):
            if p.shape[0] != n_layout:
                raise InputValidationError(f"view {i} has {p.shape[0]} points but the layout has {n_layout}")
            if not np.all(np.isfinite(p)):
                raise InputValidationError(f"view {i} has non-finite points")
        return pts

    def process(self, observations: Sequence[CalibrationObservation | np.ndarray]) -> CalibrationOutcome:
        """
        Computes intrinsic and extrinsic parameters from observed target points.
        """
        pts = self._validate(observations)

        initial = self._initial.create_like()
        status = self.linear_estimate(pts, initial)
        if status is not CalibrationStatus.SUCCESS:
            return CalibrationOutcome(status=status)

        if not self._status("Non-linear refinement"):
            return CalibrationOutcome(status=CalibrationStatus.CANCELLED, initial=initial)

        found = initial.create_like()
        status = self.optimized_param(pts, self.layout, initial, found, self._optimizer)
        if status is not CalibrationStatus.SUCCESS:
            return CalibrationOutcome(status=status, initial=initial)

        self._initial = initial
        self._optimized = found
        return CalibrationOutcome(status=status, initial=initial, optimized=found, diagnostics=dict(self.diagnostics))

    def linear_estimate(
        self, observations: Sequence[CalibrationObservation | np.ndarray], param: Zhang99AllParam
    ) -> CalibrationStatus:
        """
        Initial parameter estimate using linear algebra only.

        `param` is written only when every stage completes.
        """
        pts = self._validate(observations)

        if not self._status("Estimating Homographies"):
            return CalibrationStatus.CANCELLED
        homographies = []
        for i, p in enumerate(pts):
            try:
                homographies.append(compute_target_homography(self.layout, p))
            except DetectionError as e:
                logger.warning("view %d: %s", i, e)
                return CalibrationStatus.DETECTION_FAILED

        if not self._status("Estimating Calibration Matrix"):
            return CalibrationStatus.CANCELLED
        K = calibration_matrix_from_homographies(
            homographies,
            assume_zero_skew=self.intrinsic_config.assume_zero_skew,
            normalization=pixel_normalization(pts),
        )
        motions = [decompose_homography(K, H) for H in homographies]

        if not self._status("Estimating Radial Distortion"):
            return CalibrationStatus.CANCELLED
        distort = estimate_radial_linear(K, homographies, pts, self.layout, self.intrinsic_config.num_radial)

        result = param.create_like()
        self.convert_into_zhang_param(motions, K, distort, result)
        param.assign(result)
        logger.info("linear estimate: fx=%.3f fy=%.3f skew=%.3f cx=%.3f cy=%.3f", *K[[0, 1, 0, 0, 1], [0, 1, 1, 2, 2]])
        return CalibrationStatus.SUCCESS

    def optimized_param(
        self,
        observations: Sequence[CalibrationObservation | np.ndarray],
        grid: np.ndarray,
        initial: Zhang99AllParam,
        found: Zhang99AllParam,
        optimizer: LeastSquaresOptimizer | None = None,
    ) -> CalibrationStatus:
        """
        Refines `initial` by minimising reprojection error; writes the result to `found`.
        """
        grid = np.asarray(grid, dtype=np.float64).reshape(-1, 2)
        pts = self._validate(observations, grid)
        if len(pts) != len(initial.views):
            raise InputValidationError(f"{len(pts)} observations for {len(initial.views)} views")
        cfg = self.refinement_config
        if optimizer is None:
            optimizer = ScipyLeastSquaresOptimizer(method=cfg.method, ftol=cfg.ftol, xtol=cfg.xtol, gtol=cfg.gtol)

        func = Zhang99OptimizationFunction(initial.create_like(), grid, pts)
        jacobian = Zhang99OptimizationJacobian(initial.create_like(), grid, pts)
        model = initial.convert_to_param()
        if func.num_functions() < model.size:
            raise InputValidationError(
                f"{func.num_functions()} residuals cannot constrain {model.size} parameters; add views or points"
            )

        optimizer.initialize(model, func, jacobian)
        cost_before = float(optimizer.cost)

        converged = False
        steps = 0
        for i in range(int(cfg.max_iterations)):
            steps = i + 1
            if optimizer.iterate():
                converged = True
                break
            if i % int(cfg.report_every) == 0:
                if not self._status(f"Progress {100.0 * i / cfg.max_iterations}%"):
                    return CalibrationStatus.CANCELLED

        result = initial.create_like()
        result.set_from_param(optimizer.parameters)
        found.assign(result)

        rms = reprojection_errors(found, grid, pts)
        self.diagnostics = {
            "cost_before": cost_before,
            "cost_after": float(optimizer.cost),
            "steps": steps,
            "converged": converged,
            "rms_px_per_view": rms,
            "rms_px": float(np.sqrt(np.mean(np.square(rms)))) if rms else float("nan"),
        }
        logger.info(
            "refinement: cost %.6e -> %.6e in %d steps (converged=%s)",
            cost_before,
            float(optimizer.cost),
            steps,
            converged,
        )
        return CalibrationStatus.SUCCESS

    @staticmethod
    def convert_into_zhang_param(
        motions: Sequence[tuple[np.ndarray, np.ndarray]],
        K: np.ndarray,
        distort: np.ndarray,
        param: Zhang99AllParam,
    ) -> None:
        """Packs linear-stage results (K, radial terms, per-view R/T) into `param`."""
        param.intrinsic.initialize(K, distort)
        param.set_number_of_views(len(motions))
        for i, (R, T) in enumerate(motions):
            param.views[i] = View(rotation=matrix_to_rodrigues(R), T=np.asarray(T, dtype=np.float64).reshape(3))
