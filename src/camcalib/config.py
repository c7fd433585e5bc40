from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from camcalib.errors import InputValidationError


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise InputValidationError(msg)


@dataclass(frozen=True)
class IntrinsicConfig:
    """
    Which intrinsic parameters the planar calibration estimates.

    Radial terms are estimated linearly and refined; tangential terms start at
    zero and are only refined.
    """

    num_radial: int = 2
    include_tangential: bool = False
    assume_zero_skew: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IntrinsicConfig":
        num_radial = int(data.get("num_radial", 2))
        _require(num_radial >= 0, "num_radial must be >= 0")
        return cls(
            num_radial=num_radial,
            include_tangential=bool(data.get("include_tangential", False)),
            assume_zero_skew=bool(data.get("assume_zero_skew", False)),
        )


@dataclass(frozen=True)
class RefinementConfig:
    max_iterations: int = 500
    report_every: int = 25
    method: str = "lm"
    ftol: float = 1e-12
    xtol: float = 1e-12
    gtol: float = 1e-12

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RefinementConfig":
        max_iterations = int(data.get("max_iterations", 500))
        report_every = int(data.get("report_every", 25))
        method = str(data.get("method", "lm"))
        _require(max_iterations >= 1, "max_iterations must be >= 1")
        _require(report_every >= 1, "report_every must be >= 1")
        _require(method in ("lm", "trf"), "method must be 'lm' or 'trf'")
        tols = {k: float(data.get(k, 1e-12)) for k in ("ftol", "xtol", "gtol")}
        for k, v in tols.items():
            _require(v > 0.0, f"{k} must be > 0")
        return cls(max_iterations=max_iterations, report_every=report_every, method=method, **tols)


@dataclass(frozen=True)
class SelfCalibrationConfig:
    """
    Solver settings for the dual absolute quadric.

    `homogeneous_scale` is the bottom-right entry used when a 3x4 projective
    camera is extended to 4x4. It has no effect on the constraint matrices (only
    the first three rows are contracted) but it sets the conditioning of the
    4x4 matrix: values far from the magnitude of the other entries make the
    matrix harder to invert.

    `newton_tol` is relative: Newton stops once |q'EQq| falls below it times the
    largest eigenvalue magnitude of EQ.
    """

    strategy: str = "eigen"
    homogeneous_scale: float = 999.0
    newton_iterations: int = 50
    newton_tol: float = 1e-12
    imag_tol: float = 1e-9
    reference_view: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SelfCalibrationConfig":
        strategy = str(data.get("strategy", "eigen"))
        _require(strategy in ("eigen", "newton"), "strategy must be 'eigen' or 'newton'")
        scale = float(data.get("homogeneous_scale", 999.0))
        _require(scale != 0.0, "homogeneous_scale must be non-zero")
        iters = int(data.get("newton_iterations", 50))
        _require(iters >= 1, "newton_iterations must be >= 1")
        tol = float(data.get("newton_tol", 1e-12))
        _require(tol >= 0.0, "newton_tol must be >= 0")
        imag_tol = float(data.get("imag_tol", 1e-9))
        _require(imag_tol >= 0.0, "imag_tol must be >= 0")
        reference_view = int(data.get("reference_view", 0))
        _require(reference_view >= 0, "reference_view must be >= 0")
        return cls(
            strategy=strategy,
            homogeneous_scale=scale,
            newton_iterations=iters,
            newton_tol=tol,
            imag_tol=imag_tol,
            reference_view=reference_view,
        )
