from __future__ import annotations

import logging
from typing import Callable, Protocol, Sequence

import numpy as np

from camcalib.core.geometry import rodrigues_derivatives, rodrigues_to_matrix
from camcalib.zhang.params import View, Zhang99AllParam, Zhang99IntrinsicParam

logger = logging.getLogger(__name__)


def _layout_3d(layout_xy: np.ndarray) -> np.ndarray:
    layout_xy = np.asarray(layout_xy, dtype=np.float64).reshape(-1, 2)
    return np.concatenate([layout_xy, np.zeros((layout_xy.shape[0], 1))], axis=1)


def project_points(intrinsic: Zhang99IntrinsicParam, view: View, layout_xy: np.ndarray) -> np.ndarray:
    """Pixels (N,2) of the target points for one view."""
    X = _layout_3d(layout_xy)
    Xc = (rodrigues_to_matrix(view.rotation) @ X.T).T + view.T.reshape(1, 3)
    x = Xc[:, 0] / Xc[:, 2]
    y = Xc[:, 1] / Xc[:, 2]
    xd, yd = intrinsic.distortion().distort(x, y)
    u = intrinsic.fx * xd + intrinsic.skew * yd + intrinsic.cx
    v = intrinsic.fy * yd + intrinsic.cy
    return np.stack([u, v], axis=1)


def reprojection_errors(
    param: Zhang99AllParam, layout_xy: np.ndarray, observations: Sequence[np.ndarray]
) -> list[float]:
    """Per-view RMS reprojection error in pixels."""
    out = []
    for view, obs in zip(param.views, observations):
        d = project_points(param.intrinsic, view, layout_xy) - np.asarray(obs, dtype=np.float64).reshape(-1, 2)
        out.append(float(np.sqrt(np.mean(np.sum(d * d, axis=1)))))
    return out


class Zhang99OptimizationFunction:
    """
    Reprojection residuals, predicted minus observed, view-major with (du, dv)
    interleaved per point.
    """

    def __init__(self, param: Zhang99AllParam, layout_xy: np.ndarray, observations: Sequence[np.ndarray]) -> None:
        self.param = param
        self.layout_xy = np.asarray(layout_xy, dtype=np.float64).reshape(-1, 2)
        self.observations = [np.asarray(o, dtype=np.float64).reshape(-1, 2) for o in observations]

    def num_functions(self) -> int:
        return 2 * sum(o.shape[0] for o in self.observations)

    def __call__(self, p: np.ndarray) -> np.ndarray:
        self.param.set_from_param(p)
        parts = []
        for view, obs in zip(self.param.views, self.observations):
            parts.append((project_points(self.param.intrinsic, view, self.layout_xy) - obs).reshape(-1))
        return np.concatenate(parts, axis=0)


class Zhang99OptimizationJacobian:
    """Analytic Jacobian of Zhang99OptimizationFunction."""

    def __init__(self, param: Zhang99AllParam, layout_xy: np.ndarray, observations: Sequence[np.ndarray]) -> None:
        self.param = param
        self.X = _layout_3d(layout_xy)
        self.counts = [int(np.asarray(o).reshape(-1, 2).shape[0]) for o in observations]

    def __call__(self, p: np.ndarray) -> np.ndarray:
        self.param.set_from_param(p)
        intr = self.param.intrinsic
        n_int = intr.num_parameters()
        J = np.zeros((2 * sum(self.counts), self.param.num_parameters()), dtype=np.float64)
        dist = intr.distortion()

        row = 0
        for vi, view in enumerate(self.param.views):
            n = self.counts[vi]
            R = rodrigues_to_matrix(view.rotation)
            Xc = (R @ self.X.T).T + view.T.reshape(1, 3)
            Z = Xc[:, 2]
            x = Xc[:, 0] / Z
            y = Xc[:, 1] / Z
            xd, yd = dist.distort(x, y)
            dxd_dx, dxd_dy, dyd_dx, dyd_dy = dist.jacobian(x, y)

            ru = slice(row, row + 2 * n, 2)
            rv = slice(row + 1, row + 2 * n, 2)

            # intrinsics
            c = 0
            J[ru, c] = xd
            J[rv, c + 1] = yd
            c += 2
            if not intr.assume_zero_skew:
                J[ru, c] = yd
                c += 1
            J[ru, c] = 1.0
            J[rv, c + 1] = 1.0
            c += 2
            r2 = x * x + y * y
            r2i = r2.copy()
            for _k in range(int(intr.num_radial)):
                dx = x * r2i
                dy = y * r2i
                J[ru, c] = intr.fx * dx + intr.skew * dy
                J[rv, c] = intr.fy * dy
                r2i = r2i * r2
                c += 1
            if intr.include_tangential:
                for dx, dy in ((2.0 * x * y, r2 + 2.0 * y * y), (r2 + 2.0 * x * x, 2.0 * x * y)):
                    J[ru, c] = intr.fx * dx + intr.skew * dy
                    J[rv, c] = intr.fy * dy
                    c += 1
            if c != n_int:
                raise RuntimeError(f"intrinsic Jacobian filled {c} columns, expected {n_int}")

            # pose: chain pixel <- normalized <- camera point
            du_dx = intr.fx * dxd_dx + intr.skew * dyd_dx
            du_dy = intr.fx * dxd_dy + intr.skew * dyd_dy
            dv_dx = intr.fy * dyd_dx
            dv_dy = intr.fy * dyd_dy
            inv_z = 1.0 / Z
            dx_dXc = np.stack([inv_z, np.zeros_like(Z), -x * inv_z], axis=1)
            dy_dXc = np.stack([np.zeros_like(Z), inv_z, -y * inv_z], axis=1)
            du_dXc = du_dx[:, None] * dx_dXc + du_dy[:, None] * dy_dXc
            dv_dXc = dv_dx[:, None] * dx_dXc + dv_dy[:, None] * dy_dXc

            col = n_int + 6 * vi
            dR = rodrigues_derivatives(view.rotation)
            for i in range(3):
                dXc = (dR[i] @ self.X.T).T
                J[ru, col + i] = np.sum(du_dXc * dXc, axis=1)
                J[rv, col + i] = np.sum(dv_dXc * dXc, axis=1)
            J[ru, col + 3 : col + 6] = du_dXc
            J[rv, col + 3 : col + 6] = dv_dXc

            row += 2 * n
        return J


class LeastSquaresOptimizer(Protocol):
    """Residual + Jacobian optimizer driven one step at a time."""

    def initialize(
        self,
        x0: np.ndarray,
        fun: Callable[[np.ndarray], np.ndarray],
        jac: Callable[[np.ndarray], np.ndarray] | None,
    ) -> None: ...

    def iterate(self) -> bool:
        """Runs one step; returns True once converged."""
        ...

    @property
    def parameters(self) -> np.ndarray: ...

    @property
    def cost(self) -> float: ...


class ScipyLeastSquaresOptimizer:
    """
    `scipy.optimize.least_squares` exposed as an iterate() loop.

    Each iterate() call resumes the solver from the current parameters with a
    budget of `nfev_per_step` function evaluations. Convergence is reported when
    scipy stops on one of its tolerances rather than on the budget.
    """

    def __init__(
        self,
        *,
        method: str = "lm",
        nfev_per_step: int = 10,
        ftol: float = 1e-12,
        xtol: float = 1e-12,
        gtol: float = 1e-12,
    ) -> None:
        self.method = method
        self.nfev_per_step = int(nfev_per_step)
        self.ftol = float(ftol)
        self.xtol = float(xtol)
        self.gtol = float(gtol)
        self._x: np.ndarray | None = None
        self._fun: Callable[[np.ndarray], np.ndarray] | None = None
        self._jac: Callable[[np.ndarray], np.ndarray] | None = None
        self._cost = float("nan")

    def initialize(
        self,
        x0: np.ndarray,
        fun: Callable[[np.ndarray], np.ndarray],
        jac: Callable[[np.ndarray], np.ndarray] | None,
    ) -> None:
        self._x = np.asarray(x0, dtype=np.float64).reshape(-1).copy()
        self._fun = fun
        self._jac = jac
        r = fun(self._x)
        self._cost = 0.5 * float(r @ r)

    def iterate(self) -> bool:
        from scipy.optimize import least_squares  # type: ignore

        if self._x is None or self._fun is None:
            raise RuntimeError("initialize() must be called before iterate()")
        sol = least_squares(
            self._fun,
            self._x,
            jac=self._jac if self._jac is not None else "2-point",
            method=self.method,
            x_scale="jac",
            ftol=self.ftol,
            xtol=self.xtol,
            gtol=self.gtol,
            max_nfev=self.nfev_per_step,
        )
        self._x = np.asarray(sol.x, dtype=np.float64).copy()
        self._cost = float(sol.cost)
        logger.debug("least_squares step: cost=%.6e nfev=%d status=%d", self._cost, sol.nfev, sol.status)
        return int(sol.status) > 0

    @property
    def parameters(self) -> np.ndarray:
        if self._x is None:
            raise RuntimeError("optimizer not initialized")
        return self._x.copy()

    @property
    def cost(self) -> float:
        return self._cost
