from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

import numpy as np

from camcalib.config import SelfCalibrationConfig
from camcalib.errors import InputValidationError, NumericalError
from camcalib.selfcalib.constraints import CONSTRAINTS, pair_constraint
from camcalib.selfcalib.projective import ProjectiveCamera, quadric_to_vector, vector_to_quadric

logger = logging.getLogger(__name__)

# Dual absolute quadric of a metric frame; seeds Newton when no estimate is given.
METRIC_QUADRIC = np.diag([1.0, 1.0, 1.0, 0.0])


class SolverStrategy(str, Enum):
    EIGEN = "eigen"
    NEWTON = "newton"


@dataclass(frozen=True)
class SelfCalibrationResult:
    """
    Dual absolute quadric estimated from a set of projective cameras.

    `quotient` is q'EQq/q'q for the returned q, EQ being the normalised and
    symmetrised constraint system. `relative_quotient` divides it by the largest
    eigenvalue magnitude of EQ, which makes it comparable across rigs.
    """

    q: np.ndarray  # (10,) unit norm
    Q: np.ndarray  # (4,4) symmetric
    strategy: SolverStrategy
    quotient: float
    relative_quotient: float
    eigenvalues: np.ndarray  # (10,) complex
    singular_values: np.ndarray  # (10,)
    condition_number: float
    iterations: int
    converged: bool
    diagnostics: dict[str, Any] = field(default_factory=dict)

    def low_confidence(self, threshold: float = 1e-6) -> bool:
        return not np.isfinite(self.relative_quotient) or abs(self.relative_quotient) > float(threshold)


def rayleigh_quotient(EQ: np.ndarray, q: np.ndarray) -> float:
    q = np.asarray(q, dtype=np.float64).reshape(-1)
    return float(q @ EQ @ q) / float(q @ q)


def _canonical_sign(q: np.ndarray) -> np.ndarray:
    q = q / np.linalg.norm(q)
    k = int(np.argmax(np.abs(q)))
    return -q if q[k] < 0 else q


def _seed_vector(initial_quadric: np.ndarray | None) -> np.ndarray:
    if initial_quadric is None:
        return quadric_to_vector(METRIC_QUADRIC)
    seed = np.asarray(initial_quadric, dtype=np.float64)
    if seed.shape == (4, 4):
        seed = quadric_to_vector(seed)
    seed = seed.reshape(-1)
    if seed.size != 10 or not np.all(np.isfinite(seed)) or np.linalg.norm(seed) == 0.0:
        raise InputValidationError("initial quadric must be a finite non-zero 4x4 matrix or 10-vector")
    return seed


def solve_eigen(EQ: np.ndarray, imag_tol: float = 1e-9) -> tuple[np.ndarray, int, np.ndarray]:
    """
    Eigenvector of EQ whose real eigenvalue has the smallest magnitude.

    Returns (q, index, eigenvalues).
    """
    try:
        values, vectors = np.linalg.eig(EQ)
    except np.linalg.LinAlgError as e:
        raise NumericalError(f"eigen-decomposition failed: {e}") from e

    scale = max(1.0, float(np.max(np.abs(values))))
    real = np.abs(values.imag) <= float(imag_tol) * scale
    if not np.any(real):
        raise NumericalError("constraint system has no real eigenvalue")
    candidates = np.flatnonzero(real)
    index = int(candidates[np.argmin(np.abs(values.real[candidates]))])
    logger.debug("eigenvalues: %s", np.array2string(values, precision=6))
    return np.real(vectors[:, index]).astype(np.float64), index, values


def _line_search(
    EQ: np.ndarray, q: np.ndarray, s: float, step: np.ndarray, max_halvings: int
) -> tuple[np.ndarray, float] | None:
    """Halves `step` until the renormalised point lowers |q'EQq|."""
    t = 1.0
    for _ in range(int(max_halvings)):
        cand = q + t * step
        cand = cand / np.linalg.norm(cand)
        s_cand = float(cand @ EQ @ cand)
        if abs(s_cand) < abs(s):
            return cand, s_cand
        t *= 0.5
    return None


def solve_newton(
    EQ: np.ndarray,
    seed: np.ndarray,
    *,
    iterations: int = 50,
    tol: float = 1e-12,
    max_halvings: int = 30,
) -> tuple[np.ndarray, int, str, list[float], int]:
    """
    Newton iterations driving q'EQq to zero on the unit sphere.

    Uses the gradient f = 4(q'Qq)Qq and Hessian J = 8(Qq)(q'Q) + 4(q'Qq)Q of
    (q'Qq)^2. Because that function is homogeneous of degree four, J q = 3 f and
    the unconstrained Newton step only rescales q. The step is therefore solved
    in the tangent plane of |q| = 1 (Riemannian Newton) and q is renormalised.

    The reduced Hessian is indefinite near the zero set, so the Newton step is
    only tried when it points downhill. The Gauss-Newton step on s = q'Qq,
    d = -s g / g'g with g the tangent gradient of s, is always tried as well and
    the candidate reaching the smaller |s| is kept. `tol` is relative to the
    largest eigenvalue magnitude of EQ.

    Returns (q, accepted_steps, stop_reason, quotient_history, gauss_newton_steps).
    """
    q = np.asarray(seed, dtype=np.float64).reshape(-1)
    q = q / np.linalg.norm(q)
    n = q.size
    eye = np.eye(n)
    threshold = float(tol) * max(float(np.max(np.abs(np.linalg.eigvalsh(EQ)))), np.finfo(np.float64).tiny)
    s = float(q @ EQ @ q)
    history = [s]
    reason = "max_iterations"
    steps = 0
    gauss_newton = 0

    for _ in range(int(iterations)):
        if abs(s) <= threshold:
            reason = "tolerance"
            break
        Qq = EQ @ q
        f = 4.0 * s * Qq
        J = 8.0 * np.outer(Qq, Qq) + 4.0 * s * EQ
        g = 2.0 * (Qq - s * q)

        candidates: list[tuple[np.ndarray, float, bool]] = []

        # Orthonormal basis of the tangent plane at q.
        _u, _s, vt = np.linalg.svd(q.reshape(1, n))
        T = vt[1:].T
        H = T.T @ (J - float(q @ f) * eye) @ T
        y, *_ = np.linalg.lstsq(H, -(T.T @ f), rcond=1e-12)
        step = T @ y
        if s * float(step @ g) < 0.0:
            hit = _line_search(EQ, q, s, step, max_halvings)
            if hit is not None:
                candidates.append((hit[0], hit[1], False))

        gg = float(g @ g)
        if gg > 0.0:
            hit = _line_search(EQ, q, s, -s * g / gg, max_halvings)
            if hit is not None:
                candidates.append((hit[0], hit[1], True))

        if not candidates:
            reason = "stalled"
            break
        q, s, used_gauss_newton = min(candidates, key=lambda c: abs(c[1]))
        gauss_newton += int(used_gauss_newton)
        history.append(s)
        steps += 1
    else:
        if abs(s) <= threshold:
            reason = "tolerance"

    logger.debug("newton quotient history: %s", history)
    return q, steps, reason, history, gauss_newton


class SelfCalibrationTwoProjectives:
    """
    Estimates the dual absolute quadric shared by a set of projective cameras.

    Every camera is paired with the reference view. For each pair the five
    quartic constraints are antisymmetrised in the pair order and summed into
    EQ_SUM, which is scaled by its (9,9) entry and symmetrised. The quadric is
    the vector minimising q'EQq / q'q, found either from the eigenvector of the
    smallest-magnitude eigenvalue or by Newton iterations from a seed.
    """

    def __init__(self, config: SelfCalibrationConfig | None = None) -> None:
        self.config = config if config is not None else SelfCalibrationConfig()
        self._projectives: list[ProjectiveCamera] = []

    @property
    def projectives(self) -> tuple[ProjectiveCamera, ...]:
        return tuple(self._projectives)

    def add_projective(self, camera: ProjectiveCamera | np.ndarray) -> None:
        if not isinstance(camera, ProjectiveCamera):
            camera = ProjectiveCamera.from_matrix(camera)
        self._projectives.append(camera)

    def add_projectives(self, cameras: Iterable[ProjectiveCamera | np.ndarray]) -> None:
        for cam in cameras:
            self.add_projective(cam)

    def reset(self) -> None:
        self._projectives.clear()

    def accumulate(self) -> np.ndarray:
        n = len(self._projectives)
        if n < 2:
            raise InputValidationError(f"self-calibration needs at least 2 projective views, got {n}")
        ref = int(self.config.reference_view)
        if ref >= n:
            raise InputValidationError(f"reference view {ref} out of range for {n} views")

        scale = float(self.config.homogeneous_scale)
        P0 = self._projectives[ref].homogeneous(scale)
        EQ_SUM = np.zeros((10, 10), dtype=np.float64)
        for i, cam in enumerate(self._projectives):
            if i == ref:
                continue
            P1 = cam.homogeneous(scale)
            for fn in CONSTRAINTS:
                EQ_SUM += pair_constraint(fn, P0, P1)
        return EQ_SUM

    @staticmethod
    def normalize(EQ_SUM: np.ndarray) -> tuple[np.ndarray, str]:
        """
        Fix the free scale of the system by dividing by its (9,9) entry.

        The (9,9) entry only involves the last column of each camera and is zero
        for a reference camera of the form [A | 0]; the largest entry is used then.
        """
        corner = float(EQ_SUM[9, 9])
        peak = float(np.max(np.abs(EQ_SUM)))
        if not np.isfinite(peak) or peak == 0.0:
            raise NumericalError("constraint system is zero or non-finite")
        if np.isfinite(corner) and abs(corner) > 1e-12 * peak:
            return EQ_SUM / corner, "corner"
        logger.warning("EQ_SUM[9,9] is %.3g, normalising by the largest entry instead", corner)
        return EQ_SUM / peak, "max_abs"

    @staticmethod
    def symmetric_system(EQ_SUM: np.ndarray) -> np.ndarray:
        return 0.5 * (EQ_SUM + EQ_SUM.T)

    def _system(self) -> tuple[np.ndarray, str]:
        EQ_SUM, normalization = self.normalize(self.accumulate())
        return self.symmetric_system(EQ_SUM), normalization

    def solve(
        self,
        strategy: SolverStrategy | str | None = None,
        initial_quadric: np.ndarray | None = None,
    ) -> SelfCalibrationResult:
        EQ, normalization = self._system()
        return self._solve_system(EQ, normalization, strategy, initial_quadric)

    def _solve_system(
        self,
        EQ: np.ndarray,
        normalization: str,
        strategy: SolverStrategy | str | None,
        initial_quadric: np.ndarray | None,
    ) -> SelfCalibrationResult:
        strategy = SolverStrategy(strategy if strategy is not None else self.config.strategy)

        sv = np.linalg.svd(EQ, compute_uv=False)
        cond = float(sv[0] / sv[-1]) if sv[-1] > 0 else float("inf")

        diag: dict[str, Any] = {
            "n_views": len(self._projectives),
            "normalization": normalization,
        }

        if strategy is SolverStrategy.EIGEN:
            q, index, values = solve_eigen(EQ, imag_tol=self.config.imag_tol)
            iterations = 0
            converged = True
            diag["eigen_index"] = index
        else:
            try:
                values = np.linalg.eigvals(EQ)
            except np.linalg.LinAlgError as e:
                raise NumericalError(f"eigen-decomposition failed: {e}") from e
            seed = _seed_vector(initial_quadric)
            diag["seed_quotient"] = rayleigh_quotient(EQ, seed)
            q, iterations, reason, history, gauss_newton = solve_newton(
                EQ, seed, iterations=self.config.newton_iterations, tol=self.config.newton_tol
            )
            converged = reason == "tolerance"
            diag["stop_reason"] = reason
            diag["quotient_history"] = history
            diag["gauss_newton_steps"] = gauss_newton

        q = _canonical_sign(q)
        quotient = rayleigh_quotient(EQ, q)
        peak = float(np.max(np.abs(values)))
        relative = quotient / peak if peak > 0 else float("nan")

        logger.info(
            "self-calibration (%s): %d views, quotient=%.3e, relative=%.3e, cond=%.3e",
            strategy.value,
            len(self._projectives),
            quotient,
            relative,
            cond,
        )

        result = SelfCalibrationResult(
            q=q,
            Q=vector_to_quadric(q),
            strategy=strategy,
            quotient=quotient,
            relative_quotient=relative,
            eigenvalues=np.asarray(values),
            singular_values=sv,
            condition_number=cond,
            iterations=int(iterations),
            converged=bool(converged),
            diagnostics=diag,
        )
        if result.low_confidence():
            logger.warning("relative quotient %.3e is large; views may be degenerate or noisy", relative)
        return result

    def process(self, Q: np.ndarray) -> SelfCalibrationResult:
        """
        Eigen solve that also reports how well a reference quadric `Q` fits.
        """
        EQ, normalization = self._system()
        result = self._solve_system(EQ, normalization, SolverStrategy.EIGEN, None)
        result.diagnostics["reference_quotient"] = rayleigh_quotient(EQ, quadric_to_vector(Q))
        return result
