from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class RadialTangentialDistortion:
    """
    Radial + tangential distortion on normalized camera coordinates (x=X/Z, y=Y/Z).

      a  = sum_i radial[i] * r2^(i+1)
      xd = x + x*a + 2*t1*x*y + t2*(r2 + 2*x^2)
      yd = y + y*a + t1*(r2 + 2*y^2) + 2*t2*x*y

    Any number of radial terms is allowed; t1/t2 play the role of OpenCV's p1/p2.
    """

    radial: tuple[float, ...] = ()
    t1: float = 0.0
    t2: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "radial", tuple(float(k) for k in self.radial))

    def _radial_terms(self, r2: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Returns (a, da/dr2)."""
        a = np.zeros_like(r2)
        da = np.zeros_like(r2)
        r2i = np.ones_like(r2)
        for i, k in enumerate(self.radial):
            da = da + (i + 1) * k * r2i
            r2i = r2i * r2
            a = a + k * r2i
        return a, da

    def distort(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        r2 = x * x + y * y
        a, _ = self._radial_terms(r2)
        xy = x * y
        xd = x + x * a + 2.0 * self.t1 * xy + self.t2 * (r2 + 2.0 * x * x)
        yd = y + y * a + self.t1 * (r2 + 2.0 * y * y) + 2.0 * self.t2 * xy
        return xd, yd

    def jacobian(self, x: np.ndarray, y: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Partial derivatives of distort() w.r.t. the undistorted coordinates.

        Returns (dxd/dx, dxd/dy, dyd/dx, dyd/dy).
        """
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        r2 = x * x + y * y
        a, da = self._radial_terms(r2)
        xy = x * y
        dxd_dx = 1.0 + a + 2.0 * x * x * da + 2.0 * self.t1 * y + 6.0 * self.t2 * x
        dxd_dy = 2.0 * xy * da + 2.0 * self.t1 * x + 2.0 * self.t2 * y
        dyd_dx = 2.0 * xy * da + 2.0 * self.t1 * x + 2.0 * self.t2 * y
        dyd_dy = 1.0 + a + 2.0 * y * y * da + 6.0 * self.t1 * y + 2.0 * self.t2 * x
        return dxd_dx, dxd_dy, dyd_dx, dyd_dy

    def undistort(self, xd: np.ndarray, yd: np.ndarray, iterations: int = 20) -> tuple[np.ndarray, np.ndarray]:
        """
        Iterative inverse of distort() for small/moderate distortion.
        """
        xd = np.asarray(xd, dtype=np.float64)
        yd = np.asarray(yd, dtype=np.float64)
        x = xd.copy()
        y = yd.copy()
        for _ in range(int(iterations)):
            x_est, y_est = self.distort(x, y)
            x += xd - x_est
            y += yd - y_est
        return x, y


def apply_distortion(
    norm_pt: Sequence[float], radial: Sequence[float], t1: float = 0.0, t2: float = 0.0
) -> tuple[float, float]:
    """Distort one normalized image point."""
    xd, yd = RadialTangentialDistortion(radial=tuple(radial), t1=t1, t2=t2).distort(norm_pt[0], norm_pt[1])
    return float(xd), float(yd)


def distortion_from_dict(d: dict) -> RadialTangentialDistortion:
    return RadialTangentialDistortion(
        radial=tuple(float(k) for k in d.get("radial", ())),
        t1=float(d.get("t1", 0.0)),
        t2=float(d.get("t2", 0.0)),
    )


def distortion_to_dict(m: RadialTangentialDistortion) -> dict:
    return {"radial": list(m.radial), "t1": m.t1, "t2": m.t2}
