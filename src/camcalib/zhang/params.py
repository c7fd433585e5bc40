from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from camcalib.config import IntrinsicConfig
from camcalib.core.distortion import RadialTangentialDistortion
from camcalib.errors import InputValidationError


@dataclass
class Zhang99IntrinsicParam:
    """
    Pinhole intrinsics with skew plus radial/tangential distortion.

      u = fx*xd + skew*yd + cx
      v = fy*yd + cy

    Flattened as fx, fy, [skew], cx, cy, radial..., [t1, t2]; the bracketed
    entries are present only when the model estimates them.
    """

    num_radial: int = 2
    include_tangential: bool = False
    assume_zero_skew: bool = False
    fx: float = 0.0
    fy: float = 0.0
    skew: float = 0.0
    cx: float = 0.0
    cy: float = 0.0
    radial: np.ndarray = field(default_factory=lambda: np.zeros((0,), dtype=np.float64))
    t1: float = 0.0
    t2: float = 0.0

    def __post_init__(self) -> None:
        radial = np.zeros((int(self.num_radial),), dtype=np.float64)
        given = np.asarray(self.radial, dtype=np.float64).reshape(-1)
        n = min(given.size, radial.size)
        radial[:n] = given[:n]
        self.radial = radial

    @classmethod
    def from_config(cls, config: IntrinsicConfig) -> "Zhang99IntrinsicParam":
        return cls(
            num_radial=config.num_radial,
            include_tangential=config.include_tangential,
            assume_zero_skew=config.assume_zero_skew,
        )

    def K(self) -> np.ndarray:
        return np.array(
            [[float(self.fx), float(self.skew), float(self.cx)], [0.0, float(self.fy), float(self.cy)], [0.0, 0.0, 1.0]],
            dtype=np.float64,
        )

    def distortion(self) -> RadialTangentialDistortion:
        return RadialTangentialDistortion(radial=tuple(self.radial.tolist()), t1=self.t1, t2=self.t2)

    def initialize(self, K: np.ndarray, radial: np.ndarray) -> None:
        K = np.asarray(K, dtype=np.float64).reshape(3, 3)
        self.fx = float(K[0, 0])
        self.fy = float(K[1, 1])
        self.skew = 0.0 if self.assume_zero_skew else float(K[0, 1])
        self.cx = float(K[0, 2])
        self.cy = float(K[1, 2])
        radial = np.asarray(radial, dtype=np.float64).reshape(-1)
        self.radial = np.zeros((int(self.num_radial),), dtype=np.float64)
        n = min(radial.size, self.radial.size)
        self.radial[:n] = radial[:n]
        self.t1 = 0.0
        self.t2 = 0.0

    def num_parameters(self) -> int:
        n = 4 + int(self.num_radial)
        if not self.assume_zero_skew:
            n += 1
        if self.include_tangential:
            n += 2
        return n

    def to_param(self) -> np.ndarray:
        out = [self.fx, self.fy]
        if not self.assume_zero_skew:
            out.append(self.skew)
        out += [self.cx, self.cy]
        out += self.radial.tolist()
        if self.include_tangential:
            out += [self.t1, self.t2]
        return np.asarray(out, dtype=np.float64)

    def from_param(self, p: np.ndarray) -> int:
        """Reads the intrinsic block from the front of `p`; returns entries consumed."""
        p = np.asarray(p, dtype=np.float64).reshape(-1)
        i = 0
        self.fx = float(p[i])
        self.fy = float(p[i + 1])
        i += 2
        if not self.assume_zero_skew:
            self.skew = float(p[i])
            i += 1
        else:
            self.skew = 0.0
        self.cx = float(p[i])
        self.cy = float(p[i + 1])
        i += 2
        self.radial = p[i : i + int(self.num_radial)].copy()
        i += int(self.num_radial)
        if self.include_tangential:
            self.t1 = float(p[i])
            self.t2 = float(p[i + 1])
            i += 2
        else:
            self.t1 = 0.0
            self.t2 = 0.0
        return i

    def create_like(self) -> "Zhang99IntrinsicParam":
        return Zhang99IntrinsicParam(
            num_radial=self.num_radial,
            include_tangential=self.include_tangential,
            assume_zero_skew=self.assume_zero_skew,
        )

    def copy(self) -> "Zhang99IntrinsicParam":
        out = self.create_like()
        out.from_param(self.to_param())
        return out


@dataclass
class View:
    """Pose of the target in one view: Rodrigues rotation vector + translation."""

    rotation: np.ndarray = field(default_factory=lambda: np.zeros((3,), dtype=np.float64))
    T: np.ndarray = field(default_factory=lambda: np.zeros((3,), dtype=np.float64))

    def __post_init__(self) -> None:
        self.rotation = np.asarray(self.rotation, dtype=np.float64).reshape(3).copy()
        self.T = np.asarray(self.T, dtype=np.float64).reshape(3).copy()


@dataclass
class Zhang99AllParam:
    intrinsic: Zhang99IntrinsicParam
    views: list[View] = field(default_factory=list)

    def set_number_of_views(self, n: int) -> None:
        if n < 0:
            raise InputValidationError("number of views must be >= 0")
        if len(self.views) > n:
            del self.views[n:]
        while len(self.views) < n:
            self.views.append(View())

    def num_parameters(self) -> int:
        return self.intrinsic.num_parameters() + 6 * len(self.views)

    def convert_to_param(self) -> np.ndarray:
        parts = [self.intrinsic.to_param()]
        for v in self.views:
            parts.append(v.rotation)
            parts.append(v.T)
        return np.concatenate(parts, axis=0).astype(np.float64)

    def set_from_param(self, p: np.ndarray) -> None:
        p = np.asarray(p, dtype=np.float64).reshape(-1)
        if p.size != self.num_parameters():
            raise InputValidationError(f"expected {self.num_parameters()} parameters, got {p.size}")
        i = self.intrinsic.from_param(p)
        for v in self.views:
            v.rotation = p[i : i + 3].copy()
            v.T = p[i + 3 : i + 6].copy()
            i += 6

    def create_like(self) -> "Zhang99AllParam":
        out = Zhang99AllParam(intrinsic=self.intrinsic.create_like())
        out.set_number_of_views(len(self.views))
        return out

    def copy(self) -> "Zhang99AllParam":
        out = self.create_like()
        out.set_from_param(self.convert_to_param())
        return out

    def assign(self, other: "Zhang99AllParam") -> None:
        """Overwrite this container with the values of `other`."""
        self.intrinsic = other.intrinsic.copy()
        self.views = [View(rotation=v.rotation, T=v.T) for v in other.views]
