from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Sequence

import numpy as np

from camcalib.core.distortion import distortion_to_dict
from camcalib.errors import InputValidationError
from camcalib.selfcalib.solver import SelfCalibrationResult
from camcalib.zhang.params import View, Zhang99AllParam, Zhang99IntrinsicParam

logger = logging.getLogger(__name__)

CALIBRATION_SCHEMA = "camcalib.calibration.v0"
SELFCALIB_SCHEMA = "camcalib.selfcalib.v0"
OBSERVATIONS_SCHEMA = "camcalib.observations.v0"
PROJECTIVES_SCHEMA = "camcalib.projectives.v0"


def _to_float_matrix(x: Any, shape: tuple[int, ...]) -> np.ndarray:
    x = np.asarray(x, dtype=np.float64)
    try:
        x = x.reshape(shape)
    except ValueError as e:
        raise InputValidationError(f"expected shape {shape}, got {x.shape}") from e
    if not np.all(np.isfinite(x)):
        raise InputValidationError("non-finite values")
    return x


def _read(path: Path, schema: str) -> dict[str, Any]:
    meta = json.loads(Path(path).read_text(encoding="utf-8"))
    if str(meta.get("schema_version")) != schema:
        raise InputValidationError(f"unsupported schema {meta.get('schema_version')!r} (expected {schema})")
    return meta


def _write(path: Path, meta: dict[str, Any]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(meta, indent=2, sort_keys=True), encoding="utf-8")
    logger.info("wrote %s", path)
    return path


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, np.ndarray):
        return _jsonable(value.tolist())
    if isinstance(value, (np.floating, np.integer, np.bool_)):
        return value.item()
    if isinstance(value, complex):
        return {"real": value.real, "imag": value.imag}
    return value


def save_calibration(path: Path, param: Zhang99AllParam, diagnostics: dict[str, Any] | None = None) -> Path:
    intr = param.intrinsic
    meta: dict[str, Any] = {
        "schema_version": CALIBRATION_SCHEMA,
        "model": {
            "num_radial": int(intr.num_radial),
            "include_tangential": bool(intr.include_tangential),
            "assume_zero_skew": bool(intr.assume_zero_skew),
        },
        "intrinsics": {
            "fx": float(intr.fx),
            "fy": float(intr.fy),
            "skew": float(intr.skew),
            "cx": float(intr.cx),
            "cy": float(intr.cy),
            "K": intr.K().tolist(),
        },
        "distortion": distortion_to_dict(intr.distortion()),
        "views": [{"rvec": v.rotation.tolist(), "T": v.T.tolist()} for v in param.views],
    }
    if diagnostics:
        meta["diagnostics"] = _jsonable(diagnostics)
    return _write(path, meta)


def load_calibration(path: Path) -> Zhang99AllParam:
    meta = _read(path, CALIBRATION_SCHEMA)
    model = meta["model"]
    k = meta["intrinsics"]
    dist = meta.get("distortion", {})
    intr = Zhang99IntrinsicParam(
        num_radial=int(model["num_radial"]),
        include_tangential=bool(model["include_tangential"]),
        assume_zero_skew=bool(model["assume_zero_skew"]),
        fx=float(k["fx"]),
        fy=float(k["fy"]),
        skew=float(k["skew"]),
        cx=float(k["cx"]),
        cy=float(k["cy"]),
        radial=np.asarray(dist.get("radial", []), dtype=np.float64),
        t1=float(dist.get("t1", 0.0)),
        t2=float(dist.get("t2", 0.0)),
    )
    views = [View(rotation=_to_float_matrix(v["rvec"], (3,)), T=_to_float_matrix(v["T"], (3,))) for v in meta["views"]]
    return Zhang99AllParam(intrinsic=intr, views=views)


def save_self_calibration(path: Path, result: SelfCalibrationResult) -> Path:
    eig = np.asarray(result.eigenvalues)
    meta: dict[str, Any] = {
        "schema_version": SELFCALIB_SCHEMA,
        "strategy": result.strategy.value,
        "q": np.asarray(result.q, dtype=np.float64).tolist(),
        "Q": np.asarray(result.Q, dtype=np.float64).tolist(),
        "quotient": float(result.quotient),
        "relative_quotient": float(result.relative_quotient),
        "condition_number": float(result.condition_number),
        "iterations": int(result.iterations),
        "converged": bool(result.converged),
        "eigenvalues": {"real": eig.real.tolist(), "imag": eig.imag.tolist()},
        "singular_values": np.asarray(result.singular_values, dtype=np.float64).tolist(),
        "diagnostics": _jsonable(result.diagnostics),
    }
    return _write(path, meta)


def load_self_calibration(path: Path) -> dict[str, Any]:
    """Reads a saved quadric; returns the JSON document with `Q` and `q` as arrays."""
    meta = _read(path, SELFCALIB_SCHEMA)
    meta["Q"] = _to_float_matrix(meta["Q"], (4, 4))
    meta["q"] = _to_float_matrix(meta["q"], (10,))
    return meta


def save_observations(path: Path, layout_xy: np.ndarray, observations: Sequence[np.ndarray]) -> Path:
    meta = {
        "schema_version": OBSERVATIONS_SCHEMA,
        "layout": np.asarray(layout_xy, dtype=np.float64).reshape(-1, 2).tolist(),
        "views": [np.asarray(o, dtype=np.float64).reshape(-1, 2).tolist() for o in observations],
    }
    return _write(path, meta)


def load_observations(path: Path) -> tuple[np.ndarray, list[np.ndarray]]:
    meta = _read(path, OBSERVATIONS_SCHEMA)
    layout = np.asarray(meta["layout"], dtype=np.float64).reshape(-1, 2)
    views = [np.asarray(v, dtype=np.float64).reshape(-1, 2) for v in meta["views"]]
    return layout, views


def save_projectives(path: Path, cameras: Sequence[np.ndarray], Q_true: np.ndarray | None = None) -> Path:
    meta: dict[str, Any] = {
        "schema_version": PROJECTIVES_SCHEMA,
        "cameras": [np.asarray(P, dtype=np.float64).reshape(3, 4).tolist() for P in cameras],
    }
    if Q_true is not None:
        meta["Q_true"] = np.asarray(Q_true, dtype=np.float64).reshape(4, 4).tolist()
    return _write(path, meta)


def load_projectives(path: Path) -> list[np.ndarray]:
    meta = _read(path, PROJECTIVES_SCHEMA)
    return [_to_float_matrix(P, (3, 4)) for P in meta["cameras"]]


def load_quadric(path: Path) -> np.ndarray:
    """
    4x4 quadric stored in a file: `Q` of a self-calibration result or `Q_true` of
    a projectives file.
    """
    meta = json.loads(Path(path).read_text(encoding="utf-8"))
    schema = str(meta.get("schema_version"))
    if schema == SELFCALIB_SCHEMA:
        return _to_float_matrix(meta["Q"], (4, 4))
    if schema == PROJECTIVES_SCHEMA:
        if "Q_true" not in meta:
            raise InputValidationError(f"{path} has no Q_true")
        return _to_float_matrix(meta["Q_true"], (4, 4))
    raise InputValidationError(f"unsupported schema {schema!r} (expected {SELFCALIB_SCHEMA} or {PROJECTIVES_SCHEMA})")
