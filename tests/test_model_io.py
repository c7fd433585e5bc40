from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest

from camcalib.api.model_io import (
    load_calibration,
    load_observations,
    load_projectives,
    load_quadric,
    load_self_calibration,
    save_calibration,
    save_observations,
    save_projectives,
    save_self_calibration,
)
from camcalib.cli.main import main
from camcalib.errors import InputValidationError
from camcalib.selfcalib import SelfCalibrationTwoProjectives
from camcalib.sim.synthetic import grid_layout, synthetic_projective_rig
from camcalib.zhang.params import View, Zhang99AllParam, Zhang99IntrinsicParam

K_TRUE = np.array([[400.0, -3.0, 500.0], [0.0, 410.0, 505.0], [0.0, 0.0, 1.0]])


def test_calibration_save_load(tmp_path: Path) -> None:
    intr = Zhang99IntrinsicParam(num_radial=2, include_tangential=True)
    intr.initialize(K_TRUE, np.array([-0.1, 0.01]))
    intr.t1 = 1e-3
    param = Zhang99AllParam(
        intrinsic=intr,
        views=[View(rotation=[0.1, 0.2, 0.3], T=[1.0, 2.0, 600.0]), View(rotation=[0.0, -0.4, 0.1], T=[0.0, 0.0, 550.0])],
    )
    path = save_calibration(tmp_path / "calib.json", param, diagnostics={"rms_px": np.float64(0.25), "steps": 3})
    meta = json.loads(path.read_text(encoding="utf-8"))
    assert meta["schema_version"] == "camcalib.calibration.v0"
    assert meta["diagnostics"]["rms_px"] == 0.25

    loaded = load_calibration(path)
    assert np.allclose(loaded.convert_to_param(), param.convert_to_param())
    assert loaded.intrinsic.include_tangential


def test_load_rejects_wrong_schema(tmp_path: Path) -> None:
    path = tmp_path / "x.json"
    path.write_text(json.dumps({"schema_version": "something.else"}), encoding="utf-8")
    with pytest.raises(InputValidationError):
        load_calibration(path)
    with pytest.raises(InputValidationError):
        load_projectives(path)


def test_observations_and_projectives_files(tmp_path: Path) -> None:
    layout = grid_layout(3, 4, 10.0)
    obs = [layout * 2.0 + 1.0, layout * 3.0]
    layout2, obs2 = load_observations(save_observations(tmp_path / "obs.json", layout, obs))
    assert np.array_equal(layout2, layout)
    assert all(np.array_equal(a, b) for a, b in zip(obs, obs2))

    cameras, Q_true = synthetic_projective_rig(K_TRUE, 3, seed=0)
    loaded = load_projectives(save_projectives(tmp_path / "proj.json", cameras, Q_true=Q_true))
    assert len(loaded) == 3
    assert np.allclose(loaded[1], cameras[1])


def test_self_calibration_save_load(tmp_path: Path) -> None:
    cameras, _Q = synthetic_projective_rig(K_TRUE, 3, seed=0)
    solver = SelfCalibrationTwoProjectives()
    solver.add_projectives(cameras)
    result = solver.solve()
    meta = load_self_calibration(save_self_calibration(tmp_path / "q.json", result))
    assert meta["strategy"] == "eigen"
    assert np.allclose(meta["Q"], result.Q)
    assert len(meta["eigenvalues"]["real"]) == 10


def test_cli_simulate_then_zhang(tmp_path: Path) -> None:
    obs = tmp_path / "obs.json"
    out = tmp_path / "calib.json"
    assert main(["simulate", "--out", str(obs), "--views", "6"]) == 0
    assert main(["--log-level", "WARNING", "zhang", str(obs), "--out", str(out), "--num-radial", "1"]) == 0
    param = load_calibration(out)
    assert param.intrinsic.fx == pytest.approx(400.0, abs=1e-2)
    assert len(param.views) == 6


def test_cli_simulate_then_selfcalib(tmp_path: Path) -> None:
    proj = tmp_path / "proj.json"
    out = tmp_path / "quadric.json"
    assert main(["simulate", "--kind", "projectives", "--out", str(proj), "--views", "4"]) == 0
    assert main(["selfcalib", str(proj), "--out", str(out), "--strategy", "newton"]) == 0
    meta = json.loads(out.read_text(encoding="utf-8"))
    assert meta["strategy"] == "newton"
    assert meta["schema_version"] == "camcalib.selfcalib.v0"


def test_cli_selfcalib_with_initial_quadric(tmp_path: Path) -> None:
    proj = tmp_path / "proj.json"
    out = tmp_path / "quadric.json"
    assert main(["simulate", "--kind", "projectives", "--out", str(proj), "--views", "4", "--seed", "2"]) == 0
    argv = ["selfcalib", str(proj), "--out", str(out), "--strategy", "newton", "--initial-quadric", str(proj)]
    assert main(argv) == 0
    meta = load_self_calibration(out)
    assert meta["converged"]
    assert abs(meta["relative_quotient"]) < 1e-9
    assert meta["strategy"] == "newton"


def test_load_quadric_from_either_file(tmp_path: Path) -> None:
    cameras, Q_true = synthetic_projective_rig(K_TRUE, 3, seed=0)
    proj = save_projectives(tmp_path / "proj.json", cameras, Q_true=Q_true)
    assert np.allclose(load_quadric(proj), Q_true)

    solver = SelfCalibrationTwoProjectives()
    solver.add_projectives(cameras)
    result = solver.solve()
    assert np.allclose(load_quadric(save_self_calibration(tmp_path / "q.json", result)), result.Q)

    with pytest.raises(InputValidationError):
        load_quadric(save_projectives(tmp_path / "bare.json", cameras))
    with pytest.raises(InputValidationError):
        load_quadric(save_observations(tmp_path / "obs.json", grid_layout(2, 2, 1.0), []))


def test_cli_reports_errors(tmp_path: Path) -> None:
    proj = tmp_path / "proj.json"
    save_projectives(proj, synthetic_projective_rig(K_TRUE, 1, seed=0)[0])
    assert main(["selfcalib", str(proj), "--out", str(tmp_path / "q.json")]) == 2
