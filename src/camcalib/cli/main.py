from __future__ import annotations

import argparse
import logging
from pathlib import Path

import numpy as np

from camcalib.api.model_io import (
    load_observations,
    load_projectives,
    load_quadric,
    save_calibration,
    save_observations,
    save_projectives,
    save_self_calibration,
)
from camcalib.config import IntrinsicConfig, RefinementConfig, SelfCalibrationConfig
from camcalib.errors import CalibrationError
from camcalib.selfcalib.solver import SelfCalibrationTwoProjectives
from camcalib.sim.synthetic import grid_layout, look_at_poses, render_observations, synthetic_projective_rig
from camcalib.zhang.calibration import CalibrationPlanarGridZhang99, CalibrationStatus
from camcalib.zhang.params import Zhang99IntrinsicParam

logger = logging.getLogger("camcalib.cli")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _run_zhang(args: argparse.Namespace) -> int:
    layout, observations = load_observations(args.observations)
    calib = CalibrationPlanarGridZhang99(
        layout,
        intrinsic_config=IntrinsicConfig.from_dict(
            {
                "num_radial": args.num_radial,
                "include_tangential": args.tangential,
                "assume_zero_skew": args.zero_skew,
            }
        ),
        refinement_config=RefinementConfig.from_dict({"max_iterations": args.max_iterations, "method": args.method}),
    )
    outcome = calib.process(observations)
    if outcome.status is not CalibrationStatus.SUCCESS:
        logger.error("calibration stopped: %s", outcome.status.value)
        return 1
    save_calibration(args.out, outcome.unwrap(), diagnostics=outcome.diagnostics)
    intr = outcome.unwrap().intrinsic
    print(
        f"fx={intr.fx:.4f} fy={intr.fy:.4f} skew={intr.skew:.4f} cx={intr.cx:.4f} cy={intr.cy:.4f} "
        f"rms={outcome.diagnostics.get('rms_px', float('nan')):.4g}px"
    )
    return 0


def _run_selfcalib(args: argparse.Namespace) -> int:
    config = SelfCalibrationConfig.from_dict(
        {
            "strategy": args.strategy,
            "homogeneous_scale": args.homogeneous_scale,
            "reference_view": args.reference_view,
        }
    )
    solver = SelfCalibrationTwoProjectives(config)
    solver.add_projectives(load_projectives(args.projectives))
    initial = load_quadric(args.initial_quadric) if args.initial_quadric is not None else None
    result = solver.solve(initial_quadric=initial)
    save_self_calibration(args.out, result)
    print(f"strategy={result.strategy.value} quotient={result.quotient:.4g} relative={result.relative_quotient:.4g}")
    return 0


def _run_simulate(args: argparse.Namespace) -> int:
    K = np.array([[args.fx, args.skew, args.cx], [0.0, args.fy, args.cy], [0.0, 0.0, 1.0]], dtype=np.float64)
    if args.kind == "projectives":
        cameras, Q_true = synthetic_projective_rig(K, args.views, seed=args.seed)
        save_projectives(args.out, cameras, Q_true=Q_true)
        return 0

    layout = grid_layout(args.rows, args.cols, args.spacing)
    intr = Zhang99IntrinsicParam(num_radial=0)
    intr.initialize(K, np.zeros((0,)))
    poses = look_at_poses(args.views, args.distance, seed=args.seed)
    observations = render_observations(intr, poses, layout, noise_std=args.noise_std, seed=args.seed)
    save_observations(args.out, layout, observations)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="camcalib")
    parser.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="cmd", required=True)

    zh = sub.add_parser("zhang", help="Planar-target calibration from an observations JSON.")
    zh.add_argument("observations", type=Path)
    zh.add_argument("--out", type=Path, required=True)
    zh.add_argument("--num-radial", type=int, default=2)
    zh.add_argument("--tangential", action="store_true", help="Also refine tangential distortion (t1, t2).")
    zh.add_argument("--zero-skew", action="store_true")
    zh.add_argument("--max-iterations", type=int, default=500)
    zh.add_argument("--method", type=str, default="lm", choices=["lm", "trf"])

    sc = sub.add_parser("selfcalib", help="Dual absolute quadric from a projectives JSON.")
    sc.add_argument("projectives", type=Path)
    sc.add_argument("--out", type=Path, required=True)
    sc.add_argument("--strategy", type=str, default="eigen", choices=["eigen", "newton"])
    sc.add_argument(
        "--homogeneous-scale",
        type=float,
        default=999.0,
        help="Bottom-right entry used to extend 3x4 cameras to 4x4.",
    )
    sc.add_argument("--reference-view", type=int, default=0)
    sc.add_argument(
        "--initial-quadric",
        type=Path,
        default=None,
        help="Quadric or projectives JSON whose Q (or Q_true) seeds the Newton strategy.",
    )

    sim = sub.add_parser("simulate", help="Write a synthetic observations or projectives file.")
    sim.add_argument("--out", type=Path, required=True)
    sim.add_argument("--kind", type=str, default="observations", choices=["observations", "projectives"])
    sim.add_argument("--views", type=int, default=10)
    sim.add_argument("--rows", type=int, default=6)
    sim.add_argument("--cols", type=int, default=8)
    sim.add_argument("--spacing", type=float, default=30.0)
    sim.add_argument("--distance", type=float, default=600.0)
    sim.add_argument("--noise-std", type=float, default=0.0, help="Pixel noise standard deviation.")
    sim.add_argument("--fx", type=float, default=400.0)
    sim.add_argument("--fy", type=float, default=410.0)
    sim.add_argument("--skew", type=float, default=-3.0)
    sim.add_argument("--cx", type=float, default=500.0)
    sim.add_argument("--cy", type=float, default=505.0)
    sim.add_argument("--seed", type=int, default=0)

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        if args.cmd == "zhang":
            return _run_zhang(args)
        if args.cmd == "selfcalib":
            return _run_selfcalib(args)
        if args.cmd == "simulate":
            return _run_simulate(args)
    except CalibrationError as e:
        logger.error("%s", e)
        return 2

    raise AssertionError(f"unhandled cmd: {args.cmd}")


if __name__ == "__main__":
    raise SystemExit(main())
