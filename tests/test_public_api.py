from __future__ import annotations


def test_public_api_exports() -> None:
    import camcalib as cc

    assert hasattr(cc, "CalibrationPlanarGridZhang99")
    assert hasattr(cc, "SelfCalibrationTwoProjectives")
    assert hasattr(cc, "SolverStrategy")
    assert hasattr(cc, "load_calibration")
    assert hasattr(cc.api, "load_quadric")
    assert hasattr(cc, "save_calibration")
    assert hasattr(cc, "save_self_calibration")
    assert cc.SolverStrategy("newton") is cc.SolverStrategy.NEWTON
