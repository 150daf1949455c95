"""End-to-end tests of the per-slice LangGraph pipeline."""

import math

import numpy as np
import pytest

from polar_contour.models import ContourConfig, ProcessingStage, SliceRecord
from polar_contour.pipeline import run_slice
from polar_contour.utils.detector import DetectorCache
from tests.synthetic import CountingFactory, FailingDetector, polar_slice

ROWS, COLS = 64, 40


@pytest.fixture
def cfg():
    return ContourConfig(smooth1=0.1, smooth2=0.1, mink=1)


def _error_types(state):
    return [e.error_type for e in state.errors]


def test_slice_with_probability_map(cfg):
    state = run_slice(polar_slice(), cfg)
    assert state.contour is not None
    assert state.contour.contour == [19] * ROWS
    assert state.contour.bound == 11
    m = state.measurements
    assert m.area == pytest.approx(math.pi * 18.5**2, rel=0.1)
    assert m.xa == pytest.approx(math.pi * (30.0**2 - 19.0**2), rel=0.1)
    assert m.pscore == pytest.approx(1.0)
    # polar-only slices have nothing to compute color contrast on
    assert _error_types(state) == ["no_cartesian_image"]
    assert all(e.recoverable for e in state.errors)


def test_detector_fills_in_missing_map(cfg):
    factory = CountingFactory()
    detectors = DetectorCache(factory)
    for _ in range(2):
        state = run_slice(
            polar_slice(with_prob=False), cfg, detector_name="edge", detectors=detectors
        )
        assert state.contour.contour == [19] * ROWS
        assert state.polar_prob is not None
    assert factory.built == ["edge"]
    assert "edge" in detectors


def test_missing_map_without_detector_reports_zero_area(cfg):
    state = run_slice(polar_slice(with_prob=False), cfg, detector_name="edge")
    assert state.skipped
    assert state.contour is None
    assert state.measurements.area == 0.0
    assert _error_types(state) == ["missing_probability_map"]
    assert state.errors[0].recoverable


def test_missing_map_without_detector_name(cfg):
    state = run_slice(polar_slice(with_prob=False), cfg)
    assert state.skipped
    assert state.measurements.area == 0.0


def test_detector_failure_is_fatal_for_the_slice(cfg):
    detectors = DetectorCache(CountingFactory(FailingDetector))
    state = run_slice(polar_slice(with_prob=False), cfg, detector_name="broken", detectors=detectors)
    assert _error_types(state) == ["detector_failed"]
    assert state.errors[0].stage == ProcessingStage.DETECT
    assert not state.errors[0].recoverable
    assert state.contour is None
    assert state.measurements is None


def test_size_mismatch_names_the_slice(cfg):
    record = SliceRecord(
        path="series/slice_07.npz",
        polar_image=np.zeros((ROWS, COLS), np.float32),
        polar_prob=np.zeros((ROWS, COLS - 2), np.float32),
        polar_center=(40.0, 40.0),
        polar_radius=40.0,
    )
    state = run_slice(record, cfg)
    assert _error_types(state) == ["contour_failed"]
    err = state.errors[0]
    assert err.stage == ProcessingStage.CONTOUR
    assert not err.recoverable
    assert "series/slice_07.npz" in err.message
    assert err.details["path"] == "series/slice_07.npz"
    assert state.measurements is None


def test_slice_without_polar_radius_is_rejected(cfg):
    record = polar_slice()
    record = SliceRecord(
        path="s/r0.npz",
        polar_image=record.polar_image,
        polar_prob=record.polar_prob,
    )
    state = run_slice(record, cfg)
    assert _error_types(state) == ["contour_failed"]
    err = state.errors[0]
    assert not err.recoverable
    assert "polar radius" in err.message
    assert err.details["path"] == "s/r0.npz"
    assert state.measurements is None


def test_nan_in_probability_map_is_rejected(cfg):
    record = polar_slice(path="s/nan.npz")
    prob = record.polar_prob.copy()
    prob[3, 2] = np.nan
    state = run_slice(record.model_copy(update={"polar_prob": prob}), cfg)
    assert _error_types(state) == ["contour_failed"]
    assert "non-finite" in state.errors[0].message
    assert state.contour is None


def test_missing_polar_image_stops_at_detection(cfg):
    state = run_slice(SliceRecord(path="empty.npz"), cfg)
    assert _error_types(state) == ["missing_polar_image"]
    assert state.contour is None


def test_default_config_is_used_when_none_given():
    state = run_slice(polar_slice())
    assert state.config == ContourConfig()
    assert state.contour is not None
    assert len(state.contour.contour) == ROWS
