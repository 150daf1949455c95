"""Tests for the polar-contour command line."""

import json

import numpy as np
import pytest
from click.testing import CliRunner

from polar_contour.cli import main
from polar_contour.models import SliceRecord
from polar_contour.utils import cv_utils
from tests.synthetic import polar_slice

ROWS = 64
FAST = ["--set", "smooth1=0.1", "--set", "smooth2=0.1", "--set", "mink=1", "--max-workers", "1"]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def good_slice(tmp_path):
    return cv_utils.save_slice(polar_slice(), tmp_path / "in" / "good.npz")


def test_writes_one_json_per_slice(runner, tmp_path, good_slice):
    out = tmp_path / "out"
    result = runner.invoke(main, [str(good_slice), "--output-dir", str(out), *FAST])
    assert result.exit_code == 0, result.output
    assert "Processed 1 slices: 1 success, 0 failed" in result.output

    payload = json.loads((out / "good.json").read_text())
    assert payload["path"] == str(good_slice)
    assert payload["contour"]["contour"] == [19] * ROWS
    assert payload["contour"]["bound"] == 11
    assert payload["measurements"]["area"] > 0
    assert [e["error_type"] for e in payload["errors"]] == ["no_cartesian_image"]


def test_same_file_name_in_two_series(runner, tmp_path):
    first = cv_utils.save_slice(polar_slice(edge=20), tmp_path / "in" / "series_a" / "slice.npz")
    second = cv_utils.save_slice(polar_slice(edge=15), tmp_path / "in" / "series_b" / "slice.npz")
    out = tmp_path / "out"
    overlays = tmp_path / "overlays"
    result = runner.invoke(
        main,
        [str(first), str(second), "--output-dir", str(out), "--overlay-dir", str(overlays), *FAST],
    )
    assert result.exit_code == 0, result.output
    a = json.loads((out / "series_a__slice.json").read_text())
    b = json.loads((out / "series_b__slice.json").read_text())
    assert a["contour"]["contour"] == [19] * ROWS
    assert b["contour"]["contour"] == [14] * ROWS
    assert not (out / "slice.json").exists()
    assert (overlays / "series_a__slice.png").exists()
    assert (overlays / "series_b__slice.png").exists()


def test_failed_slice_sets_exit_code(runner, tmp_path, good_slice):
    bad = SliceRecord(
        path="bad",
        polar_image=np.zeros((ROWS, 40), np.float32),
        polar_prob=np.zeros((ROWS, 39), np.float32),
    )
    bad_path = cv_utils.save_slice(bad, tmp_path / "in" / "bad.npz")
    out = tmp_path / "out"
    result = runner.invoke(main, [str(good_slice), str(bad_path), "--output-dir", str(out), *FAST])
    assert result.exit_code == 1
    assert "1 success, 1 failed" in result.output
    payload = json.loads((out / "bad.json").read_text())
    assert payload["measurements"] is None
    assert payload["errors"][0]["error_type"] == "contour_failed"


def test_config_file_and_overrides(runner, tmp_path, good_slice):
    conf = tmp_path / "contour.json"
    conf.write_text(json.dumps({"smooth1": 0.1, "extend": False}))
    out = tmp_path / "out"
    result = runner.invoke(
        main,
        [str(good_slice), "--output-dir", str(out), "--config", str(conf), "--set", "mink=1"],
    )
    assert result.exit_code == 0, result.output
    payload = json.loads((out / "good.json").read_text())
    assert payload["contour"]["initial_contour"] is None


def test_invalid_option_is_reported(runner, tmp_path, good_slice):
    result = runner.invoke(main, [str(good_slice), "--output-dir", str(tmp_path), "--set", "gap=-1"])
    assert result.exit_code == 1
    assert "invalid contour options" in result.output


def test_malformed_override_is_reported(runner, tmp_path, good_slice):
    result = runner.invoke(main, [str(good_slice), "--output-dir", str(tmp_path), "--set", "gap"])
    assert result.exit_code != 0


def test_no_slices(runner):
    result = runner.invoke(main, [])
    assert result.exit_code == 1
    assert "No input slices" in result.output


def test_detector_factory_and_overlays(runner, tmp_path):
    src = cv_utils.save_slice(polar_slice(with_prob=False), tmp_path / "in" / "raw.npz")
    out = tmp_path / "out"
    overlays = tmp_path / "overlays"
    result = runner.invoke(
        main,
        [
            str(src),
            "--output-dir",
            str(out),
            "--detector",
            "edge",
            "--detector-factory",
            "tests.synthetic.detectors:EdgeDetector",
            "--overlay-dir",
            str(overlays),
            *FAST,
        ],
    )
    assert result.exit_code == 0, result.output
    payload = json.loads((out / "raw.json").read_text())
    assert payload["contour"]["contour"] == [19] * ROWS
    assert (overlays / "raw.png").exists()


def test_unknown_detector_factory(runner, tmp_path, good_slice):
    result = runner.invoke(
        main, [str(good_slice), "--output-dir", str(tmp_path), "--detector-factory", "nowhere:nothing"]
    )
    assert result.exit_code == 1
    assert "cannot load detector factory" in result.output
