"""Tests for contour options and their validation."""

import json

import pytest
from pydantic import ValidationError

from polar_contour import config
from polar_contour.models import ContourConfig


def test_defaults_follow_module_constants():
    cfg = ContourConfig()
    assert cfg.margin1 == config.MARGIN1
    assert cfg.margin2 == config.MARGIN2
    assert cfg.th1 == config.TH1
    assert cfg.th2 == config.TH2
    assert cfg.gap == config.GAP
    assert cfg.ndisc == config.NDISC
    assert cfg.extend is True
    assert cfg.gth2 is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"margin1": 0},
        {"mink": 0},
        {"gap": -1},
        {"minus": -2},
        {"W": -1},
        {"ctrpct": 0.0},
        {"wctrpct": 1.5},
        {"W": 20, "margin1": 5, "margin2": 30},
    ],
)
def test_invalid_options_are_rejected(overrides):
    with pytest.raises(ValidationError):
        ContourConfig(**overrides)


def test_from_file_with_overrides(tmp_path):
    path = tmp_path / "contour.json"
    path.write_text(json.dumps({"gap": 3, "th1": 0.5, "extend": False}))
    cfg = ContourConfig.from_file(path, gap=4)
    assert cfg.gap == 4
    assert cfg.th1 == 0.5
    assert cfg.extend is False
    assert cfg.margin2 == config.MARGIN2


def test_from_file_requires_an_object(tmp_path):
    path = tmp_path / "contour.json"
    path.write_text("[1, 2, 3]")
    with pytest.raises(ValueError, match="JSON object"):
        ContourConfig.from_file(path)
