import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from polar_contour import config

from .processing import ProcessingError
from .slice import ContourResult, SliceMeasurements, SliceRecord


class ContourConfig(BaseModel):
    margin1: int = config.MARGIN1
    margin2: int = config.MARGIN2
    th1: float = config.TH1
    th2: float = config.TH2
    smooth1: float = config.SMOOTH1
    smooth2: float = config.SMOOTH2
    gap: int = config.GAP
    extra: int = config.EXTRA
    minus: int = config.MINUS
    eth: float = config.ETH
    extend: bool = config.EXTEND
    ndisc: float = config.NDISC
    wctrpct: float = config.WCTRPCT
    ctrpct: float = config.CTRPCT
    mink: int = config.MINK
    W: int = config.W
    scost2: float = config.SCOST2
    gth2: bool = config.GTH2

    @field_validator("margin1", "mink")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    @field_validator("margin2", "gap", "minus", "W")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("wctrpct", "ctrpct")
    @classmethod
    def _coverage_fraction(cls, value: float) -> float:
        if not 0.0 < value <= 1.0:
            raise ValueError("coverage fraction must be in (0, 1]")
        return value

    @model_validator(mode="after")
    def _window_fits_sweep(self) -> "ContourConfig":
        if 2 * self.W >= self.margin1 + self.margin2 + 1:
            raise ValueError("W is too wide for the margin1 + margin2 sweep")
        return self

    @classmethod
    def from_file(cls, path: str | Path, **overrides: Any) -> "ContourConfig":
        """Load options from a JSON object file; keyword overrides win."""
        data = json.loads(Path(path).read_text())
        if not isinstance(data, dict):
            raise ValueError(f"config file must hold a JSON object: {path}")
        data.update(overrides)
        return cls.model_validate(data)


class SliceState(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    record: SliceRecord
    config: ContourConfig = ContourConfig()
    detector_name: str | None = None

    polar_prob: Any = None
    skipped: bool = False

    contour: ContourResult | None = None
    xa: float | None = None
    measurements: SliceMeasurements | None = None

    errors: list[ProcessingError] = []
