from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, field_validator

Box = tuple[int, int, int, int]


class SliceRecord(BaseModel):
    """One image slice as handed over by the loader.

    Images are 2D float32 arrays. ``polar_image``/``polar_prob`` are
    resampled around ``polar_center`` with radius ``polar_radius``:
    rows are angles, columns are radii.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    path: str
    image: Any = None
    polar_image: Any = None
    polar_prob: Any = None
    polar_center: tuple[float, float] = (0.0, 0.0)
    polar_radius: float = 0.0
    box: Box | None = None

    @field_validator("image", "polar_image", "polar_prob", mode="before")
    @classmethod
    def _as_float_image(cls, value: object) -> object:
        if value is None:
            return None
        arr = np.asarray(value, dtype=np.float32)
        if arr.ndim != 2:
            raise ValueError(f"expected a 2D single-channel image, got shape {arr.shape}")
        return arr


class ContourResult(BaseModel):
    contour: list[int]
    initial_contour: list[int] | None = None
    bound: int | None = None
    inner_offset: int | None = None


class SliceMeasurements(BaseModel):
    area: float = 0.0
    xa: float = 0.0
    ccolor: float = 0.0
    pscore: float = 0.0
    cscore: float = 0.0
    polar_box: Box | None = None
