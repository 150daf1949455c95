"""Label mask and scalar measurements derived from a final contour."""

from __future__ import annotations

import cv2
import numpy as np
from loguru import logger
from numpy.typing import NDArray

from polar_contour import config
from polar_contour.models import (
    Box,
    ProcessingError,
    ProcessingStage,
    SliceMeasurements,
    SliceRecord,
)
from polar_contour.utils import cv_utils


def label_mask(record: SliceRecord, contour: list[int]) -> NDArray[np.float32]:
    """Cartesian label: every radius below the contour, per angle."""
    rows, cols = record.polar_image.shape
    ctr = np.asarray(contour, dtype=np.int64)
    polar = cv_utils.fill_rows((rows, cols), np.zeros_like(ctr), ctr)
    return cv_utils.from_polar(
        polar, record.polar_center, record.polar_radius, cv_utils.cartesian_shape(record)
    )


def _zero_denominator(record: SliceRecord, which: str, value: float) -> ProcessingError:
    logger.error("{}: {} pixel count is {}, using 1", record.path, which, value)
    return ProcessingError(
        stage=ProcessingStage.MEASURE,
        error_type="zero_denominator",
        recoverable=True,
        message=f"{which} pixel count is {value:g}; substituted with 1",
        details={"path": record.path, "region": which},
    )


def color_contrast(
    record: SliceRecord,
    label: NDArray[np.float32],
    polar_box: Box | None,
    ext: int = config.CONTRAST_EXT,
) -> tuple[float, list[ProcessingError]]:
    """
    Mean color inside the label minus the mean color of a ring ``ext``
    pixels wide around it, both taken within the label box grown by ``ext``.
    """
    warnings: list[ProcessingError] = []
    if record.image is None:
        warnings.append(
            ProcessingError(
                stage=ProcessingStage.MEASURE,
                error_type="no_cartesian_image",
                recoverable=True,
                message="Slice has no Cartesian image; color contrast set to 0",
                details={"path": record.path},
            )
        )
        return 0.0, warnings

    x, y, w, h = polar_box if polar_box is not None else (0, 0, 0, 0)
    grown = cv_utils.clip_box((x - ext, y - ext, w + 2 * ext, h + 2 * ext), label.shape[:2])
    if grown is None:
        return 0.0, warnings
    gx, gy, gw, gh = grown

    mask = (label[gy:gy + gh, gx:gx + gw] > 0).astype(np.uint8)
    color = record.image[gy:gy + gh, gx:gx + gw]

    cs1, ps1 = cv_utils.color_sum(color, mask)
    dilated = cv2.dilate(mask, np.ones((ext, ext), dtype=np.uint8))
    cs2, ps2 = cv_utils.color_sum(color, dilated)
    cs2 -= cs1
    ps2 -= ps1

    if ps1 <= 0:
        warnings.append(_zero_denominator(record, "inside", ps1))
        ps1 = 1.0
    if ps2 <= 0:
        warnings.append(_zero_denominator(record, "outside", ps2))
        ps2 = 1.0
    return cs1 / ps1 - cs2 / ps2, warnings


def measure_contour(
    record: SliceRecord,
    contour: list[int],
    xa: float | None = None,
) -> tuple[SliceMeasurements, NDArray[np.float32], list[ProcessingError]]:
    label = label_mask(record, contour)
    polar_box = cv_utils.bound_box(label)
    ccolor, warnings = color_contrast(record, label, polar_box)
    measurements = SliceMeasurements(
        area=float(np.sum(label)),
        xa=float(xa) if xa is not None else 0.0,
        ccolor=float(ccolor),
        pscore=cv_utils.box_score(label, polar_box),
        cscore=cv_utils.box_score(label, record.box),
        polar_box=polar_box,
    )
    return measurements, label, warnings
