"""Overlay rendering for contour review."""

from __future__ import annotations

import cv2
import numpy as np
from numpy.typing import NDArray

from polar_contour import config
from polar_contour.models import ContourResult, SliceRecord
from polar_contour.utils import cv_utils


def _draw_polyline(canvas: NDArray[np.float32], xs: list[int], thickness: int) -> None:
    for i in range(1, len(xs)):
        cv2.line(
            canvas,
            (int(xs[i - 1]), i - 1),
            (int(xs[i]), i),
            config.OVERLAY_LINE_VALUE,
            thickness,
        )


def _pad_rows(image: NDArray[np.float32], rows: int) -> NDArray[np.float32]:
    if image.shape[0] >= rows:
        return image
    pad = np.zeros((rows - image.shape[0], image.shape[1]), dtype=np.float32)
    return np.vstack([image, pad])


def render_overlay(
    record: SliceRecord,
    result: ContourResult,
    polar_prob: NDArray[np.float32] | None = None,
) -> NDArray[np.uint8]:
    """Polar image, scaled probability and Cartesian image, side by side,
    with the final contour (thick) and the refinement band (thin) drawn on.
    """
    polar = np.asarray(record.polar_image, dtype=np.float32)
    vis = np.zeros_like(polar)
    _draw_polyline(vis, result.contour, 2)
    if result.initial_contour is not None and result.bound is not None:
        _draw_polyline(vis, result.initial_contour, 1)
        _draw_polyline(vis, [c + result.bound for c in result.initial_contour], 1)

    shape = cv_utils.cartesian_shape(record)
    vis_cart = cv_utils.from_polar(
        vis, record.polar_center, record.polar_radius, shape, interpolation=cv2.INTER_LINEAR
    )
    cart = record.image if record.image is not None else np.zeros(shape, dtype=np.float32)
    prob = polar_prob if polar_prob is not None else record.polar_prob
    if prob is None:
        prob = np.zeros_like(polar)

    panels = [polar + vis, prob * config.OVERLAY_PROB_SCALE + vis, cart + vis_cart]
    rows = max(p.shape[0] for p in panels)
    stacked = np.hstack([_pad_rows(p.astype(np.float32), rows) for p in panels])
    return np.clip(stacked, 0, 255).astype(np.uint8)
