"""Polar dynamic-programming contour extraction.

A coarse pass traces the detector probability map over the full radial
range; a refinement pass re-traces the intensity image inside a band
estimated around the coarse contour.
"""

from __future__ import annotations

from .controller import TwoPassResult, band_area, full_ranges, refine_ranges, run_two_pass
from .debug import render_overlay
from .measure import color_contrast, label_mask, measure_contour
from .shift import ShiftEstimate, find_shift
from .thresholds import contour_avg, get_dp1_th, get_dp2_th
from .workspace import (
    NO_PREDECESSOR,
    ContourError,
    CostShape,
    PolarWorkspace,
    row_deltas,
)

__all__ = [
    "NO_PREDECESSOR",
    "ContourError",
    "CostShape",
    "PolarWorkspace",
    "ShiftEstimate",
    "TwoPassResult",
    "band_area",
    "color_contrast",
    "contour_avg",
    "find_shift",
    "full_ranges",
    "get_dp1_th",
    "get_dp2_th",
    "label_mask",
    "measure_contour",
    "refine_ranges",
    "render_overlay",
    "row_deltas",
    "run_two_pass",
]
