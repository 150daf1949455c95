"""Two-pass contour extraction for one slice."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from polar_contour import config
from polar_contour.models import ContourConfig, ContourResult
from polar_contour.utils import cv_utils

from .shift import ShiftEstimate, find_shift
from .thresholds import get_dp1_th, get_dp2_th
from .workspace import CostShape, PolarWorkspace, RowRange


@dataclass(frozen=True)
class TwoPassResult:
    result: ContourResult
    shift: ShiftEstimate
    xa: float | None


def full_ranges(rows: int, cols: int) -> list[RowRange]:
    return [(0, cols) for _ in range(rows)]


def refine_ranges(contour: list[int], lower_backoff: int, bound: int, cols: int) -> list[RowRange]:
    return [(max(0, c - lower_backoff), min(c + bound, cols)) for c in contour]


def band_area(
    contour: list[int],
    bound: int,
    polar_shape: tuple[int, int],
    center: tuple[float, float],
    radius: float,
    canvas_shape: tuple[int, int],
) -> float:
    """Cartesian pixel count of the ``[contour, contour + bound)`` band."""
    ctr = np.asarray(contour, dtype=np.int64)
    band = cv_utils.fill_rows(polar_shape, ctr, ctr + bound)
    cart = cv_utils.from_polar(band, center, radius, canvas_shape)
    return float(np.sum(cart))


def run_two_pass(
    polar_image: NDArray[np.float32],
    polar_prob: NDArray[np.float32],
    polar_radius: float,
    cfg: ContourConfig,
    polar_center: tuple[float, float] | None = None,
    canvas_shape: tuple[int, int] | None = None,
) -> TwoPassResult:
    """
    Coarse pass over the probability map, then an optional refinement over
    the intensity image inside the band found around the coarse contour.

    ``xa`` (the band area) is only computed when both ``polar_center`` and
    ``canvas_shape`` are given.
    """
    ws = PolarWorkspace(polar_image, polar_prob, polar_radius)
    rows, cols = ws.shape

    th1 = get_dp1_th(polar_prob, cfg.margin1, cfg.th1)
    contour = ws.solve(
        full_ranges(rows, cols),
        th1,
        key="probability",
        shape=CostShape(
            nd=config.PASS1_NDISC,
            monotonic=False,
            smooth=cfg.smooth1,
            max_gap=cfg.gap,
            scost=config.PASS1_SCOST,
        ),
    )

    shift = find_shift(
        polar_image,
        contour,
        inner_margin=cfg.margin1,
        outer_margin=cfg.margin2,
        half_window=cfg.W,
        wctrpct=cfg.wctrpct,
        ctrpct=cfg.ctrpct,
        eth=cfg.eth,
        extra=cfg.extra,
    )
    bound = shift.bound

    xa = None
    if polar_center is not None and canvas_shape is not None:
        xa = band_area(contour, bound, (rows, cols), polar_center, polar_radius, canvas_shape)

    if not cfg.extend:
        return TwoPassResult(
            result=ContourResult(contour=contour, bound=bound, inner_offset=shift.inner_offset),
            shift=shift,
            xa=xa,
        )

    th2 = get_dp2_th(
        polar_image,
        contour,
        cfg.minus,
        bound,
        margin1=cfg.margin1,
        th2=cfg.th2,
        ctrpct=cfg.ctrpct,
        mink=cfg.mink,
        use_global=cfg.gth2,
    )
    refined = ws.solve(
        refine_ranges(contour, cfg.minus, bound, cols),
        th2,
        key="color",
        shape=CostShape(
            nd=cfg.ndisc,
            monotonic=True,
            smooth=cfg.smooth2,
            max_gap=cfg.gap,
            scost=cfg.scost2,
        ),
    )
    logger.debug("refined contour within bound {} (backoff {})", bound, cfg.minus)
    return TwoPassResult(
        result=ContourResult(
            contour=refined,
            initial_contour=contour,
            bound=bound,
            inner_offset=shift.inner_offset,
        ),
        shift=shift,
        xa=xa,
    )
