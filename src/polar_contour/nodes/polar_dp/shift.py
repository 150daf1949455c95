"""Radial search band estimation around a pass 1 contour."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from .thresholds import contour_avg


@dataclass(frozen=True)
class ShiftEstimate:
    """Band for the refinement pass.

    Profiles are indexed by ``offset + inner_margin`` over the swept
    offsets ``[-inner_margin, outer_margin]``.
    """

    bound: int
    inner_offset: int
    white: NDArray[np.float64]
    black: NDArray[np.float64]
    sigma: NDArray[np.float64]
    grad: NDArray[np.float64]


def find_shift(
    image: NDArray[np.float32],
    contour: list[int],
    *,
    inner_margin: int,
    outer_margin: int,
    half_window: int,
    wctrpct: float,
    ctrpct: float,
    eth: float,
    extra: int,
) -> ShiftEstimate:
    l1 = int(inner_margin)
    size = l1 + int(outer_margin) + 1
    white = np.empty((size,), dtype=np.float64)
    black = np.empty((size,), dtype=np.float64)
    sigma = np.empty((size,), dtype=np.float64)
    for i in range(size):
        delta = i - l1
        white[i], _ = contour_avg(image, contour, delta, wctrpct, -1)
        black[i], sigma[i] = contour_avg(image, contour, delta, ctrpct, 1)

    # white -> black transition: brightest inside, darkest outside
    w = int(half_window)
    grad = np.zeros((size,), dtype=np.float64)
    p1 = 0
    for i in range(w, size - w):
        grad[i] = white[i - w] - black[i + w]
        if grad[i] > grad[p1]:
            p1 = i
    inner_offset = p1 + w - l1

    # deepest black at or beyond the transition, then ride the plateau
    p2 = max(p1, l1)
    for i in range(p2, size):
        if sigma[i] < sigma[p2]:
            p2 = i
    max_sigma = sigma[p2] + eth
    while p2 + 1 < size and sigma[p2 + 1] <= max_sigma:
        p2 += 1

    bound = max(0, p2 + 1 - l1 + int(extra))
    logger.debug("shift: transition={} plateau_end={} bound={}", p1, p2, bound)
    return ShiftEstimate(
        bound=bound,
        inner_offset=inner_offset,
        white=white,
        black=black,
        sigma=sigma,
        grad=grad,
    )
