"""Row thresholds for the two DP passes."""

from __future__ import annotations

import cv2
import numpy as np
from loguru import logger
from numpy.typing import NDArray

from .workspace import ContourError


def _edge_means(image: NDArray[np.float32], margin: int) -> tuple[float, float]:
    cols = image.shape[1]
    margin = max(1, min(int(margin), cols))
    big_mean = float(np.mean(image[:, :margin]))
    small_mean = float(np.mean(image[:, cols - margin:]))
    return big_mean, small_mean


def get_dp1_th(prob: NDArray[np.float32], margin1: int, th1: float) -> NDArray[np.float64]:
    """Global pass 1 threshold, broadcast to every row.

    The near-radius band is expected to be bright and the far-radius band
    dark; without that ordering there is no transition to split and the
    larger mean is used as is.
    """
    prob = np.asarray(prob, dtype=np.float32)
    big_mean, small_mean = _edge_means(prob, margin1)
    if not small_mean < big_mean:
        th = max(small_mean, big_mean)
    else:
        th = small_mean + (big_mean - small_mean) * th1
    logger.debug("pass1 threshold {:.4f} (big={:.4f}, small={:.4f})", th, big_mean, small_mean)
    return np.full((prob.shape[0],), th, dtype=np.float64)


def _sample_along(
    image: NDArray[np.float32],
    contour: list[int] | NDArray[np.int64],
    delta: int,
) -> NDArray[np.float64]:
    ctr = np.asarray(contour, dtype=np.int64)
    if ctr.shape[0] != image.shape[0]:
        raise ContourError(
            f"contour has {ctr.shape[0]} entries for an image with {image.shape[0]} rows"
        )
    cols = np.clip(ctr + int(delta), 0, image.shape[1] - 1)
    return image[np.arange(image.shape[0]), cols].astype(np.float64)


def contour_avg(
    image: NDArray[np.float32],
    contour: list[int] | NDArray[np.int64],
    delta: int,
    pct: float,
    sign: int,
) -> tuple[float, float]:
    """Mean and standard deviation of pixels ``delta`` columns off the contour.

    With ``pct < 1`` only the best circular run of ``int(rows * pct)`` rows
    is kept: the darkest run for ``sign > 0``, the brightest for
    ``sign < 0``. The run may wrap from the last row back to row 0.
    """
    values = _sample_along(np.asarray(image), contour, delta)
    n = values.shape[0]
    target = min(int(n * pct), n)
    if target * 2 <= n:
        raise ContourError(f"coverage {pct} keeps {target} of {n} rows, need more than half")

    window = values
    if target < n:
        doubled = np.concatenate([values, values])
        csum = np.concatenate([[0.0], np.cumsum(doubled)])
        sums = csum[target:target + n] - csum[:n]
        begin = int(np.argmin(sums * float(sign)))
        window = doubled[begin:begin + target]
    return float(np.mean(window)), float(np.std(window))


def get_dp2_th(
    image: NDArray[np.float32],
    contour: list[int] | NDArray[np.int64],
    lower_backoff: int,
    bound: int,
    *,
    margin1: int,
    th2: float,
    ctrpct: float,
    mink: int,
    use_global: bool = False,
) -> NDArray[np.float64]:
    """Pass 2 thresholds relative to the pass 1 contour.

    Per row, the darkest (eroded) pixel within ``[-lower_backoff, bound)``
    of the contour sets the low end; the near-radius band mean is the high
    end. ``use_global`` replaces the per-row minimum by the darkest
    contour average over the same offsets.
    """
    image = np.asarray(image, dtype=np.float32)
    rows = image.shape[0]
    big_mean, _ = _edge_means(image, margin1)
    offsets = np.arange(-int(lower_backoff), int(bound), dtype=np.int64)

    if use_global:
        small_mean = big_mean
        for delta in offsets:
            avg, _ = contour_avg(image, contour, int(delta), ctrpct, 1)
            small_mean = min(small_mean, avg)
        th = small_mean + (big_mean - small_mean) * th2
        logger.debug("pass2 global threshold {:.4f}", th)
        return np.full((rows,), th, dtype=np.float64)

    ctr = np.asarray(contour, dtype=np.int64)
    if ctr.shape[0] != rows:
        raise ContourError(f"contour has {ctr.shape[0]} entries for {rows} rows")
    kernel = np.ones((mink, mink), dtype=np.uint8)
    eroded = cv2.erode(image, kernel)
    small = np.full((rows,), big_mean, dtype=np.float64)
    if offsets.size:
        cols = np.clip(ctr[:, None] + offsets[None, :], 0, image.shape[1] - 1)
        local = eroded[np.arange(rows)[:, None], cols].astype(np.float64)
        small = np.minimum(small, local.min(axis=1))
    return small + (big_mean - small) * th2
