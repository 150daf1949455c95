"""Polar workspace and dynamic-programming contour solver."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import numpy as np
from numpy.typing import NDArray

NO_PREDECESSOR = -1

CostKey = Literal["color", "probability"]
RowRange = tuple[int, int]


class ContourError(ValueError):
    """Fatal precondition failure inside a contour solve."""


@dataclass(frozen=True)
class CostShape:
    """Shape of the signed per-cell cost used by one solve."""

    nd: float = 1.0
    monotonic: bool = False
    smooth: float = 0.0
    max_gap: int = 0
    scost: float = 0.0


def row_deltas(
    values: NDArray[np.float64],
    threshold: float,
    nd: float,
    monotonic: bool,
) -> NDArray[np.float64]:
    """Signed local cost of each candidate cell of one row, in scan order.

    Below-threshold cells are scaled by ``nd``. With ``monotonic`` the
    sequence is clamped to never increase from left to right.
    """
    delta = np.asarray(values, dtype=np.float64) - float(threshold)
    delta = np.where(delta < 0.0, delta * nd, delta)
    if monotonic and delta.size:
        delta = np.minimum.accumulate(delta)
    return delta


def _distances(points: NDArray[np.float64], target: NDArray[np.float64]) -> NDArray[np.float64]:
    return np.sqrt(np.sum((points - target[None, :]) ** 2, axis=1))


class PolarWorkspace:
    """Dense ``rows x cols`` grid over a polar image pair.

    Row ``y`` is the angle ``2*pi*y/rows``, column ``x`` the radius
    ``x*radius/cols``. Cell state lives in parallel arrays indexed by
    ``[row, col]``.
    """

    def __init__(
        self,
        image: NDArray[np.float32],
        prob: NDArray[np.float32],
        polar_radius: float,
    ) -> None:
        image = np.asarray(image)
        prob = np.asarray(prob)
        if image.ndim != 2 or prob.ndim != 2:
            raise ContourError(
                f"workspace needs 2D images, got {image.shape} and {prob.shape}"
            )
        if image.shape != prob.shape:
            raise ContourError(
                f"intensity/probability size mismatch: {image.shape} vs {prob.shape}"
            )
        if not np.all(np.isfinite(image)) or not np.all(np.isfinite(prob)):
            raise ContourError("intensity/probability images contain non-finite values")
        if not float(polar_radius) > 0.0:
            raise ContourError(f"polar radius must be positive, got {polar_radius}")
        rows, cols = image.shape
        self.rows = int(rows)
        self.cols = int(cols)
        self.color = image.astype(np.float64)
        self.probability = prob.astype(np.float64)

        phi = 2.0 * np.pi * np.arange(rows, dtype=np.float64) / float(max(1, rows))
        rho = np.arange(cols, dtype=np.float64) * float(polar_radius) / float(max(1, cols))
        points = np.empty((rows, cols, 2), dtype=np.float64)
        points[:, :, 0] = rho[None, :] * np.cos(phi)[:, None]
        points[:, :, 1] = rho[None, :] * np.sin(phi)[:, None]
        points.setflags(write=False)
        self.points = points

        self.optimal = np.full((rows, cols), -np.inf, dtype=np.float64)
        self.predecessor = np.full((rows, cols), NO_PREDECESSOR, dtype=np.int32)
        self.closure_point = np.zeros((rows, cols, 2), dtype=np.float64)

    @property
    def shape(self) -> tuple[int, int]:
        return self.rows, self.cols

    def _values(self, key: CostKey) -> NDArray[np.float64]:
        return self.probability if key == "probability" else self.color

    def _reset(self) -> None:
        self.optimal.fill(-np.inf)
        self.predecessor.fill(NO_PREDECESSOR)
        self.closure_point.fill(0.0)

    def solve(
        self,
        ranges: list[RowRange],
        thresholds: list[float] | NDArray[np.float64],
        key: CostKey,
        shape: CostShape,
    ) -> list[int]:
        """Find the best-scoring contour, one column per row.

        ``ranges[y]`` is the half-open candidate interval of row ``y``.
        Transitions between adjacent rows move at most ``shape.max_gap``
        columns. The last row also pays the distance to the row-0 point the
        path started from, which stands in for closing the ring.
        """
        rows, cols = self.rows, self.cols
        th = np.asarray(thresholds, dtype=np.float64).reshape(-1)
        if th.size != rows:
            raise ContourError(f"threshold vector has {th.size} entries for {rows} rows")
        if len(ranges) != rows:
            raise ContourError(f"range list has {len(ranges)} entries for {rows} rows")
        bounded = [(max(0, int(lo)), min(cols, int(hi))) for lo, hi in ranges]

        self._reset()
        values = self._values(key)
        smooth = float(shape.smooth)
        max_gap = int(shape.max_gap)

        for y in range(rows):
            lo, hi = bounded[y]
            if hi <= lo:
                continue
            delta = row_deltas(values[y, lo:hi], th[y], shape.nd, shape.monotonic)
            acc = np.cumsum(delta - shape.scost)
            if y == 0:
                self.optimal[0, lo:hi] = acc
                continue

            plo, phi_ = bounded[y - 1]
            last_row = y + 1 == rows
            prev_opt = self.optimal[y - 1]
            prev_pts = self.points[y - 1]
            prev_closure = self.closure_point[y - 1]
            for i, x in enumerate(range(lo, hi)):
                lb = max(x - max_gap, plo)
                ub = min(x + max_gap + 1, phi_)
                if ub <= lb:
                    continue
                target = self.points[y, x]
                scores = prev_opt[lb:ub] + acc[i] - smooth * _distances(prev_pts[lb:ub], target)
                if last_row:
                    scores = scores - smooth * _distances(prev_closure[lb:ub], target)
                best = int(np.argmax(scores))
                best_score = float(scores[best])
                if best_score == -np.inf:
                    continue
                p = lb + best
                self.optimal[y, x] = best_score
                self.predecessor[y, x] = p
                if y == 1:
                    self.closure_point[y, x] = self.points[0, p]
                else:
                    self.closure_point[y, x] = prev_closure[p]

        return self._backtrack(bounded)

    def _backtrack(self, bounded: list[RowRange]) -> list[int]:
        last = self.rows - 1
        lo, hi = bounded[last]
        if hi <= lo:
            raise ContourError(f"row {last} has an empty candidate range")
        tail = self.optimal[last, lo:hi]
        best = int(np.argmax(tail))
        if tail[best] == -np.inf:
            raise ContourError(f"no reachable candidate in row {last} range [{lo}, {hi})")
        col = lo + best
        seg: list[int] = []
        for y in range(last, -1, -1):
            if col == NO_PREDECESSOR:
                raise ContourError(f"backtrack lost the path at row {y}")
            seg.append(col)
            col = int(self.predecessor[y, col])
        seg.reverse()
        return seg
