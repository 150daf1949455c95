"""Synthetic polar image generation.

Polar images are built directly (rows = angle, cols = radius) so that the
boundary column is known exactly; ``disc_slice`` goes through the Cartesian
side for measurement tests.
"""

from __future__ import annotations

import cv2
import numpy as np
from numpy.typing import NDArray

from polar_contour.models import SliceRecord
from polar_contour.utils import cv_utils

BRIGHT = 200.0
DARK = 20.0


def step_polar(
    rows: int,
    cols: int,
    edge: int | list[int] | NDArray[np.int64],
    bright: float = 1.0,
    dark: float = 0.0,
) -> NDArray[np.float32]:
    """``bright`` for columns left of ``edge[y]``, ``dark`` from it on."""
    edges = np.broadcast_to(np.asarray(edge, dtype=np.int64), (rows,))
    x = np.arange(cols)[None, :]
    return np.where(x < edges[:, None], bright, dark).astype(np.float32)


def banded_polar(
    rows: int,
    cols: int,
    edge: int,
    noisy_from: int,
    noise_high: float = 100.0,
) -> NDArray[np.float32]:
    """Bright cavity, flat dark wall, then a row-alternating textured tail."""
    image = step_polar(rows, cols, edge, bright=BRIGHT, dark=DARK)
    tail = np.where(np.arange(rows) % 2 == 0, 0.0, noise_high).astype(np.float32)
    image[:, noisy_from:] = tail[:, None]
    return image


def polar_slice(
    rows: int = 64,
    cols: int = 40,
    edge: int = 20,
    noisy_from: int = 30,
    path: str = "synthetic/polar.npz",
    with_prob: bool = True,
) -> SliceRecord:
    """Polar-first slice; the Cartesian canvas is implied by center and radius."""
    polar_image = banded_polar(rows, cols, edge, noisy_from)
    polar_prob = step_polar(rows, cols, edge) if with_prob else None
    radius = float(cols)
    return SliceRecord(
        path=path,
        polar_image=polar_image,
        polar_prob=polar_prob,
        polar_center=(radius, radius),
        polar_radius=radius,
    )


def disc_slice(
    size: int = 101,
    disc_radius: int = 20,
    polar_radius: float = 40.0,
    rows: int = 64,
    cols: int = 40,
    path: str = "synthetic/disc.npz",
    box: tuple[int, int, int, int] | None = None,
) -> SliceRecord:
    """Bright disc on a dark background, resampled around its own center."""
    center = (size // 2, size // 2)
    image = np.full((size, size), DARK, dtype=np.float32)
    cv2.circle(image, center, disc_radius, BRIGHT, -1)
    prob = np.zeros((size, size), dtype=np.float32)
    cv2.circle(prob, center, disc_radius, 1.0, -1)

    c = (float(center[0]), float(center[1]))
    return SliceRecord(
        path=path,
        image=image,
        polar_image=cv_utils.to_polar(image, c, polar_radius, size=(cols, rows)),
        polar_prob=cv_utils.to_polar(prob, c, polar_radius, size=(cols, rows)),
        polar_center=c,
        polar_radius=polar_radius,
        box=box,
    )
