"""Synthetic polar slices with known ground truth.

Usage:
    from tests.synthetic import step_polar, polar_slice, disc_slice
"""

from .data_gen import (
    BRIGHT,
    DARK,
    banded_polar,
    disc_slice,
    polar_slice,
    step_polar,
)
from .detectors import CountingFactory, EdgeDetector, FailingDetector

__all__ = [
    "BRIGHT",
    "DARK",
    "banded_polar",
    "disc_slice",
    "polar_slice",
    "step_polar",
    "CountingFactory",
    "EdgeDetector",
    "FailingDetector",
]
