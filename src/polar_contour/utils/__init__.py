"""Utility modules for polar-contour."""

from polar_contour.utils.cv_utils import (
    # Type aliases
    FloatImage,
    Image,
    # Mask statistics
    bound_box,
    box_score,
    cartesian_shape,
    clip_box,
    color_sum,
    fill_rows,
    # Polar resampling
    from_polar,
    # Slice I/O
    load_slice,
    save_image,
    save_slice,
    to_polar,
)
from polar_contour.utils.detector import Detector, DetectorCache, DetectorFactory, load_factory

__all__ = [
    # Type aliases
    "Image",
    "FloatImage",
    # Slice I/O
    "load_slice",
    "save_slice",
    "save_image",
    # Polar resampling
    "to_polar",
    "from_polar",
    "cartesian_shape",
    "fill_rows",
    # Mask statistics
    "bound_box",
    "clip_box",
    "box_score",
    "color_sum",
    # Detectors
    "Detector",
    "DetectorCache",
    "DetectorFactory",
    "load_factory",
]
