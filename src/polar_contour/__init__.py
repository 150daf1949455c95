"""Polar dynamic-programming contour extraction for radially resampled slices."""

__version__ = "0.1.0"
