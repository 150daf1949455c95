"""
OpenCV utility functions for the polar contour pipeline.

This module provides reusable helpers for:
- Slice archive I/O with validation
- Polar resampling (forward and inverse)
- Mask statistics (bounding box, box score, masked color sums)

I/O functions follow the Result | ProcessingError pattern for error handling.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, TypeAlias

import cv2
import numpy as np
from numpy.typing import NDArray
from pydantic import ValidationError

from polar_contour.models import Box, ProcessingError, ProcessingStage, SliceRecord

# =============================================================================
# TYPE ALIASES
# =============================================================================

# Use Any for dtype to avoid MatLike compatibility issues with OpenCV
Image: TypeAlias = NDArray[Any]
FloatImage: TypeAlias = NDArray[np.float32]

_REQUIRED_KEYS = ("polar_image",)


# =============================================================================
# SECTION 1: SLICE I/O
# =============================================================================


def load_slice(
    path: str | Path,
    stage: ProcessingStage = ProcessingStage.INPUT,
) -> SliceRecord | ProcessingError:
    """
    Load a slice archive (``.npz``) from disk.

    Recognised keys: ``image``, ``polar_image``, ``polar_prob``,
    ``polar_center`` (x, y), ``polar_radius`` and ``box`` (x, y, w, h).
    Only ``polar_image`` is mandatory.

    Args:
        path: Path to the archive
        stage: Processing stage for error reporting

    Returns:
        SliceRecord or ProcessingError
    """
    path = Path(path)

    if not path.exists():
        return ProcessingError(
            stage=stage,
            error_type="file_not_found",
            recoverable=False,
            message=f"Slice file not found: {path}",
            details={"path": str(path)},
        )

    try:
        with np.load(path, allow_pickle=False) as archive:
            data = {key: archive[key] for key in archive.files}
    except PermissionError:
        return ProcessingError(
            stage=stage,
            error_type="permission_denied",
            recoverable=False,
            message=f"Permission denied reading: {path}",
            details={"path": str(path)},
        )
    except (OSError, ValueError) as e:
        return ProcessingError(
            stage=stage,
            error_type="io_error",
            recoverable=False,
            message=f"Error reading slice archive: {e}",
            details={"path": str(path), "error": str(e)},
        )

    missing = [key for key in _REQUIRED_KEYS if key not in data]
    if missing:
        return ProcessingError(
            stage=stage,
            error_type="missing_keys",
            recoverable=False,
            message=f"Slice archive lacks {', '.join(missing)}: {path}",
            details={"path": str(path), "missing": missing},
        )

    fields: dict[str, Any] = {
        "path": str(path),
        "image": data.get("image"),
        "polar_image": data["polar_image"],
        "polar_prob": data.get("polar_prob"),
    }
    if "polar_center" in data:
        cx, cy = (float(v) for v in np.asarray(data["polar_center"]).reshape(-1)[:2])
        fields["polar_center"] = (cx, cy)
    if "polar_radius" in data:
        fields["polar_radius"] = float(np.asarray(data["polar_radius"]).reshape(-1)[0])
    if "box" in data:
        fields["box"] = tuple(int(v) for v in np.asarray(data["box"]).reshape(-1)[:4])

    try:
        return SliceRecord(**fields)
    except ValidationError as e:
        return ProcessingError(
            stage=stage,
            error_type="invalid_slice",
            recoverable=False,
            message=f"Invalid slice archive {path}: {e.errors()[0]['msg']}",
            details={"path": str(path), "error": str(e)},
        )


def save_slice(record: SliceRecord, path: str | Path) -> Path | ProcessingError:
    """Write a slice archive readable by ``load_slice``."""
    path = Path(path)
    arrays: dict[str, Any] = {
        "polar_center": np.asarray(record.polar_center, dtype=np.float32),
        "polar_radius": np.asarray(record.polar_radius, dtype=np.float32),
    }
    for key in ("image", "polar_image", "polar_prob"):
        value = getattr(record, key)
        if value is not None:
            arrays[key] = value
    if record.box is not None:
        arrays["box"] = np.asarray(record.box, dtype=np.int32)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        np.savez_compressed(path, **arrays)
    except OSError as e:
        return ProcessingError(
            stage=ProcessingStage.INPUT,
            error_type="io_error",
            recoverable=False,
            message=f"Error writing slice archive: {e}",
            details={"path": str(path), "error": str(e)},
        )
    return path


def save_image(
    image: Image,
    path: str | Path,
    stage: ProcessingStage = ProcessingStage.MEASURE,
) -> Path | ProcessingError:
    """
    Save an image to disk.

    Args:
        image: Image to save
        path: Output path
        stage: Processing stage for error reporting

    Returns:
        Path to saved file or ProcessingError
    """
    path = Path(path)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        success = cv2.imwrite(str(path), image)
        if not success:
            return ProcessingError(
                stage=stage,
                error_type="imwrite_failed",
                recoverable=True,
                message=f"Failed to write image: {path}",
                details={"path": str(path)},
            )
        return path
    except (OSError, cv2.error) as e:
        return ProcessingError(
            stage=stage,
            error_type="io_error",
            recoverable=True,
            message=f"Error writing image: {e}",
            details={"path": str(path), "error": str(e)},
        )


# =============================================================================
# SECTION 2: POLAR RESAMPLING
# =============================================================================


def to_polar(
    image: Image,
    center: tuple[float, float],
    radius: float,
    size: tuple[int, int] | None = None,
) -> FloatImage:
    """
    Resample a Cartesian image to polar coordinates.

    Args:
        image: Single-channel Cartesian image
        center: (x, y) pole
        radius: Largest radius covered by the last column
        size: (cols, rows) of the polar image; defaults to the input size

    Returns:
        float32 polar image, rows = angle, cols = radius
    """
    src = np.asarray(image, dtype=np.float32)
    if size is None:
        size = (src.shape[1], src.shape[0])
    return cv2.warpPolar(
        src,
        size,
        (float(center[0]), float(center[1])),
        float(radius),
        cv2.INTER_LINEAR + cv2.WARP_FILL_OUTLIERS,
    )


def from_polar(
    polar: Image,
    center: tuple[float, float],
    radius: float,
    shape: tuple[int, int],
    interpolation: int = cv2.INTER_NEAREST,
) -> FloatImage:
    """
    Map a polar image back onto a Cartesian canvas of ``shape`` (rows, cols).
    """
    src = np.asarray(polar, dtype=np.float32)
    rows, cols = shape
    return cv2.warpPolar(
        src,
        (int(cols), int(rows)),
        (float(center[0]), float(center[1])),
        float(radius),
        interpolation + cv2.WARP_FILL_OUTLIERS + cv2.WARP_INVERSE_MAP,
    )


def cartesian_shape(record: SliceRecord) -> tuple[int, int]:
    """Canvas (rows, cols) that polar results are mapped back onto."""
    if record.image is not None:
        rows, cols = record.image.shape
        return int(rows), int(cols)
    cx, cy = record.polar_center
    r = float(record.polar_radius)
    return int(math.ceil(cy + r)) + 1, int(math.ceil(cx + r)) + 1


def fill_rows(
    shape: tuple[int, int],
    lower: list[int] | NDArray[np.int64],
    upper: list[int] | NDArray[np.int64],
) -> FloatImage:
    """Polar mask with ones in ``[lower[y], upper[y])`` of each row."""
    rows, cols = shape
    x = np.arange(cols)[None, :]
    lo = np.clip(np.asarray(lower, dtype=np.int64), 0, cols)[:, None]
    hi = np.clip(np.asarray(upper, dtype=np.int64), 0, cols)[:, None]
    return ((x >= lo) & (x < hi)).astype(np.float32)


# =============================================================================
# SECTION 3: MASK STATISTICS
# =============================================================================


def bound_box(mask: Image) -> Box | None:
    """Bounding box (x, y, w, h) of the non-zero pixels, None if empty."""
    points = cv2.findNonZero((np.asarray(mask) > 0).astype(np.uint8))
    if points is None:
        return None
    x, y, w, h = cv2.boundingRect(points)
    return int(x), int(y), int(w), int(h)


def clip_box(box: Box, shape: tuple[int, int]) -> Box | None:
    """Intersect a box with the image extent, None if nothing is left."""
    x, y, w, h = box
    rows, cols = shape
    x0 = max(0, x)
    y0 = max(0, y)
    x1 = min(cols, x + w)
    y1 = min(rows, y + h)
    if x1 <= x0 or y1 <= y0:
        return None
    return x0, y0, x1 - x0, y1 - y0


def box_score(label: Image, box: Box | None) -> float:
    """Fraction of the label mass that falls inside ``box``."""
    total = float(np.sum(label))
    if box is None or total <= 0.0:
        return 0.0
    clipped = clip_box(box, label.shape[:2])
    if clipped is None:
        return 0.0
    x, y, w, h = clipped
    return float(np.sum(label[y:y + h, x:x + w])) / total


def color_sum(color: Image, mask: Image) -> tuple[float, float]:
    """Sum of ``color`` over the mask and the number of masked pixels."""
    selected = np.asarray(mask) > 0
    return float(np.sum(np.asarray(color, dtype=np.float64)[selected])), float(np.count_nonzero(selected))
