"""Pipeline nodes for slice processing.

This module intentionally uses lazy imports to avoid loading OpenCV
during package import.
"""

from __future__ import annotations

from langchain_core.runnables import RunnableConfig

from polar_contour.models import SliceState


def detect(state: SliceState, config: RunnableConfig) -> SliceState:
    from polar_contour.nodes.detection import detect as _detect

    return _detect(state, config)


def contour(state: SliceState) -> SliceState:
    from polar_contour.nodes.segmentation import contour as _contour

    return _contour(state)


def measure(state: SliceState) -> SliceState:
    from polar_contour.nodes.segmentation import measure as _measure

    return _measure(state)


__all__ = [
    "contour",
    "detect",
    "measure",
]
