"""Contour and measurement nodes."""

from loguru import logger

from polar_contour.models import (
    ProcessingError,
    ProcessingStage,
    SliceMeasurements,
    SliceState,
)
from polar_contour.nodes.polar_dp import ContourError, measure_contour, run_two_pass
from polar_contour.utils import cv_utils


def contour(state: SliceState) -> SliceState:
    """Run the two-pass DP on the slice's polar images."""
    record = state.record
    try:
        out = run_two_pass(
            record.polar_image,
            state.polar_prob,
            record.polar_radius,
            state.config,
            polar_center=record.polar_center,
            canvas_shape=cv_utils.cartesian_shape(record),
        )
    except ContourError as e:
        logger.error("{}: contour extraction failed: {}", record.path, e)
        return state.model_copy(
            update={
                "errors": state.errors
                + [
                    ProcessingError(
                        stage=ProcessingStage.CONTOUR,
                        error_type="contour_failed",
                        recoverable=False,
                        message=f"{record.path}: {e}",
                        details={"path": record.path},
                    )
                ]
            }
        )
    return state.model_copy(update={"contour": out.result, "xa": out.xa})


def measure(state: SliceState) -> SliceState:
    """Label mask statistics; a skipped slice reports zero area."""
    if state.skipped or state.contour is None:
        return state.model_copy(update={"measurements": SliceMeasurements()})
    measurements, _, warnings = measure_contour(state.record, state.contour.contour, state.xa)
    return state.model_copy(
        update={"measurements": measurements, "errors": state.errors + warnings}
    )
