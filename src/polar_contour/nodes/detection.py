"""Detection node: resolve the polar probability map for a slice."""

from typing import Any

import numpy as np
from langchain_core.runnables import RunnableConfig
from loguru import logger

from polar_contour.models import ProcessingError, ProcessingStage, SliceState
from polar_contour.utils.detector import DetectorCache


def _detectors(config: RunnableConfig | None) -> DetectorCache | None:
    configurable: dict[str, Any] = (config or {}).get("configurable", {})
    return configurable.get("detectors")


def detect(state: SliceState, config: RunnableConfig | None = None) -> SliceState:
    """
    Make sure the slice carries a probability map.

    Updates state with:
    - polar_prob: the slice's own map, or the configured detector's output
    - skipped: True when no usable map exists (zero-area result downstream)
    - errors: detector failures and the missing-map warning
    """
    record = state.record
    if record.polar_image is None:
        return state.model_copy(
            update={
                "errors": state.errors
                + [
                    ProcessingError(
                        stage=ProcessingStage.DETECT,
                        error_type="missing_polar_image",
                        recoverable=False,
                        message=f"Slice has no polar image: {record.path}",
                        details={"path": record.path},
                    )
                ]
            }
        )

    prob = record.polar_prob
    if prob is None and state.detector_name:
        detectors = _detectors(config)
        if detectors is None:
            logger.warning("{}: detector {} requested but none injected", record.path, state.detector_name)
        else:
            try:
                prob = np.asarray(
                    detectors.get(state.detector_name).apply(record.polar_image),
                    dtype=np.float32,
                )
            except Exception as e:
                return state.model_copy(
                    update={
                        "errors": state.errors
                        + [
                            ProcessingError(
                                stage=ProcessingStage.DETECT,
                                error_type="detector_failed",
                                recoverable=False,
                                message=f"Detector {state.detector_name} failed on {record.path}: {e}",
                                details={"path": record.path, "error": str(e)},
                            )
                        ]
                    }
                )

    if prob is None or prob.size == 0:
        logger.warning("{}: no probability map, skipping contour extraction", record.path)
        return state.model_copy(
            update={
                "skipped": True,
                "errors": state.errors
                + [
                    ProcessingError(
                        stage=ProcessingStage.DETECT,
                        error_type="missing_probability_map",
                        recoverable=True,
                        message="No probability map; reporting zero area",
                        details={"path": record.path},
                    )
                ],
            }
        )

    return state.model_copy(update={"polar_prob": prob})
