from .processing import ProcessingError, ProcessingStage
from .slice import Box, ContourResult, SliceMeasurements, SliceRecord
from .state import ContourConfig, SliceState

__all__ = [
    "Box",
    "ContourConfig",
    "ContourResult",
    "ProcessingError",
    "ProcessingStage",
    "SliceMeasurements",
    "SliceRecord",
    "SliceState",
]
