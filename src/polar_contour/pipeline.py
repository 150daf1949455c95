"""LangGraph pipeline for per-slice contour extraction."""

from langgraph.graph import END, StateGraph

from polar_contour.models import (
    ContourConfig,
    ProcessingStage,
    SliceRecord,
    SliceState,
)
from polar_contour.nodes import contour, detect, measure
from polar_contour.utils.detector import DetectorCache


def _route_detect(state: SliceState) -> str:
    for err in state.errors:
        if err.stage == ProcessingStage.DETECT and not err.recoverable:
            return END
    if state.skipped:
        return "measure"
    if state.polar_prob is not None:
        return "contour"
    return END


def _route_contour(state: SliceState) -> str:
    for err in state.errors:
        if err.stage == ProcessingStage.CONTOUR and not err.recoverable:
            return END
    if state.contour is not None:
        return "measure"
    return END


def create_pipeline():
    graph = StateGraph(SliceState)

    graph.add_node("detect", detect)
    graph.add_node("contour", contour)
    graph.add_node("measure", measure)

    graph.set_entry_point("detect")

    graph.add_conditional_edges(
        "detect", _route_detect, {"contour": "contour", "measure": "measure", END: END}
    )
    graph.add_conditional_edges("contour", _route_contour, {"measure": "measure", END: END})
    graph.add_edge("measure", END)

    return graph.compile()


def run_slice(
    record: SliceRecord,
    config: ContourConfig | None = None,
    detector_name: str | None = None,
    detectors: DetectorCache | None = None,
) -> SliceState:
    initial = SliceState(
        record=record,
        config=config or ContourConfig(),
        detector_name=detector_name,
    )
    result = pipeline.invoke(initial, config={"configurable": {"detectors": detectors}})
    return result if isinstance(result, SliceState) else SliceState(**result)


pipeline = create_pipeline()
