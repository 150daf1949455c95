"""Run the slice pipeline over many slices with a process pool."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from polar_contour.models import (
    ContourConfig,
    ProcessingError,
    ProcessingStage,
    SliceRecord,
    SliceState,
)
from polar_contour.pipeline import run_slice
from polar_contour.utils import cv_utils
from polar_contour.utils.detector import DetectorCache, DetectorFactory

SliceSource = SliceRecord | str | Path

# Per-process detector cache, filled by the pool initializer.
_worker_detectors: DetectorCache | None = None


@dataclass(frozen=True)
class SliceOutcome:
    index: int
    path: str
    state: SliceState | None
    error: ProcessingError | None = None

    @property
    def failed(self) -> bool:
        if self.error is not None or self.state is None:
            return True
        return any(not e.recoverable for e in self.state.errors)


def _source_path(item: SliceSource) -> str:
    return item.path if isinstance(item, SliceRecord) else str(item)


def _run_one(
    index: int,
    item: SliceSource,
    config: ContourConfig,
    detector_name: str | None,
    detectors: DetectorCache | None,
) -> SliceOutcome:
    if isinstance(item, SliceRecord):
        record = item
    else:
        loaded = cv_utils.load_slice(item)
        if isinstance(loaded, ProcessingError):
            return SliceOutcome(index=index, path=str(item), state=None, error=loaded)
        record = loaded
    state = run_slice(record, config, detector_name=detector_name, detectors=detectors)
    return SliceOutcome(index=index, path=record.path, state=state)


def _init_worker(detector_factory: DetectorFactory | None) -> None:
    global _worker_detectors
    _worker_detectors = DetectorCache(detector_factory) if detector_factory else None


def _run_in_worker(
    index: int,
    item: SliceSource,
    config: ContourConfig,
    detector_name: str | None,
) -> SliceOutcome:
    return _run_one(index, item, config, detector_name, _worker_detectors)


def _crashed(index: int, item: SliceSource, exc: Exception) -> SliceOutcome:
    path = _source_path(item)
    logger.error("{}: worker failed: {}", path, exc)
    return SliceOutcome(
        index=index,
        path=path,
        state=None,
        error=ProcessingError(
            stage=ProcessingStage.INPUT,
            error_type="worker_failed",
            recoverable=False,
            message=f"Processing {path} failed: {exc}",
            details={"path": path, "error": str(exc)},
        ),
    )


def iter_series(
    items: Sequence[SliceSource],
    config: ContourConfig | None = None,
    max_workers: int = 1,
    detector_name: str | None = None,
    detector_factory: DetectorFactory | None = None,
) -> Iterator[SliceOutcome]:
    """Yield outcomes as slices complete (no ordering guarantee)."""
    cfg = config or ContourConfig()
    if max_workers < 1:
        raise ValueError("max_workers must be >= 1")

    if max_workers == 1:
        detectors = DetectorCache(detector_factory) if detector_factory else None
        for index, item in enumerate(items):
            try:
                outcome = _run_one(index, item, cfg, detector_name, detectors)
            except Exception as e:
                outcome = _crashed(index, item, e)
            yield outcome
        return

    with ProcessPoolExecutor(
        max_workers=max_workers,
        initializer=_init_worker,
        initargs=(detector_factory,),
    ) as pool:
        futures = {
            pool.submit(_run_in_worker, index, item, cfg, detector_name): index
            for index, item in enumerate(items)
        }
        for future in as_completed(futures):
            index = futures[future]
            try:
                outcome = future.result()
            except Exception as e:
                outcome = _crashed(index, items[index], e)
            yield outcome


def segment_series(
    items: Sequence[SliceSource],
    config: ContourConfig | None = None,
    max_workers: int = 1,
    detector_name: str | None = None,
    detector_factory: DetectorFactory | None = None,
    on_result: Callable[[SliceOutcome], None] | None = None,
) -> list[SliceOutcome]:
    """Process every slice; outcomes are returned in input order."""
    outcomes: list[SliceOutcome | None] = [None] * len(items)
    for outcome in iter_series(items, config, max_workers, detector_name, detector_factory):
        outcomes[outcome.index] = outcome
        if on_result is not None:
            on_result(outcome)
    return [o for o in outcomes if o is not None]
