"""Detector capability consumed by the pipeline.

The probability model itself lives outside this package. A worker holds
one ``DetectorCache`` and hands it to every slice it runs.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable
from typing import Protocol

import numpy as np
from loguru import logger
from numpy.typing import NDArray


class Detector(Protocol):
    def apply(self, image: NDArray[np.float32]) -> NDArray[np.float32]:
        """Per-pixel probability map, same shape as ``image``."""
        ...


DetectorFactory = Callable[[str], Detector]


class DetectorCache:
    """Builds each named detector at most once."""

    def __init__(self, factory: DetectorFactory) -> None:
        self._factory = factory
        self._detectors: dict[str, Detector] = {}

    def get(self, name: str) -> Detector:
        detector = self._detectors.get(name)
        if detector is None:
            logger.debug("constructing detector {}", name)
            detector = self._factory(name)
            self._detectors[name] = detector
        return detector

    def __contains__(self, name: str) -> bool:
        return name in self._detectors


def load_factory(ref: str) -> DetectorFactory:
    """Resolve a ``package.module:callable`` reference to a detector factory."""
    module_name, sep, attr = ref.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"detector factory must look like 'module:callable', got {ref!r}")
    factory = getattr(importlib.import_module(module_name), attr)
    if not callable(factory):
        raise ValueError(f"{ref} is not callable")
    return factory
