"""Detector Registry - maps detector kinds to implementations.

``DETECTOR_REGISTRY`` is the read-only set of built-in detectors. Engines
work on their own copy from ``default_registry`` so replacing an
implementation never leaks into other engines.
"""

import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Type, Union

from src.detector.base_detector import BaseDetector, DetectorContext, DetectorKind
from src.detector.date_detector import DateStringifyDetector
from src.detector.debug_lib_detector import ExternalDebugLibraryDetector
from src.detector.debugger_detector import DebuggerStatementDetector
from src.detector.function_detector import FunctionStringifyDetector
from src.detector.performance_detector import PerformanceTimingDetector
from src.detector.property_trap_detector import PropertyTrapDetector
from src.detector.regex_detector import RegexStringifyDetector
from src.detector.size_detector import WindowSizeSkewDetector

logger = logging.getLogger(__name__)

ALL_DETECTORS = "all"

DetectorRegistry = Dict[DetectorKind, Type[BaseDetector]]

DETECTOR_REGISTRY: Mapping[DetectorKind, Type[BaseDetector]] = MappingProxyType({
    DetectorKind.REGEX_STRINGIFY: RegexStringifyDetector,
    DetectorKind.PROPERTY_TRAP: PropertyTrapDetector,
    DetectorKind.WINDOW_SIZE_SKEW: WindowSizeSkewDetector,
    DetectorKind.DATE_STRINGIFY: DateStringifyDetector,
    DetectorKind.FUNCTION_STRINGIFY: FunctionStringifyDetector,
    DetectorKind.DEBUGGER_STATEMENT: DebuggerStatementDetector,
    DetectorKind.PERFORMANCE_TIMING: PerformanceTimingDetector,
    DetectorKind.EXTERNAL_DEBUG_LIBRARY: ExternalDebugLibraryDetector,
})


def default_registry() -> DetectorRegistry:
    """A mutable copy of the built-in detectors."""
    return dict(DETECTOR_REGISTRY)


def register_detector(
    kind: DetectorKind,
    detector_cls: Type[BaseDetector],
    registry: DetectorRegistry,
) -> None:
    """Register or replace the implementation for a kind.

    Args:
        kind: Detector kind
        detector_cls: BaseDetector subclass
        registry: Registry to update, usually an engine's own copy
    """
    registry[kind] = detector_cls


def resolve_kinds(
    detectors: Union[str, int, Iterable[Any]],
    registry: Mapping[DetectorKind, Type[BaseDetector]] = DETECTOR_REGISTRY,
) -> List[DetectorKind]:
    """Turn the ``detectors`` option into an ordered list of distinct kinds.

    Args:
        detectors: "all", a single kind id, or kind ids / DetectorKind members
        registry: Registry the kinds must belong to

    Returns:
        Registered kinds, duplicates and unknown ids dropped
    """
    if isinstance(detectors, str):
        if detectors != ALL_DETECTORS:
            logger.debug(f"[Registry] Unknown detectors option: {detectors}")
            return []
        return list(registry)

    if isinstance(detectors, int) and not isinstance(detectors, bool):
        detectors = [detectors]

    try:
        values = list(detectors)
    except TypeError:
        logger.debug(f"[Registry] Ignoring detectors option: {detectors!r}")
        return []

    kinds: List[DetectorKind] = []
    for value in values:
        try:
            kind = DetectorKind(int(value))
        except (TypeError, ValueError):
            logger.debug(f"[Registry] Skipping unknown detector id: {value!r}")
            continue
        if kind in registry and kind not in kinds:
            kinds.append(kind)
    return kinds


def create_detectors(
    kinds: Iterable[DetectorKind],
    context: DetectorContext,
    registry: Mapping[DetectorKind, Type[BaseDetector]] = DETECTOR_REGISTRY,
) -> Dict[DetectorKind, BaseDetector]:
    """Construct one detector per distinct kind.

    Args:
        kinds: Kinds to construct
        context: Shared detector context
        registry: Registry to look implementations up in

    Returns:
        Every constructed detector keyed by kind, enabled or not
    """
    detectors: Dict[DetectorKind, BaseDetector] = {}
    for kind in kinds:
        if kind in detectors:
            continue
        detectors[kind] = registry[kind](context)
    return detectors
