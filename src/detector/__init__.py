"""Detector module - Heuristics that vote on whether devtools are open."""

from src.detector.base_detector import BaseDetector, DetectionEvent, DetectorContext, DetectorKind
from src.detector.date_detector import DateStringifyDetector
from src.detector.debug_lib_detector import ExternalDebugLibraryDetector
from src.detector.debugger_detector import DebuggerStatementDetector
from src.detector.function_detector import FunctionStringifyDetector
from src.detector.performance_detector import PerformanceTimingDetector
from src.detector.property_trap_detector import PropertyTrapDetector
from src.detector.regex_detector import RegexStringifyDetector
from src.detector.registry import (
    DETECTOR_REGISTRY,
    create_detectors,
    default_registry,
    register_detector,
    resolve_kinds,
)
from src.detector.size_detector import WindowSizeSkewDetector

__all__ = [
    "BaseDetector",
    "DetectionEvent",
    "DetectorContext",
    "DetectorKind",
    "DETECTOR_REGISTRY",
    "DateStringifyDetector",
    "DebuggerStatementDetector",
    "ExternalDebugLibraryDetector",
    "FunctionStringifyDetector",
    "PerformanceTimingDetector",
    "PropertyTrapDetector",
    "RegexStringifyDetector",
    "WindowSizeSkewDetector",
    "create_detectors",
    "default_registry",
    "register_detector",
    "resolve_kinds",
]
