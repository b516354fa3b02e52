"""Base Detector - Abstract base class for all devtool detectors."""

import logging
from collections import deque
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Callable, Deque, Dict, List, Optional

from src.core.config import GuardConfig
from src.core.environment import EnvironmentInfo
from src.host.page import Page

logger = logging.getLogger(__name__)

# Detections kept per detector for get_recent_events
MAX_RECENT_EVENTS = 100


class DetectorKind(IntEnum):
    """Detector identities. Values are serialized and must stay stable."""

    UNKNOWN = -1
    REGEX_STRINGIFY = 0
    PROPERTY_TRAP = 1
    WINDOW_SIZE_SKEW = 2
    DATE_STRINGIFY = 3
    FUNCTION_STRINGIFY = 4
    DEBUGGER_STATEMENT = 5
    PERFORMANCE_TIMING = 6
    EXTERNAL_DEBUG_LIBRARY = 7


@dataclass
class DetectionEvent:
    """A single positive signal from a detector."""

    kind: DetectorKind
    tick: int
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary."""
        return {
            "kind": int(self.kind),
            "name": self.kind.name.lower(),
            "tick": self.tick,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class DetectorContext:
    """What a detector may read and whom it reports to."""

    page: Page
    environment: EnvironmentInfo
    config: GuardConfig
    on_open: Callable[[DetectorKind], None]


class BaseDetector(ABC):
    """Abstract base class for all detectors.

    Subclasses set ``kind``, decide their platform flag in ``enabled_for``
    and implement ``init`` and ``detect``. A positive signal is reported
    through ``report_open``; ``detect`` returns nothing.
    """

    kind: DetectorKind = DetectorKind.UNKNOWN

    def __init__(self, context: DetectorContext, enabled: Optional[bool] = None):
        """Initialize detector.

        Args:
            context: Page, environment, config and the shared open handler
            enabled: Platform flag; derived from ``enabled_for`` when omitted
        """
        self.context = context
        self.name = self.kind.name.lower()
        self.enabled = (
            type(self).enabled_for(context.environment, context.page)
            if enabled is None
            else enabled
        )
        self.current_tick = -1
        self._events: Deque[DetectionEvent] = deque(maxlen=MAX_RECENT_EVENTS)
        self.detection_count = 0
        self.disposed = False
        self._last_tick: Optional[int] = None
        self._detecting = False
        self._fired_this_tick = False

        if self.enabled:
            self.run_init()

    @classmethod
    def enabled_for(cls, environment: EnvironmentInfo, page: Page) -> bool:
        """Whether this heuristic is meaningful on the given platform."""
        return True

    @property
    def page(self) -> Page:
        return self.context.page

    @property
    def environment(self) -> EnvironmentInfo:
        return self.context.environment

    @abstractmethod
    def init(self) -> None:
        """Install instrumentation. Runs once when enabled."""
        pass

    @abstractmethod
    def detect(self, tick: int) -> None:
        """Inspect instrumented state since the previous tick.

        Args:
            tick: Engine tick counter
        """
        pass

    def report_open(self) -> None:
        """Signal that devtools look open.

        Inside a ``detect`` call only the first report counts; reports from
        event listeners between ticks always go through. A disposed detector
        reports nothing.
        """
        if self.disposed:
            return
        if self._detecting:
            if self._fired_this_tick:
                return
            self._fired_this_tick = True
        self._events.append(DetectionEvent(kind=self.kind, tick=self.current_tick))
        self.detection_count += 1
        self.context.on_open(self.kind)

    def dispose(self) -> None:
        """Silence the detector. Listeners it installed stay on the page."""
        self.disposed = True

    def clear_log(self) -> None:
        """Clear the console when the config asks for it."""
        if self.context.config.clear_log:
            self.page.console.clear()

    def run_init(self) -> None:
        """Run ``init`` without letting errors escape."""
        try:
            self.init()
        except Exception as e:
            logger.warning(f"[Detector] {self.name} init failed: {e}")

    def run_detect(self, tick: int) -> None:
        """Run ``detect`` without letting errors escape."""
        self.current_tick = tick
        self._last_tick = tick
        self._detecting = True
        self._fired_this_tick = False
        try:
            self.detect(tick)
        except Exception as e:
            logger.warning(f"[Detector] {self.name} detect failed on tick {tick}: {e}")
        finally:
            self._detecting = False

    def get_status(self) -> Dict[str, Any]:
        """Get detector status.

        Returns:
            Status dictionary
        """
        return {
            "name": self.name,
            "kind": int(self.kind),
            "enabled": self.enabled,
            "last_tick": self._last_tick,
            "detections": self.detection_count,
        }

    def get_recent_events(self, limit: int = 10) -> List[DetectionEvent]:
        """Get the most recent detections, newest first."""
        return list(reversed(self._events))[:limit]

    def clear_events(self) -> None:
        """Clear all recorded detections."""
        self._events.clear()
