"""Window Size Skew Detector - docked devtools shrink the viewport."""

import logging
from typing import Optional

from src.core.environment import EnvironmentInfo
from src.detector.base_detector import BaseDetector, DetectorKind
from src.host.page import DomEvent, Page

logger = logging.getLogger(__name__)

WIDTH_SKEW_PX = 200
HEIGHT_SKEW_PX = 300
RESIZE_DEBOUNCE_MS = 100


def screen_zoom_ratio(page: Page) -> Optional[float]:
    """Device pixel ratio, or the screen DPI ratio on legacy hosts.

    Returns:
        Ratio, or None when the page exposes neither
    """
    if page.device_pixel_ratio is not None:
        return page.device_pixel_ratio
    if page.screen_device_xdpi and page.screen_logical_xdpi:
        return page.screen_device_xdpi / page.screen_logical_xdpi
    return None


def is_size_skewed(page: Page) -> bool:
    """Check whether outer and inner window sizes disagree past the thresholds."""
    ratio = screen_zoom_ratio(page)
    if ratio is None:
        return False

    width_skew = page.outer_width - page.inner_width * ratio > WIDTH_SKEW_PX
    height_skew = page.outer_height - page.inner_height * ratio > HEIGHT_SKEW_PX
    return width_skew or height_skew


class WindowSizeSkewDetector(BaseDetector):
    """Detect a docked devtools panel from the window geometry.

    Checks on init, on every tick and on a debounced resize. The resize
    listener stays armed after the tick loop stops.
    """

    kind = DetectorKind.WINDOW_SIZE_SKEW

    @classmethod
    def enabled_for(cls, environment: EnvironmentInfo, page: Page) -> bool:
        return not environment.is_in_iframe and not environment.is_edge

    def init(self) -> None:
        self._resize_timer: Optional[int] = None
        self.check()
        self.page.add_event_listener("resize", self._on_resize)

    def detect(self, tick: int) -> None:
        self.check()

    def check(self) -> None:
        if is_size_skewed(self.page):
            self.report_open()

    def _on_resize(self, event: DomEvent) -> None:
        timers = self.page.timers
        timers.clear(self._resize_timer)
        self._resize_timer = timers.set_timeout(self._on_resize_settled, RESIZE_DEBOUNCE_MS)

    def _on_resize_settled(self) -> None:
        self._resize_timer = None
        try:
            self.check()
        except Exception as e:
            logger.warning(f"[Detector] {self.name} resize check failed: {e}")
