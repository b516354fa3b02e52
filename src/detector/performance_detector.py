"""Performance Timing Detector - console printing slows down under an inspector."""

from typing import Any, Callable, Dict, List

from src.core.environment import EnvironmentInfo
from src.detector.base_detector import BaseDetector, DetectorKind
from src.host.page import Page

PRINT_TIME_RATIO = 10
LARGE_ARRAY_ROWS = 50
LARGE_ARRAY_COLUMNS = 500


def create_large_object_array() -> List[Dict[str, str]]:
    """Synthetic payload that is expensive to render as a table."""
    row = {str(i): str(i) for i in range(LARGE_ARRAY_COLUMNS)}
    return [dict(row) for _ in range(LARGE_ARRAY_ROWS)]


class PerformanceTimingDetector(BaseDetector):
    """Compare console table and log print times.

    The slowest log print seen so far is the baseline. A table print more
    than ``PRINT_TIME_RATIO`` times slower means an inspector is rendering.
    """

    kind = DetectorKind.PERFORMANCE_TIMING

    @classmethod
    def enabled_for(cls, environment: EnvironmentInfo, page: Page) -> bool:
        return environment.is_chrome or not environment.is_mobile

    def init(self) -> None:
        self.max_print_time = 0.0
        self.large_object_array = create_large_object_array()

    def detect(self, tick: int) -> None:
        console = self.page.console
        table_print_time = self._measure(console.table, self.large_object_array)
        log_print_time = self._measure(console.log, self.large_object_array)
        self.max_print_time = max(self.max_print_time, log_print_time)

        self.clear_log()

        if table_print_time == 0 or self.max_print_time == 0:
            return

        if table_print_time > self.max_print_time * PRINT_TIME_RATIO:
            self.report_open()

    def _measure(self, printer: Callable[[Any], None], payload: Any) -> float:
        started = self.page.now()
        printer(payload)
        return self.page.now() - started
