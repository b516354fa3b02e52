"""Function Stringify Detector - count source renders of a logged function."""

from src.core.environment import EnvironmentInfo
from src.detector.base_detector import BaseDetector, DetectorKind
from src.detector.date_detector import MIN_CONVERSIONS
from src.host.decoys import FunctionDecoy
from src.host.page import Page


class FunctionStringifyDetector(BaseDetector):
    """Detect extra stringification of a logged no-op function."""

    kind = DetectorKind.FUNCTION_STRINGIFY

    @classmethod
    def enabled_for(cls, environment: EnvironmentInfo, page: Page) -> bool:
        return environment.is_ios_chrome or environment.is_ios_edge

    def init(self) -> None:
        self.count = 0
        self.func = FunctionDecoy(self._on_stringify)

    def detect(self, tick: int) -> None:
        self.count = 0
        self.page.console.log(self.func)
        self.clear_log()
        if self.count >= MIN_CONVERSIONS:
            self.report_open()

    def _on_stringify(self) -> None:
        self.count += 1
