"""Date Stringify Detector - count conversions of a logged date."""

from src.core.environment import EnvironmentInfo
from src.detector.base_detector import BaseDetector, DetectorKind
from src.host.decoys import DateDecoy
from src.host.page import Page

# A single plain render converts once
MIN_CONVERSIONS = 2


class DateStringifyDetector(BaseDetector):
    """Detect extra stringification of a logged date."""

    kind = DetectorKind.DATE_STRINGIFY

    @classmethod
    def enabled_for(cls, environment: EnvironmentInfo, page: Page) -> bool:
        return environment.is_ios_chrome or environment.is_ios_edge

    def init(self) -> None:
        self.count = 0
        self.date = DateDecoy(self._on_stringify)

    def detect(self, tick: int) -> None:
        self.count = 0
        self.page.console.log(self.date)
        self.clear_log()
        if self.count >= MIN_CONVERSIONS:
            self.report_open()

    def _on_stringify(self) -> None:
        self.count += 1
