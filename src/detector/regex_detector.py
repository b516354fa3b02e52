"""Regex Stringify Detector - console pretty-printing of a regex decoy."""

from typing import Optional

from src.core.environment import EnvironmentInfo
from src.detector.base_detector import BaseDetector, DetectorKind
from src.host.decoys import RegexDecoy
from src.host.page import Page

# Two stringifications closer than this are one inspector render
DOUBLE_FIRE_WINDOW_MS = 100


class RegexStringifyDetector(BaseDetector):
    """Detect an inspector rendering a logged regex.

    QQ browser stringifies on every log, so only two conversions inside
    ``DOUBLE_FIRE_WINDOW_MS`` count. Firefox only stringifies for an open
    inspector, so one conversion is enough.
    """

    kind = DetectorKind.REGEX_STRINGIFY

    @classmethod
    def enabled_for(cls, environment: EnvironmentInfo, page: Page) -> bool:
        return environment.is_qq_browser or environment.is_firefox

    def init(self) -> None:
        self._last_time: Optional[float] = None
        self.reg = RegexDecoy("ddd", self._on_stringify)

    def detect(self, tick: int) -> None:
        self.page.console.log(self.reg)

    def _on_stringify(self) -> None:
        if self.environment.is_qq_browser:
            now = self.page.now()
            if self._last_time is not None and now - self._last_time < DOUBLE_FIRE_WINDOW_MS:
                self.report_open()
            else:
                self._last_time = now
        elif self.environment.is_firefox:
            self.report_open()
