"""Debugger Statement Detector - a debugger pause shows up as lost time."""

from src.core.environment import EnvironmentInfo
from src.detector.base_detector import BaseDetector, DetectorKind
from src.host.page import Page

PAUSE_THRESHOLD_MS = 100


class DebuggerStatementDetector(BaseDetector):
    """Detect an attached debugger by timing a ``debugger`` statement.

    Only enabled on mobile shells where devtools cannot be observed any
    other way, since the pause blocks the page.
    """

    kind = DetectorKind.DEBUGGER_STATEMENT

    @classmethod
    def enabled_for(cls, environment: EnvironmentInfo, page: Page) -> bool:
        return environment.is_ios_chrome or environment.is_ios_edge

    def init(self) -> None:
        pass

    def detect(self, tick: int) -> None:
        started = self.page.now()
        self.page.run_debugger()
        if self.page.now() - started > PAUSE_THRESHOLD_MS:
            self.report_open()
