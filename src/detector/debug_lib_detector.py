"""External Debug Library Detector - in-page consoles such as eruda or vConsole."""

from src.core.environment import EnvironmentInfo, debug_lib_visible
from src.detector.base_detector import BaseDetector, DetectorKind
from src.host.page import Page


class ExternalDebugLibraryDetector(BaseDetector):
    """Treat a visible in-page debug console as open devtools."""

    kind = DetectorKind.EXTERNAL_DEBUG_LIBRARY

    @classmethod
    def enabled_for(cls, environment: EnvironmentInfo, page: Page) -> bool:
        return environment.uses_debug_lib

    def init(self) -> None:
        pass

    def detect(self, tick: int) -> None:
        if debug_lib_visible(self.page):
            self.report_open()
