"""Property Trap Detector - a getter on a decoy element's id."""

from src.detector.base_detector import BaseDetector, DetectorKind
from src.host.decoys import ElementDecoy


class PropertyTrapDetector(BaseDetector):
    """Detect an inspector expanding a logged element.

    Plain console output never touches ``id``; a live inspector does.
    """

    kind = DetectorKind.PROPERTY_TRAP

    def init(self) -> None:
        self.element = ElementDecoy(self.report_open)

    def detect(self, tick: int) -> None:
        self.page.console.log(self.element)
