"""Tests for detector components."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from conftest import CHROME_WINDOWS_UA, EDGE_UA, FIREFOX_UA, IOS_CHROME_UA, QQ_BROWSER_UA

from src.core.config import GuardConfig
from src.detector.base_detector import MAX_RECENT_EVENTS, BaseDetector, DetectionEvent, DetectorKind
from src.detector.date_detector import DateStringifyDetector
from src.detector.debug_lib_detector import ExternalDebugLibraryDetector
from src.detector.debugger_detector import DebuggerStatementDetector
from src.detector.function_detector import FunctionStringifyDetector
from src.detector.performance_detector import PerformanceTimingDetector, create_large_object_array
from src.detector.property_trap_detector import PropertyTrapDetector
from src.detector.regex_detector import RegexStringifyDetector
from src.detector.size_detector import WindowSizeSkewDetector, is_size_skewed, screen_zoom_ratio
from src.host.page import SimulatedPage


def ios_page() -> SimulatedPage:
    return SimulatedPage(user_agent=IOS_CHROME_UA, platform="iPhone")


class ExplodingDetector(BaseDetector):
    """Detector that fails everywhere."""

    kind = DetectorKind.REGEX_STRINGIFY

    def init(self) -> None:
        raise RuntimeError("init boom")

    def detect(self, tick: int) -> None:
        raise RuntimeError("detect boom")


class TestDetectionEvent:
    """Test suite for DetectionEvent."""

    def test_to_dict(self):
        """Events serialize their stable kind id."""
        event = DetectionEvent(kind=DetectorKind.DATE_STRINGIFY, tick=4)
        data = event.to_dict()
        assert data["kind"] == 3
        assert data["name"] == "date_stringify"
        assert data["tick"] == 4
        assert "timestamp" in data


class TestDetectorKind:
    """Kind identities are part of the configuration format."""

    def test_stable_values(self):
        """Kind ids never change."""
        assert [int(k) for k in DetectorKind] == [-1, 0, 1, 2, 3, 4, 5, 6, 7]


class TestBaseDetector:
    """Test suite for the detector contract."""

    def test_errors_do_not_escape(self, make_context, page):
        """init and detect errors are swallowed."""
        detector = ExplodingDetector(make_context(page))
        assert detector.enabled is True
        detector.run_detect(0)
        assert detector.get_status()["last_tick"] == 0

    def test_disabled_skips_init(self, make_context):
        """A disabled detector never initializes."""
        page = SimulatedPage(user_agent=CHROME_WINDOWS_UA)
        detector = RegexStringifyDetector(make_context(page))
        assert detector.enabled is False
        assert not hasattr(detector, "reg")

    def test_explicit_enabled_overrides_platform(self, make_context, page):
        """An explicit flag wins over the platform check."""
        detector = RegexStringifyDetector(make_context(page), enabled=True)
        assert detector.enabled is True
        assert hasattr(detector, "reg")

    def test_one_report_per_detect(self, make_context):
        """Several signals inside one detect call report once."""
        page = SimulatedPage(user_agent=FIREFOX_UA)
        on_open = MagicMock()
        detector = RegexStringifyDetector(make_context(page, on_open))
        page.console.inspector_attached = True
        page.console.render_passes = 3

        detector.run_detect(0)
        on_open.assert_called_once_with(DetectorKind.REGEX_STRINGIFY)

        detector.run_detect(1)
        assert on_open.call_count == 2

    def test_status_and_events(self, make_context, page):
        """Status reports detections; events are newest first."""
        detector = PropertyTrapDetector(make_context(page))
        page.console.inspector_attached = True
        detector.run_detect(0)
        detector.run_detect(1)

        status = detector.get_status()
        assert status == {
            "name": "property_trap",
            "kind": 1,
            "enabled": True,
            "last_tick": 1,
            "detections": 2,
        }
        assert [e.tick for e in detector.get_recent_events()] == [1, 0]
        detector.clear_events()
        assert detector.get_recent_events() == []

    def test_disposed_detector_is_silent(self, make_context, page, on_open):
        """A disposed detector reports nothing."""
        detector = PropertyTrapDetector(make_context(page, on_open=on_open))
        page.console.inspector_attached = True
        detector.dispose()

        detector.run_detect(0)
        on_open.assert_not_called()
        assert detector.get_status()["detections"] == 0

    def test_recent_events_capped(self, make_context, page):
        """Only the newest detections are kept; the count is complete."""
        detector = PropertyTrapDetector(make_context(page))
        page.console.inspector_attached = True
        for tick in range(MAX_RECENT_EVENTS + 10):
            detector.run_detect(tick)

        events = detector.get_recent_events(limit=MAX_RECENT_EVENTS * 2)
        assert len(events) == MAX_RECENT_EVENTS
        assert events[0].tick == MAX_RECENT_EVENTS + 9
        assert detector.get_status()["detections"] == MAX_RECENT_EVENTS + 10


class TestRegexStringifyDetector:
    """Test suite for RegexStringifyDetector."""

    def test_firefox_single_render(self, make_context):
        """Firefox fires on one stringification."""
        page = SimulatedPage(user_agent=FIREFOX_UA)
        on_open = MagicMock()
        detector = RegexStringifyDetector(make_context(page, on_open))
        page.console.inspector_attached = True
        page.console.render_passes = 1

        detector.run_detect(0)
        on_open.assert_called_once()

    def test_qq_double_render(self, make_context):
        """QQ browser fires on two stringifications inside the window."""
        page = SimulatedPage(user_agent=QQ_BROWSER_UA)
        on_open = MagicMock()
        detector = RegexStringifyDetector(make_context(page, on_open))
        page.console.inspector_attached = True

        detector.run_detect(0)
        on_open.assert_called_once()

    def test_qq_spaced_renders_do_not_fire(self, make_context):
        """QQ browser ignores renders further apart than the window."""
        page = SimulatedPage(user_agent=QQ_BROWSER_UA)
        on_open = MagicMock()
        detector = RegexStringifyDetector(make_context(page, on_open))
        page.console.inspector_attached = True
        page.console.render_passes = 1

        detector.run_detect(0)
        page.timers.advance(1000)
        detector.run_detect(1)
        on_open.assert_not_called()

    def test_closed_console_silent(self, make_context):
        """Nothing fires without an inspector."""
        page = SimulatedPage(user_agent=FIREFOX_UA)
        on_open = MagicMock()
        detector = RegexStringifyDetector(make_context(page, on_open))
        detector.run_detect(0)
        on_open.assert_not_called()


class TestPropertyTrapDetector:
    """Test suite for PropertyTrapDetector."""

    def test_fires_when_inspected(self, make_context, page):
        """Reading the trapped id reports open."""
        on_open = MagicMock()
        detector = PropertyTrapDetector(make_context(page, on_open))

        detector.run_detect(0)
        on_open.assert_not_called()

        page.console.inspector_attached = True
        detector.run_detect(1)
        on_open.assert_called_once_with(DetectorKind.PROPERTY_TRAP)


class TestWindowSizeSkewDetector:
    """Test suite for WindowSizeSkewDetector."""

    @pytest.mark.parametrize("inner_width,skewed", [(1030, True), (1130, False)])
    def test_width_threshold(self, inner_width, skewed):
        """A 250px gap fires, a 150px gap does not."""
        page = SimulatedPage()
        page.outer_width = 1280
        page.inner_width = inner_width
        page.device_pixel_ratio = 1.0
        assert is_size_skewed(page) is skewed

    def test_height_threshold(self):
        """The vertical threshold is 300px."""
        page = SimulatedPage()
        page.outer_height = 1100
        page.inner_height = 780
        assert is_size_skewed(page) is True
        page.inner_height = 850
        assert is_size_skewed(page) is False

    def test_zoom_ratio_scales_inner_size(self):
        """Inner size is scaled by the pixel ratio."""
        page = SimulatedPage()
        page.outer_width = 2560
        page.inner_width = 1280
        page.device_pixel_ratio = 2.0
        assert is_size_skewed(page) is False

    def test_zoom_ratio_fallbacks(self):
        """Screen DPI is used without a pixel ratio; nothing fires without either."""
        page = SimulatedPage()
        page.device_pixel_ratio = None
        page.screen_device_xdpi = 192
        page.screen_logical_xdpi = 96
        assert screen_zoom_ratio(page) == 2.0

        page.screen_device_xdpi = None
        page.inner_width = 100
        assert screen_zoom_ratio(page) is None
        assert is_size_skewed(page) is False

    def test_fires_on_init(self, make_context, page):
        """A page loaded with docked devtools fires during init."""
        page.inner_width = 900
        on_open = MagicMock()
        WindowSizeSkewDetector(make_context(page, on_open))
        on_open.assert_called_once_with(DetectorKind.WINDOW_SIZE_SKEW)

    def test_resize_is_debounced(self, make_context, page):
        """Resizes settle for 100ms before one check."""
        on_open = MagicMock()
        WindowSizeSkewDetector(make_context(page, on_open))

        page.resize(inner_width=1000)
        page.timers.advance(50)
        page.resize(inner_width=900)
        page.timers.advance(99)
        on_open.assert_not_called()

        page.timers.advance(1)
        on_open.assert_called_once()

    def test_disabled_in_iframe_and_edge(self, make_context):
        """Frames and Edge skip the size heuristic."""
        frame = SimulatedPage().open_frame()
        assert WindowSizeSkewDetector(make_context(frame)).enabled is False
        edge = SimulatedPage(user_agent=EDGE_UA)
        assert WindowSizeSkewDetector(make_context(edge)).enabled is False


class TestStringifyCounters:
    """Test suite for DateStringifyDetector and FunctionStringifyDetector."""

    @pytest.mark.parametrize("detector_cls", [DateStringifyDetector, FunctionStringifyDetector])
    def test_double_conversion_fires(self, make_context, detector_cls):
        """Two conversions in one dump fire."""
        page = ios_page()
        on_open = MagicMock()
        detector = detector_cls(make_context(page, on_open))
        assert detector.enabled is True

        page.console.inspector_attached = True
        detector.run_detect(0)
        assert detector.count == 2
        on_open.assert_called_once_with(detector_cls.kind)

    @pytest.mark.parametrize("detector_cls", [DateStringifyDetector, FunctionStringifyDetector])
    def test_single_conversion_silent(self, make_context, detector_cls):
        """One conversion is a normal render."""
        page = ios_page()
        on_open = MagicMock()
        detector = detector_cls(make_context(page, on_open))

        page.console.inspector_attached = True
        page.console.render_passes = 1
        detector.run_detect(0)
        on_open.assert_not_called()

    def test_clears_log_per_config(self, make_context):
        """The console is cleared after the dump only when configured."""
        page = ios_page()
        detector = DateStringifyDetector(make_context(page, config=GuardConfig(clearLog=False)))
        detector.run_detect(0)
        assert page.console.clear_count == 0

        detector = DateStringifyDetector(make_context(page))
        detector.run_detect(0)
        assert page.console.clear_count == 1

    def test_desktop_disabled(self, make_context, page):
        """Desktop browsers do not run the counters."""
        assert DateStringifyDetector(make_context(page)).enabled is False
        assert FunctionStringifyDetector(make_context(page)).enabled is False


class TestDebuggerStatementDetector:
    """Test suite for DebuggerStatementDetector."""

    def test_long_pause_fires(self, make_context):
        """A pause over 100ms fires."""
        page = ios_page()
        on_open = MagicMock()
        detector = DebuggerStatementDetector(make_context(page, on_open))

        page.open_devtools(pause_ms=250)
        detector.run_detect(0)
        on_open.assert_called_once_with(DetectorKind.DEBUGGER_STATEMENT)

    def test_short_pause_silent(self, make_context):
        """A short pause does not fire."""
        page = ios_page()
        on_open = MagicMock()
        detector = DebuggerStatementDetector(make_context(page, on_open))

        page.open_devtools(pause_ms=50)
        detector.run_detect(0)
        on_open.assert_not_called()


class TestPerformanceTimingDetector:
    """Test suite for PerformanceTimingDetector."""

    def test_large_object_array(self):
        """The payload is a wide table."""
        payload = create_large_object_array()
        assert len(payload) == 50
        assert len(payload[0]) == 500

    def test_slow_table_fires(self, make_context, page):
        """A table print far slower than log prints fires."""
        on_open = MagicMock()
        detector = PerformanceTimingDetector(make_context(page, on_open))

        detector.run_detect(0)
        on_open.assert_not_called()

        page.open_devtools()
        detector.run_detect(1)
        assert detector.max_print_time == page.console.log_cost_ms
        on_open.assert_called_once_with(DetectorKind.PERFORMANCE_TIMING)

    def test_comparable_times_silent(self, make_context, page):
        """Table prints within the ratio do not fire."""
        on_open = MagicMock()
        detector = PerformanceTimingDetector(make_context(page, on_open))
        page.open_devtools()
        page.console.table_cost_ms = 5.0

        detector.run_detect(0)
        on_open.assert_not_called()


class TestExternalDebugLibraryDetector:
    """Test suite for ExternalDebugLibraryDetector."""

    def test_visible_panel_fires(self, make_context, page):
        """A visible eruda panel counts as open devtools."""
        eruda = SimpleNamespace(_devTools=SimpleNamespace(_isShow=False))
        page.globals["eruda"] = eruda
        on_open = MagicMock()
        detector = ExternalDebugLibraryDetector(make_context(page, on_open))
        assert detector.enabled is True

        detector.run_detect(0)
        on_open.assert_not_called()

        eruda._devTools._isShow = True
        detector.run_detect(1)
        on_open.assert_called_once_with(DetectorKind.EXTERNAL_DEBUG_LIBRARY)

    def test_disabled_without_library(self, make_context, page):
        """Pages without a debug library skip it."""
        assert ExternalDebugLibraryDetector(make_context(page)).enabled is False
