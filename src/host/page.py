"""Page - the browser capabilities the guard engine reads and instruments.

``Page`` is the protocol every host satisfies. ``SimulatedPage`` is an
in-memory page on a virtual clock whose console renders values only while
an inspector is attached, so every heuristic can be driven from tests and
from the CLI.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple
from urllib.parse import urlsplit

from src.host.decoys import ElementDecoy
from src.host.timers import TimerHost, VirtualTimers

logger = logging.getLogger(__name__)

# (document flag, change event) pairs, standard name first
VISIBILITY_APIS: List[Tuple[str, str]] = [
    ("hidden", "visibilitychange"),
    ("msHidden", "msvisibilitychange"),
    ("webkitHidden", "webkitvisibilitychange"),
]

DIALOG_NAMES = ("alert", "confirm", "prompt")

EventHandler = Callable[["DomEvent"], Any]


@dataclass
class DomEvent:
    """A DOM event delivered to page listeners."""

    type: str
    key: str = ""
    key_code: int = 0
    ctrl_key: bool = False
    shift_key: bool = False
    alt_key: bool = False
    meta_key: bool = False
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True


class Console(Protocol):
    """Protocol for the page console."""

    def log(self, *values: Any) -> None:
        ...

    def table(self, data: Any) -> None:
        ...

    def clear(self) -> None:
        ...

    def warn(self, message: str) -> None:
        ...


class Page(Protocol):
    """Protocol for a browser page as seen by the guard engine."""

    user_agent: str
    platform: str
    max_touch_points: int
    url: str
    outer_width: int
    inner_width: int
    outer_height: int
    inner_height: int
    device_pixel_ratio: Optional[float]
    screen_device_xdpi: Optional[float]
    screen_logical_xdpi: Optional[float]
    parent: Optional["Page"]
    document_flags: Dict[str, bool]
    globals: Dict[str, Any]
    dialogs: Dict[str, Callable[..., Any]]
    marker_attributes: Optional[Dict[str, str]]
    console: Console
    timers: TimerHost

    @property
    def host(self) -> str:
        ...

    @property
    def is_top(self) -> bool:
        ...

    def now(self) -> float:
        ...

    def add_event_listener(self, event_type: str, handler: EventHandler) -> None:
        ...

    def dispatch_event(self, event: DomEvent) -> DomEvent:
        ...

    def run_debugger(self) -> None:
        ...

    def navigate(self, url: str) -> None:
        ...

    def write_document(self, html: str) -> None:
        ...

    def close(self) -> None:
        ...

    def history_back(self) -> None:
        ...


class SimulatedConsole:
    """Console whose rendering cost and side effects depend on an inspector.

    With no inspector attached, logging is free and nothing is stringified.
    With one attached, each logged value is stringified ``render_passes``
    times, element ids are read and printing costs virtual time.
    """

    def __init__(self, timers: VirtualTimers):
        self._timers = timers
        self.inspector_attached = False
        self.render_passes = 2
        self.log_cost_ms = 1.0
        self.table_cost_ms = 50.0
        self.entries: List[Tuple[str, Tuple[Any, ...]]] = []
        self.warnings: List[str] = []
        self.clear_count = 0

    def log(self, *values: Any) -> None:
        self.entries.append(("log", values))
        if not self.inspector_attached:
            return
        for value in values:
            self._render(value)
        self._timers.sleep(self.log_cost_ms)

    def table(self, data: Any) -> None:
        self.entries.append(("table", (data,)))
        if not self.inspector_attached:
            return
        self._timers.sleep(self.table_cost_ms)

    def clear(self) -> None:
        self.entries.clear()
        self.clear_count += 1

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def _render(self, value: Any) -> None:
        if isinstance(value, ElementDecoy):
            _ = value.id
            return
        if hasattr(value, "to_string"):
            for _ in range(self.render_passes):
                str(value)


class SimulatedPage:
    """In-memory browser page on a virtual clock.

    Args:
        url: Current location
        user_agent: navigator.userAgent
        platform: navigator.platform
        max_touch_points: navigator.maxTouchPoints
        parent: Embedding page when this page is an iframe
        timers: Timer host shared with the parent, if any
    """

    def __init__(
        self,
        url: str = "https://example.com/",
        user_agent: str = (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        platform: str = "Win32",
        max_touch_points: int = 0,
        parent: Optional["SimulatedPage"] = None,
        timers: Optional[VirtualTimers] = None,
    ):
        self.url = url
        self.user_agent = user_agent
        self.platform = platform
        self.max_touch_points = max_touch_points
        self.parent = parent
        self.timers: VirtualTimers = timers or (parent.timers if parent else VirtualTimers())
        self.console = SimulatedConsole(self.timers)

        self.outer_width = 1280
        self.inner_width = 1280
        self.outer_height = 800
        self.inner_height = 720
        self.device_pixel_ratio: Optional[float] = 1.0
        self.screen_device_xdpi: Optional[float] = None
        self.screen_logical_xdpi: Optional[float] = None

        self.document_flags: Dict[str, bool] = {"hidden": False}
        self.globals: Dict[str, Any] = {}
        self.marker_attributes: Optional[Dict[str, str]] = None
        self.document_html = "<html><body></body></html>"
        self.navigations: List[str] = []
        self.closable = False
        self.closed = False
        self.history_backs = 0
        self.debugger_pause_ms = 0.0
        self.dialog_log: List[Tuple[str, Tuple[Any, ...]]] = []
        self.dialogs: Dict[str, Callable[..., Any]] = {
            name: self._make_dialog(name) for name in DIALOG_NAMES
        }
        self._listeners: Dict[str, List[EventHandler]] = {}

    @property
    def host(self) -> str:
        return urlsplit(self.url).netloc

    @property
    def is_top(self) -> bool:
        return self.parent is None

    def now(self) -> float:
        return self.timers.now()

    # Events

    def add_event_listener(self, event_type: str, handler: EventHandler) -> None:
        self._listeners.setdefault(event_type, []).append(handler)

    def listener_count(self, event_type: Optional[str] = None) -> int:
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return sum(len(handlers) for handlers in self._listeners.values())

    def dispatch_event(self, event: DomEvent) -> DomEvent:
        for handler in list(self._listeners.get(event.type, [])):
            handler(event)
        return event

    def press_key(self, key: str, key_code: int, **modifiers: bool) -> DomEvent:
        return self.dispatch_event(DomEvent(type="keydown", key=key, key_code=key_code, **modifiers))

    # Dialogs

    def alert(self, *args: Any) -> Any:
        return self.dialogs["alert"](*args)

    def confirm(self, *args: Any) -> Any:
        return self.dialogs["confirm"](*args)

    def prompt(self, *args: Any) -> Any:
        return self.dialogs["prompt"](*args)

    def _make_dialog(self, name: str) -> Callable[..., Any]:
        def _dialog(*args: Any) -> Any:
            self.dialog_log.append((name, args))
            return None if name != "confirm" else True

        return _dialog

    # Navigation and document

    def navigate(self, url: str) -> None:
        self.navigations.append(url)
        self.url = url

    def write_document(self, html: str) -> None:
        self.document_html = html

    def close(self) -> None:
        if self.closable:
            self.closed = True

    def history_back(self) -> None:
        self.history_backs += 1

    def run_debugger(self) -> None:
        if self.console.inspector_attached and self.debugger_pause_ms:
            self.timers.sleep(self.debugger_pause_ms)

    # Scenario helpers

    def open_frame(self, url: Optional[str] = None) -> "SimulatedPage":
        """Create an iframe page embedded in this one."""
        return SimulatedPage(
            url=url or self.url,
            user_agent=self.user_agent,
            platform=self.platform,
            max_touch_points=self.max_touch_points,
            parent=self,
        )

    def resize(self, inner_width: Optional[int] = None, inner_height: Optional[int] = None) -> None:
        if inner_width is not None:
            self.inner_width = inner_width
        if inner_height is not None:
            self.inner_height = inner_height
        self.dispatch_event(DomEvent(type="resize"))

    def open_devtools(self, docked: bool = False, panel_px: int = 320, pause_ms: float = 0.0) -> None:
        """Attach an inspector; a docked panel also shrinks the viewport."""
        self.console.inspector_attached = True
        self.debugger_pause_ms = pause_ms
        if docked:
            self.resize(inner_width=self.outer_width - panel_px)

    def close_devtools(self) -> None:
        self.console.inspector_attached = False
        self.debugger_pause_ms = 0.0
        if self.inner_width != self.outer_width:
            self.resize(inner_width=self.outer_width)

    def set_hidden(self, hidden: bool) -> None:
        """Flip whichever visibility flag the page exposes and notify."""
        for flag, event_name in VISIBILITY_APIS:
            if flag in self.document_flags:
                self.document_flags[flag] = hidden
                self.dispatch_event(DomEvent(type=event_name))
                return
