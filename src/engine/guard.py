"""Devtool Guard - drives detectors on a timer and reconciles their votes.

Lifecycle: STOPPED -> RUNNING <-> SUSPENDED -> STOPPED. While suspended the
interval keeps firing but ticks do nothing, so resuming is immediate.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Set, Type
from urllib.parse import quote

from src.core.config import BLOCKED_PAGE_URL, GuardConfig, options_from_marker
from src.core.environment import EnvironmentInfo, probe_environment
from src.detector.base_detector import BaseDetector, DetectionEvent, DetectorContext, DetectorKind
from src.detector.registry import (
    DetectorRegistry,
    create_detectors,
    default_registry,
    register_detector,
    resolve_kinds,
)
from src.host.page import DIALOG_NAMES, DomEvent, Page
from src.policy.bypass import BypassPolicy
from src.policy.suppressors import Suppressors

logger = logging.getLogger(__name__)

# Delay before the fallback redirect when closing the tab did not work
CLOSE_FALLBACK_DELAY_MS = 500

# Detections kept in DevtoolGuard.events
MAX_EVENT_HISTORY = 1000

REASON_ALREADY_RUNNING = "already running"

PAUSE_MANUAL = "manual"
PAUSE_HIDDEN = "hidden"
PAUSE_DIALOG = "dialog"


class GuardState(str, Enum):
    """Engine states."""

    STOPPED = "stopped"
    RUNNING = "running"
    SUSPENDED = "suspended"


class StateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


@dataclass
class StartResult:
    """Outcome of ``DevtoolGuard.start``."""

    success: bool
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {"success": self.success}
        if self.reason:
            result["reason"] = self.reason
        return result


class DevtoolGuard:
    """Scheduler and suspension engine for devtool detectors."""

    TRANSITIONS: Dict[GuardState, List[GuardState]] = {
        GuardState.STOPPED: [GuardState.RUNNING],
        GuardState.RUNNING: [GuardState.SUSPENDED, GuardState.STOPPED],
        GuardState.SUSPENDED: [GuardState.RUNNING, GuardState.STOPPED],
    }

    def __init__(self, page: Page, registry: Optional[DetectorRegistry] = None):
        """Initialize guard.

        Args:
            page: Page to guard; its timers drive the engine
            registry: Detector implementations; the built-ins when omitted
        """
        self.page = page
        self.registry: DetectorRegistry = (
            default_registry() if registry is None else dict(registry)
        )
        self.config = GuardConfig()
        self.environment: Optional[EnvironmentInfo] = None
        self.policy: Optional[BypassPolicy] = None
        self.suppressors: Optional[Suppressors] = None
        self.state = GuardState.STOPPED

        self.detectors: Dict[DetectorKind, BaseDetector] = {}
        self.open_state: Dict[DetectorKind, bool] = {}
        self.events: Deque[DetectionEvent] = deque(maxlen=MAX_EVENT_HISTORY)
        self.total_events = 0

        self._tick_counter = 0
        self._interval_id: Optional[int] = None
        self._idle_timer_id: Optional[int] = None
        self._last_opened = False
        self._pause_reasons: Set[str] = set()
        self._hooks_installed = False

    def register_detector(self, kind: DetectorKind, detector_cls: Type[BaseDetector]) -> None:
        """Replace the implementation of a kind for this guard only."""
        register_detector(kind, detector_cls, self.registry)

    # Lifecycle

    @property
    def is_running(self) -> bool:
        return self.state is not GuardState.STOPPED

    @property
    def is_suspended(self) -> bool:
        return self.state is GuardState.SUSPENDED

    @property
    def is_polling(self) -> bool:
        """Whether the repeating timer is armed."""
        return self._interval_id is not None

    def can_transition(self, target: GuardState) -> bool:
        return target in self.TRANSITIONS[self.state]

    def _transition(self, target: GuardState) -> None:
        if not self.can_transition(target):
            raise StateTransitionError(
                f"Cannot transition guard from {self.state.value} to {target.value}"
            )
        logger.debug(f"[Guard] {self.state.value} -> {target.value}")
        self.state = target

    def start(self, options: Optional[Dict[str, Any]] = None) -> StartResult:
        """Start guarding the page.

        Args:
            options: Option mapping merged into the defaults

        Returns:
            StartResult; a bypass or a second start reports success=False
        """
        if self.is_running:
            return StartResult(success=False, reason=REASON_ALREADY_RUNNING)

        self.environment = probe_environment(self.page)
        self.config = GuardConfig.merged(options)
        self.policy = BypassPolicy(self.config)

        reason = self.policy.evaluate(self.page)
        if reason is not None:
            return StartResult(success=False, reason=reason)

        if self.suppressors is None:
            self.suppressors = Suppressors(self.config, self.environment)
        else:
            self.suppressors.update(self.config, self.environment)
        self.suppressors.install(self.page)

        if not self._hooks_installed:
            self._hook_dialogs()
            self._hook_visibility()
            self._hooks_installed = True

        kinds = resolve_kinds(self.config.detectors, self.registry)

        self._transition(GuardState.RUNNING)
        self._tick_counter = 0
        self._last_opened = False
        self.open_state = {}
        self.detectors = {}

        timers = self.page.timers
        self._interval_id = timers.set_interval(self.tick, self.config.interval)
        if self.config.stop_interval_time > 0:
            self._idle_timer_id = timers.set_timeout(
                self._on_idle_timeout, self.config.stop_interval_time
            )

        # Timers first: a detector may fire while it initializes
        context = DetectorContext(
            page=self.page,
            environment=self.environment,
            config=self.config,
            on_open=self.on_devtool_open,
        )
        try:
            constructed = create_detectors(kinds, context, self.registry)
        except Exception:
            logger.exception("[Guard] Building detectors failed, rolling back")
            self.stop()
            raise
        self.detectors = {kind: d for kind, d in constructed.items() if d.enabled}
        for detector in constructed.values():
            if not detector.enabled:
                detector.dispose()

        if self._page_hidden():
            self.suspend(PAUSE_HIDDEN)

        logger.info(
            f"[Guard] Started on {self.page.url} with "
            f"{[d.name for d in self.detectors.values()]} every {self.config.interval}ms"
        )
        return StartResult(success=True)

    def stop(self) -> None:
        """Stop polling and drop detector state.

        Listeners installed by detectors stay on the page until it unloads,
        but the disposed detectors behind them no longer report.
        """
        if not self.is_running:
            return
        self._clear_interval()
        self._clear_idle_timer()
        self._pause_reasons.clear()
        for detector in self.detectors.values():
            detector.dispose()
        self.detectors = {}
        self.open_state = {}
        self._transition(GuardState.STOPPED)
        logger.info("[Guard] Stopped")

    def suspend(self, reason: str = PAUSE_MANUAL) -> None:
        """Pause tick processing. Repeating a reason has no extra effect."""
        if not self.is_running:
            return
        self._pause_reasons.add(reason)
        if self.state is GuardState.RUNNING:
            self._transition(GuardState.SUSPENDED)

    def resume(self, reason: str = PAUSE_MANUAL) -> None:
        """Lift one pause reason; ticks resume once none remain."""
        self._pause_reasons.discard(reason)
        if self.state is GuardState.SUSPENDED and not self._pause_reasons:
            self._transition(GuardState.RUNNING)

    # Ticks

    def tick(self) -> None:
        """Run every active detector once and reconcile their votes."""
        if self.state is not GuardState.RUNNING:
            return

        try:
            if self.policy is not None and self.policy.is_ignored(self.page.url):
                return
        except Exception as e:
            logger.warning(f"[Guard] Ignore rule failed for {self.page.url}: {e}")

        for kind, detector in list(self.detectors.items()):
            self.open_state[kind] = False
            detector.run_detect(self._tick_counter)
            self._tick_counter += 1

        if self.config.clear_log:
            self.page.console.clear()

        self._check_close()

    def is_devtool_opened(self) -> bool:
        """Whether any detector currently believes devtools are open."""
        return any(self.open_state.values())

    def _check_close(self) -> None:
        opened = self.is_devtool_opened()
        if self._last_opened and not opened and self.config.ondevtoolclose is not None:
            logger.info("[Guard] Devtools closed")
            try:
                self.config.ondevtoolclose()
            except Exception:
                logger.exception("[Guard] ondevtoolclose callback failed")
        self._last_opened = opened

    # Detection

    def on_devtool_open(self, kind: DetectorKind) -> None:
        """Shared handler every detector reports to.

        Args:
            kind: Kind of the firing detector
        """
        if not self.is_running:
            logger.debug(f"[Guard] Ignoring {kind.name.lower()} report, guard is stopped")
            return

        logger.warning(f"[Guard] Devtools detected by {kind.name.lower()} (type = {int(kind)})")
        self.page.console.warn(f"You don't have permission to use DEVTOOL!【type = {int(kind)}】")

        if self.config.clear_interval_when_dev_open_trigger:
            self._clear_interval()
        self._clear_idle_timer()

        self.config.ondevtoolopen(kind, self.default_action)
        self.open_state[kind] = True
        self.events.append(DetectionEvent(kind=kind, tick=self._tick_counter))
        self.total_events += 1

    def default_action(self) -> None:
        """Leave the page: redirect, rewrite, or close with a redirect fallback."""
        if self.config.url:
            self.page.navigate(self.config.url)
            return

        if self.config.rewrite_html:
            self.page.write_document(self.config.rewrite_html)
            return

        try:
            self.page.close()
            self.page.history_back()
        except Exception as e:
            logger.debug(f"[Guard] Close attempt failed: {e}")

        self.page.timers.set_timeout(
            lambda: self.page.navigate(self.timeout_url()),
            CLOSE_FALLBACK_DELAY_MS,
        )

    def timeout_url(self) -> str:
        """Fallback page used when the tab could not be closed."""
        if self.config.timeout_url:
            return self.config.timeout_url
        return f"{BLOCKED_PAGE_URL}?h={quote(self.page.host, safe='')}"

    # Timers and hooks

    def _clear_interval(self) -> None:
        self.page.timers.clear(self._interval_id)
        self._interval_id = None

    def _clear_idle_timer(self) -> None:
        self.page.timers.clear(self._idle_timer_id)
        self._idle_timer_id = None

    def _on_idle_timeout(self) -> None:
        self._idle_timer_id = None
        env = self.environment
        if env is not None and env.is_pc and not env.uses_debug_lib:
            logger.info(
                f"[Guard] No detection after {self.config.stop_interval_time}ms, "
                "stopping the tick loop"
            )
            self._clear_interval()

    def _hook_dialogs(self) -> None:
        for name in DIALOG_NAMES:
            original = self.page.dialogs.get(name)
            if original is None:
                continue
            self.page.dialogs[name] = self._wrap_dialog(original)

    def _wrap_dialog(self, original: Callable[..., Any]) -> Callable[..., Any]:
        def _dialog(*args: Any) -> Any:
            self.suspend(PAUSE_DIALOG)
            try:
                return original(*args)
            finally:
                self.resume(PAUSE_DIALOG)

        return _dialog

    def _hook_visibility(self) -> None:
        api = self.environment.visibility_api if self.environment else None
        if api is None:
            return
        _, event_name = api
        self.page.add_event_listener(event_name, self._on_visibility_change)

    def _page_hidden(self) -> bool:
        api = self.environment.visibility_api if self.environment else None
        return bool(api and self.page.document_flags.get(api[0]))

    def _on_visibility_change(self, event: DomEvent) -> None:
        if self._page_hidden():
            self.suspend(PAUSE_HIDDEN)
        else:
            self.resume(PAUSE_HIDDEN)

    # Status

    def get_status(self) -> Dict[str, Any]:
        """Get guard status.

        Returns:
            Status dictionary
        """
        return {
            "state": self.state.value,
            "polling": self.is_polling,
            "devtool_opened": self.is_devtool_opened(),
            "open_state": {int(k): v for k, v in self.open_state.items()},
            "detectors": [d.get_status() for d in self.detectors.values()],
            "total_events": self.total_events,
            "interval_ms": self.config.interval,
        }


def auto_start(page: Page) -> Optional[DevtoolGuard]:
    """Start a guard from the page's declarative marker, if it has one.

    Returns:
        The started guard, or None when the page carries no marker
    """
    options = options_from_marker(page.marker_attributes)
    if options is None:
        return None

    guard = DevtoolGuard(page)
    result = guard.start(options)
    logger.info(f"[Guard] Auto start: {result.to_dict()}")
    return guard
