"""Event suppressors - block devtools shortcuts, context menu and clipboard.

Handlers are installed once per page and read the current configuration
when an event fires, so a restarted guard applies its new flags without
stacking listeners.
"""

import logging
from typing import Callable, List, Optional

from src.core.config import GuardConfig
from src.core.environment import EnvironmentInfo
from src.host.page import DomEvent, Page

logger = logging.getLogger(__name__)

KEY_F12 = 123
KEY_I = 73
KEY_J = 74
KEY_C = 67
KEY_U = 85

INSPECTOR_KEYS = (KEY_I, KEY_J, KEY_C)

# Blockable event type -> config flag gating it
FLAGGED_EVENTS = {
    "contextmenu": "disable_menu",
    "selectstart": "disable_select",
    "copy": "disable_copy",
    "cut": "disable_cut",
    "paste": "disable_paste",
}


def is_devtools_shortcut(event: DomEvent, environment: EnvironmentInfo) -> bool:
    """Check whether a keydown opens devtools or the page source.

    Args:
        event: keydown event
        environment: Probed environment (mac uses Meta+Alt)

    Returns:
        True for F12, inspector combos and view-source
    """
    code = event.key_code
    if code == KEY_F12:
        return True

    if environment.is_mac_os:
        if event.meta_key and event.alt_key and code in INSPECTOR_KEYS:
            return True
        if event.meta_key and code == KEY_U:
            return True
    else:
        if event.ctrl_key and event.shift_key and code in INSPECTOR_KEYS:
            return True
        if event.ctrl_key and code == KEY_U:
            return True

    return False


def page_chain(page: Page, include_parents: bool) -> List[Page]:
    """The page followed by its ancestors up to the top window."""
    pages = [page]
    if include_parents:
        current = page.parent
        while current is not None:
            pages.append(current)
            current = current.parent
    return pages


class Suppressors:
    """Keyboard, context menu and clipboard suppressors for one guard.

    Args:
        config: Effective guard configuration
        environment: Probed environment
    """

    def __init__(self, config: GuardConfig, environment: EnvironmentInfo):
        self.config = config
        self.environment = environment
        self._covered: List[Page] = []
        self._origin: Optional[Page] = None

    def update(self, config: GuardConfig, environment: EnvironmentInfo) -> None:
        """Switch installed handlers to a new configuration."""
        self.config = config
        self.environment = environment

    def install(self, page: Page) -> int:
        """Cover the page and, when configured, its ancestors.

        Pages already covered keep their handlers.

        Returns:
            Number of pages the current configuration covers
        """
        self._origin = page
        pages = page_chain(page, self.config.disable_iframe_parents)
        added = 0
        for target in pages:
            if any(target is covered for covered in self._covered):
                continue
            self._add_handlers(target)
            self._covered.append(target)
            added += 1

        logger.debug(
            f"[Suppressors] Covering {len(pages)} page(s), {added} newly instrumented"
        )
        return len(pages)

    def _applies_to(self, target: Page) -> bool:
        return target is self._origin or self.config.disable_iframe_parents

    def _add_handlers(self, target: Page) -> None:
        def _on_keydown(event: DomEvent) -> None:
            if self._applies_to(target) and is_devtools_shortcut(event, self.environment):
                event.prevent_default()

        target.add_event_listener("keydown", _on_keydown)
        for event_type, flag in FLAGGED_EVENTS.items():
            target.add_event_listener(event_type, self._flag_handler(target, flag))

    def _flag_handler(self, target: Page, flag: str) -> Callable[[DomEvent], None]:
        def _handler(event: DomEvent) -> None:
            if self._applies_to(target) and getattr(self.config, flag):
                event.prevent_default()

        return _handler


def install_suppressors(page: Page, config: GuardConfig, environment: EnvironmentInfo) -> Suppressors:
    """Install suppressors on a page and, when configured, its ancestors.

    Returns:
        The installed Suppressors; update it to change flags later
    """
    suppressors = Suppressors(config, environment)
    suppressors.install(page)
    return suppressors
