"""Environment Probe - one-time browser and platform capability detection."""

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple

from src.host.page import VISIBILITY_APIS, Page

logger = logging.getLogger(__name__)

# Global name -> attribute path that is truthy while its panel is visible
DEBUG_LIB_PROBES: Dict[str, Tuple[str, ...]] = {
    "eruda": ("_devTools", "_isShow"),
    "vConsole": ("isShow",),
}

_MOBILE_UA = re.compile(r"iphone|ipad|ipod|ios|android", re.IGNORECASE)


@dataclass(frozen=True)
class EnvironmentInfo:
    """Browser family, device class and frame nesting of a page."""

    is_pc: bool
    is_mobile: bool
    is_qq_browser: bool
    is_firefox: bool
    is_mac_os: bool
    is_edge: bool
    is_old_edge: bool
    is_ie: bool
    is_chrome: bool
    is_safari: bool
    is_ios_chrome: bool
    is_ios_edge: bool
    is_in_iframe: bool
    uses_debug_lib: bool
    visibility_api: Optional[Tuple[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


def _lookup_path(root: Any, path: Tuple[str, ...]) -> Any:
    value = root
    for name in path:
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get(name)
        else:
            value = getattr(value, name, None)
    return value


def debug_lib_present(page: Page) -> bool:
    """Check whether a known in-page debug console is loaded."""
    return any(page.globals.get(name) is not None for name in DEBUG_LIB_PROBES)


def debug_lib_visible(page: Page) -> bool:
    """Check whether a known in-page debug console panel is showing."""
    for name, path in DEBUG_LIB_PROBES.items():
        lib = page.globals.get(name)
        if lib is not None and _lookup_path(lib, path):
            return True
    return False


def resolve_visibility_api(page: Page) -> Optional[Tuple[str, str]]:
    """Find the first visibility flag the page exposes.

    Returns:
        (flag, change event) or None when no visibility API exists
    """
    for flag, event_name in VISIBILITY_APIS:
        if flag in page.document_flags:
            return flag, event_name
    return None


def probe_environment(page: Page) -> EnvironmentInfo:
    """Detect browser family, device class and frame nesting.

    Args:
        page: Page to inspect

    Returns:
        EnvironmentInfo for the page
    """
    ua = page.user_agent.lower()

    # iPadOS reports a desktop platform but has touch points
    is_ipad_desktop_mode = page.platform == "MacIntel" and page.max_touch_points > 1
    is_mobile = bool(_MOBILE_UA.search(ua)) or is_ipad_desktop_mode

    is_ios_chrome = "crios" in ua
    is_ios_edge = "edgios" in ua
    is_edge = "edg" in ua
    is_chrome = ("chrome" in ua or is_ios_chrome) and not is_edge

    visibility_api = resolve_visibility_api(page)
    if visibility_api is None:
        logger.info("[Environment] No visibility API, suspension on hide disabled")

    info = EnvironmentInfo(
        is_pc=not is_mobile,
        is_mobile=is_mobile,
        is_qq_browser="qqbrowser" in ua,
        is_firefox="firefox" in ua,
        is_mac_os="macintosh" in ua,
        is_edge=is_edge,
        is_old_edge="edge/" in ua,
        is_ie="msie" in ua or "trident" in ua,
        is_chrome=is_chrome,
        is_safari="safari" in ua and not is_chrome and not is_edge,
        is_ios_chrome=is_ios_chrome,
        is_ios_edge=is_ios_edge,
        is_in_iframe=not page.is_top,
        uses_debug_lib=debug_lib_present(page),
        visibility_api=visibility_api,
    )
    logger.debug(f"[Environment] Probed: {info}")
    return info
