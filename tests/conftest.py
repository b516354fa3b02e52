"""Pytest configuration and fixtures."""

import tempfile
from pathlib import Path
from typing import Callable, Generator, Optional
from unittest.mock import MagicMock

import pytest

from src.core.config import GuardConfig
from src.core.environment import probe_environment
from src.detector.base_detector import DetectorContext
from src.engine.guard import DevtoolGuard
from src.host.page import SimulatedPage

CHROME_WINDOWS_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
CHROME_MAC_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
FIREFOX_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0"
EDGE_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.2210.91"
)
QQ_BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; WOW64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/70.0.3538.25 Safari/537.36 Core/1.70.3870.400 QQBrowser/10.8.4405.400"
)
IOS_CHROME_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) CriOS/120.0.6099.119 Mobile/15E148 Safari/604.1"
)
ANDROID_CHROME_UA = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
GOOGLEBOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def page() -> SimulatedPage:
    """Desktop Chrome page with devtools closed."""
    return SimulatedPage(url="https://example.com/", user_agent=CHROME_WINDOWS_UA)


@pytest.fixture
def guard(page: SimulatedPage) -> DevtoolGuard:
    """Guard bound to the default page, not started."""
    return DevtoolGuard(page)


@pytest.fixture
def on_open() -> MagicMock:
    """Mock ondevtoolopen callback that does not leave the page."""
    return MagicMock()


@pytest.fixture
def make_context() -> Callable[..., DetectorContext]:
    """Factory for detector contexts on a given page."""

    def _make(
        page: SimulatedPage,
        on_open: Optional[Callable] = None,
        config: Optional[GuardConfig] = None,
    ) -> DetectorContext:
        return DetectorContext(
            page=page,
            environment=probe_environment(page),
            config=config or GuardConfig(),
            on_open=on_open or MagicMock(),
        )

    return _make
