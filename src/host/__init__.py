"""Host module - page capabilities, decoys and timers."""

from src.host.decoys import DateDecoy, ElementDecoy, FunctionDecoy, RegexDecoy, StringifyDecoy
from src.host.page import DomEvent, Page, SimulatedConsole, SimulatedPage
from src.host.timers import AsyncioTimers, TimerHost, VirtualTimers

__all__ = [
    "AsyncioTimers",
    "DateDecoy",
    "DomEvent",
    "ElementDecoy",
    "FunctionDecoy",
    "Page",
    "RegexDecoy",
    "SimulatedConsole",
    "SimulatedPage",
    "StringifyDecoy",
    "TimerHost",
    "VirtualTimers",
]
