"""Instrumented decoy values handed to the page console.

A console that renders a value for an attached inspector stringifies it or
reads its properties. These wrappers turn those reads into callbacks.
"""

import re
from datetime import datetime
from typing import Any, Callable, Optional


class StringifyDecoy:
    """Value whose string conversion is observed.

    Args:
        label: Text returned from the conversion
        on_stringify: Called on every conversion
    """

    def __init__(self, label: str, on_stringify: Callable[[], None]):
        self._label = label
        self._on_stringify = on_stringify

    def to_string(self) -> str:
        self._on_stringify()
        return self._label

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return self.to_string()


class RegexDecoy(StringifyDecoy):
    """Regular expression whose pretty-printing is observed."""

    def __init__(self, pattern: str, on_stringify: Callable[[], None]):
        self.pattern = re.compile(pattern)
        super().__init__(f"/{pattern}/", on_stringify)


class DateDecoy(StringifyDecoy):
    """Date value whose pretty-printing is observed."""

    def __init__(self, on_stringify: Callable[[], None], value: Optional[datetime] = None):
        self.value = value or datetime.utcnow()
        super().__init__(self.value.isoformat(), on_stringify)


class FunctionDecoy(StringifyDecoy):
    """No-op callable whose source rendering is observed."""

    def __init__(self, on_stringify: Callable[[], None]):
        super().__init__("function () {}", on_stringify)

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        return None


class ElementDecoy:
    """Detached element whose ``id`` property is trapped.

    Only a live inspector expands an element and reads its ``id``.
    """

    tag_name = "div"

    def __init__(self, on_id_read: Callable[[], None]):
        self._on_id_read = on_id_read

    @property
    def id(self) -> str:
        self._on_id_read()
        return ""

    def __repr__(self) -> str:
        return f"<{self.tag_name}>"
