"""Configuration management for the devtool guard."""

import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# Keys accepted whatever the type of the incoming value
ALWAYS_ACCEPTED_KEYS = frozenset({"detectors", "ondevtoolclose", "ignore"})

MARKER_ATTRIBUTE = "disable-devtool-auto"

BLOCKED_PAGE_URL = "https://theajack.github.io/disable-devtool/404.html"


def default_devtool_open(kind: int, default_action: Callable[[], None]) -> None:
    """Default open handler: run the default action."""
    default_action()


class GuardConfig(BaseModel):
    """Effective guard configuration."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    md5: str = ""
    url: str = ""
    tk_name: str = Field(default="ddtk", alias="tkName")
    ondevtoolopen: Callable[..., Any] = default_devtool_open
    ondevtoolclose: Optional[Callable[[], Any]] = None
    interval: int = 500
    disable_menu: bool = Field(default=True, alias="disableMenu")
    stop_interval_time: int = Field(default=5000, alias="stopIntervalTime")
    clear_interval_when_dev_open_trigger: bool = Field(
        default=False, alias="clearIntervalWhenDevOpenTrigger"
    )
    detectors: Union[str, List[int]] = "all"
    clear_log: bool = Field(default=True, alias="clearLog")
    disable_select: bool = Field(default=False, alias="disableSelect")
    disable_copy: bool = Field(default=False, alias="disableCopy")
    disable_cut: bool = Field(default=False, alias="disableCut")
    disable_paste: bool = Field(default=False, alias="disablePaste")
    ignore: Any = None
    disable_iframe_parents: bool = Field(default=True, alias="disableIframeParents")
    seo: bool = True
    rewrite_html: str = Field(default="", alias="rewriteHTML")
    timeout_url: str = Field(default="", alias="timeOutUrl")

    @classmethod
    def merged(cls, options: Optional[Dict[str, Any]] = None) -> "GuardConfig":
        """Build a config from the defaults and an options mapping."""
        return merge_options(cls(), options or {})


class AppSettings(BaseModel):
    """Process settings read from the environment."""

    log_level: str = "INFO"
    config_path: Optional[str] = None


_EXTRA_ALIASES = {
    "onDevToolOpen": "ondevtoolopen",
    "onDevToolClose": "ondevtoolclose",
}


def _build_key_index() -> Dict[str, str]:
    index: Dict[str, str] = {}
    for name, info in GuardConfig.model_fields.items():
        index[name] = name
        if info.alias:
            index[info.alias] = name
    index.update(_EXTRA_ALIASES)
    return index


_KEY_INDEX = _build_key_index()
_KEY_INDEX_LOWER = {key.lower(): name for key, name in _KEY_INDEX.items()}


def resolve_option_key(key: str) -> Optional[str]:
    """Map an option name (field name, camelCase alias) to a field name."""
    return _KEY_INDEX.get(key) or _KEY_INDEX_LOWER.get(key.lower())


def type_tag(value: Any) -> str:
    """Runtime type tag used by the merge rule."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "list"
    if isinstance(value, dict):
        return "object"
    if callable(value):
        return "function"
    return type(value).__name__


def merge_options(config: GuardConfig, options: Dict[str, Any]) -> GuardConfig:
    """Merge options into a config.

    A value replaces the current one only when its type tag matches the
    current value's, or its key is always accepted. Anything else is
    dropped without raising.

    Args:
        config: Config to merge into (left unchanged)
        options: Option mapping keyed by field name or camelCase name

    Returns:
        New GuardConfig with the accepted options applied
    """
    updates: Dict[str, Any] = {}

    for key, value in options.items():
        name = resolve_option_key(key)
        if name is None:
            logger.debug(f"[Config] Ignoring unknown option: {key}")
            continue

        current = getattr(config, name)
        if name in ALWAYS_ACCEPTED_KEYS or type_tag(value) == type_tag(current):
            updates[name] = value
        else:
            logger.debug(
                f"[Config] Ignoring {key}: expected {type_tag(current)}, got {type_tag(value)}"
            )

    return config.model_copy(update=updates)


def load_guard_options(config_path: str | None = None) -> Dict[str, Any]:
    """Load guard options from a YAML file."""
    if config_path is None:
        config_path = os.getenv("GUARD_CONFIG_PATH", "guard.yaml")

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Guard config not found: {config_path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    return data or {}


def load_app_settings() -> AppSettings:
    """Load process settings from environment variables."""
    return AppSettings(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        config_path=os.getenv("GUARD_CONFIG_PATH") or None,
    )


def _kebab_to_camel(name: str) -> str:
    head, *rest = name.split("-")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _coerce_attribute(value: str) -> Any:
    if value == "true":
        return True
    if value == "false":
        return False
    if re.fullmatch(r"-?\d+", value):
        return int(value)
    return value


def options_from_marker(attributes: Optional[Dict[str, str]]) -> Optional[Dict[str, Any]]:
    """Derive options from a declarative marker element.

    Args:
        attributes: Marker attributes, kebab-case names

    Returns:
        Options mapping, or None when the marker does not request activation
    """
    if not attributes or MARKER_ATTRIBUTE not in attributes:
        return None

    options: Dict[str, Any] = {}
    for name, raw in attributes.items():
        if name == MARKER_ATTRIBUTE:
            continue
        key = _kebab_to_camel(name)
        if key == "detectors":
            options[key] = [int(part) for part in raw.split() if re.fullmatch(r"-?\d+", part)]
        elif key == "ignore":
            options[key] = raw.split()
        else:
            options[key] = _coerce_attribute(raw)

    return options
