"""Policy module - bypass rules and DOM event suppression."""

from src.policy.bypass import BypassPolicy, get_url_param, is_seo_bot, token_digest
from src.policy.suppressors import Suppressors, install_suppressors, is_devtools_shortcut

__all__ = [
    "BypassPolicy",
    "Suppressors",
    "get_url_param",
    "install_suppressors",
    "is_devtools_shortcut",
    "is_seo_bot",
    "token_digest",
]
