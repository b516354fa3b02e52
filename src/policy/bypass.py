"""Bypass Policy - conditions under which detection does not run at all."""

import hashlib
import logging
import re
from typing import Dict, Optional
from urllib.parse import parse_qs, urlsplit

from src.core.config import GuardConfig
from src.host.page import Page

logger = logging.getLogger(__name__)

TOKEN_SALT_PREFIX = "disable-devtool:"
TOKEN_SALT_SUFFIX = ":ddtk"

REASON_TOKEN = "token"
REASON_IGNORE = "ignore"
REASON_SEO = "seo"

# Search engine and link preview crawlers
SEO_BOT_PATTERNS = [
    "googlebot", "google-inspectiontool", "mediapartners-google", "adsbot-google",
    "bingbot", "msnbot", "slurp", "duckduckbot", "baiduspider", "yandexbot",
    "sogou", "360spider", "haosouspider", "bytespider", "yisouspider",
    "petalbot", "applebot", "ia_archiver", "facebookexternalhit", "twitterbot",
    "linkedinbot", "slackbot", "telegrambot", "discordbot",
]

_SEO_BOT_RE = re.compile("|".join(re.escape(p) for p in SEO_BOT_PATTERNS), re.IGNORECASE)


def token_digest(value: str) -> str:
    """Digest configured as ``md5`` for a bypass token value."""
    salted = f"{TOKEN_SALT_PREFIX}{value}{TOKEN_SALT_SUFFIX}"
    return hashlib.md5(salted.encode("utf-8")).hexdigest()


def get_url_param(url: str, name: str) -> Optional[str]:
    """Read a parameter from the query string, then from the hash fragment.

    Returns:
        URL-decoded value, or None
    """
    parts = urlsplit(url)
    values = parse_qs(parts.query, keep_blank_values=True).get(name)
    if values:
        return values[0]

    fragment = parts.fragment
    if "?" in fragment:
        fragment = fragment.split("?", 1)[1]
    values = parse_qs(fragment, keep_blank_values=True).get(name)
    return values[0] if values else None


def is_seo_bot(user_agent: str) -> bool:
    """Check a user agent against the crawler list."""
    return bool(_SEO_BOT_RE.search(user_agent or ""))


class BypassPolicy:
    """Decide whether the guard should skip detection for a page.

    Token and ignore results are cached per URL; a single-page app that
    changes its URL gets re-evaluated.
    """

    def __init__(self, config: GuardConfig):
        """Initialize policy.

        Args:
            config: Effective guard configuration
        """
        self.config = config
        self._token_cache: Dict[str, bool] = {}
        self._ignore_cache: Dict[str, bool] = {}

    def check_token(self, url: str) -> bool:
        """Check whether the URL carries a valid bypass token."""
        if not self.config.md5:
            return False
        if url in self._token_cache:
            return self._token_cache[url]

        value = get_url_param(url, self.config.tk_name)
        valid = value is not None and token_digest(value) == self.config.md5.lower()
        self._token_cache[url] = valid
        return valid

    def is_ignored(self, url: str) -> bool:
        """Check the URL against the ignore rule.

        A predicate's exceptions propagate to the caller.
        """
        ignore = self.config.ignore
        if ignore is None:
            return False
        if url in self._ignore_cache:
            return self._ignore_cache[url]

        if callable(ignore):
            ignored = bool(ignore(url))
        else:
            rules = [ignore] if isinstance(ignore, (str, re.Pattern)) else list(ignore)
            ignored = any(self._rule_matches(rule, url) for rule in rules)

        self._ignore_cache[url] = ignored
        return ignored

    def is_seo_bot(self, user_agent: str) -> bool:
        """Check whether a crawler exemption applies."""
        return self.config.seo and is_seo_bot(user_agent)

    def evaluate(self, page: Page) -> Optional[str]:
        """Evaluate every bypass condition for a page.

        Args:
            page: Page about to be guarded

        Returns:
            Bypass reason, or None when detection should run
        """
        if self.check_token(page.url):
            reason = REASON_TOKEN
        elif self.is_ignored(page.url):
            reason = REASON_IGNORE
        elif self.is_seo_bot(page.user_agent):
            reason = REASON_SEO
        else:
            return None

        logger.info(f"[Bypass] Skipping detection for {page.url}: {reason}")
        return reason

    @staticmethod
    def _rule_matches(rule: object, url: str) -> bool:
        if isinstance(rule, str):
            return rule in url
        if isinstance(rule, re.Pattern):
            return rule.search(url) is not None
        logger.debug(f"[Bypass] Unsupported ignore rule: {rule!r}")
        return False
