"""
Export Configuration

Tuning options for the paginated export and the browser session credentials
used to authenticate against the Koinly API.

Credentials are resolved in order: explicit values, environment variables
(KOINLY_API_KEY, KOINLY_PORTFOLIO_ID, KOINLY_COOKIE, KOINLY_USER_AGENT), then
the API_KEY / PORTFOLIO_ID entries of a raw browser cookie string. A local
.env file is loaded when present.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import MissingCredentialsError

logger = logging.getLogger(__name__)

load_dotenv()


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

API_KEY_COOKIE = "API_KEY"
PORTFOLIO_ID_COOKIE = "PORTFOLIO_ID"


# =============================================================================
# Export Options
# =============================================================================

@dataclass(frozen=True)
class ExportConfig:
    """Rate limiting and paging options for one export run."""

    min_delay_ms: int = 3000
    max_delay_ms: int = 7000
    checkpoint_interval_pages: int = 10  # Extra pause after every Nth page
    checkpoint_delay_ms: int = 15000
    page_size: int = 25

    def __post_init__(self):
        if self.min_delay_ms < 0 or self.max_delay_ms < 0 or self.checkpoint_delay_ms < 0:
            raise ValueError("Delays must not be negative")
        if self.min_delay_ms > self.max_delay_ms:
            raise ValueError(
                f"min_delay_ms ({self.min_delay_ms}) exceeds max_delay_ms ({self.max_delay_ms})"
            )
        if self.checkpoint_interval_pages < 1:
            raise ValueError("checkpoint_interval_pages must be at least 1")
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")

    @property
    def mean_delay_ms(self) -> float:
        return (self.min_delay_ms + self.max_delay_ms) / 2


# =============================================================================
# Credentials
# =============================================================================

def parse_cookie_header(cookie: Optional[str]) -> dict[str, str]:
    """Parse a browser cookie string ("a=1; b=2") into a name -> value map."""
    if not cookie:
        return {}

    cookies = {}
    for part in cookie.split(";"):
        name, sep, value = part.strip().partition("=")
        if not sep or not name:
            continue
        cookies[name] = value
    return cookies


@dataclass(frozen=True)
class KoinlyCredentials:
    """Session values copied from an authenticated browser."""

    api_key: str
    portfolio_id: str
    cookie: Optional[str] = None  # Raw cookie string, forwarded as-is
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def resolve(
        cls,
        api_key: Optional[str] = None,
        portfolio_id: Optional[str] = None,
        cookie: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> KoinlyCredentials:
        """
        Build credentials from explicit values, the environment and a cookie string.

        Raises:
            MissingCredentialsError: if the token or portfolio id is still unknown
        """
        cookie = cookie or os.getenv("KOINLY_COOKIE") or None
        cookie_map = parse_cookie_header(cookie)

        api_key = api_key or os.getenv("KOINLY_API_KEY") or cookie_map.get(API_KEY_COOKIE)
        portfolio_id = (
            portfolio_id
            or os.getenv("KOINLY_PORTFOLIO_ID")
            or cookie_map.get(PORTFOLIO_ID_COOKIE)
        )
        user_agent = user_agent or os.getenv("KOINLY_USER_AGENT") or DEFAULT_USER_AGENT

        missing = []
        if not api_key:
            missing.append(f"API token (--api-key, KOINLY_API_KEY or {API_KEY_COOKIE} cookie)")
        if not portfolio_id:
            missing.append(
                f"portfolio id (--portfolio-id, KOINLY_PORTFOLIO_ID or {PORTFOLIO_ID_COOKIE} cookie)"
            )
        if missing:
            message = "Missing " + " and ".join(missing)
            logger.error(message)
            raise MissingCredentialsError(message)

        return cls(
            api_key=api_key,
            portfolio_id=portfolio_id,
            cookie=cookie,
            user_agent=user_agent,
        )
