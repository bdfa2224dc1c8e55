"""
Koinly Transaction Fetching

Reads the portfolio session and pages of transactions from the Koinly API
using the credentials of an already authenticated browser session.
Produces Transaction records for downstream CSV rendering.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from .config import KoinlyCredentials
from .errors import PageFetchError, SessionFetchError

logger = logging.getLogger(__name__)


# =============================================================================
# Data Structures
# =============================================================================

@dataclass(frozen=True)
class AssetAmount:
    """An amount of a single currency (the from, to or fee side of a transaction)."""

    amount: Optional[str]
    symbol: str

    @classmethod
    def from_api(cls, data: Optional[dict]) -> Optional[AssetAmount]:
        if not data:
            return None
        amount = data.get("amount")
        currency = data.get("currency") or {}
        return cls(
            amount=None if amount is None else str(amount),
            symbol=currency.get("symbol", ""),
        )


@dataclass(frozen=True)
class Transaction:
    """A single Koinly transaction. Deposits have no sent side, withdrawals no received side."""

    date: Optional[str]
    sent: Optional[AssetAmount]
    received: Optional[AssetAmount]
    fee: Optional[AssetAmount]
    net_value: Optional[str]
    label: Optional[str]  # Koinly "type", e.g. "crypto_deposit"
    description: Optional[str]
    tx_hash: Optional[str]

    @classmethod
    def from_api(cls, data: dict) -> Transaction:
        net_value = data.get("net_value")
        return cls(
            date=data.get("date"),
            sent=AssetAmount.from_api(data.get("from")),
            received=AssetAmount.from_api(data.get("to")),
            fee=AssetAmount.from_api(data.get("fee")),
            net_value=None if net_value is None else str(net_value),
            label=data.get("type"),
            description=data.get("description"),
            tx_hash=data.get("txhash"),
        )


@dataclass(frozen=True)
class Page:
    """One fetched page of transactions."""

    page_index: int
    transactions: list[Transaction] = field(default_factory=list)
    total_pages: Optional[int] = None  # Only guaranteed on page 1


@dataclass(frozen=True)
class Session:
    """The parts of the Koinly session descriptor the export needs."""

    base_currency: str


# =============================================================================
# Request Headers
# =============================================================================

APP_ORIGIN = "https://app.koinly.io"


def build_headers(credentials: KoinlyCredentials) -> dict[str, str]:
    """Headers a browser tab on app.koinly.io sends with its API calls."""
    headers = {
        "authority": "api.koinly.io",
        "accept": "application/json, text/plain, */*",
        "accept-language": "en-GB,en-US;q=0.9,en;q=0.8",
        "access-control-allow-credentials": "true",
        "caches-requests": "1",
        "origin": APP_ORIGIN,
        "referer": f"{APP_ORIGIN}/",
        "sec-fetch-dest": "empty",
        "sec-fetch-mode": "cors",
        "sec-fetch-site": "same-site",
        "sec-gpc": "1",
        "user-agent": credentials.user_agent,
        "x-auth-token": credentials.api_key,
        "x-portfolio-token": credentials.portfolio_id,
    }
    if credentials.cookie:
        headers["cookie"] = credentials.cookie
    return headers


def describe_progress(page_index: int, total_pages: Optional[int]) -> str:
    """Return "n of N (x% complete)", or "n of ?" while the total is unknown."""
    if not total_pages:
        return f"{page_index} of ?"
    percent = page_index / total_pages * 100
    return f"{page_index} of {total_pages} ({percent:.1f}% complete)"


# =============================================================================
# Koinly Client
# =============================================================================

# Transport errors, bad status codes, invalid JSON and unexpected body shapes
_FETCH_ERRORS = (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError, AttributeError)


class KoinlyClient:
    """
    Async client for the Koinly web API.

    Usage:
        async with KoinlyClient(credentials) as client:
            session = await client.fetch_session()
            page = await client.fetch_page(1)
    """

    BASE_URL = "https://api.koinly.io"

    def __init__(
        self,
        credentials: KoinlyCredentials,
        page_size: int = 25,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.page_size = page_size
        self.client = httpx.AsyncClient(
            base_url=base_url or self.BASE_URL,
            headers=build_headers(credentials),
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def _get_json(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        response = await self.client.get(path, params=params)
        response.raise_for_status()
        return response.json()

    async def fetch_session(self) -> Session:
        """
        Fetch the session descriptor and read the first portfolio's base currency.

        Raises:
            SessionFetchError: on network failure or an unreadable response
        """
        logger.info("Fetching session...")
        try:
            data = await self._get_json("/api/sessions")
            symbol = data["portfolios"][0]["base_currency"]["symbol"]
        except _FETCH_ERRORS as e:
            logger.error(f"Fetch session failed: {e}")
            raise SessionFetchError(f"Fetch session failed: {e}") from e

        logger.info(f"Base currency: {symbol}")
        return Session(base_currency=symbol)

    async def fetch_page(self, page_index: int, total_pages: Optional[int] = None) -> Page:
        """
        Fetch one page of transactions ordered by date.

        total_pages is only used for the progress message. Page 1 must carry
        meta.page.total_pages; later pages may omit it.

        Raises:
            PageFetchError: on network failure or an unreadable response
        """
        logger.info(f"Fetching page {describe_progress(page_index, total_pages)}")
        params = {"per_page": self.page_size, "order": "date", "page": page_index}

        try:
            data = await self._get_json("/api/transactions", params=params)
            transactions = [Transaction.from_api(tx) for tx in data["transactions"]]

            if page_index == 1:
                reported_total = int(data["meta"]["page"]["total_pages"])
            else:
                page_meta = (data.get("meta") or {}).get("page") or {}
                reported_total = page_meta.get("total_pages")
                reported_total = None if reported_total is None else int(reported_total)
        except _FETCH_ERRORS as e:
            logger.error(f"Fetch failed for page={page_index}: {e}")
            raise PageFetchError(page_index, f"Fetch failed for page={page_index}: {e}") from e

        logger.info(f"Page {page_index} fetched successfully ({len(transactions)} transactions)")
        return Page(page_index=page_index, transactions=transactions, total_pages=reported_total)

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> KoinlyClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
