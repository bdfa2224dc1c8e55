"""
Pytest configuration and shared fixtures.
"""
import httpx
import pytest

from src.koinly import KoinlyCredentials


class FakeKoinlyApi:
    """In-memory stand-in for api.koinly.io served through httpx.MockTransport."""

    def __init__(self, total_pages, per_page=2, base_currency="USD", fail_page=None, fail_status=500):
        self.total_pages = total_pages
        self.per_page = per_page
        self.base_currency = base_currency
        self.fail_page = fail_page
        self.fail_status = fail_status
        self.requests = []
        self.pages_requested = []

    @staticmethod
    def transaction(page, index):
        return {
            "date": "2023-03-01T10:00:00.000Z",
            "from": {"amount": "1.5", "currency": {"symbol": "BTC"}},
            "to": {"amount": "42000.0", "currency": {"symbol": "USD"}},
            "fee": None,
            "net_value": "42000.0",
            "type": "sell",
            "description": f"page {page} item {index}",
            "txhash": f"0xp{page}t{index}",
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path == "/api/sessions":
            return httpx.Response(
                200, json={"portfolios": [{"base_currency": {"symbol": self.base_currency}}]}
            )

        if request.url.path == "/api/transactions":
            page = int(request.url.params["page"])
            self.pages_requested.append(page)
            if page == self.fail_page:
                return httpx.Response(self.fail_status, json={"errors": ["rate limited"]})
            return httpx.Response(
                200,
                json={
                    "transactions": [self.transaction(page, i) for i in range(self.per_page)],
                    "meta": {"page": {"current_page": page, "total_pages": self.total_pages}},
                },
            )

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class RecordingSleep:
    """Async sleep replacement that records the requested seconds instead of waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def fake_api():
    """Factory for FakeKoinlyApi instances."""
    return FakeKoinlyApi


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def credentials():
    return KoinlyCredentials(
        api_key="test-api-key",
        portfolio_id="test-portfolio",
        cookie="API_KEY=test-api-key; PORTFOLIO_ID=test-portfolio",
    )


@pytest.fixture(autouse=True)
def clean_koinly_env(monkeypatch):
    """Keep developer credentials out of the tests."""
    for name in ("KOINLY_API_KEY", "KOINLY_PORTFOLIO_ID", "KOINLY_COOKIE", "KOINLY_USER_AGENT"):
        monkeypatch.delenv(name, raising=False)
