"""Pytest configuration and fixtures."""

from collections.abc import Iterator
from datetime import datetime
from typing import Any

import pytest

from stock_watch.data.alpha_vantage_client import GatewayResponse, MarketDataGateway
from stock_watch.data.cache import ExpiringCache
from stock_watch.data.store import KeyValueStore, StoreError
from stock_watch.services.stock_data import StockDataService


class FakeClock:
    """Controllable epoch-seconds clock."""

    def __init__(self, start: float):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubGateway(MarketDataGateway):
    """Gateway returning canned envelopes and recording every call."""

    def __init__(self) -> None:
        super().__init__(api_key="test", base_url="http://example.invalid", timeout=1)
        self.responses: dict[str, GatewayResponse] = {}
        self.default = GatewayResponse.failure("No stubbed response", status=503)
        self.raise_error: Exception | None = None
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def request(
        self,
        endpoint_id: str,
        params: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> GatewayResponse:
        self.calls.append((endpoint_id, params or {}))
        if self.raise_error is not None:
            raise self.raise_error
        return self.responses.get(endpoint_id, self.default)

    def succeed(self, endpoint_id: str, data: dict[str, Any]) -> None:
        self.responses[endpoint_id] = GatewayResponse(success=True, status=200, data=data)

    def fail(self, endpoint_id: str, error: str = "HTTP error! status: 503") -> None:
        self.responses[endpoint_id] = GatewayResponse.failure(error, status=503)


class FlakyStore(KeyValueStore):
    """KeyValueStore whose reads and/or writes can be switched to fail."""

    def __init__(self, directory: str):
        super().__init__(directory, max_workers=1)
        self.fail_reads = False
        self.fail_writes = False

    async def get_item(self, key: str) -> str | None:
        if self.fail_reads:
            raise StoreError("disk unavailable")
        return await super().get_item(key)

    async def get_all_keys(self) -> list[str]:
        if self.fail_reads:
            raise StoreError("disk unavailable")
        return await super().get_all_keys()

    async def set_item(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StoreError("disk full")
        await super().set_item(key, value)

    async def remove_item(self, key: str) -> None:
        if self.fail_writes:
            raise StoreError("disk full")
        await super().remove_item(key)


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at 2024-01-15 12:00 local time."""
    return FakeClock(datetime(2024, 1, 15, 12, 0, 0).timestamp())


@pytest.fixture
def store(tmp_path) -> Iterator[FlakyStore]:
    kv = FlakyStore(str(tmp_path / "store"))
    yield kv
    kv.close()


@pytest.fixture
def cache(store: FlakyStore, clock: FakeClock) -> ExpiringCache:
    return ExpiringCache(store, default_ttl=300, clock=clock)


@pytest.fixture
def gateway() -> Iterator[StubGateway]:
    gw = StubGateway()
    yield gw
    gw.close()


@pytest.fixture
def stock_service(gateway: StubGateway, cache: ExpiringCache, clock: FakeClock) -> StockDataService:
    return StockDataService(
        gateway,
        cache,
        movers_ttl=300,
        fundamentals_ttl=1800,
        chart_ttl=600,
        clock=clock,
    )


@pytest.fixture
def movers_payload() -> dict[str, Any]:
    """Raw TOP_GAINERS_LOSERS response."""
    return {
        "metadata": "Top gainers, losers, and most actively traded US tickers",
        "last_updated": "2024-01-12 16:15:59 US/Eastern",
        "top_gainers": [
            {
                "ticker": "AAPL",
                "price": "185.5",
                "change_amount": "4.25",
                "change_percentage": "2.3448%",
                "volume": "51234567",
            },
            {
                "ticker": "ZZZQ",
                "price": "1.2",
                "change_amount": "0.6",
                "change_percentage": "100.0%",
                "volume": "123",
            },
        ],
        "top_losers": [
            {
                "ticker": "TSLA",
                "price": "218.89",
                "change_amount": "-8.33",
                "change_percentage": "-3.6657%",
                "volume": "122889000",
            },
        ],
        "most_actively_traded": [],
    }


@pytest.fixture
def daily_series_payload() -> dict[str, Any]:
    """Raw TIME_SERIES_DAILY response: 10 consecutive days ending 2024-01-14, unordered."""
    series = {}
    for day in (9, 5, 14, 6, 7, 8, 10, 11, 12, 13):
        base = 100 + day
        series[f"2024-01-{day:02d}"] = {
            "1. open": f"{base}.10",
            "2. high": f"{base + 1}.50",
            "3. low": f"{base - 1}.25",
            "4. close": f"{base}.75",
            "5. volume": str(1_000_000 + day),
        }
    return {
        "Meta Data": {
            "1. Information": "Daily Prices (open, high, low, close) and Volumes",
            "2. Symbol": "IBM",
            "3. Last Refreshed": "2024-01-14",
        },
        "Time Series (Daily)": series,
    }


@pytest.fixture
def overview_payload() -> dict[str, Any]:
    """Raw OVERVIEW response (subset of fields)."""
    return {
        "Symbol": "IBM",
        "Name": "International Business Machines",
        "Description": "IBM is an American multinational technology company.",
        "Exchange": "NYSE",
        "Currency": "USD",
        "Country": "USA",
        "Sector": "TECHNOLOGY",
        "Industry": "COMPUTER & OFFICE EQUIPMENT",
        "MarketCapitalization": "150000000000",
        "PERatio": "22.5",
        "PEGRatio": "3.1",
        "BookValue": "24.1",
        "DividendYield": "0.041",
        "EPS": "7.23",
        "52WeekHigh": "170.2",
        "52WeekLow": "120.1",
        "50DayMovingAverage": "160.3",
        "200DayMovingAverage": "145.9",
        "Beta": "0.72",
        "Address": "1 NEW ORCHARD ROAD, ARMONK, NY, US",
    }
