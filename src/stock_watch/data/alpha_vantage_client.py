"""Async Alpha Vantage client that always resolves to a response envelope."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

import requests

from stock_watch import config

logger = logging.getLogger(__name__)

# Endpoint ids (the `function` query parameter)
TOP_GAINERS_LOSERS = "TOP_GAINERS_LOSERS"
COMPANY_OVERVIEW = "OVERVIEW"
TIME_SERIES_DAILY = "TIME_SERIES_DAILY"
TIME_SERIES_WEEKLY = "TIME_SERIES_WEEKLY"
TIME_SERIES_MONTHLY = "TIME_SERIES_MONTHLY"
TIME_SERIES_INTRADAY = "TIME_SERIES_INTRADAY"

# Upstream error conventions
ERROR_MESSAGE_FIELD = "Error Message"
RATE_LIMIT_FIELDS: tuple[str, ...] = ("Note", "Information")

TIMEOUT_MESSAGE = "Request timeout - please check your internet connection"
RATE_LIMIT_MESSAGE = "API call frequency limit reached. Please try again later."


@dataclass
class GatewayResponse:
    """Uniform success/failure envelope for an upstream call."""

    success: bool
    status: int
    data: dict[str, Any] | None = None
    error: str | None = None
    rate_limited: bool = False
    timed_out: bool = False

    @classmethod
    def failure(cls, error: str, status: int = 500, **kwargs: Any) -> "GatewayResponse":
        return cls(success=False, status=status, error=error, **kwargs)


class MarketDataGateway:
    """
    Outbound GET requests to the market-data API.

    request() never raises: transport failures, timeouts, non-2xx statuses
    and upstream-reported errors are all encoded in the GatewayResponse.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_workers: int = 4,
    ):
        self.api_key = api_key or config.ALPHA_VANTAGE_API_KEY
        self.base_url = base_url or config.ALPHA_VANTAGE_BASE_URL
        self.timeout = timeout if timeout is not None else config.ALPHA_VANTAGE_TIMEOUT
        self._executor = ThreadPoolExecutor(max_workers=max_workers)

    def _send(
        self,
        endpoint_id: str,
        params: dict[str, Any],
        options: dict[str, Any],
    ) -> GatewayResponse:
        query = {"function": endpoint_id, "apikey": self.api_key, **params}
        headers = {"Content-Type": "application/json", **options.get("headers", {})}
        timeout = options.get("timeout", self.timeout)

        try:
            response = requests.get(self.base_url, params=query, headers=headers, timeout=timeout)
        except requests.exceptions.Timeout:
            return GatewayResponse.failure(TIMEOUT_MESSAGE, status=408, timed_out=True)
        except requests.exceptions.RequestException as e:
            return GatewayResponse.failure(f"Network error: {e}")

        if not response.ok:
            return GatewayResponse.failure(
                f"HTTP error! status: {response.status_code}",
                status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            return GatewayResponse.failure("Invalid JSON response", status=response.status_code)

        if isinstance(data, dict):
            if data.get(ERROR_MESSAGE_FIELD):
                return GatewayResponse.failure(
                    str(data[ERROR_MESSAGE_FIELD]), status=response.status_code
                )
            if any(data.get(field) for field in RATE_LIMIT_FIELDS):
                return GatewayResponse.failure(
                    RATE_LIMIT_MESSAGE, status=response.status_code, rate_limited=True
                )

        return GatewayResponse(success=True, status=response.status_code, data=data)

    async def request(
        self,
        endpoint_id: str,
        params: dict[str, Any] | None = None,
        options: dict[str, Any] | None = None,
    ) -> GatewayResponse:
        """
        Call an API endpoint.

        Args:
            endpoint_id: Value of the `function` query parameter
            params: Endpoint-specific query parameters (symbol, outputsize, interval)
            options: Optional `headers` and `timeout` overrides

        Returns:
            GatewayResponse (never raises)
        """
        params = params or {}
        options = options or {}
        logger.debug(f"API request: {endpoint_id} {params}")

        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(
                self._executor, self._send, endpoint_id, params, options
            )
        except Exception as e:
            result = GatewayResponse.failure(f"Request failed: {e}")

        if not result.success:
            logger.warning(f"API request {endpoint_id} failed ({result.status}): {result.error}")
        return result

    async def get_top_gainers_losers(self) -> GatewayResponse:
        return await self.request(TOP_GAINERS_LOSERS)

    async def get_company_overview(self, symbol: str) -> GatewayResponse:
        return await self.request(COMPANY_OVERVIEW, {"symbol": symbol})

    async def get_daily_time_series(self, symbol: str, outputsize: str = "compact") -> GatewayResponse:
        """Daily series: 'compact' (last 100 points) or 'full' (20+ years)."""
        return await self.request(TIME_SERIES_DAILY, {"symbol": symbol, "outputsize": outputsize})

    async def get_weekly_time_series(self, symbol: str) -> GatewayResponse:
        return await self.request(TIME_SERIES_WEEKLY, {"symbol": symbol})

    async def get_monthly_time_series(self, symbol: str) -> GatewayResponse:
        return await self.request(TIME_SERIES_MONTHLY, {"symbol": symbol})

    async def get_intraday_time_series(self, symbol: str, interval: str = "60min") -> GatewayResponse:
        """Intraday series at 1min, 5min, 15min, 30min or 60min."""
        return await self.request(TIME_SERIES_INTRADAY, {"symbol": symbol, "interval": interval})

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
