"""Read-through, fallback-on-failure access to market data."""

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from stock_watch import config
from stock_watch.data.alpha_vantage_client import GatewayResponse, MarketDataGateway
from stock_watch.data.cache import ExpiringCache
from stock_watch.utils.formatting import (
    DataFormatError,
    format_company_overview,
    format_movers,
    get_company_name,
)
from stock_watch.utils.provenance import build_provenance, to_iso
from stock_watch.utils.timeseries import build_chart_series
from stock_watch.utils.validators import DEFAULT_PERIOD, ChartParams, normalize_symbol

logger = logging.getLogger(__name__)

MOVERS_CACHE_KEY = "top_gainers_losers"

SOURCE_LIVE = "live"
SOURCE_CACHE = "cache"
SOURCE_STALE_CACHE = "stale_cache"
SOURCE_FALLBACK = "fallback"

FALLBACK_INFORMATION = "Fallback data - API temporarily unavailable"

_FALLBACK_STOCKS: tuple[dict[str, Any], ...] = (
    {
        "id": 1,
        "ticker": "AAPL",
        "name": "Apple Inc.",
        "price": "$175.43",
        "change": "+2.15%",
        "change_amount": "+$3.69",
        "volume": "28,456,789",
    },
    {
        "id": 2,
        "ticker": "GOOGL",
        "name": "Alphabet Inc.",
        "price": "$142.87",
        "change": "+1.87%",
        "change_amount": "+$2.63",
        "volume": "31,287,456",
    },
    {
        "id": 3,
        "ticker": "MSFT",
        "name": "Microsoft Corp.",
        "price": "$367.12",
        "change": "+0.92%",
        "change_amount": "+$3.34",
        "volume": "22,876,543",
    },
    {
        "id": 4,
        "ticker": "TSLA",
        "name": "Tesla Inc.",
        "price": "$248.96",
        "change": "-1.23%",
        "change_amount": "-$3.10",
        "volume": "45,692,134",
    },
)


class MarketDataUnavailableError(Exception):
    """Raised when live data failed and no cached copy exists."""

    def __init__(self, message: str, cache_key: str | None = None):
        super().__init__(message)
        self.cache_key = cache_key


@dataclass
class FetchResult:
    """Data plus where it came from, so callers can flag stale or fallback data."""

    data: Any
    source: str
    # When the data was fetched (live) or written to the cache; None for fallback data
    cached_at: float | None = None
    # Upstream error that forced a fallback (None when live or fresh cache)
    error: str | None = None

    @property
    def is_stale(self) -> bool:
        return self.source in (SOURCE_STALE_CACHE, SOURCE_FALLBACK)

    def to_provenance(self) -> dict[str, Any]:
        """Convert to a data_provenance block."""
        return build_provenance(
            source=self.source,
            as_of=to_iso(self.cached_at),
            is_stale=self.is_stale,
            warnings=[self.error] if self.error else [],
        )


class StockDataService:
    """
    Combines the gateway and the expiring cache per data category.

    Per call:
    1. Unless force_refresh, serve a fresh cache entry. Stale entries are
       left in place (not evicted) so step 4 can still use them.
    2. Otherwise call the gateway.
    3. On success reshape, cache with the category TTL, return.
    4. On failure (or unexpected exception) serve the cached entry even if
       stale; failing that, movers get the built-in fallback dataset while
       fundamentals and charts raise MarketDataUnavailableError.

    Reshape errors (DataFormatError) are never retried or masked.
    """

    def __init__(
        self,
        gateway: MarketDataGateway,
        cache: ExpiringCache,
        movers_ttl: int | None = None,
        fundamentals_ttl: int | None = None,
        chart_ttl: int | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.gateway = gateway
        self.cache = cache
        self.movers_ttl = movers_ttl if movers_ttl is not None else config.MOVERS_CACHE_TTL
        self.fundamentals_ttl = (
            fundamentals_ttl if fundamentals_ttl is not None else config.FUNDAMENTALS_CACHE_TTL
        )
        self.chart_ttl = chart_ttl if chart_ttl is not None else config.CHART_CACHE_TTL
        self._clock = clock

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock())

    async def _fetch_with_fallback(
        self,
        cache_key: str,
        fetch: Callable[[], Awaitable[GatewayResponse]],
        reshape: Callable[[dict[str, Any]], Any],
        ttl: int,
        force_refresh: bool,
        fallback: Callable[[], Any] | None = None,
    ) -> FetchResult:
        if not force_refresh:
            # Non-evicting read: a stale entry must survive for the fallback tier
            entry = await self.cache.lookup(cache_key, allow_stale=True)
            if entry is not None and entry.is_fresh(self._clock()):
                logger.debug(f"Using cached data for {cache_key}")
                return FetchResult(entry.payload, SOURCE_CACHE, cached_at=entry.created_at)

        try:
            response = await fetch()
            if response.success:
                data = reshape(response.data or {})
                await self.cache.set(cache_key, data, ttl)
                logger.info(f"Fetched and cached {cache_key}")
                return FetchResult(data, SOURCE_LIVE, cached_at=self._clock())
            error = response.error or "Request failed"
        except DataFormatError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error fetching {cache_key}")
            error = str(e) or type(e).__name__

        return await self._serve_fallback(cache_key, error, fallback)

    async def _serve_fallback(
        self,
        cache_key: str,
        error: str,
        fallback: Callable[[], Any] | None,
    ) -> FetchResult:
        entry = await self.cache.lookup(cache_key, allow_stale=True)
        if entry is not None:
            fresh = entry.is_fresh(self._clock())
            logger.info(
                f"Upstream failed for {cache_key} ({error}); "
                f"serving {'fresh' if fresh else 'stale'} cached data"
            )
            return FetchResult(
                entry.payload,
                SOURCE_CACHE if fresh else SOURCE_STALE_CACHE,
                cached_at=entry.created_at,
                error=error,
            )

        if fallback is not None:
            logger.warning(f"Upstream failed for {cache_key} ({error}); serving fallback data")
            return FetchResult(fallback(), SOURCE_FALLBACK, error=error)

        raise MarketDataUnavailableError(error, cache_key=cache_key)

    async def fetch_movers(self, force_refresh: bool = False) -> FetchResult:
        """
        Top gainers, top losers and most actively traded stocks.

        Never raises for upstream failures: falls back to cached data, then
        to the built-in dataset.
        """
        return await self._fetch_with_fallback(
            MOVERS_CACHE_KEY,
            self.gateway.get_top_gainers_losers,
            format_movers,
            self.movers_ttl,
            force_refresh,
            fallback=self.fallback_movers,
        )

    async def fetch_fundamentals(self, symbol: str, force_refresh: bool = False) -> FetchResult:
        """
        Company overview for a symbol.

        Raises:
            ValueError: If symbol is blank
            DataFormatError: If the upstream body is empty
            MarketDataUnavailableError: If the API failed and nothing is cached
        """
        if not symbol or not symbol.strip():
            raise ValueError("Symbol is required")
        normalized_symbol = normalize_symbol(symbol)

        async def _fetch() -> GatewayResponse:
            return await self.gateway.get_company_overview(normalized_symbol)

        return await self._fetch_with_fallback(
            f"fundamentals_{normalized_symbol}",
            _fetch,
            format_company_overview,
            self.fundamentals_ttl,
            force_refresh,
        )

    async def fetch_chart_data(
        self,
        symbol: str,
        period: str = DEFAULT_PERIOD,
        force_refresh: bool = False,
    ) -> FetchResult:
        """
        Price history for a symbol, filtered to period.

        Raises:
            ValueError: If symbol is blank
            ChartFormatError: If the series block is missing or malformed
            MarketDataUnavailableError: If the API failed and nothing is cached
        """
        params = ChartParams(symbol=symbol, period=period)
        endpoint_id, query = params.endpoint()

        async def _fetch() -> GatewayResponse:
            return await self.gateway.request(endpoint_id, query)

        def _reshape(payload: dict[str, Any]) -> dict[str, Any]:
            return build_chart_series(payload, params.period, self._now(), params.symbol)

        return await self._fetch_with_fallback(
            params.cache_key(),
            _fetch,
            _reshape,
            self.chart_ttl,
            force_refresh,
        )

    def fallback_movers(self) -> dict[str, Any]:
        """Built-in movers payload for when no live or cached data exists."""
        stocks = [dict(stock) for stock in _FALLBACK_STOCKS]
        return {
            "metadata": {"information": FALLBACK_INFORMATION},
            "last_updated": self._now().isoformat(),
            "top_gainers": stocks[:3],
            "top_losers": stocks[1:4],
            "most_active": stocks,
        }

    @staticmethod
    def get_company_name(ticker: str) -> str:
        """Local ticker to company name lookup (no API call)."""
        return get_company_name(ticker)

    async def clear_cache(self) -> None:
        """Drop every cached entry."""
        await self.cache.clear_all()

    async def get_cache_stats(self) -> dict[str, Any]:
        return await self.cache.get_stats()
