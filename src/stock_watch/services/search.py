"""Ranked local symbol search over a static catalog."""

import logging
from dataclasses import asdict, dataclass
from typing import Any

from stock_watch import config
from stock_watch.data.cache import ExpiringCache

logger = logging.getLogger(__name__)

SEARCH_CACHE_PREFIX = "search_"
MAX_RESULTS = 20
MAX_SUGGESTIONS = 8

MATCH_PRIORITY = {"exact_symbol": 0, "partial_symbol": 1, "name": 2}


@dataclass(frozen=True)
class CatalogEntry:
    symbol: str
    name: str
    sector: str
    exchange: str


def _entry(symbol: str, name: str, sector: str, exchange: str) -> CatalogEntry:
    return CatalogEntry(symbol=symbol, name=name, sector=sector, exchange=exchange)


CATALOG: tuple[CatalogEntry, ...] = (
    # Technology & communication
    _entry("AAPL", "Apple Inc.", "Technology", "NASDAQ"),
    _entry("GOOGL", "Alphabet Inc.", "Technology", "NASDAQ"),
    _entry("GOOG", "Alphabet Inc. Class A", "Technology", "NASDAQ"),
    _entry("MSFT", "Microsoft Corporation", "Technology", "NASDAQ"),
    _entry("AMZN", "Amazon.com Inc.", "Consumer Discretionary", "NASDAQ"),
    _entry("TSLA", "Tesla Inc.", "Consumer Discretionary", "NASDAQ"),
    _entry("META", "Meta Platforms Inc.", "Technology", "NASDAQ"),
    _entry("NFLX", "Netflix Inc.", "Communication Services", "NASDAQ"),
    _entry("NVDA", "NVIDIA Corporation", "Technology", "NASDAQ"),
    _entry("CRM", "Salesforce Inc.", "Technology", "NYSE"),
    _entry("ORCL", "Oracle Corporation", "Technology", "NYSE"),
    _entry("ADBE", "Adobe Inc.", "Technology", "NASDAQ"),
    _entry("PYPL", "PayPal Holdings Inc.", "Financial Services", "NASDAQ"),
    _entry("INTC", "Intel Corporation", "Technology", "NASDAQ"),
    _entry("AMD", "Advanced Micro Devices Inc.", "Technology", "NASDAQ"),
    _entry("QCOM", "Qualcomm Incorporated", "Technology", "NASDAQ"),
    _entry("AVGO", "Broadcom Inc.", "Technology", "NASDAQ"),
    _entry("TXN", "Texas Instruments Incorporated", "Technology", "NASDAQ"),
    _entry("CSCO", "Cisco Systems Inc.", "Technology", "NASDAQ"),
    _entry("ACN", "Accenture plc", "Technology", "NYSE"),
    _entry("IBM", "International Business Machines Corporation", "Technology", "NYSE"),
    _entry("UBER", "Uber Technologies Inc.", "Technology", "NYSE"),
    _entry("LYFT", "Lyft Inc.", "Technology", "NASDAQ"),
    _entry("SQ", "Block Inc.", "Technology", "NYSE"),
    _entry("SHOP", "Shopify Inc.", "Technology", "NYSE"),
    _entry("SPOT", "Spotify Technology S.A.", "Communication Services", "NYSE"),
    _entry("TWTR", "Twitter Inc.", "Communication Services", "NYSE"),
    _entry("SNAP", "Snap Inc.", "Communication Services", "NYSE"),
    _entry("PINS", "Pinterest Inc.", "Communication Services", "NYSE"),
    # Financial
    _entry("JPM", "JPMorgan Chase & Co.", "Financial Services", "NYSE"),
    _entry("BAC", "Bank of America Corporation", "Financial Services", "NYSE"),
    _entry("WFC", "Wells Fargo & Company", "Financial Services", "NYSE"),
    _entry("C", "Citigroup Inc.", "Financial Services", "NYSE"),
    _entry("GS", "The Goldman Sachs Group Inc.", "Financial Services", "NYSE"),
    _entry("MS", "Morgan Stanley", "Financial Services", "NYSE"),
    _entry("V", "Visa Inc.", "Financial Services", "NYSE"),
    _entry("MA", "Mastercard Incorporated", "Financial Services", "NYSE"),
    _entry("AXP", "American Express Company", "Financial Services", "NYSE"),
    # Healthcare
    _entry("JNJ", "Johnson & Johnson", "Healthcare", "NYSE"),
    _entry("PFE", "Pfizer Inc.", "Healthcare", "NYSE"),
    _entry("UNH", "UnitedHealth Group Incorporated", "Healthcare", "NYSE"),
    _entry("ABBV", "AbbVie Inc.", "Healthcare", "NYSE"),
    _entry("LLY", "Eli Lilly and Company", "Healthcare", "NYSE"),
    _entry("MRK", "Merck & Co. Inc.", "Healthcare", "NYSE"),
    _entry("TMO", "Thermo Fisher Scientific Inc.", "Healthcare", "NYSE"),
    _entry("ABT", "Abbott Laboratories", "Healthcare", "NYSE"),
    _entry("DHR", "Danaher Corporation", "Healthcare", "NYSE"),
    # Consumer
    _entry("PG", "The Procter & Gamble Company", "Consumer Staples", "NYSE"),
    _entry("KO", "The Coca-Cola Company", "Consumer Staples", "NYSE"),
    _entry("PEP", "PepsiCo Inc.", "Consumer Staples", "NASDAQ"),
    _entry("WMT", "Walmart Inc.", "Consumer Staples", "NYSE"),
    _entry("COST", "Costco Wholesale Corporation", "Consumer Staples", "NASDAQ"),
    _entry("HD", "The Home Depot Inc.", "Consumer Discretionary", "NYSE"),
    _entry("LOW", "Lowe's Companies Inc.", "Consumer Discretionary", "NYSE"),
    _entry("MCD", "McDonald's Corporation", "Consumer Discretionary", "NYSE"),
    _entry("SBUX", "Starbucks Corporation", "Consumer Discretionary", "NASDAQ"),
    _entry("NKE", "NIKE Inc.", "Consumer Discretionary", "NYSE"),
    # Energy
    _entry("XOM", "Exxon Mobil Corporation", "Energy", "NYSE"),
    _entry("CVX", "Chevron Corporation", "Energy", "NYSE"),
    _entry("COP", "ConocoPhillips", "Energy", "NYSE"),
    # Industrials
    _entry("BA", "The Boeing Company", "Industrials", "NYSE"),
    _entry("GE", "General Electric Company", "Industrials", "NYSE"),
    _entry("CAT", "Caterpillar Inc.", "Industrials", "NYSE"),
    # Telecom, real estate, utilities, materials
    _entry("VZ", "Verizon Communications Inc.", "Communication Services", "NYSE"),
    _entry("T", "AT&T Inc.", "Communication Services", "NYSE"),
    _entry("AMT", "American Tower Corporation", "Real Estate", "NYSE"),
    _entry("NEE", "NextEra Energy Inc.", "Utilities", "NYSE"),
    _entry("LIN", "Linde plc", "Materials", "NYSE"),
    # ETFs
    _entry("SPY", "SPDR S&P 500 ETF Trust", "ETF", "NYSE"),
    _entry("QQQ", "Invesco QQQ Trust", "ETF", "NASDAQ"),
    _entry("IWM", "iShares Russell 2000 ETF", "ETF", "NYSE"),
    _entry("VTI", "Vanguard Total Stock Market ETF", "ETF", "NYSE"),
    _entry("VOO", "Vanguard S&P 500 ETF", "ETF", "NYSE"),
    _entry("VEA", "Vanguard FTSE Developed Markets ETF", "ETF", "NYSE"),
    _entry("VWO", "Vanguard FTSE Emerging Markets ETF", "ETF", "NYSE"),
    _entry("AGG", "iShares Core U.S. Aggregate Bond ETF", "ETF", "NYSE"),
    _entry("BND", "Vanguard Total Bond Market ETF", "ETF", "NASDAQ"),
    _entry("GLD", "SPDR Gold Shares", "ETF", "NYSE"),
)

POPULAR_SYMBOLS: tuple[str, ...] = ("AAPL", "GOOGL", "MSFT", "AMZN", "TSLA", "META", "NFLX", "NVDA")


def normalize_query(query: str | None) -> str:
    return (query or "").strip().upper()


def rank_matches(query: str, catalog: tuple[CatalogEntry, ...] = CATALOG) -> list[dict[str, Any]]:
    """
    Rank catalog entries against an already-normalized query.

    Exact symbol first, then symbol substrings, then name substrings. Each
    group keeps catalog order; the list is capped at MAX_RESULTS and then
    stably sorted by match priority.
    """
    results: list[dict[str, Any]] = []

    exact = next((entry for entry in catalog if entry.symbol == query), None)
    if exact is not None:
        results.append({**asdict(exact), "match_type": "exact_symbol"})

    results.extend(
        {**asdict(entry), "match_type": "partial_symbol"}
        for entry in catalog
        if query in entry.symbol and entry.symbol != query
    )

    matched = {r["symbol"] for r in results}
    results.extend(
        {**asdict(entry), "match_type": "name"}
        for entry in catalog
        if query in entry.name.upper() and entry.symbol not in matched
    )

    return sorted(results[:MAX_RESULTS], key=lambda r: MATCH_PRIORITY[r["match_type"]])


class SearchIndex:
    """Local search with per-query result caching."""

    def __init__(
        self,
        cache: ExpiringCache,
        ttl: int | None = None,
        catalog: tuple[CatalogEntry, ...] = CATALOG,
    ):
        self.cache = cache
        self.ttl = ttl if ttl is not None else config.SEARCH_CACHE_TTL
        self.catalog = catalog
        self._by_symbol = {entry.symbol: entry for entry in catalog}

    def lookup(self, symbol: str) -> CatalogEntry | None:
        return self._by_symbol.get(normalize_query(symbol))

    def popular_stocks(self) -> list[dict[str, Any]]:
        """Fixed shortlist shown when there is nothing to search for."""
        return [
            {**asdict(self._by_symbol[symbol]), "match_type": "popular"}
            for symbol in POPULAR_SYMBOLS
            if symbol in self._by_symbol
        ]

    async def search(self, query: str | None, force_refresh: bool = False) -> list[dict[str, Any]]:
        """
        Search by symbol or company name.

        Args:
            query: Free text (case-insensitive)
            force_refresh: Skip the cached result for this query

        Returns:
            Ranked results; the popular shortlist for a blank query
        """
        clean_query = normalize_query(query)
        if not clean_query:
            return self.popular_stocks()

        cache_key = f"{SEARCH_CACHE_PREFIX}{clean_query}"
        if not force_refresh:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Using cached search results for: {clean_query}")
                return cached

        results = rank_matches(clean_query, self.catalog)
        await self.cache.set(cache_key, results, self.ttl)
        logger.debug(f"Found {len(results)} results for: {clean_query}")
        return results

    def suggest(self, query: str | None) -> list[dict[str, Any]]:
        """Up to MAX_SUGGESTIONS ranked matches; popular stocks for a blank query."""
        clean_query = normalize_query(query)
        if not clean_query:
            return self.popular_stocks()
        return rank_matches(clean_query, self.catalog)[:MAX_SUGGESTIONS]

    async def clear_search_cache(self) -> int:
        """Remove cached search results. Returns how many were removed."""
        keys = [k for k in await self.cache.keys() if k.startswith(SEARCH_CACHE_PREFIX)]
        for key in keys:
            await self.cache.remove(key)
        logger.info(f"Search cache cleared ({len(keys)} entries)")
        return len(keys)
