"""Stock Watch MCP server: the read/write contract for UI collaborators."""

import json
import logging
from dataclasses import asdict
from time import perf_counter
from typing import Any

from fastmcp import FastMCP

from stock_watch import SCHEMA_VERSION, SERVER_VERSION, config
from stock_watch.container import Services, create_services
from stock_watch.services.stock_data import FetchResult, MarketDataUnavailableError
from stock_watch.services.wishlists import (
    DuplicateStockError,
    WishlistNotFoundError,
    WishlistPersistenceError,
)
from stock_watch.utils.formatting import DataFormatError
from stock_watch.utils.provenance import build_error_response, build_meta

# Configure logging
logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)

# Create FastMCP server instance
mcp = FastMCP(
    name="stock-watch",
)

_services: Services | None = None


def get_services() -> Services:
    """Components are built on first use and shared for the process lifetime."""
    global _services
    if _services is None:
        _services = create_services()
    return _services


def _dumps(result: dict[str, Any]) -> str:
    return json.dumps(result, indent=2, default=str)


def _fetch_response(operation: str, result: FetchResult, start_time: float) -> str:
    duration_ms = (perf_counter() - start_time) * 1000
    return _dumps(
        {
            "meta": build_meta(operation, duration_ms),
            "data_provenance": result.to_provenance(),
            "data": result.data,
        }
    )


def _error(e: Exception, symbol: str | None = None) -> str:
    if isinstance(e, MarketDataUnavailableError):
        error_type = "data_unavailable"
    elif isinstance(e, DataFormatError):
        error_type = "invalid_data"
    elif isinstance(e, WishlistNotFoundError):
        error_type = "not_found"
    elif isinstance(e, DuplicateStockError):
        error_type = "duplicate"
    elif isinstance(e, WishlistPersistenceError):
        error_type = "storage_error"
    elif isinstance(e, ValueError):
        error_type = "invalid_parameters"
    else:
        logger.exception("Unhandled error")
        error_type = "internal_error"
    return _dumps(build_error_response(error_type=error_type, message=str(e), symbol=symbol))


# ============================================================================
# MARKET DATA
# ============================================================================


@mcp.tool
async def get_market_movers(force_refresh: bool = False) -> str:
    """
    Get top gainers, top losers and most actively traded stocks.

    Args:
        force_refresh: Skip the cache and call the API (default: false)

    Returns:
        JSON with movers lists and a data_provenance block flagging cached,
        stale or fallback data
    """
    start_time = perf_counter()
    try:
        result = await get_services().stocks.fetch_movers(force_refresh=force_refresh)
    except Exception as e:
        return _error(e)
    return _fetch_response("get_market_movers", result, start_time)


@mcp.tool
async def get_company_fundamentals(symbol: str, force_refresh: bool = False) -> str:
    """
    Get company overview: sector, valuation ratios, margins, 52-week range.

    Args:
        symbol: Stock ticker symbol (e.g., AAPL)
        force_refresh: Skip the cache and call the API (default: false)
    """
    start_time = perf_counter()
    try:
        result = await get_services().stocks.fetch_fundamentals(symbol, force_refresh=force_refresh)
    except Exception as e:
        return _error(e, symbol=symbol)
    return _fetch_response("get_company_fundamentals", result, start_time)


@mcp.tool
async def get_chart_data(symbol: str, period: str = "1M", force_refresh: bool = False) -> str:
    """
    Get price history for charting.

    Args:
        symbol: Stock ticker symbol
        period: 1W, 1M, 3M, 6M, 1Y or 5Y (default: 1M)
        force_refresh: Skip the cache and call the API (default: false)

    Returns:
        JSON with ascending OHLCV points and one display label per point
    """
    start_time = perf_counter()
    try:
        result = await get_services().stocks.fetch_chart_data(
            symbol, period=period, force_refresh=force_refresh
        )
    except Exception as e:
        return _error(e, symbol=symbol)
    return _fetch_response("get_chart_data", result, start_time)


# ============================================================================
# WISHLISTS
# ============================================================================


@mcp.tool
async def list_wishlists() -> str:
    """List every wishlist with its stocks."""
    wishlists = await get_services().wishlists.list_all()
    return _dumps({"meta": build_meta("list_wishlists"), "wishlists": [asdict(w) for w in wishlists]})


@mcp.tool
async def create_wishlist(name: str) -> str:
    """
    Create an empty wishlist.

    Args:
        name: Display name
    """
    try:
        wishlist = await get_services().wishlists.create(name)
    except Exception as e:
        return _error(e)
    return _dumps({"meta": build_meta("create_wishlist"), "wishlist": asdict(wishlist)})


@mcp.tool
async def delete_wishlist(wishlist_id: str) -> str:
    """Delete a wishlist. Deleting an unknown id succeeds."""
    try:
        deleted = await get_services().wishlists.delete(wishlist_id)
    except Exception as e:
        return _error(e)
    return _dumps({"meta": build_meta("delete_wishlist"), "success": deleted})


@mcp.tool
async def add_stock_to_wishlist(
    wishlist_id: str,
    symbol: str,
    name: str | None = None,
    price: str | None = None,
    change: str | None = None,
) -> str:
    """
    Add a stock snapshot to a wishlist.

    Args:
        wishlist_id: Target wishlist id
        symbol: Stock ticker symbol
        name: Display name (optional)
        price: Display price, e.g. "$175.43" (optional)
        change: Display change, e.g. "+2.15%" (optional)
    """
    stock = {"symbol": symbol, "name": name, "price": price, "change": change}
    try:
        wishlist = await get_services().wishlists.add_stock(wishlist_id, stock)
    except Exception as e:
        return _error(e, symbol=symbol)
    return _dumps({"meta": build_meta("add_stock_to_wishlist"), "wishlist": asdict(wishlist)})


@mcp.tool
async def remove_stock_from_wishlist(wishlist_id: str, symbol: str) -> str:
    """Remove a stock from a wishlist."""
    try:
        wishlist = await get_services().wishlists.remove_stock(wishlist_id, symbol)
    except Exception as e:
        return _error(e, symbol=symbol)
    return _dumps({"meta": build_meta("remove_stock_from_wishlist"), "wishlist": asdict(wishlist)})


@mcp.tool
async def get_wishlists_for_stock(symbol: str) -> str:
    """Ids of the wishlists that contain symbol."""
    ids = await get_services().wishlists.find_lists_containing(symbol)
    return _dumps({"meta": build_meta("get_wishlists_for_stock"), "symbol": symbol, "wishlist_ids": ids})


# ============================================================================
# SEARCH & HOUSEKEEPING
# ============================================================================


@mcp.tool
async def search_stocks(query: str, force_refresh: bool = False) -> str:
    """
    Search stocks and ETFs by ticker or company name.

    Args:
        query: Search text (case-insensitive)
        force_refresh: Ignore cached results for this query
    """
    results = await get_services().search.search(query, force_refresh=force_refresh)
    return _dumps({"meta": build_meta("search_stocks"), "query": query, "results": results})


@mcp.tool
async def suggest_stocks(query: str = "") -> str:
    """Quick suggestions (max 8). An empty query returns popular stocks."""
    results = get_services().search.suggest(query)
    return _dumps({"meta": build_meta("suggest_stocks"), "query": query, "results": results})


@mcp.tool
async def get_cache_stats() -> str:
    """Cache diagnostics: total, valid and expired entries plus size."""
    stats = await get_services().stocks.get_cache_stats()
    return _dumps({"meta": build_meta("get_cache_stats"), "stats": stats})


@mcp.tool
async def clear_cache(expired_only: bool = False) -> str:
    """
    Clear cached market data and search results.

    Args:
        expired_only: Only sweep entries past their TTL (default: false)
    """
    services = get_services()
    if expired_only:
        removed = await services.cache.clear_expired()
        return _dumps({"meta": build_meta("clear_cache"), "removed": removed})
    await services.stocks.clear_cache()
    return _dumps({"meta": build_meta("clear_cache"), "success": True})


# ============================================================================
# ENTRY POINT
# ============================================================================


def main() -> None:
    """Run the MCP server."""
    logger.info(f"Starting Stock Watch MCP Server v{SERVER_VERSION} (schema v{SCHEMA_VERSION})")
    get_services()
    try:
        mcp.run()
    finally:
        if _services is not None:
            _services.close()


if __name__ == "__main__":
    main()
