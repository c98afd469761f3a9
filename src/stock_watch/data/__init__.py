"""Storage, caching and upstream access."""

from stock_watch.data.alpha_vantage_client import GatewayResponse, MarketDataGateway
from stock_watch.data.cache import CacheEntry, ExpiringCache
from stock_watch.data.store import KeyValueStore, StoreError

__all__ = [
    # Store
    "KeyValueStore",
    "StoreError",
    # Cache
    "CacheEntry",
    "ExpiringCache",
    # Alpha Vantage
    "GatewayResponse",
    "MarketDataGateway",
]
