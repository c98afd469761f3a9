"""Stock data, wishlist and search services."""

from stock_watch.services.search import SearchIndex
from stock_watch.services.stock_data import (
    FetchResult,
    MarketDataUnavailableError,
    StockDataService,
)
from stock_watch.services.wishlists import (
    DuplicateStockError,
    Wishlist,
    WishlistError,
    WishlistNotFoundError,
    WishlistPersistenceError,
    WishlistStock,
    WishlistStore,
)

__all__ = [
    "DuplicateStockError",
    "FetchResult",
    "MarketDataUnavailableError",
    "SearchIndex",
    "StockDataService",
    "Wishlist",
    "WishlistError",
    "WishlistNotFoundError",
    "WishlistPersistenceError",
    "WishlistStock",
    "WishlistStore",
]
