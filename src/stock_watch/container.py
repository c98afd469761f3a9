"""Process-wide component wiring."""

from dataclasses import dataclass

from stock_watch.data.alpha_vantage_client import MarketDataGateway
from stock_watch.data.cache import ExpiringCache
from stock_watch.data.store import KeyValueStore
from stock_watch.services.search import SearchIndex
from stock_watch.services.stock_data import StockDataService
from stock_watch.services.wishlists import WishlistStore


@dataclass
class Services:
    """Every component, constructed once and shared by reference."""

    store: KeyValueStore
    cache: ExpiringCache
    gateway: MarketDataGateway
    stocks: StockDataService
    wishlists: WishlistStore
    search: SearchIndex

    def close(self) -> None:
        self.gateway.close()
        self.store.close()


def create_services(
    store_dir: str | None = None,
    api_key: str | None = None,
    base_url: str | None = None,
) -> Services:
    """Build the component graph. Unset arguments fall back to config."""
    store = KeyValueStore(store_dir)
    cache = ExpiringCache(store)
    gateway = MarketDataGateway(api_key=api_key, base_url=base_url)
    return Services(
        store=store,
        cache=cache,
        gateway=gateway,
        stocks=StockDataService(gateway, cache),
        wishlists=WishlistStore(store),
        search=SearchIndex(cache),
    )
