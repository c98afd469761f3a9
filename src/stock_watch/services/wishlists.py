"""Persisted, user-curated stock wishlists."""

import json
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from stock_watch.data.store import KeyValueStore
from stock_watch.utils.formatting import clean_text

logger = logging.getLogger(__name__)

WISHLIST_KEY = "stock_wishlists"


class WishlistError(Exception):
    """Base class for wishlist failures the caller must handle."""

    pass


class WishlistNotFoundError(WishlistError):
    def __init__(self, wishlist_id: str):
        super().__init__("Wishlist not found")
        self.wishlist_id = wishlist_id


class DuplicateStockError(WishlistError):
    def __init__(self, wishlist_id: str, symbol: str):
        super().__init__("Stock already exists in this wishlist")
        self.wishlist_id = wishlist_id
        self.symbol = symbol


class WishlistPersistenceError(WishlistError):
    """Raised when the collection could not be read or written."""

    pass


@dataclass
class WishlistStock:
    """Display snapshot of a stock at add/update time (not live)."""

    symbol: str
    name: str | None = None
    price: Any = None
    change: Any = None
    added_at: str | None = None
    last_updated: str | None = None

    @classmethod
    def from_input(cls, stock: Mapping[str, Any], added_at: str) -> "WishlistStock":
        """Normalize a quote-like mapping carrying `symbol` or `ticker`."""
        symbol = stock.get("symbol") or stock.get("ticker")
        if not symbol:
            raise ValueError("Stock symbol is required")
        return cls(
            symbol=symbol,
            name=stock.get("name"),
            price=stock.get("price"),
            change=stock.get("change"),
            added_at=added_at,
        )

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "WishlistStock":
        return cls(
            symbol=raw["symbol"],
            name=raw.get("name"),
            price=raw.get("price"),
            change=raw.get("change"),
            added_at=raw.get("added_at"),
            last_updated=raw.get("last_updated"),
        )


@dataclass
class Wishlist:
    id: str
    name: str
    stocks: list[WishlistStock] = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None

    def has_stock(self, symbol: str) -> bool:
        return any(stock.symbol == symbol for stock in self.stocks)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Wishlist":
        return cls(
            id=str(raw["id"]),
            name=raw.get("name", ""),
            stocks=[WishlistStock.from_dict(s) for s in raw.get("stocks", [])],
            created_at=raw.get("created_at"),
            updated_at=raw.get("updated_at"),
        )


class WishlistStore:
    """
    CRUD over the single persisted wishlist collection.

    Every mutation reads the whole collection, mutates it in memory and
    writes the whole collection back (last write wins across concurrent
    callers). The in-memory mirror is refreshed on every read and every
    mutation; the key-value store stays the source of truth.

    create/delete/add_stock/remove_stock raise on failure. Read helpers,
    apply_price_updates and clear_all are best-effort.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time):
        self.store = store
        self._clock = clock
        self._mirror: list[Wishlist] | None = None

    @property
    def mirror(self) -> list[Wishlist] | None:
        """Collection as of the last read or mutation (None before first load)."""
        return self._mirror

    def _timestamp(self) -> str:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc).isoformat()

    def _generate_id(self, wishlists: list[Wishlist]) -> str:
        # Millisecond clock, bumped past any existing numeric id so rapid creates never collide
        candidate = int(self._clock() * 1000)
        numeric_ids = [int(w.id) for w in wishlists if w.id.isdigit()]
        if numeric_ids:
            candidate = max(candidate, max(numeric_ids) + 1)
        return str(candidate)

    async def _read(self) -> list[Wishlist]:
        try:
            text = await self.store.get_item(WISHLIST_KEY)
            wishlists = [Wishlist.from_dict(w) for w in json.loads(text)] if text else []
        except Exception as e:
            raise WishlistPersistenceError(f"Failed to load wishlists: {e}") from e
        self._mirror = wishlists
        return wishlists

    async def _commit(self, wishlists: list[Wishlist]) -> None:
        # Mirror moves first: a failed write leaves it ahead until the next successful read
        self._mirror = wishlists
        try:
            await self.store.set_item(
                WISHLIST_KEY, json.dumps([w.to_dict() for w in wishlists])
            )
        except Exception as e:
            raise WishlistPersistenceError(f"Failed to save wishlists: {e}") from e

    @staticmethod
    def _find(wishlists: list[Wishlist], wishlist_id: str) -> Wishlist:
        for wishlist in wishlists:
            if wishlist.id == wishlist_id:
                return wishlist
        raise WishlistNotFoundError(wishlist_id)

    async def list_all(self) -> list[Wishlist]:
        """Load every wishlist. Storage errors degrade to an empty list."""
        try:
            return await self._read()
        except WishlistPersistenceError:
            logger.exception("Error getting wishlists")
            return []

    async def get(self, wishlist_id: str) -> Wishlist | None:
        for wishlist in await self.list_all():
            if wishlist.id == wishlist_id:
                return wishlist
        return None

    async def create(self, name: str) -> Wishlist:
        """
        Create an empty wishlist.

        Args:
            name: Display name (trimmed and control chars removed; never truncated)

        Raises:
            WishlistPersistenceError: If the collection could not be saved
        """
        wishlists = await self._read()
        now = self._timestamp()
        wishlist = Wishlist(
            id=self._generate_id(wishlists),
            name=clean_text(name, max_length=None) or "",
            created_at=now,
            updated_at=now,
        )
        wishlists.append(wishlist)
        await self._commit(wishlists)
        logger.info(f"Created wishlist {wishlist.id} ({wishlist.name!r})")
        return wishlist

    async def delete(self, wishlist_id: str) -> bool:
        """
        Delete a wishlist. Unknown ids are a successful no-op.

        Raises:
            WishlistPersistenceError: If the collection could not be saved
        """
        wishlists = await self._read()
        remaining = [w for w in wishlists if w.id != wishlist_id]
        if len(remaining) == len(wishlists):
            logger.debug(f"Wishlist {wishlist_id} not present, nothing to delete")
            return True
        await self._commit(remaining)
        logger.info(f"Deleted wishlist {wishlist_id}")
        return True

    async def add_stock(self, wishlist_id: str, stock: Mapping[str, Any]) -> Wishlist:
        """
        Append a stock snapshot to a wishlist.

        Args:
            wishlist_id: Target wishlist
            stock: Mapping with `symbol` (or `ticker`), name, price, change

        Raises:
            WishlistNotFoundError: If wishlist_id is unknown
            DuplicateStockError: If the symbol is already in the wishlist
            ValueError: If the stock has no symbol
            WishlistPersistenceError: If the collection could not be saved
        """
        wishlists = await self._read()
        wishlist = self._find(wishlists, wishlist_id)
        now = self._timestamp()
        new_stock = WishlistStock.from_input(stock, added_at=now)

        if wishlist.has_stock(new_stock.symbol):
            raise DuplicateStockError(wishlist_id, new_stock.symbol)

        wishlist.stocks.append(new_stock)
        wishlist.updated_at = now
        await self._commit(wishlists)
        return wishlist

    async def remove_stock(self, wishlist_id: str, symbol: str) -> Wishlist:
        """
        Remove a symbol from a wishlist (no-op if absent).

        Raises:
            WishlistNotFoundError: If wishlist_id is unknown
            WishlistPersistenceError: If the collection could not be saved
        """
        wishlists = await self._read()
        wishlist = self._find(wishlists, wishlist_id)
        wishlist.stocks = [s for s in wishlist.stocks if s.symbol != symbol]
        wishlist.updated_at = self._timestamp()
        await self._commit(wishlists)
        return wishlist

    async def find_lists_containing(self, symbol: str) -> list[str]:
        """Ids of every wishlist holding symbol."""
        return [w.id for w in await self.list_all() if w.has_stock(symbol)]

    async def all_stocks_flattened(self) -> list[dict[str, Any]]:
        """Every stock across all wishlists, tagged with wishlist_id/wishlist_name."""
        return [
            {**asdict(stock), "wishlist_id": w.id, "wishlist_name": w.name}
            for w in await self.list_all()
            for stock in w.stocks
        ]

    async def apply_price_updates(self, updates: Iterable[Mapping[str, Any]]) -> bool:
        """
        Overwrite price/change on every stock matching an update's symbol or ticker.

        Persists once, only if something changed.

        Returns:
            False if the collection could not be loaded or saved
        """
        updates = list(updates)
        try:
            wishlists = await self._read()
            now = self._timestamp()
            has_updates = False
            for wishlist in wishlists:
                for stock in wishlist.stocks:
                    update = next(
                        (
                            u for u in updates
                            if u.get("symbol") == stock.symbol or u.get("ticker") == stock.symbol
                        ),
                        None,
                    )
                    if update is None:
                        continue
                    stock.price = update.get("price")
                    stock.change = update.get("change")
                    stock.last_updated = now
                    has_updates = True

            if has_updates:
                await self._commit(wishlists)
            return True
        except WishlistPersistenceError:
            logger.exception("Error updating stock prices")
            return False

    async def clear_all(self) -> bool:
        """Drop the whole collection."""
        try:
            await self.store.remove_item(WISHLIST_KEY)
        except Exception:
            logger.exception("Error clearing wishlists")
            return False
        self._mirror = None
        return True
