"""Expiring cache layered on the persistent key-value store."""

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from stock_watch import config
from stock_watch.data.store import KeyValueStore

logger = logging.getLogger(__name__)

CACHE_PREFIX = "cache_"


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload with its write time and TTL boundary (epoch seconds)."""

    payload: Any
    created_at: float
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        """Fresh up to and including the expiry instant."""
        return now <= self.expires_at

    def to_json(self) -> str:
        return json.dumps(
            {
                "data": self.payload,
                "created_at": self.created_at,
                "expires_at": self.expires_at,
            }
        )

    @classmethod
    def from_json(cls, text: str) -> "CacheEntry":
        raw = json.loads(text)
        return cls(
            payload=raw["data"],
            created_at=float(raw["created_at"]),
            expires_at=float(raw["expires_at"]),
        )


def _parse_entry(text: str) -> CacheEntry | None:
    """Decode a stored entry, or None if it is corrupt."""
    try:
        return CacheEntry.from_json(text)
    except (KeyError, TypeError, ValueError):
        return None


class ExpiringCache:
    """
    TTL cache over a KeyValueStore.

    Two read modes:
    - get(): fresh entries only. A stale entry found on read is evicted.
    - get_stale_or_fresh(): ignores TTL and never evicts. Used as the
      last-resort read when the upstream API is unavailable.

    Every method is best-effort. Storage errors are logged and reported as
    a miss (or ignored, for writes); the cache never raises to callers.
    """

    def __init__(
        self,
        store: KeyValueStore,
        default_ttl: int | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self._default_ttl = default_ttl if default_ttl is not None else config.DEFAULT_CACHE_TTL
        self._clock = clock

    @staticmethod
    def _storage_key(key: str) -> str:
        return f"{CACHE_PREFIX}{key}"

    async def set(self, key: str, payload: Any, ttl: float | None = None) -> None:
        """
        Store payload under key for ttl seconds (default: 300).

        Args:
            key: Logical cache key (namespaced on write)
            payload: JSON-serializable value
            ttl: Time to live in seconds
        """
        expire = ttl if ttl is not None else self._default_ttl
        now = self._clock()
        entry = CacheEntry(payload=payload, created_at=now, expires_at=now + max(expire, 0))
        try:
            await self.store.set_item(self._storage_key(key), entry.to_json())
            logger.debug(f"Cache set for key: {key}, expires in {expire}s")
        except Exception:
            logger.exception(f"Error setting cache for key: {key}")

    async def lookup(self, key: str, allow_stale: bool = False) -> CacheEntry | None:
        """
        Read the full entry for key.

        Args:
            key: Logical cache key
            allow_stale: Return entries past their TTL instead of evicting them

        Returns:
            CacheEntry or None on miss, expiry (unless allow_stale) or error
        """
        try:
            text = await self.store.get_item(self._storage_key(key))
        except Exception:
            logger.exception(f"Error reading cache for key: {key}")
            return None
        if text is None:
            logger.debug(f"Cache miss for key: {key}")
            return None

        entry = _parse_entry(text)
        if entry is None:
            logger.warning(f"Unreadable cache entry for key: {key}, removing")
            await self.remove(key)
            return None

        now = self._clock()
        if allow_stale or entry.is_fresh(now):
            logger.debug(f"Cache hit for key: {key}, age: {now - entry.created_at:.1f}s")
            return entry

        logger.debug(f"Cache expired for key: {key}")
        await self.remove(key)
        return None

    async def get(self, key: str) -> Any | None:
        """Return the payload if present and fresh, else None."""
        entry = await self.lookup(key)
        return entry.payload if entry is not None else None

    async def get_stale_or_fresh(self, key: str) -> Any | None:
        """Return the payload regardless of TTL, else None."""
        entry = await self.lookup(key, allow_stale=True)
        return entry.payload if entry is not None else None

    async def is_valid(self, key: str) -> bool:
        """Check if key holds a fresh entry (without evicting)."""
        entry = await self.lookup(key, allow_stale=True)
        return entry is not None and entry.is_fresh(self._clock())

    async def get_age(self, key: str) -> float | None:
        """Seconds since key was written, or None if absent."""
        entry = await self.lookup(key, allow_stale=True)
        if entry is None:
            return None
        return self._clock() - entry.created_at

    async def remove(self, key: str) -> None:
        """Remove key from the cache."""
        try:
            await self.store.remove_item(self._storage_key(key))
            logger.debug(f"Cache removed for key: {key}")
        except Exception:
            logger.exception(f"Error removing cache for key: {key}")

    async def keys(self) -> list[str]:
        """Logical keys of every cached entry (fresh or stale)."""
        try:
            all_keys = await self.store.get_all_keys()
        except Exception:
            logger.exception("Error listing cache keys")
            return []
        return [k[len(CACHE_PREFIX):] for k in all_keys if k.startswith(CACHE_PREFIX)]

    async def clear_all(self) -> None:
        """Remove every cache entry. Non-cache keys are left alone."""
        try:
            all_keys = await self.store.get_all_keys()
            cache_keys = [k for k in all_keys if k.startswith(CACHE_PREFIX)]
            if cache_keys:
                await self.store.multi_remove(cache_keys)
                logger.info(f"Cleared {len(cache_keys)} cache items")
        except Exception:
            logger.exception("Error clearing cache")

    async def clear_expired(self) -> int:
        """
        Sweep stale and unreadable entries.

        Returns:
            Number of entries removed (0 on error)
        """
        try:
            all_keys = await self.store.get_all_keys()
            now = self._clock()
            expired_keys = []
            for storage_key in all_keys:
                if not storage_key.startswith(CACHE_PREFIX):
                    continue
                text = await self.store.get_item(storage_key)
                if text is None:
                    continue
                # Unreadable entries are swept along with expired ones
                entry = _parse_entry(text)
                if entry is None or not entry.is_fresh(now):
                    expired_keys.append(storage_key)

            if expired_keys:
                await self.store.multi_remove(expired_keys)
                logger.info(f"Cleared {len(expired_keys)} expired cache items")
            return len(expired_keys)
        except Exception:
            logger.exception("Error clearing expired cache")
            return 0

    async def get_stats(self) -> dict[str, Any]:
        """
        Full scan over cache entries. Unreadable entries count as expired.

        Returns:
            Dict with total_items, valid_items, expired_items,
            total_size_bytes and a human-readable total_size
        """
        total_items = 0
        valid_items = 0
        expired_items = 0
        total_size = 0

        try:
            all_keys = await self.store.get_all_keys()
            now = self._clock()
            for storage_key in all_keys:
                if not storage_key.startswith(CACHE_PREFIX):
                    continue
                text = await self.store.get_item(storage_key)
                if text is None:
                    continue
                total_items += 1
                total_size += len(text)
                entry = _parse_entry(text)
                if entry is not None and entry.is_fresh(now):
                    valid_items += 1
                else:
                    expired_items += 1
        except Exception:
            logger.exception("Error getting cache stats")
            total_items = valid_items = expired_items = total_size = 0

        return {
            "total_items": total_items,
            "valid_items": valid_items,
            "expired_items": expired_items,
            "total_size_bytes": total_size,
            "total_size": f"{total_size / 1024:.2f} KB",
        }
