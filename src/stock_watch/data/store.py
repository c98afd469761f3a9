"""Durable string-keyed storage backed by diskcache."""

import asyncio
import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

import diskcache

from stock_watch import config

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreError(Exception):
    """Raised when the underlying storage fails."""

    def __init__(self, message: str, last_error: Exception | None = None):
        super().__init__(message)
        self.last_error = last_error


class KeyValueStore:
    """
    Asynchronous string-keyed storage.

    Values are plain strings (callers serialize). Every blocking diskcache
    call runs on a bounded thread pool so the event loop never stalls on
    disk I/O. Any storage failure is re-raised as StoreError.
    """

    def __init__(self, directory: str | None = None, max_workers: int | None = None):
        self.directory = directory or config.STORE_DIR
        self._cache: diskcache.Cache = diskcache.Cache(self.directory)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or config.STORE_MAX_WORKERS
        )

    async def _run(self, operation_name: str, sync_func: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, sync_func)
        except Exception as e:
            raise StoreError(f"{operation_name} failed: {e}", last_error=e) from e

    async def get_item(self, key: str) -> str | None:
        """Return the stored string for key, or None if absent."""
        return await self._run(f"get_item({key})", lambda: self._cache.get(key))

    async def set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        await self._run(f"set_item({key})", lambda: self._cache.set(key, value))

    async def remove_item(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""
        await self._run(f"remove_item({key})", lambda: self._cache.delete(key))

    async def get_all_keys(self) -> list[str]:
        """List every stored key."""
        return await self._run("get_all_keys", lambda: [str(k) for k in self._cache.iterkeys()])

    async def multi_remove(self, keys: Iterable[str]) -> None:
        """Remove several keys in one transaction."""
        keys = list(keys)

        def _remove() -> None:
            with self._cache.transact():
                for key in keys:
                    self._cache.delete(key)

        await self._run(f"multi_remove({len(keys)} keys)", _remove)

    async def clear(self) -> None:
        """Remove every key."""
        await self._run("clear", self._cache.clear)

    def close(self) -> None:
        """Release the database handle and worker threads."""
        self._cache.close()
        self._executor.shutdown(wait=False, cancel_futures=True)
