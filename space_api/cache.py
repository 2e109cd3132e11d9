"""
In-memory TTL cache shared by every upstream collaborator.

Entries carry their own TTL. Keys may have a refresh function registered so
the scheduler (or the /cache/refresh endpoint) can re-fetch them ahead of
expiry, and concurrent misses for the same key share one in-flight fetch.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60

Producer = Callable[[], Awaitable[Any]]

_MISSING = object()


class NoRefreshFunctionError(KeyError):
    """Raised by refresh() when no producer is registered for a key."""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self):
        return f"No refresh function registered for key: {self.key}"


class TTLCache:
    """Lightweight in-memory cache with per-entry TTL support."""

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._values: Dict[str, Any] = {}
        # key -> (stored_at, ttl); kept in lock-step with _values
        self._meta: Dict[str, Tuple[float, float]] = {}
        self._producers: Dict[str, Tuple[Producer, Optional[float]]] = {}
        self._pending: Dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Plain key/value access
    # ------------------------------------------------------------------

    def _is_fresh(self, key: str, now: float) -> bool:
        meta = self._meta.get(key)
        if meta is None:
            return False
        stored_at, ttl = meta
        return now - stored_at < ttl

    def get(self, key, default=None):
        """Get value from cache if not expired."""
        key = str(key)
        if self._is_fresh(key, self._clock()):
            logger.debug("Cache hit for %s", key)
            return self._values[key]
        logger.debug("Cache miss for %s", key)
        return default

    def set(self, key, value: Any, ttl: Optional[float] = None) -> None:
        """Store value, replacing any previous entry and restarting its clock."""
        key = str(key)
        ttl = self.default_ttl if ttl is None else ttl
        self._values[key] = value
        self._meta[key] = (self._clock(), ttl)
        logger.debug("Cached data for %s (ttl=%ss)", key, ttl)

    def has(self, key) -> bool:
        return self._is_fresh(str(key), self._clock())

    __contains__ = has

    def __len__(self):
        return len(self._values)

    def keys(self) -> List[str]:
        return list(self._values)

    def peek(self, key) -> Dict[str, Any]:
        """Raw entry view regardless of expiry, for inspection endpoints."""
        key = str(key)
        meta = self._meta.get(key)
        if meta is None:
            return {"exists": False}
        stored_at, ttl = meta
        age = self._clock() - stored_at
        return {
            "exists": True,
            "value": self._values[key],
            "ttl_seconds": ttl,
            "age_seconds": round(age),
            "is_valid": age < ttl,
            "has_refresh_function": key in self._producers,
        }

    def delete(self, key) -> bool:
        key = str(key)
        if key not in self._meta:
            return False
        del self._values[key]
        del self._meta[key]
        return True

    def clear(self) -> None:
        """Clear all cache entries. Registered refresh functions are kept."""
        self._values.clear()
        self._meta.clear()

    # ------------------------------------------------------------------
    # Expiry and diagnostics
    # ------------------------------------------------------------------

    def cleanup(self) -> int:
        """Drop every entry whose age has reached its TTL."""
        now = self._clock()
        expired = [
            key for key, (stored_at, ttl) in self._meta.items()
            if now - stored_at >= ttl
        ]
        for key in expired:
            del self._values[key]
            del self._meta[key]
            logger.info("Cleaned up expired cache entry: %s", key)
        return len(expired)

    def get_status(self) -> Dict[str, Dict[str, Any]]:
        now = self._clock()
        status = {}
        for key, (stored_at, ttl) in self._meta.items():
            age = now - stored_at
            is_valid = age < ttl
            status[key] = {
                "age_seconds": round(age),
                "is_valid": is_valid,
                "time_until_expiry_seconds": round(ttl - age) if is_valid else 0,
                "ttl_seconds": ttl,
            }
        return status

    # ------------------------------------------------------------------
    # Refresh functions
    # ------------------------------------------------------------------

    def register_refresh_function(self, key, producer: Producer,
                                  ttl: Optional[float] = None) -> None:
        """
        Associate a zero-argument coroutine function with a key.

        The producer's result is stored with `ttl` (cache default when None)
        whenever the key is refreshed. Registering again replaces it.
        """
        self._producers[str(key)] = (producer, ttl)

    def registered_keys(self) -> List[str]:
        return list(self._producers)

    async def refresh(self, key) -> Any:
        """
        Re-run the registered producer for key and store its result.

        Producer errors propagate unchanged and leave the current entry alone.
        """
        key = str(key)
        registration = self._producers.get(key)
        if registration is None:
            raise NoRefreshFunctionError(key)

        producer, ttl = registration
        logger.info("Force refreshing cache for: %s", key)
        try:
            value = await producer()
        except Exception:
            logger.exception("Failed to refresh cache for %s", key)
            raise
        self.set(key, value, ttl)
        logger.info("Successfully refreshed cache for: %s", key)
        return value

    async def refresh_all(self) -> Dict[str, bool]:
        """Refresh every registered key; one failure never stops the sweep."""
        logger.info("Starting refresh of %d cached keys", len(self._producers))
        results = {}
        for key in list(self._producers):
            try:
                await self.refresh(key)
            except Exception:
                # already logged by refresh()
                results[key] = False
            else:
                results[key] = True
        logger.info("Refresh completed: %d ok, %d failed",
                    sum(results.values()), len(results) - sum(results.values()))
        return results

    # ------------------------------------------------------------------
    # Read-through with in-flight de-duplication
    # ------------------------------------------------------------------

    def pending_keys(self) -> List[str]:
        return list(self._pending)

    async def get_or_fetch(self, key, producer: Producer,
                           ttl: Optional[float] = None) -> Any:
        """
        Return the cached value for key, fetching it with producer on a miss.

        Callers that miss while a fetch for the same key is already running
        wait for that fetch instead of starting another one. Only successful
        results are stored.
        """
        key = str(key)
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value

        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key, producer, ttl))
            self._pending[key] = task
        else:
            logger.debug("Joining in-flight fetch for %s", key)
        return await asyncio.shield(task)

    async def _fetch_and_store(self, key: str, producer: Producer,
                               ttl: Optional[float]) -> Any:
        try:
            value = await producer()
            self.set(key, value, ttl)
            return value
        finally:
            # removed before any waiter resumes, so the next miss refetches
            self._pending.pop(key, None)
