"""
Purchase Store - Dedup cache for verified purchases.

Maps a dedup key (user_id + "_" + purchase_token) to the record of its first
successful verification. The in-memory store is per-process only: a restart
forgets all history, and separate processes do not share it. A networked
store (e.g. Redis) can be substituted by implementing PurchaseStore.

There is no size cap. Growth is bounded only by evicting records older than
the TTL.
"""

import threading
import time
from collections.abc import Callable
from typing import Protocol

from structlog import get_logger

from purchase_gateway.models.domain import PurchaseRecord

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60


class PurchaseStore(Protocol):
    """
    Dedup store protocol.

    Any backing store (memory, Redis, etc.) must implement this interface.
    """

    def now(self) -> float:
        """Current time on the store's clock (epoch seconds)."""
        ...

    def has(self, key: str) -> bool:
        """Return True if the key belongs to an already verified purchase."""
        ...

    def set(self, key: str, record: PurchaseRecord) -> None:
        """Record a verified purchase."""
        ...

    def sweep(self) -> int:
        """Remove records older than the TTL. Returns the number removed."""
        ...

    def __len__(self) -> int: ...


class InMemoryPurchaseStore:
    """
    Thread-safe in-memory purchase store with TTL-based eviction.

    Eviction is opportunistic: callers run sweep() after inserts, nothing
    is scheduled.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._records: dict[str, PurchaseRecord] = {}
        self._lock = threading.Lock()
        self._ttl = ttl_seconds
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def now(self) -> float:
        """Current time on the store's clock (epoch seconds)."""
        return self._clock()

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._records

    def set(self, key: str, record: PurchaseRecord) -> None:
        with self._lock:
            self._records[key] = record

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, r in self._records.items() if r.age_seconds(now) > self._ttl]
            for k in expired:
                del self._records[k]

        if expired:
            logger.info("purchase_cache_swept", evicted=len(expired), remaining=len(self))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
