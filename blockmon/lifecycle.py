"""Pending-message bookkeeping for the create-then-edit notification flow."""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, Optional

from blockmon.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_MAX_ENTRIES = 5000


@dataclass(frozen=True)
class PendingMessage:
    message_id: int
    created_at: float


class PendingMessageCache:
    """Map transaction hashes to the message currently showing them as pending.

    A hash is either absent (no record) or pending. Callers serialize work on
    one hash with `lock(tx_hash)`; the table itself is only touched between
    suspension points, so it needs no locking of its own.

    Records expire after `ttl_seconds` and the oldest records are dropped
    once more than `max_entries` are held.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._records: "OrderedDict[str, PendingMessage]" = OrderedDict()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, tx_hash: object) -> bool:
        return self.get(tx_hash) is not None  # type: ignore[arg-type]

    def get(self, tx_hash: str) -> Optional[int]:
        """Return the pending message id for a hash, if still live."""
        record = self._records.get(tx_hash)
        if record is None:
            return None
        if self._is_expired(record):
            del self._records[tx_hash]
            logger.info("pending_message_expired", tx_hash=tx_hash)
            return None
        return record.message_id

    def put(self, tx_hash: str, message_id: int) -> None:
        """Record that `message_id` shows `tx_hash` as pending."""
        self._records.pop(tx_hash, None)
        self._records[tx_hash] = PendingMessage(message_id, self._clock())
        while len(self._records) > self.max_entries:
            evicted, _ = self._records.popitem(last=False)
            logger.warning("pending_message_evicted", tx_hash=evicted)

    def pop(self, tx_hash: str) -> Optional[int]:
        record = self._records.pop(tx_hash, None)
        return record.message_id if record else None

    def purge_expired(self) -> int:
        """Drop expired records and return how many were removed."""
        expired = [key for key, rec in self._records.items() if self._is_expired(rec)]
        for key in expired:
            del self._records[key]
        return len(expired)

    @asynccontextmanager
    async def lock(self, tx_hash: str) -> AsyncIterator[None]:
        """Serialize processing of a single transaction hash."""
        lock = self._locks.get(tx_hash)
        if lock is None:
            lock = self._locks[tx_hash] = asyncio.Lock()
        self._waiters[tx_hash] = self._waiters.get(tx_hash, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._waiters[tx_hash] - 1
            if remaining:
                self._waiters[tx_hash] = remaining
            else:
                del self._waiters[tx_hash]
                del self._locks[tx_hash]

    def _is_expired(self, record: PendingMessage) -> bool:
        return self._clock() - record.created_at >= self.ttl_seconds
