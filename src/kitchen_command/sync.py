"""Outbox of pending record store writes.

Optimistic mutations enqueue a :class:`PendingSync` instead of firing a detached
request. A single worker task drains the queue in FIFO order, retrying timeouts
and transport faults with exponential backoff. Entries for products that only
exist locally (temporary ids) are held until the record store confirms them.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from .client import FailureKind, RecordStoreClient, StoreResult
from .exceptions import RecordStoreUnavailable
from .records import Sale

logger = logging.getLogger(__name__)


class SyncAction(str, Enum):
    UPDATE_PRODUCT = "update_product"
    CREATE_SALE = "create_sale"


class SyncStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PendingSync:
    """A single queued write and its delivery state."""

    id: int
    action: SyncAction
    product_id: str
    payload: Dict[str, Any]
    status: SyncStatus = SyncStatus.PENDING
    attempts: int = 0
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action.value,
            "product_id": self.product_id,
            "payload": dict(self.payload),
            "status": self.status.value,
            "attempts": self.attempts,
            "last_error": self.last_error,
        }


@dataclass
class SyncOutbox:
    client: RecordStoreClient
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 10.0
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    _entries: List[PendingSync] = field(default_factory=list, init=False)
    _failed: List[PendingSync] = field(default_factory=list, init=False)
    _held: Set[str] = field(default_factory=set, init=False)
    _in_flight: Optional[PendingSync] = field(default=None, init=False)
    _worker: Optional[asyncio.Task[None]] = field(default=None, init=False)
    _ids: itertools.count[int] = field(default_factory=lambda: itertools.count(1), init=False)

    @property
    def pending(self) -> List[PendingSync]:
        return list(self._entries)

    @property
    def failed(self) -> List[PendingSync]:
        return list(self._failed)

    def get_delay(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    # ------------------------------------------------------------------
    # Queue management
    # ------------------------------------------------------------------
    def submit(self, action: SyncAction, product_id: str, payload: Dict[str, Any]) -> PendingSync:
        entry = PendingSync(
            id=next(self._ids), action=action, product_id=product_id, payload=dict(payload)
        )
        self._entries.append(entry)
        self._schedule()
        return entry

    def hold(self, product_id: str) -> None:
        """Defer writes for ``product_id`` until :meth:`release` or :meth:`discard`."""

        self._held.add(product_id)

    def release(self, temporary_id: str, durable_id: str) -> None:
        """Point held writes at the confirmed id and let them through."""

        self._held.discard(temporary_id)
        for entry in self._entries:
            if entry.product_id != temporary_id:
                continue
            entry.product_id = durable_id
            if entry.action is SyncAction.CREATE_SALE:
                entry.payload["productId"] = durable_id
        self._schedule()

    def discard(self, product_id: str) -> int:
        """Drop every queued write for ``product_id``; returns how many were dropped."""

        self._held.discard(product_id)
        kept = [
            entry
            for entry in self._entries
            if entry.product_id != product_id or entry is self._in_flight
        ]
        dropped = len(self._entries) - len(kept)
        self._entries = kept
        return dropped

    def cancel_sale(self, sale_id: str) -> bool:
        """Remove a sale creation that has not been sent yet."""

        for entry in self._entries:
            if (
                entry.action is SyncAction.CREATE_SALE
                and entry.payload.get("id") == sale_id
                and entry is not self._in_flight
            ):
                self._entries.remove(entry)
                return True
        return False

    async def flush(self) -> None:
        """Wait until every deliverable entry has been sent or has failed."""

        while True:
            if self._worker is not None and not self._worker.done():
                await self._worker
                continue
            if self._next_ready() is None:
                return
            self._worker = asyncio.get_running_loop().create_task(self._drain())

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------
    def _schedule(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet: entries wait for the next flush().
            return
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain())

    def _next_ready(self) -> Optional[PendingSync]:
        for entry in self._entries:
            if entry.product_id not in self._held:
                return entry
        return None

    async def _drain(self) -> None:
        while True:
            entry = self._next_ready()
            if entry is None:
                return
            self._in_flight = entry
            try:
                await self._deliver(entry)
            finally:
                self._in_flight = None
                if entry in self._entries:
                    self._entries.remove(entry)

    async def _deliver(self, entry: PendingSync) -> None:
        while True:
            entry.attempts += 1
            try:
                result = await self._execute(entry)
            except RecordStoreUnavailable as exc:
                result = StoreResult.failure(str(exc), FailureKind.UNAVAILABLE)

            if result.ok:
                entry.status = SyncStatus.DONE
                entry.last_error = None
                return

            entry.last_error = result.error
            retryable = result.kind in (FailureKind.TIMEOUT, FailureKind.UNAVAILABLE)
            if not retryable or entry.attempts >= self.max_attempts:
                entry.status = SyncStatus.FAILED
                self._failed.append(entry)
                logger.error(
                    "Giving up on %s for product %s after %d attempt(s): %s",
                    entry.action.value,
                    entry.product_id,
                    entry.attempts,
                    result.error,
                )
                return

            delay = self.get_delay(entry.attempts)
            logger.warning(
                "Retrying %s for product %s in %.2fs (attempt %d/%d): %s",
                entry.action.value,
                entry.product_id,
                delay,
                entry.attempts,
                self.max_attempts,
                result.error,
            )
            await self.sleep(delay)

    async def _execute(self, entry: PendingSync) -> StoreResult[Any]:
        if entry.action is SyncAction.UPDATE_PRODUCT:
            return await self.client.update_product(entry.product_id, **entry.payload)
        if entry.action is SyncAction.CREATE_SALE:
            return await self.client.create_sale(Sale.from_record(entry.payload))
        raise ValueError(f"Unsupported sync action: {entry.action}")


__all__ = ["PendingSync", "SyncAction", "SyncOutbox", "SyncStatus"]
