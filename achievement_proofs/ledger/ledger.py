"""
achievement_proofs.ledger.ledger
================================

Async, single-flight front of a `LedgerStore`.

``get_or_create(tenant_id, proof_hash, producer)`` guarantees:

- at most one ``producer()`` call per key per process: concurrent callers for
  the same key await one shared task instead of starting their own;
- that task first re-reads the store, so a key whose record was committed a
  moment ago is never recomputed;
- exactly one stored record per key across processes, via the store's
  ``insert_if_absent`` (a losing insert returns the winner's record);
- a caller that is cancelled or times out does not cancel the shared task
  (it is awaited through ``asyncio.shield``), so a computation that finishes
  still commits its record and later resubmissions find it.

Store I/O runs in worker threads (``asyncio.to_thread``) so SQLite calls do not
block the event loop.
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from ..types import ProofRecord
from .store import LedgerStore

Producer = Callable[[], Awaitable[ProofRecord]]

_Key = Tuple[str, str]


class ProofLedger:
    def __init__(self, store: LedgerStore) -> None:
        self.store = store
        self._inflight: Dict[_Key, "asyncio.Future[Tuple[ProofRecord, bool]]"] = {}

    async def lookup(self, tenant_id: str, proof_hash: str) -> Optional[ProofRecord]:
        return await asyncio.to_thread(self.store.get, tenant_id, proof_hash)

    async def list_by_tenant(self, tenant_id: str, limit: int = 50, offset: int = 0) -> List[ProofRecord]:
        return await asyncio.to_thread(self.store.list_by_tenant, tenant_id, limit, offset)

    def inflight(self) -> int:
        """Number of keys with a verification currently running."""
        return len(self._inflight)

    async def get_or_create(self, tenant_id: str, proof_hash: str, producer: Producer) -> Tuple[ProofRecord, bool]:
        """
        Return ``(record, created)``.

        ``created`` is True only for the one caller whose producer result was
        stored; every other caller (concurrent or later) gets the stored
        record with ``created=False``.
        """
        key = (tenant_id, proof_hash)
        owner = False
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._get_or_produce(tenant_id, proof_hash, producer))
            self._inflight[key] = task
            task.add_done_callback(partial(self._forget, key))
            owner = True
        record, inserted = await asyncio.shield(task)
        return record, owner and inserted

    async def _get_or_produce(self, tenant_id: str, proof_hash: str, producer: Producer) -> Tuple[ProofRecord, bool]:
        existing = await self.lookup(tenant_id, proof_hash)
        if existing is not None:
            return existing, False
        record = await producer()
        if (record.tenant_id, record.proof_hash) != (tenant_id, proof_hash):
            raise ValueError("producer returned a record for a different key")
        inserted, stored = await asyncio.to_thread(self.store.insert_if_absent, record)
        return stored, inserted

    def _forget(self, key: _Key, task: "asyncio.Future[Tuple[ProofRecord, bool]]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # mark a failure as retrieved when every waiter has gone away
        if not task.cancelled():
            task.exception()

    async def drain(self) -> None:
        """Wait until every in-flight verification has committed or failed."""
        while True:
            pending = [t for t in self._inflight.values() if not t.done()]
            if not pending:
                return
            await asyncio.wait(pending)

    def close(self) -> None:
        self.store.close()


__all__ = ["Producer", "ProofLedger"]
