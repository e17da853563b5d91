"""
achievement_proofs.ledger.store
-------------------------------

Storage for **ProofRecord** verdicts keyed by ``(tenant_id, proof_hash)``.

Two implementations are provided:

- MemoryLedgerStore: in-process dict guarded by a lock.
- SqliteLedgerStore: persistent store using the stdlib `sqlite3` module.

Uniqueness of ``(tenant_id, proof_hash)`` is a storage invariant: the SQLite
table uses it as its primary key and inserts go through ``INSERT OR IGNORE``,
so two processes racing on the same proof still end up with exactly one row,
and the loser reads the winner's record back.

Records are stored as msgspec JSON; a few fields are duplicated into columns
for listing queries.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Tuple, runtime_checkable
import sqlite3
import threading

import msgspec

from ..errors import LedgerError
from ..types import ProofRecord

_ENCODER = msgspec.json.Encoder()
_DECODER = msgspec.json.Decoder(ProofRecord)


def _record_to_bytes(rec: ProofRecord) -> bytes:
    return _ENCODER.encode(rec)


def _bytes_to_record(b: bytes) -> ProofRecord:
    try:
        return _DECODER.decode(b)
    except msgspec.DecodeError as e:
        raise LedgerError(f"corrupt ledger row: {e}") from e


# -----------------------------------------------------------------------------
# Store protocol & factory
# -----------------------------------------------------------------------------


@runtime_checkable
class LedgerStore(Protocol):
    def get(self, tenant_id: str, proof_hash: str) -> Optional[ProofRecord]: ...
    def insert_if_absent(self, rec: ProofRecord) -> Tuple[bool, ProofRecord]: ...
    def count(self, tenant_id: Optional[str] = None) -> int: ...
    def list_by_tenant(self, tenant_id: str, limit: int = 50, offset: int = 0) -> List[ProofRecord]: ...
    def close(self) -> None: ...


def open_ledger_store(url: str) -> LedgerStore:
    """
    Open a ledger store from a URL.

    Supported:
      - "memory:" → in-memory store
      - "sqlite:///:memory:" → SQLite in-memory
      - "sqlite:///path/to/ledger.db" → SQLite file
    """
    if url.startswith("memory:"):
        return MemoryLedgerStore()
    if url.startswith("sqlite:///"):
        path = url[len("sqlite:///") :]
        if not path:
            raise LedgerError("sqlite URL is missing a path")
        return SqliteLedgerStore(path)
    raise LedgerError(f"unsupported ledger URL: {url}")


# -----------------------------------------------------------------------------
# Memory store
# -----------------------------------------------------------------------------


class MemoryLedgerStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._by_key: dict[Tuple[str, str], ProofRecord] = {}
        self._order: List[Tuple[str, str]] = []

    def get(self, tenant_id: str, proof_hash: str) -> Optional[ProofRecord]:
        with self._lock:
            return self._by_key.get((tenant_id, proof_hash))

    def insert_if_absent(self, rec: ProofRecord) -> Tuple[bool, ProofRecord]:
        key = (rec.tenant_id, rec.proof_hash)
        with self._lock:
            existing = self._by_key.get(key)
            if existing is not None:
                return False, existing
            self._by_key[key] = rec
            self._order.append(key)
            return True, rec

    def count(self, tenant_id: Optional[str] = None) -> int:
        with self._lock:
            if tenant_id is None:
                return len(self._by_key)
            return sum(1 for t, _ in self._by_key if t == tenant_id)

    def list_by_tenant(self, tenant_id: str, limit: int = 50, offset: int = 0) -> List[ProofRecord]:
        with self._lock:
            keys = [k for k in reversed(self._order) if k[0] == tenant_id]
            return [self._by_key[k] for k in keys[offset : offset + limit]]

    def close(self) -> None:  # no-op
        pass


# -----------------------------------------------------------------------------
# SQLite store
# -----------------------------------------------------------------------------

_SQL_SCHEMA = """
CREATE TABLE IF NOT EXISTS proof_records (
  tenant_id       TEXT NOT NULL,
  proof_hash      TEXT NOT NULL,
  achievement_id  TEXT NOT NULL,
  result          TEXT NOT NULL,
  verified_at     REAL NOT NULL,
  record          BLOB NOT NULL,
  PRIMARY KEY (tenant_id, proof_hash)
);
CREATE INDEX IF NOT EXISTS idx_proof_records_tenant ON proof_records(tenant_id, verified_at DESC);
"""


class SqliteLedgerStore:
    """
    One connection shared across threads, serialized by a lock.

    ``check_same_thread=False`` because the async ledger calls into the store
    from worker threads.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
            if path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL;")
                self._conn.execute("PRAGMA synchronous=NORMAL;")
            self._conn.execute("PRAGMA busy_timeout=5000;")
            self._conn.executescript(_SQL_SCHEMA)
        except sqlite3.Error as e:
            raise LedgerError(f"cannot open ledger database {path!r}: {e}") from e

    def get(self, tenant_id: str, proof_hash: str) -> Optional[ProofRecord]:
        with self._lock:
            row = self._conn.execute(
                "SELECT record FROM proof_records WHERE tenant_id = ? AND proof_hash = ?",
                (tenant_id, proof_hash),
            ).fetchone()
        return _bytes_to_record(row[0]) if row else None

    def insert_if_absent(self, rec: ProofRecord) -> Tuple[bool, ProofRecord]:
        with self._lock:
            cur = self._conn.execute(
                "INSERT OR IGNORE INTO proof_records "
                "(tenant_id, proof_hash, achievement_id, result, verified_at, record) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    rec.tenant_id,
                    rec.proof_hash,
                    rec.achievement_id,
                    rec.result,
                    float(rec.verified_at),
                    _record_to_bytes(rec),
                ),
            )
            if cur.rowcount == 1:
                return True, rec
            existing = self.get(rec.tenant_id, rec.proof_hash)
        if existing is None:  # pragma: no cover - would mean the row vanished
            raise LedgerError("insert ignored but no existing record found")
        return False, existing

    def count(self, tenant_id: Optional[str] = None) -> int:
        with self._lock:
            if tenant_id is None:
                row = self._conn.execute("SELECT COUNT(*) FROM proof_records").fetchone()
            else:
                row = self._conn.execute(
                    "SELECT COUNT(*) FROM proof_records WHERE tenant_id = ?", (tenant_id,)
                ).fetchone()
        return int(row[0])

    def list_by_tenant(self, tenant_id: str, limit: int = 50, offset: int = 0) -> List[ProofRecord]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT record FROM proof_records WHERE tenant_id = ? "
                "ORDER BY verified_at DESC, rowid DESC LIMIT ? OFFSET ?",
                (tenant_id, int(limit), int(offset)),
            ).fetchall()
        return [_bytes_to_record(r[0]) for r in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()


__all__ = [
    "LedgerStore",
    "open_ledger_store",
    "MemoryLedgerStore",
    "SqliteLedgerStore",
]
