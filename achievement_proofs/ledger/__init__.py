"""Proof record ledger: at-most-once verdicts per (tenant_id, proof_hash)."""

from .ledger import Producer, ProofLedger
from .store import LedgerStore, MemoryLedgerStore, SqliteLedgerStore, open_ledger_store

__all__ = [
    "Producer",
    "ProofLedger",
    "LedgerStore",
    "MemoryLedgerStore",
    "SqliteLedgerStore",
    "open_ledger_store",
]
