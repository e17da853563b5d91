"""
achievement_proofs
==================

Zero-knowledge achievement proof verification (Groth16 over BN254).

A tenant submits a snarkjs-style Groth16 proof and its public signals claiming
an achievement; this package decides whether the proof is valid for that
tenant's achievement type and records the verdict at most once per proof.

Typical usage
-------------
1) Async service code:

    from achievement_proofs import VerificationEngine, StaticKeyResolver, StaticTenantContext

    engine = VerificationEngine(resolver, context)
    outcome = await engine.verify_achievement_proof(tenant_id, achievement_id, proof, signals)

2) Blocking one-shot call:

    from achievement_proofs import verify_achievement_proof
    outcome = verify_achievement_proof(tenant_id, achievement_id, proof, signals, resolver=resolver)

Outcomes carry an `ErrorKind` (``VERIFIED`` on success); see `achievement_proofs.errors`.
"""

from __future__ import annotations

from .engine import VerificationEngine, verify_achievement_proof
from .errors import AchievementProofError, ErrorKind, Rejection
from .fingerprint import canonical_proof_bytes, compute_proof_hash
from .ledger import MemoryLedgerStore, ProofLedger, SqliteLedgerStore, open_ledger_store
from .resolvers import (
    DirectoryKeyResolver,
    KeyResolver,
    StaticKeyResolver,
    StaticTenantContext,
    TenantContextProvider,
    load_snarkjs_vkey,
    resolver_from_settings,
)
from .types import (
    ProofRecord,
    SignalBinding,
    VerificationKey,
    VerificationOutcome,
    VerificationRequest,
    canonical_json_bytes,
)
from .verifiers.field import is_valid_field_element, string_to_field_element

__all__ = [
    "__version__",
    # engine
    "VerificationEngine",
    "verify_achievement_proof",
    # errors
    "AchievementProofError",
    "ErrorKind",
    "Rejection",
    # field & fingerprint
    "is_valid_field_element",
    "string_to_field_element",
    "canonical_proof_bytes",
    "compute_proof_hash",
    # ledger
    "ProofLedger",
    "MemoryLedgerStore",
    "SqliteLedgerStore",
    "open_ledger_store",
    # resolvers
    "KeyResolver",
    "TenantContextProvider",
    "StaticKeyResolver",
    "DirectoryKeyResolver",
    "StaticTenantContext",
    "load_snarkjs_vkey",
    "resolver_from_settings",
    # records
    "ProofRecord",
    "SignalBinding",
    "VerificationKey",
    "VerificationOutcome",
    "VerificationRequest",
    "canonical_json_bytes",
]

__version__ = "0.1.0"
