"""
achievement_proofs.types
========================

Typed records for the verification pipeline, using **msgspec**.

Stage outputs
-------------
- `RawProof`: output of the structure stage. Shapes and tags are known-good,
  coordinates are still the submitted decimal strings.
- `Proof`: output of the field stage. Coordinates are canonical integers
  (affine; ``None`` is the point at infinity).
- `PublicSignalSet`: tuple of canonical scalar-field integers (order matters).

Key material & context
----------------------
- `VerificationKey`: Groth16 key for one (tenant, achievement type). Read-only.
- `SignalBinding`: expected values for the semantic public-signal checks.

Ledger & results
----------------
- `ProofRecord`: persisted verdict, one per (tenant_id, proof_hash).
- `VerificationOutcome`: what the engine returns to the API layer.

Conventions
-----------
- G2 coordinates are Fq2 elements ``c0 + c1 * i`` encoded ``(c0, c1)``, the
  snarkjs convention.
- All structs are frozen; stage outputs are values, never mutated in place.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional, Tuple

import msgspec

from .errors import ErrorKind, Rejection

__all__ = [
    "G1Coords",
    "G2Coords",
    "G1Point",
    "G2Point",
    "PublicSignalSet",
    "RawProof",
    "Proof",
    "VerificationKey",
    "SignalBinding",
    "VerificationRequest",
    "ProofRecord",
    "VerificationOutcome",
    "RESULT_VERIFIED",
    "RESULT_REJECTED",
    "canonical_json_bytes",
]

# Submitted (string) coordinates; None = point at infinity
G1Coords = Optional[Tuple[str, str]]
G2Coords = Optional[Tuple[Tuple[str, str], Tuple[str, str]]]

# Canonical (int) coordinates; None = point at infinity
G1Point = Optional[Tuple[int, int]]
G2Point = Optional[Tuple[Tuple[int, int], Tuple[int, int]]]

PublicSignalSet = Tuple[int, ...]

RESULT_VERIFIED = "VERIFIED"
RESULT_REJECTED = "REJECTED"


class RawProof(msgspec.Struct, frozen=True):
    pi_a: G1Coords
    pi_b: G2Coords
    pi_c: G1Coords
    protocol: str = "groth16"
    curve: str = "bn128"


class Proof(msgspec.Struct, frozen=True):
    """Groth16 proof with canonical affine coordinates."""

    pi_a: G1Point
    pi_b: G2Point
    pi_c: G1Point
    protocol: str = "groth16"
    curve: str = "bn128"


class VerificationKey(msgspec.Struct, frozen=True):
    """
    Groth16 verification key.

    Invariant: ``len(ic) == n_public + 1``. Points at infinity are not allowed
    for alpha1/beta2/gamma2/delta2 (loaders reject them).
    """

    alpha1: G1Point
    beta2: G2Point
    gamma2: G2Point
    delta2: G2Point
    ic: Tuple[G1Point, ...]
    protocol: str = "groth16"
    curve: str = "bn128"

    @property
    def n_public(self) -> int:
        return len(self.ic) - 1


class SignalBinding(msgspec.Struct, frozen=True):
    """
    Expected public-signal values for one (tenant, achievement) claim.

    Fields:
        achievement_commitment: expected ``signals[0]`` (None = unchecked).
        tenant_epoch: expected ``signals[-1]`` (None = unchecked).
        extra: other positions, index -> expected value.
    """

    achievement_commitment: Optional[int] = None
    tenant_epoch: Optional[int] = None
    extra: Dict[int, int] = msgspec.field(default_factory=dict)

    def is_empty(self) -> bool:
        return self.achievement_commitment is None and self.tenant_epoch is None and not self.extra


class VerificationRequest(msgspec.Struct, frozen=True):
    """Untrusted request as received from the API layer."""

    tenant_id: str
    achievement_id: str
    proof: Any
    public_signals: Any


class ProofRecord(msgspec.Struct, frozen=True, omit_defaults=True):
    """
    Persisted verdict. Created exactly once per (tenant_id, proof_hash); never
    updated or deleted by this package.
    """

    tenant_id: str
    proof_hash: str
    achievement_id: str
    result: str
    verified_at: float = 0.0
    reason: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def verified(self) -> bool:
        return self.result == RESULT_VERIFIED

    @property
    def verdict_kind(self) -> ErrorKind:
        if self.verified:
            return ErrorKind.VERIFIED
        return ErrorKind(self.error_kind or ErrorKind.PROOF_INVALID.value)

    @classmethod
    def accepted(cls, tenant_id: str, proof_hash: str, achievement_id: str) -> "ProofRecord":
        return cls(
            tenant_id=tenant_id,
            proof_hash=proof_hash,
            achievement_id=achievement_id,
            result=RESULT_VERIFIED,
            verified_at=time.time(),
        )

    @classmethod
    def rejected(
        cls,
        tenant_id: str,
        proof_hash: str,
        achievement_id: str,
        reason: str,
        kind: ErrorKind = ErrorKind.PROOF_INVALID,
    ) -> "ProofRecord":
        return cls(
            tenant_id=tenant_id,
            proof_hash=proof_hash,
            achievement_id=achievement_id,
            result=RESULT_REJECTED,
            verified_at=time.time(),
            reason=reason,
            error_kind=kind.value,
        )


class VerificationOutcome(msgspec.Struct, frozen=True, omit_defaults=True):
    """
    Result of ``verify_achievement_proof``.

    ``kind`` is ``VERIFIED`` or one of the error kinds. On the idempotent path
    (a record already existed) ``duplicate`` is True and ``kind`` repeats the
    stored verdict, so a resubmission always gets the same answer.
    """

    kind: str
    reason: Optional[str] = None
    proof_hash: Optional[str] = None
    record: Optional[ProofRecord] = None
    duplicate: bool = False
    details: Dict[str, Any] = msgspec.field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.kind == ErrorKind.VERIFIED.value

    @property
    def error_kind(self) -> ErrorKind:
        return ErrorKind(self.kind)

    @property
    def status(self) -> ErrorKind:
        """``DUPLICATE_PROOF`` on the idempotent path, else the verdict kind."""
        return ErrorKind.DUPLICATE_PROOF if self.duplicate else ErrorKind(self.kind)

    def __bool__(self) -> bool:  # allows: if outcome: ...
        return self.ok

    @classmethod
    def from_rejection(cls, rejection: Rejection) -> "VerificationOutcome":
        return cls(kind=rejection.kind.value, reason=rejection.message, details=dict(rejection.details))

    @classmethod
    def from_record(cls, record: ProofRecord, *, duplicate: bool = False) -> "VerificationOutcome":
        return cls(
            kind=record.verdict_kind.value,
            reason=record.reason,
            proof_hash=record.proof_hash,
            record=record,
            duplicate=duplicate,
        )

    def to_dict(self) -> Dict[str, Any]:
        return msgspec.to_builtins(self)


def canonical_json_bytes(obj: Any) -> bytes:
    """
    Deterministic JSON bytes (sorted keys, compact, UTF-8) for audit trails.

    Structs are encoded field by field like dicts, so a record and its
    ``to_builtins`` form produce the same bytes.
    """
    return msgspec.json.encode(msgspec.to_builtins(obj), order="sorted")
