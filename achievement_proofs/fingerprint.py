"""
Proof fingerprinting: canonical bytes + SHA-256.

Layout. Integers are 32-byte big-endian. Each point starts with a one-byte tag:
0x00 is the point at infinity (coordinates zero), 0x01 an affine point.

    u16 len(protocol) || protocol || u16 len(curve) || curve
    || tag(A) || A.x || A.y
    || tag(B) || B.x.c0 || B.x.c1 || B.y.c0 || B.y.c1
    || tag(C) || C.x || C.y
    || u32 n_signals || s_0 || ... || s_{n-1}

Integers come from the field stage, not from the submitted strings, so
"0009" and "9" fingerprint identically. Only validated inputs are hashed.
"""

from __future__ import annotations

import hashlib
import struct
from typing import List

from .types import G1Point, G2Point, Proof, PublicSignalSet
from .verifiers.field import to_fixed_bytes

HASH_ALG = "sha256"

_ZERO = to_fixed_bytes(0)
_INFINITY = b"\x00"
_AFFINE = b"\x01"


def _tag(s: str) -> bytes:
    b = s.encode("utf-8")
    return struct.pack(">H", len(b)) + b


def _g1(p: G1Point) -> List[bytes]:
    if p is None:
        return [_INFINITY, _ZERO, _ZERO]
    return [_AFFINE, to_fixed_bytes(p[0]), to_fixed_bytes(p[1])]


def _g2(p: G2Point) -> List[bytes]:
    if p is None:
        return [_INFINITY] + [_ZERO] * 4
    (x0, x1), (y0, y1) = p
    return [_AFFINE] + [to_fixed_bytes(v) for v in (x0, x1, y0, y1)]


def canonical_proof_bytes(proof: Proof, signals: PublicSignalSet) -> bytes:
    parts: List[bytes] = [_tag(proof.protocol), _tag(proof.curve)]
    parts += _g1(proof.pi_a)
    parts += _g2(proof.pi_b)
    parts += _g1(proof.pi_c)
    parts.append(struct.pack(">I", len(signals)))
    parts += [to_fixed_bytes(s) for s in signals]
    return b"".join(parts)


def compute_proof_hash(proof: Proof, signals: PublicSignalSet) -> str:
    """Hex SHA-256 of ``canonical_proof_bytes(proof, signals)``."""
    return hashlib.sha256(canonical_proof_bytes(proof, signals)).hexdigest()


def short_hash(proof_hash: str, n: int = 12) -> str:
    return proof_hash[:n]


__all__ = ["HASH_ALG", "canonical_proof_bytes", "compute_proof_hash", "short_hash"]
