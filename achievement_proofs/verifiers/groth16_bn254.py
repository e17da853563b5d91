"""
achievement_proofs.verifiers.groth16_bn254
==========================================

Groth16 verifier for BN254 (altbn128) over already-validated inputs.

Verification equation (standard form)
-------------------------------------
    e(A, B) == e(alpha1, beta2) * e(VK_x, gamma2) * e(C, delta2)
    VK_x = IC[0] + sum_i signals[i] * IC[i+1]

We implement this as a product check in GT:
    e(A, B) * e(-alpha1, beta2) * e(-VK_x, gamma2) * e(-C, delta2) == 1

Inputs
------
`check_groth16` takes a `Proof` and `VerificationKey` with canonical affine
integer coordinates and a tuple of canonical scalar-field signals, i.e. the
outputs of the validation stages. It is a module-level function over picklable
values so it can be shipped to a process pool.

Verdicts
--------
- Returns ``PairingVerdict(ok=True)`` when the equation holds.
- Returns ``PairingVerdict(ok=False, reason=...)`` when the proof is false,
  including proof points that are off-curve or (for pi_b) outside the order-r
  subgroup: those are properties of the submitted proof.
- Raises `KeyMaterialError` for bad key material and lets any backend
  exception propagate: both mean a defect on our side, not a false proof.
"""

from __future__ import annotations

from typing import Optional, Sequence

import msgspec

from ..errors import KeyMaterialError
from ..types import Proof, PublicSignalSet, VerificationKey
from . import pairing_bn254 as bn

REASON_PAIRING_FAILED = "pairing check failed"
REASON_OFF_CURVE = "proof point is not on the curve"
REASON_SUBGROUP = "pi_b is not in the prime-order subgroup"


class PairingVerdict(msgspec.Struct, frozen=True):
    ok: bool
    reason: Optional[str] = None


def _vk_x(ic: Sequence[bn.G1Point], signals: PublicSignalSet) -> bn.G1Point:
    """
    Compute VK_x = IC[0] + sum_i signals[i] * IC[i+1]  in G1.
    """
    if len(ic) != len(signals) + 1:
        raise KeyMaterialError(f"IC length {len(ic)} != 1 + len(signals) {len(signals)}")
    acc = ic[0]
    for i, s in enumerate(signals):
        if s != 0:
            acc = bn.g1_add(acc, bn.g1_mul(ic[i + 1], s))
    return acc


def _load_key(key: VerificationKey):
    if None in (key.alpha1, key.beta2, key.gamma2, key.delta2):
        raise KeyMaterialError("verification key has a point at infinity")
    alpha1 = bn.g1_from_affine(key.alpha1)
    beta2 = bn.g2_from_affine(key.beta2)
    gamma2 = bn.g2_from_affine(key.gamma2)
    delta2 = bn.g2_from_affine(key.delta2)
    ic = [bn.g1_from_affine(p) for p in key.ic]
    if not bn.is_on_curve_g1(alpha1) or not all(bn.is_on_curve_g1(p) for p in ic):
        raise KeyMaterialError("verification key G1 point is not on the curve")
    if not (bn.is_on_curve_g2(beta2) and bn.is_on_curve_g2(gamma2) and bn.is_on_curve_g2(delta2)):
        raise KeyMaterialError("verification key G2 point is not on the curve")
    return alpha1, beta2, gamma2, delta2, ic


def check_groth16(proof: Proof, key: VerificationKey, signals: PublicSignalSet) -> PairingVerdict:
    """Run the Groth16 pairing check. See module docstring for the contract."""
    alpha1, beta2, gamma2, delta2, ic = _load_key(key)

    A = bn.g1_from_affine(proof.pi_a)
    B = bn.g2_from_affine(proof.pi_b)
    C = bn.g1_from_affine(proof.pi_c)
    if not (bn.is_on_curve_g1(A) and bn.is_on_curve_g2(B) and bn.is_on_curve_g1(C)):
        return PairingVerdict(ok=False, reason=REASON_OFF_CURVE)
    if not bn.is_in_subgroup_g2(B):
        return PairingVerdict(ok=False, reason=REASON_SUBGROUP)

    vkx = _vk_x(ic, signals)
    pairs = [
        (A, B),
        (bn.g1_neg(alpha1), beta2),
        (bn.g1_neg(vkx), gamma2),
        (bn.g1_neg(C), delta2),
    ]
    if bn.pairing_product_is_one(pairs):
        return PairingVerdict(ok=True)
    return PairingVerdict(ok=False, reason=REASON_PAIRING_FAILED)


__all__ = [
    "PairingVerdict",
    "REASON_PAIRING_FAILED",
    "REASON_OFF_CURVE",
    "REASON_SUBGROUP",
    "check_groth16",
]
