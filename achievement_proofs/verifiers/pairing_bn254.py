"""
achievement_proofs.verifiers.pairing_bn254
==========================================

Thin BN254 (altbn128) Ate pairing wrapper over `py_ecc.optimized_bn128`.

Everything curve-library specific lives in this module so the backend can be
swapped without touching the verifier pipeline. Callers exchange plain affine
integers; projective/Jacobian backend points never leave this module's API
except as opaque values passed back into it.

Public API
----------
- g1_from_affine(xy) / g2_from_affine(xy)   (affine ints -> backend point)
- g1_to_affine(P) / g2_to_affine(Q)          (backend point -> affine ints)
- is_on_curve_g1(P), is_on_curve_g2(Q), is_in_subgroup_g2(Q)
- g1_add, g1_mul, g1_neg, g2_mul, g1_generator(), g2_generator()
- pairing_product_is_one(pairs)  ->  bool

Notes
-----
- Point ordering follows the common convention e(P, Q) with P in G1, Q in G2.
  The underlying `py_ecc` pairing call expects (Q, P); this wrapper handles it.
- `pairing_product_is_one` runs one Miller loop per pair and a single final
  exponentiation over the product, which is ~4x cheaper than multiplying full
  pairings for a Groth16 check.
- G1 on BN254 has cofactor 1, so on-curve implies subgroup membership. G2 does
  not; `is_in_subgroup_g2` multiplies by the group order.
- Affine infinity is represented as ``None`` (snarkjs encodes it as [0, 1, 0]).
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Tuple

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    FQ12,
    G1 as _G1,
    G2 as _G2,
    add as _add,
    b as _B,
    b2 as _B2,
    curve_order as _R,
    field_modulus as _Q,
    final_exponentiate as _final_exponentiate,
    is_inf as _is_inf,
    is_on_curve as _is_on_curve,
    multiply as _multiply,
    neg as _neg,
    normalize as _normalize,
    pairing as _pairing,
)

BACKEND_NAME = "py_ecc.optimized_bn128"

# Opaque backend points (projective tuples)
G1Point = Any
G2Point = Any

AffineG1 = Optional[Tuple[int, int]]
AffineG2 = Optional[Tuple[Tuple[int, int], Tuple[int, int]]]


def curve_order() -> int:
    """Return the BN254 subgroup order r."""
    return int(_R)


def field_modulus() -> int:
    """Return the base field modulus q."""
    return int(_Q)


def g1_generator() -> G1Point:
    return _G1


def g2_generator() -> G2Point:
    return _G2


# -------------------------
# Conversions
# -------------------------


def g1_from_affine(xy: AffineG1) -> G1Point:
    if xy is None:
        return (FQ.one(), FQ.one(), FQ.zero())
    x, y = xy
    return (FQ(x), FQ(y), FQ.one())


def g2_from_affine(xy: AffineG2) -> G2Point:
    if xy is None:
        return (FQ2.one(), FQ2.one(), FQ2.zero())
    (x0, x1), (y0, y1) = xy
    return (FQ2([x0, x1]), FQ2([y0, y1]), FQ2.one())


def g1_to_affine(P: G1Point) -> AffineG1:
    if _is_inf(P):
        return None
    ax, ay = _normalize(P)
    return int(ax.n), int(ay.n)


def g2_to_affine(Q: G2Point) -> AffineG2:
    if _is_inf(Q):
        return None
    ax, ay = _normalize(Q)
    # optimized FQ2 keeps coeffs as plain ints, c0 + c1 * i
    return (int(ax.coeffs[0]), int(ax.coeffs[1])), (int(ay.coeffs[0]), int(ay.coeffs[1]))


# -------------------------
# Group checks & arithmetic
# -------------------------


def is_on_curve_g1(P: G1Point) -> bool:
    """Return True if P is on G1 or is the point at infinity."""
    return bool(_is_on_curve(P, _B))


def is_on_curve_g2(Q: G2Point) -> bool:
    """Return True if Q is on the twist curve or is the point at infinity."""
    return bool(_is_on_curve(Q, _B2))


def is_in_subgroup_g2(Q: G2Point) -> bool:
    """On-curve and in the order-r subgroup (r·Q == O)."""
    return is_on_curve_g2(Q) and _is_inf(_multiply(Q, curve_order()))


def is_infinity(P: Any) -> bool:
    return bool(_is_inf(P))


def g1_add(P: G1Point, Q: G1Point) -> G1Point:
    return _add(P, Q)


def g1_mul(P: G1Point, k: int) -> G1Point:
    return _multiply(P, k % curve_order())


def g1_neg(P: G1Point) -> G1Point:
    return _neg(P)


def g2_mul(Q: G2Point, k: int) -> G2Point:
    return _multiply(Q, k % curve_order())


# -------------------------
# Pairing
# -------------------------


def miller_loop(P: G1Point, Q: G2Point) -> FQ12:
    """
    Miller loop of e(P, Q) without the final exponentiation.

    Raises ValueError (from py_ecc) if either point is off its curve.
    """
    # py_ecc pairing expects (Q, P)
    return _pairing(Q, P, final_exponentiate=False)


def pairing_product_is_one(pairs: Iterable[Tuple[G1Point, G2Point]]) -> bool:
    """
    Return True iff  prod_i e(P_i, Q_i) == 1  in GT.

    Common use: SNARK verification equations expressed as pairing products.
    """
    acc = FQ12.one()
    for P, Q in pairs:
        acc = acc * miller_loop(P, Q)
    return _final_exponentiate(acc) == FQ12.one()


__all__ = [
    "BACKEND_NAME",
    "AffineG1",
    "AffineG2",
    "curve_order",
    "field_modulus",
    "g1_generator",
    "g2_generator",
    "g1_from_affine",
    "g2_from_affine",
    "g1_to_affine",
    "g2_to_affine",
    "is_on_curve_g1",
    "is_on_curve_g2",
    "is_in_subgroup_g2",
    "is_infinity",
    "g1_add",
    "g1_mul",
    "g1_neg",
    "g2_mul",
    "miller_loop",
    "pairing_product_is_one",
]
