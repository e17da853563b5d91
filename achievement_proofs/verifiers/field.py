# SPDX-License-Identifier: Apache-2.0
"""
BN254 (a.k.a. alt_bn128 / "bn128") field helpers for the verifier pipeline.

This is the single chokepoint that every proof coordinate and every public
signal passes through before it reaches curve arithmetic. It follows the
snarkjs wire format (decimal strings) strictly:

- ASCII digits only: no sign, whitespace, hex prefix, exponent or underscores.
- Leading zeros are allowed ("0009" == 9).
- The value must be strictly below the field modulus. Out-of-range values are
  rejected here, never silently reduced downstream.

Two moduli are relevant on BN254:

    r (scalar field, public signals)
      = 21888242871839275222246405745257275088548364400416034343698204186575808495617
    q (base field, point coordinates)
      = 21888242871839275222246405745257275088696311157297823662689037894645226208583

`field="scalar"` is the default, so ``is_valid_field_element(s)`` answers the
question "is s a valid public signal".
"""

from __future__ import annotations

import hashlib
import re
from typing import Dict, Literal, Tuple

from ..errors import FieldElementError

FieldKind = Literal["scalar", "base"]

DEFAULT_CURVE = "bn128"

BN254_SCALAR_MODULUS: int = 21888242871839275222246405745257275088548364400416034343698204186575808495617
BN254_BASE_MODULUS: int = 21888242871839275222246405745257275088696311157297823662689037894645226208583
FE_BYTE_LEN = 32

# curve id -> (scalar modulus, base modulus)
_MODULI: Dict[str, Tuple[int, int]] = {
    "bn128": (BN254_SCALAR_MODULUS, BN254_BASE_MODULUS),
}

# str.isdigit() accepts non-ASCII digits; the regex does not.
_DECIMAL_RE = re.compile(r"[0-9]+")


def supported_curves() -> Tuple[str, ...]:
    return tuple(sorted(_MODULI))


def field_modulus(curve: str = DEFAULT_CURVE, field: FieldKind = "scalar") -> int:
    """Return the modulus of the requested field for ``curve``."""
    try:
        scalar, base = _MODULI[curve]
    except KeyError:
        raise FieldElementError(f"unsupported curve {curve!r}", details={"curve": curve}) from None
    if field == "scalar":
        return scalar
    if field == "base":
        return base
    raise FieldElementError(f"unknown field kind {field!r}")


def is_valid_field_element(s: object, curve: str = DEFAULT_CURVE, *, field: FieldKind = "scalar") -> bool:
    """
    True iff ``s`` is a base-10 digit string whose value is in ``[0, modulus)``.

    Never raises: non-strings, unknown curves and empty strings are simply invalid.
    """
    if not isinstance(s, str) or _DECIMAL_RE.fullmatch(s) is None:
        return False
    try:
        modulus = field_modulus(curve, field)
    except FieldElementError:
        return False
    digits = s.lstrip("0") or "0"
    # int() refuses very long strings (sys.int_info.str_digits_check_threshold)
    if len(digits) > len(str(modulus)):
        return False
    return int(digits) < modulus


def parse_field_element(s: object, curve: str = DEFAULT_CURVE, *, field: FieldKind = "scalar") -> int:
    """
    Strict parse: return the integer value of ``s`` or raise FieldElementError.

    The returned integer is already canonical (in range), so callers never need
    to reduce it.
    """
    if not is_valid_field_element(s, curve, field=field):
        shown = s if isinstance(s, str) and len(s) <= 96 else f"<{type(s).__name__}>"
        raise FieldElementError(
            f"not a canonical {field} field element for {curve}",
            details={"value": shown, "curve": curve, "field": field},
        )
    return int(s.lstrip("0") or "0")  # type: ignore[union-attr]


def to_fixed_bytes(n: int) -> bytes:
    """32-byte big-endian encoding of a canonical field element."""
    return n.to_bytes(FE_BYTE_LEN, "big")


def string_to_field_element(text: str, curve: str = DEFAULT_CURVE) -> int:
    """
    Map arbitrary UTF-8 text to a scalar field element: sha256(text) mod r.

    Used by issuers to commit achievement codes and credential ids into public
    signals; clients computing the same commitment must use the same mapping.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return int.from_bytes(digest, "big") % field_modulus(curve, "scalar")


__all__ = [
    "FieldKind",
    "DEFAULT_CURVE",
    "BN254_SCALAR_MODULUS",
    "BN254_BASE_MODULUS",
    "FE_BYTE_LEN",
    "supported_curves",
    "field_modulus",
    "is_valid_field_element",
    "parse_field_element",
    "to_fixed_bytes",
    "string_to_field_element",
]
