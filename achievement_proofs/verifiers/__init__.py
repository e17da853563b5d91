# achievement_proofs/verifiers/__init__.py
"""
Curve-level building blocks.

- `field`          → modulus constants and the decimal field-element validator
- `pairing_bn254`  → py_ecc BN254 wrapper (the only module importing py_ecc)
- `groth16_bn254`  → Groth16 pairing check over validated inputs

`field` is imported eagerly; the two py_ecc-backed modules are imported by the
engine (and by process-pool workers) when a pairing is actually needed.
"""

from __future__ import annotations

from .field import (
    BN254_BASE_MODULUS,
    BN254_SCALAR_MODULUS,
    field_modulus,
    is_valid_field_element,
    parse_field_element,
    string_to_field_element,
)

__all__ = [
    "BN254_BASE_MODULUS",
    "BN254_SCALAR_MODULUS",
    "field_modulus",
    "is_valid_field_element",
    "parse_field_element",
    "string_to_field_element",
]
