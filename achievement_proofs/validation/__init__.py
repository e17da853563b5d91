"""
Staged, pure validation of an untrusted verification request.

Each stage returns either its typed output or a `Rejection`; none raise for bad
input and none touch shared state, so they are safe to run in parallel.

    validate_proof_structure(obj)          -> RawProof        | Rejection
    validate_proof_coordinates(raw)        -> Proof           | Rejection
    validate_public_signals(s, key, bind)  -> PublicSignalSet | Rejection
"""

from .coordinates import validate_proof_coordinates
from .signals import validate_public_signals
from .structure import EXPECTED_CURVE, EXPECTED_PROTOCOL, validate_proof_structure

__all__ = [
    "EXPECTED_CURVE",
    "EXPECTED_PROTOCOL",
    "validate_proof_structure",
    "validate_proof_coordinates",
    "validate_public_signals",
]
