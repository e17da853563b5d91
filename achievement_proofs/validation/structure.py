"""
Proof structure validation (snarkjs Groth16 JSON).

Accepted shapes
---------------
    {
      "protocol": "groth16",
      "curve": "bn128",
      "pi_a": [ax, ay] | [ax, ay, "1"],
      "pi_b": [[bx0, bx1], [by0, by1]] | [[bx0, bx1], [by0, by1], ["1", "0"]],
      "pi_c": [cx, cy] | [cx, cy, "1"]
    }

camelCase aliases (``piA``/``piB``/``piC``) are accepted for the point fields.
The snarkjs projective infinity forms ``["0", "1", "0"]`` (G1) and
``[["0","0"], ["1","0"], ["0","0"]]`` (G2) map to ``None``.

Every leaf must be a ``str``; digit/range checks are the field stage's job, so
structural and algebraic failures stay distinguishable. Nothing is coerced.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from ..errors import Rejection, structural
from ..types import G1Coords, G2Coords, RawProof

EXPECTED_PROTOCOL = "groth16"
EXPECTED_CURVE = "bn128"

_G1_INFINITY = ("0", "1", "0")
_G2_INFINITY = (("0", "0"), ("1", "0"), ("0", "0"))
_G2_ONE = ("1", "0")

_ALIASES = {
    "pi_a": ("pi_a", "piA"),
    "pi_b": ("pi_b", "piB"),
    "pi_c": ("pi_c", "piC"),
}


class ShapeError(ValueError):
    """Raised by the shape helpers; carries a JSON-ish path."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


def _is_seq(v: Any) -> bool:
    # str is a Sequence too; it is never a valid container here
    return isinstance(v, (list, tuple))


def _str_pair(v: Any, path: str) -> Tuple[str, str]:
    if not _is_seq(v) or len(v) != 2:
        raise ShapeError("expected a pair of decimal strings", path)
    for i, x in enumerate(v):
        if not isinstance(x, str):
            raise ShapeError(f"expected a decimal string, got {type(x).__name__}", f"{path}[{i}]")
    return v[0], v[1]


def g1_coords(v: Any, path: str) -> G1Coords:
    """Check a G1 point shape; return affine string coords or None for infinity."""
    if not _is_seq(v) or len(v) not in (2, 3):
        raise ShapeError("G1 point must have 2 or 3 coordinates", path)
    for i, x in enumerate(v):
        if not isinstance(x, str):
            raise ShapeError(f"expected a decimal string, got {type(x).__name__}", f"{path}[{i}]")
    if len(v) == 3:
        if tuple(v) == _G1_INFINITY:
            return None
        if v[2] != "1":
            raise ShapeError('projective G1 point must have z == "1"', f"{path}[2]")
    return v[0], v[1]


def g2_coords(v: Any, path: str) -> G2Coords:
    """Check a G2 point shape; return affine string coords or None for infinity."""
    if not _is_seq(v) or len(v) not in (2, 3):
        raise ShapeError("G2 point must have 2 or 3 coordinate pairs", path)
    pairs = tuple(_str_pair(p, f"{path}[{i}]") for i, p in enumerate(v))
    if len(pairs) == 3:
        if pairs == _G2_INFINITY:
            return None
        if pairs[2] != _G2_ONE:
            raise ShapeError('projective G2 point must have z == ["1", "0"]', f"{path}[2]")
    return pairs[0], pairs[1]


def _field(obj: Mapping[str, Any], name: str) -> Tuple[Optional[str], Any]:
    found = [(k, obj[k]) for k in _ALIASES[name] if k in obj]
    if not found:
        return None, None
    if len(found) > 1:
        raise ShapeError(f"both {found[0][0]!r} and {found[1][0]!r} present", name)
    return found[0]


def validate_proof_structure(obj: Any, curve: str = EXPECTED_CURVE) -> Union[RawProof, Rejection]:
    """
    Check tags and shapes of an untrusted proof object, in this order:
    protocol, curve, pi_a, pi_b, pi_c. The proof must declare ``curve``.

    Returns a `RawProof` or a `Rejection` of kind INVALID_PROOF_STRUCTURE.
    """
    if not isinstance(obj, Mapping):
        return structural("proof must be a JSON object", path="$")

    protocol = obj.get("protocol")
    if protocol != EXPECTED_PROTOCOL:
        return structural(f"unsupported protocol, expected {EXPECTED_PROTOCOL!r}", path="protocol")
    if obj.get("curve") != curve:
        return structural(f"unsupported curve, expected {curve!r}", path="curve")

    try:
        key_a, raw_a = _field(obj, "pi_a")
        if key_a is None:
            return structural("missing pi_a", path="pi_a")
        a = g1_coords(raw_a, key_a)

        key_b, raw_b = _field(obj, "pi_b")
        if key_b is None:
            return structural("missing pi_b", path="pi_b")
        b = g2_coords(raw_b, key_b)

        key_c, raw_c = _field(obj, "pi_c")
        if key_c is None:
            return structural("missing pi_c", path="pi_c")
        c = g1_coords(raw_c, key_c)
    except ShapeError as e:
        return structural(str(e), path=e.path)

    return RawProof(pi_a=a, pi_b=b, pi_c=c, protocol=EXPECTED_PROTOCOL, curve=curve)


def iter_coordinates(raw: RawProof) -> Sequence[Tuple[str, str]]:
    """(path, value) for every submitted coordinate, in fingerprint order."""
    out = []
    if raw.pi_a is not None:
        out += [("pi_a[0]", raw.pi_a[0]), ("pi_a[1]", raw.pi_a[1])]
    if raw.pi_b is not None:
        for i, pair in enumerate(raw.pi_b):
            out += [(f"pi_b[{i}][0]", pair[0]), (f"pi_b[{i}][1]", pair[1])]
    if raw.pi_c is not None:
        out += [("pi_c[0]", raw.pi_c[0]), ("pi_c[1]", raw.pi_c[1])]
    return out


__all__ = [
    "EXPECTED_PROTOCOL",
    "EXPECTED_CURVE",
    "ShapeError",
    "g1_coords",
    "g2_coords",
    "validate_proof_structure",
    "iter_coordinates",
]
