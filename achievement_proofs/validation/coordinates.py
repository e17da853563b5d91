"""Field-range check of every proof coordinate (RawProof -> Proof)."""

from __future__ import annotations

from typing import Union

from ..errors import Rejection, bad_field
from ..types import G1Coords, G1Point, G2Coords, G2Point, Proof, RawProof
from ..verifiers.field import is_valid_field_element, parse_field_element
from .structure import iter_coordinates


def validate_proof_coordinates(raw: RawProof) -> Union[Proof, Rejection]:
    """
    Every coordinate must be a canonical element of the curve's base field.

    The first offending coordinate is reported by path; the value itself is not
    echoed back.
    """
    for path, value in iter_coordinates(raw):
        if not is_valid_field_element(value, raw.curve, field="base"):
            return bad_field("proof coordinate is not a canonical field element", path=path)

    def fe(s: str) -> int:
        return parse_field_element(s, raw.curve, field="base")

    def g1(c: G1Coords) -> G1Point:
        return None if c is None else (fe(c[0]), fe(c[1]))

    def g2(c: G2Coords) -> G2Point:
        return None if c is None else ((fe(c[0][0]), fe(c[0][1])), (fe(c[1][0]), fe(c[1][1])))

    return Proof(pi_a=g1(raw.pi_a), pi_b=g2(raw.pi_b), pi_c=g1(raw.pi_c), protocol=raw.protocol, curve=raw.curve)


__all__ = ["validate_proof_coordinates"]
