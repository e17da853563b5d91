"""
Public signal validation against a resolved verification key.

Order of checks
---------------
1. container type and arity: ``len(signals) == len(key.ic) - 1`` exactly.
   Arity is checked before any element is looked at; signals are never
   truncated or padded.
2. every element is a canonical scalar-field element of the key's curve.
3. semantic binding (optional, per request):
     signals[0]   == achievement-type commitment of the claimed achievement
     signals[-1]  == tenant/epoch nonce of the submitting tenant
     signals[i]   == extra[i] for any other bound position

A failed binding is PUBLIC_SIGNAL_MISMATCH with ``suspicious=True`` in the
details: it means a proof made for another tenant or another achievement was
submitted here.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from ..errors import Rejection, bad_field, signal_mismatch
from ..types import PublicSignalSet, SignalBinding, VerificationKey
from ..verifiers.field import is_valid_field_element, parse_field_element


def _check_binding(values: PublicSignalSet, binding: SignalBinding) -> Optional[Rejection]:
    n = len(values)
    if binding.achievement_commitment is not None:
        if n == 0 or values[0] != binding.achievement_commitment:
            return signal_mismatch(
                "achievement commitment does not match the claimed achievement",
                index=0,
                field="achievement_commitment",
                suspicious=True,
            )
    if binding.tenant_epoch is not None:
        if n == 0 or values[-1] != binding.tenant_epoch:
            return signal_mismatch(
                "tenant/epoch signal does not match the submitting tenant",
                index=n - 1,
                field="tenant_epoch",
                suspicious=True,
            )
    for index in sorted(binding.extra):
        expected = binding.extra[index]
        if not -n <= index < n or values[index] != expected:
            return signal_mismatch(
                f"public signal {index} does not match the expected value",
                index=index,
                field="extra",
                suspicious=True,
            )
    return None


def validate_public_signals(
    signals: Any,
    key: VerificationKey,
    binding: Optional[SignalBinding] = None,
) -> Union[PublicSignalSet, Rejection]:
    """Return the canonical signal tuple, or a Rejection."""
    if not isinstance(signals, (list, tuple)):
        return signal_mismatch("public signals must be an array", expected=key.n_public)

    if len(signals) != key.n_public:
        return signal_mismatch(
            "public signal count does not match the verification key",
            expected=key.n_public,
            got=len(signals),
        )

    for i, s in enumerate(signals):
        if not is_valid_field_element(s, key.curve, field="scalar"):
            return bad_field("public signal is not a canonical field element", index=i)

    values: PublicSignalSet = tuple(parse_field_element(s, key.curve) for s in signals)

    if binding is not None:
        mismatch = _check_binding(values, binding)
        if mismatch is not None:
            return mismatch
    return values


__all__ = ["validate_public_signals"]
