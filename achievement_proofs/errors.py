"""
achievement_proofs.errors
-------------------------

Outcome kinds, rejection values and the exception hierarchy.

Two families live here:

- ``Rejection`` values: returned (never raised) by the validation stages for
  bad *input*. They carry a stable ``ErrorKind`` code so the API layer can map
  each kind to a distinct user-facing message.
- ``AchievementProofError`` exceptions: raised for programmer/config errors and
  by the strict parse helpers (``parse_field_element``, key loaders, stores).

Codes are upper-snake ASCII identifiers, stable across releases.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Dict, Mapping, Optional


class ErrorKind(str, Enum):
    VERIFIED = "VERIFIED"
    INVALID_PROOF_STRUCTURE = "INVALID_PROOF_STRUCTURE"
    INVALID_FIELD_ELEMENT = "INVALID_FIELD_ELEMENT"
    VERIFICATION_KEY_NOT_FOUND = "VERIFICATION_KEY_NOT_FOUND"
    PUBLIC_SIGNAL_MISMATCH = "PUBLIC_SIGNAL_MISMATCH"
    DUPLICATE_PROOF = "DUPLICATE_PROOF"
    PROOF_INVALID = "PROOF_INVALID"
    INTERNAL_VERIFICATION_ERROR = "INTERNAL_VERIFICATION_ERROR"


# Log level per kind. Signal mismatches are possible cross-tenant or replay
# attempts; key misses and internal errors page operators.
SEVERITY: Mapping[ErrorKind, int] = {
    ErrorKind.VERIFIED: logging.INFO,
    ErrorKind.INVALID_PROOF_STRUCTURE: logging.INFO,
    ErrorKind.INVALID_FIELD_ELEMENT: logging.WARNING,
    ErrorKind.VERIFICATION_KEY_NOT_FOUND: logging.ERROR,
    ErrorKind.PUBLIC_SIGNAL_MISMATCH: logging.WARNING,
    ErrorKind.DUPLICATE_PROOF: logging.INFO,
    ErrorKind.PROOF_INVALID: logging.INFO,
    ErrorKind.INTERNAL_VERIFICATION_ERROR: logging.ERROR,
}

_TITLES: Mapping[ErrorKind, str] = {
    ErrorKind.VERIFIED: "Verified",
    ErrorKind.INVALID_PROOF_STRUCTURE: "Malformed Proof",
    ErrorKind.INVALID_FIELD_ELEMENT: "Invalid Field Element",
    ErrorKind.VERIFICATION_KEY_NOT_FOUND: "Verification Key Not Configured",
    ErrorKind.PUBLIC_SIGNAL_MISMATCH: "Proof Does Not Establish The Claimed Achievement",
    ErrorKind.DUPLICATE_PROOF: "Already Verified",
    ErrorKind.PROOF_INVALID: "Verification Failed",
    ErrorKind.INTERNAL_VERIFICATION_ERROR: "Internal Verification Error",
}


def title_for(kind: ErrorKind) -> str:
    return _TITLES.get(kind, kind.value)


def is_client_error(kind: ErrorKind) -> bool:
    """True for kinds caused by the submitted input rather than by this service."""
    return kind in (
        ErrorKind.INVALID_PROOF_STRUCTURE,
        ErrorKind.INVALID_FIELD_ELEMENT,
        ErrorKind.PUBLIC_SIGNAL_MISMATCH,
        ErrorKind.PROOF_INVALID,
    )


@dataclass(frozen=True)
class Rejection:
    """
    Tagged failure returned by a validation stage.

    ``details`` holds small, structured diagnostics (e.g. ``{"path": "pi_b[1][0]"}``)
    that are safe to show to the submitting client.
    """

    kind: ErrorKind
    message: str
    details: Mapping[str, Any] = field(default_factory=dict)

    @property
    def severity(self) -> int:
        return SEVERITY[self.kind]

    def to_problem(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "code": self.kind.value,
            "title": title_for(self.kind),
            "detail": self.message,
        }
        if self.details:
            body["details"] = dict(self.details)
        return body


def structural(message: str, **details: Any) -> Rejection:
    return Rejection(ErrorKind.INVALID_PROOF_STRUCTURE, message, details)


def bad_field(message: str, **details: Any) -> Rejection:
    return Rejection(ErrorKind.INVALID_FIELD_ELEMENT, message, details)


def signal_mismatch(message: str, **details: Any) -> Rejection:
    return Rejection(ErrorKind.PUBLIC_SIGNAL_MISMATCH, message, details)


# -----------------------------------------------------------------------------
# Exceptions
# -----------------------------------------------------------------------------


class AchievementProofError(Exception):
    """
    Base class for errors raised by this package.

    Attributes
    ----------
    code : str
        Stable, upper-snake identifier.
    details : dict | None
        Optional structured data.
    """

    code: str = "ACHIEVEMENT_PROOF_ERROR"

    def __init__(self, message: str = "achievement proof error", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            out["details"] = dict(self.details)
        return out

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class FieldElementError(AchievementProofError, ValueError):
    """A string is not a canonical decimal element of the requested field."""

    code = ErrorKind.INVALID_FIELD_ELEMENT.value


class KeyMaterialError(AchievementProofError, ValueError):
    """Verification key material is malformed."""

    code = "KEY_MATERIAL_ERROR"


class LedgerError(AchievementProofError):
    """Ledger store failure (bad URL, corrupt row, backend error)."""

    code = "LEDGER_ERROR"


class ConfigError(AchievementProofError):
    """Invalid runtime configuration."""

    code = "CONFIG_ERROR"


__all__ = [
    "ErrorKind",
    "SEVERITY",
    "title_for",
    "is_client_error",
    "Rejection",
    "structural",
    "bad_field",
    "signal_mismatch",
    "AchievementProofError",
    "FieldElementError",
    "KeyMaterialError",
    "LedgerError",
    "ConfigError",
]
