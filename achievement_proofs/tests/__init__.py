"""
achievement_proofs.tests helpers

Lightweight utilities and environment defaults shared by the test modules.

Exports:
- TEST_ROOT
- env_flag(name, default=False) -> bool
- configure_test_logging() -> None
- thread_settings(**overrides) -> Settings  (thread pool, memory ledger)
- dummy_key(n_public) -> VerificationKey     (valid shape, arbitrary IC)
- sample_proof() -> dict                     (well-formed snarkjs proof JSON)
- stub_check(ok=True) -> counting pairing check

Environment toggles:
- ACHIEVEMENT_PROOFS_TEST_LOG=1  → enable INFO logging while tests run
"""

from __future__ import annotations

import logging
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import structlog

from achievement_proofs.config import Settings
from achievement_proofs.types import VerificationKey
from achievement_proofs.verifiers import pairing_bn254 as bn
from achievement_proofs.verifiers.groth16_bn254 import PairingVerdict

TEST_ROOT: Path = Path(__file__).resolve().parent


def env_flag(name: str, default: bool = False) -> bool:
    """
    Read an environment flag in a truthy/falsey way: "1", "true", "yes" → True.
    """
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in {"1", "true", "yes", "on"}


def configure_test_logging(level: int | None = None) -> None:
    """
    Configure basic logging for achievement_proofs.* when ACHIEVEMENT_PROOFS_TEST_LOG is set.
    """
    if level is None:
        level = logging.INFO
    if env_flag("ACHIEVEMENT_PROOFS_TEST_LOG", False):
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@contextmanager
def preserved_logging() -> Iterator[None]:
    """
    Undo `setup_logging` side effects: extra root handlers, root level and the
    structlog configuration. pytest's own capture handlers are left to pytest.
    """
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        yield
    finally:
        for h in list(root.handlers):
            if h not in handlers:
                root.removeHandler(h)
        for h in handlers:
            if h not in root.handlers and not type(h).__module__.startswith("_pytest"):
                root.addHandler(h)
        root.setLevel(level)
        structlog.reset_defaults()


def thread_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {"executor": "thread", "max_workers": 4, "ledger_url": "memory:"}
    values.update(overrides)
    return Settings(**values)


def _g1(k: int):
    return bn.g1_to_affine(bn.g1_mul(bn.g1_generator(), k))


def _g2(k: int):
    return bn.g2_to_affine(bn.g2_mul(bn.g2_generator(), k))


def dummy_key(n_public: int) -> VerificationKey:
    """On-curve key with ``n_public`` inputs; proofs never verify against it."""
    return VerificationKey(
        alpha1=_g1(2),
        beta2=_g2(3),
        gamma2=_g2(5),
        delta2=_g2(7),
        ic=tuple(_g1(11 + i) for i in range(n_public + 1)),
    )


def _g1_json(k: int):
    x, y = _g1(k)
    return [str(x), str(y), "1"]


def _g2_json(k: int):
    (x0, x1), (y0, y1) = _g2(k)
    return [[str(x0), str(x1)], [str(y0), str(y1)], ["1", "0"]]


def sample_proof(seed: int = 1) -> Dict[str, Any]:
    """Well-formed snarkjs proof with on-curve points (not a valid proof of anything)."""
    return {
        "pi_a": _g1_json(seed + 100),
        "pi_b": _g2_json(seed + 200),
        "pi_c": _g1_json(seed + 300),
        "protocol": "groth16",
        "curve": "bn128",
    }


class CountingCheck:
    """Pairing check stand-in that records how often it ran."""

    def __init__(self, ok: bool = True, reason: Optional[str] = None, delay: float = 0.0, exc: Optional[BaseException] = None) -> None:
        self.ok = ok
        self.reason = reason
        self.delay = delay
        self.exc = exc
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, proof, key, signals) -> PairingVerdict:
        with self._lock:
            self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return PairingVerdict(ok=self.ok, reason=None if self.ok else (self.reason or "pairing check failed"))


def stub_check(ok: bool = True, **kw: Any) -> CountingCheck:
    return CountingCheck(ok=ok, **kw)


configure_test_logging()

__all__ = [
    "TEST_ROOT",
    "env_flag",
    "configure_test_logging",
    "preserved_logging",
    "thread_settings",
    "dummy_key",
    "sample_proof",
    "CountingCheck",
    "stub_check",
]
