"""
achievement_proofs.engine
=========================

`VerificationEngine` runs one request through the pipeline:

    structure -> coordinates -> key -> signals -> fingerprint -> ledger/pairing

Validation stages are pure and return `Rejection` values; the first rejection
short-circuits and nothing is written to the ledger. Once the request is
well-formed, the ledger's single-flight ``get_or_create`` either returns the
stored verdict for ``(tenant_id, proof_hash)`` or runs the pairing check
exactly once and commits its record.

The pairing check is CPU-bound and runs in a bounded executor (process pool by
default, see `Settings.executor`) via ``loop.run_in_executor``. Exceptions from
the check never escape: they become an ``INTERNAL_VERIFICATION_ERROR`` record
and an error log with traceback.

Example
-------
    engine = VerificationEngine(StaticKeyResolver(...), StaticTenantContext(...))
    outcome = await engine.verify_achievement_proof("t1", "a1", proof, signals)
    if outcome.ok: ...
"""

from __future__ import annotations

import asyncio
import inspect
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

import msgspec

from .config import Settings, get_settings
from .errors import ErrorKind, KeyMaterialError, Rejection, is_client_error
from .fingerprint import compute_proof_hash, short_hash
from .ledger import LedgerStore, ProofLedger, open_ledger_store
from .logging import bind_request_context, clear_request_context, get_logger
from .resolvers import KeyResolver, TenantContextProvider
from .types import Proof, ProofRecord, PublicSignalSet, SignalBinding, VerificationKey, VerificationOutcome, VerificationRequest
from .validation import validate_proof_coordinates, validate_proof_structure, validate_public_signals
from .verifiers.groth16_bn254 import REASON_PAIRING_FAILED, PairingVerdict, check_groth16

log = get_logger(__name__)

PairingCheck = Callable[[Proof, VerificationKey, PublicSignalSet], PairingVerdict]

_CONTEXT_KEYS = ("tenant_id", "achievement_id", "proof_hash")


def make_executor(settings: Settings) -> Executor:
    """Worker pool for pairing checks, sized by ``settings.max_workers``."""
    if settings.executor == "thread":
        return ThreadPoolExecutor(max_workers=settings.max_workers, thread_name_prefix="pairing")
    return ProcessPoolExecutor(max_workers=settings.max_workers)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class VerificationEngine:
    def __init__(
        self,
        resolver: KeyResolver,
        context: Optional[TenantContextProvider] = None,
        ledger: Union[ProofLedger, LedgerStore, None] = None,
        *,
        settings: Optional[Settings] = None,
        executor: Optional[Executor] = None,
        pairing_check: PairingCheck = check_groth16,
    ) -> None:
        self.settings = settings or get_settings()
        self.resolver = resolver
        self.context = context
        self._owns_ledger = ledger is None
        if ledger is None:
            ledger = open_ledger_store(self.settings.ledger_url)
        self.ledger = ledger if isinstance(ledger, ProofLedger) else ProofLedger(ledger)
        self._executor = executor
        self._owns_executor = executor is None
        self._pairing_check = pairing_check

    # -- lifecycle -------------------------------------------------------

    @property
    def executor(self) -> Executor:
        if self._executor is None:
            self._executor = make_executor(self.settings)
        return self._executor

    def close(self) -> None:
        """Blocking shutdown; from a coroutine use `aclose`."""
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        if self._owns_ledger:
            self.ledger.close()

    async def __aenter__(self) -> "VerificationEngine":
        return self

    async def aclose(self) -> None:
        """
        Let in-flight verifications commit, then shut the pool and any owned
        ledger down without blocking the event loop.
        """
        await self.ledger.drain()
        await asyncio.to_thread(self.close)

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    # -- public API ------------------------------------------------------

    async def verify_achievement_proof(
        self,
        tenant_id: str,
        achievement_id: str,
        proof: Any,
        public_signals: Any,
    ) -> VerificationOutcome:
        """
        Verify one proof for (tenant_id, achievement_id).

        Never raises for bad input; every failure is reported through the
        returned outcome's ``kind``.
        """
        bind_request_context(tenant_id=tenant_id, achievement_id=achievement_id)
        try:
            return await self._verify(tenant_id, achievement_id, proof, public_signals)
        finally:
            clear_request_context(*_CONTEXT_KEYS)

    async def verify_many(
        self, requests: Iterable[Union[VerificationRequest, Mapping[str, Any]]]
    ) -> List[VerificationOutcome]:
        """Verify independent requests concurrently; outcomes keep input order."""
        reqs = [r if isinstance(r, VerificationRequest) else msgspec.convert(r, VerificationRequest) for r in requests]
        return list(
            await asyncio.gather(
                *(self.verify_achievement_proof(r.tenant_id, r.achievement_id, r.proof, r.public_signals) for r in reqs)
            )
        )

    # -- pipeline --------------------------------------------------------

    async def _verify(
        self, tenant_id: str, achievement_id: str, proof: Any, public_signals: Any
    ) -> VerificationOutcome:
        raw = validate_proof_structure(proof, self.settings.curve)
        if isinstance(raw, Rejection):
            return self._reject(raw)

        parsed = validate_proof_coordinates(raw)
        if isinstance(parsed, Rejection):
            return self._reject(parsed)

        key = await self._resolve_key(tenant_id, achievement_id)
        if isinstance(key, Rejection):
            return self._reject(key)

        binding = await self._binding(tenant_id, achievement_id)
        signals = validate_public_signals(public_signals, key, binding)
        if isinstance(signals, Rejection):
            return self._reject(signals)

        proof_hash = compute_proof_hash(parsed, signals)
        bind_request_context(proof_hash=short_hash(proof_hash))

        producer = partial(self._run_pairing, tenant_id, achievement_id, proof_hash, parsed, key, signals)
        pending = self.ledger.get_or_create(tenant_id, proof_hash, producer)
        timeout = self.settings.verify_timeout_s
        try:
            if timeout is None:
                record, created = await pending
            else:
                record, created = await asyncio.wait_for(pending, timeout)
        except asyncio.TimeoutError:
            log.error("pairing_internal_error", reason="timeout", timeout_s=timeout)
            return VerificationOutcome(
                kind=ErrorKind.INTERNAL_VERIFICATION_ERROR.value,
                reason="verification timed out",
                proof_hash=proof_hash,
                details={"timeout_s": timeout},
            )

        outcome = VerificationOutcome.from_record(record, duplicate=not created)
        if outcome.duplicate:
            log.info("proof_duplicate", result=record.result)
        elif outcome.ok:
            log.info("proof_verified")
        elif is_client_error(record.verdict_kind):
            log.info("proof_rejected", kind=outcome.kind, reason=record.reason)
        return outcome

    async def _resolve_key(self, tenant_id: str, achievement_id: str) -> Union[VerificationKey, Rejection]:
        try:
            key = await _maybe_await(self.resolver.resolve(tenant_id, achievement_id))
        except KeyMaterialError as e:
            return Rejection(
                ErrorKind.VERIFICATION_KEY_NOT_FOUND,
                "verification key is misconfigured",
                {"cause": e.message},
            )
        if key is None:
            return Rejection(ErrorKind.VERIFICATION_KEY_NOT_FOUND, "no verification key for this achievement")
        if key.curve != self.settings.curve:
            return Rejection(
                ErrorKind.VERIFICATION_KEY_NOT_FOUND,
                "verification key is misconfigured",
                {"cause": f"key curve {key.curve!r} does not match {self.settings.curve!r}"},
            )
        return key

    async def _binding(self, tenant_id: str, achievement_id: str) -> Optional[SignalBinding]:
        if self.context is None:
            return None
        return await _maybe_await(self.context.binding_for(tenant_id, achievement_id))

    async def _run_pairing(
        self,
        tenant_id: str,
        achievement_id: str,
        proof_hash: str,
        proof: Proof,
        key: VerificationKey,
        signals: PublicSignalSet,
    ) -> ProofRecord:
        loop = asyncio.get_running_loop()
        try:
            verdict = await loop.run_in_executor(self.executor, self._pairing_check, proof, key, signals)
        except Exception as e:
            log.error("pairing_internal_error", error=type(e).__name__, exc_info=True)
            return ProofRecord.rejected(
                tenant_id,
                proof_hash,
                achievement_id,
                reason=f"internal verification error: {type(e).__name__}",
                kind=ErrorKind.INTERNAL_VERIFICATION_ERROR,
            )
        if verdict.ok:
            return ProofRecord.accepted(tenant_id, proof_hash, achievement_id)
        return ProofRecord.rejected(tenant_id, proof_hash, achievement_id, reason=verdict.reason or REASON_PAIRING_FAILED)

    def _reject(self, rejection: Rejection) -> VerificationOutcome:
        if not is_client_error(rejection.kind):
            event = "verification_key_missing"
        elif rejection.details.get("suspicious"):
            event = "proof_suspicious"
        else:
            event = "proof_rejected"
        log.log(rejection.severity, event, kind=rejection.kind.value, reason=rejection.message, **rejection.details)
        return VerificationOutcome.from_rejection(rejection)


def verify_achievement_proof(
    tenant_id: str,
    achievement_id: str,
    proof: Any,
    public_signals: Any,
    *,
    resolver: KeyResolver,
    context: Optional[TenantContextProvider] = None,
    ledger: Union[ProofLedger, LedgerStore, None] = None,
    settings: Optional[Settings] = None,
) -> VerificationOutcome:
    """
    Blocking one-shot verification for non-async callers.

    Builds a short-lived engine; pass a persistent ``ledger`` for duplicate
    detection to carry across calls.
    """

    async def _run() -> VerificationOutcome:
        engine = VerificationEngine(resolver, context, ledger, settings=settings)
        try:
            return await engine.verify_achievement_proof(tenant_id, achievement_id, proof, public_signals)
        finally:
            await engine.aclose()

    return asyncio.run(_run())


__all__ = ["PairingCheck", "VerificationEngine", "make_executor", "verify_achievement_proof"]
