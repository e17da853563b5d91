"""
Command line tools for achievement proofs.

Commands:
  - verify       : verify a snarkjs proof against a verification key
  - fingerprint  : print the canonical proof hash of a proof + public signals
  - check-field  : check a decimal string is a canonical field element
  - commitment   : hash text into the scalar field (achievement commitments)

Usage:
  python -m achievement_proofs.cli <command> [options]
  achievement-proofs <command> [options]
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import msgspec
import typer

from .config import get_settings
from .engine import VerificationEngine
from .errors import ConfigError, KeyMaterialError, Rejection, bad_field
from .fingerprint import compute_proof_hash
from .logging import setup_logging
from .resolvers import KeyResolver, StaticKeyResolver, load_snarkjs_vkey, resolver_from_settings
from .types import SignalBinding, canonical_json_bytes
from .validation import validate_proof_coordinates, validate_proof_structure
from .verifiers.field import is_valid_field_element, parse_field_element, string_to_field_element

app = typer.Typer(add_completion=False, help="Achievement proofs - Groth16/BN254 verification tools")


class _FixedContext:
    """Same binding for every request."""

    def __init__(self, binding: SignalBinding) -> None:
        self.binding = binding

    def binding_for(self, tenant_id: str, achievement_id: str) -> SignalBinding:
        return self.binding


def _read_json(path: Path) -> Any:
    try:
        return msgspec.json.decode(path.read_bytes())
    except (OSError, msgspec.DecodeError) as e:
        typer.echo(f"cannot read {path}: {e}", err=True)
        raise typer.Exit(code=2)


def _echo_json(obj: Any) -> None:
    typer.echo(canonical_json_bytes(obj).decode("utf-8"))


def _fail(rejection: Rejection) -> None:
    _echo_json(rejection.to_problem())
    raise typer.Exit(code=1)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override ACHIEVEMENT_PROOFS_LOG_LEVEL"),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="json | console"),
):
    """
    Shared options for all subcommands.
    """
    settings = get_settings()
    setup_logging(level=(log_level or settings.log_level).upper(), log_format=log_format or settings.log_format)


@app.command("verify")
def verify(
    tenant: str = typer.Option(..., "--tenant", help="Tenant id"),
    achievement: str = typer.Option(..., "--achievement", help="Achievement type id"),
    proof: Path = typer.Option(..., "--proof", help="snarkjs proof.json"),
    public: Path = typer.Option(..., "--public", help="snarkjs public.json"),
    vkey: Optional[Path] = typer.Option(
        None, "--vkey", help="snarkjs verification_key.json (default: look up under ACHIEVEMENT_PROOFS_KEYS_DIR)"
    ),
    epoch_nonce: Optional[str] = typer.Option(None, "--epoch-nonce", help="Expected last public signal"),
    bind_achievement: bool = typer.Option(
        False, "--bind-achievement/--no-bind-achievement", help="Require signals[0] == commitment(achievement)"
    ),
    ledger: Optional[str] = typer.Option(None, "--ledger", help="Ledger URL (default from settings)"),
):
    """
    Verify one proof. Prints the outcome as JSON; exit code 0 only when VERIFIED.
    """
    settings = get_settings().model_copy(update={"executor": "thread", "max_workers": 1})
    if ledger is not None:
        settings = settings.model_copy(update={"ledger_url": ledger})

    resolver: KeyResolver
    try:
        if vkey is None:
            resolver = resolver_from_settings(settings)
        else:
            key = load_snarkjs_vkey(_read_json(vkey), settings.curve)
            resolver = StaticKeyResolver({(tenant, achievement): key})
    except (KeyMaterialError, ConfigError) as e:
        typer.echo(f"cannot load verification key: {e.message}", err=True)
        raise typer.Exit(code=2)

    tenant_epoch = None
    if epoch_nonce is not None:
        if not is_valid_field_element(epoch_nonce):
            raise typer.BadParameter("must be a canonical scalar field element", param_hint="--epoch-nonce")
        tenant_epoch = parse_field_element(epoch_nonce)
    binding = SignalBinding(
        achievement_commitment=string_to_field_element(achievement) if bind_achievement else None,
        tenant_epoch=tenant_epoch,
    )

    proof_obj, public_obj = _read_json(proof), _read_json(public)

    async def _run():
        engine = VerificationEngine(resolver, _FixedContext(binding), settings=settings)
        try:
            return await engine.verify_achievement_proof(tenant, achievement, proof_obj, public_obj)
        finally:
            await engine.aclose()

    outcome = asyncio.run(_run())
    _echo_json(outcome.to_dict())
    raise typer.Exit(code=0 if outcome.ok else 1)


@app.command("fingerprint")
def fingerprint(
    proof: Path = typer.Option(..., "--proof", help="snarkjs proof.json"),
    public: Path = typer.Option(..., "--public", help="snarkjs public.json"),
):
    """
    Print the canonical proof hash (hex SHA-256).
    """
    raw = validate_proof_structure(_read_json(proof), get_settings().curve)
    if isinstance(raw, Rejection):
        _fail(raw)
    parsed = validate_proof_coordinates(raw)
    if isinstance(parsed, Rejection):
        _fail(parsed)

    signals = _read_json(public)
    if not isinstance(signals, list):
        _fail(bad_field("public signals must be an array"))
    for i, s in enumerate(signals):
        if not is_valid_field_element(s):
            _fail(bad_field("public signal is not a canonical field element", index=i))
    typer.echo(compute_proof_hash(parsed, tuple(parse_field_element(s) for s in signals)))


@app.command("check-field")
def check_field(
    value: str = typer.Argument(..., help="Decimal string"),
    base: bool = typer.Option(False, "--base", help="Check against the base field instead of the scalar field"),
):
    """
    Print whether VALUE is a canonical field element (exit code 1 if not).
    """
    ok = is_valid_field_element(value, field="base" if base else "scalar")
    typer.echo("valid" if ok else "invalid")
    raise typer.Exit(code=0 if ok else 1)


@app.command("commitment")
def commitment(text: str = typer.Argument(..., help="Text to hash, e.g. an achievement id")):
    """
    Print SHA-256(text) mod r as a decimal string.
    """
    typer.echo(str(string_to_field_element(text)))


if __name__ == "__main__":
    app()
