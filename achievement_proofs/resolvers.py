"""
achievement_proofs.resolvers
============================

Contracts for the two collaborators the engine consults per request, plus
small reference implementations.

KeyResolver
-----------
    resolve(tenant_id, achievement_id) -> VerificationKey | None

Returns the *active* key for the pair. Caching and rotation are the resolver's
business; the engine never caches keys beyond one request. ``resolve`` may be
a plain function or a coroutine.

TenantContextProvider
---------------------
    binding_for(tenant_id, achievement_id) -> SignalBinding

Supplies the expected semantic public-signal values (achievement commitment,
tenant/epoch nonce). Also sync or async.

snarkjs key loading
-------------------
`load_snarkjs_vkey` parses a `verification_key.json` as written by
``snarkjs zkey export verificationkey``:

    {
      "protocol": "groth16", "curve": "bn128", "nPublic": 1,
      "vk_alpha_1": [x, y, "1"],
      "vk_beta_2":  [[x0, x1], [y0, y1], ["1", "0"]],
      "vk_gamma_2": ..., "vk_delta_2": ...,
      "IC": [[x, y, "1"], ...]
    }
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Awaitable, Dict, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

from .config import Settings, get_settings
from .errors import ConfigError, FieldElementError, KeyMaterialError
from .types import G1Point, G2Point, SignalBinding, VerificationKey
from .validation.structure import EXPECTED_CURVE, EXPECTED_PROTOCOL, ShapeError, g1_coords, g2_coords
from .verifiers.field import parse_field_element, string_to_field_element

__all__ = [
    "KeyResolver",
    "TenantContextProvider",
    "load_snarkjs_vkey",
    "StaticKeyResolver",
    "DirectoryKeyResolver",
    "resolver_from_settings",
    "StaticTenantContext",
    "tenant_epoch_nonce",
]


@runtime_checkable
class KeyResolver(Protocol):
    def resolve(
        self, tenant_id: str, achievement_id: str
    ) -> Union[Optional[VerificationKey], Awaitable[Optional[VerificationKey]]]: ...


@runtime_checkable
class TenantContextProvider(Protocol):
    def binding_for(
        self, tenant_id: str, achievement_id: str
    ) -> Union[SignalBinding, Awaitable[SignalBinding]]: ...


# -----------------------------------------------------------------------------
# snarkjs verification key loader
# -----------------------------------------------------------------------------


def _first(obj: Mapping[str, Any], *names: str) -> Any:
    for n in names:
        if n in obj:
            return obj[n]
    raise KeyMaterialError(f"verification key missing {names[0]!r}")


def _g1(v: Any, path: str, curve: str) -> G1Point:
    coords = g1_coords(v, path)
    if coords is None:
        return None
    return (
        parse_field_element(coords[0], curve, field="base"),
        parse_field_element(coords[1], curve, field="base"),
    )


def _g2(v: Any, path: str, curve: str) -> G2Point:
    coords = g2_coords(v, path)
    if coords is None:
        return None
    (x0, x1), (y0, y1) = coords
    fe = lambda s: parse_field_element(s, curve, field="base")  # noqa: E731
    return (fe(x0), fe(x1)), (fe(y0), fe(y1))


def load_snarkjs_vkey(vk_json: Mapping[str, Any], expected_curve: str = EXPECTED_CURVE) -> VerificationKey:
    """
    Parse a snarkjs-style verifying key JSON object into a VerificationKey.

    Raises KeyMaterialError on any shape, tag or field-range problem. Curve
    membership of key points is checked later, by the pairing verifier.
    """
    if not isinstance(vk_json, Mapping):
        raise KeyMaterialError("verification key must be a JSON object")
    protocol = vk_json.get("protocol", EXPECTED_PROTOCOL)
    curve = vk_json.get("curve", expected_curve)
    if protocol != EXPECTED_PROTOCOL:
        raise KeyMaterialError(f"unsupported key protocol {protocol!r}")
    if curve != expected_curve:
        raise KeyMaterialError(f"unsupported key curve {curve!r}")

    try:
        alpha1 = _g1(_first(vk_json, "vk_alpha_1", "alpha1"), "vk_alpha_1", curve)
        beta2 = _g2(_first(vk_json, "vk_beta_2", "beta2"), "vk_beta_2", curve)
        gamma2 = _g2(_first(vk_json, "vk_gamma_2", "gamma2"), "vk_gamma_2", curve)
        delta2 = _g2(_first(vk_json, "vk_delta_2", "delta2"), "vk_delta_2", curve)
        raw_ic = _first(vk_json, "IC", "ic")
        if not isinstance(raw_ic, (list, tuple)) or not raw_ic:
            raise KeyMaterialError("verification key IC must be a non-empty array")
        ic: Tuple[G1Point, ...] = tuple(_g1(p, f"IC[{i}]", curve) for i, p in enumerate(raw_ic))
    except ShapeError as e:
        raise KeyMaterialError(f"{e} at {e.path}", details={"path": e.path}) from e
    except FieldElementError as e:
        raise KeyMaterialError(f"verification key coordinate out of range: {e}") from e

    n_public = vk_json.get("nPublic")
    if n_public is not None and n_public != len(ic) - 1:
        raise KeyMaterialError(f"nPublic={n_public} disagrees with len(IC)={len(ic)}")
    if None in (alpha1, beta2, gamma2, delta2):
        raise KeyMaterialError("verification key has a point at infinity")

    return VerificationKey(
        alpha1=alpha1, beta2=beta2, gamma2=gamma2, delta2=delta2, ic=ic, protocol=protocol, curve=curve
    )


# -----------------------------------------------------------------------------
# Reference resolvers
# -----------------------------------------------------------------------------


class StaticKeyResolver:
    """In-memory (tenant_id, achievement_id) -> VerificationKey mapping."""

    def __init__(self, keys: Optional[Mapping[Tuple[str, str], VerificationKey]] = None) -> None:
        self._keys: Dict[Tuple[str, str], VerificationKey] = dict(keys or {})

    def add(self, tenant_id: str, achievement_id: str, key: Union[VerificationKey, Mapping[str, Any]]) -> None:
        if not isinstance(key, VerificationKey):
            key = load_snarkjs_vkey(key)
        self._keys[(tenant_id, achievement_id)] = key

    def resolve(self, tenant_id: str, achievement_id: str) -> Optional[VerificationKey]:
        return self._keys.get((tenant_id, achievement_id))


# ids become path components; keep them to a conservative charset
_SAFE_ID = re.compile(r"[A-Za-z0-9][A-Za-z0-9_.@-]{0,127}")


class DirectoryKeyResolver:
    """
    Read snarkjs keys from ``<root>/<tenant_id>/<achievement_id>.vkey.json``.

    Files are re-read on every call; put a caching resolver in front if needed.
    Ids outside ``[A-Za-z0-9_.@-]`` (or starting with a dot) resolve to None,
    so a request can never address a file outside ``root``.
    """

    SUFFIX = ".vkey.json"

    def __init__(self, root: Union[str, Path], curve: str = EXPECTED_CURVE) -> None:
        self.root = Path(root)
        self.curve = curve

    def path_for(self, tenant_id: str, achievement_id: str) -> Optional[Path]:
        if not (_SAFE_ID.fullmatch(tenant_id) and _SAFE_ID.fullmatch(achievement_id)):
            return None
        return self.root / tenant_id / f"{achievement_id}{self.SUFFIX}"

    def resolve(self, tenant_id: str, achievement_id: str) -> Optional[VerificationKey]:
        path = self.path_for(tenant_id, achievement_id)
        if path is None or not path.is_file():
            return None
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except json.JSONDecodeError as e:
            raise KeyMaterialError(f"verification key file is not valid JSON: {path.name}") from e
        return load_snarkjs_vkey(data, self.curve)


def resolver_from_settings(settings: Optional[Settings] = None) -> DirectoryKeyResolver:
    """Directory resolver rooted at ``settings.keys_dir``."""
    settings = settings or get_settings()
    if settings.keys_dir is None:
        raise ConfigError("keys_dir is not configured (set ACHIEVEMENT_PROOFS_KEYS_DIR)")
    if not settings.keys_dir.is_dir():
        raise ConfigError(f"keys_dir is not a directory: {settings.keys_dir}")
    return DirectoryKeyResolver(settings.keys_dir, settings.curve)


# -----------------------------------------------------------------------------
# Tenant context
# -----------------------------------------------------------------------------


def tenant_epoch_nonce(tenant_id: str, epoch: int) -> int:
    """Scalar-field nonce binding proofs to one tenant and epoch."""
    return string_to_field_element(f"{tenant_id}:{int(epoch)}")


class StaticTenantContext:
    """
    Binding provider backed by a tenant -> epoch table.

    - achievement commitment = string_to_field_element(achievement_id)
    - tenant/epoch signal    = tenant_epoch_nonce(tenant_id, epoch)

    ``bind_achievement`` / ``bind_tenant`` switch either check off for circuits
    that do not expose the corresponding signal.
    """

    def __init__(
        self,
        epochs: Optional[Mapping[str, int]] = None,
        *,
        bind_achievement: bool = True,
        bind_tenant: bool = True,
        extra: Optional[Mapping[Tuple[str, str], Mapping[int, int]]] = None,
    ) -> None:
        self._epochs: Dict[str, int] = dict(epochs or {})
        self.bind_achievement = bind_achievement
        self.bind_tenant = bind_tenant
        self._extra = {k: dict(v) for k, v in (extra or {}).items()}

    def set_epoch(self, tenant_id: str, epoch: int) -> None:
        self._epochs[tenant_id] = int(epoch)

    def binding_for(self, tenant_id: str, achievement_id: str) -> SignalBinding:
        commitment = string_to_field_element(achievement_id) if self.bind_achievement else None
        tenant_epoch = None
        if self.bind_tenant:
            tenant_epoch = tenant_epoch_nonce(tenant_id, self._epochs.get(tenant_id, 0))
        return SignalBinding(
            achievement_commitment=commitment,
            tenant_epoch=tenant_epoch,
            extra=self._extra.get((tenant_id, achievement_id), {}),
        )
