import copy
import json

import pytest

from achievement_proofs.errors import ConfigError, KeyMaterialError
from achievement_proofs.resolvers import (
    DirectoryKeyResolver,
    KeyResolver,
    StaticKeyResolver,
    StaticTenantContext,
    TenantContextProvider,
    load_snarkjs_vkey,
    resolver_from_settings,
    tenant_epoch_nonce,
)
from achievement_proofs.types import VerificationKey
from achievement_proofs.verifiers.field import BN254_BASE_MODULUS, string_to_field_element

from achievement_proofs.tests import thread_settings, toy_groth16


@pytest.fixture(scope="module")
def vkey_json():
    return toy_groth16.setup().vkey


def test_load_snarkjs_vkey(vkey_json):
    key = load_snarkjs_vkey(vkey_json)
    assert isinstance(key, VerificationKey)
    assert key.n_public == 1
    assert len(key.ic) == 2
    assert isinstance(key.beta2[0][1], int)


def test_load_accepts_short_aliases(vkey_json):
    vk = {
        "alpha1": vkey_json["vk_alpha_1"],
        "beta2": vkey_json["vk_beta_2"],
        "gamma2": vkey_json["vk_gamma_2"],
        "delta2": vkey_json["vk_delta_2"],
        "ic": vkey_json["IC"],
    }
    assert load_snarkjs_vkey(vk) == load_snarkjs_vkey(vkey_json)


@pytest.mark.parametrize(
    "mutate",
    [
        lambda vk: vk.__setitem__("protocol", "plonk"),
        lambda vk: vk.__setitem__("curve", "bls12381"),
        lambda vk: vk.__setitem__("nPublic", 3),
        lambda vk: vk.__setitem__("IC", []),
        lambda vk: vk.pop("vk_delta_2"),
        lambda vk: vk.__setitem__("vk_alpha_1", ["0", "1", "0"]),
        lambda vk: vk["vk_beta_2"][0].__setitem__(0, str(BN254_BASE_MODULUS)),
        lambda vk: vk["IC"][0].__setitem__(1, 17),
    ],
)
def test_load_rejects_bad_material(vkey_json, mutate):
    vk = copy.deepcopy(vkey_json)
    mutate(vk)
    with pytest.raises(KeyMaterialError):
        load_snarkjs_vkey(vk)


def test_load_rejects_non_object():
    with pytest.raises(KeyMaterialError):
        load_snarkjs_vkey(["not", "a", "key"])


def test_static_resolver(vkey_json):
    r = StaticKeyResolver()
    r.add("t", "a", vkey_json)
    assert isinstance(r, KeyResolver)
    assert r.resolve("t", "a").n_public == 1
    assert r.resolve("t", "b") is None
    assert r.resolve("u", "a") is None


def test_directory_resolver(tmp_path, vkey_json):
    (tmp_path / "tenant-1").mkdir()
    (tmp_path / "tenant-1" / "marathon.vkey.json").write_text(json.dumps(vkey_json), encoding="utf-8")
    r = DirectoryKeyResolver(tmp_path)
    assert r.resolve("tenant-1", "marathon") == load_snarkjs_vkey(vkey_json)
    assert r.resolve("tenant-1", "5k") is None
    assert r.resolve("tenant-2", "marathon") is None


@pytest.mark.parametrize("tenant,achievement", [("..", "x"), ("t", "../t/x"), (".hidden", "x"), ("t/a", "b"), ("", "x")])
def test_directory_resolver_refuses_unsafe_ids(tmp_path, tenant, achievement):
    r = DirectoryKeyResolver(tmp_path)
    assert r.path_for(tenant, achievement) is None
    assert r.resolve(tenant, achievement) is None


def test_directory_resolver_bad_json_is_key_material_error(tmp_path):
    (tmp_path / "t").mkdir()
    (tmp_path / "t" / "a.vkey.json").write_text("{nope", encoding="utf-8")
    with pytest.raises(KeyMaterialError):
        DirectoryKeyResolver(tmp_path).resolve("t", "a")


def test_key_curve_must_match_expected(tmp_path, vkey_json):
    with pytest.raises(KeyMaterialError):
        load_snarkjs_vkey(vkey_json, "bls12381")
    (tmp_path / "t").mkdir()
    (tmp_path / "t" / "a.vkey.json").write_text(json.dumps(vkey_json), encoding="utf-8")
    with pytest.raises(KeyMaterialError):
        DirectoryKeyResolver(tmp_path, curve="bls12381").resolve("t", "a")


def test_resolver_from_settings(tmp_path):
    with pytest.raises(ConfigError):
        resolver_from_settings(thread_settings(keys_dir=None))
    with pytest.raises(ConfigError):
        resolver_from_settings(thread_settings(keys_dir=tmp_path / "missing"))
    r = resolver_from_settings(thread_settings(keys_dir=tmp_path))
    assert isinstance(r, DirectoryKeyResolver) and r.root == tmp_path


def test_static_tenant_context():
    ctx = StaticTenantContext({"t": 7})
    assert isinstance(ctx, TenantContextProvider)
    b = ctx.binding_for("t", "marathon")
    assert b.achievement_commitment == string_to_field_element("marathon")
    assert b.tenant_epoch == tenant_epoch_nonce("t", 7)
    assert not b.is_empty()


def test_static_tenant_context_switches_and_extra():
    ctx = StaticTenantContext(bind_achievement=False, bind_tenant=False, extra={("t", "a"): {1: 5}})
    b = ctx.binding_for("t", "a")
    assert b.achievement_commitment is None and b.tenant_epoch is None
    assert b.extra == {1: 5}
    assert ctx.binding_for("t", "other").is_empty()
