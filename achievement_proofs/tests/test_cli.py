import json

import pytest
from typer.testing import CliRunner

from achievement_proofs.cli import app
from achievement_proofs.config import get_settings
from achievement_proofs.verifiers.field import BN254_SCALAR_MODULUS, string_to_field_element

from achievement_proofs.tests import preserved_logging, sample_proof, toy_groth16

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_logging():
    with preserved_logging():
        yield


def _write(tmp_path, name, obj):
    p = tmp_path / name
    p.write_text(json.dumps(obj), encoding="utf-8")
    return str(p)


def test_commitment():
    result = runner.invoke(app, ["commitment", "marathon"])
    assert result.exit_code == 0
    assert str(string_to_field_element("marathon")) in result.output


@pytest.mark.parametrize(
    "args,code,word",
    [
        (["check-field", "12345"], 0, "valid"),
        (["check-field", str(BN254_SCALAR_MODULUS)], 1, "invalid"),
        (["check-field", "--base", str(BN254_SCALAR_MODULUS)], 0, "valid"),
        (["check-field", "0x10"], 1, "invalid"),
    ],
)
def test_check_field(args, code, word):
    result = runner.invoke(app, args)
    assert result.exit_code == code
    assert result.output.strip().splitlines()[-1] == word


def test_fingerprint_is_stable(tmp_path):
    proof = _write(tmp_path, "proof.json", sample_proof())
    public = _write(tmp_path, "public.json", ["1", "2"])
    a = runner.invoke(app, ["fingerprint", "--proof", proof, "--public", public])
    b = runner.invoke(app, ["fingerprint", "--proof", proof, "--public", public])
    assert a.exit_code == 0
    digest = a.output.strip().splitlines()[-1]
    assert len(digest) == 64
    assert digest == b.output.strip().splitlines()[-1]


def test_fingerprint_rejects_malformed_proof(tmp_path):
    proof = _write(tmp_path, "proof.json", {"protocol": "groth16"})
    public = _write(tmp_path, "public.json", [])
    result = runner.invoke(app, ["fingerprint", "--proof", proof, "--public", public])
    assert result.exit_code == 1
    assert "INVALID_PROOF_STRUCTURE" in result.output


def test_unreadable_file_exits_2(tmp_path):
    result = runner.invoke(
        app, ["fingerprint", "--proof", str(tmp_path / "missing.json"), "--public", str(tmp_path / "x.json")]
    )
    assert result.exit_code == 2


@pytest.mark.slow
def test_verify_toy_proof(tmp_path):
    ts = toy_groth16.setup()
    proof_obj, public_obj = toy_groth16.prove(ts, 3)
    args = [
        "verify",
        "--tenant", "t1",
        "--achievement", "square",
        "--proof", _write(tmp_path, "proof.json", proof_obj),
        "--public", _write(tmp_path, "public.json", public_obj),
        "--vkey", _write(tmp_path, "vkey.json", ts.vkey),
        "--ledger", f"sqlite:///{tmp_path / 'ledger.db'}",
    ]
    first = runner.invoke(app, args)
    assert first.exit_code == 0, first.output
    assert '"kind":"VERIFIED"' in first.output

    second = runner.invoke(app, args)
    assert second.exit_code == 0
    assert '"duplicate":true' in second.output


def test_verify_signal_mismatch_exits_1(tmp_path):
    ts = toy_groth16.setup()
    proof_obj, _ = toy_groth16.prove(ts, 3)
    result = runner.invoke(
        app,
        [
            "verify",
            "--tenant", "t1",
            "--achievement", "square",
            "--proof", _write(tmp_path, "proof.json", proof_obj),
            "--public", _write(tmp_path, "public.json", ["9", "1"]),
            "--vkey", _write(tmp_path, "vkey.json", ts.vkey),
        ],
    )
    assert result.exit_code == 1
    assert "PUBLIC_SIGNAL_MISMATCH" in result.output


def test_verify_with_bad_key_exits_2(tmp_path):
    result = runner.invoke(
        app,
        [
            "verify",
            "--tenant", "t1",
            "--achievement", "a",
            "--proof", _write(tmp_path, "proof.json", sample_proof()),
            "--public", _write(tmp_path, "public.json", ["1"]),
            "--vkey", _write(tmp_path, "vkey.json", {"protocol": "groth16", "IC": []}),
        ],
    )
    assert result.exit_code == 2


@pytest.fixture
def keys_dir(tmp_path, monkeypatch):
    root = tmp_path / "keys"
    (root / "t1").mkdir(parents=True)
    _write(root / "t1", "square.vkey.json", toy_groth16.setup().vkey)
    monkeypatch.setenv("ACHIEVEMENT_PROOFS_KEYS_DIR", str(root))
    get_settings.cache_clear()
    yield root
    get_settings.cache_clear()


def test_verify_looks_up_key_in_keys_dir(tmp_path, keys_dir):
    proof_obj, _ = toy_groth16.prove(toy_groth16.setup(), 3)
    base = [
        "verify",
        "--proof", _write(tmp_path, "proof.json", proof_obj),
        "--public", _write(tmp_path, "public.json", ["9", "1"]),
    ]
    found = runner.invoke(app, base + ["--tenant", "t1", "--achievement", "square"])
    assert found.exit_code == 1
    assert "PUBLIC_SIGNAL_MISMATCH" in found.output

    missing = runner.invoke(app, base + ["--tenant", "t1", "--achievement", "cube"])
    assert missing.exit_code == 1
    assert "VERIFICATION_KEY_NOT_FOUND" in missing.output


def test_verify_without_key_source_exits_2(tmp_path, monkeypatch):
    monkeypatch.delenv("ACHIEVEMENT_PROOFS_KEYS_DIR", raising=False)
    get_settings.cache_clear()
    try:
        result = runner.invoke(
            app,
            [
                "verify",
                "--tenant", "t1",
                "--achievement", "a",
                "--proof", _write(tmp_path, "proof.json", sample_proof()),
                "--public", _write(tmp_path, "public.json", ["1"]),
            ],
        )
    finally:
        get_settings.cache_clear()
    assert result.exit_code == 2
