import pytest
from hypothesis import given, settings, strategies as st

from achievement_proofs.errors import FieldElementError
from achievement_proofs.verifiers.field import (
    BN254_BASE_MODULUS,
    BN254_SCALAR_MODULUS,
    field_modulus,
    is_valid_field_element,
    parse_field_element,
    string_to_field_element,
    supported_curves,
    to_fixed_bytes,
)

P = BN254_SCALAR_MODULUS
Q = BN254_BASE_MODULUS


@settings(max_examples=300, deadline=None)
@given(st.integers(min_value=0, max_value=2**256))
def test_valid_iff_below_modulus(n):
    assert is_valid_field_element(str(n)) == (n < P)


@settings(max_examples=100, deadline=None)
@given(st.integers(min_value=0, max_value=P - 1), st.integers(min_value=0, max_value=80))
def test_leading_zeros_preserve_value(n, zeros):
    s = "0" * zeros + str(n)
    assert is_valid_field_element(s)
    assert parse_field_element(s) == n


def test_boundaries():
    assert is_valid_field_element("0")
    assert is_valid_field_element(str(P - 1))
    assert not is_valid_field_element(str(P))
    assert not is_valid_field_element(str(P + 1))
    assert is_valid_field_element("0" * 500 + "7")


@pytest.mark.parametrize(
    "s",
    ["", "-1", "+1", " 1", "1 ", "0x10", "1e3", "1_000", "1.0", "١٢٣", "abc"],
)
def test_rejects_non_decimal(s):
    assert not is_valid_field_element(s)


@pytest.mark.parametrize("v", [None, 5, 5.0, b"5", ["5"]])
def test_rejects_non_strings(v):
    assert not is_valid_field_element(v)


def test_very_long_string_is_rejected_without_error():
    assert not is_valid_field_element("9" * 10_000)


def test_base_field_is_larger():
    assert Q > P
    assert not is_valid_field_element(str(P))
    assert is_valid_field_element(str(P), field="base")
    assert not is_valid_field_element(str(Q), field="base")


def test_unknown_curve_is_invalid():
    assert not is_valid_field_element("1", "bls12_381")
    with pytest.raises(FieldElementError):
        field_modulus("bls12_381")
    assert supported_curves() == ("bn128",)


def test_parse_raises_with_code():
    with pytest.raises(FieldElementError) as ei:
        parse_field_element(str(P))
    assert ei.value.code == "INVALID_FIELD_ELEMENT"
    assert ei.value.details["field"] == "scalar"


def test_fixed_bytes():
    assert to_fixed_bytes(1) == b"\x00" * 31 + b"\x01"
    assert len(to_fixed_bytes(P - 1)) == 32


def test_string_to_field_element_is_stable_and_in_range():
    a = string_to_field_element("first-login")
    assert a == string_to_field_element("first-login")
    assert a != string_to_field_element("first-login ")
    assert 0 <= a < P
