"""
Toy Groth16 setup + prover for the circuit ``x * x == y`` over BN254.

Produces snarkjs-shaped JSON (proof, public signals, verification key) so the
real verifier can be exercised end to end without fixture files or snarkjs.

Circuit
-------
Wires ``w = [1, y, x]`` (one, public y, private x). Three R1CS rows over the
evaluation domain {1, 2, 3}:

    row 0:  x   * x = y
    row 1:  one * 0 = 0
    row 2:  y   * 0 = 0

Rows 1 and 2 only make the public wires appear in A, so both IC points are
non-trivial.

The setup keeps its toxic waste (tau, alpha, beta, gamma, delta); the prover
uses it to evaluate polynomials at tau directly. That is fine for tests: the
verifier only ever sees group elements.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from py_ecc.optimized_bn128 import G1, G2, curve_order, multiply, normalize

from achievement_proofs.verifiers.field import string_to_field_element

R = curve_order

DOMAIN = (1, 2, 3)
N_WIRES = 3
PUBLIC_WIRES = (0, 1)  # one, y
PRIVATE_WIRES = (2,)  # x

# column (wire) -> row for the non-zero A/B/C entries (all coefficients are 1)
_A = {2: 0, 0: 1, 1: 2}
_B = {2: 0}
_C = {1: 0}


def _inv(a: int) -> int:
    return pow(a % R, R - 2, R)


def _lagrange_at(j: int, tau: int) -> int:
    num, den = 1, 1
    for m, om in enumerate(DOMAIN):
        if m == j:
            continue
        num = num * (tau - om) % R
        den = den * (DOMAIN[j] - om) % R
    return num * _inv(den) % R


def _vanishing_at(tau: int) -> int:
    t = 1
    for om in DOMAIN:
        t = t * (tau - om) % R
    return t


def _g1_json(k: int) -> List[str]:
    x, y = normalize(multiply(G1, k % R))
    return [str(x.n), str(y.n), "1"]


def _g2_json(k: int) -> List[List[str]]:
    x, y = normalize(multiply(G2, k % R))
    return [
        [str(x.coeffs[0]), str(x.coeffs[1])],
        [str(y.coeffs[0]), str(y.coeffs[1])],
        ["1", "0"],
    ]


@dataclass(frozen=True)
class ToySetup:
    tau: int
    alpha: int
    beta: int
    gamma: int
    delta: int
    u: Tuple[int, ...]
    v: Tuple[int, ...]
    w: Tuple[int, ...]
    vkey: Dict[str, Any]

    def witness_poly(self, wires: Tuple[int, ...]) -> Tuple[int, int, int]:
        """(A(tau), B(tau), C(tau)) for a full wire assignment."""
        a = sum(wi * ui for wi, ui in zip(wires, self.u)) % R
        b = sum(wi * vi for wi, vi in zip(wires, self.v)) % R
        c = sum(wi * ci for wi, ci in zip(wires, self.w)) % R
        return a, b, c


@lru_cache(maxsize=4)
def setup(seed: str = "toy-square") -> ToySetup:
    """Deterministic trusted setup; ``seed`` picks the toxic waste."""
    tau, alpha, beta, gamma, delta = (
        string_to_field_element(f"{seed}:{name}") for name in ("tau", "alpha", "beta", "gamma", "delta")
    )
    assert tau not in DOMAIN

    lag = [_lagrange_at(j, tau) for j in range(len(DOMAIN))]
    u = tuple(lag[_A[i]] if i in _A else 0 for i in range(N_WIRES))
    v = tuple(lag[_B[i]] if i in _B else 0 for i in range(N_WIRES))
    w = tuple(lag[_C[i]] if i in _C else 0 for i in range(N_WIRES))

    g_inv = _inv(gamma)
    ic = [_g1_json((beta * u[i] + alpha * v[i] + w[i]) * g_inv) for i in PUBLIC_WIRES]

    vkey = {
        "protocol": "groth16",
        "curve": "bn128",
        "nPublic": len(PUBLIC_WIRES) - 1,
        "vk_alpha_1": _g1_json(alpha),
        "vk_beta_2": _g2_json(beta),
        "vk_gamma_2": _g2_json(gamma),
        "vk_delta_2": _g2_json(delta),
        "IC": ic,
    }
    return ToySetup(tau=tau, alpha=alpha, beta=beta, gamma=gamma, delta=delta, u=u, v=v, w=w, vkey=vkey)


def prove(
    ts: ToySetup, x: int, *, r: Optional[int] = None, s: Optional[int] = None
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Prove knowledge of ``x`` with ``x*x == y``. Returns (proof_json, public_signals).

    ``r``/``s`` are the blinding scalars; different values give different,
    equally valid proofs of the same statement.
    """
    x %= R
    y = x * x % R
    wires = (1, y, x)
    r = string_to_field_element(f"r:{x}") if r is None else r % R
    s = string_to_field_element(f"s:{x}") if s is None else s % R

    a_t, b_t, c_t = ts.witness_poly(wires)
    h_t = (a_t * b_t - c_t) * _inv(_vanishing_at(ts.tau)) % R

    a = (ts.alpha + a_t + r * ts.delta) % R
    b = (ts.beta + b_t + s * ts.delta) % R
    priv = sum(wires[i] * (ts.beta * ts.u[i] + ts.alpha * ts.v[i] + ts.w[i]) for i in PRIVATE_WIRES)
    c = ((priv + h_t * _vanishing_at(ts.tau)) * _inv(ts.delta) + s * a + r * b - r * s * ts.delta) % R

    proof = {
        "pi_a": _g1_json(a),
        "pi_b": _g2_json(b),
        "pi_c": _g1_json(c),
        "protocol": "groth16",
        "curve": "bn128",
    }
    return proof, [str(y)]


__all__ = ["ToySetup", "setup", "prove", "R"]
