"""Hashes that tie the augmented circuits to the native prover and verifier.

Two Poseidon2 hashes, each computed over the native field of the circuit
that evaluates it (the base field of the group whose instances it hashes):

    state_hash     = H(params, i, z0, zi, U)     truncated to 250 bits
    fold_challenge = H(params, u, comm_T)        truncated to 128 bits

A running relaxed instance U enters as comm_W, comm_E as (x, y, inf) and
u, X[0], X[1] as (lo, hi) 128-bit words. A strict instance u enters as
comm_W and its two public values, which are themselves state hashes and so
below 2^250.

Each function has a native form, used by the folding engine and both
verifiers, and a gadget form used inside the circuits; the two must absorb
the same elements in the same order.
"""

from typing import List, Sequence

from constraints.bignat import to_words
from constraints.builder import LC, ConstraintBuilder
from constraints.shape import R1CSInstance, RelaxedR1CSInstance
from primitives.curves import Group, Point
from primitives.poseidon import (
    FULL_ROUNDS,
    RATE,
    Poseidon2Params,
    domain_tag,
    external_linear,
    internal_linear,
    poseidon2_hash,
    poseidon2_params,
)

NUM_HASH_BITS = 250
NUM_CHALLENGE_BITS = 128

STATE_DOMAIN = 1
FOLD_DOMAIN = 2

TOP_LIMB_SHIFT = 192
TOP_LIMB_BITS = 62


def digest_to_scalar(digest: bytes) -> int:
    """Public-parameter digest as a field element both circuits can absorb."""
    return int.from_bytes(digest, "little") & ((1 << NUM_HASH_BITS) - 1)


# --- Native ---


def relaxed_elements(group: Group, U: RelaxedR1CSInstance) -> List[int]:
    out = list(group.coordinates(U.comm_W)) + list(group.coordinates(U.comm_E))
    for v in (U.u, *U.X):
        out += to_words(int(v))
    return out


def state_hash(group: Group, params: int, i: int, z0: Sequence, zi: Sequence,
               U: RelaxedR1CSInstance) -> int:
    """Hash of a step state and the running instance of `group`'s circuit."""
    values = [params, i] + [int(v) for v in z0] + [int(v) for v in zi] + relaxed_elements(group, U)
    out = poseidon2_hash(group.base_field.field_modulus, STATE_DOMAIN, values)
    return out & ((1 << NUM_HASH_BITS) - 1)


def fold_challenge(group: Group, params: int, u: R1CSInstance, comm_T: Point) -> int:
    """128-bit folding challenge for folding u with cross term comm_T."""
    values = [params] + list(group.coordinates(u.comm_W)) + [int(v) for v in u.X]
    values += list(group.coordinates(comm_T))
    out = poseidon2_hash(group.base_field.field_modulus, FOLD_DOMAIN, values)
    return out & ((1 << NUM_CHALLENGE_BITS) - 1)


# --- Gadgets ---


def _sbox(cb: ConstraintBuilder, x: LC) -> LC:
    x2 = cb.mul(x, x)
    x4 = cb.mul(x2, x2)
    return cb.mul(x4, x)


def permute_gadget(cb: ConstraintBuilder, state: Sequence[LC], params: Poseidon2Params) -> List[LC]:
    half = FULL_ROUNDS // 2

    def full_round(state, constants):
        return external_linear([_sbox(cb, s + c) for s, c in zip(state, constants)])

    state = external_linear(list(state))
    for r in range(half):
        state = full_round(state, params.external_constants[r])
    for c in params.internal_constants:
        state[0] = _sbox(cb, state[0] + c)
        state = internal_linear(state, params.internal_diagonal)
    for r in range(half, FULL_ROUNDS):
        state = full_round(state, params.external_constants[r])
    return state


def hash_gadget(cb: ConstraintBuilder, domain: int, values: Sequence[LC]) -> LC:
    """In-circuit poseidon2_hash; returns the untruncated output."""
    params = poseidon2_params(cb.modulus)
    capacity = cb.constant(domain_tag(domain, len(values)))
    out: List[LC] = []
    pending: List[LC] = []

    def update_state(pending: List[LC], capacity: LC) -> List[LC]:
        inputs = pending + [cb.constant(0)] * (RATE - len(pending)) + [capacity]
        return permute_gadget(cb, inputs, params)

    for v in values:
        pending.append(v)
        if len(pending) == RATE:
            out = update_state(pending, capacity)
            capacity = out[0]
            pending = []
    if pending or not out:
        out = update_state(pending, capacity)
    return out[0]


def canonical_bits(cb: ConstraintBuilder, x: LC) -> List[LC]:
    """Little-endian bits of x, constrained to the canonical representative.

    The top 62 bits must stay strictly below those of the modulus, which
    rules out x + p and costs completeness only on a 2^-62 fraction of values.
    """
    num_bits = cb.modulus.bit_length()
    bits = cb.to_bits(x, num_bits)
    top = cb.from_bits(bits[TOP_LIMB_SHIFT:])
    cb.range_check(cb.constant((cb.modulus >> TOP_LIMB_SHIFT) - 1) - top, TOP_LIMB_BITS)
    return bits


def state_hash_gadget(cb: ConstraintBuilder, params: LC, i: LC, z0: Sequence[LC], zi: Sequence[LC],
                      U_elements: Sequence[LC]) -> LC:
    """Untruncated state hash; callers truncate or compare as they need."""
    return hash_gadget(cb, STATE_DOMAIN, [params, i, *z0, *zi, *U_elements])


def fold_challenge_gadget(cb: ConstraintBuilder, params: LC, u_elements: Sequence[LC],
                          T_elements: Sequence[LC]) -> List[LC]:
    """Little-endian bits of the folding challenge."""
    out = hash_gadget(cb, FOLD_DOMAIN, [params, *u_elements, *T_elements])
    return canonical_bits(cb, out)[:NUM_CHALLENGE_BITS]


__all__ = [
    "NUM_HASH_BITS",
    "NUM_CHALLENGE_BITS",
    "digest_to_scalar",
    "relaxed_elements",
    "state_hash",
    "fold_challenge",
    "hash_gadget",
    "canonical_bits",
    "state_hash_gadget",
    "fold_challenge_gadget",
]
