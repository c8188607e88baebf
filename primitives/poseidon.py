"""Poseidon2 permutation and sponge over the BN254 / Grumpkin fields.

The augmented circuits hash their state with this sponge, and the native
prover and verifier recompute the same hashes outside the circuit, so both
sides share the constants and the absorb schedule defined here.

Permutation (width 12, x^5 S-box):

    state = M_E · state
    4 full rounds:     state = M_E · sbox(state + c_r)
    57 partial rounds: state[0] = sbox(state[0] + c_r); state = M_I · state
    4 full rounds

M_E = circ(2·M4, M4, M4) with the Poseidon2 4x4 block M4 and
M_I = 1·1^T + diag(D). Round constants and D are expanded from a blake3 XOF
keyed by the field modulus.

Sponge: rate 11, capacity 1. The capacity starts as a domain tag carrying
the domain id and the number of absorbed elements; every full rate block is
permuted with the capacity appended and output element 0 becomes the next
capacity. The squeeze is output element 0 of the final permutation.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import List, Sequence, Tuple

import blake3

WIDTH = 12
RATE = WIDTH - 1
FULL_ROUNDS = 8
PARTIAL_ROUNDS = 57
SBOX_DEGREE = 5

M4 = (
    (5, 7, 1, 3),
    (4, 6, 1, 1),
    (1, 3, 5, 7),
    (1, 1, 4, 6),
)


@dataclass(frozen=True)
class Poseidon2Params:
    """Constants of the permutation over one prime field.

    Attributes:
        modulus: Field prime
        external_constants: FULL_ROUNDS rows of WIDTH round constants
        internal_constants: One constant per partial round
        internal_diagonal: D in M_I = 1·1^T + diag(D)
    """

    modulus: int
    external_constants: Tuple[Tuple[int, ...], ...]
    internal_constants: Tuple[int, ...]
    internal_diagonal: Tuple[int, ...]


def _xof_elements(label: bytes, modulus: int, n: int) -> List[int]:
    data = blake3.blake3(label + modulus.to_bytes(32, "big")).digest(length=64 * n)
    return [int.from_bytes(data[64 * i:64 * (i + 1)], "little") % modulus for i in range(n)]


@lru_cache(maxsize=None)
def poseidon2_params(modulus: int) -> Poseidon2Params:
    flat = _xof_elements(b"poseidon2/external", modulus, FULL_ROUNDS * WIDTH)
    diagonal = _xof_elements(b"poseidon2/diagonal", modulus, WIDTH)
    # keep D_i >= 2
    diagonal = [d if d > 1 else d + 2 for d in diagonal]
    return Poseidon2Params(
        modulus=modulus,
        external_constants=tuple(tuple(flat[r * WIDTH:(r + 1) * WIDTH]) for r in range(FULL_ROUNDS)),
        internal_constants=tuple(_xof_elements(b"poseidon2/internal", modulus, PARTIAL_ROUNDS)),
        internal_diagonal=tuple(diagonal),
    )


# --- Linear Layers ---
#
# Written against +, - and multiplication by int constants only, so the
# constraint builder's linear combinations go through the same code.


def external_linear(state: Sequence) -> list:
    """M_E = circ(2·M4, M4, M4): M4 on each block of 4, then add the column sums."""
    blocks = []
    for j in range(0, WIDTH, 4):
        x = state[j:j + 4]
        blocks.append([
            x[0] * row[0] + x[1] * row[1] + x[2] * row[2] + x[3] * row[3]
            for row in M4
        ])
    sums = [blocks[0][k] + blocks[1][k] + blocks[2][k] for k in range(4)]
    return [blocks[j][k] + sums[k] for j in range(WIDTH // 4) for k in range(4)]


def internal_linear(state: Sequence, diagonal: Sequence[int]) -> list:
    total = state[0]
    for s in state[1:]:
        total = total + s
    return [total + s * d for s, d in zip(state, diagonal)]


# --- Native Permutation ---


def permute(state: Sequence[int], params: Poseidon2Params) -> List[int]:
    if len(state) != WIDTH:
        raise ValueError(f"Poseidon2 state has width {WIDTH}, got {len(state)}")
    p = params.modulus
    half = FULL_ROUNDS // 2

    def reduce(values) -> List[int]:
        return [v % p for v in values]

    def full_round(state, constants) -> List[int]:
        return reduce(external_linear([pow((s + c) % p, SBOX_DEGREE, p) for s, c in zip(state, constants)]))

    state = reduce(external_linear([v % p for v in state]))
    for r in range(half):
        state = full_round(state, params.external_constants[r])
    for c in params.internal_constants:
        state[0] = pow((state[0] + c) % p, SBOX_DEGREE, p)
        state = reduce(internal_linear(state, params.internal_diagonal))
    for r in range(half, FULL_ROUNDS):
        state = full_round(state, params.external_constants[r])
    return state


def domain_tag(domain: int, num_elements: int) -> int:
    """Initial capacity for a hash of `num_elements` elements in `domain`."""
    return (domain << 64) | num_elements


class Poseidon2Sponge:
    """Overwrite-mode sponge with a single-element capacity.

    Attributes:
        params: Permutation constants
        capacity: Carried capacity element
        pending: Absorbed elements not yet permuted
        out: Output of the last permutation
    """

    def __init__(self, params: Poseidon2Params, tag: int):
        self.params = params
        self.capacity = tag % params.modulus
        self.pending: List[int] = []
        self.out: List[int] = []

    def put(self, values: Sequence[int]) -> None:
        for v in values:
            self.pending.append(int(v) % self.params.modulus)
            if len(self.pending) == RATE:
                self._update_state()

    def _update_state(self) -> None:
        inputs = self.pending + [0] * (RATE - len(self.pending)) + [self.capacity]
        self.out = permute(inputs, self.params)
        self.capacity = self.out[0]
        self.pending = []

    def squeeze(self) -> int:
        if self.pending or not self.out:
            self._update_state()
        return self.out[0]


def poseidon2_hash(modulus: int, domain: int, values: Sequence[int]) -> int:
    """One-shot hash of a fixed-length sequence of field elements."""
    sponge = Poseidon2Sponge(poseidon2_params(modulus), domain_tag(domain, len(values)))
    sponge.put(values)
    return sponge.squeeze()


__all__ = [
    "WIDTH",
    "RATE",
    "FULL_ROUNDS",
    "PARTIAL_ROUNDS",
    "Poseidon2Params",
    "poseidon2_params",
    "external_linear",
    "internal_linear",
    "permute",
    "domain_tag",
    "Poseidon2Sponge",
    "poseidon2_hash",
]
