"""Tests for the Poseidon2 permutation, sponge and their in-circuit forms."""

import pytest

from constraints.builder import ConstraintBuilder
from constraints.ro import hash_gadget, permute_gadget
from primitives.field import BN254_BASE_MODULUS, BN254_SCALAR_MODULUS
from primitives.poseidon import (
    FULL_ROUNDS,
    PARTIAL_ROUNDS,
    RATE,
    WIDTH,
    Poseidon2Sponge,
    domain_tag,
    permute,
    poseidon2_hash,
    poseidon2_params,
)

MODULI = [BN254_SCALAR_MODULUS, BN254_BASE_MODULUS]


class TestPermutation:

    @pytest.mark.parametrize("modulus", MODULI)
    def test_params(self, modulus) -> None:
        params = poseidon2_params(modulus)
        assert params is poseidon2_params(modulus)
        assert len(params.external_constants) == FULL_ROUNDS
        assert all(len(row) == WIDTH for row in params.external_constants)
        assert len(params.internal_constants) == PARTIAL_ROUNDS
        assert all(d >= 2 for d in params.internal_diagonal)

    def test_fields_differ(self) -> None:
        a, b = (poseidon2_params(m) for m in MODULI)
        assert a.external_constants != b.external_constants

    @pytest.mark.parametrize("modulus", MODULI)
    def test_deterministic_and_diffusing(self, modulus) -> None:
        params = poseidon2_params(modulus)
        state = list(range(WIDTH))
        out = permute(state, params)
        assert out == permute(state, params)
        assert all(0 <= v < modulus for v in out)
        tweaked = permute([1] + state[1:], params)
        assert all(x != y for x, y in zip(out, tweaked))

    def test_width(self) -> None:
        with pytest.raises(ValueError):
            permute([0] * (WIDTH - 1), poseidon2_params(BN254_SCALAR_MODULUS))

    @pytest.mark.parametrize("modulus", MODULI)
    def test_gadget_matches(self, modulus) -> None:
        """One S-box costs three constraints; the outputs match the native permutation."""
        params = poseidon2_params(modulus)
        cb = ConstraintBuilder(modulus)
        state = [cb.alloc(7 * i + 1) for i in range(WIDTH)]
        out = permute_gadget(cb, state, params)
        assert [v.value for v in out] == permute([7 * i + 1 for i in range(WIDTH)], params)
        assert cb.num_constraints() == 3 * (FULL_ROUNDS * WIDTH + PARTIAL_ROUNDS)
        cs, w = cb.finalize()
        cs.check_witness(w)


class TestSponge:

    def test_hash_is_sponge(self) -> None:
        values = list(range(25))
        sponge = Poseidon2Sponge(poseidon2_params(BN254_SCALAR_MODULUS), domain_tag(3, len(values)))
        sponge.put(values[:4])
        sponge.put(values[4:])
        assert sponge.squeeze() == poseidon2_hash(BN254_SCALAR_MODULUS, 3, values)

    def test_domain_and_length_separate(self) -> None:
        p = BN254_SCALAR_MODULUS
        assert poseidon2_hash(p, 1, [1, 2]) != poseidon2_hash(p, 2, [1, 2])
        assert poseidon2_hash(p, 1, [1, 2]) != poseidon2_hash(p, 1, [1, 2, 0])
        assert poseidon2_hash(p, 1, []) != poseidon2_hash(p, 1, [0])

    def test_inputs_reduced(self) -> None:
        p = BN254_SCALAR_MODULUS
        assert poseidon2_hash(p, 1, [p + 5]) == poseidon2_hash(p, 1, [5])

    @pytest.mark.parametrize("length", [1, RATE - 1, RATE, RATE + 1, 2 * RATE, 40])
    def test_gadget_matches(self, length) -> None:
        """The in-circuit sponge permutes at the same block boundaries."""
        p = BN254_SCALAR_MODULUS
        values = [3 * i + 2 for i in range(length)]
        cb = ConstraintBuilder(p)
        out = hash_gadget(cb, 7, [cb.alloc(v) for v in values])
        assert out.value == poseidon2_hash(p, 7, values)
        num_blocks = -(-length // RATE)
        assert cb.num_constraints() == num_blocks * 3 * (FULL_ROUNDS * WIDTH + PARTIAL_ROUNDS)
        cs, w = cb.finalize()
        cs.check_witness(w)
