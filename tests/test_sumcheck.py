"""Tests for the sum-check protocol and multilinear helpers."""

import pytest

from primitives.errors import VerificationFailure
from primitives.field import Fr
from primitives.polynomial import eq_eval, eq_evals, interpolate_at, multilinear_eval, next_pow2
from primitives.transcript import Transcript
from protocol.sumcheck import SumcheckProof


def _table(n):
    return [Fr(3 * i + 1) for i in range(n)]


class TestMultilinear:

    def test_next_pow2(self) -> None:
        assert [next_pow2(n) for n in [1, 2, 3, 5, 8, 9]] == [1, 2, 4, 8, 8, 16]

    def test_eq_table_sums_to_one(self) -> None:
        r = [Fr(5), Fr(9), Fr(11)]
        assert sum(eq_evals(r, Fr), Fr(0)) == Fr(1)

    def test_eq_table_matches_eq_eval(self) -> None:
        """Entry x of the table is eq(r, bits(x)) with MSB first."""
        r = [Fr(5), Fr(9)]
        table = eq_evals(r, Fr)
        for x in range(4):
            bits = [Fr((x >> 1) & 1), Fr(x & 1)]
            assert table[x] == eq_eval(r, bits, Fr)

    def test_multilinear_eval_on_hypercube(self) -> None:
        table = _table(8)
        for x in range(8):
            bits = [Fr((x >> (2 - i)) & 1) for i in range(3)]
            assert multilinear_eval(table, bits, Fr) == table[x]

    def test_interpolate(self) -> None:
        """Evaluations of x^2 + 1 at 0..2 interpolate correctly."""
        evals = [Fr(1), Fr(2), Fr(5)]
        assert interpolate_at(evals, Fr(10), Fr) == Fr(101)


class TestSumcheck:

    def _prove(self, tables, degree, combine):
        n = len(tables[0]).bit_length() - 1
        claim = sum((combine(*vals) for vals in zip(*tables)), Fr(0))
        proof, r, finals = SumcheckProof.prove(claim, n, degree, tables, combine, Transcript(b"sc"), Fr)
        return claim, n, proof, r, finals

    def test_product_round_trip(self) -> None:
        """Degree-2 product sum verifies and the final claim matches the bound tables."""
        a, b = _table(8), [Fr(i * i) for i in range(8)]
        combine = lambda x, y: x * y
        claim, n, proof, r, finals = self._prove([a, b], 2, combine)
        final_claim, r_v = proof.verify(claim, n, 2, Transcript(b"sc"), Fr)
        assert r_v == r
        assert final_claim == combine(*finals)
        assert finals[0] == multilinear_eval(a, r, Fr)

    def test_wrong_claim(self) -> None:
        a = _table(4)
        claim, n, proof, _, _ = self._prove([a, a], 2, lambda x, y: x * y)
        with pytest.raises(VerificationFailure):
            proof.verify(claim + 1, n, 2, Transcript(b"sc"), Fr)

    def test_wrong_degree(self) -> None:
        a = _table(4)
        claim, n, proof, _, _ = self._prove([a, a], 2, lambda x, y: x * y)
        with pytest.raises(VerificationFailure):
            proof.verify(claim, n, 3, Transcript(b"sc"), Fr)

    def test_wrong_rounds(self) -> None:
        a = _table(4)
        claim, n, proof, _, _ = self._prove([a], 1, lambda x: x)
        with pytest.raises(VerificationFailure):
            proof.verify(claim, n + 1, 1, Transcript(b"sc"), Fr)
