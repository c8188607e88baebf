"""Tests for the inner-product argument."""

import pytest

from primitives.curves import BN254, GRUMPKIN
from primitives.errors import VerificationFailure
from primitives.field import inner_product
from primitives.transcript import Transcript
from protocol.ipa import InnerProductProof, folding_coefficients


def _setup(group, n):
    F = group.scalar_field
    gens = group.derive_generators(b"ipa-test", n)
    Q = group.hash_to_curve(b"ipa-test-q")
    a = [F(7 * i + 3) for i in range(n)]
    b = [F(i + 11) for i in range(n)]
    comm = group.msm(gens, a)
    return F, gens, Q, a, b, comm


class TestInnerProductArgument:

    @pytest.mark.parametrize("group", [BN254, GRUMPKIN], ids=lambda g: g.name)
    def test_round_trip(self, group) -> None:
        """An honest opening verifies."""
        F, gens, Q, a, b, comm = _setup(group, 4)
        v = inner_product(a, b, F)
        proof = InnerProductProof.prove(group, gens, Q, comm, a, b, v, Transcript(b"ipa"))
        assert len(proof.L) == 2
        proof.verify(group, gens, Q, comm, b, v, Transcript(b"ipa"))

    def test_wrong_value(self) -> None:
        """Claiming a different inner product fails."""
        F, gens, Q, a, b, comm = _setup(BN254, 4)
        v = inner_product(a, b, F)
        proof = InnerProductProof.prove(BN254, gens, Q, comm, a, b, v, Transcript(b"ipa"))
        with pytest.raises(VerificationFailure):
            proof.verify(BN254, gens, Q, comm, b, v + 1, Transcript(b"ipa"))

    def test_wrong_commitment(self) -> None:
        F, gens, Q, a, b, comm = _setup(BN254, 2)
        v = inner_product(a, b, F)
        proof = InnerProductProof.prove(BN254, gens, Q, comm, a, b, v, Transcript(b"ipa"))
        other = BN254.add(comm, gens[0])
        with pytest.raises(VerificationFailure):
            proof.verify(BN254, gens, Q, other, b, v, Transcript(b"ipa"))

    def test_wrong_round_count(self) -> None:
        F, gens, Q, a, b, comm = _setup(BN254, 4)
        v = inner_product(a, b, F)
        proof = InnerProductProof.prove(BN254, gens, Q, comm, a, b, v, Transcript(b"ipa"))
        with pytest.raises(VerificationFailure):
            proof.verify(BN254, gens + gens, Q, comm, b + b, v, Transcript(b"ipa"))

    def test_tampered_round_commitment(self) -> None:
        """Swapping a round L for R changes the challenges and the folded commitment."""
        F, gens, Q, a, b, comm = _setup(GRUMPKIN, 4)
        v = inner_product(a, b, F)
        proof = InnerProductProof.prove(GRUMPKIN, gens, Q, comm, a, b, v, Transcript(b"ipa"))
        tampered = InnerProductProof(L=(proof.R[0],) + proof.L[1:], R=proof.R, a=proof.a)
        with pytest.raises(VerificationFailure):
            tampered.verify(GRUMPKIN, gens, Q, comm, b, v, Transcript(b"ipa"))


class TestFoldingCoefficients:

    @pytest.mark.parametrize("group", [BN254, GRUMPKIN], ids=lambda g: g.name)
    def test_matches_round_by_round_folding(self, group) -> None:
        """<s, G> equals folding G_lo + x·G_hi once per round, first challenge first."""
        F = group.scalar_field
        gens = group.derive_generators(b"ipa-fold", 8)
        challenges = [F(3), F(1 << 100), F(12345)]
        folded = list(gens)
        for x in challenges:
            half = len(folded) // 2
            folded = group.fold_points(folded[:half], folded[half:], x)
        s = folding_coefficients(challenges, F)
        assert len(s) == 8
        assert group.eq(group.msm(gens, s), folded[0])

    def test_no_rounds(self) -> None:
        assert folding_coefficients([], BN254.scalar_field) == [BN254.scalar_field.one()]
