"""Tests for the BN254 / Grumpkin curve cycle."""

import pytest
from py_ecc.optimized_bn128 import optimized_curve as ec

from primitives.commitment import CommitmentKey
from primitives.curves import BN254, BN254_GRUMPKIN, GRUMPKIN, POINT_BYTES, CurveCycle
from primitives.errors import MalformedInput, ParameterMismatch
from primitives.field import Fq, Fr


class TestGroups:
    """Group law and encodings on both curves."""

    @pytest.mark.parametrize("group", [BN254, GRUMPKIN], ids=lambda g: g.name)
    def test_hash_to_curve_on_curve(self, group) -> None:
        """Derived generators are on the curve and deterministic."""
        gens = group.derive_generators(b"test", 3)
        assert all(group.is_on_curve(g) for g in gens)
        again = group.derive_generators(b"test", 3)
        assert all(group.eq(a, b) for a, b in zip(gens, again))
        assert not group.eq(gens[0], gens[1])

    @pytest.mark.parametrize("group", [BN254, GRUMPKIN], ids=lambda g: g.name)
    def test_order(self, group) -> None:
        """Multiplying by the group order gives the identity."""
        g = group.hash_to_curve(b"order")
        assert not group.is_identity(g)
        assert group.is_identity(group.add(group.mul(g, group.order - 1), g))

    @pytest.mark.parametrize("group", [BN254, GRUMPKIN], ids=lambda g: g.name)
    def test_encode_round_trip(self, group) -> None:
        """Points and the identity survive encode/decode."""
        g = group.hash_to_curve(b"enc")
        assert group.eq(group.decode(group.encode(g)), g)
        ident = group.identity()
        assert group.encode(ident) == bytes(POINT_BYTES)
        assert group.is_identity(group.decode(group.encode(ident)))

    def test_decode_rejects_off_curve(self) -> None:
        """An affine pair not on the curve is malformed."""
        data = (1).to_bytes(32, "big") + (1).to_bytes(32, "big")
        with pytest.raises(MalformedInput):
            BN254.decode(data)

    def test_decode_rejects_wrong_length(self) -> None:
        with pytest.raises(MalformedInput):
            GRUMPKIN.decode(b"\x00" * 10)

    def test_msm_matches_naive(self) -> None:
        """MSM equals the sum of individual scalar multiplications."""
        gens = BN254.derive_generators(b"msm", 3)
        scalars = [Fr(3), Fr(0), Fr(11)]
        expected = BN254.add(BN254.mul(gens[0], 3), BN254.mul(gens[2], 11))
        assert BN254.eq(BN254.msm(gens, scalars), expected)

    @pytest.mark.parametrize("group", [BN254, GRUMPKIN], ids=lambda g: g.name)
    def test_mul_matches_double_and_add(self, group) -> None:
        """Windowed multiplication agrees with py_ecc's reference multiply."""
        g = group.hash_to_curve(b"mul")
        for k in (1, 2, 15, 16, 17, 2**128 + 5, group.order - 2):
            assert group.eq(group.mul(g, k), ec.multiply(g, k))
        assert group.is_identity(group.mul(g, 0))
        assert group.is_identity(group.mul(group.identity(), 7))

    @pytest.mark.parametrize("group", [BN254, GRUMPKIN], ids=lambda g: g.name)
    def test_msm_bucket_path(self, group) -> None:
        """Enough scalars for the bucket method, mixed with units, zeros and the identity."""
        gens = group.derive_generators(b"msm-large", 40)
        gens[5] = group.identity()
        F = group.scalar_field
        scalars = [F(1) if i % 7 == 0 else F(0) if i % 11 == 0 else F(i * 2**200 + 3 * i + 1)
                   for i in range(40)]
        expected = group.identity()
        for pt, s in zip(gens, scalars):
            expected = group.add(expected, ec.multiply(pt, int(s)))
        assert group.eq(group.msm(gens, scalars), expected)

    def test_msm_cancels_to_identity(self) -> None:
        g = BN254.hash_to_curve(b"cancel")
        assert BN254.is_identity(BN254.msm([g, g], [Fr(5), Fr(-5)]))

    def test_fold_points(self) -> None:
        lo = GRUMPKIN.derive_generators(b"lo", 3)
        hi = GRUMPKIN.derive_generators(b"hi", 3)
        folded = GRUMPKIN.fold_points(lo, hi, 2**127 + 9)
        for a, b, c in zip(lo, hi, folded):
            assert GRUMPKIN.eq(c, GRUMPKIN.add(a, ec.multiply(b, 2**127 + 9)))

    def test_coordinates(self) -> None:
        """Circuits see the identity as (0, 0, 1) and other points in affine form."""
        g = BN254.hash_to_curve(b"coords")
        x, y, inf = BN254.coordinates(BN254.mul(g, 3))
        assert inf == 0
        assert BN254.eq(BN254.from_affine(x, y), BN254.mul(g, 3))
        assert BN254.coordinates(BN254.identity()) == (0, 0, 1)

    def test_msm_too_many_scalars(self) -> None:
        gens = BN254.derive_generators(b"msm", 1)
        with pytest.raises(ParameterMismatch):
            BN254.msm(gens, [Fr(1), Fr(2)])


class TestCurveCycle:
    """Cycle construction."""

    def test_fields_cross_linked(self) -> None:
        """Each scalar field is the other group's base field."""
        assert BN254_GRUMPKIN.primary.scalar_field is Fr
        assert BN254_GRUMPKIN.primary.base_field is Fq
        assert BN254_GRUMPKIN.secondary.scalar_field is Fq
        assert BN254_GRUMPKIN.secondary.base_field is Fr

    def test_rejects_non_cycle(self) -> None:
        """A group paired with itself is not a cycle."""
        with pytest.raises(ParameterMismatch):
            CurveCycle(name="bad", primary=BN254, secondary=BN254)


class TestCommitmentKey:
    """Pedersen commitments."""

    def test_homomorphic(self) -> None:
        """commit(a) + commit(b) == commit(a + b)."""
        ck = CommitmentKey.setup(BN254, b"ck-test", 4)
        a = [Fr(1), Fr(2), Fr(3)]
        b = [Fr(10), Fr(0), Fr(5)]
        lhs = BN254.add(ck.commit(a), ck.commit(b))
        rhs = ck.commit([x + y for x, y in zip(a, b)])
        assert BN254.eq(lhs, rhs)

    def test_too_long(self) -> None:
        ck = CommitmentKey.setup(GRUMPKIN, b"ck-test", 2)
        with pytest.raises(ParameterMismatch):
            ck.commit([Fq(1)] * 3)
