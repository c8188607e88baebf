"""Tests for field encodings and helpers."""

import pytest

from primitives.errors import EncodingError
from primitives.field import (
    BN254_BASE_MODULUS,
    BN254_SCALAR_MODULUS,
    Fq,
    Fr,
    batch_inverse,
    decimal_to_hex,
    field_for_modulus,
    from_bytes_be,
    hex_to_decimal,
    hex_to_int,
    sqrt_mod,
    to_bytes_be,
    to_hex,
)


class TestHexDecimal:
    """Hex <-> decimal re-encoding of step inputs."""

    def test_round_trip(self) -> None:
        """decimal(hex(x)) == decimal(x) for small, large and boundary values."""
        for value in [0, 1, 1000, 2**128 + 7, BN254_SCALAR_MODULUS - 1]:
            assert hex_to_decimal(to_hex(Fr(value))) == str(value)

    def test_prefix_optional(self) -> None:
        """A 0x prefix is accepted and ignored."""
        assert hex_to_decimal("0x3e8") == "1000"
        assert hex_to_decimal("3e8") == "1000"
        assert hex_to_decimal("0X3E8") == "1000"

    def test_fixed_width(self) -> None:
        """to_hex always emits 64 lowercase digits without prefix."""
        h = to_hex(Fr(255))
        assert len(h) == 64
        assert h.endswith("ff")
        assert not h.startswith("0x")

    def test_invalid_hex(self) -> None:
        """Non-hex characters and empty strings are rejected."""
        for bad in ["", "0x", "xyz", "12g4", "0x-1"]:
            with pytest.raises(EncodingError):
                hex_to_decimal(bad)

    def test_non_string(self) -> None:
        """Ints are not hex strings."""
        with pytest.raises(EncodingError):
            hex_to_int(1000)

    def test_unreduced_value(self) -> None:
        """Values at or above the modulus are rejected when a modulus is given."""
        with pytest.raises(EncodingError):
            hex_to_decimal(format(BN254_SCALAR_MODULUS, "x"), BN254_SCALAR_MODULUS)

    def test_decimal_to_hex(self) -> None:
        """Decimal strings and ints both encode."""
        assert decimal_to_hex("1000") == decimal_to_hex(1000) == to_hex(Fr(1000))
        with pytest.raises(EncodingError):
            decimal_to_hex("-5")
        with pytest.raises(EncodingError):
            decimal_to_hex("12a")


class TestFieldBytes:
    """Fixed-width byte encoding."""

    def test_round_trip(self) -> None:
        """Big-endian encoding decodes to the same element."""
        x = Fr(123456789)
        assert from_bytes_be(to_bytes_be(x), Fr) == x

    def test_rejects_unreduced(self) -> None:
        """Bytes encoding a value >= modulus are rejected."""
        with pytest.raises(EncodingError):
            from_bytes_be(BN254_SCALAR_MODULUS.to_bytes(32, "big"), Fr)

    def test_rejects_wrong_width(self) -> None:
        """Only 32-byte strings decode."""
        with pytest.raises(EncodingError):
            from_bytes_be(b"\x01" * 31, Fr)


class TestFieldHelpers:
    """Square roots, inversion and field lookup."""

    def test_field_for_modulus(self) -> None:
        """Both cycle fields are registered."""
        assert field_for_modulus(BN254_SCALAR_MODULUS) is Fr
        assert field_for_modulus(BN254_BASE_MODULUS) is Fq
        with pytest.raises(KeyError):
            field_for_modulus(97)

    def test_sqrt_tonelli_shanks(self) -> None:
        """Fr has p = 1 mod 4, exercising Tonelli-Shanks."""
        p = BN254_SCALAR_MODULUS
        assert p % 4 == 1
        for x in [2, 5, 1234567, p - 3]:
            sq = x * x % p
            r = sqrt_mod(sq, p)
            assert r is not None and r * r % p == sq

    def test_sqrt_three_mod_four(self) -> None:
        """Fq has p = 3 mod 4."""
        p = BN254_BASE_MODULUS
        assert p % 4 == 3
        for x in [3, 99, p - 1]:
            sq = x * x % p
            r = sqrt_mod(sq, p)
            assert r is not None and r * r % p == sq

    def test_sqrt_non_residue(self) -> None:
        """Non-residues have no root."""
        p = BN254_BASE_MODULUS
        # -1 is a non-residue when p = 3 mod 4
        assert sqrt_mod(p - 1, p) is None

    def test_batch_inverse(self) -> None:
        """Batch inversion matches scalar inversion."""
        vals = [Fr(i * 7 + 13) for i in range(20)]
        for v, inv in zip(vals, batch_inverse(vals, Fr)):
            assert v * inv == Fr(1)
        assert batch_inverse([], Fr) == []
