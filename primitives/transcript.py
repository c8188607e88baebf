"""Fiat-Shamir transcript using a blake3 sponge.

Absorbed items are framed with a label and a length so two different absorb
sequences never produce the same byte stream. Every squeeze feeds its output
back into the hasher, so successive challenges differ.
"""

from typing import List, Sequence

import blake3

from primitives.curves import Group, Point
from primitives.field import FieldElement, FieldType, to_bytes_be


class Transcript:
    """Fiat-Shamir transcript.

    Attributes:
        hasher: Running blake3 state
    """

    def __init__(self, label: bytes):
        self.hasher = blake3.blake3()
        self.absorb_bytes(b"init", label)

    def clone(self) -> "Transcript":
        other = Transcript.__new__(Transcript)
        other.hasher = self.hasher.copy()
        return other

    # --- Absorb ---

    def absorb_bytes(self, label: bytes, data: bytes) -> None:
        self.hasher.update(len(label).to_bytes(4, "little") + label)
        self.hasher.update(len(data).to_bytes(8, "little") + data)

    def absorb_int(self, label: bytes, value: int) -> None:
        self.absorb_bytes(label, value.to_bytes(8, "little"))

    def absorb_scalar(self, label: bytes, value: FieldElement) -> None:
        self.absorb_bytes(label, to_bytes_be(value))

    def absorb_scalars(self, label: bytes, values: Sequence[FieldElement]) -> None:
        self.absorb_bytes(label, len(values).to_bytes(8, "little") + b"".join(to_bytes_be(v) for v in values))

    def absorb_point(self, label: bytes, group: Group, pt: Point) -> None:
        self.absorb_bytes(label, group.encode(pt))

    # --- Squeeze ---

    def squeeze_bytes(self, label: bytes, num_bytes: int) -> bytes:
        self.hasher.update(b"squeeze" + len(label).to_bytes(4, "little") + label)
        digest = self.hasher.digest(length=num_bytes)
        self.hasher.update(digest)
        return digest

    def challenge_bits(self, label: bytes, num_bits: int) -> int:
        """Uniform integer in [0, 2^num_bits)."""
        data = self.squeeze_bytes(label, (num_bits + 7) // 8)
        return int.from_bytes(data, "little") & ((1 << num_bits) - 1)

    def challenge_scalar(self, label: bytes, field: FieldType) -> FieldElement:
        """Full-width field challenge, reduced from 512 bits."""
        return field(int.from_bytes(self.squeeze_bytes(label, 64), "little"))

    def challenge_nonzero(self, label: bytes, field: FieldType) -> FieldElement:
        c = self.challenge_scalar(label, field)
        while c == 0:
            c = self.challenge_scalar(label, field)
        return c

    def challenge_vector(self, label: bytes, field: FieldType, n: int) -> List[FieldElement]:
        return [self.challenge_scalar(label, field) for _ in range(n)]


__all__ = ["Transcript"]
