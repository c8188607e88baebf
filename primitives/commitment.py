"""Pedersen vector commitments without blinding.

Generators are derived by hash-to-curve from a label, so a commitment key is
a deterministic function of (group, label, size) and needs no setup ceremony.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

from primitives.curves import Group, Point
from primitives.errors import ParameterMismatch


@dataclass(frozen=True)
class CommitmentKey:
    """Pedersen generators for vectors of length up to len(generators)."""

    group: Group
    label: bytes
    generators: Tuple[Point, ...]

    @classmethod
    def setup(cls, group: Group, label: bytes, size: int) -> "CommitmentKey":
        return cls(group=group, label=label, generators=tuple(group.derive_generators(label, size)))

    def __len__(self) -> int:
        return len(self.generators)

    def commit(self, values: Sequence) -> Point:
        """Commit to a vector of scalars.

        Raises:
            ParameterMismatch: If the vector is longer than the key
        """
        if len(values) > len(self.generators):
            raise ParameterMismatch(
                f"Commitment key of size {len(self.generators)} cannot commit to {len(values)} values")
        return self.group.msm(self.generators, values)

    def digest_bytes(self) -> bytes:
        return b"".join(self.group.encode(g) for g in self.generators)


__all__ = ["CommitmentKey"]
