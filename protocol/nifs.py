"""Non-interactive folding scheme (NIFS) for relaxed R1CS.

Folds a strict instance into a running relaxed instance:

    T      = Az1∘Bz2 + Az2∘Bz1 - u1·Cz2 - Cz1
    r      = H(params, u2, comm_T)      (128-bit challenge)
    W      = W1 + r·W2        E = E1 + r·T
    comm_W = comm_W1 + r·comm_W2
    comm_E = comm_E1 + r·comm_T
    u      = u1 + r           X = X1 + r·X2

The challenge is the Poseidon2 hash the other circuit of the cycle
recomputes when it verifies this fold. U1 is not absorbed: u2.X[0] already
carries a hash of it.
"""

from dataclasses import dataclass
from typing import Tuple

from constraints import ro
from constraints.shape import (
    R1CSInstance,
    R1CSShape,
    R1CSWitness,
    RelaxedR1CSInstance,
    RelaxedR1CSWitness,
)
from primitives.commitment import CommitmentKey
from primitives.curves import Group, Point
from primitives.field import FieldElement

CHALLENGE_BITS = ro.NUM_CHALLENGE_BITS


def fold_challenge(group: Group, params: int, U2: R1CSInstance, comm_T: Point) -> FieldElement:
    return group.scalar_field(ro.fold_challenge(group, params, U2, comm_T))


@dataclass(frozen=True)
class NIFS:
    """Folding proof: the commitment to the cross term."""

    comm_T: Point

    @classmethod
    def prove(
        cls,
        ck: CommitmentKey,
        params: int,
        shape: R1CSShape,
        U1: RelaxedR1CSInstance,
        W1: RelaxedR1CSWitness,
        U2: R1CSInstance,
        W2: R1CSWitness,
    ) -> Tuple["NIFS", RelaxedR1CSInstance, RelaxedR1CSWitness]:
        """Fold (U2, W2) into (U1, W1).

        Args:
            ck: Commitment key of the instances' group
            params: Public-parameter digest as a scalar
            shape: Shape both instances satisfy
            U1, W1: Running relaxed instance and witness
            U2, W2: Strict instance and witness to fold in

        Returns:
            (proof, folded instance, folded witness)
        """
        group = ck.group
        T, comm_T = shape.commit_T(ck, U1, W1, U2, W2)
        r = fold_challenge(group, params, U2, comm_T)
        U = U1.fold(group, U2, comm_T, r)
        W = W1.fold(W2, T, r)
        return cls(comm_T=comm_T), U, W

    def verify(self, group: Group, params: int, U1: RelaxedR1CSInstance,
               U2: R1CSInstance) -> RelaxedR1CSInstance:
        """Recompute the folded instance from public data only."""
        r = fold_challenge(group, params, U2, self.comm_T)
        return U1.fold(group, U2, self.comm_T, r)


__all__ = ["NIFS", "fold_challenge", "CHALLENGE_BITS"]
