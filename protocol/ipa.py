"""Inner-product argument for opening Pedersen commitments.

Proves that commitment C = <a, G> opens to a vector a with <a, b> = v for a
public vector b, in log2(n) rounds of Bulletproofs-style halving with
128-bit round challenges x and no inversions:

    P   = C + v·Q'                       (Q' = y·Q for a transcript challenge y)
    L   = <a_lo, G_hi> + <a_lo, b_hi>·Q'
    R   = <a_hi, G_lo> + <a_hi, b_lo>·Q'
    a'  = x·a_lo + a_hi        b' = b_lo + x·b_hi
    G'  = G_lo + x·G_hi        P' = x·P + x^2·L + R

The verifier never folds G round by round: G_final = <s, G> and
b_final = <s, b> with s_j the product of the x_k whose bit is set in j, so
the last check P = a·G_final + (a·b_final)·Q' is a single MSM.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from primitives.curves import Group, Point
from primitives.errors import VerificationFailure
from primitives.field import FieldElement, FieldType, inner_product
from primitives.polynomial import log2
from primitives.transcript import Transcript

CHALLENGE_BITS = 128


def _bind_statement(transcript: Transcript, group: Group, comm: Point, value: FieldElement,
                    n: int, Q: Point) -> Point:
    transcript.absorb_point(b"ipa/comm", group, comm)
    transcript.absorb_scalar(b"ipa/value", value)
    transcript.absorb_int(b"ipa/n", n)
    y = transcript.challenge_nonzero(b"ipa/y", group.scalar_field)
    return group.mul(Q, y)


def _round_challenge(transcript: Transcript, group: Group, L: Point, R: Point, F: FieldType) -> FieldElement:
    transcript.absorb_point(b"ipa/L", group, L)
    transcript.absorb_point(b"ipa/R", group, R)
    x = transcript.challenge_bits(b"ipa/x", CHALLENGE_BITS)
    while x == 0:
        x = transcript.challenge_bits(b"ipa/x", CHALLENGE_BITS)
    return F(x)


def folding_coefficients(challenges: Sequence[FieldElement], F: FieldType) -> List[FieldElement]:
    """s with G_final = <s, G>, for the round challenges in proof order."""
    s = [F.one()]
    for x in challenges:
        s = [c for v in s for c in (v, v * x)]
    return s


@dataclass(frozen=True)
class InnerProductProof:
    L: Tuple[Point, ...]
    R: Tuple[Point, ...]
    a: FieldElement

    @classmethod
    def prove(
        cls,
        group: Group,
        generators: Sequence[Point],
        Q: Point,
        comm: Point,
        a_vec: Sequence[FieldElement],
        b_vec: Sequence[FieldElement],
        value: FieldElement,
        transcript: Transcript,
    ) -> "InnerProductProof":
        """Prove <a_vec, b_vec> = value for comm = <a_vec, generators>.

        Args:
            group: Group of the commitment
            generators: First len(a_vec) commitment generators
            Q: Independent generator for the inner product
            comm: Commitment to a_vec
            a_vec: Committed vector, power-of-two length
            b_vec: Public vector
            value: <a_vec, b_vec>
            transcript: Fiat-Shamir transcript
        """
        n = len(a_vec)
        log2(n)  # raises unless n is a power of two
        if len(b_vec) != n or len(generators) < n:
            raise ValueError("IPA vectors and generators must have matching lengths")
        F = group.scalar_field
        Qy = _bind_statement(transcript, group, comm, value, n, Q)

        a, b, G = list(a_vec), list(b_vec), list(generators[:n])
        Ls, Rs = [], []
        while len(a) > 1:
            half = len(a) // 2
            a_lo, a_hi, b_lo, b_hi = a[:half], a[half:], b[:half], b[half:]
            L = group.msm(G[half:] + [Qy], a_lo + [inner_product(a_lo, b_hi, F)])
            R = group.msm(G[:half] + [Qy], a_hi + [inner_product(a_hi, b_lo, F)])
            x = _round_challenge(transcript, group, L, R, F)
            Ls.append(L)
            Rs.append(R)
            a = [x * lo + hi for lo, hi in zip(a_lo, a_hi)]
            b = [lo + x * hi for lo, hi in zip(b_lo, b_hi)]
            G = group.fold_points(G[:half], G[half:], x)
        return cls(L=tuple(Ls), R=tuple(Rs), a=a[0])

    def verify(
        self,
        group: Group,
        generators: Sequence[Point],
        Q: Point,
        comm: Point,
        b_vec: Sequence[FieldElement],
        value: FieldElement,
        transcript: Transcript,
    ) -> None:
        """Check the opening.

        Raises:
            VerificationFailure: If the proof has the wrong size or does not verify
        """
        n = len(b_vec)
        rounds = log2(n)
        if len(self.L) != rounds or len(self.R) != rounds:
            raise VerificationFailure(f"IPA has {len(self.L)} rounds, expected {rounds}")
        if len(generators) < n:
            raise VerificationFailure(f"IPA needs {n} generators, key has {len(generators)}")
        F = group.scalar_field
        Qy = _bind_statement(transcript, group, comm, value, n, Q)

        P = group.add(comm, group.mul(Qy, value))
        challenges = []
        for L, R in zip(self.L, self.R):
            x = _round_challenge(transcript, group, L, R, F)
            challenges.append(x)
            P = group.msm([P, L, R], [x, x * x, F.one()])

        s = folding_coefficients(challenges, F)
        b_final = inner_product(s, list(b_vec), F)
        expected = group.msm(list(generators[:n]) + [Qy], [self.a * c for c in s] + [self.a * b_final])
        if not group.eq(P, expected):
            raise VerificationFailure("Inner-product argument does not verify")


__all__ = ["InnerProductProof", "folding_coefficients", "CHALLENGE_BITS"]
