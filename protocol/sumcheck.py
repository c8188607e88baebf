"""Sum-check protocol over multilinear tables.

The prover proves sum_{x in {0,1}^n} g(p_1(x), ..., p_k(x)) = claim for a
combination g of degree d, binding the most significant variable first.
Each round polynomial is sent as its evaluations at 0, 1, ..., d.
"""

from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

from primitives.errors import VerificationFailure
from primitives.field import FieldElement, FieldType
from primitives.polynomial import bind_top, interpolate_at
from primitives.transcript import Transcript

CombineFn = Callable[..., FieldElement]


@dataclass(frozen=True)
class SumcheckProof:
    """Round polynomials as evaluations at 0..degree."""

    round_polys: Tuple[Tuple[FieldElement, ...], ...]

    @classmethod
    def prove(
        cls,
        claim: FieldElement,
        num_rounds: int,
        degree: int,
        tables: Sequence[Sequence[FieldElement]],
        combine: CombineFn,
        transcript: Transcript,
        field: FieldType,
    ) -> Tuple["SumcheckProof", List[FieldElement], List[FieldElement]]:
        """Run the prover.

        Args:
            claim: Claimed sum
            num_rounds: Number of variables n; every table has 2^n entries
            degree: Degree of `combine` in each variable
            tables: Multilinear tables p_1..p_k
            combine: g(p_1(x), ..., p_k(x))
            transcript: Fiat-Shamir transcript
            field: Scalar field

        Returns:
            (proof, challenges r, final evaluations p_i(r))
        """
        tables = [list(t) for t in tables]
        for t in tables:
            if len(t) != 1 << num_rounds:
                raise ValueError(f"Table of size {len(t)} does not have {num_rounds} variables")
        polys = []
        challenges = []
        for _ in range(num_rounds):
            half = len(tables[0]) // 2
            evals = []
            for point in range(degree + 1):
                acc = field.zero()
                for i in range(half):
                    vals = [t[i] + point * (t[i + half] - t[i]) for t in tables]
                    acc = acc + combine(*vals)
                evals.append(acc)
            transcript.absorb_scalars(b"sumcheck/round", evals)
            r = transcript.challenge_scalar(b"sumcheck/r", field)
            challenges.append(r)
            polys.append(tuple(evals))
            claim = interpolate_at(evals, r, field)
            tables = [bind_top(t, r) for t in tables]
        return cls(round_polys=tuple(polys)), challenges, [t[0] for t in tables]

    def verify(
        self,
        claim: FieldElement,
        num_rounds: int,
        degree: int,
        transcript: Transcript,
        field: FieldType,
    ) -> Tuple[FieldElement, List[FieldElement]]:
        """Check the round consistency.

        Returns:
            (final claim g(p(r)), challenges r); the caller checks the final claim

        Raises:
            VerificationFailure: On a malformed or inconsistent round polynomial
        """
        if len(self.round_polys) != num_rounds:
            raise VerificationFailure(
                f"Sum-check has {len(self.round_polys)} rounds, expected {num_rounds}")
        challenges = []
        for idx, evals in enumerate(self.round_polys):
            if len(evals) != degree + 1:
                raise VerificationFailure(f"Sum-check round {idx} polynomial has the wrong degree")
            if evals[0] + evals[1] != claim:
                raise VerificationFailure(f"Sum-check round {idx} does not sum to the claim")
            transcript.absorb_scalars(b"sumcheck/round", evals)
            r = transcript.challenge_scalar(b"sumcheck/r", field)
            challenges.append(r)
            claim = interpolate_at(evals, r, field)
        return claim, challenges


__all__ = ["SumcheckProof"]
