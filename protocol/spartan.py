"""Spartan-style SNARK for a relaxed R1CS instance.

Proves knowledge of (W, E) with Az∘Bz = u·Cz + E for z = (W, u, X) and
commitments comm_W, comm_E, in the padded layout

    z' = (W, 0.., u, X, 0..)      |z'| = 2 · num_vars_padded

so that z'(y) = (1 - y_0)·W(y_1..) + y_0·(u, X)(y_1..).

    outer:  0 = sum_x eq(tau, x)·(Az(x)·Bz(x) - u·Cz(x) - E(x))       degree 3
    inner:  Az(rx) + c·Bz(rx) + c²·Cz(rx) = sum_y M_rx(y)·z'(y)       degree 2

E(rx) and W(ry_1..) are opened with the inner-product argument.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from constraints.shape import R1CSShape, RelaxedR1CSInstance, RelaxedR1CSWitness
from primitives.commitment import CommitmentKey
from primitives.curves import Group, Point
from primitives.errors import VerificationFailure
from primitives.field import FieldElement, FieldType
from primitives.polynomial import eq_eval, eq_evals, log2, multilinear_eval
from primitives.transcript import Transcript
from protocol.ipa import InnerProductProof
from protocol.sumcheck import SumcheckProof


def absorb_relaxed(transcript: Transcript, group: Group, U: RelaxedR1CSInstance) -> None:
    transcript.absorb_point(b"U.comm_W", group, U.comm_W)
    transcript.absorb_point(b"U.comm_E", group, U.comm_E)
    transcript.absorb_scalar(b"U.u", U.u)
    transcript.absorb_scalars(b"U.X", U.X)


def _padded_z(shape: R1CSShape, W: Sequence[FieldElement], u: FieldElement,
              X: Sequence[FieldElement]) -> List[FieldElement]:
    zero = shape.field.zero()
    n = shape.num_vars_padded
    return (list(W) + [zero] * (n - len(W))
            + [u] + list(X) + [zero] * (n - 1 - len(X)))


def _padded_vec(values: Sequence[FieldElement], n: int, field: FieldType) -> List[FieldElement]:
    return list(values) + [field.zero()] * (n - len(values))


def _mat_vec(shape: R1CSShape, mat, z: Sequence[FieldElement], m: int) -> List[FieldElement]:
    zero = shape.field.zero()
    out = [sum((coeff * z[shape.padded_col(c)] for c, coeff in row), zero) for row in mat]
    return out + [zero] * (m - len(out))


def _bind_rows(shape: R1CSShape, eq_rx: Sequence[FieldElement], c: FieldElement) -> List[FieldElement]:
    """M_rx(y) = sum_x eq(rx, x)·(A + c·B + c²·C)(x, y) as a table over y."""
    F = shape.field
    table = [F.zero()] * (2 * shape.num_vars_padded)
    for scale, mat in ((F.one(), shape.A), (c, shape.B), (c * c, shape.C)):
        for row_idx, row in enumerate(mat):
            weight = scale * eq_rx[row_idx]
            for col, coeff in row:
                j = shape.padded_col(col)
                table[j] = table[j] + coeff * weight
    return table


def _eval_matrices(shape: R1CSShape, eq_rx: Sequence[FieldElement], eq_ry: Sequence[FieldElement],
                   c: FieldElement) -> FieldElement:
    """(A + c·B + c²·C)(rx, ry) from the sparse entries."""
    F = shape.field
    acc = F.zero()
    for scale, mat in ((F.one(), shape.A), (c, shape.B), (c * c, shape.C)):
        for row_idx, row in enumerate(mat):
            for col, coeff in row:
                acc = acc + scale * coeff * eq_rx[row_idx] * eq_ry[shape.padded_col(col)]
    return acc


@dataclass(frozen=True)
class RelaxedR1CSSNARK:
    """Succinct proof that a relaxed R1CS instance is satisfiable.

    Attributes:
        sc_outer: Outer (cubic) sum-check
        claims_outer: (Az(rx), Bz(rx), Cz(rx))
        eval_E: E(rx)
        sc_inner: Inner (quadratic) sum-check
        eval_W: W(ry[1:])
        ipa_E: Opening of comm_E at rx
        ipa_W: Opening of comm_W at ry[1:]
    """

    sc_outer: SumcheckProof
    claims_outer: Tuple[FieldElement, FieldElement, FieldElement]
    eval_E: FieldElement
    sc_inner: SumcheckProof
    eval_W: FieldElement
    ipa_E: InnerProductProof
    ipa_W: InnerProductProof

    @classmethod
    def prove(
        cls,
        ck: CommitmentKey,
        Q: Point,
        shape: R1CSShape,
        U: RelaxedR1CSInstance,
        W: RelaxedR1CSWitness,
        transcript: Transcript,
    ) -> "RelaxedR1CSSNARK":
        group = ck.group
        F = shape.field
        m = shape.num_cons_padded
        n = shape.num_vars_padded
        absorb_relaxed(transcript, group, U)

        # outer sum-check
        z = _padded_z(shape, W.W, U.u, U.X)
        Az = _mat_vec(shape, shape.A, z, m)
        Bz = _mat_vec(shape, shape.B, z, m)
        Cz = _mat_vec(shape, shape.C, z, m)
        E = _padded_vec(W.E, m, F)
        num_rounds_x = log2(m)
        tau = transcript.challenge_vector(b"spartan/tau", F, num_rounds_x)
        u = U.u
        sc_outer, rx, finals = SumcheckProof.prove(
            F.zero(), num_rounds_x, 3, [eq_evals(tau, F), Az, Bz, Cz, E],
            lambda eq, a, b, c, e: eq * (a * b - u * c - e),
            transcript, F)
        _, Az_rx, Bz_rx, Cz_rx, eval_E = finals
        transcript.absorb_scalars(b"spartan/claims_outer", [Az_rx, Bz_rx, Cz_rx, eval_E])

        # inner sum-check
        c = transcript.challenge_scalar(b"spartan/c", F)
        claim_inner = Az_rx + c * Bz_rx + c * c * Cz_rx
        eq_rx = eq_evals(rx, F)
        M_rx = _bind_rows(shape, eq_rx, c)
        num_rounds_y = log2(2 * n)
        sc_inner, ry, _ = SumcheckProof.prove(
            claim_inner, num_rounds_y, 2, [M_rx, z],
            lambda mv, zv: mv * zv,
            transcript, F)
        W_pad = _padded_vec(W.W, n, F)
        eq_ry_tail = eq_evals(ry[1:], F)
        eval_W = sum((w * e for w, e in zip(W_pad, eq_ry_tail)), F.zero())
        transcript.absorb_scalar(b"spartan/eval_W", eval_W)

        # openings
        gens = ck.generators
        ipa_E = InnerProductProof.prove(group, gens, Q, U.comm_E, E, eq_rx, eval_E, transcript)
        ipa_W = InnerProductProof.prove(group, gens, Q, U.comm_W, W_pad, eq_ry_tail, eval_W, transcript)

        return cls(
            sc_outer=sc_outer,
            claims_outer=(Az_rx, Bz_rx, Cz_rx),
            eval_E=eval_E,
            sc_inner=sc_inner,
            eval_W=eval_W,
            ipa_E=ipa_E,
            ipa_W=ipa_W,
        )

    def verify(
        self,
        ck: CommitmentKey,
        Q: Point,
        shape: R1CSShape,
        U: RelaxedR1CSInstance,
        transcript: Transcript,
    ) -> None:
        """Verify against a relaxed instance.

        Raises:
            VerificationFailure: If any check fails
        """
        group = ck.group
        F = shape.field
        m = shape.num_cons_padded
        n = shape.num_vars_padded
        if len(U.X) != shape.num_io:
            raise VerificationFailure("Instance has the wrong number of public values")
        absorb_relaxed(transcript, group, U)

        num_rounds_x = log2(m)
        tau = transcript.challenge_vector(b"spartan/tau", F, num_rounds_x)
        claim_outer, rx = self.sc_outer.verify(F.zero(), num_rounds_x, 3, transcript, F)
        Az_rx, Bz_rx, Cz_rx = self.claims_outer
        expected = eq_eval(tau, rx, F) * (Az_rx * Bz_rx - U.u * Cz_rx - self.eval_E)
        if claim_outer != expected:
            raise VerificationFailure("Outer sum-check final claim does not match")
        transcript.absorb_scalars(b"spartan/claims_outer", [Az_rx, Bz_rx, Cz_rx, self.eval_E])

        c = transcript.challenge_scalar(b"spartan/c", F)
        claim_inner = Az_rx + c * Bz_rx + c * c * Cz_rx
        num_rounds_y = log2(2 * n)
        claim_final, ry = self.sc_inner.verify(claim_inner, num_rounds_y, 2, transcript, F)
        io = [U.u] + list(U.X) + [F.zero()] * (n - 1 - len(U.X))
        eval_io = multilinear_eval(io, ry[1:], F)
        eval_z = (1 - ry[0]) * self.eval_W + ry[0] * eval_io
        eval_M = _eval_matrices(shape, eq_evals(rx, F), eq_evals(ry, F), c)
        if claim_final != eval_M * eval_z:
            raise VerificationFailure("Inner sum-check final claim does not match")
        transcript.absorb_scalar(b"spartan/eval_W", self.eval_W)

        gens = ck.generators
        self.ipa_E.verify(group, gens, Q, U.comm_E, eq_evals(rx, F), self.eval_E, transcript)
        self.ipa_W.verify(group, gens, Q, U.comm_W, eq_evals(ry[1:], F), self.eval_W, transcript)


__all__ = ["RelaxedR1CSSNARK"]
