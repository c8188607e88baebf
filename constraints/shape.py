"""Folding view of a constraint system: R1CS shapes and (relaxed) instances.

A shape reorders circom's wires into z = (W, u, X):

    W  auxiliary wires (private inputs and internal signals)
    u  the slot of circom's constant-one wire; 1 for strict instances
    X  public wires (outputs then inputs)

A relaxed instance satisfies A·z ∘ B·z = u·C·z + E and is closed under the
random linear combinations of the folding scheme.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from constraints.r1cs import ConstraintSystem
from primitives.commitment import CommitmentKey
from primitives.curves import Group, Point
from primitives.errors import ParameterMismatch, VerificationFailure
from primitives.field import FieldElement, FieldType
from primitives.polynomial import next_pow2

SparseMatrix = Tuple[Tuple[Tuple[int, FieldElement], ...], ...]


# --- Shape ---


@dataclass(frozen=True)
class R1CSShape:
    """Sparse A, B, C over columns of z = (W, u, X).

    Attributes:
        field: Scalar field of the circuit
        num_cons: Number of constraints
        num_vars: Length of W
        num_io: Length of X
        A, B, C: Per-row sparse (column, coefficient) entries
    """

    field: FieldType
    num_cons: int
    num_vars: int
    num_io: int
    A: SparseMatrix
    B: SparseMatrix
    C: SparseMatrix

    @classmethod
    def from_constraint_system(cls, cs: ConstraintSystem, field: FieldType) -> "R1CSShape":
        if cs.prime != field.field_modulus:
            raise ParameterMismatch(
                f"Constraint system prime {cs.prime} is not the modulus of the circuit field")
        num_io = cs.num_public_inputs
        num_vars = cs.num_auxiliary_variables

        def col(wire: int) -> int:
            if wire == 0:
                return num_vars
            if wire <= num_io:
                return num_vars + wire
            return wire - 1 - num_io

        mats = ([], [], [])
        for constraint in cs.rows():
            for mat, row in zip(mats, constraint):
                mat.append(tuple((col(wire), field(coeff)) for wire, coeff in row))
        return cls(
            field=field,
            num_cons=cs.num_constraints(),
            num_vars=num_vars,
            num_io=num_io,
            A=tuple(mats[0]),
            B=tuple(mats[1]),
            C=tuple(mats[2]),
        )

    @property
    def num_cons_padded(self) -> int:
        return next_pow2(max(self.num_cons, 2))

    @property
    def num_vars_padded(self) -> int:
        return next_pow2(max(self.num_vars, self.num_io + 1, 2))

    def padded_col(self, c: int) -> int:
        """Column index in the padded layout z' = (W, 0.., u, X, 0..) of length 2 * num_vars_padded."""
        return c if c < self.num_vars else c + self.num_vars_padded - self.num_vars

    def split_witness(self, w: Sequence) -> Tuple[List[FieldElement], List[FieldElement]]:
        """Split a circom-ordered witness into (W, X)."""
        F = self.field
        X = [F(int(v)) for v in w[1:1 + self.num_io]]
        W = [F(int(v)) for v in w[1 + self.num_io:]]
        return W, X

    def multiply_vec(self, z: Sequence[FieldElement]) -> Tuple[List[FieldElement], List[FieldElement], List[FieldElement]]:
        if len(z) != self.num_vars + 1 + self.num_io:
            raise ParameterMismatch(
                f"z has length {len(z)}, expected {self.num_vars + 1 + self.num_io}")
        zero = self.field.zero()

        def mul(mat: SparseMatrix) -> List[FieldElement]:
            return [sum((coeff * z[c] for c, coeff in row), zero) for row in mat]

        return mul(self.A), mul(self.B), mul(self.C)

    # --- Satisfiability ---

    def check_strict(self, ck: CommitmentKey, U: "R1CSInstance", W: "R1CSWitness") -> None:
        """Check a strict instance against its witness.

        Raises:
            VerificationFailure: On length, constraint or commitment mismatch
        """
        if len(W.W) != self.num_vars or len(U.X) != self.num_io:
            raise VerificationFailure("Strict instance has the wrong dimensions")
        Az, Bz, Cz = self.multiply_vec(list(W.W) + [self.field.one()] + list(U.X))
        for i, (a, b, c) in enumerate(zip(Az, Bz, Cz)):
            if a * b != c:
                raise VerificationFailure(f"Strict instance violates constraint {i}")
        if not ck.group.eq(ck.commit(W.W), U.comm_W):
            raise VerificationFailure("Witness commitment does not open")

    def check_relaxed(self, ck: CommitmentKey, U: "RelaxedR1CSInstance", W: "RelaxedR1CSWitness") -> None:
        """Check Az ∘ Bz = u·Cz + E and both commitments.

        Raises:
            VerificationFailure: On length, constraint or commitment mismatch
        """
        if len(W.W) != self.num_vars or len(W.E) != self.num_cons or len(U.X) != self.num_io:
            raise VerificationFailure("Relaxed instance has the wrong dimensions")
        Az, Bz, Cz = self.multiply_vec(list(W.W) + [U.u] + list(U.X))
        for i, (a, b, c, e) in enumerate(zip(Az, Bz, Cz, W.E)):
            if a * b != U.u * c + e:
                raise VerificationFailure(f"Relaxed instance violates constraint {i}")
        group = ck.group
        if not group.eq(ck.commit(W.W), U.comm_W):
            raise VerificationFailure("Running witness commitment does not open")
        if not group.eq(ck.commit(W.E), U.comm_E):
            raise VerificationFailure("Error vector commitment does not open")

    def commit_T(
        self,
        ck: CommitmentKey,
        U1: "RelaxedR1CSInstance",
        W1: "RelaxedR1CSWitness",
        U2: "R1CSInstance",
        W2: "R1CSWitness",
    ) -> Tuple[List[FieldElement], Point]:
        """Cross term T = Az1∘Bz2 + Az2∘Bz1 - u1·Cz2 - Cz1 and its commitment."""
        one = self.field.one()
        Az1, Bz1, Cz1 = self.multiply_vec(list(W1.W) + [U1.u] + list(U1.X))
        Az2, Bz2, Cz2 = self.multiply_vec(list(W2.W) + [one] + list(U2.X))
        T = [
            a1 * b2 + a2 * b1 - U1.u * c2 - c1
            for a1, b1, c1, a2, b2, c2 in zip(Az1, Bz1, Cz1, Az2, Bz2, Cz2)
        ]
        return T, ck.commit(T)

    def digest_bytes(self) -> bytes:
        out = bytearray()
        for v in (self.field.field_modulus, self.num_cons, self.num_vars, self.num_io):
            out += v.to_bytes(32, "big")
        for mat in (self.A, self.B, self.C):
            for row in mat:
                out += len(row).to_bytes(4, "big")
                for c, coeff in row:
                    out += c.to_bytes(4, "big") + int(coeff).to_bytes(32, "big")
        return bytes(out)


# --- Instances & Witnesses ---


@dataclass(frozen=True)
class R1CSWitness:
    W: Tuple[FieldElement, ...]


@dataclass(frozen=True)
class R1CSInstance:
    comm_W: Point
    X: Tuple[FieldElement, ...]

    @classmethod
    def commit(cls, ck: CommitmentKey, W: R1CSWitness, X: Sequence[FieldElement]) -> "R1CSInstance":
        return cls(comm_W=ck.commit(W.W), X=tuple(X))


@dataclass(frozen=True)
class RelaxedR1CSWitness:
    W: Tuple[FieldElement, ...]
    E: Tuple[FieldElement, ...]

    @classmethod
    def default(cls, shape: R1CSShape) -> "RelaxedR1CSWitness":
        zero = shape.field.zero()
        return cls(W=(zero,) * shape.num_vars, E=(zero,) * shape.num_cons)

    @classmethod
    def from_r1cs_witness(cls, shape: R1CSShape, W: R1CSWitness) -> "RelaxedR1CSWitness":
        """Strict witness as a relaxed one with E = 0."""
        return cls(W=tuple(W.W), E=(shape.field.zero(),) * shape.num_cons)

    def fold(self, W2: R1CSWitness, T: Sequence[FieldElement], r: FieldElement) -> "RelaxedR1CSWitness":
        return RelaxedR1CSWitness(
            W=tuple(a + r * b for a, b in zip(self.W, W2.W)),
            E=tuple(e + r * t for e, t in zip(self.E, T)),
        )


@dataclass(frozen=True)
class RelaxedR1CSInstance:
    comm_W: Point
    comm_E: Point
    u: FieldElement
    X: Tuple[FieldElement, ...]

    @classmethod
    def default(cls, group: Group, shape: R1CSShape) -> "RelaxedR1CSInstance":
        zero = shape.field.zero()
        return cls(
            comm_W=group.identity(),
            comm_E=group.identity(),
            u=zero,
            X=(zero,) * shape.num_io,
        )

    @classmethod
    def from_r1cs_instance(cls, group: Group, shape: R1CSShape, U: R1CSInstance) -> "RelaxedR1CSInstance":
        """Strict instance as a relaxed one with u = 1 and comm_E the identity."""
        return cls(comm_W=U.comm_W, comm_E=group.identity(), u=shape.field.one(), X=tuple(U.X))

    def fold(self, group: Group, U2: R1CSInstance, comm_T: Point, r: FieldElement) -> "RelaxedR1CSInstance":
        """U = U1 + r·U2 with u2 = 1 and E2 = 0, so comm_E picks up only r·comm_T."""
        return RelaxedR1CSInstance(
            comm_W=group.add(self.comm_W, group.mul(U2.comm_W, r)),
            comm_E=group.add(self.comm_E, group.mul(comm_T, r)),
            u=self.u + r,
            X=tuple(a + r * b for a, b in zip(self.X, U2.X)),
        )


__all__ = [
    "R1CSShape",
    "R1CSInstance",
    "R1CSWitness",
    "RelaxedR1CSInstance",
    "RelaxedR1CSWitness",
]
