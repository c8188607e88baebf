"""Augmented circuits: a step function plus the verifier of one fold.

Each circuit of the cycle wraps a step function F and folds the other
circuit's last instance u into that circuit's running instance U. Points of
the other curve have coordinates in this circuit's native field; the scalars
u, X live in the other field and go through bignat.

    public IO = [u.X[1], H(params, i + 1, z0, F(zi), U')]

    base = (i == 0)
    if not base: u.X[0] == H(params, i, z0, zi, U)
    r    = fold_challenge(params, u, T)
    U'   = base ? U_base : U + r·u
    zi   = base ? z0 : zi

U_base is the default instance in the primary circuit (there is no
secondary instance yet) and u relaxed in the secondary circuit. u.X[0]
is the hash the other circuit published of this circuit's previous state,
so its public IO passes u.X[1] through to be checked one step later.

The constraint structure never depends on the assignment, so a synthesis
with AugmentedInputs.dummy() gives the shape every real step satisfies.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence, Tuple

from constraints import ecc
from constraints.bignat import limbs_from_bits, mul_add_mod, to_words, words_from_bits
from constraints.builder import LC, ConstraintBuilder
from constraints.ecc import AllocatedPoint, alloc_point, identity_point, point_elements, select_point
from constraints.r1cs import ConstraintSystem
from constraints.ro import (
    NUM_HASH_BITS,
    TOP_LIMB_BITS,
    TOP_LIMB_SHIFT,
    canonical_bits,
    fold_challenge_gadget,
    state_hash_gadget,
)
from constraints.shape import R1CSInstance, RelaxedR1CSInstance
from primitives.curves import Group, Point
from primitives.errors import ParameterMismatch

NUM_IO = 2
SECONDARY_ARITY = 1

HASH_SLACK_BITS = 4
"""Bits of a state hash above the 250 published ones."""

X_QUOTIENT_BITS = 128
U_QUOTIENT_BITS = 4

IDENTITY_COORDINATES = (0, 0, 1)


# --- Step Functions ---


class StepCircuit(ABC):
    """Step function F laid out inside an augmented circuit."""

    @property
    @abstractmethod
    def arity(self) -> int:
        pass

    @abstractmethod
    def synthesize(self, cb: ConstraintBuilder, z: Sequence[LC], witness: Optional[Sequence] = None) -> List[LC]:
        """Constrain F(z) and return it.

        Args:
            cb: Builder of the augmented circuit
            z: Current state
            witness: Step-specific assignment; None for shape extraction
        """


class CircomStepCircuit(StepCircuit):
    """A circom constraint system with its input wires bound to z.

    Wire 0 becomes the builder's constant one and every wire that is not an
    input gets a fresh slot, filled from a circom-ordered witness.
    """

    def __init__(self, cs: ConstraintSystem):
        self.cs = cs

    @property
    def arity(self) -> int:
        return self.cs.num_outputs

    def synthesize(self, cb: ConstraintBuilder, z: Sequence[LC], witness: Optional[Sequence] = None) -> List[LC]:
        cs = self.cs
        if len(z) != self.arity:
            raise ParameterMismatch(f"Step circuit takes {self.arity} state elements, got {len(z)}")
        if witness is not None and len(witness) != cs.num_variables():
            raise ParameterMismatch(
                f"Witness has {len(witness)} values, step circuit expects {cs.num_variables()}")
        inputs = cs.input_wires()
        wires: List[LC] = [cb.one()]
        for w in range(1, cs.num_variables()):
            if w in inputs:
                wires.append(z[w - inputs.start])
            else:
                wires.append(cb.alloc(int(witness[w]) if witness is not None else 0))

        def combine(row) -> LC:
            acc = cb.constant(0)
            for wire, coeff in row:
                acc = acc + wires[wire] * coeff
            return acc

        for a, b, c in cs.rows():
            cb.enforce(combine(a), combine(b), combine(c))
        return [wires[w] for w in cs.output_wires()]


class IdentityStepCircuit(StepCircuit):
    """F(z) = z; the secondary circuit's step function."""

    def __init__(self, arity: int = SECONDARY_ARITY):
        self._arity = arity

    @property
    def arity(self) -> int:
        return self._arity

    def synthesize(self, cb: ConstraintBuilder, z: Sequence[LC], witness: Optional[Sequence] = None) -> List[LC]:
        return list(z)


# --- Inputs ---


@dataclass(frozen=True)
class AugmentedInputs:
    """Assignment of one augmented step.

    Attributes:
        params: Public-parameter digest as a scalar
        i: Step counter
        z0: Initial state
        zi: Current state; z0 when None
        U: Other circuit's running instance; the default instance when None
        u: Other circuit's last instance; identity and zeros when None
        T: Cross-term commitment folding u into U; the identity when None
    """

    params: int
    i: int
    z0: Tuple[int, ...]
    zi: Optional[Tuple[int, ...]] = None
    U: Optional[RelaxedR1CSInstance] = None
    u: Optional[R1CSInstance] = None
    T: Optional[Point] = None

    @classmethod
    def dummy(cls, arity: int) -> "AugmentedInputs":
        return cls(params=0, i=0, z0=(0,) * arity)


class AllocatedRelaxed(NamedTuple):
    """Running instance in the circuit: u and X as (lo, hi) words."""

    W: AllocatedPoint
    E: AllocatedPoint
    u: List[LC]
    X: List[List[LC]]

    def elements(self) -> List[LC]:
        out = point_elements(self.W) + point_elements(self.E) + list(self.u)
        for words in self.X:
            out += words
        return out


class AllocatedStrict(NamedTuple):
    """Last instance in the circuit: X as little-endian bits."""

    W: AllocatedPoint
    X_bits: List[List[LC]]

    def elements(self, cb: ConstraintBuilder) -> List[LC]:
        return point_elements(self.W) + [cb.from_bits(bits) for bits in self.X_bits]


def _alloc_words(cb: ConstraintBuilder, value) -> List[LC]:
    return [cb.alloc(v) for v in to_words(int(value))]


def _alloc_relaxed(cb: ConstraintBuilder, group: Group, U: Optional[RelaxedR1CSInstance]) -> AllocatedRelaxed:
    if U is None:
        return AllocatedRelaxed(
            W=alloc_point(cb, IDENTITY_COORDINATES),
            E=alloc_point(cb, IDENTITY_COORDINATES),
            u=_alloc_words(cb, 0),
            X=[_alloc_words(cb, 0) for _ in range(NUM_IO)],
        )
    if len(U.X) != NUM_IO:
        raise ParameterMismatch(f"Running instance has {len(U.X)} public values, expected {NUM_IO}")
    return AllocatedRelaxed(
        W=alloc_point(cb, group.coordinates(U.comm_W)),
        E=alloc_point(cb, group.coordinates(U.comm_E)),
        u=_alloc_words(cb, U.u),
        X=[_alloc_words(cb, x) for x in U.X],
    )


def _alloc_strict(cb: ConstraintBuilder, group: Group, u: Optional[R1CSInstance]) -> AllocatedStrict:
    if u is None:
        coords, X = IDENTITY_COORDINATES, (0,) * NUM_IO
    else:
        if len(u.X) != NUM_IO:
            raise ParameterMismatch(f"Last instance has {len(u.X)} public values, expected {NUM_IO}")
        coords, X = group.coordinates(u.comm_W), u.X
    return AllocatedStrict(
        W=alloc_point(cb, coords),
        X_bits=[cb.alloc_bits(int(x), NUM_HASH_BITS) for x in X],
    )


# --- Circuit ---


class AugmentedCircuit:
    """One circuit of the cycle.

    Attributes:
        group: Group of the instances this circuit folds; its base field is
            the circuit's native field
        is_primary: Whether the base case starts from the default instance
        step: Step function
    """

    def __init__(self, group: Group, is_primary: bool, step: StepCircuit):
        self.group = group
        self.is_primary = is_primary
        self.step = step

    @property
    def modulus(self) -> int:
        return self.group.base_field.field_modulus

    @property
    def arity(self) -> int:
        return self.step.arity

    def synthesize(self, inputs: AugmentedInputs,
                   witness: Optional[Sequence] = None) -> Tuple[ConstraintSystem, List[int], Tuple[int, ...]]:
        """Lay out one step.

        Args:
            inputs: Assignment of the fold and the state
            witness: Step function assignment; None for shape extraction

        Returns:
            (constraint system, circom-ordered witness, next state)

        Raises:
            ParameterMismatch: If the state or instances have the wrong size
        """
        if len(inputs.z0) != self.arity or (inputs.zi is not None and len(inputs.zi) != self.arity):
            raise ParameterMismatch(f"Augmented circuit state has arity {self.arity}")
        group = self.group
        cb = ConstraintBuilder(self.modulus)

        params = cb.alloc(inputs.params)
        i = cb.alloc(inputs.i)
        z0 = [cb.alloc(int(v)) for v in inputs.z0]
        zi = [cb.alloc(int(v)) for v in (inputs.zi if inputs.zi is not None else inputs.z0)]
        U = _alloc_relaxed(cb, group, inputs.U)
        u = _alloc_strict(cb, group, inputs.u)
        T = alloc_point(cb, group.coordinates(inputs.T) if inputs.T is not None else IDENTITY_COORDINATES)

        base = cb.is_zero(i)
        self._check_state_hash(cb, base, params, i, z0, zi, U, u)

        r_bits = fold_challenge_gadget(cb, params, u.elements(cb), point_elements(T))
        U_fold = self._fold(cb, U, u, T, r_bits)
        U_base = self._base_instance(cb, u)
        U_new = AllocatedRelaxed(
            W=select_point(cb, base, U_base.W, U_fold.W),
            E=select_point(cb, base, U_base.E, U_fold.E),
            u=[cb.select(base, a, b) for a, b in zip(U_base.u, U_fold.u)],
            X=[[cb.select(base, a, b) for a, b in zip(xa, xb)] for xa, xb in zip(U_base.X, U_fold.X)],
        )

        z = [cb.select(base, a, b) for a, b in zip(z0, zi)]
        z_next = self.step.synthesize(cb, z, witness)

        h = state_hash_gadget(cb, params, i + 1, z0, z_next, U_new.elements())
        h_out = cb.from_bits(canonical_bits(cb, h)[:NUM_HASH_BITS])

        cb.inputize(cb.from_bits(u.X_bits[1]))
        cb.inputize(h_out)
        cs, w = cb.finalize(num_outputs=NUM_IO)
        return cs, w, tuple(v.value for v in z_next)

    def _check_state_hash(self, cb: ConstraintBuilder, base: LC, params: LC, i: LC, z0: List[LC],
                          zi: List[LC], U: AllocatedRelaxed, u: AllocatedStrict) -> None:
        """u.X[0] is the low 250 bits of H(params, i, z0, zi, U) unless base."""
        s = state_hash_gadget(cb, params, i, z0, zi, U.elements())
        slack = cb.alloc_bits(0 if base.value else s.value >> NUM_HASH_BITS, HASH_SLACK_BITS)
        x0_bits = u.X_bits[0]
        high = cb.from_bits(slack) * (1 << NUM_HASH_BITS)
        cb.enforce(cb.one() - base, s - cb.from_bits(x0_bits) - high, 0)

        # the recombined hash must be the canonical representative
        top = cb.from_bits(list(x0_bits[TOP_LIMB_SHIFT:]) + slack)
        cb.range_check(cb.constant((self.modulus >> TOP_LIMB_SHIFT) - 1) - top, TOP_LIMB_BITS)

    def _fold(self, cb: ConstraintBuilder, U: AllocatedRelaxed, u: AllocatedStrict, T: AllocatedPoint,
              r_bits: List[LC]) -> AllocatedRelaxed:
        m = self.group.order
        r = limbs_from_bits(cb, r_bits)
        return AllocatedRelaxed(
            W=ecc.add(cb, U.W, ecc.scalar_mul(cb, u.W, r_bits)),
            E=ecc.add(cb, U.E, ecc.scalar_mul(cb, T, r_bits)),
            u=mul_add_mod(cb, U.u, [cb.constant(1)], r, m, U_QUOTIENT_BITS),
            X=[
                mul_add_mod(cb, words, limbs_from_bits(cb, bits), r, m, X_QUOTIENT_BITS)
                for words, bits in zip(U.X, u.X_bits)
            ],
        )

    def _base_instance(self, cb: ConstraintBuilder, u: AllocatedStrict) -> AllocatedRelaxed:
        if self.is_primary:
            zero = [cb.constant(0), cb.constant(0)]
            return AllocatedRelaxed(
                W=identity_point(cb),
                E=identity_point(cb),
                u=zero,
                X=[zero] * NUM_IO,
            )
        return AllocatedRelaxed(
            W=u.W,
            E=identity_point(cb),
            u=[cb.constant(1), cb.constant(0)],
            X=[words_from_bits(cb, bits) for bits in u.X_bits],
        )

    def shape_constraint_system(self) -> ConstraintSystem:
        """Constraint system of a step, from a synthesis with placeholder values."""
        cs, _, _ = self.synthesize(AugmentedInputs.dummy(self.arity))
        return cs


__all__ = [
    "NUM_IO",
    "SECONDARY_ARITY",
    "StepCircuit",
    "CircomStepCircuit",
    "IdentityStepCircuit",
    "AugmentedInputs",
    "AugmentedCircuit",
]
