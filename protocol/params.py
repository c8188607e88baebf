"""Public Parameter Builder.

Public parameters are a pure function of the step constraint system and the
curve cycle: the two augmented circuits (the step function on the primary
curve's scalar field, the identity function on the other), their shapes,
Pedersen commitment keys on both curves and a digest binding them.
Generators come from hash-to-curve, so building twice gives identical
parameters.
"""

from dataclasses import dataclass
from typing import Tuple

import blake3

from constraints.augmented import (
    SECONDARY_ARITY,
    AugmentedCircuit,
    CircomStepCircuit,
    IdentityStepCircuit,
)
from constraints.r1cs import ConstraintSystem
from constraints.ro import digest_to_scalar
from constraints.shape import R1CSShape
from primitives.commitment import CommitmentKey
from primitives.curves import BN254_GRUMPKIN, CurveCycle
from primitives.errors import ParameterMismatch

CK_LABEL_PRIMARY = b"ivc/ck/primary"
CK_LABEL_SECONDARY = b"ivc/ck/secondary"


def commitment_key_size(shape: R1CSShape) -> int:
    """Generators needed to commit to W, E and T in the padded layout."""
    return max(shape.num_vars_padded, shape.num_cons_padded)


@dataclass(frozen=True)
class PublicParams:
    """Parameters shared by the folding engine, compressor and verifier.

    Attributes:
        cycle: Curve cycle
        step_cs: The user's step constraint system
        circuit_primary: Augmented step circuit, folding secondary instances
        circuit_secondary: Augmented identity circuit, folding primary instances
        cs_primary, cs_secondary: Their constraint systems
        shape_primary, shape_secondary: Their folding shapes
        ck_primary: Pedersen key on the primary curve
        ck_secondary: Pedersen key on the secondary curve
        digest: blake3 digest of everything above
    """

    cycle: CurveCycle
    step_cs: ConstraintSystem
    circuit_primary: AugmentedCircuit
    circuit_secondary: AugmentedCircuit
    cs_primary: ConstraintSystem
    cs_secondary: ConstraintSystem
    shape_primary: R1CSShape
    shape_secondary: R1CSShape
    ck_primary: CommitmentKey
    ck_secondary: CommitmentKey
    digest: bytes

    @classmethod
    def build(cls, constraint_system: ConstraintSystem, cycle: CurveCycle = BN254_GRUMPKIN) -> "PublicParams":
        """Derive public parameters for a step circuit.

        Raises:
            ParameterMismatch: If the circuit's prime is not the cycle's
                primary scalar field or its outputs do not match its inputs
        """
        if constraint_system.prime != cycle.primary.order:
            raise ParameterMismatch(
                f"R1CS prime {constraint_system.prime} is not the {cycle.primary.name} scalar field")
        if constraint_system.num_inputs != constraint_system.num_outputs:
            raise ParameterMismatch(
                f"Step circuit has {constraint_system.num_inputs} inputs but "
                f"{constraint_system.num_outputs} outputs")
        if constraint_system.num_outputs == 0:
            raise ParameterMismatch("Step circuit has no public state")

        circuit_primary = AugmentedCircuit(cycle.secondary, True, CircomStepCircuit(constraint_system))
        circuit_secondary = AugmentedCircuit(cycle.primary, False, IdentityStepCircuit(SECONDARY_ARITY))
        cs_primary = circuit_primary.shape_constraint_system()
        cs_secondary = circuit_secondary.shape_constraint_system()
        shape_primary = R1CSShape.from_constraint_system(cs_primary, cycle.primary.scalar_field)
        shape_secondary = R1CSShape.from_constraint_system(cs_secondary, cycle.secondary.scalar_field)
        ck_primary = CommitmentKey.setup(cycle.primary, CK_LABEL_PRIMARY, commitment_key_size(shape_primary))
        ck_secondary = CommitmentKey.setup(cycle.secondary, CK_LABEL_SECONDARY, commitment_key_size(shape_secondary))

        h = blake3.blake3(b"ivc/public-params")
        h.update(cycle.digest_bytes())
        h.update(shape_primary.digest_bytes())
        h.update(shape_secondary.digest_bytes())
        h.update(len(ck_primary).to_bytes(8, "little") + ck_primary.label)
        h.update(len(ck_secondary).to_bytes(8, "little") + ck_secondary.label)

        return cls(
            cycle=cycle,
            step_cs=constraint_system,
            circuit_primary=circuit_primary,
            circuit_secondary=circuit_secondary,
            cs_primary=cs_primary,
            cs_secondary=cs_secondary,
            shape_primary=shape_primary,
            shape_secondary=shape_secondary,
            ck_primary=ck_primary,
            ck_secondary=ck_secondary,
            digest=h.digest(),
        )

    @property
    def arity(self) -> int:
        """Length of the carried state z_i."""
        return self.step_cs.num_outputs

    @property
    def params_scalar(self) -> int:
        """The digest as the field element both circuits hash with their state."""
        return digest_to_scalar(self.digest)

    def num_constraints(self) -> Tuple[int, int]:
        return self.shape_primary.num_cons, self.shape_secondary.num_cons

    def num_variables(self) -> Tuple[int, int]:
        return self.shape_primary.num_vars, self.shape_secondary.num_vars


def build_public_params(constraint_system: ConstraintSystem, cycle: CurveCycle = BN254_GRUMPKIN) -> PublicParams:
    return PublicParams.build(constraint_system, cycle)


__all__ = ["PublicParams", "build_public_params", "commitment_key_size"]
