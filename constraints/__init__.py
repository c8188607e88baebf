"""Constraint systems: circom R1CS model, folding shapes, augmented circuits."""

from constraints.adder import adder_constraint_system
from constraints.augmented import (
    AugmentedCircuit,
    AugmentedInputs,
    CircomStepCircuit,
    IdentityStepCircuit,
    StepCircuit,
)
from constraints.builder import ConstraintBuilder, LinearCombination
from constraints.r1cs import Constraint, ConstraintSystem, load, to_json
from constraints.shape import (
    R1CSInstance,
    R1CSShape,
    R1CSWitness,
    RelaxedR1CSInstance,
    RelaxedR1CSWitness,
)

__all__ = [
    "Constraint",
    "ConstraintSystem",
    "load",
    "to_json",
    "R1CSShape",
    "R1CSInstance",
    "R1CSWitness",
    "RelaxedR1CSInstance",
    "RelaxedR1CSWitness",
    "ConstraintBuilder",
    "LinearCombination",
    "StepCircuit",
    "CircomStepCircuit",
    "IdentityStepCircuit",
    "AugmentedInputs",
    "AugmentedCircuit",
    "adder_constraint_system",
]
