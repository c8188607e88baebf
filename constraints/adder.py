"""Toy step circuit: (x, y) -> (y, x + y + adder).

Wires: [1, out0, out1, x, y, adder]

    1 * y               = out0
    1 * (x + y + adder) = out1
"""

from constraints.r1cs import Constraint, ConstraintSystem
from primitives.field import BN254_SCALAR_MODULUS

ONE, OUT0, OUT1, X, Y, ADDER = range(6)


def adder_constraint_system() -> ConstraintSystem:
    return ConstraintSystem(
        prime=BN254_SCALAR_MODULUS,
        num_outputs=2,
        num_public_inputs=4,
        num_private_inputs=1,
        num_auxiliary_variables=1,
        constraints=(
            Constraint(a=((ONE, 1),), b=((Y, 1),), c=((OUT0, 1),)),
            Constraint(a=((ONE, 1),), b=((X, 1), (Y, 1), (ADDER, 1)), c=((OUT1, 1),)),
        ),
    )
