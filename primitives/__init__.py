"""Primitives - fields, curves, commitments and Fiat-Shamir."""

from primitives.commitment import CommitmentKey
from primitives.curves import (
    BN254,
    BN254_GRUMPKIN,
    CURVE_CYCLES,
    GRUMPKIN,
    CurveCycle,
    Group,
    Point,
)
from primitives.errors import (
    EncodingError,
    IVCError,
    MalformedInput,
    ParameterMismatch,
    ProvingError,
    PublicIOMismatch,
    StepConstraintViolation,
    VerificationFailure,
    WitnessGenerationError,
)
from primitives.field import (
    BN254_BASE_MODULUS,
    BN254_SCALAR_MODULUS,
    Fq,
    Fr,
    decimal_to_hex,
    field_for_modulus,
    hex_to_decimal,
    to_hex,
)
from primitives.poseidon import poseidon2_hash
from primitives.transcript import Transcript

__all__ = [
    # Field
    "Fr",
    "Fq",
    "BN254_SCALAR_MODULUS",
    "BN254_BASE_MODULUS",
    "field_for_modulus",
    "to_hex",
    "hex_to_decimal",
    "decimal_to_hex",
    # Curves
    "Group",
    "Point",
    "BN254",
    "GRUMPKIN",
    "CurveCycle",
    "BN254_GRUMPKIN",
    "CURVE_CYCLES",
    # Commitments, hashing & transcript
    "CommitmentKey",
    "poseidon2_hash",
    "Transcript",
    # Errors
    "IVCError",
    "MalformedInput",
    "EncodingError",
    "WitnessGenerationError",
    "StepConstraintViolation",
    "ParameterMismatch",
    "PublicIOMismatch",
    "ProvingError",
    "VerificationFailure",
]
