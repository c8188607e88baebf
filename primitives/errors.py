"""Error taxonomy shared by every stage of the IVC pipeline.

All errors derive from IVCError so callers can catch the whole family.
Value-shaped errors also derive from ValueError and executor failures from
RuntimeError, so code that only knows the builtin exceptions still works.
"""

from typing import Optional


class IVCError(Exception):
    """Base class for all pipeline errors."""


class MalformedInput(IVCError, ValueError):
    """A constraint system, witness file or proof encoding could not be parsed."""


class EncodingError(IVCError, ValueError):
    """A field element or step input could not be converted between encodings."""


class WitnessGenerationError(IVCError, RuntimeError):
    """The external witness executor failed or produced an unusable witness."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class StepConstraintViolation(IVCError):
    """A step witness does not satisfy A·w ∘ B·w = C·w."""

    def __init__(self, message: str, constraint_index: Optional[int] = None):
        super().__init__(message)
        self.constraint_index = constraint_index


class ParameterMismatch(IVCError, ValueError):
    """Artifacts were built for different public parameters or shapes."""


class PublicIOMismatch(IVCError):
    """Claimed public inputs or outputs disagree with the accumulator."""


class ProvingError(IVCError):
    """The compression prover could not produce a proof."""


class VerificationFailure(IVCError):
    """A proof or accumulator was cryptographically rejected."""


__all__ = [
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
