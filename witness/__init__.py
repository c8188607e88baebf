"""Witness Generator Adapter.

Turns (constraint system, step public input, private input, generator
reference) into a witness vector. The generator reference selects one of
three executors by declared kind or, when no kind is declared, by the
artifact itself:

    callable           -> PYTHON (in-process step function)
    name in STEP_MODULES -> PYTHON (registered step function)
    path ending .wasm  -> WASM (circom WebAssembly via node)
    any other path     -> NATIVE (compiled witness generator)

The artifact's contents are never inspected to choose a path.
"""

import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from constraints.r1cs import ConstraintSystem
from primitives.errors import ParameterMismatch, WitnessGenerationError
from primitives.field import FieldElement, field_for_modulus

from .adder import adder_step
from .base import GeneratorKind, StepInputs, WitnessExecutor, WitnessGeneratorConfig
from .bytecode import BytecodeExecutor
from .module import PythonStepModule, StepFunction
from .native import NativeExecutor
from .wtns import read_wtns, write_wtns

# Registry mapping names to in-process step functions
STEP_MODULES: dict[str, StepFunction] = {
    "adder": adder_step,
}


def register_step_module(name: str):
    """Decorator registering a Python step function under `name`."""
    def wrap(fn: StepFunction) -> StepFunction:
        STEP_MODULES[name] = fn
        return fn
    return wrap


@dataclass(frozen=True)
class WitnessGeneratorRef:
    """Reference to a witness generator artifact.

    Attributes:
        location: Path to a binary or .wasm module, registered step module
            name, or a step function
        kind: Declared kind; inferred from `location` when None
    """

    location: Union[str, Path, StepFunction]
    kind: Optional[GeneratorKind] = None

    def resolved_kind(self) -> GeneratorKind:
        if self.kind is not None:
            return self.kind
        if callable(self.location):
            return GeneratorKind.PYTHON
        if isinstance(self.location, str) and self.location in STEP_MODULES:
            return GeneratorKind.PYTHON
        if Path(self.location).suffix.lower() == ".wasm":
            return GeneratorKind.WASM
        return GeneratorKind.NATIVE


def get_executor(ref: Union[WitnessGeneratorRef, str, Path, StepFunction],
                 config: WitnessGeneratorConfig) -> WitnessExecutor:
    """Build the executor for a generator reference.

    Raises:
        WitnessGenerationError: If a PYTHON reference names no registered step module,
            or a WASM module or its loader script is missing
    """
    if not isinstance(ref, WitnessGeneratorRef):
        ref = WitnessGeneratorRef(ref)
    kind = ref.resolved_kind()
    if kind is GeneratorKind.PYTHON:
        if callable(ref.location):
            return PythonStepModule(ref.location)
        if ref.location in STEP_MODULES:
            return PythonStepModule(STEP_MODULES[ref.location])
        raise WitnessGenerationError(f"No step module '{ref.location}'. "
                                     f"Available: {list(STEP_MODULES.keys())}")
    if kind is GeneratorKind.WASM:
        return BytecodeExecutor(Path(ref.location), config.timeout, node_path=config.node_path)
    return NativeExecutor(Path(ref.location), config.timeout)


class WitnessGenerator:
    """Witness adapter bound to one constraint system and generator.

    Each call runs in its own scratch directory, so one generator may be used
    from several threads.
    """

    def __init__(self, constraint_system: ConstraintSystem,
                 generator_ref: Union[WitnessGeneratorRef, str, Path, StepFunction],
                 config: Optional[WitnessGeneratorConfig] = None):
        self.constraint_system = constraint_system
        self.config = config if config is not None else WitnessGeneratorConfig()
        self.executor = get_executor(generator_ref, self.config)
        try:
            self.field = field_for_modulus(constraint_system.prime)
        except KeyError as e:
            raise ParameterMismatch(f"Unsupported constraint system prime {constraint_system.prime}") from e

    def compute(self, step_public_input: Sequence[str], private_input: Dict[str, Any]) -> List[FieldElement]:
        """Compute the witness of one step.

        Args:
            step_public_input: Hex-encoded field elements (the current state)
            private_input: Named private inputs, JSON serialisable

        Returns:
            Witness of length num_variables(), wire 0 equal to 1

        Raises:
            EncodingError: On bad hex or private inputs
            WitnessGenerationError: If the executor fails or returns an unusable witness
        """
        cs = self.constraint_system
        inputs = StepInputs(public_input=tuple(step_public_input), private_input=dict(private_input))
        scratch_parent = self.config.scratch_dir
        if scratch_parent is not None:
            Path(scratch_parent).mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix=f"{self.config.run_id}-", dir=scratch_parent) as scratch:
            prime, values = self.executor.execute(inputs, cs.prime, Path(scratch))

        if prime != cs.prime:
            raise WitnessGenerationError(
                f"Witness generator works over {prime}, constraint system over {cs.prime}")
        expected = cs.num_variables()
        if len(values) < expected:
            raise WitnessGenerationError(
                f"Truncated witness: {len(values)} values, expected {expected}")
        if len(values) > expected:
            raise WitnessGenerationError(
                f"Witness has {len(values)} values, expected {expected}")
        for i, v in enumerate(values):
            if not 0 <= v < cs.prime:
                raise WitnessGenerationError(f"Witness value {i} is not a reduced field element")
        if values[0] != 1:
            raise WitnessGenerationError(f"Witness wire 0 must be 1, got {values[0]}")
        return [self.field(v) for v in values]


def compute_witness(constraint_system: ConstraintSystem,
                    step_public_input: Sequence[str],
                    private_input: Dict[str, Any],
                    generator_ref: Union[WitnessGeneratorRef, str, Path, StepFunction],
                    config: Optional[WitnessGeneratorConfig] = None) -> List[FieldElement]:
    """One-shot form of WitnessGenerator.compute."""
    generator = WitnessGenerator(constraint_system, generator_ref, config)
    return generator.compute(step_public_input, private_input)


__all__ = [
    "GeneratorKind",
    "StepInputs",
    "WitnessExecutor",
    "WitnessGeneratorConfig",
    "WitnessGeneratorRef",
    "WitnessGenerator",
    "NativeExecutor",
    "BytecodeExecutor",
    "PythonStepModule",
    "STEP_MODULES",
    "adder_step",
    "register_step_module",
    "get_executor",
    "compute_witness",
    "read_wtns",
    "write_wtns",
]
