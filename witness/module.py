"""In-process witness generation from a Python step function.

A step function receives the decoded step inputs and private inputs and
returns the full circom-ordered witness. It plays the role of a hand-written
witness module for circuits whose generator is easier to write in Python
than to compile.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence, Tuple

from primitives.errors import WitnessGenerationError
from witness.base import GeneratorKind, StepInputs, WitnessExecutor

StepFunction = Callable[[List[int], Dict[str, Any]], Sequence[int]]


class PythonStepModule(WitnessExecutor):
    kind = GeneratorKind.PYTHON

    def __init__(self, fn: StepFunction):
        self.fn = fn

    def execute(self, inputs: StepInputs, modulus: int, scratch: Path) -> Tuple[int, List[int]]:
        # Same JSON document the external executors receive.
        doc = json.loads(inputs.to_json(modulus))
        step_in = [int(v) for v in doc.pop("step_in")]
        try:
            values = [int(v) for v in self.fn(step_in, doc)]
        except (ArithmeticError, KeyError, TypeError, ValueError) as e:
            name = getattr(self.fn, "__name__", repr(self.fn))
            raise WitnessGenerationError(f"Step function {name} failed: {e}") from e
        return modulus, values
