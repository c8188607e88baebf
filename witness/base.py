"""Base classes for witness executors."""

import json
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from primitives.errors import EncodingError, MalformedInput, WitnessGenerationError
from primitives.field import hex_to_decimal
from witness.wtns import read_wtns


class GeneratorKind(Enum):
    """How a witness generator artifact is executed."""

    NATIVE = "native"  # compiled witness generator binary
    WASM = "wasm"  # circom WebAssembly module run through generate_witness.js
    PYTHON = "python"  # in-process Python step function


@dataclass
class WitnessGeneratorConfig:
    """Witness executor settings.

    Attributes:
        timeout: Seconds before an external executor is killed
        scratch_dir: Parent directory for per-invocation scratch directories
            (system temp dir when None)
        run_id: Prefix of scratch directory names
        node_path: Node.js binary used for WASM modules
    """

    timeout: float = 60.0
    scratch_dir: Optional[Path] = None
    run_id: str = "witness"
    node_path: str = "node"


@dataclass(frozen=True)
class StepInputs:
    """One step's inputs: hex public state and named private values."""

    public_input: Tuple[str, ...]
    private_input: Dict[str, Any] = field(default_factory=dict)

    def to_json(self, modulus: int) -> str:
        """Executor input document {"step_in": [decimal...], **private}.

        Raises:
            EncodingError: On bad hex, a `step_in` key collision or
                private values that are not JSON serialisable
        """
        if "step_in" in self.private_input:
            raise EncodingError("Private input may not define 'step_in'")
        doc = {"step_in": [hex_to_decimal(h, modulus) for h in self.public_input]}
        doc.update(self.private_input)
        try:
            return json.dumps(doc)
        except (TypeError, ValueError) as e:
            raise EncodingError(f"Private input is not JSON serialisable: {e}") from e


class WitnessExecutor(ABC):
    """Runs one step's witness computation."""

    kind: GeneratorKind

    @abstractmethod
    def execute(self, inputs: StepInputs, modulus: int, scratch: Path) -> Tuple[int, List[int]]:
        """Compute a witness.

        Args:
            inputs: Step inputs
            modulus: Field modulus of the constraint system
            scratch: Private scratch directory for this invocation

        Returns:
            (prime reported by the generator, witness values in wire order)
        """
        pass


class SubprocessExecutor(WitnessExecutor):
    """Executor that writes input.json, runs a command and reads output.wtns."""

    def __init__(self, timeout: float):
        self.timeout = timeout

    @abstractmethod
    def command(self, input_path: Path, output_path: Path) -> List[str]:
        pass

    def execute(self, inputs: StepInputs, modulus: int, scratch: Path) -> Tuple[int, List[int]]:
        input_path = scratch / "input.json"
        output_path = scratch / "output.wtns"
        input_path.write_text(inputs.to_json(modulus))
        cmd = self.command(input_path, output_path)
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout, cwd=scratch)
        except subprocess.TimeoutExpired as e:
            raise WitnessGenerationError(
                f"Witness generator timed out after {self.timeout}s: {cmd[0]}") from e
        except OSError as e:
            raise WitnessGenerationError(f"Cannot launch witness generator {cmd[0]}: {e}") from e
        if proc.returncode != 0:
            raise WitnessGenerationError(
                f"Witness generator exited with status {proc.returncode}",
                returncode=proc.returncode,
                stderr=proc.stderr,
            )
        if not output_path.exists():
            raise WitnessGenerationError(f"Witness generator did not write {output_path.name}")
        try:
            return read_wtns(output_path)
        except MalformedInput as e:
            raise WitnessGenerationError(f"Unreadable witness output: {e}") from e
