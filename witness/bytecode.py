"""circom WebAssembly witness generator run by Node.js.

circom emits `<name>_js/<name>.wasm` next to `generate_witness.js`; the
module is executed as `node generate_witness.js <wasm> <input> <output>`.
"""

from pathlib import Path
from typing import List, Optional

from primitives.errors import WitnessGenerationError
from witness.base import GeneratorKind, SubprocessExecutor

GENERATE_WITNESS_JS = "generate_witness.js"


class BytecodeExecutor(SubprocessExecutor):
    kind = GeneratorKind.WASM

    def __init__(self, wasm: Path, timeout: float, node_path: str = "node",
                 script: Optional[Path] = None):
        super().__init__(timeout)
        self.wasm = Path(wasm)
        self.node_path = node_path
        self.script = Path(script) if script is not None else self.wasm.parent / GENERATE_WITNESS_JS
        if not self.wasm.exists():
            raise WitnessGenerationError(f"WASM module not found: {self.wasm}")
        if not self.script.exists():
            raise WitnessGenerationError(f"{GENERATE_WITNESS_JS} not found next to {self.wasm}")

    def command(self, input_path: Path, output_path: Path) -> List[str]:
        return [
            self.node_path,
            str(self.script.resolve()),
            str(self.wasm.resolve()),
            str(input_path),
            str(output_path),
        ]
