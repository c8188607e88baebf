"""Compiled witness generator: `<binary> <input.json> <output.wtns>`."""

from pathlib import Path
from typing import List

from witness.base import GeneratorKind, SubprocessExecutor


class NativeExecutor(SubprocessExecutor):
    kind = GeneratorKind.NATIVE

    def __init__(self, binary: Path, timeout: float):
        super().__init__(timeout)
        self.binary = Path(binary)

    def command(self, input_path: Path, output_path: Path) -> List[str]:
        return [str(self.binary.resolve()), str(input_path), str(output_path)]
