"""Constraint System Model: a circom R1CS loaded into an immutable form.

Supports the iden3 `.r1cs` binary format and the JSON export produced by
`snarkjs r1cs export json`. Wires follow circom's layout:

    [1, public outputs..., public inputs..., private inputs..., internal...]

so wire 0 is the constant one and the step function's outputs precede its
inputs.
"""

import json
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

import blake3
import numpy as np

from primitives.errors import MalformedInput, ParameterMismatch, StepConstraintViolation

R1CS_MAGIC = b"r1cs"
R1CS_VERSION = 1

SECTION_HEADER = 1
SECTION_CONSTRAINTS = 2
SECTION_WIRE_MAP = 3

Row = Tuple[Tuple[int, int], ...]
"""Sparse linear combination: (wire index, coefficient) pairs."""


class Constraint(NamedTuple):
    """One constraint <a, w> * <b, w> = <c, w>."""

    a: Row
    b: Row
    c: Row


# --- Model ---


@dataclass(frozen=True)
class ConstraintSystem:
    """Rank-1 constraint system over the prime field `prime`.

    Attributes:
        prime: Field modulus the coefficients live in
        num_outputs: Public output wires (the step's next state)
        num_public_inputs: All public wires: outputs then inputs
        num_private_inputs: Private input wires following the public ones
        num_auxiliary_variables: All wires after the public ones
        constraints: Constraints in file order
        wire_labels: Optional wire to label id map
    """

    prime: int
    num_outputs: int
    num_public_inputs: int
    num_private_inputs: int
    num_auxiliary_variables: int
    constraints: Tuple[Constraint, ...]
    wire_labels: Optional[Tuple[int, ...]] = None

    def __post_init__(self):
        if self.prime < 3:
            raise MalformedInput(f"Invalid field prime {self.prime}")
        if min(self.num_outputs, self.num_public_inputs, self.num_private_inputs,
               self.num_auxiliary_variables) < 0:
            raise MalformedInput("Negative wire count")
        if self.num_outputs > self.num_public_inputs:
            raise MalformedInput(
                f"{self.num_outputs} outputs exceed {self.num_public_inputs} public wires")
        if self.num_private_inputs > self.num_auxiliary_variables:
            raise MalformedInput(
                f"{self.num_private_inputs} private inputs exceed {self.num_auxiliary_variables} auxiliary wires")
        n = self.num_variables()
        for idx, constraint in enumerate(self.constraints):
            for row in constraint:
                for wire, coeff in row:
                    if not 0 <= wire < n:
                        raise MalformedInput(
                            f"Constraint {idx}: wire index {wire} out of range [0, {n})")
                    if not 0 <= coeff < self.prime:
                        raise MalformedInput(
                            f"Constraint {idx}: coefficient {coeff} is not reduced mod prime")
        if self.wire_labels is not None and len(self.wire_labels) != n:
            raise MalformedInput(
                f"Wire map has {len(self.wire_labels)} entries, expected {n}")

    # --- Accessors ---

    @property
    def num_inputs(self) -> int:
        """Public step inputs (the current state)."""
        return self.num_public_inputs - self.num_outputs

    def num_constraints(self) -> int:
        return len(self.constraints)

    def num_variables(self) -> int:
        return 1 + self.num_public_inputs + self.num_auxiliary_variables

    def rows(self) -> Iterator[Constraint]:
        """Iterate constraints in their fixed file order."""
        return iter(self.constraints)

    def output_wires(self) -> range:
        return range(1, 1 + self.num_outputs)

    def input_wires(self) -> range:
        return range(1 + self.num_outputs, 1 + self.num_public_inputs)

    def digest(self) -> bytes:
        """blake3 digest of the canonical encoding (header and constraints)."""
        return blake3.blake3(self._encode(include_wire_map=False)).digest()

    # --- Satisfiability ---

    def _eval_row(self, row: Row, w: Sequence[int]) -> int:
        return sum(coeff * w[wire] for wire, coeff in row) % self.prime

    def check_witness(self, witness: Sequence) -> None:
        """Check A·w ∘ B·w = C·w.

        Args:
            witness: Dense assignment of length num_variables(), ints or field elements

        Raises:
            ParameterMismatch: If the witness has the wrong length
            StepConstraintViolation: At the first unsatisfied constraint
        """
        if len(witness) != self.num_variables():
            raise ParameterMismatch(
                f"Witness has {len(witness)} values, constraint system expects {self.num_variables()}")
        w = [int(v) % self.prime for v in witness]
        if w[0] != 1:
            raise StepConstraintViolation(f"Witness wire 0 must be 1, got {w[0]}")
        for idx, (a, b, c) in enumerate(self.constraints):
            if self._eval_row(a, w) * self._eval_row(b, w) % self.prime != self._eval_row(c, w):
                raise StepConstraintViolation(f"Constraint {idx} is not satisfied", constraint_index=idx)

    def is_satisfied(self, witness: Sequence) -> bool:
        try:
            self.check_witness(witness)
        except (ParameterMismatch, StepConstraintViolation):
            return False
        return True

    # --- Diagnostics ---

    def describe(self) -> str:
        """Human readable listing of sizes and sparse constraints."""
        lines = [
            f"prime: {self.prime}",
            f"num_variables: {self.num_variables()} "
            f"(outputs={self.num_outputs}, inputs={self.num_inputs}, "
            f"private={self.num_private_inputs}, auxiliary={self.num_auxiliary_variables})",
            f"num_constraints: {self.num_constraints()}",
        ]
        for idx, (a, b, c) in enumerate(self.constraints):
            lines.append(f"Constraint {idx}:")
            for name, row in (("A", a), ("B", b), ("C", c)):
                lines.append(f"  {name}: {list(row)}")
        return "\n".join(lines)

    def to_dense(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Dense (num_constraints x num_variables) matrices of Python ints.

        Quadratic in size; meant for small circuits and debugging only.
        """
        shape = (self.num_constraints(), self.num_variables())
        mats = [np.zeros(shape, dtype=object) for _ in range(3)]
        for i, constraint in enumerate(self.constraints):
            for mat, row in zip(mats, constraint):
                for wire, coeff in row:
                    mat[i, wire] = (mat[i, wire] + coeff) % self.prime
        return mats[0], mats[1], mats[2]

    # --- Encoding ---

    @property
    def field_bytes(self) -> int:
        return ((self.prime.bit_length() + 63) // 64) * 8

    def _encode(self, include_wire_map: bool = True) -> bytes:
        n8 = self.field_bytes
        header = struct.pack("<I", n8) + self.prime.to_bytes(n8, "little")
        header += struct.pack(
            "<IIIIQI",
            self.num_variables(),
            self.num_outputs,
            self.num_inputs,
            self.num_private_inputs,
            self.num_variables(),
            self.num_constraints(),
        )
        body = bytearray()
        for constraint in self.constraints:
            for row in constraint:
                body += struct.pack("<I", len(row))
                for wire, coeff in row:
                    body += struct.pack("<I", wire) + coeff.to_bytes(n8, "little")
        sections = [(SECTION_HEADER, header), (SECTION_CONSTRAINTS, bytes(body))]
        if include_wire_map:
            labels = self.wire_labels if self.wire_labels is not None else range(self.num_variables())
            sections.append((SECTION_WIRE_MAP, b"".join(struct.pack("<Q", l) for l in labels)))
        out = R1CS_MAGIC + struct.pack("<II", R1CS_VERSION, len(sections))
        for section_type, payload in sections:
            out += struct.pack("<IQ", section_type, len(payload)) + payload
        return out

    def to_bytes(self) -> bytes:
        """Encode in the iden3 `.r1cs` binary format."""
        return self._encode(include_wire_map=True)

    @classmethod
    def from_bytes(cls, data: bytes) -> "ConstraintSystem":
        return _parse_binary(data)

    @classmethod
    def from_json(cls, obj: Union[dict, str]) -> "ConstraintSystem":
        if isinstance(obj, str):
            try:
                obj = json.loads(obj)
            except json.JSONDecodeError as e:
                raise MalformedInput(f"Invalid r1cs JSON: {e}") from e
        return _parse_json(obj)


# --- Binary Parsing ---


class _Reader:
    """Bounds-checked little-endian reader."""

    def __init__(self, data: bytes, what: str):
        self.data = data
        self.pos = 0
        self.what = what

    def read(self, n: int) -> bytes:
        if self.pos + n > len(self.data):
            raise MalformedInput(
                f"Truncated {self.what}: need {n} bytes at offset {self.pos}, have {len(self.data) - self.pos}")
        out = self.data[self.pos:self.pos + n]
        self.pos += n
        return out

    def u32(self) -> int:
        return struct.unpack("<I", self.read(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self.read(8))[0]

    def at_end(self) -> bool:
        return self.pos == len(self.data)


def _read_sections(reader: _Reader) -> dict:
    num_sections = reader.u32()
    sections = {}
    for _ in range(num_sections):
        section_type = reader.u32()
        size = reader.u64()
        if section_type in sections:
            raise MalformedInput(f"Duplicate section type {section_type}")
        sections[section_type] = reader.read(size)
    if not reader.at_end():
        raise MalformedInput(f"{len(reader.data) - reader.pos} trailing bytes after last section")
    return sections


def _parse_row(reader: _Reader, n8: int, prime: int) -> Row:
    nnz = reader.u32()
    row = []
    for _ in range(nnz):
        wire = reader.u32()
        coeff = int.from_bytes(reader.read(n8), "little")
        if coeff >= prime:
            raise MalformedInput(f"Coefficient {coeff} is not reduced mod prime")
        row.append((wire, coeff))
    return tuple(row)


def _parse_binary(data: bytes) -> ConstraintSystem:
    reader = _Reader(bytes(data), "r1cs file")
    magic = reader.read(4)
    if magic != R1CS_MAGIC:
        raise MalformedInput(f"Bad r1cs magic {magic!r}")
    version = reader.u32()
    if version != R1CS_VERSION:
        raise MalformedInput(f"Unsupported r1cs version {version}")
    sections = _read_sections(reader)
    if SECTION_HEADER not in sections:
        raise MalformedInput("Missing r1cs header section")
    if SECTION_CONSTRAINTS not in sections:
        raise MalformedInput("Missing r1cs constraints section")

    hdr = _Reader(sections[SECTION_HEADER], "r1cs header")
    n8 = hdr.u32()
    if n8 == 0 or n8 % 8:
        raise MalformedInput(f"Invalid field element width {n8}")
    prime = int.from_bytes(hdr.read(n8), "little")
    n_wires = hdr.u32()
    n_pub_out = hdr.u32()
    n_pub_in = hdr.u32()
    n_prv_in = hdr.u32()
    hdr.u64()  # nLabels
    m_constraints = hdr.u32()
    num_public = n_pub_out + n_pub_in
    if n_wires < 1 + num_public + n_prv_in:
        raise MalformedInput(
            f"Header declares {n_wires} wires, fewer than 1 + {num_public} public + {n_prv_in} private")

    body = _Reader(sections[SECTION_CONSTRAINTS], "r1cs constraints section")
    constraints = []
    for _ in range(m_constraints):
        a = _parse_row(body, n8, prime)
        b = _parse_row(body, n8, prime)
        c = _parse_row(body, n8, prime)
        constraints.append(Constraint(a, b, c))
    if not body.at_end():
        raise MalformedInput(
            f"Constraint section holds more data than the {m_constraints} declared constraints")

    wire_labels = None
    if SECTION_WIRE_MAP in sections:
        wmap = _Reader(sections[SECTION_WIRE_MAP], "r1cs wire map")
        wire_labels = tuple(wmap.u64() for _ in range(n_wires))
        if not wmap.at_end():
            raise MalformedInput("Wire map section has trailing bytes")

    return ConstraintSystem(
        prime=prime,
        num_outputs=n_pub_out,
        num_public_inputs=num_public,
        num_private_inputs=n_prv_in,
        num_auxiliary_variables=n_wires - 1 - num_public,
        constraints=tuple(constraints),
        wire_labels=wire_labels,
    )


# --- JSON Parsing ---


def _json_row(obj) -> Row:
    if not isinstance(obj, dict):
        raise MalformedInput(f"Linear combination must be an object, got {type(obj).__name__}")
    try:
        return tuple((int(wire), int(coeff)) for wire, coeff in obj.items())
    except (TypeError, ValueError) as e:
        raise MalformedInput(f"Invalid linear combination entry: {e}") from e


def _parse_json(obj: dict) -> ConstraintSystem:
    """Parse the object written by `snarkjs r1cs export json`."""
    try:
        prime = int(obj["prime"])
        n_vars = int(obj["nVars"])
        n_outputs = int(obj["nOutputs"])
        n_pub_in = int(obj["nPubInputs"])
        n_prv_in = int(obj["nPrvInputs"])
        raw_constraints = obj["constraints"]
    except KeyError as e:
        raise MalformedInput(f"r1cs JSON is missing field {e}") from e
    except (TypeError, ValueError) as e:
        raise MalformedInput(f"r1cs JSON has an invalid header field: {e}") from e

    if not isinstance(raw_constraints, list):
        raise MalformedInput(
            f"r1cs JSON constraints must be a list, got {type(raw_constraints).__name__}")
    declared = obj.get("nConstraints")
    if declared is not None:
        try:
            declared = int(declared)
        except (TypeError, ValueError) as e:
            raise MalformedInput(f"r1cs JSON has an invalid nConstraints: {e}") from e
        if declared != len(raw_constraints):
            raise MalformedInput(
                f"r1cs JSON declares {declared} constraints but lists {len(raw_constraints)}")
    num_public = n_outputs + n_pub_in
    if n_vars < 1 + num_public + n_prv_in:
        raise MalformedInput(
            f"r1cs JSON declares {n_vars} wires, fewer than 1 + {num_public} public + {n_prv_in} private")

    constraints = []
    for idx, entry in enumerate(raw_constraints):
        if not isinstance(entry, list) or len(entry) != 3:
            raise MalformedInput(f"Constraint {idx} must be a list of three linear combinations")
        constraints.append(Constraint(*(_json_row(lc) for lc in entry)))

    wire_labels = obj.get("map")
    if wire_labels is not None:
        if not isinstance(wire_labels, list):
            raise MalformedInput(f"r1cs JSON map must be a list, got {type(wire_labels).__name__}")
        try:
            wire_labels = [int(label) for label in wire_labels]
        except (TypeError, ValueError) as e:
            raise MalformedInput(f"r1cs JSON map has a non-integer label: {e}") from e
    return ConstraintSystem(
        prime=prime,
        num_outputs=n_outputs,
        num_public_inputs=num_public,
        num_private_inputs=n_prv_in,
        num_auxiliary_variables=n_vars - 1 - num_public,
        constraints=tuple(constraints),
        wire_labels=tuple(int(l) for l in wire_labels) if wire_labels is not None else None,
    )


def to_json(cs: ConstraintSystem) -> dict:
    """Inverse of the JSON loader, in snarkjs export layout."""
    return {
        "n8": cs.field_bytes,
        "prime": str(cs.prime),
        "nVars": cs.num_variables(),
        "nOutputs": cs.num_outputs,
        "nPubInputs": cs.num_inputs,
        "nPrvInputs": cs.num_private_inputs,
        "nLabels": cs.num_variables(),
        "nConstraints": cs.num_constraints(),
        "constraints": [
            [{str(wire): str(coeff) for wire, coeff in row} for row in constraint]
            for constraint in cs.constraints
        ],
        "map": list(cs.wire_labels) if cs.wire_labels is not None else list(range(cs.num_variables())),
    }


# --- Loading ---


def load(source: Union[str, Path, bytes, bytearray, dict]) -> ConstraintSystem:
    """Load a constraint system from a path, raw `.r1cs` bytes or a parsed JSON object.

    Paths ending in `.json` are read as the snarkjs JSON export; any other path
    is read as the binary format.

    Raises:
        MalformedInput: If the source cannot be read or parsed
    """
    if isinstance(source, (bytes, bytearray)):
        return _parse_binary(bytes(source))
    if isinstance(source, dict):
        return _parse_json(source)
    path = Path(source)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise MalformedInput(f"Cannot read constraint system {path}: {e}") from e
    if path.suffix.lower() == ".json":
        try:
            return _parse_json(json.loads(raw))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedInput(f"Invalid r1cs JSON in {path}: {e}") from e
    return _parse_binary(raw)


__all__ = [
    "Row",
    "Constraint",
    "ConstraintSystem",
    "load",
    "to_json",
]
