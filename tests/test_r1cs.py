"""Tests for the constraint system model and its loaders."""

import json
import struct

import pytest

from constraints.r1cs import Constraint, ConstraintSystem, load, to_json
from primitives.errors import MalformedInput, ParameterMismatch, StepConstraintViolation
from primitives.field import BN254_SCALAR_MODULUS
from tests.conftest import adder_witness


class TestConstraintSystemModel:
    """Counts, validation and satisfiability."""

    def test_counts(self, adder_cs) -> None:
        """The adder has 6 wires, 2 constraints, 2 outputs and 2 inputs."""
        assert adder_cs.num_variables() == 6
        assert adder_cs.num_constraints() == 2
        assert adder_cs.num_outputs == 2
        assert adder_cs.num_inputs == 2
        assert list(adder_cs.output_wires()) == [1, 2]
        assert list(adder_cs.input_wires()) == [3, 4]

    def test_rows_in_order(self, adder_cs) -> None:
        """Iteration follows file order."""
        assert list(adder_cs.rows()) == list(adder_cs.constraints)

    def test_wire_out_of_range(self) -> None:
        """A wire index >= num_variables is malformed."""
        with pytest.raises(MalformedInput):
            ConstraintSystem(
                prime=BN254_SCALAR_MODULUS, num_outputs=1, num_public_inputs=2,
                num_private_inputs=0, num_auxiliary_variables=0,
                constraints=(Constraint(a=((3, 1),), b=((0, 1),), c=()),),
            )

    def test_unreduced_coefficient(self) -> None:
        with pytest.raises(MalformedInput):
            ConstraintSystem(
                prime=BN254_SCALAR_MODULUS, num_outputs=1, num_public_inputs=2,
                num_private_inputs=0, num_auxiliary_variables=0,
                constraints=(Constraint(a=((0, BN254_SCALAR_MODULUS),), b=(), c=()),),
            )

    def test_check_witness(self, adder_cs) -> None:
        """A correct witness passes; a wrong output fails at its constraint."""
        w = adder_witness(1000, 1000, 0)
        adder_cs.check_witness(w)
        assert adder_cs.is_satisfied(w)
        w[2] += 1
        with pytest.raises(StepConstraintViolation) as exc:
            adder_cs.check_witness(w)
        assert exc.value.constraint_index == 1

    def test_check_witness_length(self, adder_cs) -> None:
        with pytest.raises(ParameterMismatch):
            adder_cs.check_witness([1, 2, 3])

    def test_one_wire(self, adder_cs) -> None:
        """Wire 0 must be the constant one."""
        w = adder_witness(1, 2, 3)
        w[0] = 2
        with pytest.raises(StepConstraintViolation):
            adder_cs.check_witness(w)

    def test_to_dense(self, adder_cs) -> None:
        """Dense matrices have one row per constraint and one column per wire."""
        A, B, C = adder_cs.to_dense()
        assert A.shape == B.shape == C.shape == (2, 6)
        assert B[1, 3] == 1 and B[1, 4] == 1 and B[1, 5] == 1
        assert C[0, 1] == 1

    def test_describe(self, adder_cs) -> None:
        text = adder_cs.describe()
        assert "num_constraints: 2" in text
        assert "Constraint 1:" in text


class TestBinaryFormat:
    """iden3 .r1cs encoding."""

    def test_round_trip(self, adder_cs) -> None:
        """to_bytes / load preserves every field."""
        loaded = load(adder_cs.to_bytes())
        assert loaded.constraints == adder_cs.constraints
        assert loaded.num_variables() == adder_cs.num_variables()
        assert loaded.num_outputs == adder_cs.num_outputs
        assert loaded.num_private_inputs == adder_cs.num_private_inputs
        assert loaded.digest() == adder_cs.digest()

    def test_load_from_path(self, adder_cs, tmp_path) -> None:
        path = tmp_path / "adder.r1cs"
        path.write_bytes(adder_cs.to_bytes())
        assert load(path).digest() == adder_cs.digest()

    def test_bad_magic(self, adder_cs) -> None:
        data = b"xxxx" + adder_cs.to_bytes()[4:]
        with pytest.raises(MalformedInput):
            load(data)

    def test_truncated(self, adder_cs) -> None:
        """Every strict prefix fails with MalformedInput."""
        data = adder_cs.to_bytes()
        for cut in [3, 10, 20, len(data) // 2, len(data) - 1]:
            with pytest.raises(MalformedInput):
                load(data[:cut])

    def test_constraint_count_mismatch(self, adder_cs) -> None:
        """A header declaring more constraints than the section holds is malformed."""
        data = bytearray(adder_cs.to_bytes())
        # header: magic(4) version(4) nsec(4) type(4) size(8) n8(4) prime(32) 4 x u32, u64, then mConstraints
        offset = 12 + 12 + 4 + 32 + 16 + 8
        assert struct.unpack("<I", data[offset:offset + 4])[0] == 2
        data[offset:offset + 4] = struct.pack("<I", 3)
        with pytest.raises(MalformedInput):
            load(bytes(data))

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(MalformedInput):
            load(tmp_path / "missing.r1cs")

    def test_digest_depends_on_order(self, adder_cs) -> None:
        """Reordering constraints changes the digest."""
        swapped = ConstraintSystem(
            prime=adder_cs.prime,
            num_outputs=adder_cs.num_outputs,
            num_public_inputs=adder_cs.num_public_inputs,
            num_private_inputs=adder_cs.num_private_inputs,
            num_auxiliary_variables=adder_cs.num_auxiliary_variables,
            constraints=tuple(reversed(adder_cs.constraints)),
        )
        assert swapped.digest() != adder_cs.digest()


class TestJsonFormat:
    """snarkjs JSON export."""

    def test_round_trip(self, adder_cs) -> None:
        loaded = load(to_json(adder_cs))
        assert loaded.digest() == adder_cs.digest()

    def test_load_from_path(self, adder_cs, tmp_path) -> None:
        path = tmp_path / "adder.json"
        path.write_text(json.dumps(to_json(adder_cs)))
        assert load(path).digest() == adder_cs.digest()

    def test_from_json_string(self, adder_cs) -> None:
        assert ConstraintSystem.from_json(json.dumps(to_json(adder_cs))).digest() == adder_cs.digest()

    def test_missing_field(self, adder_cs) -> None:
        obj = to_json(adder_cs)
        del obj["nVars"]
        with pytest.raises(MalformedInput):
            load(obj)

    def test_count_mismatch(self, adder_cs) -> None:
        obj = to_json(adder_cs)
        obj["nConstraints"] = 5
        with pytest.raises(MalformedInput):
            load(obj)

    def test_bad_json_text(self, tmp_path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(MalformedInput):
            load(path)

    @pytest.mark.parametrize("field, value", [
        ("constraints", 5),
        ("constraints", {"0": []}),
        ("nConstraints", "x"),
        ("nConstraints", [2]),
        ("map", [0, 1, "x", 3, 4, 5]),
        ("map", [0, 1, None, 3, 4, 5]),
        ("map", 7),
    ])
    def test_invalid_field_types(self, adder_cs, field, value) -> None:
        """Wrongly typed fields surface as malformed input."""
        obj = to_json(adder_cs)
        obj[field] = value
        with pytest.raises(MalformedInput):
            load(obj)
