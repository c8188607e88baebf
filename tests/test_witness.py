"""Tests for the witness generator adapter."""

import pytest

from primitives.errors import EncodingError, WitnessGenerationError
from primitives.field import Fr, to_hex
from tests.conftest import adder_witness
from witness import (
    STEP_MODULES,
    GeneratorKind,
    WitnessGenerator,
    WitnessGeneratorConfig,
    WitnessGeneratorRef,
    compute_witness,
    get_executor,
    register_step_module,
)
from witness.bytecode import GENERATE_WITNESS_JS

START_HEX = [to_hex(Fr(1000)), to_hex(Fr(1000))]


class TestGeneratorSelection:
    """Executor choice by declared kind or artifact."""

    def test_wasm_by_extension(self) -> None:
        assert WitnessGeneratorRef("build/toy_js/toy.wasm").resolved_kind() is GeneratorKind.WASM

    def test_native_by_default(self) -> None:
        assert WitnessGeneratorRef("build/toy_cpp/toy").resolved_kind() is GeneratorKind.NATIVE

    def test_declared_kind_wins(self) -> None:
        """A declared kind overrides the extension."""
        ref = WitnessGeneratorRef("generator.wasm", GeneratorKind.NATIVE)
        assert ref.resolved_kind() is GeneratorKind.NATIVE

    def test_callable_is_python(self) -> None:
        assert WitnessGeneratorRef(lambda step_in, priv: []).resolved_kind() is GeneratorKind.PYTHON

    def test_registered_name_is_python(self) -> None:
        assert "adder" in STEP_MODULES
        assert WitnessGeneratorRef("adder").resolved_kind() is GeneratorKind.PYTHON

    def test_unknown_python_module(self) -> None:
        with pytest.raises(WitnessGenerationError, match="No step module"):
            get_executor(WitnessGeneratorRef("nope", GeneratorKind.PYTHON), WitnessGeneratorConfig())

    def test_register_step_module(self) -> None:
        """Registered functions are selectable by name."""
        @register_step_module("adder_copy")
        def adder_copy(step_in, private_input):
            return STEP_MODULES["adder"](step_in, private_input)

        try:
            assert WitnessGeneratorRef("adder_copy").resolved_kind() is GeneratorKind.PYTHON
        finally:
            del STEP_MODULES["adder_copy"]


class TestPythonStepModule:
    """In-process witness generation."""

    def test_adder_witness(self, adder_cs) -> None:
        """The registered adder module satisfies the circuit."""
        w = compute_witness(adder_cs, START_HEX, {"adder": 5}, "adder")
        assert [int(v) for v in w] == adder_witness(1000, 1000, 5)
        adder_cs.check_witness(w)

    def test_hex_prefix_accepted(self, adder_cs) -> None:
        w = compute_witness(adder_cs, ["0x3e8", "0x3e8"], {"adder": 0}, "adder")
        assert int(w[2]) == 2000

    def test_bad_hex(self, adder_cs) -> None:
        with pytest.raises(EncodingError):
            compute_witness(adder_cs, ["zz", "0x1"], {"adder": 0}, "adder")

    def test_step_in_collision(self, adder_cs) -> None:
        with pytest.raises(EncodingError):
            compute_witness(adder_cs, START_HEX, {"adder": 0, "step_in": [1]}, "adder")

    def test_unserialisable_private_input(self, adder_cs) -> None:
        with pytest.raises(EncodingError):
            compute_witness(adder_cs, START_HEX, {"adder": object()}, "adder")

    def test_missing_private_input(self, adder_cs) -> None:
        """A step function failure surfaces as WitnessGenerationError."""
        with pytest.raises(WitnessGenerationError):
            compute_witness(adder_cs, START_HEX, {}, "adder")

    def test_wrong_length(self, adder_cs) -> None:
        with pytest.raises(WitnessGenerationError):
            compute_witness(adder_cs, START_HEX, {}, lambda step_in, priv: [1, 2, 3])


class TestNativeExecutor:
    """Compiled generator driven through input.json / output.wtns."""

    def test_success(self, adder_cs, make_fake_generator) -> None:
        path = make_fake_generator()
        w = compute_witness(adder_cs, START_HEX, {"adder": 2}, path)
        assert [int(v) for v in w] == adder_witness(1000, 1000, 2)

    def test_scratch_dir_and_reuse(self, adder_cs, make_fake_generator, tmp_path) -> None:
        """Repeated calls use fresh scratch directories that are cleaned up."""
        scratch = tmp_path / "scratch"
        config = WitnessGeneratorConfig(scratch_dir=scratch, run_id="run7")
        gen = WitnessGenerator(adder_cs, make_fake_generator(), config)
        for a in range(3):
            assert int(gen.compute(START_HEX, {"adder": a})[2]) == 2000 + a
        assert list(scratch.iterdir()) == []

    @pytest.mark.parametrize("mode", ["truncated", "extra", "wrong_prime", "bad_one", "no_output"])
    def test_bad_output(self, adder_cs, make_fake_generator, mode) -> None:
        """Unusable outputs are rejected, never padded or repaired."""
        with pytest.raises(WitnessGenerationError):
            compute_witness(adder_cs, START_HEX, {"adder": 0}, make_fake_generator(mode))

    def test_crash(self, adder_cs, make_fake_generator) -> None:
        """Non-zero exit carries the status and stderr."""
        with pytest.raises(WitnessGenerationError) as exc:
            compute_witness(adder_cs, START_HEX, {"adder": 0}, make_fake_generator("crash"))
        assert exc.value.returncode == 3
        assert "boom" in exc.value.stderr

    def test_timeout(self, adder_cs, make_fake_generator) -> None:
        config = WitnessGeneratorConfig(timeout=1.0)
        with pytest.raises(WitnessGenerationError, match="timed out"):
            compute_witness(adder_cs, START_HEX, {"adder": 0}, make_fake_generator("hang"), config)

    def test_missing_binary(self, adder_cs, tmp_path) -> None:
        with pytest.raises(WitnessGenerationError):
            compute_witness(adder_cs, START_HEX, {"adder": 0}, tmp_path / "does_not_exist")


class TestBytecodeExecutor:
    """WASM modules run through a node-compatible launcher."""

    def test_success(self, adder_cs, make_fake_generator, tmp_path) -> None:
        """The launcher is invoked as `node generate_witness.js <wasm> <in> <out>`."""
        module_dir = tmp_path / "adder_js"
        module_dir.mkdir()
        wasm = module_dir / "adder.wasm"
        wasm.write_bytes(b"\x00asm")
        (module_dir / GENERATE_WITNESS_JS).write_text("// loader")
        fake_node = make_fake_generator(name="fake_node")
        config = WitnessGeneratorConfig(node_path=str(fake_node))
        w = compute_witness(adder_cs, START_HEX, {"adder": 4}, wasm, config)
        assert [int(v) for v in w] == adder_witness(1000, 1000, 4)

    def test_missing_loader(self, adder_cs, tmp_path) -> None:
        wasm = tmp_path / "alone.wasm"
        wasm.write_bytes(b"\x00asm")
        with pytest.raises(WitnessGenerationError):
            compute_witness(adder_cs, START_HEX, {"adder": 0}, wasm)
