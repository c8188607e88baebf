#!/usr/bin/env python3
"""Run an IVC chain end to end: fold N steps, verify, compress, verify.

Without --r1cs the built-in adder circuit is used with its Python witness
module, stepping (x, y) -> (y, x + y + adder) with adder = 0, 1, 2, ...

Run with: python run_ivc.py --steps 3
          python run_ivc.py --r1cs toy.r1cs --witness-generator toy_js/toy.wasm --steps 10
"""

import argparse
import json
import sys
import time
from pathlib import Path

from constraints import adder_constraint_system, load
from primitives import CURVE_CYCLES, IVCError
from protocol import (
    CompressedSNARK,
    PublicParams,
    create_recursive_circuit,
    verify_compressed,
    verify_recursive,
)
from witness import GeneratorKind, WitnessGeneratorConfig, WitnessGeneratorRef


def parse_field_value(text: str) -> int:
    """Decimal or 0x-prefixed hex."""
    return int(text, 16) if text.lower().startswith("0x") else int(text)


def main() -> int:
    parser = argparse.ArgumentParser(description="Fold, compress and verify an IVC chain")
    parser.add_argument("--r1cs", type=Path, default=None,
                        help="Step circuit (.r1cs binary or snarkjs .json); built-in adder when omitted")
    parser.add_argument("--witness-generator", type=str, default="adder",
                        help="Native binary, .wasm module or registered step module name")
    parser.add_argument("--kind", choices=[k.value for k in GeneratorKind], default=None,
                        help="Declared generator kind (inferred when omitted)")
    parser.add_argument("--cycle", choices=sorted(CURVE_CYCLES), default="bn254-grumpkin")
    parser.add_argument("--steps", type=int, default=3, help="Number of steps N")
    parser.add_argument("--start", type=parse_field_value, nargs="+", default=[1000, 1000],
                        help="Initial state z0")
    parser.add_argument("--private-inputs", type=Path, default=None,
                        help='JSON list of per-step private inputs (default [{"adder": i}, ...])')
    parser.add_argument("--print-r1cs", action="store_true", help="Print the constraint system")
    parser.add_argument("--timeout", type=float, default=60.0, help="Witness generator timeout (s)")
    parser.add_argument("--scratch-dir", type=Path, default=None)
    parser.add_argument("--node", type=str, default="node", help="Node.js binary for .wasm generators")
    parser.add_argument("--no-compress", action="store_true", help="Skip the compressed SNARK")
    parser.add_argument("--proof-out", type=Path, default=None, help="Write the compressed proof here")
    args = parser.parse_args()

    try:
        cs = load(args.r1cs) if args.r1cs is not None else adder_constraint_system()
    except IVCError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if args.print_r1cs:
        print(cs.describe())
        A, B, C = cs.to_dense()
        print(f"A =\n{A}\nB =\n{B}\nC =\n{C}")

    if args.private_inputs is not None:
        try:
            private_inputs = json.loads(args.private_inputs.read_text())
        except (OSError, ValueError) as e:
            print(f"Error: cannot read private inputs from {args.private_inputs}: {e}", file=sys.stderr)
            return 1
        if not isinstance(private_inputs, list) or not all(isinstance(p, dict) for p in private_inputs):
            print("Error: private inputs must be a JSON list of objects", file=sys.stderr)
            return 1
    else:
        private_inputs = [{"adder": i} for i in range(args.steps)]
    if len(private_inputs) != args.steps:
        print(f"Error: {len(private_inputs)} private inputs for {args.steps} steps", file=sys.stderr)
        return 1

    config = WitnessGeneratorConfig(timeout=args.timeout, scratch_dir=args.scratch_dir, node_path=args.node)
    kind = GeneratorKind(args.kind) if args.kind is not None else None
    generator = WitnessGeneratorRef(args.witness_generator, kind)

    try:
        start = time.perf_counter()
        pp = PublicParams.build(cs, CURVE_CYCLES[args.cycle])
        print(f"Creating public parameters took {time.perf_counter() - start:.3f}s")
        print(f"Number of constraints per step (primary circuit): {pp.num_constraints()[0]}")
        print(f"Number of constraints per step (secondary circuit): {pp.num_constraints()[1]}")
        print(f"Number of variables per step (primary circuit): {pp.num_variables()[0]}")
        print(f"Number of variables per step (secondary circuit): {pp.num_variables()[1]}")

        print(f"Generating a RecursiveSNARK with {args.steps} steps...")
        start = time.perf_counter()
        recursive_snark = create_recursive_circuit(generator, private_inputs, args.start, pp, config)
        print(f"RecursiveSNARK creation took {time.perf_counter() - start:.3f}s")
    except IVCError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    start = time.perf_counter()
    result = verify_recursive(pp, recursive_snark, args.steps, args.start, [0])
    print(f"RecursiveSNARK::verify: {bool(result)}, took {time.perf_counter() - start:.3f}s")
    if not result:
        return 1
    print(f"zn = {[int(v) for v in result.zn_primary]}")

    if args.no_compress:
        return 0

    start = time.perf_counter()
    pk, vk = CompressedSNARK.setup(pp)
    print(f"CompressedSNARK::setup took {time.perf_counter() - start:.3f}s")
    start = time.perf_counter()
    try:
        proof = CompressedSNARK.prove(pp, pk, recursive_snark)
    except IVCError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    encoded = proof.to_bytes(vk)
    print(f"CompressedSNARK::prove took {time.perf_counter() - start:.3f}s ({len(encoded)} bytes)")
    if args.proof_out is not None:
        args.proof_out.write_bytes(encoded)

    start = time.perf_counter()
    result = verify_compressed(vk, proof, args.steps, args.start, result.zn_primary, [0])
    print(f"CompressedSNARK::verify: {bool(result)}, took {time.perf_counter() - start:.3f}s")
    return 0 if result else 1


if __name__ == "__main__":
    sys.exit(main())
