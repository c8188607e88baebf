"""Shared fixtures: the adder circuit, its public parameters and fake executors."""

import stat
import sys
from pathlib import Path

import pytest

# tests/ is inside the repository root
root_dir = Path(__file__).parent.parent
if str(root_dir) not in sys.path:
    sys.path.insert(0, str(root_dir))

from constraints import adder_constraint_system  # noqa: E402
from primitives.field import BN254_SCALAR_MODULUS  # noqa: E402
from protocol import CompressedSNARK, FoldingEngine, PublicParams  # noqa: E402

ADDER_START = [1000, 1000]
ADDER_PRIVATE_INPUTS = [{"adder": 0}, {"adder": 1}, {"adder": 2}]
ADDER_FINAL = [3001, 5003]


def adder_witness(x: int, y: int, a: int) -> list:
    p = BN254_SCALAR_MODULUS
    return [1, y, (x + y + a) % p, x, y, a % p]


# Stand-in for a compiled witness generator: reads input.json, writes output.wtns.
# Input and output are the last two arguments so the same script can stand in
# for `node generate_witness.js <wasm> <input> <output>`.
FAKE_GENERATOR = '''#!{python}
import json
import struct
import sys
import time

P = {prime}
MODE = {mode!r}

with open(sys.argv[-2]) as f:
    inp = json.load(f)
x, y = (int(v) for v in inp["step_in"])
a = int(inp["adder"]) % P
w = [1, y, (x + y + a) % P, x, y, a]

if MODE == "crash":
    sys.stderr.write("boom\\n")
    sys.exit(3)
if MODE == "hang":
    time.sleep(30)
if MODE == "no_output":
    sys.exit(0)
if MODE == "truncated":
    w = w[:-1]
if MODE == "extra":
    w = w + [0]
if MODE == "wrong_prime":
    P = P + 2
if MODE == "bad_one":
    w[0] = 2

n8 = 32
header = struct.pack("<I", n8) + P.to_bytes(n8, "little") + struct.pack("<I", len(w))
body = b"".join(v.to_bytes(n8, "little") for v in w)
with open(sys.argv[-1], "wb") as f:
    f.write(b"wtns" + struct.pack("<II", 2, 2))
    f.write(struct.pack("<IQ", 1, len(header)) + header)
    f.write(struct.pack("<IQ", 2, len(body)) + body)
'''


@pytest.fixture
def make_fake_generator(tmp_path):
    """Factory writing an executable fake witness generator into tmp_path."""
    def _make(mode: str = "ok", name: str = "adder_witness") -> Path:
        path = tmp_path / name
        path.write_text(FAKE_GENERATOR.format(python=sys.executable, prime=BN254_SCALAR_MODULUS, mode=mode))
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path
    return _make


@pytest.fixture(scope="session")
def adder_cs():
    return adder_constraint_system()


@pytest.fixture(scope="session")
def adder_pp(adder_cs):
    return PublicParams.build(adder_cs)


@pytest.fixture(scope="session")
def adder_keys(adder_pp):
    return CompressedSNARK.setup(adder_pp)


@pytest.fixture(scope="session")
def adder_chain(adder_pp):
    """Terminal accumulator of the three-step adder scenario."""
    return FoldingEngine(adder_pp, "adder").run(ADDER_START, ADDER_PRIVATE_INPUTS)


@pytest.fixture(scope="session")
def adder_proof(adder_pp, adder_keys, adder_chain):
    pk, _ = adder_keys
    return CompressedSNARK.prove(adder_pp, pk, adder_chain)
