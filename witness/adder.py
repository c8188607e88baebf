"""Witness module for the toy adder circuit (constraints/adder.py)."""

from typing import Any, Dict, List

from primitives.field import BN254_SCALAR_MODULUS


def adder_step(step_in: List[int], private_input: Dict[str, Any]) -> List[int]:
    """(x, y), adder -> [1, y, x + y + adder, x, y, adder]."""
    p = BN254_SCALAR_MODULUS
    x, y = step_in
    a = int(private_input["adder"]) % p
    return [1, y, (x + y + a) % p, x, y, a]
