"""Multilinear and univariate helpers for the sum-check based compressor.

Multilinear tables are indexed MSB-first: variable 0 selects the upper half
of the table, matching the order in which sum-check binds variables.
"""

from typing import List, Sequence

from primitives.field import FieldElement, FieldType


def next_pow2(n: int) -> int:
    return 1 << (max(n, 1) - 1).bit_length()


def log2(n: int) -> int:
    """Exact log2 of a power of two."""
    if n <= 0 or n & (n - 1):
        raise ValueError(f"{n} is not a power of two")
    return n.bit_length() - 1


def eq_evals(r: Sequence[FieldElement], field: FieldType) -> List[FieldElement]:
    """Table of eq(r, x) for every x in {0,1}^len(r), MSB-first."""
    table = [field.one()]
    for ri in r:
        new = []
        for t in table:
            hi = t * ri
            new.append(t - hi)
            new.append(hi)
        table = new
    return table


def eq_eval(r1: Sequence[FieldElement], r2: Sequence[FieldElement], field: FieldType) -> FieldElement:
    """eq(r1, r2) = prod(r1_i * r2_i + (1 - r1_i)(1 - r2_i))."""
    if len(r1) != len(r2):
        raise ValueError(f"Point length mismatch: {len(r1)} vs {len(r2)}")
    acc = field.one()
    for a, b in zip(r1, r2):
        acc = acc * (a * b + (1 - a) * (1 - b))
    return acc


def bind_top(table: Sequence[FieldElement], r: FieldElement) -> List[FieldElement]:
    """Fix the most significant variable of a multilinear table to r."""
    half = len(table) // 2
    return [table[i] + r * (table[i + half] - table[i]) for i in range(half)]


def multilinear_eval(table: Sequence[FieldElement], r: Sequence[FieldElement], field: FieldType) -> FieldElement:
    """Evaluate the multilinear extension of `table` at point r."""
    if len(table) != 1 << len(r):
        raise ValueError(f"Table of size {len(table)} does not match {len(r)} variables")
    current = list(table)
    for ri in r:
        current = bind_top(current, ri)
    return current[0] if current else field.zero()


def interpolate_at(evals: Sequence[FieldElement], x: FieldElement, field: FieldType) -> FieldElement:
    """Evaluate the degree len(evals)-1 polynomial through (i, evals[i]) at x."""
    n = len(evals)
    result = field.zero()
    for i in range(n):
        num = field.one()
        den = field.one()
        for j in range(n):
            if j != i:
                num = num * (x - j)
                den = den * (i - j)
        result = result + evals[i] * num / den
    return result


__all__ = [
    "next_pow2",
    "log2",
    "eq_evals",
    "eq_eval",
    "bind_top",
    "multilinear_eval",
    "interpolate_at",
]
