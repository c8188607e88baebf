"""Constraint builder for circuits written in Python.

Variables are linear combinations over allocated witness slots, stored as a
dict from slot index to coefficient with slot 0 the constant one:

    x = w0 + 5·w2 + 7·w3   ->   {0: 1, 2: 5, 3: 7}

Every linear combination also carries its value, so the witness is computed
while the circuit is laid out. Constraints are recorded whatever the values
are; a circuit laid out with placeholder values has the same structure as
one laid out with a real assignment, which is how shapes are extracted.

finalize() reorders the slots into circom's wire layout, publics first.
"""

from typing import Dict, List, Optional, Sequence, Tuple, Union

from constraints.r1cs import Constraint, ConstraintSystem

ONE = 0


class LinearCombination:
    """Sum of coefficient·slot terms with its current value.

    Attributes:
        terms: Slot index to coefficient, zero coefficients omitted
        value: Value under the builder's assignment
        modulus: Field prime
    """

    __slots__ = ("terms", "value", "modulus")

    def __init__(self, terms: Dict[int, int], value: int, modulus: int):
        self.terms = terms
        self.value = value
        self.modulus = modulus

    @classmethod
    def constant(cls, c: int, modulus: int) -> "LinearCombination":
        c %= modulus
        return cls({ONE: c} if c else {}, c, modulus)

    def is_constant(self) -> bool:
        return all(idx == ONE for idx in self.terms)

    def _coerce(self, other) -> "LinearCombination":
        if isinstance(other, LinearCombination):
            return other
        return LinearCombination.constant(int(other), self.modulus)

    def __add__(self, other) -> "LinearCombination":
        other = self._coerce(other)
        p = self.modulus
        terms = dict(self.terms)
        for idx, coeff in other.terms.items():
            c = (terms.get(idx, 0) + coeff) % p
            if c:
                terms[idx] = c
            else:
                terms.pop(idx, None)
        return LinearCombination(terms, (self.value + other.value) % p, p)

    __radd__ = __add__

    def __neg__(self) -> "LinearCombination":
        p = self.modulus
        return LinearCombination({idx: p - c for idx, c in self.terms.items()}, (-self.value) % p, p)

    def __sub__(self, other) -> "LinearCombination":
        return self + (-self._coerce(other))

    def __rsub__(self, other) -> "LinearCombination":
        return self._coerce(other) + (-self)

    def __mul__(self, k: int) -> "LinearCombination":
        if isinstance(k, LinearCombination):
            raise TypeError("Products of variables need a constraint; use ConstraintBuilder.mul")
        p = self.modulus
        k = int(k) % p
        if k == 0:
            return LinearCombination({}, 0, p)
        return LinearCombination({idx: c * k % p for idx, c in self.terms.items()}, self.value * k % p, p)

    __rmul__ = __mul__

    def __repr__(self) -> str:
        return f"LinearCombination({self.terms}, value={self.value})"


LC = LinearCombination
Operand = Union[LinearCombination, int]


def _inverse_or_zero(value: int, p: int) -> int:
    return pow(value, p - 2, p) if value % p else 0


class ConstraintBuilder:
    """Lays out constraints and their satisfying assignment at the same time.

    Attributes:
        modulus: Field prime
        values: Assignment of every slot, slot 0 is 1
        constraints: (a, b, c) term dicts in creation order
        public: Slots published as public outputs, in order
    """

    def __init__(self, modulus: int):
        self.modulus = modulus
        self.values: List[int] = [1]
        self.constraints: List[Tuple[Dict[int, int], Dict[int, int], Dict[int, int]]] = []
        self.public: List[int] = []

    # --- Variables ---

    def one(self) -> LC:
        return LinearCombination({ONE: 1}, 1, self.modulus)

    def constant(self, c: int) -> LC:
        return LinearCombination.constant(c, self.modulus)

    def alloc(self, value: int) -> LC:
        idx = len(self.values)
        v = int(value) % self.modulus
        self.values.append(v)
        return LinearCombination({idx: 1}, v, self.modulus)

    def _lc(self, x: Operand) -> LC:
        return x if isinstance(x, LinearCombination) else self.constant(x)

    def enforce(self, a: Operand, b: Operand, c: Operand) -> None:
        """Record a·b = c."""
        self.constraints.append((self._lc(a).terms, self._lc(b).terms, self._lc(c).terms))

    def num_constraints(self) -> int:
        return len(self.constraints)

    # --- Gadgets ---

    def mul(self, a: Operand, b: Operand) -> LC:
        a, b = self._lc(a), self._lc(b)
        if a.is_constant():
            return b * a.value
        if b.is_constant():
            return a * b.value
        out = self.alloc(a.value * b.value)
        self.enforce(a, b, out)
        return out

    def div(self, num: LC, den: LC) -> LC:
        """out with out·den = num; a zero denominator assigns 0."""
        out = self.alloc(num.value * _inverse_or_zero(den.value, self.modulus))
        self.enforce(out, den, num)
        return out

    def assert_boolean(self, x: LC) -> None:
        self.enforce(x, self.one() - x, 0)

    def assert_equal(self, a: Operand, b: Operand) -> None:
        self.enforce(self._lc(a) - self._lc(b), self.one(), 0)

    def alloc_bits(self, value: int, num_bits: int) -> List[LC]:
        """Little-endian boolean slots holding the low num_bits of value."""
        bits = []
        for i in range(num_bits):
            bit = self.alloc((value >> i) & 1)
            self.assert_boolean(bit)
            bits.append(bit)
        return bits

    def from_bits(self, bits: Sequence[LC]) -> LC:
        acc = self.constant(0)
        for i, bit in enumerate(bits):
            acc = acc + bit * (1 << i)
        return acc

    def to_bits(self, x: LC, num_bits: int) -> List[LC]:
        """Decompose x into num_bits booleans; unsatisfiable when x >= 2^num_bits."""
        bits = self.alloc_bits(x.value, num_bits)
        self.enforce(self.from_bits(bits), self.one(), x)
        return bits

    def range_check(self, x: LC, num_bits: int) -> None:
        self.to_bits(x, num_bits)

    def is_zero(self, x: LC) -> LC:
        """Boolean slot equal to 1 exactly when x = 0."""
        p = self.modulus
        flag = self.alloc(1 if x.value % p == 0 else 0)
        inv = self.alloc(_inverse_or_zero(x.value, p))
        self.enforce(x, inv, self.one() - flag)
        self.enforce(x, flag, 0)
        return flag

    def select(self, cond: LC, if_true: Operand, if_false: Operand) -> LC:
        """cond ? if_true : if_false for a boolean cond."""
        a, b = self._lc(if_true), self._lc(if_false)
        out = self.alloc(a.value if cond.value else b.value)
        self.enforce(cond, a - b, out - b)
        return out

    def inputize(self, x: LC) -> LC:
        """Publish x as the next public output."""
        out = self.alloc(x.value)
        self.enforce(x, self.one(), out)
        self.public.append(next(iter(out.terms)))
        return out

    # --- Output ---

    def finalize(self, num_outputs: Optional[int] = None) -> Tuple[ConstraintSystem, List[int]]:
        """Constraint system in circom's layout and the matching witness.

        Public slots become wires 1..k in publication order; every other slot
        keeps its relative order after them.
        """
        p = self.modulus
        k = len(self.public)
        if num_outputs is not None and num_outputs != k:
            raise ValueError(f"Circuit published {k} values, expected {num_outputs}")
        wire_of = {ONE: 0}
        for wire, idx in enumerate(self.public, start=1):
            wire_of[idx] = wire
        next_wire = k + 1
        for idx in range(1, len(self.values)):
            if idx not in wire_of:
                wire_of[idx] = next_wire
                next_wire += 1

        def row(terms: Dict[int, int]):
            return tuple(sorted((wire_of[idx], c % p) for idx, c in terms.items() if c % p))

        constraints = tuple(Constraint(row(a), row(b), row(c)) for a, b, c in self.constraints)
        witness = [0] * len(self.values)
        for idx, v in enumerate(self.values):
            witness[wire_of[idx]] = v
        cs = ConstraintSystem(
            prime=p,
            num_outputs=k,
            num_public_inputs=k,
            num_private_inputs=0,
            num_auxiliary_variables=len(self.values) - 1 - k,
            constraints=constraints,
        )
        return cs, witness


__all__ = ["LinearCombination", "ConstraintBuilder", "ONE"]
