"""BN254 / Grumpkin curve cycle.

Both curves are short Weierstrass with a = 0 and cofactor 1, so py_ecc's
optimized formulas (written for BN254 G1) work for either curve once the
point coordinates live in the right field class. Points are py_ecc
Optimized_Point3D tuples (x, y, z) in homogeneous projective form.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import blake3
from py_ecc.optimized_bn128 import optimized_curve as ec

from primitives.errors import MalformedInput, ParameterMismatch
from primitives.field import (
    FIELD_BYTES,
    FieldElement,
    FieldType,
    Fq,
    Fr,
    batch_inverse,
    sqrt_mod,
)

Point = Tuple[FieldElement, FieldElement, FieldElement]

POINT_BYTES = 2 * FIELD_BYTES

# --- Jacobian Arithmetic ---
#
# Hot paths (MSMs, scalar multiplication, generator folding) run on integer
# Jacobian coordinates (X, Y, Z) with x = X/Z^2, y = Y/Z^3; py_ecc points are
# homogeneous (x = X/Z, y = Y/Z). Formulas are the a = 0 ones from the
# Explicit-Formulas Database (dbl-2009-l, add-2007-bl, madd-2007-bl).

JacobianPoint = Tuple[int, int, int]

_JAC_INF: JacobianPoint = (1, 1, 0)

MUL_WINDOW = 4


def _jac_double(P: JacobianPoint, p: int) -> JacobianPoint:
    X1, Y1, Z1 = P
    if Z1 == 0 or Y1 == 0:
        return _JAC_INF
    A = X1 * X1 % p
    B = Y1 * Y1 % p
    C = B * B % p
    D = 2 * ((X1 + B) * (X1 + B) - A - C) % p
    E = 3 * A % p
    X3 = (E * E - 2 * D) % p
    Y3 = (E * (D - X3) - 8 * C) % p
    Z3 = 2 * Y1 * Z1 % p
    return X3, Y3, Z3


def _jac_add(P: JacobianPoint, Q: JacobianPoint, p: int) -> JacobianPoint:
    X1, Y1, Z1 = P
    X2, Y2, Z2 = Q
    if Z1 == 0:
        return Q
    if Z2 == 0:
        return P
    Z1Z1 = Z1 * Z1 % p
    Z2Z2 = Z2 * Z2 % p
    U1 = X1 * Z2Z2 % p
    U2 = X2 * Z1Z1 % p
    S1 = Y1 * Z2 * Z2Z2 % p
    S2 = Y2 * Z1 * Z1Z1 % p
    H = (U2 - U1) % p
    r = 2 * (S2 - S1) % p
    if H == 0:
        return _jac_double(P, p) if r == 0 else _JAC_INF
    I = 4 * H * H % p
    J = H * I % p
    V = U1 * I % p
    X3 = (r * r - J - 2 * V) % p
    Y3 = (r * (V - X3) - 2 * S1 * J) % p
    Z3 = ((Z1 + Z2) * (Z1 + Z2) - Z1Z1 - Z2Z2) * H % p
    return X3, Y3, Z3


def _jac_add_affine(P: JacobianPoint, x2: int, y2: int, p: int) -> JacobianPoint:
    """P + (x2, y2) for an affine, non-identity second point."""
    X1, Y1, Z1 = P
    if Z1 == 0:
        return x2, y2, 1
    Z1Z1 = Z1 * Z1 % p
    U2 = x2 * Z1Z1 % p
    S2 = y2 * Z1 * Z1Z1 % p
    H = (U2 - X1) % p
    r = 2 * (S2 - Y1) % p
    if H == 0:
        return _jac_double(P, p) if r == 0 else _JAC_INF
    HH = H * H % p
    I = 4 * HH % p
    J = H * I % p
    V = X1 * I % p
    X3 = (r * r - J - 2 * V) % p
    Y3 = (r * (V - X3) - 2 * Y1 * J) % p
    Z3 = ((Z1 + H) * (Z1 + H) - Z1Z1 - HH) % p
    return X3, Y3, Z3


def _jac_mul(P: JacobianPoint, k: int, p: int) -> JacobianPoint:
    """Fixed-window scalar multiplication, k >= 0."""
    if k == 0 or P[2] == 0:
        return _JAC_INF
    table = [_JAC_INF, P]
    for _ in range(2, 1 << MUL_WINDOW):
        table.append(_jac_add(table[-1], P, p))
    mask = (1 << MUL_WINDOW) - 1
    acc = _JAC_INF
    for w in reversed(range((k.bit_length() + MUL_WINDOW - 1) // MUL_WINDOW)):
        for _ in range(MUL_WINDOW):
            acc = _jac_double(acc, p)
        digit = (k >> (w * MUL_WINDOW)) & mask
        if digit:
            acc = _jac_add(acc, table[digit], p)
    return acc


def _pippenger(pairs: Sequence[Tuple[int, int, int]], num_bits: int, p: int) -> JacobianPoint:
    """Bucket MSM over (x, y, k) triples with affine points and k > 1."""
    c = max(2, len(pairs).bit_length() - 4)
    mask = (1 << c) - 1
    result = _JAC_INF
    for w in reversed(range((num_bits + c - 1) // c)):
        for _ in range(c):
            result = _jac_double(result, p)
        buckets = [_JAC_INF] * (1 << c)
        shift = w * c
        for x, y, k in pairs:
            idx = (k >> shift) & mask
            if idx:
                buckets[idx] = _jac_add_affine(buckets[idx], x, y, p)
        running = _JAC_INF
        window_sum = _JAC_INF
        for bucket in reversed(buckets[1:]):
            running = _jac_add(running, bucket, p)
            window_sum = _jac_add(window_sum, running, p)
        result = _jac_add(result, window_sum, p)
    return result

PIPPENGER_THRESHOLD = 16
"""Below this many non-trivial scalars an MSM is a sum of windowed multiplications."""


@dataclass(frozen=True)
class Group:
    """Prime-order group of points on y^2 = x^3 + b over `base_field`.

    Attributes:
        name: Curve name
        scalar_field: Field of scalars (the group order)
        base_field: Field the coordinates live in
        b: Curve constant
    """

    name: str
    scalar_field: FieldType
    base_field: FieldType
    b: int

    @property
    def order(self) -> int:
        return self.scalar_field.field_modulus

    # --- Group Law ---

    def identity(self) -> Point:
        F = self.base_field
        return (F.one(), F.one(), F.zero())

    def is_identity(self, pt: Point) -> bool:
        return ec.is_inf(pt)

    def add(self, p1: Point, p2: Point) -> Point:
        return ec.add(p1, p2)

    def neg(self, pt: Point) -> Point:
        return ec.neg(pt)

    def mul(self, pt: Point, scalar) -> Point:
        p = self.base_field.field_modulus
        return self._from_jacobian(_jac_mul(self._to_jacobian(pt), int(scalar) % self.order, p))

    def eq(self, p1: Point, p2: Point) -> bool:
        if self.is_identity(p1) or self.is_identity(p2):
            return self.is_identity(p1) and self.is_identity(p2)
        return ec.eq(p1, p2)

    def msm(self, points: Sequence[Point], scalars: Sequence) -> Point:
        """Multi-scalar multiplication sum(scalars[i] * points[i]).

        Points are normalized with one batch inversion; unit scalars are summed
        directly and the rest go through Pippenger's bucket method.
        """
        if len(scalars) > len(points):
            raise ParameterMismatch(
                f"MSM needs {len(scalars)} points, only {len(points)} available")
        n = self.order
        p = self.base_field.field_modulus
        live = []
        for pt, s in zip(points, scalars):
            k = int(s) % n
            if k and not self.is_identity(pt):
                live.append((pt, k))
        if not live:
            return self.identity()

        inv_z = batch_inverse([pt[2] for pt, _ in live], self.base_field)
        acc = _JAC_INF
        pairs = []
        for (pt, k), zi in zip(live, inv_z):
            x, y = int(pt[0] * zi), int(pt[1] * zi)
            if k == 1:
                acc = _jac_add_affine(acc, x, y, p)
            else:
                pairs.append((x, y, k))
        if len(pairs) < PIPPENGER_THRESHOLD:
            for x, y, k in pairs:
                acc = _jac_add(acc, _jac_mul((x, y, 1), k, p), p)
        else:
            acc = _jac_add(acc, _pippenger(pairs, n.bit_length(), p), p)
        return self._from_jacobian(acc)

    def fold_points(self, lo: Sequence[Point], hi: Sequence[Point], x) -> List[Point]:
        """[lo[i] + x·hi[i]] for one shared scalar x."""
        if len(lo) != len(hi):
            raise ParameterMismatch(f"Cannot fold {len(lo)} points with {len(hi)}")
        p = self.base_field.field_modulus
        k = int(x) % self.order
        return [
            self._from_jacobian(_jac_add(self._to_jacobian(a), _jac_mul(self._to_jacobian(b), k, p), p))
            for a, b in zip(lo, hi)
        ]

    def is_on_curve(self, pt: Point) -> bool:
        return ec.is_on_curve(pt, self.base_field(self.b))

    def _to_jacobian(self, pt: Point) -> JacobianPoint:
        X, Y, Z = (int(c) for c in pt)
        if Z == 0:
            return _JAC_INF
        p = self.base_field.field_modulus
        return X * Z % p, Y * Z * Z % p, Z

    def _from_jacobian(self, P: JacobianPoint) -> Point:
        X, Y, Z = P
        if Z == 0:
            return self.identity()
        F = self.base_field
        p = F.field_modulus
        return (F(X * Z % p), F(Y), F(Z * Z * Z % p))

    # --- Affine Form & Encoding ---

    def to_affine(self, pt: Point) -> Optional[Tuple[int, int]]:
        """Affine integer coordinates, or None for the identity."""
        if self.is_identity(pt):
            return None
        x, y = ec.normalize(pt)
        return int(x), int(y)

    def coordinates(self, pt: Point) -> Tuple[int, int, int]:
        """(x, y, is_infinity) with the identity as (0, 0, 1), the form circuits carry."""
        affine = self.to_affine(pt)
        if affine is None:
            return 0, 0, 1
        return affine[0], affine[1], 0

    def from_affine(self, x: int, y: int) -> Point:
        F = self.base_field
        pt = (F(x), F(y), F.one())
        if not self.is_on_curve(pt):
            raise MalformedInput(f"Point ({x}, {y}) is not on {self.name}")
        return pt

    def encode(self, pt: Point) -> bytes:
        """Big-endian x || y. The identity encodes as all zeros, which is never
        an affine point since b != 0."""
        affine = self.to_affine(pt)
        if affine is None:
            return bytes(POINT_BYTES)
        x, y = affine
        return x.to_bytes(FIELD_BYTES, "big") + y.to_bytes(FIELD_BYTES, "big")

    def decode(self, data: bytes) -> Point:
        if len(data) != POINT_BYTES:
            raise MalformedInput(f"{self.name} point must be {POINT_BYTES} bytes, got {len(data)}")
        if data == bytes(POINT_BYTES):
            return self.identity()
        x = int.from_bytes(data[:FIELD_BYTES], "big")
        y = int.from_bytes(data[FIELD_BYTES:], "big")
        p = self.base_field.field_modulus
        if x >= p or y >= p:
            raise MalformedInput(f"{self.name} coordinate is not reduced")
        return self.from_affine(x, y)

    # --- Deterministic Generators ---

    def hash_to_curve(self, label: bytes) -> Point:
        """Try-and-increment map from a label to a point with unknown discrete log."""
        p = self.base_field.field_modulus
        counter = 0
        while True:
            digest = blake3.blake3(label + counter.to_bytes(4, "little")).digest(length=48)
            x = int.from_bytes(digest, "little") % p
            y = sqrt_mod(pow(x, 3, p) + self.b, p)
            if y is not None and y != 0:
                y = min(y, p - y)
                return self.from_affine(x, y)
            counter += 1

    def derive_generators(self, label: bytes, n: int) -> List[Point]:
        return [self.hash_to_curve(label + b"/" + i.to_bytes(8, "little")) for i in range(n)]


BN254 = Group(name="bn254", scalar_field=Fr, base_field=Fq, b=3)
GRUMPKIN = Group(name="grumpkin", scalar_field=Fq, base_field=Fr, b=Fr.field_modulus - 17)


@dataclass(frozen=True)
class CurveCycle:
    """A 2-cycle: each group's scalar field is the other group's base field.

    The primary circuit (the user's step function wrapped in the augmented
    circuit) is proven over `primary.scalar_field` and commits with `primary`
    points; the secondary circuit works over `secondary.scalar_field`, which
    is where the primary commitments' coordinates live.
    """

    name: str
    primary: Group
    secondary: Group

    def __post_init__(self):
        if self.primary.scalar_field.field_modulus != self.secondary.base_field.field_modulus:
            raise ParameterMismatch(
                f"{self.name}: primary scalar field is not the secondary base field")
        if self.secondary.scalar_field.field_modulus != self.primary.base_field.field_modulus:
            raise ParameterMismatch(
                f"{self.name}: secondary scalar field is not the primary base field")

    def digest_bytes(self) -> bytes:
        out = self.name.encode()
        for g in (self.primary, self.secondary):
            out += g.name.encode() + g.order.to_bytes(FIELD_BYTES, "big") + g.b.to_bytes(FIELD_BYTES, "big")
        return out


BN254_GRUMPKIN = CurveCycle(name="bn254-grumpkin", primary=BN254, secondary=GRUMPKIN)

CURVE_CYCLES: Dict[str, CurveCycle] = {
    BN254_GRUMPKIN.name: BN254_GRUMPKIN,
}


__all__ = [
    "Point",
    "POINT_BYTES",
    "Group",
    "BN254",
    "GRUMPKIN",
    "CurveCycle",
    "BN254_GRUMPKIN",
    "CURVE_CYCLES",
]
