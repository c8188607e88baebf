"""Point arithmetic on the other curve of the cycle, inside a circuit.

A circuit over one field of the cycle can do arithmetic natively on points
whose coordinates live in that field. Points are carried as (x, y, inf) with
the identity as (0, 0, 1), matching Group.coordinates().

Scalar multiplication follows the usual folding-verifier layout: the loop
uses incomplete formulas (the accumulator and the doubled base never meet
for scalars shorter than the group order) and the low bit is handled with a
complete addition at the end.
"""

from typing import List, NamedTuple, Sequence, Tuple

from constraints.builder import LC, ConstraintBuilder


class AllocatedPoint(NamedTuple):
    x: LC
    y: LC
    inf: LC


def alloc_point(cb: ConstraintBuilder, coords: Tuple[int, int, int]) -> AllocatedPoint:
    x, y, inf = coords
    flag = cb.alloc(inf)
    cb.assert_boolean(flag)
    return AllocatedPoint(cb.alloc(x), cb.alloc(y), flag)


def identity_point(cb: ConstraintBuilder) -> AllocatedPoint:
    return AllocatedPoint(cb.constant(0), cb.constant(0), cb.constant(1))


def select_point(cb: ConstraintBuilder, cond: LC, if_true: AllocatedPoint,
                 if_false: AllocatedPoint) -> AllocatedPoint:
    return AllocatedPoint(*(cb.select(cond, a, b) for a, b in zip(if_true, if_false)))


# --- Incomplete Formulas ---


def _add_incomplete(cb: ConstraintBuilder, p1: Tuple[LC, LC], p2: Tuple[LC, LC]) -> Tuple[LC, LC]:
    """p1 + p2 for x1 != x2."""
    (x1, y1), (x2, y2) = p1, p2
    lam = cb.div(y2 - y1, x2 - x1)
    x3 = cb.alloc(lam.value * lam.value - x1.value - x2.value)
    cb.enforce(lam, lam, x3 + x1 + x2)
    y3 = cb.alloc(lam.value * (x1.value - x3.value) - y1.value)
    cb.enforce(lam, x1 - x3, y3 + y1)
    return x3, y3


def _double_incomplete(cb: ConstraintBuilder, pt: Tuple[LC, LC]) -> Tuple[LC, LC]:
    """2·pt for y != 0."""
    x, y = pt
    xx = cb.mul(x, x)
    lam = cb.div(xx * 3, y * 2)
    x3 = cb.alloc(lam.value * lam.value - 2 * x.value)
    cb.enforce(lam, lam, x3 + x * 2)
    y3 = cb.alloc(lam.value * (x.value - x3.value) - y.value)
    cb.enforce(lam, x - x3, y3 + y)
    return x3, y3


# --- Complete Addition ---


def add(cb: ConstraintBuilder, p1: AllocatedPoint, p2: AllocatedPoint) -> AllocatedPoint:
    """p1 + p2 for any two points, including equal, opposite and identity inputs."""
    x1, y1, inf1 = p1
    x2, y2, inf2 = p2
    same_x = cb.is_zero(x2 - x1)
    same_y = cb.is_zero(y2 - y1)

    # chord; the denominator is 1 when the x coordinates agree
    lam = cb.div(y2 - y1, x2 - x1 + same_x)
    x_add = cb.alloc(lam.value * lam.value - x1.value - x2.value)
    cb.enforce(lam, lam, x_add + x1 + x2)
    y_add = cb.alloc(lam.value * (x1.value - x_add.value) - y1.value)
    cb.enforce(lam, x1 - x_add, y_add + y1)

    # tangent
    xx = cb.mul(x1, x1)
    lam_d = cb.div(xx * 3, y1 * 2)
    x_dbl = cb.alloc(lam_d.value * lam_d.value - 2 * x1.value)
    cb.enforce(lam_d, lam_d, x_dbl + x1 * 2)
    y_dbl = cb.alloc(lam_d.value * (x1.value - x_dbl.value) - y1.value)
    cb.enforce(lam_d, x1 - x_dbl, y_dbl + y1)

    doubling = cb.mul(same_x, same_y)
    opposite = same_x - doubling
    x = cb.select(doubling, x_dbl, x_add)
    y = cb.select(doubling, y_dbl, y_add)
    x = cb.mul(x, cb.one() - opposite)
    y = cb.mul(y, cb.one() - opposite)

    x = cb.select(inf2, x1, x)
    y = cb.select(inf2, y1, y)
    inf = cb.select(inf2, inf1, opposite)
    x = cb.select(inf1, x2, x)
    y = cb.select(inf1, y2, y)
    inf = cb.select(inf1, inf2, inf)
    return AllocatedPoint(x, y, inf)


def negate(pt: AllocatedPoint) -> AllocatedPoint:
    return AllocatedPoint(pt.x, -pt.y, pt.inf)


# --- Scalar Multiplication ---


def scalar_mul(cb: ConstraintBuilder, pt: AllocatedPoint, bits: Sequence[LC]) -> AllocatedPoint:
    """sum(bits[i]·2^i)·pt for a little-endian scalar shorter than the group order.

    Starts from acc = pt as if bit 0 were set and corrects with a complete
    subtraction of pt when it is not.
    """
    acc = (pt.x, pt.y)
    base = _double_incomplete(cb, acc)
    for i in range(1, len(bits)):
        summed = _add_incomplete(cb, acc, base)
        acc = (cb.select(bits[i], summed[0], acc[0]), cb.select(bits[i], summed[1], acc[1]))
        if i < len(bits) - 1:
            base = _double_incomplete(cb, base)
    acc_pt = AllocatedPoint(acc[0], acc[1], cb.constant(0))
    corrected = add(cb, acc_pt, negate(pt))
    result = select_point(cb, bits[0], acc_pt, corrected)
    return select_point(cb, pt.inf, identity_point(cb), result)


def point_elements(pt: AllocatedPoint) -> List[LC]:
    return [pt.x, pt.y, pt.inf]


__all__ = [
    "AllocatedPoint",
    "alloc_point",
    "identity_point",
    "select_point",
    "add",
    "negate",
    "scalar_mul",
    "point_elements",
]
