"""Non-native modular arithmetic for folding scalars of the other field.

A circuit over one field of the cycle folds instances whose scalars (u and
the public IO X) live in the other field. Those scalars are carried as two
128-bit words (lo, hi); the folding update d = a + b·c mod m is proven over
64-bit limbs:

    a + b·c = q·m + d          (as integers)

checked one 128-bit word at a time with signed carries, so no intermediate
value gets near the native modulus. q and d are range-checked bit by bit.
d is not forced below m; an honest prover reduces it and the state hash
binds the canonical value the native verifier recomputes.
"""

from typing import List, Sequence

from constraints.builder import LC, ConstraintBuilder

LIMB_BITS = 64
WORD_BITS = 128
CARRY_BITS = 69
CARRY_OFFSET = 1 << (CARRY_BITS - 1)


def to_limbs(value: int, num_limbs: int) -> List[int]:
    mask = (1 << LIMB_BITS) - 1
    return [(value >> (LIMB_BITS * i)) & mask for i in range(num_limbs)]


def to_words(value: int) -> List[int]:
    """(lo, hi) 128-bit words of a scalar below 2^256."""
    mask = (1 << WORD_BITS) - 1
    return [value & mask, value >> WORD_BITS]


def limbs_from_bits(cb: ConstraintBuilder, bits: Sequence[LC]) -> List[LC]:
    return [cb.from_bits(bits[i:i + LIMB_BITS]) for i in range(0, len(bits), LIMB_BITS)]


def words_from_bits(cb: ConstraintBuilder, bits: Sequence[LC]) -> List[LC]:
    return [cb.from_bits(bits[i:i + WORD_BITS]) for i in range(0, len(bits), WORD_BITS)]


def _value(limbs: Sequence[LC], width: int) -> int:
    return sum(limb.value << (width * i) for i, limb in enumerate(limbs))


def _convolve(cb: ConstraintBuilder, xs: Sequence[LC], ys: Sequence[LC], size: int) -> List[LC]:
    out = [cb.constant(0) for _ in range(size)]
    for i, x in enumerate(xs):
        for j, y in enumerate(ys):
            out[i + j] = out[i + j] + cb.mul(x, y)
    return out


def mul_add_mod(cb: ConstraintBuilder, a_words: Sequence[LC], b_limbs: Sequence[LC],
                c_limbs: Sequence[LC], modulus: int, quotient_bits: int) -> List[LC]:
    """(lo, hi) words of a + b·c mod `modulus`.

    Args:
        cb: Builder
        a_words: Two 128-bit words, each below 2^128
        b_limbs: 64-bit limbs of b (constants allowed)
        c_limbs: 64-bit limbs of c
        modulus: Non-native modulus m below 2^256
        quotient_bits: Width of the quotient q = (a + b·c) // m
    """
    a = _value(a_words, WORD_BITS)
    b = _value(b_limbs, LIMB_BITS)
    c = _value(c_limbs, LIMB_BITS)
    q, d = divmod(a + b * c, modulus)

    q_limbs = limbs_from_bits(cb, cb.alloc_bits(q, quotient_bits))
    d_limbs = limbs_from_bits(cb, cb.alloc_bits(d, 2 * WORD_BITS))
    m_limbs = [cb.constant(v) for v in to_limbs(modulus, 4)]

    size = 6
    bc = _convolve(cb, b_limbs, c_limbs, size)
    qm = _convolve(cb, q_limbs, m_limbs, size)
    shift = 1 << LIMB_BITS

    # integer values of each word of both sides, for the carries
    def limb_int(limbs: List[LC], k: int) -> int:
        return limbs[k].value if k < len(limbs) else 0

    def product_int(xs, ys, k: int) -> int:
        return sum(x.value * ys[k - i].value for i, x in enumerate(xs) if 0 <= k - i < len(ys))

    carry = cb.constant(0)
    carry_int = 0
    for w in range(3):
        lhs = bc[2 * w] + bc[2 * w + 1] * shift
        rhs = qm[2 * w] + qm[2 * w + 1] * shift
        lhs_int = product_int(b_limbs, c_limbs, 2 * w) + (product_int(b_limbs, c_limbs, 2 * w + 1) << LIMB_BITS)
        rhs_int = product_int(q_limbs, m_limbs, 2 * w) + (product_int(q_limbs, m_limbs, 2 * w + 1) << LIMB_BITS)
        if w < 2:
            lhs = lhs + a_words[w]
            lhs_int += a_words[w].value
            rhs = rhs + d_limbs[2 * w] + d_limbs[2 * w + 1] * shift
            rhs_int += limb_int(d_limbs, 2 * w) + (limb_int(d_limbs, 2 * w + 1) << LIMB_BITS)
        diff = lhs - rhs + carry
        diff_int = lhs_int - rhs_int + carry_int
        if w == 2:
            cb.assert_equal(diff, 0)
            break
        carry_int = diff_int >> WORD_BITS
        carry_bits = cb.alloc_bits(carry_int + CARRY_OFFSET, CARRY_BITS)
        carry = cb.from_bits(carry_bits) - CARRY_OFFSET
        cb.assert_equal(diff, carry * (1 << WORD_BITS))

    return [d_limbs[0] + d_limbs[1] * shift, d_limbs[2] + d_limbs[3] * shift]


__all__ = [
    "LIMB_BITS",
    "WORD_BITS",
    "to_limbs",
    "to_words",
    "limbs_from_bits",
    "words_from_bits",
    "mul_add_mod",
]
