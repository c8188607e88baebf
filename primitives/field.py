"""Prime fields of the BN254 / Grumpkin cycle and their encodings.

Uses py_ecc's optimized field element classes for all field arithmetic. Fr is
the BN254 scalar field (and the Grumpkin base field); Fq is the BN254 base
field (and the Grumpkin scalar field).

Field elements cross three encodings: hex strings (what the folding engine
emits for step inputs), base-10 strings (what circom witness executors read)
and fixed-width bytes (what transcripts, r1cs and wtns files carry).
"""

from typing import Dict, List, Optional, Sequence, Type

from py_ecc.fields import optimized_bn128_FQ, optimized_FQ

from primitives.errors import EncodingError

# --- Field Construction ---

BN254_SCALAR_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617
BN254_BASE_MODULUS = 21888242871839275222246405745257275088696311157297823662689037894645226208583

FIELD_BYTES = 32


class Fr(optimized_FQ):
    """BN254 scalar field, the field circom circuits are written over."""

    field_modulus = BN254_SCALAR_MODULUS


Fq = optimized_bn128_FQ
"""BN254 base field, shared with py_ecc's optimized curve."""

FieldElement = optimized_FQ
FieldType = Type[optimized_FQ]

_FIELDS_BY_MODULUS: Dict[int, FieldType] = {
    BN254_SCALAR_MODULUS: Fr,
    BN254_BASE_MODULUS: Fq,
}


def field_for_modulus(modulus: int) -> FieldType:
    """Return the field class with the given prime modulus.

    Raises:
        KeyError: If no supported field has this modulus
    """
    if modulus not in _FIELDS_BY_MODULUS:
        raise KeyError(f"Unsupported field modulus {modulus}")
    return _FIELDS_BY_MODULUS[modulus]


# --- Vector Helpers ---


def to_field_vec(values: Sequence, field: FieldType) -> List[FieldElement]:
    """Convert ints or elements of any field to elements of `field`."""
    return [field(int(v)) for v in values]


def inner_product(a: Sequence[FieldElement], b: Sequence[FieldElement], field: FieldType) -> FieldElement:
    if len(a) != len(b):
        raise ValueError(f"Length mismatch: {len(a)} vs {len(b)}")
    acc = field.zero()
    for x, y in zip(a, b):
        acc = acc + x * y
    return acc


def batch_inverse(values: Sequence[FieldElement], field: FieldType) -> List[FieldElement]:
    """Montgomery batch inversion. Zero inputs are rejected."""
    if not values:
        return []
    prefix = []
    acc = field.one()
    for v in values:
        if v == 0:
            raise ZeroDivisionError("batch_inverse of zero element")
        prefix.append(acc)
        acc = acc * v
    inv = field.one() / acc
    result = [field.zero()] * len(values)
    for i in range(len(values) - 1, -1, -1):
        result[i] = prefix[i] * inv
        inv = inv * values[i]
    return result


# --- Square Roots ---


def sqrt_mod(value: int, p: int) -> Optional[int]:
    """Square root modulo an odd prime, or None for non-residues.

    Uses the (p+1)/4 exponent when p = 3 mod 4 and Tonelli-Shanks otherwise.
    """
    value %= p
    if value == 0:
        return 0
    if pow(value, (p - 1) // 2, p) != 1:
        return None
    if p % 4 == 3:
        return pow(value, (p + 1) // 4, p)

    q, s = p - 1, 0
    while q % 2 == 0:
        q //= 2
        s += 1
    z = 2
    while pow(z, (p - 1) // 2, p) != p - 1:
        z += 1
    m, c, t, r = s, pow(z, q, p), pow(value, q, p), pow(value, (q + 1) // 2, p)
    while t != 1:
        i, t2 = 0, t
        while t2 != 1:
            t2 = t2 * t2 % p
            i += 1
        b = pow(c, 1 << (m - i - 1), p)
        m, c = i, b * b % p
        t, r = t * c % p, r * b % p
    return r


# --- Encodings ---


def to_hex(element: FieldElement) -> str:
    """Fixed-width lowercase hex encoding without a 0x prefix."""
    return format(int(element), f"0{2 * FIELD_BYTES}x")


def hex_to_int(value: str, modulus: Optional[int] = None) -> int:
    """Parse a hex field element, accepting an optional 0x prefix.

    Raises:
        EncodingError: If the string is not hex or the value is not reduced
    """
    if not isinstance(value, str):
        raise EncodingError(f"Expected hex string, got {type(value).__name__}")
    digits = value[2:] if value[:2] in ("0x", "0X") else value
    if not digits or any(ch not in "0123456789abcdefABCDEF" for ch in digits):
        raise EncodingError(f"Invalid hex field element: {value!r}")
    result = int(digits, 16)
    if modulus is not None and result >= modulus:
        raise EncodingError(f"Hex value {value!r} is not below the field modulus")
    return result


def hex_to_decimal(value: str, modulus: Optional[int] = None) -> str:
    """Re-encode a hex field element as the base-10 string witness executors read."""
    return str(hex_to_int(value, modulus))


def decimal_to_int(value, modulus: Optional[int] = None) -> int:
    """Parse a base-10 field element given as str or int.

    Raises:
        EncodingError: If the value is not a non-negative decimal or not reduced
    """
    if isinstance(value, bool):
        raise EncodingError(f"Invalid decimal field element: {value!r}")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str) and value.isdigit() and value.isascii():
        result = int(value, 10)
    else:
        raise EncodingError(f"Invalid decimal field element: {value!r}")
    if result < 0 or (modulus is not None and result >= modulus):
        raise EncodingError(f"Decimal value {value!r} is outside the field")
    return result


def decimal_to_hex(value, modulus: Optional[int] = None) -> str:
    return format(decimal_to_int(value, modulus), f"0{2 * FIELD_BYTES}x")


def to_bytes_be(element: FieldElement) -> bytes:
    return int(element).to_bytes(FIELD_BYTES, "big")


def from_bytes_be(data: bytes, field: FieldType) -> FieldElement:
    """Decode a canonical 32-byte big-endian element.

    Raises:
        EncodingError: If the width is wrong or the value is not reduced
    """
    if len(data) != FIELD_BYTES:
        raise EncodingError(f"Field element must be {FIELD_BYTES} bytes, got {len(data)}")
    value = int.from_bytes(data, "big")
    if value >= field.field_modulus:
        raise EncodingError("Field element is not below the modulus")
    return field(value)


__all__ = [
    "BN254_SCALAR_MODULUS",
    "BN254_BASE_MODULUS",
    "FIELD_BYTES",
    "Fr",
    "Fq",
    "FieldElement",
    "FieldType",
    "field_for_modulus",
    "to_field_vec",
    "inner_product",
    "batch_inverse",
    "sqrt_mod",
    "to_hex",
    "hex_to_int",
    "hex_to_decimal",
    "decimal_to_int",
    "decimal_to_hex",
    "to_bytes_be",
    "from_bytes_be",
]
