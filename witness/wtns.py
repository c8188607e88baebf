"""iden3 `.wtns` witness file format.

    magic "wtns" | version u32 | nSections u32
    section 1: n8 u32 | prime (n8 bytes LE) | nWitness u32
    section 2: nWitness values, n8 bytes LE each
"""

import struct
from pathlib import Path
from typing import List, Sequence, Tuple, Union

from primitives.errors import MalformedInput

WTNS_MAGIC = b"wtns"
WTNS_VERSION = 2

SECTION_HEADER = 1
SECTION_VALUES = 2


def encode_wtns(values: Sequence[int], prime: int) -> bytes:
    n8 = ((prime.bit_length() + 63) // 64) * 8
    header = struct.pack("<I", n8) + prime.to_bytes(n8, "little") + struct.pack("<I", len(values))
    body = b"".join((int(v) % prime).to_bytes(n8, "little") for v in values)
    out = WTNS_MAGIC + struct.pack("<II", WTNS_VERSION, 2)
    out += struct.pack("<IQ", SECTION_HEADER, len(header)) + header
    out += struct.pack("<IQ", SECTION_VALUES, len(body)) + body
    return out


def decode_wtns(data: bytes) -> Tuple[int, List[int]]:
    """Parse a `.wtns` file.

    Returns:
        (prime, values)

    Raises:
        MalformedInput: On bad magic, truncation or inconsistent sizes
    """
    if len(data) < 12 or data[:4] != WTNS_MAGIC:
        raise MalformedInput("Not a wtns file")
    _, num_sections = struct.unpack("<II", data[4:12])
    pos = 12
    sections = {}
    for _ in range(num_sections):
        if pos + 12 > len(data):
            raise MalformedInput("Truncated wtns section header")
        section_type, size = struct.unpack("<IQ", data[pos:pos + 12])
        pos += 12
        if pos + size > len(data):
            raise MalformedInput(f"Truncated wtns section {section_type}")
        sections[section_type] = data[pos:pos + size]
        pos += size
    if SECTION_HEADER not in sections or SECTION_VALUES not in sections:
        raise MalformedInput("wtns file is missing its header or values section")

    header = sections[SECTION_HEADER]
    if len(header) < 4:
        raise MalformedInput("Truncated wtns header")
    n8 = struct.unpack("<I", header[:4])[0]
    if n8 == 0 or len(header) != 4 + n8 + 4:
        raise MalformedInput(f"wtns header has unexpected size {len(header)} for n8={n8}")
    prime = int.from_bytes(header[4:4 + n8], "little")
    count = struct.unpack("<I", header[4 + n8:])[0]

    body = sections[SECTION_VALUES]
    if len(body) != count * n8:
        raise MalformedInput(f"wtns declares {count} values but holds {len(body) // n8}")
    values = [int.from_bytes(body[i * n8:(i + 1) * n8], "little") for i in range(count)]
    return prime, values


def read_wtns(path: Union[str, Path]) -> Tuple[int, List[int]]:
    return decode_wtns(Path(path).read_bytes())


def write_wtns(path: Union[str, Path], values: Sequence[int], prime: int) -> None:
    Path(path).write_bytes(encode_wtns(values, prime))


__all__ = ["encode_wtns", "decode_wtns", "read_wtns", "write_wtns"]
