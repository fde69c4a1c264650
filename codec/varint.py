"""Unsigned base-128 varint encoding, as used by protobuf and multihash."""

from dataclasses import dataclass

from common.exceptions import BufferOverrunError


@dataclass(frozen=True)
class Varint:
    """
    A decoded varint.

    Attributes:
        value: Decoded non-negative integer
        length: Number of bytes the encoding occupied
    """
    value: int
    length: int


def encode(value: int) -> bytes:
    """
    Encode a non-negative integer as a minimal varint.

    Args:
        value: Integer to encode (no upper bound)

    Returns:
        Encoded bytes, low 7-bit group first

    Raises:
        ValueError: If value is negative
    """
    if value < 0:
        raise ValueError(f"varint value must be non-negative, got {value}")

    result = bytearray()
    while value >= 0x80:
        result.append((value & 0x7F) | 0x80)
        value >>= 7
    result.append(value)
    return bytes(result)


def decode(data: bytes, offset: int = 0) -> Varint:
    """
    Decode a varint starting at offset.

    Args:
        data: Buffer holding the varint
        offset: Position of the first byte

    Returns:
        Varint with the value and the number of bytes consumed

    Raises:
        BufferOverrunError: If the continuation bits run past the end of data
    """
    groups = []
    position = offset

    while True:
        if position >= len(data):
            raise BufferOverrunError()
        byte = data[position]
        position += 1
        groups.append(byte & 0x7F)
        if not byte & 0x80:
            break

    value = 0
    for group in reversed(groups):
        value = (value << 7) | group

    return Varint(value=value, length=position - offset)
