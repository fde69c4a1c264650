"""SHA-256 multihash addresses rendered as base-58 strings."""

import hashlib

import base58

from codec import varint
from common.constants import MULTIHASH_RAW_LENGTH, SHA2_256_CODE, SHA2_256_LENGTH
from common.exceptions import HashMismatchError, InvalidAddressError

_PREFIX = varint.encode(SHA2_256_CODE) + varint.encode(SHA2_256_LENGTH)


def digest(data: bytes) -> bytes:
    """
    Compute the raw multihash of data.

    Args:
        data: Bytes to hash

    Returns:
        Function id varint, digest length varint, then the SHA-256 digest
    """
    return _PREFIX + hashlib.sha256(data).digest()


def encode(data: bytes) -> str:
    """
    Compute the base-58 multihash address of data.

    Args:
        data: Bytes to hash

    Returns:
        Base-58 address (e.g. "Qm...")
    """
    return from_raw(digest(data))


def from_raw(raw: bytes) -> str:
    """Render raw multihash bytes as a base-58 string."""
    return base58.b58encode(bytes(raw)).decode('ascii')


def to_raw(address: str) -> bytes:
    """
    Decode a base-58 address into raw SHA-256 multihash bytes.

    Args:
        address: Base-58 multihash string

    Returns:
        34 raw bytes (2-byte prefix + 32-byte digest)

    Raises:
        InvalidAddressError: If address is empty, not base-58, or not a SHA-256 multihash
    """
    if not address:
        raise InvalidAddressError("missing multihash")
    try:
        raw = base58.b58decode(address)
    except ValueError as e:
        raise InvalidAddressError(f"invalid base-58 multihash {address!r}: {e}") from e

    if len(raw) != MULTIHASH_RAW_LENGTH or raw[:len(_PREFIX)] != _PREFIX:
        raise InvalidAddressError(f"not a sha2-256 multihash: {address!r}")
    return raw


def is_valid(address: str) -> bool:
    """Check whether address is a well-formed base-58 SHA-256 multihash."""
    try:
        to_raw(address)
    except InvalidAddressError:
        return False
    return True


def verify(data: bytes, address: str) -> None:
    """
    Check that data hashes to address.

    Args:
        data: Bytes as received
        address: Address that was requested

    Raises:
        HashMismatchError: If the recomputed address differs
    """
    actual = encode(data)
    if actual != address:
        raise HashMismatchError(
            f"hash mismatch, expected {address} got {actual}",
            expected=address,
            actual=actual,
        )
