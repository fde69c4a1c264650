"""Unit tests for multihash addresses."""

import hashlib

import base58
import pytest

from codec import multihash
from common.exceptions import HashMismatchError, InvalidAddressError


def test_encode_layout():
    data = b"some block bytes"

    raw = base58.b58decode(multihash.encode(data))

    assert raw[0] == 0x12
    assert raw[1] == 32
    assert raw[2:] == hashlib.sha256(data).digest()
    assert len(raw) == 34


def test_encode_starts_with_qm():
    assert multihash.encode(b"abcd").startswith("Qm")
    assert len(multihash.encode(b"abcd")) == 46


def test_encode_is_deterministic():
    assert multihash.encode(b"payload") == multihash.encode(bytes(b"payload"))


def test_single_bit_change_changes_address():
    data = bytearray(b"\x00" * 64)
    original = multihash.encode(bytes(data))

    data[17] ^= 0x04

    assert multihash.encode(bytes(data)) != original


def test_raw_round_trip():
    address = multihash.encode(b"xyz")

    assert multihash.from_raw(multihash.to_raw(address)) == address
    assert multihash.to_raw(address) == multihash.digest(b"xyz")


@pytest.mark.parametrize("address", [
    "",
    "not base58 0OIl",
    "3mJr7AoUXx2Wqd",
    base58.b58encode(b"\x11\x20" + b"\x00" * 32).decode("ascii"),
])
def test_invalid_addresses(address):
    assert not multihash.is_valid(address)
    with pytest.raises(InvalidAddressError):
        multihash.to_raw(address)


def test_invalid_address_is_a_value_error():
    with pytest.raises(ValueError):
        multihash.to_raw("")


def test_verify_accepts_matching_bytes():
    data = b"block"
    multihash.verify(data, multihash.encode(data))


def test_verify_rejects_mutated_bytes():
    address = multihash.encode(b"block")

    with pytest.raises(HashMismatchError) as exc_info:
        multihash.verify(b"blocK", address)

    assert exc_info.value.expected == address
    assert exc_info.value.actual == multihash.encode(b"blocK")
    assert "hash mismatch" in str(exc_info.value)
