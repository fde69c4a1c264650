"""Unit tests for varint encoding."""

import pytest

from codec import varint
from common.exceptions import BufferOverrunError


class TestVarintEncode:
    """Test varint encoding."""

    @pytest.mark.parametrize("value,expected", [
        (0, b"\x00"),
        (1, b"\x01"),
        (127, b"\x7f"),
        (128, b"\x80\x01"),
        (300, b"\xac\x02"),
        (2 ** 14, b"\x80\x80\x01"),
    ])
    def test_known_encodings(self, value, expected):
        assert varint.encode(value) == expected

    def test_encoding_is_minimal(self):
        for value in (0, 127, 128, 2 ** 21 - 1, 2 ** 21, 2 ** 35):
            encoded = varint.encode(value)
            assert encoded[-1] & 0x80 == 0
            assert all(b & 0x80 for b in encoded[:-1])
            assert len(encoded) == max(1, -(-value.bit_length() // 7))

    def test_negative_value_rejected(self):
        with pytest.raises(ValueError):
            varint.encode(-1)


class TestVarintDecode:
    """Test varint decoding."""

    @pytest.mark.parametrize("value", [0, 300, 2 ** 32, 2 ** 40, 2 ** 40 + 12345, 2 ** 64 + 1])
    def test_round_trip(self, value):
        encoded = varint.encode(value)
        decoded = varint.decode(encoded)

        assert decoded.value == value
        assert decoded.length == len(encoded)

    def test_round_trip_sweep_up_to_2_pow_40(self):
        for shift in range(41):
            for value in ((1 << shift) - 1, 1 << shift, (1 << shift) + 1):
                encoded = varint.encode(value)
                assert varint.decode(encoded) == varint.Varint(value=value, length=len(encoded))

    def test_decode_at_offset(self):
        data = b"\xff" + varint.encode(300) + b"\x05"

        decoded = varint.decode(data, 1)

        assert decoded.value == 300
        assert decoded.length == 2

    def test_decode_stops_at_first_terminal_byte(self):
        decoded = varint.decode(b"\x05\xac\x02")

        assert decoded.value == 5
        assert decoded.length == 1

    def test_truncated_continuation_overruns(self):
        with pytest.raises(BufferOverrunError):
            varint.decode(b"\x80\x80")

    def test_offset_past_end_overruns(self):
        with pytest.raises(BufferOverrunError):
            varint.decode(b"\x01", 1)

    def test_empty_buffer_overruns(self):
        with pytest.raises(BufferOverrunError):
            varint.decode(b"")
