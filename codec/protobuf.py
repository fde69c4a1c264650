"""
Minimal protobuf subset for merkledag and unixfs records.

Only flat messages are supported: every field is either a varint or a
length-delimited byte string, and nested messages are left as raw bytes for
the caller to parse against their own schema.

Schemas follow:
    https://github.com/ipfs/go-merkledag/blob/master/pb/merkledag.proto
    https://github.com/ipfs/go-unixfs/blob/master/pb/unixfs.proto
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, FrozenSet, List, Tuple

from codec import varint
from common.exceptions import BufferOverrunError, UnknownFieldError, UnsupportedTypeError


class WireType(IntEnum):
    """Protobuf wire types understood by the parser."""
    VARINT = 0
    FIXED64 = 1
    VAR_LENGTH = 2


@dataclass(frozen=True)
class Schema:
    """
    Field layout of one message type.

    Field numbers are the 1-based positions in `names`.

    Attributes:
        name: Message name, used in error messages
        names: Field names in field-number order
        types: Wire type of each field
        repeated: Names of fields that may occur more than once
    """
    name: str
    names: Tuple[str, ...]
    types: Tuple[WireType, ...]
    repeated: FrozenSet[str] = field(default_factory=frozenset)

    def field_number(self, field_name: str) -> int:
        try:
            return self.names.index(field_name) + 1
        except ValueError:
            raise UnknownFieldError(f"unknown field - {self.name}.{field_name}") from None

    def wire_type(self, field_name: str) -> WireType:
        return self.types[self.field_number(field_name) - 1]


PBNODE_SCHEMA = Schema(
    name="PBNode",
    names=("data", "links"),
    types=(WireType.VAR_LENGTH, WireType.VAR_LENGTH),
    repeated=frozenset({"links"}),
)

PBLINK_SCHEMA = Schema(
    name="PBLink",
    names=("hash", "name", "tsize"),
    types=(WireType.VAR_LENGTH, WireType.VAR_LENGTH, WireType.VARINT),
)

UNIXFS_SCHEMA = Schema(
    name="UnixFS",
    names=("type", "data", "filesize", "blocksize", "hashtype", "fanout"),
    types=(
        WireType.VARINT,
        WireType.VAR_LENGTH,
        WireType.VARINT,
        WireType.VARINT,
        WireType.VARINT,
        WireType.VARINT,
    ),
)


def encode_tag(schema: Schema, field_name: str) -> bytes:
    """
    Encode the tag of a field: (field number << 3) | wire type.

    Args:
        schema: Message schema
        field_name: Field to encode

    Returns:
        Varint-encoded tag

    Raises:
        UnknownFieldError: If field_name is not in the schema
    """
    number = schema.field_number(field_name)
    return varint.encode((number << 3) | schema.types[number - 1])


def encode_varint_field(schema: Schema, field_name: str, value: int) -> bytes:
    """Encode a varint field as tag followed by the value."""
    return encode_tag(schema, field_name) + varint.encode(value)


def encode_bytes_field(schema: Schema, field_name: str, value: bytes) -> bytes:
    """Encode a length-delimited field as tag, length, then the raw bytes."""
    return encode_tag(schema, field_name) + varint.encode(len(value)) + bytes(value)


def parse(data: bytes, schema: Schema) -> Dict[str, Any]:
    """
    Parse a flat message against a schema.

    Repeated fields come back as a list in occurrence order. For any other
    field only the first occurrence is kept and later duplicates are dropped;
    this differs from protobuf's last-one-wins rule and is relied upon.

    Args:
        data: Encoded message
        schema: Message schema

    Returns:
        Mapping of field name to int, bytes, or a list of them for repeated fields

    Raises:
        UnknownFieldError: If a tag's field number is outside the schema
        UnsupportedTypeError: If a tag carries a wire type the parser does not handle
        BufferOverrunError: If a varint or length-delimited value is truncated
    """
    collected: Dict[str, List[Any]] = {}
    offset = 0

    while offset < len(data):
        tag = varint.decode(data, offset)
        offset += tag.length

        index = (tag.value >> 3) - 1
        if index < 0 or index >= len(schema.names):
            raise UnknownFieldError(f"unknown field - {schema.name} tag {tag.value}")
        field_name = schema.names[index]

        wire_type = tag.value & 0x07
        if wire_type in (WireType.VARINT, WireType.FIXED64):
            value = varint.decode(data, offset)
            offset += value.length
            collected.setdefault(field_name, []).append(value.value)
        elif wire_type == WireType.VAR_LENGTH:
            length = varint.decode(data, offset)
            offset += length.length
            if offset + length.value > len(data):
                raise BufferOverrunError(
                    f"buffer overrun - {schema.name}.{field_name} declares {length.value} bytes, "
                    f"{len(data) - offset} available"
                )
            collected.setdefault(field_name, []).append(bytes(data[offset:offset + length.value]))
            offset += length.value
        else:
            raise UnsupportedTypeError(
                f"unsupported type - {schema.name}.{field_name} wire type {wire_type}"
            )

    return {
        name: values if name in schema.repeated else values[0]
        for name, values in collected.items()
    }
