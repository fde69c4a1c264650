"""
Merkle-DAG node records.

A node is either a Leaf carrying one chunk of payload, or an Internal node
whose links enumerate child nodes in payload order. Leaf payload is wrapped
in a UnixFS File record before being stored in the node's `data` field, so
blocks written here are readable by stock IPFS tooling.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from codec import multihash, protobuf
from codec.protobuf import PBLINK_SCHEMA, PBNODE_SCHEMA, UNIXFS_SCHEMA
from common.constants import MULTIHASH_RAW_LENGTH, UNIXFS_DIRECTORY, UNIXFS_FILE, UNIXFS_RAW
from common.exceptions import FormatViolationError, UnsupportedHashError, UnsupportedTypeError

UNIXFS_TYPE_NAMES = {UNIXFS_RAW: "Raw", UNIXFS_DIRECTORY: "Directory", UNIXFS_FILE: "File"}


@dataclass(frozen=True)
class Link:
    """
    Reference from a node to a child node.

    Attributes:
        hash: Base-58 multihash of the child node
        tsize: Cumulative byte size of the child subtree (not verified)
        name: Link name; never written by this client
    """
    hash: str
    tsize: int = 0
    name: Optional[str] = None


@dataclass(frozen=True)
class Leaf:
    """Node holding one chunk of payload and no links."""
    payload: bytes

    @property
    def links(self) -> Tuple[Link, ...]:
        return ()


@dataclass(frozen=True)
class Internal:
    """Node with no payload whose links list child nodes in order."""
    links: Tuple[Link, ...] = field(default_factory=tuple)

    @property
    def payload(self) -> bytes:
        return b""


DagRecord = Union[Leaf, Internal]


def encode_unixfs(payload: bytes) -> bytes:
    """
    Wrap payload in a UnixFS File record.

    The payload length is written as `filesize`; unixfs.proto keeps it
    separately from `data`.
    """
    return (
        protobuf.encode_varint_field(UNIXFS_SCHEMA, "type", UNIXFS_FILE)
        + protobuf.encode_bytes_field(UNIXFS_SCHEMA, "data", payload)
        + protobuf.encode_varint_field(UNIXFS_SCHEMA, "filesize", len(payload))
    )


def decode_unixfs(data: bytes) -> bytes:
    """
    Unwrap the payload of a UnixFS File record.

    Args:
        data: Encoded UnixFS record

    Returns:
        Payload bytes; empty when the record has no data field

    Raises:
        UnsupportedTypeError: If the record is not a File, or its data is not a byte string
    """
    record = protobuf.parse(data, UNIXFS_SCHEMA)

    unixfs_type = record.get("type")
    if unixfs_type != UNIXFS_FILE:
        kind = UNIXFS_TYPE_NAMES.get(unixfs_type, unixfs_type)
        raise UnsupportedTypeError(f"unsupported type - unixfs type {kind}")

    payload = record.get("data")
    if payload is None:
        return b""
    if not isinstance(payload, bytes):
        raise UnsupportedTypeError("bad data - unixfs data is not a byte string")
    return payload


def encode_link(link: Link) -> bytes:
    """
    Encode a link as raw multihash bytes plus tsize.

    Raises:
        InvalidAddressError: If link.hash is not a base-58 SHA-256 multihash
    """
    raw = multihash.to_raw(link.hash)
    return (
        protobuf.encode_bytes_field(PBLINK_SCHEMA, "hash", raw)
        + protobuf.encode_varint_field(PBLINK_SCHEMA, "tsize", link.tsize)
    )


def decode_link(data: bytes) -> Link:
    """
    Decode a link.

    Raises:
        UnsupportedHashError: If the hash is not a 34-byte SHA-256 multihash
    """
    record = protobuf.parse(data, PBLINK_SCHEMA)

    raw = record.get("hash")
    if not isinstance(raw, bytes) or len(raw) != MULTIHASH_RAW_LENGTH:
        shown = raw.hex() if isinstance(raw, bytes) else repr(raw)
        raise UnsupportedHashError(f"unsupported hash {shown}")

    tsize = record.get("tsize", 0)
    if not isinstance(tsize, int):
        raise UnsupportedTypeError("bad tsize - link tsize is not a varint")

    name = record.get("name")
    if isinstance(name, bytes):
        name = name.decode("utf-8", errors="replace")

    return Link(hash=multihash.from_raw(raw), tsize=tsize, name=name)


def encode_node(record: DagRecord) -> bytes:
    """
    Encode a DAG record as a merkledag PBNode.

    An empty Leaf encodes to an empty node, which decode_node rejects.

    Args:
        record: Leaf or Internal node

    Returns:
        Encoded block bytes
    """
    if isinstance(record, Leaf):
        if not record.payload:
            return b""
        return protobuf.encode_bytes_field(PBNODE_SCHEMA, "data", encode_unixfs(record.payload))

    if isinstance(record, Internal):
        return b"".join(
            protobuf.encode_bytes_field(PBNODE_SCHEMA, "links", encode_link(link))
            for link in record.links
        )

    raise TypeError(f"expected Leaf or Internal, got {type(record).__name__}")


def decode_node(data: bytes) -> DagRecord:
    """
    Decode a merkledag PBNode into a Leaf or Internal record.

    Args:
        data: Block bytes (already verified against their address)

    Returns:
        Internal if the node has links, otherwise Leaf

    Raises:
        FormatViolationError: If the node has neither data nor links, or has links and non-empty data
        UnsupportedTypeError: If a field holds the wrong kind of value or the UnixFS type is not File
        UnsupportedHashError: If a link hash is not a SHA-256 multihash
    """
    node = protobuf.parse(data, PBNODE_SCHEMA)
    raw_links: List = node.get("links", [])
    raw_data = node.get("data")

    if raw_data is not None and not isinstance(raw_data, bytes):
        raise UnsupportedTypeError("bad data - node data is not a byte string")

    if raw_links:
        if any(not isinstance(raw, bytes) for raw in raw_links):
            raise UnsupportedTypeError("bad links - node link is not a byte string")
        links = tuple(decode_link(raw) for raw in raw_links)
        if raw_data is not None and decode_unixfs(raw_data):
            raise FormatViolationError("node has both links and data")
        return Internal(links=links)

    if raw_data is not None:
        return Leaf(payload=decode_unixfs(raw_data))

    raise FormatViolationError("missing links or data")
