"""
Binary codecs for the block store wire format.

Varints, the protobuf subset used by merkledag/unixfs nodes, the DAG node
records themselves, and SHA-256 multihash addresses.
"""

from codec import multihash, varint
from codec.dag import Internal, Leaf, Link, decode_node, encode_node

__all__ = [
    "Internal",
    "Leaf",
    "Link",
    "decode_node",
    "encode_node",
    "multihash",
    "varint",
]
