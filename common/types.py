"""Shared data type definitions (PutResult)."""

import json
from dataclasses import dataclass


@dataclass(frozen=True)
class PutResult:
    """
    Result of storing one block.

    Attributes:
        key: Base-58 multihash address of the block
        size: Block size in bytes as reported by the write endpoint
    """
    key: str
    size: int

    def to_json(self) -> bytes:
        """Serialize to the block/put response format."""
        return json.dumps({'Key': self.key, 'Size': self.size}).encode('utf-8')

    @classmethod
    def from_json(cls, data: bytes) -> 'PutResult':
        """
        Deserialize a block/put response.

        Raises:
            ValueError: If data is not JSON or lacks a string Key
        """
        obj = json.loads(data)
        if not isinstance(obj, dict) or not isinstance(obj.get('Key'), str):
            raise ValueError(f"block/put response has no Key: {obj!r}")
        return cls(key=obj['Key'], size=int(obj.get('Size') or 0))
