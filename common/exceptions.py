"""Custom exception classes for the block store client."""

from typing import Optional


class BlockStoreException(Exception):
    """
    Base exception class for all block store errors.
    """
    pass


class CodecError(BlockStoreException):
    """
    Base class for malformed wire data. Never retried.
    """
    pass


class BufferOverrunError(CodecError):
    """
    Raised when a varint or length-prefixed field runs past the end of the buffer.
    """

    def __init__(self, message: str = "buffer overrun"):
        super().__init__(message)


class UnknownFieldError(CodecError):
    """
    Raised when a field tag falls outside the schema.
    """
    pass


class UnsupportedTypeError(CodecError):
    """
    Raised on an unexpected wire type or a UnixFS type other than File.
    """
    pass


class FormatViolationError(CodecError):
    """
    Raised when a DAG node has neither payload nor links, or has both.
    """
    pass


class UnsupportedHashError(CodecError):
    """
    Raised when a link carries a hash that is not a 34-byte SHA-256 multihash.
    """
    pass


class HashMismatchError(BlockStoreException):
    """
    Raised when the multihash of received bytes differs from the requested address,
    or when a write endpoint echoes back a different address.
    """

    def __init__(self, message: str, expected: Optional[str] = None, actual: Optional[str] = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class NoActiveEndpointsError(BlockStoreException):
    """
    Raised when every endpoint of a role is inside its cooldown window.
    """
    pass


class GatewayError(BlockStoreException):
    """
    Raised when a single endpoint fails at the transport level.
    """

    def __init__(self, message: str, url: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ConnectionPoolTimeoutError(GatewayError):
    """
    Raised when no pooled connection freed up in time. The endpoint is not at fault.
    """
    pass


class RetryExhaustedError(BlockStoreException):
    """
    Raised when the retry policy runs out of attempts.
    """

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class EmptyPayloadError(BlockStoreException):
    """
    Raised when attempting to put an empty payload.
    """
    pass


class InvalidAddressError(BlockStoreException, ValueError):
    """
    Raised when an address is missing or is not a base-58 SHA-256 multihash.
    """
    pass
