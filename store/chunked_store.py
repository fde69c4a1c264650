"""
Chunked storage of byte payloads on IPFS-compatible gateways.

put() splits a payload into fixed-size chunks, stores each chunk as a leaf
DAG node and, when there is more than one chunk, stores a root node linking
the chunks in order. get() fetches a node, verifies that its bytes hash to
the requested address, and reassembles linked chunks in link order.

Example:
    >>> import asyncio
    >>> from gateway.config import GatewayConfig
    >>> from store.chunked_store import ChunkedStore
    >>> async def main():
    ...     async with ChunkedStore.from_config(GatewayConfig()) as store:
    ...         result = await store.put(b"hello")
    ...         return await store.get(result.key)
    >>> # asyncio.run(main())
"""

import asyncio
from typing import Awaitable, Callable, Iterable, List, Optional, TypeVar

import httpx

from codec import multihash
from codec.dag import DagRecord, Internal, Leaf, Link, decode_node, encode_node
from common.constants import CHUNK_SIZE_BYTES
from common.exceptions import (
    ConnectionPoolTimeoutError,
    EmptyPayloadError,
    GatewayError,
    HashMismatchError,
    NoActiveEndpointsError,
    RetryExhaustedError,
)
from common.logging_config import get_logger
from common.types import PutResult
from gateway.block_client import BlockClient
from gateway.config import GatewayConfig
from gateway.registry import GatewayRegistry, Role
from store.retry import RetryPolicy

logger = get_logger(__name__)

T = TypeVar('T')


class ChunkedStore:
    """
    Put and get arbitrary payloads as chunked Merkle-DAGs.

    Transport failures and bad content from an endpoint put that endpoint in
    cooldown and the operation is retried on another one, up to the retry
    policy's attempt limit. Malformed blocks that do hash to their address
    are never retried: the content itself is bad.

    At most client.max_connections block requests are in flight at once, so
    a large payload never queues chunks on the connection pool.

    Attributes:
        registry: Gateway registry shared with any other store using it
        client: Block transport
        chunk_size: Payload bytes per leaf node
        retry_policy: Attempt limit and backoff
    """

    def __init__(
        self,
        registry: GatewayRegistry,
        client: Optional[BlockClient] = None,
        chunk_size: int = CHUNK_SIZE_BYTES,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.registry = registry
        self.client = client or BlockClient()
        self.chunk_size = chunk_size
        self.retry_policy = retry_policy or RetryPolicy()
        self._request_slots = asyncio.Semaphore(self.client.max_connections)

    @classmethod
    def from_config(
        cls,
        config: GatewayConfig,
        registry: Optional[GatewayRegistry] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> 'ChunkedStore':
        """
        Build a store from configuration.

        Args:
            config: Gateway configuration
            registry: Registry to share; a new one is built from config otherwise
            http_client: AsyncClient to use; one is created and owned otherwise
        """
        return cls(
            registry=registry or GatewayRegistry.from_config(config),
            client=BlockClient(
                client=http_client,
                timeout=config.get_timeout(),
                headers=config.get_headers(),
                max_connections=config.get_max_connections(),
            ),
            chunk_size=config.get_chunk_size(),
            retry_policy=RetryPolicy.from_config(config),
        )

    async def __aenter__(self) -> 'ChunkedStore':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    async def put(self, data: bytes) -> PutResult:
        """
        Store a payload.

        Args:
            data: Payload bytes (must not be empty)

        Returns:
            PutResult of the single leaf node, or of the root node linking all chunks

        Raises:
            EmptyPayloadError: If data is empty
            HashMismatchError: If a write endpoint keeps echoing a wrong address
            NoActiveEndpointsError: If every write endpoint is in cooldown
            RetryExhaustedError: If a block could not be stored within the retry policy
        """
        if not data:
            raise EmptyPayloadError("missing data")

        chunks = [data[offset:offset + self.chunk_size] for offset in range(0, len(data), self.chunk_size)]
        results = await _gather_or_cancel(self._put_node(Leaf(payload=chunk)) for chunk in chunks)

        if len(results) == 1:
            logger.info(f"Stored {len(data)} bytes as single block {results[0].key}")
            return results[0]

        root = Internal(links=tuple(Link(hash=result.key, tsize=result.size) for result in results))
        result = await self._put_node(root)
        logger.info(f"Stored {len(data)} bytes as {len(chunks)} chunks under root {result.key}")
        return result

    async def put_address(self, data: bytes) -> str:
        """Store a payload and return only its address."""
        return (await self.put(data)).key

    async def get(self, address: str) -> bytes:
        """
        Fetch a payload by address.

        Args:
            address: Base-58 multihash returned by put()

        Returns:
            The payload, with linked chunks concatenated in link order

        Raises:
            InvalidAddressError: If address is missing or malformed
            HashMismatchError: If no read endpoint served bytes matching the address
            CodecError: If the block hashes correctly but is not a valid node
            NoActiveEndpointsError: If every read endpoint is in cooldown
            RetryExhaustedError: If the block could not be fetched within the retry policy
        """
        multihash.to_raw(address)

        block = await self._get_block(address)
        node = decode_node(block)

        if isinstance(node, Internal):
            logger.debug(f"Block {address} links {len(node.links)} chunk(s)")
            parts = await _gather_or_cancel(self.get(link.hash) for link in node.links)
            return b"".join(parts)

        return node.payload

    def public_url(self, address: str) -> str:
        """Link to an address on a trusted public gateway."""
        return self.registry.trusted_url(address)

    async def _put_node(self, record: DagRecord) -> PutResult:
        encoded = encode_node(record)
        expected = multihash.encode(encoded)

        async def attempt(url: str) -> PutResult:
            result = await self.client.put_block(self.registry.put_url(url), encoded)
            if result.key != expected:
                raise HashMismatchError(
                    f"multihash mismatch, expected {expected} got {result.key}",
                    expected=expected,
                    actual=result.key,
                )
            return result

        return await self._with_failover(Role.WRITE, attempt, f"put {expected}")

    async def _get_block(self, address: str) -> bytes:
        async def attempt(url: str) -> bytes:
            block = await self.client.get_block(self.registry.get_url(url, address))
            multihash.verify(block, address)
            return block

        return await self._with_failover(Role.READ, attempt, f"get {address}")

    async def _with_failover(
        self,
        role: Role,
        operation: Callable[[str], Awaitable[T]],
        description: str,
    ) -> T:
        """
        Run operation against freshly selected endpoints until it succeeds.

        Args:
            role: Endpoint role to select from
            operation: Coroutine function taking the endpoint base URL
            description: Short label for log messages

        Returns:
            Result of the first successful attempt

        Raises:
            HashMismatchError: If the last failure was bad content
            NoActiveEndpointsError: If endpoints run out after transport failures
            RetryExhaustedError: If all attempts failed at the transport level
        """
        max_attempts = self.retry_policy.max_attempts
        last_error: Optional[Exception] = None

        for attempt in range(1, max_attempts + 1):
            try:
                url = self.registry.select(role)
            except NoActiveEndpointsError as e:
                if isinstance(last_error, HashMismatchError):
                    raise last_error from e
                raise

            try:
                async with self._request_slots:
                    return await operation(url)
            except ConnectionPoolTimeoutError as e:
                last_error = e
                if attempt < max_attempts:
                    delay = self.retry_policy.delay(attempt)
                    logger.warning(f"{description} waited too long for a connection to {url}, retrying in {delay}s")
                    await asyncio.sleep(delay)
            except (GatewayError, HashMismatchError) as e:
                last_error = e
                self.registry.mark_failure(role, url)
                if attempt < max_attempts:
                    delay = self.retry_policy.delay(attempt)
                    logger.warning(
                        f"{description} failed on {url} (attempt {attempt}/{max_attempts}): {e}, "
                        f"retrying in {delay}s"
                    )
                    await asyncio.sleep(delay)

        logger.error(f"{description} failed (max attempts exceeded): {last_error}")
        if isinstance(last_error, HashMismatchError):
            raise last_error
        raise RetryExhaustedError(
            f"{description} failed after {max_attempts} attempt(s)",
            attempts=max_attempts,
        ) from last_error


async def _gather_or_cancel(coros: Iterable[Awaitable[T]]) -> List[T]:
    """Await all coroutines in order; on the first failure cancel the rest."""
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
