"""Shared pytest fixtures for all tests."""

import asyncio
import random
from typing import Dict, List, Optional, Set, Tuple

import httpx
import pytest

from codec import multihash
from gateway.block_client import BlockClient
from gateway.registry import GatewayRegistry
from store.chunked_store import ChunkedStore
from store.retry import RetryPolicy


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGateway:
    """
    In-memory stand-in for any number of block API endpoints.

    Endpoints are told apart by host name. Hosts can be made to fail at the
    transport level, return HTTP errors, tamper with blocks, or echo back a
    wrong key.
    """

    def __init__(self):
        self.blocks: Dict[str, bytes] = {}
        self.requests: List[httpx.Request] = []
        self.down: Set[str] = set()
        self.server_error: Set[str] = set()
        self.tamper: Set[str] = set()
        self.wrong_key: Set[str] = set()
        self.get_delays: Dict[str, float] = {}
        self.put_delay: float = 0
        self.pool_timeouts: Dict[str, int] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    @staticmethod
    def parse_parts(request: httpx.Request) -> List[Tuple[str, bytes]]:
        """Split a multipart/form-data request into (part headers, part body) pairs."""
        content_type = request.headers['content-type']
        boundary = content_type.split('boundary=', 1)[1].encode('ascii')
        sections = request.content.split(b"--" + boundary)
        assert sections[-1] == b"--\r\n"
        parts = []
        for section in sections[1:-1]:
            head, _, body = section[len(b"\r\n"):].partition(b"\r\n\r\n")
            assert body.endswith(b"\r\n")
            parts.append((head.decode('ascii'), body[:-len(b"\r\n")]))
        return parts

    @classmethod
    def extract_part(cls, request: httpx.Request) -> bytes:
        parts = cls.parse_parts(request)
        assert len(parts) == 1
        return parts[0][1]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            return await self._respond(request)
        finally:
            self.in_flight -= 1

    async def _respond(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host

        if self.pool_timeouts.get(host):
            self.pool_timeouts[host] -= 1
            raise httpx.PoolTimeout("no free connection", request=request)

        if host in self.down:
            raise httpx.ConnectError("connection refused", request=request)
        if host in self.server_error:
            return httpx.Response(502, text="bad gateway")

        if request.method == 'POST' and request.url.path == '/api/v0/block/put':
            if self.put_delay:
                await asyncio.sleep(self.put_delay)
            block = self.extract_part(request)
            key = multihash.encode(block)
            self.blocks[key] = block
            if host in self.wrong_key:
                key = multihash.encode(block + b"x")
            return httpx.Response(200, json={'Key': key, 'Size': len(block)})

        if request.method == 'GET' and request.url.path == '/api/v0/block/get':
            address = request.url.params['arg']
            delay = self.get_delays.get(address)
            if delay:
                await asyncio.sleep(delay)
            if address not in self.blocks:
                return httpx.Response(404, text="block not found")
            block = self.blocks[address]
            if host in self.tamper:
                block = bytes([block[0] ^ 0x01]) + block[1:]
            return httpx.Response(200, content=block)

        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(self, host: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fast_retry():
    """Retry policy without backoff delays."""
    return RetryPolicy(max_attempts=5, base_delay=0, max_delay=0)


@pytest.fixture
def make_registry(clock):
    """Factory for registries on the fake clock with a seeded RNG."""
    def factory(
        read: Optional[List[str]] = None,
        write: Optional[List[str]] = None,
        trusted: Optional[List[str]] = None,
        cooldown_seconds: float = 1800,
        **kwargs
    ) -> GatewayRegistry:
        kwargs.setdefault('clock', clock)
        kwargs.setdefault('rng', random.Random(42))
        return GatewayRegistry(
            read_endpoints=read if read is not None else ["http://gw1.test"],
            trusted_read_endpoints=trusted if trusted is not None else ["https://trusted.test"],
            write_endpoints=write if write is not None else ["http://pin1.test"],
            cooldown_seconds=cooldown_seconds,
            **kwargs
        )
    return factory


@pytest.fixture
def make_store(fake_gateway, make_registry, fast_retry):
    """Factory for ChunkedStore instances talking to the fake gateway."""
    def factory(
        registry: Optional[GatewayRegistry] = None,
        chunk_size: int = 16,
        retry_policy: Optional[RetryPolicy] = None,
        max_connections: int = 10,
    ) -> ChunkedStore:
        client = BlockClient(
            client=httpx.AsyncClient(transport=fake_gateway.transport()),
            max_connections=max_connections,
        )
        store = ChunkedStore(
            registry=registry or make_registry(),
            client=client,
            chunk_size=chunk_size,
            retry_policy=retry_policy or fast_retry,
        )
        return store

    return factory

