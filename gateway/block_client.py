"""HTTP client for the block get/put API of a single gateway endpoint."""

from typing import Dict, Optional

import httpx

from common.constants import MAX_CONNECTIONS, REQUEST_TIMEOUT_SECONDS
from common.exceptions import ConnectionPoolTimeoutError, GatewayError
from common.logging_config import get_logger
from common.types import PutResult

logger = get_logger(__name__)


class BlockClient:
    """
    Thin async HTTP client for /api/v0/block/get and /api/v0/block/put.

    Every transport problem (connection error, timeout, non-2xx status or an
    unreadable put response) is raised as GatewayError so the caller can fail
    over to another endpoint. Content is not verified here.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        headers: Optional[Dict[str, str]] = None,
        max_connections: int = MAX_CONNECTIONS,
    ):
        """
        Initialize block client.

        Args:
            client: Existing AsyncClient to use; one is created and owned otherwise
            timeout: Per-request timeout in seconds for an owned client
            headers: Extra headers sent with every request
            max_connections: Connection pool size of an owned client; callers
                keep at most this many requests in flight
        """
        self._owns_client = client is None
        self.max_connections = max_connections
        self.session = client or httpx.AsyncClient(
            timeout=timeout,
            limits=httpx.Limits(max_connections=max_connections),
        )
        self.headers = dict(headers or {})

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self.session.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = dict(self.headers)
        headers.update(kwargs.pop('headers', {}))

        logger.debug(f"Making request: {method} {url}")
        try:
            response = await self.session.request(method, url, headers=headers, **kwargs)
        except httpx.PoolTimeout as e:
            raise ConnectionPoolTimeoutError(f"Connection pool exhausted: {method} {url}", url=url) from e
        except httpx.TimeoutException as e:
            raise GatewayError(f"Request timed out: {method} {url}", url=url) from e
        except httpx.HTTPError as e:
            raise GatewayError(f"Network error: {method} {url} error={type(e).__name__}", url=url) from e

        logger.debug(f"Response received: {method} {url} status={response.status_code}")

        if not response.is_success:
            raise GatewayError(
                f"Gateway error: {method} {url} status={response.status_code}",
                url=url,
                status_code=response.status_code,
            )
        return response

    async def get_block(self, url: str) -> bytes:
        """
        Fetch a raw block.

        Args:
            url: Full block/get URL

        Returns:
            Raw block bytes, unverified

        Raises:
            GatewayError: On any transport failure
        """
        response = await self._request('GET', url)
        return response.content

    async def put_block(self, url: str, data: bytes) -> PutResult:
        """
        Store a raw block.

        Args:
            url: Full block/put URL
            data: Encoded block

        Returns:
            PutResult parsed from the endpoint's JSON reply

        Raises:
            GatewayError: On any transport failure or an unreadable reply
        """
        files = {'file': ('block', data, 'application/octet-stream')}
        response = await self._request('POST', url, files=files)
        try:
            return PutResult.from_json(response.content)
        except ValueError as e:
            raise GatewayError(f"Invalid block/put response from {url}: {e}", url=url) from e
