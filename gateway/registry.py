"""Registry of HTTP gateway endpoints with cooldown-based failover."""

import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from common.constants import BLOCK_GET_PATH, BLOCK_PUT_PATH, DEFAULT_COOLDOWN_MS, GATEWAY_PATH_PREFIX
from common.exceptions import NoActiveEndpointsError
from common.logging_config import get_logger
from gateway.config import GatewayConfig

logger = get_logger(__name__)


class Role(str, Enum):
    """Endpoint roles."""
    READ = "read"
    TRUSTED_READ = "trusted_read"
    WRITE = "write"


@dataclass
class GatewayEntry:
    """
    One endpoint and its failure state.

    Attributes:
        url: Base URL without trailing slash
        last_error: Clock reading of the most recent failure, None if it never failed
    """
    url: str
    last_error: Optional[float] = None

    def is_active(self, now: float, cooldown_seconds: float) -> bool:
        return self.last_error is None or now - self.last_error > cooldown_seconds


class GatewayRegistry:
    """
    Endpoint sets per role, with random selection among endpoints outside
    their cooldown window.

    Endpoints are never removed: a failing endpoint is skipped until its
    cooldown elapses, then becomes eligible again. The failure table is
    shared by every concurrent put/get using this registry; marking an
    endpoint is a single attribute assignment.
    """

    def __init__(
        self,
        read_endpoints: Iterable[str] = (),
        trusted_read_endpoints: Iterable[str] = (),
        write_endpoints: Iterable[str] = (),
        cooldown_seconds: float = DEFAULT_COOLDOWN_MS / 1000.0,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize registry.

        Args:
            read_endpoints: Gateways serving /api/v0/block/get
            trusted_read_endpoints: Gateways used for public /ipfs/ links
            write_endpoints: Pinning services accepting /api/v0/block/put
            cooldown_seconds: How long a failed endpoint is excluded
            clock: Time source in seconds
            rng: Random source for endpoint selection
        """
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._rng = rng or random.Random()
        self._entries: Dict[Role, Dict[str, GatewayEntry]] = {
            Role.READ: self._build_entries(read_endpoints),
            Role.TRUSTED_READ: self._build_entries(trusted_read_endpoints),
            Role.WRITE: self._build_entries(write_endpoints),
        }
        logger.info(
            f"Initialized GatewayRegistry [read={len(self._entries[Role.READ])}, "
            f"trusted_read={len(self._entries[Role.TRUSTED_READ])}, "
            f"write={len(self._entries[Role.WRITE])}, cooldown={cooldown_seconds}s]"
        )

    @classmethod
    def from_config(cls, config: GatewayConfig, **kwargs) -> 'GatewayRegistry':
        """Build a registry from a GatewayConfig."""
        return cls(
            read_endpoints=config.get_endpoints('read_endpoints'),
            trusted_read_endpoints=config.get_endpoints('trusted_read_endpoints'),
            write_endpoints=config.get_endpoints('write_endpoints'),
            cooldown_seconds=config.get_cooldown_seconds(),
            **kwargs
        )

    @staticmethod
    def _build_entries(urls: Iterable[str]) -> Dict[str, GatewayEntry]:
        entries = {}
        for url in urls:
            url = url.rstrip('/')
            entries[url] = GatewayEntry(url=url)
        return entries

    def entries(self, role: Role) -> List[GatewayEntry]:
        """Get all entries of a role, including those in cooldown."""
        return list(self._entries[role].values())

    def active(self, role: Role) -> List[str]:
        """
        Get endpoints of a role that are outside their cooldown window.

        Args:
            role: Endpoint role

        Returns:
            List of base URLs, in registration order
        """
        now = self._clock()
        return [
            entry.url for entry in self._entries[role].values()
            if entry.is_active(now, self.cooldown_seconds)
        ]

    def select(self, role: Role) -> str:
        """
        Pick a random endpoint of a role that is not cooling down.

        Args:
            role: Endpoint role

        Returns:
            Base URL of the chosen endpoint

        Raises:
            NoActiveEndpointsError: If every endpoint of the role is in cooldown
        """
        candidates = self.active(role)
        if not candidates:
            raise NoActiveEndpointsError(
                f"no active {role.value} endpoints; possible connectivity problem"
            )
        return self._rng.choice(candidates)

    def mark_failure(self, role: Role, url: str) -> None:
        """
        Record a failure for an endpoint, starting its cooldown.

        Args:
            role: Endpoint role
            url: Base URL returned by select()
        """
        entry = self._entries[role].get(url.rstrip('/'))
        if entry is None:
            logger.warning(f"Ignoring failure for unknown {role.value} endpoint {url}")
            return
        entry.last_error = self._clock()
        logger.warning(
            f"Marked {role.value} endpoint {url} as failed, excluded for {self.cooldown_seconds}s"
        )

    def get_url(self, url: str, address: str) -> str:
        """Build the block/get URL for an address on a read endpoint."""
        return f"{url}{BLOCK_GET_PATH}?arg={address}"

    def put_url(self, url: str) -> str:
        """Build the block/put URL on a write endpoint."""
        return f"{url}{BLOCK_PUT_PATH}"

    def trusted_url(self, address: str) -> str:
        """
        Build a public gateway link to an address on a trusted endpoint.

        Raises:
            NoActiveEndpointsError: If every trusted endpoint is in cooldown
        """
        return f"{self.select(Role.TRUSTED_READ)}{GATEWAY_PATH_PREFIX}{address}"
