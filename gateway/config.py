"""Configuration for gateway endpoints, cooldown, retries and chunking."""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from common.constants import (
    CHUNK_SIZE_BYTES,
    DEFAULT_COOLDOWN_MS,
    DEFAULT_READ_ENDPOINTS,
    DEFAULT_TRUSTED_READ_ENDPOINTS,
    DEFAULT_WRITE_ENDPOINTS,
    ENV_PREFIX,
    MAX_CONNECTIONS,
    MAX_RETRIES,
    REQUEST_TIMEOUT_SECONDS,
    RETRY_BACKOFF_MULTIPLIER,
    RETRY_BASE_DELAY_SECONDS,
    RETRY_MAX_DELAY_SECONDS,
)
from common.logging_config import get_logger

logger = get_logger(__name__)

LIST_OPTIONS = ("read_endpoints", "trusted_read_endpoints", "write_endpoints")
INT_OPTIONS = ("cooldown_ms", "max_retries", "chunk_size", "max_connections")
REQUIRED_ENDPOINTS = ("read_endpoints", "write_endpoints")
FLOAT_OPTIONS = ("timeout", "retry_backoff_multiplier", "retry_base_delay", "retry_max_delay")


def _split_endpoints(value: str) -> List[str]:
    return [url.strip().rstrip('/') for url in value.split(',') if url.strip()]


class GatewayConfig:
    """
    Gateway client settings.

    Values come from built-in defaults, then BLOCKSTORE_* environment
    variables, then the mapping passed in (typically loaded from JSON).
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            data: Explicit option overrides, e.g. {"write_endpoints": [...], "cooldown_ms": 60000}

        Raises:
            ValueError: If an option is unknown or out of range
        """
        config = self._defaults()
        config.update(self._from_env())
        if data:
            unknown = set(data) - set(config)
            if unknown:
                raise ValueError(f"Unknown configuration option(s): {', '.join(sorted(unknown))}")
            config.update(data)

        self.data = config
        self._validate()

        for name in LIST_OPTIONS:
            config[name] = [url.rstrip('/') for url in config[name]]

    @classmethod
    def from_file(cls, config_path: Path) -> 'GatewayConfig':
        """
        Load configuration from a JSON file.

        A missing or corrupted file falls back to defaults.

        Args:
            config_path: Path to config JSON file

        Returns:
            GatewayConfig instance
        """
        config_path = Path(config_path)
        if not config_path.exists():
            logger.debug(f"Config file not found at {config_path}, using defaults")
            return cls()

        try:
            with open(config_path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}, using defaults")
            return cls()

        if not isinstance(data, dict):
            logger.warning(f"Config file {config_path} does not hold a JSON object, using defaults")
            return cls()

        return cls(data)

    def save(self, config_path: Path) -> None:
        """Write the current configuration to a JSON file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            json.dump(self.data, f, indent=2)

    @staticmethod
    def _defaults() -> Dict[str, Any]:
        return {
            "read_endpoints": list(DEFAULT_READ_ENDPOINTS),
            "trusted_read_endpoints": list(DEFAULT_TRUSTED_READ_ENDPOINTS),
            "write_endpoints": list(DEFAULT_WRITE_ENDPOINTS),
            "cooldown_ms": DEFAULT_COOLDOWN_MS,
            "timeout": REQUEST_TIMEOUT_SECONDS,
            "max_retries": MAX_RETRIES,
            "retry_backoff_multiplier": RETRY_BACKOFF_MULTIPLIER,
            "retry_base_delay": RETRY_BASE_DELAY_SECONDS,
            "retry_max_delay": RETRY_MAX_DELAY_SECONDS,
            "chunk_size": CHUNK_SIZE_BYTES,
            "max_connections": MAX_CONNECTIONS,
            "headers": {},
        }

    @staticmethod
    def _from_env() -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        for name in LIST_OPTIONS + INT_OPTIONS + FLOAT_OPTIONS:
            raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            try:
                if name in LIST_OPTIONS:
                    overrides[name] = _split_endpoints(raw)
                elif name in INT_OPTIONS:
                    overrides[name] = int(raw)
                else:
                    overrides[name] = float(raw)
            except ValueError:
                raise ValueError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from None
        return overrides

    def _validate(self) -> None:
        for name in LIST_OPTIONS:
            urls = self.data[name]
            if not isinstance(urls, list) or not all(isinstance(url, str) and url for url in urls):
                raise ValueError(f"{name} must be a list of URLs, got {urls!r}")
        for name in REQUIRED_ENDPOINTS:
            if not self.data[name]:
                raise ValueError(f"{name} must name at least one endpoint")
        for name in INT_OPTIONS:
            value = self.data[name]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        for name in FLOAT_OPTIONS:
            value = self.data[name]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")

        if self.data['chunk_size'] <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.data['chunk_size']}")
        if self.data['cooldown_ms'] < 0:
            raise ValueError(f"cooldown_ms must not be negative, got {self.data['cooldown_ms']}")
        if self.data['max_retries'] < 0:
            raise ValueError(f"max_retries must not be negative, got {self.data['max_retries']}")
        if self.data['timeout'] <= 0:
            raise ValueError(f"timeout must be positive, got {self.data['timeout']}")
        if self.data['max_connections'] <= 0:
            raise ValueError(f"max_connections must be positive, got {self.data['max_connections']}")
        if not isinstance(self.data['headers'], dict):
            raise ValueError("headers must be a mapping of header name to value")

    def get_endpoints(self, option: str) -> List[str]:
        """
        Get an endpoint list.

        Args:
            option: One of read_endpoints, trusted_read_endpoints, write_endpoints

        Returns:
            List of base URLs without trailing slash
        """
        return list(self.data[option])

    def get_cooldown_seconds(self) -> float:
        """
        Get the failure cooldown window.

        Returns:
            Cooldown in seconds
        """
        return self.data['cooldown_ms'] / 1000.0

    def get_timeout(self) -> float:
        """
        Get request timeout in seconds.

        Returns:
            Timeout value in seconds
        """
        return self.data['timeout']

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries', 'retry_backoff_multiplier',
            'retry_base_delay' and 'retry_max_delay'
        """
        return {
            'max_retries': self.data['max_retries'],
            'retry_backoff_multiplier': self.data['retry_backoff_multiplier'],
            'retry_base_delay': self.data['retry_base_delay'],
            'retry_max_delay': self.data['retry_max_delay'],
        }

    def get_chunk_size(self) -> int:
        """Get the chunk size in bytes used to split payloads."""
        return self.data['chunk_size']

    def get_headers(self) -> Dict[str, str]:
        """Get extra HTTP headers sent with every request (e.g. Authorization)."""
        return dict(self.data['headers'])

    def get_max_connections(self) -> int:
        """Get the connection pool size, which also bounds in-flight block requests."""
        return self.data['max_connections']
