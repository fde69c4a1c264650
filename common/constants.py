"""Project-wide constants (chunk size, multihash ids, default gateways)."""

CHUNK_SIZE_BYTES: int = 2 ** 18  # 256 KiB default chunk size

# Multihash function id for SHA-256 and its digest length
SHA2_256_CODE: int = 0x12
SHA2_256_LENGTH: int = 32
MULTIHASH_RAW_LENGTH: int = 2 + SHA2_256_LENGTH

# UnixFS data types (only FILE is produced or accepted; others named in errors)
UNIXFS_RAW: int = 0
UNIXFS_DIRECTORY: int = 1
UNIXFS_FILE: int = 2

# https://ipfs.github.io/public-gateway-checker/
DEFAULT_READ_ENDPOINTS = [
    "https://ipfs.infura.io:5001",
    "https://dweb.link",
    "https://gateway.ipfs.io",
]

DEFAULT_TRUSTED_READ_ENDPOINTS = [
    "https://ipfs.infura.io",
    "https://gateway.ipfs.io",
    "https://ipfs.io",
]

# Only pinning services accept block/put
DEFAULT_WRITE_ENDPOINTS = [
    "https://ipfs.infura.io:5001",
]

DEFAULT_COOLDOWN_MS: int = 30 * 60 * 1000

BLOCK_GET_PATH: str = "/api/v0/block/get"
BLOCK_PUT_PATH: str = "/api/v0/block/put"
GATEWAY_PATH_PREFIX: str = "/ipfs/"

REQUEST_TIMEOUT_SECONDS: float = 30.0
# Pool size of an owned HTTP client and the store's in-flight request limit
MAX_CONNECTIONS: int = 10
MAX_RETRIES: int = 4
RETRY_BACKOFF_MULTIPLIER: float = 2.0
RETRY_BASE_DELAY_SECONDS: float = 0.5
RETRY_MAX_DELAY_SECONDS: float = 8.0

ENV_PREFIX: str = "BLOCKSTORE_"
