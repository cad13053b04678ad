# PATH: core/constants.py
"""
Constants for the explorer data layer.

Contains enums, defaults, and fixed contract values.
Tunable values (scan bounds, timeouts, mock corpus shape) live in
config/explorer.yaml and only their defaults are mirrored here.
"""

from enum import Enum
from typing import Final


# =============================================================================
# PAGINATION CONTRACT (FIXED)
# =============================================================================

# Every paginated operation returns at most PAGE_SIZE items.
PAGE_SIZE: Final[int] = 20


# =============================================================================
# CHAIN SCAN DEFAULTS
# =============================================================================

# Backward scan depth for latest/paged transactions.
DEFAULT_MAX_SCAN_BLOCKS: Final[int] = 200

# Backward scan depth for a transaction-by-hash lookup.
DEFAULT_MAX_LOOKUP_BLOCKS: Final[int] = 500

# Blocks fetched concurrently per scan batch.
DEFAULT_SCAN_BATCH_SIZE: Final[int] = 8

# Estimated seconds between blocks, used to synthesize missing timestamps.
BLOCK_INTERVAL_S: Final[int] = 6

# Default overall deadline per facade operation (seconds, None = no deadline).
DEFAULT_DEADLINE_S: Final[float | None] = None

DEFAULT_CONNECT_TIMEOUT_S: Final[float] = 10.0
DEFAULT_INDEXER_TIMEOUT_S: Final[float] = 10.0


# =============================================================================
# SYNTHETIC CORPUS DEFAULTS
# =============================================================================

MOCK_TIP_HEIGHT: Final[int] = 12345
MOCK_BLOCK_COUNT: Final[int] = 100
MOCK_TX_COUNT: Final[int] = 100
MOCK_CONFIRMED_RATIO: Final[float] = 0.7
MOCK_FAILURE_THRESHOLD: Final[float] = 0.75
MOCK_MAX_TXS_PER_BLOCK: Final[int] = 8

# Tip block timestamp of the synthetic chain (ms). Fixed so output never
# depends on the wall clock.
MOCK_TIP_TIMESTAMP_MS: Final[int] = 1_704_067_200_000  # 2024-01-01T00:00:00Z


# =============================================================================
# CHAIN MARKERS
# =============================================================================

TIMESTAMP_SECTION: Final[str] = "timestamp"
TIMESTAMP_METHOD: Final[str] = "set"

SYSTEM_SECTION: Final[str] = "system"
EXTRINSIC_SUCCESS: Final[str] = "extrinsicsuccess"
EXTRINSIC_FAILED: Final[str] = "extrinsicfailed"


# =============================================================================
# ENUMS
# =============================================================================

class TxStatus(str, Enum):
    """Transaction status as presented to callers."""
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"


class BackendKind(str, Enum):
    """Data backend selected by the provider facade."""
    AUTO = "auto"
    RPC = "rpc"
    INDEXER = "indexer"
    MOCK = "mock"


class ErrorCode(str, Enum):
    """
    Error codes carried by ExplorerError subclasses.
    """
    # Configuration
    CONFIG_MISSING_ENDPOINT = "CONFIG_MISSING_ENDPOINT"
    CONFIG_INVALID = "CONFIG_INVALID"

    # Infrastructure
    INFRA_CONNECTION = "INFRA_CONNECTION"
    INFRA_TIMEOUT = "INFRA_TIMEOUT"
    INFRA_RPC_ERROR = "INFRA_RPC_ERROR"

    # Indexer
    INDEXER_TRANSPORT = "INDEXER_TRANSPORT"
    INDEXER_QUERY_SHAPE = "INDEXER_QUERY_SHAPE"

    # Mapping
    MAPPING_MISSING_FIELD = "MAPPING_MISSING_FIELD"

    # Other
    UNKNOWN = "UNKNOWN"
