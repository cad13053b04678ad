"""
core - Shared models and utilities for the explorer data layer.

This package contains:
- models.py: Value objects (Block, Transaction, AddressSummary, Page, ChainTip)
- constants.py: Enums, fixed contract values and defaults
- exceptions.py: Typed exceptions with error codes
- pagination.py: Cursor and id resolution helpers
- time.py: Timestamp normalization and estimation
- logging.py: Structured JSON logging
"""

from core.constants import (
    PAGE_SIZE,
    BackendKind,
    ErrorCode,
    TxStatus,
)
from core.exceptions import (
    ConfigurationError,
    ExplorerError,
    ExplorerTimeoutError,
    InfraError,
    MappingError,
    NodeConnectionError,
    QueryShapeError,
)
from core.logging import get_logger, setup_logging
from core.models import (
    AddressSummary,
    Block,
    ChainTip,
    Page,
    Transaction,
)
from core.pagination import (
    BlockId,
    encode_cursor,
    paginate,
    parse_cursor,
    resolve_id,
)

__all__ = [
    # Constants
    "PAGE_SIZE",
    "BackendKind",
    "ErrorCode",
    "TxStatus",
    # Exceptions
    "ConfigurationError",
    "ExplorerError",
    "ExplorerTimeoutError",
    "InfraError",
    "MappingError",
    "NodeConnectionError",
    "QueryShapeError",
    # Models
    "AddressSummary",
    "Block",
    "ChainTip",
    "Page",
    "Transaction",
    # Pagination
    "BlockId",
    "encode_cursor",
    "paginate",
    "parse_cursor",
    "resolve_id",
    # Logging
    "get_logger",
    "setup_logging",
]
