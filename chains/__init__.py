"""
chains/ - Chain node interaction layer.

Modules:
- session: Node session protocol and the substrate-interface session
- connection: Single shared connection with disconnect detection
- scanner: Bounded backward scans answering block/transaction queries
"""

from chains.connection import ConnectionManager, ConnectionStats
from chains.scanner import RpcScanner, ScanLimits, derive_status, extract_timestamp
from chains.session import (
    NodeSession,
    RawBlock,
    RawEvent,
    RawExtrinsic,
    SubstrateSession,
    http_to_ws,
)

__all__ = [
    # Connection
    "ConnectionManager",
    "ConnectionStats",
    # Scanner
    "RpcScanner",
    "ScanLimits",
    "derive_status",
    "extract_timestamp",
    # Session
    "NodeSession",
    "RawBlock",
    "RawEvent",
    "RawExtrinsic",
    "SubstrateSession",
    "http_to_ws",
]
