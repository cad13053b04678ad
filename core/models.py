# PATH: core/models.py
"""
Core data models for the explorer data layer.

Entities are value objects reconstructed per query; nothing here is
persisted. to_dict() renders the presentation contract (camelCase keys,
absent optional fields omitted).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

from core.constants import TxStatus

T = TypeVar("T")


@dataclass(frozen=True)
class Block:
    """A block as presented to callers."""

    height: int
    hash: str
    timestamp: str  # ISO 8601, estimated when the source has none
    tx_count: int

    def __post_init__(self):
        if self.tx_count < 0:
            raise ValueError(f"tx_count must be non-negative, got {self.tx_count}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "height": self.height,
            "hash": self.hash,
            "timestamp": self.timestamp,
            "txCount": self.tx_count,
        }


@dataclass(frozen=True)
class Transaction:
    """A transaction (extrinsic) as presented to callers."""

    hash: str
    status: TxStatus
    block_height: Optional[int] = None  # None while unconfirmed
    timestamp: Optional[str] = None  # None while unconfirmed
    size: Optional[int] = None  # bytes

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "hash": self.hash,
            "status": self.status.value,
        }
        if self.block_height is not None:
            out["blockHeight"] = self.block_height
        if self.timestamp is not None:
            out["timestamp"] = self.timestamp
        if self.size is not None:
            out["size"] = self.size
        return out


@dataclass(frozen=True)
class AddressSummary:
    """Summary information about an address."""

    address: str
    balance: Optional[str] = None
    tx_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"address": self.address}
        if self.balance is not None:
            out["balance"] = self.balance
        if self.tx_count is not None:
            out["txCount"] = self.tx_count
        return out


@dataclass(frozen=True)
class ChainTip:
    """Latest finalized block known to the node."""

    hash: str
    height: int


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One window of an ordered collection.

    next_cursor is present iff more items exist beyond this window.
    """

    items: List[T] = field(default_factory=list)
    next_cursor: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "items": [item.to_dict() for item in self.items],
        }
        if self.next_cursor is not None:
            out["nextCursor"] = self.next_cursor
        return out
