# PATH: core/backend.py
"""
Backend contract shared by the RPC scanner, the indexer client and the
synthetic generator. The provider facade talks to exactly one of them.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from core.models import AddressSummary, Block, Page, Transaction


class ExplorerBackend(ABC):
    """Read-only, paginated access to blocks, transactions and addresses."""

    name: str = "backend"

    @abstractmethod
    async def latest_blocks(self, limit: int) -> List[Block]:
        """Most recent blocks, newest first."""

    @abstractmethod
    async def latest_transactions(self, limit: int) -> List[Transaction]:
        """Most recent transactions, newest first."""

    @abstractmethod
    async def blocks_page(self, cursor: Optional[str] = None) -> Page[Block]:
        """One page of blocks, newest first."""

    @abstractmethod
    async def block_by_id(self, identifier: str) -> Optional[Block]:
        """Block by height (numeric string) or hash."""

    @abstractmethod
    async def transactions_page(self, cursor: Optional[str] = None) -> Page[Transaction]:
        """One page of transactions, newest first."""

    @abstractmethod
    async def transaction_by_hash(self, tx_hash: str) -> Optional[Transaction]:
        """Transaction by hash (case-insensitive)."""

    @abstractmethod
    async def address_summary(self, address: str) -> Optional[AddressSummary]:
        """Summary for an address, None when unsupported or unknown."""

    @abstractmethod
    async def block_transactions(
        self, identifier: str, cursor: Optional[str] = None
    ) -> Page[Transaction]:
        """One page of the transactions included in a block."""

    async def close(self) -> None:
        """Release any held resources."""
        return None
