"""
synthetic/generator.py - Deterministic synthetic chain corpus.

The corpus is built once in __init__ and never mutated afterwards, so a
generator can be shared between concurrent readers without locking.

CORPUS CONTRACT:
- block_count blocks counting down from tip_height (never below height 0)
- block hash / tx_count derived from seeds "block:{height}" and
  "block:{height}:txs"
- block timestamps step back BLOCK_INTERVAL_S from tip_timestamp_ms
- every block carries tx_count confirmed transactions of its own, so
  block-transaction pages agree with Block.tx_count
- the transaction listing holds tx_count transactions, newest first:
  the unconfirmed share (seed "tx:{i}"; failed when its seeded value
  exceeds failure_threshold, pending otherwise) followed by the
  confirmed_ratio share taken from the block lists, newest block first
  (shorter when the blocks hold fewer transactions)
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from core.backend import ExplorerBackend
from core.constants import (
    BLOCK_INTERVAL_S,
    MOCK_BLOCK_COUNT,
    MOCK_CONFIRMED_RATIO,
    MOCK_FAILURE_THRESHOLD,
    MOCK_MAX_TXS_PER_BLOCK,
    MOCK_TIP_HEIGHT,
    MOCK_TIP_TIMESTAMP_MS,
    MOCK_TX_COUNT,
    TxStatus,
)
from core.logging import get_logger
from core.models import AddressSummary, Block, Page, Transaction
from core.pagination import paginate, parse_cursor, resolve_id
from core.time import iso_from_ms
from synthetic.seed import seeded_hex, seeded_range, seeded_unit

logger = get_logger(__name__)


@dataclass(frozen=True)
class MockParams:
    """Shape of the synthetic corpus."""

    tip_height: int = MOCK_TIP_HEIGHT
    block_count: int = MOCK_BLOCK_COUNT
    tx_count: int = MOCK_TX_COUNT
    confirmed_ratio: float = MOCK_CONFIRMED_RATIO
    failure_threshold: float = MOCK_FAILURE_THRESHOLD
    max_txs_per_block: int = MOCK_MAX_TXS_PER_BLOCK
    tip_timestamp_ms: int = MOCK_TIP_TIMESTAMP_MS

    def __post_init__(self):
        if self.tip_height < 0:
            raise ValueError("tip_height must be non-negative")
        if self.block_count < 0 or self.tx_count < 0:
            raise ValueError("corpus sizes must be non-negative")
        if not 0.0 <= self.confirmed_ratio <= 1.0:
            raise ValueError("confirmed_ratio must be within [0, 1]")


class MockGenerator(ExplorerBackend):
    """
    Synthetic backend. Also serves as the fallback of the indexer client.
    """

    name = "mock"

    def __init__(self, params: Optional[MockParams] = None):
        self.params = params or MockParams()

        blocks = self._build_blocks()
        block_txs = {b.height: self._build_block_transactions(b) for b in blocks}
        corpus = self._build_transactions(blocks, block_txs)

        self._blocks: Tuple[Block, ...] = tuple(blocks)
        self._transactions: Tuple[Transaction, ...] = tuple(corpus)
        self._block_txs: Mapping[int, Tuple[Transaction, ...]] = MappingProxyType(
            {h: tuple(txs) for h, txs in block_txs.items()}
        )
        self._by_height: Mapping[int, Block] = MappingProxyType({b.height: b for b in blocks})
        self._by_hash: Mapping[str, Block] = MappingProxyType({b.hash.lower(): b for b in blocks})

        tx_index: Dict[str, Transaction] = {}
        for tx in corpus:
            tx_index.setdefault(tx.hash.lower(), tx)
        for txs in block_txs.values():
            for tx in txs:
                tx_index.setdefault(tx.hash.lower(), tx)
        self._tx_by_hash: Mapping[str, Transaction] = MappingProxyType(tx_index)

        logger.debug(
            "Synthetic corpus built",
            extra={"context": {
                "tip_height": self.params.tip_height,
                "blocks": len(self._blocks),
                "transactions": len(self._transactions),
            }},
        )

    # -------------------------------------------------------------------------
    # Corpus construction
    # -------------------------------------------------------------------------

    def _block_timestamp(self, height: int) -> str:
        distance = self.params.tip_height - height
        return iso_from_ms(self.params.tip_timestamp_ms - distance * BLOCK_INTERVAL_S * 1000)

    def _build_blocks(self) -> List[Block]:
        tip = self.params.tip_height
        lowest = max(0, tip - self.params.block_count + 1)
        if self.params.block_count == 0:
            return []
        return [
            Block(
                height=h,
                hash=seeded_hex(f"block:{h}"),
                timestamp=self._block_timestamp(h),
                tx_count=seeded_range(f"block:{h}:txs", 0, self.params.max_txs_per_block),
            )
            for h in range(tip, lowest - 1, -1)
        ]

    def _build_block_transactions(self, block: Block) -> List[Transaction]:
        return [
            Transaction(
                hash=seeded_hex(f"block:{block.height}:tx:{j}"),
                status=TxStatus.SUCCESS,
                block_height=block.height,
                timestamp=block.timestamp,
                size=seeded_range(f"block:{block.height}:tx:{j}:size", 100, 2000),
            )
            for j in range(block.tx_count)
        ]

    def _build_unconfirmed(self, count: int) -> List[Transaction]:
        out: List[Transaction] = []
        for i in range(count):
            seed = f"tx:{i}"
            if seeded_unit(f"{seed}:status") > self.params.failure_threshold:
                status = TxStatus.FAILED
            else:
                status = TxStatus.PENDING
            out.append(Transaction(
                hash=seeded_hex(seed),
                status=status,
                size=seeded_range(f"{seed}:size", 100, 2000),
            ))
        return out

    def _build_transactions(
        self, blocks: List[Block], block_txs: Mapping[int, List[Transaction]]
    ) -> List[Transaction]:
        count = self.params.tx_count
        target = int(count * self.params.confirmed_ratio) if blocks else 0

        confirmed: List[Transaction] = []
        for block in blocks:
            for tx in reversed(block_txs[block.height]):
                if len(confirmed) == target:
                    break
                confirmed.append(tx)

        return self._build_unconfirmed(count - target) + confirmed

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def blocks(self) -> Tuple[Block, ...]:
        return self._blocks

    @property
    def transactions(self) -> Tuple[Transaction, ...]:
        return self._transactions

    def block_at(self, height: int) -> Optional[Block]:
        return self._by_height.get(height)

    def find_block(self, identifier: str) -> Optional[Block]:
        block_id = resolve_id(identifier)
        if block_id is None:
            return None
        if block_id.is_height:
            return self._by_height.get(block_id.height)
        return self._by_hash.get(block_id.hash.lower())

    # -------------------------------------------------------------------------
    # ExplorerBackend
    # -------------------------------------------------------------------------

    async def latest_blocks(self, limit: int) -> List[Block]:
        if limit <= 0:
            return []
        return list(self._blocks[:limit])

    async def latest_transactions(self, limit: int) -> List[Transaction]:
        if limit <= 0:
            return []
        return list(self._transactions[:limit])

    async def blocks_page(self, cursor: Optional[str] = None) -> Page[Block]:
        offset = parse_cursor(cursor)
        if offset is None:
            return Page()
        return paginate(self._blocks, offset)

    async def block_by_id(self, identifier: str) -> Optional[Block]:
        return self.find_block(identifier)

    async def transactions_page(self, cursor: Optional[str] = None) -> Page[Transaction]:
        offset = parse_cursor(cursor)
        if offset is None:
            return Page()
        return paginate(self._transactions, offset)

    async def transaction_by_hash(self, tx_hash: str) -> Optional[Transaction]:
        if not tx_hash or not tx_hash.strip():
            return None
        return self._tx_by_hash.get(tx_hash.strip().lower())

    async def address_summary(self, address: str) -> Optional[AddressSummary]:
        if not address or not address.strip():
            return None
        addr = address.strip()
        return AddressSummary(
            address=addr,
            balance=str(seeded_range(f"address:{addr}:balance", 0, 10**12)),
            tx_count=seeded_range(f"address:{addr}:txs", 0, 500),
        )

    async def block_transactions(
        self, identifier: str, cursor: Optional[str] = None
    ) -> Page[Transaction]:
        offset = parse_cursor(cursor)
        block = self.find_block(identifier)
        if offset is None or block is None:
            return Page()
        return paginate(self._block_txs.get(block.height, ()), offset)
