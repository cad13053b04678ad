"""
chains/scanner.py - Authoritative block/transaction queries against the node.

Walks the chain backward from the finalized tip. Every backward scan is
bounded (ScanLimits); deep history degrades to "not found" / short pages
instead of turning into a full index.

ORDERING CONTRACT:
- Blocks and transactions are returned newest first.
- Within a block, transactions are reversed from execution order when
  merged into a cross-block listing.
- Blocks fetched in the same parallel batch are re-sorted by descending
  height before they are merged.
"""

import asyncio
from contextlib import aclosing
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Sequence, Tuple

from core.backend import ExplorerBackend
from core.constants import (
    BLOCK_INTERVAL_S,
    DEFAULT_MAX_LOOKUP_BLOCKS,
    DEFAULT_MAX_SCAN_BLOCKS,
    DEFAULT_SCAN_BATCH_SIZE,
    EXTRINSIC_FAILED,
    EXTRINSIC_SUCCESS,
    PAGE_SIZE,
    SYSTEM_SECTION,
    TIMESTAMP_METHOD,
    TIMESTAMP_SECTION,
    TxStatus,
)
from core.exceptions import InfraError
from core.logging import get_logger
from core.models import AddressSummary, Block, Page, Transaction
from core.pagination import (
    encode_cursor,
    next_cursor_for,
    paginate,
    parse_cursor,
    resolve_id,
    same_hash,
)
from core.time import estimate_timestamp, normalize_timestamp
from chains.connection import ConnectionManager
from chains.session import RawBlock, RawEvent, RawExtrinsic

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScanLimits:
    """Bounds on backward scans (block fetches per call)."""

    max_scan_blocks: int = DEFAULT_MAX_SCAN_BLOCKS
    max_lookup_blocks: int = DEFAULT_MAX_LOOKUP_BLOCKS
    batch_size: int = DEFAULT_SCAN_BATCH_SIZE

    def __post_init__(self):
        if self.max_scan_blocks < 0 or self.max_lookup_blocks < 0:
            raise ValueError("scan bounds must be non-negative")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")


# =============================================================================
# PURE HELPERS
# =============================================================================

def extract_timestamp(extrinsics: Sequence[RawExtrinsic]) -> Optional[str]:
    """
    Timestamp from the block's timestamp.set inherent, if present.

    Returns:
        ISO timestamp, or None if the inherent is missing or unreadable
    """
    for ext in extrinsics:
        if ext.section.lower() != TIMESTAMP_SECTION:
            continue
        if ext.method and ext.method.lower() != TIMESTAMP_METHOD:
            continue
        if not ext.args:
            return None
        return normalize_timestamp(ext.args[0])
    return None


def derive_status(index: int, events: Sequence[RawEvent]) -> TxStatus:
    """
    Status of the operation at index from phase-correlated events.

    success marker -> SUCCESS, failure marker -> FAILED, neither -> PENDING.
    When both correlate to the same index SUCCESS wins and a warning is
    logged; that combination should not occur on a healthy chain.
    """
    succeeded = False
    failed = False
    for event in events:
        if event.extrinsic_index != index:
            continue
        if event.section.lower() != SYSTEM_SECTION:
            continue
        method = event.method.lower()
        if method == EXTRINSIC_SUCCESS:
            succeeded = True
        elif method == EXTRINSIC_FAILED:
            failed = True

    if succeeded and failed:
        logger.warning(
            "Conflicting status markers for operation",
            extra={"context": {"extrinsic_index": index, "resolved": TxStatus.SUCCESS.value}},
        )
    if succeeded:
        return TxStatus.SUCCESS
    if failed:
        return TxStatus.FAILED
    return TxStatus.PENDING


def map_extrinsics(
    raw: RawBlock,
    events: Sequence[RawEvent],
    height: Optional[int] = None,
) -> List[Transaction]:
    """Transactions of a block in execution order."""
    block_height = raw.height if height is None else height
    timestamp = extract_timestamp(raw.extrinsics)
    return [
        Transaction(
            hash=ext.hash,
            status=derive_status(idx, events),
            block_height=block_height,
            timestamp=timestamp,
            size=ext.encoded_length,
        )
        for idx, ext in enumerate(raw.extrinsics)
    ]


# =============================================================================
# SCANNER
# =============================================================================

class RpcScanner(ExplorerBackend):
    """
    Node-backed backend.

    Address summaries are not supported without an indexer and always
    return None. Connection failures propagate as NodeConnectionError.
    """

    name = "rpc"

    def __init__(
        self,
        connection: ConnectionManager,
        limits: Optional[ScanLimits] = None,
        block_interval_s: int = BLOCK_INTERVAL_S,
    ):
        self.connection = connection
        self.limits = limits or ScanLimits()
        self.block_interval_s = block_interval_s
        self.blocks_fetched = 0

    # -------------------------------------------------------------------------
    # Per-block primitives
    # -------------------------------------------------------------------------

    def _to_block(self, raw: RawBlock, tip_height: Optional[int] = None) -> Block:
        timestamp = extract_timestamp(raw.extrinsics)
        if timestamp is None:
            timestamp = estimate_timestamp(
                raw.height, tip_height, interval_s=self.block_interval_s
            )
        return Block(
            height=raw.height,
            hash=raw.hash,
            timestamp=timestamp,
            tx_count=len(raw.extrinsics),
        )

    async def _fetch_body(self, block_hash: str) -> Optional[RawBlock]:
        session = await self.connection.acquire()
        self.blocks_fetched += 1
        return await session.get_block(block_hash)

    async def _fetch_events(self, block_hash: str) -> List[RawEvent]:
        session = await self.connection.acquire()
        try:
            return await session.get_events(block_hash)
        except InfraError:
            raise
        except Exception as e:
            # Undecodable event log: statuses degrade to pending.
            logger.warning(
                "Event log unavailable",
                extra={"context": {"block_hash": block_hash, "error": str(e)}},
            )
            return []

    async def block_at(self, height: int, tip_height: Optional[int] = None) -> Optional[Block]:
        """
        Block at a height.

        Returns:
            Block, or None if the node has no block at that height
        """
        if height < 0:
            return None
        session = await self.connection.acquire()
        block_hash = await session.get_block_hash(height)
        if not block_hash:
            return None
        raw = await self._fetch_body(block_hash)
        if raw is None:
            return None
        return self._to_block(raw, tip_height)

    async def transactions_of(self, height: int, block_hash: str) -> List[Transaction]:
        """
        Transactions of one block in execution order, with statuses.

        Body and event log are fetched concurrently.
        """
        raw, events = await asyncio.gather(
            self._fetch_body(block_hash),
            self._fetch_events(block_hash),
        )
        if raw is None:
            return []
        return map_extrinsics(raw, events, height)

    async def _transactions_at(self, height: int) -> Tuple[int, List[Transaction]]:
        session = await self.connection.acquire()
        block_hash = await session.get_block_hash(height)
        if not block_hash:
            return height, []
        return height, await self.transactions_of(height, block_hash)

    async def _scan(self, start: int, max_blocks: int) -> AsyncIterator[Tuple[int, List[Transaction]]]:
        """
        Yield (height, transactions) from start downward, newest first.

        Heights are fetched in parallel batches that never exceed the
        remaining budget of max_blocks.
        """
        scanned = 0
        height = start
        while height >= 0 and scanned < max_blocks:
            size = min(self.limits.batch_size, max_blocks - scanned, height + 1)
            batch = [height - i for i in range(size)]
            results = await asyncio.gather(*(self._transactions_at(h) for h in batch))
            for item in sorted(results, key=lambda r: r[0], reverse=True):
                yield item
            scanned += size
            height -= size

    async def _blocks_at(self, heights: Sequence[int], tip_height: int) -> List[Block]:
        """Blocks at heights, fetched in parallel batches of batch_size, newest first."""
        blocks: List[Block] = []
        for start in range(0, len(heights), self.limits.batch_size):
            batch = heights[start:start + self.limits.batch_size]
            results = await asyncio.gather(*(self.block_at(h, tip_height) for h in batch))
            blocks.extend(b for b in results if b is not None)
        return sorted(blocks, key=lambda b: b.height, reverse=True)

    async def _collect(self, want: int) -> List[Transaction]:
        """Newest-first transactions until want are collected or the scan bound is hit."""
        tip = await self.connection.get_chain_tip()
        out: List[Transaction] = []
        async with aclosing(self._scan(tip.height, self.limits.max_scan_blocks)) as blocks:
            async for _, txs in blocks:
                out.extend(reversed(txs))
                if len(out) >= want:
                    break
        return out

    # -------------------------------------------------------------------------
    # ExplorerBackend
    # -------------------------------------------------------------------------

    async def latest_blocks(self, limit: int) -> List[Block]:
        if limit <= 0:
            return []
        limit = min(limit, self.limits.max_scan_blocks)
        tip = await self.connection.get_chain_tip()
        heights = [h for h in range(tip.height, tip.height - limit, -1) if h >= 0]
        return await self._blocks_at(heights, tip.height)

    async def latest_transactions(self, limit: int) -> List[Transaction]:
        if limit <= 0:
            return []
        return (await self._collect(limit))[:limit]

    async def blocks_page(self, cursor: Optional[str] = None) -> Page[Block]:
        offset = parse_cursor(cursor)
        if offset is None:
            return Page()
        tip = await self.connection.get_chain_tip()
        heights = [tip.height - offset - i for i in range(PAGE_SIZE)]
        heights = [h for h in heights if h >= 0]
        items = await self._blocks_at(heights, tip.height)

        next_cursor = None
        if len(heights) == PAGE_SIZE and tip.height - offset - PAGE_SIZE >= 0:
            next_cursor = encode_cursor(offset + PAGE_SIZE)
        return Page(items=items, next_cursor=next_cursor)

    async def block_by_id(self, identifier: str) -> Optional[Block]:
        block_id = resolve_id(identifier)
        if block_id is None:
            return None
        if block_id.is_height:
            return await self.block_at(block_id.height)
        raw = await self._fetch_body(block_id.hash)
        if raw is None:
            return None
        return self._to_block(raw)

    async def transactions_page(self, cursor: Optional[str] = None) -> Page[Transaction]:
        offset = parse_cursor(cursor)
        if offset is None:
            return Page()
        collected = await self._collect(offset + PAGE_SIZE + 1)
        return Page(
            items=collected[offset:offset + PAGE_SIZE],
            next_cursor=next_cursor_for(offset, len(collected)),
        )

    async def transaction_by_hash(self, tx_hash: str) -> Optional[Transaction]:
        needle = (tx_hash or "").strip()
        if not needle:
            return None
        tip = await self.connection.get_chain_tip()
        async with aclosing(self._scan(tip.height, self.limits.max_lookup_blocks)) as blocks:
            async for _, txs in blocks:
                for tx in txs:
                    if same_hash(tx.hash, needle):
                        return tx

        logger.info(
            "Transaction not found within lookup bound",
            extra={"context": {"tx_hash": needle, "max_lookup_blocks": self.limits.max_lookup_blocks}},
        )
        return None

    async def address_summary(self, address: str) -> Optional[AddressSummary]:
        return None

    async def block_transactions(
        self, identifier: str, cursor: Optional[str] = None
    ) -> Page[Transaction]:
        offset = parse_cursor(cursor)
        block_id = resolve_id(identifier)
        if offset is None or block_id is None:
            return Page()

        if block_id.is_height:
            session = await self.connection.acquire()
            block_hash = await session.get_block_hash(block_id.height)
            if not block_hash:
                return Page()
            txs = await self.transactions_of(block_id.height, block_hash)
        else:
            raw, events = await asyncio.gather(
                self._fetch_body(block_id.hash),
                self._fetch_events(block_id.hash),
            )
            if raw is None:
                return Page()
            txs = map_extrinsics(raw, events)

        return paginate(txs, offset)

    async def close(self) -> None:
        await self.connection.close()
