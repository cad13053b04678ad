"""
tests/unit/test_scanner.py - RPC scanner tests against an in-memory chain.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from chains.connection import ConnectionManager
from chains.scanner import RpcScanner, ScanLimits, derive_status, extract_timestamp
from chains.session import RawEvent, RawExtrinsic
from core.constants import PAGE_SIZE, TxStatus
from core.time import iso_from_ms
from chain_fakes import (
    FAKE_GENESIS_MS,
    FakeChain,
    FakeConnector,
    FakeSession,
    fake_block_hash,
    fake_tx_hash,
)


def make_scanner(tip: int, txs_per_block: int = 2, limits: ScanLimits | None = None) -> RpcScanner:
    connector = FakeConnector(FakeChain(tip=tip, txs_per_block=txs_per_block))
    return RpcScanner(ConnectionManager("ws://fake", connector=connector), limits)


class TestDeriveStatus:
    """Phase-correlated status derivation."""

    def test_success(self):
        events = [RawEvent("System", "ExtrinsicSuccess", 1)]
        assert derive_status(1, events) == TxStatus.SUCCESS

    def test_failed(self):
        events = [RawEvent("system", "ExtrinsicFailed", 2)]
        assert derive_status(2, events) == TxStatus.FAILED

    def test_no_marker_is_pending(self):
        events = [
            RawEvent("System", "ExtrinsicSuccess", 0),
            RawEvent("Balances", "Transfer", 1),
            RawEvent("System", "ExtrinsicSuccess", None),
        ]
        assert derive_status(1, events) == TxStatus.PENDING

    def test_both_markers_success_wins(self):
        events = [
            RawEvent("System", "ExtrinsicFailed", 3),
            RawEvent("System", "ExtrinsicSuccess", 3),
        ]
        assert derive_status(3, events) == TxStatus.SUCCESS

    def test_other_section_ignored(self):
        events = [RawEvent("Contracts", "ExtrinsicFailed", 1)]
        assert derive_status(1, events) == TxStatus.PENDING


class TestExtractTimestamp:
    """Timestamp inherent extraction."""

    def test_reads_inherent(self):
        exts = [RawExtrinsic("0x1", "Timestamp", "set", (1_700_000_000_000,))]
        assert extract_timestamp(exts) == iso_from_ms(1_700_000_000_000)

    def test_string_argument(self):
        exts = [RawExtrinsic("0x1", "timestamp", "set", ("1700000000000",))]
        assert extract_timestamp(exts) == iso_from_ms(1_700_000_000_000)

    def test_missing_inherent(self):
        exts = [RawExtrinsic("0x1", "Balances", "transfer")]
        assert extract_timestamp(exts) is None
        assert extract_timestamp([]) is None

    def test_unreadable_argument(self):
        exts = [RawExtrinsic("0x1", "Timestamp", "set", ({"weird": True},))]
        assert extract_timestamp(exts) is None


class TestScanLimits:

    def test_defaults(self):
        limits = ScanLimits()
        assert limits.max_scan_blocks == 200
        assert limits.max_lookup_blocks == 500
        assert limits.batch_size == 8

    def test_invalid(self):
        with pytest.raises(ValueError):
            ScanLimits(batch_size=0)
        with pytest.raises(ValueError):
            ScanLimits(max_lookup_blocks=-1)


class TestRpcScanner:
    """Backend operations over the fake chain (tip 1000, 3 ops per block)."""

    @pytest.mark.asyncio
    async def test_latest_blocks(self, scanner):
        blocks = await scanner.latest_blocks(3)
        assert [b.height for b in blocks] == [1000, 999, 998]
        assert blocks[0].hash == fake_block_hash(1000)
        assert blocks[0].tx_count == 3
        assert blocks[0].timestamp == iso_from_ms(FAKE_GENESIS_MS + 1000 * 6000)

    @pytest.mark.asyncio
    async def test_latest_blocks_bounded_and_batched(self):
        chain = FakeChain(tip=1000)
        in_flight = []
        peak = []

        class TrackingSession(FakeSession):
            async def get_block_hash(self, height):
                in_flight.append(height)
                peak.append(len(in_flight))
                await asyncio.sleep(0)
                in_flight.remove(height)
                return await super().get_block_hash(height)

        async def connector(endpoint):
            return TrackingSession(chain, endpoint)

        limits = ScanLimits(max_scan_blocks=25, batch_size=4)
        scanner = RpcScanner(ConnectionManager("ws://fake", connector=connector), limits)

        blocks = await scanner.latest_blocks(10_000)

        assert [b.height for b in blocks] == list(range(1000, 975, -1))
        assert max(peak) <= 4

    @pytest.mark.asyncio
    async def test_latest_transactions_newest_first(self, scanner):
        txs = await scanner.latest_transactions(5)
        assert [tx.hash for tx in txs] == [
            fake_tx_hash(1000, 2),
            fake_tx_hash(1000, 1),
            fake_tx_hash(1000, 0),
            fake_tx_hash(999, 2),
            fake_tx_hash(999, 1),
        ]

    @pytest.mark.asyncio
    async def test_statuses_follow_events(self, scanner):
        page = await scanner.block_transactions("999")
        statuses = [tx.status for tx in page.items]
        # (999 + 1) % 5 == 0 -> operation 1 failed
        assert statuses == [TxStatus.SUCCESS, TxStatus.FAILED, TxStatus.SUCCESS]
        assert all(tx.block_height == 999 for tx in page.items)

    @pytest.mark.asyncio
    async def test_blocks_page_scenario(self):
        scanner = make_scanner(tip=12345)
        first = await scanner.blocks_page()
        assert [b.height for b in first.items] == list(range(12345, 12325, -1))
        assert first.next_cursor == "20"

        second = await scanner.blocks_page("20")
        assert second.items[0].height == 12325
        assert second.next_cursor == "40"

    @pytest.mark.asyncio
    async def test_blocks_page_near_genesis(self):
        scanner = make_scanner(tip=25)
        page = await scanner.blocks_page("20")
        assert [b.height for b in page.items] == [5, 4, 3, 2, 1, 0]
        assert page.next_cursor is None

    @pytest.mark.asyncio
    async def test_blocks_page_ending_exactly_at_genesis(self):
        scanner = make_scanner(tip=19)
        page = await scanner.blocks_page()
        assert len(page.items) == PAGE_SIZE
        assert page.next_cursor is None

    @pytest.mark.asyncio
    async def test_invalid_cursor(self, scanner):
        page = await scanner.blocks_page("not-a-number")
        assert page.items == []
        assert page.next_cursor is None
        assert scanner.blocks_fetched == 0

    @pytest.mark.asyncio
    async def test_block_by_id(self, scanner):
        by_height = await scanner.block_by_id("990")
        by_hash = await scanner.block_by_id(fake_block_hash(990))
        assert by_height.height == 990
        assert by_hash.height == 990
        assert by_hash.hash == by_height.hash
        assert await scanner.block_by_id("5000") is None
        assert await scanner.block_by_id("") is None

    @pytest.mark.asyncio
    async def test_transactions_page(self, scanner):
        page = await scanner.transactions_page()
        assert len(page.items) == PAGE_SIZE
        assert page.next_cursor == "20"
        nxt = await scanner.transactions_page(page.next_cursor)
        assert not {t.hash for t in page.items} & {t.hash for t in nxt.items}

    @pytest.mark.asyncio
    async def test_transaction_lookup_case_insensitive(self, scanner):
        wanted = fake_tx_hash(990, 1)
        tx = await scanner.transaction_by_hash(wanted.upper())
        assert tx is not None
        assert tx.hash == wanted
        assert tx.block_height == 990

    @pytest.mark.asyncio
    async def test_missing_transaction_is_bounded(self, scanner):
        assert await scanner.transaction_by_hash("0x" + "ab" * 32) is None
        assert scanner.blocks_fetched <= 500

    @pytest.mark.asyncio
    async def test_listing_scan_is_bounded(self):
        scanner = make_scanner(tip=1000, txs_per_block=0, limits=ScanLimits(max_scan_blocks=30))
        # Only the timestamp inherent per block: 30 blocks -> 30 ops.
        page = await scanner.transactions_page("20")
        assert len(page.items) == 10
        assert page.next_cursor is None
        assert scanner.blocks_fetched <= 30

    @pytest.mark.asyncio
    async def test_address_summary_unsupported(self, scanner):
        assert await scanner.address_summary("5Grwva") is None

    @pytest.mark.asyncio
    async def test_unknown_block_transactions(self, scanner):
        page = await scanner.block_transactions("99999")
        assert page.items == []
        assert page.next_cursor is None

    @pytest.mark.asyncio
    async def test_undecodable_events_degrade_to_pending(self, scanner, connection):
        session = await connection.acquire()
        session.get_events = AsyncMock(side_effect=RuntimeError("cannot decode"))

        page = await scanner.block_transactions("1000")
        assert [tx.status for tx in page.items] == [TxStatus.PENDING] * 3
