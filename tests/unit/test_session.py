"""
tests/unit/test_session.py - substrate-interface normalization and session.

The substrate client is replaced with a MagicMock; no node is contacted.
"""

from unittest.mock import MagicMock, patch

import pytest
from substrateinterface.exceptions import SubstrateRequestException

from chains.session import (
    RawEvent,
    SubstrateSession,
    http_to_ws,
    normalize_block,
    normalize_event,
    normalize_extrinsic,
)
from core.exceptions import NodeConnectionError


def extrinsic_value(module="Balances", function="transfer", tx_hash="ab" * 32, length=140):
    return {
        "extrinsic_hash": tx_hash,
        "extrinsic_length": length,
        "call": {
            "call_module": module,
            "call_function": function,
            "call_args": [{"name": "dest", "value": "5G"}, {"name": "value", "value": 10}],
        },
    }


class TestHttpToWs:

    def test_rewrites(self):
        assert http_to_ws("https://rpc.example") == "wss://rpc.example"
        assert http_to_ws("http://127.0.0.1:9944") == "ws://127.0.0.1:9944"

    def test_ws_unchanged(self):
        assert http_to_ws("wss://rpc.example") == "wss://rpc.example"


class TestNormalization:

    def test_extrinsic(self):
        ext = normalize_extrinsic(extrinsic_value())
        assert ext.hash == "0x" + "ab" * 32
        assert ext.section == "Balances"
        assert ext.method == "transfer"
        assert ext.args == ("5G", 10)
        assert ext.encoded_length == 140

    def test_extrinsic_bytes_hash(self):
        ext = normalize_extrinsic(extrinsic_value(tx_hash=bytes([1, 2])))
        assert ext.hash == "0x0102"

    def test_extrinsic_hash_from_encoded_bytes(self):
        scale = MagicMock()
        scale.value = extrinsic_value(tx_hash=None, length=None)
        scale.data.data = bytearray(b"\x01\x02\x03")
        ext = normalize_extrinsic(scale)
        assert ext.hash.startswith("0x")
        assert len(ext.hash) == 66
        assert ext.encoded_length == 3

    def test_event_phases(self):
        applied = normalize_event({
            "phase": {"ApplyExtrinsic": 2},
            "event": {"module_id": "System", "event_id": "ExtrinsicSuccess"},
        })
        assert applied == RawEvent("System", "ExtrinsicSuccess", 2)

        flat = normalize_event({
            "phase": "ApplyExtrinsic",
            "extrinsic_idx": 1,
            "module_id": "System",
            "event_id": "ExtrinsicFailed",
        })
        assert flat.extrinsic_index == 1
        assert flat.method == "ExtrinsicFailed"

        finalization = normalize_event({
            "phase": "Finalization",
            "event": {"module_id": "Treasury", "event_id": "Spending"},
        })
        assert finalization.extrinsic_index is None

    def test_block(self):
        block = normalize_block("0xfeed", {
            "header": {"number": "0x10"},
            "extrinsics": [extrinsic_value("Timestamp", "set"), extrinsic_value()],
        })
        assert block.hash == "0xfeed"
        assert block.height == 16
        assert [e.section for e in block.extrinsics] == ["Timestamp", "Balances"]

    def test_block_integer_number(self):
        block = normalize_block("0x1", {"header": {"number": 42, "hash": "0x2"}})
        assert block.height == 42
        assert block.hash == "0x2"
        assert block.extrinsics == ()


@pytest.fixture
def substrate():
    return MagicMock()


@pytest.fixture
def session(substrate):
    return SubstrateSession("ws://node.test", substrate)


class TestSubstrateSession:

    @pytest.mark.asyncio
    async def test_block_hash(self, session, substrate):
        substrate.get_block_hash.return_value = "0xabc"
        assert await session.get_block_hash(5) == "0xabc"
        substrate.get_block_hash.assert_called_once_with(block_id=5)

    @pytest.mark.asyncio
    async def test_unknown_height_is_none(self, session, substrate):
        substrate.get_block_hash.return_value = None
        assert await session.get_block_hash(10**9) is None

        substrate.get_block_hash.side_effect = SubstrateRequestException("not found")
        assert await session.get_block_hash(10**9) is None

    @pytest.mark.asyncio
    async def test_get_block(self, session, substrate):
        substrate.get_block.return_value = {"header": {"number": 7}, "extrinsics": []}
        block = await session.get_block("0x7")
        assert block.height == 7

        substrate.get_block.return_value = None
        assert await session.get_block("0x8") is None

    @pytest.mark.asyncio
    async def test_events(self, session, substrate):
        substrate.get_events.return_value = [
            {"phase": {"ApplyExtrinsic": 0}, "event": {"module_id": "System", "event_id": "ExtrinsicSuccess"}},
        ]
        events = await session.get_events("0x1")
        assert events == [RawEvent("System", "ExtrinsicSuccess", 0)]

    @pytest.mark.asyncio
    async def test_head_and_number(self, session, substrate):
        substrate.get_chain_finalised_head.return_value = "0xhead"
        substrate.get_block_number.return_value = 99
        assert await session.get_finalized_head() == "0xhead"
        assert await session.get_block_number("0xhead") == 99

    @pytest.mark.asyncio
    async def test_connection_loss_notifies_listeners(self, session, substrate):
        seen = []
        session.add_disconnect_listener(seen.append)
        substrate.get_events.side_effect = ConnectionResetError("reset")

        with pytest.raises(NodeConnectionError):
            await session.get_events("0x1")
        assert seen == [session]

    @pytest.mark.asyncio
    async def test_removed_listener_not_called(self, session, substrate):
        seen = []
        session.add_disconnect_listener(seen.append)
        session.remove_disconnect_listener(seen.append)
        substrate.get_events.side_effect = ConnectionResetError("reset")

        with pytest.raises(NodeConnectionError):
            await session.get_events("0x1")
        assert seen == []

    @pytest.mark.asyncio
    async def test_other_errors_propagate_while_connected(self, session, substrate):
        substrate.get_events.side_effect = ValueError("decode failure")
        with pytest.raises(ValueError):
            await session.get_events("0x1")

    @pytest.mark.asyncio
    async def test_close(self, session, substrate):
        await session.close()
        await session.close()
        assert not session.connected
        substrate.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_connect_failure(self):
        with patch("chains.session.SubstrateInterface", side_effect=ConnectionRefusedError("refused")):
            with pytest.raises(NodeConnectionError) as exc_info:
                await SubstrateSession.connect("http://node.test")
        assert exc_info.value.details["endpoint"] == "ws://node.test"

    @pytest.mark.asyncio
    async def test_connect_rewrites_endpoint(self):
        with patch("chains.session.SubstrateInterface") as factory:
            session = await SubstrateSession.connect("https://node.test")
        factory.assert_called_once_with(url="wss://node.test")
        assert session.endpoint == "wss://node.test"
