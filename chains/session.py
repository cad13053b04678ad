"""
chains/session.py - Node session protocol and the substrate-interface session.

The scanner never sees wire objects. Sessions normalize blocks and events
into RawBlock / RawExtrinsic / RawEvent so status correlation and timestamp
extraction are independent of the node client library.
"""

import asyncio
import hashlib
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Protocol, Tuple

from substrateinterface import SubstrateInterface
from substrateinterface.exceptions import SubstrateRequestException

from core.exceptions import NodeConnectionError
from core.logging import get_logger

logger = get_logger(__name__)

DisconnectListener = Callable[["NodeSession"], None]


@dataclass(frozen=True)
class RawExtrinsic:
    """One operation of a block, normalized."""
    hash: str
    section: str
    method: str
    args: Tuple[Any, ...] = ()
    encoded_length: Optional[int] = None


@dataclass(frozen=True)
class RawBlock:
    """Block body, normalized."""
    hash: str
    height: int
    extrinsics: Tuple[RawExtrinsic, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RawEvent:
    """
    One event log entry.

    extrinsic_index is the phase-correlated operation index, None for
    events emitted outside an ApplyExtrinsic phase.
    """
    section: str
    method: str
    extrinsic_index: Optional[int] = None


class NodeSession(Protocol):
    """A live connection to a chain node."""

    endpoint: str

    @property
    def connected(self) -> bool: ...

    def add_disconnect_listener(self, listener: DisconnectListener) -> None: ...

    def remove_disconnect_listener(self, listener: DisconnectListener) -> None: ...

    async def get_block_hash(self, height: int) -> Optional[str]: ...

    async def get_block(self, block_hash: str) -> Optional[RawBlock]: ...

    async def get_events(self, block_hash: str) -> List[RawEvent]: ...

    async def get_finalized_head(self) -> str: ...

    async def get_block_number(self, block_hash: str) -> int: ...

    async def close(self) -> None: ...


def http_to_ws(url: str) -> str:
    """Rewrite http(s):// endpoints to ws(s)://."""
    if url.startswith("https://"):
        return "wss://" + url[len("https://"):]
    if url.startswith("http://"):
        return "ws://" + url[len("http://"):]
    return url


# =============================================================================
# substrate-interface normalization
# =============================================================================

def _value_of(obj: Any) -> Any:
    """Decoded value of a scale object, or the object itself."""
    return getattr(obj, "value", obj)


def _extrinsic_hash(ext: Any, value: dict) -> str:
    tx_hash = value.get("extrinsic_hash")
    if isinstance(tx_hash, (bytes, bytearray)):
        tx_hash = "0x" + bytes(tx_hash).hex()
    if tx_hash:
        return str(tx_hash) if str(tx_hash).startswith("0x") else "0x" + str(tx_hash)

    # Inherents are unsigned and some versions leave the hash unset;
    # the extrinsic hash is blake2-256 of the encoded bytes.
    data = getattr(getattr(ext, "data", None), "data", None)
    if data is None:
        return ""
    return "0x" + hashlib.blake2b(bytes(data), digest_size=32).hexdigest()


def _extrinsic_length(ext: Any, value: dict) -> Optional[int]:
    length = value.get("extrinsic_length")
    if isinstance(length, int):
        return length
    data = getattr(getattr(ext, "data", None), "data", None)
    return len(data) if data is not None else None


def normalize_extrinsic(ext: Any) -> RawExtrinsic:
    """Convert a substrate-interface extrinsic (or its value dict)."""
    value = _value_of(ext) or {}
    call = value.get("call") or {}
    args = tuple(
        arg.get("value") if isinstance(arg, dict) else arg
        for arg in call.get("call_args") or []
    )
    return RawExtrinsic(
        hash=_extrinsic_hash(ext, value),
        section=str(call.get("call_module") or ""),
        method=str(call.get("call_function") or ""),
        args=args,
        encoded_length=_extrinsic_length(ext, value),
    )


def _phase_index(value: dict) -> Optional[int]:
    phase = value.get("phase")
    if isinstance(phase, dict):
        idx = phase.get("ApplyExtrinsic")
        return int(idx) if idx is not None else None
    if phase == "ApplyExtrinsic":
        idx = value.get("extrinsic_idx")
        return int(idx) if idx is not None else None
    return None


def normalize_event(record: Any) -> RawEvent:
    """Convert a substrate-interface EventRecord (or its value dict)."""
    value = _value_of(record) or {}
    event = value.get("event") or {}
    section = event.get("module_id") or value.get("module_id") or ""
    method = event.get("event_id") or value.get("event_id") or ""
    return RawEvent(
        section=str(section),
        method=str(method),
        extrinsic_index=_phase_index(value),
    )


def normalize_block(block_hash: str, block: dict) -> RawBlock:
    """Convert a substrate-interface get_block() result."""
    header = block.get("header") or {}
    number = header.get("number", 0)
    if isinstance(number, str):
        number = int(number, 16) if number.startswith("0x") else int(number)
    return RawBlock(
        hash=str(header.get("hash") or block_hash),
        height=int(number),
        extrinsics=tuple(normalize_extrinsic(ext) for ext in block.get("extrinsics") or []),
    )


class SubstrateSession:
    """
    NodeSession backed by substrate-interface over a websocket.

    substrate-interface is blocking and its websocket is not thread-safe:
    calls run in worker threads via asyncio.to_thread, one at a time.
    """

    def __init__(self, endpoint: str, substrate: Any):
        self.endpoint = endpoint
        self._substrate = substrate
        self._call_lock = threading.Lock()
        self._listeners: List[DisconnectListener] = []
        self._closed = False

    @classmethod
    async def connect(cls, endpoint: str) -> "SubstrateSession":
        """
        Open a websocket session.

        Raises:
            NodeConnectionError: If the endpoint cannot be reached
        """
        url = http_to_ws(endpoint)
        try:
            substrate = await asyncio.to_thread(SubstrateInterface, url=url)
        except Exception as e:
            raise NodeConnectionError(
                f"Cannot connect to node: {e}",
                details={"endpoint": url},
            ) from e
        return cls(url, substrate)

    @property
    def connected(self) -> bool:
        if self._closed:
            return False
        websocket = getattr(self._substrate, "websocket", None)
        if websocket is None:
            return True
        return bool(getattr(websocket, "connected", True))

    def add_disconnect_listener(self, listener: DisconnectListener) -> None:
        self._listeners.append(listener)

    def remove_disconnect_listener(self, listener: DisconnectListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify_disconnected(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _locked(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        with self._call_lock:
            return fn(*args, **kwargs)

    async def _call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        fn = getattr(self._substrate, method)
        try:
            return await asyncio.to_thread(self._locked, fn, *args, **kwargs)
        except (ConnectionError, OSError, EOFError) as e:
            logger.warning(
                "Node session dropped",
                extra={"context": {"endpoint": self.endpoint, "method": method, "error": str(e)}},
            )
            self._notify_disconnected()
            raise NodeConnectionError(
                f"Node call {method} failed: {e}",
                details={"endpoint": self.endpoint, "method": method},
            ) from e
        except Exception as e:
            if not self.connected:
                self._notify_disconnected()
                raise NodeConnectionError(
                    f"Node call {method} failed: {e}",
                    details={"endpoint": self.endpoint, "method": method},
                ) from e
            raise

    async def get_block_hash(self, height: int) -> Optional[str]:
        try:
            result = await self._call("get_block_hash", block_id=height)
        except SubstrateRequestException as e:
            logger.debug(
                "Block hash not resolvable",
                extra={"context": {"height": height, "error": str(e)}},
            )
            return None
        return str(result) if result else None

    async def get_block(self, block_hash: str) -> Optional[RawBlock]:
        try:
            block = await self._call("get_block", block_hash=block_hash)
        except SubstrateRequestException as e:
            logger.debug(
                "Block not resolvable",
                extra={"context": {"block_hash": block_hash, "error": str(e)}},
            )
            return None
        if not block:
            return None
        return normalize_block(block_hash, block)

    async def get_events(self, block_hash: str) -> List[RawEvent]:
        records = await self._call("get_events", block_hash=block_hash)
        return [normalize_event(r) for r in records or []]

    async def get_finalized_head(self) -> str:
        return str(await self._call("get_chain_finalised_head"))

    async def get_block_number(self, block_hash: str) -> int:
        return int(await self._call("get_block_number", block_hash))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()
        try:
            await asyncio.to_thread(self._locked, self._substrate.close)
        except Exception as e:
            logger.debug(
                "Error closing node session",
                extra={"context": {"endpoint": self.endpoint, "error": str(e)}},
            )
