"""
chains/connection.py - Single shared node connection.

Provides:
- Lazy session establishment, reused while alive
- Disconnect detection (cached session cleared on unsolicited disconnect)
- Serialized acquisition: at most one (re)connect in flight
- Chain tip lookup (latest finalized block)
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from core.exceptions import ConfigurationError, InfraError, NodeConnectionError
from core.logging import get_logger
from core.models import ChainTip
from chains.session import NodeSession, SubstrateSession

logger = get_logger(__name__)

Connector = Callable[[str], Awaitable[NodeSession]]


@dataclass
class ConnectionStats:
    """Statistics for the node connection."""
    endpoint: str
    connects: int = 0
    failed_connects: int = 0
    disconnects: int = 0
    last_error: str | None = None
    last_connect_ts: int | None = None


class ConnectionManager:
    """
    Owns at most one live NodeSession.

    Injected into the RPC scanner; there is no module-level singleton.
    """

    def __init__(
        self,
        endpoint: str,
        connector: Optional[Connector] = None,
        connect_timeout_s: float = 10.0,
    ):
        if not endpoint or not endpoint.strip():
            raise ConfigurationError(
                "Missing node RPC endpoint",
                details={"setting": "node_url"},
            )
        self.endpoint = endpoint.strip()
        self.connect_timeout_s = connect_timeout_s
        self._connector: Connector = connector or SubstrateSession.connect
        self._session: Optional[NodeSession] = None
        self._lock = asyncio.Lock()
        self.stats = ConnectionStats(endpoint=self.endpoint)

    @property
    def session(self) -> Optional[NodeSession]:
        """Currently cached session, if any."""
        return self._session

    def _on_disconnect(self, session: NodeSession) -> None:
        """Clear the cache when the current session reports a disconnect."""
        session.remove_disconnect_listener(self._on_disconnect)
        if session is not self._session:
            return
        self._session = None
        self.stats.disconnects += 1
        logger.warning(
            "Disconnected from node",
            extra={"context": {"endpoint": self.endpoint}},
        )

    async def _retire(self, session: NodeSession) -> None:
        session.remove_disconnect_listener(self._on_disconnect)
        try:
            await session.close()
        except Exception as e:
            logger.warning(
                "Error disconnecting previous node session",
                extra={"context": {"endpoint": self.endpoint, "error": str(e)}},
            )

    async def acquire(self) -> NodeSession:
        """
        Get the live session, establishing one if needed.

        Returns:
            Connected NodeSession

        Raises:
            NodeConnectionError: If the endpoint cannot be reached
        """
        current = self._session
        if current is not None and current.connected:
            return current

        async with self._lock:
            current = self._session
            if current is not None and current.connected:
                return current

            if current is not None:
                self._session = None
                await self._retire(current)

            logger.info(
                "Connecting to node",
                extra={"context": {"endpoint": self.endpoint}},
            )
            try:
                session = await asyncio.wait_for(
                    self._connector(self.endpoint),
                    timeout=self.connect_timeout_s,
                )
            except asyncio.TimeoutError as e:
                self._record_failure(f"connect timeout after {self.connect_timeout_s}s")
                raise NodeConnectionError(
                    "Timed out connecting to node",
                    details={"endpoint": self.endpoint, "timeout_s": self.connect_timeout_s},
                ) from e
            except InfraError as e:
                self._record_failure(str(e))
                raise
            except Exception as e:
                self._record_failure(str(e))
                raise NodeConnectionError(
                    f"Cannot connect to node: {e}",
                    details={"endpoint": self.endpoint},
                ) from e

            session.add_disconnect_listener(self._on_disconnect)
            self._session = session
            self.stats.connects += 1
            self.stats.last_connect_ts = int(time.time() * 1000)
            return session

    def _record_failure(self, error: str) -> None:
        self.stats.failed_connects += 1
        self.stats.last_error = error
        logger.warning(
            "Node connection failed",
            extra={"context": {"endpoint": self.endpoint, "error": error}},
        )

    async def get_chain_tip(self) -> ChainTip:
        """
        Latest finalized block.

        Raises:
            NodeConnectionError: If the node is unreachable
        """
        session = await self.acquire()
        head = await session.get_finalized_head()
        height = await session.get_block_number(head)
        return ChainTip(hash=head, height=height)

    async def close(self) -> None:
        """Tear down the session and its disconnect registration."""
        async with self._lock:
            session, self._session = self._session, None
            if session is not None:
                await self._retire(session)

    def get_stats_summary(self) -> dict:
        """Get statistics summary for the connection."""
        return {
            "endpoint": self.endpoint,
            "connected": self._session is not None and self._session.connected,
            "connects": self.stats.connects,
            "failed_connects": self.stats.failed_connects,
            "disconnects": self.stats.disconnects,
            "last_error": self.stats.last_error,
        }
