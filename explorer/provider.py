"""
explorer/provider.py - Single entry point for explorer data.

Presentation code talks only to ExplorerProvider. Which backend answers
is decided once, at construction:

1. indexer endpoint configured -> IndexerClient (falls back to synthetic)
2. node endpoint configured    -> RpcScanner (no address summaries)
3. synthetic data enabled      -> MockGenerator
4. otherwise                   -> RPC with no endpoint -> ConfigurationError

DEADLINES:
Every operation accepts deadline_s (defaulting to the configured value).
When it expires the indexer backend answers from the synthetic generator;
the RPC backend raises ExplorerTimeoutError.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, TypeVar

import httpx

from core.backend import ExplorerBackend
from core.constants import BackendKind
from core.exceptions import ConfigurationError, ExplorerTimeoutError
from core.logging import get_logger, log_fallback
from core.models import AddressSummary, Block, Page, Transaction
from chains.connection import ConnectionManager, Connector
from chains.scanner import RpcScanner
from config import ExplorerSettings, load_settings
from indexer.client import IndexerClient
from synthetic.generator import MockGenerator

logger = get_logger(__name__)

T = TypeVar("T")


def select_backend(settings: ExplorerSettings) -> BackendKind:
    """Backend chosen for AUTO by configuration precedence."""
    if settings.indexer_url:
        return BackendKind.INDEXER
    if settings.node_url:
        return BackendKind.RPC
    if settings.use_mock:
        return BackendKind.MOCK
    return BackendKind.RPC


class ExplorerProvider:
    """
    Facade over exactly one ExplorerBackend.

    Usage:
        async with ExplorerProvider() as provider:
            page = await provider.get_blocks_page()
    """

    def __init__(
        self,
        settings: Optional[ExplorerSettings] = None,
        backend: BackendKind | str = BackendKind.AUTO,
        connector: Optional[Connector] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            settings: Resolved settings (loaded from yaml/env if omitted)
            backend: Force a backend instead of configuration precedence
            connector: Node session factory (RPC backend only)
            http_client: Shared httpx client (indexer backend only)

        Raises:
            ConfigurationError: If the selected backend has no endpoint
        """
        self.settings = settings or load_settings()
        self.mock = MockGenerator(self.settings.mock)

        requested = BackendKind(backend)
        kind = select_backend(self.settings) if requested is BackendKind.AUTO else requested
        self.backend_kind = kind
        self.backend = self._build(kind, connector, http_client)

        logger.info(
            "Explorer backend selected",
            extra={"context": {
                "backend": kind.value,
                "requested": requested.value,
                "deadline_s": self.settings.deadline_s,
            }},
        )

    def _build(
        self,
        kind: BackendKind,
        connector: Optional[Connector],
        http_client: Optional[httpx.AsyncClient],
    ) -> ExplorerBackend:
        if kind is BackendKind.MOCK:
            return self.mock
        if kind is BackendKind.INDEXER:
            if not self.settings.indexer_url:
                raise ConfigurationError(
                    "Indexer backend selected without an indexer endpoint",
                    details={"setting": "indexer_url"},
                )
            return IndexerClient(
                self.settings.indexer_url,
                fallback=self.mock,
                timeout_seconds=self.settings.indexer_timeout_s,
                client=http_client,
            )
        if not self.settings.node_url:
            raise ConfigurationError(
                "RPC backend selected without a node endpoint",
                details={"setting": "node_url", "use_mock": self.settings.use_mock},
            )
        connection = ConnectionManager(
            self.settings.node_url,
            connector=connector,
            connect_timeout_s=self.settings.connect_timeout_s,
        )
        return RpcScanner(connection, self.settings.scan_limits)

    async def _run(
        self,
        operation: str,
        call: Callable[[ExplorerBackend], Awaitable[T]],
        deadline_s: Optional[float],
    ) -> T:
        deadline = self.settings.deadline_s if deadline_s is None else deadline_s
        if deadline is None:
            return await call(self.backend)

        try:
            return await asyncio.wait_for(call(self.backend), timeout=deadline)
        except asyncio.TimeoutError:
            if self.backend_kind is BackendKind.INDEXER:
                log_fallback(logger, operation, f"deadline of {deadline}s expired")
                return await call(self.mock)
            raise ExplorerTimeoutError(
                f"{operation} exceeded deadline of {deadline}s",
                details={"operation": operation, "backend": self.backend_kind.value},
            ) from None

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def get_latest_blocks(self, limit: int, deadline_s: Optional[float] = None) -> List[Block]:
        """Most recent blocks, newest first."""
        return await self._run("latest_blocks", lambda b: b.latest_blocks(limit), deadline_s)

    async def get_latest_transactions(
        self, limit: int, deadline_s: Optional[float] = None
    ) -> List[Transaction]:
        """Most recent transactions, newest first."""
        return await self._run(
            "latest_transactions", lambda b: b.latest_transactions(limit), deadline_s
        )

    async def get_blocks_page(
        self, cursor: Optional[str] = None, deadline_s: Optional[float] = None
    ) -> Page[Block]:
        return await self._run("blocks_page", lambda b: b.blocks_page(cursor), deadline_s)

    async def get_block_by_hash_or_height(
        self, identifier: str, deadline_s: Optional[float] = None
    ) -> Optional[Block]:
        """A purely numeric identifier is a height, anything else a hash."""
        return await self._run("block_by_id", lambda b: b.block_by_id(identifier), deadline_s)

    async def get_transactions_page(
        self, cursor: Optional[str] = None, deadline_s: Optional[float] = None
    ) -> Page[Transaction]:
        return await self._run(
            "transactions_page", lambda b: b.transactions_page(cursor), deadline_s
        )

    async def get_transaction_by_hash(
        self, tx_hash: str, deadline_s: Optional[float] = None
    ) -> Optional[Transaction]:
        return await self._run(
            "transaction_by_hash", lambda b: b.transaction_by_hash(tx_hash), deadline_s
        )

    async def get_address_summary(
        self, address: str, deadline_s: Optional[float] = None
    ) -> Optional[AddressSummary]:
        """Always None under the RPC backend."""
        return await self._run(
            "address_summary", lambda b: b.address_summary(address), deadline_s
        )

    async def get_block_transactions(
        self,
        identifier: str,
        cursor: Optional[str] = None,
        deadline_s: Optional[float] = None,
    ) -> Page[Transaction]:
        return await self._run(
            "block_transactions",
            lambda b: b.block_transactions(identifier, cursor),
            deadline_s,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Release node sessions and HTTP clients held by the backend."""
        await self.backend.close()

    async def __aenter__(self) -> "ExplorerProvider":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
