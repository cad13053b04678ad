"""
indexer/client.py - GraphQL indexer backend with synthetic fallback.

Provides:
- JSON POST transport over httpx ({"query", "variables"})
- Sequential shape probing across query candidates
- Unconditional fallback to the synthetic generator

FALLBACK CONTRACT:
- Any exception, no candidate matching, or an empty mapped list for a
  listing/page operation -> the synthetic generator's result.
- A records path that is present but null is a legitimate "not found"
  (None / empty page) and does not fall back.
- Invalid input (bad cursor, empty id) returns None / empty page and never
  reaches the network.
"""

import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

import httpx

from core.backend import ExplorerBackend
from core.constants import DEFAULT_INDEXER_TIMEOUT_S, PAGE_SIZE, ErrorCode
from core.exceptions import ConfigurationError, QueryShapeError
from core.logging import get_logger, log_fallback
from core.models import AddressSummary, Block, Page, Transaction
from core.pagination import encode_cursor, paginate, parse_cursor, resolve_id
from indexer.mapping import (
    block_transaction_records,
    map_address,
    map_block,
    map_blocks,
    map_transaction,
    map_transactions,
)
from indexer.queries import (
    QueryCandidate,
    QueryResult,
    address_candidates,
    block_by_hash_candidates,
    block_by_height_candidates,
    block_list_candidates,
    first_success,
    transaction_by_hash_candidates,
    transaction_list_candidates,
)
from synthetic.generator import MockGenerator

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class IndexerStats:
    """Statistics for the indexer endpoint."""
    endpoint: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    fallbacks: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None
    last_success_ts: int | None = None

    @property
    def avg_latency_ms(self) -> int:
        if self.successful_requests == 0:
            return 0
        return self.total_latency_ms // self.successful_requests

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests


def _first_record(records: Any) -> Any:
    """Single-record view of a result that may be shaped as a list."""
    if isinstance(records, list):
        return records[0] if records else None
    return records


class IndexerClient(ExplorerBackend):
    """
    Indexer-backed backend.

    The synthetic generator is injected; every failure mode short of a
    legitimate not-found is answered from it.
    """

    name = "indexer"

    def __init__(
        self,
        endpoint: str,
        fallback: Optional[MockGenerator] = None,
        timeout_seconds: float = DEFAULT_INDEXER_TIMEOUT_S,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not endpoint or not endpoint.strip():
            raise ConfigurationError(
                "Missing indexer endpoint",
                details={"setting": "indexer_url"},
            )
        self.endpoint = endpoint.strip()
        self.fallback = fallback or MockGenerator()
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._owns_client = client is None
        self.stats = IndexerStats(endpoint=self.endpoint)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(max_connections=10),
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client (only if this instance created it)."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _record_failure(self, error: str) -> None:
        self.stats.failed_requests += 1
        self.stats.last_error = error

    async def execute(self, candidate: QueryCandidate) -> Dict[str, Any]:
        """
        POST one candidate and return its "data" object.

        Raises:
            QueryShapeError: On transport failure, non-2xx status,
                unparseable body, or GraphQL errors
        """
        client = await self._get_client()
        self.stats.total_requests += 1
        details = {"candidate": candidate.name, "endpoint": self.endpoint}
        start_ms = int(time.time() * 1000)

        try:
            resp = await client.post(
                self.endpoint,
                json={"query": candidate.query, "variables": candidate.variables},
            )
        except httpx.HTTPError as e:
            self._record_failure(str(e) or type(e).__name__)
            raise QueryShapeError(
                f"Indexer transport error: {type(e).__name__}",
                code=ErrorCode.INDEXER_TRANSPORT,
                details=details,
            ) from e

        latency_ms = int(time.time() * 1000) - start_ms

        if resp.status_code >= 400:
            self._record_failure(f"HTTP {resp.status_code}")
            raise QueryShapeError(
                f"Indexer returned HTTP {resp.status_code}",
                code=ErrorCode.INDEXER_TRANSPORT,
                details={**details, "status_code": resp.status_code},
            )

        try:
            body = resp.json()
        except ValueError as e:
            self._record_failure("unparseable response body")
            raise QueryShapeError("Indexer response is not JSON", details=details) from e

        if not isinstance(body, dict):
            self._record_failure("response body is not an object")
            raise QueryShapeError("Indexer response is not an object", details=details)

        errors = body.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) and errors else errors
            message = first.get("message", str(first)) if isinstance(first, dict) else str(first)
            self._record_failure(message)
            raise QueryShapeError(f"GraphQL error: {message}", details=details)

        data = body.get("data")
        if not isinstance(data, dict):
            self._record_failure("response has no data object")
            raise QueryShapeError("Indexer response has no data", details=details)

        self.stats.successful_requests += 1
        self.stats.total_latency_ms += latency_ms
        self.stats.last_success_ts = int(time.time() * 1000)
        return data

    async def try_queries(self, candidates: Sequence[QueryCandidate]) -> Optional[QueryResult]:
        """
        Probe candidates in order; the first whose response parses and whose
        records path exists wins.

        Returns:
            QueryResult of the winning candidate, or None if all failed
        """
        async def attempt(candidate: QueryCandidate) -> QueryResult:
            data = await self.execute(candidate)
            return QueryResult(candidate=candidate, data=data, records=candidate.extract(data))

        outcome = await first_success(candidates, attempt)
        if outcome is None:
            return None
        candidate, result = outcome
        logger.debug(
            "Query candidate matched",
            extra={"context": {"candidate": candidate.name}},
        )
        return result

    async def _require(self, candidates: Sequence[QueryCandidate]) -> QueryResult:
        result = await self.try_queries(candidates)
        if result is None:
            raise QueryShapeError(
                "No query candidate matched the indexer schema",
                details={"candidates": [c.name for c in candidates]},
            )
        return result

    async def _require_list(self, candidates: Sequence[QueryCandidate]) -> List[Any]:
        records = (await self._require(candidates)).records
        if not isinstance(records, list):
            raise QueryShapeError(
                "Expected a list of records",
                details={"type": type(records).__name__},
            )
        return records

    async def _guarded(
        self,
        operation: str,
        primary: Callable[[], Awaitable[T]],
        fallback: Callable[[], Awaitable[T]],
    ) -> T:
        """Run primary; on any failure answer from the synthetic generator."""
        try:
            return await primary()
        except Exception as e:
            self.stats.fallbacks += 1
            log_fallback(
                logger,
                operation,
                str(e) or type(e).__name__,
                endpoint=self.endpoint,
                error_type=type(e).__name__,
            )
            return await fallback()

    # -------------------------------------------------------------------------
    # ExplorerBackend
    # -------------------------------------------------------------------------

    async def latest_blocks(self, limit: int) -> List[Block]:
        if limit <= 0:
            return []

        async def primary() -> List[Block]:
            blocks = map_blocks(await self._require_list(block_list_candidates(limit)))
            if not blocks:
                raise QueryShapeError("Indexer returned no blocks")
            return blocks[:limit]

        return await self._guarded(
            "latest_blocks", primary, lambda: self.fallback.latest_blocks(limit)
        )

    async def latest_transactions(self, limit: int) -> List[Transaction]:
        if limit <= 0:
            return []

        async def primary() -> List[Transaction]:
            txs = map_transactions(await self._require_list(transaction_list_candidates(limit)))
            if not txs:
                raise QueryShapeError("Indexer returned no transactions")
            return txs[:limit]

        return await self._guarded(
            "latest_transactions", primary, lambda: self.fallback.latest_transactions(limit)
        )

    async def blocks_page(self, cursor: Optional[str] = None) -> Page[Block]:
        offset = parse_cursor(cursor)
        if offset is None:
            return Page()

        async def primary() -> Page[Block]:
            records = await self._require_list(block_list_candidates(PAGE_SIZE + 1, offset))
            blocks = map_blocks(records)
            if not blocks:
                raise QueryShapeError("Indexer returned an empty blocks page")
            next_cursor = encode_cursor(offset + PAGE_SIZE) if len(records) > PAGE_SIZE else None
            return Page(items=blocks[:PAGE_SIZE], next_cursor=next_cursor)

        return await self._guarded(
            "blocks_page", primary, lambda: self.fallback.blocks_page(cursor)
        )

    def _block_candidates(self, identifier: str) -> Optional[List[QueryCandidate]]:
        block_id = resolve_id(identifier)
        if block_id is None:
            return None
        if block_id.is_height:
            return block_by_height_candidates(block_id.height)
        return block_by_hash_candidates(block_id.hash)

    async def block_by_id(self, identifier: str) -> Optional[Block]:
        candidates = self._block_candidates(identifier)
        if candidates is None:
            return None

        async def primary() -> Optional[Block]:
            record = _first_record((await self._require(candidates)).records)
            if record is None:
                return None
            return map_block(record)

        return await self._guarded(
            "block_by_id", primary, lambda: self.fallback.block_by_id(identifier)
        )

    async def transactions_page(self, cursor: Optional[str] = None) -> Page[Transaction]:
        offset = parse_cursor(cursor)
        if offset is None:
            return Page()

        async def primary() -> Page[Transaction]:
            records = await self._require_list(transaction_list_candidates(PAGE_SIZE + 1, offset))
            txs = map_transactions(records)
            if not txs:
                raise QueryShapeError("Indexer returned an empty transactions page")
            next_cursor = encode_cursor(offset + PAGE_SIZE) if len(records) > PAGE_SIZE else None
            return Page(items=txs[:PAGE_SIZE], next_cursor=next_cursor)

        return await self._guarded(
            "transactions_page", primary, lambda: self.fallback.transactions_page(cursor)
        )

    async def transaction_by_hash(self, tx_hash: str) -> Optional[Transaction]:
        needle = (tx_hash or "").strip()
        if not needle:
            return None

        async def primary() -> Optional[Transaction]:
            record = _first_record(
                (await self._require(transaction_by_hash_candidates(needle))).records
            )
            if record is None:
                return None
            return map_transaction(record)

        return await self._guarded(
            "transaction_by_hash", primary, lambda: self.fallback.transaction_by_hash(needle)
        )

    async def address_summary(self, address: str) -> Optional[AddressSummary]:
        addr = (address or "").strip()
        if not addr:
            return None

        async def primary() -> Optional[AddressSummary]:
            record = _first_record((await self._require(address_candidates(addr))).records)
            if record is None:
                return None
            return map_address(record)

        return await self._guarded(
            "address_summary", primary, lambda: self.fallback.address_summary(addr)
        )

    async def block_transactions(
        self, identifier: str, cursor: Optional[str] = None
    ) -> Page[Transaction]:
        offset = parse_cursor(cursor)
        candidates = self._block_candidates(identifier)
        if offset is None or candidates is None:
            return Page()

        async def primary() -> Page[Transaction]:
            record = _first_record((await self._require(candidates)).records)
            if record is None:
                return Page()
            block = map_block(record)
            txs = map_transactions(
                block_transaction_records(record),
                block_height=block.height,
                block_timestamp=block.timestamp,
            )
            return paginate(txs, offset)

        return await self._guarded(
            "block_transactions",
            primary,
            lambda: self.fallback.block_transactions(identifier, cursor),
        )

    def get_stats_summary(self) -> dict:
        """Get statistics summary for the indexer."""
        return {
            "endpoint": self.endpoint,
            "total_requests": self.stats.total_requests,
            "success_rate": self.stats.success_rate,
            "avg_latency_ms": self.stats.avg_latency_ms,
            "fallbacks": self.stats.fallbacks,
            "last_error": self.stats.last_error,
        }
