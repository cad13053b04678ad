"""
indexer/queries.py - Query candidates and the first-success combinator.

An indexer deployment exposes one of several plausible schema shapes.
Each operation carries an ordered list of QueryCandidate strategies; they
are tried strictly in order and the first one that parses without
transport or application error, and whose records path exists, wins.
This is shape probing, not retrying: a later candidate is never issued
once an earlier one succeeded.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from core.exceptions import QueryShapeError
from core.logging import get_logger
from indexer.mapping import MISSING, get_path

logger = get_logger(__name__)

S = TypeVar("S")
R = TypeVar("R")


@dataclass(frozen=True)
class QueryCandidate:
    """One plausible schema shape for an operation."""

    name: str
    query: str
    variables: Dict[str, Any] = field(default_factory=dict)
    records_path: str = ""

    def extract(self, data: Any) -> Any:
        """
        Records (list, object, or None for a legitimate null) under
        records_path.

        Raises:
            QueryShapeError: If the path does not exist in the payload
        """
        value = get_path(data, self.records_path)
        if value is MISSING:
            raise QueryShapeError(
                f"Path '{self.records_path}' absent from response",
                details={"candidate": self.name},
            )
        return value


@dataclass(frozen=True)
class QueryResult:
    """Outcome of the first successful candidate."""

    candidate: QueryCandidate
    data: Dict[str, Any]
    records: Any


async def first_success(
    strategies: Sequence[S],
    attempt: Callable[[S], Awaitable[R]],
) -> Optional[Tuple[S, R]]:
    """
    Evaluate strategies in order and return the first that does not raise
    QueryShapeError.

    Returns:
        (strategy, result) of the first success, or None if all failed
    """
    for strategy in strategies:
        try:
            return strategy, await attempt(strategy)
        except QueryShapeError as e:
            logger.debug(
                "Query candidate rejected",
                extra={"context": {
                    "candidate": getattr(strategy, "name", repr(strategy)),
                    "error": str(e),
                }},
            )
    return None


# =============================================================================
# CANDIDATE CATALOG
# =============================================================================

_BLOCK_FIELDS = "height hash timestamp txCount"
_TX_FIELDS = "hash status blockHeight timestamp size"


def block_list_candidates(limit: int, offset: int = 0) -> List[QueryCandidate]:
    """Newest-first block listings."""
    return [
        QueryCandidate(
            name="blocks_list",
            query=(
                "query Blocks($limit: Int!, $offset: Int!) {"
                f" blocks(limit: $limit, offset: $offset, orderBy: HEIGHT_DESC) {{ {_BLOCK_FIELDS} }} }}"
            ),
            variables={"limit": limit, "offset": offset},
            records_path="blocks",
        ),
        QueryCandidate(
            name="blocks_connection",
            query=(
                "query Blocks($first: Int!, $offset: Int!) {"
                " blocks(first: $first, offset: $offset, orderBy: NUMBER_DESC) {"
                " nodes { number hash timestamp extrinsicsCount } } }"
            ),
            variables={"first": limit, "offset": offset},
            records_path="blocks.nodes",
        ),
        QueryCandidate(
            name="blocks_edges",
            query=(
                "query Blocks($first: Int!, $skip: Int!) {"
                " blocks(first: $first, skip: $skip, orderBy: number, orderDirection: desc) {"
                " edges { node { header { number hash timestamp } transactions { hash } } } } }"
            ),
            variables={"first": limit, "skip": offset},
            records_path="blocks.edges",
        ),
    ]


def block_by_height_candidates(height: int) -> List[QueryCandidate]:
    """Single block (with its transactions) by height."""
    return [
        QueryCandidate(
            name="block_by_height",
            query=(
                "query Block($height: Int!) {"
                f" block(height: $height) {{ {_BLOCK_FIELDS} transactions {{ {_TX_FIELDS} }} }} }}"
            ),
            variables={"height": height},
            records_path="block",
        ),
        QueryCandidate(
            name="block_by_offset_height",
            query=(
                "query Block($height: Int!) {"
                " block(offset: { height: $height }) {"
                " height hash timestamp transactions { hash applyStage raw } } }"
            ),
            variables={"height": height},
            records_path="block",
        ),
        QueryCandidate(
            name="block_by_number",
            query=(
                "query Block($number: Int!) {"
                " blockByNumber(number: $number) {"
                " number hash timestamp extrinsics { nodes { hash success length } } } }"
            ),
            variables={"number": height},
            records_path="blockByNumber",
        ),
    ]


def block_by_hash_candidates(block_hash: str) -> List[QueryCandidate]:
    """Single block (with its transactions) by hash."""
    return [
        QueryCandidate(
            name="block_by_hash",
            query=(
                "query Block($hash: String!) {"
                f" block(hash: $hash) {{ {_BLOCK_FIELDS} transactions {{ {_TX_FIELDS} }} }} }}"
            ),
            variables={"hash": block_hash},
            records_path="block",
        ),
        QueryCandidate(
            name="block_by_offset_hash",
            query=(
                "query Block($hash: HexEncoded!) {"
                " block(offset: { hash: $hash }) {"
                " height hash timestamp transactions { hash applyStage raw } } }"
            ),
            variables={"hash": block_hash},
            records_path="block",
        ),
        QueryCandidate(
            name="block_by_id",
            query=(
                "query Block($id: String!) {"
                " blockById(id: $id) {"
                " number hash timestamp extrinsics { nodes { hash success length } } } }"
            ),
            variables={"id": block_hash},
            records_path="blockById",
        ),
    ]


def transaction_list_candidates(limit: int, offset: int = 0) -> List[QueryCandidate]:
    """Newest-first transaction listings."""
    return [
        QueryCandidate(
            name="transactions_list",
            query=(
                "query Transactions($limit: Int!, $offset: Int!) {"
                f" transactions(limit: $limit, offset: $offset, orderBy: TIMESTAMP_DESC) {{ {_TX_FIELDS} }} }}"
            ),
            variables={"limit": limit, "offset": offset},
            records_path="transactions",
        ),
        QueryCandidate(
            name="extrinsics_connection",
            query=(
                "query Extrinsics($first: Int!, $offset: Int!) {"
                " extrinsics(first: $first, offset: $offset, orderBy: BLOCK_NUMBER_DESC) {"
                " nodes { hash success length block { number timestamp } } } }"
            ),
            variables={"first": limit, "offset": offset},
            records_path="extrinsics.nodes",
        ),
        QueryCandidate(
            name="transactions_edges",
            query=(
                "query Transactions($first: Int!, $skip: Int!) {"
                " transactions(first: $first, skip: $skip) {"
                " edges { node { hash result block { height timestamp } raw } } } }"
            ),
            variables={"first": limit, "skip": offset},
            records_path="transactions.edges",
        ),
    ]


def transaction_by_hash_candidates(tx_hash: str) -> List[QueryCandidate]:
    """Single transaction by hash."""
    return [
        QueryCandidate(
            name="transaction_by_hash",
            query=(
                "query Transaction($hash: String!) {"
                f" transaction(hash: $hash) {{ {_TX_FIELDS} }} }}"
            ),
            variables={"hash": tx_hash},
            records_path="transaction",
        ),
        QueryCandidate(
            name="transactions_by_offset_hash",
            query=(
                "query Transactions($hash: HexEncoded!) {"
                " transactions(offset: { hash: $hash }) {"
                " hash applyStage raw block { height timestamp } } }"
            ),
            variables={"hash": tx_hash},
            records_path="transactions",
        ),
        QueryCandidate(
            name="extrinsic_by_hash",
            query=(
                "query Extrinsic($hash: String!) {"
                " extrinsic(hash: $hash) { hash success length block { number timestamp } } }"
            ),
            variables={"hash": tx_hash},
            records_path="extrinsic",
        ),
    ]


def address_candidates(address: str) -> List[QueryCandidate]:
    """Address / account summary."""
    return [
        QueryCandidate(
            name="account",
            query=(
                "query Account($address: String!) {"
                " account(address: $address) { address balance txCount } }"
            ),
            variables={"address": address},
            records_path="account",
        ),
        QueryCandidate(
            name="address_by_id",
            query=(
                "query Address($id: String!) {"
                " address(id: $id) { id balance { free } transactions { totalCount } } }"
            ),
            variables={"id": address},
            records_path="address",
        ),
        QueryCandidate(
            name="account_by_id",
            query=(
                "query Account($id: String!) {"
                " accountById(id: $id) { id freeBalance transactionCount } }"
            ),
            variables={"id": address},
            records_path="accountById",
        ),
    ]
