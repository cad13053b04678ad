"""
indexer/ - GraphQL indexer access.

Modules:
- queries: Query candidates and the first-success combinator
- mapping: Rule tables mapping heterogeneous records to core models
- client: httpx transport and the indexer backend with synthetic fallback
"""

from indexer.client import IndexerClient, IndexerStats
from indexer.mapping import (
    ADDRESS_RULES,
    BLOCK_RULES,
    TRANSACTION_RULES,
    FieldRule,
    map_address,
    map_block,
    map_blocks,
    map_transaction,
    map_transactions,
)
from indexer.queries import QueryCandidate, QueryResult, first_success

__all__ = [
    # Client
    "IndexerClient",
    "IndexerStats",
    # Mapping
    "ADDRESS_RULES",
    "BLOCK_RULES",
    "TRANSACTION_RULES",
    "FieldRule",
    "map_address",
    "map_block",
    "map_blocks",
    "map_transaction",
    "map_transactions",
    # Queries
    "QueryCandidate",
    "QueryResult",
    "first_success",
]
