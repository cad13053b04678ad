"""
indexer/mapping.py - Schema-tolerant mapping of indexer records.

Field probing is data-driven: every canonical field has an ordered tuple
of candidate source paths, and the first path holding a usable value wins.
Extending support for a new indexer deployment means adding a path to a
table below, not another conditional.

MAPPING CONTRACT:
- Block: height and hash are mandatory; timestamp is synthesized from the
  distance to the tip when absent; tx_count defaults to 0.
- Transaction: hash is mandatory.
- AddressSummary: address is mandatory.
- A record missing a mandatory field raises MappingError; list mapping
  drops that record and keeps the rest.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from core.constants import TxStatus
from core.exceptions import MappingError
from core.logging import get_logger
from core.models import AddressSummary, Block, Transaction
from core.time import estimate_timestamp, normalize_timestamp

logger = get_logger(__name__)


class _Missing:
    """Sentinel for an absent path (distinct from an explicit null)."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def get_path(record: Any, path: str) -> Any:
    """
    Resolve a dotted path ("header.number", "edges.0.node") in nested
    dicts/lists.

    Returns:
        The value (possibly None for an explicit null), or MISSING if any
        segment is absent
    """
    current = record
    if not path:
        return current
    for segment in path.split("."):
        if isinstance(current, dict):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            idx = int(segment)
            if idx >= len(current):
                return MISSING
            current = current[idx]
        else:
            return MISSING
    return current


# =============================================================================
# COERCERS
# =============================================================================

def to_int(value: Any) -> Optional[int]:
    """Loose integer: int, integral float, decimal or 0x-hex string, list length."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            if text.lower().startswith("0x"):
                return int(text, 16)
            return int(text)
        except ValueError:
            return None
    if isinstance(value, (list, tuple)):
        return len(value)
    return None


def to_count(value: Any) -> Optional[int]:
    """Non-negative integer."""
    number = to_int(value)
    if number is None or number < 0:
        return None
    return number


def to_str(value: Any) -> Optional[str]:
    """Non-empty string; numbers are rendered in decimal."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        text = value.strip()
        return text or None
    return None


def hex_byte_length(value: Any) -> Optional[int]:
    """Size in bytes of a hex-encoded payload ("0x..." or bare hex)."""
    if not isinstance(value, str) or not value:
        return None
    text = value[2:] if value.lower().startswith("0x") else value
    if len(text) % 2:
        return None
    try:
        bytes.fromhex(text)
    except ValueError:
        return None
    return len(text) // 2


_SUCCESS_WORDS = ("success", "succeed", "ok")
_SETTLED_WORDS = ("applied", "confirmed", "finalized", "included")
_FAILURE_WORDS = ("fail", "error", "revert", "reject", "invalid")
_PENDING_WORDS = ("pending", "mempool", "queued", "submitted")
_NEGATIONS = ("not", "non", "no")
_NEGATED_PREFIXES = ("non", "un")

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_WORD_RE = re.compile(r"[a-z]+")


def _classify_word(word: str, negated: bool) -> Optional[TxStatus]:
    for prefix in _NEGATED_PREFIXES:
        stem = word[len(prefix):]
        if word.startswith(prefix) and stem.startswith(_SUCCESS_WORDS + _SETTLED_WORDS):
            word, negated = stem, not negated
            break

    if word.startswith(_FAILURE_WORDS):
        return None if negated else TxStatus.FAILED
    if word.startswith(_PENDING_WORDS):
        return None if negated else TxStatus.PENDING
    if word.startswith(_SUCCESS_WORDS):
        return TxStatus.FAILED if negated else TxStatus.SUCCESS
    if word.startswith(_SETTLED_WORDS):
        return TxStatus.PENDING if negated else TxStatus.SUCCESS
    return None


def to_status(value: Any) -> Optional[TxStatus]:
    """
    Map booleans and loosely-named status strings onto TxStatus.

    Strings are split into words (camelCase, snake_case, spaced) and each
    word is matched by prefix. "not"/"non"/"no" negate the following word
    and "un"/"non" prefixes negate the word itself: a negated success word
    is failed, a negated settled word (applied, confirmed) is pending.
    Failed beats pending beats success.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return TxStatus.SUCCESS if value else TxStatus.FAILED
    if isinstance(value, dict):
        value = value.get("__typename") or value.get("status") or value.get("type")
    if not isinstance(value, str):
        return None

    found = set()
    negated = False
    for word in _WORD_RE.findall(_CAMEL_RE.sub(" ", value.strip()).lower()):
        if word in _NEGATIONS:
            negated = True
            continue
        status = _classify_word(word, negated)
        if status is not None:
            found.add(status)
        negated = False

    for status in (TxStatus.FAILED, TxStatus.PENDING, TxStatus.SUCCESS):
        if status in found:
            return status
    return None


# =============================================================================
# RULE TABLES
# =============================================================================

PathSpec = Union[str, Tuple[str, Callable[[Any], Any]]]


@dataclass(frozen=True)
class FieldRule:
    """
    Ordered candidate paths for one canonical field.

    A path may carry its own coercer as (path, coerce); plain strings use
    the rule's default coerce.
    """

    canonical: str
    paths: Tuple[PathSpec, ...]
    coerce: Callable[[Any], Any] = lambda v: v
    required: bool = False

    def probe(self, record: Any) -> Any:
        """First usable value across paths, or None."""
        for spec in self.paths:
            path, coerce = spec if isinstance(spec, tuple) else (spec, self.coerce)
            raw = get_path(record, path)
            if raw is MISSING or raw is None:
                continue
            value = coerce(raw)
            if value is not None:
                return value
        return None


BLOCK_RULES: Tuple[FieldRule, ...] = (
    FieldRule("height", ("height", "number", "blockHeight", "blockNumber", "header.number", "header.height"), to_count, required=True),
    FieldRule("hash", ("hash", "blockHash", "header.hash", "id"), to_str, required=True),
    FieldRule("timestamp", ("timestamp", "time", "createdAt", "header.timestamp", "timestamp.iso"), normalize_timestamp),
    FieldRule("tx_count", (
        "txCount",
        "transactionCount",
        "transactionsCount",
        "extrinsicsCount",
        "transactions.totalCount",
        "extrinsics.totalCount",
        "transactions.nodes",
        "transactions",
        "extrinsics",
    ), to_count),
)

TRANSACTION_RULES: Tuple[FieldRule, ...] = (
    FieldRule("hash", ("hash", "txHash", "transactionHash", "extrinsicHash", "id"), to_str, required=True),
    FieldRule("status", ("status", "result", "success", "outcome", "applyStage", "transactionResult.status"), to_status),
    FieldRule("block_height", (
        "blockHeight",
        "blockNumber",
        "block.height",
        "block.number",
        "block.header.number",
    ), to_count),
    FieldRule("timestamp", ("timestamp", "block.timestamp", "time", "createdAt", "block.header.timestamp"), normalize_timestamp),
    FieldRule("size", ("size", "length", "encodedLength", ("raw", hex_byte_length)), to_count),
)

ADDRESS_RULES: Tuple[FieldRule, ...] = (
    FieldRule("address", ("address", "id", "account"), to_str, required=True),
    FieldRule("balance", ("balance", "balance.free", "balance.amount", "freeBalance", "account.balance"), to_str),
    FieldRule("tx_count", (
        "txCount",
        "transactionCount",
        "transactions.totalCount",
        "extrinsics.totalCount",
        "transactions",
    ), to_count),
)

# Where a block record keeps its transactions.
BLOCK_TRANSACTION_PATHS: Tuple[str, ...] = (
    "transactions.nodes",
    "transactions.edges",
    "transactions",
    "extrinsics.nodes",
    "extrinsics",
)


def map_record(record: Any, rules: Sequence[FieldRule], kind: str) -> Dict[str, Any]:
    """
    Apply a rule table to one record.

    Raises:
        MappingError: If a required canonical field has no usable value
    """
    if not isinstance(record, dict):
        raise MappingError(f"{kind} record is not an object", details={"record": repr(record)[:200]})
    out: Dict[str, Any] = {}
    for rule in rules:
        value = rule.probe(record)
        if value is None and rule.required:
            raise MappingError(
                f"{kind} record missing {rule.canonical}",
                details={"field": rule.canonical, "keys": sorted(record.keys())},
            )
        out[rule.canonical] = value
    return out


# =============================================================================
# ENTITY MAPPERS
# =============================================================================

def map_block(
    record: Any,
    tip_height: Optional[int] = None,
    reference_ms: Optional[int] = None,
) -> Block:
    """Map one block record, synthesizing a timestamp if none is present."""
    fields = map_record(record, BLOCK_RULES, "block")
    timestamp = fields["timestamp"]
    if timestamp is None:
        timestamp = estimate_timestamp(fields["height"], tip_height, reference_ms)
    return Block(
        height=fields["height"],
        hash=fields["hash"],
        timestamp=timestamp,
        tx_count=fields["tx_count"] or 0,
    )


def map_transaction(
    record: Any,
    block_height: Optional[int] = None,
    block_timestamp: Optional[str] = None,
) -> Transaction:
    """
    Map one transaction record.

    block_height / block_timestamp fill in fields the record itself lacks
    (used for transactions nested inside a block record). A record with no
    status is success once included in a block, pending otherwise.
    """
    fields = map_record(record, TRANSACTION_RULES, "transaction")
    height = fields["block_height"] if fields["block_height"] is not None else block_height
    timestamp = fields["timestamp"] or (block_timestamp if height is not None else None)
    status = fields["status"]
    if status is None:
        status = TxStatus.SUCCESS if height is not None else TxStatus.PENDING
    return Transaction(
        hash=fields["hash"],
        status=status,
        block_height=height,
        timestamp=timestamp,
        size=fields["size"],
    )


def map_address(record: Any) -> AddressSummary:
    """Map one address/account record."""
    fields = map_record(record, ADDRESS_RULES, "address")
    return AddressSummary(
        address=fields["address"],
        balance=fields["balance"],
        tx_count=fields["tx_count"],
    )


def unwrap_edges(records: Iterable[Any]) -> List[Any]:
    """Flatten relay-style [{"node": {...}}] lists."""
    out = []
    for rec in records:
        if isinstance(rec, dict) and set(rec.keys()) <= {"node", "cursor"} and "node" in rec:
            out.append(rec["node"])
        else:
            out.append(rec)
    return out


def _estimate_tip(records: Sequence[Any]) -> Optional[int]:
    heights = [BLOCK_RULES[0].probe(r) for r in records if isinstance(r, dict)]
    heights = [h for h in heights if h is not None]
    return max(heights) if heights else None


def map_blocks(records: Sequence[Any], tip_height: Optional[int] = None) -> List[Block]:
    """
    Map a list of block records, dropping unmappable ones.

    Timestamps are synthesized relative to tip_height, or to the highest
    height in the list when no tip is given.
    """
    records = unwrap_edges(records)
    tip = tip_height if tip_height is not None else _estimate_tip(records)
    blocks: List[Block] = []
    for record in records:
        try:
            blocks.append(map_block(record, tip))
        except (MappingError, ValueError) as e:
            logger.debug("Dropped block record", extra={"context": {"error": str(e)}})
    return blocks


def map_transactions(
    records: Sequence[Any],
    block_height: Optional[int] = None,
    block_timestamp: Optional[str] = None,
) -> List[Transaction]:
    """Map a list of transaction records, dropping unmappable ones."""
    txs: List[Transaction] = []
    for record in unwrap_edges(records):
        try:
            txs.append(map_transaction(record, block_height, block_timestamp))
        except (MappingError, ValueError) as e:
            logger.debug("Dropped transaction record", extra={"context": {"error": str(e)}})
    return txs


def block_transaction_records(record: Any) -> List[Any]:
    """Transaction records nested in a block record ([] if none)."""
    for path in BLOCK_TRANSACTION_PATHS:
        value = get_path(record, path)
        if isinstance(value, list):
            return value
    return []
