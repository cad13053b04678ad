# PATH: core/pagination.py
"""
Cursor and id helpers shared by every backend.

CURSOR CONTRACT:
- A cursor is an integer offset encoded as a decimal string.
- An absent cursor means offset 0.
- A non-numeric or negative cursor is invalid input (parse_cursor -> None).
- next_cursor encodes offset + PAGE_SIZE and is present iff strictly more
  items exist beyond the returned window.

ID CONTRACT:
- A purely numeric string is a block height; anything else is a hash.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence, TypeVar

from core.constants import PAGE_SIZE
from core.models import Page

T = TypeVar("T")

_NUMERIC_RE = re.compile(r"^\d+$")


def parse_cursor(cursor: Optional[str]) -> Optional[int]:
    """
    Decode a cursor into an offset.

    Returns:
        0 for an absent/empty cursor, the offset for a valid cursor,
        None for invalid input.
    """
    if cursor is None:
        return 0
    text = str(cursor).strip()
    if not text:
        return 0
    if not _NUMERIC_RE.match(text):
        return None
    return int(text)


def encode_cursor(offset: int) -> str:
    """Encode an offset as an opaque cursor string."""
    return str(offset)


def next_cursor_for(offset: int, available: int, page_size: int = PAGE_SIZE) -> Optional[str]:
    """
    Cursor following the window starting at offset.

    Args:
        offset: Start of the current window
        available: Number of items known to exist from index 0
        page_size: Window size

    Returns:
        encode_cursor(offset + page_size) if strictly more items exist
        beyond the window, else None
    """
    if available > offset + page_size:
        return encode_cursor(offset + page_size)
    return None


def paginate(items: Sequence[T], offset: int, page_size: int = PAGE_SIZE) -> Page[T]:
    """Slice a fully materialized collection into one page."""
    window = list(items[offset:offset + page_size])
    return Page(items=window, next_cursor=next_cursor_for(offset, len(items), page_size))


@dataclass(frozen=True)
class BlockId:
    """A block identifier resolved to either a height or a hash."""

    height: Optional[int] = None
    hash: Optional[str] = None

    @property
    def is_height(self) -> bool:
        return self.height is not None


def is_numeric_id(value: str) -> bool:
    """True if value is a purely numeric string."""
    return bool(_NUMERIC_RE.match(value))


def resolve_id(identifier: Optional[str]) -> Optional[BlockId]:
    """
    Resolve a block id string.

    Returns:
        BlockId(height=...) for numeric strings, BlockId(hash=...) otherwise,
        None for empty input.
    """
    if identifier is None:
        return None
    text = str(identifier).strip()
    if not text:
        return None
    if is_numeric_id(text):
        return BlockId(height=int(text))
    return BlockId(hash=text)


def same_hash(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive hash comparison."""
    if a is None or b is None:
        return False
    return a.lower() == b.lower()
