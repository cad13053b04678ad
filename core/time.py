# PATH: core/time.py
"""
Time utilities for the explorer data layer.

All timestamps leaving the core are ISO-8601 strings in UTC.
"""

import math
import time
from datetime import datetime, timezone
from typing import Any, Optional

from core.constants import BLOCK_INTERVAL_S

# Integers at or above this are treated as milliseconds, below as seconds.
_MS_THRESHOLD = 10**11


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Get current UTC datetime as ISO string."""
    return now_utc().isoformat()


def now_ms() -> int:
    """Get current Unix timestamp in milliseconds."""
    return int(time.time() * 1000)


def iso_from_ms(ms: int) -> str:
    """Convert a Unix timestamp in milliseconds to an ISO string (UTC)."""
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


def estimate_timestamp(
    height: int,
    tip_height: Optional[int] = None,
    reference_ms: Optional[int] = None,
    interval_s: int = BLOCK_INTERVAL_S,
) -> str:
    """
    Estimate a block timestamp from its distance to the tip.

    Args:
        height: Height of the block being estimated
        tip_height: Height whose timestamp is reference_ms (defaults to height)
        reference_ms: Timestamp of tip_height in ms (defaults to now)
        interval_s: Estimated seconds per block

    Returns:
        ISO timestamp string
    """
    tip = height if tip_height is None else tip_height
    ref = now_ms() if reference_ms is None else reference_ms
    distance = max(0, tip - height)
    return iso_from_ms(ref - distance * interval_s * 1000)


def normalize_timestamp(value: Any) -> Optional[str]:
    """
    Normalize a loosely-typed timestamp to an ISO string.

    Accepts epoch seconds or milliseconds (int, float, or numeric string)
    and ISO-8601 strings (a trailing "Z" is accepted). Returns None when
    the value cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc).isoformat()

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            try:
                dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt.astimezone(timezone.utc).isoformat()

    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        if value < 0:
            return None
        try:
            ms = int(value) if value >= _MS_THRESHOLD else int(value * 1000)
            return iso_from_ms(ms)
        except (OverflowError, OSError, ValueError):
            return None

    return None
