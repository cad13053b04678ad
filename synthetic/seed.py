"""
synthetic/seed.py - Pure seeded hash helpers.

No randomness and no clock: the same seed string always yields the same
value on every platform and interpreter run.
"""

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193
_MASK32 = 0xFFFFFFFF
_HEX_DIGITS = "0123456789abcdef"


def seeded_int(seed: str) -> int:
    """
    32-bit FNV-1a over the seed's characters, followed by an avalanche mix
    so seeds differing in one trailing character spread across all bits.
    """
    h = _FNV_OFFSET
    for ch in seed:
        h ^= ord(ch)
        h = (h * _FNV_PRIME) & _MASK32

    h ^= h >> 16
    h = (h * 0x85EBCA6B) & _MASK32
    h ^= h >> 13
    h = (h * 0xC2B2AE35) & _MASK32
    h ^= h >> 16
    return h


def seeded_unit(seed: str) -> float:
    """Seeded value in [0, 1]."""
    return seeded_int(seed) / _MASK32


def seeded_range(seed: str, low: int, high: int) -> int:
    """Seeded integer in [low, high]."""
    if high < low:
        raise ValueError(f"empty range [{low}, {high}]")
    return low + seeded_int(seed) % (high - low + 1)


def seeded_hex(seed: str, length: int = 64) -> str:
    """Hex string built character by character from per-position seeds."""
    return "".join(
        _HEX_DIGITS[seeded_int(f"{seed}:{i}") % 16] for i in range(length)
    )
