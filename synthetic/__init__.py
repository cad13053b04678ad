"""
synthetic/ - Deterministic synthetic chain data.

Modules:
- seed: Pure seeded hash helpers
- generator: Immutable block/transaction/address corpus
"""

from synthetic.generator import MockGenerator, MockParams
from synthetic.seed import seeded_hex, seeded_int, seeded_unit

__all__ = [
    "MockGenerator",
    "MockParams",
    "seeded_hex",
    "seeded_int",
    "seeded_unit",
]
