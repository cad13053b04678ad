"""
explorer/ - Provider facade and command-line entry point.
"""

from explorer.provider import ExplorerProvider, select_backend

__all__ = [
    "ExplorerProvider",
    "select_backend",
]
