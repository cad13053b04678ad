# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for explorer tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(autouse=True)
def clean_explorer_env(monkeypatch):
    """Keep EXPLORER_* variables from the host out of tests."""
    for name in ("EXPLORER_NODE_URL", "EXPLORER_INDEXER_URL", "EXPLORER_USE_MOCK", "EXPLORER_DEADLINE_S"):
        monkeypatch.delenv(name, raising=False)


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
