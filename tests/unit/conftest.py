"""
Shared fixtures for unit tests.
"""

import pytest

from chain_fakes import FakeChain, FakeConnector
from chains.connection import ConnectionManager
from chains.scanner import RpcScanner, ScanLimits
from config import ExplorerSettings


@pytest.fixture
def fake_chain():
    return FakeChain(tip=1000, txs_per_block=2)


@pytest.fixture
def fake_connector(fake_chain):
    return FakeConnector(fake_chain)


@pytest.fixture
def connection(fake_connector):
    return ConnectionManager("ws://fake", connector=fake_connector)


@pytest.fixture
def scanner(connection):
    return RpcScanner(connection, ScanLimits())


@pytest.fixture
def mock_settings():
    return ExplorerSettings(use_mock=True)
