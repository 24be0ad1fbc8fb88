"""
Configuration for real/integration tests.

These tests require network access to a DCS archive server named by
DCS_TEST_HOST (and optionally DCS_TEST_PORT), plus names known to it:

- DCS_TEST_ALIAS:   an alias with archived values
- DCS_TEST_DP_NAME: a data point name with archived values

Run these tests explicitly:
    DCS_TEST_HOST=dcs-server pytest tests/real/ -v -s
"""

import os
import socket
import time

import pytest

from dcsclient.amanda import DCSClient

DCS_TEST_HOST = os.environ.get("DCS_TEST_HOST")
DCS_TEST_PORT = int(os.environ.get("DCS_TEST_PORT", "4242"))
DCS_TEST_ALIAS = os.environ.get("DCS_TEST_ALIAS")
DCS_TEST_DP_NAME = os.environ.get("DCS_TEST_DP_NAME")

# One hour ending a day ago, so the archive has certainly written it
QUERY_END = int(time.time()) - 86400
QUERY_START = QUERY_END - 3600


def dcs_server_available() -> bool:
    """Check if the configured archive server is reachable."""
    if not DCS_TEST_HOST:
        return False
    try:
        sock = socket.create_connection((DCS_TEST_HOST, DCS_TEST_PORT), timeout=2.0)
        sock.close()
        return True
    except OSError:
        return False


requires_dcs = pytest.mark.skipif(not dcs_server_available(), reason="DCS archive server not available")


def pytest_collection_modifyitems(config, items):
    """Add 'real' marker to all tests in this directory."""
    for item in items:
        if "tests/real" in str(item.fspath) or "tests\\real" in str(item.fspath):
            item.add_marker(pytest.mark.real)
            item.add_marker(requires_dcs)


@pytest.fixture
def dcs_client():
    client = DCSClient(DCS_TEST_HOST, DCS_TEST_PORT, timeout=5.0, retries=3, multi_split=50)
    yield client
    client.close()


@pytest.fixture
def test_alias():
    if not DCS_TEST_ALIAS:
        pytest.skip("DCS_TEST_ALIAS not set")
    return DCS_TEST_ALIAS


@pytest.fixture
def test_dp_name():
    if not DCS_TEST_DP_NAME:
        pytest.skip("DCS_TEST_DP_NAME not set")
    return DCS_TEST_DP_NAME


@pytest.fixture
def query_range():
    """(start, end) UNIX seconds of the query window."""
    return QUERY_START, QUERY_END
