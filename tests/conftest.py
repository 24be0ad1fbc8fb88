"""
Shared pytest fixtures for dcsclient unit tests.

This module provides common fixtures used across multiple test files.
"""

import pytest

import dcsclient
from dcsclient.types import DCSValue, ValueType


@pytest.fixture
def sample_values():
    """Three float values one minute apart."""
    return [
        DCSValue(1190000000, 1.5, ValueType.FLOAT),
        DCSValue(1190000060, 2.5, ValueType.FLOAT),
        DCSValue(1190000120, 3.25, ValueType.FLOAT),
    ]


@pytest.fixture
def alias_names():
    """Five aliases, enough for 2+2+1 sub-batches with multi_split=2."""
    return [f"TPC_HV_SECTOR_{i}" for i in range(5)]


@pytest.fixture
def reset_global_state(monkeypatch):
    """Reset module-level configuration and the shared client around a test."""
    dcsclient.shutdown()
    for attr in ("_config_host", "_config_port", "_config_timeout", "_config_retries", "_config_multi_split"):
        monkeypatch.setattr(dcsclient, attr, None)
    for attr in ("_env_host", "_env_port", "_env_timeout", "_env_retries", "_env_multi_split"):
        monkeypatch.setattr(dcsclient, attr, None)
    yield
    dcsclient.shutdown()
