"""
dcsclient - Python client for DCS archive (AMANDA) servers.

Quick start:
    import dcsclient
    dcsclient.configure(host="dcs-server", port=4242)

    values = dcsclient.get_alias_values("TPC_HV_SECTOR_0", 1190000000, 1190003600)
    result = dcsclient.get_many(["TPC_HV_SECTOR_0", "TPC_HV_SECTOR_1"], start, end)

Lower-level access (status codes instead of exceptions):
    from dcsclient.amanda import DCSClient
"""

import logging
import os
import threading
from typing import Optional, Sequence

from dcsclient.amanda import (
    DEFAULT_MULTI_SPLIT,
    DEFAULT_PORT,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    DCSClient,
    ErrorCode,
    ResultMap,
    ServerErrorCode,
    error_string,
)
from dcsclient.errors import DCSError, DCSServerError, raise_for_code
from dcsclient.types import DCSValue, EntityKind, TimeSpec, ValueSeries, ValueType, to_unix_seconds

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Environment Variables (read at import)
# ─────────────────────────────────────────────────────────────────────────────


def _get_env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    """Get environment variable as int."""
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {val!r}")


def _get_env_float(name: str, default: Optional[float] = None) -> Optional[float]:
    """Get environment variable as float."""
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number, got {val!r}")


_env_host = os.environ.get("DCS_HOST")
_env_port = _get_env_int("DCS_PORT")
_env_timeout = _get_env_float("DCS_TIMEOUT")
_env_retries = _get_env_int("DCS_RETRIES")
_env_multi_split = _get_env_int("DCS_MULTI_SPLIT")


# ─────────────────────────────────────────────────────────────────────────────
# Global Client Management
# ─────────────────────────────────────────────────────────────────────────────

# DCSClient is not thread-safe; the lock also serializes queries on it
_global_lock = threading.Lock()

_global_client: Optional[DCSClient] = None

# User-configured settings (set via configure())
_config_host: Optional[str] = None
_config_port: Optional[int] = None
_config_timeout: Optional[float] = None
_config_retries: Optional[int] = None
_config_multi_split: Optional[int] = None


def configure(
    host: Optional[str] = None,
    port: Optional[int] = None,
    timeout: Optional[float] = None,
    retries: Optional[int] = None,
    multi_split: Optional[int] = None,
) -> None:
    """Configure dcsclient global settings.

    Must be called BEFORE any module-level query.

    Args:
        host: Archive server host (default: from DCS_HOST)
        port: Archive server port (default: from DCS_PORT or 4242)
        timeout: Poll/connect timeout in seconds (default: from DCS_TIMEOUT or 5.0)
        retries: Connect/transfer attempts (default: from DCS_RETRIES or 3)
        multi_split: Names per batched request (default: from DCS_MULTI_SPLIT or 100)

    Raises:
        RuntimeError: If called after the global client is initialized
    """
    global _config_host, _config_port, _config_timeout, _config_retries, _config_multi_split

    with _global_lock:
        if _global_client is not None:
            raise RuntimeError(
                "configure() must be called before any query. "
                "Call shutdown() first to drop the client, then configure() to change settings."
            )

        if host is not None:
            _config_host = host
        if port is not None:
            _config_port = port
        if timeout is not None:
            _config_timeout = timeout
        if retries is not None:
            _config_retries = retries
        if multi_split is not None:
            _config_multi_split = multi_split


def shutdown() -> None:
    """Close and drop the global client.

    Configuration is preserved; the next query creates a new client from it.
    Safe to call multiple times.
    """
    global _global_client

    with _global_lock:
        if _global_client is not None:
            _global_client.close()
            _global_client = None


def _resolve(explicit, configured, env, default):
    for value in (explicit, configured, env):
        if value is not None:
            return value
    return default


def client(
    host: Optional[str] = None,
    port: Optional[int] = None,
    timeout: Optional[float] = None,
    retries: Optional[int] = None,
    multi_split: Optional[int] = None,
) -> DCSClient:
    """Create a DCSClient, filling unset arguments from configure() and the environment.

    Raises:
        ValueError: If no host is given, configured or set in DCS_HOST
    """
    resolved_host = _resolve(host, _config_host, _env_host, None)
    if not resolved_host:
        raise ValueError("No DCS server host: pass host=, call configure(host=...) or set DCS_HOST")
    return DCSClient(
        resolved_host,
        port=_resolve(port, _config_port, _env_port, DEFAULT_PORT),
        timeout=_resolve(timeout, _config_timeout, _env_timeout, DEFAULT_TIMEOUT),
        retries=_resolve(retries, _config_retries, _env_retries, DEFAULT_RETRIES),
        multi_split=_resolve(multi_split, _config_multi_split, _env_multi_split, DEFAULT_MULTI_SPLIT),
    )


def _get_global_client() -> DCSClient:
    """Get or create the global client. Caller holds _global_lock."""
    global _global_client

    if _global_client is None:
        _global_client = client()
        logger.debug(f"Initialized global client {_global_client!r}")
    return _global_client


# ─────────────────────────────────────────────────────────────────────────────
# Simple API
# ─────────────────────────────────────────────────────────────────────────────


def _get_values(kind: EntityKind, name: str, start: TimeSpec, end: TimeSpec) -> list[DCSValue]:
    values: list[DCSValue] = []
    with _global_lock:
        dcs = _get_global_client()
        status = dcs.get_values(kind, name, to_unix_seconds(start), to_unix_seconds(end), values)
        raise_for_code(status, dcs.server_error_code, dcs.server_error)
    return values


def get_dp_values(dp_name: str, start: TimeSpec, end: TimeSpec) -> list[DCSValue]:
    """Read the archived values of a data point in [start, end).

    Raises:
        DCSError: On any query failure (DCSServerError if the server reported it)
    """
    return _get_values(EntityKind.DP_NAME, dp_name, start, end)


def get_alias_values(alias: str, start: TimeSpec, end: TimeSpec) -> list[DCSValue]:
    """Read the archived values of an alias in [start, end).

    Raises:
        DCSError: On any query failure (DCSServerError if the server reported it)
    """
    return _get_values(EntityKind.ALIAS, alias, start, end)


def get_many(
    names: Sequence[str],
    start: TimeSpec,
    end: TimeSpec,
    kind: EntityKind = EntityKind.ALIAS,
) -> ResultMap:
    """Read the archived values of many aliases (or data points) in [start, end).

    Names missing from the result had no values in the interval.

    Raises:
        DCSError: On any query failure; no partial result is returned
    """
    with _global_lock:
        dcs = _get_global_client()
        result = dcs.get_values_many(kind, names, to_unix_seconds(start), to_unix_seconds(end))
        if result is None:
            raise_for_code(dcs.last_error, dcs.server_error_code, dcs.server_error)
            raise DCSError(ErrorCode.BAD_STATE, "query failed without an error code")
    return result


__all__ = [
    # Simple API
    "configure",
    "shutdown",
    "client",
    "get_dp_values",
    "get_alias_values",
    "get_many",
    # Types
    "DCSClient",
    "DCSValue",
    "EntityKind",
    "ValueType",
    "ValueSeries",
    "ResultMap",
    "TimeSpec",
    "to_unix_seconds",
    # Errors
    "DCSError",
    "DCSServerError",
    "ErrorCode",
    "ServerErrorCode",
    "error_string",
]
