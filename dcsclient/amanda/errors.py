"""
AMANDA client error codes.

Client error codes are negative integers returned (never raised) by the
transport and protocol layers. Zero or positive results are byte or value
counts. Server error codes are the unsigned byte carried by an ERROR message.
"""

import logging
from enum import IntEnum

logger = logging.getLogger(__name__)


class ErrorCode(IntEnum):
    """Client-side failure codes (negative = error)."""

    BAD_STATE = -1  # Operation attempted without a live connection
    INVALID_PARAMETER = -2  # Malformed query arguments
    TIMEOUT = -3  # Retries exhausted waiting for socket readiness
    BAD_MESSAGE = -4  # Undecodable message or request overflow
    COMM_ERROR = -5  # Raw socket error during read/write
    SERVER_ERROR = -6  # Server reported a failure for the query
    UNKNOWN_DP = -7  # Server does not know the alias/data point


class ServerErrorCode(IntEnum):
    """Error codes reported by the server in ERROR messages."""

    NONE = 0
    UNKNOWN_ALIAS_DP_NAME = 1
    INVALID_TIME_RANGE = 2
    INVALID_BUFFER_SIZE = 3
    INVALID_REQUEST = 4
    UNSUPPORTED_TYPE = 5
    UNKNOWN = 255


_ERROR_STRINGS: dict[int, str] = {
    ErrorCode.BAD_STATE: "BadState",
    ErrorCode.INVALID_PARAMETER: "InvalidParameter",
    ErrorCode.TIMEOUT: "Timeout",
    ErrorCode.BAD_MESSAGE: "BadMessage",
    ErrorCode.COMM_ERROR: "CommunicationError",
    ErrorCode.SERVER_ERROR: "ServerError",
    ErrorCode.UNKNOWN_DP: "UnknownAlias/DP",
}

_SERVER_ERROR_STRINGS: dict[int, str] = {
    ServerErrorCode.NONE: "NoneError",
    ServerErrorCode.UNKNOWN_ALIAS_DP_NAME: "UnknownAliasDPName",
    ServerErrorCode.INVALID_TIME_RANGE: "InvalidTimeRange",
    ServerErrorCode.INVALID_BUFFER_SIZE: "InvalidBufferSize",
    ServerErrorCode.INVALID_REQUEST: "InvalidRequest",
    ServerErrorCode.UNSUPPORTED_TYPE: "UnsupportedType",
    ServerErrorCode.UNKNOWN: "UnknownError",
}


def is_error(code: int) -> bool:
    """True if a client result is a failure code."""
    return code < 0


def error_string(code: int) -> str:
    """Return a short string describing a client error code."""
    text = _ERROR_STRINGS.get(code)
    if text is None:
        logger.error(f"Unknown error code {code}")
        return "UnknownCode"
    return text


def server_error_string(code: int) -> str:
    """Return a short string describing a server error code."""
    return _SERVER_ERROR_STRINGS.get(code, f"ServerErrorCode({code})")


def normalize_server_error_code(code: int) -> int:
    """Map a raw server code to ServerErrorCode, keeping unknown values as ints."""
    try:
        return ServerErrorCode(code)
    except ValueError:
        return code
