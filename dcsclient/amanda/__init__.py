"""
dcsclient.amanda - AMANDA protocol layer.

This package implements the framed request/response protocol used to read
archived values from a DCS archive server:

- message: header/body codec for REQUEST, MULTI_REQUEST, RESULT_SET, ERROR
  and UNKNOWN_DP messages
- transport: non-blocking socket transport with bounded retries
- client: DCSClient, the protocol driver for single and batched queries
- batch: sub-batch splitting and the ResultMap aggregator

Example:
    from dcsclient.amanda import DCSClient, ErrorCode

    client = DCSClient("dcs-server", 4242)
    values = []
    n = client.get_dp_values("dcs_tpc:HV.Sector0.actual.vMon", 1190000000, 1190003600, values)
    if n < 0:
        print(f"Query failed: {client.error_string(n)}")
"""

from .batch import BatchDriver, ResultMap, clamp_end_index, collect_batched, split_batches
from .client import DCSClient
from .constants import (
    DEFAULT_MULTI_SPLIT,
    DEFAULT_PORT,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    END_OF_STREAM_INDEX,
    HEADER_SIZE,
    MAX_REQUEST_BODY_SIZE,
)
from .errors import ErrorCode, ServerErrorCode, error_string, is_error, server_error_string
from .message import Message, MessageError, MessageKind, decode_header, encode_header
from .transport import SocketTransport, Transport

__all__ = [
    "BatchDriver",
    "DCSClient",
    "DEFAULT_MULTI_SPLIT",
    "DEFAULT_PORT",
    "DEFAULT_RETRIES",
    "DEFAULT_TIMEOUT",
    "END_OF_STREAM_INDEX",
    "ErrorCode",
    "HEADER_SIZE",
    "MAX_REQUEST_BODY_SIZE",
    "Message",
    "MessageError",
    "MessageKind",
    "ResultMap",
    "ServerErrorCode",
    "SocketTransport",
    "Transport",
    "clamp_end_index",
    "collect_batched",
    "decode_header",
    "encode_header",
    "error_string",
    "is_error",
    "server_error_string",
    "split_batches",
]
