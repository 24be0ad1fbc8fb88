"""
AMANDA protocol constants.

These constants define the framing of the DCS archive protocol: header
layout, message size limits, and the default connection parameters used
by DCSClient.
"""

# Network
DEFAULT_PORT = 4242  # AMANDA server port

# Header structure
HEADER_SIZE = 8  # Fixed header size in bytes
HEADER_MAGIC = b"AM"  # Header identifier bytes
PROTOCOL_VERSION = 2  # AMANDA protocol version

# Header field offsets
MAGIC_OFFSET = 0
VERSION_OFFSET = 2
KIND_OFFSET = 3
BODY_SIZE_OFFSET = 4

# Size limits
MAX_BODY_SIZE = 16 * 1024 * 1024  # Largest body accepted from the server
MAX_REQUEST_BODY_SIZE = 4096  # Capacity of a (multi) request body
MAX_NAME_LENGTH = 255  # Names carry a 1-byte length prefix
MAX_VALUES_PER_SET = 0xFFFF  # Value count is a u16

# Result set owner index signalling "no more results"
END_OF_STREAM_INDEX = -1

# Defaults (seconds / counts)
DEFAULT_TIMEOUT = 5.0  # Poll interval and connect attempt bound
DEFAULT_RETRIES = 3  # Attempts before giving up on connect or I/O
DEFAULT_MULTI_SPLIT = 100  # Names per multi request

# Socket read granularity
RECV_CHUNK_SIZE = 64 * 1024
