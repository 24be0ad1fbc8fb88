"""
High-level exceptions for dcsclient API.

These exceptions are raised by the user-facing API (get_dp_values,
get_alias_values, get_many) and the CLI, rather than the AMANDA protocol
layer, which reports failures as negative ErrorCode values.
"""

from typing import Optional

from dcsclient.amanda.errors import ErrorCode, error_string, server_error_string


class DCSError(Exception):
    """Raised when a query fails.

    Attributes:
        code: Client ErrorCode (negative)
        message: Human-readable error description
    """

    def __init__(self, code: int, message: Optional[str] = None):
        self.code = code
        self.message = message
        label = error_string(code)
        if message:
            super().__init__(f"{label}: {message}")
        else:
            super().__init__(label)

    def __repr__(self) -> str:
        return f"DCSError(code={self.code}, message={self.message!r})"


class DCSServerError(DCSError):
    """Raised when the server answers a query with an ERROR message.

    Attributes:
        server_code: Server error code from the ERROR message
        server_message: Server-provided description
    """

    def __init__(self, server_code: int, server_message: str):
        self.server_code = server_code
        self.server_message = server_message
        super().__init__(ErrorCode.SERVER_ERROR, f"{server_error_string(server_code)}: {server_message}")

    def __repr__(self) -> str:
        return f"DCSServerError(server_code={self.server_code}, server_message={self.server_message!r})"


def raise_for_code(code: int, server_code: int = 0, server_message: str = "") -> None:
    """Raise the exception matching a negative ErrorCode; no-op for counts."""
    if code >= 0:
        return
    if code == ErrorCode.SERVER_ERROR:
        raise DCSServerError(server_code, server_message)
    if code == ErrorCode.UNKNOWN_DP:
        raise DCSError(code, server_message or None)
    raise DCSError(code)
