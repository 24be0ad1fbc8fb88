"""
Testing utilities - FakeTransport for unit tests without network.

FakeTransport plays a scripted AMANDA server: every successful connect()
starts the next scripted session, and the session's messages are what the
client reads back. All calls are recorded in ``calls`` so tests can assert
on connection cycles and on the requests that were sent.

Example:
    from dcsclient.amanda import DCSClient
    from dcsclient.testing import FakeTransport, result_set, end_of_stream

    transport = FakeTransport(sessions=[
        [result_set(0, [(1000, 1.5), (1010, 1.6)]), end_of_stream()],
    ])
    client = DCSClient("fake", transport=transport)
    values = []
    assert client.get_alias_values("ALIAS", 1000, 2000, values) == 2
    assert transport.connect_count == 1
"""

from typing import Iterable, Optional, Sequence, Union

from dcsclient.amanda.errors import ErrorCode
from dcsclient.amanda.message import Message
from dcsclient.amanda.transport import Transport
from dcsclient.types import DCSValue, ValueType

# A scripted reply: a Message, raw bytes, or an ErrorCode to return from the next read
ScriptItem = Union[Message, bytes, ErrorCode]


def result_set(
    owner_index: int,
    values: Iterable[Union[DCSValue, tuple]],
    value_type: ValueType = ValueType.FLOAT,
) -> Message:
    """RESULT_SET for ``owner_index``; values may be DCSValue or (timestamp, value) tuples."""
    records = [v if isinstance(v, DCSValue) else DCSValue(v[0], v[1], value_type) for v in values]
    return Message.result_set(owner_index, records, value_type)


def end_of_stream() -> Message:
    return Message.end_of_stream()


class FakeTransport(Transport):
    """
    Scripted in-memory transport.

    Args:
        sessions: One list of replies per connection, in connect order. Each
            reply is a Message (encoded), raw bytes (sent as-is), or an
            ErrorCode returned by the read that would consume it.
        fail_connects: Number of initial connect() calls that fail
        send_error: ErrorCode returned by every send_all() when set
    """

    def __init__(
        self,
        sessions: Optional[Sequence[Sequence[ScriptItem]]] = None,
        fail_connects: int = 0,
        send_error: Optional[ErrorCode] = None,
    ):
        self._sessions = [list(s) for s in (sessions or [])]
        self._fail_connects = fail_connects
        self._send_error = send_error
        self._connected = False
        self._pending: list[ScriptItem] = []
        self._buffer = bytearray()

        self.calls: list[str] = []
        self.sent: list[bytes] = []

    # ----- Transport -----

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self) -> bool:
        self.calls.append("connect")
        self._connected = False
        self._buffer.clear()
        if self._fail_connects > 0:
            self._fail_connects -= 1
            return False
        self._pending = self._sessions.pop(0) if self._sessions else []
        self._connected = True
        return True

    def close(self) -> None:
        self.calls.append("close")
        self._connected = False
        self._pending = []
        self._buffer.clear()

    def send_all(self, data: bytes) -> int:
        self.calls.append("send")
        if not self._connected:
            return ErrorCode.BAD_STATE
        if self._send_error is not None:
            return self._send_error
        self.sent.append(bytes(data))
        return len(data)

    def receive_exact(self, size: int) -> tuple[int, bytes]:
        if not self._connected:
            return ErrorCode.BAD_STATE, b""
        while len(self._buffer) < size:
            if not self._pending:
                return ErrorCode.TIMEOUT, b""
            item = self._pending.pop(0)
            if isinstance(item, ErrorCode):
                return item, b""
            self._buffer.extend(item.encode() if isinstance(item, Message) else item)
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return size, data

    # ----- Inspection -----

    @property
    def connect_count(self) -> int:
        return self.calls.count("connect")

    @property
    def close_count(self) -> int:
        return self.calls.count("close")

    def sent_messages(self) -> list[Message]:
        """Decode everything the client sent."""
        return [Message.decode(data) for data in self.sent]

    def sent_names(self) -> list[list[str]]:
        """Request names of each sent request, in send order."""
        return [msg.request_strings for msg in self.sent_messages()]
